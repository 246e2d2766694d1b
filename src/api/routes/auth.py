"""Authentication routes.

This module handles HTTP endpoints for user registration and login, and
resolves bearer tokens into the caller context used by every other route.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from core.dependencies import UserManagerDep
from core.exceptions import AuthenticationError
from core.responses import api_response
from schemas.user import CallerContext, LoginRequest, RegisterRequest
from utils.converters import user_to_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verify JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer token credentials.

    Returns:
        Decoded token payload.

    Raises:
        AuthenticationError: If token is missing, invalid or expired.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")
    try:
        payload = jwt.decode(
            credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError("Invalid authentication credentials")
    if payload.get("sub") is None:
        raise AuthenticationError("Invalid authentication credentials")
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> CallerContext:
    """Resolve the authenticated caller.

    Args:
        user_manager: Injected UserManager instance.
        token_payload: Decoded JWT token payload.

    Returns:
        CallerContext of the current user.

    Raises:
        AuthenticationError: If the user no longer exists.
    """
    user = user_manager.get_user_by_username(token_payload["sub"])
    if user is None:
        raise AuthenticationError("User not found")
    return CallerContext.from_user(user)


@router.post("/register", summary="Register a user")
def register(req: RegisterRequest, user_manager: UserManagerDep):
    """Register a new teacher or student.

    Args:
        req: Registration request with username, password, role, etc.
        user_manager: Injected UserManager instance.

    Returns:
        Envelope with the created user.
    """
    user = user_manager.create_user(
        username=req.username,
        password=req.password,
        role=req.role,
        name=req.name,
        email=req.email,
    )
    return api_response(
        "User registered successfully",
        {"user": user_to_info(user)},
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login", summary="Log in")
def login(req: LoginRequest, user_manager: UserManagerDep):
    """Login with username and password.

    Returns:
        Envelope with user information and JWT token.
    """
    user = user_manager.authenticate(req.username, req.password)
    if user is None:
        logger.warning("Failed login for %s", req.username)
        raise AuthenticationError("Invalid username or password")

    token = create_access_token(data={"sub": user.username, "role": user.role})
    return api_response(
        "Login successful", {"user": user_to_info(user), "token": token}
    )


@router.get("/me", summary="Current user")
def get_current_user_info(
    user_manager: UserManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    user = user_manager.get_user_by_id(current_user.user_id)
    return api_response("User retrieved successfully", {"user": user_to_info(user)})


@router.get("/users/{user_id}", summary="User by id")
def get_user_info(
    user_id: str,
    user_manager: UserManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    user = user_manager.get_user_by_id(user_id)
    return api_response("User retrieved successfully", {"user": user_to_info(user)})
