"""Conversions between pydantic schemas and SQLAlchemy models."""

from typing import Any, Dict

from models.user import UserModel
from schemas.user import User, UserInfo


def user_to_model(user: User) -> UserModel:
    return UserModel(**user.model_dump())


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        username=model.username,
        password_hash=model.password_hash,
        role=model.role,
        name=model.name,
        email=model.email,
        created_at=model.created_at,
    )


def user_to_info(user: User) -> UserInfo:
    """Strip the password hash before a user leaves the API."""
    return UserInfo(**user.model_dump(exclude={"password_hash"}))


def model_to_dict(model, **extra) -> Dict[str, Any]:
    """Column values of a model row, merged with denormalized display fields."""
    data = {column.name: getattr(model, column.name) for column in model.__table__.columns}
    data.update(extra)
    return data
