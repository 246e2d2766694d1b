"""Configuration module for the LearnHub LMS backend.

This module provides centralized configuration management, including directory
paths, database and API server settings, authentication and upload limits.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# Uploaded submission files
UPLOAD_DIR_NAME = "uploads"
UPLOAD_DIR = DATA_DIR / UPLOAD_DIR_NAME

# --- Environment ---

# "development" exposes underlying error messages on 500 responses,
# "production" replaces them with a generic message.
APP_ENV: str = os.getenv("APP_ENV", "development").lower()
IS_PRODUCTION: bool = APP_ENV == "production"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/learnhub.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "5000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,"
    "http://127.0.0.1:5173",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))  # 7 days
)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Roles a user may register with
USER_ROLES: List[str] = ["teacher", "student"]

# --- Media Configuration ---

# Public URL prefix under which stored media is served
MEDIA_BASE_URL: str = os.getenv("MEDIA_BASE_URL", "/uploads").rstrip("/")

# Maximum accepted size of an uploaded submission file in bytes
MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(50 * 1024 * 1024)))

# --- Course Configuration ---

ENROLLMENT_STATUSES: List[str] = ["enrolled", "completed", "dropped"]

DEFAULT_ASSIGNMENT_TYPE: str = "assignment"

# Kinds of lesson content a course owner can add
CONTENT_TYPES: List[str] = ["text", "link"]

# --- Blog Configuration ---

# Estimated reading time in minutes when the author gives none
DEFAULT_BLOG_READ_TIME: int = 5

# --- Forum Configuration ---

FORUM_PAGE_SIZE: int = int(os.getenv("FORUM_PAGE_SIZE", "20"))

# Categories created for a course the first time its forum is used
DEFAULT_FORUM_CATEGORIES: List[Dict[str, str]] = [
    {
        "title": "General Discussion",
        "description": "General course discussions and questions",
    },
    {
        "title": "Course Questions",
        "description": "Questions about course content and materials",
    },
    {
        "title": "Assignments Help",
        "description": "Discussion about assignments and projects",
    },
]
