"""
FastAPI Authentication Dependencies
Provides clean dependency injection for authentication across routes
"""

from typing import Optional

import bcrypt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from db import get_db
from models import User
from utils.error_handling import AuthenticationError
from utils.jwt_utils import jwt_manager
from utils.structured_logging import log_authentication_event


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header format")
    return token.strip()


def resolve_session_user(token: str, db: Session) -> User:
    payload = jwt_manager.verify_session_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired session token")

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user:
        raise AuthenticationError("User not found")
    return user


async def get_current_user_optional(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """
    Get current user if authenticated, None otherwise
    Use this for endpoints where authentication is optional
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return None

    user = resolve_session_user(token, db)
    request.state.user_id = user.id
    return user


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Get current authenticated user - raises 401 if not authenticated
    Use this for endpoints that require authentication
    """
    try:
        user = await get_current_user_optional(request, db)
    except AuthenticationError as e:
        log_authentication_event("session", success=False, details={"error": e.message, "path": request.url.path})
        raise

    if not user:
        log_authentication_event("session", success=False, details={"error": "missing token", "path": request.url.path})
        raise AuthenticationError("Authentication required")

    return user
