"""
Authentication Service Router
Email registration/login and Telegram Mini App login, both issuing session tokens
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config import settings
from db import get_db
from models import User
from schemas.api_models import AuthResponse, LoginRequest, RegisterRequest, TelegramAuthRequest, UserResponse
from utils.auth_dependencies import get_current_user, hash_password, verify_password
from utils.error_handling import AuthenticationError, safe_database_operation
from utils.jwt_utils import jwt_manager
from utils.structured_logging import log_authentication_event
from utils.telegram_auth import TelegramUser, telegram_email, verify_telegram_init_data

router = APIRouter()


def _auth_response(user: User, method: str, is_new_user: bool = False) -> AuthResponse:
    token = jwt_manager.create_session_token(user.id, method=method)
    log_authentication_event(method, user_id=user.id, success=True, method=method, details={"new_user": is_new_user})
    return AuthResponse(
        access_token=token,
        user=UserResponse.model_validate(user),
        is_new_user=is_new_user,
    )


def _upsert_telegram_user(db: Session, tg_user: TelegramUser) -> tuple:
    user = db.query(User).filter(User.telegram_id == tg_user.id).first()
    is_new = user is None

    if is_new:
        user = User(telegram_id=tg_user.id, email=telegram_email(tg_user.id))
        db.add(user)

    # Profile fields follow whatever Telegram reports now
    if tg_user.username:
        user.telegram_username = tg_user.username
    if tg_user.first_name:
        user.first_name = tg_user.first_name
    if tg_user.last_name:
        user.last_name = tg_user.last_name
    if tg_user.photo_url:
        user.avatar_url = tg_user.photo_url

    db.commit()
    db.refresh(user)
    return user, is_new


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register with email",
)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create an email/password account and return a session token"""
    email = body.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    with safe_database_operation(db, "register user"):
        user = User(email=email, password_hash=hash_password(body.password), first_name=body.first_name)
        db.add(user)
        db.commit()
        db.refresh(user)

    return _auth_response(user, "email", is_new_user=True)


@router.post("/login", response_model=AuthResponse, summary="Log in with email")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()

    if not user or not verify_password(body.password, user.password_hash):
        log_authentication_event("email", success=False, method="email", details={"email": email})
        raise AuthenticationError("Invalid email or password")

    return _auth_response(user, "email")


@router.post("/telegram", response_model=AuthResponse, summary="Log in from the Telegram Mini App")
async def telegram_login(body: TelegramAuthRequest, db: Session = Depends(get_db)):
    """
    ## Telegram Mini App Login

    Verifies the signed ``initData`` string that Telegram passes to the Mini
    App, then creates the user on first login or refreshes their profile.
    """
    try:
        tg_user = verify_telegram_init_data(body.init_data, settings.TELEGRAM_BOT_TOKEN)
    except AuthenticationError as e:
        log_authentication_event("telegram", success=False, method="telegram", details={"error": e.message})
        raise

    with safe_database_operation(db, "upsert telegram user"):
        user, is_new = _upsert_telegram_user(db, tg_user)

    return _auth_response(user, "telegram", is_new_user=is_new)


@router.get("/me", response_model=UserResponse, summary="Current user")
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user
