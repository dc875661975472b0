import logging
from typing import Optional, Set
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.errors import AuthError, ConflictError, ForbiddenError, InternalError, NotFoundError
from app.core.security import create_access_token, dummy_verify_password, hash_password, verify_password
from app.db.errors import is_unique_violation
from app.db.models.user import User, ROLE_USER
from app.db.models.user_profile import JSONType, UserProfile
from app.db.models.user_settings import UserSettings
from app.db.upsert import upsert_row
from app.schemas.user import UserCreate, UserLogin
from app.schemas.user_profile import UserProfileUpsert
from app.schemas.user_settings import UserSettingsUpsert

logger = logging.getLogger(__name__)


def register(db: Session, user_in: UserCreate, role: str = ROLE_USER) -> User:
    user = User(
        name=user_in.name,
        email=user_in.email,
        phone=user_in.phone,
        password_hash=hash_password(user_in.password),
        role=role,
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"User registration failed: {e.orig}")
        if is_unique_violation(e):
            raise ConflictError("Email already exists")
        raise InternalError("User registration failed")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"User registration failed: {str(e)}")
        raise InternalError("User registration failed")
    db.refresh(user)
    return user


def login(db: Session, credentials: UserLogin, allowed_roles: Optional[Set[str]] = None,
          role_error: str = "Account is not allowed to sign in here") -> str:
    """Check credentials and return a signed access token.

    Unknown emails and wrong passwords fail the same way so the response
    never reveals whether an account exists.
    """
    try:
        user = db.query(User).filter(User.email == credentials.email).first()
    except SQLAlchemyError as e:
        logger.error(f"Login lookup failed: {str(e)}")
        raise InternalError("Login failed")

    if user is None:
        dummy_verify_password()
        raise AuthError("Invalid credentials")
    if not verify_password(credentials.password, user.password_hash):
        raise AuthError("Invalid credentials")
    if allowed_roles is not None and user.role not in allowed_roles:
        raise ForbiddenError(role_error)

    return create_access_token(user.id, user.role)


def _get_user(db: Session, *criteria) -> User:
    try:
        user = db.query(User).filter(*criteria).first()
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving user: {str(e)}")
        raise InternalError("Failed to retrieve user")
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_id(db: Session, user_id: int) -> User:
    return _get_user(db, User.id == user_id)


def get_user_by_email(db: Session, email: str) -> User:
    return _get_user(db, User.email == email)


def upsert_profile(db: Session, user_id: int, profile_in: UserProfileUpsert) -> dict:
    get_user_by_id(db, user_id)
    try:
        profile = upsert_row(db, UserProfile.__table__, "user_id", {"user_id": user_id, **profile_in.model_dump()})
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Profile upsert failed for user {user_id}: {str(e)}")
        raise InternalError("Failed to upsert profile")
    return profile


def get_profile_overview(db: Session, user_id: int) -> dict:
    try:
        row = db.execute(
            text("SELECT * FROM v_user_profile_overview WHERE user_id = :user_id")
            .columns(social_links=JSONType, metadata=JSONType),
            {"user_id": user_id},
        ).mappings().first()
    except SQLAlchemyError as e:
        logger.error(f"Profile overview failed for user {user_id}: {str(e)}")
        raise InternalError("Failed to fetch profile overview")
    if row is None:
        raise NotFoundError("User not found")
    return dict(row)


def upsert_settings(db: Session, user_id: int, settings_in: UserSettingsUpsert) -> dict:
    get_user_by_id(db, user_id)
    try:
        user_settings = upsert_row(db, UserSettings.__table__, "user_id", {"user_id": user_id, **settings_in.model_dump()})
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Settings upsert failed for user {user_id}: {str(e)}")
        raise InternalError("Failed to upsert settings")
    return user_settings


def get_settings(db: Session, user_id: int) -> dict:
    table = UserSettings.__table__
    try:
        row = db.execute(select(table).where(table.c.user_id == user_id)).mappings().first()
    except SQLAlchemyError as e:
        logger.error(f"Settings lookup failed for user {user_id}: {str(e)}")
        raise InternalError("Failed to fetch settings")
    if row is None:
        raise NotFoundError("Settings not found")
    return dict(row)
