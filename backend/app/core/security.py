"""Firebase JWT verification and role/subscription guards."""

from datetime import datetime
from typing import Any, Optional

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import ApiError
from app.models.enums import SubscriptionStatus, UserRole
from app.models.user import User

settings = get_settings()

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def init_firebase() -> None:
    """Initialize the Firebase Admin SDK once per process."""
    if firebase_admin._apps:
        return
    options = {"projectId": settings.firebase_project_id}
    if settings.google_application_credentials:
        cred = credentials.Certificate(settings.google_application_credentials)
        firebase_admin.initialize_app(cred, options)
    else:
        firebase_admin.initialize_app(options=options)


class AuthenticatedUser:
    """Represents an authenticated principal from a Firebase ID token."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        email_verified: bool = False,
        claims: Optional[dict[str, Any]] = None,
    ):
        self.uid = uid
        self.email = email
        self.email_verified = email_verified
        self.claims = claims or {}


def decode_token(token: str) -> AuthenticatedUser:
    """Verify a Firebase ID token. Raises HTTP 401 on any failure."""
    init_firebase()
    try:
        decoded_token = auth.verify_id_token(token)
    except auth.ExpiredIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except auth.InvalidIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (ValueError, auth.CertificateFetchError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token verification failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def verify_firebase_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthenticatedUser:
    """Verify the bearer token. Tokens are only ever issued by Firebase."""
    return decode_token(credentials.credentials)


async def verify_optional_firebase_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[AuthenticatedUser]:
    """Like verify_firebase_token, but anonymous requests yield None."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


async def load_user(db: AsyncSession, firebase_uid: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
    return result.scalar_one_or_none()


async def get_current_user(
    auth_user: AuthenticatedUser = Depends(verify_firebase_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the registered local user for the verified token."""
    user = await load_user(db, auth_user.uid)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not registered",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )
    return user


def require_role(*roles: UserRole):
    """Dependency factory allowing only the given roles."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(r.value for r in roles)}",
            )
        return current_user

    return dependency


def is_subscription_active(user: User, now: Optional[datetime] = None) -> bool:
    """ACTIVE subscriptions, or trials that have not yet ended."""
    now = now or datetime.utcnow()
    if user.subscription_status == SubscriptionStatus.ACTIVE:
        return True
    if user.subscription_status == SubscriptionStatus.TRIAL:
        return user.trial_end_date is not None and user.trial_end_date > now
    return False


def check_active_subscription(user: User) -> None:
    if not is_subscription_active(user):
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "Your trial has expired. Please upgrade your plan to continue.",
            code="TRIAL_EXPIRED",
        )


def require_active_subscription(current_user: User = Depends(get_current_user)) -> User:
    """Block write features once a trial or subscription has lapsed."""
    check_active_subscription(current_user)
    return current_user


require_manager = require_role(UserRole.PROPERTY_MANAGER)
require_admin = require_role(UserRole.ADMIN)


def require_active_manager(current_user: User = Depends(require_manager)) -> User:
    """Property manager with a live trial or subscription."""
    check_active_subscription(current_user)
    return current_user


async def get_optional_user(
    auth_user: Optional[AuthenticatedUser] = Depends(verify_optional_firebase_token),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Registered active user for public endpoints that personalise when signed in."""
    if auth_user is None:
        return None
    user = await load_user(db, auth_user.uid)
    if user is None or not user.is_active:
        return None
    return user
