"""Authentication service: JWT tokens, password hashing, user management."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthenticationError, DuplicateEmailError, NotFoundError
from app.models.user import User

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user: User) -> str:
    """Create a JWT access token carrying the user's ID and role."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "exp": now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Decode a JWT token and return the user ID string, or None if invalid."""
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload.get("sub")
    except JWTError:
        return None


def _as_aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:
    """Handles registration, login with lockout, and account administration."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="auth_service")

    async def register(
        self,
        email: str,
        first_name: str,
        last_name: str,
        password: str,
        phone: Optional[str] = None,
        company: Optional[str] = None,
        role: str = "customer",
    ) -> User:
        """Create an account. Self-registered users are always customers.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        email = email.lower()
        if await self.get_user_by_email(email):
            raise DuplicateEmailError(email)

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            company=company,
            role=role,
            hashed_password=hash_password(password),
        )
        self.db.add(user)
        await self.db.flush()

        self.logger.info("user_registered", user_id=str(user.id), role=role)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Verify credentials and record the login.

        Five consecutive failures lock the account for two hours. A
        successful login resets the failure counter.

        Raises:
            AuthenticationError: On bad credentials, a locked or an inactive account
        """
        user = await self.get_user_by_email(email.lower())
        if user is None:
            raise AuthenticationError("Invalid email or password")

        now = datetime.now(timezone.utc)

        if user.lock_until is not None and _as_aware(user.lock_until) > now:
            self.logger.warning("login_rejected_locked", user_id=str(user.id))
            raise AuthenticationError("Account temporarily locked after too many failed attempts")

        if not verify_password(password, user.hashed_password):
            await self._register_failed_attempt(user, now)
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is not active")

        user.login_attempts = 0
        user.lock_until = None
        user.login_count += 1
        user.last_login_at = now
        await self.db.flush()

        self.logger.info("user_logged_in", user_id=str(user.id))
        return user

    async def _register_failed_attempt(self, user: User, now: datetime) -> None:
        # An expired lock starts a fresh window
        if user.lock_until is not None and _as_aware(user.lock_until) <= now:
            user.login_attempts = 0
            user.lock_until = None

        user.login_attempts += 1
        if user.login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
            user.lock_until = now + timedelta(minutes=settings.ACCOUNT_LOCK_MINUTES)
            self.logger.warning(
                "account_locked",
                user_id=str(user.id),
                attempts=user.login_attempts,
            )
        await self.db.flush()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Fetch user by ID."""
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        query = select(User)
        if role:
            query = query.where(User.role == role)
        if status:
            query = query.where(User.status == status)

        total = (await self.db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        result = await self.db.execute(
            query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def set_role(self, user_id: uuid.UUID, role: str) -> User:
        user = await self._require_user(user_id)
        user.role = role
        await self.db.flush()
        self.logger.info("user_role_changed", user_id=str(user_id), role=role)
        return user

    async def set_status(self, user_id: uuid.UUID, status: str) -> User:
        """Change account status. Reactivating also clears any login lock."""
        user = await self._require_user(user_id)
        user.status = status
        if status == "active":
            user.login_attempts = 0
            user.lock_until = None
        await self.db.flush()
        self.logger.info("user_status_changed", user_id=str(user_id), status=status)
        return user

    async def ensure_admin(self, email: str, password: str) -> Optional[User]:
        """Create the initial administrator unless one exists already."""
        result = await self.db.execute(select(User).where(User.role == "admin").limit(1))
        if result.scalar_one_or_none() is not None:
            return None
        return await self.register(
            email=email,
            first_name="Site",
            last_name="Administrator",
            password=password,
            role="admin",
        )

    async def _require_user(self, user_id: uuid.UUID) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user
