import structlog
from fastapi import HTTPException, status
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import commit
from shared.security.jwt_handler import ADMIN_ROLE, CUSTOMER_ROLE, create_access_token

from .models import User
from .repository import UserRepository
from .schemas import TokenResponse, UserCreate, UserLogin

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

logger = structlog.get_logger(__name__)


class AuthService:

    @staticmethod
    def _hash_password(password: str) -> str:
        return _pwd_context.hash(password)

    @staticmethod
    def _verify_password(plain: str, hashed: str) -> bool:
        return _pwd_context.verify(plain, hashed)

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(user.id, user.role)

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate, role: str = CUSTOMER_ROLE) -> User:
        existing = await UserRepository.get_by_email(db, data.email)
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered",
            )
        user = User(
            name=data.name,
            email=data.email.lower(),
            hashed_password=AuthService._hash_password(data.password),
            role=role,
        )
        await UserRepository.add(db, user)
        await commit(db)
        await db.refresh(user)
        logger.info("user_registered", user_id=user.id, role=role)
        return user

    @staticmethod
    async def ensure_admin(db: AsyncSession, name: str, email: str, password: str) -> User:
        """Creates the bootstrap admin account unless the email is already taken."""
        existing = await UserRepository.get_by_email(db, email)
        if existing:
            return existing
        return await AuthService.register(
            db, UserCreate(name=name, email=email, password=password), role=ADMIN_ROLE
        )

    @staticmethod
    async def login(db: AsyncSession, data: UserLogin) -> TokenResponse:
        user = await UserRepository.get_by_email(db, data.email)
        if not user or not AuthService._verify_password(data.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is disabled",
            )
        return TokenResponse(access_token=AuthService.issue_token(user))

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user
