from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field, field_validator
from pymongo.errors import DuplicateKeyError

from .config import settings
from .exceptions import AuthenticationError, AuthorizationError, ConflictError
from .models.enums import UserRole, UserStatus
from .models.user import User
from .utils import duplicate_key_field

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SECRET_KEY = settings.JWT_SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

MIN_PASSWORD_LENGTH = 6


class TokenData(BaseModel):
    user_id: str
    role: Optional[UserRole] = None


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = ACCESS_TOKEN_EXPIRE_MINUTES * 60


class UserRegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    name: Optional[str] = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "username": "johndoe",
                "email": "john@example.com",
                "password": "SecurePassword123",
            }
        }


class UserLoginRequest(BaseModel):
    email: EmailStr
    password: str

    class Config:
        json_schema_extra = {
            "example": {"email": "john@example.com", "password": "SecurePassword123"}
        }


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    @staticmethod
    def _token_claims(user: User) -> Dict[str, Any]:
        return {"sub": str(user.id), "role": user.role.value}

    @staticmethod
    def create_access_token(
        data: dict, expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def create_refresh_token(data: dict) -> str:
        """Create JWT refresh token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
        to_encode.update({"exp": expire, "type": "refresh"})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def issue_tokens(user: User) -> Token:
        claims = AuthService._token_claims(user)
        return Token(
            access_token=AuthService.create_access_token(claims),
            refresh_token=AuthService.create_refresh_token(claims),
        )

    @staticmethod
    def verify_token(token: str, expected_type: str = "access") -> TokenData:
        """Decode a JWT and check its type; raises AuthenticationError"""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError:
            raise AuthenticationError("Could not validate credentials")

        user_id = payload.get("sub")
        if user_id is None or payload.get("type") != expected_type:
            raise AuthenticationError("Could not validate credentials")

        role = payload.get("role")
        return TokenData(user_id=user_id, role=UserRole(role) if role else None)

    @staticmethod
    async def get_current_user(token: str) -> User:
        """Resolve an access token to an active user"""
        token_data = AuthService.verify_token(token)

        try:
            user = await User.get(token_data.user_id)
        except Exception:
            user = None

        if user is None:
            raise AuthenticationError("User not found")
        if user.status != UserStatus.ACTIVE:
            raise AuthenticationError("Account is not active")
        return user

    @staticmethod
    async def register_user(user_data: UserRegisterRequest) -> User:
        user = User(
            username=user_data.username,
            email=user_data.email.lower(),
            name=user_data.name or user_data.username,
            password_hash=AuthService.get_password_hash(user_data.password),
            role=UserRole.USER,
        )
        try:
            await user.insert()
        except DuplicateKeyError as e:
            field = await AuthService.duplicate_user_field(e, user)
            if field == "email":
                raise ConflictError("User with this email already exists")
            if field == "username":
                raise ConflictError("Username is already taken")
            raise ConflictError("User already exists")

        logger.info(f"New user registered: {user.email}")
        return user

    @staticmethod
    async def duplicate_user_field(exc: DuplicateKeyError, user: User) -> Optional[str]:
        """Which unique user field collided; looked up when the driver error does not say"""
        field = duplicate_key_field(exc, ["email", "username"])
        if field is not None:
            return field
        others = {"_id": {"$ne": user.id}}
        if await User.find_one({**others, "email": user.email}):
            return "email"
        if await User.find_one({**others, "username": user.username}):
            return "username"
        return None

    @staticmethod
    async def authenticate_user(email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await User.find_one({"email": email.lower()})
        if not user:
            return None
        if not AuthService.verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    async def login_user(login_data: UserLoginRequest) -> Dict[str, Any]:
        user = await AuthService.authenticate_user(login_data.email, login_data.password)
        if not user:
            logger.warning(f"Failed login attempt for {login_data.email}")
            raise AuthenticationError("Invalid email or password")

        if user.status != UserStatus.ACTIVE:
            raise AuthorizationError(f"Account is {user.status.value}")

        now = datetime.now(timezone.utc)
        await user.set({User.last_login: now})

        return {
            "user": AuthService.convert_user_to_response(user),
            "tokens": AuthService.issue_tokens(user).model_dump(),
        }

    @staticmethod
    async def refresh_tokens(refresh_token: str) -> Token:
        token_data = AuthService.verify_token(refresh_token, expected_type="refresh")
        try:
            user = await User.get(token_data.user_id)
        except Exception:
            user = None
        if user is None or user.status != UserStatus.ACTIVE:
            raise AuthenticationError("Could not validate credentials")
        return AuthService.issue_tokens(user)

    @staticmethod
    def convert_user_to_response(user: User) -> Dict[str, Any]:
        """Public representation of a user; never includes the password hash"""
        return {
            "id": str(user.id),
            "username": user.username,
            "email": user.email,
            "name": user.name,
            "role": user.role.value,
            "status": user.status.value,
            "is_verified": user.is_verified,
            "is_approved": user.is_approved,
            "bio": user.bio,
            "avatar": user.avatar,
            "phone": user.phone,
            "full_name": user.full_name,
            "gender": user.gender,
            "location": user.location,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
            "last_login": user.last_login,
        }
