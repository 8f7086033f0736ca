import logging

from fastapi import APIRouter, Depends, status

from jobboard.auth import TokenService, get_token_service
from jobboard.dependencies import get_password_hasher, get_user_repository
from jobboard.errors import BadRequestError, ConflictError, UnauthorizedError
from jobboard.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from jobboard.services.passwords import PasswordHasher
from jobboard.services.users import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    users: UserRepository = Depends(get_user_repository),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
):
    if not request.email or not request.password:
        raise BadRequestError("Email and password are required")

    user = await users.get_by_email(request.email)
    # Same answer for unknown email and wrong password
    if not user or not await password_hasher.verify(request.password, user.user_password):
        logger.info("Login failed")
        raise UnauthorizedError("Invalid email or password")

    token = token_service.issue(user.user_id, user.user_email, user.role)
    return LoginResponse(token=token)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    users: UserRepository = Depends(get_user_repository),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
):
    if not request.email or not request.password:
        raise BadRequestError("Email and password are required")

    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise BadRequestError("Password must be at least 6 characters long")

    if await users.get_by_email(request.email):
        raise ConflictError("Email is already registered")

    hashed_password = await password_hasher.hash(request.password)
    user = await users.create(request.email, hashed_password)
    logger.info(f"Registered user {user.user_id}")

    return RegisterResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
    )
