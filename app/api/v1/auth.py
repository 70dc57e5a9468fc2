"""Authentication endpoints for signup and login."""

import asyncio
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.core.security import create_access_token, hash_password, verify_password
from app.crud.user import UserCRUD
from app.dependencies import (
    AuthContext,
    get_current_user,
    get_firebase_service,
    get_user_crud,
)
from app.models.user import UserModel
from app.schemas.responses import ApiResponse
from app.schemas.user_schema import AuthData, LoginRequest, SignUpRequest
from app.services.firebase.auth_service import FirebaseService
from app.utils.exceptions import AuthenticationError, ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/signup", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignUpRequest,
    users: UserCRUD = Depends(get_user_crud),
    firebase: Optional[FirebaseService] = Depends(get_firebase_service),
) -> ApiResponse[AuthData]:
    """
    Create a new user account.

    Creates the identity and an unsubscribed user document. In local dev
    mode a bearer token is issued as well; with Firebase the client signs
    in through the identity provider.

    Raises:
        ValidationError: If the email is already registered
    """
    if firebase is None:
        if await users.get_by_email(request.email):
            raise ValidationError("Email already registered")
        uid = uuid.uuid4().hex[:28]
        user = UserModel(uid=uid, email=request.email, password_hash=hash_password(request.password))
    else:
        uid = await asyncio.to_thread(firebase.create_user, request.email, request.password)
        user = UserModel(uid=uid, email=request.email)

    await users.create_user(user)
    logger.info(f"New user created: {user.email} (uid: {uid})")

    token = None
    if firebase is None:
        token = create_access_token({"sub": uid, "email": user.email})

    return ApiResponse.success_response(
        AuthData(uid=uid, email=user.email, token=token),
        message="Signup successful",
    )


@router.post("/login", response_model=ApiResponse[AuthData])
async def login(
    request: LoginRequest,
    users: UserCRUD = Depends(get_user_crud),
    firebase: Optional[FirebaseService] = Depends(get_firebase_service),
) -> ApiResponse[AuthData]:
    """
    Authenticate with email and password (local dev mode).

    Raises:
        ValidationError: In Firebase mode, where the identity provider signs users in
        AuthenticationError: If the credentials are invalid
    """
    if firebase is not None:
        raise ValidationError("Sign in with the identity provider to obtain a token")

    user_data = await users.get_by_email(request.email)
    if not user_data or not user_data.get("passwordHash") \
            or not verify_password(request.password, user_data["passwordHash"]):
        logger.warning(f"Failed login attempt for user: {request.email}")
        raise AuthenticationError("Invalid credentials")

    uid = user_data["uid"]
    logger.info(f"User logged in: {user_data['email']} (uid: {uid})")
    return ApiResponse.success_response(
        AuthData(
            uid=uid,
            email=user_data["email"],
            token=create_access_token({"sub": uid, "email": user_data["email"]}),
        ),
        message="Login successful",
    )


@router.get("/me", response_model=ApiResponse[AuthData])
async def me(user: AuthContext = Depends(get_current_user)) -> ApiResponse[AuthData]:
    """Identity of the bearer token's owner."""
    return ApiResponse.success_response(AuthData(uid=user.uid, email=user.email))
