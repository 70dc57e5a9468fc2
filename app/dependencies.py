"""
Shared application dependencies.
Supports both Firebase mode and local development mode.
"""

import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from app.config import Settings, get_settings
from app.core.security import decode_token
from app.crud.story import StoryCRUD
from app.crud.user import UserCRUD
from app.services.ai.cache_service import ContentCache
from app.services.ai.groq_service import GroqService
from app.services.ai.image_generator import ImageGenerator, MockImageGenerator
from app.services.ai.story_writer import StoryWriter
from app.services.firebase.auth_service import FirebaseService
from app.services.payments.razorpay_gateway import RazorpayGateway
from app.services.quota_manager import QuotaManager
from app.services.session_store import SessionStore
from app.services.storage.image_storage import FirebaseImageStorage, LocalImageStorage
from app.services.story_workflow import StoryWorkflow
from app.utils.exceptions import AuthenticationError, ConfigurationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Global Instances
_db_client = None
_firebase_service = None
_story_writer = None
_illustrator = None
_image_storage = None
_session_store = None
_is_local_mode = None


@dataclass(frozen=True)
class AuthContext:
    """Identity of the authenticated caller."""

    uid: str
    email: str = ""


def _check_local_mode() -> bool:
    """Determine if we should use local mode (no Firebase)."""
    global _is_local_mode
    if _is_local_mode is not None:
        return _is_local_mode

    settings = get_settings()
    cred_path = settings.firebase_credentials_path

    if not cred_path or not os.path.exists(cred_path):
        logger.info("Firebase credentials not found - running in LOCAL DEV mode")
        _is_local_mode = True
    else:
        _is_local_mode = False

    return _is_local_mode


def _allow_mocks(settings: Settings) -> bool:
    return settings.environment != "production"


def get_firebase_service(settings: Settings = Depends(get_settings)) -> Optional[FirebaseService]:
    """Get the Firebase Admin service; None in local dev mode."""
    global _firebase_service
    if _check_local_mode():
        return None
    if _firebase_service is None:
        _firebase_service = FirebaseService(settings.firebase_credentials_path, settings.storage_bucket)
    if not _firebase_service.is_initialized():
        raise ConfigurationError("Firebase Admin SDK not initialized.")
    return _firebase_service


def get_db_client(settings: Settings = Depends(get_settings)):
    """Get database client - Firestore in prod, LocalStore in dev."""
    global _db_client
    if _db_client is not None:
        return _db_client

    if _check_local_mode():
        from app.services.local_store import get_local_store
        _db_client = get_local_store(settings.local_data_dir)
        logger.info("Using LocalStore database")
    else:
        get_firebase_service(settings)
        from firebase_admin import firestore
        _db_client = firestore.client()
        logger.info("Using Firestore database")

    return _db_client


def get_user_crud(db=Depends(get_db_client)) -> UserCRUD:
    return UserCRUD(db)


def get_story_crud(db=Depends(get_db_client)) -> StoryCRUD:
    return StoryCRUD(db)


def get_story_writer(settings: Settings = Depends(get_settings)) -> StoryWriter:
    """Get the story writer; mock text without a Groq key outside production."""
    global _story_writer
    if _story_writer is not None:
        return _story_writer

    if settings.groq_api_key:
        _story_writer = StoryWriter(GroqService(api_key=settings.groq_api_key), ContentCache())
        logger.info("Groq story writer initialized")
    elif _allow_mocks(settings):
        logger.warning("No Groq API key - story text will use mock data")
        _story_writer = StoryWriter(None, ContentCache())
    else:
        raise ConfigurationError("GROQ_API_KEY not set")
    return _story_writer


def get_illustrator(settings: Settings = Depends(get_settings)):
    """Get the image generator; placeholder images without a Gemini key outside production."""
    global _illustrator
    if _illustrator is not None:
        return _illustrator

    if settings.gemini_api_key:
        _illustrator = ImageGenerator(api_key=settings.gemini_api_key)
    elif _allow_mocks(settings):
        logger.warning("No Gemini API key - illustrations will use placeholder images")
        _illustrator = MockImageGenerator()
    else:
        raise ConfigurationError("GEMINI_API_KEY or GOOGLE_API_KEY not set")
    return _illustrator


def get_image_storage(settings: Settings = Depends(get_settings)):
    """Get image storage - Firebase Storage in prod, local media directory in dev."""
    global _image_storage
    if _image_storage is not None:
        return _image_storage

    if _check_local_mode():
        _image_storage = LocalImageStorage(settings.media_dir, settings.public_base_url)
    else:
        if not settings.storage_bucket:
            raise ConfigurationError("STORAGE_BUCKET not set")
        get_firebase_service(settings)
        from firebase_admin import storage
        _image_storage = FirebaseImageStorage(storage.bucket(settings.storage_bucket))
    return _image_storage


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> RazorpayGateway:
    return RazorpayGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
    )


def get_quota_manager(
    users: UserCRUD = Depends(get_user_crud),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> QuotaManager:
    return QuotaManager(users, gateway)


def get_story_workflow(
    quota: QuotaManager = Depends(get_quota_manager),
    writer: StoryWriter = Depends(get_story_writer),
    illustrator=Depends(get_illustrator),
    image_storage=Depends(get_image_storage),
    stories: StoryCRUD = Depends(get_story_crud),
    settings: Settings = Depends(get_settings),
) -> StoryWorkflow:
    return StoryWorkflow(
        quota=quota,
        writer=writer,
        illustrator=illustrator,
        image_store=image_storage,
        stories=stories,
        page_count=settings.story_page_count,
        illustrated_page_count=settings.illustrated_page_count,
        placeholder_cover_url=settings.placeholder_cover_url,
    )


def get_session_store(settings: Settings = Depends(get_settings)) -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(ttl_seconds=settings.session_ttl_seconds)
    return _session_store


async def get_current_user(
    authorization: Optional[str] = Header(None),
    firebase: Optional[FirebaseService] = Depends(get_firebase_service),
) -> AuthContext:
    """Get current user from the bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("Unauthorized")

    if firebase is None:
        try:
            claims = decode_token(token)
        except ValueError as e:
            logger.warning(f"Local token rejected: {e}")
            raise AuthenticationError("Unauthorized: Invalid token") from e
        if not claims.get("sub"):
            raise AuthenticationError("Unauthorized: Invalid token")
        return AuthContext(uid=claims["sub"], email=claims.get("email", ""))

    decoded = firebase.verify_token(token)
    return AuthContext(uid=decoded["uid"], email=decoded.get("email", ""))
