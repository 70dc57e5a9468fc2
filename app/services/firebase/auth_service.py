"""Firebase Admin authentication service."""

import os
from typing import Dict, Optional

from app.utils.exceptions import AuthenticationError, ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class FirebaseService:
    """Service for Firebase Admin initialization, token checks and user creation."""

    def __init__(self, credentials_path: Optional[str] = None, storage_bucket: str = ""):
        """Initialize Firebase Admin SDK.

        Args:
            credentials_path: Path to Firebase credentials JSON file.
                            If None, looks for FIREBASE_CREDENTIALS_PATH env var
                            or uses default application credentials.
            storage_bucket: Default Cloud Storage bucket for uploads.
        """
        self._app = None
        self._auth = None
        self._initialized = False
        self.storage_bucket = storage_bucket

        try:
            self.initialize(credentials_path)
        except Exception as e:
            logger.error(f"Failed to initialize Firebase service: {e}")

    def initialize(self, credentials_path: Optional[str] = None) -> bool:
        """Initialize Firebase Admin SDK with credentials.

        Args:
            credentials_path: Path to Firebase credentials JSON file

        Returns:
            True if initialization successful, False otherwise
        """
        import firebase_admin
        from firebase_admin import auth, credentials

        if credentials_path is None:
            credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH")

        options = {"storageBucket": self.storage_bucket} if self.storage_bucket else None

        try:
            if firebase_admin._apps:
                self._app = firebase_admin.get_app()
            elif credentials_path and os.path.exists(credentials_path):
                cred = credentials.Certificate(credentials_path)
                self._app = firebase_admin.initialize_app(cred, options)
                logger.info(f"Firebase initialized with credentials: {credentials_path}")
            else:
                self._app = firebase_admin.initialize_app(options=options)
                logger.info("Firebase initialized with default credentials")
        except Exception as e:
            logger.error(f"Error initializing Firebase: {e}")
            return False

        self._auth = auth
        self._initialized = True
        logger.info("Firebase Admin SDK initialized successfully")
        return True

    def verify_token(self, token: str) -> Dict:
        """Verify a Firebase ID token.

        Args:
            token: Firebase ID token

        Returns:
            Decoded token claims including ``uid`` and, when present, ``email``

        Raises:
            AuthenticationError: If the token is empty, expired, revoked or malformed
        """
        if not token:
            raise AuthenticationError("Unauthorized")

        if not self._initialized:
            raise RuntimeError("Firebase not initialized")

        try:
            decoded_token = self._auth.verify_id_token(token)
        except (ValueError, self._auth.InvalidIdTokenError, self._auth.ExpiredIdTokenError) as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Unauthorized: Invalid token") from e

        logger.debug(f"Token verified for user: {decoded_token.get('uid')}")
        return decoded_token

    def create_user(self, email: str, password: str) -> str:
        """Create a new Firebase user.

        Args:
            email: User email address
            password: User password (minimum 6 characters)

        Returns:
            User ID (uid)

        Raises:
            ValidationError: If the identity provider rejects the email or password
        """
        if not self._initialized:
            raise RuntimeError("Firebase not initialized")

        try:
            user = self._auth.create_user(email=email, password=password)
        except self._auth.EmailAlreadyExistsError as e:
            raise ValidationError("Email already registered") from e
        except ValueError as e:
            raise ValidationError(str(e)) from e

        logger.info(f"User created successfully: {user.uid}")
        return user.uid

    def is_initialized(self) -> bool:
        """Check if Firebase service is initialized."""
        return self._initialized
