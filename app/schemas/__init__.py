"""
Inkling Schemas
Pydantic request/response schemas for API validation and documentation.
"""

from app.schemas.user_schema import (
    SignUpRequest,
    LoginRequest,
    AuthData,
)
from app.schemas.responses import ApiResponse
from app.schemas.subscription_schema import (
    OrderRequest,
    VerifyPaymentRequest,
)
from app.schemas.story_schema import (
    DefineWordRequest,
    GenerateStoryRequest,
    SimilarStoriesRequest,
)

__all__ = [
    "SignUpRequest",
    "LoginRequest",
    "AuthData",
    "ApiResponse",
    "OrderRequest",
    "VerifyPaymentRequest",
    "DefineWordRequest",
    "GenerateStoryRequest",
    "SimilarStoriesRequest",
]
