"""Shared fixtures: an in-memory LocalStore, fake collaborators and an API client."""

import hashlib
import hmac
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set

# Settings are read once at import; pin them before the app is imported.
os.environ["FIREBASE_CREDENTIALS_PATH"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["LOCAL_DATA_DIR"] = tempfile.mkdtemp(prefix="inkling-test-")
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes"

import pytest  # noqa: E402
import razorpay  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.crud.story import StoryCRUD  # noqa: E402
from app.crud.user import UserCRUD  # noqa: E402
from app.dependencies import (  # noqa: E402
    get_db_client,
    get_illustrator,
    get_image_storage,
    get_payment_gateway,
    get_session_store,
    get_story_writer,
)
from app.main import app  # noqa: E402
from app.services.ai.story_writer import GeneratedStory, StoryWriter  # noqa: E402
from app.services.local_store import LocalStore  # noqa: E402
from app.services.payments.razorpay_gateway import RazorpayGateway  # noqa: E402
from app.services.quota_manager import QuotaManager  # noqa: E402
from app.services.session_store import SessionStore  # noqa: E402
from app.services.story_workflow import GenerationRequest, StoryWorkflow  # noqa: E402
from app.utils.exceptions import UpstreamServiceError  # noqa: E402

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"
PNG_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class CountingWriter(StoryWriter):
    """Mock-text writer that records how often it was asked to write."""

    def __init__(self, fail: bool = False):
        super().__init__(None)
        self.calls = 0
        self.fail = fail

    async def write_story(self, prompt, age_group, theme, page_count) -> GeneratedStory:
        self.calls += 1
        if self.fail:
            raise RuntimeError("model overloaded")
        return await super().write_story(prompt, age_group, theme, page_count)


class FakeIllustrator:
    """Returns a PNG data URI, or raises for scenes listed in ``failing``."""

    def __init__(self, failing: Optional[Set[int]] = None):
        self.failing = failing or set()
        self.scenes: List[str] = []

    async def generate(self, scene: str, theme: str, style: str) -> str:
        self.scenes.append(scene)
        for index in self.failing:
            # mock scenes read "A friendly scene {n} showing ..." with n = index + 1
            if f"scene {index + 1} " in scene:
                raise RuntimeError(f"image model refused scene {index + 1}")
        return PNG_DATA_URI


class FakeImageStore:
    """Records uploads and hands out stable https URLs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: List[str] = []

    async def upload(self, data_uri: str, user_id: str) -> str:
        if self.fail:
            raise UpstreamServiceError("Could not upload image.")
        url = f"https://cdn.test/stories/{user_id}/{len(self.uploads)}.png"
        self.uploads.append(url)
        return url


def subscription_doc(
    limit: int = 5,
    used: int = 0,
    days_left: int = 10,
    status: str = "subscribed",
) -> dict:
    now = datetime.now(timezone.utc)
    return {
        "email": "reader@example.com",
        "subscriptionStatus": status,
        "planId": "Creator",
        "subscriptionEndDate": now + timedelta(days=days_left),
        "monthlyStoryLimit": limit,
        "storiesGeneratedThisMonth": used,
    }


@pytest.fixture
def store() -> LocalStore:
    return LocalStore()


@pytest.fixture
def users(store) -> UserCRUD:
    return UserCRUD(store)


@pytest.fixture
def stories(store) -> StoryCRUD:
    return StoryCRUD(store)


@pytest.fixture
def quota(users, gateway) -> QuotaManager:
    return QuotaManager(users, gateway)


@pytest.fixture
def writer() -> CountingWriter:
    return CountingWriter()


@pytest.fixture
def illustrator() -> FakeIllustrator:
    return FakeIllustrator()


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture
def workflow(quota, writer, illustrator, image_store, stories) -> StoryWorkflow:
    return StoryWorkflow(
        quota=quota,
        writer=writer,
        illustrator=illustrator,
        image_store=image_store,
        stories=stories,
    )


@pytest.fixture
def story_request() -> GenerationRequest:
    return GenerationRequest(
        prompt="a shy dragon who learns to sing",
        age_group="6-8",
        theme="Friendship",
        style="Watercolor",
    )


class FakeOrders:
    """Stands in for ``razorpay.Client.order``; echoes amount and currency."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created: List[dict] = []

    def create(self, data=None, **kwargs) -> dict:
        if self.fail:
            raise razorpay.errors.ServerError("gateway down")
        self.created.append(data)
        return {"id": "order_test_123", "amount": data["amount"], "currency": data["currency"]}


def sign_payment(order_id: str, payment_id: str, secret: str = TEST_KEY_SECRET) -> str:
    """Signature checkout returns for a captured payment."""
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def gateway_orders() -> FakeOrders:
    return FakeOrders()


@pytest.fixture
def gateway(gateway_orders) -> RazorpayGateway:
    gateway = RazorpayGateway(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
    # Signatures use the real SDK; only the network call is replaced
    gateway.client.order = gateway_orders
    return gateway


@pytest.fixture
def client(store, writer, illustrator, image_store, gateway):
    app.dependency_overrides[get_db_client] = lambda: store
    app.dependency_overrides[get_story_writer] = lambda: writer
    app.dependency_overrides[get_illustrator] = lambda: illustrator
    app.dependency_overrides[get_image_storage] = lambda: image_store
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    sessions = SessionStore()
    app.dependency_overrides[get_session_store] = lambda: sessions
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(uid: str, email: str = "reader@example.com") -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': uid, 'email': email})}"}
