"""
Story generation workflow.

A generation session walks one draft through

    idle -> authorizing -> writing -> illustrating -> ready -> saving -> saved

with ``failed`` reachable from every working state. The session lives on the
server between requests; closing it only drops local state.
"""

import asyncio
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from app.config import get_settings
from app.crud.story import StoryCRUD
from app.models.story import NewStoryData, ReadingLevel, StoryPage
from app.services.ai.story_writer import GeneratedStory, StoryWriter
from app.services.quota_manager import QuotaManager
from app.utils.exceptions import (
    IllustrationsNotReadyError,
    InklingException,
    InvalidStateError,
    StoryGenerationError,
    UpstreamServiceError,
    ValidationError,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)


class GenerationState(str, Enum):
    """Workflow states of a generation session."""
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    WRITING = "writing"
    ILLUSTRATING = "illustrating"
    READY = "ready"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


GENERATE_FROM = {GenerationState.IDLE, GenerationState.READY, GenerationState.FAILED}


class Illustrator(Protocol):
    async def generate(self, scene: str, theme: str, style: str) -> str: ...


class ImageStore(Protocol):
    async def upload(self, data_uri: str, user_id: str) -> str: ...


@dataclass
class GenerationRequest:
    """What the user asked for."""

    prompt: str
    age_group: str
    theme: str
    style: str
    reading_level: str = ReadingLevel.INTERMEDIATE.value


@dataclass
class IllustrationResult:
    """Outcome of one illustration slot."""

    page_index: int
    image: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


def designated_slots(page_count: int, illustrated: int = 4) -> List[int]:
    """Evenly spaced page indices that receive an illustration (0, 3, 6, 9 for 12 pages).

    A story shorter than ``illustrated`` gets a picture on every page.
    """
    count = min(illustrated, page_count)
    if count <= 0:
        return []
    return [i * page_count // count for i in range(count)]


class StoryGenerationSession:
    """One draft's trip from prompt to saved story."""

    def __init__(
        self,
        user_id: str,
        author: str,
        request: GenerationRequest,
        quota: QuotaManager,
        writer: StoryWriter,
        illustrator: Illustrator,
        image_store: ImageStore,
        stories: StoryCRUD,
        page_count: int = 12,
        illustrated_page_count: int = 4,
        placeholder_cover_url: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.author = author
        self.request = request
        self.quota = quota
        self.writer = writer
        self.illustrator = illustrator
        self.image_store = image_store
        self.stories = stories
        self.page_count = page_count
        self.slots = designated_slots(page_count, illustrated_page_count)
        self.placeholder_cover_url = placeholder_cover_url or get_settings().placeholder_cover_url
        self.rng = rng or random.Random()

        self.state = GenerationState.IDLE
        self.failed_from: Optional[GenerationState] = None
        self.error: Optional[str] = None
        self.story: Optional[GeneratedStory] = None
        self.images: Dict[int, Optional[str]] = {}
        self.story_id: Optional[str] = None
        self.created_at = datetime.now(timezone.utc)

    def _fail(self, error: Exception) -> None:
        self.failed_from = self.state
        self.state = GenerationState.FAILED
        self.error = getattr(error, "message", None) or str(error)
        logger.error(f"Session {self.id} failed while {self.failed_from.value}: {self.error}")

    async def generate(self) -> None:
        """
        Run authorize, write and illustrate; ends in ``ready``.

        Calling it again from ``ready`` ("try again") repeats the whole
        sequence and costs another unit.

        A refused or failed quota check leaves an existing draft untouched:
        the session returns to where it was, so a paid draft can still be
        saved.

        Raises:
            InvalidStateError: If the session is busy or already saved
            GenerationDeniedError: If the quota check refuses (back to ``idle``,
                or to the previous state when a draft exists)
            StoryGenerationError: If the text step fails (``failed``)
        """
        if self.state not in GENERATE_FROM:
            raise InvalidStateError(f"Cannot generate while {self.state.value}")

        previous = (self.state, self.failed_from)
        self.state = GenerationState.AUTHORIZING
        try:
            decision = await self.quota.authorize(self.user_id)
        except Exception as e:
            if self.story is not None:
                self.state, self.failed_from = previous
                logger.error(f"Session {self.id} quota check failed, draft kept: {e}")
            else:
                self._fail(e)
            raise

        if not decision.allowed:
            if self.story is not None:
                self.state, self.failed_from = previous
            else:
                self.state = GenerationState.IDLE
            decision.raise_if_denied()

        self.story = None
        self.images = {}
        self.error = None
        self.failed_from = None

        self.state = GenerationState.WRITING
        try:
            await self.quota.record_generation_start(self.user_id)
            self.story = await self.writer.write_story(
                prompt=self.request.prompt,
                age_group=self.request.age_group,
                theme=self.request.theme,
                page_count=self.page_count,
            )
        except InklingException as e:
            self._fail(e)
            raise
        except Exception as e:
            self._fail(e)
            raise StoryGenerationError(str(e)) from e

        self.state = GenerationState.ILLUSTRATING
        results = await self._illustrate(self.story)
        self.images = {result.page_index: result.image for result in results}

        self.state = GenerationState.READY
        logger.info(
            f"Session {self.id} ready: '{self.story.title}', "
            f"{sum(r.ok for r in results)}/{len(results)} illustrations"
        )

    async def _illustrate_slot(self, index: int, scene: str) -> IllustrationResult:
        image = await self.illustrator.generate(scene, self.request.theme, self.request.style)
        return IllustrationResult(page_index=index, image=image)

    async def _illustrate(self, story: GeneratedStory) -> List[IllustrationResult]:
        """Illustrate every designated slot concurrently; a failed slot stays empty."""
        slots = [index for index in self.slots if index < len(story.pages)]
        outcomes = await asyncio.gather(
            *(self._illustrate_slot(index, story.pages[index].image_prompt) for index in slots),
            return_exceptions=True,
        )

        results = []
        for index, outcome in zip(slots, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Failed to generate image for page {index}: {outcome}")
                results.append(IllustrationResult(page_index=index, error=str(outcome)))
            else:
                results.append(outcome)
        return results

    def missing_slots(self) -> List[int]:
        return [index for index in self.slots if self.images.get(index) is None]

    def _can_save(self) -> bool:
        if self.state == GenerationState.READY:
            return True
        return self.state == GenerationState.FAILED and self.failed_from == GenerationState.SAVING

    async def save(self) -> str:
        """
        Upload the illustrations and persist the draft.

        Returns:
            The new story id

        Raises:
            InvalidStateError: If there is no finished draft
            IllustrationsNotReadyError: If a designated slot has no image (stays ``ready``)
            UpstreamServiceError, ValidationError: Upload or persistence failed
                (``failed``; the draft is kept and save may be retried)
        """
        if not self._can_save() or self.story is None:
            raise InvalidStateError(f"Nothing to save while {self.state.value}")

        missing = self.missing_slots()
        if missing:
            raise IllustrationsNotReadyError(missing)

        self.state = GenerationState.SAVING
        self.error = None
        try:
            story_data = await self._assemble()
            self.story_id = await self.stories.create_story(story_data, self.user_id)
        except InklingException as e:
            self._fail(e)
            raise
        except PydanticValidationError as e:
            self._fail(e)
            fields = [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ]
            raise ValidationError("Invalid story data.", details={"fields": fields}) from e
        except Exception as e:
            self._fail(e)
            raise UpstreamServiceError(str(e)) from e

        self.state = GenerationState.SAVED
        self.failed_from = None
        logger.info(f"Session {self.id} saved as story {self.story_id}")
        return self.story_id

    async def _assemble(self) -> NewStoryData:
        """Upload images, pick a cover, and build the story in page order."""
        indices = [index for index in self.slots if self.images.get(index)]
        urls = await asyncio.gather(
            *(self.image_store.upload(self.images[index], self.user_id) for index in indices)
        )
        uploaded = dict(zip(indices, urls))

        cover = self.rng.choice(urls) if urls else self.placeholder_cover_url
        pages = [
            StoryPage(
                page_number=index,
                text=page.text,
                image_prompt=page.image_prompt,
                image_url=uploaded.get(index),
            )
            for index, page in enumerate(self.story.pages)
        ]
        return NewStoryData(
            title=self.story.title,
            author=self.author,
            cover_image=cover,
            pages=pages,
            age_group=self.request.age_group,
            theme=self.request.theme,
            reading_level=self.request.reading_level,
            user_id=self.user_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Session view for the client; images are still data URIs before save."""
        draft = None
        if self.story is not None:
            draft = {
                "title": self.story.title,
                "pages": [
                    {
                        "pageNumber": index,
                        "text": page.text,
                        "imagePrompt": page.image_prompt,
                        "imageUrl": self.images.get(index),
                    }
                    for index, page in enumerate(self.story.pages)
                ],
            }
        return {
            "sessionId": self.id,
            "state": self.state.value,
            "failedFrom": self.failed_from.value if self.failed_from else None,
            "error": self.error,
            "illustrationSlots": self.slots,
            "missingIllustrations": self.missing_slots() if self.story else [],
            "draft": draft,
            "storyId": self.story_id,
        }


@dataclass
class StoryWorkflow:
    """Builds sessions wired to the shared collaborators."""

    quota: QuotaManager
    writer: StoryWriter
    illustrator: Illustrator
    image_store: ImageStore
    stories: StoryCRUD
    page_count: int = 12
    illustrated_page_count: int = 4
    placeholder_cover_url: Optional[str] = None
    rng: Optional[random.Random] = field(default=None)

    def new_session(self, user_id: str, author: str, request: GenerationRequest) -> StoryGenerationSession:
        return StoryGenerationSession(
            user_id=user_id,
            author=author,
            request=request,
            quota=self.quota,
            writer=self.writer,
            illustrator=self.illustrator,
            image_store=self.image_store,
            stories=self.stories,
            page_count=self.page_count,
            illustrated_page_count=self.illustrated_page_count,
            placeholder_cover_url=self.placeholder_cover_url,
            rng=self.rng,
        )
