"""
Story CRUD Operations
Saved storybooks live in ``stories``; their pages in the ``pages`` subcollection.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.crud.base import BaseCRUD
from app.models.story import NewStoryData, StoryModel
from app.utils.exceptions import AuthorizationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

PAGES_COLLECTION = "pages"


class StoryCRUD(BaseCRUD):
    """CRUD operations for story documents and their pages."""

    @property
    def collection_name(self) -> str:
        """Get collection name."""
        return "stories"

    async def create_story(self, story: NewStoryData, user_id: str) -> str:
        """
        Persist a story and all of its pages in one batched write.

        Args:
            story: Validated story data
            user_id: Authenticated caller; must own the story

        Returns:
            New story ID

        Raises:
            AuthorizationError: If ``story.user_id`` is not the caller
        """
        if story.user_id != user_id:
            raise AuthorizationError("Authorization error: User ID mismatch.")

        story_ref = self.get_collection().document()
        pages_ref = story_ref.collection(PAGES_COLLECTION)

        batch = self.db.batch()
        batch.set(story_ref, {**story.story_fields(), "createdAt": datetime.now(timezone.utc)})
        for page in story.pages:
            batch.set(pages_ref.document(), page.to_dict())
        await self.run(batch.commit)

        logger.info(f"Story {story_ref.id} saved for user {user_id} ({len(story.pages)} pages)")
        return story_ref.id

    async def get_story(self, story_id: str) -> Optional[StoryModel]:
        """
        Get a story with its pages in reading order.

        Args:
            story_id: Story ID

        Returns:
            StoryModel with pages sorted by ``pageNumber``, or None if not found
        """
        story_ref = self.get_collection().document(story_id)
        story_doc = await self.run(story_ref.get)
        if not story_doc.exists:
            return None

        page_docs = await self.run(story_ref.collection(PAGES_COLLECTION).get)
        pages = [doc.to_dict() for doc in page_docs]
        return StoryModel.from_dict(story_doc.id, story_doc.to_dict(), pages)

    async def list_for_user(
        self,
        user_id: str,
        age_group: Optional[str] = None,
        theme: Optional[str] = None,
        reading_level: Optional[str] = None,
    ) -> List[StoryModel]:
        """
        List a user's stories, newest first, optionally filtered.

        Args:
            user_id: Owner ID
            age_group: Only stories for this age group
            theme: Only stories with this theme
            reading_level: Only stories at this reading level

        Returns:
            Story summaries without pages
        """
        docs = await self.find([("userId", "==", user_id)])
        stories = [StoryModel.from_dict(doc.id, doc.to_dict()) for doc in docs]
        return filter_stories(sort_newest_first(stories), age_group, theme, reading_level)

    async def delete_story(self, story_id: str, user_id: str) -> bool:
        """
        Delete a story and its pages in one batched write.

        Args:
            story_id: Story ID
            user_id: Authenticated caller; must own the story

        Returns:
            True if something was deleted, False if the story was already gone

        Raises:
            AuthorizationError: If the story belongs to someone else
        """
        story_ref = self.get_collection().document(story_id)
        story_doc = await self.run(story_ref.get)
        if not story_doc.exists:
            return False

        if (story_doc.to_dict() or {}).get("userId") != user_id:
            logger.warning(f"Unauthorized delete attempt: User {user_id} tried to delete story {story_id}.")
            raise AuthorizationError("You are not authorized to delete this story.")

        page_docs = await self.run(story_ref.collection(PAGES_COLLECTION).get)
        batch = self.db.batch()
        for doc in page_docs:
            batch.delete(doc.reference)
        batch.delete(story_ref)
        await self.run(batch.commit)

        logger.info(f"Story {story_id} deleted with {len(page_docs)} pages")
        return True

    def user_stories_query(self, user_id: str) -> Any:
        """Query over a user's stories, for snapshot listeners."""
        return self.get_collection().where("userId", "==", user_id)


def sort_newest_first(stories: List[StoryModel]) -> List[StoryModel]:
    """Sort by ``createdAt`` descending; stories without a timestamp go last."""
    epoch = datetime.min.replace(tzinfo=timezone.utc)

    def created(story: StoryModel) -> datetime:
        value = story.created_at
        if value is None:
            return epoch
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    return sorted(stories, key=created, reverse=True)


def filter_stories(
    stories: List[StoryModel],
    age_group: Optional[str] = None,
    theme: Optional[str] = None,
    reading_level: Optional[str] = None,
) -> List[StoryModel]:
    """Keep stories matching every given filter; ``None`` or ``"All"`` matches anything."""
    criteria: Dict[str, Optional[str]] = {
        "age_group": age_group,
        "theme": theme,
        "reading_level": reading_level,
    }
    active = {field: value for field, value in criteria.items() if value and value != "All"}
    return [
        story for story in stories
        if all(getattr(story, field) == value for field, value in active.items())
    ]
