"""Saved story endpoints: save, library, read, flip-book and delete."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse

from app.crud.story import StoryCRUD, filter_stories, sort_newest_first
from app.dependencies import AuthContext, get_current_user, get_story_crud
from app.models.story import NewStoryData, StoryModel
from app.schemas.responses import ApiResponse
from app.services.book_layout import layout_book
from app.services.live_updates import SnapshotFeed
from app.utils.exceptions import AuthorizationError, NotFoundError
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


async def _owned_story(story_id: str, user: AuthContext, stories: StoryCRUD) -> StoryModel:
    story = await stories.get_story(story_id)
    if story is None:
        raise NotFoundError("Story not found")
    if story.user_id != user.uid:
        raise AuthorizationError("You are not authorized to view this story.")
    return story


@router.post("", response_model=ApiResponse[dict], status_code=status.HTTP_201_CREATED)
async def save_story(
    story: NewStoryData,
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> ApiResponse[dict]:
    """Persist a complete story with its pages; ``userId`` must be the caller."""
    story_id = await stories.create_story(story, user.uid)
    return ApiResponse.success_response({"id": story_id}, message="Story saved")


@router.get("", response_model=ApiResponse[list])
async def list_stories(
    age_group: Optional[str] = Query(default=None, alias="ageGroup"),
    theme: Optional[str] = Query(default=None),
    reading_level: Optional[str] = Query(default=None, alias="readingLevel"),
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> ApiResponse[list]:
    """The caller's stories, newest first; ``All`` or no value means no filter."""
    results = await stories.list_for_user(user.uid, age_group, theme, reading_level)
    return ApiResponse.success_response([story.to_response() for story in results])


@router.get("/stream")
async def stream_stories(
    request: Request,
    age_group: Optional[str] = Query(default=None, alias="ageGroup"),
    theme: Optional[str] = Query(default=None),
    reading_level: Optional[str] = Query(default=None, alias="readingLevel"),
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> StreamingResponse:
    """Server-sent events with the full filtered story list on every change."""

    def transform(snapshots):
        models = [StoryModel.from_dict(doc.id, doc.to_dict()) for doc in snapshots]
        selected = filter_stories(sort_newest_first(models), age_group, theme, reading_level)
        return [story.to_response() for story in selected]

    feed = SnapshotFeed(stories.user_stories_query(user.uid), transform)
    logger.info(f"Story list stream opened for user {user.uid}")
    return StreamingResponse(feed.events(request), media_type="text/event-stream")


@router.get("/{story_id}", response_model=ApiResponse[dict])
async def get_story(
    story_id: str,
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> ApiResponse[dict]:
    """A story with its pages in reading order."""
    story = await _owned_story(story_id, user, stories)
    return ApiResponse.success_response(story.to_response())


@router.get("/{story_id}/book", response_model=ApiResponse[dict])
async def get_story_book(
    story_id: str,
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> ApiResponse[dict]:
    """The story bound as a flip-book: sheets behind a cover, with labelled spreads."""
    story = await _owned_story(story_id, user, stories)
    return ApiResponse.success_response(layout_book(story))


@router.delete("/{story_id}", response_model=ApiResponse[dict])
async def delete_story(
    story_id: str,
    user: AuthContext = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> ApiResponse[dict]:
    """Delete a story and its pages; deleting a missing story succeeds."""
    deleted = await stories.delete_story(story_id, user.uid)
    return ApiResponse.success_response(
        {"id": story_id, "deleted": deleted},
        message="Story deleted" if deleted else "Story already deleted",
    )
