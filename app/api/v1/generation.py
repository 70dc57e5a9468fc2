"""Story generation session endpoints."""

from fastapi import APIRouter, Depends, status

from app.dependencies import (
    AuthContext,
    get_current_user,
    get_session_store,
    get_story_workflow,
)
from app.schemas.responses import ApiResponse
from app.schemas.story_schema import GenerateStoryRequest
from app.services.session_store import SessionStore
from app.services.story_workflow import GenerationRequest, StoryWorkflow
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

DEFAULT_AUTHOR = "AI Storyteller"


@router.post("/sessions", response_model=ApiResponse[dict], status_code=status.HTTP_201_CREATED)
async def open_session(
    request: GenerateStoryRequest,
    user: AuthContext = Depends(get_current_user),
    workflow: StoryWorkflow = Depends(get_story_workflow),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[dict]:
    """Open an idle generation session for a story idea."""
    session = workflow.new_session(
        user_id=user.uid,
        author=(user.email or DEFAULT_AUTHOR)[:100],
        request=GenerationRequest(
            prompt=request.prompt,
            age_group=request.age_group,
            theme=request.theme,
            style=request.style,
            reading_level=request.reading_level,
        ),
    )
    sessions.add(session)
    logger.info(f"Generation session {session.id} opened for user {user.uid}")
    return ApiResponse.success_response(session.to_dict(), message="Session opened")


@router.get("/sessions", response_model=ApiResponse[list])
async def list_sessions(
    user: AuthContext = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[list]:
    """The caller's live sessions, newest first."""
    return ApiResponse.success_response([s.to_dict() for s in sessions.list_for_user(user.uid)])


@router.get("/sessions/{session_id}", response_model=ApiResponse[dict])
async def get_session(
    session_id: str,
    user: AuthContext = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[dict]:
    return ApiResponse.success_response(sessions.get(session_id, user.uid).to_dict())


@router.post("/sessions/{session_id}/generate", response_model=ApiResponse[dict])
async def generate(
    session_id: str,
    user: AuthContext = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[dict]:
    """
    Write and illustrate the story; also "try again" from a finished draft.

    Each call costs one story from the monthly quota once authorized.
    """
    session = sessions.get(session_id, user.uid)
    await session.generate()
    return ApiResponse.success_response(session.to_dict(), message="Story ready")


@router.post("/sessions/{session_id}/save", response_model=ApiResponse[dict])
async def save(
    session_id: str,
    user: AuthContext = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[dict]:
    """Upload the illustrations and save the draft as a story."""
    session = sessions.get(session_id, user.uid)
    story_id = await session.save()
    return ApiResponse.success_response(
        {"storyId": story_id, "session": session.to_dict()},
        message="Story saved",
    )


@router.delete("/sessions/{session_id}", response_model=ApiResponse[dict])
async def close_session(
    session_id: str,
    user: AuthContext = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
) -> ApiResponse[dict]:
    """Discard the session; calls already in flight are left to finish."""
    sessions.discard(session_id, user.uid)
    return ApiResponse.success_response({"sessionId": session_id}, message="Session closed")
