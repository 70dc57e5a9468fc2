"""Reading helper endpoints: word definitions and similar stories."""

from fastapi import APIRouter, Depends

from app.dependencies import AuthContext, get_current_user, get_story_writer
from app.schemas.responses import ApiResponse
from app.schemas.story_schema import DefineWordRequest, SimilarStoriesRequest
from app.services.ai.story_writer import StoryWriter

router = APIRouter()


@router.post("/define", response_model=ApiResponse[dict])
async def define_word(
    request: DefineWordRequest,
    user: AuthContext = Depends(get_current_user),
    writer: StoryWriter = Depends(get_story_writer),
) -> ApiResponse[dict]:
    """Child-friendly definition of a word in the sentence it appears in."""
    definition = await writer.define_word(request.word, request.context)
    return ApiResponse.success_response({"word": request.word, "definition": definition})


@router.post("/similar", response_model=ApiResponse[dict])
async def similar_stories(
    request: SimilarStoriesRequest,
    user: AuthContext = Depends(get_current_user),
    writer: StoryWriter = Depends(get_story_writer),
) -> ApiResponse[dict]:
    """Short stories in the spirit of the given one."""
    stories = await writer.similar_stories(request.story_text, request.num_stories)
    return ApiResponse.success_response({"stories": stories})
