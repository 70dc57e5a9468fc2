"""
Story Request Schemas
API schemas for story generation and reading helpers.
"""

from pydantic import BaseModel, ConfigDict, Field

from app.models.story import AgeGroup, ImageStyle, ReadingLevel, StoryTheme


class GenerateStoryRequest(BaseModel):
    """Open a generation session and run it."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, str_strip_whitespace=True)

    prompt: str = Field(min_length=10, max_length=1000, description="Story idea")
    age_group: AgeGroup = Field(alias="ageGroup")
    theme: StoryTheme
    style: ImageStyle = Field(default=ImageStyle.CHILDRENS_BOOK, description="Illustration style")
    reading_level: ReadingLevel = Field(default=ReadingLevel.INTERMEDIATE, alias="readingLevel")


class DefineWordRequest(BaseModel):
    """Word to define in the sentence it was read in."""

    model_config = ConfigDict(str_strip_whitespace=True)

    word: str = Field(min_length=1, max_length=64)
    context: str = Field(min_length=1, max_length=3000)


class SimilarStoriesRequest(BaseModel):
    """Story text to riff on."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    story_text: str = Field(min_length=1, max_length=36000, alias="storyText")
    num_stories: int = Field(default=3, ge=1, le=5, alias="numStories")
