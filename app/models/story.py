"""
Story Models
Represents saved storybooks and their pages stored in Firestore.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


class AgeGroup(str, Enum):
    """Target reader age group."""
    PRESCHOOL = "3-5"
    EARLY_READER = "6-8"
    MIDDLE_GRADE = "9-12"


class StoryTheme(str, Enum):
    """Story theme enumeration."""
    ADVENTURE = "Adventure"
    FANTASY = "Fantasy"
    FRIENDSHIP = "Friendship"
    SCIENCE = "Science"
    MYSTERY = "Mystery"


class ReadingLevel(str, Enum):
    """Reading level enumeration."""
    EASY = "Easy"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ImageStyle(str, Enum):
    """Illustration style labels passed to the image generator."""
    CHILDRENS_BOOK = "Children's Book Illustration"
    WATERCOLOR = "Watercolor"
    CARTOON = "Cartoon"
    PIXEL_ART = "Pixel Art"
    FANTASY_ART = "Fantasy Art"


MAX_STORY_PAGES = 12


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL")
    return value


UrlStr = Annotated[str, AfterValidator(_check_url)]


class StoryPage(BaseModel):
    """One page of a storybook, stored in the ``pages`` subcollection."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    page_number: int = Field(ge=0, alias="pageNumber", description="0-based reading order")
    text: str = Field(min_length=1, max_length=3000, description="Page text")
    image_prompt: str = Field(min_length=1, max_length=1000, alias="imagePrompt")
    image_url: Optional[UrlStr] = Field(default=None, alias="imageUrl")

    def to_dict(self) -> Dict[str, Any]:
        """Convert page to dictionary for Firestore; unset image URL is omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class NewStoryData(BaseModel):
    """Story submitted for persistence by its owner."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, use_enum_values=True)

    title: str = Field(min_length=1, max_length=150)
    author: str = Field(min_length=1, max_length=100)
    cover_image: UrlStr = Field(alias="coverImage")
    pages: List[StoryPage] = Field(min_length=1, max_length=MAX_STORY_PAGES)
    age_group: AgeGroup = Field(alias="ageGroup")
    theme: StoryTheme
    reading_level: ReadingLevel = Field(alias="readingLevel")
    user_id: str = Field(min_length=1, alias="userId")

    @field_validator("pages")
    @classmethod
    def validate_unique_page_numbers(cls, v: List[StoryPage]) -> List[StoryPage]:
        """Page numbers define reading order, so they must not repeat."""
        numbers = [page.page_number for page in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Page numbers must be unique")
        return v

    def story_fields(self) -> Dict[str, Any]:
        """Parent document fields, without the pages."""
        return self.model_dump(by_alias=True, exclude={"pages"})


class StoryModel(BaseModel):
    """A saved story as read back from Firestore."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    author: str
    cover_image: str = Field(alias="coverImage")
    age_group: str = Field(alias="ageGroup")
    theme: str
    reading_level: str = Field(alias="readingLevel")
    user_id: str = Field(alias="userId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    pages: Optional[List[StoryPage]] = None

    def to_response(self) -> Dict[str, Any]:
        """camelCase JSON shape returned to the web client."""
        data = self.model_dump(by_alias=True, exclude={"pages", "created_at"})
        data["createdAt"] = self.created_at.isoformat() if self.created_at else None
        if self.pages is not None:
            data["pages"] = [page.to_dict() for page in self.pages]
        return data

    @classmethod
    def from_dict(
        cls, doc_id: str, data: Dict[str, Any], pages: Optional[List[Dict[str, Any]]] = None
    ) -> "StoryModel":
        """Create story from a Firestore document and optional page documents."""
        story = cls(id=doc_id, **data)
        if pages is not None:
            story.pages = sorted(
                (StoryPage(**page) for page in pages),
                key=lambda page: page.page_number,
            )
        return story
