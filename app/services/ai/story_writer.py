"""Text generation pipeline for storybooks and reading helpers."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.services.ai.cache_service import ContentCache
from app.services.ai.groq_service import GroqService
from app.services.ai.prompts import (
    LEXICOGRAPHER_SYSTEM_PROMPT,
    SIMILAR_STORIES_SYSTEM_PROMPT,
    STORYBOOK_SYSTEM_PROMPT,
    build_definition_prompt,
    build_similar_stories_prompt,
    build_storybook_prompt,
)
from app.utils.exceptions import StoryGenerationError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class GeneratedPage:
    """Text and illustration brief for one page."""

    text: str
    image_prompt: str

    def to_dict(self) -> dict:
        return {"text": self.text, "imagePrompt": self.image_prompt}


@dataclass
class GeneratedStory:
    """Story text returned by the writer, before illustration."""

    title: str
    pages: List[GeneratedPage] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "pages": [page.to_dict() for page in self.pages],
        }


def parse_story_contract(raw: Any, page_count: int) -> GeneratedStory:
    """
    Check a generator result against the storybook contract.

    The result must be ``{"title": str, "pages": [{"text", "imagePrompt"}]}``
    with exactly ``page_count`` pages of non-empty strings.

    Raises:
        StoryGenerationError: If the result breaks the contract
    """
    if not isinstance(raw, dict):
        raise StoryGenerationError("Generated story is not an object")

    title = raw.get("title")
    pages = raw.get("pages")
    if not isinstance(title, str) or not title.strip():
        raise StoryGenerationError("Generated story has no title")
    if not isinstance(pages, list) or len(pages) != page_count:
        raise StoryGenerationError(
            f"Generated story must have exactly {page_count} pages",
            details={"pages": len(pages) if isinstance(pages, list) else None},
        )

    parsed = []
    for index, page in enumerate(pages):
        text = page.get("text") if isinstance(page, dict) else None
        image_prompt = page.get("imagePrompt") if isinstance(page, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise StoryGenerationError(f"Generated page {index} has no text")
        if not isinstance(image_prompt, str) or not image_prompt.strip():
            raise StoryGenerationError(f"Generated page {index} has no imagePrompt")
        parsed.append(GeneratedPage(text=text.strip(), image_prompt=image_prompt.strip()))

    return GeneratedStory(title=title.strip(), pages=parsed)


class StoryWriter:
    """Generates story text, word definitions and similar stories.

    Without a Groq service (local dev mode) deterministic mock text is returned.
    """

    def __init__(
        self,
        groq_service: Optional[GroqService] = None,
        cache_service: Optional[ContentCache] = None,
    ):
        """
        Initialize the story writer.

        Args:
            groq_service: GroqService instance, or None for mock output
            cache_service: ContentCache for definitions
        """
        self.groq = groq_service
        self.cache = cache_service or ContentCache()

        logger.info("StoryWriter initialized (mock=%s)", groq_service is None)

    async def write_story(
        self,
        prompt: str,
        age_group: str,
        theme: str,
        page_count: int,
    ) -> GeneratedStory:
        """
        Generate a storybook's title and page texts.

        Args:
            prompt: The user's story idea
            age_group: Age group label
            theme: Theme label
            page_count: Exact number of pages

        Returns:
            GeneratedStory with ``page_count`` pages

        Raises:
            StoryGenerationError: If the generator fails or breaks the contract
        """
        logger.info("Writing story: age_group=%s, theme=%s, pages=%d", age_group, theme, page_count)

        if self.groq is None:
            raw = self._mock_story(prompt, theme, page_count)
        else:
            try:
                raw = await self.groq.generate_json(
                    system_prompt=STORYBOOK_SYSTEM_PROMPT,
                    prompt=build_storybook_prompt(prompt, age_group, theme, page_count),
                    max_tokens=4000,
                    temperature=0.8,
                )
            except (RuntimeError, ValueError) as e:
                raise StoryGenerationError(f"Failed to generate story: {e}") from e

        story = parse_story_contract(raw, page_count)
        logger.info("Story written: '%s' (%d pages)", story.title, len(story.pages))
        return story

    async def define_word(self, word: str, context: str) -> str:
        """
        Define a word for a young reader, using the sentence it appears in.

        Results are cached by ``(word, context)``.

        Raises:
            StoryGenerationError: If the generator fails
        """
        cache_key = self.cache.cache_key({"kind": "definition", "word": word.lower(), "context": context})
        cached = self.cache.get_cached(cache_key)
        if cached:
            return cached["definition"]

        if self.groq is None:
            definition = f'"{word}" is a word used in: "{context}".'
        else:
            try:
                raw = await self.groq.generate_json(
                    system_prompt=LEXICOGRAPHER_SYSTEM_PROMPT,
                    prompt=build_definition_prompt(word, context),
                    max_tokens=300,
                    temperature=0.3,
                    model=GroqService.FAST_MODEL,
                )
            except (RuntimeError, ValueError) as e:
                raise StoryGenerationError(f"Failed to define word: {e}") from e
            definition = raw.get("definition")
            if not isinstance(definition, str) or not definition.strip():
                raise StoryGenerationError("Definition missing from response")
            definition = definition.strip()

        self.cache.set_cached(cache_key, {"definition": definition})
        return definition

    async def similar_stories(self, story_text: str, num_stories: int) -> List[str]:
        """
        Generate short stories similar to ``story_text``.

        Raises:
            StoryGenerationError: If the generator fails or returns no stories
        """
        logger.info("Generating %d similar stories", num_stories)

        if self.groq is None:
            return [f"Another tale much like this one (#{i + 1}): {story_text[:80]}" for i in range(num_stories)]

        try:
            raw = await self.groq.generate_json(
                system_prompt=SIMILAR_STORIES_SYSTEM_PROMPT,
                prompt=build_similar_stories_prompt(story_text, num_stories),
                max_tokens=3000,
                temperature=0.9,
            )
        except (RuntimeError, ValueError) as e:
            raise StoryGenerationError(f"Failed to generate similar stories: {e}") from e

        stories = raw.get("stories")
        if not isinstance(stories, list) or not all(isinstance(s, str) for s in stories):
            raise StoryGenerationError("Similar stories missing from response")
        return stories[:num_stories]

    @staticmethod
    def _mock_story(prompt: str, theme: str, page_count: int) -> Dict[str, Any]:
        """Placeholder story for local development without an API key."""
        return {
            "title": f"The {theme} of {prompt[:40].strip() or 'Tomorrow'}",
            "pages": [
                {
                    "text": f"Page {i + 1} of a {theme.lower()} story about {prompt}.",
                    "imagePrompt": f"A friendly scene {i + 1} showing {prompt}",
                }
                for i in range(page_count)
            ],
        }
