"""Illustration generation using the Google GenAI SDK."""

import base64
from typing import Any, Optional

from google import genai
from google.genai import types

from app.services.ai.prompts import build_illustration_prompt
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Filters are disabled on every harm category; the prompts are children's scenes.
SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    )
]

# 1x1 transparent PNG used by the mock illustrator
_PLACEHOLDER_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class ImageGenerationError(RuntimeError):
    """Raised when the model returns no image."""


class ImageGenerator:
    """Generates one illustration per call and returns it as a data URI."""

    DEFAULT_MODEL = "gemini-2.0-flash-preview-image-generation"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, client: Optional[Any] = None):
        """
        Initialize the image generator.

        Args:
            api_key: Gemini API key
            model: Image-capable Gemini model
            client: Pre-built ``genai.Client`` (tests)
        """
        if not api_key and client is None:
            raise ValueError("API key cannot be empty")

        self.client = client or genai.Client(api_key=api_key)
        self.model = model
        logger.info("ImageGenerator initialized with model=%s", model)

    async def generate(self, scene: str, theme: str, style: str) -> str:
        """
        Illustrate a scene.

        Args:
            scene: One-sentence scene description
            theme: Story theme label
            style: Illustration style label

        Returns:
            ``data:<mime>;base64,<data>`` URI

        Raises:
            ImageGenerationError: If the response carries no image
        """
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=build_illustration_prompt(scene, theme, style),
            config=types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"],
                safety_settings=SAFETY_SETTINGS,
            ),
        )

        for candidate in response.candidates or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is None or inline.data is None:
                    continue
                mime_type = inline.mime_type or "image/png"
                data = inline.data
                if isinstance(data, (bytes, bytearray)):
                    data = base64.b64encode(bytes(data)).decode("ascii")
                return f"data:{mime_type};base64,{data}"

        raise ImageGenerationError("Image generation failed to produce an image.")


class MockImageGenerator:
    """Returns a placeholder image; used in local dev mode without an API key."""

    async def generate(self, scene: str, theme: str, style: str) -> str:
        logger.debug("Mock illustration for scene: %s", scene)
        return f"data:image/png;base64,{_PLACEHOLDER_PNG}"
