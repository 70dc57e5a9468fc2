"""Groq API integration for text generation."""

import asyncio
import json
import re
from typing import Any, Dict, Optional

from groq import AsyncGroq

from app.utils.logger import get_logger

logger = get_logger(__name__)


class GroqService:
    """Service for JSON text generation using the Groq API."""

    # Available models
    FAST_MODEL = "llama-3.1-8b-instant"
    QUALITY_MODEL = "llama-3.3-70b-versatile"
    AVAILABLE_MODELS = [FAST_MODEL, QUALITY_MODEL]

    # Default parameters
    DEFAULT_MAX_TOKENS = 1024
    DEFAULT_TEMPERATURE = 0.7
    DEFAULT_TIMEOUT = 60  # seconds
    DEFAULT_RETRIES = 3

    def __init__(
        self,
        api_key: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_RETRIES,
        client: Optional[Any] = None,
    ):
        """
        Initialize Groq service.

        Args:
            api_key: Groq API key
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            client: Pre-built async client (tests)

        Raises:
            ValueError: If api_key is empty and no client is given
        """
        if not api_key and client is None:
            raise ValueError("API key cannot be empty")

        self.client = client or AsyncGroq(api_key=api_key)
        self.timeout = timeout
        self.max_retries = max_retries

        logger.info("GroqService initialized with timeout=%s, max_retries=%s",
                    timeout, max_retries)

    async def generate_json(
        self,
        system_prompt: str,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        model: str = QUALITY_MODEL,
    ) -> Dict[str, Any]:
        """
        Generate a JSON object with retry logic.

        Args:
            system_prompt: System instructions
            prompt: The user prompt
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (0.0-2.0)
            model: Model to use (fast or quality)

        Returns:
            Parsed JSON object

        Raises:
            ValueError: If prompt is empty or parameters are invalid
            RuntimeError: If generation fails after retries
        """
        if not prompt:
            raise ValueError("Prompt cannot be empty")

        if model not in self.AVAILABLE_MODELS:
            raise ValueError(f"Invalid model. Must be one of {self.AVAILABLE_MODELS}")

        if not 0.0 <= temperature <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")

        last_error = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    "Generating JSON (attempt %d/%d) with model=%s, max_tokens=%d",
                    attempt + 1, self.max_retries, model, max_tokens
                )

                response = await self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    response_format={"type": "json_object"},
                    timeout=self.timeout,
                )

                content = response.choices[0].message.content or ""
                parsed = parse_json_object(content)

                logger.info("JSON generated with model=%s, tokens_used=%s",
                            model, getattr(response.usage, "total_tokens", None))
                return parsed

            except Exception as e:
                last_error = e
                logger.warning(
                    "Generation attempt %d/%d failed: %s",
                    attempt + 1, self.max_retries, str(e)
                )

                # Exponential backoff: wait 1s, 2s, 4s between retries
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)

        error_message = (
            f"Text generation failed after {self.max_retries} attempts. "
            f"Last error: {str(last_error)}"
        )
        logger.error(error_message)
        raise RuntimeError(error_message) from last_error


def parse_json_object(raw_content: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of a model response.

    Accepts bare JSON or JSON wrapped in prose or code fences.

    Raises:
        ValueError: If no JSON object can be found
    """
    try:
        parsed = json.loads(raw_content)
    except json.JSONDecodeError:
        json_match = re.search(r"\{[\s\S]*\}", raw_content)
        if not json_match:
            raise ValueError("Response did not contain a JSON object")
        parsed = json.loads(json_match.group(0))

    if not isinstance(parsed, dict):
        raise ValueError("Response JSON is not an object")
    return parsed
