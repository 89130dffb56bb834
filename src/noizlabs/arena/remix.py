"""AI remix descriptions for audio clips: Claude API with template fallback."""

from __future__ import annotations

import logging
from functools import lru_cache

import anthropic

from noizlabs.config import get_settings
from noizlabs.errors import RateLimited, ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_REMIX_TYPE = "style-transfer"

REMIX_INSTRUCTIONS = {
    "pitch-shift": (
        "shift the pitch of this audio up or down to create a different tonal variation "
        "while keeping the rhythm and tempo"
    ),
    "tempo-change": "make this audio faster or slower while keeping its pitch and overall character",
    "reverb-effect": "add reverb to this audio to give it spatial depth and an ambient, atmospheric sound",
    "bass-boost": "boost the low frequencies of this audio to make it punchier and more energetic",
    "distortion": "apply creative distortion to this audio for an edgier, more aggressive character",
    "style-transfer": "move this audio into a different musical style while keeping recognizable elements",
}

SYSTEM_PROMPT = "You are an audio engineer. Describe remix transformations precisely and briefly."


def resolve_remix_type(remix_type: str | None) -> str:
    """Map a requested remix type to a known one. Missing means ``style-transfer``."""
    if not remix_type:
        return DEFAULT_REMIX_TYPE
    if remix_type not in REMIX_INSTRUCTIONS:
        msg = f"Unknown remix type: {remix_type}"
        raise ValidationFailed(msg, code="invalid_remix_type")
    return remix_type


class RemixService:
    """Describe how a clip would be remixed.

    Falls back to a template description when no API key is configured or
    the API call fails for any reason other than rate limiting.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 400,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.client = client
        if self.client is None and api_key:
            self.client = anthropic.AsyncAnthropic(api_key=api_key)

    async def describe(self, clip_title: str, remix_type: str) -> str:
        if self.client is None:
            return self._template_description(clip_title, remix_type)

        try:
            return await self._api_description(clip_title, remix_type)
        except anthropic.RateLimitError as e:
            msg = "Rate limit exceeded. Please try again later."
            raise RateLimited(msg) from e
        except anthropic.APIError:
            logger.exception("Claude API remix description failed, using template")
            return self._template_description(clip_title, remix_type)

    async def _api_description(self, clip_title: str, remix_type: str) -> str:
        prompt = (
            f'Describe how to {REMIX_INSTRUCTIONS[remix_type]} for the clip "{clip_title}". '
            "Make it technical but concise, and include the processing parameters you would use."
        )
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text

    def _template_description(self, clip_title: str, remix_type: str) -> str:
        return f'Remix "{clip_title}" ({remix_type}): {REMIX_INSTRUCTIONS[remix_type]}.'


@lru_cache
def get_remix_service() -> RemixService:
    """Process-wide remix service (FastAPI dependency)."""
    settings = get_settings()
    return RemixService(
        api_key=settings.anthropic_api_key,
        model=settings.remix_model,
        max_tokens=settings.remix_max_tokens,
    )
