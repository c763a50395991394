"""Narration: text-to-speech for Teacher answers."""

from __future__ import annotations

import logging
import re

from openai import AsyncOpenAI

from models.errors import InferenceError

LOGGER = logging.getLogger(__name__)

_BOLD = re.compile(r"(\*\*|__)(.*?)\1")
_ITALIC = re.compile(r"(\*|_)(.*?)\1")
_HEADER = re.compile(r"^#+\s+", re.MULTILINE)
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_DOLLARS = re.compile(r"\$+")


def clean_text_for_speech(text: str) -> str:
    """Strip Markdown so the voice reads plain sentences, not formatting marks."""
    cleaned = _CODE_BLOCK.sub("", text or "")
    cleaned = _BOLD.sub(r"\2", cleaned)
    cleaned = _ITALIC.sub(r"\2", cleaned)
    cleaned = _HEADER.sub("", cleaned)
    cleaned = _LINK.sub(r"\1", cleaned)
    cleaned = _INLINE_CODE.sub(r"\1", cleaned)
    cleaned = _DOLLARS.sub("", cleaned)
    return cleaned.strip()


def clip_for_speech(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1].rstrip() + "…"


class Narrator:
    """Synthesize MP3 audio for an answer."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = "gpt-4o-mini-tts",
        voice: str = "alloy",
        max_chars: int = 1200,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.voice = voice
        self.max_chars = max_chars

    async def speak(self, text: str) -> bytes:
        """Return raw MP3 bytes for the cleaned text.

        Raises:
            InferenceError: If there is nothing to say or synthesis fails.
        """
        spoken = clip_for_speech(clean_text_for_speech(text), self.max_chars)
        if not spoken:
            raise InferenceError("Nothing to narrate.")
        try:
            resp = await self.client.audio.speech.create(model=self.model, voice=self.voice, input=spoken)
        except Exception as exc:
            raise InferenceError(f"Speech synthesis failed: {exc}") from exc

        audio = getattr(resp, "content", None)
        if not audio:
            raise InferenceError("Speech synthesis returned no audio.")
        return audio
