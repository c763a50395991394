"""Architect agent: turns the latest explanation into a Mermaid flowchart."""

import logging
import re

from openai import AsyncOpenAI

from models.errors import InferenceError
from services.openai.prompts import architect_prompt
from services.openai.response_parser import extract_text

LOGGER = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:mermaid)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ``` and ```mermaid fences the model adds despite instructions."""
    return _FENCE.sub("", text or "").strip()


class ArchitectAgent:
    """Describe a topic as Mermaid flowchart source."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5-mini") -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def describe(self, topic: str, context: str) -> str:
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=[{"role": "user", "content": architect_prompt(topic, context)}],
            )
        except Exception as exc:
            raise InferenceError(f"Architect diagram failed: {exc}") from exc

        diagram = strip_code_fences(extract_text(response))
        if not diagram:
            raise InferenceError("Architect returned an empty diagram.")
        return diagram
