"""Teacher agent: answers the student using pre-processed study notes."""

import logging
import time
from typing import Dict, List, Sequence

from openai import AsyncOpenAI

from models.errors import InferenceError
from models.session_models import Message
from services.openai.prompts import teacher_system_prompt
from services.openai.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
EMPTY_ANSWER = "I'm thinking..."


class TeacherAgent:
    """Generate short Socratic answers with the Responses API."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5-mini") -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    @staticmethod
    def build_input(history: Sequence[Message], new_text: str, context: str) -> List[Dict[str, str]]:
        """Return the input array: system prompt, prior turns, then the new question."""
        inputs = [{"role": "system", "content": teacher_system_prompt(context)}]
        inputs.extend({"role": msg.role.value, "content": msg.content} for msg in history)
        inputs.append({"role": "user", "content": new_text})
        return inputs

    async def answer(self, history: Sequence[Message], new_text: str, context: str) -> str:
        """Return the answer text.

        Raises:
            InferenceError: If the API call fails.
        """
        start = time.time()
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=self.build_input(history, new_text, context),
            )
        except Exception as exc:
            raise InferenceError(f"Teacher completion failed: {exc}") from exc

        LOGGER.info("Teacher latency %.3fs usage=%s", time.time() - start, extract_usage(response))
        return extract_text(response).strip() or EMPTY_ANSWER
