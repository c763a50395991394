"""Illustrator agent: produces an image reference for the current topic."""

import logging
from typing import Optional

from openai import AsyncOpenAI

from models.errors import InferenceError
from services.openai.prompts import illustrator_prompt
from services.orchestration.fallbacks import placeholder_image

LOGGER = logging.getLogger(__name__)


class IllustratorAgent:
    """Generate illustrations with the image API, or fall back to placeholders."""

    def __init__(self, client: Optional[AsyncOpenAI], model: str = "gpt-image-1", size: str = "1024x1024") -> None:
        self.client = client
        self.model = model
        self.size = size

    async def illustrate(self, topic: str, context: str) -> str:
        """Return a URL or data URL for the illustration.

        With no client or model configured this returns the placeholder image.

        Raises:
            InferenceError: If the image API call fails or returns nothing usable.
        """
        if self.client is None or not self.model:
            return placeholder_image(topic)

        try:
            resp = await self.client.images.generate(
                model=self.model,
                prompt=illustrator_prompt(topic, context),
                size=self.size,
                n=1,
            )
        except Exception as exc:
            raise InferenceError(f"Illustration failed: {exc}") from exc

        data = resp.data[0] if getattr(resp, "data", None) else None
        url = getattr(data, "url", None)
        if url:
            return url
        b64 = getattr(data, "b64_json", None)
        if b64:
            return f"data:image/png;base64,{b64}"
        raise InferenceError("Image API returned neither a URL nor image data.")
