"""Historian agent: condenses uploaded documents into dense study notes.

Documents are sent to the Responses API as inline base64 data: PDFs and
other documents as `input_file`, images as `input_image`, and plain text
formats are decoded and sent as text. The resulting summary is what the
Teacher later sees as context, never the raw file.
"""

import base64
import logging
import time
from typing import Any, Dict, List

from openai import AsyncOpenAI

from models.errors import InferenceError
from services.openai.prompts import historian_instruction
from services.openai.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)

TEXT_TYPES = {"text/plain", "text/markdown", "text/csv", "application/json"}


def build_document_content(raw: bytes, mime_type: str, filename: str) -> List[Dict[str, Any]]:
    """Return the user content parts carrying the document."""
    if mime_type in TEXT_TYPES:
        return [{"type": "input_text", "text": f"Document '{filename}':\n{raw.decode('utf-8', errors='replace')}"}]
    data_url = f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"
    if mime_type.startswith("image/"):
        return [{"type": "input_image", "image_url": data_url}]
    return [{"type": "input_file", "filename": filename, "file_data": data_url}]


class HistorianAgent:
    """Summarize study documents."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5") -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def summarize(self, raw: bytes, mime_type: str, filename: str = "document") -> str:
        """Return a dense extractive summary of the document.

        Raises:
            InferenceError: If the call fails or returns no text.
        """
        if not raw:
            raise InferenceError("Document is empty.")

        start = time.time()
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=[
                    {
                        "role": "user",
                        "content": [{"type": "input_text", "text": historian_instruction()}]
                        + build_document_content(raw, mime_type, filename),
                    }
                ],
            )
        except Exception as exc:
            raise InferenceError(f"Historian summary failed for {filename}: {exc}") from exc

        summary = extract_text(response).strip()
        LOGGER.info("Historian latency %.3fs usage=%s", time.time() - start, extract_usage(response))
        if not summary:
            raise InferenceError(f"Historian returned no text for {filename}.")
        return summary
