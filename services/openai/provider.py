"""OpenAI-backed inference provider composed from the four agents."""

from __future__ import annotations

from typing import Sequence

from openai import AsyncOpenAI

from models.session_models import Message
from services.openai.architect import ArchitectAgent
from services.openai.historian import HistorianAgent
from services.openai.illustrator import IllustratorAgent
from services.openai.narrator import Narrator
from services.openai.teacher import TeacherAgent
from utils.app_config import AppConfig


class OpenAIInferenceProvider:
	"""Route each provider capability to the agent that owns it."""

	def __init__(self, client: AsyncOpenAI, config: AppConfig) -> None:
		if client is None:
			raise ValueError("AsyncOpenAI client is required.")
		self.teacher = TeacherAgent(client, model=config.teacher_model)
		self.historian = HistorianAgent(client, model=config.historian_model)
		self.architect = ArchitectAgent(client, model=config.architect_model)
		self.illustrator = IllustratorAgent(client, model=config.illustrator_model)
		self.narrator = Narrator(
			client,
			model=config.speech_model,
			voice=config.speech_voice,
			max_chars=config.narration_max_chars,
		)

	async def complete_text(self, history: Sequence[Message], new_text: str, context: str) -> str:
		return await self.teacher.answer(history, new_text, context)

	async def synthesize_speech(self, text: str) -> bytes:
		return await self.narrator.speak(text)

	async def describe_as_diagram(self, topic: str, context: str) -> str:
		return await self.architect.describe(topic, context)

	async def generate_image(self, topic: str, context: str) -> str:
		return await self.illustrator.illustrate(topic, context)

	async def summarize_document(self, raw: bytes, mime_type: str, filename: str = "document") -> str:
		return await self.historian.summarize(raw, mime_type, filename)
