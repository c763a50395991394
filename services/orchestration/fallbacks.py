"""Fixed values substituted when an inference call fails."""

from urllib.parse import quote

TEACHER_APOLOGY = "The Teacher is having trouble connecting. Please try again."


def placeholder_image(topic: str) -> str:
	"""Deterministic stock image for a topic."""
	return f"https://picsum.photos/seed/{quote(topic, safe='')}/500/300"
