"""Prompt helpers for the four study agents."""

from __future__ import annotations

TEACHER_CONTEXT_LIMIT = 25000
ARCHITECT_CONTEXT_LIMIT = 1000
ILLUSTRATOR_CONTEXT_LIMIT = 600


def teacher_system_prompt(context_notes: str) -> str:
    """Return the Socratic teacher prompt grounded in the Historian's notes."""
    notes = context_notes[:TEACHER_CONTEXT_LIMIT] if context_notes else "No study material has been supplied yet."
    return (
        "You are a Socratic Teacher for ScholarFlow.\n\n"
        f"CONTEXT (study notes):\n{notes}\n\n"
        "FORMATTING RULES (your reply is displayed as rich text and also read aloud):\n"
        "1. Use standard Markdown (bold, headers) for visual emphasis.\n"
        "2. Write mathematics in plain English so it can be spoken, e.g. 'n squared' "
        "instead of n^2 and 'square root of x' instead of a radical sign.\n"
        "3. Do not use LaTeX delimiters.\n\n"
        "INSTRUCTIONS:\n"
        "1. Answer the student's question using the context above.\n"
        "2. Keep responses concise (under three sentences unless asked for more).\n"
        "3. Do not mention the notes or other agents. Just teach."
    )


def historian_instruction() -> str:
    """Return the document analysis instruction."""
    return (
        "You are the Historian Agent. Analyze this document deeply. Extract the core philosophy, "
        "key facts, date-based events, and structural arguments. Create a dense knowledge summary "
        "that a teacher can use to answer questions without the original document."
    )


def architect_prompt(topic: str, current_context: str) -> str:
    """Return the Mermaid flowchart request for the current explanation."""
    return (
        f'Create a Mermaid.js flowchart (graph TB) for: "{topic}".\n'
        f'Based on the current explanation: "{current_context[:ARCHITECT_CONTEXT_LIMIT]}".\n\n'
        "VISUAL RULES:\n"
        "1. Identify the current step or concept being discussed in the explanation.\n"
        "2. Highlight this node using a Mermaid style line, for example: "
        "style NodeName fill:#a78bfa,stroke:#4c1d95,stroke-width:4px,color:#fff\n"
        "3. Return only Mermaid code. No markdown code fences."
    )


def illustrator_prompt(topic: str, current_context: str) -> str:
    """Return the image prompt for a study illustration."""
    return (
        f"A clean, friendly educational illustration about {topic}. "
        f"Focus on this idea: {current_context[:ILLUSTRATOR_CONTEXT_LIMIT]}. "
        "No text labels, soft violet and blue palette."
    )
