"""Prompt template rendering for dictation modes."""

from typing import Optional

from ..models.mode import ModeConfig

INPUT_PLACEHOLDER = "{input}"
CONTEXT_PLACEHOLDER = "{context}"


def render_prompt(mode: ModeConfig, text: str, context: Optional[str] = None) -> str:
    """Expand the mode's ai_prompt template.

    ``{input}`` becomes the transcript; a template without it gets the
    transcript appended after a blank line. ``{context}`` becomes the
    recent-input history, or nothing. A mode without a template passes
    the text through unchanged.
    """
    if mode.ai_prompt is None:
        return text

    result = mode.ai_prompt
    if INPUT_PLACEHOLDER in result:
        result = result.replace(INPUT_PLACEHOLDER, text)
    else:
        result = f"{result}\n\n{text}"

    return result.replace(CONTEXT_PLACEHOLDER, context or "")
