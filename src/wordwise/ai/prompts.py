"""Prompt templates for the streaming grammar check."""

from __future__ import annotations

from typing import Any

_TASKS = {
    "spelling": "Your ONLY task is to identify spelling errors in the text below.",
    "full": "Your ONLY task is to identify grammar and spelling errors in the text below.",
}


def build_grammar_prompt(text: str, level: str = "full") -> str:
    """Return the instruction asking the model for one JSON object per line."""

    task = _TASKS.get(level)
    if task is None:
        raise ValueError(f"Unsupported analysis level: {level!r}")
    return f"""
You are a fast and efficient writing assistant. {task}

For each error you find, stream a single, complete JSON object on a new line. Do not wrap them in an array or a parent JSON object. Each JSON object must have this exact structure:
{{
  "type": "spelling" | "grammar",
  "originalText": "the exact text with the error",
  "suggestedText": "the corrected version",
  "explanation": "a brief explanation of the error"
}}

Text to analyze:
"{text}"

IMPORTANT:
- Prioritize ACCURACY. Only identify definite errors.
- Be extremely confident before reporting an error. If a phrase could be interpreted as correct in any context, do not flag it.
- Do not suggest stylistic changes.
- Do not flag errors in what might be incomplete sentences. Wait for a natural pause.
- Each JSON object MUST be on its own line.
- Do NOT return a list or an array. Stream one object at a time.
- If no errors are found, return nothing.
"""


def grammar_messages(text: str, level: str = "full") -> list[dict[str, Any]]:
    return [{"role": "user", "content": build_grammar_prompt(text, level)}]


__all__ = ["build_grammar_prompt", "grammar_messages"]
