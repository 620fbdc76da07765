"""AI client, prompt templates and the suggestion analysis pipeline."""

from .client import AIClient, ClientSettings

__all__ = ["AIClient", "ClientSettings"]
