"""HTTP surface and client for the grammar check service."""

from .client import GrammarCheckClient, GrammarCheckResult
from .http import create_app

__all__ = ["GrammarCheckClient", "GrammarCheckResult", "create_app"]
