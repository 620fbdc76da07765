"""Core domain types shared by the editor and analysis packages."""

from .ranges import TextRange

__all__ = ["TextRange"]
