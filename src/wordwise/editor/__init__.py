"""Editor package: canonical buffer, suggestion index, history and apply engine."""

from .apply_engine import ApplyEngine, ApplyResult
from .document_model import DocumentBuffer, DocumentSnapshot
from .history import EditHistory, HistorySnapshot
from .overlay import HtmlOverlayRenderer, OverlayRenderer
from .session import AnalysisTicket, EditorSession
from .suggestion_index import Segment, SuggestionIndex

__all__ = [
    "AnalysisTicket",
    "ApplyEngine",
    "ApplyResult",
    "DocumentBuffer",
    "DocumentSnapshot",
    "EditHistory",
    "EditorSession",
    "HistorySnapshot",
    "HtmlOverlayRenderer",
    "OverlayRenderer",
    "Segment",
    "SuggestionIndex",
]
