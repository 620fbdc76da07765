"""Schema validation that turns decoded payloads into correction candidates."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import jsonschema

from .models import STREAMED_KINDS, CorrectionCandidate, SuggestionKind

__all__ = ["CANDIDATE_SCHEMA", "CandidateValidator"]

LOGGER = logging.getLogger(__name__)

_NON_EMPTY_STRING: dict[str, Any] = {"type": "string", "minLength": 1}

CANDIDATE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "type": _NON_EMPTY_STRING,
        "kind": _NON_EMPTY_STRING,
        "originalText": _NON_EMPTY_STRING,
        "suggestedText": _NON_EMPTY_STRING,
    },
    "required": ["originalText", "suggestedText"],
    "anyOf": [{"required": ["type"]}, {"required": ["kind"]}],
}


class CandidateValidator:
    """Best-effort gate between the decoder and the span resolver.

    Payloads failing the schema, or naming a kind outside ``allowed_kinds``,
    are dropped and counted in :attr:`rejected`.
    """

    def __init__(
        self,
        *,
        schema: Mapping[str, Any] | None = None,
        allowed_kinds: Iterable[SuggestionKind] | None = None,
    ) -> None:
        resolved_schema = dict(schema or CANDIDATE_SCHEMA)
        jsonschema.Draft202012Validator.check_schema(resolved_schema)
        self._validator = jsonschema.Draft202012Validator(resolved_schema)
        self._allowed = frozenset(allowed_kinds) if allowed_kinds is not None else STREAMED_KINDS
        self.accepted = 0
        self.rejected = 0

    @property
    def allowed_kinds(self) -> frozenset[SuggestionKind]:
        return self._allowed

    def validate(self, payload: Mapping[str, Any]) -> CorrectionCandidate | None:
        errors = [issue.message for issue in self._validator.iter_errors(payload)]
        if errors:
            self.rejected += 1
            LOGGER.debug("Dropping candidate failing schema: %s", "; ".join(errors[:3]))
            return None

        raw_kind = payload.get("type") or payload.get("kind")
        kind = SuggestionKind.parse(raw_kind)
        if kind is None or kind not in self._allowed:
            self.rejected += 1
            LOGGER.debug("Dropping candidate with unsupported kind %r", raw_kind)
            return None

        explanation = payload.get("explanation")
        self.accepted += 1
        return CorrectionCandidate(
            kind=kind,
            original_literal=payload["originalText"],
            suggested_literal=payload["suggestedText"],
            explanation="" if explanation is None else str(explanation),
            context=str(payload.get("context") or ""),
        )

    __call__ = validate
