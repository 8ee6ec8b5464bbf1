"""Command matching and routing for the POS voice engine.

Transcripts are matched against the command catalog by keyword, turned into
an immutable :class:`CommandResult`, and confident matches are routed to the
handler the host registered for that action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from voicepos.catalog import CATALOG, ActionKind, Intent
from voicepos.extract import extract, normalize

log = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.70

LOW_CONFIDENCE_MESSAGE = "Độ tin cậy thấp, vui lòng nói rõ hơn"
NOT_UNDERSTOOD_MESSAGE = "Không hiểu lệnh này"


class MatchReason(str, Enum):
    MATCHED = "matched"
    LOW_CONFIDENCE = "low_confidence"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class Match:
    intent: Optional[Intent]
    reason: MatchReason

    @property
    def action(self) -> ActionKind:
        if self.reason is MatchReason.MATCHED and self.intent is not None:
            return self.intent.action
        return ActionKind.UNKNOWN


@dataclass(frozen=True)
class CommandResult:
    transcript: str
    confidence: float
    action: ActionKind
    success: bool
    message: str
    reason: MatchReason
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript": self.transcript,
            "confidence": self.confidence,
            "action": self.action.value,
            "parameters": dict(self.parameters),
            "success": self.success,
            "message": self.message,
            "reason": self.reason.value,
        }


def match(
    transcript: str,
    confidence: float,
    catalog: Tuple[Intent, ...] = CATALOG,
    threshold: float = CONFIDENCE_THRESHOLD,
) -> Match:
    """Find the first catalog intent whose trigger phrase occurs in ``transcript``.

    Catalog order decides ties. A match only counts when ``confidence`` is
    strictly above ``threshold``; otherwise the intent is reported with
    ``LOW_CONFIDENCE`` so the caller can tell it apart from ``NO_MATCH``.
    """
    lowered = normalize(transcript).lower()
    for intent in catalog:
        if intent.trigger_phrase in lowered:
            if confidence > threshold:
                return Match(intent, MatchReason.MATCHED)
            return Match(intent, MatchReason.LOW_CONFIDENCE)
    return Match(None, MatchReason.NO_MATCH)


def _success_message(intent: Intent, params: Mapping[str, Any]) -> str:
    action = intent.action
    if action is ActionKind.ADD_PRODUCT:
        return f"Đang thêm sản phẩm: {params['productName']}"
    if action is ActionKind.SEARCH_PRODUCT:
        return f"Đang tìm kiếm: {params['searchTerm']}"
    if action is ActionKind.APPLY_DISCOUNT:
        return f"Áp dụng giảm giá {params['discountPercent']}%"
    if action is ActionKind.PROCESS_PAYMENT:
        return f"Thanh toán bằng {params['paymentMethod']}"
    return intent.description


def build_result(
    transcript: str,
    confidence: float,
    catalog: Tuple[Intent, ...] = CATALOG,
    threshold: float = CONFIDENCE_THRESHOLD,
) -> CommandResult:
    """Match, extract parameters and phrase the feedback for one final utterance."""
    found = match(transcript, confidence, catalog, threshold)
    if found.reason is MatchReason.MATCHED:
        params = extract(found.intent.action, transcript)
        return CommandResult(
            transcript=transcript,
            confidence=confidence,
            action=found.intent.action,
            success=True,
            message=_success_message(found.intent, params),
            reason=found.reason,
            parameters=params,
        )
    if found.reason is MatchReason.LOW_CONFIDENCE:
        log.info("Heard %r for %s but confidence %.2f <= %.2f",
                 transcript, found.intent.action.value, confidence, threshold)
        message = LOW_CONFIDENCE_MESSAGE
    else:
        message = NOT_UNDERSTOOD_MESSAGE
    return CommandResult(
        transcript=transcript,
        confidence=confidence,
        action=ActionKind.UNKNOWN,
        success=False,
        message=message,
        reason=found.reason,
    )


Handler = Callable[[CommandResult], Any]


class CommandRouter:
    def __init__(self):
        self.handlers: Dict[ActionKind, Handler] = {}

    def register(self, action: ActionKind, handler: Handler) -> None:
        """Register the host handler for ``action``.

        The handler receives the whole :class:`CommandResult`. Registering the
        same action again replaces the previous handler.
        """
        if action is ActionKind.UNKNOWN:
            raise ValueError("cannot register a handler for UNKNOWN")
        self.handlers[action] = handler

    def unregister(self, action: ActionKind) -> None:
        self.handlers.pop(action, None)

    def dispatch(self, result: CommandResult) -> bool:
        """Run the handler for a confident match exactly once.

        Handler exceptions are not caught. Returns ``False`` when nothing ran.
        """
        if not result.success or result.action is ActionKind.UNKNOWN:
            return False
        fn = self.handlers.get(result.action)
        if fn is None:
            log.warning("No handler registered for %s", result.action.value)
            return False
        log.info("Dispatching %s %s", result.action.value, dict(result.parameters))
        fn(result)
        return True
