"""Parameter extraction for matched voice commands.

Every extractor is a pure function of the transcript and never raises: when
the expected pattern is missing the documented default is returned instead.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, Tuple

from voicepos.catalog import ActionKind, find_intent

DEFAULT_PRODUCT_NAME = "sản phẩm"
DEFAULT_SEARCH_TERM = ""
DEFAULT_DISCOUNT_PERCENT = 0
DEFAULT_PAYMENT_METHOD = "tiền mặt"

# Scanned in this order; the first keyword found anywhere wins.
PAYMENT_METHODS: Tuple[str, ...] = ("tiền mặt", "thẻ", "chuyển khoản")
PAYMENT_METHOD_CODES: Dict[str, str] = {
    "tiền mặt": "cash",
    "thẻ": "card",
    "chuyển khoản": "transfer",
}

_DISCOUNT_RE = re.compile(r"(\d+)\s*(?:phần trăm|%)", re.IGNORECASE)


def normalize(transcript: str) -> str:
    """NFC-normalize so composed and decomposed diacritics compare equal."""
    return unicodedata.normalize("NFC", transcript or "")


def _trailing_text(transcript: str, trigger: str) -> str:
    match = re.search(re.escape(trigger) + r"\s+(.+)", normalize(transcript), re.IGNORECASE)
    return match.group(1).strip() if match else ""


def extract_product_name(transcript: str) -> str:
    trigger = find_intent(ActionKind.ADD_PRODUCT).trigger_phrase
    return _trailing_text(transcript, trigger) or DEFAULT_PRODUCT_NAME


def extract_search_term(transcript: str) -> str:
    trigger = find_intent(ActionKind.SEARCH_PRODUCT).trigger_phrase
    return _trailing_text(transcript, trigger) or DEFAULT_SEARCH_TERM


def extract_discount(transcript: str) -> int:
    match = _DISCOUNT_RE.search(normalize(transcript))
    if not match:
        return DEFAULT_DISCOUNT_PERCENT
    return min(int(match.group(1)), 100)


def extract_payment_method(transcript: str) -> str:
    lowered = normalize(transcript).lower()
    for keyword in PAYMENT_METHODS:
        if keyword in lowered:
            return keyword
    return DEFAULT_PAYMENT_METHOD


def extract(action: ActionKind, transcript: str) -> Dict[str, Any]:
    """Return the structured parameters for ``action``.

    Actions without parameters give an empty dict.
    """
    if action is ActionKind.ADD_PRODUCT:
        return {"productName": extract_product_name(transcript)}
    if action is ActionKind.SEARCH_PRODUCT:
        return {"searchTerm": extract_search_term(transcript)}
    if action is ActionKind.APPLY_DISCOUNT:
        return {"discountPercent": extract_discount(transcript)}
    if action is ActionKind.PROCESS_PAYMENT:
        return {"paymentMethod": extract_payment_method(transcript)}
    return {}
