"""Decoding of structured template columns stored as encoded text.

Stored ``elements``/``layout``/``settings``/``branding`` values arrive in
several shapes: already-decoded objects, well-formed JSON text, JSON text
that was encoded a second time, null, or garbage such as the literal
``[object Object]``. Everything that touches those raw values goes
through this module.
"""

import json
from dataclasses import dataclass
from typing import Any

from quotedoc.core.errors import MalformedStoredDataError

# Values written by clients that stringified an object instead of encoding it.
CORRUPT_LITERALS = frozenset({"[object Object]", "undefined", "NaN"})

MAX_DECODE_DEPTH = 3


@dataclass
class DecodedField:
    """Result of decoding one stored column.

    ``problem`` is None when the raw value was null or a single well-formed
    encoding of the expected container type.
    """

    value: Any
    problem: str | None = None

    @property
    def ok(self) -> bool:
        return self.problem is None


def _decode(raw: Any, expected: type, column: str) -> tuple[Any, int]:
    """Decode ``raw`` into ``expected``; returns the value and encoding depth."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, expected):
        return raw, 0

    if not isinstance(raw, str):
        raise MalformedStoredDataError(column, f"unexpected {type(raw).__name__} value")

    text = raw.strip()
    if not text:
        raise MalformedStoredDataError(column, "empty string")
    if text in CORRUPT_LITERALS:
        raise MalformedStoredDataError(column, f"corrupted literal {text!r}")

    value: Any = text
    depth = 0
    while isinstance(value, str):
        if depth >= MAX_DECODE_DEPTH:
            raise MalformedStoredDataError(column, "too many encoding layers")
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise MalformedStoredDataError(column, f"invalid JSON ({exc.msg})") from exc
        depth += 1

    if value is None:
        return expected(), depth
    if not isinstance(value, expected):
        raise MalformedStoredDataError(
            column, f"expected {expected.__name__}, found {type(value).__name__}"
        )
    return value, depth


def decode_structured_field(raw: Any, expected: type, column: str = "value") -> DecodedField:
    """Decode a stored column, never raising.

    Unrecoverable values decode to an empty ``expected()`` container with
    the reason recorded in ``problem``.
    """
    if raw is None:
        return DecodedField(expected())
    try:
        value, depth = _decode(raw, expected, column)
    except MalformedStoredDataError as exc:
        return DecodedField(expected(), exc.reason)
    if depth > 1:
        return DecodedField(value, "double-encoded")
    return DecodedField(value)


def normalize_encoded_field(raw: Any, expected: type, column: str = "value") -> str:
    """Return the single canonical encoding for a stored column.

    A raw string that already is a single well-formed encoding comes back
    unchanged so that repeated normalization is a no-op.
    """
    decoded = decode_structured_field(raw, expected, column)
    if decoded.ok and isinstance(raw, str) and raw.strip():
        return raw
    return json.dumps(decoded.value, ensure_ascii=False)


def describe_raw_field(raw: Any, preview_length: int = 20) -> dict[str, Any]:
    """Structural diagnostic of a stored column without decoding it."""
    if raw is None:
        return {"type": "null"}
    if isinstance(raw, str):
        return {"type": "string", "length": len(raw), "startsWith": raw[:preview_length]}
    return {"type": type(raw).__name__}
