"""
Decoding of Firestore document events delivered as JSON.

Event body::

    {
        "oldValue": {"name": "projects/p/databases/(default)/documents/...", "fields": {...}},
        "value": {"name": "...", "fields": {...}},
        "updateMask": {"fieldPaths": [...]}
    }

``fields`` use Firestore's typed value encoding, e.g. ``{"text": {"stringValue": "hi"}}``.
"""
import base64
from datetime import datetime
from typing import Any, Dict, Optional


class EventDecodeError(ValueError):
    pass


def _parse_timestamp(value: str) -> datetime:
    # Firestore emits RFC 3339 with a Z suffix and up to nanosecond precision
    text = value.replace("Z", "+00:00")
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        rest = ""
        for index, char in enumerate(tail):
            if not char.isdigit():
                rest = tail[index:]
                break
            digits += char
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    return datetime.fromisoformat(text)


def decode_value(value: Dict[str, Any]) -> Any:
    """Convert one Firestore typed value to a plain Python value."""
    if not isinstance(value, dict) or len(value) != 1:
        raise EventDecodeError(f"Unsupported Firestore value: {value!r}")

    kind, raw = next(iter(value.items()))

    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(raw)
    if kind == "integerValue":
        return int(raw)
    if kind == "doubleValue":
        return float(raw)
    if kind in ("stringValue", "referenceValue"):
        return raw
    if kind == "timestampValue":
        try:
            return _parse_timestamp(raw)
        except ValueError as exc:
            raise EventDecodeError(f"Invalid timestamp: {raw!r}") from exc
    if kind == "bytesValue":
        return base64.b64decode(raw)
    if kind == "geoPointValue":
        return {"latitude": raw.get("latitude", 0.0), "longitude": raw.get("longitude", 0.0)}
    if kind == "arrayValue":
        return [decode_value(item) for item in (raw or {}).get("values", [])]
    if kind == "mapValue":
        return decode_fields((raw or {}).get("fields", {}))

    raise EventDecodeError(f"Unsupported Firestore value type: {kind}")


def decode_fields(fields: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in (fields or {}).items()}


def decode_document(document: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Plain field mapping of an event snapshot; empty when the snapshot is absent."""
    if not document:
        return {}
    return decode_fields(document.get("fields"))


def document_path(name: Optional[str]) -> Optional[str]:
    """``projects/p/databases/d/documents/a/b`` -> ``a/b``"""
    if not name:
        return None
    marker = "/documents/"
    if marker in name:
        return name.split(marker, 1)[1]
    return name.strip("/")


def event_document_path(event: Dict[str, Any]) -> Optional[str]:
    for key in ("value", "oldValue"):
        snapshot = event.get(key)
        if isinstance(snapshot, dict) and snapshot.get("name"):
            return document_path(snapshot["name"])
    return None


def match_document_path(path: Optional[str], pattern: str) -> Optional[Dict[str, str]]:
    """
    Match a document path against a trigger pattern and return its parameters.

    ``match_document_path("notificationQueue/q1", "notificationQueue/{queueId}")``
    returns ``{"queueId": "q1"}``.
    """
    if not path:
        return None

    segments = path.strip("/").split("/")
    pattern_segments = pattern.split("/")
    if len(segments) != len(pattern_segments):
        return None

    params = {}
    for segment, expected in zip(segments, pattern_segments):
        if expected.startswith("{") and expected.endswith("}"):
            if not segment:
                return None
            params[expected[1:-1]] = segment
        elif segment != expected:
            return None
    return params
