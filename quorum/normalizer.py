"""
Response Normalizer

Converts whatever the Consensus Log Service returns into canonical values:
a log identifier string after a create call, and an ordered list of
message contents after a read call.

The service's output shape is not fixed across versions and transports.
A create response may arrive as a JSON string, a plain mapping, a mapping
holding an SDK identifier object, or any of those nested under "receipt".
Each recognised identifier shape is one IdShape variant, probed in a fixed
order; the first variant that matches wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Optional

from quorum.errors import MalformedResponse, MissingIdentifier, UnreadableLog

logger = logging.getLogger("approvr.normalizer")

ID_SEPARATOR = "."

# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

class IdShape(str, Enum):
    RECEIPT_STRING = "RECEIPT_STRING"        # {"receipt": {"topicId": "0.0.1"}}
    TOP_LEVEL_STRING = "TOP_LEVEL_STRING"    # {"topicId": "0.0.1"}
    TOP_LEVEL_OBJECT = "TOP_LEVEL_OBJECT"    # {"topicId": <TopicId 0.0.1>}
    RECEIPT_OBJECT = "RECEIPT_OBJECT"        # {"receipt": {"topicId": <TopicId 0.0.1>}}


# Key names the service has used for the identifier field.
ID_KEYS = ("topicId", "topic_id", "logId", "log_id")


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------

def _decode(response: Any) -> Any:
    """JSON-decode string responses; pass structured values through."""
    if isinstance(response, (bytes, bytearray)):
        try:
            response = response.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedResponse(
                f"Response bytes could not be decoded as UTF-8: {exc}"
            ) from exc
    if isinstance(response, str):
        try:
            return json.loads(response)
        except json.JSONDecodeError as exc:
            raise MalformedResponse(
                f"Response was a string but could not be parsed as JSON: {exc}"
            ) from exc
    return response


def _id_field(container: Any) -> Any:
    if not isinstance(container, Mapping):
        return None
    for key in ID_KEYS:
        if container.get(key) is not None:
            return container[key]
    return None


def _stringify_identifier(value: Any) -> Optional[str]:
    """Render an identifier object as text, or None if it has no text form.

    SDK identifier objects render through str(). A mapping is accepted only
    when it exposes shard/realm/num; any other container has no meaningful
    text form.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return None
    if isinstance(value, Mapping):
        if all(k in value for k in ("shard", "realm", "num")):
            return f"{value['shard']}.{value['realm']}.{value['num']}"
        return None
    if isinstance(value, (list, tuple, set)):
        return None
    try:
        text = str(value)
    except Exception as exc:
        logger.warning("Could not convert identifier object to string: %s", exc)
        return None
    if ID_SEPARATOR not in text:
        logger.warning("Converted identifier doesn't look like a log ID: %r", text)
        return None
    return text


def _receipt(body: Mapping) -> Any:
    receipt = body.get("receipt")
    return receipt if isinstance(receipt, Mapping) else None


def _probe_receipt_string(body: Mapping) -> Optional[str]:
    value = _id_field(_receipt(body))
    return value if isinstance(value, str) else None


def _probe_top_level_string(body: Mapping) -> Optional[str]:
    value = _id_field(body)
    return value if isinstance(value, str) else None


def _probe_top_level_object(body: Mapping) -> Optional[str]:
    return _stringify_identifier(_id_field(body))


def _probe_receipt_object(body: Mapping) -> Optional[str]:
    return _stringify_identifier(_id_field(_receipt(body)))


ID_PROBES: list[tuple[IdShape, Callable[[Mapping], Optional[str]]]] = [
    (IdShape.RECEIPT_STRING, _probe_receipt_string),
    (IdShape.TOP_LEVEL_STRING, _probe_top_level_string),
    (IdShape.TOP_LEVEL_OBJECT, _probe_top_level_object),
    (IdShape.RECEIPT_OBJECT, _probe_receipt_object),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify_id_response(response: Any) -> tuple[IdShape, str]:
    """Return the first matching (IdShape, log_id) for a create-log response.

    Raises MalformedResponse when the response is neither JSON text nor a
    mapping, and MissingIdentifier when no probe matches.
    """
    body = _decode(response)
    if not isinstance(body, Mapping):
        raise MalformedResponse(
            f"Create-log response was {type(body).__name__}, expected an object."
        )

    for shape, probe in ID_PROBES:
        log_id = probe(body)
        if log_id:
            return shape, log_id

    raise MissingIdentifier(
        "Failed to extract a log ID from the create-log response "
        f"(response type was {type(response).__name__})."
    )


def extract_log_id(response: Any) -> str:
    shape, log_id = classify_id_response(response)
    logger.debug("Found log ID %s via %s", log_id, shape.value)
    return log_id


def extract_messages(response: Any) -> list[str]:
    """Return the ordered message contents of a read-messages response.

    Accepts a bare array or an object wrapping an array under "messages".
    Entries without a string "message" or "content" field are skipped.
    """
    body = _decode(response)

    if isinstance(body, list):
        entries = body
    elif isinstance(body, Mapping) and isinstance(body.get("messages"), list):
        entries = body["messages"]
    else:
        raise UnreadableLog(
            "Fetched messages are not an array and could not be extracted as one."
        )

    contents: list[str] = []
    for entry in entries:
        text = _entry_text(entry)
        if text is None:
            logger.warning("Discarding message entry without text: %r", entry)
            continue
        contents.append(text)
    return contents


def _entry_text(entry: Any) -> Optional[str]:
    if not isinstance(entry, Mapping):
        return None
    for key in ("message", "content"):
        value = entry.get(key)
        if isinstance(value, str):
            return value
    return None
