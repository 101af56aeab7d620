from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import orjson

from ..domain import Command, ErrorStage, OperationKind, ParseFailure
from .extractor import extract_json_object
from .repair import repair_json

logger = logging.getLogger(__name__)

MESSAGE_KEYS = ("message", "humanMessage", "human_message", "response")
_RESERVED_KEYS = {"kind", "params", *MESSAGE_KEYS}


def _loads(candidate: str) -> Optional[Any]:
    try:
        return orjson.loads(candidate)
    except orjson.JSONDecodeError:
        return None


def _human_message(payload: Dict[str, Any]) -> str:
    for key in MESSAGE_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _params(payload: Dict[str, Any]) -> Dict[str, Any]:
    nested = payload.get("params")
    if isinstance(nested, dict):
        return dict(nested)
    return {key: value for key, value in payload.items() if key not in _RESERVED_KEYS}


def build_command(payload: Any, *, source: str = "") -> Union[Command, ParseFailure]:
    """Validate a decoded payload's shape and turn it into a :class:`Command`."""

    if not isinstance(payload, dict):
        return ParseFailure(ErrorStage.VALIDATE, "Calendar command must be a JSON object.", source)
    raw_kind = payload.get("kind")
    if raw_kind is None:
        return ParseFailure(ErrorStage.VALIDATE, "Calendar command is missing 'kind'.", source)
    kind = OperationKind.lookup(raw_kind)
    if kind is None:
        return ParseFailure(ErrorStage.VALIDATE, f"Unknown calendar operation: {raw_kind!r}.", source)
    return Command(kind=kind, params=_params(payload), human_message=_human_message(payload))


def parse_command(text: Optional[str]) -> Union[Command, ParseFailure]:
    """Find, decode and validate the calendar command embedded in ``text``.

    The strict decode is followed by at most one repair pass; a payload that
    is still malformed afterwards is reported as a ``parse`` failure.
    """

    source = text or ""
    candidate = extract_json_object(source)
    if candidate is None:
        return ParseFailure(ErrorStage.EXTRACT, "No calendar command found in text.", source)

    payload = _loads(candidate)
    if payload is None:
        repaired = repair_json(candidate)
        logger.debug("Strict JSON parse failed, retrying once after repair")
        payload = _loads(repaired)
        if payload is None:
            logger.info("Discarding malformed calendar command after repair attempt")
            return ParseFailure(ErrorStage.PARSE, "Calendar command is not valid JSON.", source)

    return build_command(payload, source=source)
