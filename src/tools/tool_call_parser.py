"""
Defensive decoding of tool-call argument strings.

Models sometimes emit two JSON objects glued together, or JSON that does
not parse at all. Decoding runs through explicit stages and stops at the
first one that yields a mapping:

    STRICT     plain ``json.loads`` of the trimmed string
    TRUNCATED  ``}{`` detected; only the first object is parsed, the rest discarded
    RECOVERED  best-effort regex extraction of known fields
    EMPTY      nothing usable; the handler reports "no valid data"

``parse_tool_arguments`` never raises.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from src.conversation.slot_manager import SlotManager

logger = logging.getLogger(__name__)

LEGACY_FUNCTION = "recopilar_dato_cliente"
BATCH_FUNCTIONS = frozenset({"guardar_informacion", "guardar_info_cliente", "guardar_info_vehiculo"})

_CAMPO_RE = re.compile(r'"campo"\s*:\s*"([^"]+)"')
_VALOR_RE = re.compile(r'"valor"\s*:\s*"([^"]+)"')
_STRING_PAIR_RE = re.compile(r'"([^"]+)"\s*:\s*"([^"]+)"')
_ANY_PAIR_RE = re.compile(r'"([^"]+)"\s*:\s*(?:"([^"]*)"|(-?\d+(?:\.\d+)?))')


class ParseStage(str, Enum):
    STRICT = "strict"
    TRUNCATED = "truncated"
    RECOVERED = "recovered"
    EMPTY = "empty"


class MalformedToolCallError(ValueError):
    """Raised inside the parser when a stage cannot produce a mapping."""


@dataclass
class ParsedArguments:
    """Decoded arguments plus the stage that produced them."""

    arguments: dict[str, Any] = field(default_factory=dict)
    stage: ParseStage = ParseStage.STRICT
    raw: str = ""

    @property
    def used_fallback(self) -> bool:
        return self.stage != ParseStage.STRICT


def _loads_mapping(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedToolCallError(str(exc)) from None
    if not isinstance(value, dict):
        raise MalformedToolCallError(f"expected a JSON object, got {type(value).__name__}")
    return value


def _truncate_concatenated(text: str) -> str:
    return text[: text.index("}") + 1]


def recover_legacy_arguments(text: str) -> Optional[dict[str, str]]:
    """
    Pull a single (campo, valor) pair out of malformed JSON.

    Strategies, first match wins:
    1. the first "campo" and the first "valor" value
    2. the first "key": "value" pair whose key is a known field
    3. a direct probe for each known field name
    """
    campo = _CAMPO_RE.search(text)
    valor = _VALOR_RE.search(text)
    if campo and valor:
        return {"campo": campo.group(1), "valor": valor.group(1)}

    known = SlotManager.known_slot_names()
    for key, value in _STRING_PAIR_RE.findall(text):
        if key in known and value:
            return {"campo": key, "valor": value}

    for name in known:
        match = re.search(rf'"{re.escape(name)}"\s*:\s*"([^"]+)"', text, re.IGNORECASE)
        if match:
            return {"campo": name, "valor": match.group(1)}

    return None


def recover_batch_arguments(text: str) -> Optional[dict[str, Any]]:
    """Collect every known ``"field": value`` pair from malformed JSON."""
    known = set(SlotManager.known_slot_names())
    found: dict[str, Any] = {}
    for key, text_value, number in _ANY_PAIR_RE.findall(text):
        if key not in known or key in found:
            continue
        if number:
            found[key] = int(number) if "." not in number else float(number)
        elif text_value:
            found[key] = text_value
    return found or None


def parse_tool_arguments(raw: Optional[str], function_name: str = "") -> ParsedArguments:
    """Decode a tool-call arguments string, degrading to ``{}`` on failure."""
    raw = raw or ""
    text = raw.strip()
    if not text or text == "{}":
        return ParsedArguments({}, ParseStage.STRICT, raw)

    stage = ParseStage.STRICT
    if "}{" in text:
        text = _truncate_concatenated(text)
        stage = ParseStage.TRUNCATED
        logger.warning(
            "Concatenated JSON in %s arguments; keeping the first object only", function_name
        )

    try:
        return ParsedArguments(_loads_mapping(text), stage, raw)
    except MalformedToolCallError as exc:
        logger.warning("Malformed arguments for %s: %s (raw=%r)", function_name, exc, raw)

    recovered: Optional[dict[str, Any]] = None
    if function_name == LEGACY_FUNCTION:
        recovered = recover_legacy_arguments(text)
    elif function_name in BATCH_FUNCTIONS:
        recovered = recover_batch_arguments(text)

    if recovered:
        logger.info("Recovered arguments for %s from malformed JSON: %s", function_name, recovered)
        return ParsedArguments(recovered, ParseStage.RECOVERED, raw)

    logger.warning("No usable arguments recovered for %s", function_name)
    return ParsedArguments({}, ParseStage.EMPTY, raw)
