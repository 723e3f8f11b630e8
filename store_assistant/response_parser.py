"""
Recovers a {message, action} pair from free model text.

Strategies run in order and each one swallows its own parse errors:
strict slice -> truncated-tail repair -> field regexes -> raw text.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger("store_assistant.parser")

MESSAGE_FIELD = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\.)*)"')
DESCRIPTION_TYPE = re.compile(r'"type"\s*:\s*"update_description"')
DESCRIPTION_FIELD = re.compile(r'"description"\s*:\s*"([\s\S]*?)(?:",|"\s*\}|"\s*$|\Z)')
SHORT_DESCRIPTION_FIELD = re.compile(r'"shortDescription"\s*:\s*"((?:[^"\\]|\\.)*)')
PRODUCT_NAME_FIELD = re.compile(r'"productName"\s*:\s*"((?:[^"\\]|\\.)*)"')


def _loads(text: str) -> Any:
    # NaN and Infinity are not JSON; read them as null
    return json.loads(text, parse_constant=lambda _: None)


@dataclass
class ParsedReply:
    message: str
    action: Optional[Dict[str, Any]] = None
    strategy: str = "raw"


def _as_reply(obj: Any, strategy: str) -> Optional[ParsedReply]:
    if not isinstance(obj, dict):
        return None
    message = obj.get("message")
    action = obj.get("action")
    return ParsedReply(
        message=message if isinstance(message, str) else ("" if message is None else str(message)),
        action=action if isinstance(action, dict) else None,
        strategy=strategy,
    )


def _unescape(fragment: str) -> str:
    try:
        return json.loads(f'"{fragment}"')
    except ValueError:
        return fragment.replace('\\n', '\n').replace('\\"', '"')


# ---------------------------------------------------------
# 1. Strict slice
# ---------------------------------------------------------
def parse_strict_slice(text: str) -> Optional[ParsedReply]:
    first, last = text.find('{'), text.rfind('}')
    if first == -1 or last <= first:
        return None
    try:
        return _as_reply(_loads(text[first:last + 1]), "strict")
    except (ValueError, RecursionError):
        return None


# ---------------------------------------------------------
# 2. Truncated tail repair
# ---------------------------------------------------------
def repair_truncated_json(tail: str) -> str:
    """Closes an open string, then every open object/array, innermost first."""
    stack = []
    in_string = escaped = False
    for ch in tail:
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in '{[':
            stack.append('}' if ch == '{' else ']')
        elif ch in '}]' and stack:
            stack.pop()

    repaired = tail
    if in_string:
        if escaped:
            repaired = repaired[:-1]
        repaired += '"'
    return repaired + "".join(reversed(stack))


def parse_repaired_tail(text: str) -> Optional[ParsedReply]:
    first = text.find('{')
    if first == -1 or text.rfind('}') > first:
        return None
    logger.info("⚠️ JSON appears truncated, attempting to repair...")
    try:
        return _as_reply(_loads(repair_truncated_json(text[first:])), "repaired")
    except (ValueError, RecursionError):
        return None


# ---------------------------------------------------------
# 3. Field-level regex extraction
# ---------------------------------------------------------
def extract_fields(text: str) -> Optional[ParsedReply]:
    """
    Pulls fields one by one. Generated HTML often carries unescaped quotes or
    braces, which defeats any single bracket-matching pass.
    """
    message_match = MESSAGE_FIELD.search(text)
    is_description = bool(DESCRIPTION_TYPE.search(text))
    if not message_match and not is_description:
        return None

    reply = ParsedReply(
        message=_unescape(message_match.group(1)) if message_match else "",
        strategy="regex",
    )
    if is_description:
        fields = {
            "description": DESCRIPTION_FIELD.search(text),
            "shortDescription": SHORT_DESCRIPTION_FIELD.search(text),
            "productName": PRODUCT_NAME_FIELD.search(text),
        }
        reply.action = {"type": "update_description"}
        for key, match in fields.items():
            reply.action[key] = _unescape(match.group(1)) if match else ""
        logger.info("🔧 Reconstructed update_description action from partial output")
    return reply


# ---------------------------------------------------------
# Public entry point
# ---------------------------------------------------------
def parse_model_output(text: str) -> ParsedReply:
    text = text or ""
    for strategy in (parse_strict_slice, parse_repaired_tail, extract_fields):
        reply = strategy(text)
        if reply is not None:
            return reply
    logger.warning("⚠️ No JSON recovered from model output; using raw text")
    return ParsedReply(message=text.strip(), strategy="raw")
