import json
import logging
from typing import Optional

from .models import ChatResponse, PendingAction

logger = logging.getLogger("store_assistant.validator")

ALLOWED_ACTION_TYPES = {'price_update', 'bulk_update_price', 'convert_to_sale', 'update_description'}
DEFAULT_MESSAGE = "Got your request. How can I help?"


def unwrap_json_message(message: str) -> str:
    """A message that is itself a JSON object is replaced by its own `message` field."""
    stripped = message.strip()
    if not (stripped.startswith('{') and stripped.endswith('}')):
        return message
    try:
        inner = json.loads(stripped)
    except (ValueError, RecursionError):
        return message
    if not isinstance(inner, dict):
        return message
    nested = inner.get('message')
    return nested if isinstance(nested, str) and nested.strip() else DEFAULT_MESSAGE


def validate_reply(message: str, action: Optional[PendingAction]) -> ChatResponse:
    if action is not None and action.type not in ALLOWED_ACTION_TYPES:
        logger.info("⚠️ Ignoring unknown action type: %s", action.type)
        action = None

    final_message = unwrap_json_message(message or "")
    if not final_message.strip():
        final_message = DEFAULT_MESSAGE

    if action is not None:
        action = action.model_copy(update={"status": "pending"})
    return ChatResponse(message=final_message, action=action)
