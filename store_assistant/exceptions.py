from typing import Any, Dict, Optional


class StoreAssistantError(Exception):
    """Base exception for anticipated, degradable failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(StoreAssistantError):
    """Store credentials are missing or incomplete."""


class UpstreamUnavailable(StoreAssistantError):
    """A catalog backend call failed (transport error or non-2xx status)."""


class GenerationUnavailable(StoreAssistantError):
    """The text-generation backend could not produce a reply."""
