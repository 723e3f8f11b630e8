from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for the model, catalog limits and heuristics."""
    groq_api_key: str
    groq_model: str
    llm_max_tokens: int
    search_page_size: int
    variations_page_size: int
    history_window: int
    short_message_threshold: int
    default_sale_increase: int
    catalog_timeout: float
    business_settings_file: Path
    log_level: str


def load_settings() -> Settings:
    """Load configuration from environment variables and defaults.

    Invalid integer values raise ValueError at startup.
    """
    settings_file = os.getenv("BUSINESS_SETTINGS_FILE")
    if settings_file:
        business_settings_file = Path(settings_file)
    else:
        business_settings_file = (BASE_DIR / ".." / "data" / "business_settings.csv").resolve()

    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4096")),
        search_page_size=int(os.getenv("SEARCH_PAGE_SIZE", "10")),
        variations_page_size=int(os.getenv("VARIATIONS_PAGE_SIZE", "100")),
        history_window=int(os.getenv("HISTORY_WINDOW", "4")),
        short_message_threshold=int(os.getenv("SHORT_MESSAGE_THRESHOLD", "30")),
        default_sale_increase=int(os.getenv("DEFAULT_SALE_INCREASE", "500")),
        catalog_timeout=float(os.getenv("CATALOG_TIMEOUT", "20")),
        business_settings_file=business_settings_file,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
