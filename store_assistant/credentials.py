import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from .exceptions import ConfigurationError
from .models import StoreCredentials

logger = logging.getLogger("store_assistant.credentials")

REQUIRED_COLUMNS = ["business_id", "woo_url", "consumer_key", "consumer_secret"]


class CredentialStore:
    """
    Resolves a business id to WooCommerce REST credentials.
    Environment variables win; the business settings CSV is the fallback.
    """

    def __init__(self, settings_file: Optional[Path] = None):
        self.csv_credentials: Dict[str, StoreCredentials] = {}
        if settings_file is not None and Path(settings_file).exists():
            self._load_csv(Path(settings_file))

    def _load_csv(self, filepath: Path):
        try:
            df = pd.read_csv(filepath, encoding='utf-8-sig', dtype=str).fillna("")
        except (OSError, ValueError) as e:
            logger.error("❌ Error loading business settings %s: %s", filepath, e)
            return
        df.columns = df.columns.str.strip()
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            logger.error("❌ Business settings file is missing columns: %s", ", ".join(missing))
            return

        for _, row in df.iterrows():
            values = {c: str(row[c]).strip() for c in REQUIRED_COLUMNS}
            if not all(values.values()):
                continue
            self.csv_credentials[values['business_id']] = StoreCredentials(
                url=values['woo_url'].rstrip('/'),
                consumer_key=values['consumer_key'],
                consumer_secret=values['consumer_secret'],
            )
        logger.info("📂 Loaded credentials for %d businesses from %s", len(self.csv_credentials), filepath)

    @staticmethod
    def _env_suffix(business_id: str) -> str:
        return re.sub(r'[^A-Z0-9]', '_', business_id.upper())

    def _from_env(self, business_id: str) -> Optional[StoreCredentials]:
        suffix = self._env_suffix(business_id)
        url = os.getenv(f"WOO_URL__{suffix}", "").strip()
        key = os.getenv(f"WOO_KEY__{suffix}", "").strip()
        secret = os.getenv(f"WOO_SECRET__{suffix}", "").strip()
        if url and key and secret:
            return StoreCredentials(url=url.rstrip('/'), consumer_key=key, consumer_secret=secret)
        return None

    def resolve(self, business_id: str) -> StoreCredentials:
        logger.info("🔍 Looking for WooCommerce credentials for business: %s", business_id)
        credentials = self._from_env(business_id) or self.csv_credentials.get(business_id)
        if credentials is None:
            raise ConfigurationError(
                "WooCommerce is not connected", details={"business_id": business_id}
            )
        logger.info("✅ Found credentials, URL: %s", credentials.url)
        return credentials
