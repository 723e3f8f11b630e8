import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Tuple

import requests

from .exceptions import UpstreamUnavailable
from .models import CatalogProduct, StoreCredentials, Variation, VariationAttribute

logger = logging.getLogger("store_assistant.woocommerce")


class WooCommerceClient:
    def __init__(self, credentials: StoreCredentials, timeout: float = 20.0):
        self.base_url = f"{credentials.url.rstrip('/')}/wp-json/wc/v3"
        self.auth = (credentials.consumer_key, credentials.consumer_secret)
        self.timeout = timeout

    def _get(self, path: str, params: Dict[str, Any] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, auth=self.auth, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"WooCommerce request failed: {e}", details={"path": path}) from e
        if response.status_code != 200:
            logger.error("❌ WooCommerce API Error: %s - %s", response.status_code, response.text[:300])
            raise UpstreamUnavailable(
                f"WooCommerce returned {response.status_code}",
                details={"path": path, "status": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable("WooCommerce returned invalid JSON", details={"path": path}) from e

    def search(self, query: str, page_size: int = 10) -> List[CatalogProduct]:
        logger.info("🔎 Searching products for: %r", query)
        data = self._get("/products", params={"search": query, "per_page": page_size})
        if not isinstance(data, list):
            return []
        products = [self._map_product(item) for item in data if isinstance(item, dict) and 'id' in item]
        logger.info("✅ Found %d products for %r", len(products), query)
        return products

    def detail(self, product_id: int) -> CatalogProduct:
        data = self._get(f"/products/{product_id}")
        if not isinstance(data, dict) or 'id' not in data:
            raise UpstreamUnavailable("Unexpected product payload", details={"product_id": product_id})
        return self._map_product(data)

    def variations(self, product_id: int, page_size: int = 100) -> List[Variation]:
        data = self._get(f"/products/{product_id}/variations", params={"per_page": page_size})
        if not isinstance(data, list):
            return []
        return [self._map_variation(item) for item in data if isinstance(item, dict) and 'id' in item]

    def product_with_variations(
        self, product_id: int, page_size: int = 100
    ) -> Tuple[CatalogProduct, List[Variation], bool]:
        """
        Fetches detail and variations concurrently.
        Variations are always requested: WooCommerce sometimes reports the wrong `type`.
        A variations failure degrades to an empty list; a detail failure propagates.
        """
        logger.info("📥 Fetching product %s with variations...", product_id)
        with ThreadPoolExecutor(max_workers=2) as pool:
            future_detail = pool.submit(self.detail, product_id)
            future_variations = pool.submit(self.variations, product_id, page_size)
            product = future_detail.result()
            try:
                variations = future_variations.result()
                loaded = True
            except UpstreamUnavailable as e:
                logger.warning("⚠️ Variations unavailable for %s: %s", product_id, e)
                variations, loaded = [], False

        logger.info("📦 Product: %s, Type: %s, Variations found: %d", product.name, product.type, len(variations))
        return product, variations, loaded

    # ---------------------------------------------------------
    # Mapping
    # ---------------------------------------------------------
    @staticmethod
    def _text(value: Any) -> str:
        return "" if value is None else str(value)

    def _map_product(self, item: Dict) -> CatalogProduct:
        return CatalogProduct(
            id=int(item['id']),
            name=self._text(item.get('name')),
            price=self._text(item.get('price')),
            type=self._text(item.get('type')),
            description=self._text(item.get('description')),
            short_description=self._text(item.get('short_description')),
        )

    def _map_variation(self, item: Dict) -> Variation:
        attributes = [
            VariationAttribute(name=self._text(a.get('name')), option=self._text(a.get('option')))
            for a in item.get('attributes') or []
            if isinstance(a, dict)
        ]
        return Variation(
            id=int(item['id']),
            attributes=attributes,
            regular_price=self._text(item.get('regular_price')),
            sale_price=self._text(item.get('sale_price')),
            price=self._text(item.get('price')),
            stock_status=self._text(item.get('stock_status')),
        )


def search_first(
    client: WooCommerceClient, queries: List[str], page_size: int = 10
) -> Tuple[str, List[CatalogProduct]]:
    """Tries queries in priority order and stops at the first one with results."""
    for query in queries:
        try:
            products = client.search(query, page_size)
        except UpstreamUnavailable as e:
            logger.error("❌ Error searching for %r: %s", query, e)
            continue
        if products:
            return query, products
    return "", []
