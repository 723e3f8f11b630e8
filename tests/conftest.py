"""Shared fakes for the catalog backend, credential store and generation backend."""

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from store_assistant.config import Settings
from store_assistant.credentials import CredentialStore
from store_assistant.exceptions import ConfigurationError, GenerationUnavailable, UpstreamUnavailable
from store_assistant.llm_gateway import LLMGateway
from store_assistant.models import CatalogProduct, StoreCredentials, Variation, VariationAttribute
from store_assistant.pipeline import AssistantPipeline
from store_assistant.woocommerce_client import WooCommerceClient


def make_variation(vid, width, color="Oak", regular="1000", sale="", price=None, stock="instock"):
    return Variation(
        id=vid,
        attributes=[
            VariationAttribute(name="רוחב", option=width),
            VariationAttribute(name="צבע", option=color),
        ],
        regular_price=regular,
        sale_price=sale,
        price=regular if price is None else price,
        stock_status=stock,
    )


VENICE = CatalogProduct(
    id=101, name="מזנון Venice", price="1000", type="variable",
    description="<p>Solid oak sideboard</p>", short_description="<p>Oak sideboard</p>",
)
VENICE_SET = CatalogProduct(id=102, name="סט Venice", price="2500", type="variable")
DIANA = CatalogProduct(id=201, name="Diana Dresser", price="900", type="simple")

VENICE_VARIATIONS = [
    make_variation(1, "200 ס\"מ", "Oak", regular="1000"),
    make_variation(2, "200 ס\"מ", "White", regular="1100"),
    make_variation(3, "160 ס\"מ", "Oak", regular="800"),
    make_variation(4, "20 ס\"מ", "Black", regular="300"),
]


class FakeCatalog(WooCommerceClient):
    """In-memory WooCommerce; the real product_with_variations fan-out still runs."""

    def __init__(
        self,
        products: Optional[Dict[int, CatalogProduct]] = None,
        search_index: Optional[Dict[str, List[int]]] = None,
        variations_by_id: Optional[Dict[int, List[Variation]]] = None,
        fail_search: bool = False,
        fail_variations: bool = False,
    ):
        self.products = products or {}
        self.search_index = search_index or {}
        self.variations_by_id = variations_by_id or {}
        self.fail_search = fail_search
        self.fail_variations = fail_variations
        self.searches: List[str] = []

    def search(self, query, page_size=10):
        self.searches.append(query)
        if self.fail_search:
            raise UpstreamUnavailable("search down")
        return [self.products[i] for i in self.search_index.get(query.lower(), [])][:page_size]

    def detail(self, product_id):
        if product_id not in self.products:
            raise UpstreamUnavailable("no such product")
        return self.products[product_id]

    def variations(self, product_id, page_size=100):
        if self.fail_variations:
            raise UpstreamUnavailable("variations down")
        return list(self.variations_by_id.get(product_id, []))[:page_size]


class FakeGateway(LLMGateway):
    def __init__(self, output: Optional[str] = None, configured: bool = True, fail: bool = False):
        self.output = output
        self.configured = configured
        self.fail = fail
        self.calls: List[list] = []

    @property
    def is_configured(self):
        return self.configured

    def generate(self, messages, system_instruction=None):
        self.calls.append(messages)
        if self.fail:
            raise GenerationUnavailable("model down")
        return self.output


class FakeCredentials(CredentialStore):
    def __init__(self, connected: bool = True):
        self.connected = connected

    def resolve(self, business_id):
        if not self.connected:
            raise ConfigurationError("not connected")
        return StoreCredentials(url="https://shop.test", consumer_key="ck", consumer_secret="cs")


@pytest.fixture
def settings():
    return Settings(
        groq_api_key="test",
        groq_model="test-model",
        llm_max_tokens=1024,
        search_page_size=10,
        variations_page_size=100,
        history_window=4,
        short_message_threshold=30,
        default_sale_increase=500,
        catalog_timeout=5.0,
        business_settings_file=Path("missing.csv"),
        log_level="INFO",
    )


@pytest.fixture
def catalog():
    return FakeCatalog(
        products={p.id: p for p in (VENICE, VENICE_SET, DIANA)},
        search_index={"venice": [101, 102], "diana": [201], "מזנון": [101]},
        variations_by_id={101: VENICE_VARIATIONS, 201: []},
    )


@pytest.fixture
def make_pipeline(settings, catalog):
    def _make(gateway, catalog_client=None, connected=True):
        client = catalog_client or catalog
        return AssistantPipeline(
            settings,
            FakeCredentials(connected),
            gateway,
            client_factory=lambda credentials, timeout: client,
        )
    return _make
