from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional, Union, Literal


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------
# Inbound / outbound API
# ---------------------------------------------------------
class HistoryTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(CamelModel):
    message: str
    business_id: Optional[str] = None
    history: List[HistoryTurn] = []


class PriceLineItem(CamelModel):
    variation_id: int
    display_name: str
    old_price: int
    new_price: int


class SaleLineItem(CamelModel):
    variation_id: int
    display_name: str
    current_regular_price: int
    new_regular_price: int
    new_sale_price: int


class PriceUpdateDetails(CamelModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    product_name: str
    change_amount: str  # signed, e.g. "+100"
    price_type: Literal["regular", "sale"]
    variations: List[PriceLineItem]


class ConvertToSaleDetails(CamelModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    product_name: str
    regular_price_increase: int
    variations: List[SaleLineItem]


class DescriptionDetails(CamelModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    product_name: str
    current_description: str = ""
    current_short_description: str = ""
    new_description: str = ""
    new_short_description: str = ""
    meta_title: str = ""
    meta_description: str = ""


class PendingAction(CamelModel):
    type: str
    description: str
    details: Union[PriceUpdateDetails, ConvertToSaleDetails, DescriptionDetails]
    status: Optional[Literal["pending"]] = None


class ChatResponse(CamelModel):
    message: str
    action: Optional[PendingAction] = None


# ---------------------------------------------------------
# Catalog snapshot (read-only copies of WooCommerce data)
# ---------------------------------------------------------
class StoreCredentials(BaseModel):
    url: str
    consumer_key: str
    consumer_secret: str


class CatalogProduct(BaseModel):
    id: int
    name: str
    price: str = ""
    type: str = ""
    description: str = ""
    short_description: str = ""


class VariationAttribute(BaseModel):
    name: str
    option: str = ""


class Variation(BaseModel):
    id: int
    attributes: List[VariationAttribute] = []
    regular_price: str = ""
    sale_price: str = ""
    price: str = ""
    stock_status: str = ""


class CatalogSnapshot(BaseModel):
    query: str = ""
    hits: List[CatalogProduct] = []
    product: Optional[CatalogProduct] = None
    variations: List[Variation] = []
    variations_loaded: bool = False
    searched_queries: List[str] = []


# ---------------------------------------------------------
# Generator intent (advisory only, never final truth for numbers/ids)
# ---------------------------------------------------------
class ActionIntent(BaseModel):
    kind: Literal["price_update", "convert_to_sale", "update_description", "unsupported"]
    declared_type: str = ""
    product_name: str = ""
    change_amount: int = 0
    change_direction: Literal["increase", "decrease"] = "increase"
    price_type: Literal["regular", "sale"] = "regular"
    filter_width: str = "all"
    regular_price_increase: Optional[int] = None
    description: str = ""
    short_description: str = ""
    meta_title: str = ""
    meta_description: str = ""
    model_config = ConfigDict(frozen=True)
