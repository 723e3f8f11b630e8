import math
import re
from typing import Any, Dict, NamedTuple, Optional, Sequence

from bs4 import BeautifulSoup

from .business_rules import BusinessRules
from .models import (
    ActionIntent,
    CatalogProduct,
    ConvertToSaleDetails,
    DescriptionDetails,
    PendingAction,
    PriceLineItem,
    PriceUpdateDetails,
    SaleLineItem,
    Variation,
)

PRICE_ACTION_TYPES = {'price_update', 'price_change_request', 'bulk_update_price'}
WIDTH_IN_TEXT = re.compile(r'(\d+)\s*(?:ס[״"]?מ|cm)', re.IGNORECASE)
PREVIEW_COUNT = 5


class Materialized(NamedTuple):
    action: PendingAction
    message: str


# ---------------------------------------------------------
# Intent normalization (the only place generator shapes are read)
# ---------------------------------------------------------
def _find_key(obj: Any, key: str, depth: int = 0) -> Any:
    """Depth-first lookup of `key` at any nesting level."""
    if depth > 8:
        return None
    if isinstance(obj, dict):
        if obj.get(key) not in (None, "", 0):
            return obj[key]
        for value in obj.values():
            found = _find_key(value, key, depth + 1)
            if found not in (None, "", 0):
                return found
    elif isinstance(obj, list):
        for value in obj:
            found = _find_key(value, key, depth + 1)
            if found not in (None, "", 0):
                return found
    return None


def coerce_amount(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    digits = re.sub(r'[^-\d]', '', str(value).split('.')[0])
    try:
        return int(digits)
    except ValueError:
        return 0


def _first(*values: Any) -> str:
    for value in values:
        if value not in (None, ""):
            return str(value).strip()
    return ""


def normalize_intent(raw: Optional[Dict[str, Any]]) -> Optional[ActionIntent]:
    """
    Maps whatever action shape the model produced onto ActionIntent.
    A changeAmount anywhere in the action marks a price update even without a
    recognised type; this leniency is intentional.
    """
    if not isinstance(raw, dict):
        return None
    declared = _first(raw.get('type'))
    details = raw.get('details') if isinstance(raw.get('details'), dict) else {}
    width_filter = details.get('filter') if isinstance(details.get('filter'), dict) else {}
    product_name = _first(raw.get('productName'), details.get('productName'))

    if declared == 'convert_to_sale':
        increase = coerce_amount(_first(raw.get('regularPriceIncrease'), details.get('regularPriceIncrease')))
        return ActionIntent(
            kind='convert_to_sale',
            declared_type=declared,
            product_name=product_name,
            regular_price_increase=increase if increase > 0 else None,
            filter_width=_first(raw.get('filterWidth'), details.get('filterWidth')) or 'all',
        )

    change_amount = _find_key(raw, 'changeAmount')
    if declared in PRICE_ACTION_TYPES or change_amount is not None:
        direction = _first(raw.get('changeDirection'), details.get('changeDirection')).lower()
        price_type = _first(raw.get('priceType'), details.get('priceType')).lower()
        return ActionIntent(
            kind='price_update',
            declared_type=declared,
            product_name=product_name,
            change_amount=coerce_amount(change_amount),
            change_direction='decrease' if direction == 'decrease' else 'increase',
            price_type='sale' if price_type == 'sale' else 'regular',
            filter_width=_first(
                raw.get('filterWidth'), width_filter.get('value'), details.get('filterWidth')
            ) or 'all',
        )

    if declared == 'update_description':
        return ActionIntent(
            kind='update_description',
            declared_type=declared,
            product_name=product_name,
            description=_first(raw.get('description')),
            short_description=_first(raw.get('shortDescription')),
            meta_title=_first(raw.get('metaTitle')),
            meta_description=_first(raw.get('metaDescription')),
        )

    return ActionIntent(kind='unsupported', declared_type=declared, product_name=product_name)


def width_from_instruction(instruction: str) -> Optional[str]:
    match = WIDTH_IN_TEXT.search(instruction)
    return match.group(1) if match else None


def _remainder(total: int) -> str:
    return f"\n... and {total - PREVIEW_COUNT} more variations" if total > PREVIEW_COUNT else ""


# ---------------------------------------------------------
# Materializers: every number and id comes from the catalog
# ---------------------------------------------------------
def materialize_price_update(
    intent: ActionIntent, product: CatalogProduct, variations: Sequence[Variation], instruction: str
) -> Optional[Materialized]:
    amount = intent.change_amount
    if amount <= 0:
        return None

    width = intent.filter_width
    if width == 'all':
        width = width_from_instruction(instruction) or 'all'

    targets = BusinessRules.filter_by_width(variations, width)
    if not targets:
        return None

    signed = -amount if intent.change_direction == 'decrease' else amount
    items = []
    for v in targets:
        raw = v.sale_price if intent.price_type == 'sale' else v.regular_price
        old_price = BusinessRules.base_or(v, raw)
        items.append(PriceLineItem(
            variation_id=v.id,
            display_name=BusinessRules.display_name(v),
            old_price=old_price,
            new_price=max(0, old_price + signed),
        ))

    verb = 'lower' if intent.change_direction == 'decrease' else 'raise'
    price_label = 'sale price' if intent.price_type == 'sale' else 'regular price'
    filter_desc = f" ({width} cm)" if width != 'all' else ""

    action = PendingAction(
        type='bulk_update_price',
        description=f"{verb.capitalize()} {price_label} by {amount}",
        details=PriceUpdateDetails(
            product_id=product.id,
            product_name=product.name,
            change_amount=f"{'-' if signed < 0 else '+'}{amount}",
            price_type=intent.price_type,
            variations=items,
        ),
    )
    message = (
        f"Proposing to {verb} the {price_label} by {amount} for {len(items)} variations of "
        f"{product.name}{filter_desc}:\n\n"
        + "\n".join(f"• {i.display_name}: {i.old_price} → {i.new_price}" for i in items[:PREVIEW_COUNT])
        + _remainder(len(items))
    )
    return Materialized(action, message)


def materialize_convert_to_sale(
    intent: ActionIntent,
    product: CatalogProduct,
    variations: Sequence[Variation],
    instruction: str,
    default_increase: int = 500,
) -> Optional[Materialized]:
    increase = intent.regular_price_increase
    if not increase or increase <= 0:
        increase = default_increase
    width = intent.filter_width or 'all'
    targets = BusinessRules.filter_by_width(variations, width)
    if not targets:
        return None

    items = []
    for v in targets:
        current = BusinessRules.base_or(v, v.regular_price)
        items.append(SaleLineItem(
            variation_id=v.id,
            display_name=BusinessRules.display_name(v),
            current_regular_price=current,
            new_regular_price=current + increase,
            new_sale_price=current,
        ))

    filter_desc = f" ({width} cm)" if width != 'all' else ""
    action = PendingAction(
        type='convert_to_sale',
        description=f"Turn regular price into sale price and raise regular by {increase}",
        details=ConvertToSaleDetails(
            product_id=product.id,
            product_name=product.name,
            regular_price_increase=increase,
            variations=items,
        ),
    )
    message = (
        f"Proposing to turn the regular price into the sale price and raise the regular price by "
        f"{increase} for {len(items)} variations of {product.name}{filter_desc}:\n\n"
        + "\n".join(
            f"• {i.display_name}:\n  Regular price: {i.current_regular_price} → {i.new_regular_price}\n"
            f"  Sale price: {i.new_sale_price}"
            for i in items[:PREVIEW_COUNT]
        )
        + _remainder(len(items))
    )
    return Materialized(action, message)


def materialize_description(
    intent: ActionIntent, product: CatalogProduct, variations: Sequence[Variation], instruction: str
) -> Optional[Materialized]:
    """Generated copy is passed through verbatim; only the product comes from the catalog."""
    action = PendingAction(
        type='update_description',
        description="Update product description",
        details=DescriptionDetails(
            product_id=product.id,
            product_name=product.name,
            current_description=product.description,
            current_short_description=product.short_description,
            new_description=intent.description,
            new_short_description=intent.short_description,
            meta_title=intent.meta_title,
            meta_description=intent.meta_description,
        ),
    )
    plain = " ".join(BeautifulSoup(intent.description, "html.parser").get_text(separator=" ").split())
    message = (
        f"📝 **Proposed new description for {product.name}:**\n\n"
        f"**Short description:**\n{intent.short_description or '(not set)'}\n\n"
        f"**Full description (preview):**\n{plain[:400]}{'...' if len(plain) > 400 else ''}\n\n"
        f"**SEO:**\n• Title: {intent.meta_title or '(not set)'}\n"
        f"• Meta description: {intent.meta_description or '(not set)'}"
    )
    return Materialized(action, message)


def materialize(
    intent: ActionIntent,
    product: CatalogProduct,
    variations: Sequence[Variation],
    instruction: str,
    default_increase: int = 500,
) -> Optional[Materialized]:
    if intent.kind == 'price_update':
        return materialize_price_update(intent, product, variations, instruction)
    if intent.kind == 'convert_to_sale':
        return materialize_convert_to_sale(intent, product, variations, instruction, default_increase)
    if intent.kind == 'update_description':
        return materialize_description(intent, product, variations, instruction)
    return None
