import re
from typing import List, Optional, Sequence
from .models import CatalogProduct, Variation

WIDTH_ATTRIBUTE_NAMES = ['רוחב', 'width']
COLOR_ATTRIBUTE_NAMES = ['צבע', 'color', 'colour']

# (trigger in instruction, marker in product name), evaluated in order
KEYWORD_OVERRIDES = [
    ('צף', 'צף'),
    ('floating', 'floating'),
    ('סט', 'סט'),
]

# Last-resort searches when neither the catalog nor the model named a product
FALLBACK_PRODUCT_KEYWORDS = ['diana', 'דיאנה', 'מזנון']


class BusinessRules:

    # ---------------------------------------------------------
    # 1. CANDIDATE DISAMBIGUATION
    # ---------------------------------------------------------
    @staticmethod
    def choose_product(
        hits: Sequence[CatalogProduct], instruction: str, model_tokens: Sequence[str]
    ) -> Optional[CatalogProduct]:
        """
        First hit by default; a hit containing the model name wins over it,
        and the first keyword override triggered by the instruction wins over both.
        """
        if not hits:
            return None
        selected = hits[0]

        if model_tokens:
            model = model_tokens[0].lower()
            exact = next((p for p in hits if model in p.name.lower()), None)
            if exact:
                selected = exact

        lowered = instruction.lower()
        for trigger, marker in KEYWORD_OVERRIDES:
            if trigger in lowered:
                match = next((p for p in hits if marker in p.name.lower()), None)
                if match:
                    selected = match
                break
        return selected

    # ---------------------------------------------------------
    # 2. VARIATION ATTRIBUTES
    # ---------------------------------------------------------
    @staticmethod
    def _attribute(variation: Variation, names: Sequence[str]) -> str:
        for attr in variation.attributes:
            if any(n in attr.name.lower() for n in names):
                return attr.option
        return ""

    @staticmethod
    def width_of(variation: Variation) -> str:
        return BusinessRules._attribute(variation, WIDTH_ATTRIBUTE_NAMES)

    @staticmethod
    def color_of(variation: Variation) -> str:
        return BusinessRules._attribute(variation, COLOR_ATTRIBUTE_NAMES)

    @staticmethod
    def display_name(variation: Variation) -> str:
        color = BusinessRules.color_of(variation)
        width = BusinessRules.width_of(variation)
        name = f"{color}{', ' + width if width else ''}".strip(", ").strip()
        return name or f"Variation {variation.id}"

    @staticmethod
    def filter_by_width(variations: Sequence[Variation], width_filter: str) -> List[Variation]:
        """
        Substring containment on the width option, so "20" also matches "200".
        Kept for compatibility with proposals operators have already approved.
        """
        if not width_filter or width_filter == 'all':
            return list(variations)
        return [v for v in variations if width_filter in BusinessRules.width_of(v)]

    @staticmethod
    def width_sort_key(width: str):
        digits = re.search(r'\d+', width)
        return (0, int(digits.group()), width) if digits else (1, 0, width)

    # ---------------------------------------------------------
    # 3. PRICES
    # ---------------------------------------------------------
    @staticmethod
    def to_price(raw: str) -> int:
        """Integer part of a catalog price string; blank or invalid is 0."""
        match = re.match(r'\s*(\d+)', str(raw or ""))
        return int(match.group(1)) if match else 0

    @staticmethod
    def base_or(variation: Variation, raw: str) -> int:
        return BusinessRules.to_price(raw) or BusinessRules.to_price(variation.price)
