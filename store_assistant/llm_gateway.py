import logging
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
from groq import Groq, GroqError

from .business_rules import BusinessRules
from .exceptions import GenerationUnavailable
from .models import CatalogSnapshot, HistoryTurn

logger = logging.getLogger("store_assistant.llm")

SYSTEM_PROMPT = """
You are an AI assistant that helps a WooCommerce store owner manage products.
Answer in the language the owner writes in.

YOUR CAPABILITIES:
1. Show product details, variations and the current description.
2. Propose a regular or sale price change (requires approval).
3. Turn the regular price into the sale price and raise the regular price.
4. Write or update a product description, optimized for SEO.

ALLOWED ACTION TYPES ONLY: price_update, convert_to_sale, update_description

To update prices, return:
{
  "message": "short explanation",
  "action": {
    "type": "price_update",
    "productName": "product name",
    "priceType": "regular",
    "changeAmount": 100,
    "changeDirection": "increase",
    "filterWidth": "200"
  }
}

To turn the regular price into a sale price and raise the regular price:
{
  "message": "short explanation",
  "action": {
    "type": "convert_to_sale",
    "productName": "product name",
    "regularPriceIncrease": 500,
    "filterWidth": "all"
  }
}

To write or update a product description:
{
  "message": "Here is the proposed description:",
  "action": {
    "type": "update_description",
    "productName": "product name",
    "description": "full description with HTML",
    "shortDescription": "short product description",
    "metaTitle": "SEO title (up to 60 characters)",
    "metaDescription": "SEO meta description (up to 160 characters)"
  }
}

DESCRIPTION WRITING RULES:
- Professional, correct language.
- Use HTML for structure (h2/h3 headings, ul/li lists, p paragraphs, bold).
- Include relevant keywords naturally; stress benefits; include technical specs.
- shortDescription: 1-2 concise sentences.

FOR INFORMATION ONLY (search, showing the existing description, questions):
return ONLY a message, with no action:
{
  "message": "your answer using the store data"
}

VERY IMPORTANT:
- Never invent new action types. Only price_update, convert_to_sale, update_description.
- Questions and information requests return a message without an action.
- Do not build variation lists; the system does that.
"""

JSON_DIRECTIVE = "Respond in JSON format only."


def clean_html(raw_html: str, max_len: int = 300) -> str:
    if not raw_html:
        return ""
    text = " ".join(BeautifulSoup(raw_html, "html.parser").get_text(separator=" ").split())
    return text[:max_len] + ("..." if len(text) > max_len else "")


def render_snapshot(snapshot: CatalogSnapshot) -> str:
    """Plain-text catalog view handed to the model; variations grouped by width."""
    if not snapshot.hits:
        if snapshot.searched_queries:
            return f"No products found for: {', '.join(snapshot.searched_queries[:3])}"
        return ""

    hits_text = "\n".join(f"- {p.name} (ID: {p.id}) - price: {p.price}" for p in snapshot.hits[:5])
    text = f"""
🔍 Search: "{snapshot.query}"

Products found:
{hits_text}
"""
    product = snapshot.product
    if product is None:
        return text

    variations_text = "(no variations)"
    if snapshot.variations:
        by_width: Dict[str, list] = {}
        for v in snapshot.variations:
            by_width.setdefault(BusinessRules.width_of(v) or "no width", []).append(v)
        blocks = []
        for width in sorted(by_width, key=BusinessRules.width_sort_key):
            lines = [
                f"  • ID: {v.id} | {BusinessRules.color_of(v)} | price: {v.price} | "
                f"{'✓' if v.stock_status == 'instock' else '✗'}"
                for v in by_width[width]
            ]
            blocks.append(f"\n📏 {width}:\n" + "\n".join(lines))
        variations_text = "\n".join(blocks)
    elif not snapshot.variations_loaded:
        variations_text = "(variations unavailable)"

    return text + f"""
📦 Selected product:
Name: {product.name}
Product ID: {product.id}
Type: {product.type}
Base price: {product.price}

📝 Current short description:
{clean_html(product.short_description, 200) or '(no short description)'}

📄 Current full description:
{clean_html(product.description, 400) or '(no description)'}

📋 Variations ({len(snapshot.variations)} total):
{variations_text}
"""


def build_messages(history: Sequence[HistoryTurn], instruction: str, snapshot_text: str) -> List[Dict]:
    messages = [{"role": turn.role, "content": turn.content} for turn in history]
    store_block = f"Store product data:\n{snapshot_text}\n\n" if snapshot_text else ""
    messages.append({
        "role": "user",
        "content": f"{instruction}\n\n{store_block}{JSON_DIRECTIVE}",
    })
    return messages


class LLMGateway:
    def __init__(self, api_key: Optional[str], model: str, max_tokens: int = 4096):
        self.model = model
        self.max_tokens = max_tokens
        self.client = Groq(api_key=api_key) if api_key else None
        if not api_key:
            logger.warning("⚠️ GROQ_API_KEY missing; assistant runs in search-only mode.")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def generate(self, messages: List[Dict], system_instruction: str = SYSTEM_PROMPT) -> str:
        """Single call, no retry: a failure surfaces as GenerationUnavailable."""
        if self.client is None:
            raise GenerationUnavailable("Generation backend is not configured")
        logger.info("🤖 Calling %s with %d messages", self.model, len(messages))
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": system_instruction}, *messages],
                temperature=0.0,
                max_tokens=self.max_tokens,
            )
        except GroqError as e:
            raise GenerationUnavailable(f"Generation failed: {e}") from e
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise GenerationUnavailable("Generation returned no text")
        logger.info("✅ Model response received (%d chars)", len(content))
        return content
