import re
from dataclasses import dataclass, field
from typing import List, Sequence

from .models import HistoryTurn

# Furniture categories the store sells (Hebrew first, the store's working language)
CATEGORY_NOUNS = [
    'מזנון', 'קומודה', 'שידה', 'שולחן', 'מיטה', 'ארון', 'כורסא', 'ספה', 'כיסא',
    'מדף', 'ויטרינה', 'צף', 'קונסולה',
    'sideboard', 'dresser', 'commode', 'table', 'bed', 'wardrobe', 'armchair',
    'sofa', 'chair', 'shelf', 'vitrine', 'console',
]
# Hebrew nouns take attached prefixes (המזנון), so only Latin ones need word boundaries
CATEGORY_PATTERN = re.compile(
    "|".join(rf'\b{c}\b' if c.isascii() else re.escape(c) for c in CATEGORY_NOUNS),
    re.IGNORECASE,
)

STOP_WORDS = {
    'the', 'and', 'for', 'with', 'from', 'that', 'this', 'have', 'are', 'was', 'were', 'been',
    'being', 'has', 'had', 'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might',
    'must', 'shall', 'can', 'need', 'dare', 'ought', 'used', 'better', 'message', 'action',
    'type', 'description', 'productname', 'strong', 'null', 'undefined', 'true', 'false',
    # instruction vocabulary, never a model name
    'what', 'show', 'check', 'again', 'please', 'raise', 'lower', 'increase', 'decrease',
    'price', 'prices', 'regular', 'sale', 'update', 'change', 'set', 'write', 'rewrite',
    'new', 'all', 'product', 'products', 'variation', 'variations', 'width', 'color',
    'model', 'its', 'make', 'convert', 'short', 'seo', 'meta', 'tell', 'about', 'give',
    'find', 'list', 'turn', 'into',
}

LATIN_TOKEN = re.compile(r'\b[A-Za-z]{3,}\b')
QUOTED_TEXT = re.compile(r'(?<!\w)["\'“]([^"\'“”]+)["\'”](?!\w)')
MODEL_MARKER = re.compile(r'(?:\bmodel\b\s*:?|דגם)\s*([^\s,״"\']+)', re.IGNORECASE)
STRUCTURED_OUTPUT = re.compile(r'"type"\s*:|<[a-zA-Z][^>]*>|```')


@dataclass
class SearchContext:
    text: str
    model_tokens: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)


# ---------------------------------------------------------
# Working context
# ---------------------------------------------------------
def filter_history(history: Sequence[HistoryTurn], window: int = 4) -> List[HistoryTurn]:
    """Keeps the last `window` turns that are not prior JSON/HTML/code output."""
    recent = list(history)[-window:] if window > 0 else []
    return [turn for turn in recent if not STRUCTURED_OUTPUT.search(turn.content)]


def working_context(
    instruction: str, history: Sequence[HistoryTurn], window: int = 4, short_threshold: int = 30
) -> str:
    """Short instructions ("check again") borrow the recent turns; long ones stand alone."""
    if len(instruction) >= short_threshold:
        return instruction
    recent = " ".join(turn.content for turn in filter_history(history, window))
    return f"{instruction} {recent}".strip()


# ---------------------------------------------------------
# Extraction strategies
# ---------------------------------------------------------
def extract_model_tokens(text: str) -> List[str]:
    categories = {c.lower() for c in CATEGORY_NOUNS}
    return [
        token for token in LATIN_TOKEN.findall(text)
        if token.lower() not in STOP_WORDS and token.lower() not in categories
    ]


def extract_categories(text: str) -> List[str]:
    return CATEGORY_PATTERN.findall(text)


def extract_quoted(text: str) -> List[str]:
    return [q.strip() for q in QUOTED_TEXT.findall(text) if q.strip()]


def extract_model_marker(text: str) -> List[str]:
    match = MODEL_MARKER.search(text)
    return [match.group(1)] if match else []


def build_search_context(
    instruction: str, history: Sequence[HistoryTurn] = (), window: int = 4, short_threshold: int = 30
) -> SearchContext:
    """Builds ranked, de-duplicated candidate queries, most specific first."""
    text = working_context(instruction, history, window, short_threshold)
    models = extract_model_tokens(text)
    categories = extract_categories(text)

    candidates: List[str] = []
    if models:
        candidates.append(models[0])
    candidates.extend(extract_model_marker(text))
    candidates.extend(extract_quoted(text))
    if categories and models:
        candidates.append(f"{categories[0]} {models[0]}")
    if categories and not models:
        candidates.append(categories[0])

    queries: List[str] = []
    for candidate in candidates:
        if candidate not in queries:
            queries.append(candidate)

    return SearchContext(text=text, model_tokens=models, categories=categories, queries=queries)
