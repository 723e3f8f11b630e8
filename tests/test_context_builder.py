"""Tests for candidate query generation."""

from store_assistant.context_builder import (
    build_search_context,
    extract_categories,
    extract_model_marker,
    extract_model_tokens,
    extract_quoted,
    filter_history,
    working_context,
)
from store_assistant.models import HistoryTurn


class TestStrategies:
    def test_model_tokens_skip_stop_words_and_keys(self):
        assert extract_model_tokens("raise the Venice price by 100") == ["Venice"]
        assert extract_model_tokens('"type": "message" null') == []

    def test_model_tokens_need_three_latin_letters(self):
        assert extract_model_tokens("AB 200 cm") == []

    def test_categories_hebrew_with_prefix(self):
        assert extract_categories("מה המחיר של המזנון") == ["מזנון"]

    def test_categories_english_whole_word(self):
        assert extract_categories("the sideboard is embedded") == ["sideboard"]

    def test_quoted(self):
        assert extract_quoted('show me "Napoli Oak" please') == ["Napoli Oak"]

    def test_quoted_ignores_apostrophes_inside_words(self):
        assert extract_quoted("what's the price, don't guess") == []

    def test_model_marker(self):
        assert extract_model_marker("update model: Adele now") == ["Adele"]
        assert extract_model_marker("שנה מחיר דגם ונציה") == ["ונציה"]


class TestHistory:
    def test_filters_structured_turns(self):
        history = [
            HistoryTurn(role="user", content="tell me about Diana"),
            HistoryTurn(role="assistant", content='{"type": "price_update"}'),
            HistoryTurn(role="assistant", content="<h2>Title</h2>"),
            HistoryTurn(role="assistant", content="```json\n{}\n```"),
        ]
        assert [t.content for t in filter_history(history)] == ["tell me about Diana"]

    def test_window_is_bounded(self):
        history = [HistoryTurn(role="user", content=f"turn {i}") for i in range(10)]
        assert [t.content for t in filter_history(history, window=4)] == [
            "turn 6", "turn 7", "turn 8", "turn 9",
        ]

    def test_short_instruction_folds_history(self):
        history = [HistoryTurn(role="user", content="price of Diana")]
        assert working_context("check again", history) == "check again price of Diana"

    def test_long_instruction_stands_alone(self):
        history = [HistoryTurn(role="user", content="price of Diana")]
        text = "please raise the regular price of Venice by 100"
        assert working_context(text, history) == text


class TestBuildSearchContext:
    def test_model_first_then_category_combination(self):
        ctx = build_search_context("העלה את המחיר של מזנון Venice ב-100")
        assert ctx.queries == ["Venice", "מזנון Venice"]

    def test_category_alone_only_without_model(self):
        ctx = build_search_context("כמה עולה הקומודה הלבנה")
        assert ctx.queries == ["קומודה"]

    def test_quoted_and_marker_keep_priority_order(self):
        ctx = build_search_context('change model: Venice to "Venice Oak" price')
        assert ctx.queries == ["Venice", "Venice Oak"]

    def test_deduplicates(self):
        ctx = build_search_context('show "Venice" now please, nothing else')
        assert ctx.queries == ["Venice"]

    def test_nothing_recognised_yields_empty_list(self):
        assert build_search_context("מה שלומך היום").queries == []
        assert build_search_context("12345 ??").queries == []

    def test_short_instruction_uses_history_model(self):
        history = [HistoryTurn(role="user", content="what is the price of Diana")]
        ctx = build_search_context("check again", history)
        assert ctx.queries[0] == "Diana"
