"""Tests for the tokenizer and lexical helpers."""

import pytest

from wikisage.text import (
    capitalize_proper_nouns,
    expand_query,
    extract_entities,
    extract_keywords,
    extract_topic,
    preprocess_query,
    proper_nouns,
    sanitize_input,
    tokenize,
)


class TestTokenize:
    """Test token extraction."""

    def test_lowercases_and_drops_short_words(self):
        """Punctuation goes, tokens under three characters go."""
        assert tokenize("What is Photosynthesis?") == ["what", "photosynthesis"]

    def test_empty_input(self):
        """None and empty strings produce no tokens."""
        assert tokenize(None) == []
        assert tokenize("") == []

    def test_duplicates_are_kept(self):
        """Tokenizing is not deduplication."""
        assert tokenize("water water everywhere") == ["water", "water", "everywhere"]


class TestCleaning:
    """Test input sanitizing and preprocessing."""

    def test_sanitize_strips_emoji(self):
        """Emoji and surrounding whitespace are removed."""
        assert sanitize_input("  hello \U0001F600 ") == "hello"

    def test_sanitize_only_emoji(self):
        """A message of only emoji sanitizes to nothing."""
        assert sanitize_input("\U0001F600\U0001F680") == ""

    def test_preprocess_fixes_typos_and_abbreviations(self):
        """Typos are corrected and abbreviations expanded."""
        assert preprocess_query("waht is ai") == "what is artificial intelligence"

    def test_keywords_skip_stop_words(self):
        """Stop words and short words are not keywords."""
        assert extract_keywords("what is the speed of light") == ["speed", "light"]


class TestTopicExtraction:
    """Test subject extraction from requests."""

    @pytest.mark.parametrize("query,topic", [
        ("write an essay on lady macbeth", "lady macbeth"),
        ("tell me about black holes", "black holes"),
        ("what is photosynthesis?", "photosynthesis"),
        ("please explain quantum entanglement", "quantum entanglement"),
    ])
    def test_extract_topic(self, query, topic):
        """Commands, politeness and punctuation are stripped."""
        assert extract_topic(query) == topic

    def test_empty_query(self):
        """No query, no topic."""
        assert extract_topic("") is None
        assert extract_topic(None) is None

    def test_capitalize_proper_nouns(self):
        """Known names are capitalised, short function words are not."""
        assert capitalize_proper_nouns("the history of france") == "The History of France"


class TestEntities:
    """Test entity and variant helpers."""

    def test_proper_nouns_in_order(self):
        """Capitalised runs are returned in order of appearance."""
        assert proper_nouns("Where is New York and Paris") == ["Where", "New York", "Paris"]

    def test_multi_word_names_first(self):
        """Multi-word names lead the keyword list and fill the concepts."""
        entities = extract_entities("Tell me about Albert Einstein")
        assert entities["keywords"][0] == "Albert Einstein"
        assert entities["concepts"] == ["Albert Einstein"]

    def test_concepts_fall_back_to_meaningful_words(self):
        """Without names or quotes, longer lowercase words become concepts."""
        entities = extract_entities("how does nuclear fusion work")
        assert entities["keywords"] == []
        assert entities["concepts"] == ["does", "nuclear", "fusion", "work"]

    def test_expand_query_variants(self):
        """Each long word gets a singular/plural variant."""
        assert expand_query("black holes") == ["black holes", "blacks holes", "black hole"]
