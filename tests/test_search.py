"""Tests for search query generation, strategy ranking and the orchestrator."""

import pytest

from conftest import RecordingFetch
from wikisage.search import (
    SearchOrchestrator,
    SearchStrategy,
    analyze_query_for_search,
    clean_search_query,
    first_success,
    generate_search_query,
    is_search_query,
    prioritized_strategies,
)


class TestQueryGeneration:
    """Test the extractor chain."""

    @pytest.mark.parametrize("query,expected", [
        ("difference between Mercury and Venus", ["Mercury", "Venus"]),
        ("Python vs Java", ["Python", "Java"]),
        ("who is the president of France", "France"),
        ("what is photosynthesis?", "photosynthesis"),
        ("search for quantum computing", "quantum computing"),
        ("how does a rainbow work", "rainbow"),
        ("history of the Roman Empire", "Roman Empire"),
        ("the Eiffel Tower in Paris", "Eiffel Tower"),
    ])
    def test_generate(self, query, expected):
        """The first extractor that fires decides the term."""
        assert generate_search_query(query) == expected

    def test_clean_search_query(self):
        """Command prefixes and trailing question marks go."""
        assert clean_search_query("tell me about black holes?") == "black holes"
        assert clean_search_query("write an essay about the moon") == "the moon"


class TestSearchWorthiness:
    """Test which queries go to the encyclopedia."""

    @pytest.mark.parametrize("query", [
        "What is photosynthesis?",
        "who was Napoleon",
        "Tell me about Albert Einstein",
        "I visited New York",
    ])
    def test_factual(self, query):
        """Factual questions and multi-word names are searchable."""
        assert is_search_query(query)

    @pytest.mark.parametrize("query", [
        "i love pizza",
        "hello there",
        "what can you do",
    ])
    def test_not_factual(self, query):
        """Personal statements, chit-chat and meta questions are not."""
        assert not is_search_query(query)


class TestStrategies:
    """Test the prioritised strategy list."""

    def test_proper_noun_first(self):
        """A multi-word name leads with the top priority."""
        strategies = prioritized_strategies("Tell me about Albert Einstein")
        assert strategies[0] == SearchStrategy("Proper Noun Exact", "Albert Einstein", 10)

    def test_unique_sorted_and_capped(self):
        """Terms are unique case-insensitively, priorities never rise, eight at most."""
        strategies = prioritized_strategies("Tell me about Albert Einstein")
        terms = [s.term.lower().strip() for s in strategies]
        priorities = [s.priority for s in strategies]
        assert len(terms) == len(set(terms))
        assert priorities == sorted(priorities, reverse=True)
        assert len(strategies) <= 8

    def test_question_starters_are_not_terms(self):
        """Capitalised question words are never searched on their own."""
        strategies = prioritized_strategies("What is Photosynthesis")
        assert strategies[0].term == "Photosynthesis"
        assert all(s.term.lower() != "what" for s in strategies)

    def test_first_success_stops_early(self):
        """Strategies after the first hit are never attempted."""
        strategies = [SearchStrategy("a", "one", 3), SearchStrategy("b", "two", 2), SearchStrategy("c", "three", 1)]
        attempted = []

        def attempt(term):
            attempted.append(term)
            return "found" if term == "two" else None

        assert first_success(strategies, attempt) == (strategies[1], "found")
        assert attempted == ["one", "two"]

    def test_first_success_nothing(self):
        """No hit at all gives None."""
        assert first_success([SearchStrategy("a", "one", 1)], lambda term: None) is None


class TestQueryAnalysis:
    """Test coarse query typing."""

    @pytest.mark.parametrize("query,kind,confidence", [
        ("What is DNA", "acronym", 0.95),
        ("difference between Mercury and Venus", "comparison", 0.9),
        ("quantum theory", "scientific", 0.85),
        ("hello there", "general", 0.5),
    ])
    def test_types(self, query, kind, confidence):
        """Later checks override earlier ones."""
        analysis = analyze_query_for_search(query)
        assert analysis.type == kind
        assert analysis.confidence == confidence


class TestOrchestrator:
    """Test searching through a fetcher."""

    def test_comparison_sections(self):
        """Both sides found gives labeled sections."""
        fetch = RecordingFetch({"Mercury": "M", "Venus": "V"})
        result = SearchOrchestrator(fetch).search("difference between Mercury and Venus")
        assert result == "**Mercury:**\nM\n\n**Venus:**\nV\n"
        assert sorted(fetch.calls) == ["Mercury", "Venus"]

    def test_comparison_one_side(self):
        """Only one side found gives its bare text."""
        fetch = RecordingFetch({"Mercury": "M"})
        assert SearchOrchestrator(fetch).search("difference between Mercury and Venus") == "M"

    def test_generated_term_first(self):
        """The generated term is tried before any strategy."""
        fetch = RecordingFetch({"photosynthesis": "Photosynthesis converts light."})
        result = SearchOrchestrator(fetch).search("what is photosynthesis?")
        assert result == "Photosynthesis converts light."
        assert fetch.calls == ["photosynthesis"]

    def test_cache_hit(self):
        """A repeated query is served from the cache."""
        fetch = RecordingFetch({"photosynthesis": "P"})
        orchestrator = SearchOrchestrator(fetch)
        orchestrator.search("what is photosynthesis?")
        orchestrator.search("what is photosynthesis?")
        assert len(fetch.calls) == 1
        assert orchestrator.cache_size_used() == 1

    @pytest.mark.parametrize("first,second", [(False, True), (True, False)])
    def test_cache_ignores_form(self, first, second):
        """A cached query is not fetched again in either form."""
        fetch = RecordingFetch({"photosynthesis": "P"})
        orchestrator = SearchOrchestrator(fetch)
        assert orchestrator.search("what is photosynthesis?", long_form=first) == "P"
        assert orchestrator.search("what is photosynthesis?", long_form=second) == "P"
        assert fetch.long_forms == [first]
        assert orchestrator.cache_size_used() == 1

    def test_oldest_entry_evicted(self):
        """A full cache drops its oldest entry."""
        fetch = RecordingFetch({"alpha": "A", "beta": "B", "gamma": "G"})
        orchestrator = SearchOrchestrator(fetch, cache_size=2)
        for term in ("alpha", "beta", "gamma"):
            orchestrator.search(f"what is {term}?")
        assert orchestrator.cache_size_used() == 2
        orchestrator.search("what is gamma?")
        assert fetch.calls.count("gamma") == 1
        orchestrator.search("what is alpha?")
        assert fetch.calls.count("alpha") == 2

    def test_failure_falls_through_to_next_strategy(self):
        """A failing fetch only loses that term; the generated term is not retried."""
        fetch = RecordingFetch({"Paris": "Paris is the capital of France."}, fail=["Eiffel Tower"])
        result = SearchOrchestrator(fetch).search("the Eiffel Tower in Paris")
        assert result == "Paris is the capital of France."
        assert fetch.calls == ["Eiffel Tower", "Paris"]

    def test_everything_fails(self):
        """No strategy succeeding gives None and nothing is cached."""
        fetch = RecordingFetch()
        orchestrator = SearchOrchestrator(fetch)
        assert orchestrator.search("the Eiffel Tower in Paris") is None
        assert fetch.calls.count("Eiffel Tower") == 1
        assert orchestrator.cache_size_used() == 0

    def test_search_multiple_empty(self):
        """No terms, no result."""
        assert SearchOrchestrator(RecordingFetch()).search_multiple([]) is None

    def test_clear_cache(self):
        """Clearing empties the cache."""
        orchestrator = SearchOrchestrator(RecordingFetch({"photosynthesis": "P"}))
        orchestrator.search("what is photosynthesis?")
        orchestrator.clear_cache()
        assert orchestrator.cache_size_used() == 0
