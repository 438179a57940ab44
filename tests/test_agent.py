"""End-to-end tests for the per-turn dispatch pipeline."""

import json
import random

import pytest

from conftest import RecordingFetch
from wikisage.agent import SageAgent, definition_term
from wikisage.conversation import SessionState
from wikisage.feedback import GOOD
from wikisage.responses import (
    CONVERSATIONAL,
    CREATIVE,
    DEFINITION,
    ERROR,
    FACTUAL,
    GENERAL,
    INPUT,
    MATH,
    META,
    SEARCH,
)

EINSTEIN = ("Albert Einstein was a German-born theoretical physicist who developed the theory "
            "of relativity.")
SERENDIPITY = ("Serendipity is an unplanned fortunate discovery. The term was coined by Horace "
               "Walpole in 1754. It is popular.")
BLACK_HOLES_HISTORY = ("The idea of a body so massive that even light could not escape was "
                       "first proposed in the eighteenth century.")


@pytest.fixture
def pages():
    return RecordingFetch({
        "Albert Einstein": EINSTEIN,
        "Serendipity": SERENDIPITY,
        "black holes": BLACK_HOLES_HISTORY,
        "Mercury": "M",
        "Venus": "V",
    })


@pytest.fixture
def agent(store, pages):
    return SageAgent(store=store, fetch=pages, rng=random.Random(0), follow_up_chance=0.0)


def _after(query, response, category=None, topic=None):
    return SessionState().with_turn(query, response, category, topic)


class TestInput:
    """Test unusable input."""

    @pytest.mark.parametrize("query", ["", "   ", "\U0001F600\U0001F680"])
    def test_not_understood(self, agent, query):
        """Empty input is answered without touching the session."""
        state = _after("hello", "Hi!")
        response, new_state = agent.respond(query, state)
        assert response.category == INPUT
        assert new_state is state

    def test_backslash_topic_is_answered(self, agent):
        """A tracked topic with backslashes does not break pronoun resolution."""
        state = _after("what is c:\\windows", "A directory.", SEARCH, "c:\\windows")
        response, _ = agent.respond("how big is it", state)
        assert response.category != ERROR

    def test_huge_power_is_not_an_error(self, agent):
        """Refused arithmetic falls through instead of failing the turn."""
        response, _ = agent.respond("what is 2^20000")
        assert response.category not in (ERROR, MATH)

    def test_errors_become_apology(self, store, pages):
        """A failing collaborator yields the apology, never an exception."""
        def broken(intent, query, context):
            raise RuntimeError("generator offline")

        agent = SageAgent(store=store, fetch=pages, generator=broken, follow_up_chance=0.0)
        response, state = agent.respond("write a story about dragons")
        assert response.category == ERROR
        assert state.last_category == ERROR


class TestMemoryTiers:
    """Test answering from local memory."""

    def test_verified_answer_skips_search(self, agent, pages):
        """An exact memory hit is returned without any lookup."""
        response, state = agent.respond("What is photosynthesis?")
        assert response.sources == ["Local Memory (Verified)"]
        assert response.category == FACTUAL
        assert response.text.startswith("Photosynthesis is the process")
        assert pages.calls == []
        assert state.last_topic == "photosynthesis"

    def test_strong_match(self, agent):
        """A strong partial match returns the stored answer."""
        response, _ = agent.respond("sky blue plants")
        assert response.sources == ["Local Memory"]
        assert response.text.startswith("The sky appears blue")

    def test_weak_match_is_synthesized(self, agent):
        """A weak match is synthesized with a lead-in."""
        response, _ = agent.respond("sky plants france")
        assert response.sources == ["Knowledge Synthesis", "Local Memory"]
        assert response.text.startswith("Based on what I know about sky plants france")

    def test_fallback(self, agent):
        """Nothing anywhere falls back to small talk."""
        response, state = agent.respond("zzz qqq")
        assert response.text == "Could you tell me a bit more about that? I'd love to understand better."
        assert response.sources == ["General Knowledge Engine"]
        assert response.category == GENERAL
        assert state.last_topic is None


class TestSearch:
    """Test encyclopedia routing."""

    def test_factual_question_searches(self, agent, pages):
        """A question about a named thing goes to the encyclopedia."""
        response, state = agent.respond("Tell me about Albert Einstein")
        assert response.text == EINSTEIN
        assert response.sources == ["Wikipedia"]
        assert response.category == SEARCH
        assert pages.calls[0] == "albert einstein"
        assert state.last_topic == "albert einstein"

    def test_tell_me_more_deep_searches_topic(self, agent, pages):
        """'tell me more' deep-searches the current topic, reusing its cached article."""
        _, state = agent.respond("Tell me about Albert Einstein")
        response, _ = agent.respond("tell me more", state)
        assert response.text == f"Here is more detailed information about **albert einstein**:\n\n{EINSTEIN}"
        assert response.sources == ["Wikipedia (Deep Search)"]
        assert pages.long_forms == [False]

    def test_tell_me_more_fetches_long_form(self, agent, pages):
        """An uncached topic is fetched in long form."""
        state = _after("who was he", "He was a physicist.", SEARCH, "albert einstein")
        response, _ = agent.respond("tell me more", state)
        assert response.sources == ["Wikipedia (Deep Search)"]
        assert pages.calls == ["albert einstein"]
        assert pages.long_forms == [True]

    def test_expand_without_topic(self, agent):
        """Expanding with nothing to expand asks for a topic."""
        response, _ = agent.respond("tell me more")
        assert response.category == CONVERSATIONAL
        assert "not sure which topic" in response.text

    def test_comparison(self, agent):
        """Comparisons fetch both sides."""
        response, state = agent.respond("difference between Mercury and Venus")
        assert response.text == "**Mercury:**\nM\n\n**Venus:**\nV\n"
        assert response.sources == ["Wikipedia", "Comparison Engine"]
        assert state.last_topic == "Mercury"

    def test_confirmed_deep_search(self, agent, pages):
        """'yes' after our deep-search offer fetches the topic's history."""
        state = _after("tell me about black holes",
                       "Black holes are regions of spacetime. Shall I dig deeper into the history of this?",
                       SEARCH, "black holes")
        response, _ = agent.respond("yes", state)
        assert response.text == BLACK_HOLES_HISTORY
        assert response.sources == ["Wikipedia", "Knowledge Base"]
        assert pages.calls == ["black holes"]
        assert pages.long_forms == [True]

    def test_offline_agent_never_searches(self, store):
        """Without a fetcher the agent answers from memory or small talk."""
        agent = SageAgent(store=store, offline=True, follow_up_chance=0.0)
        assert agent.search is None
        response, _ = agent.respond("Tell me about Albert Einstein")
        assert response.category == GENERAL


class TestDefinitions:
    """Test definition requests."""

    def test_glossary_first(self, agent, pages):
        """Glossary words are answered from the dictionary."""
        response, _ = agent.respond("define ephemeral")
        assert response.text == "**ephemeral** (adjective): lasting a very short time"
        assert response.sources == ["Dictionary"]
        assert response.category == DEFINITION
        assert pages.calls == []

    def test_encyclopedia_definition(self, agent):
        """Unknown words get the first two sentences of their article."""
        response, _ = agent.respond("define serendipity")
        assert response.text == (
            "**Serendipity**\n\n"
            "Serendipity is an unplanned fortunate discovery. "
            "The term was coined by Horace Walpole in 1754."
        )
        assert response.sources == ["Wikipedia", "Definition Engine"]

    def test_no_definition(self, agent):
        """Nothing found says so."""
        response, _ = agent.respond("define flibbertigibbet")
        assert response.text.startswith('I couldn\'t find a definition for "flibbertigibbet".')

    @pytest.mark.parametrize("query,term", [
        ("define serendipity", "serendipity"),
        ("what does ephemeral mean?", "ephemeral"),
        ("meaning of life", "life"),
    ])
    def test_definition_term(self, query, term):
        """Command words are stripped from the term."""
        assert definition_term(query) == term


class TestConversation:
    """Test small talk, utilities and meta questions."""

    def test_greeting(self, agent):
        response, _ = agent.respond("hello")
        assert response.category == CONVERSATIONAL

    def test_gratitude(self, agent):
        response, _ = agent.respond("yes thanks")
        assert response.category == CONVERSATIONAL
        assert not response.text.startswith("Great!")

    def test_confirmation_answers_our_question(self, agent):
        """A 'yes' to a plain question is acknowledged."""
        state = _after("tell me about black holes", "Black holes are dense. Do you like astronomy?",
                       SEARCH, "black holes")
        response, _ = agent.respond("yes thanks", state)
        assert response.text == (
            "Great! I'm glad to hear that. Is there anything specific about it you'd like to discuss?")

    def test_meta(self, agent):
        response, _ = agent.respond("what can you do")
        assert response.category == META
        assert "Wikipedia" in response.text

    def test_math(self, agent):
        response, _ = agent.respond("what is 12 * 7")
        assert response.text == "The answer is 84"
        assert response.sources == ["Calculator"]
        assert response.category == MATH

    def test_spell(self, agent):
        response, _ = agent.respond("spell banana backwards")
        assert response.text == '"banana" spelled backwards is "ananab"'
        assert response.category == "SPELL"

    def test_roll_again(self, agent):
        """Utility follow-ups read the previous category."""
        _, state = agent.respond("roll a die")
        assert state.last_category == "DICE"
        response, _ = agent.respond("roll again", state)
        assert response.category == "DICE"

    def test_generation_declined(self, agent):
        """Without a generator creative requests are declined politely."""
        response, state = agent.respond("write a poem about the sea")
        assert response.category == CREATIVE
        assert response.text.startswith("I can't write stories, essays or letters yet.")
        assert state.last_topic == "the sea"


class TestAgentState:
    """Test the stateful wrappers."""

    def test_ask_and_reset(self, agent):
        """ask() threads the agent's own state; reset() clears it."""
        agent.ask("hello")
        agent.ask("what is 12 * 7")
        assert len(agent.state.history) == 2
        agent.reset()
        assert agent.state.history == ()

    def test_feedback_tunes_temperature(self, agent):
        """Six liked long answers raise the temperature one step."""
        answer = " ".join(["word"] * 25) + "."
        for i in range(6):
            state = agent.record_feedback(f"q{i}", answer, GOOD)
        assert state.temperature == pytest.approx(0.87)
        assert agent.state.temperature == pytest.approx(0.87)

    def test_feedback_with_explicit_state(self, agent):
        """An explicit state is returned updated; the agent's own is untouched."""
        state = SessionState().with_turn("q", "a")
        new_state = agent.record_feedback("q", "a", GOOD, state=state)
        assert new_state.history == state.history
        assert agent.state.history == ()

    def test_statistics(self, agent):
        agent.ask("Tell me about Albert Einstein")
        stats = agent.get_statistics()
        assert stats["total_entries"] == 5
        assert stats["cached_searches"] == 1
        assert stats["feedback_records"] == 0
        assert stats["session"]["turns"] == 1

    def test_load_file(self, tmp_path):
        """Memory files replace the store contents."""
        path = tmp_path / "memory.json"
        path.write_text(json.dumps([{"question": "What is wikisage?", "answer": "A helper.",
                                     "type": "knowledge"}]), encoding="utf-8")
        agent = SageAgent(offline=True)
        assert agent.load_file(path)
        assert len(agent.store) == 1
