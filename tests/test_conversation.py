"""Tests for session state and context building."""

import pytest

from wikisage.conversation import (
    DEEP_SEARCH,
    SEARCH,
    SessionState,
    Turn,
    build_context,
    infer_pending_action,
    resolve_pronouns,
)


class TestSessionState:
    """Test the immutable session state."""

    def test_with_turn_returns_new_state(self):
        """Recording a turn never mutates the original state."""
        original = SessionState()
        updated = original.with_turn("hello", "Hi there!", "CONVERSATIONAL")
        assert original.history == ()
        assert original.last_category is None
        assert len(updated.history) == 1
        assert updated.last_response == "Hi there!"
        assert updated.last_category == "CONVERSATIONAL"

    def test_topic_survives_turns_without_one(self):
        """A turn without a topic keeps the previous topic."""
        state = SessionState().with_turn("tell me about rome", "Rome is a city.", "SEARCH", "rome")
        state = state.with_turn("thanks", "You're welcome!", "CONVERSATIONAL")
        assert state.last_topic == "rome"
        assert state.last_category == "CONVERSATIONAL"

    def test_history_and_outputs_are_capped(self):
        """History keeps fifty turns, recent outputs fifteen."""
        state = SessionState()
        for i in range(60):
            state = state.with_turn(f"q{i}", f"a{i}")
        assert len(state.history) == 50
        assert state.history[0].query == "q10"
        assert len(state.recent_outputs) == 15
        assert state.recent_outputs[-1] == "a59"

    def test_with_temperature(self):
        """Temperature changes produce a new state."""
        state = SessionState()
        assert state.with_temperature(0.8).temperature == 0.8
        assert state.temperature == pytest.approx(0.85)

    def test_summary(self):
        """The summary reports turns, topic and category."""
        state = SessionState().with_turn("tell me about rome", "Rome.", "SEARCH", "rome")
        summary = state.get_summary()
        assert summary["turns"] == 1
        assert summary["last_topic"] == "rome"
        assert summary["last_category"] == "SEARCH"


class TestTurn:
    """Test turn serialisation."""

    def test_dict_round_trip(self):
        """A turn converts to a dict and back unchanged."""
        turn = Turn("what is rome", "Rome is a city.", "SEARCH", "2024-01-01T00:00:00")
        assert Turn.from_dict(turn.to_dict()) == turn

    def test_from_dict_defaults(self):
        """Category and timestamp are optional."""
        turn = Turn.from_dict({"query": "hi", "response": "Hello!"})
        assert turn.category is None
        assert turn.timestamp == ""


class TestPronounResolution:
    """Test rewriting queries around the current topic."""

    @pytest.mark.parametrize("query,resolved", [
        ("tell me more", "tell me more about black holes"),
        ("why?", "why is black holes like that?"),
        ("and?", "what else about black holes?"),
        ("how big is it", "how big is black holes"),
        ("what are the first one made of", "what are black holes made of"),
    ])
    def test_resolution(self, query, resolved):
        """Elliptical queries and pronouns are rewritten."""
        assert resolve_pronouns(query, "black holes") == resolved

    def test_topic_is_inserted_literally(self):
        """Backslashes in the topic are text, not replacement escapes."""
        assert resolve_pronouns("how big is it", "c:\\windows") == "how big is c:\\windows"

    def test_no_topic_no_change(self):
        """Without a topic the query is returned unchanged."""
        assert resolve_pronouns("how big is it", None) == "how big is it"


class TestPendingAction:
    """Test reading our own last question."""

    @pytest.mark.parametrize("question,action", [
        ("Shall I dig deeper into the history of this?", DEEP_SEARCH),
        ("Want more details?", DEEP_SEARCH),
        ("Would you like me to search for related topics?", SEARCH),
        ("Should I look up the author?", SEARCH),
        ("Do you like astronomy?", None),
        (None, None),
    ])
    def test_infer(self, question, action):
        """Deep-search wording wins over plain search wording."""
        assert infer_pending_action(question) == action


class TestBuildContext:
    """Test per-turn context assembly."""

    def test_pending_deep_search(self):
        """A 'yes' after our deep-search offer carries the pending action."""
        state = SessionState().with_turn(
            "tell me about black holes",
            "Black holes are regions of spacetime. Shall I dig deeper into the history of this?",
            "SEARCH",
            "black holes",
        )
        context = build_context("yes", state)
        assert context.pending_action == DEEP_SEARCH
        assert context.topic == "black holes"
        assert context.last_ai_question is not None
        assert context.resolved_query == "yes"
        assert not context.has_pronouns

    def test_no_question_no_pending_action(self):
        """Statements do not leave anything pending."""
        state = SessionState().with_turn("tell me about rome", "Rome is a city.", "SEARCH", "rome")
        context = build_context("yes", state)
        assert context.last_ai_question is None
        assert context.pending_action is None

    def test_pronoun_resolved_against_topic(self):
        """Pronouns are replaced by the tracked topic."""
        state = SessionState().with_turn("tell me about black holes", "Black holes are dense.",
                                         "SEARCH", "black holes")
        context = build_context("how big is it", state)
        assert context.has_pronouns
        assert context.resolved_query == "how big is black holes"

    def test_backslash_topic(self):
        """A topic with backslashes still resolves."""
        state = SessionState().with_turn("what is c:\\windows", "A directory.", "SEARCH", "c:\\windows")
        context = build_context("what is in it", state)
        assert context.resolved_query == "what is in c:\\windows"

    def test_topic_falls_back_to_last_query(self):
        """Without a tracked topic the last query supplies one."""
        state = SessionState().with_turn("tell me about ancient rome", "Rome was an empire.")
        context = build_context("tell me more", state)
        assert context.topic == "ancient rome"
        assert context.resolved_query == "tell me more about ancient rome"

    def test_empty_session(self):
        """A fresh session has no topic and resolves nothing."""
        context = build_context("how big is it", SessionState())
        assert context.topic is None
        assert context.resolved_query == "how big is it"
        assert context.recent_queries == ()

    def test_recent_window(self):
        """Only the last three exchanges are recent."""
        state = SessionState()
        for i in range(5):
            state = state.with_turn(f"q{i}", f"a{i}")
        context = build_context("next", state)
        assert context.recent_queries == ("q2", "q3", "q4")
        assert context.recent_responses == ("a2", "a3", "a4")
