"""Main wikisage agent - one dispatch decision per turn over memory, utilities and Wikipedia"""

import logging
import random
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from . import config
from .conversation import DEEP_SEARCH, SEARCH as SEARCH_ACTION, QueryContext, SessionState, build_context
from .feedback import FeedbackRecord, FeedbackStore, summarize, tune_temperature
from .intents import IntentAnalysis, analyze, is_meta_query
from .knowledge import KnowledgeStore, load_records
from .relevance import STRONG, VERIFIED, WEAK, RelevanceEngine, classify_score
from .responses import (
    CONVERSATIONAL,
    CONVERSATIONAL_INTENTS,
    DEFINITION,
    FACTUAL,
    GENERAL,
    INPUT,
    MATH,
    SEARCH,
    Response,
    apology,
    confusion_response,
    conversational_fallback,
    conversational_response,
    decline_generation,
    follow_up_question,
    meta_response,
    not_understood,
    should_ask_follow_up,
    wants_generator,
)
from .search import Fetcher, SearchOrchestrator, comparison_terms, is_search_query
from .text import capitalize_proper_nouns, extract_topic, preprocess_query, sanitize_input, tokenize
from .utilities import calculate, is_math_query, process_utility
from .wikipedia import WikipediaClient

logger = logging.getLogger(__name__)

# (intent, effective query, context) -> response
Generator = Callable[[str, str, QueryContext], Response]

_DEFINITION_REQUEST_RE = re.compile(
    r'^define\s+|^what\s+(does|is)\s+.+\s+mean|^meaning\s+of\s+|^definition\s+of\s+', re.I)
_DEFINITION_STRIP = [
    re.compile(r'^(define|meaning of|definition of)\s+', re.I),
    re.compile(r'^what\s+(does|is)\s+', re.I),
    re.compile(r'^(the\s+)?(meaning|definition)\s+of\s+', re.I),
    re.compile(r'\s+mean\??$', re.I),
]
_COMPARISON_REQUEST_RE = re.compile(
    r'difference\s+between|compare\s+.+\s+(and|vs|versus|to)|.+\s+vs\.?\s+.+|what\s+is\s+.+\s+compared\s+to',
    re.I)


def _decline(intent: str, query: str, context: QueryContext) -> Response:
    return decline_generation(intent, query, context.topic)


def definition_term(query: str) -> str:
    """
    The word or phrase a definition request asks about.

    e.g. "define serendipity"             → "serendipity"
         "what does ephemeral mean?"      → "ephemeral"
    """
    term = query
    for pattern in _DEFINITION_STRIP:
        term = pattern.sub('', term)
    return term.replace('?', '').strip()


def _first_sentences(text: str, count: int = 2) -> str:
    sentences = [s.strip() for s in re.split(r'[.!?]', text) if len(s.strip()) > 10]
    return '. '.join(sentences[:count]) + '.'


class SageAgent:
    """
    Per-turn orchestrator.

    respond() is the pure entry point: it takes a SessionState and returns the
    reply together with a new state. ask() wraps it around a state the agent
    keeps for interactive use. The only state mutated across turns is the
    search orchestrator's result cache.
    """

    def __init__(
        self,
        store: Optional[KnowledgeStore] = None,
        fetch: Optional[Fetcher] = None,
        generator: Optional[Generator] = None,
        feedback_store: Optional[FeedbackStore] = None,
        rng: Optional[random.Random] = None,
        follow_up_chance: float = config.FOLLOW_UP_CHANCE,
        offline: bool = False,
    ):
        self.store = store if store is not None else KnowledgeStore()
        self.relevance = RelevanceEngine(self.store)

        if fetch is None and not offline:
            fetch = WikipediaClient()
        self.search = SearchOrchestrator(fetch) if fetch is not None else None

        self.generator = generator or _decline
        self.feedback_store = feedback_store
        self.feedback_records: List[FeedbackRecord] = feedback_store.load() if feedback_store else []
        self.rng = rng or random.Random()
        self.follow_up_chance = follow_up_chance
        self.state = SessionState()

        logger.info(
            f"Agent ready: {len(self.store)} memory entries, "
            f"search {'enabled' if self.search else 'disabled'}"
        )

    # ── Knowledge loading ─────────────────────────────────────────────────────

    def load(self, records: Iterable[Dict]) -> bool:
        """Replace the local memory with ``records``."""
        return self.store.load(records)

    def load_file(self, path: Path) -> bool:
        return self.load(load_records(Path(path)))

    # ── Turn entry points ─────────────────────────────────────────────────────

    def respond(self, query: str, state: Optional[SessionState] = None) -> Tuple[Response, SessionState]:
        """
        Answer one user turn.
        Never raises: any failure inside the pipeline becomes the apology response.
        """
        state = state if state is not None else SessionState()
        try:
            response, topic = self._dispatch(query, state)
        except Exception as e:
            logger.exception(f"Error while answering {query!r}: {e}")
            response, topic = apology(), None

        if response.category == INPUT:
            return response, state
        return response, state.with_turn(query, response.text, response.category, topic)

    def ask(self, query: str) -> Response:
        """Answer one turn against the agent's own session state."""
        response, self.state = self.respond(query, self.state)
        return response

    def reset(self):
        """Forget the conversation and the cached search results."""
        self.state = SessionState()
        if self.search:
            self.search.clear_cache()

    # ── Feedback ──────────────────────────────────────────────────────────────

    def record_feedback(self, query: str, response: str, kind: str,
                        correction: Optional[str] = None,
                        state: Optional[SessionState] = None) -> SessionState:
        """
        Store a rating of one answer and return the state with a retuned temperature.
        Without an explicit state the agent's own session is updated.
        """
        own_state = state is None
        state = self.state if own_state else state

        record = FeedbackRecord(query, response, kind, correction)
        self.feedback_records.append(record)
        if self.feedback_store:
            self.feedback_store.save(record)

        temperature = tune_temperature(state.temperature, summarize(self.feedback_records))
        new_state = state.with_temperature(temperature)
        if own_state:
            self.state = new_state
        return new_state

    def get_statistics(self) -> Dict:
        stats = self.store.get_statistics()
        stats["cached_searches"] = self.search.cache_size_used() if self.search else 0
        stats["feedback_records"] = len(self.feedback_records)
        stats["session"] = self.state.get_summary()
        return stats

    # ═══════════════════════════════════════════════════════════════════════════
    # DISPATCH
    # ═══════════════════════════════════════════════════════════════════════════

    def _search(self, term: str, long_form: bool = False) -> Optional[str]:
        if not self.search or not term:
            return None
        return self.search.search(term, long_form)

    def _with_follow_up(self, text: str, topic: Optional[str]) -> str:
        if topic and should_ask_follow_up(text, self.follow_up_chance, self.rng):
            return f"{text}\n\n{follow_up_question(topic, self.rng)}"
        return text

    def _dispatch(self, query: str, state: SessionState) -> Tuple[Response, Optional[str]]:
        clean = sanitize_input(query)
        if not clean:
            return not_understood(), None

        context = build_context(clean, state)
        effective = context.resolved_query
        analysis = analyze(effective, context)

        for handler in (
            self._pending_action,
            self._greeting,
            self._definition,
            self._comparison,
            self._meta,
            self._generation,
            self._expansion,
            self._confusion,
            self._utility,
            self._conversation,
            self._math,
        ):
            handled = handler(effective, analysis, context, state)
            if handled is not None:
                logger.info(f"Answered by {handler.__name__.lstrip('_')}")
                return handled

        return self._retrieve(effective, context)

    # ── Intent-routed handlers (each returns None to pass) ────────────────────

    def _pending_action(self, effective: str, analysis: IntentAnalysis,
                        context: QueryContext, state: SessionState):
        if analysis.primary != 'confirmation' or not context.pending_action:
            return None
        topic = context.topic or effective

        if context.pending_action == DEEP_SEARCH:
            result = self._search(f"history of {topic}", long_form=True)
            if result:
                return Response(result, ["Wikipedia", "Knowledge Base"], SEARCH), topic
        elif context.pending_action == SEARCH_ACTION:
            result = self._search(topic)
            if result:
                return Response(result, ["Wikipedia"], SEARCH), topic
        return None

    def _greeting(self, effective, analysis, context, state):
        if analysis.primary != 'greeting':
            return None
        return conversational_response(
            'greeting', effective, state.last_response,
            answering_question=bool(context.last_ai_question), rng=self.rng), None

    def _definition(self, effective, analysis, context, state):
        if analysis.primary != 'definition' and not _DEFINITION_REQUEST_RE.search(effective):
            return None
        term = definition_term(effective)
        if not term:
            return None

        glossary = self.store.lookup_word(term)
        if glossary:
            return Response(glossary, ["Dictionary"], DEFINITION), term

        result = self._search(term)
        if result:
            text = f"**{capitalize_proper_nouns(term)}**\n\n{_first_sentences(result)}"
            return Response(text, ["Wikipedia", "Definition Engine"], DEFINITION), term

        return Response(
            f'I couldn\'t find a definition for "{term}". Could you try rephrasing or check the spelling?',
            ["Definition Engine"], DEFINITION), None

    def _comparison(self, effective, analysis, context, state):
        if analysis.primary != 'comparison' and not _COMPARISON_REQUEST_RE.search(effective):
            return None
        terms = comparison_terms(effective)
        if not terms or not self.search:
            return None
        logger.info(f"Comparing {terms[0]!r} and {terms[1]!r}")
        result = self.search.search_multiple(terms)
        if not result:
            return None
        return Response(result, ["Wikipedia", "Comparison Engine"], SEARCH), terms[0]

    def _meta(self, effective, analysis, context, state):
        if analysis.primary == 'meta' or (is_meta_query(effective) and analysis.primary != 'confusion'):
            return meta_response(effective), None
        return None

    def _generation(self, effective, analysis, context, state):
        if not wants_generator(analysis.primary, effective):
            return None
        return self.generator(analysis.primary, effective, context), extract_topic(effective)

    def _expansion(self, effective, analysis, context, state):
        if analysis.primary not in ('expand', 'followup'):
            return None
        topic = context.topic
        if not topic:
            if analysis.primary == 'expand':
                return Response(
                    "I'd love to tell you more, but I'm not sure which topic we're discussing. "
                    "Could you be specific?", ["Conversational"], CONVERSATIONAL), None
            return None

        result = self._search(topic, long_form=True)
        if result:
            text = f"Here is more detailed information about **{topic}**:\n\n{result}"
            return Response(text, ["Wikipedia (Deep Search)"], SEARCH), topic
        return Response(
            f"I couldn't find more information about {topic}. Try asking a more specific question!",
            ["Search"], GENERAL), topic

    def _confusion(self, effective, analysis, context, state):
        if analysis.primary != 'confusion':
            return None
        last_query = state.history[-1].query if state.history else None
        return confusion_response(last_query, state.last_response), None

    def _utility(self, effective, analysis, context, state):
        if analysis.primary != 'utility' and 'utility' not in analysis.secondary:
            return None
        result = process_utility(effective, context.last_category, self.rng)
        if result is None:
            return None
        return Response(result.text, [result.source], result.category), None

    def _conversation(self, effective, analysis, context, state):
        if analysis.primary in CONVERSATIONAL_INTENTS:
            intent = analysis.primary
        elif 'casual' in analysis.secondary:
            intent = 'casual'
        else:
            return None
        response = conversational_response(
            intent, effective, state.last_response,
            answering_question=bool(context.last_ai_question), rng=self.rng)
        return (response, None) if response else None

    def _math(self, effective, analysis, context, state):
        cleaned = preprocess_query(effective)
        if not is_math_query(cleaned):
            return None
        answer = calculate(cleaned)
        if answer is None:
            return None
        return Response(answer, ["Calculator"], MATH), None

    # ── Memory and encyclopedia tiers ─────────────────────────────────────────

    def _retrieve(self, effective: str, context: QueryContext) -> Tuple[Response, Optional[str]]:
        topic = extract_topic(effective)
        tokens = tokenize(topic) if topic else tokenize(preprocess_query(effective))
        matches = self.relevance.retrieve(tokens)
        best = matches[0] if matches else None
        tier = classify_score(best.score if best else None)
        logger.info(f"Memory tier: {tier}" + (f" ({best.score:.2f})" if best else ""))

        if tier == VERIFIED:
            return Response(best.entry.answer, ["Local Memory (Verified)"], FACTUAL), topic

        searched: Set[str] = set()
        if is_search_query(effective) or len(self.store) < config.SMALL_MEMORY_THRESHOLD:
            term = topic or effective
            searched.add(term)
            result = self._search(term)
            if result:
                return Response(self._with_follow_up(result, topic), ["Wikipedia"], SEARCH), topic

        if tier == STRONG:
            return Response(best.entry.answer, ["Local Memory"], FACTUAL), topic

        if tier == WEAK:
            text = self.relevance.synthesize(matches, topic)
            return Response(text, ["Knowledge Synthesis", "Local Memory"], FACTUAL), topic

        # Last resort before small talk
        term = topic or effective
        if term not in searched:
            result = self._search(term)
            if result:
                return Response(result, ["Wikipedia"], SEARCH), topic

        text = self._with_follow_up(conversational_fallback(effective, self.rng), topic)
        return Response(text, ["General Knowledge Engine"], GENERAL), None
