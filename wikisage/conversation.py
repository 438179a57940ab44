"""Session state and per-turn context tracking"""

import logging
import re
from datetime import datetime
from typing import Dict, NamedTuple, Optional, Tuple

from . import config
from .text import extract_topic

logger = logging.getLogger(__name__)

DEEP_SEARCH = "DEEP_SEARCH"
SEARCH = "SEARCH"

_PRONOUN_RE = re.compile(r'\b(it|that|this|they|them|these|those)\b', re.I)
_SUBSTITUTABLE_RE = re.compile(r'\b(it|that|this|they|them|these|those|the first one)\b', re.I)
_CONTINUE_RE = re.compile(r'^(tell me more|go on|continue|expand|details|elaborate)$', re.I)
_BARE_WHY_RE = re.compile(r'^why\??$', re.I)
_BARE_AND_RE = re.compile(r'^and\??$', re.I)
_DEEP_SEARCH_RE = re.compile(r'dig deeper|more details|history of this', re.I)
_SEARCH_RE = re.compile(r'search|look up|find', re.I)


class Turn(NamedTuple):
    """One completed exchange"""

    query: str
    response: str
    category: Optional[str] = None
    timestamp: str = ""

    def to_dict(self) -> Dict:
        return {
            "query": self.query,
            "response": self.response,
            "category": self.category,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Turn":
        return cls(
            query=data["query"],
            response=data["response"],
            category=data.get("category"),
            timestamp=data.get("timestamp", ""),
        )


class SessionState(NamedTuple):
    """
    Everything the pipeline remembers between turns.
    Never mutated: with_turn()/with_temperature() return a new state.
    """

    history: Tuple[Turn, ...] = ()
    last_topic: Optional[str] = None
    last_category: Optional[str] = None
    recent_outputs: Tuple[str, ...] = ()
    temperature: float = config.DEFAULT_TEMPERATURE

    @property
    def last_response(self) -> Optional[str]:
        return self.history[-1].response if self.history else None

    def with_turn(self, query: str, response: str, category: Optional[str] = None,
                  topic: Optional[str] = None) -> "SessionState":
        turn = Turn(query, response, category, datetime.now().isoformat())
        return self._replace(
            history=(self.history + (turn,))[-config.MAX_HISTORY_TURNS:],
            recent_outputs=(self.recent_outputs + (response,))[-config.MAX_RECENT_OUTPUTS:],
            last_category=category,
            last_topic=topic or self.last_topic,
        )

    def with_temperature(self, temperature: float) -> "SessionState":
        return self._replace(temperature=temperature)

    def get_summary(self) -> Dict:
        return {
            "turns": len(self.history),
            "last_topic": self.last_topic,
            "last_category": self.last_category,
            "temperature": self.temperature,
        }


class QueryContext(NamedTuple):
    query: str
    resolved_query: str
    topic: Optional[str]
    last_category: Optional[str]
    last_ai_question: Optional[str]
    pending_action: Optional[str]
    has_pronouns: bool
    recent_queries: Tuple[str, ...]
    recent_responses: Tuple[str, ...]


def infer_pending_action(question: Optional[str]) -> Optional[str]:
    """What a "yes" would commit us to, judging by the question we asked."""
    if not question:
        return None
    if _DEEP_SEARCH_RE.search(question):
        return DEEP_SEARCH
    if _SEARCH_RE.search(question):
        return SEARCH
    return None


def resolve_pronouns(query: str, topic: Optional[str]) -> str:
    """
    Rewrite an elliptical or pronoun-bearing query around the current topic.

    e.g. topic "black holes":
         "tell me more"     → "tell me more about black holes"
         "why?"             → "why is black holes like that?"
         "how big is it"    → "how big is black holes"
    """
    if not topic:
        return query
    bare = query.strip()
    if _CONTINUE_RE.match(bare):
        return f"{query} about {topic}"
    if _BARE_WHY_RE.match(bare):
        return f"why is {topic} like that?"
    if _BARE_AND_RE.match(bare):
        return f"what else about {topic}?"
    return _SUBSTITUTABLE_RE.sub(lambda _: topic, query)


def _is_elliptical(query: str) -> bool:
    bare = query.strip()
    return bool(_CONTINUE_RE.match(bare) or _BARE_WHY_RE.match(bare) or _BARE_AND_RE.match(bare))


def build_context(query: str, state: SessionState) -> QueryContext:
    recent = state.history[-config.RECENT_TURNS:]
    recent_queries = tuple(t.query for t in recent)
    recent_responses = tuple(t.response for t in recent)

    last_response = state.last_response
    last_ai_question = last_response if last_response and last_response.strip().endswith('?') else None

    topic = state.last_topic
    if not topic and recent_queries:
        topic = extract_topic(recent_queries[-1])

    has_pronouns = bool(_PRONOUN_RE.search(query))
    resolved = query
    if topic and (has_pronouns or _is_elliptical(query)):
        resolved = resolve_pronouns(query, topic)
        if resolved != query:
            logger.debug(f"Resolved {query!r} → {resolved!r}")

    return QueryContext(
        query=query,
        resolved_query=resolved,
        topic=topic,
        last_category=state.last_category,
        last_ai_question=last_ai_question,
        pending_action=infer_pending_action(last_ai_question),
        has_pronouns=has_pronouns,
        recent_queries=recent_queries,
        recent_responses=recent_responses,
    )
