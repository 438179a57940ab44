"""TF-IDF relevance engine over the local memory, plus weak-match synthesis"""

import logging
import math
import re
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from . import config
from .knowledge import KnowledgeStore, MemoryEntry

logger = logging.getLogger(__name__)

VERIFIED = "verified"
STRONG = "strong"
WEAK = "weak"
NONE = "none"

_LOW_CONFIDENCE_NOTE = (
    "(Note: I'm making connections from related topics in my knowledge base. "
    "For more accurate information, I'd need additional context or could search Wikipedia.)"
)


class ScoredEntry(NamedTuple):
    entry: MemoryEntry
    score: float
    overlap: int


def classify_score(score: Optional[float]) -> str:
    """Map a top relevance score onto the dispatch tiers."""
    if score is None:
        return NONE
    if score >= config.VERIFIED_THRESHOLD:
        return VERIFIED
    if score >= config.STRONG_THRESHOLD:
        return STRONG
    if score >= config.WEAK_THRESHOLD:
        return WEAK
    return NONE


class RelevanceEngine:
    """
    Scores memory entries against a token query.

    Scoring is IDF-weighted coverage: the share of the query's total IDF mass
    found in an entry's token set. Entries that miss every critical (highest-IDF)
    query token keep only a fraction of their coverage. An entry whose question
    equals the query short-circuits with EXACT_MATCH_SCORE.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        min_coverage: float = config.MIN_COVERAGE,
        max_results: int = config.MAX_RESULTS,
        critical_fraction: float = config.CRITICAL_TERM_FRACTION,
        critical_penalty: float = config.CRITICAL_MISS_PENALTY,
        cluster_similarity: float = config.CLUSTER_SIMILARITY,
        low_confidence_average: float = config.LOW_CONFIDENCE_AVERAGE,
    ):
        self.store = store
        self.min_coverage = min_coverage
        self.max_results = max_results
        self.critical_fraction = critical_fraction
        self.critical_penalty = critical_penalty
        self.cluster_similarity = cluster_similarity
        self.low_confidence_average = low_confidence_average

    # ── Scoring ───────────────────────────────────────────────────────────────

    def idf(self, token: str) -> float:
        index = self.store.index
        return math.log((index.total_documents + 1) / (index.df(token) + 1)) + 1

    def _exact_match(self, tokens: Sequence[str]) -> Optional[ScoredEntry]:
        joined = ' '.join(tokens).lower()
        check_answers = len(tokens) >= config.EXACT_ANSWER_MIN_TOKENS
        for entry in self.store.entries:
            if entry.question and entry.question.strip().lower() == joined:
                return ScoredEntry(entry, config.EXACT_MATCH_SCORE, len(tokens))
            if check_answers and joined in entry.answer.lower():
                return ScoredEntry(entry, config.EXACT_MATCH_SCORE, len(tokens))
        return None

    def retrieve(self, tokens: Sequence[str]) -> List[ScoredEntry]:
        """Ranked matches for a token query, best first, at most max_results."""
        tokens = list(tokens)
        entries = self.store.entries
        if not tokens or not entries:
            return []

        exact = self._exact_match(tokens)
        if exact is not None:
            logger.debug(f"Exact match for {' '.join(tokens)!r}")
            return [exact]

        idf = np.array([self.idf(t) for t in tokens], dtype=float)
        max_possible = float(idf.sum())
        if max_possible == 0:
            return []

        # Stable descending sort keeps query order among equal IDFs
        by_idf = sorted(range(len(tokens)), key=lambda i: -idf[i])
        n_critical = max(1, int(len(tokens) * self.critical_fraction))
        critical_cols = by_idf[:n_critical]

        presence = np.array(
            [[t in entry.token_set for t in tokens] for entry in entries],
            dtype=float,
        )
        coverage = (presence @ idf) / max_possible
        critical_hits = presence[:, critical_cols].sum(axis=1)
        coverage = np.where(critical_hits == 0, coverage * self.critical_penalty, coverage)
        overlap = presence.sum(axis=1)

        keep = np.nonzero(coverage >= self.min_coverage)[0]
        ranked = keep[np.argsort(-coverage[keep], kind="stable")][: self.max_results]

        return [ScoredEntry(entries[i], float(coverage[i]), int(overlap[i])) for i in ranked]

    # ── Weak-match synthesis ──────────────────────────────────────────────────

    def synthesize(self, matches: Sequence[ScoredEntry], topic: Optional[str] = None) -> str:
        """Build a bulleted answer from several weakly matching entries."""
        top = list(matches[: config.SYNTHESIS_TOP_K])
        if not top:
            return ""

        clusters = cluster_by_theme(top, self.cluster_similarity)
        logger.debug(f"Synthesizing from {len(top)} matches in {len(clusters)} clusters")

        if topic:
            parts = [f"Based on what I know about {topic}:"]
        else:
            parts = ["Based on related information I have:"]

        for cluster in clusters:
            facts = extract_key_facts(cluster)
            if not facts:
                continue
            line = '. '.join(facts)
            if not line.endswith('.'):
                line += '.'
            parts.append(f"• {line}" if len(clusters) > 1 else line)

        average = sum(m.score for m in top) / len(top)
        if average < self.low_confidence_average:
            parts.append(_LOW_CONFIDENCE_NOTE)

        return '\n\n'.join(parts).strip()


def _token_similarity(a: MemoryEntry, b: MemoryEntry) -> float:
    shortest = min(len(a.tokens), len(b.tokens))
    if shortest == 0:
        return 0.0
    shared = sum(1 for t in a.tokens if t in b.token_set)
    return shared / shortest


def cluster_by_theme(
    matches: Sequence[ScoredEntry], similarity: float = config.CLUSTER_SIMILARITY
) -> List[List[ScoredEntry]]:
    """
    Greedy single-link clustering: each unclustered match seeds a cluster and
    pulls in every later-unclustered match whose overlap ratio with the seed
    exceeds the threshold.
    """
    clusters: List[List[ScoredEntry]] = []
    used = set()
    for idx, seed in enumerate(matches):
        if idx in used:
            continue
        cluster = [seed]
        used.add(idx)
        for other_idx, other in enumerate(matches):
            if other_idx in used:
                continue
            if _token_similarity(seed.entry, other.entry) > similarity:
                cluster.append(other)
                used.add(other_idx)
        clusters.append(cluster)
    return clusters


def extract_key_facts(
    cluster: Sequence[ScoredEntry],
    min_length: int = config.FACT_MIN_LENGTH,
    limit: int = config.FACTS_PER_CLUSTER,
) -> List[str]:
    """First qualifying sentence of each answer, deduplicated by normalized text."""
    facts = []
    seen = set()
    for match in cluster:
        sentences = [s for s in re.split(r'[.!?]+', match.entry.answer) if len(s.strip()) > min_length]
        if not sentences:
            continue
        fact = sentences[0].strip()
        key = re.sub(r'\s+', ' ', fact.lower())
        if key in seen:
            continue
        seen.add(key)
        facts.append(fact)
    return facts[:limit]
