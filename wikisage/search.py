"""External search orchestrator: query generation, ranked strategies, result cache"""

import logging
import re
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from . import config
from .intents import is_meta_query
from .text import (
    QUESTION_STARTERS,
    expand_query,
    extract_entities,
    extract_topic,
    proper_nouns,
)

logger = logging.getLogger(__name__)

# (term, long_form) -> trimmed summary or None
Fetcher = Callable[[str, bool], Optional[str]]


class SearchStrategy(NamedTuple):
    name: str
    term: str
    priority: float


class QueryAnalysis(NamedTuple):
    type: str = "general"
    confidence: float = 0.5
    has_proper_noun: bool = False
    has_acronym: bool = False
    has_numbers: bool = False
    is_scientific: bool = False
    is_comparison: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# § 1  SEARCH-WORTHINESS
# ═══════════════════════════════════════════════════════════════════════════════

_PERSONAL_STATEMENT_RE = re.compile(r"^i (love|like|think|feel|am|really|just|want|don't)", re.I)
_SEARCH_PATTERNS = [re.compile(p, re.I) for p in (
    r'^what (is|are|was|were) (a|an|the)?\s*(?!you|your|wikisage)',
    r'^who (is|are|was|were)\s+(?!you)',
    r'^where (is|are|was|were)',
    r'^when (did|was|were|is)',
    r'^why (is|are|was|were|did|do|does)',
    r'^how (does|do|did|is|are)\s+(?!you|this|wikisage)',
    r'^(tell me about|explain|describe|define)\s+(?!yourself|you|wikisage)',
    r'^(facts about|information on|details about)',
)]
_MULTI_WORD_PROPER_RE = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b')


def is_search_query(query: str) -> bool:
    """True for factual questions about the outside world."""
    if is_meta_query(query) or _PERSONAL_STATEMENT_RE.match(query):
        return False
    if any(p.search(query) for p in _SEARCH_PATTERNS):
        return True
    return bool(_MULTI_WORD_PROPER_RE.search(query))


# ═══════════════════════════════════════════════════════════════════════════════
# § 2  INTELLIGENT QUERY GENERATION
# ═══════════════════════════════════════════════════════════════════════════════
# Each extractor returns a term, a [term, term] pair, or None to pass.

_EXPLICIT_RE = re.compile(r'(?:search for|look up|find info on)\s+(.+)', re.I)
_COMPARISON_TRIGGER_RE = re.compile(r'(difference between|\bvs\b|versus|compare)', re.I)
_COMPARISON_PAIR_RE = re.compile(
    r'(?:difference between|compare)\s+(.+?)\s+(?:and|vs\.?|versus|with|to)\s+(.+)', re.I)
_VERSUS_PAIR_RE = re.compile(r'(.+?)\s+(?:vs\.?|versus)\s+(.+)', re.I)
_COMPARISON_LEAD_RE = re.compile(
    r'^(what is|what\'s|which is)\s+(better|the difference)?[,:]?\s*|^(is|should i (use|choose|pick))\s+', re.I)
_GOVERNMENT_TRIGGER_RE = re.compile(r'government|parliament|administration|politics|political', re.I)
_GOVERNMENT_RE = re.compile(
    r'(?:structure|organization|system|form|composition)\s+of\s+(?:the\s+)?(.+?\s+(?:government|parliament))',
    re.I)
_PERSON_TRIGGER_RE = re.compile(r'who is|who was|prime minister|president|leader|ceo|founder|created by', re.I)
_LEADERSHIP_RE = re.compile(
    r'(?:prime minister|president|leader|king|queen|ruler)\s+of\s+(?:the\s+)?([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)',
    re.I)
_PERSON_RE = re.compile(r'who\s+(?:is|was|are|were)\s+(?:the\s+)?(.+)', re.I)
_DEFINITION_TRIGGER_RE = re.compile(r"what is|what are|what's|define|definition|meaning", re.I)
_DEFINITION_RE = re.compile(r'what\s+(?:is|are|was|were)\s+(?:(?:a|an|the)\s+)?(.+?)(?:\?|$)', re.I)
_DEFINITION_FILLER_RE = re.compile(r'\b(used for|good for|known for|made of|composed of)\b.*', re.I)
_HOW_WORKS_RE = re.compile(r'how\s+(?:does|do)\s+(?:(?:a|an|the)\s+)?(.+?)\s+work', re.I)
_HISTORY_RE = re.compile(r'(?:history|origin)\s+of\s+(?:the\s+)?(.+)', re.I)
_GENERIC_LEAD_RE = re.compile(
    r'^(what|who|where|when|why|how|which|is|are|was|were|do|does|did|can|could|would|should|'
    r'tell me about|explain|describe)\s+', re.I)
_FALLBACK_STOP = frozenset({
    'the', 'a', 'an', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'about', 'is', 'are', 'was', 'were',
})


def _clean_term(term: str) -> str:
    return term.strip().rstrip('?!.').strip()


def _explicit_search(query: str):
    m = _EXPLICIT_RE.search(query)
    return _clean_term(m.group(1)) if m else None


def comparison_terms(query: str) -> Optional[List[str]]:
    """The two items of "X vs Y" or "difference between X and Y", or None."""
    if not _COMPARISON_TRIGGER_RE.search(query):
        return None
    m = _COMPARISON_PAIR_RE.search(query) or _VERSUS_PAIR_RE.search(query)
    if not m:
        return None
    first = _clean_term(_COMPARISON_LEAD_RE.sub('', m.group(1).strip()))
    second = _clean_term(m.group(2))
    if first and second:
        return [first, second]
    return None


def _government(query: str):
    if not _GOVERNMENT_TRIGGER_RE.search(query):
        return None
    m = _GOVERNMENT_RE.search(query)
    return m.group(1).strip() if m else None


def _leadership(query: str):
    if not _PERSON_TRIGGER_RE.search(query):
        return None
    m = _LEADERSHIP_RE.search(query)
    return m.group(1).strip() if m else None


def _person(query: str):
    if not _PERSON_TRIGGER_RE.search(query):
        return None
    m = _PERSON_RE.search(query)
    return _clean_term(m.group(1)) if m else None


def _definition(query: str):
    if not _DEFINITION_TRIGGER_RE.search(query):
        return None
    m = _DEFINITION_RE.search(query)
    if not m:
        return None
    return _clean_term(_DEFINITION_FILLER_RE.sub('', m.group(1)))


def _how_it_works(query: str):
    m = _HOW_WORKS_RE.search(query)
    return m.group(1).strip() if m else None


def _historical(query: str):
    m = _HISTORY_RE.search(query)
    return _clean_term(m.group(1)) if m else None


def _proper_noun(query: str):
    candidates = [n for n in proper_nouns(query) if n not in QUESTION_STARTERS]
    if not candidates:
        return None
    # Most words first; ties keep the earliest phrase
    return max(candidates, key=lambda n: len(n.split()))


def _generic(query: str):
    stripped = _clean_term(_GENERIC_LEAD_RE.sub('', query.strip()))
    words = re.sub(r'[^a-zA-Z0-9\s]', '', stripped).split()
    meaningful = [w for w in words if w.lower() not in _FALLBACK_STOP and len(w) > 2]
    return ' '.join(meaningful) or stripped or None


EXTRACTORS = [
    _explicit_search,
    comparison_terms,
    _government,
    _leadership,
    _person,
    _definition,
    _how_it_works,
    _historical,
    _proper_noun,
    _generic,
]


def generate_search_query(query: str) -> Union[str, List[str], None]:
    """
    The single best encyclopedia term for a natural-language query, or two terms
    for a comparison.

    e.g. "difference between Mercury and Venus" → ["Mercury", "Venus"]
         "who is the president of France"      → "France"
         "what is photosynthesis?"             → "photosynthesis"
    """
    for extractor in EXTRACTORS:
        result = extractor(query)
        if result:
            logger.debug(f"{extractor.__name__.lstrip('_')}: {query!r} → {result!r}")
            return result
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# § 3  STRATEGY LIST
# ═══════════════════════════════════════════════════════════════════════════════

_ACRONYM_RE = re.compile(r'\b[A-Z]{2,5}\b')
_SCIENTIFIC_RE = re.compile(r'(acid|cell|molecule|protein|gene|theory|principle|law of|quantum|atomic)', re.I)
_COMPARISON_WORDS_RE = re.compile(r'(\bvs\b|versus|difference between|compare)', re.I)
_CLEAN_PREFIXES = [re.compile(p, re.I) for p in (
    r'^(what is|who is|tell me about|define|search for|meaning of|information on|facts about)\s+',
    r'^(write|compose|create|make|generate)\s+(a|an)\s+(\d+\s+words?\s+)?'
    r'(essay|story|poem|article|letter|email|paragraph)\s+(about|on|regarding|for)\s+',
    r'^(write|compose|create)\s+(about|on)\s+',
)]
_QUOTED_RE = re.compile(r'"([^"]+)"')
_TWO_WORD_RE = re.compile(r'\b\w+\s+\w+\b')


def analyze_query_for_search(query: str) -> QueryAnalysis:
    """Coarse query shape, later checks overriding earlier ones."""
    kind, confidence = "general", 0.5
    has_proper = bool(re.search(r'[A-Z][a-z]+', query))
    has_acronym = bool(_ACRONYM_RE.search(query))
    is_scientific = bool(_SCIENTIFIC_RE.search(query))
    is_comparison = bool(_COMPARISON_WORDS_RE.search(query))

    if has_proper:
        kind, confidence = "proper_noun", 0.9
    if has_acronym:
        kind, confidence = "acronym", 0.95
    if is_scientific:
        kind, confidence = "scientific", 0.85
    if is_comparison:
        kind = "comparison"

    return QueryAnalysis(
        type=kind,
        confidence=confidence,
        has_proper_noun=has_proper,
        has_acronym=has_acronym,
        has_numbers=bool(re.search(r'\d', query)),
        is_scientific=is_scientific,
        is_comparison=is_comparison,
    )


def clean_search_query(query: str) -> str:
    cleaned = query
    for pattern in _CLEAN_PREFIXES:
        cleaned = pattern.sub('', cleaned)
    return re.sub(r'\?+$', '', cleaned).strip()


def prioritized_strategies(query: str, analysis: Optional[QueryAnalysis] = None,
                           limit: int = config.MAX_ALTERNATIVE_QUERIES) -> List[SearchStrategy]:
    """
    Candidate search terms for ``query``, highest priority first, deduplicated
    case-insensitively and capped at ``limit``.
    """
    if analysis is None:
        analysis = analyze_query_for_search(query)

    clean = clean_search_query(query)
    strategies: List[SearchStrategy] = []

    if analysis.has_proper_noun:
        for noun in proper_nouns(query):
            if noun not in QUESTION_STARTERS:
                strategies.append(SearchStrategy("Proper Noun Exact", noun, 10))

    quoted = _QUOTED_RE.search(query)
    if quoted:
        strategies.append(SearchStrategy("Quoted Term", quoted.group(1), 9.5))

    if analysis.has_acronym:
        strategies.append(SearchStrategy("Acronym", _ACRONYM_RE.search(query).group(0), 9))

    strategies.append(SearchStrategy("Cleaned Query", clean, 8))

    entities = extract_entities(query)
    keywords = [k for k in entities['keywords'] if k not in QUESTION_STARTERS]
    for keyword in keywords[:2]:
        strategies.append(SearchStrategy("Entity Keyword", keyword, 7))

    phrase = _TWO_WORD_RE.search(clean)
    if phrase:
        strategies.append(SearchStrategy("Two-word Phrase", phrase.group(0), 6))

    if clean != query:
        strategies.append(SearchStrategy("Original Query", query, 5))

    for idx, variant in enumerate(expand_query(clean)):
        if variant != clean:
            strategies.append(SearchStrategy("Singular/Plural Variant", variant, 4 - idx * 0.1))

    if re.search(r'\(.*\)', clean):
        without = re.sub(r'\s*\(.*?\)\s*', ' ', clean).strip()
        strategies.append(SearchStrategy("Without Parentheticals", without, 3.5))

    words = clean.split()
    if len(words) > 2:
        strategies.append(SearchStrategy("First Word Only", words[0], 3))
    if len(words) > 1 and len(words[-1]) > 3:
        strategies.append(SearchStrategy("Last Word", words[-1], 2.5))

    for idx, concept in enumerate(entities['concepts'][:3]):
        if concept and len(concept) > 3:
            strategies.append(SearchStrategy("Concept Extraction", concept, 2 - idx * 0.2))

    strategies.sort(key=lambda s: -s.priority)

    unique: List[SearchStrategy] = []
    seen = set()
    for strategy in strategies:
        normalized = strategy.term.lower().strip()
        if len(normalized) > 1 and normalized not in seen:
            seen.add(normalized)
            unique.append(strategy)
    return unique[:limit]


def first_success(strategies: Sequence[SearchStrategy],
                  attempt: Callable[[str], Optional[str]]) -> Optional[Tuple[SearchStrategy, str]]:
    """Try strategies in order; stop at the first one that yields a result."""
    for strategy in strategies:
        logger.debug(f"Trying strategy {strategy.name}: {strategy.term!r}")
        result = attempt(strategy.term)
        if result:
            return strategy, result
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# § 4  ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════════════════════

class SearchOrchestrator:
    """
    Turns a user query into encyclopedia lookups.

    Results are cached by the original query string, oldest entry evicted first;
    a cached answer is returned whichever form was asked for.
    Fetch failures of any kind count as "no result" for that term only.
    """

    def __init__(self, fetch: Fetcher,
                 cache_size: int = config.WIKI_CACHE_SIZE,
                 max_strategies: int = config.MAX_ALTERNATIVE_QUERIES):
        self.fetch = fetch
        self.cache_size = cache_size
        self.max_strategies = max_strategies
        self._cache: "OrderedDict[str, str]" = OrderedDict()

    # ── Public API ────────────────────────────────────────────────────────────

    def search(self, query: str, long_form: bool = False) -> Optional[str]:
        key = query
        if key in self._cache:
            logger.debug(f"Search cache hit for {query!r}")
            return self._cache[key]

        generated = generate_search_query(query)
        attempted = None

        if isinstance(generated, list):
            result = self.search_multiple(generated, long_form)
            if result:
                return self._remember(key, result)
        elif generated and generated != query:
            attempted = generated.lower().strip()
            result = self._safe_fetch(generated, long_form)
            if result:
                logger.info(f"Search: {query!r} answered via generated term {generated!r}")
                return self._remember(key, result)

        analysis = analyze_query_for_search(query)
        strategies = [
            s for s in prioritized_strategies(query, analysis, self.max_strategies)
            if s.term.lower().strip() != attempted
        ]
        logger.debug(f"Query type {analysis.type}: {len(strategies)} strategies")

        found = first_success(strategies, lambda term: self._safe_fetch(term, long_form))
        if found is None:
            logger.info(f"Search: all strategies failed for {query!r}")
            return None

        strategy, result = found
        logger.info(f"Search: {query!r} answered by strategy {strategy.name} ({strategy.term!r})")
        return self._remember(key, result)

    def search_multiple(self, terms: Sequence[str], long_form: bool = False) -> Optional[str]:
        """
        Fetch several terms concurrently. Labeled sections when more than one
        succeeds, the bare result when exactly one does, None when none do.
        """
        terms = list(terms)
        if not terms:
            return None
        with ThreadPoolExecutor(max_workers=len(terms)) as pool:
            results = list(pool.map(lambda term: self._safe_fetch(term, long_form), terms))

        found = [(term, content) for term, content in zip(terms, results) if content]
        if not found:
            return None
        if len(found) == 1:
            return found[0][1]
        return '\n'.join(f"**{term}:**\n{content}\n" for term, content in found)

    def clear_cache(self):
        self._cache.clear()

    def cache_size_used(self) -> int:
        return len(self._cache)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _safe_fetch(self, term: str, long_form: bool) -> Optional[str]:
        try:
            return self.fetch(term, long_form)
        except Exception as e:
            logger.warning(f"Fetch failed for {term!r}: {e}")
            return None

    def _remember(self, key: str, result: str) -> str:
        if key not in self._cache and len(self._cache) >= self.cache_size:
            self._cache.popitem(last=False)
        self._cache[key] = result
        return result
