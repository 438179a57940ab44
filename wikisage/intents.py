"""Multi-signal intent classifier: independent rules first, resolution second"""

import logging
import re
from typing import Callable, List, NamedTuple, Optional, Tuple

from .conversation import QueryContext
from .utilities import is_math_query

logger = logging.getLogger(__name__)


class IntentSignal(NamedTuple):
    kind: str
    confidence: float


class IntentAnalysis(NamedTuple):
    primary: str
    secondary: Tuple[str, ...]
    confidence: float
    signals: Tuple[IntentSignal, ...]


class _Utterance(NamedTuple):
    text: str           # lowercased, stripped
    raw: str            # as typed, for case-sensitive tests
    last_category: Optional[str]


class IntentRule(NamedTuple):
    kind: str
    confidence: float
    predicate: Callable[[_Utterance], bool]


def _rx(pattern: str) -> Callable[[_Utterance], bool]:
    compiled = re.compile(pattern, re.I)
    return lambda utterance: bool(compiled.search(utterance.text))


def _all(*predicates: Callable[[_Utterance], bool]) -> Callable[[_Utterance], bool]:
    return lambda utterance: all(p(utterance) for p in predicates)


def _none_of(pattern: str) -> Callable[[_Utterance], bool]:
    compiled = re.compile(pattern, re.I)
    return lambda utterance: not compiled.search(utterance.text)


def _after(*categories: str) -> Callable[[_Utterance], bool]:
    return lambda utterance: utterance.last_category in categories


# ═══════════════════════════════════════════════════════════════════════════════
# § 1  SHARED DETECTORS
# ═══════════════════════════════════════════════════════════════════════════════

_META_PATTERNS = [re.compile(p, re.I) for p in (
    r'^(who|what) (are|is) (you|wikisage)',
    r'^your name',
    r'^tell me about (yourself|you|wikisage)',
    r'^introduce yourself',
    r'^can you (help|assist|do|make|create|write|code|answer|explain|tell|show|teach)',
    r'^are you (able|capable)',
    r'^do you (know|understand|have|support|offer|provide|code|program)',
    r'^will you',
    r'^could you',
    r'what can you do',
    r'what are you (for|good at|capable of)',
    r'what (is|are) your (purpose|function|capabilities|features|abilities)',
    r'how do you work',
    r'what do you do',
    r'how (are you|does this) (made|built|created)',
    r'what version',
    r'when (were you|was this) (created|made|built|updated)',
)]

_CODING_PATTERNS = [re.compile(p, re.I) for p in (
    r'^code\s+(a|an|the|something|me)',
    r'^(write|create|make|generate|build)\s+(?:a|an|the|some)?\s*(?:code|program|script|function|class)',
    r'^(write|create|make|generate).*(?:in|using|with)\s+(python|javascript|java|c\+\+|ruby|php)',
    r'code.*(?:generator|calculator|converter|function)',
    r'write.*code.*for',
)]

_FOLLOWUP_WORDS_RE = re.compile(
    r'\b(it|that|this|longer|shorter|more|detail|elaborate|continue|again|summarize|summarise|summary)\b',
    re.I)


def is_meta_query(query: str) -> bool:
    """Questions about the assistant itself: identity, capabilities, version."""
    return any(p.search(query) for p in _META_PATTERNS)


def is_coding_request(query: str) -> bool:
    return any(p.search(query) for p in _CODING_PATTERNS)


def is_contextual_followup(query: str) -> bool:
    return bool(_FOLLOWUP_WORDS_RE.search(query))


# ═══════════════════════════════════════════════════════════════════════════════
# § 2  RULE BANK
# ═══════════════════════════════════════════════════════════════════════════════
# Every rule is evaluated on every query; order here only breaks confidence ties.

RULES: List[IntentRule] = [
    # conversational
    IntentRule('greeting', 0.95, _rx(
        r'^(hi|hello|hey|greetings|howdy|sup|yo|good (morning|afternoon|evening)|hola|bonjour)\b')),
    IntentRule('farewell', 0.95, _rx(
        r'^(bye|goodbye|see you|farewell|take care|later|cya|so long|good night)\b')),
    IntentRule('gratitude', 0.95, _rx(r'\b(thanks?|thx|appreciate|grateful|cheers)\b')),
    IntentRule('casual', 0.92, _all(
        _rx(r'^(how are you|how.*(it|things|life).*going|what.*up|good day|nice to meet|who.*you|tell me about yourself)'),
        _none_of(r'who (is|are|was|were) (the|a|an)?\s*[a-z]'))),
    IntentRule('casual', 0.9, _rx(r'(you.*(cool|awesome|smart|helpful|funny|great)|good job|well done)')),
    IntentRule('personal_sharing', 0.9, _rx(
        r'^i (really |just )?(love|like|hate|dislike|enjoy|prefer|think|feel|believe|am)\b')),

    # questions
    IntentRule('question', 0.9, _rx(r'^(what|who|where|when|which)\s')),
    IntentRule('how_to', 0.92, _rx(r'^how (do|can|to|should|would)\s|how to\s|way to\s')),
    IntentRule('why_cause', 0.9, _rx(r'^why\s|what (causes|caused|makes|reason)')),
    IntentRule('definition', 0.95, _rx(
        r'(what (is|are|was|were) (the )?(definition|meaning) of|define|what does.*mean|meaning of)')),
    IntentRule('comparison', 0.9, _rx(
        r'(compare|difference between|versus|\bvs\b|better than|worse than|similar to|distinguish)')),
    IntentRule('list', 0.88, _rx(
        r'(\blist\b|name.*all|what are (the|some)|give me.*examples|types of|kinds of|categories)')),

    # creative
    IntentRule('creative', 0.9, _all(
        _rx(r'write|create|make|generate|compose|prepare'),
        _rx(r'(story|essay|article|poem|letter|email|script|speech|lyrics)'))),
    IntentRule('creative', 0.9, _rx(r'make (me )?a (story|essay|poem|recipe|plan)')),
    IntentRule('brainstorm', 0.85, _rx(
        r'(brainstorm|ideas for|suggest|come up with|think of|inspiration|options for)')),

    # transformation
    IntentRule('paraphrase', 0.95, _rx(
        r'(rephrase|paraphrase|reword|say.*different|put.*different|another way|rewrite|word it differently)')),
    IntentRule('translate', 0.92, _rx(r'(translate|translation|in.*language|how do you say.*in)')),
    IntentRule('correction', 0.88, _rx(
        r'(correct|fix|grammar|spelling|mistake|error|wrong|proofread|edit)')),

    # analytical
    IntentRule('explain', 0.85, _rx(
        r'(explain|describe|tell.*about|define|clarify|elaborate|break down|walk.*through|help me understand)')),
    IntentRule('confusion', 0.99, _rx(
        r"^(huh|what\??|eh\??)$|(what (do|did) you (mean|say)|i don't (get|understand)|confused|what are you doing|make sense)")),
    IntentRule('explain', 0.6, lambda utterance: 'what is' in utterance.text and len(utterance.text.split(' ')) > 3),
    IntentRule('summarize', 0.95, _rx(
        r'(summarize|summarise|sum up|summary|brief|short version|tldr|condense|digest|overview|main points)')),
    IntentRule('analysis', 0.88, _rx(
        r'(analyze|analyse|analysis|examine|evaluate|assess|review|pros and cons|benefits of)')),

    # recommendation / opinion
    IntentRule('recommendation', 0.87, _rx(
        r'(recommend|suggestion|should i|what.*best|advice|tips|which.*choose|good.*for)')),
    IntentRule('opinion', 0.82, _all(
        _rx(r'(what.*think|your opinion|do you (like|prefer)|thoughts on|believe)'),
        _none_of(r'what (do|does) \w+ think'))),

    # answers to a pending question
    IntentRule('confirmation', 0.95, _rx(
        r'^(yes|yeah|yep|sure|absolutely|correct|right|i do|please|go ahead)[.!]?$')),
    IntentRule('confirmation', 0.7, _rx(r'^(yes|yeah|yep|sure)\b.+')),
    IntentRule('negation', 0.95, _rx(r"^(no|nope|nah|not really|i don't|wrong|stop|cancel)[.!]?$")),
    IntentRule('negation', 0.7, _rx(r'^(no|nope|nah)\b.+')),

    # computational
    IntentRule('math', 0.95, lambda utterance: is_math_query(utterance.text)),
    IntentRule('code', 0.9, lambda utterance: is_coding_request(utterance.text)),
    IntentRule('calculation', 0.88, _all(
        _rx(r'(calculate|compute|figure out|work out|how (much|many)|solve)'),
        _rx(r'\d|(plus|minus|times|divided)'))),

    # context
    IntentRule('meta', 0.9, lambda utterance: is_meta_query(utterance.text)),
    IntentRule('followup', 0.8, lambda utterance: is_contextual_followup(utterance.text)),
    IntentRule('followup', 0.85, _rx(r'(what about it|tell me more about it)')),

    # modification
    IntentRule('tone_adjust', 0.85, _rx(
        r'(make.*more|make.*less|convert.*to|change.*tone|more formal|less formal|casual|professional|wittier|funnier)')),
    IntentRule('expand', 0.95, _rx(
        r'(expand|elaborate|more detail|tell me more|go deeper|longer version|make it longer|continue)')),
    IntentRule('simplify', 0.9, _rx(
        r'(simplify|simpler|easier|eli5|explain like|dumb.*down|basic|too complex)')),

    # procedure
    IntentRule('step_by_step', 0.87, _rx(
        r'(step by step|steps|instructions|guide|tutorial|how.*process|procedure for)')),
    IntentRule('troubleshoot', 0.85, _rx(
        r'(troubleshoot|problem|issue|not working|help.*fix|debug|error|fail)')),

    # informational
    IntentRule('historical', 0.83, _rx(
        r'(history of|historical|in the past|back then|ancient|origin|biography|life of)')),
    IntentRule('future', 0.8, _rx(r'(future|will.*be|predict|forecast|what.*happen|upcoming|trends)')),
    IntentRule('verification', 0.85, _rx(
        r'(is (it|this|that) (true|correct|right)|verify|confirm|fact check|are you sure)')),

    # modifiers for the previous utility answer
    IntentRule('utility', 0.99, _all(_after('TIME'), _rx(r'24.*hour|military|12.*hour|standard'))),
    IntentRule('utility', 0.99, _all(_after('DICE', 'COIN'), _rx(r'again|another|one more|roll|flip'))),

    # short acknowledgements never go to the dictionary
    IntentRule('casual', 1.0, _rx(
        r'^(cool|nice|awesome|great|ok|okay|wow|sweet|good|thanks|thank you|thx|thanks!|understood|got it)$')),

    # utilities
    IntentRule('utility', 0.96, _all(
        _rx(r'(time|date|clock|year|month|day is it)'), _rx(r'(what|current|tell me)'))),
    IntentRule('utility', 0.96, _rx(
        r'(random number|pick a number|roll a dice|roll a die|roll (a )?d\d+|flip a coin|coin toss|heads or tails)')),
    IntentRule('utility', 0.96, _rx(r'(spell.*backwards?|reverse.*word|backwards? spelling)')),
]

_FALLBACK_SIGNAL = IntentSignal('question', 0.5)


# ═══════════════════════════════════════════════════════════════════════════════
# § 3  EVALUATION AND RESOLUTION
# ═══════════════════════════════════════════════════════════════════════════════

def classify(query: str, context: Optional[QueryContext] = None,
             rules: Optional[List[IntentRule]] = None) -> List[IntentSignal]:
    """
    Run every rule against the query and return the signals that fired,
    highest confidence first (ties keep rule order).
    """
    utterance = _Utterance(
        text=query.lower().strip(),
        raw=query,
        last_category=context.last_category if context else None,
    )
    signals = [
        IntentSignal(rule.kind, rule.confidence)
        for rule in (RULES if rules is None else rules)
        if rule.predicate(utterance)
    ]

    # Well-formed but unmatched queries still get a weak question signal
    if not signals and len(utterance.text.split(' ')) > 1 and not is_math_query(utterance.text):
        if re.search(r'[A-Z]', query) or len(utterance.text.split(' ')) > 3:
            signals.append(_FALLBACK_SIGNAL)

    return sorted(signals, key=lambda s: -s.confidence)


def resolve(signals: List[IntentSignal], context: Optional[QueryContext] = None) -> IntentAnalysis:
    """
    Reduce fired signals to a primary intent.

    The highest-confidence signal is primary, except that a confirmation or
    negation signal is promoted when the previous assistant turn asked a question.
    """
    if not signals:
        return IntentAnalysis('general', (), 0.5, ())

    ordered = sorted(signals, key=lambda s: -s.confidence)
    primary = ordered[0]

    if context is not None and context.last_ai_question:
        answer = next((s for s in ordered if s.kind in ('confirmation', 'negation')), None)
        if answer is not None and answer.kind != primary.kind:
            logger.debug(f"Promoting {answer.kind} over {primary.kind}: answering a pending question")
            primary = answer

    secondary = tuple(s.kind for s in ordered if s is not primary)
    return IntentAnalysis(primary.kind, secondary, primary.confidence, tuple(ordered))


def analyze(query: str, context: Optional[QueryContext] = None) -> IntentAnalysis:
    analysis = resolve(classify(query, context), context)
    logger.info(f"Intent: {analysis.primary} ({analysis.confidence:.2f}), secondary={list(analysis.secondary)}")
    return analysis
