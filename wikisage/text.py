"""Tokenizer and lexical utilities shared by every pipeline stage"""

import re
from typing import Dict, List, Optional

from . import config

# ── Stop words ────────────────────────────────────────────────────────────────
_STOP = frozenset({
    'the', 'a', 'an', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'about', 'is', 'are', 'was', 'were', 'and', 'or', 'but', 'as', 'which',
})

# Words never worth treating as an entity on their own
_COMMON_WORDS = frozenset({
    'structure', 'system', 'type', 'kind', 'form', 'way', 'thing', 'part', 'piece',
    'what', 'how', 'why', 'when', 'where', 'who', 'which', 'that', 'this', 'these',
    'those', 'about', 'from', 'with', 'into', 'through', 'during', 'before', 'after',
})

_KEYWORD_STOP = _STOP | frozenset({
    'what', 'who', 'how', 'why', 'when', 'where', 'that', 'this',
    'write', 'story', 'make', 'create', 'generate',
})

# Capitalised words that start questions rather than name things
QUESTION_STARTERS = frozenset({
    'What', 'Who', 'Where', 'When', 'Why', 'How', 'Which', 'Tell', 'Write', 'Please',
    'Is', 'Are', 'Can', 'Could', 'Do', 'Does', 'Explain', 'Describe', 'Define',
})

# ── Typo and abbreviation tables ──────────────────────────────────────────────
_TYPOS = {
    "whtats": "what is", "whts": "what is", "whst": "what is", "waht": "what",
    "wat": "what", "wht": "what", "wha": "what",
    "dos": "does", "do's": "does",
    "thnks": "thanks", "thx": "thanks", "tnx": "thanks",
    "hwo": "how", "hw": "how",
    "becuase": "because", "becasue": "because", "cuz": "because", "cos": "because",
    "rlly": "really", "rly": "really",
    "pls": "please", "plz": "please",
    "srry": "sorry", "sry": "sorry",
    "dont": "don't", "cant": "can't", "wont": "won't",
    "im": "i'm", "iam": "i am",
    "ur": "your", "ure": "you're",
    "whats": "what is", "what's": "what is",
}

_ABBREVIATIONS = [
    (re.compile(r"\bai\b"), "artificial intelligence"),
    (re.compile(r"\bml\b"), "machine learning"),
    (re.compile(r"\bwho'?s\b"), "who is"),
    (re.compile(r"\bhow'?s\b"), "how is"),
    (re.compile(r"\binfo\b"), "information"),
    (re.compile(r"\bpic\b"), "picture"),
    (re.compile(r"\bvid\b"), "video"),
    (re.compile(r"\bbtw\b"), "by the way"),
    (re.compile(r"\bfyi\b"), "for your information"),
    (re.compile(r"\baka\b"), "also known as"),
    (re.compile(r"\be\.g\.(?=\s|$)"), "for example"),
    (re.compile(r"\bi\.e\.(?=\s|$)"), "that is"),
]

_EMOJI_RE = re.compile(
    '[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF'
    '\U0001F1E0-\U0001F1FF\U0001F900-\U0001F9FF\u2600-\u27BF]'
)
_NON_ALNUM_RE = re.compile(r'[^a-z0-9\s]')
_PROPER_NOUN_RE = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b')
_MULTI_WORD_PROPER_RE = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b')
_SINGLE_CAPITAL_RE = re.compile(r'\b[A-Z][a-z]+\b')
_QUOTED_RE = re.compile(r'"([^"]+)"')


def tokenize(text: Optional[str]) -> List[str]:
    """Lowercase, strip punctuation, split on whitespace and drop short tokens."""
    if not text:
        return []
    cleaned = _NON_ALNUM_RE.sub('', text.lower())
    return [w for w in cleaned.split() if len(w) >= config.MIN_TOKEN_LENGTH]


def sanitize_input(query: Optional[str]) -> str:
    """Remove emoji and surrounding whitespace."""
    if not query:
        return ""
    return _EMOJI_RE.sub('', query).strip()


def preprocess_query(query: str) -> str:
    """Lowercase, fix common typos and expand colloquial abbreviations."""
    words = query.lower().strip().split()
    cleaned = ' '.join(_TYPOS.get(w, w) for w in words)
    for pattern, replacement in _ABBREVIATIONS:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned


def extract_keywords(query: str, limit: int = 3) -> List[str]:
    words = query.lower().split()
    return [w for w in words if len(w) > 2 and w not in _KEYWORD_STOP][:limit]


def proper_nouns(text: str) -> List[str]:
    """Capitalised word runs in order of appearance, e.g. ``New York``."""
    return _PROPER_NOUN_RE.findall(text)


def extract_entities(text: str) -> Dict[str, List[str]]:
    """
    Pull candidate entities out of free text.
    Returns {'keywords': [...], 'concepts': [...]}: multi-word proper nouns first,
    then single capitalised words, quoted phrases, and (only when nothing better
    was found) the first few meaningful lowercase words.
    """
    keywords: List[str] = []
    concepts: List[str] = []

    multi = _MULTI_WORD_PROPER_RE.findall(text)
    for phrase in multi:
        keywords.append(phrase)
        concepts.append(phrase)

    for word in _SINGLE_CAPITAL_RE.findall(text):
        in_phrase = any(word in phrase for phrase in multi)
        if not in_phrase and word.lower() not in _COMMON_WORDS:
            keywords.append(word)

    for phrase in _QUOTED_RE.findall(text):
        concepts.append(phrase)

    if not concepts:
        meaningful = [
            w for w in text.lower().split()
            if len(w) > 3 and w not in _STOP and w not in _COMMON_WORDS
        ]
        concepts.extend(meaningful[:5])

    return {'keywords': keywords, 'concepts': concepts}


# ── Topic extraction ──────────────────────────────────────────────────────────

_GOLDEN_TOPIC_RE = re.compile(
    r'(?:write|create|make|generate).*(?:essay|story|article|poem)\s+'
    r'(?:on|about|regarding|titled)\s+(.+)', re.I)
_POLITE_RE = re.compile(
    r"^(please|could you|can you|would you|i want you to|i'd like you to|hey|hi|hello)\s+", re.I)
_COMMANDS = sorted([
    'write a', 'write an', 'write', 'compose', 'create', 'generate', 'make', 'draft',
    'tell me about', 'tell me', 'give me info on', 'give me information about',
    'search for', 'look up', 'find', 'define', 'explain', 'describe',
    'what is', 'what are', 'what was', 'who is', 'who was',
], key=len, reverse=True)
_FORMATS = ('essay', 'story', 'poem', 'article', 'paragraph', 'summary', 'overview',
            'biography', 'letter', 'email', 'script')
_FORMAT_RE = re.compile(r'(^|\s+)(' + '|'.join(_FORMATS) + r')\b', re.I)
_LENGTH_ADJ_RE = re.compile(r'^(short|long|detailed|brief|quick)\s+', re.I)
_WORD_COUNT_RE = re.compile(r'\s+(\d+\s+words?)\b', re.I)
_LEAD_PREP_RE = re.compile(
    r'^(about|on|regarding|concerning|covering|dealing with|for)\s+', re.I)


def extract_topic(query: Optional[str]) -> Optional[str]:
    """
    Extract the subject of a request, or None when nothing usable remains.

    e.g. "write an essay on lady macbeth"  → "lady macbeth"
         "tell me about black holes"       → "black holes"
         "what is photosynthesis?"         → "photosynthesis"
    """
    if not query:
        return None

    golden = _GOLDEN_TOPIC_RE.search(query)
    if golden:
        extracted = golden.group(1).strip().rstrip('?.!')
        if len(extracted) < 100:
            return extracted

    topic = _POLITE_RE.sub('', query.lower().strip())

    for cmd in _COMMANDS:
        if re.match(re.escape(cmd) + r'\b', topic):
            topic = topic[len(cmd):].strip()
            break

    topic = _FORMAT_RE.sub('', topic).strip()
    topic = _LENGTH_ADJ_RE.sub('', topic)
    topic = _WORD_COUNT_RE.sub('', topic)
    topic = _LEAD_PREP_RE.sub('', topic)
    topic = topic.rstrip('?.!').strip()
    topic = re.sub(r'^the topic of\s+', '', topic, flags=re.I)

    if len(topic) < 2 or topic in _FORMATS:
        nouns = proper_nouns(query)
        if nouns:
            return max(nouns, key=len)
        return None
    return topic


# ── Surface helpers ───────────────────────────────────────────────────────────

_KNOWN_PROPER = {
    "shakespeare": "Shakespeare", "newton": "Newton", "einstein": "Einstein",
    "darwin": "Darwin", "galileo": "Galileo", "tesla": "Tesla",
    "mozart": "Mozart", "beethoven": "Beethoven", "da vinci": "Da Vinci",
    "picasso": "Picasso", "plato": "Plato", "aristotle": "Aristotle",
    "socrates": "Socrates", "napoleon": "Napoleon", "cleopatra": "Cleopatra",
    "australia": "Australia", "america": "America", "england": "England",
    "france": "France", "germany": "Germany", "italy": "Italy", "spain": "Spain",
    "china": "China", "japan": "Japan", "paris": "Paris", "london": "London",
    "rome": "Rome", "new york": "New York", "world war": "World War",
}
_MINOR_WORDS = frozenset({'the', 'a', 'an', 'of', 'in', 'on', 'at', 'to', 'for', 'and', 'or', 'but'})


def capitalize_proper_nouns(topic: Optional[str]) -> Optional[str]:
    """Title-case a topic for display, keeping short function words lowercase."""
    if not topic:
        return topic
    result = topic
    for lower, proper in _KNOWN_PROPER.items():
        result = re.sub(r'\b' + re.escape(lower) + r'\b', proper, result, flags=re.I)

    words = result.split(' ')
    out = []
    for idx, word in enumerate(words):
        if idx == 0 or (len(word) > 2 and word.lower() not in _MINOR_WORDS):
            word = word[:1].upper() + word[1:]
        out.append(word)
    return ' '.join(out)


def expand_query(query: str) -> List[str]:
    """The query followed by single-word singular/plural variants, deduplicated."""
    expansions = [query]
    words = query.lower().split()
    for idx, word in enumerate(words):
        if len(word) <= 3:
            continue
        variant = list(words)
        variant[idx] = word[:-1] if word.endswith('s') else word + 's'
        expansions.append(' '.join(variant))
    return list(dict.fromkeys(expansions))


def split_sentences(text: str) -> List[str]:
    """Split on sentence punctuation, dropping the punctuation itself."""
    return [s.strip() for s in re.split(r'[.!?]+', text) if s.strip()]
