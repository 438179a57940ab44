"""Response contract and the canned replies used when no lookup is needed"""

import logging
import random
import re
from datetime import datetime
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# ── Category tags (read back by the next turn's context) ─────────────────────
INPUT = "INPUT"
ERROR = "ERROR"
SEARCH = "SEARCH"
FACTUAL = "FACTUAL"
DEFINITION = "DEFINITION"
CONVERSATIONAL = "CONVERSATIONAL"
META = "META"
CONFUSION = "CONFUSION"
MATH = "MATH"
CREATIVE = "CREATIVE"
GENERAL = "GENERAL"

NOT_UNDERSTOOD = "I couldn't understand that. Could you try typing it again with standard text?"
APOLOGY = ("I encountered an error while processing your request. "
           "Please try rephrasing your question or asking something else.")


class Response:
    """What every dispatch path returns: text, provenance labels and a category tag"""

    def __init__(self, text: str, sources: Optional[List[str]] = None, category: str = GENERAL):
        self.text = text
        self.sources = list(sources or [])
        self.category = category

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "sources": self.sources,
            "category": self.category,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Response):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        preview = self.text if len(self.text) <= 40 else self.text[:37] + "..."
        return f"Response({preview!r}, sources={self.sources}, category={self.category})"


def not_understood() -> Response:
    return Response(NOT_UNDERSTOOD, ["Input Handler"], INPUT)


def apology() -> Response:
    return Response(APOLOGY, ["Error Handler"], ERROR)


# ═══════════════════════════════════════════════════════════════════════════════
# § 1  CONVERSATIONAL REPLIES
# ═══════════════════════════════════════════════════════════════════════════════

_RECENT_GREETING_RE = re.compile(r'hello|\bhi\b|good|greetings', re.I)
_HOW_ARE_YOU_RE = re.compile(r'how are you|how.*doing', re.I)
_WHATS_UP_RE = re.compile(r"what.*up|\bsup\b", re.I)

_WHATS_UP = [
    "Not much, just indexing facts and ready to assist. What's up with you?",
    "Everything is running smoothly here. What can I do for you?",
    "Just waiting for your next question! What are we looking into?",
]
_GRATITUDE = [
    "You're very welcome! Let me know if you need anything else.",
    "Happy to help!",
    "No problem at all. Is there anything else I can do for you?",
    "Glad I could be of assistance!",
]
_OPEN_ENDED = [
    "That's an interesting point. Tell me more!",
    "I see. How does that impact what you're working on?",
    "I'm listening. Please go on.",
    "That's quite unique. What else can you tell me?",
    "I'd love to hear more about your thoughts on this.",
]

CONVERSATIONAL_INTENTS = frozenset({
    'casual', 'greeting', 'farewell', 'gratitude', 'opinion', 'recommendation',
    'confirmation', 'negation', 'personal_sharing',
})


def _time_greeting(now: Optional[datetime] = None) -> str:
    hour = (now or datetime.now()).hour
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"


def conversational_fallback(query: str, rng: Optional[random.Random] = None) -> str:
    """A polite open-ended reply steered by a few keywords."""
    q = query.lower()
    if re.search(r'(love|like|enjoy|fav)', q):
        return "That sounds really interesting! What is it specifically that you enjoy about it?"
    if re.search(r'(hate|dislike|annoy|bad)', q):
        return "I hear you. It can be frustrating when things aren't right. What would make it better?"
    if re.search(r'(think|thought|opinion)', q):
        return "That's a valid perspective. Have you considered looking at it from another angle?"
    if re.search(r'(maybe|perhaps|guess)', q):
        return "Uncertainty is part of the process. Sometimes it helps to list out the pros and cons."
    if len(q) < 10:
        return "Could you tell me a bit more about that? I'd love to understand better."
    return (rng or random).choice(_OPEN_ENDED)


def conversational_response(intent: str, query: str, last_output: Optional[str] = None,
                            answering_question: bool = False,
                            rng: Optional[random.Random] = None) -> Optional[Response]:
    """
    Reply for small-talk style intents, or None when the intent is not one of them.
    ``answering_question`` is true when the previous turn asked the user something.
    """
    rng = rng or random.Random()
    q = query.lower()

    def chat(text: str, source: str = "Conversational") -> Response:
        return Response(text, [source], CONVERSATIONAL)

    if intent == 'personal_sharing':
        return chat(conversational_fallback(q, rng))

    if intent in ('casual', 'greeting'):
        if intent == 'greeting' and last_output and _RECENT_GREETING_RE.search(last_output):
            return chat("I'm still here! What's on your mind?")
        if _HOW_ARE_YOU_RE.search(q):
            return chat("I'm running smoothly, thanks for asking! I'm ready to help you look things up "
                        "or just chat. How can I help you today?")
        if _WHATS_UP_RE.search(q):
            return chat(rng.choice(_WHATS_UP))
        if re.search(r'who.*you', q) or (re.search(r'what.*you', q) and 'doing' not in q):
            return chat(meta_response("who are you").text, "Identity Core")
        return chat(rng.choice([
            f"{_time_greeting()}! It's great to connect with you. What would you like to explore today?",
            "Hello! I'm ready for anything. What's the plan?",
            "Hey there! Good to see you. How can I help?",
            "Greetings! I'm at your service for questions, facts and quick calculations.",
        ]))

    if intent == 'gratitude':
        return chat(rng.choice(_GRATITUDE))

    if intent == 'farewell':
        return chat("Goodbye! Have a wonderful day. I'll be here if you need me.")

    if intent in ('opinion', 'recommendation'):
        if re.search(r'movie|film', q):
            return chat("I don't watch movies, but classics like 'The Godfather' or sci-fi like 'Interstellar' "
                        "are often highly recommended for their storytelling and visuals.", "Knowledge Base")
        if re.search(r'book|read', q):
            return chat("Reading is excellent. 'Sapiens' by Yuval Noah Harari is a popular choice for "
                        "non-fiction, while '1984' remains a relevant classic.", "Knowledge Base")
        if re.search(r'language', q):
            return chat("Python is great for beginners and AI, while JavaScript is essential for the web. "
                        "It depends on what you want to build!", "Knowledge Base")
        return chat("That's an interesting question. I think exploring different perspectives is always "
                    "valuable. Could you share more details so I can give a better recommendation?")

    if intent in ('confirmation', 'negation'):
        if answering_question:
            if intent == 'confirmation':
                return chat("Great! I'm glad to hear that. Is there anything specific about it you'd like to discuss?")
            return chat("I understand. Everyone has different preferences. What do you prefer instead?")
        return chat("I'm not sure what we're confirming, but I appreciate your enthusiasm! "
                    "What shall we talk about next?")

    return None


# ═══════════════════════════════════════════════════════════════════════════════
# § 2  META, CONFUSION, DECLINES
# ═══════════════════════════════════════════════════════════════════════════════

_CAPABILITIES = (
    "I'm wikisage, a question-answering assistant. I can:\n\n"
    "• Answer questions from my local memory\n"
    "• Look things up on Wikipedia and compare two topics\n"
    "• Define words from my glossary\n"
    "• Perform calculations\n"
    "• Tell the time and date, flip coins and roll dice\n\n"
    "Just ask me anything!"
)
_IDENTITY = (
    "I'm wikisage, an assistant that combines a local knowledge base with live Wikipedia "
    "lookups to answer your questions."
)
_HOW_I_WORK = (
    "I work out what you're asking by matching your message against a set of intent patterns, "
    "keep track of the topic we're discussing, score my local memory for relevant facts, and "
    "search Wikipedia when my memory isn't enough."
)


def meta_response(query: str) -> Response:
    """Answers about the assistant itself."""
    if re.search(r'what can you (do|help)|capabilities|functions', query, re.I):
        text = _CAPABILITIES
    elif re.search(r'who are you|what are you|introduce yourself', query, re.I):
        text = _IDENTITY
    elif re.search(r'how (do|does) (you|it) work', query, re.I):
        text = _HOW_I_WORK
    else:
        text = _CAPABILITIES
    return Response(text, ["System Information"], META)


def confusion_response(last_query: Optional[str], last_output: Optional[str]) -> Response:
    if last_query and last_output:
        text = "I apologize if my last response was unclear."
        if len(last_output) > 500:
            text += " It was quite detailed. Would you like a simpler summary?"
        else:
            text += " Could you tell me which part was confusing, or should I try explaining it differently?"
    else:
        text = ("I apologize if I'm doing something unexpected. I'm just here to help! "
                "Could you rephrase what you need so I can understand better?")
    return Response(text, ["Feedback Handler"], CONFUSION)


GENERATOR_INTENTS = frozenset({
    'creative', 'brainstorm', 'paraphrase', 'tone_adjust', 'summarize', 'simplify', 'code',
})

# "brief" or "overview" inside a question is not a request to summarize
_SUMMARIZE_COMMAND_RE = re.compile(r'^(please\s+)?(summarize|summarise|sum up|tldr|give me a summary)\b', re.I)


def wants_generator(intent: str, query: str) -> bool:
    """True when the turn should be handed to the prose generator collaborator."""
    if intent not in GENERATOR_INTENTS:
        return False
    if intent == 'summarize':
        return bool(_SUMMARIZE_COMMAND_RE.match(query.strip()))
    return True


_GENERATOR_LABELS = {
    'creative': "write stories, essays or letters",
    'brainstorm': "brainstorm ideas",
    'paraphrase': "rephrase text",
    'tone_adjust': "rewrite text in a different tone",
    'summarize': "summarize text",
    'simplify': "simplify text",
    'code': "write code",
}


def decline_generation(intent: str, query: str, topic: Optional[str] = None) -> Response:
    """Stand-in for the prose generators: say politely that this isn't available."""
    task = _GENERATOR_LABELS.get(intent, "generate that kind of content")
    text = f"I can't {task} yet."
    if topic:
        text += f" I can tell you what I know about {topic} instead, just ask."
    else:
        text += " Ask me a question and I'll find you an answer."
    return Response(text, ["Creative Engine"], CREATIVE)


# ═══════════════════════════════════════════════════════════════════════════════
# § 3  PROACTIVE FOLLOW-UPS
# ═══════════════════════════════════════════════════════════════════════════════

def should_ask_follow_up(text: str, chance: float, rng: Optional[random.Random] = None) -> bool:
    """Only substantial answers that don't already ask something, and only sometimes."""
    if len(text) < 50 or '?' in text:
        return False
    return (rng or random).random() < chance


def follow_up_question(topic: str, rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice([
        "Does that make sense to you?",
        f"Have you explored {topic} before?",
        "Would you like more specific details on any part of that?",
        "What are your thoughts on this?",
        "Shall I dig deeper into the history of this?",
    ])
