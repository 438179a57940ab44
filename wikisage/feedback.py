"""
Feedback memory for wikisage.
Stores user ratings of answers and tunes generation temperature from them.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from . import config

logger = logging.getLogger(__name__)

GOOD = "good"
BAD = "bad"
CORRECTION = "correction"

_TRANSITIONS_RE = re.compile(
    r'\b(however|furthermore|moreover|additionally|therefore|thus|consequently|nevertheless)\b', re.I)
_INTRO_RE = re.compile(r"\b(in today's world|when we consider|throughout history)\b", re.I)
_CONCLUSION_RE = re.compile(r'\b(in conclusion|to summarize|ultimately)\b', re.I)


class StylePatterns(NamedTuple):
    avg_sentence_length: float
    lexical_diversity: float
    structure_type: str
    transition_words: int
    paragraph_count: int


def average_sentence_length(text: str) -> float:
    sentences = [s for s in re.split(r'[.!?]+', text) if s.strip()]
    if not sentences:
        return 0.0
    return sum(len(s.split(' ')) for s in sentences) / len(sentences)


def lexical_diversity(text: str) -> float:
    words = text.lower().split()
    return len(set(words)) / len(words) if words else 0.0


def structure_type(text: str) -> str:
    if _INTRO_RE.search(text) and _CONCLUSION_RE.search(text):
        return "structured_essay"
    if len(text.split('\n\n')) > 3:
        return "multi_paragraph"
    return "simple"


def detect_style(text: str) -> str:
    if re.search(r'\b(dear|sincerely|regards)\b', text, re.I):
        return "letter"
    if re.search(r'\b(once upon|legend|journey)\b', text, re.I):
        return "narrative"
    if re.search(r'\b(furthermore|moreover|consequently)\b', text, re.I):
        return "academic"
    return "general"


def extract_patterns(text: str) -> StylePatterns:
    return StylePatterns(
        avg_sentence_length=average_sentence_length(text),
        lexical_diversity=lexical_diversity(text),
        structure_type=structure_type(text),
        transition_words=len(_TRANSITIONS_RE.findall(text)),
        paragraph_count=len(text.split('\n\n')),
    )


def categorize_length(word_count: int) -> str:
    if word_count < 100:
        return "short"
    if word_count < 300:
        return "medium"
    return "long"


class FeedbackRecord:
    """One rating of one answer"""

    def __init__(self, query: str, response: str, kind: str,
                 correction: Optional[str] = None,
                 patterns: Optional[StylePatterns] = None,
                 timestamp: Optional[str] = None):
        self.query = query
        self.response = response
        self.kind = kind  # good, bad or correction
        self.correction = correction
        self.patterns = patterns or extract_patterns(response)
        self.word_count = len(response.split(' '))
        self.style = detect_style(response)
        self.timestamp = timestamp or datetime.now().isoformat()

    def to_dict(self) -> Dict:
        return {
            "query": self.query,
            "response": self.response,
            "kind": self.kind,
            "correction": self.correction,
            "patterns": self.patterns._asdict(),
            "word_count": self.word_count,
            "style": self.style,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "FeedbackRecord":
        patterns = data.get("patterns")
        return cls(
            query=data["query"],
            response=data["response"],
            kind=data["kind"],
            correction=data.get("correction"),
            patterns=StylePatterns(**patterns) if patterns else None,
            timestamp=data.get("timestamp"),
        )


class FeedbackSummary(NamedTuple):
    success_patterns: List[StylePatterns]
    failure_patterns: List[StylePatterns]
    corrections: List[Dict]
    preferred_length: Optional[str]
    preferred_style: Optional[str]


def summarize(records: List[FeedbackRecord]) -> FeedbackSummary:
    """Fold feedback records, oldest first, into the patterns tuning reads."""
    success, failure, corrections = [], [], []
    preferred_length = preferred_style = None
    for record in records:
        if record.kind == GOOD:
            success.append(record.patterns)
            preferred_length = categorize_length(record.word_count)
            preferred_style = record.style
        elif record.kind == BAD:
            failure.append(record.patterns)
        elif record.kind == CORRECTION and record.correction:
            corrections.append({
                "original": record.response,
                "corrected": record.correction,
                "timestamp": record.timestamp,
            })
    return FeedbackSummary(success, failure, corrections, preferred_length, preferred_style)


def tune_temperature(temperature: float, summary: FeedbackSummary) -> float:
    """
    Nudge temperature toward the sentence lengths users liked.
    Needs more than MIN_SUCCESS_PATTERNS positive ratings before it moves at all.
    """
    patterns = summary.success_patterns
    if len(patterns) <= config.MIN_SUCCESS_PATTERNS:
        return temperature

    average = sum(p.avg_sentence_length for p in patterns) / len(patterns)
    if average > 20:
        temperature = min(config.MAX_TEMPERATURE, temperature + config.TEMPERATURE_STEP)
    elif average < 12:
        temperature = max(config.MIN_TEMPERATURE, temperature - config.TEMPERATURE_STEP)

    logger.info(f"Tuned temperature to {temperature:.2f} from {len(patterns)} liked answers")
    return round(temperature, 4)


class FeedbackStore:
    """
    JSON-file persistence for feedback records.
    Best effort: read and write failures are logged, never raised.
    """

    def __init__(self, path: Path = config.FEEDBACK_FILE):
        self.path = Path(path)

    def _read(self) -> List[FeedbackRecord]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [FeedbackRecord.from_dict(item) for item in data]

    def load(self) -> List[FeedbackRecord]:
        try:
            records = self._read()
        except Exception as e:
            logger.error(f"Failed to load feedback: {e}")
            return []
        logger.info(f"Loaded {len(records)} feedback records")
        return records

    def save(self, record: FeedbackRecord) -> bool:
        """Append one record to the file. An unreadable file is left untouched."""
        try:
            records = self._read()
        except Exception as e:
            logger.error(f"Not saving feedback, existing file unreadable: {e}")
            return False
        records.append(record)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)
            return True
        except Exception as e:
            logger.error(f"Failed to save feedback: {e}")
            return False
