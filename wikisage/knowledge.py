"""Local knowledge store: memory entries, word lookup table and document frequencies"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple

from .text import tokenize

logger = logging.getLogger(__name__)

CONVERSATIONAL = "conversational"
KNOWLEDGE = "knowledge"

_KIND_ALIASES = {
    "conv": CONVERSATIONAL,
    "conversational": CONVERSATIONAL,
    "chat": CONVERSATIONAL,
    "knowledge": KNOWLEDGE,
    "fact": KNOWLEDGE,
    "wiki": KNOWLEDGE,
}


class MemoryEntry(NamedTuple):
    """One immutable fact unit owned by the relevance engine"""

    question: str
    answer: str
    tokens: Tuple[str, ...]
    token_set: FrozenSet[str]
    kind: str = CONVERSATIONAL

    @classmethod
    def from_record(cls, record: Dict) -> "MemoryEntry":
        question = record.get("question", record.get("q")) or ""
        answer = record.get("answer", record.get("a")) or ""
        raw_kind = str(record.get("kind", record.get("type")) or "conv").lower()
        # Without a question the answer text itself is what gets indexed
        tokens = tuple(tokenize(question or answer))
        return cls(
            question=question,
            answer=answer,
            tokens=tokens,
            token_set=frozenset(tokens),
            kind=_KIND_ALIASES.get(raw_kind, KNOWLEDGE),
        )


class WordDefinition(NamedTuple):
    word: str
    part_of_speech: str
    definition: str

    def render(self) -> str:
        return f"**{self.word}** ({self.part_of_speech}): {self.definition}"


def _is_glossary_record(record: Dict) -> bool:
    if str(record.get("type", "")).lower() == "dict":
        return True
    return "word" in record and ("definition" in record or "def" in record)


class DocumentFrequencyIndex:
    """
    Token → number of entries whose token set contains it.
    Counts come from token sets, so a word repeated inside one entry counts once.
    """

    def __init__(self, counts: Dict[str, int], total_documents: int):
        self._counts = counts
        self.total_documents = total_documents

    @classmethod
    def build(cls, entries: Iterable[MemoryEntry]) -> "DocumentFrequencyIndex":
        counts: Dict[str, int] = {}
        total = 0
        for entry in entries:
            total += 1
            for token in entry.token_set:
                counts[token] = counts.get(token, 0) + 1
        return cls(counts, total)

    def df(self, token: str) -> int:
        return self._counts.get(token, 0)

    def __contains__(self, token: str) -> bool:
        return token in self._counts

    def __len__(self) -> int:
        return len(self._counts)


class KnowledgeStore:
    """
    Read-only session store built from raw fact records.
    load() partitions the records into memory entries and a word lookup
    table and builds the document frequency index; calling it again
    replaces all three.
    """

    def __init__(self, records: Optional[Iterable[Dict]] = None):
        self.entries: List[MemoryEntry] = []
        self.dictionary: Dict[str, WordDefinition] = {}
        self.index = DocumentFrequencyIndex({}, 0)
        self.is_ready = False
        if records is not None:
            self.load(records)

    def load(self, records: Iterable[Dict]) -> bool:
        entries: List[MemoryEntry] = []
        dictionary: Dict[str, WordDefinition] = {}
        skipped = 0

        for record in records:
            if not isinstance(record, dict):
                skipped += 1
                continue
            if _is_glossary_record(record):
                word = str(record["word"])
                dictionary[word.lower()] = WordDefinition(
                    word=word,
                    part_of_speech=record.get("partOfSpeech", record.get("pos", "")),
                    definition=record.get("definition", record.get("def", "")),
                )
                continue
            if not (record.get("answer") or record.get("a")):
                skipped += 1
                continue
            entries.append(MemoryEntry.from_record(record))

        self.entries = entries
        self.dictionary = dictionary
        self.index = DocumentFrequencyIndex.build(entries)
        self.is_ready = True

        logger.info(
            f"Loaded {len(entries)} memory entries, {len(dictionary)} dictionary words "
            f"({len(self.index)} distinct tokens, {skipped} records skipped)"
        )
        return True

    def lookup_word(self, query: str) -> Optional[str]:
        """Render a dictionary entry for the whole query or its last word, if known."""
        clean = re.sub(r'[^a-z\s]', '', query.lower()).strip()
        if not clean:
            return None
        last_word = clean.split()[-1]
        entry = self.dictionary.get(clean) or self.dictionary.get(last_word)
        return entry.render() if entry else None

    def get_statistics(self) -> Dict:
        knowledge = sum(1 for e in self.entries if e.kind == KNOWLEDGE)
        return {
            "total_entries": len(self.entries),
            "knowledge_entries": knowledge,
            "conversational_entries": len(self.entries) - knowledge,
            "dictionary_words": len(self.dictionary),
            "distinct_tokens": len(self.index),
        }

    def __len__(self) -> int:
        return len(self.entries)


def load_records(path: Path) -> List[Dict]:
    """Read a JSON list of fact records from disk."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of records, got {type(data).__name__}")
    return data
