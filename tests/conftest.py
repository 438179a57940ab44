"""Shared fixtures: a small memory and a recording stand-in for Wikipedia."""

import threading

import pytest

from wikisage.knowledge import KnowledgeStore

SAMPLE_RECORDS = [
    {
        "question": "What is photosynthesis?",
        "answer": "Photosynthesis is the process by which green plants use sunlight to "
                  "synthesize food from carbon dioxide and water.",
        "type": "knowledge",
    },
    {
        "question": "How do plants grow?",
        "answer": "Plants grow by absorbing water and nutrients through their roots and "
                  "converting sunlight into energy.",
        "type": "knowledge",
    },
    {
        "question": "What is the capital of France?",
        "answer": "Paris is the capital of France.",
        "type": "knowledge",
    },
    {
        "question": "Who wrote Hamlet?",
        "answer": "William Shakespeare wrote Hamlet around 1600.",
        "type": "knowledge",
    },
    {
        "question": "Why is the sky blue?",
        "answer": "The sky appears blue because air molecules scatter short blue wavelengths "
                  "of sunlight more than red ones.",
        "type": "knowledge",
    },
    {"word": "ephemeral", "partOfSpeech": "adjective", "definition": "lasting a very short time", "type": "dict"},
]


class RecordingFetch:
    """Fetcher double: canned pages by lowercase term, optional failures, every call recorded."""

    def __init__(self, pages=None, fail=()):
        self.pages = {k.lower(): v for k, v in (pages or {}).items()}
        self.fail = {t.lower() for t in fail}
        self.calls = []
        self.long_forms = []
        self._lock = threading.Lock()

    def __call__(self, term, long_form=False):
        with self._lock:
            self.calls.append(term)
            self.long_forms.append(long_form)
        if term.lower() in self.fail:
            raise ConnectionError(f"network down for {term}")
        return self.pages.get(term.lower())


@pytest.fixture
def records():
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture
def store(records):
    return KnowledgeStore(records)


@pytest.fixture
def fetch():
    return RecordingFetch()
