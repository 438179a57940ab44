"""Configuration module for wikisage"""

from pathlib import Path

# Base directories (created lazily by whoever writes there first)
BASE_DIR = Path.home() / ".wikisage"
DATA_DIR = BASE_DIR / "data"
FEEDBACK_FILE = DATA_DIR / "feedback.json"
DEFAULT_MEMORY_FILE = DATA_DIR / "memory.json"

# Tokenizer
MIN_TOKEN_LENGTH = 3  # tokens shorter than this are dropped

# Relevance engine
CRITICAL_TERM_FRACTION = 0.3   # top share of query tokens (by IDF) treated as critical
CRITICAL_MISS_PENALTY = 0.1    # coverage multiplier when no critical token is present
MIN_COVERAGE = 0.25            # documents below this coverage are discarded
MAX_RESULTS = 15
EXACT_MATCH_SCORE = 1.1        # above the normal [0, 1] range: "verified exact"
EXACT_ANSWER_MIN_TOKENS = 5    # answer-containment shortcut needs more than 4 tokens

# Dispatch thresholds
VERIFIED_THRESHOLD = 0.95
STRONG_THRESHOLD = 0.40
WEAK_THRESHOLD = 0.08

# Weak-match synthesis
SYNTHESIS_TOP_K = 6
CLUSTER_SIMILARITY = 0.3
FACTS_PER_CLUSTER = 3
FACT_MIN_LENGTH = 20
LOW_CONFIDENCE_AVERAGE = 0.25

# Conversation / context tracking
RECENT_TURNS = 3
MAX_HISTORY_TURNS = 50
MAX_RECENT_OUTPUTS = 15

# External search
MAX_ALTERNATIVE_QUERIES = 8
WIKI_CACHE_SIZE = 50
SHORT_FORM_SENTENCES = 5
LONG_FORM_SENTENCES = 12
MIN_SUMMARY_LENGTH = 50
SMALL_MEMORY_THRESHOLD = 50  # below this many entries, every query may go to the encyclopedia
FOLLOW_UP_CHANCE = 0.3      # share of substantial encyclopedia answers that end with a question

# HTTP
USER_AGENT = "wikisage/0.1 (https://github.com/wikisage/wikisage)"
REQUEST_TIMEOUT = 10  # seconds
WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"

# Feedback-driven tuning
DEFAULT_TEMPERATURE = 0.85
MIN_TEMPERATURE = 0.75
MAX_TEMPERATURE = 0.9
TEMPERATURE_STEP = 0.02
MIN_SUCCESS_PATTERNS = 5

# Calculator
MAX_EXPONENT = 1000         # larger powers are refused before evaluation
MAX_RESULT_DIGITS = 1000    # integer answers longer than this are refused

# Interactive shell
TYPE_DELAY = 0.013          # seconds per character
FAST_TYPE_DELAY = 0.006
FAST_TYPE_AFTER = 300       # characters
SPINNER_INTERVAL = 0.09

# CLI settings
CLI_PROMPT = "You"
CLI_ASSISTANT = "wikisage"
CLI_WIDTH = 80
