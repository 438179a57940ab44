"""Instant answers that need neither memory nor the network: clock, dice, strings, arithmetic"""

import logging
import math
import random
import re
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple

from . import config

logger = logging.getLogger(__name__)


class UtilityResult(NamedTuple):
    text: str
    source: str
    category: str


# ═══════════════════════════════════════════════════════════════════════════════
# § 1  UTILITY REQUESTS
# ═══════════════════════════════════════════════════════════════════════════════

_SPELL_RE = re.compile(r'spell.*backwards?|reverse', re.I)
_SPELL_NOISE_RE = re.compile(r'\b(spell|backwards?|reverse|word|phrase|say|tell me how to)\b', re.I)
_TIME_RE = re.compile(r'(time|clock)', re.I)
_TIME_FORMAT_RE = re.compile(r'24.*hour|military|12.*hour|standard', re.I)
_24_HOUR_RE = re.compile(r'24.*hour|military', re.I)
_DATE_RE = re.compile(r'(date|year|month|day)', re.I)
_COIN_RE = re.compile(r'flip.*coin|coin.*toss|heads.*tails|flip again', re.I)
_DIE_SIDES_RE = re.compile(r'roll.*\bd(\d+)', re.I)
_DICE_RE = re.compile(r'roll.*dice|roll.*die|roll again', re.I)
_AGAIN_RE = re.compile(r'again|another|one more', re.I)
_RANDOM_RE = re.compile(r'random number|pick a number', re.I)
_RANGE_RE = re.compile(r'between\s+(\d+)\s+and\s+(\d+)|(\d+)[\s-]*(?:to|and|-)\s*(\d+)', re.I)


def reverse_phrase(query: str) -> Tuple[str, str]:
    """Return (phrase, phrase reversed) for a "spell X backwards" request."""
    phrase = _SPELL_NOISE_RE.sub('', query.lower())
    phrase = re.sub(r'[?!.]+$', '', ' '.join(phrase.split())).strip().strip('"\'')
    return phrase, phrase[::-1]


def process_utility(query: str, last_category: Optional[str] = None,
                    rng: Optional[random.Random] = None,
                    now: Optional[datetime] = None) -> Optional[UtilityResult]:
    """
    Answer clock, randomness and string-reversal requests.
    ``last_category`` lets "again" and "in 24 hour format" refer back to the
    previous utility answer. Returns None when nothing applies.
    """
    q = query.lower().strip()
    rng = rng or random.Random()

    if _SPELL_RE.search(q):
        phrase, reversed_phrase = reverse_phrase(q)
        if phrase:
            return UtilityResult(f'"{phrase}" spelled backwards is "{reversed_phrase}"',
                                 "String Processor", "SPELL")

    if _TIME_RE.search(q) or (last_category == "TIME" and _TIME_FORMAT_RE.search(q)):
        now = now or datetime.now()
        if _24_HOUR_RE.search(q):
            clock = f"{now:%H:%M}"
        else:
            clock = f"{now:%I:%M %p}".lstrip('0')
        return UtilityResult(f"The current time is **{clock}**.", "System Clock", "TIME")

    if _DATE_RE.search(q):
        now = now or datetime.now()
        return UtilityResult(f"Today is **{now:%A, %B} {now.day}, {now.year}**.", "System Clock", "DATE")

    if _COIN_RE.search(q) or (last_category == "COIN" and _AGAIN_RE.search(q)):
        side = "Heads" if rng.random() > 0.5 else "Tails"
        return UtilityResult(f"It's **{side}**!", "Random Number Generator", "COIN")

    m = _DIE_SIDES_RE.search(q)
    if m and int(m.group(1)) > 0:
        sides = int(m.group(1))
        return UtilityResult(f"Rolling a d{sides}... **{rng.randint(1, sides)}**!", "Dice Roller", "DICE")

    if _DICE_RE.search(q) or (last_category == "DICE" and _AGAIN_RE.search(q)):
        return UtilityResult(f"Rolling a die... **{rng.randint(1, 6)}**!", "Dice Roller", "DICE")

    if _RANDOM_RE.search(q):
        low, high = 1, 100
        m = _RANGE_RE.search(q)
        if m:
            first, second = (m.group(1), m.group(2)) if m.group(1) else (m.group(3), m.group(4))
            low, high = sorted((int(first), int(second)))
        return UtilityResult(
            f"Here's a random number between {low} and {high}: **{rng.randint(low, high)}**",
            "Random Number Generator", "RNG")

    return None


# ═══════════════════════════════════════════════════════════════════════════════
# § 2  CALCULATOR
# ═══════════════════════════════════════════════════════════════════════════════

_HAS_DIGIT_RE = re.compile(r'\d')
_OPERATOR_RE = re.compile(r'[+\-*/^]|\b(plus|minus|times|divided by|multiplied by|squared|cubed)\b')
_MATH_COMMAND_RE = re.compile(r'^(calculate|compute|solve)\s+.+')
_MATH_PREFIX_RE = re.compile(r'what is|calculate|compute|solve', re.I)
_SYMBOL_SPACING_RE = re.compile(r'\s*([+\-*/^])\s*')
_WORD_OPERATORS = [
    (re.compile(r'\s+plus\s+'), '+'),
    (re.compile(r'\s+minus\s+'), '-'),
    (re.compile(r'\s+times\s+'), '*'),
    (re.compile(r'\s+divided by\s+'), '/'),
    (re.compile(r'\s+multiplied by\s+'), '*'),
    (re.compile(r'\s*\bsquared\b'), '^2'),
    (re.compile(r'\s*\bcubed\b'), '^3'),
]
_EXPRESSION_SPLIT_RE = re.compile(r'[\s,;]+|\band\b', re.I)
_SAFE_EXPRESSION_RE = re.compile(r'^[\d\s+\-*/().]+$')
_POWER_RE = re.compile(r'\*\*\s*-?\s*(\d+(?:\.\d+)?)')


def is_math_query(query: str) -> bool:
    """Digits plus an operator, or an explicit "calculate ..." command."""
    q = query.lower()
    if _HAS_DIGIT_RE.search(q) and _OPERATOR_RE.search(q):
        return True
    return bool(_MATH_COMMAND_RE.match(q.strip()))


def _fmt(val: float) -> str:
    """Format number: drop unnecessary trailing decimals."""
    if isinstance(val, float) and val == int(val) and abs(val) < 1e15:
        return str(int(val))
    return f"{val:.8g}"


def _power_within_bounds(expr: str) -> bool:
    """At most one power, with a literal exponent no larger than MAX_EXPONENT."""
    count = expr.count('**')
    if count == 0:
        return True
    if count > 1:
        return False
    m = _POWER_RE.search(expr)
    return bool(m) and float(m.group(1)) <= config.MAX_EXPONENT


def evaluate_expression(expression: str) -> Optional[Tuple[str, str]]:
    """Evaluate one arithmetic expression; (expression, formatted result) or None."""
    if re.search(r'[a-z]', expression, re.I):
        return None
    expr = expression.replace('^', '**')
    expr = re.sub(r'[^\d\s+\-*/().]', '', expr).strip()
    if not expr or not _SAFE_EXPRESSION_RE.match(expr) or not _HAS_DIGIT_RE.search(expr):
        return None
    if not _power_within_bounds(expr):
        logger.debug(f"Refusing oversized power in {expr!r}")
        return None
    try:
        result = eval(expr, {"__builtins__": {}}, {})  # noqa: S307
        if isinstance(result, float):
            if not math.isfinite(result):
                return None
            return expr, _fmt(result)
        if not isinstance(result, int) or abs(result) >= 10 ** config.MAX_RESULT_DIGITS:
            return None
        return expr, str(result)
    except Exception as e:
        logger.debug(f"Could not evaluate {expr!r}: {e}")
        return None


def calculate(query: str) -> Optional[str]:
    """
    Evaluate every arithmetic expression in the query.

    e.g. "what is 2 + 2"   → "The answer is 4"
         "1+2, 3*4"        → bulleted list of both results
    """
    cleaned = _MATH_PREFIX_RE.sub('', query.lower()).strip()
    cleaned = _SYMBOL_SPACING_RE.sub(r'\1', cleaned)
    for pattern, symbol in _WORD_OPERATORS:
        cleaned = pattern.sub(symbol, cleaned)
    cleaned = _SYMBOL_SPACING_RE.sub(r'\1', cleaned)

    parts = [p.strip() for p in _EXPRESSION_SPLIT_RE.split(cleaned) if p and p.strip()]
    results: List[Tuple[str, str]] = []
    for part in parts:
        evaluated = evaluate_expression(part)
        if evaluated:
            results.append(evaluated)

    if not results:
        return None
    if len(results) == 1:
        return f"The answer is {results[0][1]}"
    lines = '\n'.join(f"• {expr} = **{value}**" for expr, value in results)
    return f"Here are the answers:\n\n{lines}"
