"""
Intent Classifier
=================
Maps a raw student query to one of five intents.

Pattern groups answer most queries at zero latency; only queries no group
matches pay for one remote classification call. classify() never raises.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable

from .credentials import CredentialSet
from .dispatcher import Dispatcher
from .errors import CredentialMissing
from .types import Intent

logger = logging.getLogger(__name__)

RemoteClassifier = Callable[[str], Awaitable[str]]

CLASSIFIER_MODEL = "gemini-2.5-flash-lite"

# Whole-utterance match; "hey I'm so depressed" must reach the pattern groups
GREETING_PATTERN = re.compile(
    r"^\s*(hi|hello|hey|greetings|ok|okay|thanks|thank you)(\s+there)?[\s!.,?]*$",
    re.IGNORECASE,
)

# Checked in this order; the first group with any match wins
INTENT_PATTERNS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (
        Intent.PLANNING,
        (
            r"\bplan",
            r"\bschedul",
            r"\btimetable",
            r"\broutine",
            r"\bstudy (path|road)",
            r"\bbacklog",
            r"\bstrateg",
            r"\bprioriti",
            r"\bagenda",
            r"\bwhat (should i|to) study",
        ),
    ),
    (
        Intent.EMOTIONAL,
        (
            r"\bsad\b",
            r"\bdepress",
            r"\banxi",
            r"\bscared\b",
            r"\btired\b",
            r"\bburn(t|ed)? ?out",
            r"\bhopeless",
            r"\bgive up\b",
            r"\bmotivat",
            r"\bfear",
            r"\bstress",
            r"\boverwhelm",
            r"\bfail",
            r"\bcan'?t do\b",
        ),
    ),
    (
        Intent.ANALYSIS,
        (
            r"\banaly[sz]",
            r"\btrend",
            r"\bweak(ness|est)?\b",
            r"\bwhy\b",
            r"\bmarks?\b",
            r"\bscores?\b",
            r"\branks?\b",
            r"\bgraph",
            r"\bchart",
            r"\breports?\b",
            r"\bperformance",
            r"\baccuracy",
            r"\bmistakes?\b",
            r"\berrors?\b",
            r"\bcompar",
            r"\bimprov",
        ),
    ),
    (
        Intent.CONCEPT,
        (
            r"\bexplain",
            r"\bwhat is\b",
            r"\bderiv",
            r"\bformula",
            r"\bhow (do|does|to)\b",
            r"\bsolve",
            r"\bdefin",
            r"\bdifference between\b",
            r"\bconcept",
            r"\btheor(y|em)",
            r"\bphysics\b",
            r"\bchemistry\b",
            r"\bmath(s|ematics)?\b",
        ),
    ),
)

_COMPILED = tuple(
    (intent, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
    for intent, patterns in INTENT_PATTERNS
)

# A "concept" question about marks is really about performance
PERFORMANCE_VOCABULARY = re.compile(r"\b(marks?|scores?|rank|percentile)", re.IGNORECASE)

CLASSIFICATION_PROMPT = """Classify the student query into ONE category.

Categories:
1. CONCEPT: "Explain", "What is", "Derive", "How does X work?", solving specific physics/math/chem problems.
2. ANALYSIS: "Analyze my marks", "Why is my score low?", "Show me trends", "My weak areas".
3. EMOTIONAL: "I feel burnt out", "I am scared", "I lack motivation", "I'm depressed".
4. PLANNING: "Make a timetable", "Schedule for today", "What should I study next?".
5. GENERAL: "Hello", "Hi", "Who are you?", general chit-chat.

Query: "{query}"

Reply ONLY with the category word (e.g., CONCEPT)."""


def is_greeting(query: str) -> bool:
    return bool(GREETING_PATTERN.match(query))


def match_patterns(query: str) -> Intent | None:
    """Zero-latency pattern pass; None when nothing matches."""
    if is_greeting(query):
        return Intent.GENERAL

    for intent, patterns in _COMPILED:
        if any(pattern.search(query) for pattern in patterns):
            if intent is Intent.CONCEPT and PERFORMANCE_VOCABULARY.search(query):
                return Intent.ANALYSIS
            return intent

    return None


def parse_label(reply: str | None) -> Intent:
    """Accept an exact label or a label embedded in a messy reply."""
    text = (reply or "").strip().upper()
    try:
        return Intent(text)
    except ValueError:
        pass

    for intent in (Intent.CONCEPT, Intent.ANALYSIS, Intent.EMOTIONAL, Intent.PLANNING):
        if intent.value in text:
            return intent
    return Intent.GENERAL


class IntentClassifier:
    """Pattern-first intent classifier with a remote fallback"""

    def __init__(self, remote: RemoteClassifier | None = None, timeout: float = 10.0):
        self.remote = remote
        self.timeout = timeout

    async def classify(self, query: str) -> Intent:
        try:
            matched = match_patterns(query)
        except (TypeError, AttributeError) as e:
            logger.warning(f"Intent pattern pass failed, defaulting to GENERAL: {e}")
            return Intent.GENERAL

        if matched is not None:
            logger.debug(f"Heuristic intent: {matched.value}")
            return matched

        if self.remote is None:
            return Intent.GENERAL

        try:
            reply = await asyncio.wait_for(
                self.remote(CLASSIFICATION_PROMPT.format(query=query)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Remote intent classification timed out; using GENERAL")
            return Intent.GENERAL
        except Exception as e:
            logger.warning(f"Remote intent classification failed; using GENERAL: {e}")
            return Intent.GENERAL

        intent = parse_label(reply)
        logger.debug(f"Remote intent: {intent.value}")
        return intent


def remote_classifier(
    dispatcher: Dispatcher,
    credentials: CredentialSet,
    model_id: str = CLASSIFIER_MODEL,
) -> RemoteClassifier:
    """Adapt one dispatcher call on the fast model into a remote classifier."""
    model = dispatcher.registry.require(model_id)

    async def classify_remote(prompt: str) -> str:
        api_key = credentials.get(model.provider)
        if not api_key:
            raise CredentialMissing(model.provider)
        result = await dispatcher.dispatch(
            model_id, prompt, api_key=api_key, temperature=0.0
        )
        return result.text

    return classify_remote
