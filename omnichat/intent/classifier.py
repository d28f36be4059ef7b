"""
Rule-based intent classification for inbound messages.

Categories are evaluated in declaration order. Every category whose patterns
match is a candidate; the candidate with the highest fixed confidence wins and
equal confidences keep the earlier category. Classification is pure: the same
text always yields the same result.
"""

import re
from dataclasses import dataclass

from omnichat.models.enums import Intent, SuggestedAction
from omnichat.schemas.results import ClassificationResult


@dataclass(frozen=True)
class IntentPattern:
    intent: Intent
    confidence: float
    patterns: tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


INTENT_PATTERNS: tuple[IntentPattern, ...] = (
    IntentPattern(
        Intent.PURCHASE_INTENT,
        0.85,
        _compile(
            r"\b(buy|purchase|order|want to get|add to cart|i('ll| will) take|how (can|do) i (buy|order|get))\b",
            r"\b(price|cost|how much|checkout|pay)\b",
        ),
    ),
    IntentPattern(
        Intent.PRICING_INQUIRY,
        0.80,
        _compile(
            r"\b(price|pricing|cost|fee|rate|charge|quote|estimate|budget|affordable)\b",
            r"\b(how much|what('s| is) the price|do you charge)\b",
        ),
    ),
    IntentPattern(
        Intent.APPOINTMENT_BOOKING,
        0.80,
        _compile(
            r"\b(book|appointment|schedule|meeting|call|demo|slot|available|calendar)\b",
            r"\b(when (can|are)|set up a|arrange)\b",
        ),
    ),
    IntentPattern(
        Intent.SUPPORT_REQUEST,
        0.80,
        _compile(
            r"\b(help|support|issue|problem|broken|not working|error|bug|fix|trouble)\b",
            r"\b(doesn('| )t work|can('| )t|something wrong)\b",
        ),
    ),
    IntentPattern(
        Intent.COMPLAINT,
        0.85,
        _compile(
            r"\b(complain|terrible|awful|worst|disappointed|unacceptable|refund|scam|fraud)\b",
            r"\b(never again|want my money|rip( |-)?off)\b",
        ),
    ),
    IntentPattern(
        Intent.POSITIVE_FEEDBACK,
        0.75,
        _compile(
            r"\b(thank|thanks|great|awesome|excellent|amazing|love it|perfect|well done|good job)\b",
            r"\b(happy with|satisfied|appreciate|kudos)\b",
        ),
    ),
    IntentPattern(
        Intent.OPT_OUT,
        0.95,
        _compile(
            r"\b(stop|unsubscribe|opt( |-)?out|remove me|don('| )t (message|contact|send))\b",
        ),
    ),
    IntentPattern(
        Intent.GREETING,
        0.70,
        _compile(r"^(hi|hello|hey|good (morning|afternoon|evening)|howzit|sup|yo)\b"),
    ),
)

INTENT_ACTIONS: dict[Intent, SuggestedAction] = {
    Intent.COMPLAINT: SuggestedAction.ESCALATE_HUMAN,
    Intent.SUPPORT_REQUEST: SuggestedAction.ESCALATE_HUMAN,
    Intent.APPOINTMENT_BOOKING: SuggestedAction.ESCALATE_HUMAN,
    Intent.POSITIVE_FEEDBACK: SuggestedAction.AUTO_RESPOND,
    Intent.OPT_OUT: SuggestedAction.AUTO_RESPOND,
    Intent.GREETING: SuggestedAction.AUTO_RESPOND,
    Intent.PURCHASE_INTENT: SuggestedAction.AI_GENERATE,
    Intent.PRICING_INQUIRY: SuggestedAction.AI_GENERATE,
    Intent.GENERAL_INQUIRY: SuggestedAction.AI_GENERATE,
    Intent.UNKNOWN: SuggestedAction.IGNORE,
}

GENERAL_INQUIRY_CONFIDENCE = 0.5


def classify(text: str | None) -> ClassificationResult:
    """
    Classify a message into an intent with a suggested follow-up action.

    Args:
        text: Raw inbound text

    Returns:
        ClassificationResult; ``unknown``/``ignore`` for empty input and
        ``general_inquiry``/``ai_generate`` when no category matches.
    """
    normalized = (text or "").strip()
    if not normalized:
        return ClassificationResult(
            intent=Intent.UNKNOWN,
            confidence=0.0,
            suggested_action=INTENT_ACTIONS[Intent.UNKNOWN],
            reasoning="Empty message",
        )

    best: IntentPattern | None = None
    for candidate in INTENT_PATTERNS:
        # Strictly greater keeps the first-declared category on ties
        if candidate.matches(normalized) and (
            best is None or candidate.confidence > best.confidence
        ):
            best = candidate

    if best is None:
        return ClassificationResult(
            intent=Intent.GENERAL_INQUIRY,
            confidence=GENERAL_INQUIRY_CONFIDENCE,
            suggested_action=INTENT_ACTIONS[Intent.GENERAL_INQUIRY],
            reasoning="No specific intent pattern matched, route to AI for response generation",
        )

    return ClassificationResult(
        intent=best.intent,
        confidence=best.confidence,
        suggested_action=INTENT_ACTIONS[best.intent],
        reasoning=(
            f'Matched "{best.intent.value}" pattern with '
            f"{round(best.confidence * 100)}% confidence"
        ),
    )
