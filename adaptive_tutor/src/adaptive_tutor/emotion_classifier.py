"""
Emotion Classifier

Transparent, rule-based affect detection. Rules are evaluated in a fixed
precedence order and the first one whose markers appear in the text wins:

1. frustration  (also flags detected_confusion)
2. anxiety
3. curiosity
4. excitement / engagement
5. confusion    (only reached when none of the above matched)
6. boredom
7. "?" anywhere  -> curiosity at lower confidence
8. neutral

Confidence then gains up to +0.3 from interaction history and loses 0.2 for
very short inputs. The classifier never raises.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import Emotion, EmotionalAssessment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmotionRule:
    """One precedence-ordered classification rule."""
    emotion: Emotion
    markers: Tuple[str, ...]
    confidence: float
    detected_confusion: bool = False

    def matches(self, text_lower: str) -> List[str]:
        return [marker for marker in self.markers if _contains(text_lower, marker)]


def _contains(text_lower: str, marker: str) -> bool:
    # Single words match on word boundaries ("how" must not match "show")
    if " " in marker or "'" in marker:
        return marker in text_lower
    return re.search(rf"\b{re.escape(marker)}\b", text_lower) is not None


DEFAULT_RULES: Tuple[EmotionRule, ...] = (
    EmotionRule(
        Emotion.FRUSTRATION,
        (
            "don't understand", "do not understand", "dont understand", "don't get it",
            "stuck", "doesn't work", "does not work", "not working", "confused",
            "confusing", "frustrated", "frustrating", "difficult", "complicated",
            "give up",
        ),
        confidence=0.8,
        detected_confusion=True,
    ),
    EmotionRule(
        Emotion.ANXIETY,
        ("nervous", "worried", "worry", "stress", "stressed", "anxious", "anxiety", "afraid", "fear", "insecure"),
        confidence=0.7,
    ),
    EmotionRule(
        Emotion.CURIOSITY,
        ("how", "why", "when", "where", "what", "which", "interesting", "want to know", "explain", "curious"),
        confidence=0.7,
    ),
    EmotionRule(
        Emotion.ENGAGEMENT,
        ("great", "incredible", "fantastic", "i like", "i love", "perfect", "excellent", "wow", "awesome", "cool"),
        confidence=0.8,
    ),
    EmotionRule(
        Emotion.CONFUSION,
        ("i'm lost", "im lost", "lost me", "makes no sense", "not sure i follow", "unclear", "huh"),
        confidence=0.7,
        detected_confusion=True,
    ),
    EmotionRule(
        Emotion.BOREDOM,
        ("boring", "bored", "too easy", "already know", "move on", "meh", "whatever"),
        confidence=0.7,
    ),
)

QUESTION_FALLBACK_CONFIDENCE = 0.6
NEUTRAL_CONFIDENCE = 0.5
SHORT_INPUT_CHARS = 10
SHORT_INPUT_PENALTY = 0.2
HISTORY_STEP = 0.05
HISTORY_BONUS_CAP = 0.3


class EmotionClassifier:
    """Maps learner text (plus optional history) to an EmotionalAssessment."""

    def __init__(self, rules: Sequence[EmotionRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def classify(self, text, history: Optional[Sequence[str]] = None) -> EmotionalAssessment:
        if not isinstance(text, str) or not text.strip():
            return EmotionalAssessment(emotion=Emotion.NEUTRAL, confidence=0.0, indicators=["no signal"])

        text_lower = text.lower().replace("\u2019", "'")
        emotion = Emotion.NEUTRAL
        confidence = NEUTRAL_CONFIDENCE
        indicators: List[str] = []
        detected_confusion = False

        for rule in self.rules:
            matched = rule.matches(text_lower)
            if matched:
                emotion = rule.emotion
                confidence = rule.confidence
                indicators = matched
                detected_confusion = rule.detected_confusion
                break
        else:
            if "?" in text:
                emotion = Emotion.CURIOSITY
                confidence = QUESTION_FALLBACK_CONFIDENCE
                indicators = ["?"]

        confidence = self._adjust_confidence(confidence, text, history)
        logger.debug(f"💭 [EmotionClassifier] {emotion.value} ({confidence:.2f}) from {indicators}")

        return EmotionalAssessment(
            emotion=emotion,
            confidence=confidence,
            indicators=indicators,
            detected_confusion=detected_confusion,
        )

    def _adjust_confidence(self, confidence: float, text: str, history: Optional[Sequence[str]]) -> float:
        if history:
            confidence += min(len(history) * HISTORY_STEP, HISTORY_BONUS_CAP)
        if len(text.strip()) < SHORT_INPUT_CHARS:
            confidence -= SHORT_INPUT_PENALTY
        return round(max(0.0, min(1.0, confidence)), 4)
