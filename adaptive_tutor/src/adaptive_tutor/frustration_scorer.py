"""
Frustration Scorer

Combines three signal classes into a severity in [0, 1]:
- time on the current concept (+0.3 past 5 minutes)
- failed attempts (+0.4 past 3 attempts)
- frustration language: +0.1 per distinct lexicon keyword per recent message

The keyword sub-term is not capped on its own; only the total is clamped, so
a handful of frustrated messages can saturate the score by themselves.
"""

import re
from typing import List, Optional, Sequence

from .models import FrustrationAssessment

TRIGGER_TIME = "Extended time on single concept"
TRIGGER_ATTEMPTS = "Multiple failed attempts"
TRIGGER_LANGUAGE = "Frustration language detected"


class FrustrationScorer:
    """Scores frustration from interaction metadata and recent learner text."""

    TIME_THRESHOLD_SECONDS = 300
    ATTEMPT_THRESHOLD = 3
    TIME_WEIGHT = 0.3
    ATTEMPT_WEIGHT = 0.4
    KEYWORD_WEIGHT = 0.1
    KEYWORDS = ("stuck", "confusing", "hard", "difficult", "why", "can't", "won't")

    HIGH_THRESHOLD = 0.7
    MEDIUM_THRESHOLD = 0.5
    LOW_THRESHOLD = 0.3

    def score(
        self,
        time_spent_seconds: float = 0,
        attempt_count: int = 0,
        recent_texts: Optional[Sequence[str]] = None,
    ) -> FrustrationAssessment:
        """
        Score frustration for the current concept.

        Args:
            time_spent_seconds: Time on the current concept
            attempt_count: Attempts made so far
            recent_texts: Recent learner messages, oldest first
        """
        texts = [text for text in (recent_texts or []) if isinstance(text, str)]
        level = 0.0
        triggers: List[str] = []

        if (time_spent_seconds or 0) > self.TIME_THRESHOLD_SECONDS:
            level += self.TIME_WEIGHT
            triggers.append(TRIGGER_TIME)

        if (attempt_count or 0) > self.ATTEMPT_THRESHOLD:
            level += self.ATTEMPT_WEIGHT
            triggers.append(TRIGGER_ATTEMPTS)

        language = sum(self.count_keywords(text) for text in texts) * self.KEYWORD_WEIGHT
        if language > 0:
            level += language
            triggers.append(TRIGGER_LANGUAGE)

        level = round(max(0.0, min(1.0, level)), 4)

        return FrustrationAssessment(
            frustration_level=level,
            triggers=triggers,
            recommendations=self.recommendations_for(level),
        )

    def count_keywords(self, text: str) -> int:
        """Number of distinct lexicon keywords present in one message."""
        text_lower = text.lower().replace("’", "'")
        return sum(1 for keyword in self.KEYWORDS if re.search(rf"\b{re.escape(keyword)}\b", text_lower))

    def recommendations_for(self, level: float) -> List[str]:
        if level >= self.HIGH_THRESHOLD:
            return [
                "Suggest taking a 10-minute break",
                "Offer simpler explanation with basic analogies",
                "Break down concept into smaller steps",
            ]
        if level >= self.MEDIUM_THRESHOLD:
            return [
                "Provide alternative explanation approach",
                "Add more examples and practice opportunities",
            ]
        if level >= self.LOW_THRESHOLD:
            return [
                "Offer additional clarification",
                "Check if prerequisites are understood",
            ]
        return []
