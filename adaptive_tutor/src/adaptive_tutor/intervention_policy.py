"""
Intervention Policy

Pure lookup from (emotion, severity) to a pedagogical intervention. Nothing is
generated here so every decision can be audited against the table below.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .models import Emotion, InterventionDecision, InterventionType, normalize_emotion


@dataclass(frozen=True)
class InterventionTemplate:
    type: InterventionType
    message: str
    next_steps: Tuple[str, ...]


NO_INTERVENTION = InterventionTemplate(
    InterventionType.NONE,
    "Continue with current approach",
    ("Monitor for changes",),
)

INTERVENTION_TABLE: Dict[Emotion, InterventionTemplate] = {
    Emotion.FRUSTRATION: InterventionTemplate(
        InterventionType.PAUSE,
        "I notice you might be feeling frustrated. Let's take a step back and approach this differently.",
        ("Take a short break", "Try a simpler explanation", "Break into smaller steps"),
    ),
    Emotion.CONFUSION: InterventionTemplate(
        InterventionType.SIMPLIFY,
        "I see this concept isn't clicking yet. Let me explain it in a different way.",
        ("Use analogies", "Provide more examples", "Check prerequisites"),
    ),
    Emotion.BOREDOM: InterventionTemplate(
        InterventionType.CHALLENGE,
        "You seem to grasp this well! Ready for something more challenging?",
        ("Increase difficulty", "Add advanced concepts", "Provide real-world applications"),
    ),
    Emotion.ENGAGEMENT: InterventionTemplate(
        InterventionType.ENCOURAGE,
        "Great enthusiasm! Let's build on that momentum.",
        ("Continue current pace", "Add related topics", "Provide additional resources"),
    ),
}


class InterventionPolicy:
    """Maps emotion and severity to an InterventionDecision."""

    # Interventions fire only when severity strictly exceeds this value
    SEVERITY_THRESHOLD = 0.3

    def __init__(self, table: Dict[Emotion, InterventionTemplate] = INTERVENTION_TABLE):
        self.table = dict(table)

    def decide(self, emotion: Any, severity: float) -> InterventionDecision:
        template = NO_INTERVENTION
        try:
            severity = float(severity)
        except (TypeError, ValueError):
            severity = 0.0

        if severity > self.SEVERITY_THRESHOLD:
            template = self.table.get(normalize_emotion(emotion), NO_INTERVENTION)

        return InterventionDecision(
            type=template.type,
            message=template.message,
            next_steps=list(template.next_steps),
        )
