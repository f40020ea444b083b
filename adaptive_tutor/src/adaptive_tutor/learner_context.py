"""
Learner Context Data Model

Snapshot of the learner passed into every request. The engine only reads it;
the session/profile owner is responsible for updating it between requests.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

DIFFICULTY_LEVELS = ["beginner", "intermediate", "advanced"]


def _clamp(value: Any) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


@dataclass
class SkillLevels:
    """Background per dimension, each one of DIFFICULTY_LEVELS or None."""
    theory: Optional[str] = None
    tooling: Optional[str] = None
    prompting: Optional[str] = None


@dataclass
class LearningStyleWeights:
    """Independent preference weights in [0, 1] (they need not sum to 1)."""
    visual: float = 0.0
    auditory: float = 0.0
    kinesthetic: float = 0.0

    def __post_init__(self):
        self.visual = _clamp(self.visual)
        self.auditory = _clamp(self.auditory)
        self.kinesthetic = _clamp(self.kinesthetic)

    def dominant(self) -> Optional[str]:
        """
        Argmax of the three weights, ties broken visual > auditory > kinesthetic.
        Returns None when every weight is zero.
        """
        ranked = [("visual", self.visual), ("auditory", self.auditory), ("kinesthetic", self.kinesthetic)]
        style, weight = max(ranked, key=lambda item: item[1])
        return style if weight > 0 else None


@dataclass
class EmotionThresholds:
    """Sensitivity thresholds in [0, 1]."""
    confusion: float = 0.5
    frustration: float = 0.5
    engagement: float = 0.5

    def __post_init__(self):
        self.confusion = _clamp(self.confusion)
        self.frustration = _clamp(self.frustration)
        self.engagement = _clamp(self.engagement)


@dataclass
class LearnerPreferences:
    preferred_format: str = "hybrid"  # "text", "visual", "interactive", "hybrid"
    pace: str = "normal"
    difficulty_preference: str = "adaptive"
    language: str = "en"
    audio_enabled: bool = True


@dataclass
class LearnerContext:
    """Per-session learner snapshot."""
    user_id: Optional[str] = None
    name: Optional[str] = None
    skill_levels: SkillLevels = field(default_factory=SkillLevels)
    learning_style: Optional[LearningStyleWeights] = None
    emotion_thresholds: EmotionThresholds = field(default_factory=EmotionThresholds)
    preferences: LearnerPreferences = field(default_factory=LearnerPreferences)
    recent_history: List[str] = field(default_factory=list)
    current_topic: Optional[str] = None

    HISTORY_LIMIT: ClassVar[int] = 10

    def __post_init__(self):
        # Keep only the most recent messages
        if len(self.recent_history) > self.HISTORY_LIMIT:
            self.recent_history = self.recent_history[-self.HISTORY_LIMIT:]

    def recent(self, count: int) -> List[str]:
        if count <= 0:
            return []
        return self.recent_history[-count:]

    def dominant_learning_style(self) -> Optional[str]:
        if not self.learning_style:
            return None
        return self.learning_style.dominant()

    def background_summary(self) -> str:
        """Concatenate whichever skill levels are present."""
        parts = []
        if self.skill_levels.theory:
            parts.append(f"Theory: {self.skill_levels.theory}")
        if self.skill_levels.tooling:
            parts.append(f"Tooling: {self.skill_levels.tooling}")
        if self.skill_levels.prompting:
            parts.append(f"Prompting: {self.skill_levels.prompting}")
        if not parts:
            return "General audience with mixed background"
        return ", ".join(parts)

    def overall_difficulty(self) -> str:
        """Highest level present across skill dimensions, beginner by default."""
        levels = [self.skill_levels.theory, self.skill_levels.tooling, self.skill_levels.prompting]
        if "advanced" in levels:
            return "advanced"
        if "intermediate" in levels:
            return "intermediate"
        return "beginner"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LearnerContext":
        """Build a context from a plain dict (API payloads)."""
        data = data or {}
        style = data.get("learning_style")
        return cls(
            user_id=data.get("user_id"),
            name=data.get("name"),
            skill_levels=SkillLevels(**(data.get("skill_levels") or {})),
            learning_style=LearningStyleWeights(**style) if style else None,
            emotion_thresholds=EmotionThresholds(**(data.get("emotion_thresholds") or {})),
            preferences=LearnerPreferences(**(data.get("preferences") or {})),
            recent_history=list(data.get("recent_history") or []),
            current_topic=data.get("current_topic"),
        )
