"""
Decision Data Models

Dataclasses computed by the engine itself (assessments, decisions, videos,
workflow envelopes). Artifacts parsed from model output live in schemas.py.
"""

from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .schemas import ExerciseArtifact, LessonArtifact, LessonOutline, OutdatedItem, TrendingScan


class Emotion(str, Enum):
    """Coarse emotional states inferred from learner text."""
    NEUTRAL = "neutral"
    FRUSTRATION = "frustration"
    CONFUSION = "confusion"
    CURIOSITY = "curiosity"
    ENGAGEMENT = "engagement"
    BOREDOM = "boredom"
    ANXIETY = "anxiety"


# Adjective forms used by callers and prompts
_EMOTION_ALIASES = {
    "frustrated": Emotion.FRUSTRATION,
    "confused": Emotion.CONFUSION,
    "curious": Emotion.CURIOSITY,
    "engaged": Emotion.ENGAGEMENT,
    "excited": Emotion.ENGAGEMENT,
    "excitement": Emotion.ENGAGEMENT,
    "bored": Emotion.BOREDOM,
    "anxious": Emotion.ANXIETY,
}

EMOTION_ADJECTIVES = {
    Emotion.NEUTRAL: "neutral",
    Emotion.FRUSTRATION: "frustrated",
    Emotion.CONFUSION: "confused",
    Emotion.CURIOSITY: "curious",
    Emotion.ENGAGEMENT: "engaged",
    Emotion.BOREDOM: "bored",
    Emotion.ANXIETY: "anxious",
}


def normalize_emotion(value: Any) -> Optional[Emotion]:
    """Map an Emotion, its value or an adjective alias to Emotion; None if unknown."""
    if isinstance(value, Emotion):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key in _EMOTION_ALIASES:
        return _EMOTION_ALIASES[key]
    try:
        return Emotion(key)
    except ValueError:
        return None


@dataclass
class EmotionalAssessment:
    emotion: Emotion
    confidence: float
    indicators: List[str] = field(default_factory=list)
    detected_confusion: bool = False


@dataclass
class FrustrationAssessment:
    frustration_level: float
    triggers: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


class InterventionType(str, Enum):
    NONE = "none"
    PAUSE = "pause"
    SIMPLIFY = "simplify"
    ENCOURAGE = "encourage"
    CHALLENGE = "challenge"


@dataclass
class InterventionDecision:
    type: InterventionType
    message: str
    next_steps: List[str] = field(default_factory=list)


@dataclass
class EvaluationResult:
    score: int
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    encouragement_text: str = ""
    tone: str = "encouraging"
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VideoCandidate:
    """Catalog entry; instances are shared reference data and never mutated."""
    video_id: str
    title: str
    description: str = ""
    duration: Optional[str] = None  # "m:ss" or "h:mm:ss"
    channel: Optional[str] = None
    educational_value: str = "medium"
    difficulty: Optional[str] = None
    embeddable: bool = True
    language: Optional[str] = None

    @property
    def thumbnail_url(self) -> str:
        return f"https://i.ytimg.com/vi/{self.video_id}/hqdefault.jpg"


@dataclass(frozen=True)
class VideoQuery:
    topic: str
    difficulty: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class VideoSearchCriteria:
    difficulty: Optional[str] = None
    language: Optional[str] = None
    educational_only: bool = False
    exclude_channels: tuple = ()
    max_duration_minutes: Optional[int] = None


@dataclass
class VideoPlaylist:
    title: str
    description: str
    topic: str
    difficulty: str
    videos: List[VideoCandidate] = field(default_factory=list)
    total_duration_seconds: int = 0


def to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, pydantic models and enums to JSON-ready data."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if is_dataclass(value) and not isinstance(value, type):
        return to_plain(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


@dataclass
class AudioSettings:
    enabled: bool
    autoplay: bool
    speech_text: Optional[str] = None


@dataclass
class TutorResponse:
    """Response contract handed to the presentation layer."""
    text: str
    video: Optional[VideoCandidate] = None
    suggestions: List[str] = field(default_factory=list)
    audio: Optional[AudioSettings] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass
class WorkflowResult:
    """Envelope for one workflow run; fields a workflow does not produce stay empty."""
    workflow: str
    emotion: Optional[EmotionalAssessment] = None
    lesson: Optional[LessonArtifact] = None
    exercise: Optional[ExerciseArtifact] = None
    evaluation: Optional[EvaluationResult] = None
    frustration: Optional[FrustrationAssessment] = None
    intervention: Optional[InterventionDecision] = None
    video: Optional[VideoCandidate] = None
    reformulated_content: Optional[str] = None
    trending: Optional[TrendingScan] = None
    new_lessons: List[LessonOutline] = field(default_factory=list)
    outdated_content: List[OutdatedItem] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    action_plan: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)
