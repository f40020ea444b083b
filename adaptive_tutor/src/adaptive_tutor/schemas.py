"""
Artifact Schemas

Pydantic models for everything the generation backend returns as JSON.
Validation failures are turned into ParseError by text_generation.validate_payload.
Field names are snake_case; camelCase aliases are accepted because models
frequently answer in that style.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


# Accepts a bare string or null where a list of strings is expected
TextList = Annotated[List[str], BeforeValidator(_as_list)]


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuizItem(_Schema):
    question: str
    options: List[str]
    correct_index: int = Field(validation_alias=AliasChoices("correct_index", "correctAnswer", "correct_answer"))
    explanation: str = ""

    @model_validator(mode="after")
    def check_index(self):
        if not self.options:
            raise ValueError("quiz needs at least one option")
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError("correct_index out of range")
        return self


class LessonArtifact(_Schema):
    title: str
    objectives: TextList = Field(default_factory=list)
    content: str
    code_example: Optional[str] = Field(default=None, validation_alias=AliasChoices("code_example", "codeExample"))
    quiz: Optional[QuizItem] = None
    next_steps: TextList = Field(default_factory=list, validation_alias=AliasChoices("next_steps", "nextSteps"))
    adaptation_metadata: Dict[str, Any] = Field(default_factory=dict)


class ExerciseArtifact(_Schema):
    title: str
    description: str
    instructions: TextList = Field(default_factory=list)
    starter_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("starter_code", "starterCode"))
    expected_output: Optional[str] = Field(default=None, validation_alias=AliasChoices("expected_output", "expectedOutput"))
    evaluation_criteria: TextList = Field(
        default_factory=list, validation_alias=AliasChoices("evaluation_criteria", "evaluationCriteria")
    )
    hints: TextList = Field(default_factory=list)
    visual_aids: List[str] = Field(default_factory=list)
    interactive_elements: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Submission(_Schema):
    """Learner submission; every field is optional and free-form."""
    code: Optional[str] = None
    explanation: Optional[str] = None
    answers: Optional[Any] = None

    def is_empty(self) -> bool:
        return not (self.code or self.explanation or self.answers)


class EvaluationPayload(_Schema):
    """Raw evaluator verdict before bonuses and tone adjustments."""
    score: float = Field(allow_inf_nan=False)
    strengths: TextList = Field(default_factory=list)
    improvements: TextList = Field(default_factory=list)
    suggestions: TextList = Field(default_factory=list)


class PracticeStep(_Schema):
    title: str
    description: str = ""
    estimated_time: int = Field(default=10, validation_alias=AliasChoices("estimated_time", "estimatedTime"))
    difficulty: str = "beginner"
    prerequisites: TextList = Field(default_factory=list)
    learning_outcome: str = Field(default="", validation_alias=AliasChoices("learning_outcome", "learningOutcome"))


class PracticePlan(_Schema):
    sequence: List[PracticeStep]
    total_estimated_time: int = Field(
        default=0, validation_alias=AliasChoices("total_estimated_time", "totalEstimatedTime")
    )
    progression_notes: str = Field(default="", validation_alias=AliasChoices("progression_notes", "progressionNotes"))


class TrendingTopic(_Schema):
    name: str
    relevance: float = Field(default=0.0, allow_inf_nan=False)
    source: str = ""
    summary: str = ""

    @field_validator("relevance")
    @classmethod
    def clamp_relevance(cls, value: float) -> float:
        return max(0.0, min(1.0, value))


class TrendingScan(_Schema):
    topics: List[TrendingTopic] = Field(default_factory=list)
    update_priority: Literal["high", "medium", "low"] = Field(
        default="low", validation_alias=AliasChoices("update_priority", "updatePriority")
    )


class ContentItem(_Schema):
    """Existing lesson content submitted for a freshness check."""
    title: str
    content: str
    last_updated: Optional[str] = Field(default=None, validation_alias=AliasChoices("last_updated", "lastUpdated"))


class OutdatedVerdict(_Schema):
    is_outdated: bool = Field(validation_alias=AliasChoices("is_outdated", "isOutdated"))
    reason: str = ""
    suggested_update: str = Field(default="", validation_alias=AliasChoices("suggested_update", "suggestedUpdate"))
    urgency: Literal["high", "medium", "low"] = "low"


class OutdatedItem(_Schema):
    title: str
    reason: str
    suggested_update: str
    urgency: str


class LessonOutline(_Schema):
    title: str
    outline: TextList = Field(default_factory=list)
    estimated_duration: int = Field(
        default=30, validation_alias=AliasChoices("estimated_duration", "estimatedDuration")
    )
    prerequisites: TextList = Field(default_factory=list)
    learning_outcomes: TextList = Field(
        default_factory=list, validation_alias=AliasChoices("learning_outcomes", "learningOutcomes")
    )


class CuratedResource(_Schema):
    title: str
    type: str = "documentation"
    description: str = ""
    relevance: float = Field(default=0.0, allow_inf_nan=False)
    difficulty: str = "intermediate"
