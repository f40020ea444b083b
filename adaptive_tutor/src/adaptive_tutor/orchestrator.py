"""
Orchestrator

Sequences the engine's modules into four request-scoped workflows:

- learning_session:       classify emotion -> lesson -> (exercise) -> (video)
- exercise_evaluation:    evaluate -> (frustration score -> intervention)
- content_update:         trending scan -> (draft lessons) -> summary
- emotional_intervention: classify -> intervention -> (reformulate) -> plan

Steps run strictly in order because each consumes the previous output.
Generation steps go through the Response Composer's fallback chain, so the
only errors a caller sees are UnknownWorkflowError, UnknownActionError and
ValidationError. Cancelling the awaiting task aborts the in-flight call and
no partial result is returned.
"""

import asyncio
import time
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as SchemaValidationError

from .content_freshness import ContentFreshnessModule
from .content_personalizer import ContentPersonalizer
from .emotion_classifier import EmotionClassifier
from .errors import GenerationError, UnknownActionError, UnknownWorkflowError, ValidationError
from .exercise_module import ExerciseModule
from .frustration_scorer import FrustrationScorer
from .intervention_policy import InterventionPolicy
from .learner_context import LearnerContext
from .logger import get_logger
from .models import (
    Emotion,
    EmotionalAssessment,
    InterventionType,
    TutorResponse,
    WorkflowResult,
)
from .response_composer import TIER_PRIMARY, TIER_SECONDARY, TIER_STATIC, Attempt, ResponseComposer
from .schemas import ExerciseArtifact, Submission, TrendingScan
from .text_generation import TextGenerator
from .topic_detector import detect_topic
from .video_recommender import VideoRecommender

logger = get_logger(__name__)


class Workflow(str, Enum):
    LEARNING_SESSION = "learning_session"
    EXERCISE_EVALUATION = "exercise_evaluation"
    CONTENT_UPDATE = "content_update"
    EMOTIONAL_INTERVENTION = "emotional_intervention"


class ChatAction(str, Enum):
    CHAT = "chat"
    HELP = "help"


SESSION_RECOMMENDATIONS = {
    Emotion.CONFUSION: [
        "Consider reviewing prerequisites before continuing",
        "Take extra time with examples in this lesson",
    ],
    Emotion.BOREDOM: [
        "Try the advanced exercises for this topic",
        "Explore additional challenging applications",
    ],
    Emotion.ENGAGEMENT: [
        "Great momentum! Continue to the next topic when ready",
        "Consider exploring related advanced concepts",
    ],
}

FRUSTRATION_SCORE_THRESHOLD = 60
INTERVENTION_FRUSTRATION_THRESHOLD = 0.5
PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2}
DEFAULT_DOMAIN = "artificial intelligence"
DEFAULT_AUDIENCE = "intermediate developers"

ContextLike = Union[LearnerContext, Dict[str, Any], None]


class Orchestrator:
    """Entry point for workflows and conversational turns."""

    def __init__(
        self,
        generator=None,
        recommender: Optional[VideoRecommender] = None,
        classifier: Optional[EmotionClassifier] = None,
        scorer: Optional[FrustrationScorer] = None,
        policy: Optional[InterventionPolicy] = None,
    ):
        self.generator = generator if generator is not None else TextGenerator()
        self.classifier = classifier or EmotionClassifier()
        self.scorer = scorer or FrustrationScorer()
        self.policy = policy or InterventionPolicy()
        self.recommender = recommender or VideoRecommender()

        self.personalizer = ContentPersonalizer(self.generator)
        self.exercises = ExerciseModule(self.generator)
        self.freshness = ContentFreshnessModule(self.generator)
        self.composer = ResponseComposer(self.generator, self.recommender, self.classifier, self.policy)

        self._workflows = {
            Workflow.LEARNING_SESSION: self._learning_session,
            Workflow.EXERCISE_EVALUATION: self._exercise_evaluation,
            Workflow.CONTENT_UPDATE: self._content_update,
            Workflow.EMOTIONAL_INTERVENTION: self._emotional_intervention,
        }

    async def run_workflow(self, name: str, context: ContextLike = None, params: Optional[Dict[str, Any]] = None) -> WorkflowResult:
        """
        Run one workflow end to end.

        Raises:
            UnknownWorkflowError: `name` is not a known workflow
            ValidationError: a required parameter is missing or malformed
        """
        try:
            workflow = Workflow(name)
        except ValueError:
            raise UnknownWorkflowError(str(name))

        context = self._coerce_context(context)
        params = dict(params or {})
        started = time.perf_counter()
        result = WorkflowResult(
            workflow=workflow.value,
            metadata={
                "workflow": workflow.value,
                "started_at": datetime.now().isoformat(),
                "steps": [],
                "fallback_tiers": {},
            },
        )
        logger.info(f"Running workflow '{workflow.value}'", data={"user_id": context.user_id, "params": sorted(params)})

        try:
            await self._workflows[workflow](context, params, result)
        except GenerationError as e:
            # Static tiers make this unreachable in practice; keep the envelope valid anyway
            logger.error(f"Workflow '{workflow.value}' degraded", error=e)
            result.metadata["degraded"] = True

        result.metadata["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        logger.success(
            f"Workflow '{workflow.value}' finished",
            data={"steps": result.metadata["steps"], "fallback_tiers": result.metadata["fallback_tiers"]},
        )
        return result

    async def handle_action(
        self,
        action: str,
        user_input: str,
        context: ContextLike = None,
        history: Optional[Sequence[str]] = None,
        emotion=None,
    ) -> TutorResponse:
        """
        Answer a conversational turn.

        Raises:
            UnknownActionError: `action` is not "chat" or "help"
            ValidationError: `user_input` is empty
        """
        try:
            chat_action = ChatAction(action)
        except ValueError:
            raise UnknownActionError(str(action))
        if not isinstance(user_input, str) or not user_input.strip():
            raise ValidationError("message")

        return await self.composer.compose(
            user_input,
            self._coerce_context(context),
            history=history,
            emotion=emotion,
            help_request=chat_action == ChatAction.HELP,
        )

    # ==================== Workflows ====================

    async def _learning_session(self, context: LearnerContext, params: Dict[str, Any], result: WorkflowResult):
        user_input = params.get("user_input") or ""
        topic = params.get("topic") or detect_topic(user_input) or context.current_topic
        if not topic:
            raise ValidationError("topic")
        difficulty = params.get("difficulty") or context.overall_difficulty()
        focus_area = params.get("focus_area") or "hybrid"

        assessment = self.classifier.classify(user_input, context.recent_history)
        result.emotion = assessment
        self._record(result, "classify_emotion")

        lesson = await self._run_step(result, "generate_lesson", [
            (lambda: self.personalizer.generate_lesson(context, topic, difficulty, focus_area, assessment.emotion), TIER_PRIMARY),
            (lambda: self.personalizer.generate_basic_lesson(topic, difficulty), TIER_SECONDARY),
            (lambda: self.personalizer.fallback_lesson(topic, difficulty), TIER_STATIC),
        ])
        result.lesson = lesson

        if params.get("include_exercises"):
            result.exercise = await self._run_step(result, "generate_exercise", [
                (lambda: self.exercises.generate(context, topic, difficulty, "coding", lesson.objectives), TIER_PRIMARY),
                (lambda: self.exercises.generate_basic(topic, difficulty, "coding"), TIER_SECONDARY),
                (lambda: self.exercises.fallback_exercise(topic, difficulty, "coding"), TIER_STATIC),
            ])

        if self._video_warranted(context, assessment):
            result.video = self.composer.find_video(context, topic)
            self._record(result, "recommend_video")

        result.recommendations = list(SESSION_RECOMMENDATIONS.get(assessment.emotion, []))

    async def _exercise_evaluation(self, context: LearnerContext, params: Dict[str, Any], result: WorkflowResult):
        exercise = self._require_model(params, "exercise", ExerciseArtifact)
        submission = self._require_model(params, "submission", Submission)
        attempt_number = self._int_param(params, "attempt_number", 1)
        emotion = params.get("emotion")

        evaluation = await self._run_step(result, "evaluate_submission", [
            (lambda: self.exercises.evaluate(context, exercise, submission, attempt_number, emotion), TIER_PRIMARY),
            (lambda: self.exercises.evaluate_concise(exercise, submission, attempt_number, emotion), TIER_SECONDARY),
            (lambda: self.exercises.evaluate_offline(exercise, submission, attempt_number, emotion), TIER_STATIC),
        ])
        result.exercise = exercise
        result.evaluation = evaluation

        if evaluation.score < FRUSTRATION_SCORE_THRESHOLD:
            result.frustration = self.scorer.score(
                time_spent_seconds=self._int_param(params, "time_spent", 0),
                attempt_count=attempt_number,
                recent_texts=params.get("recent_interactions") or [],
            )
            self._record(result, "score_frustration")

            if result.frustration.frustration_level > INTERVENTION_FRUSTRATION_THRESHOLD:
                result.intervention = self.policy.decide(Emotion.FRUSTRATION, result.frustration.frustration_level)
                self._record(result, "decide_intervention")

        result.next_steps = self.exercises.post_evaluation_steps(evaluation.score, result.intervention)

    async def _content_update(self, context: LearnerContext, params: Dict[str, Any], result: WorkflowResult):
        domains = params.get("domains") or [params.get("domain") or DEFAULT_DOMAIN]
        if isinstance(domains, str):
            domains = [domains]

        # Domains share no state, so they can be scanned concurrently
        scans: List[TrendingScan] = await asyncio.gather(*(self.freshness.scan_trending(domain) for domain in domains))
        topics = sorted(
            (topic for scan in scans for topic in scan.topics),
            key=lambda topic: -topic.relevance,
        )
        priority = max((scan.update_priority for scan in scans), key=lambda value: PRIORITY_RANK[value], default="low")
        result.trending = TrendingScan(topics=topics, update_priority=priority)
        self._record(result, "scan_trending")

        if params.get("existing_content"):
            result.outdated_content = await self.freshness.find_outdated(params["existing_content"])
            self._record(result, "find_outdated")

        if priority != "high":
            result.recommendations = ["No high-priority updates needed at this time"]
            return

        audience = params.get("target_audience") or DEFAULT_AUDIENCE
        result.new_lessons = await self.freshness.draft_lessons(topics, audience)
        self._record(result, "draft_lessons")

        result.recommendations = [f"Identified {len(topics)} trending topics"]
        if result.new_lessons:
            result.recommendations.append(f"Generated {len(result.new_lessons)} new lesson outlines")
            result.recommendations.append("Consider prioritizing implementation of these new lessons")
        result.recommendations.append("Schedule regular content update reviews (weekly recommended)")

    async def _emotional_intervention(self, context: LearnerContext, params: Dict[str, Any], result: WorkflowResult):
        user_input = params.get("user_input")
        if not isinstance(user_input, str) or not user_input.strip():
            raise ValidationError("user_input")

        assessment = self.classifier.classify(user_input, context.recent_history)
        result.emotion = assessment
        self._record(result, "classify_emotion")

        intervention = self.policy.decide(assessment.emotion, assessment.confidence)
        result.intervention = intervention
        self._record(result, "decide_intervention")

        current_content = params.get("current_content")
        if intervention.type == InterventionType.SIMPLIFY and current_content:
            result.reformulated_content = await self._run_step(result, "reformulate_content", [
                (lambda: self.personalizer.reformulate(
                    current_content, user_input, assessment.emotion, context.preferences.preferred_format
                ), TIER_PRIMARY),
                (lambda: self.personalizer.reformulate(current_content, "", assessment.emotion), TIER_SECONDARY),
                (lambda: current_content, TIER_STATIC),
            ])

        result.action_plan = [
            f"Detected {assessment.emotion.value} state with {round(assessment.confidence * 100)}% confidence",
            f"Recommended intervention: {intervention.type.value}",
            f"Action: {intervention.message}",
        ] + [f"Next: {step}" for step in intervention.next_steps]

    # ==================== Helpers ====================

    async def _run_step(self, result: WorkflowResult, step: str, tiers: List[Tuple[Attempt, int]]):
        outcome = await self.composer.run_tiers(tiers, operation=step)
        self._record(result, step, outcome.tier)
        return outcome.value

    @staticmethod
    def _record(result: WorkflowResult, step: str, tier: Optional[int] = None):
        result.metadata["steps"].append(step)
        if tier is not None:
            result.metadata["fallback_tiers"][step] = tier

    @staticmethod
    def _video_warranted(context: LearnerContext, assessment: EmotionalAssessment) -> bool:
        thresholds = context.emotion_thresholds
        if assessment.emotion == Emotion.FRUSTRATION and assessment.confidence >= thresholds.frustration:
            return True
        if assessment.emotion == Emotion.CONFUSION and assessment.confidence >= thresholds.confusion:
            return True
        return context.dominant_learning_style() == "visual"

    @staticmethod
    def _coerce_context(context: ContextLike) -> LearnerContext:
        if isinstance(context, LearnerContext):
            return context
        try:
            return LearnerContext.from_dict(context)
        except (TypeError, AttributeError) as e:
            raise ValidationError("context", f"Invalid learner context: {e}") from e

    @staticmethod
    def _require_model(params: Dict[str, Any], key: str, model_cls):
        value = params.get(key)
        if value is None or value == {}:
            raise ValidationError(key)
        if isinstance(value, model_cls):
            return value
        try:
            return model_cls.model_validate(value)
        except SchemaValidationError as e:
            raise ValidationError(key, f"Invalid {key}: {e.error_count()} error(s)") from e

    @staticmethod
    def _int_param(params: Dict[str, Any], key: str, default: int) -> int:
        value = params.get(key, default)
        try:
            return int(value if value is not None else default)
        except (TypeError, ValueError) as e:
            raise ValidationError(key, f"{key} must be a number") from e
