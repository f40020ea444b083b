"""
Exercise Module

Generates exercises adapted to the learner and evaluates submissions.

Evaluation = evaluator base score + heuristic bonuses, clamped to [0, 100]:
    +20  code longer than 10 characters
    +15  explanation longer than 20 characters
    +5   structured answers present

Feedback tone escalates with attempts and affect. Three evaluation paths
exist so the fallback chain always has an answer: `evaluate` (full evaluator
plus tone-adjusted encouragement), `evaluate_concise` (short evaluator prompt,
canned encouragement) and `evaluate_offline` (no generation at all).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import ParseError
from .learner_context import LearnerContext
from .models import Emotion, EvaluationResult, InterventionDecision, InterventionType, normalize_emotion
from .schemas import EvaluationPayload, ExerciseArtifact, PracticePlan, QuizItem, Submission
from .text_generation import generate_json, generate_structured, validate_payload

logger = logging.getLogger(__name__)

EXERCISE_SYSTEM_INSTRUCTION = (
    "You design practical, well-scoped programming and AI exercises. "
    "Always answer with the exact JSON structure you are asked for."
)
EVALUATOR_SYSTEM_INSTRUCTION = "You are a fair, precise evaluator of student work. Return only valid JSON."

TONE_ENCOURAGING = "encouraging"
TONE_PATIENT = "patient and supportive"
TONE_CHALLENGING = "challenging and engaging"

BREAK_SUGGESTION = "Take a short break before trying again"
REVIEW_SUGGESTION = "Review the lesson material before next attempt"

EXERCISE_JSON_SHAPE = """{
  "title": "Exercise title",
  "description": "What the learner has to do and why",
  "instructions": ["step 1", "step 2", "step 3"],
  "starter_code": "Optional starter code or null",
  "expected_output": "What a correct solution produces",
  "evaluation_criteria": ["criterion 1", "criterion 2"],
  "hints": ["hint 1", "hint 2"]
}"""

EVALUATION_JSON_SHAPE = """{
  "score": 0-100,
  "strengths": ["what the learner did well"],
  "improvements": ["what to improve"],
  "suggestions": ["concrete next actions"]
}"""

SubmissionLike = Union[Submission, Dict[str, Any]]


class ExerciseModule:
    """Exercise generation and context-aware evaluation."""

    BASE_MINUTES = {"coding": 15, "conceptual": 10, "analysis": 20}
    DIFFICULTY_MULTIPLIER = {"beginner": 1.0, "intermediate": 1.5, "advanced": 2.0}
    STYLE_ADAPTATION_THRESHOLD = 0.7

    CODE_BONUS = 20
    EXPLANATION_BONUS = 15
    ANSWERS_BONUS = 5
    OFFLINE_BASE_SCORE = 60
    LOW_SCORE_THRESHOLD = 50

    def __init__(self, generator):
        self.generator = generator

    # ==================== Generation ====================

    async def generate(
        self,
        context: LearnerContext,
        topic: str,
        difficulty: str = "intermediate",
        exercise_type: str = "coding",
        objectives: Optional[Sequence[str]] = None,
    ) -> ExerciseArtifact:
        """
        Generate an exercise tuned to the learner.

        Raises:
            GenerationError: generation or JSON parsing failed
        """
        objectives = list(objectives or [])
        objective_lines = "\n".join(f"- {item}" for item in objectives) or "- Practice the core idea of the topic"
        prompt = f"""Create a {difficulty} {exercise_type} exercise about "{topic}".

Learning objectives:
{objective_lines}

Learner background: {context.background_summary()}
Preferred format: {context.preferences.preferred_format}

Return ONLY a JSON object with this structure:
{EXERCISE_JSON_SHAPE}"""

        exercise = await generate_structured(
            self.generator,
            prompt,
            ExerciseArtifact,
            system_instruction=EXERCISE_SYSTEM_INSTRUCTION,
            temperature=0.7,
            max_tokens=1500,
        )
        return self.adapt_for_learner(exercise, context, topic, difficulty, exercise_type, objectives)

    async def generate_basic(
        self,
        topic: str,
        difficulty: str = "intermediate",
        exercise_type: str = "coding",
    ) -> ExerciseArtifact:
        prompt = f"""Create a short {difficulty} {exercise_type} exercise about "{topic}".

Return ONLY a JSON object with this structure:
{EXERCISE_JSON_SHAPE}"""
        exercise = await generate_structured(
            self.generator,
            prompt,
            ExerciseArtifact,
            system_instruction=EXERCISE_SYSTEM_INSTRUCTION,
            temperature=0.5,
            max_tokens=800,
        )
        exercise.metadata.update(self._base_metadata(topic, difficulty, exercise_type, []))
        return exercise

    def fallback_exercise(
        self,
        topic: str,
        difficulty: str = "intermediate",
        exercise_type: str = "coding",
    ) -> ExerciseArtifact:
        """Static exercise template; never fails."""
        return ExerciseArtifact(
            title=f"Practice: {topic}",
            description=f"Apply what you learned about {topic} in a small, self-contained task.",
            instructions=[
                f"Summarise the key idea of {topic} in two sentences",
                "Write a minimal example that demonstrates it",
                "Explain what your example shows and where it could fail",
            ],
            starter_code="# Your solution here\n",
            hints=["Start with the simplest possible input", "Print intermediate values to check your reasoning"],
            metadata={**self._base_metadata(topic, difficulty, exercise_type, []), "static": True},
        )

    def adapt_for_learner(
        self,
        exercise: ExerciseArtifact,
        context: LearnerContext,
        topic: str,
        difficulty: str,
        exercise_type: str,
        objectives: Sequence[str],
    ) -> ExerciseArtifact:
        """Attach time estimate, style aids and the list of applied adaptations."""
        adaptations: List[str] = []
        style = context.learning_style

        if style and style.visual > self.STYLE_ADAPTATION_THRESHOLD:
            adaptations.append("Visual aids included")
        if style and style.kinesthetic > self.STYLE_ADAPTATION_THRESHOLD:
            adaptations.append("Interactive elements added")

        dominant = context.dominant_learning_style()
        if dominant == "visual":
            exercise.visual_aids = [f"Diagram for {exercise.title}", f"Flowchart for {exercise.title}"]
        elif dominant == "kinesthetic":
            exercise.interactive_elements = [
                f"Interactive demo for {exercise.title}",
                f"Hands-on component for {exercise.title}",
            ]

        exercise.metadata.update(self._base_metadata(topic, difficulty, exercise_type, objectives))
        exercise.metadata["adaptations"] = adaptations
        return exercise

    def estimate_minutes(self, difficulty: str, exercise_type: str) -> int:
        base = self.BASE_MINUTES.get(exercise_type, 15)
        return round(base * self.DIFFICULTY_MULTIPLIER.get(difficulty, 1.0))

    def _base_metadata(
        self, topic: str, difficulty: str, exercise_type: str, objectives: Sequence[str]
    ) -> Dict[str, Any]:
        return {
            "topic": topic,
            "difficulty": difficulty,
            "type": exercise_type,
            "objectives": list(objectives),
            "estimated_time": self.estimate_minutes(difficulty, exercise_type),
        }

    # ==================== Evaluation ====================

    async def evaluate(
        self,
        context: LearnerContext,
        exercise: ExerciseArtifact,
        submission: SubmissionLike,
        attempt_number: int = 1,
        emotion=None,
    ) -> EvaluationResult:
        """
        Full evaluation: evaluator verdict, bonuses, tone-adjusted encouragement.

        Raises:
            GenerationError: the evaluator or the encouragement call failed
        """
        submission = self._coerce_submission(submission)
        payload = await generate_structured(
            self.generator,
            self._evaluation_prompt(exercise, submission, context),
            EvaluationPayload,
            system_instruction=EVALUATOR_SYSTEM_INSTRUCTION,
            temperature=0.3,
            max_tokens=1000,
        )

        tone = self.feedback_tone(attempt_number, emotion)
        encouragement = await self.generator.generate(
            f"""Write 2-3 sentences of feedback for a learner on attempt {attempt_number}.
Tone: {tone}
Score: {round(payload.score)}/100
Strengths: {', '.join(payload.strengths) or 'none noted'}
Improvements: {', '.join(payload.improvements) or 'none noted'}
Return only the feedback text.""",
            system_instruction="You are an encouraging AI tutor. Match the requested tone exactly.",
            temperature=0.8,
            max_tokens=300,
        )
        return self._finalize(payload, submission, attempt_number, emotion, tone, encouragement, path="full")

    async def evaluate_concise(
        self,
        exercise: ExerciseArtifact,
        submission: SubmissionLike,
        attempt_number: int = 1,
        emotion=None,
    ) -> EvaluationResult:
        """Shorter evaluator prompt with canned encouragement."""
        submission = self._coerce_submission(submission)
        prompt = f"""Score this submission for "{exercise.title}" from 0 to 100.

Submission:
{self._submission_text(submission)}

Return ONLY a JSON object with this structure:
{EVALUATION_JSON_SHAPE}"""
        payload = await generate_structured(
            self.generator,
            prompt,
            EvaluationPayload,
            system_instruction=EVALUATOR_SYSTEM_INSTRUCTION,
            temperature=0.2,
            max_tokens=500,
        )
        tone = self.feedback_tone(attempt_number, emotion)
        return self._finalize(payload, submission, attempt_number, emotion, tone, None, path="concise")

    def evaluate_offline(
        self,
        exercise: ExerciseArtifact,
        submission: SubmissionLike,
        attempt_number: int = 1,
        emotion=None,
    ) -> EvaluationResult:
        """Heuristic-only evaluation; never fails."""
        submission = self._coerce_submission(submission)
        strengths = []
        improvements = []
        if submission.code:
            strengths.append("Working code submitted")
        else:
            improvements.append("Include code that implements the solution")
        if submission.explanation:
            strengths.append("Clear explanation of your approach")
        else:
            improvements.append("Explain your reasoning step by step")

        payload = EvaluationPayload(
            score=self.OFFLINE_BASE_SCORE,
            strengths=strengths,
            improvements=improvements,
            suggestions=[f"Compare your work with the instructions for '{exercise.title}'"],
        )
        tone = self.feedback_tone(attempt_number, emotion)
        return self._finalize(payload, submission, attempt_number, emotion, tone, None, path="offline")

    @classmethod
    def heuristic_bonus(cls, submission: Submission) -> int:
        bonus = 0
        if submission.code and len(submission.code) > 10:
            bonus += cls.CODE_BONUS
        if submission.explanation and len(submission.explanation) > 20:
            bonus += cls.EXPLANATION_BONUS
        if submission.answers:
            bonus += cls.ANSWERS_BONUS
        return bonus

    @staticmethod
    def feedback_tone(attempt_number: int, emotion=None) -> str:
        normalized = normalize_emotion(emotion)
        tone = TONE_ENCOURAGING
        if attempt_number > 2 or normalized == Emotion.FRUSTRATION:
            tone = TONE_PATIENT
        if normalized == Emotion.BOREDOM:
            tone = TONE_CHALLENGING
        return tone

    @staticmethod
    def encouragement_for(score: int) -> str:
        if score >= 90:
            return "Outstanding work! You clearly understand this concept."
        if score >= 70:
            return "Great job! You're on the right track, keep refining the details."
        if score >= 50:
            return "Good effort! Review the feedback and you'll get there."
        return "Keep going! Every attempt builds understanding. Take it one step at a time."

    @staticmethod
    def post_evaluation_steps(score: int, intervention: Optional[InterventionDecision] = None) -> List[str]:
        if score >= 80:
            return ["Excellent work! Ready to move to the next topic", "Consider trying a more challenging exercise"]
        if score >= 60:
            return ["Good progress! Review feedback and try once more", "Focus on the improvement areas mentioned"]

        steps = ["Review the lesson material before retrying"]
        if intervention and intervention.type != InterventionType.NONE:
            steps.append(intervention.message)
            steps.extend(intervention.next_steps)
        return steps

    def _finalize(
        self,
        payload: EvaluationPayload,
        submission: Submission,
        attempt_number: int,
        emotion,
        tone: str,
        encouragement: Optional[str],
        path: str,
    ) -> EvaluationResult:
        base_score = round(payload.score)
        bonus = self.heuristic_bonus(submission)
        score = max(0, min(100, base_score + bonus))

        suggestions = list(payload.suggestions)
        if normalize_emotion(emotion) == Emotion.FRUSTRATION:
            suggestions.insert(0, BREAK_SUGGESTION)
        if score < self.LOW_SCORE_THRESHOLD:
            suggestions.append(REVIEW_SUGGESTION)

        return EvaluationResult(
            score=score,
            strengths=list(payload.strengths),
            improvements=list(payload.improvements),
            suggestions=suggestions,
            encouragement_text=encouragement or self.encouragement_for(score),
            tone=tone,
            metadata={
                "base_score": base_score,
                "bonus": bonus,
                "attempt_number": attempt_number,
                "emotional_state": normalize_emotion(emotion).value if normalize_emotion(emotion) else None,
                "evaluation_path": path,
                "evaluated_at": datetime.now().isoformat(),
            },
        )

    @staticmethod
    def _coerce_submission(submission: SubmissionLike) -> Submission:
        if isinstance(submission, Submission):
            return submission
        return Submission.model_validate(submission or {})

    @staticmethod
    def _submission_text(submission: Submission) -> str:
        parts = []
        if submission.code:
            parts.append(f"Code:\n{submission.code}")
        if submission.explanation:
            parts.append(f"Explanation:\n{submission.explanation}")
        if submission.answers:
            parts.append(f"Answers:\n{submission.answers}")
        return "\n\n".join(parts) or "(empty submission)"

    def _evaluation_prompt(self, exercise: ExerciseArtifact, submission: Submission, context: LearnerContext) -> str:
        criteria = "\n".join(f"- {item}" for item in exercise.evaluation_criteria) or "- Correctness\n- Clarity"
        return f"""Evaluate this submission.

Exercise: {exercise.title}
Description: {exercise.description}
Expected output: {exercise.expected_output or 'not specified'}
Evaluation criteria:
{criteria}

Learner background: {context.background_summary()}

Submission:
{self._submission_text(submission)}

Return ONLY a JSON object with this structure:
{EVALUATION_JSON_SHAPE}"""

    # ==================== Quizzes and practice ====================

    async def create_quiz(self, topic: str, concepts: Sequence[str], question_count: int = 5) -> List[QuizItem]:
        """
        Generate quiz questions; malformed questions are dropped.

        Raises:
            GenerationError: generation failed or the response had no JSON array
        """
        prompt = f"""Create {question_count} quiz questions about "{topic}" covering these concepts:
{', '.join(concepts) or topic}

Return ONLY a JSON array with this structure:
[
  {{
    "question": "Clear, specific question",
    "options": ["option 1", "option 2", "option 3", "option 4"],
    "correct_index": 0,
    "explanation": "Why this answer is correct"
  }}
]"""
        payload = await generate_json(
            self.generator,
            prompt,
            system_instruction="You are creating educational assessments. Make questions clear, fair, and educational.",
            temperature=0.6,
            max_tokens=2000,
        )
        if not isinstance(payload, list):
            raise ParseError("Quiz response is not a JSON array")

        questions = []
        for index, item in enumerate(payload):
            try:
                questions.append(validate_payload(item, QuizItem))
            except ParseError as e:
                logger.warning(f"⚠️ [ExerciseModule] Skipping quiz item {index}: {e}")
        return questions[:question_count]

    async def plan_practice(self, goal: str, minutes_available: int, level: str) -> PracticePlan:
        prompt = f"""Design a practice sequence for "{goal}" with {minutes_available} minutes available.
Student level: {level}

Create a structured progression of exercises that build upon each other.

Return ONLY a JSON object with this structure:
{{
  "sequence": [
    {{
      "title": "Exercise title",
      "description": "What the student will practice",
      "estimated_time": 15,
      "difficulty": "beginner",
      "prerequisites": ["concepts needed"],
      "learning_outcome": "what the student will learn"
    }}
  ],
  "total_estimated_time": 45,
  "progression_notes": "How exercises build on each other"
}}"""
        return await generate_structured(
            self.generator,
            prompt,
            PracticePlan,
            system_instruction="You design practice sequences that build skills systematically.",
            temperature=0.7,
            max_tokens=2500,
        )
