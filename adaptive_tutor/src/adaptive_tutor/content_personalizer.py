"""
Content Personalizer

Builds lesson content for a specific learner: background, recent history and
emotional state go into the prompt, then a second pass reshapes the content
for the learner's dominant learning style.

Generation failures are NOT handled here. They propagate so the caller's
fallback chain can pick the next tier (`generate_basic_lesson`, then
`fallback_lesson`).
"""

import logging
from typing import Optional

from .learner_context import LearnerContext
from .models import EMOTION_ADJECTIVES, Emotion, normalize_emotion
from .schemas import LessonArtifact, QuizItem
from .text_generation import generate_structured

logger = logging.getLogger(__name__)

TUTOR_SYSTEM_INSTRUCTION = (
    "You are an adaptive AI tutor for machine learning and AI topics. "
    "You explain concepts clearly, adapt to the learner's background and mood, "
    "and always answer with the exact JSON structure you are asked for."
)

FEEDBACK_SYSTEM_INSTRUCTION = (
    "You are an encouraging AI tutor providing constructive feedback. "
    "Be specific, kind, and growth-oriented."
)

STYLE_ADAPTATIONS = {
    "visual": "Add more diagrams, visual metaphors, and structured layouts.",
    "auditory": "Add more narrative explanations, verbal analogies, and discussion points.",
    "kinesthetic": "Add more hands-on examples, interactive elements, and practical exercises.",
}

FOCUS_AREAS = {
    "theory": "Focus on concepts, intuition and the reasoning behind the technique.",
    "tooling": "Focus on practical tools, libraries and code the learner can run.",
    "hybrid": "Balance conceptual understanding with practical application.",
}

REFORMULATION_GUIDANCE = {
    Emotion.FRUSTRATION: "Be calm and reassuring. Start from the basics and use very small steps.",
    Emotion.CONFUSION: "Use a different angle, simpler words and at least one concrete analogy.",
    Emotion.BOREDOM: "Make it more challenging and add an advanced real-world application.",
    Emotion.ENGAGEMENT: "Keep the momentum and add a deeper follow-up idea.",
    Emotion.ANXIETY: "Be supportive, normalise mistakes and keep the pace slow.",
    Emotion.CURIOSITY: "Answer the underlying why and point to what to explore next.",
}

LESSON_JSON_SHAPE = """{
  "title": "Lesson title",
  "objectives": ["objective 1", "objective 2", "objective 3"],
  "content": "Main lesson body (markdown allowed)",
  "code_example": "Optional runnable snippet or null",
  "quiz": {
    "question": "One check-for-understanding question",
    "options": ["option A", "option B", "option C", "option D"],
    "correct_index": 0,
    "explanation": "Why the answer is correct"
  },
  "next_steps": ["what to study next"]
}"""


def emotion_label(emotion) -> str:
    """Adjective form used in prompts ("frustrated", "neutral", ...)."""
    normalized = normalize_emotion(emotion)
    return EMOTION_ADJECTIVES[normalized] if normalized else "neutral"


class ContentPersonalizer:
    """Lesson generation, reformulation and feedback for one learner."""

    def __init__(self, generator):
        self.generator = generator

    async def generate_lesson(
        self,
        context: LearnerContext,
        topic: str,
        difficulty: str = "intermediate",
        focus_area: str = "hybrid",
        emotion=None,
    ) -> LessonArtifact:
        """
        Generate a personalized lesson, then adapt it to the learning style.

        Raises:
            GenerationError: generation or JSON parsing failed
        """
        previous = context.recent(3)
        label = emotion_label(emotion)
        background = context.background_summary()

        history_block = "\n".join(f"- {item}" for item in previous) if previous else "- (no previous interactions)"
        prompt = f"""Create a personalized lesson.

Topic: {topic}
Difficulty: {difficulty}
Focus: {FOCUS_AREAS.get(focus_area, FOCUS_AREAS['hybrid'])}

Learner background: {background}
Preferred format: {context.preferences.preferred_format}
Pace: {context.preferences.pace}
Current emotional state: {label}

Recent interactions:
{history_block}

Guidelines:
- Build on the recent interactions instead of repeating them
- Match the depth to the learner background and difficulty
- If the learner is frustrated or confused, slow down and use analogies
- If the learner is bored, raise the challenge

Return ONLY a JSON object with this structure:
{LESSON_JSON_SHAPE}"""

        lesson = await generate_structured(
            self.generator,
            prompt,
            LessonArtifact,
            system_instruction=TUTOR_SYSTEM_INSTRUCTION,
            temperature=0.7,
            max_tokens=2000,
        )

        metadata = {
            "background": background,
            "history_items": len(previous),
            "emotional_state": label,
            "difficulty": difficulty,
            "focus_area": focus_area,
            "learning_style": None,
        }

        style = context.dominant_learning_style()
        if style:
            lesson.content = await self.adapt_for_learning_style(lesson.content, style)
            metadata["learning_style"] = style

        lesson.adaptation_metadata = metadata
        logger.info(f"✅ [ContentPersonalizer] Lesson '{lesson.title}' ready (style={style}, emotion={label})")
        return lesson

    async def adapt_for_learning_style(self, content: str, style: str) -> str:
        instruction = STYLE_ADAPTATIONS.get(style)
        if not instruction:
            return content

        prompt = f"""Rewrite this lesson content for a {style} learner.
{instruction}
Keep every fact and the overall structure. Return only the rewritten content.

Content:
{content}"""
        return await self.generator.generate(
            prompt,
            system_instruction=TUTOR_SYSTEM_INSTRUCTION,
            temperature=0.6,
            max_tokens=2000,
        )

    async def generate_basic_lesson(self, topic: str, difficulty: str = "intermediate") -> LessonArtifact:
        """Shorter, context-free lesson prompt used when the personalized path fails."""
        prompt = f"""Write a short {difficulty} lesson about "{topic}".

Return ONLY a JSON object with this structure:
{LESSON_JSON_SHAPE}"""
        lesson = await generate_structured(
            self.generator,
            prompt,
            LessonArtifact,
            system_instruction=TUTOR_SYSTEM_INSTRUCTION,
            temperature=0.5,
            max_tokens=1200,
        )
        lesson.adaptation_metadata = {"difficulty": difficulty, "personalized": False}
        return lesson

    @staticmethod
    def fallback_lesson(topic: str, difficulty: str = "intermediate") -> LessonArtifact:
        """Static lesson template; never fails."""
        return LessonArtifact(
            title=f"Introduction to {topic}",
            objectives=[
                f"Understand the basic concepts of {topic}",
                "Identify practical applications",
                "Apply the fundamentals in a small example",
            ],
            content=(
                f"Let's explore {topic} step by step.\n\n"
                f"{topic} builds on a few core ideas. Start by naming the problem it solves, "
                "then look at the inputs it works with and the output it produces. "
                "Once that picture is clear, the details are much easier to place."
            ),
            quiz=QuizItem(
                question=f"What is the best first step when learning {topic}?",
                options=[
                    "Understand the problem it solves",
                    "Memorise every formula",
                    "Skip straight to advanced papers",
                    "Avoid hands-on practice",
                ],
                correct_index=0,
                explanation="Knowing the problem gives every later detail a place to fit.",
            ),
            next_steps=["Practice with a small exercise", f"Explore real applications of {topic}"],
            adaptation_metadata={"difficulty": difficulty, "personalized": False, "static": True},
        )

    async def reformulate(
        self,
        content: str,
        feedback: str,
        emotion=None,
        preferred_format: Optional[str] = None,
    ) -> str:
        """
        Rewrite content for the learner's emotional state.

        Returns the content unchanged when the emotion is neutral or absent.
        """
        normalized = normalize_emotion(emotion)
        if normalized is None or normalized == Emotion.NEUTRAL:
            return content

        guidance = REFORMULATION_GUIDANCE.get(normalized, "")
        format_line = f"Preferred format: {preferred_format}\n" if preferred_format else ""
        prompt = f"""The learner is {EMOTION_ADJECTIVES[normalized]} after reading this content.

Learner feedback: "{feedback}"
{format_line}
{guidance}

Rewrite the content so it works for this learner. Return only the rewritten content.

Original content:
{content}"""
        return await self.generator.generate(
            prompt,
            system_instruction=TUTOR_SYSTEM_INSTRUCTION,
            temperature=0.7,
            max_tokens=1500,
        )

    async def feedback(
        self,
        student_response: str,
        expected_answer: Optional[str],
        lesson_context: str,
        emotion=None,
    ) -> str:
        prompt = f"""Provide encouraging and constructive feedback on this student response:

Student Response: "{student_response}"
Expected Answer: "{expected_answer or 'Open-ended'}"
Lesson Context: "{lesson_context}"
Student Emotional State: {emotion_label(emotion)}

Provide specific, actionable feedback that maintains engagement and promotes learning."""
        return await self.generator.generate(
            prompt,
            system_instruction=FEEDBACK_SYSTEM_INSTRUCTION,
            temperature=0.8,
            max_tokens=600,
        )
