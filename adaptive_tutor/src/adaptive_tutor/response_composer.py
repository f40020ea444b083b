"""
Response Composer / Fallback Chain

Every generation step in the engine runs through `run_tiers`: an ordered list
of (attempt, tier_id) pairs tried in sequence until one succeeds. Only
GenerationError (including ParseError and timeouts) moves the chain forward;
anything else, cancellation included, propagates. The last tier is expected
to be static and never fail.

`compose` applies the chain to a conversational turn and merges the result
with emotion, topic, video and audio data into a TutorResponse:

    tier 0  personalized prompt (profile, emotion, topic, recent turns)
    tier 1  short prompt with the question only
    tier 2  canned emotion-keyed text with generic suggestions
"""

import inspect
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .emotion_classifier import EmotionClassifier
from .errors import GenerationError
from .intervention_policy import InterventionPolicy
from .learner_context import LearnerContext
from .models import (
    EMOTION_ADJECTIVES,
    AudioSettings,
    Emotion,
    InterventionType,
    TutorResponse,
    VideoCandidate,
    VideoQuery,
    normalize_emotion,
)
from .topic_detector import detect_topic
from .video_recommender import VideoRecommender

logger = logging.getLogger(__name__)

TIER_PRIMARY = 0
TIER_SECONDARY = 1
TIER_STATIC = 2

VIDEO_MARKER = "@@VIDEO_INFO@@"
HISTORY_WINDOW = 10
STATIC_CONFIDENCE = 0.3

CANNED_RESPONSES = {
    "frustrated": "I understand this can be frustrating. Let's go step by step: which specific part is giving you the most trouble?",
    "confused": "No problem, this can be complex. Which concept would you like me to explain more clearly?",
    "bored": "Looks like you're ready for more. Want to try a harder challenge on this topic?",
    "engaged": "I love your enthusiasm! I hit a technical problem, but let's keep learning: which topic interests you most?",
    "default": "Sorry, I had trouble processing that. Could you rephrase your question?",
}

GENERIC_SUGGESTIONS = ["What is machine learning?", "Explain neural networks", "Give me a practical example"]
STATIC_NEXT_STEPS = ["Rephrase your question", "Try a specific topic"]

EMOTION_SUGGESTIONS = {
    Emotion.CONFUSION: ["Can you explain that more simply?", "Give me a practical example", "What concepts do I need to know first?"],
    Emotion.FRUSTRATION: ["Let's start with the basics", "Let me try a different approach", "Which specific part is hardest?"],
    Emotion.ENGAGEMENT: ["What else can I learn about this?", "Give me a more advanced example", "How is this applied in practice?"],
}
DEFAULT_SUGGESTIONS = ["Can you give more details?", "Show me an example", "What's the next step?"]

TOPIC_SUGGESTIONS = {
    "machine-learning": ["How do I train a model?", "Which algorithms should I use?"],
    "neural-networks": ["How does backpropagation work?", "What is an activation function?"],
    "prompt-engineering": ["Show me examples of effective prompts", "How do I improve my prompts?"],
}

CHAT_SYSTEM_INSTRUCTION = (
    "You are a warm, adaptive AI tutor for machine learning and AI. "
    "Answer in 2-4 conversational sentences that read well aloud."
)

Attempt = Callable[[], Any]


@dataclass
class TierOutcome:
    value: Any
    tier: int
    errors: List[str] = field(default_factory=list)


def canned_key(emotion: Optional[Emotion]) -> str:
    adjective = EMOTION_ADJECTIVES.get(emotion) if emotion else None
    return adjective if adjective in CANNED_RESPONSES else "default"


def prepare_text_for_audio(text: str) -> str:
    """Strip markdown so text-to-speech reads clean prose."""
    cleaned = re.sub(r"```.*?```", " ", text, flags=re.DOTALL)
    cleaned = re.sub(r"!\[[^\]]*\]\([^)]*\)", "", cleaned)
    cleaned = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", cleaned)
    cleaned = re.sub(r"[*_`#>]+", "", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def contextual_suggestions(emotion: Optional[Emotion], topic: Optional[str]) -> List[str]:
    """Up to three follow-up prompts keyed by emotion, with one topic-specific slot."""
    base = EMOTION_SUGGESTIONS.get(emotion, DEFAULT_SUGGESTIONS)
    topical = TOPIC_SUGGESTIONS.get(topic or "")
    if topical:
        return base[:2] + topical[:1]
    return base[:3]


class ResponseComposer:
    """Runs fallback chains and builds the conversational response contract."""

    def __init__(
        self,
        generator,
        recommender: Optional[VideoRecommender] = None,
        classifier: Optional[EmotionClassifier] = None,
        policy: Optional[InterventionPolicy] = None,
    ):
        self.generator = generator
        self.recommender = recommender or VideoRecommender()
        self.classifier = classifier or EmotionClassifier()
        self.policy = policy or InterventionPolicy()

    async def run_tiers(self, tiers: Sequence[Tuple[Attempt, int]], operation: str = "response") -> TierOutcome:
        """
        Try each (attempt, tier_id) in order and return the first success.

        Attempts may be plain callables or coroutine functions.

        Raises:
            GenerationError: every tier failed (only if the last tier is not static)
        """
        errors: List[str] = []
        for attempt, tier in tiers:
            try:
                value = attempt()
                if inspect.isawaitable(value):
                    value = await value
            except GenerationError as e:
                logger.warning(f"⚠️ [ResponseComposer] {operation}: tier {tier} failed ({e})")
                errors.append(f"tier {tier}: {e}")
                continue

            if tier != TIER_PRIMARY:
                logger.warning(f"⚠️ [ResponseComposer] {operation}: served from fallback tier {tier}")
            return TierOutcome(value=value, tier=tier, errors=errors)

        raise GenerationError(f"All fallback tiers failed for {operation}")

    async def compose(
        self,
        user_input: str,
        context: LearnerContext,
        history: Optional[Sequence[str]] = None,
        emotion=None,
        help_request: bool = False,
    ) -> TutorResponse:
        """Answer one learner message, degrading through the three tiers."""
        history = list(context.recent_history if history is None else history)[-HISTORY_WINDOW:]
        assessment = self.classifier.classify(user_input, history)
        current = normalize_emotion(emotion) or assessment.emotion
        topic = detect_topic(user_input) or detect_topic(context.current_topic)

        outcome = await self.run_tiers(
            [
                (lambda: self._primary_text(user_input, context, history, current, assessment.confidence, topic, help_request), TIER_PRIMARY),
                (lambda: self._secondary_text(user_input, current, help_request), TIER_SECONDARY),
                (lambda: (CANNED_RESPONSES[canned_key(current)], False), TIER_STATIC),
            ],
            operation="chat response",
        )
        text, video_requested = outcome.value

        audio = AudioSettings(
            enabled=context.preferences.audio_enabled,
            autoplay=current in (Emotion.FRUSTRATION, Emotion.CONFUSION),
        )
        if audio.enabled:
            audio.speech_text = prepare_text_for_audio(text)

        if outcome.tier == TIER_STATIC:
            return TutorResponse(
                text=text,
                video=None,
                suggestions=list(GENERIC_SUGGESTIONS),
                audio=audio,
                metadata={
                    "emotion": current.value,
                    "confidence": STATIC_CONFIDENCE,
                    "topic_detected": topic,
                    "fallback_tier_used": outcome.tier,
                    "next_steps": list(STATIC_NEXT_STEPS),
                },
            )

        video = None
        if topic and (video_requested or self.video_warranted(current, text)):
            video = self.find_video(context, topic)

        decision = self.policy.decide(current, assessment.confidence)
        if decision.type != InterventionType.NONE:
            next_steps = list(decision.next_steps)
        else:
            next_steps = [f"Keep exploring {topic}" if topic else "Ask a follow-up question", "Try a practice exercise"]
        if video:
            next_steps.append(f"Watch: {video.title}")

        return TutorResponse(
            text=text,
            video=video,
            suggestions=contextual_suggestions(current, topic),
            audio=audio,
            metadata={
                "emotion": current.value,
                "confidence": assessment.confidence,
                "topic_detected": topic,
                "fallback_tier_used": outcome.tier,
                "next_steps": next_steps,
            },
        )

    @staticmethod
    def video_warranted(emotion: Optional[Emotion], text: str = "") -> bool:
        return emotion in (Emotion.FRUSTRATION, Emotion.CONFUSION) or "visual" in (text or "").lower()

    def find_video(self, context: LearnerContext, topic: str) -> Optional[VideoCandidate]:
        query = VideoQuery(
            topic=topic,
            difficulty=context.overall_difficulty(),
            language=context.preferences.language,
        )
        return self.recommender.find_best(query.topic, query.difficulty, query.language)

    async def _primary_text(
        self,
        user_input: str,
        context: LearnerContext,
        history: List[str],
        emotion: Emotion,
        confidence: float,
        topic: Optional[str],
        help_request: bool,
    ) -> Tuple[str, bool]:
        history_block = "\n".join(f"- {turn}" for turn in history) or "- (start of conversation)"
        style = context.dominant_learning_style() or "not known"
        help_line = (
            "The learner explicitly asked for help: give a supportive, step-by-step hint rather than the full answer.\n"
            if help_request else ""
        )
        prompt = f"""Learner profile:
- Name: {context.name or 'unknown'}
- Background: {context.background_summary()}
- Dominant learning style: {style}
- Preferred format: {context.preferences.preferred_format}, pace: {context.preferences.pace}

Detected emotional state: {EMOTION_ADJECTIVES[emotion]} (confidence {confidence:.2f})
Detected topic: {topic or 'general AI'}
{help_line}
Conversation history:
{history_block}

Learner's latest message: "{user_input}"

Respond adaptively:
- If struggling: be encouraging and simplify
- If confident or bored: offer a challenge
- If confused: break the concept down
- If engaged: keep the momentum
Avoid heavy markdown; the answer may be read aloud.
If a short video would genuinely help, end your answer with the line {VIDEO_MARKER}"""

        raw = await self.generator.generate(
            prompt,
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
            temperature=0.8,
            max_tokens=1000,
        )
        video_requested = VIDEO_MARKER in raw
        text = raw.split(VIDEO_MARKER)[0].strip()
        if not text:
            raise GenerationError("Response contained no text")
        return text, video_requested

    async def _secondary_text(self, user_input: str, emotion: Emotion, help_request: bool) -> Tuple[str, bool]:
        prefix = "Give a short, supportive hint for: " if help_request else ""
        text = await self.generator.generate(
            f'{prefix}"{user_input}"\nThe learner seems {EMOTION_ADJECTIVES[emotion]}.',
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
            temperature=0.7,
            max_tokens=500,
        )
        text = text.split(VIDEO_MARKER)[0].strip()
        if not text:
            raise GenerationError("Response contained no text")
        return text, False
