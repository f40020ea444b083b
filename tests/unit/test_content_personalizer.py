"""
Unit Tests for Content Personalizer

Tests prompt context, learning-style adaptation and reformulation.
"""

import pytest

from adaptive_tutor.content_personalizer import STYLE_ADAPTATIONS, ContentPersonalizer
from adaptive_tutor.errors import GenerationError, ParseError


class TestContentPersonalizer:
    """Test suite for ContentPersonalizer."""

    @pytest.mark.asyncio
    async def test_lesson_prompt_carries_learner_context(self, make_generator, learner, lesson_payload):
        generator = make_generator([lesson_payload])
        personalizer = ContentPersonalizer(generator)

        lesson = await personalizer.generate_lesson(learner, "neural networks", "beginner", "theory", "confused")

        prompt = generator.calls[0].prompt
        assert "Theory: beginner, Tooling: intermediate" in prompt
        assert "Current emotional state: confused" in prompt
        # Only the last three history entries are used
        assert "What is a model?" not in prompt
        assert "What is a neuron?" in prompt

        assert len(generator.calls) == 1
        assert lesson.title == "Neural Networks 101"
        assert lesson.quiz.correct_index == 0
        assert lesson.next_steps == ["Backpropagation"]
        assert lesson.adaptation_metadata["history_items"] == 3
        assert lesson.adaptation_metadata["emotional_state"] == "confused"
        assert lesson.adaptation_metadata["learning_style"] is None

    @pytest.mark.asyncio
    async def test_dominant_style_triggers_adaptation_pass(self, make_generator, visual_learner, lesson_payload):
        generator = make_generator([lesson_payload, "Picture the network as a layered diagram."])
        personalizer = ContentPersonalizer(generator)

        lesson = await personalizer.generate_lesson(visual_learner, "neural networks")

        assert len(generator.calls) == 2
        assert STYLE_ADAPTATIONS["visual"] in generator.calls[1].prompt
        assert lesson.content == "Picture the network as a layered diagram."
        assert lesson.adaptation_metadata["learning_style"] == "visual"

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self, make_generator, learner):
        """Failures are left to the caller's fallback chain."""
        personalizer = ContentPersonalizer(make_generator([]))
        with pytest.raises(GenerationError):
            await personalizer.generate_lesson(learner, "nlp")

    @pytest.mark.asyncio
    async def test_malformed_lesson_is_a_parse_error(self, make_generator, learner):
        personalizer = ContentPersonalizer(make_generator([{"title": "No content field"}]))
        with pytest.raises(ParseError):
            await personalizer.generate_lesson(learner, "nlp")

    @pytest.mark.asyncio
    async def test_basic_lesson(self, make_generator, lesson_payload):
        generator = make_generator([lesson_payload])
        lesson = await ContentPersonalizer(generator).generate_basic_lesson("nlp", "beginner")

        assert lesson.adaptation_metadata == {"difficulty": "beginner", "personalized": False}
        assert "beginner lesson" in generator.calls[0].prompt

    def test_fallback_lesson_is_complete(self):
        lesson = ContentPersonalizer.fallback_lesson("transformers", "advanced")

        assert lesson.title == "Introduction to transformers"
        assert len(lesson.objectives) == 3
        assert lesson.quiz.options[lesson.quiz.correct_index] == "Understand the problem it solves"
        assert lesson.adaptation_metadata["static"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("emotion", ["neutral", None, "not-an-emotion"])
    async def test_reformulate_is_noop_without_emotion(self, make_generator, emotion):
        generator = make_generator(["should not be used"])
        content = "Gradient descent follows the slope downhill."

        result = await ContentPersonalizer(generator).reformulate(content, "ok", emotion)

        assert result == content
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_reformulate_for_frustrated_learner(self, make_generator):
        generator = make_generator(["Let's take it one small step at a time."])

        result = await ContentPersonalizer(generator).reformulate(
            "Dense original text", "this is too much", "frustrated", preferred_format="visual"
        )

        assert result == "Let's take it one small step at a time."
        prompt = generator.calls[0].prompt
        assert "The learner is frustrated" in prompt
        assert "Preferred format: visual" in prompt
        assert "Dense original text" in prompt

    @pytest.mark.asyncio
    async def test_feedback(self, make_generator):
        generator = make_generator(["Nice reasoning! Check the bias term."])

        text = await ContentPersonalizer(generator).feedback("w*x", "w*x + b", "Perceptrons", "engaged")

        assert text == "Nice reasoning! Check the bias term."
        assert generator.calls[0].options["temperature"] == 0.8
        assert "Student Emotional State: engaged" in generator.calls[0].prompt


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
