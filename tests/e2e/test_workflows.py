"""
End-to-End Tests for Orchestrator Workflows

Runs each workflow through every module with a scripted generation backend:
- Learning session (primary path and fully offline)
- Exercise evaluation with frustration scoring and intervention
- Content update across several domains
- Emotional intervention with reformulation
- Conversational actions
"""

import json

import pytest

from adaptive_tutor.errors import GenerationError, UnknownActionError, UnknownWorkflowError, ValidationError
from adaptive_tutor.learner_context import LearnerContext
from adaptive_tutor.models import Emotion, InterventionType
from adaptive_tutor.orchestrator import Orchestrator
from adaptive_tutor.response_composer import CANNED_RESPONSES


def scan(priority, *topics):
    return {
        "topics": [{"name": name, "relevance": relevance} for name, relevance in topics],
        "update_priority": priority,
    }


def outline(title):
    return {"title": title, "outline": ["Intro", "Practice"], "learning_outcomes": ["Apply it"]}


class TestLearningSession:
    """Test suite for the learning_session workflow."""

    @pytest.mark.asyncio
    async def test_primary_path(self, make_generator, learner, lesson_payload, exercise_payload):
        orchestrator = Orchestrator(generator=make_generator([lesson_payload, exercise_payload]))

        result = await orchestrator.run_workflow(
            "learning_session",
            learner,
            {"user_input": "This is awesome, teach me about transformers", "include_exercises": True},
        )

        assert result.emotion.emotion == Emotion.ENGAGEMENT
        assert result.lesson.title == "Neural Networks 101"
        assert result.exercise.title == "Build a perceptron"
        assert result.exercise.metadata["objectives"] == result.lesson.objectives
        assert result.exercise.metadata["type"] == "coding"
        assert result.video is None
        assert result.recommendations == [
            "Great momentum! Continue to the next topic when ready",
            "Consider exploring related advanced concepts",
        ]
        assert result.metadata["steps"] == ["classify_emotion", "generate_lesson", "generate_exercise"]
        assert result.metadata["fallback_tiers"] == {"generate_lesson": 0, "generate_exercise": 0}
        assert result.metadata["workflow"] == "learning_session"
        assert result.metadata["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_offline_degrades_to_static_content(self, make_generator, learner):
        """Every generation call fails; the session still returns a full result."""
        orchestrator = Orchestrator(generator=make_generator([]))

        result = await orchestrator.run_workflow(
            "learning_session",
            learner,
            {"user_input": "I don't understand neural networks", "include_exercises": True},
        )

        assert result.lesson.title == "Introduction to neural-networks"
        assert result.exercise.metadata["static"] is True
        assert result.metadata["fallback_tiers"] == {"generate_lesson": 2, "generate_exercise": 2}
        assert result.emotion.emotion == Emotion.FRUSTRATION
        # Frustration above the learner's sensitivity threshold brings in a video
        assert result.video.video_id == "aircAruvnKk"
        assert result.metadata["steps"][-1] == "recommend_video"
        assert result.recommendations == []

    @pytest.mark.asyncio
    async def test_secondary_lesson_path(self, make_generator, learner, lesson_payload):
        generator = make_generator([GenerationError("timeout"), lesson_payload])
        result = await Orchestrator(generator=generator).run_workflow(
            "learning_session", learner, {"topic": "attention", "difficulty": "advanced"}
        )

        assert result.metadata["fallback_tiers"]["generate_lesson"] == 1
        assert result.lesson.adaptation_metadata == {"difficulty": "advanced", "personalized": False}
        assert result.exercise is None

    @pytest.mark.asyncio
    async def test_visual_learner_gets_video(self, make_generator, visual_learner):
        result = await Orchestrator(generator=make_generator([])).run_workflow(
            "learning_session", visual_learner, {"topic": "nlp", "user_input": "ok"}
        )
        assert result.video.video_id == "CMrHM8a3hqw"

    @pytest.mark.asyncio
    async def test_topic_falls_back_to_current_topic(self, make_generator):
        context = {"current_topic": "embeddings", "skill_levels": {"theory": "advanced"}}
        result = await Orchestrator(generator=make_generator([])).run_workflow(
            "learning_session", context, {"user_input": "hello"}
        )

        assert result.lesson.title == "Introduction to embeddings"
        assert result.lesson.adaptation_metadata["difficulty"] == "advanced"

    @pytest.mark.asyncio
    async def test_missing_topic_is_a_validation_error(self, make_generator, blank_learner):
        with pytest.raises(ValidationError) as excinfo:
            await Orchestrator(generator=make_generator([])).run_workflow(
                "learning_session", blank_learner, {"user_input": "hello there"}
            )
        assert excinfo.value.parameter == "topic"


class TestExerciseEvaluation:
    """Test suite for the exercise_evaluation workflow."""

    @pytest.mark.asyncio
    async def test_low_score_triggers_frustration_and_intervention(self, make_generator, learner, exercise_payload):
        generator = make_generator([
            {"score": 20, "strengths": [], "improvements": ["Implement the step function"]},
            "Let's work through it together.",
        ])
        result = await Orchestrator(generator=generator).run_workflow(
            "exercise_evaluation",
            learner,
            {
                "exercise": exercise_payload,
                "submission": {"code": "pass"},
                "attempt_number": 5,
                "time_spent": 400,
                "recent_interactions": ["I'm stuck"],
            },
        )

        assert result.evaluation.score == 20
        assert result.evaluation.tone == "patient and supportive"
        assert result.frustration.frustration_level == pytest.approx(0.8)
        assert result.intervention.type == InterventionType.PAUSE
        assert result.next_steps[0] == "Review the lesson material before retrying"
        assert result.intervention.message in result.next_steps
        assert result.metadata["steps"] == ["evaluate_submission", "score_frustration", "decide_intervention"]

    @pytest.mark.asyncio
    async def test_mild_frustration_has_no_intervention(self, make_generator, learner, exercise_payload):
        generator = make_generator([{"score": 40}, "Keep at it."])
        result = await Orchestrator(generator=generator).run_workflow(
            "exercise_evaluation",
            learner,
            {"exercise": exercise_payload, "submission": {"code": "x"}, "attempt_number": 4},
        )

        assert result.frustration.frustration_level == pytest.approx(0.4)
        assert result.intervention is None

    @pytest.mark.asyncio
    async def test_frustration_at_gate_has_no_intervention(self, make_generator, learner, exercise_payload):
        """Four attempts plus one frustration keyword land exactly on 0.5, which does not exceed the gate."""
        generator = make_generator([{"score": 30}, "Almost there."])
        result = await Orchestrator(generator=generator).run_workflow(
            "exercise_evaluation",
            learner,
            {
                "exercise": exercise_payload,
                "submission": {"code": "x"},
                "attempt_number": 4,
                "recent_interactions": ["I'm stuck"],
            },
        )

        assert result.frustration.frustration_level == pytest.approx(0.5)
        assert result.intervention is None
        assert result.metadata["steps"] == ["evaluate_submission", "score_frustration"]

    @pytest.mark.asyncio
    async def test_offline_evaluation_skips_frustration(self, make_generator, learner, exercise_payload):
        result = await Orchestrator(generator=make_generator([])).run_workflow(
            "exercise_evaluation",
            learner,
            {"exercise": exercise_payload, "submission": {"explanation": "z" * 40}},
        )

        assert result.evaluation.score == 75
        assert result.evaluation.metadata["evaluation_path"] == "offline"
        assert result.metadata["fallback_tiers"] == {"evaluate_submission": 2}
        assert result.frustration is None
        assert result.next_steps[0] == "Good progress! Review feedback and try once more"

    @pytest.mark.asyncio
    async def test_non_finite_evaluator_score_falls_back_to_offline(self, make_generator, learner, exercise_payload):
        generator = make_generator([
            '{"score": NaN, "strengths": [], "improvements": []}',
            '{"score": Infinity}',
        ])
        result = await Orchestrator(generator=generator).run_workflow(
            "exercise_evaluation",
            learner,
            {"exercise": exercise_payload, "submission": {"code": "x"}},
        )

        assert result.evaluation.score == 60
        assert result.evaluation.metadata["evaluation_path"] == "offline"
        assert result.metadata["fallback_tiers"] == {"evaluate_submission": 2}
        assert "degraded" not in result.metadata
        assert len(generator.calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params,parameter", [
        ({"submission": {"code": "x"}}, "exercise"),
        ({"exercise": {"title": "t", "description": "d"}}, "submission"),
        ({"exercise": {"title": "no description"}, "submission": {"code": "x"}}, "exercise"),
        ({"exercise": {"title": "t", "description": "d"}, "submission": {"code": "x"}, "attempt_number": "two"},
         "attempt_number"),
    ])
    async def test_invalid_parameters(self, make_generator, learner, params, parameter):
        with pytest.raises(ValidationError) as excinfo:
            await Orchestrator(generator=make_generator([])).run_workflow("exercise_evaluation", learner, params)
        assert excinfo.value.parameter == parameter


class TestContentUpdate:
    """Test suite for the content_update workflow."""

    @pytest.mark.asyncio
    async def test_high_priority_across_domains(self, make_generator, blank_learner):
        generator = make_generator([
            scan("high", ("Agents", 0.9), ("RAG", 0.6)),
            scan("low", ("Tokenizers", 0.8)),
            outline("Agents"),
            outline("Tokenizers"),
            outline("RAG"),
        ])
        result = await Orchestrator(generator=generator).run_workflow(
            "content_update", blank_learner, {"domains": ["ai", "nlp"]}
        )

        assert result.trending.update_priority == "high"
        assert [topic.name for topic in result.trending.topics] == ["Agents", "Tokenizers", "RAG"]
        assert [lesson.title for lesson in result.new_lessons] == ["Agents", "Tokenizers", "RAG"]
        assert result.recommendations == [
            "Identified 3 trending topics",
            "Generated 3 new lesson outlines",
            "Consider prioritizing implementation of these new lessons",
            "Schedule regular content update reviews (weekly recommended)",
        ]
        assert "for intermediate developers" in generator.calls[2].prompt

    @pytest.mark.asyncio
    async def test_low_priority_skips_drafting(self, make_generator, blank_learner):
        generator = make_generator([scan("medium", ("Agents", 0.4))])
        result = await Orchestrator(generator=generator).run_workflow("content_update", blank_learner, {})

        assert result.new_lessons == []
        assert result.recommendations == ["No high-priority updates needed at this time"]
        assert len(generator.calls) == 1

    @pytest.mark.asyncio
    async def test_existing_content_is_checked(self, make_generator, blank_learner):
        generator = make_generator([
            scan("low"),
            {"is_outdated": True, "reason": "Deprecated API", "suggested_update": "Migrate", "urgency": "medium"},
        ])
        result = await Orchestrator(generator=generator).run_workflow(
            "content_update",
            blank_learner,
            {"domain": "ai", "existing_content": [{"title": "Old lesson", "content": "..."}]},
        )

        assert [item.title for item in result.outdated_content] == ["Old lesson"]
        assert "find_outdated" in result.metadata["steps"]


class TestEmotionalIntervention:
    """Test suite for the emotional_intervention workflow."""

    @pytest.mark.asyncio
    async def test_confusion_reformulates_content(self, make_generator, learner):
        generator = make_generator(["Think of attention as a spotlight."])
        result = await Orchestrator(generator=generator).run_workflow(
            "emotional_intervention",
            learner,
            {"user_input": "I'm lost, this makes no sense", "current_content": "Attention computes softmax(QK^T)V."},
        )

        assert result.emotion.emotion == Emotion.CONFUSION
        assert result.intervention.type == InterventionType.SIMPLIFY
        assert result.reformulated_content == "Think of attention as a spotlight."
        assert result.action_plan[:3] == [
            "Detected confusion state with 90% confidence",
            "Recommended intervention: simplify",
            "Action: I see this concept isn't clicking yet. Let me explain it in a different way.",
        ]
        assert result.action_plan[3:] == ["Next: Use analogies", "Next: Provide more examples", "Next: Check prerequisites"]

    @pytest.mark.asyncio
    async def test_reformulation_falls_back_to_original(self, make_generator, blank_learner):
        result = await Orchestrator(generator=make_generator([])).run_workflow(
            "emotional_intervention",
            blank_learner,
            {"user_input": "I'm lost, this makes no sense", "current_content": "Original text"},
        )

        assert result.reformulated_content == "Original text"
        assert result.metadata["fallback_tiers"] == {"reformulate_content": 2}

    @pytest.mark.asyncio
    async def test_no_reformulation_without_content(self, make_generator, blank_learner):
        generator = make_generator([])
        result = await Orchestrator(generator=generator).run_workflow(
            "emotional_intervention", blank_learner, {"user_input": "This is too easy, give me more"}
        )

        assert result.intervention.type == InterventionType.CHALLENGE
        assert result.reformulated_content is None
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_user_input_required(self, make_generator, blank_learner):
        with pytest.raises(ValidationError):
            await Orchestrator(generator=make_generator([])).run_workflow("emotional_intervention", blank_learner, {})


class TestOrchestratorEntryPoints:
    """Test suite for workflow and action dispatch."""

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, make_generator):
        with pytest.raises(UnknownWorkflowError) as excinfo:
            await Orchestrator(generator=make_generator([])).run_workflow("teleport", {}, {})
        assert excinfo.value.name == "teleport"

    @pytest.mark.asyncio
    async def test_invalid_context(self, make_generator):
        with pytest.raises(ValidationError):
            await Orchestrator(generator=make_generator([])).run_workflow(
                "content_update", {"skill_levels": {"cooking": "advanced"}}, {}
            )

    @pytest.mark.asyncio
    async def test_result_serializes_to_json(self, make_generator, learner):
        result = await Orchestrator(generator=make_generator([])).run_workflow(
            "learning_session", learner, {"topic": "nlp", "include_exercises": True}
        )
        data = json.loads(json.dumps(result.to_dict()))

        assert data["lesson"]["title"] == "Introduction to nlp"
        assert data["emotion"]["emotion"] == "neutral"

    @pytest.mark.asyncio
    async def test_help_action_offline(self, make_generator):
        response = await Orchestrator(generator=make_generator([])).handle_action(
            "help", "I'm stuck on backpropagation", {"preferences": {"audio_enabled": False}}
        )

        assert response.text == CANNED_RESPONSES["frustrated"]
        assert response.metadata["fallback_tier_used"] == 2
        assert response.audio.enabled is False

    @pytest.mark.asyncio
    async def test_chat_action_uses_history(self, make_generator):
        generator = make_generator(["Backpropagation pushes the error backwards."])
        context = LearnerContext(recent_history=["old"] * 3)

        response = await Orchestrator(generator=generator).handle_action(
            "chat", "How does backpropagation work?", context, history=["What is a gradient?"]
        )

        assert response.metadata["fallback_tier_used"] == 0
        assert "- What is a gradient?" in generator.calls[0].prompt
        assert "- old" not in generator.calls[0].prompt

    @pytest.mark.asyncio
    async def test_unknown_action(self, make_generator):
        with pytest.raises(UnknownActionError):
            await Orchestrator(generator=make_generator([])).handle_action("dance", "hi")

    @pytest.mark.asyncio
    async def test_empty_message(self, make_generator):
        with pytest.raises(ValidationError):
            await Orchestrator(generator=make_generator([])).handle_action("chat", "   ")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
