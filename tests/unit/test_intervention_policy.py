"""
Unit Tests for Intervention Policy

Tests the severity gate and the emotion lookup table.
"""

import pytest

from adaptive_tutor.intervention_policy import InterventionPolicy
from adaptive_tutor.models import Emotion, InterventionType


class TestInterventionPolicy:
    """Test suite for InterventionPolicy."""

    @pytest.fixture
    def policy(self):
        return InterventionPolicy()

    def test_bored_learner_is_challenged(self, policy):
        decision = policy.decide("bored", 0.8)

        assert decision.type == InterventionType.CHALLENGE
        assert decision.message == "You seem to grasp this well! Ready for something more challenging?"
        assert decision.next_steps == ["Increase difficulty", "Add advanced concepts", "Provide real-world applications"]

    @pytest.mark.parametrize("emotion,expected", [
        ("frustrated", InterventionType.PAUSE),
        (Emotion.FRUSTRATION, InterventionType.PAUSE),
        ("confused", InterventionType.SIMPLIFY),
        ("confusion", InterventionType.SIMPLIFY),
        ("engaged", InterventionType.ENCOURAGE),
        ("excited", InterventionType.ENCOURAGE),
    ])
    def test_lookup_table(self, policy, emotion, expected):
        decision = policy.decide(emotion, 0.9)

        assert decision.type == expected
        assert 2 <= len(decision.next_steps) <= 3

    @pytest.mark.parametrize("severity", [0.0, 0.1, 0.29, 0.3])
    def test_low_severity_never_intervenes(self, policy, severity):
        """At or below 0.3 every emotion maps to type=none."""
        for emotion in list(Emotion) + ["frustrated", "bored", "unknown"]:
            decision = policy.decide(emotion, severity)
            assert decision.type == InterventionType.NONE
            assert decision.message == "Continue with current approach"

    @pytest.mark.parametrize("emotion", ["sleepy", None, Emotion.CURIOSITY, Emotion.NEUTRAL, Emotion.ANXIETY])
    def test_unmapped_emotion_falls_back_to_none(self, policy, emotion):
        assert policy.decide(emotion, 0.95).type == InterventionType.NONE

    def test_non_numeric_severity_is_treated_as_zero(self, policy):
        assert policy.decide("frustrated", "very").type == InterventionType.NONE

    def test_decisions_do_not_share_next_steps(self, policy):
        first = policy.decide("frustrated", 0.9)
        first.next_steps.append("mutated")

        assert "mutated" not in policy.decide("frustrated", 0.9).next_steps


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
