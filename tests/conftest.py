"""
Shared fixtures: a scripted stand-in for the text generation backend and a
few learner contexts.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
project_root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.join(project_root, "adaptive_tutor", "src"))
sys.path.insert(0, project_root)

from adaptive_tutor.errors import GenerationError
from adaptive_tutor.learner_context import (
    LearnerContext,
    LearnerPreferences,
    LearningStyleWeights,
    SkillLevels,
)


@dataclass
class GenerationCall:
    prompt: str
    system_instruction: Optional[str]
    options: Dict[str, Any] = field(default_factory=dict)


class ScriptedGenerator:
    """
    Returns scripted responses in order.

    Dicts and lists are serialized to JSON, exception instances are raised,
    and once the script runs out every call fails with GenerationError.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[GenerationCall] = []

    async def generate(self, prompt, system_instruction=None, **options) -> str:
        self.calls.append(GenerationCall(prompt, system_instruction, options))
        if not self.responses:
            raise GenerationError("script exhausted")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


LESSON_PAYLOAD = {
    "title": "Neural Networks 101",
    "objectives": ["Describe a neuron", "Explain weights and biases"],
    "content": "A neural network stacks simple units called neurons.",
    "codeExample": "print('hello neuron')",
    "quiz": {
        "question": "What does a weight scale?",
        "options": ["An input", "The learning rate"],
        "correctAnswer": 0,
        "explanation": "Each weight scales one input.",
    },
    "nextSteps": ["Backpropagation"],
}

EXERCISE_PAYLOAD = {
    "title": "Build a perceptron",
    "description": "Implement a single perceptron in plain Python.",
    "instructions": ["Initialise weights", "Compute the weighted sum", "Apply a step function"],
    "starter_code": "def perceptron(x, w, b):\n    pass\n",
    "expected_output": "1 for positive inputs",
    "evaluation_criteria": ["Correct output", "Readable code"],
    "hints": ["Start with two inputs"],
}


@pytest.fixture
def lesson_payload():
    return json.loads(json.dumps(LESSON_PAYLOAD))


@pytest.fixture
def exercise_payload():
    return json.loads(json.dumps(EXERCISE_PAYLOAD))


@pytest.fixture
def learner():
    """Learner with no dominant learning style."""
    return LearnerContext(
        user_id="learner-1",
        name="Sam",
        skill_levels=SkillLevels(theory="beginner", tooling="intermediate"),
        recent_history=["What is a model?", "How do I train it?", "Thanks!", "What is a neuron?"],
    )


@pytest.fixture
def visual_learner():
    return LearnerContext(
        user_id="learner-2",
        skill_levels=SkillLevels(theory="beginner"),
        learning_style=LearningStyleWeights(visual=0.9, auditory=0.4, kinesthetic=0.2),
        preferences=LearnerPreferences(preferred_format="visual"),
    )


@pytest.fixture
def blank_learner():
    return LearnerContext()


@pytest.fixture
def make_generator():
    """Factory for ScriptedGenerator instances."""
    return ScriptedGenerator
