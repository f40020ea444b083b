"""
Curated Video Catalog

Read-only reference data shared by every request. Buckets are keyed by
normalized topic; the same video may appear in several buckets.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple

from .models import VideoCandidate

TRUSTED_CHANNELS: FrozenSet[str] = frozenset({
    "3Blue1Brown",
    "Two Minute Papers",
    "Fireship",
    "Computerphile",
    "Crash Course Computer Science",
    "StatQuest with Josh Starmer",
    "Sentdex",
    "Code Bullet",
})

_NEURAL_NETWORK_INTRO = VideoCandidate(
    video_id="aircAruvnKk",
    title="But what is a Neural Network?",
    description="Visual and intuitive explanation of neural networks",
    duration="18:40",
    channel="3Blue1Brown",
    educational_value="high",
    difficulty="beginner",
    embeddable=True,
    language="en",
)

DEFAULT_CATALOG: Mapping[str, Tuple[VideoCandidate, ...]] = MappingProxyType({
    "machine-learning": (
        VideoCandidate(
            video_id="ukzFI9rgwfU",
            title="Machine Learning Explained",
            description="A comprehensive introduction to machine learning concepts",
            duration="12:34",
            channel="Zach Star",
            educational_value="high",
            difficulty="beginner",
            embeddable=True,
            language="en",
        ),
        _NEURAL_NETWORK_INTRO,
    ),
    "neural-networks": (
        _NEURAL_NETWORK_INTRO,
        VideoCandidate(
            video_id="IHZwWFHWa-w",
            title="Neural Networks Explained",
            description="Comprehensive neural network tutorial",
            duration="21:01",
            channel="Zach Star",
            educational_value="high",
            difficulty="intermediate",
            embeddable=True,
            language="en",
        ),
    ),
    "deep-learning": (
        VideoCandidate(
            video_id="R9OHn5ZF4Uo",
            title="Deep Learning in 5 Minutes",
            description="Quick introduction to deep learning concepts",
            duration="5:12",
            channel="Siraj Raval",
            educational_value="high",
            difficulty="beginner",
            embeddable=True,
            language="en",
        ),
    ),
    "transformers": (
        VideoCandidate(
            video_id="kCc8FmEb1nY",
            title="Attention is All You Need (Transformer) - Model explanation",
            description="Deep dive into transformer architecture",
            duration="27:07",
            channel="The A.I. Hacker - Michael Phi",
            educational_value="high",
            difficulty="advanced",
            embeddable=True,
            language="en",
        ),
    ),
    "prompt-engineering": (
        VideoCandidate(
            video_id="dOxUroR57xs",
            title="Prompt Engineering Guide",
            description="Complete guide to effective prompt engineering",
            duration="15:20",
            channel="AI Explained",
            educational_value="high",
            difficulty="intermediate",
            embeddable=True,
            language="en",
        ),
    ),
    "computer-vision": (
        VideoCandidate(
            video_id="SPuwxIyRpFI",
            title="Computer Vision Explained",
            description="Introduction to computer vision and image processing",
            duration="10:45",
            channel="Computerphile",
            educational_value="high",
            difficulty="intermediate",
            embeddable=True,
            language="en",
        ),
    ),
    "nlp": (
        VideoCandidate(
            video_id="CMrHM8a3hqw",
            title="Natural Language Processing Explained",
            description="Comprehensive introduction to NLP concepts",
            duration="13:58",
            channel="Computerphile",
            educational_value="high",
            difficulty="intermediate",
            embeddable=True,
            language="en",
        ),
    ),
})
