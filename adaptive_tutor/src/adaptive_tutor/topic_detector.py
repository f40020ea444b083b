"""
Topic Detection

Keyword lookup from learner text to a video catalog key. Groups are checked
in order and the first group with a matching pattern wins.
"""

import re
from typing import Optional, Sequence, Tuple

TOPIC_PATTERNS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("machine-learning", ("machine learning", "ml", "algorithm", "prediction", "supervised", "unsupervised")),
    ("neural-networks", ("neural network", "neural net", "perceptron", "neuron", "backpropagation")),
    ("deep-learning", ("deep learning", "rnn", "cnn", "lstm")),
    ("transformers", ("transformer", "attention", "bert", "gpt", "llm")),
    ("prompt-engineering", ("prompt", "prompting", "few-shot", "zero-shot", "chain of thought")),
    ("computer-vision", ("computer vision", "image classification", "opencv", "object detection")),
    ("nlp", ("nlp", "natural language", "tokenization", "embedding")),
)


def detect_topic(text: Optional[str], patterns: Sequence[Tuple[str, Sequence[str]]] = TOPIC_PATTERNS) -> Optional[str]:
    """Return the catalog key for the first matching topic group, or None."""
    if not text:
        return None
    text_lower = text.lower()
    for topic, keywords in patterns:
        for keyword in keywords:
            # Prefix match on word start so "neurons" and "embeddings" still hit
            if re.search(rf"\b{re.escape(keyword)}", text_lower):
                return topic
    return None
