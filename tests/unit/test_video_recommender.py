"""
Unit Tests for Video Recommender

Tests catalog lookup, filtering, ranking and playlist helpers.
"""

import pytest

from adaptive_tutor.models import VideoCandidate, VideoSearchCriteria
from adaptive_tutor.video_catalog import DEFAULT_CATALOG
from adaptive_tutor.video_recommender import (
    VideoRecommender,
    difficulty_matches,
    normalize_topic,
    parse_duration,
)


def make_video(video_id, **overrides):
    fields = {
        "title": f"Video {video_id}",
        "description": "",
        "duration": "10:00",
        "channel": "Some Channel",
        "educational_value": "high",
        "difficulty": "beginner",
        "embeddable": True,
        "language": "en",
    }
    fields.update(overrides)
    return VideoCandidate(video_id=video_id, **fields)


class TestVideoRecommender:
    """Test suite for VideoRecommender."""

    @pytest.fixture
    def recommender(self):
        return VideoRecommender()

    def test_non_embeddable_video_is_never_returned(self):
        """Two-item bucket where only one video can be embedded."""
        blocked = make_video("blocked", title="Neural networks deep dive", embeddable=False)
        allowed = make_video("allowed")
        recommender = VideoRecommender(catalog={"neural-networks": [blocked, allowed]})

        assert recommender.find_best("neural-networks", "beginner", "en") == allowed
        assert recommender.recommend("neural-networks", 5) == [allowed]

    def test_exact_bucket_ranking(self, recommender):
        best = recommender.find_best("neural-networks", "beginner", "en")

        assert best.video_id == "aircAruvnKk"
        assert best.channel == "3Blue1Brown"

    def test_fuzzy_match_on_partial_topic(self, recommender):
        assert recommender.find_best("neural").video_id == "aircAruvnKk"

    def test_fuzzy_match_unions_buckets(self, recommender):
        videos = recommender.recommend("learning", 10)
        assert {video.video_id for video in videos} == {"ukzFI9rgwfU", "aircAruvnKk", "R9OHn5ZF4Uo"}

    def test_difficulty_window_is_one_level(self, recommender):
        assert recommender.find_best("transformers", "beginner") is None
        assert recommender.find_best("transformers", "intermediate").video_id == "kCc8FmEb1nY"

    def test_language_filter(self):
        spanish = make_video("es-1", language="es")
        recommender = VideoRecommender(catalog={"nlp": [spanish]})

        assert recommender.find_best("nlp", language="en") is None
        assert recommender.find_best("nlp", language="es") == spanish
        assert recommender.find_best("nlp", language="any") == spanish

    def test_unknown_topic_returns_nothing(self, recommender):
        assert recommender.find_best("quantum basket weaving") is None
        assert recommender.recommend("quantum basket weaving") == []

    def test_ranking_is_deterministic_and_stable(self):
        """Equal scores keep catalog order; repeated calls give the same order."""
        first = make_video("first")
        second = make_video("second")
        trusted = make_video("trusted", channel="3Blue1Brown")
        recommender = VideoRecommender(catalog={"nlp": [first, second, trusted]})

        ranked = recommender.recommend("nlp", 3)

        assert [video.video_id for video in ranked] == ["trusted", "first", "second"]
        assert recommender.recommend("nlp", 3) == ranked

    def test_relevance_score_components(self, recommender):
        video = make_video("x", title="Intro to NLP", channel="Computerphile", educational_value="medium")
        # medium 2 + exact difficulty 2 + embeddable 1 + trusted 2 + topic in title 2
        assert recommender.relevance_score(video, "nlp", "beginner") == 9

    def test_search_criteria(self, recommender):
        short_only = recommender.recommend("neural-networks", 5, VideoSearchCriteria(max_duration_minutes=20))
        assert [video.video_id for video in short_only] == ["aircAruvnKk"]

        no_3b1b = recommender.recommend("neural-networks", 5, VideoSearchCriteria(exclude_channels=("3Blue1Brown",)))
        assert [video.video_id for video in no_3b1b] == ["IHZwWFHWa-w"]

    def test_create_playlist(self, recommender):
        playlist = recommender.create_playlist("neural-networks", "beginner")

        assert playlist.title == "Neural-networks - beginner level"
        assert [video.video_id for video in playlist.videos] == ["aircAruvnKk", "IHZwWFHWa-w"]
        assert playlist.total_duration_seconds == 1120 + 1261

    def test_embed_url(self):
        url = VideoRecommender.embed_url("abc123", autoplay=True, start=30)

        assert url.startswith("https://www.youtube.com/embed/abc123?")
        assert "autoplay=1" in url
        assert "start=30" in url
        assert "modestbranding=1" in url
        assert "rel=0" in url

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_CATALOG["new-topic"] = ()


class TestVideoHelpers:
    """Test suite for the module-level helpers."""

    @pytest.mark.parametrize("topic,expected", [
        ("Neural Networks", "neural-networks"),
        ("  NLP!  ", "nlp"),
        ("prompt   engineering?", "prompt-engineering"),
    ])
    def test_normalize_topic(self, topic, expected):
        assert normalize_topic(topic) == expected

    @pytest.mark.parametrize("duration,seconds", [
        ("18:40", 1120),
        ("1:02:03", 3723),
        ("45", 45),
        (None, 0),
        ("", 0),
    ])
    def test_parse_duration(self, duration, seconds):
        assert parse_duration(duration) == seconds

    def test_difficulty_matches(self):
        assert difficulty_matches("beginner", "intermediate")
        assert not difficulty_matches("beginner", "advanced")
        assert difficulty_matches("advanced", None)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
