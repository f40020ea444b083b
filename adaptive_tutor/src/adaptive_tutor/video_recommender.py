"""
Video Recommender

Ranks a curated catalog against a topic/difficulty/language query.

Lookup: exact bucket by normalized topic, otherwise the union of every bucket
whose key fuzzily matches. Candidates must be embeddable and pass the
difficulty (within one level) and language filters before scoring:

    educational value   high +3 / medium +2 / low +1
    exact difficulty    +2
    embeddable          +1
    trusted channel     +2
    topic in title      +2

Ties keep catalog order. Nothing here raises on a miss; callers get None or [].
"""

import logging
import re
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

from .models import VideoCandidate, VideoPlaylist, VideoSearchCriteria
from .video_catalog import DEFAULT_CATALOG, TRUSTED_CHANNELS

logger = logging.getLogger(__name__)

DIFFICULTY_RANK = {"beginner": 1, "intermediate": 2, "advanced": 3}
EDUCATIONAL_VALUE_POINTS = {"high": 3, "medium": 2, "low": 1}


def normalize_topic(topic: str) -> str:
    """Lowercase, whitespace to hyphens, drop everything but word chars and hyphens."""
    normalized = re.sub(r"\s+", "-", (topic or "").strip().lower())
    return re.sub(r"[^\w-]", "", normalized)


def parse_duration(duration: Optional[str]) -> int:
    """Convert "m:ss" or "h:mm:ss" to seconds; unparseable parts count as zero."""
    if not duration:
        return 0
    seconds = 0
    for index, part in enumerate(reversed(duration.split(":"))):
        try:
            seconds += int(part) * (60 ** index)
        except ValueError:
            continue
    return seconds


def difficulty_matches(video_difficulty: Optional[str], requested: Optional[str]) -> bool:
    if not requested:
        return True
    # Unknown levels count as intermediate
    video_level = DIFFICULTY_RANK.get(video_difficulty or "", 2)
    requested_level = DIFFICULTY_RANK.get(requested, 2)
    return abs(video_level - requested_level) <= 1


class VideoRecommender:
    """Filters and ranks catalog videos. The catalog is never mutated."""

    def __init__(
        self,
        catalog: Optional[Mapping[str, Sequence[VideoCandidate]]] = None,
        trusted_channels: Optional[Iterable[str]] = None,
    ):
        source = DEFAULT_CATALOG if catalog is None else catalog
        self.catalog: Dict[str, tuple] = {key: tuple(videos) for key, videos in source.items()}
        self.trusted_channels: FrozenSet[str] = frozenset(
            TRUSTED_CHANNELS if trusted_channels is None else trusted_channels
        )

    def find_best(
        self,
        topic: str,
        difficulty: Optional[str] = "beginner",
        language: Optional[str] = "en",
    ) -> Optional[VideoCandidate]:
        """Best single video for a topic, or None when nothing survives filtering."""
        candidates = list(self.catalog.get(normalize_topic(topic), ()))
        if not candidates:
            candidates = self._fuzzy_matches(topic)

        survivors = [
            video for video in candidates
            if self._passes_filters(video, difficulty=difficulty, language=language)
        ]
        ranked = self._rank(survivors, topic, difficulty)
        if not ranked:
            logger.debug(f"🎬 [VideoRecommender] No video for topic '{topic}'")
            return None
        return ranked[0]

    def recommend(
        self,
        topic: str,
        count: int = 3,
        criteria: Optional[VideoSearchCriteria] = None,
    ) -> List[VideoCandidate]:
        """Top `count` videos from the exact bucket plus every fuzzy match."""
        criteria = criteria or VideoSearchCriteria()
        candidates = list(self.catalog.get(normalize_topic(topic), ())) + self._fuzzy_matches(topic)

        seen = set()
        unique: List[VideoCandidate] = []
        for video in candidates:
            if video.video_id not in seen:
                seen.add(video.video_id)
                unique.append(video)

        survivors = [
            video for video in unique
            if self._passes_filters(video, difficulty=criteria.difficulty, language=criteria.language)
            and self._passes_criteria(video, criteria)
        ]
        return self._rank(survivors, topic, criteria.difficulty)[:max(count, 0)]

    def create_playlist(self, topic: str, difficulty: str = "beginner") -> VideoPlaylist:
        """Learning playlist of up to five educational videos for a topic."""
        videos = self.recommend(topic, 5, VideoSearchCriteria(difficulty=difficulty, educational_only=True))
        return VideoPlaylist(
            title=f"{topic[:1].upper()}{topic[1:]} - {difficulty} level",
            description=f"Curated learning playlist for {topic} at {difficulty} level",
            topic=topic,
            difficulty=difficulty,
            videos=videos,
            total_duration_seconds=sum(parse_duration(video.duration) for video in videos),
        )

    @staticmethod
    def embed_url(
        video_id: str,
        autoplay: bool = False,
        start: Optional[int] = None,
        end: Optional[int] = None,
        modest_branding: bool = True,
    ) -> str:
        """Embed URL with captions on and related videos off."""
        params = {}
        if autoplay:
            params["autoplay"] = "1"
        if start:
            params["start"] = str(start)
        if end:
            params["end"] = str(end)
        if modest_branding:
            params["modestbranding"] = "1"
        params.update({"rel": "0", "fs": "1", "cc_load_policy": "1"})
        return f"https://www.youtube.com/embed/{video_id}?{urlencode(params)}"

    def _fuzzy_matches(self, topic: str) -> List[VideoCandidate]:
        topic_lower = (topic or "").strip().lower()
        if not topic_lower:
            return []
        normalized = normalize_topic(topic)
        matches: List[VideoCandidate] = []
        for key, videos in self.catalog.items():
            spaced_key = key.replace("-", " ")
            if normalized in key or topic_lower in spaced_key or spaced_key in topic_lower or key in normalized:
                matches.extend(videos)
        return matches

    def _passes_filters(self, video: VideoCandidate, difficulty: Optional[str], language: Optional[str]) -> bool:
        if video.embeddable is False:
            return False
        if video.difficulty and not difficulty_matches(video.difficulty, difficulty):
            return False
        if language and language != "any" and video.language and video.language != language:
            return False
        return True

    def _passes_criteria(self, video: VideoCandidate, criteria: VideoSearchCriteria) -> bool:
        if criteria.educational_only and video.educational_value == "low":
            return False
        if video.channel and video.channel in criteria.exclude_channels:
            return False
        if criteria.max_duration_minutes is not None and video.duration:
            if parse_duration(video.duration) > criteria.max_duration_minutes * 60:
                return False
        return True

    def _rank(self, videos: List[VideoCandidate], topic: str, difficulty: Optional[str]) -> List[VideoCandidate]:
        # sorted() is stable, so equal scores keep catalog order
        return sorted(videos, key=lambda video: -self.relevance_score(video, topic, difficulty))

    def relevance_score(self, video: VideoCandidate, topic: str, difficulty: Optional[str] = None) -> int:
        score = EDUCATIONAL_VALUE_POINTS.get(video.educational_value, 1)
        if difficulty and video.difficulty == difficulty:
            score += 2
        if video.embeddable:
            score += 1
        if video.channel and video.channel in self.trusted_channels:
            score += 2
        if topic and topic.lower() in video.title.lower():
            score += 2
        return score
