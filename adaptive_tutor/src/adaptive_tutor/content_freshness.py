"""
Content Freshness Module

Keeps the lesson library current: scans a domain for trending topics, flags
outdated lessons and drafts outlines for new ones. Every call is a stateless
prompt + JSON validation round trip. Batch operations skip items whose
generation or parsing fails instead of failing the whole batch.
"""

import logging
from typing import List, Sequence, Union

from .errors import GenerationError, ParseError
from .schemas import (
    ContentItem,
    CuratedResource,
    LessonOutline,
    OutdatedItem,
    OutdatedVerdict,
    TrendingScan,
    TrendingTopic,
)
from .text_generation import generate_json, generate_structured, validate_payload

logger = logging.getLogger(__name__)

CONTENT_TRUNCATE_CHARS = 1000
MAX_DRAFTED_LESSONS = 5


class ContentFreshnessModule:
    """Trending-topic scans, staleness checks and lesson drafting."""

    def __init__(self, generator):
        self.generator = generator

    async def scan_trending(self, domain: str) -> TrendingScan:
        """Trending topics for a domain; failures yield an empty low-priority scan."""
        prompt = f"""As an AI education content curator, identify the most important recent developments in "{domain}".

Focus on:
- New techniques, tools or frameworks practitioners are adopting
- Changes that make existing learning material inaccurate
- Topics learners are actively asking about

Return ONLY a JSON object with this structure:
{{
  "topics": [
    {{"name": "Topic name", "relevance": 0.9, "source": "Where this trend shows up", "summary": "Why it matters"}}
  ],
  "update_priority": "high|medium|low"
}}"""
        try:
            scan = await generate_structured(
                self.generator,
                prompt,
                TrendingScan,
                system_instruction="You are an AI research analyst tracking developments relevant to education.",
                temperature=0.6,
                max_tokens=2000,
            )
        except GenerationError as e:
            logger.warning(f"⚠️ [ContentFreshness] Trending scan failed for '{domain}': {e}")
            return TrendingScan(topics=[], update_priority="low")

        logger.info(f"✅ [ContentFreshness] {len(scan.topics)} trending topics in '{domain}' ({scan.update_priority})")
        return scan

    async def find_outdated(self, existing_items: Sequence[Union[ContentItem, dict]]) -> List[OutdatedItem]:
        """Flag outdated lessons; items that fail to evaluate are skipped."""
        flagged: List[OutdatedItem] = []
        for raw in existing_items:
            try:
                item = raw if isinstance(raw, ContentItem) else validate_payload(raw, ContentItem)
                prompt = f"""Analyze whether this educational content is outdated:

Title: {item.title}
Last updated: {item.last_updated or 'unknown'}
Content: {item.content[:CONTENT_TRUNCATE_CHARS]}

Return ONLY a JSON object with this structure:
{{"is_outdated": true, "reason": "What changed", "suggested_update": "What to update", "urgency": "high|medium|low"}}"""
                verdict = await generate_structured(
                    self.generator,
                    prompt,
                    OutdatedVerdict,
                    system_instruction="You review technical learning material for accuracy and currency.",
                    temperature=0.4,
                    max_tokens=800,
                )
            except GenerationError as e:
                logger.warning(f"⚠️ [ContentFreshness] Skipping content item: {e}")
                continue

            if verdict.is_outdated:
                flagged.append(OutdatedItem(
                    title=item.title,
                    reason=verdict.reason,
                    suggested_update=verdict.suggested_update,
                    urgency=verdict.urgency,
                ))
        return flagged

    async def draft_lessons(
        self,
        topics: Sequence[Union[TrendingTopic, str]],
        audience: str = "intermediate developers",
    ) -> List[LessonOutline]:
        """Lesson outlines for the first five topics; failing topics are skipped."""
        outlines: List[LessonOutline] = []
        for topic in list(topics)[:MAX_DRAFTED_LESSONS]:
            name = topic.name if isinstance(topic, TrendingTopic) else str(topic)
            prompt = f"""Design a lesson about "{name}" for {audience}.

Return ONLY a JSON object with this structure:
{{
  "title": "Lesson title",
  "outline": ["section 1", "section 2", "section 3"],
  "estimated_duration": 30,
  "prerequisites": ["prerequisite concepts"],
  "learning_outcomes": ["what learners will be able to do"]
}}"""
            try:
                outline = await generate_structured(
                    self.generator,
                    prompt,
                    LessonOutline,
                    system_instruction="You are an instructional designer for technical AI courses.",
                    temperature=0.7,
                    max_tokens=1000,
                )
            except GenerationError as e:
                logger.warning(f"⚠️ [ContentFreshness] Skipping lesson draft for '{name}': {e}")
                continue
            outlines.append(outline)
        return outlines

    async def curate_resources(self, topic: str, resource_types: Sequence[str]) -> List[CuratedResource]:
        """Current learning resources for a topic; malformed entries are dropped."""
        prompt = f"""Curate the most valuable and current educational resources for "{topic}".

Resource types to consider: {', '.join(resource_types) or 'any'}

Return ONLY a JSON object with this structure:
{{
  "resources": [
    {{"title": "Resource title", "type": "documentation|tutorial|course|tool|paper",
      "description": "Why this resource is valuable", "relevance": 0.9,
      "difficulty": "beginner|intermediate|advanced"}}
  ]
}}"""
        try:
            payload = await generate_json(
                self.generator,
                prompt,
                system_instruction="You are a research librarian specializing in technical education resources.",
                temperature=0.6,
                max_tokens=2000,
            )
        except GenerationError as e:
            logger.warning(f"⚠️ [ContentFreshness] Resource curation failed for '{topic}': {e}")
            return []

        entries = payload.get("resources", []) if isinstance(payload, dict) else []
        resources = []
        for entry in entries:
            try:
                resources.append(validate_payload(entry, CuratedResource))
            except ParseError as e:
                logger.debug(f"[ContentFreshness] Dropping resource entry: {e}")
        return resources
