"""LLM collaborators: note extraction and macro goal inference."""

from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from signote.processing.llm import LLMService, get_llm_service
from signote.storage.models import Confidence, Priority, Settings, TopicCategory

logger = logging.getLogger(__name__)

EVIDENCE_MAX_CHARS = 140
MIN_TOPIC_WEIGHT = 1.0
MAX_TOPIC_WEIGHT = 3.0

EXTRACTION_SYSTEM_PROMPT = """\
You are an AI assistant that extracts actionable tasks, topics, and CEO signals from meeting notes.

{context_prompt}

CEO IDENTITY:
- Primary name: {ceo_name}
- Aliases: {ceo_aliases}

Your job is to:
1. Extract ACTION ITEMS as natural, context-rich sentences
2. Include WHO (person/contact) and WHERE (company/account) in the activity description
3. Identify TOPICS (people, accounts, concepts) and normalize them
4. Detect if the CEO is mentioned directly or indirectly
5. Determine if topics are ASKED about or NUDGED

RULES:
- Activities name who to contact, which account, and about what
  (good: "Follow up with Sarah from Snowflake about Q4 revenue projections";
  bad: "Follow up")
- Evidence excerpts are at most 140 characters
- Normalize topics (e.g. "NVIDIA", "Nvidia", "NVDA" -> "nvidia")
- Categorize topics as PERSON, ACCOUNT, or TOPIC
- If the CEO is mentioned, default priority is P0
- Detect both explicit asks ("Eric asked about X") and nudges ("we should revisit Y")

Return JSON only, no markdown formatting."""

EXTRACTION_USER_PROMPT = """\
Extract from this note:

Title: {title}
Date: {date}
{subtitle_line}
Content:
{content}

Return a JSON object with this structure:
{{
  "actions": [
    {{
      "activity": "Natural sentence with WHO, WHERE, and WHAT",
      "suggestedPriority": "P0" | "P1" | "P2",
      "suggestedDueDate": "YYYY-MM-DD or null",
      "evidence": "excerpt from note (max 140 chars)",
      "topics": ["topic1", "topic2"],
      "isAsk": boolean,
      "isNudge": boolean
    }}
  ],
  "topics": [
    {{
      "name": "Display Name",
      "normKey": "normalized-key",
      "category": "PERSON" | "ACCOUNT" | "TOPIC",
      "isAsk": boolean,
      "isNudge": boolean,
      "weight": 1.0-3.0
    }}
  ],
  "ceoDetection": {{
    "mentioned": boolean,
    "confidence": "HIGH" | "MED" | "LOW",
    "evidence": "excerpt if mentioned"
  }}
}}"""

GOALS_SYSTEM_PROMPT = """\
You are analyzing a professional's work patterns to infer strategic macro goals.

{context_prompt}

Your job is to identify 3-7 OUTCOME-CENTRIC strategic goals based on topic frequency and action patterns.

RULES:
- Goals must be OUTCOME-focused, not partner/entity-focused
- Good: "Accelerate strategic partner revenue"
- Bad: "Work with NVIDIA"
- Focus on CEO priorities (high frequency, asks, CEO mentions)
- Map each goal to relevant topic keys (normalized names)
- Be specific but strategic (not tactical)

Return JSON only, no markdown."""

GOALS_USER_PROMPT = """\
Based on these patterns from the last {window_days} days, infer macro goals:

TOPIC STATISTICS:
{topic_summary}

ACTION PATTERNS:
{action_patterns}

Return a JSON object:
{{
  "goals": [
    {{
      "goal": "outcome-centric strategic goal",
      "topicKeys": ["normalized-topic-key1", "normalized-topic-key2"]
    }}
  ]
}}"""


class ExtractionError(Exception):
    """The extraction collaborator failed or returned unusable content."""


@dataclass
class ExtractedAction:
    """An action item proposed by the extractor."""

    activity: str
    suggested_priority: Priority = Priority.P1
    suggested_due_date: date | None = None
    evidence: str = ""
    topics: list[str] = field(default_factory=list)
    is_ask: bool = False
    is_nudge: bool = False


@dataclass
class ExtractedTopic:
    """A topic mention proposed by the extractor."""

    name: str
    norm_key: str
    category: TopicCategory = TopicCategory.TOPIC
    is_ask: bool = False
    is_nudge: bool = False
    weight: float = MIN_TOPIC_WEIGHT


@dataclass
class CEODetection:
    """Whether the CEO is mentioned in the note."""

    mentioned: bool = False
    confidence: Confidence = Confidence.LOW
    evidence: str | None = None


@dataclass
class ExtractionResult:
    """Everything extracted from one note."""

    actions: list[ExtractedAction]
    topics: list[ExtractedTopic]
    ceo_detection: CEODetection
    model: str = "unknown"


@dataclass
class InferredGoal:
    """A goal statement with the topic keys it covers."""

    goal: str
    topic_keys: list[str]


def normalize_key(name: str) -> str:
    """Normalize a topic name: lowercase, alphanumerics only."""
    return re.sub(r"[^a-z0-9]", "", name.lower())


def strip_html(content: str) -> str:
    """Reduce rich-text HTML to whitespace-collapsed plain text."""
    text = html.unescape(re.sub(r"<[^>]*>", " ", content))
    return re.sub(r"\s+", " ", text).strip()


def _parse_priority(value: Any) -> Priority:
    try:
        return Priority(str(value).upper())
    except ValueError:
        return Priority.P1


def _parse_due_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.debug(f"Ignoring unparseable due date {value!r}")
        return None


def _parse_category(value: Any) -> TopicCategory:
    try:
        return TopicCategory(str(value).upper())
    except ValueError:
        return TopicCategory.TOPIC


def _parse_confidence(value: Any) -> Confidence:
    try:
        return Confidence(str(value).upper())
    except ValueError:
        return Confidence.LOW


def _clamp_weight(value: Any) -> float:
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return MIN_TOPIC_WEIGHT
    return min(max(weight, MIN_TOPIC_WEIGHT), MAX_TOPIC_WEIGHT)


def parse_extraction(raw: dict[str, Any], model: str = "unknown") -> ExtractionResult:
    """Turn the extractor's JSON into typed records.

    Entries missing their required text are skipped; optional fields fall
    back to defaults.
    """
    if not isinstance(raw.get("actions", []), list) or not isinstance(
        raw.get("topics", []), list
    ):
        raise ExtractionError("Extraction response has malformed actions or topics")

    actions = []
    for item in raw.get("actions", []):
        if not isinstance(item, dict) or not str(item.get("activity") or "").strip():
            continue
        actions.append(
            ExtractedAction(
                activity=str(item["activity"]).strip(),
                suggested_priority=_parse_priority(item.get("suggestedPriority")),
                suggested_due_date=_parse_due_date(item.get("suggestedDueDate")),
                evidence=str(item.get("evidence") or "")[:EVIDENCE_MAX_CHARS],
                topics=[str(t) for t in item.get("topics") or []],
                is_ask=bool(item.get("isAsk", False)),
                is_nudge=bool(item.get("isNudge", False)),
            )
        )

    topics = []
    for item in raw.get("topics", []):
        if not isinstance(item, dict) or not item.get("name"):
            continue
        name = str(item["name"]).strip()
        topics.append(
            ExtractedTopic(
                name=name,
                norm_key=normalize_key(str(item.get("normKey") or name)),
                category=_parse_category(item.get("category")),
                is_ask=bool(item.get("isAsk", False)),
                is_nudge=bool(item.get("isNudge", False)),
                weight=_clamp_weight(item.get("weight")),
            )
        )

    detection = raw.get("ceoDetection")
    if not isinstance(detection, dict):
        detection = {}
    ceo_detection = CEODetection(
        mentioned=bool(detection.get("mentioned", False)),
        confidence=_parse_confidence(detection.get("confidence")),
        evidence=detection.get("evidence") or None,
    )

    return ExtractionResult(
        actions=actions,
        topics=topics,
        ceo_detection=ceo_detection,
        model=model,
    )


class NoteExtractor:
    """Extracts actions, topics and CEO signals from a note using an LLM."""

    def __init__(self, llm_service: LLMService | None = None):
        self._llm_service = llm_service

    def _get_llm_service(self) -> LLMService:
        """Get the LLM service (lazy initialization)."""
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    async def extract(
        self,
        *,
        title: str,
        note_date: datetime,
        content: str,
        settings: Settings,
        subtitle: str | None = None,
    ) -> ExtractionResult:
        """Extract from one note.

        Raises:
            ExtractionError: If the LLM response cannot be parsed.
        """
        llm = self._get_llm_service()

        system_prompt = EXTRACTION_SYSTEM_PROMPT.format(
            context_prompt=settings.context_prompt or "",
            ceo_name=settings.ceo_first_name or "unknown",
            ceo_aliases=", ".join(settings.ceo_aliases) or "none",
        )
        user_prompt = EXTRACTION_USER_PROMPT.format(
            title=title,
            date=note_date.isoformat(),
            subtitle_line=f"Subtitle: {subtitle}\n" if subtitle else "",
            content=strip_html(content),
        )

        try:
            json_result, llm_result = await llm.generate_json(
                user_prompt,
                system_prompt=system_prompt,
                temperature=0.3,
            )
        except ValueError as e:
            logger.error(f"Failed to parse extraction response: {e}")
            raise ExtractionError(str(e)) from e

        result = parse_extraction(json_result, model=llm_result.model)
        logger.info(
            f"Extracted {len(result.actions)} actions and {len(result.topics)} topics "
            f"from note '{title}' (ceo_mentioned={result.ceo_detection.mentioned})"
        )
        return result


def parse_goals(raw: dict[str, Any]) -> list[InferredGoal]:
    """Keep only well-shaped goals from the inferrer's JSON."""
    goals = raw.get("goals")
    if not isinstance(goals, list):
        return []

    parsed = []
    for item in goals:
        if not isinstance(item, dict):
            continue
        text = item.get("goal")
        keys = item.get("topicKeys", [])
        if not isinstance(text, str) or not text.strip() or not isinstance(keys, list):
            logger.debug(f"Dropping malformed goal {item!r}")
            continue
        parsed.append(
            InferredGoal(goal=text.strip(), topic_keys=[str(k) for k in keys])
        )
    return parsed


class GoalInferrer:
    """Infers outcome-centric macro goals from aggregate statistics."""

    def __init__(self, llm_service: LLMService | None = None):
        self._llm_service = llm_service

    def _get_llm_service(self) -> LLMService:
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    async def infer_goals(
        self,
        topic_summary: list[dict[str, Any]],
        action_patterns: list[dict[str, Any]],
        *,
        settings: Settings,
        window_days: int = 28,
    ) -> list[InferredGoal]:
        """Ask the LLM for goals. Returns an empty list if it fails.

        Any failure of the call, including provider errors, yields no goals
        for this cycle.
        """
        llm = self._get_llm_service()

        system_prompt = GOALS_SYSTEM_PROMPT.format(
            context_prompt=settings.context_prompt or ""
        )
        user_prompt = GOALS_USER_PROMPT.format(
            window_days=window_days,
            topic_summary=json.dumps(topic_summary, indent=2),
            action_patterns=json.dumps(action_patterns, indent=2),
        )

        try:
            json_result, _ = await llm.generate_json(
                user_prompt,
                system_prompt=system_prompt,
                temperature=0.4,
            )
        except Exception as e:
            logger.error(f"Macro goal inference failed: {e}")
            return []

        goals = parse_goals(json_result)
        logger.info(f"Inferred {len(goals)} macro goals")
        return goals


# Global collaborator instances
_note_extractor: NoteExtractor | None = None
_goal_inferrer: GoalInferrer | None = None


def get_note_extractor() -> NoteExtractor:
    """Get or create the global note extractor."""
    global _note_extractor
    if _note_extractor is None:
        _note_extractor = NoteExtractor()
    return _note_extractor


def reset_note_extractor() -> None:
    """Reset the global note extractor (useful for testing)."""
    global _note_extractor
    _note_extractor = None


def get_goal_inferrer() -> GoalInferrer:
    """Get or create the global goal inferrer."""
    global _goal_inferrer
    if _goal_inferrer is None:
        _goal_inferrer = GoalInferrer()
    return _goal_inferrer


def reset_goal_inferrer() -> None:
    """Reset the global goal inferrer (useful for testing)."""
    global _goal_inferrer
    _goal_inferrer = None
