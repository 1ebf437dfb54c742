"""
Text Processor

Turns one free-text entry into extracted units, a domain, insight strings
and recommendation strings, then stores it as a one-row dataset.

The Ollama backend is tried first when reachable; every failure on that
path falls back to the local rule-based extractor.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx

from analysis.domain_classifier import domain_classifier
from config import get_settings
from core.logging_config import extraction_logger as logger
from core.models import ColumnType, Dataset, Domain, Number, Sentiment, as_text, utcnow
from extraction.unit_extractor import (
    FALLBACK_CONFIDENCE,
    LOCAL_CONFIDENCE,
    ExtractedUnit,
    first_json_object,
    unit_extractor,
)
from llm.ollama_client import ollama_client
from llm.prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt


TEXT_ENTRY_COLUMNS = [
    "original_text",
    "domain",
    "metrics",
    "sentiment",
    "insights",
    "recommendations",
    "confidence",
    "timestamp",
]

TEXT_ENTRY_TYPES = {
    "original_text": ColumnType.STRING,
    "domain": ColumnType.STRING,
    "metrics": ColumnType.STRING,
    "sentiment": ColumnType.STRING,
    "insights": ColumnType.STRING,
    "recommendations": ColumnType.STRING,
    "confidence": ColumnType.NUMBER,
    "timestamp": ColumnType.STRING,
}

LIST_SEPARATOR = "; "


class TextValidationError(ValueError):
    """Rejected text entry."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _fmt(value: float) -> str:
    return as_text(Number(value))


@dataclass
class TextEntryResult:
    """Processed text entry."""

    original_text: str
    extracted: ExtractedUnit
    domain: Domain
    insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_text": self.original_text,
            "extracted": self.extracted.to_dict(),
            "domain": self.domain.value,
            "insights": self.insights,
            "recommendations": self.recommendations,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_row(self) -> dict[str, Any]:
        return {
            "original_text": self.original_text,
            "domain": self.domain.value,
            "metrics": json.dumps(self.extracted.metrics),
            "sentiment": self.extracted.sentiment.value,
            "insights": LIST_SEPARATOR.join(self.insights),
            "recommendations": LIST_SEPARATOR.join(self.recommendations),
            "confidence": self.extracted.confidence,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_dataset(self, name: str = "text_input.txt", dataset_id: Optional[str] = None) -> Dataset:
        """Materialize the entry as a one-row text-entry dataset."""
        return Dataset.from_rows(
            name=name,
            rows=[self.to_row()],
            columns=list(TEXT_ENTRY_COLUMNS),
            column_types=dict(TEXT_ENTRY_TYPES),
            created_at=self.timestamp,
            dataset_id=dataset_id,
        )

    def summary_reply(self) -> str:
        """Short natural-language acknowledgement of the entry."""
        reply = "Here's what I understood: "
        reply += f"Domain: {self.domain.value}. "
        if self.insights:
            reply += f"Insight: {self.insights[0]}. "
        if self.recommendations:
            reply += f"Recommendation: {self.recommendations[0]}"
        return reply.strip()


class TextProcessor:
    """
    Processes free-text entries.

    Features:
    - Optional Ollama extraction with probe and hard timeout
    - Rule-based fallback
    - Domain-specific insight and recommendation strings
    """

    def __init__(self):
        self.settings = get_settings()

    def validate_text(self, text: Any) -> str:
        """
        Check a text entry before processing.

        Raises:
            TextValidationError: empty text (400) or text over the length limit (413)
        """
        if not isinstance(text, str) or not text.strip():
            raise TextValidationError("Text cannot be empty")

        limit = self.settings.extraction.max_text_length
        if len(text) > limit:
            raise TextValidationError(
                f"Text is too long (max {limit:,} characters)",
                status_code=413,
            )
        return text

    async def process(self, text: str) -> TextEntryResult:
        """
        Process one text entry.

        Never raises: unexpected faults yield the canned fallback result.
        """
        try:
            unit = await self.extract(text)
            domain = domain_classifier.classify_text(text, unit)
            insights = self.generate_insights(text, unit, domain)
            recommendations = self.generate_recommendations(text, unit, domain)
        except Exception as e:
            logger.exception(f"Text processing failed: {e}")
            return self.fallback_result(text)

        logger.success(
            f"Processed text entry: domain={domain.value}, "
            f"{len(unit.metrics)} metrics, {len(insights)} insights"
        )
        return TextEntryResult(
            original_text=text,
            extracted=unit,
            domain=domain,
            insights=insights,
            recommendations=recommendations,
        )

    async def extract(self, text: str) -> ExtractedUnit:
        """
        Extract a unit, preferring the Ollama backend when it answers.

        The local extractor is used at LOCAL_CONFIDENCE when the backend is
        unreachable, and at FALLBACK_CONFIDENCE when it was reachable but
        failed, timed out or returned no usable JSON.
        """
        if not await ollama_client.is_available():
            logger.info("Ollama not available, using local extraction")
            return unit_extractor.extract(text, confidence=LOCAL_CONFIDENCE)

        try:
            reply = await asyncio.wait_for(
                ollama_client.generate(
                    build_extraction_prompt(text),
                    system=EXTRACTION_SYSTEM_PROMPT,
                ),
                timeout=self.settings.ollama.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Ollama extraction timed out, using rule-based extraction")
            return unit_extractor.extract(text, confidence=FALLBACK_CONFIDENCE)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ollama extraction failed: {e}")
            return unit_extractor.extract(text, confidence=FALLBACK_CONFIDENCE)

        unit = self.parse_reply(reply)
        if unit is None:
            logger.warning("No JSON in Ollama reply, using rule-based extraction")
            return unit_extractor.extract(text, confidence=FALLBACK_CONFIDENCE)

        unit.structured_data.setdefault("original_text", text)
        unit.structured_data.setdefault("processing_method", "ollama")
        return unit

    def parse_reply(self, reply: str) -> Optional[ExtractedUnit]:
        """Normalize the first JSON object of a model reply, if any."""
        candidate = first_json_object(reply)
        if candidate is None:
            return None

        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"Unparseable Ollama reply: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        return ExtractedUnit.from_payload(payload)

    # =========================================================================
    # INSIGHTS
    # =========================================================================

    def generate_insights(self, text: str, unit: ExtractedUnit, domain: Domain) -> list[str]:
        metrics = unit.metrics
        entities = unit.entities
        sentiment = unit.sentiment
        insights = [f"{key}: {_fmt(value)}" for key, value in metrics.items() if value > 0]

        if domain == Domain.SPORTS:
            if metrics.get("goals"):
                insights.append(f"Scored {_fmt(metrics['goals'])} goals")
            if metrics.get("assists"):
                insights.append(f"Provided {_fmt(metrics['assists'])} assists")
            if metrics.get("miles"):
                insights.append(f"Ran {_fmt(metrics['miles'])} miles")

        elif domain == Domain.HEALTH:
            if metrics.get("miles"):
                insights.append(f"Completed {_fmt(metrics['miles'])} miles")
            if metrics.get("minutes"):
                insights.append(f"Worked out for {_fmt(metrics['minutes'])} minutes")

        elif domain == Domain.FOOD:
            if entities.get("food_items"):
                insights.append(f"Food items: {', '.join(entities['food_items'])}")
            if sentiment == Sentiment.POSITIVE:
                insights.append("Overall positive performance, well prepared meal.")
            elif sentiment == Sentiment.NEGATIVE:
                insights.append("Meal could be improved.")
            else:
                insights.append("Meal was okay.")
            if "spice" in text.lower():
                insights.append("Spice level mentioned.")

        elif domain == Domain.HOME:
            if entities.get("home_items"):
                insights.append(f"Home items mentioned: {', '.join(entities['home_items'])}")
            if sentiment == Sentiment.POSITIVE:
                insights.append("Home environment is positive and comfortable.")
            elif sentiment == Sentiment.NEGATIVE:
                insights.append("Some issues at home, consider improvements.")
            else:
                insights.append("Home situation is stable.")

        if entities.get("body_parts"):
            insights.append(f"Focus area: {', '.join(entities['body_parts'])}")
        if entities.get("skills"):
            insights.append(f"Skills mentioned: {', '.join(entities['skills'])}")

        if domain not in (Domain.FOOD, Domain.HOME):
            if sentiment == Sentiment.POSITIVE:
                insights.append("Overall positive performance")
            elif sentiment == Sentiment.NEGATIVE:
                insights.append("Areas for improvement identified")

        if not insights:
            insights.append(f"Processed {domain.value} data")
            insights.append(f"Text contains {len(text.split(' '))} words")
            if metrics:
                insights.append(f"Found {len(metrics)} metrics")

        return insights

    def generate_recommendations(self, text: str, unit: ExtractedUnit, domain: Domain) -> list[str]:
        metrics = unit.metrics
        entities = unit.entities
        sentiment = unit.sentiment
        lower = text.lower()
        recommendations = []

        if domain == Domain.SPORTS:
            if "foot" in entities.get("body_parts", []):
                recommendations.append("Practice footwork drills to improve technique")
            if metrics.get("goals") and metrics["goals"] < 3:
                recommendations.append("Focus on shooting accuracy in training")
            if metrics.get("assists", 0) > 0:
                recommendations.append("Good teamwork - continue building on assists")

        elif domain == Domain.HEALTH:
            miles = metrics.get("miles")
            if miles and miles < 5:
                recommendations.append("Gradually increase running distance")
            if miles and miles >= 5:
                recommendations.append("Great distance - consider adding speed work")

        elif domain == Domain.FOOD:
            if "spice" in lower:
                recommendations.append("Keep an eye on spice levels next time you prepare this.")
            food_items = entities.get("food_items")
            if food_items is not None and not any(
                item in ("vegetable", "salad", "fruit") for item in food_items
            ):
                recommendations.append("Add some vegetables to your next meal.")
            if sentiment == Sentiment.POSITIVE:
                recommendations.append("Keep up the good work in the kitchen!")
            elif sentiment == Sentiment.NEGATIVE:
                recommendations.append("Try tweaking the recipe for better results next time.")

        elif domain == Domain.HOME:
            if entities.get("home_items"):
                recommendations.append("Keep your home organized and comfortable.")
            if "clean" in lower or "tidy" in lower:
                recommendations.append("Great job keeping things clean!")
            if sentiment == Sentiment.NEGATIVE:
                recommendations.append("Consider small changes to improve your home environment.")
            elif sentiment == Sentiment.POSITIVE:
                recommendations.append("Enjoy your cozy home!")

        if not recommendations:
            if sentiment == Sentiment.NEGATIVE:
                recommendations.append("Review performance and identify specific improvement areas")
            elif sentiment == Sentiment.POSITIVE:
                recommendations.append("Keep up the good work and maintain consistency")

        if not recommendations:
            recommendations.append("Continue tracking your progress")
            recommendations.append("Set specific goals for improvement")

        return recommendations

    def fallback_result(self, text: str) -> TextEntryResult:
        return TextEntryResult(
            original_text=text if isinstance(text, str) else "",
            extracted=ExtractedUnit(),
            domain=Domain.GENERAL,
            insights=["Unable to process text with AI"],
            recommendations=["Try rephrasing the text or check AI service availability"],
        )


# Global instance
text_processor = TextProcessor()
