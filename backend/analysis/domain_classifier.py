"""
Domain Classifier

Assigns a dataset (or a single text entry) to a coarse domain from its
column names and sampled values.

Classification is first-match-wins in the order
financial -> sports -> health -> productivity -> general, so a dataset with
both `amount` and `goals` columns is always financial.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from config import get_settings
from core.logging_config import insights_logger as logger
from core.models import ColumnType, Domain, Record, Scalar, as_number, as_text
from extraction.unit_extractor import FOOD_WORDS, HOME_WORDS, ExtractedUnit, contains_any


MONEY_KEYWORDS = [
    "money", "amount", "cost", "price", "savings", "spending", "expense", "income",
    "revenue", "budget", "cash", "dollar", "euro", "pound", "currency",
]
SPORTS_KEYWORDS = [
    "goal", "assist", "score", "point", "win", "loss", "match", "game",
    "performance", "fitness", "exercise", "workout",
]
HEALTH_KEYWORDS = [
    "weight", "height", "bmi", "heart", "blood", "pressure", "sleep", "calories",
    "steps", "mood", "energy",
]
PRODUCTIVITY_KEYWORDS = [
    "task", "todo", "project", "work", "study", "read", "write", "complete", "done", "progress",
]
SAVINGS_KEYWORDS = ["savings", "save", "saved", "deposit"]

MONEY_VALUE_PATTERN = re.compile(r"[$€£¥₹]|\d+\.\d{2}")
SPORTS_VALUE_PATTERN = re.compile(r"goal|assist|win|loss|match", re.IGNORECASE)
HEALTH_VALUE_PATTERN = re.compile(r"weight|height|bmi|sleep|calories", re.IGNORECASE)
PRODUCTIVITY_VALUE_PATTERN = re.compile(r"task|todo|project|complete|done", re.IGNORECASE)

# Columns that mark a dataset produced from a text entry
TEXT_ENTRY_COLUMNS = {"domain", "metrics", "insights"}

# (domain, column indicator, value indicator), in priority order
DOMAIN_RULES = [
    (Domain.FINANCIAL, "money", "currency"),
    (Domain.SPORTS, "sports", "performance"),
    (Domain.HEALTH, "health", "wellness"),
    (Domain.PRODUCTIVITY, "productivity", "tasks"),
]


@dataclass
class DomainClassification:
    """Domain assigned to one dataset."""

    type: Domain
    confidence: float
    indicators: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": round(self.confidence, 4),
            "indicators": sorted(self.indicators),
        }


# =============================================================================
# KEYWORD HELPERS
# =============================================================================

def is_money_column(column: str) -> bool:
    return contains_any(column, MONEY_KEYWORDS)


def is_savings_column(column: str) -> bool:
    return contains_any(column, SAVINGS_KEYWORDS)


def is_sports_column(column: str) -> bool:
    return contains_any(column, SPORTS_KEYWORDS)


def is_health_column(column: str) -> bool:
    return contains_any(column, HEALTH_KEYWORDS)


def is_productivity_column(column: str) -> bool:
    return contains_any(column, PRODUCTIVITY_KEYWORDS)


def _sample_matches(values: Iterable[Scalar], pattern: re.Pattern) -> bool:
    return any(pattern.search(as_text(v)) for v in values)


def has_money_values(values: Iterable[Scalar]) -> bool:
    return _sample_matches(values, MONEY_VALUE_PATTERN)


def has_sports_values(values: Iterable[Scalar]) -> bool:
    return _sample_matches(values, SPORTS_VALUE_PATTERN)


def has_health_values(values: Iterable[Scalar]) -> bool:
    return _sample_matches(values, HEALTH_VALUE_PATTERN)


def has_productivity_values(values: Iterable[Scalar]) -> bool:
    return _sample_matches(values, PRODUCTIVITY_VALUE_PATTERN)


def is_text_entry_dataset(columns: Iterable[str]) -> bool:
    """True when the columns are those of a stored text entry."""
    return TEXT_ENTRY_COLUMNS.issubset(set(columns))


class DomainClassifier:
    """
    Rule-based domain classification.

    Features:
    - Column-name keyword indicators
    - Sampled value-pattern indicators
    - Fixed priority order with additive confidence
    """

    COLUMN_CHECKS = [
        ("money", is_money_column),
        ("sports", is_sports_column),
        ("health", is_health_column),
        ("productivity", is_productivity_column),
    ]
    VALUE_CHECKS = [
        ("currency", has_money_values),
        ("performance", has_sports_values),
        ("wellness", has_health_values),
        ("tasks", has_productivity_values),
    ]

    def __init__(self):
        self.settings = get_settings()

    def classify(
        self,
        columns: list[str],
        column_types: dict[str, ColumnType],
        sample_rows: list[Record],
    ) -> DomainClassification:
        """
        Classify a dataset from its schema and sampled rows.

        Args:
            columns: Ordered column names
            column_types: Declared column types
            sample_rows: Rows to inspect, only the first `sample_rows` are used

        Returns:
            DomainClassification
        """
        indicators = self.indicators(columns, sample_rows)

        for domain, column_indicator, value_indicator in DOMAIN_RULES:
            if column_indicator in indicators or value_indicator in indicators:
                confidence = 0.5
                if column_indicator in indicators:
                    confidence += 0.3
                if value_indicator in indicators:
                    confidence += 0.2
                classification = DomainClassification(domain, min(confidence, 1.0), indicators)
                logger.debug(f"Classified {len(columns)} columns as {domain.value}")
                return classification

        return DomainClassification(Domain.GENERAL, 0.5, indicators)

    def indicators(self, columns: list[str], sample_rows: list[Record]) -> set[str]:
        """Domain indicators raised by column names and sampled values."""
        sample = sample_rows[: self.settings.analysis.sample_rows]
        found: set[str] = set()

        for column in columns:
            for name, check in self.COLUMN_CHECKS:
                if check(column):
                    found.add(name)

            values = [row.get(column) for row in sample]
            for name, check in self.VALUE_CHECKS:
                if check(values):
                    found.add(name)

        return found

    def classify_from_metadata(self, first_row: Optional[Record]) -> DomainClassification:
        """
        Trust the domain and confidence stored on a text-entry row.

        Missing or unreadable fields fall back to `general` and 0.8.
        """
        domain = Domain.GENERAL
        confidence = 0.8

        if first_row is not None:
            stored_domain = as_text(first_row.get("domain"))
            if stored_domain:
                domain = Domain.parse(stored_domain)
            stored_confidence = as_number(first_row.get("confidence"))
            if stored_confidence is not None:
                confidence = min(1.0, max(0.0, stored_confidence))

        return DomainClassification(domain, confidence, {"nlp_processed"})

    def classify_text(self, text: str, unit: ExtractedUnit) -> Domain:
        """
        Domain of a free-text entry.

        Checked in the order food, home, sports, health, productivity,
        financial; keywords are substrings of the lowercased text.
        """
        entities = unit.entities
        categories = unit.categories
        metrics = unit.metrics

        if (
            contains_any(text, FOOD_WORDS)
            or entities.get("food_items")
            or categories.get("food")
        ):
            return Domain.FOOD

        if (
            contains_any(text, HOME_WORDS)
            or entities.get("home_items")
            or categories.get("home")
        ):
            return Domain.HOME

        if contains_any(text, ["goal", "assist", "foot", "soccer", "football"]) or (
            metrics.get("goals") or metrics.get("assists")
        ):
            return Domain.SPORTS

        if contains_any(text, ["mile", "run", "exercise", "workout"]) or (
            metrics.get("miles") or metrics.get("kilometers")
        ):
            return Domain.HEALTH

        if contains_any(text, ["task", "project", "work", "meeting"]):
            return Domain.PRODUCTIVITY

        if contains_any(text, ["dollar", "money", "cost", "price", "budget"]):
            return Domain.FINANCIAL

        return Domain.GENERAL


# Global instance
domain_classifier = DomainClassifier()
