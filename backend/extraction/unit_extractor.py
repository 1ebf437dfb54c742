"""
Unit Extractor

Rule-based extraction of metrics, categories, entities and sentiment from
free-form text entries such as "2 goals, 2 assists. 7 miles."

Keyword matching is a case-insensitive substring test against the lowercased
text, not a tokenized word match, so "assistant" also counts as "assist".
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from core.logging_config import extraction_logger as logger
from core.models import Sentiment, utcnow


# Confidence is a fixed policy value per call path, not a measured certainty
LOCAL_CONFIDENCE = 0.85
FALLBACK_CONFIDENCE = 0.7


UNIT_MAP = {
    "goal": "goals",
    "goals": "goals",
    "assist": "assists",
    "assists": "assists",
    "mile": "miles",
    "miles": "miles",
    "km": "kilometers",
    "kilometer": "kilometers",
    "kilometers": "kilometers",
    "minute": "minutes",
    "minutes": "minutes",
    "hour": "hours",
    "hours": "hours",
    "day": "days",
    "days": "days",
    "week": "weeks",
    "weeks": "weeks",
    "month": "months",
    "months": "months",
    "year": "years",
    "years": "years",
    "pound": "pounds",
    "pounds": "pounds",
    "kg": "kilograms",
    "kilogram": "kilograms",
    "kilograms": "kilograms",
    "point": "points",
    "points": "points",
    "score": "score",
    "scores": "score",
    "percent": "percentage",
    "percentage": "percentage",
    "%": "percentage",
}

# Keyword found in a matched span -> canonical metric, in write order
CONTEXT_KEYWORDS = [
    ("goal", "goals"),
    ("assist", "assists"),
    ("mile", "miles"),
    ("kilometer", "kilometers"),
    ("minute", "minutes"),
    ("hour", "hours"),
    ("day", "days"),
    ("week", "weeks"),
    ("month", "months"),
    ("year", "years"),
    ("pound", "pounds"),
    ("kilogram", "kilograms"),
    ("point", "points"),
    ("score", "score"),
    ("percent", "percentage"),
]

METRIC_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s+([a-zA-Z]+)")
CONTEXT_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(?:goals?|assists?|miles?|kilometers?|minutes?|hours?|days?|"
    r"weeks?|months?|years?|pounds?|kilograms?|points?|scores?|percent)",
    re.IGNORECASE,
)

FOOD_WORDS = [
    "lunch", "dinner", "breakfast", "rice", "curry", "egg", "meal", "cook", "kitchen",
    "dish", "spice", "vegetable", "delicious", "taste", "menu", "phenomenal", "recipe",
    "food", "snack", "eat", "eating", "plate", "flavor", "sambar", "thenga", "chutney",
    "cooking", "prepared",
]

HOME_WORDS = [
    "home", "family", "house", "room", "living", "kitchen", "clean", "organize",
    "decorate", "relax", "comfort", "chores", "sofa", "bed", "living room", "dining",
    "apartment", "residence", "stay", "household", "domestic", "tidy", "laundry",
    "sweep", "mop", "vacuum",
]

CATEGORY_RULES = [
    ("sports_performance", "performance_metrics", ["goal", "assist", "score", "point"]),
    ("health_metrics", "fitness_tracking", ["mile", "kilometer", "run", "exercise"]),
    ("improvement_areas", "skill_development", ["need", "better", "improve", "work on"]),
    ("activities", "physical_activity", ["run", "exercise", "train", "practice"]),
    ("measurements", "distance_time", ["mile", "kilometer", "minute", "hour"]),
    ("food", "meal", FOOD_WORDS),
    ("home", "home_life", HOME_WORDS),
]

ENTITY_KEYWORDS = {
    "body_parts": ["foot", "feet", "hand", "hands", "leg", "legs", "arm", "arms", "head", "eye", "eyes"],
    "skills": ["goal", "assist", "run", "kick", "pass", "shoot", "dribble"],
    "activities": ["run", "exercise", "train", "practice", "play"],
    "measurements": ["mile", "kilometer", "minute", "hour", "day"],
    "time_periods": ["today", "yesterday", "tomorrow", "week", "month", "year"],
    "food_items": [
        "rice", "curry", "egg", "thenga", "sambar", "chutney", "dal", "roti", "bread",
        "vegetable", "salad", "chicken", "fish", "meat", "paneer", "tofu", "soup", "noodle",
        "pasta", "spice", "pepper", "salt", "oil", "ghee", "butter", "milk", "yogurt", "curd",
        "fruit", "banana", "apple", "orange", "mango", "grape", "berry", "snack", "sweet",
        "dessert", "ice cream", "cake", "cookie", "biscuit", "juice", "tea", "coffee",
    ],
    "home_items": [
        "sofa", "bed", "table", "chair", "lamp", "couch", "curtain", "carpet", "rug", "pillow",
        "blanket", "sheet", "wardrobe", "closet", "drawer", "kitchen", "sink", "stove", "oven",
        "fridge", "microwave", "dishwasher", "laundry", "washing machine", "dryer", "vacuum",
        "broom", "mop", "bucket", "towel", "mirror", "toilet", "shower", "bathtub", "door",
        "window", "balcony", "garden", "yard", "garage", "fence", "gate", "roof", "wall",
        "floor", "ceiling", "fan", "ac", "heater", "fireplace",
    ],
}

POSITIVE_WORDS = ["good", "great", "excellent", "amazing", "fantastic", "perfect", "improved", "better"]
NEGATIVE_WORDS = ["bad", "poor", "terrible", "awful", "worse", "needs", "problem", "issue"]


@dataclass
class ExtractedUnit:
    """Structured data pulled out of one text entry."""

    metrics: dict[str, float] = field(default_factory=dict)
    categories: dict[str, list[str]] = field(default_factory=dict)
    entities: dict[str, list[str]] = field(default_factory=dict)
    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = 0.0
    structured_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": self.metrics,
            "categories": self.categories,
            "entities": self.entities,
            "sentiment": self.sentiment.value,
            "confidence": self.confidence,
            "structured_data": self.structured_data,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any], default_confidence: float = 0.8) -> "ExtractedUnit":
        """
        Normalize a loosely-typed JSON payload into a unit.

        Non-numeric metrics and non-list groups are dropped.
        """
        metrics = {}
        for name, value in (payload.get("metrics") or {}).items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                metrics[str(name)] = float(value)

        def _groups(raw: Any) -> dict[str, list[str]]:
            if not isinstance(raw, dict):
                return {}
            return {
                str(k): [str(item) for item in v]
                for k, v in raw.items()
                if isinstance(v, list)
            }

        try:
            sentiment = Sentiment(str(payload.get("sentiment", "neutral")).lower())
        except ValueError:
            sentiment = Sentiment.NEUTRAL

        confidence = payload.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool) or not confidence:
            confidence = default_confidence

        structured = payload.get("structuredData") or payload.get("structured_data") or {}

        return cls(
            metrics=metrics,
            categories=_groups(payload.get("categories")),
            entities=_groups(payload.get("entities")),
            sentiment=sentiment,
            confidence=min(1.0, max(0.0, float(confidence))),
            structured_data=structured if isinstance(structured, dict) else {},
        )


class UnitExtractor:
    """Rule-based text extractor."""

    def extract(self, text: Any, confidence: float = LOCAL_CONFIDENCE) -> ExtractedUnit:
        """
        Extract metrics, categories, entities and sentiment from text.

        Never raises: empty or non-string input yields the default unit with
        zero confidence.
        """
        if not isinstance(text, str) or not text.strip():
            return ExtractedUnit()

        metrics = self.extract_metrics(text)
        categories = self.categorize(text)
        entities = self.extract_entities(text)
        sentiment = self.analyze_sentiment(text)

        return ExtractedUnit(
            metrics=metrics,
            categories=categories,
            entities=entities,
            sentiment=sentiment,
            confidence=confidence,
            structured_data={
                "original_text": text,
                "extracted_metrics": dict(metrics),
                "categories": categories,
                "entities": entities,
                "timestamp": utcnow().isoformat(),
                "processing_method": "rule_based",
            },
        )

    def extract_metrics(self, text: str) -> dict[str, float]:
        """
        Two scan passes over `<number> <unit>` spans.

        The first pass maps every unit through UNIT_MAP (unknown units keep
        their lowercased literal). The second pass only sees known units and
        writes each canonical metric whose keyword occurs in the span. Both
        passes run in scan order and the last write wins.
        """
        metrics: dict[str, float] = {}

        for match in METRIC_PATTERN.finditer(text):
            value = float(match.group(1))
            unit = match.group(2).lower()
            metrics[UNIT_MAP.get(unit, unit)] = value

        for match in CONTEXT_PATTERN.finditer(text):
            value = float(match.group(1))
            span = match.group(0).lower()
            for keyword, metric in CONTEXT_KEYWORDS:
                if keyword in span:
                    metrics[metric] = value

        logger.debug(f"Extracted metrics: {metrics}")
        return metrics

    def categorize(self, text: str) -> dict[str, list[str]]:
        lower = text.lower()
        categories: dict[str, list[str]] = {name: [] for name, _, _ in CATEGORY_RULES}

        for name, label, keywords in CATEGORY_RULES:
            if any(keyword in lower for keyword in keywords):
                categories[name].append(label)

        return categories

    def extract_entities(self, text: str) -> dict[str, list[str]]:
        lower = text.lower()
        return {
            entity_type: [keyword for keyword in keywords if keyword in lower]
            for entity_type, keywords in ENTITY_KEYWORDS.items()
        }

    def analyze_sentiment(self, text: str) -> Sentiment:
        lower = text.lower()
        positive = sum(1 for word in POSITIVE_WORDS if word in lower)
        negative = sum(1 for word in NEGATIVE_WORDS if word in lower)

        if positive > negative:
            return Sentiment.POSITIVE
        if negative > positive:
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL


def contains_any(text: str, keywords: list[str]) -> bool:
    """Case-insensitive substring test used by the keyword rules."""
    lower = text.lower()
    return any(keyword in lower for keyword in keywords)


def first_json_object(text: Optional[str]) -> Optional[str]:
    """Greedy `{...}` span of a model reply, if any."""
    if not text:
        return None
    match = re.search(r"\{[\s\S]*\}", text)
    return match.group(0) if match else None


# Global instance
unit_extractor = UnitExtractor()
