"""
Trend Detector

Direction of a value series, by least-squares slope or by comparing the
two halves of a short sample.
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from scipy import stats as scipy_stats

from config import get_settings


@dataclass
class TrendResult:
    """Direction of one series."""

    direction: str  # increasing, decreasing, stable
    slope: float
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction,
            "slope": round(self.slope, 6),
            "confidence": round(self.confidence, 4),
        }


class TrendDetector:
    """Trend detection over ordered values."""

    def __init__(self):
        self.settings = get_settings()

    def slope(self, values: Sequence[float]) -> float:
        """Least-squares slope of the values against their index."""
        if len(values) < 2:
            return 0.0
        x = np.arange(len(values), dtype=np.float64)
        result = scipy_stats.linregress(x, np.asarray(values, dtype=np.float64))
        return float(result.slope)

    def series_trend(self, values: Sequence[float]) -> TrendResult:
        """
        Direction from the least-squares slope.

        A slope above the threshold is increasing, below its negative is
        decreasing.
        """
        slope = self.slope(values)
        threshold = self.settings.analysis.series_slope_threshold

        if slope > threshold:
            direction = "increasing"
        elif slope < -threshold:
            direction = "decreasing"
        else:
            direction = "stable"
        return TrendResult(direction=direction, slope=slope)

    def sample_trend(self, values: Sequence[float]) -> TrendResult:
        """
        Direction of a short sample in its original order.

        Monotonic samples are reported with 0.9 confidence. Otherwise the mean
        of the second half is compared with the first half: more than 10%
        higher is increasing and more than 10% lower is decreasing, with 0.7
        confidence.
        """
        values = list(values)
        if len(values) < 2:
            return TrendResult(direction="stable", slope=0.0)

        slope = self.slope(values)
        pairs = list(zip(values, values[1:]))

        if all(b >= a for a, b in pairs) and values[-1] > values[0]:
            return TrendResult(direction="increasing", slope=slope, confidence=0.9)
        if all(b <= a for a, b in pairs) and values[-1] < values[0]:
            return TrendResult(direction="decreasing", slope=slope, confidence=0.9)

        middle = len(values) // 2
        first_half = float(np.mean(values[:middle]))
        second_half = float(np.mean(values[middle:]))

        if second_half > first_half * 1.1:
            return TrendResult(direction="increasing", slope=slope, confidence=0.7)
        if second_half < first_half * 0.9:
            return TrendResult(direction="decreasing", slope=slope, confidence=0.7)
        return TrendResult(direction="stable", slope=slope)


# Global instance
trend_detector = TrendDetector()
