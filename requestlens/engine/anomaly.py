"""
Anomaly Scorer - z-score flagging of period totals.

Detection Algorithm:
    1. Compute mean and standard deviation over the whole series
    2. z = (value - mean) / stddev for every period
    3. Flag periods where |z| >= threshold (default 1.5)
    4. Order flagged periods by descending z (spikes first)

Standard deviation is the population form (numpy.std, ddof=0). Sample
standard deviation is available through ddof=1 but is not the default.
A constant series has zero deviation and no defined score: that raises
UndefinedScoreError instead of producing inf/NaN.
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import structlog

from requestlens.engine.errors import UndefinedScoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class PeriodScore:
    """
    Z-score of one period.

    Attributes:
        period: Period key (e.g. MonthBucket)
        value: Observed total
        z_score: Standardized deviation from the series mean
        is_anomaly: Whether |z_score| reached the threshold
    """

    period: Any
    value: float
    z_score: float
    is_anomaly: bool


class AnomalyScorer:
    """
    Whole-series z-score anomaly scorer.

    Attributes:
        threshold: Absolute z-score at or above which a period is anomalous
        ddof: Delta degrees of freedom for the standard deviation (0 = population)
        rank_by_magnitude: Order flagged periods by |z| (spikes first on equal
            magnitude) instead of by signed z

    Example:
        >>> scorer = AnomalyScorer(threshold=1.5)
        >>> flagged = scorer.flag([("2024-01", 10), ("2024-02", 10), ("2024-03", 40)])
    """

    def __init__(
        self,
        threshold: float = 1.5,
        ddof: int = 0,
        rank_by_magnitude: bool = False,
    ):
        if threshold < 0:
            raise ValueError(f"Threshold must be non-negative, got {threshold}")
        if ddof not in (0, 1):
            raise ValueError(f"ddof must be 0 (population) or 1 (sample), got {ddof}")
        self.threshold = threshold
        self.ddof = ddof
        self.rank_by_magnitude = rank_by_magnitude
        self.logger = structlog.get_logger()

    def baseline(self, values: Sequence[float]) -> tuple[float, float]:
        """
        Mean and standard deviation of the series.

        Raises:
            UndefinedScoreError: If the series is too short or has zero deviation
        """
        array = np.asarray(values, dtype=float)
        if array.size <= self.ddof:
            raise UndefinedScoreError(
                "Series too short for a standard deviation",
                observations=int(array.size),
                ddof=self.ddof,
            )
        mean = float(np.mean(array))
        std = float(np.std(array, ddof=self.ddof))
        if not np.isfinite(std) or np.isclose(std, 0.0, rtol=0.0, atol=1e-12):
            raise UndefinedScoreError(
                "Standard deviation is zero; z-scores are undefined",
                observations=int(array.size),
                mean=mean,
            )
        return mean, std

    def reaches_threshold(self, z: float) -> bool:
        """|z| >= threshold, counting z that differs from the threshold only by float error."""
        magnitude = abs(z)
        return magnitude >= self.threshold or bool(np.isclose(magnitude, self.threshold))

    def score(self, series: Sequence[tuple[Any, float]]) -> list[PeriodScore]:
        """
        Score every period of a chronological series.

        Args:
            series: (period, value) pairs; an empty series yields []

        Returns:
            One PeriodScore per period, in input order
        """
        if not series:
            return []

        values = [float(value) for _, value in series]
        mean, std = self.baseline(values)

        scores = []
        for (period, _), value in zip(series, values):
            z = (value - mean) / std
            scores.append(
                PeriodScore(
                    period=period,
                    value=value,
                    z_score=z,
                    is_anomaly=self.reaches_threshold(z),
                )
            )

        self.logger.debug(
            "series_scored",
            periods=len(scores),
            mean=round(mean, 4),
            std=round(std, 4),
            ddof=self.ddof,
        )
        return scores

    def flag(self, series: Sequence[tuple[Any, float]]) -> list[PeriodScore]:
        """Anomalous periods only, ordered by descending z-score."""
        flagged = [s for s in self.score(series) if s.is_anomaly]
        if self.rank_by_magnitude:
            flagged.sort(key=lambda s: (-abs(s.z_score), s.z_score < 0))
        else:
            flagged.sort(key=lambda s: -s.z_score)

        if flagged:
            self.logger.info(
                "anomalies_flagged",
                count=len(flagged),
                threshold=self.threshold,
                max_z=round(max(s.z_score for s in flagged), 4),
            )
        return flagged
