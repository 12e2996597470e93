"""Rolling quality history and trend classification."""

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Literal, Sequence

import numpy as np

from fleet_metrics import FleetMetrics
from scoring import grade_for
from settings import HISTORY_CAPACITY, Grade

logger = logging.getLogger(__name__)

Trend = Literal["improving", "stable", "degrading"]

TREND_WINDOW = 5
STABLE_CHANGE_PCT = 2.0


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    completeness: float
    correctness: float
    score: float
    grade: Grade
    issue_count: int

    @classmethod
    def from_fleet_metrics(cls, metrics: FleetMetrics, timestamp: datetime | None = None) -> "HistoryEntry":
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            completeness=metrics.avg_completeness,
            correctness=metrics.avg_correctness,
            score=metrics.overall_health,
            grade=grade_for(metrics.avg_completeness, metrics.avg_correctness),
            issue_count=metrics.total_issues,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TrendReport:
    completeness: Trend = "stable"
    correctness: Trend = "stable"
    overall: Trend = "stable"
    direction: float = 0.0


class QualityHistory:
    """FIFO buffer of fleet snapshots, oldest evicted past capacity."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)

    def record(self, metrics: FleetMetrics, timestamp: datetime | None = None) -> list[HistoryEntry]:
        if metrics.overall_health == 0:
            logger.debug("Skipping history entry: nothing assessed")
            return self.entries
        self._entries.append(HistoryEntry.from_fleet_metrics(metrics, timestamp))
        return self.entries

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def classify_change(recent: float, older: float) -> Trend:
    if older == 0:
        if recent > 0:
            return "improving"
        if recent < 0:
            return "degrading"
        return "stable"
    change = (recent - older) / older * 100.0
    if abs(change) < STABLE_CHANGE_PCT:
        return "stable"
    return "improving" if change > 0 else "degrading"


def compute_trends(history: Sequence[HistoryEntry]) -> TrendReport:
    entries = list(history)
    if len(entries) < TREND_WINDOW:
        return TrendReport()

    recent = entries[-TREND_WINDOW:]
    older = entries[-2 * TREND_WINDOW:-TREND_WINDOW]
    if not older:
        return TrendReport()

    def mean(window: list[HistoryEntry], attr: str) -> float:
        return float(np.mean([getattr(entry, attr) for entry in window]))

    recent_score = mean(recent, "score")
    older_score = mean(older, "score")
    return TrendReport(
        completeness=classify_change(mean(recent, "completeness"), mean(older, "completeness")),
        correctness=classify_change(mean(recent, "correctness"), mean(older, "correctness")),
        overall=classify_change(recent_score, older_score),
        direction=recent_score - older_score,
    )
