"""KPI metadata catalog shared by fault injection and value validation.

Lookups never raise: an unknown KPI id yields None and callers skip it.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

logger = logging.getLogger(__name__)

DataSource = Literal["LF", "HF"]
SOURCES: tuple[DataSource, ...] = ("LF", "HF")


@dataclass(frozen=True)
class KPIMeta:
    id: str
    name: str
    unit: str
    category: str
    source: DataSource
    range_min: float
    range_max: float
    alarm_low: float | None = None
    alarm_high: float | None = None

    def in_range(self, value: float) -> bool:
        return self.range_min <= value <= self.range_max

    def clamp(self, value: float) -> float:
        return max(self.range_min, min(self.range_max, value))


# (id, name, unit, category, nominal range, HF alarm limits)
_KPI_TABLE = [
    ("obs_speed", "Obs Speed", "knts", "performance", (0, 25), (5, 25)),
    ("me_consumption", "ME Consumption", "Mt", "fuel", (0, 50), (10, 90)),
    ("total_consumption", "Total Consumption", "Mt", "fuel", (0, 60), (15, 140)),
    ("wind_force", "Wind Force", "Beaufort", "weather", (0, 12), (0, 10)),
    ("me_power", "ME Power", "kW", "performance", (0, 20000), (1000, 19000)),
    ("me_sfoc", "ME SFOC", "gm/kWhr", "performance", (160, 220), (165, 215)),
    ("rpm", "RPM", "rpm", "performance", (0, 150), (75, 145)),
]


def _default_entries() -> list[KPIMeta]:
    entries = []
    for source in SOURCES:
        for kpi_id, name, unit, category, (lo, hi), (alarm_lo, alarm_hi) in _KPI_TABLE:
            entries.append(
                KPIMeta(
                    id=kpi_id,
                    name=name,
                    unit=unit,
                    category=category,
                    source=source,
                    range_min=float(lo),
                    range_max=float(hi),
                    alarm_low=float(alarm_lo) if source == "HF" else None,
                    alarm_high=float(alarm_hi) if source == "HF" else None,
                )
            )
    return entries


class KPICatalog:
    """Lookup service over KPI metadata keyed by (source, id)."""

    def __init__(self, entries: Iterable[KPIMeta]):
        self._entries: dict[tuple[str, str], KPIMeta] = {}
        for meta in entries:
            self._entries[(meta.source, meta.id)] = meta

    def lookup(self, kpi_id: str, source: DataSource | None = None) -> KPIMeta | None:
        """Return metadata for kpi_id; without a source, LF wins over HF."""
        if source is not None:
            return self._entries.get((source.upper(), kpi_id))
        for candidate in SOURCES:
            meta = self._entries.get((candidate, kpi_id))
            if meta is not None:
                return meta
        return None

    def ids(self, source: DataSource = "LF") -> list[str]:
        return [meta.id for (src, _), meta in self._entries.items() if src == source]

    def known(self, kpi_ids: Iterable[str], source: DataSource | None = None) -> list[str]:
        """Filter kpi_ids down to catalogued ids, logging the ones dropped."""
        kept = []
        for kpi_id in kpi_ids:
            if self.lookup(kpi_id, source) is None:
                logger.warning("Skipping unknown KPI id: %s", kpi_id)
                continue
            kept.append(kpi_id)
        return kept

    def validate_value(
        self, value: float | None, kpi_id: str, source: DataSource | None = None
    ) -> tuple[bool, str | None]:
        meta = self.lookup(kpi_id, source)
        if meta is None or value is None:
            return False, "Missing value"
        if value < meta.range_min:
            return False, f"Below minimum ({meta.range_min:g})"
        if value > meta.range_max:
            return False, f"Above maximum ({meta.range_max:g})"
        return True, None

    def check_alarm(self, value: float | None, kpi_id: str) -> str | None:
        """Alarm message when an HF value breaches its alarm limits."""
        meta = self.lookup(kpi_id, "HF")
        if meta is None or value is None or meta.alarm_low is None or meta.alarm_high is None:
            return None
        if value < meta.alarm_low:
            return f"{meta.name} below alarm limit ({meta.alarm_low:g})"
        if value > meta.alarm_high:
            return f"{meta.name} above alarm limit ({meta.alarm_high:g})"
        return None

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_CATALOG = KPICatalog(_default_entries())
