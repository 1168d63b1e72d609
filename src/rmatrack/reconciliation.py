"""
Abgleich zwischen geplanter RMA-Deklaration und erfasster Anwesenheit.

Jeder Halbtag, der in einer der beiden Listen vorkommt, bekommt genau einen
DiscrepancyStatus. Feiertage sind hier nicht bekannt; sie stehen bereits als
'H'-Einträge im geplanten Raster (siehe holidays.prefill_holidays).
"""
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (
    ActivityCode,
    CodeClass,
    DiscrepancyStatus,
    HalfDay,
    ReconciliationEntry,
    ReconciliationStats,
    code_class,
)

SlotKey = Tuple[int, HalfDay]

_STAT_FIELDS = {
    DiscrepancyStatus.MATCH: "matches",
    DiscrepancyStatus.ABSENT_WHEN_PLANNED_PRESENT: "absent_when_planned_present",
    DiscrepancyStatus.PRESENT_WHEN_PLANNED_ABSENT: "present_when_planned_absent",
    DiscrepancyStatus.ACTUAL_ONLY: "actual_only",
    DiscrepancyStatus.CODE_MISMATCH: "code_mismatch",
}


def _slot(item) -> Tuple[SlotKey, object]:
    """Akzeptiert Dataclasses, dicts (API-Form) und (day, half_day, code)-Tupel."""
    if isinstance(item, dict):
        half_day = item.get("halfDay", item.get("half_day"))
        code = item.get("code", item.get("actualCode"))
        day = item["day"]
    elif isinstance(item, tuple):
        day, half_day, code = item
    else:
        day, half_day, code = item.day, item.half_day, item.code
    return (int(day), HalfDay(half_day)), ActivityCode.coerce(code)


def _build_map(items) -> Dict[SlotKey, object]:
    # bei doppelten Schlüsseln gewinnt der letzte Eintrag
    slots = {}
    for item in items or []:
        key, code = _slot(item)
        slots[key] = code
    return slots


def classify(planned, actual) -> Optional[DiscrepancyStatus]:
    """Entscheidungstabelle für einen Halbtag. None = beide leer, nicht ausgeben."""
    if planned is None and actual is None:
        return None
    if actual is None:
        if code_class(planned) is CodeClass.PRESENCE:
            return DiscrepancyStatus.ABSENT_WHEN_PLANNED_PRESENT
        return DiscrepancyStatus.MATCH
    if planned is None:
        return DiscrepancyStatus.ACTUAL_ONLY

    if planned == actual:
        return DiscrepancyStatus.MATCH
    p_cls, a_cls = code_class(planned), code_class(actual)
    if p_cls is CodeClass.PRESENCE and a_cls is CodeClass.PRESENCE:
        return DiscrepancyStatus.CODE_MISMATCH
    if p_cls is CodeClass.ABSENCE and a_cls is CodeClass.PRESENCE:
        return DiscrepancyStatus.PRESENT_WHEN_PLANNED_ABSENT
    if p_cls is CodeClass.PRESENCE and a_cls is CodeClass.ABSENCE:
        return DiscrepancyStatus.ABSENT_WHEN_PLANNED_PRESENT
    return DiscrepancyStatus.CODE_MISMATCH


def reconcile(planned: Iterable, actual: Iterable) -> List[ReconciliationEntry]:
    """
    Vergleicht geplante und tatsächliche Halbtage.

    Ergebnis enthält jeden Schlüssel (Tag, Halbtag) aus beiden Listen genau
    einmal, sortiert nach Tag und innerhalb des Tages AM vor PM.
    """
    planned_map = _build_map(planned)
    actual_map = _build_map(actual)

    keys = sorted(set(planned_map) | set(actual_map), key=lambda k: (k[0], k[1].rank))
    entries = []
    for key in keys:
        p = planned_map.get(key)
        a = actual_map.get(key)
        status = classify(p, a)
        if status is None:
            continue
        entries.append(ReconciliationEntry(key[0], key[1], p, a, status))
    return entries


def compute_stats(entries: Iterable[ReconciliationEntry]) -> ReconciliationStats:
    stats = ReconciliationStats()
    for e in entries:
        stats.total += 1
        attr = _STAT_FIELDS[e.status]
        setattr(stats, attr, getattr(stats, attr) + 1)
    return stats


def merge_stats(all_stats: Iterable[ReconciliationStats]) -> ReconciliationStats:
    """Summiert die Statistiken mehrerer Teilnehmer (Zentrum/Monat)."""
    merged = ReconciliationStats()
    for s in all_stats:
        merged.total += s.total
        for attr in _STAT_FIELDS.values():
            setattr(merged, attr, getattr(merged, attr) + getattr(s, attr))
    return merged


def discrepancies(entries: Iterable[ReconciliationEntry]) -> List[ReconciliationEntry]:
    return [e for e in entries if e.status is not DiscrepancyStatus.MATCH]
