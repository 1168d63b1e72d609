import logging
from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from rmatrack.data import Database
from rmatrack.holidays import holiday_days, month_bounds, prefill_holidays
from rmatrack.models import (
    CENTER_CANTON, AttendanceRecord, Center, DatedAttendance, PlannedEntry, ReconciliationEntry,
    ReconciliationResult, RmaSubmission, SubmissionStatus, code_tag,
)
from rmatrack.reconciliation import compute_stats, merge_stats, reconcile


def attendance_to_records(rows: Iterable[DatedAttendance]) -> List[AttendanceRecord]:
    """Datum -> Monatstag, damit die Anwesenheit gegen das Raster passt."""
    return [AttendanceRecord(r.date.day, r.half_day, r.code) for r in rows]


def create_draft_submission(db: Database, user_id: int, year: int, month: int, center: Center,
                            entries: Optional[List[PlannedEntry]] = None) -> RmaSubmission:
    """Neue Deklaration; Feiertage des Kantons sind als 'H' vorbelegt."""
    center = Center(center)
    canton = CENTER_CANTON[center]
    holidays = db.get_holidays(canton, year)
    if not holidays:
        db.seed_holidays(year, [canton])
        holidays = db.get_holidays(canton, year)
    planned = prefill_holidays(entries or [], holiday_days(holidays, year, month))
    return db.save_submission(RmaSubmission(user_id, year, month, center, entries=planned))


def reconcile_submission(db: Database, sub: RmaSubmission, user_name: str = "") -> ReconciliationResult:
    start, end = month_bounds(sub.year, sub.month)
    actual = attendance_to_records(db.get_actual_attendance(sub.user_id, start, end))
    entries = reconcile(sub.entries, actual)
    return ReconciliationResult(
        user_id=sub.user_id,
        user_name=user_name,
        year=sub.year,
        month=sub.month,
        center=sub.center,
        entries=entries,
        stats=compute_stats(entries),
    )


def reconcile_month(
    db: Database,
    year: int,
    month: int,
    center: Optional[Center] = None,
    user_id: Optional[int] = None
) -> List[ReconciliationResult]:
    """
    Ein Ergebnis pro Deklaration des Monats, optional gefiltert nach Zentrum
    und/oder Teilnehmer. Teilnehmer ohne Deklaration erscheinen nicht.
    """
    names = db.participant_names()
    return [
        reconcile_submission(db, sub, names.get(sub.user_id, ""))
        for sub in db.load_submissions(year, month, center=center, user_id=user_id)
    ]


def summarize_results(results: List[ReconciliationResult]) -> Dict:
    """
    Zusammenfassung für den Bericht:
      participants : Anzahl abgeglichener Deklarationen
      stats        : Summe aller Statistiken
      by_center    : Summe je Zentrum
    """
    grouped = defaultdict(list)
    for r in results:
        grouped[Center(r.center)].append(r.stats)
    return {
        'participants': len(results),
        'stats': merge_stats(r.stats for r in results),
        'by_center': {c: merge_stats(s) for c, s in grouped.items()},
    }


def code_distribution(entries: Iterable[ReconciliationEntry]) -> Counter:
    """Häufigkeit der geplanten Codes (Tag -> Anzahl Halbtage)."""
    return Counter(code_tag(e.planned_code) for e in entries if e.planned_code is not None)


def monthly_submission_stats(submissions: List[RmaSubmission], total_participants: int) -> List[Dict]:
    stats = []
    for month in range(1, 13):
        subs = [s for s in submissions if s.month == month]
        by_status = Counter(SubmissionStatus(s.status) for s in subs)
        stats.append({
            'month': month,
            'total': len(subs),
            'approved': by_status[SubmissionStatus.APPROVED],
            'submitted': by_status[SubmissionStatus.SUBMITTED],
            'draft': by_status[SubmissionStatus.DRAFT],
            'revision': by_status[SubmissionStatus.REVISION_REQUESTED],
            'rate': round(len(subs) / total_participants * 100) if total_participants else 0,
        })
    return stats


def yearly_submission_stats(db: Database, year: int) -> List[Dict]:
    """Einreichungsquote je Monat, bezogen auf alle aktiven Teilnehmenden."""
    return monthly_submission_stats(db.load_submissions_for_year(year), db.count_active_participants())


# Einreichen ist aus diesen Zuständen erlaubt (auch eine genehmigte Deklaration
# darf nach einer Korrektur erneut eingereicht werden)
SUBMITTABLE = (SubmissionStatus.DRAFT, SubmissionStatus.REVISION_REQUESTED, SubmissionStatus.APPROVED)
REVIEW_ACTIONS = (SubmissionStatus.APPROVED, SubmissionStatus.REVISION_REQUESTED)


def _get_submission(db: Database, submission_id: int) -> RmaSubmission:
    sub = db.get_submission(submission_id)
    if sub is None:
        raise ValueError(f"Deklaration {submission_id} nicht gefunden")
    return sub


def submit_submission(db: Database, submission_id: int) -> RmaSubmission:
    sub = _get_submission(db, submission_id)
    if SubmissionStatus(sub.status) not in SUBMITTABLE:
        raise ValueError(f"Deklaration {submission_id} ist bereits eingereicht")
    if db.count_entries(submission_id) == 0:
        raise ValueError(f"Deklaration {submission_id} hat keine Einträge")
    sub.status = SubmissionStatus.SUBMITTED
    sub.submitted_at = datetime.now()
    db.update_submission_status(sub)
    logging.info(f"Deklaration {submission_id} eingereicht ({sub.year}-{sub.month:02d})")
    return sub


def review_submission(db: Database, submission_id: int, action, admin_notes: Optional[str] = None,
                      reviewer_id: Optional[int] = None) -> RmaSubmission:
    """
    Prüfung durch Mitarbeitende: nur eine eingereichte Deklaration kann
    genehmigt (APPROVED) oder zur Überarbeitung (REVISION_REQUESTED)
    zurückgegeben werden.
    """
    try:
        action = SubmissionStatus(action)
    except ValueError:
        raise ValueError(f"Ungültige Prüfaktion: {action!r}") from None
    if action not in REVIEW_ACTIONS:
        raise ValueError(f"Ungültige Prüfaktion: {action.value}")
    sub = _get_submission(db, submission_id)
    if SubmissionStatus(sub.status) != SubmissionStatus.SUBMITTED:
        raise ValueError(f"Deklaration {submission_id} ist nicht eingereicht ({SubmissionStatus(sub.status).value})")
    sub.status = action
    sub.admin_notes = admin_notes
    sub.reviewed_by = reviewer_id
    sub.reviewed_at = datetime.now()
    db.update_submission_status(sub)
    logging.info(f"Deklaration {submission_id} geprüft: {action.value}")
    return sub
