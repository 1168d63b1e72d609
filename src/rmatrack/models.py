import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union


class HalfDay(str, Enum):
    AM = "AM"
    PM = "PM"

    @property
    def rank(self) -> int:
        return 0 if self is HalfDay.AM else 1


class CodeClass(Enum):
    PRESENCE = "presence"
    ABSENCE = "absence"
    NEUTRAL = "neutral"


class ActivityCode(str, Enum):
    """RMA-Codes, gespeichert und serialisiert als Ein-Buchstaben-Tag."""
    ONSITE = "X"
    OFFSITE = "O"
    MANDATE = "M"
    ILLNESS = "A"
    ACCIDENT = "B"
    TRAINING_EXTERNAL = "C"
    PERSONAL_LEAVE = "D"
    JOB_INTERVIEW = "E"
    OTHER_ABSENCE = "G"
    DAY_OFF = "F"
    HOLIDAY = "H"
    UNCLASSIFIED = "I"

    @classmethod
    def coerce(cls, value) -> Union["ActivityCode", str]:
        """Tag ('X'), Name ('ONSITE') oder Member -> ActivityCode.
        Unbekannte Werte bleiben als roher String erhalten."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        if isinstance(value, str) and value in cls.__members__:
            return cls[value]
        return value


CODE_CLASSES = {
    ActivityCode.ONSITE: CodeClass.PRESENCE,
    ActivityCode.OFFSITE: CodeClass.PRESENCE,
    ActivityCode.MANDATE: CodeClass.PRESENCE,
    ActivityCode.ILLNESS: CodeClass.ABSENCE,
    ActivityCode.ACCIDENT: CodeClass.ABSENCE,
    ActivityCode.TRAINING_EXTERNAL: CodeClass.ABSENCE,
    ActivityCode.PERSONAL_LEAVE: CodeClass.ABSENCE,
    ActivityCode.JOB_INTERVIEW: CodeClass.ABSENCE,
    ActivityCode.OTHER_ABSENCE: CodeClass.ABSENCE,
}


def code_class(code) -> CodeClass:
    # alles was nicht gelistet ist (Feiertag, unbekannte Codes) ist neutral
    return CODE_CLASSES.get(ActivityCode.coerce(code), CodeClass.NEUTRAL)


def code_tag(code) -> Optional[str]:
    if code is None:
        return None
    return code.value if isinstance(code, ActivityCode) else str(code)


class DiscrepancyStatus(str, Enum):
    MATCH = "MATCH"
    ABSENT_WHEN_PLANNED_PRESENT = "ABSENT_WHEN_PLANNED_PRESENT"
    PRESENT_WHEN_PLANNED_ABSENT = "PRESENT_WHEN_PLANNED_ABSENT"
    CODE_MISMATCH = "CODE_MISMATCH"
    ACTUAL_ONLY = "ACTUAL_ONLY"


class Canton(str, Enum):
    FR = "FR"
    VD = "VD"
    GE = "GE"


class Center(str, Enum):
    FRIBOURG = "FRIBOURG"
    LAUSANNE = "LAUSANNE"
    GENEVA = "GENEVA"


CENTER_CANTON = {
    Center.FRIBOURG: Canton.FR,
    Center.LAUSANNE: Canton.VD,
    Center.GENEVA: Canton.GE,
}


class SubmissionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


def validate_entry(day: int, half_day, code, year: int = None, month: int = None):
    """Prüft einen Halbtag an der Systemgrenze (Speichern), nicht im Kern.
    Gibt (day, HalfDay, ActivityCode) zurück oder wirft ValueError."""
    max_day = calendar.monthrange(year, month)[1] if year and month else 31
    if not isinstance(day, int) or not 1 <= day <= max_day:
        raise ValueError(f"Ungültiger Tag: {day!r} (1..{max_day})")
    try:
        hd = HalfDay(half_day)
    except ValueError:
        raise ValueError(f"Ungültiger Halbtag: {half_day!r}") from None
    ac = ActivityCode.coerce(code)
    if not isinstance(ac, ActivityCode):
        raise ValueError(f"Unbekannter RMA-Code: {code!r}")
    return day, hd, ac


@dataclass
class PlannedEntry:
    """Geplanter Halbtag aus der RMA-Deklaration."""
    day: int
    half_day: HalfDay
    code: ActivityCode


@dataclass
class AttendanceRecord:
    """Tatsächliche Anwesenheit, auf den Monatstag umgerechnet."""
    day: int
    half_day: HalfDay
    code: ActivityCode


@dataclass
class DatedAttendance:
    """Anwesenheit wie gespeichert (mit Datum)."""
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    user_id: int
    date: date
    half_day: HalfDay
    code: ActivityCode
    center: Optional[Center] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ReconciliationEntry:
    day: int
    half_day: HalfDay
    planned_code: Optional[Union[ActivityCode, str]]
    actual_code: Optional[Union[ActivityCode, str]]
    status: DiscrepancyStatus

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "halfDay": self.half_day.value,
            "plannedCode": code_tag(self.planned_code),
            "actualCode": code_tag(self.actual_code),
            "status": self.status.value,
        }


@dataclass
class ReconciliationStats:
    total: int = 0
    matches: int = 0
    absent_when_planned_present: int = 0
    present_when_planned_absent: int = 0
    actual_only: int = 0
    code_mismatch: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "matches": self.matches,
            "absentWhenPlannedPresent": self.absent_when_planned_present,
            "presentWhenPlannedAbsent": self.present_when_planned_absent,
            "actualOnly": self.actual_only,
            "codeMismatch": self.code_mismatch,
        }


@dataclass
class ReconciliationResult:
    user_id: int
    user_name: str
    year: int
    month: int
    center: Center
    entries: List[ReconciliationEntry]
    stats: ReconciliationStats

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "year": self.year,
            "month": self.month,
            "center": self.center.value,
            "entries": [e.to_dict() for e in self.entries],
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    canton: Canton


@dataclass
class Participant:
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    name: str
    email: str
    primary_center: Center
    role: str = "PARTICIPANT"
    active: bool = True


@dataclass
class RmaSubmission:
    """Monatliche Deklaration eines Teilnehmers (Raster aus Halbtagen)."""
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    user_id: int
    year: int
    month: int
    center: Center
    status: SubmissionStatus = SubmissionStatus.DRAFT
    entries: List[PlannedEntry] = field(default_factory=list)
    submitted_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = None      # Teilnehmer-ID der prüfenden Person
    reviewed_at: Optional[datetime] = None
