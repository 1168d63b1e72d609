import calendar
from datetime import date, timedelta
from typing import Iterable, List, Set, Tuple, Union

from dateutil.relativedelta import relativedelta

from .models import ActivityCode, Canton, HalfDay, Holiday, PlannedEntry


def compute_easter(year: int) -> date:
    """Ostersonntag nach dem gregorianischen Computus (Gauss/Meeus)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def first_sunday_of_september(year: int) -> int:
    # Wochentag mit Sonntag=0, wie im kantonalen Kalender gezählt
    dow = (date(year, 9, 1).weekday() + 1) % 7
    return 1 if dow == 0 else 1 + (7 - dow)


def _common_holidays(year: int, easter: date) -> List[Tuple[date, str]]:
    return [
        (date(year, 1, 1), "Nouvel An"),
        (date(year, 1, 2), "Saint-Berchtold"),
        (easter - timedelta(days=2), "Vendredi Saint"),
        (easter + timedelta(days=1), "Lundi de Pâques"),
        (easter + timedelta(days=39), "Ascension"),
        (easter + timedelta(days=50), "Lundi de Pentecôte"),
        (date(year, 8, 1), "Fête nationale"),
        (date(year, 12, 25), "Noël"),
    ]


def _canton_holidays(year: int, canton: Canton, easter: date) -> List[Tuple[date, str]]:
    if canton is Canton.FR:
        return [
            (easter + timedelta(days=60), "Fête-Dieu"),
            (date(year, 8, 15), "Assomption"),
            (date(year, 11, 1), "Toussaint"),
            (date(year, 12, 8), "Immaculée Conception"),
        ]
    first_sunday = first_sunday_of_september(year)
    if canton is Canton.VD:
        # Montag nach dem 3. Sonntag im September
        return [(date(year, 9, first_sunday + 14 + 1), "Lundi du Jeûne fédéral")]
    # GE: Fête de Genève bleibt ein fixes Datum (keine Regel hinterlegt)
    return [
        (date(year, 6, 5), "Fête de Genève"),
        (date(year, 9, first_sunday + 4), "Jeûne genevois"),
        (date(year, 12, 31), "Restauration de la République"),
    ]


def compute_holidays(year: int, canton: Union[Canton, str]) -> List[Holiday]:
    """
    Alle gesetzlichen Feiertage eines Kantons für ein Jahr, nach Datum sortiert:
    8 gemeinsame Feiertage plus die kantonalen (FR: 4, VD: 1, GE: 3).
    """
    if year < 1583:
        raise ValueError(f"Computus gilt erst ab 1583, nicht für {year}")
    canton = Canton(canton)
    easter = compute_easter(year)
    days = _common_holidays(year, easter) + _canton_holidays(year, canton, easter)
    return sorted((Holiday(d, name, canton) for d, name in days), key=lambda h: h.date)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    start = date(year, month, 1)
    return start, start + relativedelta(months=1, days=-1)


def is_weekend(year: int, month: int, day: int) -> bool:
    return date(year, month, day).weekday() >= 5


def holiday_days(holidays: Iterable[Holiday], year: int, month: int) -> Set[int]:
    """Tage (1..31) des Monats, die Feiertage sind."""
    return {h.date.day for h in holidays if h.date.year == year and h.date.month == month}


def prefill_holidays(entries: List[PlannedEntry], holiday_day_set: Iterable[int]) -> List[PlannedEntry]:
    """
    Ergänzt das geplante Raster um 'H'-Einträge für jeden Feiertags-Halbtag.
    Bereits deklarierte Halbtage bleiben unverändert.
    """
    result = list(entries)
    taken = {(e.day, HalfDay(e.half_day)) for e in entries}
    for day in sorted(set(holiday_day_set)):
        for hd in HalfDay:
            if (day, hd) not in taken:
                result.append(PlannedEntry(day, hd, ActivityCode.HOLIDAY))
    return result
