# src/rmatrack/main.py

import logging
from datetime import date

from .config import load_config
from .data import Database
from .models import Canton, Center
from .reconciliation import discrepancies
from .statistics import reconcile_month, yearly_submission_stats


def input_canton() -> Canton:
    while True:
        raw = input("  Kanton (FR, VD, GE): ").strip().upper()
        try:
            return Canton(raw)
        except ValueError:
            print("  Unbekannter Kanton.")


def print_holidays(db: Database, year: int, canton: Canton):
    holidays = db.get_holidays(canton, year)
    print(f"\n📅 {len(holidays)} Feiertage {canton.value} {year}:")
    for h in holidays:
        print(f"  {h.date.isoformat()}  {h.name}")


def print_reconciliation(db: Database, year: int, month: int, center=None):
    results = reconcile_month(db, year, month, center=center)
    if not results:
        print("Keine Deklarationen für diesen Monat.")
        return
    for r in results:
        s = r.stats
        print(f"\n👤 {r.user_name or r.user_id} ({r.center.value}): "
              f"{s.total} Halbtage, {s.matches} ok, "
              f"{s.absent_when_planned_present} abwesend statt anwesend, "
              f"{s.present_when_planned_absent} anwesend statt abwesend, "
              f"{s.actual_only} nur erfasst, {s.code_mismatch} Code-Abweichung")
        for e in discrepancies(r.entries):
            d = e.to_dict()
            print(f"   {d['day']:>2} {d['halfDay']}  {d['plannedCode'] or '-'} -> {d['actualCode'] or '-'}  {d['status']}")


def print_submission_overview(db: Database, year: int):
    stats = [s for s in yearly_submission_stats(db, year) if s['total']]
    if not stats:
        return
    print(f"\n📊 Deklarationen {year}:")
    for s in stats:
        print(f"  {s['month']:>2}: {s['total']} ({s['rate']}%), {s['approved']} genehmigt, "
              f"{s['submitted']} eingereicht, {s['draft']} Entwurf, {s['revision']} Überarbeitung")


def run_wizard():
    logging.basicConfig(level=logging.INFO)
    cfg = load_config()
    db = Database(cfg.get('db_path'))
    try:
        print("🎯 RMA-Tracker Setup 🎯")
        year_str = input(f"Jahr [leer={date.today().year}]: ").strip()
        year = int(year_str) if year_str else date.today().year

        for y in cfg.get('seed_years') or []:
            db.seed_holidays(int(y))
            print(f"  Feiertage {y} für alle Kantone gespeichert")

        # 1) Feiertage berechnen und speichern
        if input("Feiertage für alle Kantone berechnen? (j/n) ").lower() == "j":
            for canton, count in db.seed_holidays(year).items():
                print(f"  {canton.value}: {count} Feiertage gespeichert")
        print_holidays(db, year, input_canton())

        # 2) Abgleich eines Monats
        if input("\nMonat abgleichen? (j/n) ").lower() == "j":
            month = int(input("  Monat (1-12): "))
            default_center = cfg.get('default_center')
            center_str = input(f"  Zentrum (FRIBOURG, LAUSANNE, GENEVA) [leer={default_center or 'alle'}]: ").strip().upper()
            center_str = center_str or default_center
            center = Center(center_str) if center_str else None
            print_reconciliation(db, year, month, center)
        print_submission_overview(db, year)
    finally:
        db.close()


if __name__ == "__main__":
    run_wizard()
