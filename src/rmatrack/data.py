import os
import sqlite3
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
from rmatrack.models import (
    ActivityCode, Canton, Center, DatedAttendance, HalfDay, Holiday, Participant,
    PlannedEntry, RmaSubmission, SubmissionStatus, validate_entry,
)
from rmatrack.holidays import compute_holidays
import logging

class Database:
    def __init__(self, db_path: str = None):
        try:
            self.db_path = db_path or os.path.join(os.path.expanduser("~"), ".rmatrack", "rmatrack.db")
            if self.db_path != ':memory:':
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON;")  # Enable foreign key constraints
            self._ensure_tables()
        except Exception as e:
            logging.error(f"Database connection error: {e}")
            raise

    def _ensure_tables(self):
        cur = self.conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS participants (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          name TEXT NOT NULL,
          email TEXT NOT NULL UNIQUE,
          primary_center TEXT NOT NULL,
          role TEXT NOT NULL DEFAULT 'PARTICIPANT',
          active INTEGER NOT NULL DEFAULT 1
        )""")

        # Monatsdeklaration, eine pro Teilnehmer und Monat
        cur.execute("""
        CREATE TABLE IF NOT EXISTS rma_submissions (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          user_id INTEGER NOT NULL,
          year INTEGER NOT NULL,
          month INTEGER NOT NULL,
          center TEXT NOT NULL,
          status TEXT NOT NULL DEFAULT 'DRAFT',
          submitted_at TEXT,
          admin_notes TEXT,
          reviewed_by INTEGER,
          reviewed_at TEXT,
          UNIQUE(user_id, year, month),
          FOREIGN KEY(user_id) REFERENCES participants(id) ON DELETE CASCADE
        )""")

        # Raster-Einträge, werden mit der Deklaration gelöscht
        cur.execute("""
        CREATE TABLE IF NOT EXISTS rma_entries (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          submission_id INTEGER NOT NULL,
          day INTEGER NOT NULL,
          half_day TEXT NOT NULL,
          code TEXT NOT NULL,
          UNIQUE(submission_id, day, half_day),
          FOREIGN KEY(submission_id) REFERENCES rma_submissions(id) ON DELETE CASCADE
        )""")

        cur.execute("""
        CREATE TABLE IF NOT EXISTS attendance_records (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          user_id INTEGER NOT NULL,
          date TEXT NOT NULL,
          half_day TEXT NOT NULL,
          actual_code TEXT NOT NULL,
          center TEXT,
          notes TEXT,
          UNIQUE(user_id, date, half_day),
          FOREIGN KEY(user_id) REFERENCES participants(id) ON DELETE CASCADE
        )""")

        cur.execute("""
        CREATE TABLE IF NOT EXISTS public_holidays (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          date TEXT NOT NULL,
          name TEXT NOT NULL,
          canton TEXT NOT NULL,
          year INTEGER NOT NULL,
          UNIQUE(date, canton)
        )""")

        self.conn.commit()

    # Export/Import
    def export_to_sql(self, filename: str):
        """Dump aller Tabellen als SQL-Statements"""
        with open(filename, 'w', encoding='utf-8') as f:
            for line in self.conn.iterdump():
                f.write(f"{line}\n")

    def import_from_sql(self, filename: str):
        """Vorhandene Tabellen löschen, Dump einlesen und ausführen"""
        with open(filename, 'r', encoding='utf-8') as f:
            script = f.read()
        cur = self.conn.cursor()
        cur.execute("PRAGMA foreign_keys = OFF;")
        for tbl in ('rma_entries', 'rma_submissions', 'attendance_records', 'public_holidays', 'participants'):
            cur.execute(f"DROP TABLE IF EXISTS {tbl}")
        self.conn.commit()
        self.conn.executescript(script)
        self.conn.execute("PRAGMA foreign_keys = ON;")
        self.conn.commit()

    # Teilnehmer
    def save_participant(self, p: Participant) -> Participant:
        cur = self.conn.cursor()
        center = Center(p.primary_center).value
        if p.id is not None:
            cur.execute(
                "UPDATE participants SET name=?, email=?, primary_center=?, role=?, active=? WHERE id=?",
                (p.name, p.email, center, p.role, int(p.active), p.id)
            )
        else:
            cur.execute(
                "INSERT INTO participants (name, email, primary_center, role, active) VALUES (?,?,?,?,?)",
                (p.name, p.email, center, p.role, int(p.active))
            )
            p.id = cur.lastrowid
        self.conn.commit()
        return p

    def load_participants(self, center: Optional[Center] = None) -> List[Participant]:
        query = "SELECT * FROM participants"
        params = []
        if center is not None:
            query += " WHERE primary_center=?"
            params.append(Center(center).value)
        out = []
        for row in self.conn.execute(query + " ORDER BY name", params):
            p = Participant(row['name'], row['email'], Center(row['primary_center']),
                            row['role'], bool(row['active']))
            p.id = row['id']
            out.append(p)
        return out

    def participant_names(self) -> Dict[int, str]:
        return {row['id']: row['name'] for row in self.conn.execute("SELECT id, name FROM participants")}

    # RMA-Deklarationen
    def save_submission(self, sub: RmaSubmission) -> RmaSubmission:
        """Speichert Kopf und ersetzt alle Raster-Einträge der Deklaration."""
        rows = []
        for e in sub.entries:
            day, hd, code = validate_entry(e.day, e.half_day, e.code, sub.year, sub.month)
            rows.append((day, hd.value, code.value))
        center = Center(sub.center).value
        status = SubmissionStatus(sub.status).value
        try:
            cur = self.conn.cursor()
            if sub.id is not None:
                cur.execute(
                    "UPDATE rma_submissions SET user_id=?, year=?, month=?, center=?, status=? WHERE id=?",
                    (sub.user_id, sub.year, sub.month, center, status, sub.id)
                )
            else:
                cur.execute(
                    "INSERT INTO rma_submissions (user_id, year, month, center, status) VALUES (?,?,?,?,?)",
                    (sub.user_id, sub.year, sub.month, center, status)
                )
                sub.id = cur.lastrowid
            cur.execute("DELETE FROM rma_entries WHERE submission_id=?", (sub.id,))
            cur.executemany(
                "INSERT OR REPLACE INTO rma_entries (submission_id, day, half_day, code) VALUES (?,?,?,?)",
                [(sub.id,) + r for r in rows]
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Fehler beim Speichern der Deklaration: {e}")
            raise
        return sub

    def _entries_for(self, submission_id: int) -> List[PlannedEntry]:
        cur = self.conn.execute(
            "SELECT day, half_day, code FROM rma_entries WHERE submission_id=?", (submission_id,)
        )
        return [PlannedEntry(r['day'], HalfDay(r['half_day']), ActivityCode.coerce(r['code']))
                for r in cur.fetchall()]

    def load_submissions(
        self,
        year: int,
        month: int,
        center: Optional[Center] = None,
        user_id: Optional[int] = None
    ) -> List[RmaSubmission]:
        query = "SELECT * FROM rma_submissions WHERE year=? AND month=?"
        params = [year, month]
        if center is not None:
            query += " AND center=?"
            params.append(Center(center).value)
        if user_id is not None:
            query += " AND user_id=?"
            params.append(user_id)
        return [self._submission_from_row(row)
                for row in self.conn.execute(query + " ORDER BY id", params).fetchall()]

    def _submission_from_row(self, row) -> RmaSubmission:
        def ts(value):
            return datetime.fromisoformat(value) if value else None
        sub = RmaSubmission(row['user_id'], row['year'], row['month'], Center(row['center']),
                            SubmissionStatus(row['status']), self._entries_for(row['id']),
                            ts(row['submitted_at']), row['admin_notes'], row['reviewed_by'],
                            ts(row['reviewed_at']))
        sub.id = row['id']
        return sub

    def get_submission(self, submission_id: int) -> Optional[RmaSubmission]:
        row = self.conn.execute("SELECT * FROM rma_submissions WHERE id=?", (submission_id,)).fetchone()
        return self._submission_from_row(row) if row else None

    def count_entries(self, submission_id: int) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM rma_entries WHERE submission_id=?", (submission_id,)
        ).fetchone()[0]

    def update_submission_status(self, sub: RmaSubmission):
        """Schreibt nur Status und Prüfdaten, das Raster bleibt unverändert."""
        def ts(value):
            return value.isoformat(timespec='seconds') if value else None
        try:
            self.conn.execute(
                """UPDATE rma_submissions
                   SET status=?, submitted_at=?, admin_notes=?, reviewed_by=?, reviewed_at=?
                   WHERE id=?""",
                (SubmissionStatus(sub.status).value, ts(sub.submitted_at), sub.admin_notes,
                 sub.reviewed_by, ts(sub.reviewed_at), sub.id)
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logging.error(f"Fehler beim Statuswechsel der Deklaration {sub.id}: {e}")
            raise

    def load_submissions_for_year(self, year: int) -> List[RmaSubmission]:
        out = []
        for month in range(1, 13):
            out.extend(self.load_submissions(year, month))
        return out

    def count_active_participants(self) -> int:
        """Aktive Teilnehmende (Rolle PARTICIPANT), Basis der Einreichungsquote."""
        return self.conn.execute(
            "SELECT COUNT(*) FROM participants WHERE role='PARTICIPANT' AND active=1"
        ).fetchone()[0]

    def delete_submission(self, submission_id: int):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM rma_submissions WHERE id=?", (submission_id,))
        self.conn.commit()

    def get_planned_entries(self, user_id: int, year: int, month: int) -> List[PlannedEntry]:
        row = self.conn.execute(
            "SELECT id FROM rma_submissions WHERE user_id=? AND year=? AND month=?",
            (user_id, year, month)
        ).fetchone()
        return self._entries_for(row['id']) if row else []

    # Anwesenheit
    def save_attendance(self, rec: DatedAttendance) -> DatedAttendance:
        _, hd, code = validate_entry(rec.date.day, rec.half_day, rec.code)
        center = Center(rec.center).value if rec.center else None
        cur = self.conn.cursor()
        cur.execute(
            """INSERT INTO attendance_records (user_id, date, half_day, actual_code, center, notes)
               VALUES (?,?,?,?,?,?)
               ON CONFLICT(user_id, date, half_day)
               DO UPDATE SET actual_code=excluded.actual_code, center=excluded.center, notes=excluded.notes""",
            (rec.user_id, rec.date.isoformat(), hd.value, code.value, center, rec.notes)
        )
        row = cur.execute(
            "SELECT id FROM attendance_records WHERE user_id=? AND date=? AND half_day=?",
            (rec.user_id, rec.date.isoformat(), hd.value)
        ).fetchone()
        rec.id = row['id']
        self.conn.commit()
        return rec

    def get_actual_attendance(self, user_id: int, start: date, end: date) -> List[DatedAttendance]:
        cur = self.conn.execute(
            "SELECT * FROM attendance_records WHERE user_id=? AND date BETWEEN ? AND ? ORDER BY date, half_day",
            (user_id, start.isoformat(), end.isoformat())
        )
        out = []
        for row in cur.fetchall():
            rec = DatedAttendance(row['user_id'], date.fromisoformat(row['date']), HalfDay(row['half_day']),
                                  ActivityCode.coerce(row['actual_code']),
                                  Center(row['center']) if row['center'] else None, row['notes'])
            rec.id = row['id']
            out.append(rec)
        return out

    def delete_attendance(self, record_id: int):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM attendance_records WHERE id=?", (record_id,))
        self.conn.commit()

    # Feiertage
    def upsert_holiday(self, h: Holiday):
        """Schlüssel (Datum, Kanton): erneutes Seeden aktualisiert nur den Namen."""
        self.conn.execute(
            """INSERT INTO public_holidays (date, name, canton, year) VALUES (?,?,?,?)
               ON CONFLICT(date, canton) DO UPDATE SET name=excluded.name""",
            (h.date.isoformat(), h.name, Canton(h.canton).value, h.date.year)
        )
        self.conn.commit()

    def get_holidays(self, canton: Canton, year: int) -> List[Holiday]:
        cur = self.conn.execute(
            "SELECT date, name, canton FROM public_holidays WHERE canton=? AND year=? ORDER BY date",
            (Canton(canton).value, year)
        )
        return [Holiday(date.fromisoformat(r['date']), r['name'], Canton(r['canton'])) for r in cur.fetchall()]

    def delete_holiday(self, canton: Canton, day: date):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM public_holidays WHERE canton=? AND date=?", (Canton(canton).value, day.isoformat()))
        self.conn.commit()

    def seed_holidays(self, year: int, cantons: Optional[Iterable[Canton]] = None) -> Dict[Canton, int]:
        seeded = {}
        for canton in cantons or list(Canton):
            holidays = compute_holidays(year, canton)
            for h in holidays:
                self.upsert_holiday(h)
            seeded[Canton(canton)] = len(holidays)
            logging.info(f"Seeded {len(holidays)} holidays for {Canton(canton).value} {year}")
        return seeded

    def close(self):
        """Schließe die Datenbankverbindung sauber"""
        if self.conn:
            self.conn.close()
            self.conn = None
