from datetime import date

from rmatrack.config import load_config, save_config
from rmatrack.data import Database
from rmatrack.main import print_reconciliation, run_wizard
from rmatrack.models import ActivityCode, Canton, Center, DatedAttendance, HalfDay, Participant, PlannedEntry, RmaSubmission


def test_config_defaults_and_save(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    cfg = load_config()
    assert cfg['default_center'] is None
    assert cfg['seed_years'] == []
    cfg['only_discrepancies'] = True
    save_config(cfg)
    assert load_config()['only_discrepancies'] is True


def test_config_unreadable_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".rmatrack").mkdir()
    (tmp_path / ".rmatrack" / "rmatrack_config.json").write_text("{kaputt", encoding="utf-8")
    assert load_config()['db_path'] is None


def test_wizard_seeds_holidays(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    answers = iter(["2026", "j", "VD", "n"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    run_wizard()
    out = capsys.readouterr().out
    assert "9 Feiertage VD 2026" in out
    assert "2026-09-21  Lundi du Jeûne fédéral" in out

    db = Database(str(tmp_path / ".rmatrack" / "rmatrack.db"))
    assert len(db.get_holidays(Canton.GE, 2026)) == 11
    db.close()


def test_print_reconciliation(tmp_path, capsys):
    db = Database(str(tmp_path / "rma.db"))
    p = db.save_participant(Participant("Alice", "alice@example.ch", Center.GENEVA))
    db.save_submission(RmaSubmission(p.id, 2026, 3, Center.GENEVA,
                                     entries=[PlannedEntry(2, HalfDay.AM, ActivityCode.ONSITE)]))
    db.save_attendance(DatedAttendance(p.id, date(2026, 3, 2), HalfDay.PM, ActivityCode.ONSITE))
    print_reconciliation(db, 2026, 3)
    out = capsys.readouterr().out
    assert "Alice (GENEVA): 2 Halbtage" in out
    assert "ABSENT_WHEN_PLANNED_PRESENT" in out
    assert "ACTUAL_ONLY" in out
    print_reconciliation(db, 2026, 4)
    assert "Keine Deklarationen" in capsys.readouterr().out
    db.close()


def test_wizard_uses_config_defaults(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    cfg = load_config()
    cfg['seed_years'] = [2027]
    cfg['default_center'] = 'GENEVA'
    save_config(cfg)

    db = Database(str(tmp_path / ".rmatrack" / "rmatrack.db"))
    alice = db.save_participant(Participant("Alice", "alice@example.ch", Center.GENEVA))
    bob = db.save_participant(Participant("Bob", "bob@example.ch", Center.FRIBOURG))
    db.save_submission(RmaSubmission(alice.id, 2026, 3, Center.GENEVA))
    db.save_submission(RmaSubmission(bob.id, 2026, 3, Center.FRIBOURG))
    db.close()

    # leere Zentrumsangabe -> Zentrum aus der Konfiguration
    answers = iter(["2026", "n", "GE", "j", "3", ""])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    run_wizard()
    out = capsys.readouterr().out
    assert "Feiertage 2027 für alle Kantone gespeichert" in out
    assert "Alice (GENEVA)" in out
    assert "Bob" not in out
    assert "Deklarationen 2026:" in out
    assert " 3: 2 (100%), 0 genehmigt, 0 eingereicht, 2 Entwurf, 0 Überarbeitung" in out

    db = Database(str(tmp_path / ".rmatrack" / "rmatrack.db"))
    assert len(db.get_holidays(Canton.VD, 2027)) == 9
    assert db.get_holidays(Canton.VD, 2026) == []
    db.close()
