import json
import pytest
from datetime import date
from PySide6.QtWidgets import QMessageBox

from rmatrack.data import Database
from rmatrack.models import ActivityCode, Center, DatedAttendance, HalfDay, Participant, PlannedEntry, RmaSubmission
from rmatrack.ui import MainWindow


class DummySignal:
    def __init__(self):
        self.slots = []

    def connect(self, slot):
        self.slots.append(slot)

    def emit(self, *args):
        for slot in self.slots:
            slot(*args)


class DummyThread:
    """Führt den Worker beim start() synchron aus."""
    def __init__(self):
        self.started = DummySignal()
        self.quit_called = False

    def start(self):
        self.started.emit()

    def isRunning(self):
        return False

    def quit(self, *args):
        self.quit_called = True

    def wait(self, *args):
        pass


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def db(home):
    db = Database(str(home / "ui.db"))
    p = db.save_participant(Participant("Alice", "alice@example.ch", Center.FRIBOURG))
    db.save_submission(RmaSubmission(p.id, 2026, 3, Center.FRIBOURG, entries=[
        PlannedEntry(2, HalfDay.AM, ActivityCode.ONSITE),
        PlannedEntry(2, HalfDay.PM, ActivityCode.ONSITE),
    ]))
    db.save_attendance(DatedAttendance(p.id, date(2026, 3, 2), HalfDay.AM, ActivityCode.ONSITE))
    db.save_attendance(DatedAttendance(p.id, date(2026, 3, 3), HalfDay.AM, ActivityCode.ONSITE))
    yield db
    db.close()


def _window(qtbot, db):
    window = MainWindow(db=db)
    qtbot.addWidget(window)
    window.year.setValue(2026)
    window.month.setValue(3)
    return window


def _statuses(window):
    return [window.table.item(row, 5).text() for row in range(window.table.rowCount())]


def test_refresh_fills_table(qtbot, db):
    window = _window(qtbot, db)
    assert window.windowTitle() == "RMA Abgleich"
    assert window.center.currentData() is None
    window.refresh()
    assert window.table.rowCount() == 3
    assert _statuses(window) == ["MATCH", "ABSENT_WHEN_PLANNED_PRESENT", "ACTUAL_ONLY"]
    assert window.table.item(0, 0).text() == "Alice"
    assert window.summary.text() == "1 Deklarationen, 3 Halbtage"


def test_only_discrepancies_toggle(qtbot, db, home):
    window = _window(qtbot, db)
    window.refresh()
    window.only_diff.setChecked(True)
    assert window.table.rowCount() == 2
    assert "MATCH" not in _statuses(window)
    with open(home / ".rmatrack" / "rmatrack_config.json", encoding="utf-8") as f:
        assert json.load(f)['only_discrepancies'] is True

    window.only_diff.setChecked(False)
    assert window.table.rowCount() == 3


def test_default_center_from_config(qtbot, db, home):
    cfg_dir = home / ".rmatrack"
    cfg_dir.mkdir(exist_ok=True)
    (cfg_dir / "rmatrack_config.json").write_text(json.dumps({'default_center': 'LAUSANNE'}), encoding="utf-8")
    window = _window(qtbot, db)
    assert window.center.currentData() == "LAUSANNE"
    window.refresh()
    assert window.table.rowCount() == 0
    window.center.setCurrentIndex(window.center.findData("FRIBOURG"))
    window.refresh()
    assert window.table.rowCount() == 3


def test_export_button_starts_worker(qtbot, db, home, monkeypatch):
    window = _window(qtbot, db)
    out = str(home / "bericht.pdf")
    called = {}

    class DummyWorker:
        def __init__(self, db_path, year, month, out_fn, center=None):
            called['init'] = (db_path, year, month, out_fn, center)
            self.finished = DummySignal()
            self.error = DummySignal()

        def moveToThread(self, thread):
            called['thread'] = thread

        def run(self):
            called['run'] = True
            self.finished.emit(called['init'][3])

        def stop(self):
            pass

    monkeypatch.setattr('rmatrack.ui.ReportWorker', DummyWorker)
    monkeypatch.setattr('rmatrack.ui.QThread', DummyThread)
    monkeypatch.setattr('rmatrack.ui.QFileDialog.getSaveFileName', lambda *a, **k: (out, ""))
    infos = []
    monkeypatch.setattr(QMessageBox, 'information', lambda *a, **k: infos.append(a))

    window.on_export()
    assert called['init'] == (db.db_path, 2026, 3, out, None)
    assert called['thread'] is window.report_thread
    assert called.get('run')
    assert window.report_thread.quit_called
    assert out in infos[0][2]


def test_export_refused_for_memory_db(qtbot, home, monkeypatch):
    mem = Database(':memory:')
    window = MainWindow(db=mem)
    qtbot.addWidget(window)

    def no_worker(*a, **k):
        raise AssertionError("ReportWorker darf nicht starten")

    def no_dialog(*a, **k):
        raise AssertionError("Dateidialog darf nicht öffnen")

    monkeypatch.setattr('rmatrack.ui.ReportWorker', no_worker)
    monkeypatch.setattr('rmatrack.ui.QFileDialog.getSaveFileName', no_dialog)
    warnings = []
    monkeypatch.setattr(QMessageBox, 'warning', lambda *a, **k: warnings.append(a))

    window.on_export()
    assert len(warnings) == 1
    assert window.report_thread is None
    mem.close()
