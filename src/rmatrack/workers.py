import logging

from PySide6.QtCore import QObject, Signal

from rmatrack.data import Database
from rmatrack.export_utils import export_pdf
from rmatrack.statistics import reconcile_month


class ReportWorker(QObject):
    """Erstellt den PDF-Bericht eines Monats im Hintergrund (eigene DB-Verbindung)."""
    finished = Signal(str)
    error = Signal(str)

    def __init__(self, db_path, year, month, out_fn, center=None):
        super().__init__()
        self.db_path = db_path
        self.year = year
        self.month = month
        self.out_fn = out_fn
        self.center = center
        self._stopped = False

    def stop(self):
        self._stopped = True

    def run(self):
        logging.info("[RMATrack] ReportWorker.run gestartet.")
        if self._stopped:
            return
        db = None
        try:
            if not self.out_fn:
                self.error.emit("Fehler: Kein Ausgabepfad für den Bericht.")
                logging.error("[RMATrack] Fehler: Ausgabepfad fehlt im ReportWorker.")
                return
            db = Database(self.db_path)
            results = reconcile_month(db, self.year, self.month, center=self.center)
            export_pdf(results, self.out_fn)
            if not self._stopped:
                self.finished.emit(self.out_fn)
        except OSError as e:
            logging.error(f"ReportWorker OSError: {e}")
            if not self._stopped:
                self.error.emit(f"Dateifehler: {e}")
        except Exception as e:
            logging.error(f"ReportWorker error: {e}")
            if not self._stopped:
                self.error.emit(str(e))
        finally:
            if db is not None:
                db.close()


class BackupWorker(QObject):
    finished = Signal(str)
    error = Signal(str)

    def __init__(self, db_path, fn):
        super().__init__()
        self.db_path = db_path
        self.fn = fn
        self._stopped = False

    def stop(self):
        self._stopped = True

    def run(self):
        if self._stopped:
            return
        db = None
        try:
            db = Database(self.db_path)  # Neue Verbindung im Worker-Thread
            db.export_to_sql(self.fn)
            if not self._stopped:
                self.finished.emit(self.fn)
        except OSError as e:
            logging.error(f"BackupWorker OSError: {e}")
            if not self._stopped:
                self.error.emit(f"Dateifehler: {e}")
        except Exception as e:
            logging.error(f"BackupWorker error: {e}")
            if not self._stopped:
                self.error.emit(str(e))
        finally:
            if db is not None:
                db.close()
