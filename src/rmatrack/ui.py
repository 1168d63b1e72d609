import sys
import datetime
import logging

from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QComboBox,
    QSpinBox, QPushButton, QCheckBox, QTableWidget, QTableWidgetItem, QLabel,
    QMessageBox, QFileDialog
)
from PySide6.QtGui import QBrush, QColor
from PySide6.QtCore import QThread

from rmatrack.charts import STATUS_COLORS
from rmatrack.config import load_config, save_config
from rmatrack.data import Database
from rmatrack.models import Center
from rmatrack.reconciliation import discrepancies
from rmatrack.statistics import reconcile_month
from rmatrack.workers import ReportWorker

COLUMNS = ["Teilnehmer", "Tag", "Halbtag", "Geplant", "Tatsächlich", "Status"]


class MainWindow(QMainWindow):
    """Abgleich-Ansicht für Mitarbeitende: nur lesend, ein Monat pro Aufruf."""

    def __init__(self, db=None):
        super().__init__()
        self.setWindowTitle("RMA Abgleich")
        self.resize(900, 600)
        self.cfg = load_config()
        self.db = db if db is not None else Database(self.cfg.get('db_path'))
        self.results = []
        self.report_thread = None

        app = QApplication.instance()
        app.aboutToQuit.connect(self.cleanup)

        central = QWidget(); self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        bar = QHBoxLayout(); layout.addLayout(bar)

        today = datetime.date.today()
        self.year = QSpinBox(); self.year.setRange(2024, 2100); self.year.setValue(today.year)
        self.month = QSpinBox(); self.month.setRange(1, 12); self.month.setValue(today.month)
        self.center = QComboBox()
        self.center.addItem("Alle Zentren", None)
        for c in Center:
            self.center.addItem(c.value, c.value)
        default_center = self.cfg.get('default_center')
        if default_center:
            idx = self.center.findData(Center(default_center).value)
            if idx >= 0:
                self.center.setCurrentIndex(idx)
        self.only_diff = QCheckBox("Nur Abweichungen")
        self.only_diff.setChecked(bool(self.cfg.get('only_discrepancies')))
        btn_load = QPushButton("Abgleichen")
        btn_pdf = QPushButton("PDF-Bericht")
        for w in (QLabel("Jahr"), self.year, QLabel("Monat"), self.month, self.center, self.only_diff, btn_load, btn_pdf):
            bar.addWidget(w)

        self.table = QTableWidget(0, len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        layout.addWidget(self.table)
        self.summary = QLabel("")
        layout.addWidget(self.summary)

        btn_load.clicked.connect(self.refresh)
        btn_pdf.clicked.connect(self.on_export)
        self.only_diff.toggled.connect(self.on_only_diff_toggled)

    def refresh(self):
        try:
            self.results = reconcile_month(self.db, self.year.value(), self.month.value(),
                                           center=self.center.currentData())
        except Exception as e:
            logging.error(f"Fehler beim Abgleich: {e}")
            QMessageBox.critical(self, "Fehler", f"Fehler beim Abgleich: {e}")
            return
        self.fill_table()

    def fill_table(self):
        self.table.setRowCount(0)
        total = 0
        for r in self.results:
            entries = discrepancies(r.entries) if self.only_diff.isChecked() else r.entries
            for e in entries:
                d = e.to_dict()
                row = self.table.rowCount()
                self.table.insertRow(row)
                values = [r.user_name, str(d['day']), d['halfDay'], d['plannedCode'] or "",
                          d['actualCode'] or "", d['status']]
                for col, value in enumerate(values):
                    item = QTableWidgetItem(value)
                    if col == len(values) - 1:
                        item.setBackground(QBrush(QColor(STATUS_COLORS[d['status']])))
                    self.table.setItem(row, col, item)
            total += r.stats.total
        self.summary.setText(f"{len(self.results)} Deklarationen, {total} Halbtage")

    def on_only_diff_toggled(self, checked):
        self.cfg['only_discrepancies'] = checked
        save_config(self.cfg)
        self.fill_table()

    def on_export(self):
        if self.report_thread and self.report_thread.isRunning():
            logging.info("[RMATrack] Report-Thread läuft bereits.")
            return
        if self.db.db_path == ':memory:':
            # der Worker öffnet eine eigene Verbindung und sähe eine leere Datenbank
            QMessageBox.warning(self, 'Export', "PDF-Export ist mit einer In-Memory-Datenbank nicht möglich.")
            return
        fn, _ = QFileDialog.getSaveFileName(self, "PDF-Bericht speichern", filter="PDF-Datei (*.pdf)")
        if not fn:
            return
        self.report_thread = QThread()
        self.report_worker = ReportWorker(self.db.db_path, self.year.value(), self.month.value(), fn,
                                          center=self.center.currentData())
        self.report_worker.moveToThread(self.report_thread)
        self.report_thread.started.connect(self.report_worker.run)
        self.report_worker.finished.connect(self.on_export_finished)
        self.report_worker.error.connect(self.on_export_error)
        self.report_worker.finished.connect(self.report_thread.quit)
        self.report_worker.error.connect(self.report_thread.quit)
        self.report_thread.start()

    def on_export_finished(self, fn):
        QMessageBox.information(self, 'Export', f"PDF erfolgreich gespeichert: {fn}")

    def on_export_error(self, msg):
        logging.error(f"Export error: {msg}")
        QMessageBox.critical(self, 'Export-Fehler', msg)

    def cleanup(self):
        thread = self.report_thread
        if thread is not None and thread.isRunning():
            self.report_worker.stop()
            thread.quit()
            thread.wait()
        if self.db:
            self.db.close()
            self.db = None


def main():
    logging.basicConfig(level=logging.INFO)
    app = QApplication(sys.argv)
    win = MainWindow()
    win.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
