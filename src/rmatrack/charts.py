# src/rmatrack/charts.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from rmatrack.models import ReconciliationStats

STATUS_COLORS = {
    'MATCH': '#22c55e',
    'ABSENT_WHEN_PLANNED_PRESENT': '#ef4444',
    'PRESENT_WHEN_PLANNED_ABSENT': '#eab308',
    'ACTUAL_ONLY': '#3b82f6',
    'CODE_MISMATCH': '#a855f7',
}


def create_pie_chart(values: list[int], labels: list[str], filename: str, colors: list[str] = None, subtitle: str = None):
    """
    Erstellt ein Tortendiagramm und speichert es als PNG.
    :param values: Liste der Werte (z.B. Anzahl Halbtage je Status).
    :param labels: Zugehörige Labels.
    :param filename: Pfad zur Ausgabedatei, z.B. "status.png".
    :param colors: (Optional) Liste von Farben für die Segmente.
    :param subtitle: (Optional) Text, der unter das Diagramm geschrieben wird.
    """
    fig, ax = plt.subplots()
    # Wenn keine Daten da sind, lege ein kleines Platzhalter-Bild an
    if sum(values) == 0:
        ax.text(0.5, 0.5, "Keine Daten", ha="center", va="center", fontsize=14)
        ax.axis("off")
    else:
        # leere Segmente weglassen, sonst überlappen die Labels
        shown = [(v, l, c) for v, l, c in zip(values, labels, colors or [None] * len(values)) if v]
        kwargs = {}
        if colors is not None:
            kwargs['colors'] = [c for _, _, c in shown]
        ax.pie([v for v, _, _ in shown], labels=[l for _, l, _ in shown], autopct="%1.1f%%", **kwargs)
        ax.axis("equal")
    if subtitle:
        fig.text(0.5, 0.02, subtitle, ha="center", va="bottom", fontsize=16, fontweight='bold')
    fig.savefig(filename, bbox_inches="tight")
    plt.close(fig)


def status_pie_chart(stats: ReconciliationStats, filename: str, subtitle: str = None):
    counts = {
        'MATCH': stats.matches,
        'ABSENT_WHEN_PLANNED_PRESENT': stats.absent_when_planned_present,
        'PRESENT_WHEN_PLANNED_ABSENT': stats.present_when_planned_absent,
        'ACTUAL_ONLY': stats.actual_only,
        'CODE_MISMATCH': stats.code_mismatch,
    }
    create_pie_chart(list(counts.values()), list(counts), filename,
                     colors=[STATUS_COLORS[k] for k in counts], subtitle=subtitle)
