from rmatrack.holidays import compute_easter, compute_holidays
from rmatrack.reconciliation import compute_stats, reconcile

__all__ = ["compute_easter", "compute_holidays", "compute_stats", "reconcile"]
