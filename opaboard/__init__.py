"""
opaboard - live queue mirror for an Opa Suite helpdesk

Normalizes the upstream's inconsistent ticket and agent records into a
canonical model (status, elapsed times, display names, departments) that
an operations dashboard can aggregate and display.
"""

__version__ = "1.0.0"

from opaboard.core.models import (
    CanonicalAttendant,
    CanonicalTicket,
    EngineOptions,
    ReconcileResult,
    TicketStatus,
)
from opaboard.core.reconcile import reconcile, reconcile_or_empty, reconcile_payload

__all__ = [
    "CanonicalAttendant",
    "CanonicalTicket",
    "EngineOptions",
    "ReconcileResult",
    "TicketStatus",
    "reconcile",
    "reconcile_or_empty",
    "reconcile_payload",
]
