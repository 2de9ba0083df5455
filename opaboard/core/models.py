# opaboard/core/models.py

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class TicketStatus:
    WAITING = "waiting"
    IN_SERVICE = "in_service"
    BOT = "bot"
    FINISHED = "finished"


ALL_STATUSES: Tuple[str, ...] = (
    TicketStatus.WAITING,
    TicketStatus.IN_SERVICE,
    TicketStatus.BOT,
    TicketStatus.FINISHED,
)


class AttendantStatus:
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"


@dataclass
class CanonicalTicket:
    """
    Normalized view of one upstream ticket, rebuilt on every refresh cycle.
    """
    id: str
    protocol: str
    client_name: str
    status: str
    wait_time_seconds: int = 0
    duration_seconds: Optional[int] = None
    attendant_name: Optional[str] = None
    department: str = ""
    created_at: Optional[str] = None  # raw upstream text, passed through
    closed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "protocol": self.protocol,
            "clientName": self.client_name,
            "status": self.status,
            "waitTimeSeconds": self.wait_time_seconds,
            "durationSeconds": self.duration_seconds,
            "attendantName": self.attendant_name,
            "department": self.department,
            "createdAt": self.created_at,
            "closedAt": self.closed_at,
        }


@dataclass
class CanonicalAttendant:
    id: str
    name: str
    status: str = AttendantStatus.ONLINE
    active_chats: int = 0  # computed by the closing pass, never read from upstream

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "activeChats": self.active_chats,
        }


@dataclass
class ReconcileResult:
    tickets: List[CanonicalTicket] = field(default_factory=list)
    attendants: List[CanonicalAttendant] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ReconcileResult":
        return cls(tickets=[], attendants=[])

    def count_by_status(self) -> Dict[str, int]:
        counts = {status: 0 for status in ALL_STATUSES}
        for ticket in self.tickets:
            counts[ticket.status] = counts.get(ticket.status, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tickets": [t.to_dict() for t in self.tickets],
            "attendants": [a.to_dict() for a in self.attendants],
        }


@dataclass(frozen=True)
class StatusVocabulary:
    """
    Upstream status codes grouped by the canonical state they hint at.

    Codes are compared after upper-casing and trimming. The waiting set
    includes the empty string so that a missing status is disambiguated
    by department like an explicit queue code.
    """
    finished: FrozenSet[str] = frozenset({"F", "FINALIZADO", "CONCLUIDO", "3", "4"})
    in_service: FrozenSet[str] = frozenset({"EA", "EM ATENDIMENTO", "2"})
    bot: FrozenSet[str] = frozenset({"PS"})
    waiting: FrozenSet[str] = frozenset(
        {"AG", "AGUARDANDO", "BOT", "E", "EE", "EM ESPERA", "1", "T", ""}
    )

    def extended(self, extra: Optional[Dict[str, List[str]]] = None) -> "StatusVocabulary":
        """
        Return a copy with additional codes merged into the named groups.
        """
        if not extra:
            return self
        merged = {}
        for group in ("finished", "in_service", "bot", "waiting"):
            codes = set(getattr(self, group))
            for code in extra.get(group) or []:
                codes.add(str(code).strip().upper())
            merged[group] = frozenset(codes)
        return StatusVocabulary(**merged)


DEFAULT_VOCABULARY = StatusVocabulary()

DEFAULT_PLACEHOLDER_DEPARTMENTS: Tuple[str, ...] = ("Geral", "Sem Setor")
DEFAULT_PLACEHOLDER_NAMES: Tuple[str, ...] = ("cliente", "anonimo", "anônimo")


@dataclass(frozen=True)
class EngineOptions:
    """
    Every tunable rule of the reconciliation engine.

    Upstream vocabularies drifted across API versions, so the parts that
    disagreed between versions are settings rather than constants.
    """
    default_department: str = "Suporte"
    placeholder_departments: Tuple[str, ...] = DEFAULT_PLACEHOLDER_DEPARTMENTS
    placeholder_names: Tuple[str, ...] = DEFAULT_PLACEHOLDER_NAMES
    max_duration_seconds: Optional[int] = None  # e.g. 360000 (100h); None = no ceiling
    synthesize_missing_attendants: bool = False
    protocol_as_last_resort: bool = False
    timezone: str = "UTC"  # zone used for naive upstream timestamps
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY
