# opaboard/core/reconcile.py

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from opaboard.core.dates import Clock, duration, system_clock
from opaboard.core.extractors import (
    clean_text,
    extract_closed_at,
    extract_created_at,
    extract_protocol,
    extract_record_id,
    extract_started_at,
    first_text,
)
from opaboard.core.identity import resolve_client_name, synthetic_label
from opaboard.core.lookups import NAME_FIELDS, Lookups, resolve_agent, resolve_department
from opaboard.core.models import (
    AttendantStatus,
    CanonicalAttendant,
    CanonicalTicket,
    EngineOptions,
    ReconcileResult,
    TicketStatus,
)
from opaboard.core.status import classify

logger = logging.getLogger(__name__)

DEFAULT_AGENT_NAME = "Agente"
NO_PROTOCOL = "N/A"

AGENT_STATUS_FIELDS = ("status", "situacao", "ativo", "online")
_ONLINE_CODES = {"A", "ATIVO", "ONLINE", "TRUE", "1"}
_OFFLINE_CODES = {"I", "INATIVO", "OFFLINE", "FALSE", "0"}
_BUSY_CODES = {"O", "OCUPADO", "BUSY", "P", "PAUSA"}


def _require_list(name: str, value: Any, optional: bool = False) -> List[Any]:
    if value is None and optional:
        return []
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list of records, got {type(value).__name__}")
    return list(value)


def _mappings(name: str, records: List[Any]) -> List[Mapping]:
    out = []
    for idx, rec in enumerate(records):
        if isinstance(rec, Mapping):
            out.append(rec)
        else:
            logger.warning("Skipping %s[%d]: not an object (%s)", name, idx, type(rec).__name__)
    return out


def attendant_status(raw: Mapping) -> str:
    """
    Map the upstream agent flag (letter code or boolean) to online/offline/busy.
    """
    for key in AGENT_STATUS_FIELDS:
        if key not in raw or raw[key] is None:
            continue
        val = raw[key]
        code = str(val).strip().upper() if not isinstance(val, bool) else str(val).upper()
        if code in _ONLINE_CODES:
            return AttendantStatus.ONLINE
        if code in _OFFLINE_CODES:
            return AttendantStatus.OFFLINE
        if code in _BUSY_CODES:
            return AttendantStatus.BUSY
    return AttendantStatus.ONLINE


def build_attendant(raw: Mapping, index: int) -> CanonicalAttendant:
    name = first_text(raw, NAME_FIELDS) or DEFAULT_AGENT_NAME
    return CanonicalAttendant(
        id=extract_record_id(raw) or f"agent-{index}",
        name=name,
        status=attendant_status(raw),
        active_chats=0,
    )


def build_ticket(
    raw: Mapping,
    index: int,
    lookups: Lookups,
    options: EngineOptions,
    clock: Clock,
) -> CanonicalTicket:
    ticket_id = extract_record_id(raw) or f"ticket-{index}"
    protocol = extract_protocol(raw)

    resolved_dept, department = resolve_department(raw, lookups, options.default_department)
    status = classify(
        raw,
        resolved_dept,
        vocabulary=options.vocabulary,
        placeholder_departments=options.placeholder_departments,
    )

    created = extract_created_at(raw)
    started = extract_started_at(raw)
    closed = extract_closed_at(raw)
    finished = status == TicketStatus.FINISHED

    # Queue time runs until service starts; a finished ticket that was
    # never picked up waited until it was closed.
    wait_end = started or (closed if finished else None)
    wait = duration(
        created,
        wait_end,
        clock=clock,
        tz=options.timezone,
        max_seconds=options.max_duration_seconds,
    )
    served = 0
    if started:
        served = duration(
            started,
            closed if finished else None,
            clock=clock,
            tz=options.timezone,
            max_seconds=options.max_duration_seconds,
        )

    # The name is checked against the protocol as displayed, "N/A" included.
    client_name = resolve_client_name(
        raw,
        lookups,
        protocol=protocol or NO_PROTOCOL,
        ticket_id=ticket_id,
        placeholders=options.placeholder_names,
        protocol_as_last_resort=options.protocol_as_last_resort and bool(protocol),
    )

    return CanonicalTicket(
        id=ticket_id,
        protocol=protocol or NO_PROTOCOL,
        client_name=client_name,
        status=status,
        wait_time_seconds=wait,
        duration_seconds=served,
        attendant_name=resolve_agent(raw, lookups),
        department=department,
        created_at=clean_text(created),
        closed_at=clean_text(closed),
    )


def fallback_ticket(raw: Mapping, index: int, options: EngineOptions) -> CanonicalTicket:
    ticket_id = extract_record_id(raw) or f"ticket-{index}"
    return CanonicalTicket(
        id=ticket_id,
        protocol=extract_protocol(raw) or NO_PROTOCOL,
        client_name=synthetic_label(ticket_id),
        status=TicketStatus.BOT,
        wait_time_seconds=0,
        duration_seconds=0,
        attendant_name=None,
        department=options.default_department,
    )


def count_active_chats(
    tickets: Sequence[CanonicalTicket],
    attendants: List[CanonicalAttendant],
    synthesize_missing: bool = False,
) -> List[CanonicalAttendant]:
    """
    Closing pass: count in-service tickets per attendant, matching by name.

    Tickets often carry only the agent's name, so ids cannot be used.
    With `synthesize_missing`, unknown names get a synthetic "busy" entry.
    """
    by_name: Dict[str, CanonicalAttendant] = {}
    for att in attendants:
        by_name.setdefault(att.name, att)

    for ticket in tickets:
        if ticket.status != TicketStatus.IN_SERVICE or not ticket.attendant_name:
            continue
        att = by_name.get(ticket.attendant_name)
        if att is None:
            if not synthesize_missing:
                continue
            att = CanonicalAttendant(
                id=f"name:{ticket.attendant_name}",
                name=ticket.attendant_name,
                status=AttendantStatus.BUSY,
                active_chats=0,
            )
            attendants.append(att)
            by_name[att.name] = att
        att.active_chats += 1
    return attendants


def reconcile(
    raw_tickets: Sequence[Any],
    raw_agents: Sequence[Any],
    raw_departments: Optional[Sequence[Any]] = None,
    raw_clients: Optional[Sequence[Any]] = None,
    raw_contacts: Optional[Sequence[Any]] = None,
    *,
    options: Optional[EngineOptions] = None,
    clock: Optional[Clock] = None,
) -> ReconcileResult:
    """
    Turn one batch of raw upstream records into canonical tickets/attendants.

    Pure and synchronous: lookups live only for this call. A bad record
    never aborts the batch; only non-list inputs raise TypeError.
    """
    options = options or EngineOptions()
    clock = clock or system_clock

    tickets_in = _mappings("tickets", _require_list("raw_tickets", raw_tickets))
    agents_in = _mappings("agents", _require_list("raw_agents", raw_agents))
    departments_in = _mappings(
        "departments", _require_list("raw_departments", raw_departments, optional=True)
    )
    clients_in = _mappings("clients", _require_list("raw_clients", raw_clients, optional=True))
    contacts_in = _mappings("contacts", _require_list("raw_contacts", raw_contacts, optional=True))

    lookups = Lookups.build(
        agents=agents_in,
        departments=departments_in,
        clients=clients_in,
        contacts=contacts_in,
    )

    attendants = [build_attendant(a, idx) for idx, a in enumerate(agents_in)]

    tickets: List[CanonicalTicket] = []
    for idx, raw in enumerate(tickets_in):
        try:
            tickets.append(build_ticket(raw, idx, lookups, options, clock))
        except Exception as exc:
            logger.warning("Ticket %d could not be normalized, using defaults: %s", idx, exc)
            tickets.append(fallback_ticket(raw, idx, options))

    count_active_chats(tickets, attendants, options.synthesize_missing_attendants)
    return ReconcileResult(tickets=tickets, attendants=attendants)


def reconcile_payload(
    payload: Mapping[str, Any],
    *,
    options: Optional[EngineOptions] = None,
    clock: Optional[Clock] = None,
) -> ReconcileResult:
    """
    Reconcile the proxy's JSON shape: tickets/attendants/departments/clients/contacts.
    """
    if not isinstance(payload, Mapping):
        raise TypeError(f"payload must be an object, got {type(payload).__name__}")
    return reconcile(
        payload.get("tickets") or [],
        payload.get("attendants") or [],
        payload.get("departments") or [],
        payload.get("clients") or [],
        payload.get("contacts") or [],
        options=options,
        clock=clock,
    )


def reconcile_or_empty(*args: Any, **kwargs: Any) -> ReconcileResult:
    """
    reconcile() for callers that must degrade to "no data" instead of failing.
    """
    try:
        return reconcile(*args, **kwargs)
    except TypeError as exc:
        logger.error("Reconcile failed on malformed input: %s", exc)
        return ReconcileResult.empty()
