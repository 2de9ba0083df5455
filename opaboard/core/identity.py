# opaboard/core/identity.py
"""Customer display-name resolution.

The upstream often leaves the customer name empty or fills it with the
ticket protocol or an internal id. Operators need something they can act
on, so candidates are tried in priority order and junk values skipped:

  1. embedded customer object (id_cliente.nome / razao_social / ...)
  2. embedded contact object (id_contato.nome)
  3. customer/contact foreign key looked up in the side-loaded lists
  4. flat legacy name fields on the ticket
  5. a phone number (lookup, embedded, flat, chat channel) with at least
     eight digits, formatted
  6. the protocol, when explicitly allowed
  7. a synthetic label built from the ticket id
"""

from typing import Any, Iterable, Iterator, List, Mapping, Optional

from opaboard.core.extractors import (
    CONTACT_REF,
    CUSTOMER_REF,
    embedded_name_candidates,
    embedded_phone_candidates,
    extract_channel_id,
    extract_protocol,
    extract_record_id,
    flat_name_candidates,
    flat_phone_candidates,
    format_phone,
    is_junk_name,
    is_usable_phone,
    looks_like_protocol,
    reference_id,
)
from opaboard.core.lookups import Lookups, Party
from opaboard.core.models import DEFAULT_PLACEHOLDER_NAMES

CUSTOMER_KEY_FIELDS = (CUSTOMER_REF, "cliente_id")
CONTACT_KEY_FIELDS = (CONTACT_REF, "contato_id")

SYNTHETIC_LABEL = "Atendimento {id}"
ANONYMOUS_LABEL = "Atendimento sem identificação"


def lookup_parties(raw: Any, lookups: Lookups) -> List[Party]:
    """
    Parties reachable through the ticket's customer/contact foreign keys.
    """
    if not isinstance(raw, Mapping):
        return []

    found: List[Party] = []
    plan = (
        (CUSTOMER_KEY_FIELDS, (lookups.clients, lookups.contacts)),
        (CONTACT_KEY_FIELDS, (lookups.contacts, lookups.clients)),
    )
    for keys, tables in plan:
        for key in keys:
            fk = reference_id(raw.get(key))
            if not fk:
                continue
            for table in tables:
                party = table.get(fk)
                if party is not None:
                    found.append(party)
                    break
    return found


def name_candidates(raw: Any, parties: Iterable[Party]) -> Iterator[str]:
    yield from embedded_name_candidates(raw)
    for party in parties:
        if party.name:
            yield party.name
    yield from flat_name_candidates(raw)


def phone_candidates(raw: Any, parties: Iterable[Party]) -> Iterator[str]:
    for party in parties:
        if party.phone:
            yield party.phone
    yield from embedded_phone_candidates(raw)
    yield from flat_phone_candidates(raw)
    channel = extract_channel_id(raw)
    if channel:
        yield channel


def synthetic_label(ticket_id: Optional[str]) -> str:
    if ticket_id:
        return SYNTHETIC_LABEL.format(id=ticket_id)
    return ANONYMOUS_LABEL


def resolve_client_name(
    raw: Any,
    lookups: Optional[Lookups] = None,
    *,
    protocol: Optional[str] = None,
    ticket_id: Optional[str] = None,
    placeholders: Iterable[str] = DEFAULT_PLACEHOLDER_NAMES,
    protocol_as_last_resort: bool = False,
) -> str:
    lookups = lookups or Lookups()
    if protocol is None:
        protocol = extract_protocol(raw)
    if ticket_id is None:
        ticket_id = extract_record_id(raw)
    placeholders = tuple(placeholders)

    parties = lookup_parties(raw, lookups)

    for candidate in name_candidates(raw, parties):
        if not is_junk_name(candidate, protocol, placeholders):
            return candidate.strip()

    for candidate in phone_candidates(raw, parties):
        if not is_usable_phone(candidate, placeholders):
            continue
        phone = format_phone(candidate)
        if phone and not looks_like_protocol(phone, protocol):
            return phone

    if protocol_as_last_resort and protocol:
        return protocol
    return synthetic_label(ticket_id)
