# opaboard/core/lookups.py

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from opaboard.core.extractors import (
    ID_FIELDS,
    PARTY_NAME_FIELDS,
    PARTY_PHONE_FIELDS,
    first_present,
    first_text,
    reference_id,
)

NAME_FIELDS = ("nome", "name")

DEPARTMENT_REF_FIELDS = (
    "setor",
    "id_setor",
    "id_departamento",
    "departamento",
    "id_motivo_atendimento",
)
AGENT_REF_FIELDS = ("id_atendente", "atendente", "usuario")


@dataclass(frozen=True)
class Party:
    """
    Customer or contact as seen through a side-loaded list.
    """
    name: Optional[str] = None
    phone: Optional[str] = None


def build_name_lookup(
    records: Optional[Iterable[Any]],
    name_fields: Sequence[str] = NAME_FIELDS,
) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for rec in records or []:
        rid = first_text(rec, ID_FIELDS)
        name = first_text(rec, name_fields)
        if rid and name:
            lookup[rid] = name
    return lookup


def build_party_lookup(records: Optional[Iterable[Any]]) -> Dict[str, Party]:
    lookup: Dict[str, Party] = {}
    for rec in records or []:
        rid = first_text(rec, ID_FIELDS)
        if not rid:
            continue
        name = first_text(rec, PARTY_NAME_FIELDS)
        phone = first_text(rec, PARTY_PHONE_FIELDS)
        if name or phone:
            lookup[rid] = Party(name=name, phone=phone)
    return lookup


@dataclass
class Lookups:
    """
    Per-call id -> name/phone tables built from the side-loaded lists.
    """
    agents: Dict[str, str] = field(default_factory=dict)
    departments: Dict[str, str] = field(default_factory=dict)
    clients: Dict[str, Party] = field(default_factory=dict)
    contacts: Dict[str, Party] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        agents: Optional[Iterable[Any]] = None,
        departments: Optional[Iterable[Any]] = None,
        clients: Optional[Iterable[Any]] = None,
        contacts: Optional[Iterable[Any]] = None,
    ) -> "Lookups":
        return cls(
            agents=build_name_lookup(agents),
            departments=build_name_lookup(departments, ("nome", "name", "descricao")),
            clients=build_party_lookup(clients),
            contacts=build_party_lookup(contacts),
        )


def resolve_name(
    ref: Any,
    lookup: Mapping[str, str],
    name_fields: Sequence[str] = NAME_FIELDS,
) -> Optional[str]:
    """
    Display name for an agent/department reference.

    An expanded object carrying a name wins; otherwise the reference
    (or the object's id) is looked up as a foreign key.
    """
    if ref is None:
        return None
    if isinstance(ref, Mapping):
        name = first_text(ref, name_fields)
        if name:
            return name
    key = reference_id(ref)
    if key is None:
        return None
    return lookup.get(key)


def resolve_department(
    raw: Any,
    lookups: Lookups,
    default: str = "Suporte",
) -> Tuple[str, str]:
    """
    Returns (resolved, display).

    `resolved` is empty when nothing matched; the classifier needs to see
    that. `display` falls back to `default`.
    """
    if isinstance(raw, Mapping):
        for key in DEPARTMENT_REF_FIELDS:
            name = resolve_name(raw.get(key), lookups.departments, ("nome", "name", "descricao"))
            if name:
                return name, name
    return "", default


def resolve_agent(raw: Any, lookups: Lookups) -> Optional[str]:
    if not isinstance(raw, Mapping):
        return None
    for key in AGENT_REF_FIELDS:
        name = resolve_name(raw.get(key), lookups.agents)
        if name:
            return name
    return None


def agent_reference_present(raw: Any) -> bool:
    return first_present(raw, AGENT_REF_FIELDS) is not None
