# opaboard/core/extractors.py

import re
import unicodedata
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence

from opaboard.core.dates import to_timestamp


PROTOCOL_RE = re.compile(r"^[A-Za-z]{2,4}\d{6,}")
LONG_NUMERIC_RE = re.compile(r"^\d{10,}$")
DIGITS_RE = re.compile(r"^\d+$")
NON_DIGIT_RE = re.compile(r"\D")
MIN_PHONE_DIGITS = 8

STATUS_FIELDS = ("status", "situacao", "estado")
ID_FIELDS = ("_id", "id")
PROTOCOL_FIELDS = ("protocolo", "protocol")

CREATED_FIELDS = ("data_criacao", "data_abertura", "createdAt", "dt_criacao", "date")
STARTED_FIELDS = ("data_inicio", "data_atendimento", "dt_inicio", "data_hora_inicio")
CLOSED_FIELDS = ("data_fechamento", "data_fim", "dt_fechamento", "updatedAt")

PARTY_NAME_FIELDS = ("nome", "razao_social", "nome_fantasia", "name")
PARTY_PHONE_FIELDS = ("fone", "celular", "telefone", "whatsapp", "phone")

CUSTOMER_REF = "id_cliente"
CONTACT_REF = "id_contato"
CUSTOMER_NAME_FIELDS = ("nome", "razao_social", "nome_fantasia")
CONTACT_NAME_FIELDS = ("nome",)
FLAT_NAME_FIELDS = ("cliente_nome", "contato_nome", "nome")
FLAT_PHONE_FIELDS = ("contato_fone", "fone", "telefone", "celular")
CHANNEL_FIELDS = ("canal_cliente", "id_canal_cliente")


def clean_text(value: Any) -> Optional[str]:
    """
    Stringify a scalar and strip it; None for missing, blank or non-scalar values.
    """
    if value is None or isinstance(value, (dict, list, tuple, set, bool)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    s = str(value).strip()
    return s or None


def first_present(record: Any, keys: Sequence[str]) -> Any:
    """
    Raw value of the first key holding something truthy (objects included).
    """
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        val = record.get(key)
        if val is None or val == "" or val == {}:
            continue
        return val
    return None


def first_date(record: Any, keys: Sequence[str]) -> Any:
    """
    Raw value of the first key holding a parseable, non-zero timestamp.

    Blank strings and the "0000-00-00 00:00:00" sentinel are skipped so a
    later alias still gets its turn.
    """
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        val = record.get(key)
        if to_timestamp(val) != 0:
            return val
    return None


def first_text(record: Any, keys: Sequence[str]) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        val = clean_text(record.get(key))
        if val:
            return val
    return None


def iter_texts(record: Any, keys: Sequence[str]) -> Iterator[str]:
    if not isinstance(record, Mapping):
        return
    for key in keys:
        val = clean_text(record.get(key))
        if val:
            yield val


def embedded(record: Any, key: str) -> Optional[Mapping]:
    """
    The populated object behind a reference field, if the upstream expanded it.
    """
    if not isinstance(record, Mapping):
        return None
    val = record.get(key)
    return val if isinstance(val, Mapping) else None


def reference_id(ref: Any) -> Optional[str]:
    """
    Foreign key carried by a reference: the scalar itself or an object's id.
    """
    if isinstance(ref, Mapping):
        return first_text(ref, ID_FIELDS)
    return clean_text(ref)


def extract_record_id(raw: Any) -> Optional[str]:
    return first_text(raw, ID_FIELDS)


def extract_protocol(raw: Any) -> Optional[str]:
    return first_text(raw, PROTOCOL_FIELDS)


def extract_status_code(raw: Any) -> Optional[str]:
    val = first_text(raw, STATUS_FIELDS)
    if val is None:
        return None
    return val.upper()


def extract_created_at(raw: Any) -> Any:
    return first_date(raw, CREATED_FIELDS)


def extract_started_at(raw: Any) -> Any:
    return first_date(raw, STARTED_FIELDS)


def extract_closed_at(raw: Any) -> Any:
    return first_date(raw, CLOSED_FIELDS)


def embedded_name_candidates(raw: Any) -> List[str]:
    out = list(iter_texts(embedded(raw, CUSTOMER_REF), CUSTOMER_NAME_FIELDS))
    out.extend(iter_texts(embedded(raw, CONTACT_REF), CONTACT_NAME_FIELDS))
    return out


def flat_name_candidates(raw: Any) -> List[str]:
    return list(iter_texts(raw, FLAT_NAME_FIELDS))


def embedded_phone_candidates(raw: Any) -> List[str]:
    out = list(iter_texts(embedded(raw, CONTACT_REF), PARTY_PHONE_FIELDS))
    out.extend(iter_texts(embedded(raw, CUSTOMER_REF), PARTY_PHONE_FIELDS))
    return out


def flat_phone_candidates(raw: Any) -> List[str]:
    return list(iter_texts(raw, FLAT_PHONE_FIELDS))


def extract_channel_id(raw: Any) -> Optional[str]:
    """
    Chat-channel identifier without its transport suffix ("...@c.us").
    """
    for val in iter_texts(raw, CHANNEL_FIELDS):
        head = val.split("@", 1)[0].strip()
        if head:
            return head
    return None


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def looks_like_protocol(value: str, protocol: Optional[str] = None) -> bool:
    if protocol:
        p = protocol.strip()
        if p and (value == p or p in value):
            return True
    return PROTOCOL_RE.match(value) is not None


def is_junk_name(
    value: Optional[str],
    protocol: Optional[str] = None,
    placeholders: Iterable[str] = (),
) -> bool:
    """
    True when a display-name candidate is not a usable customer name.
    """
    if value is None:
        return True
    s = value.strip()
    if not s:
        return True

    folded = _fold(s)
    if any(folded == _fold(p) for p in placeholders if p):
        return True

    if looks_like_protocol(s, protocol):
        return True
    if LONG_NUMERIC_RE.match(s):
        return True
    return False



def is_usable_phone(value: Optional[str], placeholders: Iterable[str] = ()) -> bool:
    if value is None:
        return False
    s = value.strip()
    if not s:
        return False
    folded = _fold(s)
    if any(folded == _fold(p) for p in placeholders if p):
        return False
    return len(NON_DIGIT_RE.sub("", s)) >= MIN_PHONE_DIGITS

def format_phone(value: Optional[str]) -> Optional[str]:
    """
    Render a bare Brazilian number as (DD) NNNNN-NNNN / (DD) NNNN-NNNN.

    Non-numeric or short values, and lengths that fit neither layout,
    are returned as given (stripped).
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if not DIGITS_RE.match(s) or len(s) < 8:
        return s

    digits = s
    if digits.startswith("55") and len(digits) - 2 in (10, 11):
        digits = digits[2:]

    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return s
