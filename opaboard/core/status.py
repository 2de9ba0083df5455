# opaboard/core/status.py

from typing import Any, Iterable, Optional

from opaboard.core.extractors import extract_status_code
from opaboard.core.lookups import agent_reference_present
from opaboard.core.models import (
    DEFAULT_PLACEHOLDER_DEPARTMENTS,
    DEFAULT_VOCABULARY,
    StatusVocabulary,
    TicketStatus,
)


def _normalize(value: Any) -> str:
    """
    Normalize values for case-insensitive comparisons.
    """
    return str(value).strip().lower()


def is_real_department(
    department_name: Optional[str],
    placeholders: Iterable[str] = DEFAULT_PLACEHOLDER_DEPARTMENTS,
) -> bool:
    """
    True when the ticket sits in an actual human queue, not a catch-all.
    """
    if not department_name or not str(department_name).strip():
        return False
    name = _normalize(department_name)
    return all(name != _normalize(p) for p in placeholders)


def classify(
    raw: Any,
    department_name: Optional[str] = None,
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY,
    placeholder_departments: Iterable[str] = DEFAULT_PLACEHOLDER_DEPARTMENTS,
) -> str:
    """
    Map an upstream ticket to one of the four canonical states.

    Order matters, first match wins:
      1. finished codes
      2. in-service codes
      3. bot/triage codes
      4. queue codes (missing status included): "waiting" only when the
         ticket reached a real department, otherwise still with the bot
      5. unknown code: in service if an agent is referenced, else bot
    """
    code = extract_status_code(raw) or ""

    if code in vocabulary.finished:
        return TicketStatus.FINISHED
    if code in vocabulary.in_service:
        return TicketStatus.IN_SERVICE
    if code in vocabulary.bot:
        return TicketStatus.BOT

    if not code or code in vocabulary.waiting:
        if is_real_department(department_name, placeholder_departments):
            return TicketStatus.WAITING
        return TicketStatus.BOT

    if agent_reference_present(raw):
        return TicketStatus.IN_SERVICE
    return TicketStatus.BOT
