from __future__ import annotations

import pytest

from opaboard.core.models import ALL_STATUSES, DEFAULT_VOCABULARY, TicketStatus
from opaboard.core.status import classify, is_real_department


@pytest.mark.parametrize("code", ["F", "finalizado", "CONCLUIDO", "3", "4", 3])
def test_finished_codes(code) -> None:
    assert classify({"status": code}) == TicketStatus.FINISHED


@pytest.mark.parametrize("department", [None, "", "Geral", "Financeiro"])
def test_in_service_regardless_of_department(department) -> None:
    assert classify({"status": "EA"}, department) == TicketStatus.IN_SERVICE
    assert classify({"situacao": "em atendimento"}, department) == TicketStatus.IN_SERVICE


def test_triage_code_is_bot() -> None:
    assert classify({"status": "PS"}, "Financeiro") == TicketStatus.BOT


def test_queue_codes_need_a_real_department() -> None:
    assert classify({"status": "AG"}, "Financeiro") == TicketStatus.WAITING
    assert classify({"status": "EM ESPERA"}, "Financeiro") == TicketStatus.WAITING
    assert classify({"status": "AG"}, None) == TicketStatus.BOT
    assert classify({"status": "AG"}, "Geral") == TicketStatus.BOT
    assert classify({"status": "AG"}, "sem setor") == TicketStatus.BOT
    assert classify({"status": "AG"}, "   ") == TicketStatus.BOT


def test_missing_status_is_treated_as_queue_code() -> None:
    assert classify({}, "Financeiro") == TicketStatus.WAITING
    assert classify({"id_atendente": "u1"}, None) == TicketStatus.BOT


def test_unknown_code_falls_back_on_agent_presence() -> None:
    assert classify({"status": "XYZ", "id_atendente": "u1"}) == TicketStatus.IN_SERVICE
    assert classify({"status": "XYZ", "id_atendente": {"nome": "Ana"}}) == TicketStatus.IN_SERVICE
    assert classify({"status": "XYZ"}) == TicketStatus.BOT
    assert classify({"status": "XYZ", "id_atendente": None}) == TicketStatus.BOT


def test_letter_a_is_opt_in() -> None:
    assert classify({"status": "A"}) == TicketStatus.BOT
    vocab = DEFAULT_VOCABULARY.extended({"in_service": ["a"]})
    assert classify({"status": "A"}, vocabulary=vocab) == TicketStatus.IN_SERVICE


def test_support_department_placeholder_is_configurable() -> None:
    assert classify({"status": "AG"}, "Suporte") == TicketStatus.WAITING
    placeholders = ("Geral", "Sem Setor", "Suporte")
    assert classify({"status": "AG"}, "Suporte", placeholder_departments=placeholders) == TicketStatus.BOT
    assert not is_real_department("SUPORTE", placeholders)


def test_classify_is_total() -> None:
    codes = ["F", "EA", "PS", "AG", "", None, "?", "1", "2", 4, "BOT", "T"]
    departments = [None, "", "Geral", "Financeiro"]
    agents = [None, "u1"]
    for code in codes:
        for dept in departments:
            for agent in agents:
                raw = {"status": code, "id_atendente": agent}
                assert classify(raw, dept) in ALL_STATUSES
