from __future__ import annotations

import pytest

from opaboard.core.dates import FixedClock
from opaboard.core.models import EngineOptions


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock("2024-01-01 10:05:00")


@pytest.fixture
def options() -> EngineOptions:
    return EngineOptions()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in (
        "OPABOARD_CONFIG",
        "OPABOARD_HOME",
        "OPABOARD_LOG_DIR",
        "OPABOARD_API_TOKEN",
        "XDG_CONFIG_HOME",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def raw_payload() -> dict:
    return {
        "tickets": [
            {
                "_id": "t1",
                "protocolo": "ITL202401010001",
                "status": "AG",
                "setor": {"_id": "d1", "nome": "Financeiro"},
                "date": "2024-01-01 10:00:00",
                "id_cliente": {"_id": "c1", "nome": "Maria Souza"},
            },
            {
                "_id": "t2",
                "protocolo": "ITL202401010002",
                "status": "EA",
                "setor": "d2",
                "data_criacao": "2024-01-01 09:50:00",
                "data_inicio": "2024-01-01 10:00:00",
                "id_atendente": "u1",
                "id_cliente": {"_id": "c9", "nome": "ITL202401010002"},
                "canal_cliente": "5573988887777@c.us",
            },
            {
                "_id": "t3",
                "protocolo": "ITL202401010003",
                "status": "F",
                "data_criacao": "2024-01-01 09:00:00",
                "data_inicio": "2024-01-01 09:10:00",
                "data_fechamento": "2024-01-01 09:40:00",
                "id_atendente": {"_id": "u2", "nome": "Bruno"},
                "id_cliente": "c2",
            },
            {
                "_id": "t4",
                "protocolo": "ITL202401010004",
                "status": "PS",
                "data_criacao": "2024-01-01 10:04:00",
            },
            {
                "_id": "t5",
                "protocolo": "ITL202401010005",
                "situacao": "2",
                "data_criacao": "2024-01-01 09:00:00",
                "data_inicio": "2024-01-01 09:30:00",
                "id_atendente": {"nome": "Ana"},
                "cliente_nome": "Cliente",
                "contato_nome": "José Lima",
            },
        ],
        "attendants": [
            {"_id": "u1", "nome": "Ana", "status": "A"},
            {"_id": "u2", "nome": "Bruno", "status": "A"},
        ],
        "departments": [
            {"_id": "d1", "nome": "Financeiro"},
            {"_id": "d2", "nome": "Comercial"},
        ],
        "clients": [
            {"_id": "c2", "nome": "Padaria Central", "fone": "11912345678"},
        ],
        "contacts": [],
    }
