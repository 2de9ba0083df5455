from __future__ import annotations

from opaboard.core.extractors import (
    extract_channel_id,
    extract_started_at,
    extract_status_code,
    first_date,
    format_phone,
    is_junk_name,
    is_usable_phone,
)
from opaboard.core.models import DEFAULT_PLACEHOLDER_NAMES


def test_format_phone_national_layouts() -> None:
    assert format_phone("5573988887777") == "(73) 98888-7777"
    assert format_phone("73988887777") == "(73) 98888-7777"
    assert format_phone("7333334444") == "(73) 3333-4444"
    assert format_phone("557333334444") == "(73) 3333-4444"


def test_format_phone_passthrough() -> None:
    assert format_phone("12345") == "12345"
    assert format_phone("123456789") == "123456789"
    assert format_phone(" +55 73 98888-7777 ") == "+55 73 98888-7777"
    assert format_phone("") is None
    assert format_phone(None) is None


def test_junk_names() -> None:
    placeholders = DEFAULT_PLACEHOLDER_NAMES
    assert is_junk_name("", None, placeholders)
    assert is_junk_name(None, None, placeholders)
    assert is_junk_name("Cliente", None, placeholders)
    assert is_junk_name("ANÔNIMO", None, placeholders)
    assert is_junk_name("ITL202401010001", None, placeholders)
    assert is_junk_name("12345678901", None, placeholders)
    assert is_junk_name("Maria ABC123", "ABC123", placeholders)
    assert not is_junk_name("Maria Silva", "ITL202401010001", placeholders)
    assert not is_junk_name("Padaria 2000", None, placeholders)


def test_channel_id_strips_transport_suffix() -> None:
    assert extract_channel_id({"canal_cliente": "5573988887777@c.us"}) == "5573988887777"
    assert extract_channel_id({"id_canal_cliente": "5511999998888"}) == "5511999998888"
    assert extract_channel_id({"canal_cliente": "@c.us"}) is None
    assert extract_channel_id({}) is None


def test_status_code_aliases() -> None:
    assert extract_status_code({"situacao": " ea "}) == "EA"
    assert extract_status_code({"estado": "em espera"}) == "EM ESPERA"
    assert extract_status_code({"status": 3}) == "3"
    assert extract_status_code({"status": 3.0}) == "3"
    assert extract_status_code({"status": {"code": "F"}}) is None
    assert extract_status_code({}) is None


def test_first_date_skips_blank_and_zero_values() -> None:
    record = {"a": "", "b": "0000-00-00 00:00:00", "c": "garbage", "d": "2024-01-01 10:00:00"}
    assert first_date(record, ("a", "b", "c", "d")) == "2024-01-01 10:00:00"
    assert first_date(record, ("a", "b", "c")) is None
    assert extract_started_at({"data_inicio": "0000-00-00 00:00:00"}) is None


def test_usable_phone() -> None:
    placeholders = DEFAULT_PLACEHOLDER_NAMES
    assert is_usable_phone("73988887777", placeholders)
    assert is_usable_phone("+1 555 0100", placeholders)
    assert not is_usable_phone("0", placeholders)
    assert not is_usable_phone("   ", placeholders)
    assert not is_usable_phone("Cliente", placeholders)
    assert not is_usable_phone(None, placeholders)
