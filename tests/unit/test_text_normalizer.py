from decimal import Decimal

import pytest

from extractor.core.text_normalizer import (
    compose_address,
    format_date,
    join_location,
    modal_label,
    strip_access_key,
    text_of,
    to_decimal,
    weight_in_kg,
)
from extractor.core.tree import MISSING

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "node,esperado",
    [
        (MISSING, ""),
        (None, ""),
        ("  SAO PAULO \n", "SAO PAULO"),
        (1234, "1234"),
        (12.5, "12.5"),
        (1e20, "100000000000000000000"),
        (2.5e-7, "0.00000025"),
        (float("inf"), ""),
        ({"#text": " 6353 ", "@attr": "x"}, "6353"),
        ({"#text": None}, ""),
        ({"filho": "x"}, ""),
        (["a", "b"], ""),
        (True, ""),
    ],
)
def test_text_of_leaf_shapes(node, esperado):
    assert text_of(node) == esperado


@pytest.mark.parametrize(
    "node,esperado",
    [
        ("1500.00", Decimal("1500.00")),
        (" 12.5 ", Decimal("12.5")),
        ("1e3", Decimal("1000")),
        ("100abc", Decimal("100")),     # prefixo numérico, como parseFloat
        ("abc", Decimal("0")),
        ("", Decimal("0")),
        (MISSING, Decimal("0")),
        ("NaN", Decimal("0")),
        ("Infinity", Decimal("0")),
        ("1e999999", Decimal("0")),
        ({"#text": "42.10"}, Decimal("42.10")),
    ],
)
def test_to_decimal(node, esperado):
    assert to_decimal(node) == esperado


def test_format_date_truncates_offset_datetime():
    assert format_date("2024-03-10T08:15:00-03:00") == "2024-03-10"


def test_format_date_keeps_unmatched_input():
    assert format_date("not-a-date") == "not-a-date"
    assert format_date("10/03/2024") == "10/03/2024"
    assert format_date("") == ""


def test_strip_access_key_prefix():
    assert strip_access_key("CTe3524") == "3524"
    assert strip_access_key("3524CTe") == "3524CTe"
    assert strip_access_key("") == ""
    assert strip_access_key("NFe3524", prefix="NFe") == "3524"


@pytest.mark.parametrize(
    "code,label",
    [
        ("01", "Rodoviário"),
        ("02", "Aéreo"),
        ("03", "Aquaviário"),
        ("04", "Ferroviário"),
        ("05", "Dutoviário"),
        ("06", "Multimodal"),
        ("99", "99"),
        ("", ""),
    ],
)
def test_modal_label(code, label):
    assert modal_label(code) == label


def test_weight_in_kg_units():
    assert weight_in_kg("01", Decimal("1500")) == Decimal("1500")
    assert weight_in_kg("02", Decimal("1.5")) == Decimal("1500")
    assert weight_in_kg("00", Decimal("3")) is None  # M3
    assert weight_in_kg("03", Decimal("3")) is None  # UNIDADE


def test_weight_in_kg_ton_overflow_is_zero():
    # 1e307 t passa como Decimal finito, mas o valor em kg estoura o float
    assert weight_in_kg("02", Decimal("1e307")) == Decimal("0")
    assert weight_in_kg("01", Decimal("1e307")) == Decimal("1e307")


def test_compose_address_skips_empty_parts():
    assert compose_address("Rua A", "10", "", "São Paulo", "SP") == "Rua A, 10, São Paulo, SP"
    assert compose_address("", "", "", "", "") == ""
    assert compose_address("", "10", "", "", "SP") == "10, SP"


def test_join_location():
    assert join_location("SAO PAULO", "SP") == "SAO PAULO/SP"
    assert join_location("", "") == ""
    assert join_location("", "SP") == "/SP"
