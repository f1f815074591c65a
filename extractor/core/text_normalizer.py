import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .tree import MISSING

TEXT_KEY = "#text"

DATE_PREFIX_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
LEADING_NUMBER_PATTERN = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')

# cUnid: 00 = M3, 01 = KG, 02 = TON, 03 = UNIDADE, 04 = LITROS, 05 = MMBTU
UNIT_KG = "01"
UNIT_TON = "02"
KG_PER_TON = Decimal("1000")

MODAL_LABELS = {
    "01": "Rodoviário",
    "02": "Aéreo",
    "03": "Aquaviário",
    "04": "Ferroviário",
    "05": "Dutoviário",
    "06": "Multimodal",
}

ZERO = Decimal("0")


def text_of(node: Any) -> str:
    """
    Extrai texto de qualquer nó da árvore.

    O mesmo campo lógico pode chegar como string, número ou dict com o
    texto em '#text' (quando o elemento tem atributos).
    """
    if node is MISSING or node is None:
        return ""
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, bool):
        return ""
    if isinstance(node, int):
        return str(node)
    if isinstance(node, float):
        return format(Decimal(str(node)), "f") if math.isfinite(node) else ""
    if isinstance(node, dict) and TEXT_KEY in node:
        value = node[TEXT_KEY]
        return "" if value is None else str(value).strip()
    return ""


def to_decimal(node: Any) -> Decimal:
    """
    Converte o prefixo numérico do texto em Decimal.
    Ausente, não numérico ou não finito -> 0.
    """
    match = LEADING_NUMBER_PATTERN.match(text_of(node))
    if not match:
        return ZERO

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return ZERO

    if math.isinf(float(value)):
        return ZERO
    return value


def format_date(value: str) -> str: ##     2024-01-15T10:30:00-03:00 -> 2024-01-15
    if not value:
        return ""
    m = DATE_PREFIX_PATTERN.match(value)
    if m:
        return f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
    return value


def strip_access_key(value: str, prefix: str = "CTe") -> str:
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


def modal_label(code: str) -> str:
    return MODAL_LABELS.get(code, code)


def weight_in_kg(unit_code: str, quantity: Decimal) -> Optional[Decimal]:
    """Retorna o peso em kg, ou None quando a unidade não é de massa."""
    if unit_code == UNIT_KG:
        return quantity
    if unit_code == UNIT_TON:
        converted = quantity * KG_PER_TON
        return ZERO if math.isinf(float(converted)) else converted
    return None


def compose_address(*parts: str) -> str:
    return ", ".join(part for part in parts if part)


def join_location(municipality: str, region: str) -> str:
    if not municipality and not region:
        return ""
    return f"{municipality}/{region}"
