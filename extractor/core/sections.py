from decimal import Decimal
from typing import Any, List

from ..schema.models import (
    CargoInfo,
    Driver,
    Identification,
    MonetaryValues,
    Party,
    TransportInfo,
    Vehicle,
)
from .text_normalizer import compose_address, text_of, to_decimal, weight_in_kg
from .tree import MISSING, as_list, first_of, get_path

# Endereço de cada participante vem em uma tag própria
ADDRESS_KEYS = {
    "emit": "enderEmit",
    "rem": "enderReme",
    "dest": "enderDest",
}

ADDRESS_FIELDS = ("xLgr", "nro", "xBairro", "xMun", "UF")


def extract_party(node: Any, address_key: str) -> Party:
    """
    Extrai um participante (emitente, remetente ou destinatário).

    CNPJ tem prioridade; CPF entra quando o CNPJ não existe.
    Endereço: partes vazias são descartadas antes do join.
    """
    if node is MISSING:
        return Party()

    address = get_path(node, address_key)
    parts = [text_of(get_path(address, field)) for field in ADDRESS_FIELDS]

    return Party(
        cnpj=text_of(get_path(node, "CNPJ")) or text_of(get_path(node, "CPF")),
        nome=text_of(get_path(node, "xNome")),
        ie=text_of(get_path(node, "IE")),
        endereco=compose_address(*parts),
    )


def extract_identification(ide: Any) -> Identification:
    return Identification(
        numero_cte=text_of(get_path(ide, "nCT")),
        serie=text_of(get_path(ide, "serie")),
        data_emissao=text_of(get_path(ide, "dhEmi")),
        cfop=text_of(get_path(ide, "CFOP")),
        natureza_operacao=text_of(get_path(ide, "natOp")),
        municipio_inicio=text_of(get_path(ide, "xMunIni")),
        uf_inicio=text_of(get_path(ide, "UFIni")),
        municipio_fim=text_of(get_path(ide, "xMunFim")),
        uf_fim=text_of(get_path(ide, "UFFim")),
        modal=text_of(get_path(ide, "modal")),
    )


def resolve_weight(quantities: Any) -> Decimal:
    """
    Percorre os infQ na ordem do documento.
    Cada entrada em KG ou TON sobrescreve o peso anterior: a última vence.
    """
    peso = Decimal("0")
    for entry in as_list(quantities):
        unit_code = text_of(get_path(entry, "cUnid"))
        converted = weight_in_kg(unit_code, to_decimal(get_path(entry, "qCarga")))
        if converted is not None:
            peso = converted
    return peso


def extract_cargo(root: Any) -> CargoInfo:
    carga = get_path(root, "infCTeNorm", "infCarga")

    return CargoInfo(
        peso=resolve_weight(get_path(carga, "infQ")),
        produto_descricao=text_of(get_path(carga, "proPred")),
        valor_carga=to_decimal(get_path(carga, "vCarga")),
    )


def extract_transport(root: Any) -> TransportInfo: ##     Composição com vários veículos/motoristas: só o primeiro conta
    rodo = get_path(root, "infCTeNorm", "infModal", "rodo")

    veiculo = first_of(get_path(rodo, "veic"))
    motorista = first_of(get_path(rodo, "moto"))

    return TransportInfo(
        motorista=Driver(
            nome=text_of(get_path(motorista, "xNome")),
            cpf=text_of(get_path(motorista, "CPF")),
        ),
        veiculo=Vehicle(placa=text_of(get_path(veiculo, "placa"))),
    )


def extract_values(vprest: Any) -> MonetaryValues:
    return MonetaryValues(
        valor_total=to_decimal(get_path(vprest, "vTPrest")),
        valor_recebido=to_decimal(get_path(vprest, "vRec")),
    )


def extract_invoice_keys(root: Any) -> List[str]:
    keys = []
    for nfe in as_list(get_path(root, "infCTeNorm", "infDoc", "infNFe")):
        chave = text_of(get_path(nfe, "chave"))
        if chave:
            keys.append(chave)
    return keys
