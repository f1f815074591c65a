from typing import Any, Dict, Optional, Union

import xmltodict
from pydantic import ValidationError
from xml.parsers.expat import ExpatError

from cte_config import settings
from ..schema.models import CteRecord, ExtractionFailure, ExtractionOutcome
from .errors import CteStructureError, ErrorKind, ExtractionStage
from .root import find_business_root
from .sections import (
    ADDRESS_KEYS,
    extract_cargo,
    extract_identification,
    extract_invoice_keys,
    extract_party,
    extract_transport,
    extract_values,
)
from .text_normalizer import format_date, join_location, modal_label, strip_access_key, text_of
from .tree import MISSING, get_path, tree_depth

# Namespace do portal fiscal e da assinatura viram chaves sem prefixo
COLLAPSED_NAMESPACES = {
    "http://www.portalfiscal.inf.br/cte": None,
    "http://www.w3.org/2000/09/xmldsig#": None,
}


def parse_document(xml_text: Union[str, bytes], max_depth: Optional[int] = None) -> Dict[str, Any]:
    """
    Converte o texto XML na árvore de dicts/listas do xmltodict.

    Qualquer falha do parser, conteúdo vazio ou árvore profunda demais
    vira MALFORMED_DOCUMENT.
    """
    if not xml_text or not xml_text.strip():
        raise CteStructureError(ErrorKind.MALFORMED_DOCUMENT, ExtractionStage.START)

    try:
        tree = xmltodict.parse(
            xml_text,
            process_namespaces=True,
            namespaces=COLLAPSED_NAMESPACES,
            disable_entities=True,
        )
    except (ExpatError, ValueError) as e:
        raise CteStructureError(ErrorKind.MALFORMED_DOCUMENT, ExtractionStage.START) from e

    limit = max_depth if max_depth is not None else settings.MAX_TREE_DEPTH
    if tree_depth(tree, limit) > limit:
        raise CteStructureError(
            ErrorKind.MALFORMED_DOCUMENT,
            ExtractionStage.START,
            f"XML inválido ou malformado: profundidade acima de {limit} níveis",
        )

    return tree


def _required_block(
    root: Dict[str, Any], key: str, kind: ErrorKind, stage: ExtractionStage
) -> Dict[str, Any]:
    block = get_path(root, key)
    if block is MISSING or not isinstance(block, dict):
        raise CteStructureError(kind, stage)
    return block


def extract_from_tree(tree: Any) -> CteRecord:
    """
    Monta o registro do CT-e a partir da árvore.

    Estágios:
    1. start -> root-resolved: localiza infCte
    2. root-resolved -> sections-extracted: ide e vPrest obrigatórios, demais seções com default
    3. sections-extracted -> normalized: datas, modal, chave, origem/destino
    4. normalized -> done: registro final

    Qualquer estágio pode falhar com CteStructureError. Não faz I/O nem altera a árvore.
    """
    stage = ExtractionStage.START
    if not isinstance(tree, dict):
        raise CteStructureError(ErrorKind.MALFORMED_DOCUMENT, stage)

    root = find_business_root(tree)
    if root is None:
        raise CteStructureError(ErrorKind.ROOT_NOT_FOUND, stage)

    stage = ExtractionStage.ROOT_RESOLVED
    ide = _required_block(root, "ide", ErrorKind.IDENTIFICATION_MISSING, stage)
    vprest = _required_block(root, "vPrest", ErrorKind.VALUES_MISSING, stage)

    identification = extract_identification(ide)
    values = extract_values(vprest)
    cargo = extract_cargo(root)
    transport = extract_transport(root)
    parties = {
        tag: extract_party(get_path(root, tag), address_key)
        for tag, address_key in ADDRESS_KEYS.items()
    }
    notas_fiscais = extract_invoice_keys(root)

    stage = ExtractionStage.SECTIONS_EXTRACTED
    chave_acesso = strip_access_key(text_of(get_path(root, "@Id")), settings.ACCESS_KEY_PREFIX)
    data_emissao = format_date(identification.data_emissao)
    origem = join_location(identification.municipio_inicio, identification.uf_inicio)
    destino = join_location(identification.municipio_fim, identification.uf_fim)
    modal = modal_label(identification.modal)

    stage = ExtractionStage.NORMALIZED
    try:
        return CteRecord(
            chave_acesso=chave_acesso,
            numero_cte=identification.numero_cte,
            serie=identification.serie,
            data_emissao=data_emissao,
            cfop=identification.cfop,
            natureza_operacao=identification.natureza_operacao,
            origem=origem,
            destino=destino,
            modal=modal,
            valor_total=values.valor_total,
            valor_recebido=values.valor_recebido,
            valor_carga=cargo.valor_carga,
            peso=cargo.peso,
            produto_descricao=cargo.produto_descricao,
            emitente=parties["emit"],
            remetente=parties["rem"],
            destinatario=parties["dest"],
            motorista=transport.motorista,
            veiculo=transport.veiculo,
            notas_fiscais=notas_fiscais,
        )
    except ValidationError as e:
        raise CteStructureError(ErrorKind.MALFORMED_DOCUMENT, stage) from e


def extract_from_xml(xml_text: Union[str, bytes]) -> CteRecord:
    return extract_from_tree(parse_document(xml_text))


def failure_from_error(error: CteStructureError) -> ExtractionFailure:
    return ExtractionFailure(
        kind=error.kind.value,
        stage=error.stage.value,
        message=error.message,
    )


def safe_extract_tree(tree: Any) -> ExtractionOutcome:
    try:
        record = extract_from_tree(tree)
    except CteStructureError as e:
        return ExtractionOutcome(status="error", stage=e.stage.value, error=failure_from_error(e))
    return ExtractionOutcome(status="success", stage=ExtractionStage.DONE.value, record=record)


def safe_extract(xml_text: Union[str, bytes]) -> ExtractionOutcome:
    """Versão que devolve falha etiquetada em vez de lançar exceção."""
    try:
        tree = parse_document(xml_text)
    except CteStructureError as e:
        return ExtractionOutcome(status="error", stage=e.stage.value, error=failure_from_error(e))
    return safe_extract_tree(tree)
