from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal internamente, número no JSON (contrato com o front-end)
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Party(CamelModel): ##     Emitente, remetente e destinatário usam o mesmo formato
    cnpj: str = ""
    nome: str = ""
    ie: str = ""
    endereco: str = ""


class Driver(CamelModel):
    nome: str = ""
    cpf: str = ""


class Vehicle(CamelModel):
    placa: str = ""


class Identification(CamelModel): ##     Campos brutos do bloco ide, antes da normalização
    numero_cte: str = ""
    serie: str = ""
    data_emissao: str = ""
    cfop: str = ""
    natureza_operacao: str = ""
    municipio_inicio: str = ""
    uf_inicio: str = ""
    municipio_fim: str = ""
    uf_fim: str = ""
    modal: str = ""


class CargoInfo(CamelModel):
    peso: Amount = Decimal("0")
    produto_descricao: str = ""
    valor_carga: Amount = Decimal("0")


class TransportInfo(CamelModel):
    motorista: Driver = Field(default_factory=Driver)
    veiculo: Vehicle = Field(default_factory=Vehicle)


class MonetaryValues(CamelModel):
    valor_total: Amount = Decimal("0")
    valor_recebido: Amount = Decimal("0")


class CteRecord(CamelModel):
    """
    Registro plano do CT-e, pronto para inserção.
    Strings ausentes viram "", valores ausentes viram 0.
    """
    chave_acesso: str = ""
    numero_cte: str = ""
    serie: str = ""
    data_emissao: str = ""
    cfop: str = ""
    natureza_operacao: str = ""
    origem: str = ""
    destino: str = ""
    modal: str = ""

    valor_total: Amount = Decimal("0")
    valor_recebido: Amount = Decimal("0")
    valor_carga: Amount = Decimal("0")
    peso: Amount = Decimal("0")
    produto_descricao: str = ""

    emitente: Party = Field(default_factory=Party)
    remetente: Party = Field(default_factory=Party)
    destinatario: Party = Field(default_factory=Party)

    motorista: Driver = Field(default_factory=Driver)
    veiculo: Vehicle = Field(default_factory=Vehicle)

    notas_fiscais: List[str] = Field(default_factory=list)


class ExtractionFailure(BaseModel):
    kind: str
    stage: str
    message: str


class ExtractionOutcome(BaseModel):
    """
    Resultado etiquetado da extração: ou registro completo, ou falha.
    Nunca os dois.
    """
    status: Literal["success", "error"]
    stage: str = "start"  ##     estágio alcançado; "done" quando o registro sai completo
    record: Optional[CteRecord] = None
    error: Optional[ExtractionFailure] = None
