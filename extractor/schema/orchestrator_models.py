from typing import List, Optional, Dict, Literal, Any
from datetime import datetime
from pydantic import BaseModel, Field
from .models import CteRecord, ExtractionFailure

class OrchestratorEvent(BaseModel):
    """
    Representa um evento imutável ocorrido durante o pipeline.
    Usado para Event Sourcing e Observabilidade.
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    stage: Literal["READ", "PARSE", "EXTRACT", "VALIDATE"]
    status: Literal["SUCCESS", "FAILURE"]
    # Details deve ser flat e serializável
    details: Dict[str, Any] = Field(default_factory=dict)
    error_policy: Literal["ABORT", "CONTINUE"] = "ABORT"

class ValidationIssue(BaseModel):
    code: str
    severity: Literal["critical", "warning"]
    field: str
    message: str

class PipelineResult(BaseModel):
    """
    Container final do processamento.
    NÃO é o evento em si, mas contem o histórico (Audit Trail) e o Payload.
    """
    trace_id: str
    execution_id: str
    tenant_id: str

    start_time: datetime
    end_time: Optional[datetime] = None

    status: Literal["success", "partial", "error"]
    trust_score: float = Field(default=0.0, ge=0.0, le=1.0)

    # Audit Trail: Lista ordenada de eventos
    events: List[OrchestratorEvent] = Field(default_factory=list)
    validation_issues: List[ValidationIssue] = Field(default_factory=list)

    # Payload: só existe se a extração terminou; falha estrutural vai em `error`
    payload: Optional[CteRecord] = None
    error: Optional[ExtractionFailure] = None

    # Metadados brutos (ex: hashes de arquivos, tamanho)
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)
