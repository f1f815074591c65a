"""
Pydantic schemas for API contracts.
Separates the extracted CT-e record from transport-layer metadata.
"""
from typing import Optional, Literal, Dict, List
from datetime import datetime
from pydantic import BaseModel, Field

from extractor.schema.models import CteRecord
from extractor.schema.orchestrator_models import ValidationIssue


class ParseXmlRequest(BaseModel):
    """
    Raw-body variant of the parse request.
    """
    xml: str = Field(default="", description="CT-e XML content")


class ParseResponse(BaseModel):
    """
    Successful extraction. `data` keeps the camelCase keys of the record.
    """
    success: Literal[True] = True
    data: CteRecord
    status: Literal["success", "partial", "error"]
    trust_score: float = Field(ge=0.0, le=1.0)
    validation_issues: List[ValidationIssue] = Field(default_factory=list)
    execution_id: str
    trace_id: str


class ErrorResponse(BaseModel):
    """
    Structural failure returned to the caller (non-2xx).
    """
    success: Literal[False] = False
    error: str
    kind: Optional[str] = None
    stage: Optional[str] = None


class BatchItemResult(BaseModel):
    filename: str
    success: bool
    numero_cte: Optional[str] = None
    chave_acesso: Optional[str] = None
    status: Optional[Literal["success", "partial", "error"]] = None
    error: Optional[str] = None
    data: Optional[CteRecord] = None


class BatchResponse(BaseModel):
    """
    Bulk import summary: one entry per uploaded file, in upload order.
    """
    execution_id: str
    trace_id: str
    total: int
    success_count: int
    error_count: int
    results: List[BatchItemResult] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """
    Health check response.
    """
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    timestamp: datetime = Field(default_factory=datetime.now)
    checks: Dict[str, bool] = Field(default_factory=dict)
