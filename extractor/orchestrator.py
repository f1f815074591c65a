import hashlib
import logging
import time
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Union

from .core.errors import CteStructureError, ErrorKind, ExtractionStage
from .core.parser import extract_from_tree, failure_from_error, parse_document
from .core.root import resolve_root_variant
from .core.validators import cpf_validator, cte_key_validator, tax_id_validator
from .schema.models import CteRecord
from .schema.orchestrator_models import OrchestratorEvent, PipelineResult, ValidationIssue

logger = logging.getLogger(__name__)

CRITICAL_PENALTY = 0.5
WARNING_PENALTY = 0.1


class Orchestrator:
    """
    Coordenador do pipeline de CT-e.
    Responsável por unir Reader -> Parser -> Extractor -> Validator com observabilidade e rastreabilidade.
    NÃO decide persistência nem duplicidade. Apenas gera eventos confiáveis.
    """

    def _calculate_hash(self, data: Union[str, bytes]) -> str:
        """Gera SHA-256 determinístico do conteúdo."""
        if isinstance(data, str):
            content = data.encode('utf-8')
        else:
            content = data
        return hashlib.sha256(content).hexdigest()

    def _read(self, input_data: Union[str, bytes, Path]) -> bytes:
        if isinstance(input_data, Path):
            return input_data.read_bytes()
        if isinstance(input_data, str):
            return input_data.encode('utf-8')
        return input_data

    def validate_record(self, record: CteRecord) -> List[ValidationIssue]:
        """
        Validação fiscal leve do registro extraído.
        Emitente é crítico; demais participantes, chave e valores geram warnings.
        """
        issues: List[ValidationIssue] = []

        emitente_doc = record.emitente.cnpj
        if not emitente_doc:
            issues.append(ValidationIssue(
                code="MISSING_ISSUER_CNPJ",
                severity="critical",
                field="emitente.cnpj",
                message="Emitente sem CNPJ/CPF",
            ))
        else:
            validacao = tax_id_validator(emitente_doc)
            if not validacao["valido"]:
                issues.append(ValidationIssue(
                    code="INVALID_ISSUER_CNPJ",
                    severity="critical",
                    field="emitente.cnpj",
                    message=validacao["erro"],
                ))

        for label, field_name, party in (
            ("SENDER", "remetente", record.remetente),
            ("RECIPIENT", "destinatario", record.destinatario),
        ):
            if not party.nome and not party.cnpj:
                issues.append(ValidationIssue(
                    code=f"MISSING_{label}",
                    severity="warning",
                    field=field_name,
                    message=f"{field_name.capitalize()} ausente no documento",
                ))
            elif party.cnpj:
                validacao = tax_id_validator(party.cnpj)
                if not validacao["valido"]:
                    issues.append(ValidationIssue(
                        code=f"INVALID_{label}_DOCUMENT",
                        severity="warning",
                        field=f"{field_name}.cnpj",
                        message=validacao["erro"],
                    ))

        if not record.chave_acesso:
            issues.append(ValidationIssue(
                code="MISSING_ACCESS_KEY",
                severity="warning",
                field="chave_acesso",
                message="Chave de acesso ausente",
            ))
        else:
            validacao = cte_key_validator(record.chave_acesso)
            if not validacao["valido"]:
                issues.append(ValidationIssue(
                    code="INVALID_ACCESS_KEY",
                    severity="warning",
                    field="chave_acesso",
                    message=validacao["erro"],
                ))

        if record.valor_total == Decimal("0"):
            issues.append(ValidationIssue(
                code="ZERO_TOTAL_VALUE",
                severity="warning",
                field="valor_total",
                message="Valor total da prestação igual a zero",
            ))

        if record.motorista.cpf:
            validacao = cpf_validator(record.motorista.cpf)
            if not validacao["valido"]:
                issues.append(ValidationIssue(
                    code="INVALID_DRIVER_CPF",
                    severity="warning",
                    field="motorista.cpf",
                    message=validacao["erro"],
                ))

        return issues

    def score(self, issues: List[ValidationIssue]) -> float:
        critical = sum(1 for i in issues if i.severity == "critical")
        warnings = len(issues) - critical
        raw = 1.0 - CRITICAL_PENALTY * critical - WARNING_PENALTY * warnings
        return round(min(1.0, max(0.0, raw)), 2)

    def process(self, input_data: Union[str, bytes, Path], context: Dict[str, str]) -> PipelineResult:
        """
        Executa o pipeline completo.

        Args:
            input_data: XML como texto (str), bytes do upload ou Path do arquivo.
            context: Dicionário com 'trace_id', 'execution_id', 'tenant_id'.
        """
        trace_id = context.get("trace_id", "unknown_trace")
        execution_id = context.get("execution_id", "unknown_exec")
        tenant_id = context.get("tenant_id", "unknown_tenant")

        result = PipelineResult(
            trace_id=trace_id,
            execution_id=execution_id,
            tenant_id=tenant_id,
            start_time=datetime.now(),
            status="error", # Pessimista por padrão
        )

        try:
            # ====================================================
            # 1. READ STAGE
            # ====================================================
            start_read = time.time()
            input_type = "file" if isinstance(input_data, Path) else "text" if isinstance(input_data, str) else "bytes"

            try:
                raw_bytes = self._read(input_data)
                xml_text = raw_bytes.decode("utf-8-sig")
            except (OSError, UnicodeDecodeError) as e:
                raise CteStructureError(
                    ErrorKind.MALFORMED_DOCUMENT,
                    ExtractionStage.START,
                    f"XML inválido ou malformado: {e}",
                ) from e

            result.raw_metadata = {
                "input_hash_sha256": self._calculate_hash(raw_bytes),
                "input_type": input_type,
                "file_size_bytes": len(raw_bytes),
            }
            result.events.append(OrchestratorEvent(
                stage="READ",
                status="SUCCESS",
                details={
                    "duration_sec": round(time.time() - start_read, 4),
                    "input_type": input_type,
                },
                error_policy="CONTINUE",
            ))

            # ====================================================
            # 2. PARSE STAGE
            # ====================================================
            start_parse = time.time()
            tree = parse_document(xml_text)
            matched = resolve_root_variant(tree)

            result.events.append(OrchestratorEvent(
                stage="PARSE",
                status="SUCCESS",
                details={
                    "duration_sec": round(time.time() - start_parse, 4),
                    "root_variant": matched[0] if matched else None,
                },
                error_policy="CONTINUE",
            ))

            # ====================================================
            # 3. EXTRACT STAGE
            # ====================================================
            start_extract = time.time()
            record = extract_from_tree(tree)
            result.payload = record

            result.events.append(OrchestratorEvent(
                stage="EXTRACT",
                status="SUCCESS",
                details={
                    "duration_sec": round(time.time() - start_extract, 4),
                    "numero_cte": record.numero_cte,
                    "notas_fiscais_count": len(record.notas_fiscais),
                    "valor_total": str(record.valor_total),
                },
                error_policy="CONTINUE",
            ))

        except CteStructureError as e:
            # Falha estrutural é fatal (ABORT): sem payload parcial
            failed_stage = "READ" if not result.events else "PARSE" if len(result.events) == 1 else "EXTRACT"
            result.events.append(OrchestratorEvent(
                stage=failed_stage,
                status="FAILURE",
                details={"error": e.message, "kind": e.kind.value},
                error_policy="ABORT",
            ))
            result.payload = None
            result.error = failure_from_error(e)
            result.trust_score = 0.0
            result.end_time = datetime.now()
            logger.warning("Falha estrutural no CT-e [%s] %s: %s", execution_id, e.kind.value, e.message)
            return result

        # ====================================================
        # 4. VALIDATE STAGE
        # ====================================================
        issues = self.validate_record(record)
        result.validation_issues = issues
        result.trust_score = self.score(issues)

        if any(i.severity == "critical" for i in issues):
            result.status = "error"
        elif issues:
            result.status = "partial"
        else:
            result.status = "success"

        result.events.append(OrchestratorEvent(
            stage="VALIDATE",
            status="FAILURE" if result.status == "error" else "SUCCESS",
            details={
                "issues_count": len(issues),
                "trust_score": result.trust_score,
            },
            error_policy="CONTINUE",
        ))
        result.end_time = datetime.now()

        logger.info(
            "CT-e %s processado [%s] status=%s score=%.2f",
            record.numero_cte, execution_id, result.status, result.trust_score,
        )
        return result
