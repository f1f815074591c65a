import pytest
from unittest.mock import patch

from extractor.orchestrator import Orchestrator
from extractor.schema.models import CteRecord, Party
from extractor.schema.orchestrator_models import ValidationIssue

pytestmark = pytest.mark.e2e


@pytest.fixture
def orchestrator():
    return Orchestrator()


def test_orchestrator_success_flow_text(orchestrator, cte_xml, sample_context):
    """
    Verifica o pipe de ponta a ponta com XML como texto.
    """
    result = orchestrator.process(cte_xml, sample_context)

    assert result.status == "success"
    assert result.trust_score == 1.0
    assert result.validation_issues == []
    assert result.trace_id == "trace-cte-001"
    assert result.error is None
    assert result.payload.numero_cte == "1234"

    stages = [e.stage for e in result.events]
    assert stages == ["READ", "PARSE", "EXTRACT", "VALIDATE"]
    assert all(e.status == "SUCCESS" for e in result.events)
    assert result.events[1].details["root_variant"] == "cteProc"

    assert result.raw_metadata["input_type"] == "text"
    assert len(result.raw_metadata["input_hash_sha256"]) == 64
    assert result.end_time is not None


def test_orchestrator_accepts_path_and_bytes(orchestrator, sample_path, sample_context):
    from_path = orchestrator.process(sample_path, sample_context)
    from_bytes = orchestrator.process(sample_path.read_bytes(), sample_context)

    assert from_path.raw_metadata["input_type"] == "file"
    assert from_bytes.raw_metadata["input_type"] == "bytes"
    assert from_path.payload == from_bytes.payload
    assert from_path.raw_metadata["input_hash_sha256"] == from_bytes.raw_metadata["input_hash_sha256"]


def test_orchestrator_missing_file(orchestrator, tmp_path, sample_context):
    result = orchestrator.process(tmp_path / "nao_existe.xml", sample_context)

    assert result.status == "error"
    assert result.payload is None
    assert result.error.kind == "MALFORMED_DOCUMENT"
    assert len(result.events) == 1
    assert result.events[0].stage == "READ"
    assert result.events[0].status == "FAILURE"
    assert result.events[0].error_policy == "ABORT"


def test_orchestrator_malformed_xml(orchestrator, sample_context):
    result = orchestrator.process("<CTe><infCte>", sample_context)

    assert result.status == "error"
    assert result.trust_score == 0.0
    assert [e.stage for e in result.events] == ["READ", "PARSE"]
    assert result.events[-1].status == "FAILURE"
    assert result.error.message == "XML inválido ou malformado"


def test_orchestrator_structural_failure_has_no_partial_payload(orchestrator, cte_xml, sample_context):
    xml_sem_valores = cte_xml.split("<vPrest>")[0] + cte_xml.split("</vPrest>")[1]

    result = orchestrator.process(xml_sem_valores, sample_context)

    assert result.status == "error"
    assert result.payload is None
    assert result.error.kind == "VALUES_MISSING"
    assert result.events[-1].stage == "EXTRACT"
    assert result.events[-1].details["kind"] == "VALUES_MISSING"


def test_orchestrator_partial_on_warnings(orchestrator, minimal_cte_xml, sample_context):
    """
    Cenário: Emitente válido (crítico ok), mas remetente e destinatário ausentes.
    """
    result = orchestrator.process(minimal_cte_xml, sample_context)

    assert result.status == "partial"
    assert 0.0 <= result.trust_score < 1.0

    codes = [i.code for i in result.validation_issues]
    assert "MISSING_SENDER" in codes
    assert "MISSING_RECIPIENT" in codes
    assert result.payload is not None


def test_orchestrator_invalid_issuer_is_error(orchestrator, minimal_cte_xml, sample_context):
    xml_text = minimal_cte_xml.replace("<CNPJ>04252011000110</CNPJ>", "<CNPJ>04252011000119</CNPJ>")

    result = orchestrator.process(xml_text, sample_context)

    assert result.status == "error"
    assert result.payload is not None
    assert any(i.code == "INVALID_ISSUER_CNPJ" for i in result.validation_issues)
    assert result.events[-1].stage == "VALIDATE"
    assert result.events[-1].status == "FAILURE"


def test_validate_record_rules(orchestrator):
    record = CteRecord(
        chave_acesso="123",
        emitente=Party(cnpj=""),
        remetente=Party(nome="REMETENTE", cnpj="11222333000180"),
        destinatario=Party(nome="DEST"),
    )
    record.motorista.cpf = "12345678900"

    codes = {i.code: i.severity for i in orchestrator.validate_record(record)}

    assert codes == {
        "MISSING_ISSUER_CNPJ": "critical",
        "INVALID_SENDER_DOCUMENT": "warning",
        "INVALID_ACCESS_KEY": "warning",
        "ZERO_TOTAL_VALUE": "warning",
        "INVALID_DRIVER_CPF": "warning",
    }


def test_score_penalties(orchestrator):
    issues = orchestrator.validate_record(CteRecord())

    # 1 crítico + 4 warnings
    assert orchestrator.score(issues) == 0.1


def test_score_is_clamped(orchestrator):
    critical = ValidationIssue(code="X", severity="critical", field="f", message="m")

    assert orchestrator.score([critical] * 3) == 0.0
    assert orchestrator.score([]) == 1.0


def test_orchestrator_consistency_determinism(orchestrator, cte_xml, sample_context):
    """
    Duas execuções com mesmo input produzem resultados idênticos.
    """
    res1 = orchestrator.process(cte_xml, sample_context)
    res2 = orchestrator.process(cte_xml, sample_context)

    assert res1.status == res2.status
    assert res1.trust_score == res2.trust_score
    assert res1.payload.model_dump_json() == res2.payload.model_dump_json()
    assert [i.model_dump() for i in res1.validation_issues] == [i.model_dump() for i in res2.validation_issues]


def test_orchestrator_validation_uses_key_validator(orchestrator, cte_xml, sample_context):
    with patch("extractor.orchestrator.cte_key_validator") as mock_key_val:
        mock_key_val.return_value = {"valido": False, "erro": "Dígito verificador incorreto"}

        result = orchestrator.process(cte_xml, sample_context)

    mock_key_val.assert_called_once_with("35240304252011000110570010000012341000012340")
    assert result.status == "partial"
    assert [i.code for i in result.validation_issues] == ["INVALID_ACCESS_KEY"]
