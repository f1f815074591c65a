import copy
from pathlib import Path

import pytest

from extractor.core.parser import parse_document

SAMPLE_PATH = Path(__file__).resolve().parent.parent / "samples" / "cte_exemplo.xml"

CHAVE_EXEMPLO = "35240304252011000110570010000012341000012340"

MINIMAL_CTE = """<?xml version="1.0" encoding="UTF-8"?>
<CTe xmlns="http://www.portalfiscal.inf.br/cte">
  <infCte Id="CTe{chave}" versao="3.00">
    <ide>
      <nCT>77</nCT>
      <serie>2</serie>
      <dhEmi>2024-05-02T14:00:00-03:00</dhEmi>
      <modal>01</modal>
    </ide>
    <emit>
      <CNPJ>04252011000110</CNPJ>
      <xNome>TRANSPORTADORA EXEMPLO LTDA</xNome>
    </emit>
    <vPrest>
      <vTPrest>300.00</vTPrest>
      <vRec>300.00</vRec>
    </vPrest>
  </infCte>
</CTe>
"""


@pytest.fixture(scope="session")
def sample_path():
    return SAMPLE_PATH


@pytest.fixture(scope="session")
def cte_xml():
    """CT-e processado (cteProc) completo, com protocolo de autorização."""
    return SAMPLE_PATH.read_text(encoding="utf-8")


@pytest.fixture
def minimal_cte_xml():
    return MINIMAL_CTE.format(chave=CHAVE_EXEMPLO)


@pytest.fixture
def cte_tree(cte_xml):
    """Árvore nova a cada teste: pode ser alterada sem vazar estado."""
    return copy.deepcopy(parse_document(cte_xml))


@pytest.fixture
def inf_cte(cte_tree):
    return cte_tree["cteProc"]["CTe"]["infCte"]


@pytest.fixture
def sample_context():
    return {
        "trace_id": "trace-cte-001",
        "execution_id": "exec-cte-001",
        "tenant_id": "tenant-A"
    }
