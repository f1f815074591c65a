import sys
from pathlib import Path
from pprint import pprint

from extractor.core.parser import parse_document, extract_from_tree
from extractor.core.root import resolve_root_variant
from extractor.orchestrator import Orchestrator

XML_PATH = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("samples/cte_exemplo.xml")

xml_text = XML_PATH.read_text(encoding="utf-8")

# 1. Árvore bruta
tree = parse_document(xml_text)
variant = resolve_root_variant(tree)

print("\n================ ROOT VARIANT ================\n")
print(variant[0] if variant else "nenhum infCte encontrado")

# 2. Registro extraído
record = extract_from_tree(tree)

print("\n================ EXTRACTED RECORD ================\n")
pprint(record.model_dump(by_alias=True, mode="json"))

# 3. Pipeline completo com validação
result = Orchestrator().process(XML_PATH, {"trace_id": "debug", "execution_id": "debug", "tenant_id": "debug"})

print("\n================ VALIDATION ================\n")
print(f"status={result.status} trust_score={result.trust_score}")
for issue in result.validation_issues:
    print(f"- [{issue.severity}] {issue.code}: {issue.message}")
