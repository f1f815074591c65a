from typing import Any, Dict, Optional, Tuple

from .tree import MISSING, get_path

# Ordem fixa de prioridade: envelope processado, depois CT-e puro
ROOT_PATHS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("cteProc", ("cteProc", "CTe", "infCte")),
    ("CTe", ("CTe", "infCte")),
)


def _match_paths(node: Any) -> Optional[Tuple[str, Dict[str, Any]]]:
    for variant, path in ROOT_PATHS:
        found = get_path(node, *path)
        if found is not MISSING and isinstance(found, dict):
            return variant, found
    return None


def resolve_root_variant(tree: Any) -> Optional[Tuple[str, Dict[str, Any]]]:
    """
    Localiza o infCte e informa qual formato de envelope casou.

    1. cteProc/CTe/infCte
    2. CTe/infCte
    3. Primeira chave do topo (ex: enviCTe) + caminhos 1 e 2 relativos a ela
    """
    if not isinstance(tree, dict) or not tree:
        return None

    matched = _match_paths(tree)
    if matched:
        return matched

    wrapper = next(iter(tree))
    matched = _match_paths(tree[wrapper])
    if matched:
        variant, found = matched
        return f"{wrapper}/{variant}", found

    return None


def find_business_root(tree: Any) -> Optional[Dict[str, Any]]:
    matched = resolve_root_variant(tree)
    return matched[1] if matched else None
