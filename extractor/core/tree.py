from typing import Any, List

class _Missing:  ##     Marca ausência explícita (diferente de elemento vazio, que o xmltodict entrega como None)
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def get_path(tree: Any, *keys: str) -> Any:
    """
    Desce na árvore uma chave por vez.

    Retorna MISSING assim que um nó intermediário não existe, não é um
    dict ou não possui a chave. Nunca lança exceção.
    """
    node = tree
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return MISSING
        node = node[key]
    return node


def as_list(node: Any) -> List[Any]: ##     Elemento único ou repetido -> sempre lista ordenada
    if node is MISSING or node is None:
        return []
    if isinstance(node, list):
        return node
    return [node]


def first_of(node: Any) -> Any:
    entries = as_list(node)
    return entries[0] if entries else MISSING


def tree_depth(tree: Any, limit: int) -> int:
    """
    Mede a profundidade da árvore de forma iterativa (sem recursão).
    Para de descer assim que `limit` é ultrapassado e devolve limit + 1.
    """
    deepest = 0
    stack = [(tree, 1)]

    while stack:
        node, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        if deepest > limit:
            return limit + 1

        if isinstance(node, dict):
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue

        for child in children:
            if isinstance(child, (dict, list)):
                stack.append((child, depth + 1))

    return deepest
