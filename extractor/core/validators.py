import re
from typing import Any, Dict, List

# Códigos IBGE de UF usados na chave de acesso
UFS_VALIDAS = {
    '11','12','13','14','15','16','17',  # Norte
    '21','22','23','24','25','26','27','28','29',  # Nordeste
    '31','32','33','35',  # Sudeste
    '41','42','43',  # Sul
    '50','51','52','53'  # Centro-Oeste
}

# 57 = CT-e, 67 = CT-e OS
MODELOS_CTE = {'57': "CT-e", '67': "CT-e OS"}


def _digito_mod11(base: str, pesos: List[int]) -> int:
    soma = sum(int(d) * p for d, p in zip(base, pesos))
    resto = soma % 11
    return 0 if resto < 2 else 11 - resto


def cnpj_validator(cnpj: str) -> Dict[str, Any]: ##     VALIDAÇÃO DE CNPJ COM CHECKSUM
    """
    Valida CNPJ com checksum.
    Retorna dict com status e metadados.
    """
    cnpj_limpo = re.sub(r'\D', '', cnpj)

    if len(cnpj_limpo) != 14:
        return {
            "valido": False,
            "erro": f"CNPJ deve ter 14 dígitos (recebido {len(cnpj_limpo)})",
        }

    if cnpj_limpo == cnpj_limpo[0] * 14:
        return {"valido": False, "erro": "CNPJ com todos dígitos repetidos"}

    dv1 = _digito_mod11(cnpj_limpo[:12], [5,4,3,2,9,8,7,6,5,4,3,2])
    dv2 = _digito_mod11(cnpj_limpo[:13], [6,5,4,3,2,9,8,7,6,5,4,3,2])

    if int(cnpj_limpo[12]) != dv1 or int(cnpj_limpo[13]) != dv2:
        return {
            "valido": False,
            "erro": f"Dígito verificador incorreto (esperado {dv1}{dv2})",
        }

    return {
        "valido": True,
        "cnpj_limpo": cnpj_limpo,
        "cnpj_formatado": f"{cnpj_limpo[:2]}.{cnpj_limpo[2:5]}.{cnpj_limpo[5:8]}/{cnpj_limpo[8:12]}-{cnpj_limpo[12:]}",
        "tipo": "matriz" if cnpj_limpo[8:12] == "0001" else "filial",
    }


def cpf_validator(cpf: str) -> Dict[str, Any]:
    cpf_limpo = re.sub(r'\D', '', cpf)

    if len(cpf_limpo) != 11:
        return {
            "valido": False,
            "erro": f"CPF deve ter 11 dígitos (recebido {len(cpf_limpo)})",
        }

    if cpf_limpo == cpf_limpo[0] * 11:
        return {"valido": False, "erro": "CPF com todos dígitos repetidos"}

    # CPF: pesos decrescentes, resto * 10 mod 11 (10 vira 0)
    for posicao in (9, 10):
        soma = sum(int(d) * p for d, p in zip(cpf_limpo[:posicao], range(posicao + 1, 1, -1)))
        dv = (soma * 10) % 11 % 10
        if int(cpf_limpo[posicao]) != dv:
            return {
                "valido": False,
                "erro": f"Dígito verificador {posicao - 8} incorreto (esperado {dv})",
            }

    return {
        "valido": True,
        "cpf_limpo": cpf_limpo,
        "cpf_formatado": f"{cpf_limpo[:3]}.{cpf_limpo[3:6]}.{cpf_limpo[6:9]}-{cpf_limpo[9:]}",
    }


def tax_id_validator(documento: str) -> Dict[str, Any]:
    """Escolhe CNPJ ou CPF pelo tamanho do documento."""
    limpo = re.sub(r'\D', '', documento)
    if len(limpo) == 11:
        return cpf_validator(limpo)
    return cnpj_validator(limpo)


def cte_key_validator(chave: str) -> Dict[str, Any]:
    """
    Valida chave de acesso CT-e (44 dígitos).
    Estrutura: UF(2) + AAMM(4) + CNPJ(14) + Modelo(2) + Série(3) + Número(9)
               + tpEmis(1) + Código(8) + DV(1)
    """
    chave_limpa = re.sub(r'\D', '', chave)

    if len(chave_limpa) != 44:
        return {
            "valido": False,
            "erro": f"Chave deve ter 44 dígitos (recebido {len(chave_limpa)})",
        }

    uf = chave_limpa[:2]
    mes = int(chave_limpa[4:6])
    cnpj = chave_limpa[6:20]
    modelo = chave_limpa[20:22]

    if uf not in UFS_VALIDAS:
        return {"valido": False, "erro": f"Código UF inválido: {uf}"}

    if not (1 <= mes <= 12):
        return {"valido": False, "erro": f"Mês inválido: {mes:02d}"}

    if modelo not in MODELOS_CTE:
        return {
            "valido": False,
            "erro": f"Modelo inválido: {modelo} (esperado 57=CT-e ou 67=CT-e OS)",
        }

    validacao_cnpj = cnpj_validator(cnpj)
    if not validacao_cnpj["valido"]:
        return {
            "valido": False,
            "erro": f"CNPJ inválido na chave: {validacao_cnpj['erro']}",
        }

    # Módulo 11 com pesos 2..9 da direita para a esquerda
    pesos = [(i % 8) + 2 for i in range(43)][::-1]
    dv_calculado = _digito_mod11(chave_limpa[:43], pesos)

    if int(chave_limpa[43]) != dv_calculado:
        return {
            "valido": False,
            "erro": f"Dígito verificador incorreto (esperado {dv_calculado}, recebido {chave_limpa[43]})",
        }

    return {
        "valido": True,
        "chave_limpa": chave_limpa,
        "uf": uf,
        "ano_mes": f"20{chave_limpa[2:4]}-{chave_limpa[4:6]}",
        "cnpj_emitente": validacao_cnpj["cnpj_formatado"],
        "modelo": MODELOS_CTE[modelo],
    }
