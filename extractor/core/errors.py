from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MALFORMED_DOCUMENT = "MALFORMED_DOCUMENT"
    ROOT_NOT_FOUND = "ROOT_NOT_FOUND"
    IDENTIFICATION_MISSING = "IDENTIFICATION_MISSING"
    VALUES_MISSING = "VALUES_MISSING"


class ExtractionStage(str, Enum):
    START = "start"
    ROOT_RESOLVED = "root-resolved"
    SECTIONS_EXTRACTED = "sections-extracted"
    NORMALIZED = "normalized"
    DONE = "done"


ERROR_MESSAGES = {
    ErrorKind.MALFORMED_DOCUMENT: "XML inválido ou malformado",
    ErrorKind.ROOT_NOT_FOUND: "Elemento infCte não encontrado no XML",
    ErrorKind.IDENTIFICATION_MISSING: "Bloco de identificação (ide) não encontrado no XML",
    ErrorKind.VALUES_MISSING: "Bloco de valores da prestação (vPrest) não encontrado no XML",
}


class CteStructureError(ValueError):
    """
    Falha estrutural da extração.
    Carrega o tipo do erro e o estágio em que a extração parou.
    """

    def __init__(self, kind: ErrorKind, stage: ExtractionStage, message: Optional[str] = None):
        self.kind = kind
        self.stage = stage
        self.message = message or ERROR_MESSAGES[kind]
        super().__init__(self.message)
