"""
FastAPI dependency injection utilities.
Handles context generation and upload validation.
"""
import uuid
from typing import Annotated, Dict, Optional
from fastapi import Header, UploadFile, HTTPException, status
from cte_config import settings


def build_context(tenant_id: Optional[str] = None) -> Dict[str, str]:
    """
    Build the orchestrator context with fresh trace/execution IDs.
    """
    tenant = tenant_id or settings.DEFAULT_TENANT_ID
    return {
        "tenant_id": tenant,
        "trace_id": str(uuid.uuid4()),
        "execution_id": f"{tenant}_{uuid.uuid4().hex[:12]}",
    }


async def request_context(
    x_tenant_id: Annotated[Optional[str], Header()] = None
) -> Dict[str, str]:
    if x_tenant_id is not None and not x_tenant_id.replace("-", "").replace("_", "").isalnum():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="X-Tenant-Id must contain only alphanumeric, dash, or underscore"
        )
    return build_context(x_tenant_id)


def check_extension(filename: Optional[str]) -> None:
    name = (filename or "").lower()
    if not any(name.endswith(ext) for ext in settings.ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="O arquivo deve ser um XML de CT-e"
        )


def check_size(content: bytes) -> None:
    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max size: {settings.API_MAX_UPLOAD_SIZE_MB}MB"
        )


async def read_xml_upload(file: UploadFile) -> bytes:
    """
    Validate an uploaded CT-e file.

    Args:
        file: Uploaded file from multipart form

    Returns:
        File bytes

    Raises:
        HTTPException: If validation fails
    """
    check_extension(file.filename)

    content = await file.read()
    check_size(content)

    if not content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Conteúdo XML não fornecido"
        )

    return content
