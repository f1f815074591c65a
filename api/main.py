"""
FastAPI application entry point.
Handles CT-e XML ingestion with strict separation of concerns:
- API validates input and dispatches
- Orchestrator makes all extraction and validation decisions
- No persistence or duplicate detection at API layer
"""
import json
import logging
from typing import Annotated, Dict, List
from fastapi import FastAPI, UploadFile, File, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

from cte_config import settings
from api.schemas import (
    BatchItemResult,
    BatchResponse,
    ErrorResponse,
    HealthResponse,
    ParseResponse,
    ParseXmlRequest,
)
from api.dependencies import build_context, check_size, read_xml_upload, request_context
from extractor.orchestrator import Orchestrator

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="CT-e XML field extraction API",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

orchestrator = Orchestrator()


def _failure_response(result) -> JSONResponse:
    body = ErrorResponse(
        error=result.error.message,
        kind=result.error.kind,
        stage=result.error.stage,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(),
    )


async def _read_request_xml(request: Request) -> bytes:
    """
    Accepts multipart/form-data with a `file` field or a JSON body {"xml": "..."}.
    """
    content_type = request.headers.get("content-type", "")

    if "multipart/form-data" in content_type:
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, StarletteUploadFile):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Nenhum arquivo enviado"
            )
        return await read_xml_upload(upload)

    try:
        body = ParseXmlRequest.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Corpo da requisição deve ser JSON com o campo 'xml'"
        )

    if not body.xml.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Conteúdo XML não fornecido"
        )

    content = body.xml.encode("utf-8")
    check_size(content)
    return content


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Returns service status and basic diagnostics.
    """
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        checks={"api": True}
    )


@app.post(
    "/v1/cte/parse",
    response_model=ParseResponse,
    responses={422: {"model": ErrorResponse}},
    tags=["Processing"],
)
async def parse_cte(
    request: Request,
    context: Annotated[Dict[str, str], Depends(request_context)]
):
    """
    Extract the business record from one CT-e XML.

    **Request Format:**
    - multipart/form-data with `file` (.xml), or
    - application/json `{"xml": "<cteProc>...</cteProc>"}`

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/v1/cte/parse \\
      -H "X-Tenant-Id: acme-corp" \\
      -F "file=@cte.xml"
    ```
    """
    content = await _read_request_xml(request)

    logger.info("Parsing CT-e XML [%s] (%d bytes)", context["execution_id"], len(content))
    result = orchestrator.process(content, context)

    if result.payload is None:
        return _failure_response(result)

    return ParseResponse(
        data=result.payload,
        status=result.status,
        trust_score=result.trust_score,
        validation_issues=result.validation_issues,
        execution_id=result.execution_id,
        trace_id=result.trace_id,
    )


@app.post("/v1/cte/parse/batch", response_model=BatchResponse, tags=["Processing"])
async def parse_cte_batch(
    files: Annotated[List[UploadFile], File(description="CT-e XML files")],
    context: Annotated[Dict[str, str], Depends(request_context)]
):
    """
    Bulk import: each file is processed independently and reported in upload order.
    A failing file never aborts the others.
    """
    if len(files) > settings.BATCH_MAX_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Max per batch: {settings.BATCH_MAX_FILES}"
        )

    results: List[BatchItemResult] = []
    for index, upload in enumerate(files):
        filename = upload.filename or f"arquivo_{index + 1}"

        try:
            content = await read_xml_upload(upload)
        except HTTPException as e:
            results.append(BatchItemResult(filename=filename, success=False, error=str(e.detail)))
            continue

        item_context = build_context(context["tenant_id"])
        item_context["trace_id"] = context["trace_id"]
        result = orchestrator.process(content, item_context)

        if result.payload is None:
            results.append(BatchItemResult(
                filename=filename,
                success=False,
                status=result.status,
                error=result.error.message,
            ))
            continue

        results.append(BatchItemResult(
            filename=filename,
            success=True,
            numero_cte=result.payload.numero_cte,
            chave_acesso=result.payload.chave_acesso,
            status=result.status,
            data=result.payload,
        ))

    success_count = sum(1 for r in results if r.success)
    logger.info(
        "Batch [%s] finished: %d ok, %d failed",
        context["execution_id"], success_count, len(results) - success_count,
    )

    return BatchResponse(
        execution_id=context["execution_id"],
        trace_id=context["trace_id"],
        total=len(results),
        success_count=success_count,
        error_count=len(results) - success_count,
        results=results,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unexpected errors.
    """
    logger.exception("Erro inesperado ao processar requisição")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.DEBUG else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
