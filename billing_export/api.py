"""
FastAPI application for the billing export pipeline.

Provides REST API endpoints for:
- Health check
- Invoice Summary validation
- Billing and credit-note document generation
- Download of generated documents
"""

from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .canonicalizer import parse_month_argument
from .config import (
    API_HOST,
    API_PORT,
    ARTIFACT_DIR,
    INVOICE_STORE_PATH,
    MAX_UPLOAD_SIZE_MB,
    XLSX_CONTENT_TYPE,
    logger,
)
from .errors import (
    EmptyInput,
    ExternalIOFailure,
    MissingSheet,
    NoEligibleRecords,
    PipelineError,
    UnreadableWorkbook,
)
from .ports import ArtifactStore, FileSystemArtifactStore, InvoiceStore, JsonInvoiceStore
from .pipeline import run_billing, run_credit_notes
from .reader import read_invoice_summary
from .schemas import BatchValidationResult, RunReport
from .validator import validate_batch


# ============================================================================
# FastAPI App Configuration
# ============================================================================

app = FastAPI(
    title="Billing Export API",
    description="""
    Billing Export API.

    Turns a monthly Invoice Summary workbook into accounting import documents.

    ## Features

    - **Validate**: Check an Invoice Summary without writing anything
    - **Billing**: Upsert invoices and generate the billing document
    - **Credit notes**: Reconcile against the ledger export and generate credit notes
    """,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

_invoice_store: Optional[InvoiceStore] = None
_artifact_store: Optional[ArtifactStore] = None


def get_invoice_store() -> InvoiceStore:
    global _invoice_store
    if _invoice_store is None:
        _invoice_store = JsonInvoiceStore(INVOICE_STORE_PATH)
    return _invoice_store


def get_artifact_store() -> ArtifactStore:
    global _artifact_store
    if _artifact_store is None:
        _artifact_store = FileSystemArtifactStore(ARTIFACT_DIR)
    return _artifact_store


# ============================================================================
# Request/Response Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ValidateSummaryResponse(BaseModel):
    """Response for the summary validation endpoint."""
    records_read: int
    skipped_total_rows: int
    skipped_incomplete_rows: int
    validation: BatchValidationResult


class RunResponse(BaseModel):
    """Response for the document generation endpoints."""
    success: bool
    message: str
    report: RunReport


# ============================================================================
# Helpers
# ============================================================================

ERROR_STATUS = {
    MissingSheet: 422,
    UnreadableWorkbook: 422,
    EmptyInput: 400,
    NoEligibleRecords: 409,
    ExternalIOFailure: 502,
}


def _http_error(error: PipelineError) -> HTTPException:
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)),
        400,
    )
    return HTTPException(status_code=status, detail={"code": error.code, "message": error.message})


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename or not file.filename.lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail=f"{file.filename}: Not an .xlsx file")

    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"{file.filename}: File too large (max {MAX_UPLOAD_SIZE_MB}MB)")
    return content


def _parse_month(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    month = parse_month_argument(value)
    if month is None:
        raise HTTPException(status_code=400, detail=f"Invalid month: {value}")
    return month


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns the service status and version information.
    """
    from . import __version__
    return HealthResponse(status="ok", version=__version__)


@app.post(
    "/validate-summary",
    response_model=ValidateSummaryResponse,
    tags=["Validation"],
    summary="Validate an Invoice Summary",
)
async def validate_summary(
    file: UploadFile = File(..., description="Invoice Summary workbook"),
) -> ValidateSummaryResponse:
    """
    Read an Invoice Summary and validate its rows.

    Validation stops at the first invalid row, which is reported with its
    row number and field.
    """
    content = await _read_upload(file)

    result = read_invoice_summary(content)
    if not result.ok:
        raise HTTPException(status_code=422, detail={"code": result.error_code, "message": result.error})

    return ValidateSummaryResponse(
        records_read=len(result.records),
        skipped_total_rows=result.skipped_total_rows,
        skipped_incomplete_rows=result.skipped_incomplete_rows,
        validation=validate_batch(result.records),
    )


@app.post(
    "/generate-billing",
    response_model=RunResponse,
    tags=["Generation"],
    summary="Generate the billing document",
)
async def generate_billing(
    file: UploadFile = File(..., description="Invoice Summary workbook"),
    month: Optional[str] = Form(None, description="Reporting month (1-12 or name)"),
    year: Optional[int] = Form(None, description="Reporting year"),
    invoice_store: InvoiceStore = Depends(get_invoice_store),
    artifact_store: ArtifactStore = Depends(get_artifact_store),
) -> RunResponse:
    """
    Upsert the summary's invoices and generate Facturacion_<Mes>_<JUR>.xlsx.
    """
    content = await _read_upload(file)

    try:
        report = run_billing(
            content,
            file.filename,
            invoice_store,
            artifact_store,
            month=_parse_month(month),
            year=year,
        )
    except PipelineError as e:
        logger.warning(f"Billing run rejected: {e.code}: {e.message}")
        raise _http_error(e)

    return RunResponse(success=True, message=report.message, report=report)


@app.post(
    "/generate-credit-notes",
    response_model=RunResponse,
    tags=["Generation"],
    summary="Generate the credit-note document",
)
async def generate_credit_notes(
    file: UploadFile = File(..., description="Invoice Summary workbook"),
    ledger: UploadFile = File(..., description="Ledger export workbook"),
    eligible: Optional[List[str]] = Form(None, description="Agencies receiving credit notes"),
    month: Optional[str] = Form(None, description="Reporting month (1-12 or name)"),
    year: Optional[int] = Form(None, description="Reporting year"),
    invoice_store: InvoiceStore = Depends(get_invoice_store),
    artifact_store: ArtifactStore = Depends(get_artifact_store),
) -> RunResponse:
    """
    Reconcile the summary against the ledger export and generate
    NotasCredito_<Mes>_<JUR>.xlsx.

    When no eligible agencies are sent, the agencies marked in the invoice
    store are used.
    """
    content = await _read_upload(file)
    ledger_content = await _read_upload(ledger)

    try:
        report = run_credit_notes(
            content,
            file.filename,
            ledger_content,
            invoice_store,
            artifact_store,
            eligible_agencies=set(eligible) if eligible else None,
            month=_parse_month(month),
            year=year,
        )
    except PipelineError as e:
        logger.warning(f"Credit-note run rejected: {e.code}: {e.message}")
        raise _http_error(e)

    return RunResponse(success=True, message=report.message, report=report)


@app.get("/artifacts/{name}", tags=["Generation"])
async def download_artifact(
    name: str,
    artifact_store: ArtifactStore = Depends(get_artifact_store),
) -> Response:
    """Download a generated workbook by name."""
    data = artifact_store.load(name)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Artifact not found: {name}")

    return Response(
        content=data,
        media_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Log startup information."""
    logger.info(f"Billing Export API starting on {API_HOST}:{API_PORT}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Billing Export API shutting down")


# ============================================================================
# Main Entry Point
# ============================================================================

def run_server():
    """Run the API server using uvicorn."""
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run_server()
