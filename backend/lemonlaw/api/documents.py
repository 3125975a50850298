"""
Lemon Law Fee Suite
Documents API Router - Fee Motion Generation & Record Extraction
"""
import io
import logging
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lemonlaw.api.fees import load_case_fee_data
from lemonlaw.core.config import settings
from lemonlaw.db.database import get_db
from lemonlaw.generators.fee_documents import fee_document_generator
from lemonlaw.processors.text_extractor import UnsupportedDocumentError, extract_text
from lemonlaw.schemas.legal_schemas import (
    DocumentKind, ExtractionResponse, ExtractionType, GenerateRequest
)
from lemonlaw.services.ai_service import AIServiceError, ai_service, detect_document_type

logger = logging.getLogger(__name__)

router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@router.post("/generate")
async def generate_document(
    request: GenerateRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Generate a fee motion, repair history, billing exhibit, Laffey exhibit
    or the full package for a stored case and stream it as DOCX.

    No document is produced when the fee comparison fails.
    """
    data = await load_case_fee_data(db, request.case_id, request.laffey_period_id)

    if request.type == DocumentKind.LAFFEY_EXHIBIT and data.report is None:
        raise HTTPException(status_code=400, detail="No Laffey Matrix period available")
    if request.type == DocumentKind.REPAIR_SUMMARY and not data.repair_orders:
        raise HTTPException(status_code=400, detail="No repair orders on file for this case")

    content = fee_document_generator.render(
        request.type.value,
        data.case,
        repair_orders=data.repair_orders,
        billing_entries=data.billing_entries,
        costs=data.costs,
        report=data.report,
        attorney_info=request.attorney_info,
    )
    filename = fee_document_generator.filename_for(request.type.value, data.case.client_name)
    logger.info("Generated %s for case %s (%d bytes)", request.type.value, request.case_id, len(content))

    return StreamingResponse(
        io.BytesIO(content),
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/extract", response_model=ExtractionResponse)
async def extract_records(
    file: UploadFile = File(...),
    type: str = Form(None),
):
    """
    Extract repair orders, billing entries or costs from an uploaded PDF,
    DOCX or TXT.

    The record type is detected from the text when not given.
    """
    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        text = extract_text(file.filename or "", data)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if not text.strip():
        raise HTTPException(
            status_code=422,
            detail="No text could be extracted; scanned documents must be converted to text first"
        )

    try:
        extraction_type = ExtractionType(type or detect_document_type(text))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid extraction type: {type}") from e

    if not ai_service.is_available:
        raise HTTPException(status_code=503, detail="AI service not available")

    try:
        if extraction_type == ExtractionType.REPAIR_ORDERS:
            records = await ai_service.extract_repair_orders(text, source_file=file.filename)
        elif extraction_type == ExtractionType.BILLING:
            records = await ai_service.extract_billing_entries(text)
        else:
            records = await ai_service.extract_costs(text)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=f"AI extraction failed: {e}") from e

    return ExtractionResponse(
        success=True,
        type=extraction_type,
        data=records,
        raw_text=text,
    )
