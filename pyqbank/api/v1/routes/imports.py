"""
Bulk import API routes.

Imports from a file run in two phases:

1. **Validate**: POST `/v1/admin/import/validate` with a .csv or .xlsx file. Every row
   is checked and the valid ones are staged under a `tempFileName`.
2. **Confirm** or **Cancel**: POST `/v1/admin/import/confirm` inserts the staged rows,
   POST `/v1/admin/import/cancel` discards them.

Rows that are already in JSON form can be imported in one call with
POST `/v1/admin/import/bulk`.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank import config
from pyqbank.database import get_db
from pyqbank.schemas.common import ApiResponse
from pyqbank.schemas.questions import UploadHistoryEntry
from pyqbank.schemas.upload import (
    BulkImportRequest,
    ImportCancelResponse,
    ImportConfirmRequest,
    ImportResultResponse,
    ImportValidationResponse
)
from pyqbank.services import question_service
from pyqbank.services.import_service import bulk_import_service
from pyqbank.services.response_helpers import success_envelope
from pyqbank.utils.auth import TokenData, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/v1/admin/import/validate", tags=["Bulk Import"], response_model=ApiResponse[ImportValidationResponse])
async def validate_import_file(
    file: UploadFile = File(..., description=".csv or .xlsx file using the import template columns"),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Validate an import file and stage its valid rows.

    ### Request Body (multipart/form-data):
    - **file**: .csv or .xlsx. Download the template from `/v1/admin/import/template`.

    ### Response (application/json):
    ```json
    {
        "success": true,
        "message": "2 of 3 rows are valid",
        "data": {
            "totalRows": 3,
            "validRows": 2,
            "invalidRows": 1,
            "preview": [{"year": "2023", "examType": "prelims", "subject": "Polity"}],
            "errors": [{"row": 4, "data": {"year": "1999"}, "errors": ["Year must be between 2000 and 2035"]}],
            "tempFileName": "temp_1700000000000_1a2b3c4d.json",
            "stats": {"byExamType": {"prelims": 2}, "bySubject": {"Polity": 2}, "byYear": {"2023": 2}}
        }
    }
    ```

    `tempFileName` is null when no row is valid; there is then nothing to confirm.

    ### Error Responses:
    - **400 Bad Request**: Unsupported extension, unreadable or empty file.
    """
    content = await file.read()
    summary = await bulk_import_service.stage(file.filename, content, db)
    logger.info(f"Import file {file.filename} validated by {current_user.sub}")
    return success_envelope(f"{summary['valid_rows']} of {summary['total_rows']} rows are valid", summary)


@router.post("/v1/admin/import/confirm", tags=["Bulk Import"], response_model=ApiResponse[ImportResultResponse])
async def confirm_import(
    request: ImportConfirmRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Insert a staged batch. The staged file is deleted afterwards, whatever the outcome.

    ### Error Responses:
    - **400 Bad Request**: Malformed tempFileName.
    - **404 Not Found**: The batch was already confirmed, cancelled or never staged.
    """
    result = await bulk_import_service.confirm(request.temp_file_name, db, current_user.sub)
    return success_envelope(
        f"Imported {result.successfully_imported} of {result.total_attempted} questions",
        result.to_dict(config.IMPORT_ERROR_LIMIT)
    )


@router.post("/v1/admin/import/cancel", tags=["Bulk Import"], response_model=ApiResponse[ImportCancelResponse])
async def cancel_import(
    request: ImportConfirmRequest,
    current_user: TokenData = Depends(require_admin)
):
    """Discard a staged batch. Cancelling twice is not an error."""
    deleted = bulk_import_service.cancel(request.temp_file_name)
    return success_envelope(
        "Import cancelled",
        {"temp_file_name": request.temp_file_name, "deleted": deleted}
    )


@router.post("/v1/admin/import/bulk", tags=["Bulk Import"], response_model=ApiResponse[ImportResultResponse])
async def bulk_import(
    request: BulkImportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Validate and insert JSON rows in one call.

    Each row uses the template column names (`year`, `examType`, `questionText`,
    `optionA`..`optionF`, ...). Invalid rows are reported and skipped; the rest
    are inserted.
    """
    result = await bulk_import_service.import_rows(request.questions, db, current_user.sub)
    return success_envelope(
        f"Imported {result.successfully_imported} of {result.total_attempted} questions",
        result.to_dict(config.IMPORT_ERROR_LIMIT)
    )


@router.get("/v1/admin/import/template", tags=["Bulk Import"])
async def download_template(
    fmt: str = Query("xlsx", alias="format", description="csv or xlsx"),
    current_user: TokenData = Depends(require_admin)
):
    """Download an import template with the expected columns and one sample row."""
    content, media_type, file_name = bulk_import_service.build_template(fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'}
    )


@router.get("/v1/admin/import/history", tags=["Bulk Import"], response_model=ApiResponse[List[UploadHistoryEntry]])
async def get_upload_history(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """Imported question counts per uploader and day, newest first."""
    history = await question_service.get_upload_history(db)
    return success_envelope("Upload history retrieved successfully", history)
