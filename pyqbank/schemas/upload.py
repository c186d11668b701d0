"""
Pydantic schemas for bulk import operations.

Validation responses, staged-batch confirmation and the JSON bulk
import endpoint share these shapes.
"""

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from pyqbank.schemas.common import CamelModel


class ImportRowErrorSchema(CamelModel):
    """A row that failed validation."""
    row: int = Field(..., description="Spreadsheet row number (header is row 1)")
    data: Dict[str, Any] = Field(default_factory=dict, description="Row data as read from the file")
    errors: List[str] = Field(..., description="Human-readable validation errors")


class ImportFailureSchema(CamelModel):
    """A row that could not be imported."""
    row: Optional[int] = Field(None, description="Source row number when known")
    question_id: Optional[str] = Field(None, description="questionId of the rejected document when known")
    errors: List[str]


class ImportStatsSchema(CamelModel):
    by_exam_type: Dict[str, int] = Field(default_factory=dict)
    by_subject: Dict[str, int] = Field(default_factory=dict)
    by_year: Dict[str, int] = Field(default_factory=dict)


class ImportValidationResponse(CamelModel):
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    preview: List[Dict[str, Any]] = Field(default_factory=list, description="First valid rows")
    errors: List[ImportRowErrorSchema] = Field(default_factory=list, description="First invalid rows")
    temp_file_name: Optional[str] = Field(None, description="Staged batch key, null when nothing is importable")
    stats: ImportStatsSchema

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "totalRows": 3,
                "validRows": 2,
                "invalidRows": 1,
                "preview": [{"year": "2023", "examType": "prelims", "subject": "Polity"}],
                "errors": [{"row": 4, "data": {"year": "1999"}, "errors": ["Year must be between 2000 and 2035"]}],
                "tempFileName": "temp_1700000000000_1a2b3c4d.json",
                "stats": {"byExamType": {"prelims": 2}, "bySubject": {"Polity": 2}, "byYear": {"2023": 2}}
            }
        }
    )


class ImportConfirmRequest(CamelModel):
    temp_file_name: str = Field(..., min_length=1)


class ImportCancelResponse(CamelModel):
    temp_file_name: str
    deleted: bool


class ImportResultResponse(CamelModel):
    total_attempted: int = Field(..., ge=0)
    successfully_imported: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    errors: List[ImportFailureSchema] = Field(default_factory=list)


class BulkImportRequest(CamelModel):
    questions: List[Dict[str, Any]] = Field(..., min_length=1, description="Rows using the template column names")
