import io
import json
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Collection, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank import config
from pyqbank.exceptions.question_exceptions import QuestionValidationError
from pyqbank.exceptions.service_exceptions import ImportFileParseError, StagedImportNotFoundError
from pyqbank.models.question import (
    DIFFICULTY_LEVELS, EXAM_TYPES, MARKS_MAX, MARKS_MIN, MIN_OPTIONS, OPTION_LABELS,
    TEXT_LIMITS, YEAR_MAX, YEAR_MIN, Question
)
from pyqbank.services.question_service import IMPORT_SOURCE_PREFIX
from pyqbank.services.subject_service import SubjectService
from pyqbank.utils.database_error_handler import DatabaseErrorHandler
from pyqbank.utils.text import split_terms

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".xlsx")
STAGED_FILE_PATTERN = re.compile(r"^temp_\d+_[0-9a-f]+\.json$")


class ValidationErrorType(Enum):
    """Types of errors that can occur during import."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_DATA_TYPE = "invalid_data_type"
    LOOKUP_FAILED = "lookup_failed"
    PROCESSING_ERROR = "processing_error"


@dataclass
class RowError:
    """Represents an error that occurred while processing a specific row."""
    row_number: int
    error_type: ValidationErrorType
    error_message: str
    row_data: Dict[str, Any]


@dataclass
class RowValidation:
    """Outcome of validating one row."""
    row_number: int
    data: Dict[str, str]
    errors: List[str] = field(default_factory=list)
    error_type: Optional[ValidationErrorType] = None
    document: Optional[Dict[str, Any]] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_row_error(self) -> RowError:
        return RowError(
            row_number=self.row_number,
            error_type=self.error_type or ValidationErrorType.PROCESSING_ERROR,
            error_message="; ".join(self.errors),
            row_data=self.data
        )


@dataclass
class BatchValidation:
    """Validation results for a whole file, in row order."""
    rows: List[RowValidation]

    @property
    def valid(self) -> List[RowValidation]:
        return [row for row in self.rows if row.valid]

    @property
    def invalid(self) -> List[RowValidation]:
        return [row for row in self.rows if not row.valid]

    def stats(self) -> Dict[str, Dict[str, int]]:
        stats = {"by_exam_type": {}, "by_subject": {}, "by_year": {}}
        for row in self.valid:
            document = row.document
            for key, value in (
                ("by_exam_type", document["exam_type"]),
                ("by_subject", document["subject"]),
                ("by_year", str(document["year"])),
            ):
                stats[key][value] = stats[key].get(value, 0) + 1
        return stats

    def summary(self, preview_limit: int, error_limit: int) -> Dict[str, Any]:
        invalid = self.invalid
        return {
            "total_rows": len(self.rows),
            "valid_rows": len(self.rows) - len(invalid),
            "invalid_rows": len(invalid),
            "preview": [row.data for row in self.valid[:preview_limit]],
            "errors": [
                {"row": row.row_number, "data": row.data, "errors": row.errors}
                for row in invalid[:error_limit]
            ],
            "stats": self.stats(),
        }


@dataclass
class ImportResult:
    """Result of inserting a batch."""
    total_attempted: int
    successfully_imported: int
    failed: int
    errors: List[Dict[str, Any]]

    def to_dict(self, error_limit: int) -> Dict[str, Any]:
        return {
            "total_attempted": self.total_attempted,
            "successfully_imported": self.successfully_imported,
            "failed": self.failed,
            "errors": self.errors[:error_limit],
        }


class BulkImportService:
    """
    Service for importing previous year questions from CSV/Excel files or JSON rows.

    Features:
    - pandas parsing of .csv and .xlsx uploads
    - Row-by-row validation against question constraints and the subject list
    - Two-phase import: validated rows are staged on disk, then confirmed or cancelled
    - Unordered inserts: one failing row never blocks the rest
    """

    OPTION_COLUMNS = [f"option{label}" for label in OPTION_LABELS]

    TEMPLATE_COLUMNS = [
        "questionId", "year", "examType", "examName", "paperNumber", "questionNumber",
        "subject", "topic", "subTopic", "questionText",
        *OPTION_COLUMNS,
        "correctAnswer", "explanation", "difficulty", "marks", "negativeMarks", "tags", "keywords",
    ]

    REQUIRED_COLUMNS = ["year", "examType", "examName", "subject", "questionText", "correctAnswer"]

    SAMPLE_ROW = {
        "questionId": "",
        "year": "2023",
        "examType": "prelims",
        "examName": "UPSC Civil Services Preliminary Examination",
        "paperNumber": "GS Paper I",
        "questionNumber": "42",
        "subject": "Polity",
        "topic": "Constitution",
        "subTopic": "Fundamental Rights",
        "questionText": "Which Article of the Constitution of India abolishes untouchability?",
        "optionA": "Article 14",
        "optionB": "Article 15",
        "optionC": "Article 17",
        "optionD": "Article 21",
        "optionE": "",
        "optionF": "",
        "correctAnswer": "C",
        "explanation": "Article 17 abolishes untouchability and forbids its practice in any form.",
        "difficulty": "easy",
        "marks": "2",
        "negativeMarks": "0.66",
        "tags": "fundamental rights, constitution",
        "keywords": "untouchability, article 17",
    }

    INSTRUCTIONS = [
        ("questionId", "No", "Leave blank to generate one. Must be unique."),
        ("year", "Yes", f"Exam year between {YEAR_MIN} and {YEAR_MAX}"),
        ("examType", "Yes", f"One of: {', '.join(EXAM_TYPES)}"),
        ("examName", "Yes", f"Up to {TEXT_LIMITS['exam_name']} characters"),
        ("paperNumber", "No", "Paper the question appeared in"),
        ("questionNumber", "No", "Question number within the paper"),
        ("subject", "Yes", "Must match an active subject name"),
        ("topic", "No", f"Up to {TEXT_LIMITS['topic']} characters"),
        ("subTopic", "No", f"Up to {TEXT_LIMITS['sub_topic']} characters"),
        ("questionText", "Yes", f"Up to {TEXT_LIMITS['question_text']} characters"),
        ("optionA..optionF", "Yes", f"At least {MIN_OPTIONS} options. Leave unused options blank."),
        ("correctAnswer", "Yes", "Option label or answer text"),
        ("explanation", "No", f"Up to {TEXT_LIMITS['explanation']} characters"),
        ("difficulty", "No", f"One of: {', '.join(DIFFICULTY_LEVELS)}. Defaults to medium."),
        ("marks", "No", f"Number between {MARKS_MIN} and {MARKS_MAX}. Defaults to 1."),
        ("negativeMarks", "No", f"Number between {MARKS_MIN} and {MARKS_MAX}. Defaults to 0."),
        ("tags", "No", "Comma separated"),
        ("keywords", "No", "Comma separated"),
    ]

    def __init__(self, staging_dir: Optional[str] = None):
        self.staging_dir = staging_dir or config.IMPORT_STAGING_DIR

    def normalize_text_data(self, value: Any) -> str:
        """
        Normalize cell data by removing leading/trailing spaces and handling empty values.

        JSON rows may carry tags or keywords as lists; those are joined with commas.
        """
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(self.normalize_text_data(item) for item in value)
        if isinstance(value, float) and pd.isna(value):
            return ""
        return str(value).strip()

    def normalize_row(self, row: Dict[str, Any]) -> Dict[str, str]:
        return {str(key).strip(): self.normalize_text_data(value) for key, value in row.items()}

    def _read_frame(self, file_name: str, content: bytes) -> pd.DataFrame:
        extension = os.path.splitext(file_name or "")[1].lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise ImportFileParseError(file_name, "Only .csv and .xlsx files are supported")

        try:
            if extension == ".csv":
                df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
            else:
                df = pd.read_excel(io.BytesIO(content), dtype=str, keep_default_na=False, engine="openpyxl")
        except Exception as e:
            logger.error(f"Error loading import file {file_name}: {str(e)}")
            raise ImportFileParseError(file_name, str(e) or e.__class__.__name__) from e

        if df.empty:
            raise ImportFileParseError(file_name, "File contains no question rows")
        return df

    def _parse(self, file_name: str, content: bytes) -> List[Dict[str, str]]:
        df = self._read_frame(file_name, content)
        logger.info(f"Loaded {file_name} with {len(df)} rows")
        return [self.normalize_row(record) for record in df.to_dict("records")]

    async def parse_file(self, file_name: str, content: bytes) -> List[Dict[str, str]]:
        """
        Parse an uploaded file into normalised row dicts, in file order.

        Raises:
            ImportFileParseError: unsupported extension, unreadable or empty file
        """
        return await run_in_threadpool(self._parse, file_name, content)

    def _generate_user_friendly_error_message(self, error_type: str, details: List[str]) -> str:
        if error_type == "missing_required_field":
            if len(details) == 1:
                return f"Required field '{details[0]}' is missing or empty"
            return f"Required fields are missing or empty: {', '.join(details)}"
        if error_type == "lookup_failed":
            return f"Subject '{details[0]}' is not a recognised subject"
        return "; ".join(details)

    @staticmethod
    def _parse_year(raw: str) -> Optional[int]:
        try:
            number = float(raw)
        except ValueError:
            return None
        if not number.is_integer():
            return None
        return int(number)

    @staticmethod
    def _parse_marks(raw: str) -> Optional[float]:
        try:
            value = float(raw)
        except ValueError:
            return None
        if pd.isna(value) or not MARKS_MIN <= value <= MARKS_MAX:
            return None
        return value

    def validate_row(self, row: Dict[str, Any], row_number: int, valid_subjects: Collection[str]) -> RowValidation:
        """
        Validate a single row and build the question document for it.

        Every problem in the row is reported, not only the first one.
        """
        data = self.normalize_row(row)
        result = RowValidation(row_number=row_number, data=data)
        errors = result.errors

        missing = [column for column in self.REQUIRED_COLUMNS if not data.get(column)]
        if missing:
            errors.append(self._generate_user_friendly_error_message("missing_required_field", missing))
            result.error_type = ValidationErrorType.MISSING_REQUIRED_FIELD

        def invalid(message: str):
            errors.append(message)
            result.error_type = result.error_type or ValidationErrorType.INVALID_DATA_TYPE

        year = None
        if data.get("year"):
            year = self._parse_year(data["year"])
            if year is None or not YEAR_MIN <= year <= YEAR_MAX:
                invalid(f"Year must be between {YEAR_MIN} and {YEAR_MAX}")

        exam_type = data.get("examType", "").lower()
        if exam_type and exam_type not in EXAM_TYPES:
            invalid(f"Exam type must be one of: {', '.join(EXAM_TYPES)}")

        subject = data.get("subject", "")
        if subject and subject not in valid_subjects:
            errors.append(self._generate_user_friendly_error_message("lookup_failed", [subject]))
            result.error_type = result.error_type or ValidationErrorType.LOOKUP_FAILED

        for column, store_field in (
            ("examName", "exam_name"),
            ("questionText", "question_text"),
            ("explanation", "explanation"),
            ("topic", "topic"),
            ("subTopic", "sub_topic"),
            ("correctAnswer", "correct_answer"),
            ("paperNumber", "paper_number"),
            ("questionNumber", "question_number"),
        ):
            limit = TEXT_LIMITS[store_field]
            if len(data.get(column, "")) > limit:
                invalid(f"{column} cannot exceed {limit} characters")

        options = {
            label: data[f"option{label}"]
            for label in OPTION_LABELS
            if data.get(f"option{label}")
        }
        if len(options) < MIN_OPTIONS:
            invalid(f"At least {MIN_OPTIONS} options are required")

        difficulty = data.get("difficulty", "").lower() or "medium"
        if difficulty not in DIFFICULTY_LEVELS:
            invalid(f"Difficulty must be one of: {', '.join(DIFFICULTY_LEVELS)}")

        marks = 1.0
        if data.get("marks"):
            marks = self._parse_marks(data["marks"])
            if marks is None:
                invalid(f"Marks must be a number between {MARKS_MIN} and {MARKS_MAX}")

        negative_marks = 0.0
        if data.get("negativeMarks"):
            negative_marks = self._parse_marks(data["negativeMarks"])
            if negative_marks is None:
                invalid(f"Negative marks must be a number between {MARKS_MIN} and {MARKS_MAX}")

        if errors:
            return result

        result.document = {
            "year": year,
            "exam_type": exam_type,
            "exam_name": data["examName"],
            "paper_number": data.get("paperNumber") or None,
            "question_number": data.get("questionNumber") or None,
            "subject": subject,
            "topic": data.get("topic") or None,
            "sub_topic": data.get("subTopic") or None,
            "question_text": data["questionText"],
            "options": options,
            "correct_answer": data["correctAnswer"],
            "explanation": data.get("explanation") or None,
            "difficulty": difficulty,
            "marks": marks,
            "negative_marks": negative_marks,
            "tags": split_terms(data.get("tags")),
            "keywords": split_terms(data.get("keywords")),
        }
        if data.get("questionId"):
            result.document["question_id"] = data["questionId"]
        return result

    def validate_rows(self, rows: List[Dict[str, Any]], valid_subjects: Iterable[str]) -> BatchValidation:
        valid_subjects = set(valid_subjects)
        batch = BatchValidation(rows=[
            # Row 1 is the header
            self.validate_row(row, index + 2, valid_subjects)
            for index, row in enumerate(rows)
        ])

        invalid = batch.invalid
        if invalid:
            summary = self.generate_error_summary([row.to_row_error() for row in invalid])
            logger.info(f"Import validation: {len(invalid)} of {len(batch.rows)} rows rejected {summary}")
        return batch

    def generate_error_summary(self, errors: List[RowError]) -> Dict[str, Any]:
        """Summarise errors by type with a sample message and row for each."""
        error_summary = {}
        for error in errors:
            error_type = error.error_type.value
            if error_type not in error_summary:
                error_summary[error_type] = {
                    "count": 0,
                    "sample_message": error.error_message,
                    "sample_row": error.row_number
                }
            error_summary[error_type]["count"] += 1
        return error_summary

    def _staging_path(self, temp_file_name: str) -> str:
        if not temp_file_name or not STAGED_FILE_PATTERN.match(temp_file_name):
            raise QuestionValidationError({"tempFileName": "Invalid staged file name"})
        return os.path.join(self.staging_dir, temp_file_name)

    def _write_staged(self, temp_file_name: str, payload: Dict[str, Any]):
        os.makedirs(self.staging_dir, exist_ok=True)
        with open(os.path.join(self.staging_dir, temp_file_name), "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False)

    def _read_staged(self, path: str, temp_file_name: str) -> List[Dict[str, Any]]:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)["documents"]
        except (ValueError, KeyError) as e:
            raise ImportFileParseError(temp_file_name, "Staged batch is corrupt") from e

    async def stage(self, file_name: str, content: bytes, db: AsyncSession) -> Dict[str, Any]:
        """
        Phase 1: parse and validate a file, then stage the valid rows for confirmation.

        Nothing is staged when no row is valid; tempFileName is then None.
        """
        rows = await self.parse_file(file_name, content)
        valid_subjects = await SubjectService.get_valid_subject_names(db)
        batch = self.validate_rows(rows, valid_subjects)

        summary = batch.summary(config.IMPORT_PREVIEW_LIMIT, config.IMPORT_ERROR_LIMIT)
        summary["temp_file_name"] = None

        valid = batch.valid
        if valid:
            temp_file_name = f"temp_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.json"
            await run_in_threadpool(self._write_staged, temp_file_name, {
                "file_name": file_name,
                "documents": [{"row": row.row_number, "document": row.document} for row in valid],
            })
            summary["temp_file_name"] = temp_file_name
            logger.info(f"Staged {len(valid)} rows from {file_name} as {temp_file_name}")

        return summary

    async def confirm(self, temp_file_name: str, db: AsyncSession, user_id: Optional[str]) -> ImportResult:
        """Phase 2: insert a staged batch. The staging file is removed whatever the outcome."""
        path = self._staging_path(temp_file_name)
        if not os.path.exists(path):
            raise StagedImportNotFoundError(temp_file_name)

        try:
            entries = self._read_staged(path, temp_file_name)
            result = await self.insert_documents(
                entries, db, user_id, source_document=f"{IMPORT_SOURCE_PREFIX}{temp_file_name}"
            )
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass

        logger.info(
            f"Import {temp_file_name} by {user_id}: "
            f"{result.successfully_imported} imported, {result.failed} failed"
        )
        return result

    def cancel(self, temp_file_name: str) -> bool:
        """Discard a staged batch. Returns whether a file was removed."""
        path = self._staging_path(temp_file_name)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        logger.info(f"Cancelled staged import {temp_file_name}")
        return True

    async def import_rows(
        self,
        rows: List[Dict[str, Any]],
        db: AsyncSession,
        user_id: Optional[str],
        valid_subjects: Optional[Iterable[str]] = None
    ) -> ImportResult:
        """Validate and insert JSON rows in one call. Invalid rows count as failed."""
        if valid_subjects is None:
            valid_subjects = await SubjectService.get_valid_subject_names(db)
        batch = self.validate_rows(rows, valid_subjects)

        rejected = [{"row": row.row_number, "question_id": None, "errors": row.errors} for row in batch.invalid]
        entries = [{"row": row.row_number, "document": row.document} for row in batch.valid]
        inserted = await self.insert_documents(entries, db, user_id, source_document=f"{IMPORT_SOURCE_PREFIX}json")

        result = ImportResult(
            total_attempted=len(rows),
            successfully_imported=inserted.successfully_imported,
            failed=len(rejected) + inserted.failed,
            errors=rejected + inserted.errors,
        )
        logger.info(
            f"JSON import by {user_id}: {result.successfully_imported} imported, {result.failed} failed"
        )
        return result

    def _build_question(self, document: Dict[str, Any], source_document: str, user_id: Optional[str]) -> Question:
        return Question(**document, source_document=source_document, created_by=user_id, updated_by=user_id)

    async def insert_documents(
        self,
        entries: List[Dict[str, Any]],
        db: AsyncSession,
        user_id: Optional[str],
        source_document: str
    ) -> ImportResult:
        """
        Insert staged documents without stopping at the first failure.

        The whole batch is tried in one transaction first. If that fails it is
        rolled back and every document is committed on its own, so only the
        offending rows are reported.
        """
        if not entries:
            return ImportResult(total_attempted=0, successfully_imported=0, failed=0, errors=[])

        try:
            for entry in entries:
                db.add(self._build_question(entry["document"], source_document, user_id))
            await db.commit()
            return ImportResult(
                total_attempted=len(entries), successfully_imported=len(entries), failed=0, errors=[]
            )
        except (IntegrityError, QuestionValidationError) as e:
            await db.rollback()
            logger.warning(f"Batch insert failed ({e.__class__.__name__}), retrying row by row")

        imported = 0
        errors: List[Dict[str, Any]] = []
        for entry in entries:
            row_number, document = entry.get("row"), entry["document"]
            failure = self._insert_failure(row_number, document)
            try:
                db.add(self._build_question(document, source_document, user_id))
                await db.commit()
                imported += 1
            except IntegrityError as e:
                await db.rollback()
                conflict = DatabaseErrorHandler.to_conflict(e, "import")
                failure["errors"].append(conflict.message)
                errors.append(failure)
            except QuestionValidationError as e:
                await db.rollback()
                failure["errors"].extend(str(message) for message in e.errors.values())
                errors.append(failure)

        for failure in errors:
            logger.warning(f"Import row {failure['row']} rejected: {'; '.join(failure['errors'])}")

        return ImportResult(
            total_attempted=len(entries),
            successfully_imported=imported,
            failed=len(errors),
            errors=errors,
        )

    @staticmethod
    def _insert_failure(row_number: Optional[int], document: Dict[str, Any]) -> Dict[str, Any]:
        return {"row": row_number, "question_id": document.get("question_id"), "errors": []}

    def build_template(self, fmt: str = "xlsx") -> Tuple[bytes, str, str]:
        """
        Build a blank import template with one sample row.

        Returns:
            (content, media type, file name)
        """
        fmt = (fmt or "").lower()
        df = pd.DataFrame([self.SAMPLE_ROW], columns=self.TEMPLATE_COLUMNS)

        if fmt == "csv":
            content = df.to_csv(index=False).encode("utf-8")
            return content, "text/csv", "pyq_import_template.csv"

        if fmt == "xlsx":
            instructions = pd.DataFrame(self.INSTRUCTIONS, columns=["Column", "Required", "Rules"])
            buffer = io.BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                df.to_excel(writer, sheet_name="Questions", index=False)
                instructions.to_excel(writer, sheet_name="Instructions", index=False)
            return (
                buffer.getvalue(),
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                "pyq_import_template.xlsx",
            )

        raise QuestionValidationError({"format": "Template format must be csv or xlsx"})


# Create a singleton instance for use across the application
bulk_import_service = BulkImportService()
