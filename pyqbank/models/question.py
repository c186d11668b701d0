import time
import uuid

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, Index, Integer, String, Text, cast, event, func, literal_column
)
from sqlalchemy.orm import validates

from pyqbank.database import Base
from pyqbank.exceptions.question_exceptions import QuestionValidationError
from pyqbank.models.audit_mixin import AuditMixin
from pyqbank.utils.text import build_searchable_text, normalize_term_list

YEAR_MIN = 2000
YEAR_MAX = 2035
EXAM_TYPES = ("prelims", "mains", "optional")
DIFFICULTY_LEVELS = ("easy", "medium", "hard")
QUESTION_STATUSES = ("draft", "published", "archived")
OPTION_LABELS = ("A", "B", "C", "D", "E", "F")
MIN_OPTIONS = 2
MARKS_MIN = 0
MARKS_MAX = 250

TEXT_LIMITS = {
    "question_text": 15000,
    "explanation": 10000,
    "exam_name": 200,
    "subject": 100,
    "topic": 100,
    "sub_topic": 100,
    "correct_answer": 500,
    "paper_number": 50,
    "source_document": 255,
    "question_number": 50,
}

REQUIRED_FIELDS = ("year", "exam_type", "exam_name", "subject", "question_text", "options", "correct_answer")

# Fields owned by the store; general updates may never set them
IMMUTABLE_FIELDS = (
    "question_id", "created_by", "created_at", "searchable_text", "search_terms", "has_answer",
    "view_count", "attempt_count", "correct_attempt_count", "bookmark_count",
)


def generate_question_id() -> str:
    return f"Q-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def compute_success_rate(correct: int, attempts: int) -> float:
    """Percentage of correct attempts, rounded to two places. 0 when never attempted."""
    if not attempts:
        return 0.0
    return round(correct / attempts * 100, 2)


class Question(Base, AuditMixin):
    __tablename__ = "pyq_questions"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(String(40), unique=True, nullable=False, default=generate_question_id)

    # Exam classification
    year = Column(Integer, nullable=False)
    exam_type = Column(String(20), nullable=False)
    exam_name = Column(String(200), nullable=False)
    paper_number = Column(String(50), nullable=True)
    subject = Column(String(100), nullable=False)
    topic = Column(String(100), nullable=True)
    sub_topic = Column(String(100), nullable=True)

    # Content; options is an ordered label -> text mapping
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(String(500), nullable=False)
    explanation = Column(Text, nullable=True)

    # Media descriptors from the asset host, stored verbatim
    question_images = Column(JSON, nullable=False, default=list)
    explanation_images = Column(JSON, nullable=False, default=list)
    explanation_videos = Column(JSON, nullable=False, default=list)

    difficulty = Column(String(10), nullable=False, default="medium")
    marks = Column(Float, nullable=False, default=1)
    negative_marks = Column(Float, nullable=False, default=0)
    source_document = Column(String(255), nullable=True)
    question_number = Column(String(50), nullable=True)

    tags = Column(JSON, nullable=False, default=list)
    keywords = Column(JSON, nullable=False, default=list)

    # Derived on every write
    searchable_text = Column(Text, nullable=False, default="")
    # Tags and keywords, one per line, for substring matching
    search_terms = Column(Text, nullable=False, default="")
    has_answer = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default="published")
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_by = Column(String(100), nullable=True)
    verified_at = Column(DateTime, nullable=True)

    view_count = Column(Integer, nullable=False, default=0)
    attempt_count = Column(Integer, nullable=False, default=0)
    correct_attempt_count = Column(Integer, nullable=False, default=0)
    bookmark_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_pyq_year_exam_subject", "year", "exam_type", "subject"),
        Index("ix_pyq_exam_name_year", "exam_type", "exam_name", "year"),
        Index("ix_pyq_subject_topic", "subject", "topic"),
        Index("ix_pyq_year_active_verified", "year", "is_active", "is_verified"),
        Index("ix_pyq_public", "is_active", "status"),
    )

    @property
    def success_rate(self) -> float:
        return compute_success_rate(self.correct_attempt_count, self.attempt_count)

    @validates("options")
    def validate_options(self, key, options):
        if not isinstance(options, dict):
            raise QuestionValidationError({"options": "Options must be a mapping of label to text"})

        normalized = {}
        for label, text in options.items():
            label = str(label).strip().upper()
            if label not in OPTION_LABELS:
                raise QuestionValidationError({"options": f"Invalid option label '{label}'. Use A to F"})
            if text is None or not str(text).strip():
                raise QuestionValidationError({"options": f"Option {label} cannot be empty"})
            normalized[label] = str(text).strip()

        if len(normalized) < MIN_OPTIONS:
            raise QuestionValidationError({"options": f"At least {MIN_OPTIONS} options are required"})
        return {label: normalized[label] for label in OPTION_LABELS if label in normalized}

    @validates("year")
    def validate_year(self, key, year):
        if isinstance(year, bool) or not isinstance(year, int) or not YEAR_MIN <= year <= YEAR_MAX:
            raise QuestionValidationError({"year": f"Year must be between {YEAR_MIN} and {YEAR_MAX}"})
        return year

    @validates("exam_type")
    def validate_exam_type(self, key, exam_type):
        exam_type = (exam_type or "").strip().lower()
        if exam_type not in EXAM_TYPES:
            raise QuestionValidationError({"examType": f"Exam type must be one of: {', '.join(EXAM_TYPES)}"})
        return exam_type

    @validates("difficulty")
    def validate_difficulty(self, key, difficulty):
        difficulty = (difficulty or "medium").strip().lower()
        if difficulty not in DIFFICULTY_LEVELS:
            raise QuestionValidationError({"difficulty": f"Difficulty must be one of: {', '.join(DIFFICULTY_LEVELS)}"})
        return difficulty

    @validates("status")
    def validate_status(self, key, value):
        value = (value or "").strip().lower()
        if value not in QUESTION_STATUSES:
            raise QuestionValidationError({"status": f"Status must be one of: {', '.join(QUESTION_STATUSES)}"})
        return value

    @validates("marks", "negative_marks")
    def validate_marks(self, key, value):
        if value is None:
            value = 1 if key == "marks" else 0
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not MARKS_MIN <= value <= MARKS_MAX:
            raise QuestionValidationError({key: f"{key} must be between {MARKS_MIN} and {MARKS_MAX}"})
        return value

    @validates(*TEXT_LIMITS.keys())
    def validate_text_length(self, key, value):
        if value is None:
            return None
        value = str(value).strip()
        limit = TEXT_LIMITS[key]
        if len(value) > limit:
            raise QuestionValidationError({key: f"{key} cannot exceed {limit} characters"})
        return value

    @validates("tags", "keywords")
    def validate_terms(self, key, values):
        return normalize_term_list(values)

    def refresh_derived_fields(self):
        """Recompute the search columns and answer flag from the current fields."""
        self.searchable_text = build_searchable_text(
            question_text=self.question_text,
            explanation=self.explanation,
            subject=self.subject,
            topic=self.topic,
            sub_topic=self.sub_topic,
            exam_name=self.exam_name,
            tags=self.tags,
            keywords=self.keywords,
            options=self.options,
        )
        self.search_terms = "\n".join([*(self.tags or []), *(self.keywords or [])])
        self.has_answer = bool(self.explanation and self.explanation.strip())

    def check_required_fields(self):
        missing = {}
        for field in REQUIRED_FIELDS:
            value = getattr(self, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing[field] = f"{field} is required"
        if missing:
            raise QuestionValidationError(missing)


@event.listens_for(Question, "before_insert")
@event.listens_for(Question, "before_update")
def _prepare_question_write(mapper, connection, target):
    target.check_required_fields()
    target.refresh_derived_fields()


def weighted_search_vector(model=Question):
    """
    PostgreSQL tsvector over the searchable fields with per-field weights.

    question_text is weight A, keywords B, tags C and explanation D.
    """
    def _weighted(column, weight):
        return func.setweight(
            func.to_tsvector(literal_column("'english'"), func.coalesce(column, literal_column("''"))),
            literal_column(f"'{weight}'"),
        )

    return (
        _weighted(model.question_text, "A")
        .op("||")(_weighted(cast(model.keywords, Text), "B"))
        .op("||")(_weighted(cast(model.tags, Text), "C"))
        .op("||")(_weighted(model.explanation, "D"))
    )


Index(
    "ix_pyq_fulltext",
    weighted_search_vector(),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
