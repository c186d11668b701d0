from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from pyqbank.schemas.common import CamelModel

ExamType = Literal["prelims", "mains", "optional"]
Difficulty = Literal["easy", "medium", "hard"]
QuestionStatus = Literal["draft", "published", "archived"]

MEDIA_FIELDS = ("question_images", "explanation_images", "explanation_videos")


############## media descriptors ################
class MediaImage(CamelModel):
    url: str = Field(..., description="Asset URL issued by the media host")
    caption: Optional[str] = Field(None, description="Optional caption")
    public_id: Optional[str] = Field(None, description="Provider asset id")


class MediaVideo(CamelModel):
    url: str = Field(..., description="Video URL issued by the media host")
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    duration: Optional[float] = Field(None, ge=0, description="Duration in seconds")
    public_id: Optional[str] = None


class _QuestionWriteModel(CamelModel):

    @field_validator("exam_type", "difficulty", "status", mode="before", check_fields=False)
    @classmethod
    def lowercase_enums(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_store_dict(self, exclude_unset: bool = False) -> Dict[str, Any]:
        """Snake_case attributes for the model; media kept in their camelCase wire form."""
        data = self.model_dump(exclude_unset=exclude_unset)
        for field in MEDIA_FIELDS:
            if data.get(field) is not None:
                data[field] = [
                    item.model_dump(by_alias=True, exclude_none=True)
                    for item in getattr(self, field)
                ]
        return data


############## create / update ################
class QuestionCreateRequest(_QuestionWriteModel):
    year: int = Field(..., ge=2000, le=2035, description="Exam year")
    exam_type: ExamType = Field(..., description="prelims, mains or optional")
    exam_name: str = Field(..., min_length=1, max_length=200, description="e.g. 'UPSC CSE'")
    paper_number: Optional[str] = Field(None, max_length=50)
    subject: str = Field(..., min_length=1, max_length=100)
    topic: Optional[str] = Field(None, max_length=100)
    sub_topic: Optional[str] = Field(None, max_length=100)
    question_text: str = Field(..., min_length=1, max_length=15000)
    options: Dict[str, str] = Field(..., description="Label (A-F) to option text, at least 2 entries")
    correct_answer: str = Field(..., min_length=1, max_length=500)
    explanation: Optional[str] = Field(None, max_length=10000)
    question_images: List[MediaImage] = Field(default_factory=list)
    explanation_images: List[MediaImage] = Field(default_factory=list)
    explanation_videos: List[MediaVideo] = Field(default_factory=list)
    difficulty: Difficulty = "medium"
    marks: float = Field(1, ge=0, le=250)
    negative_marks: float = Field(0, ge=0, le=250)
    source_document: Optional[str] = Field(None, max_length=255)
    question_number: Optional[str] = Field(None, max_length=50)
    tags: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    status: QuestionStatus = "published"

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "year": 2023,
                "examType": "prelims",
                "examName": "UPSC CSE",
                "subject": "Polity",
                "topic": "Constitution",
                "questionText": "Which Article of the Constitution deals with the Right to Equality?",
                "options": {"A": "Article 12", "B": "Article 14", "C": "Article 19", "D": "Article 21"},
                "correctAnswer": "B",
                "explanation": "Article 14 guarantees equality before law.",
                "difficulty": "easy",
                "tags": ["fundamental rights"],
                "keywords": ["equality"]
            }
        }
    )


class QuestionUpdateRequest(_QuestionWriteModel):
    """Partial update. Identity, audit and counter fields are rejected as unknown keys."""

    model_config = ConfigDict(extra="forbid")

    year: Optional[int] = Field(None, ge=2000, le=2035)
    exam_type: Optional[ExamType] = None
    exam_name: Optional[str] = Field(None, min_length=1, max_length=200)
    paper_number: Optional[str] = Field(None, max_length=50)
    subject: Optional[str] = Field(None, min_length=1, max_length=100)
    topic: Optional[str] = Field(None, max_length=100)
    sub_topic: Optional[str] = Field(None, max_length=100)
    question_text: Optional[str] = Field(None, min_length=1, max_length=15000)
    options: Optional[Dict[str, str]] = None
    correct_answer: Optional[str] = Field(None, min_length=1, max_length=500)
    explanation: Optional[str] = Field(None, max_length=10000)
    question_images: Optional[List[MediaImage]] = None
    explanation_images: Optional[List[MediaImage]] = None
    explanation_videos: Optional[List[MediaVideo]] = None
    difficulty: Optional[Difficulty] = None
    marks: Optional[float] = Field(None, ge=0, le=250)
    negative_marks: Optional[float] = Field(None, ge=0, le=250)
    source_document: Optional[str] = Field(None, max_length=255)
    question_number: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    status: Optional[QuestionStatus] = None
    is_active: Optional[bool] = None


############## responses ################
class QuestionResponse(CamelModel):
    id: int
    question_id: str
    year: int
    exam_type: str
    exam_name: str
    paper_number: Optional[str] = None
    subject: str
    topic: Optional[str] = None
    sub_topic: Optional[str] = None
    question_text: str
    options: Dict[str, str]
    correct_answer: str
    explanation: Optional[str] = None
    question_images: List[Dict[str, Any]] = Field(default_factory=list)
    explanation_images: List[Dict[str, Any]] = Field(default_factory=list)
    explanation_videos: List[Dict[str, Any]] = Field(default_factory=list)
    difficulty: str
    marks: float
    negative_marks: float
    source_document: Optional[str] = None
    question_number: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    has_answer: bool
    status: str
    is_active: bool
    is_verified: bool
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    view_count: int
    attempt_count: int
    correct_attempt_count: int
    bookmark_count: int
    success_rate: float
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class QuestionPageResponse(CamelModel):
    questions: List[QuestionResponse]
    pagination: Pagination


############## facets ################
class SubjectCount(CamelModel):
    name: str
    count: int


class FilterOptionsResponse(CamelModel):
    years: List[int]
    exam_types: List[str]
    subjects: List[SubjectCount]
    topics: Dict[str, List[str]]


class CountBucket(CamelModel):
    id: Union[int, str, None] = Field(..., alias="_id")
    count: int


class StatisticsResponse(CamelModel):
    total: int
    by_year: List[CountBucket]
    by_exam_type: List[CountBucket]
    by_subject: List[CountBucket]
    by_difficulty: List[CountBucket]
    with_answers: int
    verified: int


############## engagement ################
class AttemptRequest(CamelModel):
    is_correct: bool


class AttemptResponse(CamelModel):
    attempt_count: int
    correct_attempt_count: int
    success_rate: float


class BookmarkRequest(CamelModel):
    increment: bool = True


class BookmarkResponse(CamelModel):
    bookmark_count: int


############## admin ################
class BulkDeleteRequest(CamelModel):
    ids: List[str] = Field(..., min_length=1, description="questionId values to soft delete")


class BulkDeleteResponse(CamelModel):
    modified_count: int


class UploadHistoryEntry(CamelModel):
    uploaded_by: Optional[str] = None
    date: str
    count: int
