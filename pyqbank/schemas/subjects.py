"""
Pydantic schemas for the subject taxonomy.
"""

from typing import List, Optional

from pydantic import Field

from pyqbank.schemas.common import CamelModel


class TopicResponse(CamelModel):
    name: str
    code: str
    sub_topics: List[str] = Field(default_factory=list)
    display_order: int
    is_active: bool


class SubjectResponse(CamelModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    icon: Optional[str] = None
    display_order: int
    is_active: bool
    topics: List[TopicResponse] = Field(default_factory=list)


class SeedResponse(CamelModel):
    message: str
    count: int
