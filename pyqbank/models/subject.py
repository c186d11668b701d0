from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from pyqbank.database import Base
from pyqbank.models.audit_mixin import AuditMixin


class Subject(Base, AuditMixin):
    __tablename__ = "pyq_subjects"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    code = Column(String(20), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(20), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    topics = relationship(
        "SubjectTopic",
        back_populates="subject",
        order_by="SubjectTopic.display_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @validates("code")
    def validate_code(self, key, code):
        return code.strip().upper()


class SubjectTopic(Base):
    __tablename__ = "pyq_subject_topics"
    __table_args__ = (
        UniqueConstraint("subject_id", "code", name="uq_subject_topic_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("pyq_subjects.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=False)
    sub_topics = Column(JSON, nullable=False, default=list)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    subject = relationship("Subject", back_populates="topics")

    @validates("code")
    def validate_code(self, key, code):
        return code.strip().upper()
