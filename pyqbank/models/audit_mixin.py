from sqlalchemy import Column, DateTime, String, func


class AuditMixin:
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
    # Principal ids come from the token subject, so they are strings
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
