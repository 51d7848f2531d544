# finsage/models/inquiry.py
"""Demo/contact inquiries submitted from the public website."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
import ulid

from ..database import Base


class Inquiry(Base):
    __tablename__ = "inquiries"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    work_email = Column(String(255), nullable=False)
    mobile_number = Column(String(32), nullable=True)
    job_title = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=False)
    company_size = Column(String(64), nullable=True)
    country = Column(String(8), nullable=True)
    message = Column(Text, nullable=True)
    client_ip = Column(String(64), nullable=True)
    # new | contacted | closed
    status = Column(String(20), nullable=False, default="new")
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
