# finsage/schemas/inquiry.py
"""Public inquiry form."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ._strict_base import StrictRequestModel


class InquiryCreate(StrictRequestModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    work_email: EmailStr
    mobile_number: Optional[str] = Field(None, max_length=32)
    job_title: Optional[str] = Field(None, max_length=255)
    company_name: str = Field(..., min_length=1, max_length=255)
    company_size: Optional[str] = Field(None, max_length=64)
    country: Optional[str] = Field(None, max_length=8)
    message: Optional[str] = Field(None, max_length=5000)


class InquiryResponse(BaseModel):
    success: bool = True
    inquiry_id: str
    message: str = "Thank you! We will be in touch shortly."
