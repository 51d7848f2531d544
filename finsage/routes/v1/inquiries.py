# finsage/routes/v1/inquiries.py
"""Public inquiry form - API v1. No authentication."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...schemas.inquiry import InquiryCreate, InquiryResponse
from ...services.inquiry_service import InquiryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["inquiries-v1"])


def get_inquiry_service(db: Session = Depends(get_db)) -> InquiryService:
    return InquiryService(db)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("", response_model=InquiryResponse)
async def submit_inquiry(
    payload: InquiryCreate,
    request: Request,
    service: InquiryService = Depends(get_inquiry_service),
) -> InquiryResponse:
    inquiry = await asyncio.to_thread(
        service.submit_inquiry, payload.model_dump(), _client_ip(request)
    )
    return InquiryResponse(inquiry_id=inquiry.id)
