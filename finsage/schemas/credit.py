# finsage/schemas/credit.py
"""Credit request, decision and balance schemas."""

from datetime import date, datetime, time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import MAX_REASON_LENGTH
from ._strict_base import StrictRequestModel


class CreditRequestCreate(StrictRequestModel):
    requested_amount: int = Field(..., description="Number of credits requested")
    service_type: str
    reason: str = Field(..., max_length=MAX_REASON_LENGTH)


class CreditRequestResponse(BaseModel):
    id: str
    user_id: str
    requested_amount: int
    service_type: str
    reason: str
    status: str
    admin_id: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    decided_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CreditRequestListResponse(BaseModel):
    success: bool = True
    requests: List[CreditRequestResponse]


class CreditDecisionRequest(StrictRequestModel):
    approve: bool
    admin_notes: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class CreditDecisionResponse(BaseModel):
    success: bool
    already_processed: bool
    status: str
    balance: Optional[int] = None


class CreditBalancesResponse(BaseModel):
    success: bool = True
    balances: Dict[str, int]


class SessionBookingResponse(BaseModel):
    id: str
    session_id: str
    status: str
    credits_used: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionBookingEnvelope(BaseModel):
    success: bool = True
    booking: SessionBookingResponse
    session_date: Optional[date] = None
    session_time: Optional[time] = None
