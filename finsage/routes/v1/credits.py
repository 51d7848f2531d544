# finsage/routes/v1/credits.py
"""
Credits routes - API v1

Endpoints:
    POST /requests                      -> Submit a credit request
    GET  /requests                      -> Admin: list requests
    POST /requests/{request_id}/decision -> Admin: approve or reject
    GET  /balances                      -> Caller's balances
    POST /sessions/{session_id}/book    -> Redeem credits for a coaching session
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_caller, require_admin
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...database import get_db
from ...principal import CallerContext
from ...schemas.credit import (
    CreditBalancesResponse,
    CreditDecisionRequest,
    CreditDecisionResponse,
    CreditRequestCreate,
    CreditRequestListResponse,
    CreditRequestResponse,
    SessionBookingEnvelope,
    SessionBookingResponse,
)
from ...services.credit_service import CreditService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["credits-v1"])


def get_credit_service(db: Session = Depends(get_db)) -> CreditService:
    return CreditService(db)


@router.post("/requests", response_model=CreditRequestResponse)
async def submit_credit_request(
    request: CreditRequestCreate,
    caller: CallerContext = Depends(get_caller),
    service: CreditService = Depends(get_credit_service),
) -> CreditRequestResponse:
    created = await asyncio.to_thread(
        service.submit_request,
        caller,
        request.requested_amount,
        request.service_type,
        request.reason,
    )
    return CreditRequestResponse.model_validate(created)


@router.get("/requests", response_model=CreditRequestListResponse)
async def list_credit_requests(
    status: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    admin: CallerContext = Depends(require_admin),
    service: CreditService = Depends(get_credit_service),
) -> CreditRequestListResponse:
    requests = await asyncio.to_thread(service.list_requests, admin, status, limit)
    return CreditRequestListResponse(
        requests=[CreditRequestResponse.model_validate(r) for r in requests]
    )


@router.post("/requests/{request_id}/decision", response_model=CreditDecisionResponse)
async def decide_credit_request(
    request_id: str,
    decision: CreditDecisionRequest,
    admin: CallerContext = Depends(require_admin),
    service: CreditService = Depends(get_credit_service),
) -> CreditDecisionResponse:
    result = await asyncio.to_thread(
        service.decide_request, admin, request_id, decision.approve, decision.admin_notes
    )
    return CreditDecisionResponse(**result)


@router.get("/balances", response_model=CreditBalancesResponse)
async def get_balances(
    caller: CallerContext = Depends(get_caller),
    service: CreditService = Depends(get_credit_service),
) -> CreditBalancesResponse:
    balances = await asyncio.to_thread(service.get_balances, caller.user_id)
    return CreditBalancesResponse(balances=balances)


@router.post("/sessions/{session_id}/book", response_model=SessionBookingEnvelope)
async def book_session_with_credits(
    session_id: str,
    caller: CallerContext = Depends(get_caller),
    service: CreditService = Depends(get_credit_service),
) -> SessionBookingEnvelope:
    booking = await asyncio.to_thread(service.book_session_with_credits, caller, session_id)
    return SessionBookingEnvelope(
        booking=SessionBookingResponse.model_validate(booking),
        session_date=booking.session.session_date if booking.session else None,
        session_time=booking.session.session_time if booking.session else None,
    )
