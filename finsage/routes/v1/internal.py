# finsage/routes/v1/internal.py
"""Scheduler-triggered maintenance endpoints, guarded by INTERNAL_API_TOKEN."""

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import verify_internal_token
from ...database import get_db
from ...services.session_sweeper_service import SessionSweeperService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["internal-v1"], dependencies=[Depends(verify_internal_token)])


@router.post("/auto-end-sessions")
async def auto_end_sessions(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return await asyncio.to_thread(SessionSweeperService(db).run)
