"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from finsight.config import settings
from finsight.domain.aggregator import RecordStore
from finsight.domain.engine import ReasoningEngine
from finsight.infrastructure.clients.records import HttpRecordStore
from finsight.infrastructure.database.repositories import SqlRecordStore
from finsight.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    """Caller identity, already authenticated upstream"""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    return x_owner_id.strip()


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    """Provide the configured record store"""
    if settings.record_store_backend == "http":
        return HttpRecordStore()
    return SqlRecordStore(db)


def get_engine(store: RecordStore = Depends(get_record_store)) -> ReasoningEngine:
    """Provide a reasoning engine bound to this request's record store"""
    return ReasoningEngine(store)
