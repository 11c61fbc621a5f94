"""Admin / Audit API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import AuditLogOut
from marketplace.services.audit_service import audit_service
from marketplace.services.module_cache import module_cache
from marketplace.core.access import Authorize, authenticate_user

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit", dependencies=[Depends(authenticate_user), Depends(Authorize(min_level=50))])
def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Query audit logs (senior staff only)."""
    result = audit_service.query_logs(
        db, actor_type, actor_id, action, resource_type, page, page_size,
    )
    return {
        "logs": [
            AuditLogOut.model_validate(log)
            for log in result["logs"]
        ],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """System health check — database and module cache."""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        pass

    return {
        "database": "ok" if db_ok else "error",
        "module_cache_entries": len(module_cache),
        "status": "healthy" if db_ok else "degraded",
    }
