"""Roles API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import RoleCreate, RoleUpdate, RoleOut, MessageResponse
from marketplace.services.role_service import role_service
from marketplace.services.audit_service import audit_service
from marketplace.core.access import permission_gates

router = APIRouter(prefix="/roles", tags=["roles"])


@router.post(
    "/", response_model=RoleOut, status_code=201,
    dependencies=permission_gates("Roles", "create", min_level=10),
)
def create_role(body: RoleCreate, request: Request, db: Session = Depends(get_db)):
    """Create a role."""
    role = role_service.create(
        db, body.code, body.name, body.level, body.is_super_admin, body.description,
    )
    audit_service.log_from_request(
        db, request, "role.created", "role", str(role.id),
        new_value=body.model_dump(),
    )
    return role


@router.get("/", dependencies=permission_gates("Roles", "view", min_level=5))
def list_roles(
    search: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List roles."""
    result = role_service.list_roles(db, search, include_deleted, page, page_size)
    return {
        "roles": [RoleOut.model_validate(r) for r in result["roles"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.get(
    "/{role_id}", response_model=RoleOut,
    dependencies=permission_gates("Roles", "view", min_level=5),
)
def get_role(role_id: int, db: Session = Depends(get_db)):
    """Get a single role."""
    return role_service.get(db, role_id)


@router.put(
    "/{role_id}", response_model=RoleOut,
    dependencies=permission_gates("Roles", "update", min_level=10),
)
def update_role(role_id: int, body: RoleUpdate, request: Request, db: Session = Depends(get_db)):
    """Update a role."""
    changes = body.model_dump(exclude_unset=True)
    role = role_service.update(db, role_id, **changes)
    audit_service.log_from_request(
        db, request, "role.updated", "role", str(role_id), new_value=changes,
    )
    return role


@router.delete(
    "/{role_id}", response_model=MessageResponse,
    dependencies=permission_gates("Roles", "delete", min_level=10),
)
def delete_role(role_id: int, request: Request, db: Session = Depends(get_db)):
    """Soft-delete a role."""
    role_service.soft_delete(db, role_id)
    audit_service.log_from_request(db, request, "role.deleted", "role", str(role_id))
    return MessageResponse(message="Role soft deleted")


@router.delete(
    "/{role_id}/permanent", response_model=MessageResponse,
    dependencies=permission_gates("Roles", "delete", min_level=10),
)
def permanent_delete_role(role_id: int, request: Request, db: Session = Depends(get_db)):
    """Permanently delete an unreferenced role."""
    role_service.permanent_delete(db, role_id)
    audit_service.log_from_request(db, request, "role.purged", "role", str(role_id))
    return MessageResponse(message="Role permanently deleted")


@router.put(
    "/{role_id}/restore", response_model=RoleOut,
    dependencies=permission_gates("Roles", "update", min_level=10),
)
def restore_role(role_id: int, request: Request, db: Session = Depends(get_db)):
    """Restore a soft-deleted role."""
    role = role_service.restore(db, role_id)
    audit_service.log_from_request(db, request, "role.restored", "role", str(role_id))
    return role
