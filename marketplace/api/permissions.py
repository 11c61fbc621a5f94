"""Permissions API router."""

from typing import Optional, List, Union
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import (
    PermissionCreate, PermissionUpdate, PermissionOut, MessageResponse,
)
from marketplace.services.permission_service import permission_service
from marketplace.services.permission_evaluator import permission_evaluator, permission_view
from marketplace.services.audit_service import audit_service
from marketplace.core.access import (
    CurrentPrincipal, authenticate_any, current_principal, permission_gates,
)

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.post(
    "/", response_model=List[PermissionOut], status_code=201,
    dependencies=permission_gates("Permissions", "create", min_level=10),
)
def create_permissions(
    body: Union[PermissionCreate, List[PermissionCreate]],
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentPrincipal = Depends(current_principal),
):
    """Grant one permission or a batch; a duplicate anywhere rejects the batch."""
    items = body if isinstance(body, list) else [body]
    permissions = permission_service.create_many(
        db,
        [p.model_dump() for p in items],
        granted_by_type=current.principal_type.value,
        granted_by_id=current.id,
    )
    created = [PermissionOut.model_validate(p) for p in permissions]
    for permission in created:
        audit_service.log_from_request(
            db, request, "permission.created", "permission", str(permission.id),
            new_value=permission.model_dump(),
        )
    return created


@router.get("/", dependencies=permission_gates("Permissions", "view", min_level=5))
def list_permissions(
    role_code: Optional[str] = Query(None),
    module_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List non-deleted permissions with filters."""
    return permission_service.list_permissions(db, role_code, module_id, is_active, page, page_size)


@router.get("/my", dependencies=[Depends(authenticate_any)])
def get_my_permissions(
    db: Session = Depends(get_db),
    current: CurrentPrincipal = Depends(current_principal),
):
    """Permissions of the authenticated principal's role, joined to module names."""
    return {"permissions": permission_evaluator.permission_views(db, current.role)}


@router.get("/{permission_id}", dependencies=permission_gates("Permissions", "view", min_level=5))
def get_permission(permission_id: int, db: Session = Depends(get_db)):
    """Get a single permission."""
    return permission_view(permission_service.get(db, permission_id))


@router.put(
    "/{permission_id}", response_model=PermissionOut,
    dependencies=permission_gates("Permissions", "update", min_level=10),
)
def update_permission(
    permission_id: int,
    body: PermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Change capability flags or the active flag."""
    changes = body.model_dump(exclude_unset=True)
    before = permission_service.get(db, permission_id).capabilities()
    permission = permission_service.update(db, permission_id, **changes)
    result = PermissionOut.model_validate(permission)
    audit_service.log_from_request(
        db, request, "permission.updated", "permission", str(permission_id),
        old_value=before, new_value=changes,
    )
    return result


@router.delete(
    "/{permission_id}", response_model=MessageResponse,
    dependencies=permission_gates("Permissions", "delete", min_level=10),
)
def delete_permission(permission_id: int, request: Request, db: Session = Depends(get_db)):
    """Soft-delete a permission."""
    permission_service.soft_delete(db, permission_id)
    audit_service.log_from_request(db, request, "permission.deleted", "permission", str(permission_id))
    return MessageResponse(message="Permission soft deleted")


@router.post(
    "/{permission_id}/restore", response_model=PermissionOut,
    dependencies=permission_gates("Permissions", "update", min_level=10),
)
def restore_permission(permission_id: int, request: Request, db: Session = Depends(get_db)):
    """Restore a soft-deleted permission."""
    permission = permission_service.restore(db, permission_id)
    result = PermissionOut.model_validate(permission)
    audit_service.log_from_request(db, request, "permission.restored", "permission", str(permission_id))
    return result


@router.delete(
    "/{permission_id}/permanent", response_model=MessageResponse,
    dependencies=permission_gates("Permissions", "delete", min_level=10),
)
def permanent_delete_permission(permission_id: int, request: Request, db: Session = Depends(get_db)):
    """Permanently delete a permission row."""
    permission_service.permanent_delete(db, permission_id)
    audit_service.log_from_request(db, request, "permission.purged", "permission", str(permission_id))
    return MessageResponse(message="Permission deleted successfully")
