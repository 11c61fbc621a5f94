"""Modules API router — modules, submodules, ordering and the dashboard menu."""

from typing import Optional, List, Union
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import (
    ModuleCreate, ModuleUpdate, ModuleOut,
    SubModuleCreate, SubModuleUpdate, SubModuleOut,
    ReorderRequest, MessageResponse,
)
from marketplace.services.module_service import module_service
from marketplace.services.audit_service import audit_service
from marketplace.core.access import (
    CurrentPrincipal, authenticate_any, current_principal, permission_gates,
)

router = APIRouter(prefix="/modules", tags=["modules"])


# ---- Module level ----

@router.post(
    "/", response_model=List[ModuleOut], status_code=201,
    dependencies=permission_gates("Modules", "create", min_level=10),
)
def create_modules(
    body: Union[ModuleCreate, List[ModuleCreate]],
    request: Request,
    db: Session = Depends(get_db),
):
    """Create one module or a batch of modules."""
    items = body if isinstance(body, list) else [body]
    modules = module_service.create_many(db, [m.model_dump() for m in items])
    created = [ModuleOut.model_validate(m) for m in modules]
    for module in created:
        audit_service.log_from_request(
            db, request, "module.created", "module", str(module.id), new_value={"name": module.name},
        )
    return created


@router.get("/", dependencies=permission_gates("Modules", "view", min_level=5))
def list_modules(
    is_active: Optional[bool] = Query(None),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List modules ordered by position."""
    result = module_service.list_modules(db, is_active, include_deleted, page, page_size)
    return {
        "modules": [ModuleOut.model_validate(m) for m in result["modules"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.get("/menu", dependencies=[Depends(authenticate_any)])
def get_menu(
    db: Session = Depends(get_db),
    current: CurrentPrincipal = Depends(current_principal),
):
    """Dashboard menu for the authenticated principal's role."""
    return {"menu": module_service.menu(db, current.role)}


@router.put(
    "/reorder", response_model=MessageResponse,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def reorder_modules(body: ReorderRequest, request: Request, db: Session = Depends(get_db)):
    """Update module positions."""
    module_service.reorder(db, [item.model_dump() for item in body.items])
    audit_service.log_from_request(
        db, request, "module.reordered", "module",
        new_value=[item.model_dump() for item in body.items],
    )
    return MessageResponse(message="Module positions updated successfully")


@router.get(
    "/{module_id}", response_model=ModuleOut,
    dependencies=permission_gates("Modules", "view", min_level=5),
)
def get_module(module_id: int, db: Session = Depends(get_db)):
    """Get a single module with its submodules."""
    return module_service.get(db, module_id)


@router.put(
    "/{module_id}", response_model=ModuleOut,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def update_module(module_id: int, body: ModuleUpdate, request: Request, db: Session = Depends(get_db)):
    """Update a module."""
    changes = body.model_dump(exclude_unset=True)
    module = module_service.update(db, module_id, **changes)
    audit_service.log_from_request(
        db, request, "module.updated", "module", str(module_id), new_value=changes,
    )
    return module


@router.delete(
    "/{module_id}", response_model=MessageResponse,
    dependencies=permission_gates("Modules", "delete", min_level=10),
)
def delete_module(module_id: int, request: Request, db: Session = Depends(get_db)):
    """Soft-delete a module."""
    module_service.soft_delete(db, module_id)
    audit_service.log_from_request(db, request, "module.deleted", "module", str(module_id))
    return MessageResponse(message="Module soft deleted")


@router.post(
    "/{module_id}/restore", response_model=ModuleOut,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def restore_module(module_id: int, request: Request, db: Session = Depends(get_db)):
    """Restore a soft-deleted module."""
    module = module_service.restore(db, module_id)
    audit_service.log_from_request(db, request, "module.restored", "module", str(module_id))
    return module


# ---- Submodule level ----

@router.post(
    "/{module_id}/sub-modules", response_model=List[SubModuleOut], status_code=201,
    dependencies=permission_gates("Modules", "create", min_level=10),
)
def create_sub_modules(
    module_id: int,
    body: Union[SubModuleCreate, List[SubModuleCreate]],
    request: Request,
    db: Session = Depends(get_db),
):
    """Add one or more submodules to a module."""
    items = body if isinstance(body, list) else [body]
    subs = module_service.create_sub_modules(db, module_id, [s.model_dump() for s in items])
    created = [SubModuleOut.model_validate(s) for s in subs]
    audit_service.log_from_request(
        db, request, "sub_module.created", "sub_module", str(module_id),
        new_value=[s.name for s in created],
    )
    return created


@router.put(
    "/{module_id}/sub-modules/reorder", response_model=ModuleOut,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def reorder_sub_modules(
    module_id: int,
    body: ReorderRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Update submodule positions within a module."""
    module = module_service.reorder_sub_modules(db, module_id, [item.model_dump() for item in body.items])
    audit_service.log_from_request(db, request, "sub_module.reordered", "module", str(module_id))
    return module


@router.put(
    "/{module_id}/sub-modules/{sub_module_id}", response_model=SubModuleOut,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def update_sub_module(
    module_id: int,
    sub_module_id: int,
    body: SubModuleUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Update a submodule; its id stays the same across renames."""
    changes = body.model_dump(exclude_unset=True)
    sub = module_service.update_sub_module(db, module_id, sub_module_id, **changes)
    result = SubModuleOut.model_validate(sub)
    audit_service.log_from_request(
        db, request, "sub_module.updated", "sub_module", f"{module_id}:{sub_module_id}", new_value=changes,
    )
    return result


@router.delete(
    "/{module_id}/sub-modules/{sub_module_id}", response_model=MessageResponse,
    dependencies=permission_gates("Modules", "delete", min_level=10),
)
def delete_sub_module(module_id: int, sub_module_id: int, request: Request, db: Session = Depends(get_db)):
    """Soft-delete a submodule."""
    module_service.soft_delete_sub_module(db, module_id, sub_module_id)
    audit_service.log_from_request(
        db, request, "sub_module.deleted", "sub_module", f"{module_id}:{sub_module_id}",
    )
    return MessageResponse(message="SubModule soft deleted")


@router.post(
    "/{module_id}/sub-modules/{sub_module_id}/restore", response_model=SubModuleOut,
    dependencies=permission_gates("Modules", "update", min_level=10),
)
def restore_sub_module(module_id: int, sub_module_id: int, request: Request, db: Session = Depends(get_db)):
    """Restore a soft-deleted submodule."""
    sub = module_service.restore_sub_module(db, module_id, sub_module_id)
    result = SubModuleOut.model_validate(sub)
    audit_service.log_from_request(
        db, request, "sub_module.restored", "sub_module", f"{module_id}:{sub_module_id}",
    )
    return result
