"""Principal administration routers, one per principal type.

All of them are back-office endpoints: a platform user with role level 5 or
more and the matching module permission.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import (
    PrincipalOut, PrincipalCreate, PrincipalStatusUpdate, PrincipalRoleUpdate, ProfileUpdate,
    MessageResponse,
)
from marketplace.models.principal import PrincipalType
from marketplace.services.auth_service import auth_service
from marketplace.services.principal_service import principal_service
from marketplace.services.audit_service import audit_service
from marketplace.core.access import permission_gates

# principal type -> (URL prefix, permission module name)
PRINCIPAL_ROUTES = {
    PrincipalType.user: ("/users", "Users"),
    PrincipalType.customer: ("/customers", "Customers"),
    PrincipalType.freelancer: ("/freelancers", "Freelancers"),
    PrincipalType.business: ("/businesses", "Businesses"),
    PrincipalType.vendorb2b: ("/vendors/b2b", "Vendors B2B"),
    PrincipalType.vendorb2c: ("/vendors/b2c", "Vendors B2C"),
}


def build_principal_router(principal_type: PrincipalType, prefix: str, module_name: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[module_name.lower()])
    kind = principal_type.value

    @router.get("/", dependencies=permission_gates(module_name, "view", min_level=5))
    def list_principals(
        search: Optional[str] = Query(None),
        is_active: Optional[bool] = Query(None),
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=100),
        db: Session = Depends(get_db),
    ):
        result = principal_service.list_principals(db, principal_type, search, is_active, page, page_size)
        return {
            "items": [PrincipalOut.model_validate(p) for p in result["items"]],
            "total": result["total"],
            "page": result["page"],
            "page_size": result["page_size"],
        }

    @router.post(
        "/", response_model=PrincipalOut, status_code=201,
        dependencies=permission_gates(module_name, "add", min_level=5),
    )
    def create_principal(body: PrincipalCreate, request: Request, db: Session = Depends(get_db)):
        principal = auth_service.create_principal(
            db, principal_type, body.email, body.password, body.name, body.role_code,
            phone=body.phone, profile_name=body.profile_name,
        )
        result = PrincipalOut.model_validate(principal)
        audit_service.log_from_request(
            db, request, f"{kind}.created", "principal", f"{kind}:{principal.id}",
            new_value={"email": result.email, "role_code": body.role_code},
        )
        return result

    @router.get(
        "/{principal_id}", response_model=PrincipalOut,
        dependencies=permission_gates(module_name, "view", min_level=5),
    )
    def get_principal(principal_id: int, db: Session = Depends(get_db)):
        return principal_service.get(db, principal_type, principal_id)

    @router.put(
        "/{principal_id}", response_model=PrincipalOut,
        dependencies=permission_gates(module_name, "update", min_level=5),
    )
    def update_principal(
        principal_id: int,
        body: ProfileUpdate,
        request: Request,
        db: Session = Depends(get_db),
    ):
        changes = body.model_dump(exclude_unset=True)
        principal = principal_service.update_profile(db, principal_type, principal_id, **changes)
        result = PrincipalOut.model_validate(principal)
        audit_service.log_from_request(
            db, request, f"{kind}.updated", "principal", f"{kind}:{principal_id}", new_value=changes,
        )
        return result

    @router.patch(
        "/{principal_id}/status", response_model=PrincipalOut,
        dependencies=permission_gates(module_name, "edit", min_level=5),
    )
    def set_principal_status(
        principal_id: int,
        body: PrincipalStatusUpdate,
        request: Request,
        db: Session = Depends(get_db),
    ):
        principal = principal_service.set_status(db, principal_type, principal_id, body.is_active)
        result = PrincipalOut.model_validate(principal)
        audit_service.log_from_request(
            db, request, f"{kind}.status_changed", "principal", f"{kind}:{principal_id}",
            new_value={"is_active": body.is_active},
        )
        return result

    @router.patch(
        "/{principal_id}/role", response_model=PrincipalOut,
        dependencies=permission_gates(module_name, "edit", min_level=5),
    )
    def assign_principal_role(
        principal_id: int,
        body: PrincipalRoleUpdate,
        request: Request,
        db: Session = Depends(get_db),
    ):
        principal = principal_service.assign_role(db, principal_type, principal_id, body.role_code)
        result = PrincipalOut.model_validate(principal)
        audit_service.log_from_request(
            db, request, f"{kind}.role_changed", "principal", f"{kind}:{principal_id}",
            new_value={"role_code": body.role_code},
        )
        return result

    @router.delete(
        "/{principal_id}", response_model=MessageResponse,
        dependencies=permission_gates(module_name, "delete", min_level=5),
    )
    def delete_principal(principal_id: int, request: Request, db: Session = Depends(get_db)):
        principal_service.soft_delete(db, principal_type, principal_id)
        audit_service.log_from_request(
            db, request, f"{kind}.deleted", "principal", f"{kind}:{principal_id}",
        )
        return MessageResponse(message=f"{module_name} entry deleted")

    return router


routers = [
    build_principal_router(principal_type, prefix, module_name)
    for principal_type, (prefix, module_name) in PRINCIPAL_ROUTES.items()
]
