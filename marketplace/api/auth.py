"""Auth API router — register, login, me, profile, password, my permissions."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from marketplace.db.session import get_db
from marketplace.schemas.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, PrincipalOut,
    ProfileUpdate, PasswordChange, MessageResponse,
)
from marketplace.models.principal import PrincipalType
from marketplace.services.auth_service import auth_service, principal_summary
from marketplace.services.principal_service import principal_service
from marketplace.services.audit_service import audit_service
from marketplace.core.access import (
    CurrentPrincipal, authenticate_any, current_principal, current_permissions,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/{principal_type}/register", response_model=PrincipalOut, status_code=201)
def register(principal_type: PrincipalType, body: RegisterRequest, db: Session = Depends(get_db)):
    """Self-register a customer, freelancer, business or vendor."""
    return auth_service.register(
        db, principal_type, body.email, body.password, body.name,
        phone=body.phone, profile_name=body.profile_name,
    )


@router.post("/{principal_type}/login", response_model=TokenResponse)
def login(
    principal_type: PrincipalType,
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Authenticate and return an access token."""
    result = auth_service.authenticate(db, principal_type, body.email, body.password)
    principal = result["principal"]
    audit_service.log(
        db,
        actor_type=principal_type.value,
        actor_id=principal["id"],
        actor_email=principal["email"],
        action="principal.login",
        resource_type="principal",
        resource_id=str(principal["id"]),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent", "")[:500],
    )
    return result


@router.get("/me", dependencies=[Depends(authenticate_any)])
def get_me(current: CurrentPrincipal = Depends(current_principal)):
    """Profile of the authenticated principal with its live role."""
    return principal_summary(current.principal, current.principal_type)


@router.put("/me", dependencies=[Depends(authenticate_any)])
def update_me(
    body: ProfileUpdate,
    request: Request,
    current: CurrentPrincipal = Depends(current_principal),
    db: Session = Depends(get_db),
):
    """Edit the authenticated principal's own contact details and profile name."""
    changes = body.model_dump(exclude_unset=True)
    principal = principal_service.update_profile(db, current.principal_type, current.id, **changes)
    result = principal_summary(principal, current.principal_type)
    audit_service.log_from_request(
        db, request, "principal.profile_updated", "principal",
        f"{current.principal_type.value}:{principal.id}", new_value=changes,
    )
    return result


@router.put("/me/password", response_model=MessageResponse, dependencies=[Depends(authenticate_any)])
def change_my_password(
    body: PasswordChange,
    request: Request,
    current: CurrentPrincipal = Depends(current_principal),
    db: Session = Depends(get_db),
):
    """Change the authenticated principal's password; the current one must be supplied."""
    auth_service.change_password(
        db, current.principal, body.current_password, body.new_password, body.confirm_password,
    )
    audit_service.log_from_request(
        db, request, "principal.password_changed", "principal",
        f"{current.principal_type.value}:{current.claims.principal_id}",
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/me/permissions", dependencies=[Depends(authenticate_any)])
def get_my_permission_map(
    current: CurrentPrincipal = Depends(current_principal),
    permissions: dict = Depends(current_permissions),
):
    """Capability map for building the client-side menu."""
    return {
        "is_super_admin": current.role.is_super_admin,
        "permissions": permissions,
    }
