"""Principal administration — listing, profile edits, status and role changes, soft delete."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.role import Role
from marketplace.models.principal import PrincipalType, PROFILE_FIELDS
from marketplace.core.exceptions import ResourceConflictError, ResourceNotFoundError
from marketplace.services.principal_resolver import principal_resolver, parse_principal_type


class PrincipalService:
    """Back-office operations over any principal type."""

    @staticmethod
    def get(db: Session, principal_type: Union[str, PrincipalType], principal_id: int):
        principal = principal_resolver.get(db, principal_type, principal_id)
        if principal is None or principal.is_deleted:
            raise ResourceNotFoundError(f"{parse_principal_type(principal_type).value} {principal_id} not found")
        return principal

    @staticmethod
    def list_principals(
        db: Session,
        principal_type: Union[str, PrincipalType],
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List non-deleted principals of one type with pagination."""
        model = principal_resolver.model_for(principal_type)
        query = db.query(model).filter(model.is_deleted == False)
        if search:
            query = query.filter(or_(model.email.ilike(f"%{search}%"), model.name.ilike(f"%{search}%")))
        if is_active is not None:
            query = query.filter(model.is_active == is_active)

        total = query.count()
        items = (
            query.order_by(model.created_at.desc(), model.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def update_profile(
        db: Session,
        principal_type: Union[str, PrincipalType],
        principal_id: int,
        email: Optional[str] = None,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        profile_name: Optional[str] = None,
    ):
        """Edit contact details and the type-specific profile column. Password and role are untouched."""
        principal_type = parse_principal_type(principal_type)
        principal = PrincipalService.get(db, principal_type, principal_id)

        if email:
            email = email.strip().lower()
            if email != principal.email:
                if principal_resolver.find_by_email(db, principal_type, email):
                    raise ResourceConflictError("Email already in use")
                principal.email = email
        if name:
            principal.name = name.strip()
        if phone is not None:
            principal.phone = phone or None
        profile_field = PROFILE_FIELDS.get(principal_type)
        if profile_field and profile_name is not None:
            setattr(principal, profile_field, profile_name or None)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError("Email already in use")
        db.refresh(principal)
        return principal

    @staticmethod
    def set_status(db: Session, principal_type: Union[str, PrincipalType], principal_id: int, is_active: bool):
        """Activate or deactivate a principal; deactivation takes effect on its next request."""
        principal = PrincipalService.get(db, principal_type, principal_id)
        principal.is_active = is_active
        db.commit()
        db.refresh(principal)
        return principal

    @staticmethod
    def assign_role(db: Session, principal_type: Union[str, PrincipalType], principal_id: int, role_code: str):
        """Replace the principal's single role."""
        principal = PrincipalService.get(db, principal_type, principal_id)
        role = db.query(Role).filter(Role.live_code == role_code).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_code}' not found")
        principal.role_id = role.id
        db.commit()
        db.refresh(principal)
        return principal

    @staticmethod
    def soft_delete(db: Session, principal_type: Union[str, PrincipalType], principal_id: int):
        principal = PrincipalService.get(db, principal_type, principal_id)
        principal.is_deleted = True
        principal.is_active = False
        principal.deleted_at = datetime.now(timezone.utc)
        db.commit()
        return principal


principal_service = PrincipalService()
