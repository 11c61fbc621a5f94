"""Role service — CRUD with soft delete and restore."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.role import Role
from marketplace.models.permission import Permission
from marketplace.models.principal import PRINCIPAL_MODELS
from marketplace.core.exceptions import (
    ResourceNotFoundError, ResourceConflictError, ValidationError,
)


class RoleService:
    """Manages roles. Codes are unique among non-deleted roles."""

    @staticmethod
    def _commit(db: Session, conflict_message: str) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(conflict_message)

    @staticmethod
    def _ensure_code_free(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Role).filter(Role.live_code == code)
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first():
            raise ResourceConflictError(f"Role with code '{code}' already exists")

    @staticmethod
    def create(
        db: Session,
        code: str,
        name: str,
        level: int = 1,
        is_super_admin: bool = False,
        description: Optional[str] = None,
    ) -> Role:
        """Create a new role."""
        code = code.strip()
        RoleService._ensure_code_free(db, code)
        role = Role(
            code=code,
            live_code=code,
            name=name,
            level=level,
            is_super_admin=is_super_admin,
            description=description,
        )
        db.add(role)
        RoleService._commit(db, f"Role with code '{code}' already exists")
        db.refresh(role)
        return role

    @staticmethod
    def get(db: Session, role_id: int, include_deleted: bool = False) -> Role:
        """Get a role by id."""
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role or (role.is_deleted and not include_deleted):
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def get_by_code(db: Session, code: str) -> Role:
        """Get a live role by its code."""
        role = db.query(Role).filter(Role.live_code == code.strip()).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{code}' not found")
        return role

    @staticmethod
    def list_roles(
        db: Session,
        search: Optional[str] = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List roles, most senior first."""
        query = db.query(Role)
        if not include_deleted:
            query = query.filter(Role.is_deleted == False)
        if search:
            query = query.filter(or_(Role.code.ilike(f"%{search}%"), Role.name.ilike(f"%{search}%")))

        total = query.count()
        roles = (
            query.order_by(Role.level.desc(), Role.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"roles": roles, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def update(db: Session, role_id: int, **kwargs) -> Role:
        """Update a role's code, name, description, level or super-admin flag."""
        role = RoleService.get(db, role_id)
        code = kwargs.pop("code", None)
        if code and code.strip() != role.code:
            code = code.strip()
            RoleService._ensure_code_free(db, code, exclude_id=role.id)
            role.code = code
            role.live_code = code

        for field in ("name", "description", "level", "is_super_admin"):
            if kwargs.get(field) is not None:
                setattr(role, field, kwargs[field])

        RoleService._commit(db, f"Role with code '{role.code}' already exists")
        db.refresh(role)
        return role

    @staticmethod
    def soft_delete(db: Session, role_id: int) -> Role:
        """Mark a role deleted. Principals holding it can no longer authenticate."""
        role = RoleService.get(db, role_id)
        role.is_deleted = True
        role.deleted_at = datetime.now(timezone.utc)
        role.live_code = None
        db.commit()
        return role

    @staticmethod
    def restore(db: Session, role_id: int) -> Role:
        """Undo a soft delete, provided no live role took the code meanwhile."""
        role = RoleService.get(db, role_id, include_deleted=True)
        if not role.is_deleted:
            raise ValidationError("Role is not deleted")
        RoleService._ensure_code_free(db, role.code)
        role.is_deleted = False
        role.deleted_at = None
        role.live_code = role.code
        RoleService._commit(db, f"Role with code '{role.code}' already exists")
        db.refresh(role)
        return role

    @staticmethod
    def permanent_delete(db: Session, role_id: int) -> None:
        """Remove a role row; refused while any permission or principal references it."""
        role = RoleService.get(db, role_id, include_deleted=True)
        if db.query(Permission).filter(Permission.role_id == role.id).first():
            raise ResourceConflictError("Cannot delete role with associated permissions")
        for model in PRINCIPAL_MODELS.values():
            if db.query(model).filter(model.role_id == role.id).first():
                raise ResourceConflictError("Cannot delete role assigned to principals")
        db.delete(role)
        db.commit()


role_service = RoleService()
