"""Permission service — grant, edit, soft delete and restore permission rows."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.module import Module
from marketplace.models.permission import Permission, CAPABILITY_FLAGS, permission_key
from marketplace.models.role import Role
from marketplace.services.permission_evaluator import find_live_permission, permission_view
from marketplace.core.exceptions import (
    ResourceNotFoundError, ResourceConflictError, ValidationError,
)

DUPLICATE_MESSAGE = "Permission already exists"


class PermissionService:
    """Manages permission rows.

    The existence check before insert gives a friendly error in the common
    case; the unique ``live_key`` index is what actually stops two concurrent
    creates for the same triple, and its violation surfaces as a conflict too.
    """

    @staticmethod
    def _validate_target(db: Session, role_id: int, module_id: int, sub_module_id: Optional[int]) -> None:
        role = db.query(Role).filter(Role.id == role_id, Role.is_deleted == False).first()
        module = db.query(Module).filter(Module.id == module_id, Module.is_deleted == False).first()
        if not role or not module:
            raise ResourceNotFoundError("Invalid role or module")
        if sub_module_id is not None:
            sub = module.find_sub_module(sub_module_id)
            if sub is None or sub.is_deleted:
                raise ResourceNotFoundError("Submodule not found")

    @staticmethod
    def create_many(
        db: Session,
        items: List[Dict[str, Any]],
        granted_by_type: Optional[str] = None,
        granted_by_id: Optional[int] = None,
    ) -> List[Permission]:
        """Create one or more permissions; the whole batch fails on any conflict."""
        created = []
        try:
            for data in items:
                role_id = data["role_id"]
                module_id = data["module_id"]
                sub_module_id = data.get("sub_module_id")

                PermissionService._validate_target(db, role_id, module_id, sub_module_id)
                if find_live_permission(db, role_id, module_id, sub_module_id, active_only=False):
                    raise ResourceConflictError(DUPLICATE_MESSAGE)

                permission = Permission(
                    role_id=role_id,
                    module_id=module_id,
                    sub_module_id=sub_module_id,
                    live_key=permission_key(role_id, module_id, sub_module_id),
                    granted_by_type=granted_by_type,
                    granted_by_id=granted_by_id,
                    **{flag: bool(data.get(flag) or False) for flag in CAPABILITY_FLAGS},
                )
                db.add(permission)
                db.flush()
                created.append(permission)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(DUPLICATE_MESSAGE)
        except Exception:
            db.rollback()
            raise

        for permission in created:
            db.refresh(permission)
        return created

    @staticmethod
    def get(db: Session, permission_id: int, include_deleted: bool = True) -> Permission:
        """Get a permission by id."""
        permission = db.query(Permission).filter(Permission.id == permission_id).first()
        if not permission or (permission.is_deleted and not include_deleted):
            raise ResourceNotFoundError("Permission not found")
        return permission

    @staticmethod
    def list_permissions(
        db: Session,
        role_code: Optional[str] = None,
        module_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        """List non-deleted permissions, newest first."""
        query = db.query(Permission).filter(Permission.is_deleted == False)

        if role_code:
            role = db.query(Role).filter(Role.live_code == role_code.strip()).first()
            if not role:
                raise ResourceNotFoundError("Role not found with the provided code")
            query = query.filter(Permission.role_id == role.id)
        if module_id:
            query = query.filter(Permission.module_id == module_id)
        if is_active is not None:
            query = query.filter(Permission.is_active == is_active)

        total = query.count()
        permissions = (
            query.order_by(Permission.created_at.desc(), Permission.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "permissions": [permission_view(p) for p in permissions],
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    @staticmethod
    def update(db: Session, permission_id: int, **kwargs) -> Permission:
        """Change capability flags and/or the active flag."""
        permission = PermissionService.get(db, permission_id, include_deleted=False)
        for field in CAPABILITY_FLAGS + ("is_active",):
            if kwargs.get(field) is not None:
                setattr(permission, field, bool(kwargs[field]))
        db.commit()
        db.refresh(permission)
        return permission

    @staticmethod
    def soft_delete(db: Session, permission_id: int) -> Permission:
        """Exclude a permission from evaluation while keeping the row."""
        permission = PermissionService.get(db, permission_id, include_deleted=False)
        permission.is_deleted = True
        permission.deleted_at = datetime.now(timezone.utc)
        permission.live_key = None
        db.commit()
        return permission

    @staticmethod
    def restore(db: Session, permission_id: int) -> Permission:
        """Bring a soft-deleted permission back unless its triple was re-granted meanwhile."""
        permission = PermissionService.get(db, permission_id)
        if not permission.is_deleted:
            raise ValidationError("Permission is not deleted")
        permission.is_deleted = False
        permission.deleted_at = None
        permission.live_key = permission_key(
            permission.role_id, permission.module_id, permission.sub_module_id,
        )
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(DUPLICATE_MESSAGE)
        db.refresh(permission)
        return permission

    @staticmethod
    def permanent_delete(db: Session, permission_id: int) -> None:
        permission = PermissionService.get(db, permission_id)
        db.delete(permission)
        db.commit()


permission_service = PermissionService()
