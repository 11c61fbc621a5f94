"""Permission evaluator — allow/deny decisions for (role, module, action, submodule)."""

from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from marketplace.models.module import Module
from marketplace.models.permission import Permission
from marketplace.models.role import Role
from marketplace.services.module_cache import ModuleDirectoryCache, module_cache

# Case-insensitive action name -> capability flag.
ACTION_CAPABILITIES = {
    "view": "can_view",
    "add": "can_add",
    "create": "can_add",
    "edit": "can_edit",
    "update": "can_edit",
    "delete": "can_delete",
    "remove": "can_delete",
    "viewall": "can_view_all",
}

MODULE_NOT_FOUND = "module not found"
SUB_MODULE_NOT_FOUND = "submodule not found"
NO_PERMISSION_ROW = "no permission row"
UNKNOWN_ACTION = "unknown action"
CAPABILITY_NOT_GRANTED = "capability not granted"


def capability_for(action: str) -> Optional[str]:
    """Flag name for an action, or None when the action is not recognised."""
    if not action:
        return None
    return ACTION_CAPABILITIES.get(action.strip().lower())


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a permission check."""
    allowed: bool
    reason: str

    @classmethod
    def allow(cls, reason: str = "granted") -> "AccessDecision":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


def find_live_permission(
    db: Session,
    role_id: int,
    module_id: int,
    sub_module_id: Optional[int] = None,
    active_only: bool = True,
) -> Optional[Permission]:
    """The single non-deleted permission row for a triple, if any."""
    query = db.query(Permission).filter(
        Permission.role_id == role_id,
        Permission.module_id == module_id,
        Permission.is_deleted == False,
    )
    if sub_module_id is None:
        query = query.filter(Permission.sub_module_id.is_(None))
    else:
        query = query.filter(Permission.sub_module_id == sub_module_id)
    if active_only:
        query = query.filter(Permission.is_active == True)
    return query.first()


def permission_view(permission: Permission) -> Dict[str, Any]:
    """Client-facing shape of a permission row with role/module/submodule joined in."""
    module = permission.module
    sub = permission.sub_module
    role = permission.role
    return {
        "id": permission.id,
        "role": {"id": role.id, "code": role.code, "name": role.name} if role else None,
        "module": {
            "id": module.id,
            "name": module.name,
            "route": module.route,
            "icon": module.icon,
        } if module else None,
        "sub_module": {
            "id": sub.id,
            "name": sub.name,
            "route": sub.route,
            "icon": sub.icon,
        } if sub else None,
        "permissions": permission.capabilities(),
        "is_active": permission.is_active,
        "granted_by": {
            "type": permission.granted_by_type,
            "id": permission.granted_by_id,
        } if permission.granted_by_id else None,
        "created_at": permission.created_at,
    }


class PermissionEvaluator:
    """Decides whether a role may perform an action on a module."""

    def __init__(self, cache: ModuleDirectoryCache):
        self.cache = cache

    def check(
        self,
        db: Session,
        role: Role,
        module_name: str,
        action: str,
        sub_module_name: Optional[str] = None,
    ) -> AccessDecision:
        """Evaluate a single (module, action, submodule) request for ``role``.

        Super admins are allowed before anything is looked up, so they pass
        even for modules that do not exist.
        """
        if role.is_super_admin:
            return AccessDecision.allow("super admin")

        module = self.cache.get_module(db, module_name)
        if module is None:
            return AccessDecision.deny(MODULE_NOT_FOUND)

        sub_module_id = None
        if sub_module_name:
            sub = module.find_sub_module(sub_module_name)
            if sub is None:
                return AccessDecision.deny(SUB_MODULE_NOT_FOUND)
            sub_module_id = sub.id

        permission = find_live_permission(db, role.id, module.id, sub_module_id)
        if permission is None:
            return AccessDecision.deny(NO_PERMISSION_ROW)

        flag = capability_for(action)
        if flag is None:
            return AccessDecision.deny(UNKNOWN_ACTION)
        if not getattr(permission, flag):
            return AccessDecision.deny(CAPABILITY_NOT_GRANTED)
        return AccessDecision.allow()

    @staticmethod
    def live_permissions(db: Session, role: Role) -> List[Permission]:
        """Active, non-deleted rows of ``role`` whose module still exists."""
        permissions = (
            db.query(Permission)
            .join(Module, Permission.module_id == Module.id)
            .filter(
                Permission.role_id == role.id,
                Permission.is_active == True,
                Permission.is_deleted == False,
                Module.is_deleted == False,
            )
            .order_by(Module.position, Permission.id)
            .all()
        )
        return [
            p for p in permissions
            if p.sub_module_id is None or (p.sub_module is not None and not p.sub_module.is_deleted)
        ]

    def capability_map(self, db: Session, role: Role) -> Dict[str, Dict[str, bool]]:
        """Full capability map keyed by "Module" or "Module→SubModule"."""
        result: Dict[str, Dict[str, bool]] = {}
        for permission in self.live_permissions(db, role):
            key = permission.module.name
            if permission.sub_module is not None:
                key = f"{key}→{permission.sub_module.name}"
            result[key] = permission.capabilities()
        return result

    def permission_views(self, db: Session, role: Role) -> List[Dict[str, Any]]:
        return [permission_view(p) for p in self.live_permissions(db, role)]


permission_evaluator = PermissionEvaluator(module_cache)
