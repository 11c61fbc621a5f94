"""Module service — modules, submodules, ordering, and the dashboard menu.

Every write drops the touched module names from the local module cache.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.module import Module, SubModule, slugify
from marketplace.models.permission import Permission
from marketplace.models.role import Role
from marketplace.services.module_cache import module_cache
from marketplace.core.exceptions import (
    ResourceNotFoundError, ResourceConflictError, ValidationError,
)

SUB_MODULE_FIELDS = ("name", "route", "icon", "position", "is_active", "dashboard_view")


class ModuleService:
    """Manages modules and their embedded submodules."""

    @staticmethod
    def _commit(db: Session, conflict_message: str) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ResourceConflictError(conflict_message)

    @staticmethod
    def _ensure_unique(db: Session, name: str, route: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Module).filter(or_(Module.live_name == name, Module.live_route == route))
        if exclude_id is not None:
            query = query.filter(Module.id != exclude_id)
        if query.first():
            raise ResourceConflictError(
                f'Module with name "{name}" or route "{route}" already exists'
            )

    @staticmethod
    def _ensure_sub_name_free(module: Module, name: str, exclude_id: Optional[int] = None) -> None:
        for sub in module.sub_modules:
            if sub.name == name and not sub.is_deleted and sub.id != exclude_id:
                raise ResourceConflictError(
                    f'SubModule "{name}" already exists in module "{module.name}"'
                )

    @staticmethod
    def _add_sub_module(module: Module, data: Dict[str, Any]) -> SubModule:
        ModuleService._ensure_sub_name_free(module, data["name"])
        sub = SubModule(
            id=module.allocate_sub_module_id(),
            name=data["name"],
            route=data["route"],
            icon=data.get("icon") or "fas fa-circle",
            position=data.get("position") or 0,
            is_active=data.get("is_active", True),
            dashboard_view=data.get("dashboard_view", False),
        )
        module.sub_modules.append(sub)
        return sub

    # ---- Modules ----

    @staticmethod
    def create_many(db: Session, items: List[Dict[str, Any]]) -> List[Module]:
        """Create one or more modules (with optional submodules) atomically."""
        created = []
        for data in items:
            name = data["name"].strip()
            route = data["route"].strip()
            ModuleService._ensure_unique(db, name, route)
            module = Module(
                name=name,
                live_name=name,
                slug=slugify(name),
                description=data.get("description"),
                icon=data.get("icon") or "fas fa-folder",
                route=route,
                live_route=route,
                position=data.get("position") or 0,
                dashboard_view=data.get("dashboard_view", False),
                sub_module_seq=0,
            )
            for sub_data in data.get("sub_modules") or []:
                ModuleService._add_sub_module(module, sub_data)
            db.add(module)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                raise ResourceConflictError(
                    f'Module with name "{name}" or route "{route}" already exists'
                )
            created.append(module)

        ModuleService._commit(db, "Module already exists")
        for module in created:
            db.refresh(module)
            module_cache.invalidate(module.name)
        return created

    @staticmethod
    def get(db: Session, module_id: int, include_deleted: bool = False) -> Module:
        """Get a module by id."""
        module = db.query(Module).filter(Module.id == module_id).first()
        if not module or (module.is_deleted and not include_deleted):
            raise ResourceNotFoundError(f"Module {module_id} not found")
        return module

    @staticmethod
    def list_modules(
        db: Session,
        is_active: Optional[bool] = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        """List modules ordered by position."""
        query = db.query(Module)
        if not include_deleted:
            query = query.filter(Module.is_deleted == False)
        if is_active is not None:
            query = query.filter(Module.is_active == is_active)

        total = query.count()
        modules = (
            query.order_by(Module.position, Module.created_at.desc(), Module.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"modules": modules, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def update(db: Session, module_id: int, **kwargs) -> Module:
        """Update module attributes; name and route stay unique."""
        module = ModuleService.get(db, module_id)
        old_name = module.name

        name = (kwargs.pop("name", None) or module.name).strip()
        route = (kwargs.pop("route", None) or module.route).strip()
        if name != module.name or route != module.route:
            ModuleService._ensure_unique(db, name, route, exclude_id=module.id)
            module.name = name
            module.live_name = name
            module.slug = slugify(name)
            module.route = route
            module.live_route = route

        for field in ("description", "icon", "position", "is_active", "dashboard_view"):
            if kwargs.get(field) is not None:
                setattr(module, field, kwargs[field])

        ModuleService._commit(db, "Module with this name or route already exists")
        module_cache.invalidate(old_name, module.name)
        db.refresh(module)
        return module

    @staticmethod
    def reorder(db: Session, items: List[Dict[str, int]]) -> None:
        """Set positions for several modules in one transaction."""
        names = []
        for item in items:
            module = db.query(Module).filter(Module.id == item["id"]).first()
            if not module:
                db.rollback()
                raise ResourceNotFoundError(f"Module with ID {item['id']} not found")
            module.position = item["position"]
            names.append(module.name)
        db.commit()
        module_cache.invalidate(*names)

    @staticmethod
    def soft_delete(db: Session, module_id: int) -> Module:
        """Mark a module deleted; its permissions stay for audit and restore."""
        module = ModuleService.get(db, module_id)
        module.is_deleted = True
        module.deleted_at = datetime.now(timezone.utc)
        module.live_name = None
        module.live_route = None
        db.commit()
        module_cache.invalidate(module.name)
        return module

    @staticmethod
    def restore(db: Session, module_id: int) -> Module:
        module = ModuleService.get(db, module_id, include_deleted=True)
        if not module.is_deleted:
            raise ValidationError("Module is not deleted")
        ModuleService._ensure_unique(db, module.name, module.route, exclude_id=module.id)
        module.is_deleted = False
        module.deleted_at = None
        module.live_name = module.name
        module.live_route = module.route
        ModuleService._commit(db, "Module with this name or route already exists")
        module_cache.invalidate(module.name)
        db.refresh(module)
        return module

    @staticmethod
    def menu(db: Session, role: Role) -> List[Dict[str, Any]]:
        """Dashboard menu: every active module for super admins, else those the role has rows for."""
        query = db.query(Module).filter(Module.is_active == True, Module.is_deleted == False)
        if not role.is_super_admin:
            module_ids = [
                row.module_id
                for row in db.query(Permission.module_id).filter(
                    Permission.role_id == role.id,
                    Permission.is_active == True,
                    Permission.is_deleted == False,
                ).distinct()
            ]
            if not module_ids:
                return []
            query = query.filter(Module.id.in_(module_ids))

        modules = query.order_by(Module.position, Module.name).all()
        return [
            {
                "id": m.id,
                "name": m.name,
                "icon": m.icon,
                "route": m.route,
                "sub_modules": [
                    {"id": s.id, "name": s.name, "icon": s.icon, "route": s.route, "position": s.position}
                    for s in sorted(m.sub_modules, key=lambda s: s.position or 0)
                    if s.is_active and not s.is_deleted
                ],
            }
            for m in modules
        ]

    # ---- Submodules ----

    @staticmethod
    def get_sub_module(db: Session, module_id: int, sub_module_id: int) -> SubModule:
        module = ModuleService.get(db, module_id)
        sub = module.find_sub_module(sub_module_id)
        if sub is None:
            raise ResourceNotFoundError(f"SubModule {sub_module_id} not found")
        return sub

    @staticmethod
    def create_sub_modules(db: Session, module_id: int, items: List[Dict[str, Any]]) -> List[SubModule]:
        """Append submodules; each gets the next id from the module's sequence."""
        module = ModuleService.get(db, module_id)
        created = [ModuleService._add_sub_module(module, data) for data in items]
        ModuleService._commit(db, "SubModule already exists")
        module_cache.invalidate(module.name)
        db.refresh(module)
        return created

    @staticmethod
    def update_sub_module(db: Session, module_id: int, sub_module_id: int, **kwargs) -> SubModule:
        """Rename or edit a submodule. Its id, and so its permissions, are unchanged."""
        sub = ModuleService.get_sub_module(db, module_id, sub_module_id)
        if sub.is_deleted:
            raise ResourceNotFoundError(f"SubModule {sub_module_id} not found")
        if kwargs.get("name") and kwargs["name"] != sub.name:
            ModuleService._ensure_sub_name_free(sub.module, kwargs["name"], exclude_id=sub.id)
        for field in SUB_MODULE_FIELDS:
            if kwargs.get(field) is not None:
                setattr(sub, field, kwargs[field])
        db.commit()
        module_cache.invalidate(sub.module.name)
        return sub

    @staticmethod
    def soft_delete_sub_module(db: Session, module_id: int, sub_module_id: int) -> SubModule:
        sub = ModuleService.get_sub_module(db, module_id, sub_module_id)
        if sub.is_deleted:
            raise ResourceNotFoundError(f"SubModule {sub_module_id} not found")
        sub.is_deleted = True
        sub.deleted_at = datetime.now(timezone.utc)
        db.commit()
        module_cache.invalidate(sub.module.name)
        return sub

    @staticmethod
    def restore_sub_module(db: Session, module_id: int, sub_module_id: int) -> SubModule:
        sub = ModuleService.get_sub_module(db, module_id, sub_module_id)
        if not sub.is_deleted:
            raise ValidationError("SubModule is not deleted")
        ModuleService._ensure_sub_name_free(sub.module, sub.name, exclude_id=sub.id)
        sub.is_deleted = False
        sub.deleted_at = None
        db.commit()
        module_cache.invalidate(sub.module.name)
        return sub

    @staticmethod
    def reorder_sub_modules(db: Session, module_id: int, items: List[Dict[str, int]]) -> Module:
        module = ModuleService.get(db, module_id)
        for item in items:
            sub = module.find_sub_module(item["id"])
            if sub is None:
                db.rollback()
                raise ResourceNotFoundError(f"SubModule with ID {item['id']} not found")
            sub.position = item["position"]
        db.commit()
        module_cache.invalidate(module.name)
        db.refresh(module)
        return module


module_service = ModuleService()
