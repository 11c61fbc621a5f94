"""Seed the modules guarded by the built-in routers and grant them to admin."""

from sqlalchemy.orm import Session
from marketplace.models.module import Module, slugify
from marketplace.models.permission import Permission, CAPABILITY_FLAGS, permission_key
from marketplace.models.role import Role

DEFAULT_MODULES = [
    ("Roles", "/roles", "fas fa-user-shield"),
    ("Modules", "/modules", "fas fa-th-large"),
    ("Permissions", "/permissions", "fas fa-key"),
    ("Users", "/users", "fas fa-users-cog"),
    ("Customers", "/customers", "fas fa-user"),
    ("Freelancers", "/freelancers", "fas fa-user-tie"),
    ("Businesses", "/businesses", "fas fa-briefcase"),
    ("Vendors B2B", "/vendors/b2b", "fas fa-warehouse"),
    ("Vendors B2C", "/vendors/b2c", "fas fa-store"),
]


def seed_modules(db: Session) -> None:
    """Insert default modules and give the admin role full rights on them."""
    admin = db.query(Role).filter(Role.live_code == "admin").first()

    for position, (name, route, icon) in enumerate(DEFAULT_MODULES):
        module = db.query(Module).filter(Module.live_name == name).first()
        if not module:
            module = Module(
                name=name, live_name=name, slug=slugify(name),
                route=route, live_route=route, icon=icon,
                position=position, sub_module_seq=0,
            )
            db.add(module)
            db.flush()

        if admin is None:
            continue
        key = permission_key(admin.id, module.id)
        if not db.query(Permission).filter(Permission.live_key == key).first():
            db.add(Permission(
                role_id=admin.id,
                module_id=module.id,
                live_key=key,
                **{flag: True for flag in CAPABILITY_FLAGS},
            ))

    db.commit()
    print(f"✅ Seeded {len(DEFAULT_MODULES)} modules")
