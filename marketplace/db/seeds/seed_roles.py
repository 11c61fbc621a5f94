"""Seed default roles into the database."""

from sqlalchemy.orm import Session
from marketplace.models.role import Role

DEFAULT_ROLES = [
    {"code": "superadmin", "name": "Super Admin", "level": 100, "is_super_admin": True,
     "description": "Bypasses every permission check"},
    {"code": "admin", "name": "Administrator", "level": 50,
     "description": "Manages roles, modules, permissions and accounts"},
    {"code": "manager", "name": "Manager", "level": 10,
     "description": "Back-office manager"},
    {"code": "staff", "name": "Staff", "level": 5,
     "description": "Back-office read access"},
    {"code": "customer", "name": "Customer", "level": 1},
    {"code": "freelancer", "name": "Freelancer", "level": 1},
    {"code": "business", "name": "Business", "level": 1},
    {"code": "vendor_b2b", "name": "B2B Vendor", "level": 1},
    {"code": "vendor_b2c", "name": "B2C Vendor", "level": 1},
]


def seed_roles(db: Session) -> None:
    """Insert default roles if they don't already exist."""
    for role_data in DEFAULT_ROLES:
        existing = db.query(Role).filter(Role.live_code == role_data["code"]).first()
        if not existing:
            db.add(Role(live_code=role_data["code"], **role_data))

    db.commit()
    print(f"✅ Seeded {len(DEFAULT_ROLES)} roles")
