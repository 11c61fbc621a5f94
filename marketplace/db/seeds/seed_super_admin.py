"""Seed the super-admin platform user from env vars."""

from sqlalchemy.orm import Session
from marketplace.models.principal import PlatformUser
from marketplace.models.role import Role
from marketplace.core.security import hash_password
from marketplace.core.config import settings


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user if not already present."""
    super_admin_role = db.query(Role).filter(Role.live_code == "superadmin").first()
    if not super_admin_role:
        print("⚠️  superadmin role not found. Run seed_roles first.")
        return

    email = settings.SUPER_ADMIN_EMAIL.strip().lower()
    existing = db.query(PlatformUser).filter(PlatformUser.email == email).first()
    if existing:
        print(f"ℹ️  Super admin '{email}' already exists, skipping.")
        return

    admin = PlatformUser(
        email=email,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        name=settings.SUPER_ADMIN_NAME or "Super Admin",
        is_active=True,
        role_id=super_admin_role.id,
    )
    db.add(admin)
    db.commit()
    print(f"✅ Created super admin: {email}")
