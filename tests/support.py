"""Data seeding helpers shared by the test modules."""

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.core.security import hash_password, create_access_token
from marketplace.models.principal import PrincipalType, PRINCIPAL_MODELS
from marketplace.models.role import Role
from marketplace.services.module_service import module_service
from marketplace.services.permission_service import permission_service

PASSWORD = "secret123"
_password_hash = None


def password_hash() -> str:
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


class Seeder:
    """Writes fixtures straight through the ORM and services."""

    def __init__(self, db: Session):
        self.db = db

    def role(self, code: str, level: int = 1, is_super_admin: bool = False) -> Role:
        role = Role(code=code, live_code=code, name=code.title(), level=level, is_super_admin=is_super_admin)
        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)
        return role

    def principal(
        self,
        principal_type: PrincipalType,
        email: str,
        role: Role,
        is_active: bool = True,
    ):
        model = PRINCIPAL_MODELS[principal_type]
        principal = model(
            email=email,
            hashed_password=password_hash(),
            name=email.split("@")[0],
            role_id=role.id,
            is_active=is_active,
        )
        self.db.add(principal)
        self.db.commit()
        self.db.refresh(principal)
        return principal

    def module(self, name: str, sub_modules=(), route: Optional[str] = None):
        data = {
            "name": name,
            "route": route or "/" + name.lower().replace(" ", "-"),
            "sub_modules": [{"name": s, "route": "/" + s.lower()} for s in sub_modules],
        }
        return module_service.create_many(self.db, [data])[0]

    def grant(self, role: Role, module, sub_module_id: Optional[int] = None, **flags):
        data = {"role_id": role.id, "module_id": module.id, "sub_module_id": sub_module_id}
        data.update(flags)
        return permission_service.create_many(self.db, [data])[0]

    @staticmethod
    def headers(principal, principal_type: PrincipalType, expires_delta: Optional[timedelta] = None) -> dict:
        token = create_access_token(principal, principal_type, expires_delta)
        return {"Authorization": f"Bearer {token}"}


