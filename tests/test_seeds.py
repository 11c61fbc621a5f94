"""Default data: roles, guarded modules and the super admin."""

from marketplace.core.config import settings
from marketplace.db.seeds.seed_modules import DEFAULT_MODULES, seed_modules
from marketplace.db.seeds.seed_roles import DEFAULT_ROLES, seed_roles
from marketplace.db.seeds.seed_super_admin import seed_super_admin
from marketplace.models.module import Module
from marketplace.models.permission import Permission
from marketplace.models.principal import PlatformUser, PrincipalType
from marketplace.models.role import Role
from marketplace.services.permission_evaluator import PermissionEvaluator
from marketplace.services.module_cache import ModuleDirectoryCache


def seed_everything(db):
    seed_roles(db)
    seed_modules(db)
    seed_super_admin(db)


def test_seeding_is_idempotent(db):
    seed_everything(db)
    seed_everything(db)

    assert db.query(Role).count() == len(DEFAULT_ROLES)
    assert db.query(Module).count() == len(DEFAULT_MODULES)
    assert db.query(Permission).count() == len(DEFAULT_MODULES)
    assert db.query(PlatformUser).count() == 1


def test_admin_may_do_everything_on_guarded_modules(db):
    seed_everything(db)
    admin = db.query(Role).filter(Role.code == "admin").one()
    evaluator = PermissionEvaluator(ModuleDirectoryCache())

    for name, _, _ in DEFAULT_MODULES:
        for action in ("view", "create", "update", "delete", "viewall"):
            assert evaluator.check(db, admin, name, action), (name, action)


def test_seeded_super_admin_can_log_in(client, db):
    seed_everything(db)

    response = client.post(f"/api/auth/{PrincipalType.user.value}/login", json={
        "email": settings.SUPER_ADMIN_EMAIL, "password": settings.SUPER_ADMIN_PASSWORD,
    })

    assert response.status_code == 200
    assert response.json()["principal"]["role"]["is_super_admin"] is True
