"""Permission administration: uniqueness, atomic batches, soft delete and restore."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from marketplace.core.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from marketplace.db.base import Base
from marketplace.models.permission import Permission, permission_key
from marketplace.services import permission_service as permission_service_module
from marketplace.services.module_cache import ModuleDirectoryCache
from marketplace.services.module_service import module_service
from marketplace.services.permission_evaluator import PermissionEvaluator, find_live_permission
from marketplace.services.permission_service import permission_service
from tests.support import Seeder


@pytest.fixture()
def role(seed):
    return seed.role("manager", level=10)


@pytest.fixture()
def module(seed):
    return seed.module("Catalog", sub_modules=["Brands"])


def test_duplicate_triple_is_a_conflict(db, seed, role, module):
    seed.grant(role, module, can_view=True)

    with pytest.raises(ResourceConflictError):
        seed.grant(role, module, can_edit=True)


def test_same_module_with_and_without_submodule_are_distinct(db, seed, role, module):
    seed.grant(role, module, can_view=True)
    seed.grant(role, module, sub_module_id=module.sub_modules[0].id, can_view=True)

    assert db.query(Permission).count() == 2


def test_storage_constraint_catches_a_create_that_raced_past_the_check(db, seed, role, module, monkeypatch):
    seed.grant(role, module, can_view=True)
    # Pretend the existence check ran before the other transaction committed.
    monkeypatch.setattr(permission_service_module, "find_live_permission", lambda *a, **kw: None)

    with pytest.raises(ResourceConflictError):
        seed.grant(role, module, can_edit=True)

    assert db.query(Permission).filter(Permission.is_deleted == False).count() == 1


@pytest.fixture()
def file_sessions(tmp_path):
    """Sessions on separate connections to one on-disk database."""
    engine = create_engine(f"sqlite:///{tmp_path / 'rbac.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_two_sessions_granting_the_same_triple(file_sessions):
    setup = file_sessions()
    seeder = Seeder(setup)
    role_id = seeder.role("manager", level=10).id
    module_id = seeder.module("Catalog").id
    setup.close()

    first, second = file_sessions(), file_sessions()
    try:
        # Both existence checks run before either insert commits.
        assert find_live_permission(first, role_id, module_id, active_only=False) is None
        assert find_live_permission(second, role_id, module_id, active_only=False) is None
        for session in (first, second):
            session.add(Permission(
                role_id=role_id, module_id=module_id,
                live_key=permission_key(role_id, module_id), can_view=True,
            ))

        first.commit()
        with pytest.raises(IntegrityError):
            second.commit()
        second.rollback()

        with pytest.raises(ResourceConflictError):
            permission_service.create_many(second, [{"role_id": role_id, "module_id": module_id}])
    finally:
        first.close()
        second.close()

    check = file_sessions()
    try:
        assert check.query(Permission).count() == 1
    finally:
        check.close()


def test_batch_is_rejected_as_a_whole(db, role, module):
    items = [
        {"role_id": role.id, "module_id": module.id, "can_view": True},
        {"role_id": role.id, "module_id": module.id, "sub_module_id": module.sub_modules[0].id},
        {"role_id": role.id, "module_id": module.id, "can_edit": True},
    ]

    with pytest.raises(ResourceConflictError):
        permission_service.create_many(db, items)

    assert db.query(Permission).count() == 0


def test_unknown_role_module_or_submodule_is_not_found(db, role, module):
    with pytest.raises(ResourceNotFoundError):
        permission_service.create_many(db, [{"role_id": 999, "module_id": module.id}])
    with pytest.raises(ResourceNotFoundError):
        permission_service.create_many(db, [{"role_id": role.id, "module_id": 999}])
    with pytest.raises(ResourceNotFoundError, match="Submodule"):
        permission_service.create_many(db, [{"role_id": role.id, "module_id": module.id, "sub_module_id": 99}])


def test_soft_deleted_row_frees_the_triple(db, seed, role, module):
    first = seed.grant(role, module, can_view=True)
    permission_service.soft_delete(db, first.id)

    second = seed.grant(role, module, can_edit=True)

    assert second.id != first.id
    assert db.query(Permission).count() == 2


def test_restore_conflicts_when_triple_was_granted_again(db, seed, role, module):
    first = seed.grant(role, module, can_view=True)
    permission_service.soft_delete(db, first.id)
    seed.grant(role, module, can_edit=True)

    with pytest.raises(ResourceConflictError):
        permission_service.restore(db, first.id)

    assert permission_service.get(db, first.id).is_deleted


def test_restore_requires_a_deleted_row(db, seed, role, module):
    permission = seed.grant(role, module, can_view=True)

    with pytest.raises(ValidationError):
        permission_service.restore(db, permission.id)


def test_soft_delete_twice_is_not_found(db, seed, role, module):
    permission = seed.grant(role, module, can_view=True)
    permission_service.soft_delete(db, permission.id)

    with pytest.raises(ResourceNotFoundError):
        permission_service.soft_delete(db, permission.id)


def test_update_changes_only_given_flags(db, seed, role, module):
    permission = seed.grant(role, module, can_view=True, can_add=True)

    updated = permission_service.update(db, permission.id, can_add=False, can_delete=True)

    assert updated.capabilities() == {
        "can_view": True, "can_add": False, "can_edit": False, "can_delete": True, "can_view_all": False,
    }


def test_submodule_rename_keeps_existing_grants(db, seed, role, module):
    brands = module.sub_modules[0]
    seed.grant(role, module, sub_module_id=brands.id, can_view=True)

    module_service.update_sub_module(db, module.id, brands.id, name="Labels")

    evaluator = PermissionEvaluator(ModuleDirectoryCache())
    assert evaluator.check(db, role, "Catalog", "view", "Labels").allowed
    assert not evaluator.check(db, role, "Catalog", "view", "Brands").allowed


def test_list_filters_by_role_code(db, seed, role, module):
    other = seed.role("viewer", level=1)
    seed.grant(role, module, can_view=True)
    seed.grant(other, module, can_view=True)

    result = permission_service.list_permissions(db, role_code="viewer")

    assert result["total"] == 1
    assert result["permissions"][0]["role"]["code"] == "viewer"
    with pytest.raises(ResourceNotFoundError):
        permission_service.list_permissions(db, role_code="ghost")
