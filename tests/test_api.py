"""HTTP flows through the routers: auth, roles, modules, permissions, audit."""

import pytest

from marketplace.models.principal import PrincipalType
from tests.support import PASSWORD, Seeder


@pytest.fixture()
def staff(seed):
    role = seed.role("staff", level=5)
    user = seed.principal(PrincipalType.user, "staff@example.com", role)
    return role, user, Seeder.headers(user, PrincipalType.user)


# ---- Auth ----

def test_register_login_and_me(client, seed):
    seed.role("customer", level=1)

    registered = client.post("/api/auth/customer/register", json={
        "email": "Buyer@Example.com", "password": "hunter22", "name": "Buyer",
    })
    assert registered.status_code == 201
    assert registered.json()["email"] == "buyer@example.com"
    assert registered.json()["role"]["code"] == "customer"

    login = client.post("/api/auth/customer/login", json={
        "email": "buyer@example.com", "password": "hunter22",
    })
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert login.json()["token_type"] == "bearer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["type"] == "customer"


def test_register_twice_conflicts(client, seed):
    seed.role("freelancer", level=1)
    body = {"email": "dev@example.com", "password": "hunter22", "name": "Dev"}

    assert client.post("/api/auth/freelancer/register", json=body).status_code == 201
    assert client.post("/api/auth/freelancer/register", json=body).status_code == 409


def test_platform_users_cannot_self_register(client):
    response = client.post("/api/auth/user/register", json={
        "email": "me@example.com", "password": "hunter22", "name": "Me",
    })

    assert response.status_code == 400


def test_unknown_principal_type_is_rejected(client):
    response = client.post("/api/auth/robot/login", json={"email": "r@example.com", "password": "x" * 8})

    assert response.status_code == 422


def test_login_with_wrong_password(client, staff):
    response = client.post("/api/auth/user/login", json={
        "email": "staff@example.com", "password": "wrong-one",
    })

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_is_scoped_to_the_principal_table(client, staff):
    response = client.post("/api/auth/customer/login", json={
        "email": "staff@example.com", "password": PASSWORD,
    })

    assert response.status_code == 401


def test_deactivated_account_cannot_log_in(client, seed):
    role = seed.role("staff", level=5)
    seed.principal(PrincipalType.user, "gone@example.com", role, is_active=False)

    response = client.post("/api/auth/user/login", json={"email": "gone@example.com", "password": PASSWORD})

    assert response.status_code == 401
    assert response.json()["detail"] == "Account is deactivated"


# ---- Profile and password ----

def test_principal_edits_own_profile(client, seed):
    role = seed.role("business", level=1)
    shop = seed.principal(PrincipalType.business, "shop@example.com", role)
    headers = Seeder.headers(shop, PrincipalType.business)

    response = client.put("/api/auth/me", json={
        "name": "Corner Shop", "phone": "555-0100", "profile_name": "Corner Shop Ltd",
    }, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Corner Shop"
    assert body["phone"] == "555-0100"
    assert body["business_name"] == "Corner Shop Ltd"
    assert body["email"] == "shop@example.com"


def test_profile_email_must_stay_unique_per_type(client, seed):
    role = seed.role("customer", level=1)
    seed.principal(PrincipalType.customer, "taken@example.com", role)
    buyer = seed.principal(PrincipalType.customer, "buyer@example.com", role)

    response = client.put(
        "/api/auth/me", json={"email": "Taken@Example.com"},
        headers=Seeder.headers(buyer, PrincipalType.customer),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Email already in use"


def test_change_password_then_log_in_with_the_new_one(client, seed):
    role = seed.role("freelancer", level=1)
    dev = seed.principal(PrincipalType.freelancer, "dev@example.com", role)
    headers = Seeder.headers(dev, PrincipalType.freelancer)

    changed = client.put("/api/auth/me/password", json={
        "current_password": PASSWORD, "new_password": "n3w-secret", "confirm_password": "n3w-secret",
    }, headers=headers)
    assert changed.status_code == 200

    old = client.post("/api/auth/freelancer/login", json={"email": "dev@example.com", "password": PASSWORD})
    new = client.post("/api/auth/freelancer/login", json={"email": "dev@example.com", "password": "n3w-secret"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_checks_current_password_and_confirmation(client, seed):
    role = seed.role("customer", level=1)
    buyer = seed.principal(PrincipalType.customer, "buyer@example.com", role)
    headers = Seeder.headers(buyer, PrincipalType.customer)

    wrong_current = client.put("/api/auth/me/password", json={
        "current_password": "not-it", "new_password": "n3w-secret", "confirm_password": "n3w-secret",
    }, headers=headers)
    mismatch = client.put("/api/auth/me/password", json={
        "current_password": PASSWORD, "new_password": "n3w-secret", "confirm_password": "other-one",
    }, headers=headers)

    assert wrong_current.status_code == 401
    assert wrong_current.json()["detail"] == "Current password is incorrect"
    assert mismatch.status_code == 400
    assert mismatch.json()["detail"] == "New passwords do not match"


def test_principal_update_requires_the_update_capability(client, seed, admin_headers, staff):
    role, _, headers = staff
    grant = seed.grant(role, seed.module("Freelancers"), can_view=True, can_edit=False)
    dev = seed.principal(PrincipalType.freelancer, "dev@example.com", seed.role("freelancer"))

    denied = client.put(f"/api/freelancers/{dev.id}", json={"name": "Dev Two"}, headers=headers)
    assert denied.status_code == 403

    client.put(f"/api/permissions/{grant.id}", json={"can_edit": True}, headers=admin_headers)
    allowed = client.put(
        f"/api/freelancers/{dev.id}", json={"name": "Dev Two", "profile_name": "Go developer"}, headers=headers,
    )

    assert allowed.status_code == 200
    assert allowed.json()["name"] == "Dev Two"
    me = client.get("/api/auth/me", headers=Seeder.headers(dev, PrincipalType.freelancer))
    assert me.json()["headline"] == "Go developer"


# ---- Roles ----

def test_role_codes_are_unique_among_live_roles(client, admin_headers):
    body = {"code": "editor", "name": "Editor", "level": 10}

    created = client.post("/api/roles/", json=body, headers=admin_headers)
    assert created.status_code == 201
    assert client.post("/api/roles/", json=body, headers=admin_headers).status_code == 409

    role_id = created.json()["id"]
    assert client.delete(f"/api/roles/{role_id}", headers=admin_headers).status_code == 200
    replacement = client.post("/api/roles/", json=body, headers=admin_headers)
    assert replacement.status_code == 201

    restore = client.put(f"/api/roles/{role_id}/restore", headers=admin_headers)
    assert restore.status_code == 409


def test_role_with_permissions_cannot_be_removed_permanently(client, seed, admin_headers, staff):
    role, _, _ = staff
    seed.grant(role, seed.module("Reports"), can_view=True)

    response = client.delete(f"/api/roles/{role.id}/permanent", headers=admin_headers)

    assert response.status_code == 409


def test_list_roles_hides_deleted_roles(client, seed, admin_headers):
    temp = seed.role("temp", level=1)
    client.delete(f"/api/roles/{temp.id}", headers=admin_headers)

    codes = [r["code"] for r in client.get("/api/roles/", headers=admin_headers).json()["roles"]]

    assert "temp" not in codes
    assert "superadmin" in codes


# ---- Modules and menu ----

def test_create_modules_in_batch(client, admin_headers):
    response = client.post("/api/modules/", json=[
        {"name": "Orders", "route": "/orders", "sub_modules": [
            {"name": "Refunds", "route": "/orders/refunds"},
            {"name": "Invoices", "route": "/orders/invoices"},
        ]},
        {"name": "Catalog", "route": "/catalog"},
    ], headers=admin_headers)

    assert response.status_code == 201
    orders, catalog = response.json()
    assert orders["slug"] == "orders"
    assert sorted(s["id"] for s in orders["sub_modules"]) == [1, 2]
    assert catalog["sub_modules"] == []


def test_duplicate_module_route_is_a_conflict(client, admin_headers):
    client.post("/api/modules/", json={"name": "Orders", "route": "/orders"}, headers=admin_headers)

    response = client.post("/api/modules/", json={"name": "Sales", "route": "/orders"}, headers=admin_headers)

    assert response.status_code == 409


def test_menu_lists_only_granted_modules(client, seed, admin_headers, staff):
    role, _, headers = staff
    orders = seed.module("Orders", sub_modules=["Refunds"])
    seed.module("Catalog")
    seed.grant(role, orders, can_view=True)

    menu = client.get("/api/modules/menu", headers=headers).json()["menu"]
    assert [m["name"] for m in menu] == ["Orders"]
    assert [s["name"] for s in menu[0]["sub_modules"]] == ["Refunds"]

    admin_menu = client.get("/api/modules/menu", headers=admin_headers).json()["menu"]
    assert {m["name"] for m in admin_menu} == {"Orders", "Catalog"}


def test_renaming_a_module_takes_effect_immediately(client, seed, admin_headers, staff):
    role, _, headers = staff
    customers = seed.module("Customers")
    seed.grant(role, customers, can_view=True)
    assert client.get("/api/customers/", headers=headers).status_code == 200

    renamed = client.put(f"/api/modules/{customers.id}", json={"name": "Clients"}, headers=admin_headers)

    assert renamed.status_code == 200
    assert renamed.json()["slug"] == "clients"
    assert client.get("/api/customers/", headers=headers).status_code == 403


def test_sub_module_lifecycle(client, seed, admin_headers):
    orders = seed.module("Orders", sub_modules=["Refunds"])

    added = client.post(
        f"/api/modules/{orders.id}/sub-modules",
        json={"name": "Returns", "route": "/orders/returns"},
        headers=admin_headers,
    )
    assert added.status_code == 201
    returns_id = added.json()[0]["id"]
    assert returns_id == 2

    assert client.delete(f"/api/modules/{orders.id}/sub-modules/1", headers=admin_headers).status_code == 200
    again = client.post(
        f"/api/modules/{orders.id}/sub-modules",
        json={"name": "Refunds", "route": "/orders/refunds"},
        headers=admin_headers,
    )
    # ids are never reused inside a module
    assert again.json()[0]["id"] == 3

    reorder = client.put(
        f"/api/modules/{orders.id}/sub-modules/reorder",
        json={"items": [{"id": 3, "position": 0}, {"id": 2, "position": 1}]},
        headers=admin_headers,
    )
    assert reorder.status_code == 200
    live = [s["name"] for s in reorder.json()["sub_modules"] if not s.get("is_deleted")]
    assert live[:2] == ["Refunds", "Returns"]


# ---- Permissions ----

def test_grant_permission_through_the_api(client, seed, admin_headers, super_admin, staff):
    role, _, headers = staff
    orders = seed.module("Orders", sub_modules=["Refunds"])
    body = {"role_id": role.id, "module_id": orders.id, "can_view": True, "can_edit": True}

    created = client.post("/api/permissions/", json=body, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()[0]["granted_by_type"] == "user"
    assert created.json()[0]["granted_by_id"] == super_admin.id

    assert client.post("/api/permissions/", json=body, headers=admin_headers).status_code == 409

    sub = client.post(
        "/api/permissions/",
        json={"role_id": role.id, "module_id": orders.id, "sub_module_id": 1, "can_view": True},
        headers=admin_headers,
    )
    assert sub.status_code == 201

    mine = client.get("/api/permissions/my", headers=headers).json()["permissions"]
    assert {(p["module"]["name"], (p["sub_module"] or {}).get("name")) for p in mine} == {
        ("Orders", None), ("Orders", "Refunds"),
    }

    capability_map = client.get("/api/auth/me/permissions", headers=headers).json()
    assert capability_map["is_super_admin"] is False
    assert capability_map["permissions"]["Orders"]["can_edit"] is True
    assert capability_map["permissions"]["Orders→Refunds"]["can_edit"] is False


def test_permission_for_unknown_sub_module_is_rejected(client, seed, admin_headers, staff):
    role, _, _ = staff
    orders = seed.module("Orders")

    response = client.post(
        "/api/permissions/",
        json={"role_id": role.id, "module_id": orders.id, "sub_module_id": 7, "can_view": True},
        headers=admin_headers,
    )

    assert response.status_code == 404


def test_permission_soft_delete_and_restore(client, seed, admin_headers, staff):
    role, _, headers = staff
    customers = seed.module("Customers")
    permission = seed.grant(role, customers, can_view=True)

    assert client.delete(f"/api/permissions/{permission.id}", headers=admin_headers).status_code == 200
    assert client.get("/api/customers/", headers=headers).status_code == 403

    restored = client.post(f"/api/permissions/{permission.id}/restore", headers=admin_headers)
    assert restored.status_code == 200
    assert client.get("/api/customers/", headers=headers).status_code == 200


def test_list_permissions_filters_by_role_code(client, seed, admin_headers, staff):
    role, _, _ = staff
    other = seed.role("other", level=5)
    orders = seed.module("Orders")
    seed.grant(role, orders, can_view=True)
    seed.grant(other, orders, can_view=True)

    body = client.get("/api/permissions/?role_code=staff", headers=admin_headers).json()

    assert body["total"] == 1
    assert body["permissions"][0]["role"]["code"] == "staff"


# ---- Audit and health ----

def test_writes_are_recorded_in_the_audit_log(client, admin_headers):
    client.post("/api/roles/", json={"code": "editor", "name": "Editor"}, headers=admin_headers)

    logs = client.get("/api/admin/audit?action=role.created", headers=admin_headers).json()["logs"]

    assert len(logs) == 1
    assert logs[0]["actor_type"] == "user"
    assert logs[0]["actor_email"] == "root@example.com"


def test_audit_log_needs_a_senior_role(client, staff):
    _, _, headers = staff

    assert client.get("/api/admin/audit", headers=headers).status_code == 403


def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}
    health = client.get("/api/admin/health").json()
    assert health["database"] == "ok"
    assert health["status"] == "healthy"


def test_responses_carry_a_request_id(client):
    response = client.get("/api/health", headers={"X-Request-Id": "abc123"})

    assert response.headers["x-request-id"] == "abc123"
