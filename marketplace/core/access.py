"""Request gates: authenticate, coarse role authorization, fine permission checks.

Routes list the gates in ``dependencies=[...]``; FastAPI solves them in that
order, so a route reads like ``authenticate → authorize → check permission``.
Each gate either returns or raises a ``MarketplaceError``; the translation to
an HTTP response happens once, in ``marketplace.main``. Denials are recorded on
``request.state.access_denied`` and logged by the access-log middleware.

Gates that touch the database are plain functions and run in FastAPI's
threadpool, off the event loop.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.exceptions import AuthenticationError, AuthorizationError
from marketplace.core.security import security_scheme, TokenClaims, TokenCodec, token_codec
from marketplace.db.session import get_db
from marketplace.models.principal import PrincipalType
from marketplace.services.principal_resolver import (
    PrincipalResolver, principal_resolver, parse_principal_type,
)
from marketplace.services.permission_evaluator import (
    AccessDecision, PermissionEvaluator, permission_evaluator,
)


@dataclass
class CurrentPrincipal:
    """The authenticated principal attached to ``request.state.principal``."""
    principal: Any
    principal_type: PrincipalType
    claims: TokenClaims

    @property
    def id(self) -> int:
        return self.principal.id

    @property
    def email(self) -> str:
        return self.principal.email

    @property
    def role(self):
        return self.principal.role


def current_principal(request: Request) -> CurrentPrincipal:
    """Dependency returning the principal attached by an ``Authenticate`` gate."""
    current = getattr(request.state, "principal", None)
    if current is None:
        raise AuthenticationError("Not authorized to access this route")
    return current


class Authenticate:
    """Verifies the bearer token and loads the live principal and role.

    With no ``principal_types`` any type carried in the token is accepted;
    otherwise tokens of other types are rejected before any lookup.
    """

    def __init__(
        self,
        *principal_types: PrincipalType,
        codec: Optional[TokenCodec] = None,
        resolver: Optional[PrincipalResolver] = None,
    ):
        self.principal_types = frozenset(principal_types)
        self.codec = codec or token_codec
        self.resolver = resolver or principal_resolver

    def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
        db: Session = Depends(get_db),
    ) -> CurrentPrincipal:
        if credentials is None or credentials.scheme != "Bearer":
            raise AuthenticationError("Not authorized to access this route")

        # Signature and expiry are checked before anything touches the database.
        claims = self.codec.verify(credentials.credentials)
        principal_type = parse_principal_type(claims.principal_type)
        if self.principal_types and principal_type not in self.principal_types:
            raise AuthenticationError("Invalid token type")

        principal = self.resolver.resolve(db, principal_type, claims.principal_id)
        current = CurrentPrincipal(principal=principal, principal_type=principal_type, claims=claims)
        request.state.principal = current
        return current


authenticate_any = Authenticate()
authenticate_user = Authenticate(PrincipalType.user)
authenticate_customer = Authenticate(PrincipalType.customer)
authenticate_freelancer = Authenticate(PrincipalType.freelancer)
authenticate_business = Authenticate(PrincipalType.business)
authenticate_vendor = Authenticate(PrincipalType.vendorb2b, PrincipalType.vendorb2c)
authenticate_vendor_b2b = Authenticate(PrincipalType.vendorb2b)
authenticate_vendor_b2c = Authenticate(PrincipalType.vendorb2c)


class Authorize:
    """Coarse role gate.

    Super admins always pass. Otherwise the principal passes if its role level
    reaches ``min_level`` or its role code is listed in ``roles``. With neither
    option configured every authenticated principal passes.
    """

    def __init__(self, min_level: Optional[int] = None, roles: Optional[Iterable[str]] = None):
        self.min_level = min_level
        self.roles = tuple(roles) if roles else ()

    async def __call__(self, request: Request) -> CurrentPrincipal:
        current = current_principal(request)
        role = current.role
        if role.is_super_admin:
            return current
        if self.min_level is None and not self.roles:
            return current
        if self.min_level is not None and role.level >= self.min_level:
            return current
        if self.roles and role.code in self.roles:
            return current

        request.state.access_denied = (
            f"role {role.code} (level {role.level}) refused: min_level={self.min_level} roles={list(self.roles)}"
        )
        if self.roles and self.min_level is None:
            raise AuthorizationError(f"Role not allowed: {', '.join(self.roles)}")
        raise AuthorizationError("Insufficient role level")


class CheckPermission:
    """Fine-grained gate backed by the permission evaluator."""

    def __init__(
        self,
        module: str,
        action: str,
        sub_module: Optional[str] = None,
        evaluator: Optional[PermissionEvaluator] = None,
    ):
        self.module = module
        self.action = action
        self.sub_module = sub_module
        self.evaluator = evaluator or permission_evaluator

    def target(self) -> str:
        if self.sub_module:
            return f"{self.module} → {self.sub_module}"
        return self.module

    def denial_message(self, decision: AccessDecision) -> str:
        if settings.RBAC_OPAQUE_DENIALS:
            return f"No {self.action} permission on {self.target()}"
        return f"No {self.action} permission on {self.target()}: {decision.reason}"

    def __call__(self, request: Request, db: Session = Depends(get_db)) -> AccessDecision:
        current = current_principal(request)
        decision = self.evaluator.check(db, current.role, self.module, self.action, self.sub_module)
        if not decision.allowed:
            request.state.access_denied = f"{self.action} on {self.target()}: {decision.reason}"
            raise AuthorizationError(self.denial_message(decision))
        return decision


def current_permissions(
    request: Request,
    db: Session = Depends(get_db),
) -> Dict[str, Dict[str, bool]]:
    """Capability map of the authenticated principal's live role."""
    current = current_principal(request)
    permissions = getattr(request.state, "permissions", None)
    if permissions is None:
        permissions = permission_evaluator.capability_map(db, current.role)
        request.state.permissions = permissions
    return permissions


def permission_gates(
    module: str,
    action: str,
    min_level: Optional[int] = None,
    roles: Optional[Iterable[str]] = None,
    sub_module: Optional[str] = None,
    authenticate: Authenticate = authenticate_user,
) -> list:
    """The usual ``authenticate → authorize → check permission`` chain for a route."""
    return [
        Depends(authenticate),
        Depends(Authorize(min_level=min_level, roles=roles)),
        Depends(CheckPermission(module, action, sub_module)),
    ]
