"""Models package — import all models so metadata.create_all can discover them."""

from marketplace.models.role import Role
from marketplace.models.module import Module, SubModule
from marketplace.models.permission import Permission
from marketplace.models.principal import (
    PrincipalType, PlatformUser, Customer, Freelancer, Business, VendorB2B, VendorB2C,
    PRINCIPAL_MODELS,
)
from marketplace.models.audit_log import AuditLog

__all__ = [
    "Role", "Module", "SubModule", "Permission",
    "PrincipalType", "PlatformUser", "Customer", "Freelancer",
    "Business", "VendorB2B", "VendorB2C", "PRINCIPAL_MODELS",
    "AuditLog",
]
