"""Principal models — every actor type that can hold a credential."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import declared_attr, relationship
from marketplace.db.base import Base


class PrincipalType(str, enum.Enum):
    user = "user"
    customer = "customer"
    freelancer = "freelancer"
    business = "business"
    vendorb2b = "vendorb2b"
    vendorb2c = "vendorb2c"


class PrincipalMixin:
    """Columns shared by all principal tables."""

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @declared_attr
    def role_id(cls):
        return Column(Integer, ForeignKey("roles.id"), nullable=False)

    @declared_attr
    def role(cls):
        return relationship("Role", lazy="joined")


class PlatformUser(PrincipalMixin, Base):
    """Back-office staff account."""
    __tablename__ = "platform_users"
    principal_type = PrincipalType.user


class Customer(PrincipalMixin, Base):
    """Storefront shopper."""
    __tablename__ = "customers"
    principal_type = PrincipalType.customer


class Freelancer(PrincipalMixin, Base):
    """Individual service provider."""
    __tablename__ = "freelancers"
    principal_type = PrincipalType.freelancer

    headline = Column(String(255), nullable=True)


class Business(PrincipalMixin, Base):
    """Business account that engages freelancers."""
    __tablename__ = "businesses"
    principal_type = PrincipalType.business

    business_name = Column(String(255), nullable=True)


class VendorB2B(PrincipalMixin, Base):
    """Wholesale vendor."""
    __tablename__ = "vendors_b2b"
    principal_type = PrincipalType.vendorb2b

    company_name = Column(String(255), nullable=True)


class VendorB2C(PrincipalMixin, Base):
    """Retail vendor."""
    __tablename__ = "vendors_b2c"
    principal_type = PrincipalType.vendorb2c

    store_name = Column(String(255), nullable=True)


PRINCIPAL_MODELS = {
    PrincipalType.user: PlatformUser,
    PrincipalType.customer: Customer,
    PrincipalType.freelancer: Freelancer,
    PrincipalType.business: Business,
    PrincipalType.vendorb2b: VendorB2B,
    PrincipalType.vendorb2c: VendorB2C,
}

# Type-specific profile column, if any.
PROFILE_FIELDS = {
    PrincipalType.freelancer: "headline",
    PrincipalType.business: "business_name",
    PrincipalType.vendorb2b: "company_name",
    PrincipalType.vendorb2c: "store_name",
}
