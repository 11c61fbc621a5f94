"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from marketplace.db.base import Base


class Role(Base):
    """Authorization profile with a seniority level and an optional super-admin bypass.

    ``live_code`` mirrors ``code`` while the role is not deleted and is NULL
    afterwards, so the unique index only constrains live roles.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, index=True)
    live_code = Column(String(50), unique=True, nullable=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    level = Column(Integer, nullable=False, default=1)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
