"""Permission model — per-role capability grant on a module or submodule."""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, ForeignKeyConstraint, func,
)
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

CAPABILITY_FLAGS = ("can_view", "can_add", "can_edit", "can_delete", "can_view_all")


def permission_key(role_id: int, module_id: int, sub_module_id=None) -> str:
    """Value of ``Permission.live_key`` for a (role, module, submodule) triple."""
    return f"{role_id}:{module_id}:{sub_module_id or 0}"


class Permission(Base):
    """Capability flags granted to a role on a module (optionally a submodule).

    At most one non-deleted row may exist per triple. ``live_key`` holds the
    triple while the row is not deleted and NULL afterwards; its unique index
    makes the database reject a second live row even when two creates race.
    """
    __tablename__ = "permissions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["module_id", "sub_module_id"],
            ["sub_modules.module_id", "sub_modules.id"],
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False, index=True)
    sub_module_id = Column(Integer, nullable=True)
    live_key = Column(String(64), unique=True, nullable=True)

    can_view = Column(Boolean, default=False, nullable=False)
    can_add = Column(Boolean, default=False, nullable=False)
    can_edit = Column(Boolean, default=False, nullable=False)
    can_delete = Column(Boolean, default=False, nullable=False)
    can_view_all = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    granted_by_type = Column(String(20), nullable=True)
    granted_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", lazy="joined")
    module = relationship("Module", lazy="joined")

    @property
    def sub_module(self):
        if self.sub_module_id is None or self.module is None:
            return None
        return self.module.find_sub_module(self.sub_module_id)

    def capabilities(self) -> dict:
        return {flag: bool(getattr(self, flag)) for flag in CAPABILITY_FLAGS}
