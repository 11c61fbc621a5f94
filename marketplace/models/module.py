"""Module and SubModule models — the units permissions are granted against."""

import re

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from marketplace.db.base import Base


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class Module(Base):
    """Top-level application module owning an ordered list of submodules.

    Submodule ids come from ``sub_module_seq``: each module hands out its own
    ids and never reuses one, so a permission keeps pointing at the same
    submodule across renames.
    """
    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, index=True)
    live_name = Column(String(50), unique=True, nullable=True)
    slug = Column(String(60), nullable=False)
    description = Column(String(300), nullable=True)
    icon = Column(String(100), nullable=False, default="fas fa-folder")
    route = Column(String(255), nullable=False)
    live_route = Column(String(255), unique=True, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    dashboard_view = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    sub_module_seq = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    sub_modules = relationship(
        "SubModule",
        back_populates="module",
        order_by="SubModule.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def allocate_sub_module_id(self) -> int:
        self.sub_module_seq = (self.sub_module_seq or 0) + 1
        return self.sub_module_seq

    def find_sub_module(self, sub_module_id: int):
        for sub in self.sub_modules:
            if sub.id == sub_module_id:
                return sub
        return None


class SubModule(Base):
    """Submodule entry, identified by (module_id, id)."""
    __tablename__ = "sub_modules"

    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(50), nullable=False)
    route = Column(String(255), nullable=False)
    icon = Column(String(100), nullable=False, default="fas fa-circle")
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    dashboard_view = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    module = relationship("Module", back_populates="sub_modules")
