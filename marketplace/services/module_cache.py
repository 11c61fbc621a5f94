"""Module directory cache — short-lived, process-wide name → module lookups.

Only positive hits are stored, so a module created after a failed lookup is
visible on the very next call. Entries expire ``ttl_seconds`` after they were
stored; expiry is checked lazily against an injectable clock. Module writes
made through ``module_service`` invalidate the names they touch in this
process; other processes see the change once their entry expires.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.models.module import Module


@dataclass(frozen=True)
class SubModuleEntry:
    id: int
    name: str
    route: str
    position: int
    is_active: bool
    is_deleted: bool


@dataclass(frozen=True)
class ModuleEntry:
    """Session-independent snapshot of a module and its submodules."""
    id: int
    name: str
    route: str
    position: int
    sub_modules: Tuple[SubModuleEntry, ...]

    @classmethod
    def from_model(cls, module: Module) -> "ModuleEntry":
        return cls(
            id=module.id,
            name=module.name,
            route=module.route,
            position=module.position,
            sub_modules=tuple(
                SubModuleEntry(
                    id=sub.id,
                    name=sub.name,
                    route=sub.route,
                    position=sub.position,
                    is_active=sub.is_active,
                    is_deleted=sub.is_deleted,
                )
                for sub in module.sub_modules
            ),
        )

    def find_sub_module(self, name: str) -> Optional[SubModuleEntry]:
        """Active, non-deleted submodule with this exact name."""
        for sub in self.sub_modules:
            if sub.name == name and sub.is_active and not sub.is_deleted:
                return sub
        return None


class ModuleDirectoryCache:
    """TTL cache of active modules keyed by name."""

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, Tuple[float, ModuleEntry]] = {}

    def get_module(self, db: Session, name: str) -> Optional[ModuleEntry]:
        """Return the active module called ``name`` or None."""
        cached = self._entries.get(name)
        if cached is not None:
            expires_at, entry = cached
            if self.clock() < expires_at:
                return entry
            self._entries.pop(name, None)

        module = (
            db.query(Module)
            .filter(
                Module.name == name,
                Module.is_active == True,
                Module.is_deleted == False,
            )
            .first()
        )
        if module is None:
            return None

        entry = ModuleEntry.from_model(module)
        self._entries[name] = (self.clock() + self.ttl_seconds, entry)
        return entry

    def invalidate(self, *names: str) -> None:
        for name in names:
            if name:
                self._entries.pop(name, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: str) -> bool:
        cached = self._entries.get(name)
        return cached is not None and self.clock() < cached[0]

    def __len__(self) -> int:
        return len(self._entries)


module_cache = ModuleDirectoryCache(ttl_seconds=settings.MODULE_CACHE_TTL_SECONDS)
