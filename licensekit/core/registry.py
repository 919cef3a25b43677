from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, TypeVar

from .errors import InvalidInputError

T = TypeVar("T")

BuiltinLoader = Callable[[], Iterable[Tuple[str, T]]]


def _key(name: str) -> str:
    return name.casefold()


@dataclass
class Registry(Generic[T]):
    """Case-insensitive name -> entry registry with lazily loaded built-ins.

    Built-ins come from ``loader`` and are installed on first access, at most
    once per instance. Registration always happens after that first load, so a
    user entry with a built-in's name replaces the built-in.

    Concurrency:
    - first-use initialization is double-checked under a lock
    - writers take the lock and publish a fresh dict (copy-on-write)
    - readers never lock once initialized; they see either the old or the new dict

    - register / unregister: O(n) (copy-on-write)
    - get / contains: O(1) average
    """

    kind: str
    loader: Optional[BuiltinLoader] = None
    # casefolded name -> (display name, entry)
    _entries: Dict[str, Tuple[str, T]] = field(default_factory=dict, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self._entries = self._load_builtins()
            self._initialized = True

    def _load_builtins(self) -> Dict[str, Tuple[str, T]]:
        entries: Dict[str, Tuple[str, T]] = {}
        if self.loader is not None:
            for name, entry in self.loader():
                entries[_key(name)] = (name, entry)
        return entries

    @staticmethod
    def _check_name(name: str) -> None:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Registry name must be a non-empty string")

    def register(self, name: str, entry: T) -> None:
        """Register ``entry`` under ``name``, replacing any existing entry."""
        self._check_name(name)
        if entry is None or not callable(entry):
            raise InvalidInputError(f"{self.kind} entry for '{name}' must be callable")
        self._ensure_initialized()
        with self._lock:
            updated = dict(self._entries)
            updated[_key(name)] = (name, entry)
            self._entries = updated

    def unregister(self, name: str) -> bool:
        """Remove an entry. Returns True if something was removed."""
        self._check_name(name)
        self._ensure_initialized()
        with self._lock:
            if _key(name) not in self._entries:
                return False
            updated = dict(self._entries)
            del updated[_key(name)]
            self._entries = updated
            return True

    def get(self, name: str) -> Optional[T]:
        """Retrieve an entry or None."""
        if not isinstance(name, str):
            return None
        self._ensure_initialized()
        found = self._entries.get(_key(name))
        return found[1] if found is not None else None

    def contains(self, name: str) -> bool:
        return self.get(name) is not None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def names(self) -> List[str]:
        """Registered names (display spelling) in registration order."""
        self._ensure_initialized()
        return [display for display, _ in self._entries.values()]

    def all(self) -> Mapping[str, T]:
        """Read-only snapshot keyed by display name."""
        self._ensure_initialized()
        return MappingProxyType({display: entry for display, entry in self._entries.values()})

    def reset(self) -> None:
        """Drop user registrations and reinstall the built-ins."""
        with self._lock:
            self._entries = self._load_builtins()
            self._initialized = True

    def __len__(self) -> int:
        self._ensure_initialized()
        return len(self._entries)
