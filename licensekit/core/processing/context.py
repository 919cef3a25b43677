from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from licensekit.core.canonicalization.base import Canonicalizer
    from licensekit.core.registry import Registry
    from licensekit.core.schema.schema import FieldDescriptor


@dataclass(frozen=True)
class ProcessorContext:
    """
    Read-only inputs handed to a field processor.

    - parameters are wrapped in a read-only mapping
    - working_directory anchors relative paths (process cwd when unset)
    - canonicalizers / encoding are used by hashing processors asked to canonicalize
    """

    field_name: str
    descriptor: Optional["FieldDescriptor"] = None
    parameters: Mapping[str, Any] = field(default_factory=dict)
    working_directory: Optional[str] = None
    canonicalizers: Optional["Registry[Canonicalizer]"] = None
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters or {})))

    def resolve_path(self, path: str) -> Path:
        p = Path(path)
        if p.is_absolute():
            return p
        base = Path(self.working_directory) if self.working_directory else Path(os.getcwd())
        return base / p

    def parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)
