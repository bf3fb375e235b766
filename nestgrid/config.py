"""Configuration for tree-grid passes."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from nestgrid.core.records import AttributeMap

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DisplayPolicy:
    """How the tree is presented.

    Args:
        show_roots: Render forest roots. When False, roots are still
            fetched to scope queries and resolve parents, then pruned.
    """

    show_roots: bool = True


@dataclass
class GridConfig:
    """Configuration for the tree-grid pipeline."""

    attributes: AttributeMap = field(default_factory=AttributeMap)
    display: DisplayPolicy = field(default_factory=DisplayPolicy)
    encoding: str = "nested_set"  # EncodingRegistry name
    strict: bool = False  # Reject inconsistent depth sequences instead of flagging them

    @property
    def show_roots(self) -> bool:
        return self.display.show_roots

    def to_dict(self) -> dict[str, Any]:
        return {
            "attributes": self.attributes.to_dict(),
            "show_roots": self.display.show_roots,
            "encoding": self.encoding,
            "strict": self.strict,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GridConfig:
        return cls(
            attributes=AttributeMap.from_dict(data.get("attributes", {})),
            display=DisplayPolicy(show_roots=data.get("show_roots", True)),
            encoding=data.get("encoding", "nested_set"),
            strict=data.get("strict", False),
        )

    @classmethod
    def from_env(cls, prefix: str = "NESTGRID_") -> GridConfig:
        """Read ``<prefix>SHOW_ROOTS`` and ``<prefix>STRICT`` from the environment."""
        show_roots = os.environ.get(f"{prefix}SHOW_ROOTS", "true").lower() in _TRUE_VALUES
        strict = os.environ.get(f"{prefix}STRICT", "false").lower() in _TRUE_VALUES
        return cls(display=DisplayPolicy(show_roots=show_roots), strict=strict)
