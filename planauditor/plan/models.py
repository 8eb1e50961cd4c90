"""In-memory model of a parsed infrastructure change plan."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Change:
    """Planned mutation payload of one resource."""

    actions: tuple[str, ...]
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    after_unknown: Any = None
    before_sensitive: Any = None
    after_sensitive: Any = None


@dataclass(frozen=True)
class ResourceChange:
    """One planned mutation to one resource, owned by its Plan."""

    address: str
    type: str
    name: str
    change: Change
    provider_name: str = ""
    mode: str = "managed"
    module_address: str | None = None
    index: Any = None

    @property
    def actions(self) -> tuple[str, ...]:
        return self.change.actions

    @property
    def before(self) -> dict[str, Any] | None:
        return self.change.before

    @property
    def after(self) -> dict[str, Any] | None:
        return self.change.after

    @property
    def configuration(self) -> dict[str, Any] | None:
        """After snapshot when present, otherwise the before snapshot."""
        return self.change.after if self.change.after else self.change.before

    @property
    def is_destructive(self) -> bool:
        return "delete" in self.change.actions

    @property
    def is_replacement(self) -> bool:
        return "create" in self.change.actions and "delete" in self.change.actions

    @property
    def is_sensitive(self) -> bool:
        return bool(self.change.after_sensitive or self.change.before_sensitive)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "mode": self.mode,
            "type": self.type,
            "name": self.name,
            "provider_name": self.provider_name,
            "module_address": self.module_address,
            "index": self.index,
            "change": {
                "actions": list(self.change.actions),
                "before": self.change.before,
                "after": self.change.after,
                "after_unknown": self.change.after_unknown,
                "before_sensitive": self.change.before_sensitive,
                "after_sensitive": self.change.after_sensitive,
            },
        }


@dataclass(frozen=True)
class Plan:
    """Parsed change plan. Built once per analysis and never mutated."""

    format_version: str
    terraform_version: str
    resource_changes: tuple[ResourceChange, ...]
    variables: dict[str, Any] = field(default_factory=dict)
    output_changes: dict[str, Any] = field(default_factory=dict)
    provider_configs: tuple[str, ...] = ()
    module_calls: tuple[str, ...] = ()

    @property
    def resource_count(self) -> int:
        return len(self.resource_changes)

    def __iter__(self):
        return iter(self.resource_changes)

    def __len__(self) -> int:
        return len(self.resource_changes)
