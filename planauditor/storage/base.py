"""Analysis store contract and the default no-op store."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from planauditor.orchestrator import AnalysisResult


@dataclass(frozen=True)
class ListCriteria:
    tenant_id: str | None = None
    limit: int = 10
    offset: int = 0
    status: str | None = None
    repository_url: str | None = None


@dataclass
class AnalysisPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    has_more: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"items": list(self.items), "total": self.total, "has_more": self.has_more}


class AnalysisStore(Protocol):
    """Protocol for analysis result stores."""

    def store(self, result: "AnalysisResult") -> None:
        """Persist a terminal analysis result."""
        ...

    def get(self, analysis_id: str, tenant_id: str | None = None) -> dict[str, Any] | None:
        """Stored result dict, or None when unknown."""
        ...

    def list(self, criteria: ListCriteria) -> AnalysisPage:
        """One page of result summaries, newest first."""
        ...

    def delete(self, analysis_id: str, tenant_id: str | None = None) -> bool:
        """True when a result was removed."""
        ...


class NullAnalysisStore:
    """Stores nothing. The default when no store is injected."""

    def store(self, result: "AnalysisResult") -> None:
        return None

    def get(self, analysis_id: str, tenant_id: str | None = None) -> dict[str, Any] | None:
        return None

    def list(self, criteria: ListCriteria) -> AnalysisPage:
        return AnalysisPage()

    def delete(self, analysis_id: str, tenant_id: str | None = None) -> bool:
        return False
