"""Analysis request payload and scan options.

The boundary payload uses camelCase keys (``planData``, ``scanOptions``...);
everything past ``AnalysisRequest.from_dict`` is snake_case.
"""

from dataclasses import dataclass, field
from typing import Any

from planauditor.errors import ValidationError
from planauditor.utils.constants import DEFAULT_FRAMEWORKS, PLAN_FORMATS, SEVERITIES


@dataclass(frozen=True)
class ScanOptions:
    """Which engines run and how their output is reported."""

    include_security_checks: bool = True
    include_compliance_checks: bool = True
    include_cost_analysis: bool = True
    frameworks: tuple[str, ...] = DEFAULT_FRAMEWORKS
    severity_threshold: str = "medium"

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "ScanOptions":
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValidationError("scanOptions must be an object", field="scanOptions")

        frameworks = payload.get("frameworks")
        if frameworks is None:
            frameworks = DEFAULT_FRAMEWORKS
        elif not isinstance(frameworks, (list, tuple)) or not all(isinstance(f, str) for f in frameworks):
            raise ValidationError(
                "scanOptions.frameworks must be a list of strings", field="scanOptions.frameworks"
            )

        threshold = payload.get("severityThreshold") or "medium"
        if threshold not in SEVERITIES:
            raise ValidationError(
                f"scanOptions.severityThreshold must be one of: {', '.join(SEVERITIES)}",
                field="scanOptions.severityThreshold",
            )

        return cls(
            include_security_checks=payload.get("includeSecurityChecks", True) is not False,
            include_compliance_checks=payload.get("includeComplianceChecks", True) is not False,
            include_cost_analysis=payload.get("includeCostAnalysis", True) is not False,
            frameworks=tuple(frameworks),
            severity_threshold=threshold,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "includeSecurityChecks": self.include_security_checks,
            "includeComplianceChecks": self.include_compliance_checks,
            "includeCostAnalysis": self.include_cost_analysis,
            "frameworks": list(self.frameworks),
            "severityThreshold": self.severity_threshold,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """A validated request to analyze one serialized plan."""

    plan_data: str
    plan_format: str = "json"
    repository_url: str | None = None
    branch: str | None = None
    commit_hash: str | None = None
    pull_request_id: str | None = None
    scan_options: ScanOptions = field(default_factory=ScanOptions)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AnalysisRequest":
        """Validate a boundary payload.

        Raises ValidationError with ``field`` set to the offending key.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be an object")

        plan_data = payload.get("planData")
        if not plan_data or not isinstance(plan_data, str):
            raise ValidationError("planData is required and must be a string", field="planData")

        plan_format = payload.get("planFormat")
        if plan_format not in PLAN_FORMATS:
            raise ValidationError(
                f"planFormat must be one of: {', '.join(PLAN_FORMATS)}", field="planFormat"
            )

        return cls(
            plan_data=plan_data,
            plan_format=plan_format,
            repository_url=payload.get("repositoryUrl"),
            branch=payload.get("branch"),
            commit_hash=payload.get("commitHash"),
            pull_request_id=payload.get("pullRequestId"),
            scan_options=ScanOptions.from_dict(payload.get("scanOptions")),
        )
