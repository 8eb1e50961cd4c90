"""Analysis orchestrator.

Sequences parse -> compliance -> security -> cost -> findings processing and
assembles one AnalysisResult per run. Malformed plan input raises; anything
that goes wrong after parsing yields a ``failed`` result instead.
"""

import random
import string
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from planauditor.errors import AnalysisFailure, ValidationError
from planauditor.findings.processor import FindingsProcessor, ProcessedFinding, TenantContext
from planauditor.plan.models import Plan, ResourceChange
from planauditor.plan.parser import PlanParser
from planauditor.request import AnalysisRequest, ScanOptions
from planauditor.rules.compliance import ComplianceEngine
from planauditor.rules.cost import CostEngine
from planauditor.rules.security import SecurityEngine
from planauditor.storage.base import AnalysisPage, AnalysisStore, ListCriteria, NullAnalysisStore
from planauditor.utils.helpers import round2
from planauditor.utils.logging import bind_run, logger

# Engines always report in this order, parallel or not.
ENGINE_ORDER = ("compliance", "security", "cost")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_analysis_id() -> str:
    """``tf-analysis-<epoch ms>-<6 base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"tf-analysis-{int(time.time() * 1000)}-{suffix}"


def classify_change(actions) -> str:
    """Collapse an action list to one change label.

    A replacement (create + delete) reports as update.
    """
    if "create" in actions and "delete" in actions:
        return "update"
    if "create" in actions:
        return "create"
    if "delete" in actions:
        return "delete"
    return "no-op"


@dataclass
class AnalysisSummary:
    total_resources: int = 0
    resources_to_create: int = 0
    resources_to_update: int = 0
    resources_to_delete: int = 0
    resources_to_replace: int = 0
    compliance_score: float = 0.0
    security_score: float = 0.0
    security_risk_level: str | None = None
    cost_impact: float = 0.0
    findings_count: int = 0


@dataclass
class ResourceAnalysis:
    address: str
    type: str
    name: str
    change: str
    configuration: dict[str, Any] | None
    compliance_status: str = "unknown"
    security_status: str = "unknown"
    cost_impact: float = 0.0


@dataclass
class AnalysisMetadata:
    analyzed_at: str
    plan_format: str
    terraform_version: str | None = None
    repository_url: str | None = None
    branch: str | None = None
    commit_hash: str | None = None
    pull_request_id: str | None = None
    severity_threshold: str = "medium"


@dataclass
class AnalysisResult:
    analysis_id: str
    metadata: AnalysisMetadata
    status: str = "in_progress"
    tenant_id: str = "default-tenant"
    user_id: str = "unknown-user"
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)
    findings: list[ProcessedFinding] = field(default_factory=list)
    resources: list[ResourceAnalysis] = field(default_factory=list)
    framework_scores: dict[str, float] = field(default_factory=dict)
    control_scores: dict[str, float] = field(default_factory=dict)
    category_scores: dict[str, float] = field(default_factory=dict)
    cost_breakdown: dict[str, float] = field(default_factory=dict)
    cost_recommendations: list[dict[str, Any]] = field(default_factory=list)
    annual_cost: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form with snake_case keys."""
        return {
            "analysis_id": self.analysis_id,
            "status": self.status,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "summary": vars(self.summary).copy(),
            "findings": [f.to_dict() for f in self.findings],
            "resources": [vars(r).copy() for r in self.resources],
            "scores": {
                "frameworks": dict(self.framework_scores),
                "controls": dict(self.control_scores),
                "security_categories": dict(self.category_scores),
            },
            "cost": {
                "monthly_cost": self.summary.cost_impact,
                "annual_cost": self.annual_cost,
                "breakdown": dict(self.cost_breakdown),
                "recommendations": [dict(r) for r in self.cost_recommendations],
            },
            "metadata": vars(self.metadata).copy(),
        }


class AnalysisOrchestrator:
    """Runs the parser, the enabled engines and the findings processor.

    Every collaborator is injectable. Engines and the processor hold no
    per-run state, so one orchestrator can serve concurrent requests.
    """

    def __init__(
        self,
        parser: PlanParser | None = None,
        compliance_engine: ComplianceEngine | None = None,
        security_engine: SecurityEngine | None = None,
        cost_engine: CostEngine | None = None,
        processor: FindingsProcessor | None = None,
        store: AnalysisStore | None = None,
        parallel: bool = False,
    ):
        self.parser = parser or PlanParser()
        self.engines = {
            "compliance": compliance_engine or ComplianceEngine(),
            "security": security_engine or SecurityEngine(),
            "cost": cost_engine or CostEngine(),
        }
        self.processor = processor or FindingsProcessor()
        self.store = store or NullAnalysisStore()
        self.parallel = parallel

    def analyze(self, request: AnalysisRequest | dict[str, Any], tenant: TenantContext | None = None) -> AnalysisResult:
        """Parse, analyze and store one plan.

        Raises:
            ParseError: plan could not be decoded
            ValidationError: invalid request payload or plan structure
        """
        if isinstance(request, dict):
            request = AnalysisRequest.from_dict(request)

        analysis_id = generate_analysis_id()
        tenant = replace(tenant or TenantContext(), analysis_id=analysis_id)
        log = bind_run(analysis_id=analysis_id, tenant_id=tenant.tenant_id, user_id=tenant.user_id)

        log.bind(
            plan_format=request.plan_format,
            repository_url=request.repository_url,
            branch=request.branch,
            commit_hash=request.commit_hash,
            pull_request_id=request.pull_request_id,
        ).info("Starting Terraform plan analysis")

        plan = self.parser.parse(request.plan_data, request.plan_format, log=log)
        result = self.perform_analysis(plan, request, analysis_id, tenant, log=log)

        self.store.store(result)
        return result

    def perform_analysis(
        self,
        plan: Plan,
        request: AnalysisRequest,
        analysis_id: str,
        tenant: TenantContext | None = None,
        log=None,
    ) -> AnalysisResult:
        """Run the enabled engines over a parsed plan. Never raises."""
        tenant = tenant or TenantContext(analysis_id=analysis_id)
        log = log or bind_run(analysis_id=analysis_id, tenant_id=tenant.tenant_id)
        options = request.scan_options

        result = AnalysisResult(
            analysis_id=analysis_id,
            tenant_id=tenant.tenant_id,
            user_id=tenant.user_id,
            metadata=AnalysisMetadata(
                analyzed_at=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                plan_format=request.plan_format,
                terraform_version=plan.terraform_version,
                repository_url=request.repository_url,
                branch=request.branch,
                commit_hash=request.commit_hash,
                pull_request_id=request.pull_request_id,
                severity_threshold=options.severity_threshold,
            ),
        )
        raw_findings: list = []

        try:
            self._count_changes(plan, result.summary)

            outcomes = self._run_engines(plan, options, log)

            compliance = outcomes.get("compliance")
            if compliance is not None:
                raw_findings.extend(compliance.findings)
                result.summary.compliance_score = compliance.score
                result.framework_scores = compliance.framework_scores
                result.control_scores = compliance.control_scores

            security = outcomes.get("security")
            if security is not None:
                raw_findings.extend(security.findings)
                result.summary.security_score = security.score
                result.summary.security_risk_level = security.risk_level
                result.category_scores = security.category_scores

            cost = outcomes.get("cost")
            resource_costs: dict[str, float] = {}
            if cost is not None:
                raw_findings.extend(cost.findings)
                result.summary.cost_impact = round2(cost.total_cost)
                result.annual_cost = round2(cost.annual_cost)
                result.cost_breakdown = {k: round2(v) for k, v in cost.cost_breakdown.items()}
                result.cost_recommendations = cost.recommendations
                resource_costs = cost.resource_costs

            result.findings = self.processor.process(raw_findings, tenant, log=log)
            result.resources = [self._project(change, resource_costs) for change in plan.resource_changes]
            result.summary.findings_count = len(result.findings)
            result.status = "completed"

            log.bind(
                compliance_score=result.summary.compliance_score,
                security_score=result.summary.security_score,
                cost_impact=result.summary.cost_impact,
            ).info(
                f"Terraform plan analysis completed: {result.summary.total_resources} resources, "
                f"{result.summary.findings_count} findings"
            )

        except Exception as e:
            failure = AnalysisFailure(analysis_id, e)
            log.opt(exception=True).error(f"Terraform plan analysis failed: {failure}")
            self._mark_failed(result, raw_findings, tenant, e, log)

        return result

    def _count_changes(self, plan: Plan, summary: AnalysisSummary) -> None:
        summary.total_resources = plan.resource_count
        for change in plan.resource_changes:
            if "create" in change.actions:
                summary.resources_to_create += 1
            if "update" in change.actions:
                summary.resources_to_update += 1
            if "delete" in change.actions:
                summary.resources_to_delete += 1
            if change.is_replacement:
                summary.resources_to_replace += 1

    def _enabled_engines(self, options: ScanOptions) -> list[str]:
        enabled = {
            "compliance": options.include_compliance_checks,
            "security": options.include_security_checks,
            "cost": options.include_cost_analysis,
        }
        return [kind for kind in ENGINE_ORDER if enabled[kind]]

    def _run_engines(self, plan: Plan, options: ScanOptions, log) -> dict[str, Any]:
        kinds = self._enabled_engines(options)

        if not self.parallel or len(kinds) < 2:
            return {kind: self.engines[kind].analyze(plan, options, log=log) for kind in kinds}

        with ThreadPoolExecutor(max_workers=len(kinds)) as executor:
            futures = {
                kind: executor.submit(self.engines[kind].analyze, plan, options, log=log) for kind in kinds
            }
            return {kind: futures[kind].result() for kind in kinds}

    def _project(self, change: ResourceChange, resource_costs: dict[str, float]) -> ResourceAnalysis:
        return ResourceAnalysis(
            address=change.address,
            type=change.type,
            name=change.name,
            change=classify_change(change.actions),
            configuration=change.configuration,
            cost_impact=round2(resource_costs.get(change.address, 0.0)),
        )

    def _mark_failed(
        self,
        result: AnalysisResult,
        raw_findings: list,
        tenant: TenantContext,
        error: Exception,
        log,
    ) -> None:
        result.status = "failed"

        if not result.findings:
            for raw in raw_findings:
                try:
                    result.findings.append(self.processor.process_finding(raw, tenant))
                except ValidationError as e:
                    log.warning(f"Dropping invalid finding from failed analysis: {e}")

        message = str(error) or type(error).__name__
        result.findings.append(
            self.processor.process_finding(
                {
                    "id": "analysis-error",
                    "kind": "compliance",
                    "severity": "high",
                    "title": "Analysis Failed",
                    "description": f"Terraform plan analysis failed: {message}",
                    "resource": "plan",
                    "rule": "analysis-error",
                    "recommendation": "Check plan format and try again",
                    "evidence": {"error": message},
                },
                tenant,
            )
        )
        result.summary.findings_count = len(result.findings)

    def get_analysis(self, analysis_id: str, tenant: TenantContext | None = None) -> dict[str, Any] | None:
        logger.info(f"Getting analysis result {analysis_id}")
        return self.store.get(analysis_id, tenant.tenant_id if tenant else None)

    def list_analyses(self, criteria: ListCriteria | None = None) -> AnalysisPage:
        criteria = criteria or ListCriteria()
        logger.info(f"Listing analyses (limit={criteria.limit}, offset={criteria.offset})")
        return self.store.list(criteria)

    def delete_analysis(self, analysis_id: str, tenant: TenantContext | None = None) -> bool:
        logger.info(f"Deleting analysis {analysis_id}")
        return self.store.delete(analysis_id, tenant.tenant_id if tenant else None)
