"""Tests for the analysis orchestrator and request validation."""

import json
import re

import pytest

from planauditor.errors import ParseError, ValidationError
from planauditor.findings import FindingsProcessor, TenantContext
from planauditor.orchestrator import AnalysisOrchestrator, classify_change, generate_analysis_id
from planauditor.request import AnalysisRequest, ScanOptions
from planauditor.rules import SECURITY_RULES, ComplianceEngine, Rule, SecurityEngine
from planauditor.storage import ListCriteria, SqliteAnalysisStore

ID_PATTERN = re.compile(r"^tf-analysis-\d+-[0-9a-z]{6}$")


class RecordingStore:
    """Keeps every stored result in memory."""

    def __init__(self):
        self.results = []

    def store(self, result):
        self.results.append(result)

    def get(self, analysis_id, tenant_id=None):
        return None

    def list(self, criteria):
        raise NotImplementedError

    def delete(self, analysis_id, tenant_id=None):
        return False


class ExplodingComplianceEngine(ComplianceEngine):
    def analyze(self, plan, options=None, log=None):
        raise RuntimeError("boom")


class ExplodingProcessor(FindingsProcessor):
    def process(self, raw_findings, tenant_context, log=None):
        raise RuntimeError("processor down")


def _request(document, **options):
    return {
        "planData": json.dumps(document),
        "planFormat": "json",
        "repositoryUrl": "https://github.com/acme/infra",
        "branch": "main",
        "commitHash": "abc123",
        "pullRequestId": "42",
        "scanOptions": options or None,
    }


def test_generate_analysis_id():
    ids = {generate_analysis_id() for _ in range(50)}
    assert all(ID_PATTERN.match(analysis_id) for analysis_id in ids)
    assert len(ids) > 1


@pytest.mark.parametrize(
    ("actions", "label"),
    [
        (("create",), "create"),
        (("update",), "no-op"),
        (("delete",), "delete"),
        (("delete", "create"), "update"),
        (("no-op",), "no-op"),
    ],
)
def test_classify_change(actions, label):
    assert classify_change(actions) == label


def test_analyze_completes(mixed_plan):
    store = RecordingStore()
    orchestrator = AnalysisOrchestrator(store=store)

    result = orchestrator.analyze(_request(mixed_plan), TenantContext(tenant_id="acme", user_id="alice"))

    assert result.status == "completed"
    assert result.is_terminal
    assert ID_PATTERN.match(result.analysis_id)
    assert store.results == [result]

    summary = result.summary
    assert summary.total_resources == 6
    assert (summary.resources_to_create, summary.resources_to_update) == (4, 1)
    assert (summary.resources_to_delete, summary.resources_to_replace) == (2, 1)
    assert summary.findings_count == len(result.findings)
    assert 0.0 <= summary.compliance_score <= 100.0
    assert 0.0 <= summary.security_score <= 100.0
    assert summary.security_risk_level == "critical"
    # 138.24 instance + 2.30 bucket + 12.24 database + 1666.87 lambda
    assert summary.cost_impact == pytest.approx(1819.65)
    assert result.annual_cost == pytest.approx(21835.8)

    assert {f.analysis_id for f in result.findings} == {result.analysis_id}
    assert {f.tenant_id for f in result.findings} == {"acme"}

    metadata = result.metadata
    assert metadata.terraform_version == "1.6.0"
    assert metadata.repository_url == "https://github.com/acme/infra"
    assert metadata.pull_request_id == "42"
    assert metadata.analyzed_at.endswith("Z")


def test_resource_projection(mixed_plan):
    result = AnalysisOrchestrator().analyze(_request(mixed_plan))
    resources = {r.address: r for r in result.resources}

    assert [r.change for r in result.resources] == ["create", "update", "no-op", "create", "create", "delete"]
    assert resources["aws_instance.web"].cost_impact == pytest.approx(138.24)
    assert resources["module.app.aws_lambda_function.handler"].cost_impact == pytest.approx(1666.87)
    assert resources["aws_ebs_volume.old"].cost_impact == 0.0
    assert resources["aws_ebs_volume.old"].configuration == {"size": 50, "type": "gp2", "encrypted": False}


def test_findings_are_ranked(mixed_plan):
    findings = AnalysisOrchestrator().analyze(_request(mixed_plan)).findings
    weights = {"critical": 4, "high": 3, "medium": 2, "low": 1}

    keys = [(-weights[f.severity], f.title.casefold(), f.title.swapcase()) for f in findings]
    assert keys == sorted(keys)


def test_results_are_deterministic(mixed_plan):
    orchestrator = AnalysisOrchestrator()
    first = orchestrator.analyze(_request(mixed_plan))
    second = orchestrator.analyze(_request(mixed_plan))

    assert [f.id for f in first.findings] == [f.id for f in second.findings]
    assert first.summary.compliance_score == second.summary.compliance_score
    assert first.framework_scores == second.framework_scores
    assert first.analysis_id != second.analysis_id


def test_parallel_matches_sequential(mixed_plan):
    sequential = AnalysisOrchestrator().analyze(_request(mixed_plan))
    parallel = AnalysisOrchestrator(parallel=True).analyze(_request(mixed_plan))

    assert [f.id for f in parallel.findings] == [f.id for f in sequential.findings]
    assert parallel.category_scores == sequential.category_scores
    assert parallel.summary.cost_impact == sequential.summary.cost_impact


def test_empty_plan(empty_plan):
    result = AnalysisOrchestrator().analyze(_request(empty_plan))

    assert result.status == "completed"
    assert result.findings == []
    assert result.summary.compliance_score == 100.0
    assert result.summary.security_score == 100.0
    assert result.summary.cost_impact == 0.0


def test_disabled_engines(rds_plan):
    result = AnalysisOrchestrator().analyze(
        _request(rds_plan, includeSecurityChecks=False, includeCostAnalysis=False)
    )

    assert {f.kind for f in result.findings} == {"compliance"}
    assert result.summary.security_score == 0.0
    assert result.summary.security_risk_level is None
    assert result.summary.cost_impact == 0.0
    assert result.category_scores == {}


def test_binary_plan_is_rejected_and_not_stored(rds_plan):
    store = RecordingStore()
    request = {"planData": json.dumps(rds_plan), "planFormat": "binary"}

    with pytest.raises(ParseError, match="terraform show -json"):
        AnalysisOrchestrator(store=store).analyze(request)
    assert store.results == []


def test_invalid_plan_structure_propagates(make_plan):
    document = make_plan()
    del document["format_version"]

    with pytest.raises(ValidationError) as exc:
        AnalysisOrchestrator().analyze(_request(document))
    assert exc.value.field == "format_version"


def test_failing_rule_does_not_fail_the_analysis(rds_plan):
    exploding = Rule(
        id="explodes",
        title="Explodes",
        description="Raises on every resource",
        severity="critical",
        resource_types=("*",),
        check=lambda rc, plan: {}["missing"],
        recommendation="None",
        category="logging",
    )
    orchestrator = AnalysisOrchestrator(security_engine=SecurityEngine(rules=SECURITY_RULES + (exploding,)))

    result = orchestrator.analyze(_request(rds_plan))

    assert result.status == "completed"
    assert result.summary.security_score == 75.0
    assert "explodes" not in {f.rule for f in result.findings}


def test_engine_failure_yields_failed_result(rds_plan):
    store = RecordingStore()
    orchestrator = AnalysisOrchestrator(compliance_engine=ExplodingComplianceEngine(), store=store)

    result = orchestrator.analyze(_request(rds_plan))

    assert result.status == "failed"
    assert store.results == [result]
    assert len(result.findings) == 1

    failure = result.findings[0]
    assert failure.id == "analysis-error"
    assert failure.severity == "high"
    assert failure.title == "Analysis Failed"
    assert failure.description == "Terraform plan analysis failed: boom"
    assert failure.resource == "plan"
    assert failure.recommendation == "Check plan format and try again"
    assert failure.evidence["error"] == "boom"
    assert result.summary.findings_count == 1


def test_processor_failure_keeps_engine_findings(rds_plan):
    result = AnalysisOrchestrator(processor=ExplodingProcessor()).analyze(_request(rds_plan))

    assert result.status == "failed"
    assert [f.rule for f in result.findings] == ["rds-public-access", "rds-public-access", "analysis-error"]
    assert result.findings[-1].description == "Terraform plan analysis failed: processor down"


def test_result_to_dict_is_json_ready(mixed_plan):
    data = json.loads(json.dumps(AnalysisOrchestrator().analyze(_request(mixed_plan)).to_dict()))

    assert set(data) == {
        "analysis_id",
        "status",
        "tenant_id",
        "user_id",
        "summary",
        "findings",
        "resources",
        "scores",
        "cost",
        "metadata",
    }
    assert set(data["scores"]) == {"frameworks", "controls", "security_categories"}
    assert data["cost"]["monthly_cost"] == data["summary"]["cost_impact"]
    assert data["metadata"]["severity_threshold"] == "medium"


def test_request_validation():
    with pytest.raises(ValidationError) as exc:
        AnalysisRequest.from_dict({"planFormat": "json"})
    assert exc.value.field == "planData"

    with pytest.raises(ValidationError) as exc:
        AnalysisRequest.from_dict({"planData": "{}", "planFormat": "yaml"})
    assert exc.value.field == "planFormat"

    with pytest.raises(ValidationError) as exc:
        AnalysisRequest.from_dict({"planData": "{}", "planFormat": "json", "scanOptions": {"frameworks": "SOC2"}})
    assert exc.value.field == "scanOptions.frameworks"

    with pytest.raises(ValidationError) as exc:
        AnalysisRequest.from_dict(
            {"planData": "{}", "planFormat": "json", "scanOptions": {"severityThreshold": "urgent"}}
        )
    assert exc.value.field == "scanOptions.severityThreshold"

    with pytest.raises(ValidationError):
        AnalysisRequest.from_dict(["not", "an", "object"])


def test_scan_options_defaults_and_round_trip():
    options = ScanOptions.from_dict({"includeCostAnalysis": False, "frameworks": ["SOC2"]})

    assert options.include_cost_analysis is False
    assert options.include_security_checks is True
    assert options.frameworks == ("SOC2",)
    assert options.severity_threshold == "medium"
    assert ScanOptions.from_dict(options.to_dict()) == options
    assert ScanOptions.from_dict(None) == ScanOptions()


def test_store_delegation(tmp_path, rds_plan):
    orchestrator = AnalysisOrchestrator(store=SqliteAnalysisStore(tmp_path / "analyses.db"))
    tenant = TenantContext(tenant_id="acme")

    result = orchestrator.analyze(_request(rds_plan), tenant)

    assert orchestrator.get_analysis(result.analysis_id, tenant)["status"] == "completed"
    assert orchestrator.get_analysis(result.analysis_id, TenantContext(tenant_id="other")) is None
    assert orchestrator.list_analyses(ListCriteria(tenant_id="acme")).total == 1
    assert orchestrator.delete_analysis(result.analysis_id, tenant) is True
    assert orchestrator.get_analysis(result.analysis_id) is None
