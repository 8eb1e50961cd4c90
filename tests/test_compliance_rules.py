"""Tests for the compliance catalog and compliance scoring."""

import json

import pytest

from planauditor.request import ScanOptions
from planauditor.rules import COMPLIANCE_RULES, ComplianceEngine, Rule, score_from_findings
from planauditor.utils.constants import COMPLIANCE_PENALTIES


@pytest.fixture
def engine():
    return ComplianceEngine()


def _rule_ids(result):
    return sorted(f.rule for f in result.findings)


def test_catalog_has_unique_ids():
    ids = [rule.id for rule in COMPLIANCE_RULES]
    assert len(ids) == 12
    assert len(set(ids)) == len(ids)


def test_bucket_with_versioning_scores_80(engine, parse_plan, bucket_plan):
    """Encryption and public access block missing: two high findings on one resource."""
    result = engine.analyze(parse_plan(bucket_plan))

    assert _rule_ids(result) == ["s3-encryption-required", "s3-public-access-block"]
    assert result.score == 80.0
    assert result.framework_scores == {"SOC2": 80.0, "HIPAA": 100.0, "GDPR": 100.0}
    assert result.control_scores == {"CC6.1": 80.0}


def test_finding_shape(engine, parse_plan, bucket_plan):
    finding = engine.analyze(parse_plan(bucket_plan)).findings[0]

    assert finding.id == "s3-encryption-required-aws_s3_bucket.logs"
    assert finding.kind == "compliance"
    assert finding.severity == "high"
    assert finding.resource == "aws_s3_bucket.logs"
    assert finding.framework == "SOC2"
    assert finding.control == "CC6.1"
    assert finding.recommendation == "Enable server-side encryption on S3 bucket"
    assert finding.evidence["frameworks"] == ["SOC2", "HIPAA", "GDPR"]
    assert finding.evidence["resource_type"] == "aws_s3_bucket"
    assert finding.evidence["rule"] == "s3-encryption-required"


def test_compliant_bucket(engine, parse_plan, make_plan, make_resource):
    bucket = make_resource(
        "aws_s3_bucket",
        "secure",
        after={
            "server_side_encryption_configuration": [{"rule": [{"apply_server_side_encryption_by_default": {}}]}],
            "public_access_block": {"block_public_acls": True},
            "versioning": [{"enabled": True}],
        },
    )
    result = engine.analyze(parse_plan(make_plan(bucket)))

    assert result.findings == []
    assert result.score == 100.0


def test_versioning_disabled(engine, parse_plan, make_plan, make_resource):
    bucket = make_resource("aws_s3_bucket", "b", after={"versioning": [{"enabled": False}]})
    assert "s3-versioning-required" in _rule_ids(engine.analyze(parse_plan(make_plan(bucket))))


def test_iam_wildcard_policy(engine, parse_plan, make_plan, make_resource):
    policy = json.dumps({"Statement": [{"Effect": "Allow", "Action": "*", "Resource": "arn:aws:s3:::x"}]})
    document = make_plan(make_resource("aws_iam_policy", "admin", after={"policy": policy}))

    result = engine.analyze(parse_plan(document))
    assert _rule_ids(result) == ["iam-policy-wildcard"]
    assert result.findings[0].control == "CC6.1"


def test_iam_wildcard_in_resource_list(engine, parse_plan, make_plan, make_resource):
    policy = json.dumps({"Statement": [{"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": ["*"]}]})
    document = make_plan(make_resource("aws_iam_role_policy", "read", after={"policy": policy}))

    assert _rule_ids(engine.analyze(parse_plan(document))) == ["iam-policy-wildcard"]


@pytest.mark.parametrize(
    "policy",
    [
        "{not json",
        json.dumps({"Statement": [{"Effect": "Deny", "Action": "*", "Resource": "*"}]}),
        json.dumps({"Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "arn:aws:s3:::x/*"}]}),
    ],
)
def test_iam_policy_without_wildcard_grant(engine, parse_plan, make_plan, make_resource, policy):
    document = make_plan(make_resource("aws_iam_policy", "p", after={"policy": policy}))
    assert engine.analyze(parse_plan(document)).findings == []


def test_root_user_is_critical(engine, parse_plan, make_plan, make_resource):
    document = make_plan(make_resource("aws_iam_user", "root", after={"name": "root"}))
    result = engine.analyze(parse_plan(document))

    assert [(f.rule, f.severity) for f in result.findings] == [("iam-root-access", "critical")]
    assert result.score == 80.0


def test_lambda_environment_without_kms(engine, parse_plan, make_plan, make_resource):
    plain = make_resource("aws_lambda_function", "plain", after={"environment": [{"variables": {"A": "1"}}]})
    keyed = make_resource(
        "aws_lambda_function",
        "keyed",
        after={"environment": [{"variables": {"A": "1"}}], "kms_key_arn": "arn:aws:kms:key"},
    )
    result = engine.analyze(parse_plan(make_plan(plain, keyed)))

    assert [f.resource for f in result.findings] == ["aws_lambda_function.plain"]


def test_cloudtrail_defaults(engine, parse_plan, make_plan, make_resource):
    document = make_plan(make_resource("aws_cloudtrail", "audit", after={"name": "audit"}))
    result = engine.analyze(parse_plan(document))

    assert _rule_ids(result) == ["cloudtrail-encryption", "cloudtrail-log-validation"]
    # 10 + 5 over one resource
    assert result.score == 85.0


def test_score_is_normalized_by_resource_count(engine, parse_plan, make_plan, make_resource, bucket_plan):
    volume = make_resource("aws_ebs_volume", "data", after={"encrypted": True})
    document = make_plan(*bucket_plan["resource_changes"], volume)

    # 20 penalty over 2 resources
    assert engine.analyze(parse_plan(document)).score == 90.0


def test_empty_plan_scores_100(engine, parse_plan, empty_plan):
    result = engine.analyze(parse_plan(empty_plan))

    assert result.score == 100.0
    assert result.findings == []
    assert result.framework_scores == {"SOC2": 100.0, "HIPAA": 100.0, "GDPR": 100.0}
    assert result.control_scores == {}


def test_framework_scores_follow_requested_frameworks(engine, parse_plan, bucket_plan):
    result = engine.analyze(parse_plan(bucket_plan), ScanOptions(frameworks=("HIPAA", "PCI")))
    assert result.framework_scores == {"HIPAA": 100.0, "PCI": 100.0}


def test_framework_score_floors_at_zero(engine, parse_plan, make_plan, make_resource):
    users = [make_resource("aws_iam_user", f"root{i}", after={"path": "/"}) for i in range(10)]
    result = engine.analyze(parse_plan(make_plan(*users)))

    assert result.score == 80.0
    assert result.framework_scores["SOC2"] == 0.0
    assert all(0.0 <= score <= 100.0 for score in result.framework_scores.values())


def test_duplicate_rule_ids_rejected():
    with pytest.raises(ValueError, match="Duplicate rule id"):
        ComplianceEngine(rules=COMPLIANCE_RULES + (COMPLIANCE_RULES[0],))


def test_callable_recommendation(parse_plan, bucket_plan):
    rule = Rule(
        id="bucket-named",
        title="Bucket Named",
        description="Every bucket is reported",
        severity="low",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: True,
        recommendation=lambda rc: f"Review {rc.address}",
        frameworks=("SOC2",),
        controls=("CC6.1",),
    )
    result = ComplianceEngine(rules=[rule]).analyze(parse_plan(bucket_plan))

    assert result.findings[0].recommendation == "Review aws_s3_bucket.logs"


@pytest.mark.parametrize(
    ("severities", "resource_count", "expected"),
    [
        (["high", "high", "high"], None, 70.0),
        (["high", "high", "high"], 4, 92.5),
        (["critical"] * 6, None, 0.0),
        ([], 0, 100.0),
        (["low"], 3, 99.3),
    ],
)
def test_score_from_findings(severities, resource_count, expected):
    findings = [{"severity": s} for s in severities]
    assert score_from_findings(findings, COMPLIANCE_PENALTIES, resource_count) == expected
