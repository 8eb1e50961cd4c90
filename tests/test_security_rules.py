"""Tests for the security catalog, category scores and risk level."""

import pytest

from planauditor.rules import SECURITY_RULES, Rule, SecurityEngine, risk_level
from planauditor.utils.constants import SECURITY_CATEGORIES


@pytest.fixture
def engine():
    return SecurityEngine()


def _rule_ids(result):
    return sorted(f.rule for f in result.findings)


def test_catalog_has_unique_ids():
    ids = [rule.id for rule in SECURITY_RULES]
    assert len(ids) == 16
    assert len(set(ids)) == len(ids)
    assert {rule.category for rule in SECURITY_RULES} == set(SECURITY_CATEGORIES)


def test_public_rds_scores_75_and_critical(engine, parse_plan, rds_plan):
    result = engine.analyze(parse_plan(rds_plan))

    assert _rule_ids(result) == ["rds-public-access"]
    assert result.score == 75.0
    assert result.risk_level == "critical"
    assert result.category_scores["access_control"] == 75.0
    assert result.category_scores["encryption"] == 100.0


def test_category_scores_cover_every_category(engine, parse_plan, empty_plan):
    result = engine.analyze(parse_plan(empty_plan))

    assert result.score == 100.0
    assert result.risk_level == "low"
    assert result.category_scores == dict.fromkeys(SECURITY_CATEGORIES, 100.0)


def test_finding_carries_category(engine, parse_plan, rds_plan):
    finding = engine.analyze(parse_plan(rds_plan)).findings[0]

    assert finding.kind == "security"
    assert finding.category == "access_control"
    assert finding.cve is None
    assert finding.evidence["category"] == "access_control"
    assert "cve" not in finding.to_dict()


def test_backup_retention_below_minimum(engine, parse_plan, make_plan, make_resource):
    document = make_plan(
        make_resource("aws_db_instance", "short", after={"storage_encrypted": True, "backup_retention_period": 3}),
        make_resource("aws_rds_cluster", "unset", after={"storage_encrypted": True}),
    )
    result = engine.analyze(parse_plan(document))

    assert [f.resource for f in result.findings] == ["aws_db_instance.short", "aws_rds_cluster.unset"]
    assert {f.rule for f in result.findings} == {"rds-backup-retention"}


@pytest.mark.parametrize(
    ("ingress", "expected"),
    [
        ([{"cidr_blocks": ["0.0.0.0/0"]}], True),
        ([{"cidr_blocks": [], "ipv6_cidr_blocks": ["::/0"]}], True),
        ([{"cidr_blocks": ["10.0.0.0/8"]}], False),
        ([], False),
    ],
)
def test_security_group_open_ingress(engine, parse_plan, make_plan, make_resource, ingress, expected):
    document = make_plan(make_resource("aws_security_group", "sg", after={"ingress": ingress}))
    assert (_rule_ids(engine.analyze(parse_plan(document))) == ["sg-open-ports"]) is expected


@pytest.mark.parametrize(("protocol", "flagged"), [("HTTP", True), ("TCP", True), ("HTTPS", False)])
def test_insecure_listener(engine, parse_plan, make_plan, make_resource, protocol, flagged):
    document = make_plan(make_resource("aws_lb_listener", "front", after={"protocol": protocol}))
    assert bool(engine.analyze(parse_plan(document)).findings) is flagged


def test_public_bucket_requires_block_public_acls(engine, parse_plan, make_plan, make_resource):
    blocked = make_resource(
        "aws_s3_bucket",
        "blocked",
        after={
            "server_side_encryption_configuration": [{}],
            "public_access_block": {"block_public_acls": True},
            "versioning": [{"enabled": True}],
        },
    )
    open_bucket = make_resource(
        "aws_s3_bucket",
        "open",
        after={
            "server_side_encryption_configuration": [{}],
            "public_access_block": {"block_public_acls": False},
            "versioning": [{"enabled": True}],
        },
    )
    result = engine.analyze(parse_plan(make_plan(blocked, open_bucket)))

    assert [(f.resource, f.rule) for f in result.findings] == [("aws_s3_bucket.open", "s3-public-bucket")]


def test_cloudtrail_logging_rules(engine, parse_plan, make_plan, make_resource):
    trail = make_resource(
        "aws_cloudtrail",
        "audit",
        after={"kms_key_id": "arn:aws:kms:key", "enable_log_file_validation": True},
    )
    result = engine.analyze(parse_plan(make_plan(trail)))

    assert _rule_ids(result) == ["cloudtrail-multi-region"]
    assert result.category_scores["logging"] == 92.0


def test_failing_rule_is_skipped(parse_plan, rds_plan):
    exploding = Rule(
        id="explodes",
        title="Explodes",
        description="Raises on every resource",
        severity="critical",
        resource_types=("*",),
        check=lambda rc, plan: 1 / 0,
        recommendation="None",
        category="encryption",
    )
    engine = SecurityEngine(rules=SECURITY_RULES + (exploding,))

    result = engine.analyze(parse_plan(rds_plan))

    assert _rule_ids(result) == ["rds-public-access"]
    assert result.score == 75.0


def test_wildcard_rule_applies_to_every_type():
    rule = Rule(
        id="any",
        title="Any",
        description="Any",
        severity="low",
        resource_types=("*",),
        check=lambda rc, plan: False,
        recommendation="None",
    )
    assert rule.applies_to("aws_vpc")
    assert SecurityEngine(rules=[rule]).rules_for("aws_anything") == [rule]


def test_security_score_bounds(engine, parse_plan, make_plan, make_resource):
    users = [make_resource("aws_iam_user", f"u{i}", after={"name": "root"}) for i in range(5)]
    result = engine.analyze(parse_plan(make_plan(*users)))

    assert 0.0 <= result.score <= 100.0
    assert result.category_scores["access_control"] == 0.0


@pytest.mark.parametrize(
    ("severities", "expected"),
    [
        ([], "low"),
        (["low"] * 10, "low"),
        (["medium"] * 5, "low"),
        (["medium"] * 6, "medium"),
        (["high"], "medium"),
        (["high"] * 3, "high"),
        (["high"] * 3 + ["critical"], "critical"),
    ],
)
def test_risk_level(severities, expected):
    assert risk_level([{"severity": s} for s in severities]) == expected
