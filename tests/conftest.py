"""Pytest configuration and fixtures."""

import base64
import json

import pytest

from planauditor.plan import PlanParser

AWS_PROVIDER = "registry.terraform.io/hashicorp/aws"


def build_resource(
    resource_type,
    name,
    after=None,
    actions=("create",),
    before=None,
    module_address=None,
    after_sensitive=None,
    provider_name=AWS_PROVIDER,
):
    address = f"{resource_type}.{name}"
    if module_address:
        address = f"{module_address}.{address}"

    resource = {
        "address": address,
        "mode": "managed",
        "type": resource_type,
        "name": name,
        "provider_name": provider_name,
        "change": {
            "actions": list(actions),
            "before": before,
            "after": after,
            "after_unknown": {},
            "after_sensitive": after_sensitive,
        },
    }
    if module_address:
        resource["module_address"] = module_address
    return resource


def build_plan(*resource_changes, **extra):
    document = {
        "format_version": "1.2",
        "terraform_version": "1.6.0",
        "resource_changes": list(resource_changes),
    }
    document.update(extra)
    return document


@pytest.fixture
def make_resource():
    """Factory for one resource_changes entry."""
    return build_resource


@pytest.fixture
def make_plan():
    """Factory for a plan document around resource_changes entries."""
    return build_plan


@pytest.fixture
def parse_plan():
    """Parse a plan document through its JSON text."""
    parser = PlanParser()

    def _parse(document):
        return parser.parse(json.dumps(document), "json")

    return _parse


@pytest.fixture
def encode_base64():
    def _encode(document):
        return base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")

    return _encode


@pytest.fixture
def bucket_plan():
    """One S3 bucket with versioning on, nothing else configured."""
    return build_plan(
        build_resource("aws_s3_bucket", "logs", after={"bucket": "logs", "versioning": [{"enabled": True}]})
    )


@pytest.fixture
def rds_plan():
    """One public but encrypted RDS instance with 7 days of backups."""
    return build_plan(
        build_resource(
            "aws_db_instance",
            "main",
            after={
                "instance_class": "db.t3.micro",
                "publicly_accessible": True,
                "storage_encrypted": True,
                "backup_retention_period": 7,
            },
        )
    )


@pytest.fixture
def clean_plan():
    """A resource type no rule or price table knows about."""
    return build_plan(build_resource("aws_vpc", "main", after={"cidr_block": "10.0.0.0/16"}))


@pytest.fixture
def empty_plan():
    return build_plan()


@pytest.fixture
def mixed_plan():
    """Six changes covering every action, a module and a sensitive value."""
    return build_plan(
        build_resource("aws_s3_bucket", "logs", after={"bucket": "logs", "versioning": [{"enabled": True}]}),
        build_resource(
            "aws_instance",
            "web",
            actions=("delete", "create"),
            before={"instance_type": "m5.large"},
            after={"instance_type": "m5.xlarge", "associate_public_ip_address": True},
        ),
        build_resource(
            "aws_db_instance",
            "main",
            actions=("update",),
            before={"instance_class": "db.t3.micro", "publicly_accessible": False},
            after={
                "instance_class": "db.t3.micro",
                "publicly_accessible": True,
                "storage_encrypted": True,
                "backup_retention_period": 7,
            },
        ),
        build_resource(
            "aws_security_group",
            "open",
            after={"ingress": [{"cidr_blocks": ["0.0.0.0/0"], "from_port": 22, "to_port": 22}]},
        ),
        build_resource(
            "aws_lambda_function",
            "handler",
            module_address="module.app",
            after={"memory_size": 1024, "environment": [{"variables": {"STAGE": "prod"}}]},
            after_sensitive={"environment": [{"variables": True}]},
        ),
        build_resource(
            "aws_ebs_volume",
            "old",
            actions=("delete",),
            before={"size": 50, "type": "gp2", "encrypted": False},
            after=None,
        ),
        configuration={
            "provider_config": {"aws": {"name": "aws"}},
            "root_module": {"module_calls": {"app": {"source": "./app"}}},
        },
    )


@pytest.fixture
def write_plan(tmp_path):
    """Write a plan document to tmp_path and return the file path."""

    def _write(document, name="plan.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
