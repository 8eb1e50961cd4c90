"""Helpers shared by the rule catalogs."""

import json
from typing import Any

from planauditor.plan.models import ResourceChange


def after(change: ResourceChange) -> dict[str, Any]:
    """The planned configuration, or an empty dict when there is none."""
    return change.after or {}


def has_wildcard_permissions(policy: Any) -> bool:
    """True when any Allow statement grants ``*`` as action or resource."""
    if not isinstance(policy, dict):
        return False

    statements = policy.get("Statement")
    if not isinstance(statements, list):
        return False

    for statement in statements:
        if not isinstance(statement, dict) or statement.get("Effect") != "Allow":
            continue
        for key in ("Action", "Resource"):
            value = statement.get(key)
            if value == "*" or (isinstance(value, list) and "*" in value):
                return True

    return False


def policy_has_wildcard(change: ResourceChange, plan=None) -> bool:
    """IAM policy documents are JSON strings; unparseable ones never match."""
    config = after(change)
    policy = config.get("policy") or config.get("inline_policy")
    if not isinstance(policy, str):
        return False

    try:
        document = json.loads(policy)
    except json.JSONDecodeError:
        return False

    return has_wildcard_permissions(document)


def is_root_user(change: ResourceChange, plan=None) -> bool:
    config = after(change)
    return config.get("name") == "root" or config.get("path") == "/"
