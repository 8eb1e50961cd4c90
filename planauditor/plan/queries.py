"""Read-only queries over a parsed Plan.

Every function here is pure: it takes a Plan and returns new values.
"""

from typing import Any

from planauditor.utils.helpers import round1

from .models import Plan, ResourceChange


def extract_resource_types(plan: Plan) -> list[str]:
    return sorted({change.type for change in plan.resource_changes})


def extract_providers(plan: Plan) -> list[str]:
    return sorted({change.provider_name for change in plan.resource_changes if change.provider_name})


def extract_modules(plan: Plan) -> list[str]:
    return sorted({change.module_address for change in plan.resource_changes if change.module_address})


def get_resources_by_type(plan: Plan, resource_type: str) -> list[ResourceChange]:
    return [change for change in plan.resource_changes if change.type == resource_type]


def get_resources_by_action(plan: Plan, action: str) -> list[ResourceChange]:
    return [change for change in plan.resource_changes if action in change.actions]


def get_resources_by_provider(plan: Plan, provider: str) -> list[ResourceChange]:
    return [change for change in plan.resource_changes if change.provider_name == provider]


def get_resources_by_module(plan: Plan, module_address: str) -> list[ResourceChange]:
    return [change for change in plan.resource_changes if change.module_address == module_address]


def extract_configuration_values(plan: Plan) -> dict[str, Any]:
    """Map ``type.name`` to the after snapshot, falling back to before."""
    values: dict[str, Any] = {}
    for change in plan.resource_changes:
        config = change.configuration
        if config:
            values[f"{change.type}.{change.name}"] = config
    return values


def extract_sensitive_values(plan: Plan) -> dict[str, Any]:
    """Sensitivity flags for every resource that carries any."""
    values: dict[str, Any] = {}
    for change in plan.resource_changes:
        if change.is_sensitive:
            values[f"{change.type}.{change.name}"] = {
                "after_sensitive": change.change.after_sensitive,
                "before_sensitive": change.change.before_sensitive,
                "address": change.address,
            }
    return values


def has_destructive_changes(plan: Plan) -> bool:
    return any(change.is_destructive for change in plan.resource_changes)


def has_sensitive_changes(plan: Plan) -> bool:
    return any(change.is_sensitive for change in plan.resource_changes)


def get_plan_summary(plan: Plan) -> dict[str, Any]:
    """Counts by action plus the distinct types, providers and modules.

    A replacement (create + delete) is counted under create, delete and
    replace.
    """
    summary = {
        "total_resources": plan.resource_count,
        "resources_to_create": 0,
        "resources_to_update": 0,
        "resources_to_delete": 0,
        "resources_to_replace": 0,
        "resource_types": extract_resource_types(plan),
        "providers": extract_providers(plan),
        "modules": extract_modules(plan),
    }

    for change in plan.resource_changes:
        actions = change.actions
        if "create" in actions:
            summary["resources_to_create"] += 1
        if "update" in actions:
            summary["resources_to_update"] += 1
        if "delete" in actions:
            summary["resources_to_delete"] += 1
        if change.is_replacement:
            summary["resources_to_replace"] += 1

    return summary


def get_plan_complexity_score(plan: Plan) -> float:
    """Weighted plan complexity in the range 0-28, one decimal.

    Each diversity term is capped; destructive and sensitive changes add
    fixed bonuses.
    """
    summary = get_plan_summary(plan)

    score = 0.0
    score += min(summary["total_resources"] * 0.1, 10)
    score += min(len(summary["resource_types"]) * 0.5, 5)
    score += min(len(summary["providers"]) * 1, 3)
    score += min(len(summary["modules"]) * 0.5, 2)

    if has_destructive_changes(plan):
        score += 5
    if has_sensitive_changes(plan):
        score += 3

    return round1(score)
