"""Plan parsing and read-only plan queries."""

from .models import Change, Plan, ResourceChange
from .parser import PlanParser
from .queries import (
    extract_configuration_values,
    extract_modules,
    extract_providers,
    extract_resource_types,
    extract_sensitive_values,
    get_plan_complexity_score,
    get_plan_summary,
    get_resources_by_action,
    get_resources_by_module,
    get_resources_by_provider,
    get_resources_by_type,
    has_destructive_changes,
    has_sensitive_changes,
)

__all__ = [
    "Change",
    "Plan",
    "PlanParser",
    "ResourceChange",
    "extract_configuration_values",
    "extract_modules",
    "extract_providers",
    "extract_resource_types",
    "extract_sensitive_values",
    "get_plan_complexity_score",
    "get_plan_summary",
    "get_resources_by_action",
    "get_resources_by_module",
    "get_resources_by_provider",
    "get_resources_by_type",
    "has_destructive_changes",
    "has_sensitive_changes",
]
