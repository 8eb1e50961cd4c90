"""planauditor utilities package."""

from .constants import (
    COMPLIANCE_PENALTIES,
    DEFAULT_FRAMEWORKS,
    ERROR_LOG_FILE,
    FINDING_KINDS,
    PF_DIR,
    SECURITY_CATEGORIES,
    SECURITY_PENALTIES,
    SEVERITIES,
)
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .finding_priority import (
    SEVERITY_WEIGHTS,
    get_sort_key,
    meets_threshold,
    severity_weight,
    sort_findings,
)
from .helpers import dig, round1, round2
from .logging import bind_run, logger

__all__ = [
    "PF_DIR",
    "ERROR_LOG_FILE",
    "SEVERITIES",
    "FINDING_KINDS",
    "DEFAULT_FRAMEWORKS",
    "SECURITY_CATEGORIES",
    "COMPLIANCE_PENALTIES",
    "SECURITY_PENALTIES",
    "handle_exceptions",
    "ExitCodes",
    "SEVERITY_WEIGHTS",
    "get_sort_key",
    "meets_threshold",
    "severity_weight",
    "sort_findings",
    "dig",
    "round1",
    "round2",
    "logger",
    "bind_run",
]
