"""Centralized constants for planauditor.

Single source of truth for paths, enumerations and scoring tables shared by
the parser, the rule engines and the findings processor.
"""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

PF_DIR = Path("./.pf")

ERROR_LOG_FILE = PF_DIR / "error.log"

# ============================================================================
# PLAN MODEL
# ============================================================================

PLAN_FORMATS = ("json", "binary")

VALID_ACTIONS = frozenset({"create", "update", "delete", "no-op"})

# ============================================================================
# FINDINGS
# ============================================================================

SEVERITIES = ("low", "medium", "high", "critical")

FINDING_KINDS = ("security", "compliance", "cost", "best_practice")

DEFAULT_FRAMEWORKS = ("SOC2", "HIPAA", "GDPR")

SECURITY_CATEGORIES = (
    "encryption",
    "access_control",
    "network_security",
    "data_protection",
    "logging",
)

COST_CATEGORIES = ("compute", "storage", "network", "database", "other")

# Severity penalties per engine. Overall scores divide the summed penalty by
# the resource count; per-dimension scores do not.
COMPLIANCE_PENALTIES = {"critical": 20, "high": 10, "medium": 5, "low": 2}
SECURITY_PENALTIES = {"critical": 25, "high": 15, "medium": 8, "low": 3}

PROCESSOR_VERSION = "1.0.0"

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "PLANAUDITOR"
