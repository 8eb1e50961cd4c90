"""Centralized exit codes for the planaudit CLI."""


class ExitCodes:
    """Standard exit codes for planaudit commands."""

    SUCCESS = 0

    HIGH_SEVERITY = 1
    CRITICAL_SEVERITY = 2

    ANALYSIS_FAILED = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No high or critical findings",
            cls.HIGH_SEVERITY: "High severity findings detected",
            cls.CRITICAL_SEVERITY: "Critical findings detected",
            cls.ANALYSIS_FAILED: "Analysis failed - see the analysis-error finding",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def from_result(cls, status: str, severities) -> int:
        """Pick the exit code for a finished analysis."""
        if status == "failed":
            return cls.ANALYSIS_FAILED
        severities = set(severities)
        if "critical" in severities:
            return cls.CRITICAL_SEVERITY
        if "high" in severities:
            return cls.HIGH_SEVERITY
        return cls.SUCCESS
