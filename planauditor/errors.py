"""Error taxonomy for plan analysis.

ParseError and ValidationError are fatal and propagate to the caller.
RuleEvaluationError is recovered per resource and rule. AnalysisFailure is
recovered at the orchestrator boundary and turned into a failed result.
"""


class PlanAuditorError(Exception):
    """Base class for all planauditor errors."""


class ParseError(PlanAuditorError):
    """Plan input could not be decoded or uses an unsupported format."""


class ValidationError(PlanAuditorError):
    """A required field is missing or holds an invalid value."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"error": "Validation Error", "message": str(self), "field": self.field}


class RuleEvaluationError(PlanAuditorError):
    """A single rule predicate raised while checking one resource."""

    def __init__(self, rule_id: str, resource: str, cause: BaseException):
        super().__init__(f"Rule '{rule_id}' failed on {resource}: {cause}")
        self.rule_id = rule_id
        self.resource = resource
        self.cause = cause


class AnalysisFailure(PlanAuditorError):
    """An orchestrated analysis run failed after the plan was parsed."""

    def __init__(self, analysis_id: str, cause: BaseException):
        super().__init__(f"Analysis {analysis_id} failed: {cause}")
        self.analysis_id = analysis_id
        self.cause = cause
