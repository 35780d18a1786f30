"""
Error Types for the Deal Totals Engine

Validation and configuration problems subclass ValueError so callers that
already map ValueError to a 400 response keep working.
"""


class ValidationError(ValueError):
    """Malformed input. `field` names the offending input path."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class ConfigurationError(ValueError):
    """A tax preset rule cannot be evaluated as configured."""

    def __init__(self, rule_id: str | None, message: str):
        self.rule_id = rule_id
        prefix = f"rule {rule_id}" if rule_id else "rule"
        super().__init__(f"{prefix}: {message}")


class DealNotFoundError(LookupError):
    """The data store has no deal with the requested id."""


class StaleTotalsError(Exception):
    """A totals snapshot was written against an outdated row version."""

    def __init__(self, deal_id: str, expected: int, actual: int):
        self.deal_id = deal_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Totals for deal {deal_id} are at version {actual}, expected {expected}"
        )
