"""
Exceptions raised by the aggregation and correlation engine.
"""

from typing import List, Optional


class RiskEngineError(ValueError):
    """Base class for engine errors caused by bad arguments or data."""


class InvalidAttribute(RiskEngineError):
    """A requested attribute is missing or has the wrong semantic type."""

    def __init__(self, attribute: str, reason: str):
        self.attribute = attribute
        self.reason = reason
        super().__init__(f"Invalid attribute '{attribute}': {reason}")


class NoNumericAttributes(RiskEngineError):
    """Fewer than two numeric attributes remain after exclusion."""

    def __init__(self, remaining: Optional[List[str]] = None):
        self.remaining = list(remaining or [])
        super().__init__(
            f"Correlation needs at least 2 numeric attributes, "
            f"found {len(self.remaining)}: {self.remaining}"
        )
