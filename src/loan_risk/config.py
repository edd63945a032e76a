"""
Analysis configuration for the loan risk engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import DEFAULT_CONFIG

# Linkage methods accepted for the correlation clustering order
LINKAGE_METHODS = ("complete", "average", "single", "weighted")


@dataclass
class AnalysisConfig:
    """
    Configuration shared by the loader, aggregator and correlation builder.

    Attributes:
        outcome_column: Column holding the binary repayment outcome
        outcome_labels: Raw outcome value -> label (0 -> Default, 1 -> Paid)
        excluded_attributes: Numeric columns left out of the correlation matrix
        risk_matrix_dimensions: The two categorical columns of the risk matrix
        linkage_method: Hierarchical clustering linkage for matrix ordering
        random_seed: Seed for synthetic data generation
    """
    outcome_column: str = DEFAULT_CONFIG["outcome_column"]
    outcome_labels: Dict[Any, str] = field(
        default_factory=lambda: dict(DEFAULT_CONFIG["outcome_labels"])
    )
    excluded_attributes: List[str] = field(
        default_factory=lambda: list(DEFAULT_CONFIG["excluded_attributes"])
    )
    risk_matrix_dimensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_CONFIG["risk_matrix_dimensions"])
    )
    linkage_method: str = DEFAULT_CONFIG["linkage_method"]
    random_seed: int = DEFAULT_CONFIG["random_seed"]

    def __post_init__(self):
        if len(set(self.outcome_labels.values())) != 2:
            raise ValueError(
                f"outcome_labels must map to exactly two labels, got {self.outcome_labels}"
            )
        dims = self.risk_matrix_dimensions
        if len(dims) != 2 or dims[0] == dims[1]:
            raise ValueError(
                f"risk_matrix_dimensions must name two distinct columns, "
                f"got {dims}"
            )
        if self.linkage_method not in LINKAGE_METHODS:
            raise ValueError(
                f"Unsupported linkage method: {self.linkage_method}. "
                f"Use one of {', '.join(LINKAGE_METHODS)}."
            )

    @property
    def default_label(self) -> str:
        """Label of the unfavourable outcome (raw value 0)."""
        return self.outcome_labels[min(self.outcome_labels)]

    @property
    def paid_label(self) -> str:
        """Label of the favourable outcome (raw value 1)."""
        return self.outcome_labels[max(self.outcome_labels)]

    @property
    def label_order(self) -> List[str]:
        """Outcome labels ordered by their raw value."""
        return [self.outcome_labels[k] for k in sorted(self.outcome_labels)]

    def with_overrides(self, **overrides: Optional[Any]) -> 'AnalysisConfig':
        """Return a copy with every non-None override applied."""
        values = self.to_dict()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return AnalysisConfig(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'outcome_column': self.outcome_column,
            'outcome_labels': dict(self.outcome_labels),
            'excluded_attributes': list(self.excluded_attributes),
            'risk_matrix_dimensions': list(self.risk_matrix_dimensions),
            'linkage_method': self.linkage_method,
            'random_seed': self.random_seed,
        }
