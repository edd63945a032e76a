"""
Rate Aggregation Module for the Loan Risk Engine.

Groups applicants by one or two categorical attributes and reduces each
group to a single statistic:
- rate(outcome): share of the group whose outcome equals a label
- mean(attribute): average of a numeric attribute
- count(): number of applicants
- describe(attribute): distribution summary of a numeric attribute

Rows are partitioned by the tuple of grouping values in one pass; only
combinations that occur in the data produce an entry.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..config import AnalysisConfig
from ..errors import InvalidAttribute
from ..ingest.loader import ApplicantTable

logger = logging.getLogger(__name__)

GroupKey = Union[Any, Tuple[Any, ...]]


class ReductionKind(Enum):
    """Per-group reductions supported by the aggregator."""

    RATE = "rate"
    MEAN = "mean"
    COUNT = "count"
    DESCRIBE = "describe"


@dataclass(frozen=True)
class Reduction:
    """
    What to compute for each group.

    Attributes:
        kind: The reduction to apply
        outcome_value: Outcome label counted by RATE
        attribute: Numeric column reduced by MEAN and DESCRIBE
    """
    kind: ReductionKind
    outcome_value: Optional[str] = None
    attribute: Optional[str] = None

    @classmethod
    def rate(cls, outcome_value: str) -> 'Reduction':
        return cls(ReductionKind.RATE, outcome_value=outcome_value)

    @classmethod
    def mean(cls, attribute: str) -> 'Reduction':
        return cls(ReductionKind.MEAN, attribute=attribute)

    @classmethod
    def count(cls) -> 'Reduction':
        return cls(ReductionKind.COUNT)

    @classmethod
    def describe(cls, attribute: str) -> 'Reduction':
        return cls(ReductionKind.DESCRIBE, attribute=attribute)

    @property
    def statistic_name(self) -> str:
        """Column name used for the statistic in tabular output."""
        if self.kind is ReductionKind.RATE:
            return f"{str(self.outcome_value).lower()}_rate"
        if self.kind is ReductionKind.COUNT:
            return "count"
        return f"{self.kind.value}_{self.attribute}"

    def __str__(self) -> str:
        if self.kind is ReductionKind.RATE:
            return f"rate({self.outcome_value})"
        if self.kind is ReductionKind.COUNT:
            return "count()"
        return f"{self.kind.value}({self.attribute})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'kind': self.kind.value,
            'outcome_value': self.outcome_value,
            'attribute': self.attribute,
        }


@dataclass
class _Accumulator:
    """Running state for one group."""
    n_rows: int = 0
    n_matches: int = 0
    values: List[float] = field(default_factory=list)

    def add(self, match: bool = False, value: Optional[float] = None) -> None:
        self.n_rows += 1
        if match:
            self.n_matches += 1
        if value is not None and not math.isnan(value):
            self.values.append(value)


def describe_values(values: Sequence[float]) -> Dict[str, float]:
    """Distribution summary used for box-plot style displays."""
    arr = np.sort(np.asarray(values, dtype=float))
    q1, median, q3 = np.percentile(arr, [25, 50, 75])
    return {
        'n': int(len(arr)),
        'mean': math.fsum(arr) / len(arr),
        'std': float(np.std(arr, ddof=1)) if len(arr) > 1 else 0.0,
        'min': float(arr[0]),
        'q1': float(q1),
        'median': float(median),
        'q3': float(q3),
        'max': float(arr[-1]),
    }


@dataclass
class GroupedResult:
    """
    Statistic per observed group.

    Keys are the group value for single-attribute grouping and a tuple of
    values for two-attribute grouping. Groups with no supporting rows are
    never present.
    """
    by: Tuple[str, ...]
    reduction: Reduction
    values: Dict[GroupKey, Any] = field(default_factory=dict)
    counts: Dict[GroupKey, int] = field(default_factory=dict)

    def __getitem__(self, key: GroupKey) -> Any:
        return self.values[key]

    def __contains__(self, key: GroupKey) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[GroupKey]:
        return iter(self.values)

    def keys(self) -> List[GroupKey]:
        return list(self.values.keys())

    def items(self) -> List[Tuple[GroupKey, Any]]:
        return list(self.values.items())

    def _key_tuple(self, key: GroupKey) -> Tuple[Any, ...]:
        return key if len(self.by) > 1 else (key,)

    def to_frame(self) -> pd.DataFrame:
        """Long-form table: one row per group with its statistic and row count."""
        rows = []
        for key, value in self.values.items():
            row = dict(zip(self.by, self._key_tuple(key)))
            if self.reduction.kind is ReductionKind.DESCRIBE:
                row.update(value)
            else:
                row[self.reduction.statistic_name] = value
            row['n_rows'] = self.counts[key]
            rows.append(row)

        if self.reduction.kind is ReductionKind.DESCRIBE:
            stat_columns = ['n', 'mean', 'std', 'min', 'q1', 'median', 'q3', 'max']
        else:
            stat_columns = [self.reduction.statistic_name]
        return pd.DataFrame(rows, columns=list(self.by) + stat_columns + ['n_rows'])

    def pivot(self) -> pd.DataFrame:
        """
        Wide table for heatmap displays: first attribute as rows, second as
        columns. Unobserved combinations are NaN, not zero.
        """
        if len(self.by) != 2:
            raise ValueError("pivot() needs a two-attribute grouping")
        if self.reduction.kind is ReductionKind.DESCRIBE:
            raise ValueError("pivot() is not defined for describe() results")
        frame = self.to_frame()
        return frame.pivot(
            index=self.by[0],
            columns=self.by[1],
            values=self.reduction.statistic_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'by': list(self.by),
            'reduction': self.reduction.to_dict(),
            'statistic': self.reduction.statistic_name,
            'groups': [
                {
                    'key': list(self._key_tuple(key)),
                    'value': value,
                    'n_rows': self.counts[key],
                }
                for key, value in self.values.items()
            ],
        }


class RateAggregator:
    """
    Aggregator for grouped outcome rates and numeric summaries.

    Stateless apart from its configuration: every call reads the given
    table and returns a new GroupedResult.
    """

    MAX_DIMENSIONS = 2

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the aggregator.

        Args:
            config: Analysis configuration (outcome labels, risk matrix dimensions)
        """
        self.config = config or AnalysisConfig()

    def aggregate(
        self,
        table: ApplicantTable,
        by: Union[str, Sequence[str]],
        reduction: Reduction
    ) -> GroupedResult:
        """
        Group the table and apply a reduction to every observed group.

        Args:
            table: Applicant table
            by: One or two categorical column names
            reduction: Reduction to apply per group

        Returns:
            GroupedResult with one entry per observed combination
        """
        by = self._validate(table, by, reduction)

        columns = list(by)
        if reduction.kind is ReductionKind.RATE:
            columns.append(table.outcome_column)
        elif reduction.kind in (ReductionKind.MEAN, ReductionKind.DESCRIBE):
            columns.append(reduction.attribute)
        frame = table.columns_frame(list(dict.fromkeys(columns)))

        matches = None
        numbers = None
        if reduction.kind is ReductionKind.RATE:
            matches = (frame[table.outcome_column] == reduction.outcome_value).to_numpy()
        elif reduction.kind in (ReductionKind.MEAN, ReductionKind.DESCRIBE):
            numbers = frame[reduction.attribute].to_numpy(dtype=float, na_value=np.nan)

        key_columns = [frame[name].tolist() for name in by]
        accumulators: Dict[Tuple[Any, ...], _Accumulator] = {}
        skipped = 0

        for i, key in enumerate(zip(*key_columns)):
            if any(pd.isna(part) for part in key):
                skipped += 1
                continue
            acc = accumulators.get(key)
            if acc is None:
                acc = accumulators[key] = _Accumulator()
            acc.add(
                match=bool(matches[i]) if matches is not None else False,
                value=float(numbers[i]) if numbers is not None else None,
            )

        if skipped:
            logger.warning(
                f"Grouping by {list(by)}: {skipped} rows with a missing group value were not assigned"
            )

        result = GroupedResult(by=tuple(by), reduction=reduction)
        for key in sorted(accumulators, key=lambda k: tuple(str(part) for part in k)):
            value = self._finalize(accumulators[key], reduction)
            if value is None:
                continue
            out_key = key if len(by) > 1 else key[0]
            result.values[out_key] = value
            result.counts[out_key] = accumulators[key].n_rows

        logger.info(f"Aggregated {reduction} by {list(by)} into {len(result)} groups")
        return result

    def _validate(
        self,
        table: ApplicantTable,
        by: Union[str, Sequence[str]],
        reduction: Reduction
    ) -> Tuple[str, ...]:
        """Check grouping and reduction attributes against the table."""
        if isinstance(by, str):
            by = [by]
        by = tuple(by)

        if not 1 <= len(by) <= self.MAX_DIMENSIONS:
            raise ValueError(f"Expected 1 or 2 grouping attributes, got {len(by)}")
        if len(set(by)) != len(by):
            raise ValueError(f"Grouping attributes must be distinct, got {list(by)}")

        for name in by:
            table.require_categorical(name)

        if reduction.kind is ReductionKind.RATE:
            if reduction.outcome_value not in table.outcome_labels:
                raise InvalidAttribute(
                    table.outcome_column,
                    f"rate target {reduction.outcome_value!r} is not one of {list(table.outcome_labels)}"
                )
        elif reduction.kind in (ReductionKind.MEAN, ReductionKind.DESCRIBE):
            if reduction.attribute is None:
                raise ValueError(f"{reduction.kind.value}() needs a numeric attribute")
            table.require_numeric(reduction.attribute)

        return by

    @staticmethod
    def _finalize(acc: _Accumulator, reduction: Reduction) -> Any:
        """Turn an accumulator into the group's statistic, or None to omit it."""
        if acc.n_rows == 0:
            return None
        if reduction.kind is ReductionKind.RATE:
            return acc.n_matches / acc.n_rows
        if reduction.kind is ReductionKind.COUNT:
            return acc.n_rows
        if not acc.values:
            return None
        if reduction.kind is ReductionKind.MEAN:
            # fsum keeps the mean independent of row order
            return math.fsum(acc.values) / len(acc.values)
        return describe_values(acc.values)

    # Named analyses

    def repayment_rate_by(self, table: ApplicantTable, attribute: str = "employment_status") -> GroupedResult:
        """Share of applicants who paid back, per group."""
        return self.aggregate(table, [attribute], Reduction.rate(self.config.paid_label))

    def default_rate_by(self, table: ApplicantTable, by: Union[str, Sequence[str]]) -> GroupedResult:
        return self.aggregate(table, by, Reduction.rate(self.config.default_label))

    def average_by(
        self,
        table: ApplicantTable,
        attribute: str = "education_level",
        numeric_attribute: str = "credit_score"
    ) -> GroupedResult:
        """Mean of a numeric attribute per group."""
        return self.aggregate(table, [attribute], Reduction.mean(numeric_attribute))

    def risk_matrix(self, table: ApplicantTable) -> GroupedResult:
        """Default rate for every observed pair of the risk matrix dimensions."""
        return self.default_rate_by(table, self.config.risk_matrix_dimensions)

    def outcome_distribution(self, table: ApplicantTable) -> GroupedResult:
        """Number of applicants per outcome label."""
        return self.aggregate(table, [table.outcome_column], Reduction.count())

    def spread_by(
        self,
        table: ApplicantTable,
        by: Union[str, Sequence[str]],
        numeric_attribute: str = "credit_score"
    ) -> GroupedResult:
        """Distribution summary of a numeric attribute per group."""
        return self.aggregate(table, by, Reduction.describe(numeric_attribute))
