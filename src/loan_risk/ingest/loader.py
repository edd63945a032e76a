"""
Data loader for loan applicant tables.

Reads the applicant CSV, validates that the outcome column is present,
records missing values, and relabels the binary outcome as a
Default/Paid categorical before any aggregation runs.

The resulting ApplicantTable is read-only: every accessor hands out a copy.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pandas.api import types as ptypes

from ..config import AnalysisConfig
from ..errors import InvalidAttribute

logger = logging.getLogger(__name__)

# Semantic attribute types
CATEGORICAL = "categorical"
NUMERIC = "numeric"


@dataclass
class ValidationResult:
    """Result of schema validation."""
    valid: bool
    missing_values: Dict[str, int] = field(default_factory=dict)
    dropped_rows: int = 0
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def total_missing(self) -> int:
        return sum(self.missing_values.values())


def semantic_type(series: pd.Series) -> str:
    """Classify a column as numeric or categorical."""
    if ptypes.is_bool_dtype(series) or isinstance(series.dtype, pd.CategoricalDtype):
        return CATEGORICAL
    if ptypes.is_numeric_dtype(series):
        return NUMERIC
    return CATEGORICAL


class ApplicantTable:
    """
    Immutable view over a loaded applicant table.

    The outcome column is always a pandas Categorical whose categories are
    the two outcome labels, ordered by raw value (Default, Paid), with no
    missing values. Construction raises InvalidAttribute otherwise.
    """

    def __init__(self, frame: pd.DataFrame, outcome_column: str, outcome_labels: List[str]):
        if outcome_column not in frame.columns:
            raise InvalidAttribute(outcome_column, "outcome column not found in table")

        outcome = frame[outcome_column]
        if not isinstance(outcome.dtype, pd.CategoricalDtype):
            raise InvalidAttribute(
                outcome_column,
                f"outcome must be a categorical of {list(outcome_labels)}, found {outcome.dtype}; "
                f"relabel it with normalize_outcome or use ApplicantLoader"
            )
        if list(outcome.cat.categories) != list(outcome_labels):
            raise InvalidAttribute(
                outcome_column,
                f"outcome categories {list(outcome.cat.categories)} do not match {list(outcome_labels)}"
            )
        if outcome.isna().any():
            raise InvalidAttribute(outcome_column, "outcome has missing values")

        self._frame = frame.copy()
        self._outcome_column = outcome_column
        self._outcome_labels = tuple(outcome_labels)

    @property
    def frame(self) -> pd.DataFrame:
        """A copy of the underlying DataFrame."""
        return self._frame.copy()

    @property
    def outcome_column(self) -> str:
        return self._outcome_column

    @property
    def outcome_labels(self) -> tuple:
        return self._outcome_labels

    @property
    def columns(self) -> List[str]:
        return list(self._frame.columns)

    @property
    def n_rows(self) -> int:
        return len(self._frame)

    def __len__(self) -> int:
        return len(self._frame)

    def __contains__(self, name: str) -> bool:
        return name in self._frame.columns

    def column(self, name: str) -> pd.Series:
        """Return a copy of one column, raising InvalidAttribute if absent."""
        if name not in self._frame.columns:
            raise InvalidAttribute(name, "not a column of the applicant table")
        return self._frame[name].copy()

    def columns_frame(self, names: List[str]) -> pd.DataFrame:
        """Return a copy of the given columns."""
        for name in names:
            if name not in self._frame.columns:
                raise InvalidAttribute(name, "not a column of the applicant table")
        return self._frame[list(names)].copy()

    def semantic_type(self, name: str) -> str:
        if name not in self._frame.columns:
            raise InvalidAttribute(name, "not a column of the applicant table")
        return semantic_type(self._frame[name])

    def numeric_attributes(self) -> List[str]:
        """Numeric columns in table order."""
        return [c for c in self._frame.columns if semantic_type(self._frame[c]) == NUMERIC]

    def categorical_attributes(self) -> List[str]:
        """Categorical columns in table order, outcome included."""
        return [c for c in self._frame.columns if semantic_type(self._frame[c]) == CATEGORICAL]

    def require_categorical(self, name: str) -> None:
        if self.semantic_type(name) != CATEGORICAL:
            raise InvalidAttribute(name, "expected a categorical attribute, found numeric")

    def require_numeric(self, name: str) -> None:
        if self.semantic_type(name) != NUMERIC:
            raise InvalidAttribute(name, "expected a numeric attribute, found categorical")

    def overview(self) -> Dict[str, Any]:
        """Dimensions, per-column types and missing-value counts."""
        missing = self._frame.isna().sum()
        return {
            'n_rows': len(self._frame),
            'n_columns': len(self._frame.columns),
            'columns': {
                name: {
                    'dtype': str(self._frame[name].dtype),
                    'semantic_type': semantic_type(self._frame[name]),
                    'missing': int(missing[name]),
                }
                for name in self._frame.columns
            },
            'total_missing': int(missing.sum()),
        }


def normalize_outcome(series: pd.Series, config: AnalysisConfig) -> pd.Series:
    """
    Relabel a raw 0/1 outcome column as a Default/Paid categorical.

    Values that are already labels pass through unchanged. Missing values stay
    missing; any other value raises InvalidAttribute.
    """
    labels = config.label_order
    lookup: Dict[Any, str] = {}
    for raw, label in config.outcome_labels.items():
        lookup[raw] = label
        lookup[str(raw)] = label
        lookup[label] = label

    def relabel(value):
        if pd.isna(value):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        try:
            return lookup[value]
        except (KeyError, TypeError):
            raise InvalidAttribute(
                series.name,
                f"unexpected outcome value {value!r}, expected one of {sorted(lookup, key=str)}"
            )

    relabeled = [relabel(v) for v in series.tolist()]
    return pd.Series(
        pd.Categorical(relabeled, categories=labels),
        index=series.index,
        name=series.name,
    )


class ApplicantLoader:
    """Loads applicant tables from CSV files or DataFrames."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the loader.

        Args:
            config: Analysis configuration (defaults to AnalysisConfig())
        """
        self.config = config or AnalysisConfig()
        self.validation: Optional[ValidationResult] = None
        self.loaded_file: Optional[str] = None

    def load(self, path: Union[str, Path]) -> ApplicantTable:
        """Read a CSV file and return a normalized ApplicantTable."""
        path = Path(path)
        logger.info(f"Loading applicants from {path}")
        frame = pd.read_csv(path)
        self.loaded_file = str(path)
        return self.from_frame(frame)

    def from_frame(self, frame: pd.DataFrame) -> ApplicantTable:
        """Validate a DataFrame and return a normalized ApplicantTable."""
        outcome = self.config.outcome_column
        validation = ValidationResult(valid=True)

        if outcome not in frame.columns:
            validation.valid = False
            validation.errors.append(f"Missing outcome column '{outcome}'")
            self.validation = validation
            raise InvalidAttribute(outcome, "outcome column not found in table")

        missing = frame.isna().sum()
        validation.missing_values = {
            str(name): int(count) for name, count in missing.items() if count > 0
        }
        if validation.total_missing:
            logger.info(
                f"Table has {validation.total_missing} missing values across "
                f"{len(validation.missing_values)} columns"
            )

        frame = frame.copy()
        frame[outcome] = normalize_outcome(frame[outcome], self.config)

        unlabeled = frame[outcome].isna()
        if unlabeled.any():
            validation.dropped_rows = int(unlabeled.sum())
            message = f"Dropped {validation.dropped_rows} rows with no '{outcome}' value"
            validation.warnings.append(message)
            logger.warning(message)
            frame = frame.loc[~unlabeled].reset_index(drop=True)

        self.validation = validation
        logger.info(f"Loaded {len(frame)} applicants with {len(frame.columns)} columns")

        return ApplicantTable(frame, outcome, self.config.label_order)


def load_applicants(
    path: Union[str, Path],
    config: Optional[AnalysisConfig] = None
) -> ApplicantTable:
    """
    Load an applicant CSV into an ApplicantTable.

    Args:
        path: CSV file with one header row and one row per applicant
        config: Analysis configuration

    Returns:
        ApplicantTable with the outcome relabelled
    """
    return ApplicantLoader(config).load(path)
