"""
Correlation Module for the Loan Risk Engine.

Builds the numeric correlation matrix shown as the correlation heatmap:
- Selects numeric attributes minus a fixed exclusion list
- Computes pairwise-complete Pearson correlation
- Orders rows and columns by hierarchical clustering on 1 - r

Attributes are sorted by name before clustering so that equal
dissimilarities always resolve to the same order.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import leaves_list, linkage
from scipy.spatial.distance import squareform

from ..config import LINKAGE_METHODS, AnalysisConfig
from ..errors import InvalidAttribute, NoNumericAttributes
from ..ingest.loader import ApplicantTable

logger = logging.getLogger(__name__)


@dataclass
class CorrelationMatrix:
    """
    Symmetric correlation matrix in clustering order.

    Attributes:
        labels: Attribute names in display order (rows and columns)
        values: Pearson coefficients, diagonal 1.0, NaN where undefined
        n_obs: Rows with both attributes present, per cell
        linkage_method: Linkage used to derive the order
        excluded: Exclusion list applied during selection
    """
    labels: List[str]
    values: np.ndarray
    n_obs: np.ndarray
    linkage_method: str
    excluded: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)

    def __getitem__(self, pair: Tuple[str, str]) -> float:
        row, col = pair
        return float(self.values[self.labels.index(row), self.labels.index(col)])

    def to_frame(self) -> pd.DataFrame:
        """Matrix as a labelled DataFrame."""
        return pd.DataFrame(self.values, index=self.labels, columns=self.labels)

    def upper_triangle(self) -> List[Tuple[str, str, float]]:
        """Cells above the diagonal, row-major in display order."""
        cells = []
        for i in range(len(self.labels)):
            for j in range(i + 1, len(self.labels)):
                cells.append((self.labels[i], self.labels[j], float(self.values[i, j])))
        return cells

    def strong_pairs(self, threshold: float = 0.8) -> List[Tuple[str, str, float]]:
        """Upper-triangle pairs with |r| >= threshold, strongest first."""
        pairs = [
            cell for cell in self.upper_triangle()
            if not np.isnan(cell[2]) and abs(cell[2]) >= threshold
        ]
        return sorted(pairs, key=lambda c: (-abs(c[2]), c[0], c[1]))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'labels': list(self.labels),
            'values': [
                [None if np.isnan(v) else float(v) for v in row]
                for row in self.values
            ],
            'n_obs': self.n_obs.tolist(),
            'linkage_method': self.linkage_method,
            'excluded': list(self.excluded),
            'upper_triangle': [
                {'row': r, 'column': c, 'value': None if np.isnan(v) else v}
                for r, c, v in self.upper_triangle()
            ],
        }


class CorrelationBuilder:
    """
    Builder for the clustered numeric correlation matrix.

    The exclusion list is applied on every build; nothing is cached
    between calls.
    """

    def __init__(
        self,
        excluded: Optional[Sequence[str]] = None,
        linkage_method: Optional[str] = None,
        strict: bool = False,
        config: Optional[AnalysisConfig] = None,
    ):
        """
        Initialize the correlation builder.

        Args:
            excluded: Numeric attributes to leave out (defaults to config)
            linkage_method: Hierarchical clustering linkage (defaults to config)
            strict: Raise InvalidAttribute for excluded names missing from the table
            config: Analysis configuration
        """
        self.config = config or AnalysisConfig()
        self.excluded = list(excluded if excluded is not None else self.config.excluded_attributes)
        self.linkage_method = linkage_method or self.config.linkage_method
        self.strict = strict

        if self.linkage_method not in LINKAGE_METHODS:
            raise ValueError(
                f"Unsupported linkage method: {self.linkage_method}. "
                f"Use one of {', '.join(LINKAGE_METHODS)}."
            )

    def select_attributes(self, table: ApplicantTable) -> List[str]:
        """
        Numeric attributes minus the exclusion list, sorted by name.

        Raises:
            InvalidAttribute: strict mode and an excluded name is not a column
            NoNumericAttributes: fewer than two attributes remain
        """
        absent = [name for name in self.excluded if name not in table]
        if absent:
            if self.strict:
                raise InvalidAttribute(absent[0], "excluded attribute is not a column of the table")
            logger.warning(f"Excluded attributes not in table, ignoring: {absent}")

        excluded = set(self.excluded)
        selected = sorted(
            name for name in table.numeric_attributes() if name not in excluded
        )

        if len(selected) < 2:
            raise NoNumericAttributes(selected)

        return selected

    def build(self, table: ApplicantTable) -> CorrelationMatrix:
        """
        Compute the ordered correlation matrix.

        Args:
            table: Applicant table

        Returns:
            CorrelationMatrix with rows and columns in clustering order
        """
        selected = self.select_attributes(table)
        frame = table.columns_frame(selected).astype(float)

        logger.info(f"Correlating {len(selected)} numeric attributes over {len(frame)} rows")

        # pandas drops incomplete rows per pair, not for the whole matrix
        values = frame.corr(method='pearson', min_periods=2).to_numpy(copy=True)
        values = np.clip(values, -1.0, 1.0)
        values = np.triu(values, 1) + np.triu(values, 1).T
        np.fill_diagonal(values, 1.0)

        present = frame.notna().to_numpy(dtype=int)
        n_obs = present.T @ present

        n_undefined = int(np.isnan(values).sum() // 2)
        if n_undefined:
            logger.warning(f"{n_undefined} attribute pairs have an undefined correlation")

        order = self._cluster_order(values)

        return CorrelationMatrix(
            labels=[selected[i] for i in order],
            values=values[np.ix_(order, order)],
            n_obs=n_obs[np.ix_(order, order)],
            linkage_method=self.linkage_method,
            excluded=list(self.excluded),
        )

    def _cluster_order(self, values: np.ndarray) -> List[int]:
        """Leaf order of agglomerative clustering on 1 - r."""
        dissimilarity = 1.0 - values
        dissimilarity[np.isnan(dissimilarity)] = 1.0
        dissimilarity = np.clip(dissimilarity, 0.0, 2.0)
        np.fill_diagonal(dissimilarity, 0.0)

        condensed = squareform(dissimilarity, checks=False)
        tree = linkage(condensed, method=self.linkage_method)
        return [int(i) for i in leaves_list(tree)]
