"""
Tests for the correlation module.

Tests cover:
- Attribute selection and the exclusion list
- Pairwise-complete Pearson coefficients
- Symmetry and diagonal
- Hierarchical clustering order and its determinism
- Error conditions
"""

import numpy as np
import pandas as pd
import pytest

from loan_risk.config import LINKAGE_METHODS
from loan_risk.correlate.correlation_builder import CorrelationBuilder, CorrelationMatrix
from loan_risk.errors import InvalidAttribute, NoNumericAttributes

EXCLUDED = ['age', 'public_records', 'num_of_open_accounts', 'monthly_income']


@pytest.fixture
def builder(config):
    """Create builder with the default exclusion list."""
    return CorrelationBuilder(config=config)


@pytest.fixture
def numeric_table(make_table, numeric_frame):
    return make_table(numeric_frame)


class TestAttributeSelection:
    """Tests for numeric attribute selection."""

    def test_default_exclusions_removed(self, builder, numeric_table):
        """The four fixed exclusions never reach the matrix."""
        selected = builder.select_attributes(numeric_table)

        assert selected == ['a', 'b', 'c', 'd']
        assert not set(EXCLUDED) & set(builder.build(numeric_table).labels)

    def test_categorical_columns_ignored(self, builder, numeric_table):
        """Outcome and string columns are not numeric attributes."""
        labels = builder.build(numeric_table).labels

        assert 'loan_paid_back' not in labels
        assert 'employment_status' not in labels

    def test_custom_exclusions(self, numeric_table):
        """An explicit exclusion list replaces the default one."""
        builder = CorrelationBuilder(excluded=['a', 'age'])
        labels = builder.build(numeric_table).labels

        assert set(labels) == {'b', 'c', 'd', 'public_records', 'num_of_open_accounts', 'monthly_income'}

    def test_exclusion_applied_every_build(self, make_table, numeric_frame):
        """The same builder reselects attributes for each table."""
        builder = CorrelationBuilder()
        first = builder.build(make_table(numeric_frame))
        second = builder.build(make_table(numeric_frame.drop(columns=['d'])))

        assert set(first.labels) == {'a', 'b', 'c', 'd'}
        assert set(second.labels) == {'a', 'b', 'c'}

    def test_missing_exclusion_ignored_by_default(self, make_table, numeric_frame):
        """Excluded names absent from the table are skipped."""
        table = make_table(numeric_frame.drop(columns=['age']))

        assert CorrelationBuilder().select_attributes(table) == ['a', 'b', 'c', 'd']

    def test_missing_exclusion_strict(self, make_table, numeric_frame):
        """Strict mode rejects excluded names absent from the table."""
        table = make_table(numeric_frame.drop(columns=['age']))

        with pytest.raises(InvalidAttribute) as excinfo:
            CorrelationBuilder(strict=True).select_attributes(table)
        assert excinfo.value.attribute == 'age'

    def test_single_remaining_attribute(self, numeric_table):
        """Excluding all but one numeric attribute raises NoNumericAttributes."""
        builder = CorrelationBuilder(excluded=EXCLUDED + ['b', 'c', 'd'])

        with pytest.raises(NoNumericAttributes) as excinfo:
            builder.build(numeric_table)
        assert excinfo.value.remaining == ['a']

    def test_no_numeric_attributes(self, make_table):
        table = make_table({'gender': ['Male', 'Female'], 'loan_paid_back': [1, 0]})

        with pytest.raises(NoNumericAttributes):
            CorrelationBuilder().build(table)


class TestCorrelationValues:
    """Tests for coefficient values."""

    def test_known_correlations(self, builder, make_table):
        """Exact linear relations give +1 and -1."""
        x = np.arange(10, dtype=float)
        table = make_table({
            'x': x,
            'double': 2 * x + 3,
            'negative': -x,
            'loan_paid_back': [0, 1] * 5,
        })
        matrix = builder.build(table)

        assert matrix['x', 'double'] == pytest.approx(1.0)
        assert matrix['x', 'negative'] == pytest.approx(-1.0)
        assert matrix['double', 'negative'] == pytest.approx(-1.0)

    def test_matches_numpy(self, builder, numeric_table, numeric_frame):
        """Coefficients agree with numpy's Pearson correlation."""
        matrix = builder.build(numeric_table)
        expected = np.corrcoef(numeric_frame['a'], numeric_frame['c'])[0, 1]

        assert matrix['a', 'c'] == pytest.approx(expected)

    def test_symmetric_with_unit_diagonal(self, builder, numeric_table):
        matrix = builder.build(numeric_table)

        np.testing.assert_array_equal(matrix.values, matrix.values.T)
        np.testing.assert_array_equal(np.diag(matrix.values), np.ones(len(matrix)))
        for row in matrix.labels:
            for col in matrix.labels:
                assert matrix[row, col] == matrix[col, row]
                assert -1.0 <= matrix[row, col] <= 1.0

    def test_pairwise_complete(self, builder, make_table):
        """A missing value only removes its row from pairs involving that attribute."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        y = np.array([np.nan, 1.0, 4.0, 2.0, 6.0, 5.0])
        z = np.array([3.0, 1.0, 2.0, 6.0, 4.0, 5.0])
        table = make_table({'x': x, 'y': y, 'z': z, 'loan_paid_back': [0, 1] * 3})
        matrix = builder.build(table)

        assert matrix['x', 'y'] == pytest.approx(np.corrcoef(x[1:], y[1:])[0, 1])
        assert matrix['x', 'z'] == pytest.approx(np.corrcoef(x, z)[0, 1])

        counts = pd.DataFrame(matrix.n_obs, index=matrix.labels, columns=matrix.labels)
        assert counts.loc['x', 'y'] == 5
        assert counts.loc['x', 'z'] == 6

    def test_constant_attribute_is_undefined(self, builder, make_table):
        """Zero variance gives NaN off the diagonal but still 1.0 on it."""
        table = make_table({
            'x': [1.0, 2.0, 3.0, 4.0],
            'flat': [5.0, 5.0, 5.0, 5.0],
            'y': [2.0, 1.0, 4.0, 3.0],
            'loan_paid_back': [0, 1, 1, 0],
        })
        matrix = builder.build(table)

        assert np.isnan(matrix['x', 'flat'])
        assert matrix['flat', 'flat'] == 1.0
        assert matrix.to_dict()['values'][matrix.labels.index('flat')][matrix.labels.index('x')] is None


class TestClusteringOrder:
    """Tests for the hierarchical clustering order."""

    def test_correlated_attributes_adjacent(self, builder, numeric_table):
        """Strongly correlated pairs sit next to each other."""
        labels = builder.build(numeric_table).labels

        assert abs(labels.index('a') - labels.index('b')) == 1
        assert abs(labels.index('c') - labels.index('d')) == 1

    @pytest.mark.parametrize('method', LINKAGE_METHODS)
    def test_all_linkage_methods(self, numeric_table, method):
        matrix = CorrelationBuilder(linkage_method=method).build(numeric_table)

        assert matrix.linkage_method == method
        assert abs(matrix.labels.index('a') - matrix.labels.index('b')) == 1

    def test_order_independent_of_column_order(self, make_table, numeric_frame):
        """Reordering input columns yields the same layout."""
        reversed_frame = numeric_frame[list(reversed(numeric_frame.columns))]
        first = CorrelationBuilder().build(make_table(numeric_frame))
        second = CorrelationBuilder().build(make_table(reversed_frame))

        assert first.labels == second.labels
        np.testing.assert_array_equal(first.values, second.values)

    def test_repeated_builds_identical(self, builder, numeric_table):
        first = builder.build(numeric_table)
        second = builder.build(numeric_table)

        assert first.labels == second.labels
        np.testing.assert_array_equal(first.values, second.values)

    def test_tied_dissimilarities_resolve_by_name(self, builder, make_table):
        """Mutually uncorrelated attributes keep a stable, repeatable order."""
        table = make_table({
            'zeta': [1.0, -1.0, 1.0, -1.0],
            'alpha': [1.0, 1.0, -1.0, -1.0],
            'mid': [1.0, -1.0, -1.0, 1.0],
            'loan_paid_back': [0, 1, 0, 1],
        })
        orders = {tuple(builder.build(table).labels) for _ in range(3)}

        assert len(orders) == 1
        assert sorted(orders.pop()) == ['alpha', 'mid', 'zeta']

    def test_invalid_linkage_method(self):
        with pytest.raises(ValueError):
            CorrelationBuilder(linkage_method='ward')


class TestCorrelationMatrixOutput:
    """Tests for CorrelationMatrix helpers."""

    def test_upper_triangle(self, builder, numeric_table):
        """Upper triangle excludes the diagonal and has n(n-1)/2 cells."""
        matrix = builder.build(numeric_table)
        cells = matrix.upper_triangle()

        assert len(cells) == 6
        assert all(row != col for row, col, _ in cells)
        assert cells[0][:2] == (matrix.labels[0], matrix.labels[1])

    def test_strong_pairs(self, builder, numeric_table):
        matrix = builder.build(numeric_table)
        pairs = matrix.strong_pairs(0.9)

        assert {frozenset(p[:2]) for p in pairs} == {frozenset('ab'), frozenset('cd')}
        assert abs(pairs[0][2]) >= abs(pairs[1][2])

    def test_to_frame(self, builder, numeric_table):
        matrix = builder.build(numeric_table)
        frame = matrix.to_frame()

        assert list(frame.index) == matrix.labels
        assert list(frame.columns) == matrix.labels

    def test_to_dict(self, builder, numeric_table):
        data = builder.build(numeric_table).to_dict()

        assert data['linkage_method'] == 'complete'
        assert data['excluded'] == EXCLUDED
        assert len(data['upper_triangle']) == 6
        assert isinstance(data, dict)

    def test_manual_matrix(self):
        matrix = CorrelationMatrix(
            labels=['x', 'y'],
            values=np.array([[1.0, 0.5], [0.5, 1.0]]),
            n_obs=np.array([[3, 3], [3, 3]]),
            linkage_method='average',
        )

        assert matrix['y', 'x'] == 0.5
        assert matrix.strong_pairs(0.6) == []
