"""
Pytest configuration and fixtures for loan risk engine tests.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add src/ to path so tests run without installing the package
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from loan_risk.config import AnalysisConfig
from loan_risk.ingest.loader import ApplicantLoader


def _rows(employment, marital, outcomes, **extra):
    """Helper to build applicant rows sharing the same group values."""
    rows = []
    for i, outcome in enumerate(outcomes):
        row = {
            'employment_status': employment,
            'marital_status': marital,
            'loan_paid_back': outcome,
        }
        for key, values in extra.items():
            row[key] = values[i]
        rows.append(row)
    return rows


@pytest.fixture
def config():
    """Default analysis configuration."""
    return AnalysisConfig()


@pytest.fixture
def make_table(config):
    """Factory turning a DataFrame or list of row dicts into an ApplicantTable."""
    def _make(data):
        frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(data)
        return ApplicantLoader(config).from_frame(frame)
    return _make


@pytest.fixture
def employment_table(make_table):
    """
    Two employment categories:
    - employed: 9 rows, 8 Paid, 1 Default
    - self-employed: 5 rows, 3 Paid, 2 Default
    """
    rows = (
        _rows('employed', 'single', [1] * 8 + [0])
        + _rows('self-employed', 'married', [1, 1, 1, 0, 0])
    )
    return make_table(rows)


@pytest.fixture
def risk_table(make_table):
    """
    Employment x marital status combinations:
    - (employed, single): 4 rows, 3 Default
    - (employed, married): 2 rows, 0 Default
    - (retired, married): 3 rows, 1 Default
    No (retired, single) rows.
    """
    rows = (
        _rows('employed', 'single', [0, 0, 0, 1])
        + _rows('employed', 'married', [1, 1])
        + _rows('retired', 'married', [0, 1, 1])
    )
    return make_table(rows)


@pytest.fixture
def education_table(make_table):
    """Credit scores by education level; Graduate scores are 700, 720, 710."""
    return make_table({
        'education_level': ['Graduate', 'Graduate', 'Graduate', 'High School', 'High School'],
        'credit_score': [700, 720, 710, 640, 660],
        'loan_paid_back': [1, 1, 0, 0, 1],
    })


@pytest.fixture
def numeric_frame():
    """
    Numeric attributes with known correlation structure:
    - a, b strongly correlated
    - c, d strongly correlated
    - the two pairs nearly uncorrelated
    plus the excluded columns and categorical columns.
    """
    t = np.arange(20, dtype=float)
    c = np.tile([1.0, -1.0, 2.0, -2.0], 5)
    return pd.DataFrame({
        'employment_status': ['employed', 'retired'] * 10,
        'a': t,
        'b': t + np.tile([0.5, -0.5], 10),
        'c': c,
        'd': c + np.tile([0.1, 0.0, -0.1, 0.0], 5),
        'age': np.arange(30, 50),
        'public_records': np.tile([0, 1], 10),
        'num_of_open_accounts': np.tile([3, 4, 5, 6], 5),
        'monthly_income': np.linspace(2000, 6000, 20),
        'loan_paid_back': np.tile([1, 1, 0, 1], 5),
    })
