"""
Loan Risk Engine

Ingests a table of loan applicants, aggregates default and repayment
rates across applicant attributes, and builds a clustered correlation
matrix of the numeric attributes for a rendering layer.
"""

__version__ = "0.1.0"
__author__ = "Loan Risk Analytics Team"

from pathlib import Path

# Package root directory
PACKAGE_ROOT = Path(__file__).parent

# Default configuration
DEFAULT_CONFIG = {
    "outcome_column": "loan_paid_back",
    "outcome_labels": {0: "Default", 1: "Paid"},
    "excluded_attributes": [
        "age",
        "public_records",
        "num_of_open_accounts",
        "monthly_income",
    ],
    "risk_matrix_dimensions": ["employment_status", "marital_status"],
    "linkage_method": "complete",  # "complete", "average", "single" or "weighted"
    "random_seed": 42,
}
