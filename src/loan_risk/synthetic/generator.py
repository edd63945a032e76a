"""
Synthetic Loan Applicant Generator

Generates an applicant table with the columns the risk engine analyses:
- Demographics: gender, marital status, education level, age
- Employment status and income
- Credit profile: credit score, open accounts, public records, delinquencies
- Loan terms: amount, interest rate, term
- Outcome: loan_paid_back (1 = Paid, 0 = Default)

Default probability depends on credit score, debt-to-income ratio and
employment status so that grouped rates and correlations show structure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Union

import numpy as np
import pandas as pd
from faker import Faker

logger = logging.getLogger(__name__)


# Category weights
GENDERS = {"Male": 0.49, "Female": 0.49, "Other": 0.02}

MARITAL_STATUSES = {"Single": 0.42, "Married": 0.44, "Divorced": 0.10, "Widowed": 0.04}

EDUCATION_LEVELS = {
    "High School": 0.30,
    "Bachelor's": 0.38,
    "Master's": 0.20,
    "PhD": 0.05,
    "Other": 0.07,
}

# employment status -> (weight, default log-odds shift)
EMPLOYMENT_STATUSES = {
    "Employed": (0.62, -0.4),
    "Self-employed": (0.16, 0.1),
    "Unemployed": (0.08, 1.2),
    "Retired": (0.09, 0.0),
    "Student": (0.05, 0.6),
}

# education level -> mean credit score shift
EDUCATION_SCORE_SHIFT = {
    "High School": -15,
    "Bachelor's": 0,
    "Master's": 10,
    "PhD": 20,
    "Other": -5,
}


@dataclass
class ApplicantGeneratorConfig:
    """Configuration for the synthetic applicant generator."""

    seed: int = 42
    num_applicants: int = 20000

    # Credit score distribution
    credit_score: Dict[str, float] = field(default_factory=lambda: {
        "mean": 680, "std": 55, "min": 300, "max": 850,
    })

    # Annual income distribution (lognormal)
    income: Dict[str, float] = field(default_factory=lambda: {
        "log_mean": 10.9, "log_std": 0.45,
    })

    # Base default log-odds before adjustments
    base_default_logit: float = -1.6


class ApplicantGenerator:
    """Generates synthetic loan applicant tables."""

    def __init__(self, config: ApplicantGeneratorConfig | None = None):
        self.config = config or ApplicantGeneratorConfig()
        self.rng = np.random.default_rng(self.config.seed)
        self.faker = Faker()
        Faker.seed(self.config.seed)

    def _weighted_choice(self, weights: Dict[str, float], size: int) -> np.ndarray:
        choices = list(weights.keys())
        p = np.array(list(weights.values()), dtype=float)
        return self.rng.choice(choices, size=size, p=p / p.sum())

    def generate(self, num_applicants: int | None = None) -> pd.DataFrame:
        """Generate the applicant table as a DataFrame."""
        n = num_applicants if num_applicants is not None else self.config.num_applicants
        logger.info(f"Generating {n} synthetic applicants (seed={self.config.seed})")

        gender = self._weighted_choice(GENDERS, n)
        marital = self._weighted_choice(MARITAL_STATUSES, n)
        education = self._weighted_choice(EDUCATION_LEVELS, n)
        employment = self._weighted_choice(
            {k: v[0] for k, v in EMPLOYMENT_STATUSES.items()}, n
        )

        age = self.rng.integers(21, 70, size=n)
        annual_income = np.round(
            self.rng.lognormal(self.config.income["log_mean"], self.config.income["log_std"], size=n), 2
        )
        monthly_income = np.round(annual_income / 12, 2)

        cs = self.config.credit_score
        score_shift = np.array([EDUCATION_SCORE_SHIFT[e] for e in education])
        credit_score = np.clip(
            self.rng.normal(cs["mean"], cs["std"], size=n) + score_shift, cs["min"], cs["max"]
        ).round().astype(int)

        loan_amount = np.round(
            np.clip(annual_income * self.rng.uniform(0.05, 0.6, size=n), 500, None), 2
        )
        # riskier applicants pay higher rates
        interest_rate = np.round(
            np.clip(22 - (credit_score - 300) / 550 * 16 + self.rng.normal(0, 1.2, size=n), 3, 25), 2
        )
        loan_term = self.rng.choice([36, 60], size=n, p=[0.7, 0.3])
        debt_to_income_ratio = np.round(
            np.clip(self.rng.beta(2, 6, size=n) + loan_amount / annual_income / 10, 0.01, 0.95), 3
        )

        num_of_open_accounts = self.rng.poisson(4, size=n)
        public_records = self.rng.binomial(2, 0.04, size=n)
        delinquency_history = self.rng.poisson(np.clip((720 - credit_score) / 100, 0.05, None))

        logit = (
            self.config.base_default_logit
            - (credit_score - cs["mean"]) / 40
            + (debt_to_income_ratio - 0.3) * 4
            + np.array([EMPLOYMENT_STATUSES[e][1] for e in employment])
        )
        p_default = 1 / (1 + np.exp(-logit))
        loan_paid_back = (self.rng.random(n) >= p_default).astype(int)

        applicant_id = [self.faker.bothify("APP-########") for _ in range(n)]

        return pd.DataFrame({
            "applicant_id": applicant_id,
            "age": age,
            "gender": gender,
            "marital_status": marital,
            "education_level": education,
            "employment_status": employment,
            "annual_income": annual_income,
            "monthly_income": monthly_income,
            "debt_to_income_ratio": debt_to_income_ratio,
            "credit_score": credit_score,
            "loan_amount": loan_amount,
            "interest_rate": interest_rate,
            "loan_term": loan_term,
            "num_of_open_accounts": num_of_open_accounts,
            "public_records": public_records,
            "delinquency_history": delinquency_history,
            "loan_paid_back": loan_paid_back,
        })

    def save(self, frame: pd.DataFrame, output: Union[str, Path]) -> Path:
        """Write the table as CSV."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(output, index=False)
        logger.info(f"Wrote {len(frame)} applicants to {output}")
        return output


def generate_applicants(num_applicants: int = 20000, seed: int = 42) -> pd.DataFrame:
    """Generate a synthetic applicant table."""
    return ApplicantGenerator(ApplicantGeneratorConfig(seed=seed)).generate(num_applicants)
