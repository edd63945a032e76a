"""
Ingestion module for loading and normalizing applicant tables.
"""

from .loader import (
    ApplicantLoader,
    ApplicantTable,
    ValidationResult,
    load_applicants,
    normalize_outcome,
)

__all__ = [
    'ApplicantLoader',
    'ApplicantTable',
    'ValidationResult',
    'load_applicants',
    'normalize_outcome',
]
