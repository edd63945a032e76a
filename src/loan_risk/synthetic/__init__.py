"""
Synthetic applicant data for demos and tests.
"""

from .generator import ApplicantGenerator, ApplicantGeneratorConfig, generate_applicants

__all__ = ['ApplicantGenerator', 'ApplicantGeneratorConfig', 'generate_applicants']
