"""
Correlation module for the clustered numeric correlation matrix.
"""

from .correlation_builder import CorrelationBuilder, CorrelationMatrix

__all__ = ['CorrelationBuilder', 'CorrelationMatrix']
