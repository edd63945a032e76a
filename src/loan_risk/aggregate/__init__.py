"""
Aggregation module for grouped outcome rates and numeric summaries.
"""

from .rate_aggregator import (
    GroupedResult,
    RateAggregator,
    Reduction,
    ReductionKind,
    describe_values,
)

__all__ = ['GroupedResult', 'RateAggregator', 'Reduction', 'ReductionKind', 'describe_values']
