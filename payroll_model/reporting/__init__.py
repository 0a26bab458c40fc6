"""Comparison of current and projected payroll costs."""

from .comparison import (
    ComparisonSummary,
    LevelBreakdown,
    build_comparison,
    detail_frame,
    impact_reason,
    level_frame,
    rank_by_impact,
    summary_frame,
    top_impacts_frame,
)

__all__ = [
    'ComparisonSummary',
    'LevelBreakdown',
    'build_comparison',
    'detail_frame',
    'impact_reason',
    'level_frame',
    'rank_by_impact',
    'summary_frame',
    'top_impacts_frame',
]
