"""Analysis and reporting utilities."""

from .summaries import weekly_zone_summary, weekly_load_summary, load_method_breakdown
from .reports import (
    generate_load_report,
    generate_zone_report,
    generate_acwr_report,
    generate_retention_report,
    generate_progression_report,
    export_loads_csv,
)

__all__ = [
    # Summaries
    'weekly_zone_summary',
    'weekly_load_summary',
    'load_method_breakdown',
    # Reports
    'generate_load_report',
    'generate_zone_report',
    'generate_acwr_report',
    'generate_retention_report',
    'generate_progression_report',
    'export_loads_csv',
]
