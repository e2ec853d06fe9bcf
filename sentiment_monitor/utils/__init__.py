"""
Utilities Module - Helper Functions and Utility Classes

This module contains:
- Validators for instruments, scores and prompt text
- Grok report fetcher
"""

from .validators import (
    validate_instrument,
    clamp_score,
    validate_scores,
    sanitize_for_prompt,
)
from .grok_report_fetcher import GrokReportFetcher

__all__ = [
    # Validators
    'validate_instrument',
    'clamp_score',
    'validate_scores',
    'sanitize_for_prompt',
    # Utilities
    'GrokReportFetcher',
]
