"""
Analyzers Module - Report Analysis Components

Contains the sentiment extractor that turns Grok report text into
per-instrument sentiment records.
"""

from .sentiment_extractor import SentimentExtractor

__all__ = [
    'SentimentExtractor',
]
