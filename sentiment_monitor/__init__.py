"""
FX Sentiment Monitor
====================

Polls the Grok API for a forex market-sentiment report, extracts one
sentiment record per tracked currency pair and serves the latest result
through a cache that survives rate limits and transient outages.
"""

__version__ = "1.2.0"
__description__ = "Grok-powered forex sentiment monitor with last-known-good caching"
