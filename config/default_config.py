"""
Centralized Configuration Management
=====================================

All configurable parameters in one place with validation and type hints.
"""

import os
from typing import Dict, Any, List
from dotenv import load_dotenv

from sentiment_monitor.utils.validators import validate_instrument

# Load environment variables from .env file
load_dotenv()

DEFAULT_INSTRUMENTS = 'EURUSD,GBPUSD,USDJPY,AUDUSD'

# =============================================================================
# ENVIRONMENT VARIABLES CONFIG
# =============================================================================

class Config:
    """Centralized configuration with validation and environment variable loading"""

    def __init__(self):
        # =====================================================================
        # API CONFIGURATION
        # =====================================================================
        self.XAI_API_KEY = os.getenv('XAI_API_KEY')
        self.XAI_BASE_URL = os.getenv('XAI_BASE_URL', 'https://api.x.ai/v1/chat/completions')
        self.GROK_MODEL = os.getenv('GROK_MODEL', 'grok-beta')
        self.GROK_TIMEOUT = float(os.getenv('GROK_TIMEOUT', '60'))
        self.GROK_MAX_TOKENS = int(os.getenv('GROK_MAX_TOKENS', '1500'))
        self.GROK_TEMPERATURE = float(os.getenv('GROK_TEMPERATURE', '0.3'))

        # =====================================================================
        # ALERTING CONFIGURATION
        # =====================================================================
        self.ALERT_WEBHOOK = os.getenv('ALERT_WEBHOOK')
        self.ALERT_THROTTLE = int(os.getenv('ALERT_THROTTLE_SECONDS', '300'))  # 5 min

        # =====================================================================
        # SENTIMENT UNIVERSE
        # =====================================================================
        # Order matters: records are always rendered in this order
        self.SENTIMENT_INSTRUMENTS: List[str] = [
            s.strip().upper()
            for s in os.getenv('SENTIMENT_INSTRUMENTS', DEFAULT_INSTRUMENTS).split(',')
            if s.strip()
        ]

        # =====================================================================
        # TIMING AND RATE LIMITING
        # =====================================================================
        self.REFETCH_INTERVAL = float(os.getenv('REFETCH_INTERVAL', '300'))  # 5 min
        self.STALE_AFTER = float(os.getenv('STALE_AFTER', '240'))  # 4 min
        self.DISPLAY_INTERVAL = float(os.getenv('DISPLAY_INTERVAL', '30'))

        self.RETRY_CONFIG: Dict[str, Any] = {
            'max_attempts': int(os.getenv('MAX_RETRY_ATTEMPTS', '3')),
            'base_delay': float(os.getenv('RETRY_BASE_DELAY', '1.0')),
            'backoff_factor': float(os.getenv('RETRY_BACKOFF_FACTOR', '2.0')),
            'max_delay': float(os.getenv('RETRY_MAX_DELAY', '30.0')),
            'retry_fatal': os.getenv('RETRY_FATAL_FAILURES', 'true').lower() in ('1', 'true', 'yes'),
        }

        # =====================================================================
        # LOGGING
        # =====================================================================
        self.LOG_LEVELS: Dict[str, str] = {
            'file': os.getenv('FILE_LOG_LEVEL', 'DEBUG'),
            'console': os.getenv('CONSOLE_LOG_LEVEL', 'WARNING'),
            'grok': os.getenv('GROK_LOG_LEVEL', 'DEBUG')
        }

        self.LOG_FILES: Dict[str, str] = {
            'main': os.getenv('MAIN_LOG_FILE', 'logs/sentiment_monitor.log'),
            'grok': os.getenv('GROK_LOG_FILE', 'logs/grok_interactions.log')
        }

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        # Required environment variables
        required_vars = ['XAI_API_KEY']
        for var in required_vars:
            if not getattr(self, var):
                issues.append(f"Missing required environment variable: {var}")

        if not self.SENTIMENT_INSTRUMENTS:
            issues.append("SENTIMENT_INSTRUMENTS must list at least one instrument")

        for instrument in self.SENTIMENT_INSTRUMENTS:
            if not validate_instrument(instrument):
                issues.append(f"Invalid instrument symbol in SENTIMENT_INSTRUMENTS: {instrument}")

        if len(set(self.SENTIMENT_INSTRUMENTS)) != len(self.SENTIMENT_INSTRUMENTS):
            issues.append("SENTIMENT_INSTRUMENTS contains duplicates")

        # Validate numeric ranges
        if self.REFETCH_INTERVAL <= 0:
            issues.append(f"REFETCH_INTERVAL must be > 0, got: {self.REFETCH_INTERVAL}")

        if self.STALE_AFTER <= 0:
            issues.append(f"STALE_AFTER must be > 0, got: {self.STALE_AFTER}")

        if self.RETRY_CONFIG['max_attempts'] < 1:
            issues.append(f"MAX_RETRY_ATTEMPTS must be >= 1, got: {self.RETRY_CONFIG['max_attempts']}")

        if self.RETRY_CONFIG['base_delay'] < 0 or self.RETRY_CONFIG['max_delay'] < 0:
            issues.append("RETRY_BASE_DELAY and RETRY_MAX_DELAY must be >= 0")

        return issues


# Global config instance
config = Config()
