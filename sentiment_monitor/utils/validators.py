"""
Instrument, score and prompt validation functions
"""

import re
from typing import Optional, Tuple

# Six-letter currency pairs (EURUSD) plus short tickers (XAU, SPX500) for
# non-FX instruments
_INSTRUMENT_PATTERN = re.compile(r'^[A-Z][A-Z0-9]{2,9}$')


def validate_instrument(instrument: str) -> bool:
    """Validate instrument identifier format"""
    if not instrument or not isinstance(instrument, str):
        return False

    return bool(_INSTRUMENT_PATTERN.match(instrument.strip().upper()))


def clamp_score(value: Optional[float]) -> Optional[float]:
    """Clamp a sentiment score into [0, 100]. None stays None."""
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))


def validate_scores(bullish: float, bearish: float) -> Tuple[bool, str]:
    """
    Validate a bullish/bearish score pair.

    Args:
        bullish: Bullish score
        bearish: Bearish score

    Returns:
        (is_valid, error_message)
    """
    for name, value in (('bullish', bullish), ('bearish', bearish)):
        if not isinstance(value, (int, float)):
            return False, f"{name} score must be numeric"
        if not 0 <= value <= 100:
            return False, f"{name} score out of bounds: {value}"

    return True, "Valid"


def sanitize_for_prompt(text: str, max_length: int = 100) -> str:
    """Sanitize input text for safe use in AI prompts"""
    if text is None:
        return ""

    safe_chars = set('ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789 .-_/(),%')
    sanitized = ''.join(c for c in str(text).upper() if c in safe_chars)
    return sanitized[:max_length]
