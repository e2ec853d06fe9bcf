"""
Sentiment Extractor - Per-instrument records from a free-text report

Turns the Grok report text into one SentimentRecord per tracked instrument:
- Commentary: text after the first mention of the instrument, up to the
  end of that line
- Scores: parsed from that line when Grok supplies them, otherwise
  placeholder values

Extraction never fails a cycle. A missing instrument gets placeholder
commentary and a warning in the log.
"""

import logging
import random
import re
from typing import List, Optional, Sequence, Tuple

from sentiment_monitor.core.models import PLACEHOLDER_COMMENTARY, SentimentRecord
from sentiment_monitor.utils.validators import validate_scores

# Not part of a longer number: keeps years (2025) and prices (1.0850) out
_NOT_AFTER_DIGIT = r'(?<![\d.])'
_PERCENT = r'(\d{1,3}(?:\.\d+)?)\s*%'
_BARE = r'(\d{1,3}(?:\.\d)?)(?!\.?\d)'


def _label_first(label: str):
    # "Bullish 62%", "bullish: 62", "Bullish score = 62"
    return re.compile(
        r'\b' + label + r'(?:ish)?(?:\s+score)?\s*[:=]?\s*' + _NOT_AFTER_DIGIT
        + r'(?:' + _PERCENT + r'|' + _BARE + r')',
        re.IGNORECASE
    )


_LABEL_FIRST = {
    'bullish': _label_first('bull'),
    'bearish': _label_first('bear'),
}

# "62% bullish"
_NUMBER_FIRST = {
    'bullish': re.compile(_NOT_AFTER_DIGIT + _PERCENT + r'\s*bull', re.IGNORECASE),
    'bearish': re.compile(_NOT_AFTER_DIGIT + _PERCENT + r'\s*bear', re.IGNORECASE),
}


class SentimentExtractor:
    """Best-effort extraction of sentiment records from report text"""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: Random source for placeholder scores (seed it for repeatable output)
        """
        self.rng = rng or random.Random()

    def extract(self, raw_text: str, instruments: Sequence[str]) -> List[SentimentRecord]:
        """
        Build one record per instrument, in the order given.

        Args:
            raw_text: Report text from Grok
            instruments: Ordered instrument identifiers

        Returns:
            List of SentimentRecord, same length and order as `instruments`
        """
        text = raw_text or ''
        records = []
        missing = []

        for instrument in instruments:
            commentary = self.find_commentary(text, instrument)
            if commentary is None:
                missing.append(instrument)
                commentary = PLACEHOLDER_COMMENTARY

            bullish, bearish = self.parse_scores(commentary if commentary != PLACEHOLDER_COMMENTARY else '')
            if bullish is None and bearish is not None:
                bullish = 100.0 - bearish
            elif bearish is None and bullish is not None:
                bearish = 100.0 - bullish

            estimated = bullish is None
            if not estimated:
                is_valid, reason = validate_scores(bullish, bearish)
                if not is_valid:
                    logging.warning(f"[EXTRACT] Ignoring scores for {instrument}: {reason}")
                    estimated = True

            if estimated:
                # No usable scores in the report for this pair: placeholder values only
                bullish = self.rng.uniform(0, 100)
                bearish = self.rng.uniform(0, 100)

            records.append(SentimentRecord(
                instrument=instrument,
                bullish_score=bullish,
                bearish_score=bearish,
                commentary=commentary,
                scores_estimated=estimated,
            ))

        if missing:
            logging.warning(f"[EXTRACT] No commentary found for {', '.join(missing)} - using placeholder")

        return records

    @staticmethod
    def find_commentary(text: str, instrument: str) -> Optional[str]:
        """
        Text following the first occurrence of `instrument`, up to the next line break.

        Returns:
            The excerpt, or None when the instrument is absent or nothing follows it
        """
        index = text.find(instrument)
        if index < 0:
            return None

        rest = text[index + len(instrument):]
        line = rest.split('\n', 1)[0].rstrip('\r')
        return line or None

    @staticmethod
    def parse_scores(line: str) -> Tuple[Optional[float], Optional[float]]:
        """
        Parse explicit bullish/bearish scores from one line of report text.

        A score is a percentage, or a bare number with at most one decimal
        place. Prices such as 1.0850 and years such as 2025 are not scores.

        Returns:
            (bullish, bearish) as written, or None when absent
        """
        scores = {}
        for label in ('bullish', 'bearish'):
            match = _LABEL_FIRST[label].search(line) or _NUMBER_FIRST[label].search(line)
            if match:
                number = next(group for group in match.groups() if group is not None)
                scores[label] = float(number)
            else:
                scores[label] = None

        return scores['bullish'], scores['bearish']
