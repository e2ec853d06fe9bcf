"""
Grok Report Fetcher - Forex Sentiment Report via XAI Grok API

Sends one chat-completions request asking Grok for a sentiment report on the
tracked currency pairs and returns the free-text answer.

A single call is a single attempt: no retries, no caching. Failures are
raised as classified errors so the polling cache can decide what to do.
"""

import logging
import requests
from typing import List, Optional, Sequence

from sentiment_monitor.core.errors import (
    FatalFetchError,
    RateLimitedError,
    TransientFetchError,
)
from sentiment_monitor.utils.validators import sanitize_for_prompt

SYSTEM_PROMPT = (
    "You are a forex market sentiment analyzer. "
    "Provide detailed sentiment analysis for major currency pairs."
)

# Status codes that retrying cannot fix (bad request, credentials, model)
FATAL_STATUS_CODES = (400, 401, 403, 404)

grok_logger = logging.getLogger('grok')


class GrokReportFetcher:
    """
    Fetches a free-text market sentiment report from the XAI Grok API.
    """

    def __init__(self, api_key: Optional[str], instruments: Sequence[str],
                 base_url: str = 'https://api.x.ai/v1/chat/completions',
                 model: str = 'grok-beta', timeout: float = 60,
                 max_tokens: int = 1500, temperature: float = 0.3,
                 session: Optional[requests.Session] = None):
        """
        Initialize Grok report fetcher

        Args:
            api_key: XAI API key
            instruments: Ordered instrument identifiers to cover
            base_url: XAI chat completions endpoint
            model: Grok model name
            timeout: Request timeout in seconds
            session: Optional requests session (defaults to module-level requests)
        """
        self.api_key = api_key
        self.instruments: List[str] = list(instruments)
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.session = session

    @classmethod
    def from_config(cls, cfg) -> 'GrokReportFetcher':
        """Create a fetcher from a Config instance"""
        return cls(
            api_key=cfg.XAI_API_KEY,
            instruments=cfg.SENTIMENT_INSTRUMENTS,
            base_url=cfg.XAI_BASE_URL,
            model=cfg.GROK_MODEL,
            timeout=cfg.GROK_TIMEOUT,
            max_tokens=cfg.GROK_MAX_TOKENS,
            temperature=cfg.GROK_TEMPERATURE,
        )

    def build_prompt(self) -> str:
        """Build the user prompt for the configured instruments"""
        pairs = [sanitize_for_prompt(i, max_length=12) for i in self.instruments]
        if len(pairs) > 1:
            pair_list = f"{', '.join(pairs[:-1])}, and {pairs[-1]}"
        else:
            pair_list = pairs[0] if pairs else ''

        return f"""Analyze current market sentiment for {pair_list}. Include bullish/bearish scores and brief analysis.

Format requirements:
- Write exactly one line per pair, starting with the pair symbol
- Use the form: PAIR: Bullish NN% / Bearish NN% - brief analysis
- Scores are integers from 0 to 100
- Do not use markdown tables or code blocks"""

    def fetch(self) -> str:
        """
        Request one sentiment report.

        Returns:
            Raw report text

        Raises:
            RateLimitedError: HTTP 429 from upstream
            FatalFetchError: missing API key or rejected request/credentials
            TransientFetchError: network, timeout, server or malformed response
        """
        if not self.api_key:
            raise FatalFetchError("XAI_API_KEY is not configured")

        if not self.instruments:
            raise FatalFetchError("No instruments configured for sentiment report")

        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json'
        }

        prompt = self.build_prompt()
        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': prompt},
            ],
            'max_tokens': self.max_tokens,
            'temperature': self.temperature
        }

        grok_logger.info("=== SENTIMENT REPORT PROMPT ===")
        grok_logger.info(f"Instruments: {self.instruments}")
        grok_logger.info(f"Prompt:\n{prompt}")
        grok_logger.info(f"Model: {self.model} | Max Tokens: {self.max_tokens} | Temperature: {self.temperature}")

        poster = self.session.post if self.session is not None else requests.post

        try:
            response = poster(
                self.base_url,
                json=payload,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logging.warning(f"[GROK] Sentiment request timed out after {self.timeout}s: {e}")
            raise TransientFetchError(f"Request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logging.warning(f"[GROK] Sentiment request failed: {e}")
            raise TransientFetchError(f"Request failed: {e}") from e

        grok_logger.info(f"Status Code: {response.status_code}")

        if response.status_code == 200:
            content = self._extract_content(response)
            grok_logger.info(f"Raw response:\n{content}")
            logging.info(f"[GROK] Sentiment report received ({len(content)} chars)")
            return content

        body = (response.text or '')[:200]
        grok_logger.info(f"Error Response: {body}")

        if response.status_code == 429:
            logging.warning("[GROK] Rate limited by Grok API")
            raise RateLimitedError("Grok API rate limit exceeded", status_code=429)

        if response.status_code in FATAL_STATUS_CODES:
            logging.error(f"[GROK] Request rejected {response.status_code}: {body}")
            raise FatalFetchError(f"Request rejected: {body}", status_code=response.status_code)

        logging.warning(f"[GROK] API error {response.status_code}: {body}")
        raise TransientFetchError(f"API error: {body}", status_code=response.status_code)

    def _extract_content(self, response) -> str:
        """
        Pull the assistant message text out of a chat-completions body

        Raises:
            TransientFetchError: body is not JSON or carries no text
        """
        try:
            result = response.json()
        except ValueError as e:
            raise TransientFetchError(f"Response is not valid JSON: {e}", status_code=200) from e

        choices = result.get('choices') if isinstance(result, dict) else None
        if not choices:
            raise TransientFetchError("Response has no choices", status_code=200)

        content = (choices[0].get('message') or {}).get('content')
        if not content or not content.strip():
            raise TransientFetchError("Response content is empty", status_code=200)

        return content
