"""
TrailerDataClient: HTTP client abstraction for upstream trailer providers.

This module provides a unified interface for making HTTP requests to the
trailer providers (KinoCheck, TMDB) with bounded retries, per-request
timeouts, and a standardized error taxonomy.

Key Features:
- Pure error classification (fatal vs. retryable)
- Bounded retries with exponential backoff
- Configurable timeouts per request
- Comprehensive logging of retry attempts and failures

Error Taxonomy:
- AuthError: Invalid or expired credential (401, 403) - fatal
- NotFoundError: Resource absent upstream (404) - fatal for that provider
- RateLimitError: Rate limiting (429) - retryable
- RequestTimeoutError: Request timed out - retryable
- UpstreamError: Server-side failure (5xx) - retryable
- NetworkError: Transport-level or unclassified failure - retryable
"""

import os
import time
import logging
import requests
from dataclasses import dataclass
from typing import Dict, Any, Optional, Callable
from enum import Enum

from trailerscout.metrics import track_http_retry

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Classification of provider failures."""
    AUTH = "auth"  # Invalid credential (401, 403)
    NOT_FOUND = "not_found"  # Resource absent upstream (404, empty search)
    RATE_LIMIT = "rate_limit"  # Rate limiting (429)
    TIMEOUT = "timeout"  # Request timed out
    UPSTREAM = "upstream"  # Server error (5xx) or unusable payload
    NETWORK = "network"  # Anything else


RETRYABLE_KINDS = frozenset({
    ErrorKind.RATE_LIMIT,
    ErrorKind.TIMEOUT,
    ErrorKind.UPSTREAM,
    ErrorKind.NETWORK,
})


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying a raw provider failure."""
    kind: ErrorKind
    retryable: bool

    @classmethod
    def of(cls, kind: ErrorKind) -> "ErrorClassification":
        return cls(kind=kind, retryable=kind in RETRYABLE_KINDS)


class APIError(Exception):
    """Base exception for all provider API errors."""

    def __init__(self, message: str, error_kind: ErrorKind, status_code: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        self.message = message
        self.error_kind = error_kind
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.error_kind in RETRYABLE_KINDS


class AuthError(APIError):
    """Authentication or authorization error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, ErrorKind.AUTH, status_code)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, ErrorKind.NOT_FOUND, status_code)


class RateLimitError(APIError):
    """Rate limiting or quota exceeded error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, ErrorKind.RATE_LIMIT, status_code)


class RequestTimeoutError(APIError):
    """The request did not complete within its timeout."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorKind.TIMEOUT, None, original_error)


class UpstreamError(APIError):
    """Server-side failure reported by the provider."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, ErrorKind.UPSTREAM, status_code, original_error)


class NetworkError(APIError):
    """Transport-level failure (DNS, connection reset, unexpected errors)."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, ErrorKind.NETWORK, status_code, original_error)


_ERROR_CLASSES = {
    ErrorKind.AUTH: AuthError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.RATE_LIMIT: RateLimitError,
}


def classify_error(response: Optional[requests.Response] = None,
                   exception: Optional[BaseException] = None) -> ErrorClassification:
    """
    Classify a failure based on HTTP status code or exception type.

    Deterministic and side-effect free.

    Args:
        response: HTTP response object (if available)
        exception: Exception that occurred (if available)

    Returns:
        ErrorClassification with kind and retryable flag
    """
    if response is not None:
        status = response.status_code

        if status in (401, 403):
            return ErrorClassification.of(ErrorKind.AUTH)
        elif status == 404:
            return ErrorClassification.of(ErrorKind.NOT_FOUND)
        elif status == 429:
            return ErrorClassification.of(ErrorKind.RATE_LIMIT)
        elif status == 408:
            return ErrorClassification.of(ErrorKind.TIMEOUT)
        elif 500 <= status < 600:
            return ErrorClassification.of(ErrorKind.UPSTREAM)

    if exception is not None:
        if isinstance(exception, APIError):
            return ErrorClassification.of(exception.error_kind)
        if isinstance(exception, (requests.exceptions.Timeout, TimeoutError)):
            return ErrorClassification.of(ErrorKind.TIMEOUT)

    return ErrorClassification.of(ErrorKind.NETWORK)


class BackoffPolicy:
    """
    Retry eligibility and delay computation for one provider call.

    Attempts are 0-indexed: with ``max_attempts=3`` the call is made at
    attempts 0, 1 and 2, and never more.
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0,
                 max_delay: Optional[float] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

    def should_retry(self, attempt: int, classification: ErrorClassification) -> bool:
        if not classification.retryable:
            return False
        return attempt < self.max_attempts - 1

    def delay_for(self, attempt: int) -> float:
        # 1x, 2x, 4x ... capped by the request timeout budget
        delay = self.base_delay * (2 ** attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(max_attempts={self.max_attempts}, "
            f"base_delay={self.base_delay}, max_delay={self.max_delay})"
        )


class TrailerDataClient:
    """
    HTTP client for trailer provider APIs with retry logic and error handling.

    Configuration via environment variables:
    - TRAILER_REQUEST_TIMEOUT: Default timeout in seconds (default: 10.0)
    - TRAILER_MAX_ATTEMPTS: Attempts per request including the first (default: 3)
    - TRAILER_BACKOFF_BASE: Base delay for exponential backoff in seconds (default: 1.0)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the TrailerDataClient.

        Args:
            timeout: Request timeout in seconds (default: 10.0 or from env)
            max_attempts: Attempts per request (default: 3 or from env)
            backoff_base: Base delay for exponential backoff (default: 1.0 or from env)
            sleep: Callable used to wait between attempts
            session: Optional pre-built requests session
        """
        self.timeout = timeout or float(os.getenv("TRAILER_REQUEST_TIMEOUT", "10.0"))
        self.max_attempts = max_attempts or int(os.getenv("TRAILER_MAX_ATTEMPTS", "3"))
        self.backoff_base = (
            backoff_base if backoff_base is not None
            else float(os.getenv("TRAILER_BACKOFF_BASE", "1.0"))
        )
        self.backoff = BackoffPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.backoff_base,
            max_delay=self.timeout
        )
        self._sleep = sleep

        # Session for connection pooling
        self.session = session or requests.Session()

        logger.info(
            f"TrailerDataClient initialized: timeout={self.timeout}s, "
            f"max_attempts={self.max_attempts}, backoff_base={self.backoff_base}s"
        )

    def _raise_classified_error(self, kind: ErrorKind, message: str,
                                status_code: Optional[int] = None,
                                original_error: Optional[Exception] = None):
        """Raise the exception type matching an error kind."""
        if kind in _ERROR_CLASSES:
            raise _ERROR_CLASSES[kind](message, status_code)
        elif kind == ErrorKind.TIMEOUT:
            raise RequestTimeoutError(message, original_error)
        elif kind == ErrorKind.UPSTREAM:
            raise UpstreamError(message, status_code, original_error)
        else:
            raise NetworkError(message, status_code, original_error)

    def _wait_before_retry(self, log_context: str, api_name: str, attempt: int,
                           classification: ErrorClassification) -> None:
        delay = self.backoff.delay_for(attempt)
        logger.info(
            f"{log_context} Retrying after {delay}s "
            f"(attempt {attempt + 1}/{self.max_attempts}, error_kind={classification.kind.value})"
        )
        track_http_retry(api_name, classification.kind.value)
        self._sleep(delay)

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        api_name: str = "API"
    ) -> requests.Response:
        """
        Make a GET request with retry logic and error handling.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers
            timeout: Override default timeout for this request
            api_name: Name of the API for logging (e.g., "KinoCheck", "TMDB")

        Returns:
            Response object if successful

        Raises:
            AuthError: Credential rejected
            NotFoundError: Resource not found
            RateLimitError: Rate limit exceeded after retries
            RequestTimeoutError: Timed out after retries
            UpstreamError: Server failure after retries
            NetworkError: Transport failure after retries
        """
        request_timeout = timeout or self.timeout
        log_context = f"[{api_name}]"
        attempt = 0

        while True:
            logger.debug(
                f"{log_context} Request attempt {attempt + 1}/{self.max_attempts}: "
                f"GET {url} (timeout={request_timeout}s)"
            )
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=request_timeout
                )
            except requests.exceptions.RequestException as e:
                classification = classify_error(None, e)
                logger.warning(
                    f"{log_context} Request exception: {type(e).__name__}: {str(e)}"
                )
                if self.backoff.should_retry(attempt, classification):
                    self._wait_before_retry(log_context, api_name, attempt, classification)
                    attempt += 1
                    continue

                error_msg = (
                    f"{api_name} request failed after {attempt + 1} attempt(s): "
                    f"{type(e).__name__}: {str(e)}"
                )
                logger.error(f"{log_context} {error_msg}")
                self._raise_classified_error(classification.kind, error_msg, None, e)

            if response.ok:
                if attempt > 0:
                    logger.info(
                        f"{log_context} Request succeeded after {attempt + 1} attempt(s)"
                    )
                return response

            classification = classify_error(response, None)
            logger.warning(
                f"{log_context} Request failed with status {response.status_code}: "
                f"{response.text[:200]}"
            )
            if self.backoff.should_retry(attempt, classification):
                self._wait_before_retry(log_context, api_name, attempt, classification)
                attempt += 1
                continue

            error_msg = (
                f"{api_name} request failed with status {response.status_code} "
                f"after {attempt + 1} attempt(s)"
            )
            self._raise_classified_error(classification.kind, error_msg, response.status_code)

    def get_json(self, url: str, **kwargs) -> Any:
        """GET a URL and decode the JSON body; undecodable bodies are upstream failures."""
        api_name = kwargs.get("api_name", "API")
        response = self.get(url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{api_name} returned an invalid JSON body", response.status_code, e
            )

    def close(self):
        """Close the underlying session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
