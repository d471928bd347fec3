"""
OpenAI Service
Chat completions for document analysis with error classification,
rate limiting and retry with backoff.
"""

import asyncio
import logging
import time
from typing import List, Dict, Any, Optional, Tuple

import httpx
from openai import AsyncOpenAI
from openai import RateLimitError, APIError

from app.core.config import settings
from app.schemas.openai import (
    OpenAIError,
    OpenAIErrorType,
    NON_RETRYABLE_ERRORS,
)

logger = logging.getLogger(__name__)


class OpenAIService:
    """
    OpenAI chat service.

    Features:
    - Automatic retry with exponential backoff for transient failures
    - Client-side request and token accounting over a sliding minute
    - Error classification into OpenAIError types
    """

    # Rate limit constants (per minute)
    RATE_LIMITS = {
        "gpt-4o": {"rpm": 5000, "tpm": 10000000},
        "gpt-4o-mini": {"rpm": 5000, "tpm": 10000000},
        "gpt-4": {"rpm": 500, "tpm": 10000},
        "gpt-3.5-turbo": {"rpm": 5000, "tpm": 1000000},
    }

    # Default limits if model not found
    DEFAULT_RPM = 5000
    DEFAULT_TPM = 1000000

    # Retry configuration
    MAX_RETRIES = 3
    INITIAL_RETRY_DELAY = 1.0  # seconds
    MAX_RETRY_DELAY = 20.0  # seconds
    BACKOFF_MULTIPLIER = 2.0

    WINDOW_SECONDS = 60.0

    def __init__(self, api_key: Optional[str] = None, client: Optional[Any] = None):
        """
        Initialize OpenAI service.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY from settings)
            client: Pre-built async client, mainly for tests
        """
        self.api_key = api_key or settings.OPENAI_API_KEY
        if not self.api_key and client is None:
            raise ValueError("OpenAI API key is required. Set OPENAI_API_KEY in environment variables.")

        self.client = client or AsyncOpenAI(api_key=self.api_key, timeout=60.0)

        # Rate limiting tracking: model -> [(timestamp, tokens)]
        self._usage: Dict[str, List[Tuple[float, int]]] = {}
        self._rate_limit_lock = asyncio.Lock()

    def _get_rate_limits(self, model: str) -> Dict[str, int]:
        """Get rate limits for a model"""
        return self.RATE_LIMITS.get(model, {
            "rpm": self.DEFAULT_RPM,
            "tpm": self.DEFAULT_TPM
        })

    def _window(self, model: str, now: float) -> List[Tuple[float, int]]:
        entries = [
            (t, tokens) for t, tokens in self._usage.get(model, [])
            if now - t < self.WINDOW_SECONDS
        ]
        self._usage[model] = entries
        return entries

    async def _check_rate_limit(self, model: str, estimated_tokens: int = 0) -> None:
        """
        Check if we're within rate limits for the model.

        Raises:
            OpenAIError: If rate limit would be exceeded
        """
        async with self._rate_limit_lock:
            limits = self._get_rate_limits(model)
            now = time.time()
            entries = self._window(model, now)

            if len(entries) >= limits["rpm"]:
                oldest_request = min(t for t, _ in entries)
                wait_time = self.WINDOW_SECONDS - (now - oldest_request) + 1.0
                raise OpenAIError(
                    f"Rate limit exceeded for {model}. {limits['rpm']} requests per minute limit.",
                    OpenAIErrorType.RATE_LIMIT,
                    retry_after=wait_time
                )

            current_tokens = sum(tokens for _, tokens in entries)
            if current_tokens + estimated_tokens > limits["tpm"]:
                raise OpenAIError(
                    f"Token limit exceeded for {model}. {limits['tpm']} tokens per minute limit.",
                    OpenAIErrorType.TOKEN_LIMIT,
                    retry_after=self.WINDOW_SECONDS + 1.0
                )

    async def _record_request(self, model: str, tokens_used: int) -> None:
        """Record a request for rate limiting"""
        async with self._rate_limit_lock:
            self._usage.setdefault(model, []).append((time.time(), tokens_used))

    def _estimate_tokens(self, text: str) -> int:
        """Rough token estimation (4 characters per token)"""
        return len(text) // 4

    @staticmethod
    def _retry_after_from(error: Exception) -> Optional[float]:
        """Read the Retry-After header of an SDK error, if it carries one"""
        response = getattr(error, "response", None)
        if response is None:
            return None
        headers = getattr(response, "headers", None)
        if headers is None and isinstance(response, dict):
            headers = response
        if not headers:
            return None
        value = headers.get("retry-after") or headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except (ValueError, TypeError):
            return None

    def _parse_error(self, error: Exception) -> OpenAIError:
        """
        Classify an OpenAI API error.

        Args:
            error: Exception from OpenAI API

        Returns:
            OpenAIError with appropriate error type
        """
        if isinstance(error, OpenAIError):
            return error

        error_str = str(error).lower()

        if isinstance(error, RateLimitError) or "rate limit" in error_str or "429" in error_str:
            retry_after = None
            if isinstance(error, APIError) or hasattr(error, "response"):
                retry_after = self._retry_after_from(error)
            if retry_after is None:
                logger.warning(
                    f"Rate limit error without retry_after ({type(error).__name__}), "
                    f"using exponential backoff"
                )
            return OpenAIError(
                f"Rate limit exceeded: {str(error)}",
                OpenAIErrorType.RATE_LIMIT,
                retry_after=retry_after
            )

        if "token" in error_str and ("limit" in error_str or "exceeded" in error_str):
            return OpenAIError(f"Token limit exceeded: {str(error)}", OpenAIErrorType.TOKEN_LIMIT)

        if "401" in error_str or "unauthorized" in error_str or "invalid api key" in error_str:
            return OpenAIError(f"Authentication failed: {str(error)}", OpenAIErrorType.AUTHENTICATION)

        if "403" in error_str or "permission" in error_str or "forbidden" in error_str:
            return OpenAIError(f"Permission denied: {str(error)}", OpenAIErrorType.PERMISSION)

        if "400" in error_str or "invalid" in error_str:
            return OpenAIError(f"Invalid request: {str(error)}", OpenAIErrorType.INVALID_REQUEST)

        if any(code in error_str for code in ("500", "502", "503", "504")):
            return OpenAIError(f"OpenAI server error: {str(error)}", OpenAIErrorType.SERVER_ERROR)

        if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, ConnectionError)):
            return OpenAIError(f"Network error: {str(error)}", OpenAIErrorType.NETWORK)

        return OpenAIError(f"Unknown error: {str(error)}", OpenAIErrorType.UNKNOWN)

    async def _retry_with_backoff(self, func, *args, **kwargs):
        """
        Execute function with exponential backoff retry logic.

        A Retry-After value from the API wins over the computed backoff.

        Raises:
            OpenAIError: On a non-retryable error or when all retries fail
        """
        delay = self.INITIAL_RETRY_DELAY

        for attempt in range(self.MAX_RETRIES):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                parsed_error = self._parse_error(e)

                if parsed_error.error_type in NON_RETRYABLE_ERRORS:
                    raise parsed_error from e

                if attempt >= self.MAX_RETRIES - 1:
                    raise parsed_error from e

                if parsed_error.retry_after:
                    delay = min(parsed_error.retry_after, self.MAX_RETRY_DELAY)
                    logger.info(
                        f"Using retry_after from API: {delay:.2f}s "
                        f"(attempt {attempt + 1}/{self.MAX_RETRIES})"
                    )
                else:
                    logger.warning(
                        f"Attempt {attempt + 1}/{self.MAX_RETRIES} failed: {str(e)[:100]}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                await asyncio.sleep(delay)
                delay = min(delay * self.BACKOFF_MULTIPLIER, self.MAX_RETRY_DELAY)

        raise OpenAIError("Unknown error", OpenAIErrorType.UNKNOWN)

    async def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Create chat completion with error handling and rate limiting.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Chat model to use (defaults to OPENAI_MODEL)
            temperature: Sampling temperature (defaults to OPENAI_TEMPERATURE)
            max_tokens: Maximum tokens in response
            response_format: e.g. {"type": "json_object"} for JSON mode

        Returns:
            ChatCompletion object

        Raises:
            OpenAIError: If request fails after retries
        """
        if not messages:
            raise ValueError("At least one message is required")

        for msg in messages:
            if "role" not in msg or "content" not in msg:
                raise ValueError("Each message must have 'role' and 'content' fields")
            if msg["role"] not in ["system", "user", "assistant"]:
                raise ValueError(f"Invalid role: {msg['role']}")

        model = model or settings.OPENAI_MODEL
        if temperature is None:
            temperature = settings.OPENAI_TEMPERATURE

        total_text = " ".join(msg.get("content", "") for msg in messages)
        estimated_tokens = self._estimate_tokens(total_text)
        if max_tokens:
            estimated_tokens += max_tokens

        await self._check_rate_limit(model, estimated_tokens=estimated_tokens)

        request: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            request["max_tokens"] = max_tokens
        if response_format:
            request["response_format"] = response_format

        async def _create_completion():
            return await self.client.chat.completions.create(**request)

        try:
            completion = await self._retry_with_backoff(_create_completion)
        except OpenAIError as e:
            logger.error(f"Failed to create chat completion: {e.message}")
            raise

        usage = getattr(completion, "usage", None)
        tokens_used = usage.total_tokens if usage else estimated_tokens
        await self._record_request(model, tokens_used)

        logger.info(f"Chat completion created successfully (model: {model}, tokens: {tokens_used})")
        return completion

    def is_configured(self) -> bool:
        """Check if OpenAI service is properly configured"""
        return bool(self.api_key)
