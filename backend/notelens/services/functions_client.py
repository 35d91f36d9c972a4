"""
NoteLens Backend — Callable Functions Client
==============================================

What:  Transport for the managed platform's remote callable functions.
How:   POST {functions_url}/{name} with body {"data": payload}; the platform
       answers {"result": ...} on success or {"error": {"message", "status"}}.
Who:   Used by VisionService and LanguageService for every AI operation.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter, for transport
       faults only (connect errors, timeouts). Remote errors are not retried.
    2. Circuit breaker in front of the functions endpoint: after N
       consecutive transport/5xx failures, calls fail fast for M seconds.
    The adapters above this layer never retry.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from notelens.config import Settings, settings as default_settings
from notelens.exceptions import (
    CircuitBreakerOpenError,
    InvocationError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker for the callable functions endpoint.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Calls pass through until one of them records a result
            → First success: transition to CLOSED (reset failure_count)
            → First failure: transition back to OPEN (reset timer)

    Not thread-safe; one event loop per process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and the recovery
            timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        """Record a successful call. Resets the circuit breaker to CLOSED."""
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed call. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Callable Functions Client
# ══════════════════════════════════════════════════════════════════════════

class CallableFunctionsClient:
    """
    Invokes remote callable functions by name.

    Error Handling Chain:
        transport fault → tenacity retries (retry_max_attempts, backoff)
        → all retries fail → record circuit breaker failure → InvocationError
        5xx response → record circuit breaker failure → InvocationError
        error body / 4xx → InvocationError (platform reachable; breaker untouched)
        non-JSON or missing result → MalformedResponseError
    """

    def __init__(self, http: httpx.AsyncClient, config: Optional[Settings] = None):
        self.http = http
        self.settings = config or default_settings
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=self.settings.cb_failure_threshold,
            recovery_timeout=self.settings.cb_recovery_timeout,
        )

    def function_url(self, name: str) -> str:
        return f"{self.settings.functions_url}/{name}"

    async def call(
        self,
        name: str,
        data: Dict[str, Any],
        id_token: Optional[str] = None,
    ) -> Any:
        """
        Invoke a remote function and return its `result` payload.

        Args:
            name: Remote function name (e.g. "classifyImage")
            data: JSON-serializable request payload
            id_token: Caller's ID token; sent as a bearer token when present

        Raises:
            CircuitBreakerOpenError: too many recent transport failures
            InvocationError: transport exhausted retries, or remote error
            MalformedResponseError: body was not the expected envelope
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        headers = {"Content-Type": "application/json"}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"

        logger.info("[%s] Calling remote function %s", request_id, name)
        try:
            response = await self._post_with_retry(
                self.function_url(name), {"data": data}, headers, request_id
            )
        except (RetryError, httpx.TransportError) as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Remote function %s unreachable: %s", request_id, name, str(e))
            raise InvocationError(
                message=f"Remote function '{name}' is unreachable. Please try again later.",
                function=name,
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        if response.status_code >= 500:
            self.circuit_breaker.record_failure()
        else:
            self.circuit_breaker.record_success()

        return self._unwrap(name, response, request_id)

    def _retrying(self) -> AsyncRetrying:
        """Retry policy for one call, built from this client's settings."""
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.settings.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.retry_min_wait,
                max=self.settings.retry_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _post_with_retry(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Dict[str, str],
        request_id: str,
    ) -> httpx.Response:
        async for attempt in self._retrying():
            with attempt:
                return await self._post(url, body, headers, request_id)

    async def _post(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Dict[str, str],
        request_id: str,
    ) -> httpx.Response:
        start_time = time.time()
        try:
            response = await self.http.post(
                url, json=body, headers=headers, timeout=self.settings.http_timeout
            )
        except httpx.TransportError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Transport error after %.0fms: %s", request_id, duration_ms, str(e)
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] Remote function answered %d in %.0fms",
            request_id,
            response.status_code,
            duration_ms,
        )
        return response

    def _unwrap(self, name: str, response: httpx.Response, request_id: str) -> Any:
        """Extract `result` from the callable envelope or raise the remote error."""
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                message=f"Remote function '{name}' returned a non-JSON response",
                function=name,
                context={"request_id": request_id, "status": response.status_code},
            ) from e

        if not isinstance(body, dict):
            raise MalformedResponseError(function=name, context={"request_id": request_id})

        error = body.get("error")
        if error is not None or response.status_code >= 400:
            error = error if isinstance(error, dict) else {}
            message = error.get("message") or f"Remote function '{name}' failed"
            logger.warning(
                "[%s] Remote function %s returned error %s: %s",
                request_id,
                name,
                error.get("status", response.status_code),
                message,
            )
            raise InvocationError(
                message=message,
                function=name,
                context={
                    "request_id": request_id,
                    "status": error.get("status"),
                    "http_status": response.status_code,
                },
            )

        if "result" in body:
            return body["result"]
        if "data" in body:
            return body["data"]
        raise MalformedResponseError(
            message=f"Remote function '{name}' returned no result",
            function=name,
            context={"request_id": request_id},
        )

    async def health_check(self) -> bool:
        """True unless the circuit breaker is currently open."""
        return self.circuit_breaker.state != CircuitBreaker.OPEN
