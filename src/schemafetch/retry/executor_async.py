r"""Asynchronous executor for validated HTTP requests.

This module provides the AsyncFetchExecutor class that runs the attempt
loop of ``fetch``: per-attempt deadline, external cancellation, retry
with backoff, response interpretation and schema validation.
"""

from __future__ import annotations

__all__ = ["AsyncFetchExecutor"]

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, NoReturn

from schemafetch.core.config import DEFAULT_TIMEOUT, TIMEOUT_REASON
from schemafetch.core.http_logic import decode_payload, parse_json_or_text, receive
from schemafetch.exceptions import ErrorKind, FetchError
from schemafetch.retry.config import CallbackConfig
from schemafetch.retry.decider import RetryDecider
from schemafetch.retry.manager import CallbackManager
from schemafetch.schema import validate_value
from schemafetch.signal import AbortController, AbortError, abortable_sleep, run_abortable
from schemafetch.utils.structured_logging import log_structured

if TYPE_CHECKING:
    import httpx

    from schemafetch.retry.config import RetryPolicy
    from schemafetch.schema import Schema
    from schemafetch.signal import AbortSignal

logger: logging.Logger = logging.getLogger(__name__)


class AsyncFetchExecutor:
    """Executes validated HTTP requests with timeout and retry logic.

    The executor orchestrates the following components:
    - RetryPolicy: Number of attempts and delay between them
    - RetryDecider: Determines whether a failure is retried and maps it
      to ``FetchError`` otherwise
    - CallbackManager: Invokes user-defined callbacks at lifecycle events

    Each attempt owns an ``AbortController``. A timer aborts it once
    ``timeout`` seconds elapsed, and the external signal (if any) aborts
    it as soon as the caller cancels. Aborting the controller cancels the
    in-flight network call. The timer and the link to the external
    signal are released on every exit path of the attempt.

    Args:
        policy: The retry policy.
        callback_config: Optional lifecycle callbacks.
        timeout: Deadline in seconds for each attempt.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from schemafetch.retry import AsyncFetchExecutor, RetryPolicy
        >>> from schemafetch.schema import as_schema
        >>> async def main():
        ...     executor = AsyncFetchExecutor(RetryPolicy(attempts=2, delay=0.5))
        ...     async with httpx.AsyncClient() as client:
        ...         request = client.build_request("GET", "https://api.example.com/users/1")
        ...         return await executor.execute(client, request, as_schema(dict))
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        policy: RetryPolicy,
        callback_config: CallbackConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.policy = policy
        self.timeout = timeout
        self.decider: RetryDecider = RetryDecider()
        self.callbacks: CallbackManager = CallbackManager(callback_config or CallbackConfig())

    async def execute(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        schema: Schema[Any],
        signal: AbortSignal | None = None,
    ) -> Any:
        """Execute the request until it succeeds or fails for good.

        Args:
            client: The client used to send the request.
            request: The request, sent unchanged on every attempt.
            schema: The schema validating the response payload.
            signal: Optional external cancellation signal.

        Returns:
            The validated response payload.

        Raises:
            FetchError: If the request was aborted, timed out, failed,
                or returned a payload rejected by the schema.
            TypeError: If ``schema`` does not return a ``ValidationResult``.
        """
        url = str(request.url)
        method = request.method
        attempts = self.policy.attempts
        start_time = time.time()
        attempt = 1

        # Exits through return, or _fail once the decider refuses a retry
        while True:
            self.callbacks.on_request(url, method, attempt, attempts)
            logger.debug(f"{method} request to {url}: attempt {attempt}/{attempts + 1}")
            try:
                data, response = await self._attempt(client, request, signal)
            except Exception as exc:  # noqa: BLE001
                if signal is not None and signal.aborted:
                    self._fail(self._abort_error(url, method), attempt, start_time, cause=exc)

                should_retry, reason = self.decider.should_retry(exc, attempt, attempts)
                if not should_retry:
                    logger.debug(f"{method} request to {url}: not retrying ({reason})")
                    self._fail(
                        self.decider.classify(exc, url=url, method=method),
                        attempt,
                        start_time,
                        cause=exc,
                    )

                wait_time = self.policy.compute_delay(attempt)
                logger.debug(f"{method} request to {url}: will retry in {wait_time:.2f}s ({reason})")
                self.callbacks.on_retry(url, method, attempt, attempts, wait_time, exc)
                try:
                    await abortable_sleep(wait_time, signal)
                except AbortError as abort_exc:
                    self._fail(self._abort_error(url, method), attempt, start_time, cause=abort_exc)
                attempt += 1
                continue

            # Validated outside the try block so schema errors reach the caller
            result = await validate_value(schema, data)
            if not result.success:
                error = FetchError(
                    "Validation error",
                    kind=ErrorKind.VALIDATION,
                    url=url,
                    method=method,
                    status_code=response.status_code,
                    status_text=response.reason_phrase,
                    response=response,
                    issues=result.issues,
                    data=data,
                )
                self._fail(error, attempt, start_time, cause=error)
            value = result.value

            self.callbacks.on_success(url, method, attempt, attempts, response, value, start_time)
            log_structured(
                logger,
                logging.DEBUG,
                f"{method} request to {url} succeeded",
                url=url,
                method=method,
                attempt=attempt,
                status_code=response.status_code,
                total_time=time.time() - start_time,
            )
            return value

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        signal: AbortSignal | None,
    ) -> tuple[Any, httpx.Response]:
        url = str(request.url)
        controller = AbortController()
        timer = asyncio.get_running_loop().call_later(self.timeout, controller.abort, TIMEOUT_REASON)
        if signal is not None:
            if signal.aborted:
                controller.abort(signal.reason)
            else:
                signal.add_listener(controller.abort)
        try:
            response, body_read = await run_abortable(receive(client, request), controller.signal)
        finally:
            timer.cancel()
            if signal is not None:
                signal.remove_listener(controller.abort)

        if not response.is_success:
            raise FetchError(
                f"Request failed with status {response.status_code}",
                kind=ErrorKind.NETWORK,
                url=url,
                method=request.method,
                status_code=response.status_code,
                status_text=response.reason_phrase,
                response=response,
                data=parse_json_or_text(response.text) if body_read else None,
            )
        return decode_payload(response), response

    @staticmethod
    def _abort_error(url: str, method: str) -> FetchError:
        return FetchError("Request aborted", kind=ErrorKind.ABORT, url=url, method=method)

    def _fail(
        self, error: FetchError, attempt: int, start_time: float, cause: Exception
    ) -> NoReturn:
        self.callbacks.on_failure(
            str(error.url), str(error.method), attempt, self.policy.attempts, error, start_time
        )
        log_structured(
            logger,
            logging.DEBUG,
            f"{error.method} request to {error.url} failed: {error.message}",
            url=error.url,
            method=error.method,
            attempt=attempt,
            kind=error.kind.value,
            status_code=error.status_code,
        )
        if error is cause:
            raise error
        raise error from cause
