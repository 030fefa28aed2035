r"""Implement cooperative cancellation primitives for asyncio.

An ``AbortController`` owns an ``AbortSignal``. Aborting the controller
notifies every listener registered on the signal synchronously, which
lets the signal actively cancel in-flight work instead of being polled.

Example:
    ```pycon
    >>> import asyncio
    >>> from schemafetch.signal import AbortController, AbortError, run_abortable
    >>> async def main():
    ...     controller = AbortController()
    ...     asyncio.get_running_loop().call_later(0.01, controller.abort, "stop")
    ...     try:
    ...         await run_abortable(asyncio.sleep(10), controller.signal)
    ...     except AbortError as exc:
    ...         return exc.reason
    ...
    >>> asyncio.run(main())
    'stop'

    ```
"""

from __future__ import annotations

__all__ = ["AbortController", "AbortError", "AbortSignal", "abortable_sleep", "run_abortable"]

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ABORT_REASON = "aborted"


class AbortError(Exception):
    r"""Raised when an operation is cancelled through an ``AbortSignal``.

    Args:
        reason: The reason passed to ``AbortController.abort``.
    """

    def __init__(self, reason: Any = DEFAULT_ABORT_REASON) -> None:
        super().__init__(f"operation aborted ({reason})")
        self.reason = reason


class AbortSignal:
    r"""Report whether an operation was aborted and notify listeners.

    Signals are created by ``AbortController`` and should not be
    instantiated directly.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[Callable[[Any], None]] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(aborted={self._aborted}, reason={self._reason!r})"

    @property
    def aborted(self) -> bool:
        r"""``True`` once the owning controller has been aborted."""
        return self._aborted

    @property
    def reason(self) -> Any:
        r"""The abort reason, or ``None`` if the signal is not aborted."""
        return self._reason

    def add_listener(self, listener: Callable[[Any], None]) -> None:
        r"""Register a callable invoked with the reason on abort.

        Listeners added after the signal was aborted are never called,
        so callers should check ``aborted`` first.

        Args:
            listener: The callable to register.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Any], None]) -> None:
        r"""Unregister a listener. Unknown listeners are ignored.

        Args:
            listener: The callable to unregister.
        """
        if listener in self._listeners:
            self._listeners.remove(listener)

    def raise_if_aborted(self) -> None:
        r"""Raise ``AbortError`` if the signal is aborted."""
        if self._aborted:
            raise AbortError(self._reason)

    def _abort(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)


class AbortController:
    r"""Own an ``AbortSignal`` and trigger it.

    Example:
        ```pycon
        >>> from schemafetch.signal import AbortController
        >>> controller = AbortController()
        >>> controller.signal.aborted
        False
        >>> controller.abort("user")
        >>> controller.signal.aborted, controller.signal.reason
        (True, 'user')

        ```
    """

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = DEFAULT_ABORT_REASON) -> None:
        r"""Abort the signal. Calling it more than once has no effect.

        Args:
            reason: The abort reason reported to listeners.
        """
        self.signal._abort(reason)


async def run_abortable(awaitable: Awaitable[T], signal: AbortSignal) -> T:
    r"""Await ``awaitable`` and cancel it as soon as ``signal`` aborts.

    The awaitable runs in its own task, which is cancelled by a listener
    on the signal. If the signal is already aborted, the task is
    cancelled before it starts.

    Args:
        awaitable: The coroutine or future to run.
        signal: The signal that cancels it.

    Returns:
        The result of the awaitable.

    Raises:
        AbortError: If the signal aborted the awaitable.
    """
    task = asyncio.ensure_future(awaitable)

    def _cancel(reason: Any) -> None:
        logger.debug(f"Cancelling in-flight task ({reason})")
        task.cancel()

    if signal.aborted:
        task.cancel()
    signal.add_listener(_cancel)
    try:
        return await task
    except asyncio.CancelledError:
        if signal.aborted:
            raise AbortError(signal.reason) from None
        raise
    finally:
        signal.remove_listener(_cancel)


async def abortable_sleep(delay: float, signal: AbortSignal | None = None) -> None:
    r"""Sleep for ``delay`` seconds, waking up early if ``signal`` aborts.

    Args:
        delay: The sleep duration in seconds.
        signal: An optional signal interrupting the sleep.

    Raises:
        AbortError: If the signal aborted the sleep.
    """
    if signal is None:
        await asyncio.sleep(delay)
        return
    await run_abortable(asyncio.sleep(delay), signal)
