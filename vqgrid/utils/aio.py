"""Run callbacks that may or may not be coroutines."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

MaybeAsync = Callable[[], Union[None, Awaitable[Any]]]


async def settle(fn: MaybeAsync) -> None:
    """Call `fn` and await its result when it returns an awaitable."""
    result = fn()
    if inspect.isawaitable(result):
        await result


def run_action(
    fn: MaybeAsync,
    on_done: Callable[[Optional[BaseException]], None],
) -> None:
    """Run a user action from a UI event handler.

    Synchronous actions run immediately. Coroutines are scheduled on the
    running event loop if there is one, or run to completion otherwise.
    `on_done` receives the exception raised by the action, or None.
    """
    try:
        result = fn()
    except Exception as e:
        on_done(e)
        return

    if not inspect.isawaitable(result):
        on_done(None)
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is None:
        try:
            asyncio.run(_wait(result))
        except Exception as e:
            on_done(e)
            return
        on_done(None)
        return

    future = asyncio.ensure_future(result)

    def finished(fut: "asyncio.Future[Any]") -> None:
        if fut.cancelled():
            on_done(asyncio.CancelledError())
        else:
            on_done(fut.exception())

    future.add_done_callback(finished)


async def _wait(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
