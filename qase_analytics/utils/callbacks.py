"""
Helpers for caller-supplied callbacks that may be sync or async
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

MaybeAsyncCallback = Callable[..., Union[None, Awaitable[None]]]


async def invoke_callback(callback: Optional[MaybeAsyncCallback], *args: Any) -> None:
    """Call ``callback`` with ``args`` and await the result when it is awaitable."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
