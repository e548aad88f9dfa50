"""
进度上报工具

长时间操作接受一个可选的进度接收者：普通可调用对象，或 ProgressStream。
接收者可能从未被调用（例如长度未知），100 / COMPLETE 是唯一可靠的结束信号。
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

ProgressSink = Callable[[Any], None]

_CLOSED = object()


def report(sink: Optional[ProgressSink], value: Any) -> None:
    """向接收者上报（接收者为 None 时忽略）"""
    if sink is not None:
        sink(value)


def scaled(sink: Optional[ProgressSink], start: int, end: int) -> Optional[ProgressSink]:
    """把 0-100 的子进度映射到 [start, end] 区间"""
    if sink is None:
        return None

    def _report(percent: int) -> None:
        sink(start + int(percent * (end - start) / 100))

    return _report


class ProgressStream(Generic[T]):
    """
    进度事件通道

    作为接收者传入操作，调用方通过 ``async for`` 消费事件；
    绑定的任务结束后通道自动关闭。
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def __call__(self, event: T) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def attach(self, task: "asyncio.Future") -> "asyncio.Future":
        """任务结束时关闭通道"""
        task.add_done_callback(lambda _: self.close())
        return task

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item
