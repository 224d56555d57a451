"""Push streams on asyncio: broadcast subjects and stream operators.

Every long-lived data source (telemetry, stored state, settings) is a
``Broadcast``. Each ``subscribe()`` call returns a ``Subscription``, an
async iterator with an explicit ``cancel()``. Operators are async generator
functions taking any ``AsyncIterable`` and yielding a new stream; closing
the resulting generator (``aclose()``, ``break`` or task cancellation) tears
down every upstream task it started.

Delivery within one stream is FIFO. Streams from independent sources are
only ever joined with ``combine_latest``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


_MISSING: Any = _Sentinel("MISSING")
_DONE: Any = _Sentinel("DONE")


class _Failure:
    def __init__(self, exc: BaseException):
        self.exc = exc


# ---------------------------------------------------------------------------
# Broadcast / Subscription
# ---------------------------------------------------------------------------


class Subscription(Generic[T]):
    """One subscriber's view of a ``Broadcast``."""

    def __init__(self, broadcast: "Broadcast[T]"):
        self._broadcast = broadcast
        self._queue: asyncio.Queue = asyncio.Queue()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _push(self, item: Any) -> None:
        if not self._cancelled:
            self._queue.put_nowait(item)

    def cancel(self) -> None:
        """Stop receiving values; a pending ``__anext__`` ends iteration."""
        if self._cancelled:
            return
        self._broadcast._unsubscribe(self)
        self._queue.put_nowait(_DONE)
        self._cancelled = True

    async def aclose(self) -> None:
        self.cancel()

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        try:
            item = await self._queue.get()
        except asyncio.CancelledError:
            self.cancel()
            raise
        if item is _DONE:
            self.cancel()
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self.cancel()
            raise item.exc
        return item


class Broadcast(Generic[T]):
    """Multi-subscriber push stream.

    With ``replay_latest`` every new subscriber first receives the most
    recent value (state-holder semantics).
    """

    def __init__(self, initial: Any = _MISSING, replay_latest: bool = False):
        self._subscribers: list[Subscription[T]] = []
        self._replay = replay_latest or initial is not _MISSING
        self._latest: Any = initial
        self._terminal: Any = None

    @property
    def has_value(self) -> bool:
        return self._latest is not _MISSING

    @property
    def value(self) -> T:
        if self._latest is _MISSING:
            raise LookupError("Broadcast has no value yet")
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, value: T) -> None:
        if self._terminal is not None:
            raise RuntimeError("Broadcast is closed")
        if self._replay:
            self._latest = value
        for sub in list(self._subscribers):
            sub._push(value)

    def close(self) -> None:
        """Complete the stream for every subscriber."""
        self._finish(_DONE)

    def fail(self, exc: BaseException) -> None:
        """Terminate the stream with an error for every subscriber."""
        self._finish(_Failure(exc))

    def _finish(self, terminal: Any) -> None:
        if self._terminal is not None:
            return
        self._terminal = terminal
        for sub in list(self._subscribers):
            sub._push(terminal)

    def subscribe(self) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self)
        if self._replay and self._latest is not _MISSING:
            sub._push(self._latest)
        if self._terminal is not None:
            sub._push(self._terminal)
        else:
            self._subscribers.append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription[T]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def __aiter__(self) -> Subscription[T]:
        return self.subscribe()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def close_stream(stream: Any) -> None:
    """Tear down an async iterator if it supports it."""
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def first(source: AsyncIterable[T], default: Any = _MISSING) -> T:
    """First value of *source*; *default* (or ``LookupError``) if it ends empty."""
    iterator = source.__aiter__()
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        if default is _MISSING:
            raise LookupError("Stream completed without a value") from None
        return default
    finally:
        await close_stream(iterator)


class _Conflated:
    """Single-slot mailbox: a newer value replaces an unconsumed older one."""

    def __init__(self) -> None:
        self._value: Any = _MISSING
        self._terminal: Any = None
        self._event = asyncio.Event()

    def put(self, value: Any) -> None:
        self._value = value
        self._event.set()

    def finish(self, terminal: Any = _DONE) -> None:
        self._terminal = terminal
        self._event.set()

    async def take(self) -> Any:
        while True:
            if self._value is not _MISSING:
                value, self._value = self._value, _MISSING
                if self._terminal is None:
                    self._event.clear()
                return value
            if self._terminal is not None:
                if isinstance(self._terminal, _Failure):
                    raise self._terminal.exc
                return _DONE
            await self._event.wait()


def _pump_conflated(source: AsyncIterable[Any], slot: _Conflated) -> asyncio.Task:
    async def pump() -> None:
        try:
            async for value in source:
                slot.put(value)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            slot.finish(_Failure(exc))
        else:
            slot.finish()

    return asyncio.create_task(pump())


async def _cancel_tasks(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


async def concatenate(*sources: AsyncIterable[T]) -> AsyncIterator[T]:
    """All values of each source in turn."""
    for source in sources:
        async for value in source:
            yield value


async def start_with(source: AsyncIterable[T], value: T) -> AsyncIterator[T]:
    """*value*, then everything from *source*."""
    yield value
    async for item in source:
        yield item


async def combine_latest(*sources: AsyncIterable[Any]) -> AsyncIterator[tuple]:
    """Tuple of the latest value of every source, once each has produced one.

    Emits again whenever any source produces a value. Completes when every
    source has completed; fails as soon as one source fails.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump(index: int, source: AsyncIterable[Any]) -> None:
        try:
            async for value in source:
                await queue.put((index, value))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await queue.put((index, _Failure(exc)))
        else:
            await queue.put((index, _DONE))

    tasks = [asyncio.create_task(pump(i, s)) for i, s in enumerate(sources)]
    latest: list[Any] = [_MISSING] * len(sources)
    completed = 0
    try:
        while completed < len(sources):
            index, value = await queue.get()
            if value is _DONE:
                completed += 1
                continue
            if isinstance(value, _Failure):
                raise value.exc
            latest[index] = value
            if all(v is not _MISSING for v in latest):
                yield tuple(latest)
    finally:
        await _cancel_tasks(tasks)


async def switch_map(
    source: AsyncIterable[T], mapper: Callable[[T], AsyncIterable[K]]
) -> AsyncIterator[K]:
    """Values of ``mapper(value)`` for the latest *source* value only.

    A new source value tears down the previous inner stream. Completes once
    the source and the current inner stream have both completed.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump(tag: Any, stream: AsyncIterable[Any]) -> None:
        try:
            async for value in stream:
                await queue.put((tag, value))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await queue.put((tag, _Failure(exc)))
        else:
            await queue.put((tag, _DONE))

    outer = asyncio.create_task(pump(None, source))
    inner: asyncio.Task | None = None
    generation = 0
    source_done = False
    try:
        while True:
            tag, value = await queue.get()
            if isinstance(value, _Failure) and (tag is None or tag == generation):
                raise value.exc
            if tag is None:
                if value is _DONE:
                    source_done = True
                    if inner is None:
                        return
                    continue
                if inner is not None:
                    await _cancel_tasks([inner])
                generation += 1
                inner = asyncio.create_task(pump(generation, mapper(value)))
            elif tag == generation:
                if value is _DONE:
                    inner = None
                    if source_done:
                        return
                    continue
                yield value
    finally:
        await _cancel_tasks([t for t in (outer, inner) if t is not None])


async def distinct_until_changed(
    source: AsyncIterable[T],
    key: Callable[[T], Any] | None = None,
    equal: Callable[[T, T], bool] | None = None,
) -> AsyncIterator[T]:
    """Drop values equal to the previously emitted one."""
    previous: Any = _MISSING
    async for value in source:
        if previous is not _MISSING:
            if equal is not None:
                same = equal(previous, value)
            elif key is not None:
                same = key(previous) == key(value)
            else:
                same = previous == value
            if same:
                continue
        previous = value
        yield value


async def drop_nulls_after_value(source: AsyncIterable[T | None]) -> AsyncIterator[T | None]:
    """Forward ``None`` only until the first non-null value has been seen.

    Repeated leading ``None`` values are forwarded once.
    """
    had_value = False
    sent_null = False
    async for value in source:
        if value is not None:
            had_value = True
            yield value
        elif not had_value and not sent_null:
            sent_null = True
            yield value


async def throttle(source: AsyncIterable[T], interval: float) -> AsyncIterator[T]:
    """Emit a value, then wait *interval* seconds, keeping only the newest value meanwhile."""
    slot = _Conflated()
    task = _pump_conflated(source, slot)
    try:
        while True:
            value = await slot.take()
            if value is _DONE:
                return
            yield value
            await asyncio.sleep(interval)
    finally:
        await _cancel_tasks([task])


async def debounce(source: AsyncIterable[T], delay: float) -> AsyncIterator[T]:
    """Emit a value only once *delay* seconds pass without a newer one.

    A pending value is flushed when the source completes.
    """
    slot = _Conflated()
    task = _pump_conflated(source, slot)
    pending: Any = _MISSING
    try:
        while True:
            if pending is _MISSING:
                item = await slot.take()
            else:
                try:
                    item = await asyncio.wait_for(slot.take(), delay)
                except asyncio.TimeoutError:
                    value, pending = pending, _MISSING
                    yield value
                    continue
            if item is _DONE:
                if pending is not _MISSING:
                    yield pending
                return
            pending = item
    finally:
        await _cancel_tasks([task])


async def repeat_latest(source: AsyncIterable[T], interval: float) -> AsyncIterator[T]:
    """Emit each value, then re-emit it every *interval* seconds until a newer one arrives."""
    slot = _Conflated()
    task = _pump_conflated(source, slot)
    try:
        value = await slot.take()
        if value is _DONE:
            return
        while True:
            yield value
            try:
                item = await asyncio.wait_for(slot.take(), interval)
            except asyncio.TimeoutError:
                continue
            if item is _DONE:
                break
            value = item
        while True:
            await asyncio.sleep(interval)
            yield value
    finally:
        await _cancel_tasks([task])
