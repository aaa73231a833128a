"""Hook variants: the extension points packages declare and subscribe to.

A hook keeps an ordered list of taps (subscriptions). How the taps run
depends on the variant:

* ``Sync``: every tap runs in order, nothing is returned.
* ``SyncBail``: stops at the first tap returning something other than ``None``.
* ``SyncWaterfall``: threads its first argument through every tap.
* ``SyncLoop``: restarts from the first tap while any tap returns non-``None``.
* ``AsyncParallel`` / ``AsyncParallelBail``: taps run concurrently.
* ``AsyncSeries`` / ``AsyncSeriesBail`` / ``AsyncSeriesWaterfall``: taps run
  one at a time in order.

Async hooks accept three tap styles: ``tap`` (plain function), ``tap_async``
(function receiving a node-style ``callback(err, result)`` as its last
argument) and ``tap_promise`` (function returning an awaitable).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from types import SimpleNamespace
from typing import Any, ClassVar, Literal

logger = logging.getLogger(__name__)

TapType = Literal["sync", "async", "promise"]
TapOptions = str | Mapping[str, Any]


@dataclass
class Tap:
    """A single subscription to a hook."""

    name: str
    fn: Callable[..., Any]
    type: TapType = "sync"
    file: str = ""
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class HookInterceptor:
    """Meta-interceptor observing activity on a hook. Meant for logging and debugging."""

    register: Callable[[Tap], Tap | None] | None = None
    call: Callable[..., None] | None = None
    tap: Callable[[Tap], None] | None = None
    loop: Callable[..., None] | None = None
    result: Callable[[Any], None] | None = None
    error: Callable[[BaseException], None] | None = None
    done: Callable[[], None] | None = None

    @classmethod
    def coerce(cls, value: Any) -> HookInterceptor:
        if isinstance(value, HookInterceptor):
            return value
        names = {f.name for f in fields(cls)}
        if isinstance(value, Mapping):
            unknown = set(value) - names
            if unknown:
                msg = f"Unknown interceptor keys: {sorted(unknown)}"
                raise ValueError(msg)
            return cls(**value)
        return cls(**{name: getattr(value, name, None) for name in names})


class Hook:
    """Behavior shared by every hook variant."""

    hook_type: ClassVar[str] = "<unknown>"

    def __init__(self, args: Sequence[str] | str = (), name: str | None = None) -> None:
        if isinstance(args, str):
            args = (args,)
        self.args: tuple[str, ...] = tuple(args)
        self.name = name
        self.taps: list[Tap] = []
        self.interceptors: list[HookInterceptor] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} args={list(self.args)} taps={[t.name for t in self.taps]}>"

    def is_used(self) -> bool:
        return bool(self.taps or self.interceptors)

    def intercept(self, interceptor: HookInterceptor | Mapping[str, Any] | Any) -> None:
        coerced = HookInterceptor.coerce(interceptor)
        self.interceptors.append(coerced)
        if coerced.register is not None:
            self.taps = [coerced.register(tap) or tap for tap in self.taps]

    def promise(self, *args: Any) -> Any:
        raise NotImplementedError

    def call_async(self, *args_and_callback: Any) -> asyncio.Task[Any] | None:
        """Invoke the hook and report the outcome to a node-style callback.

        Inside a running event loop the work is scheduled as a task, which is
        returned. Without a running loop the hook runs to completion first.
        """
        args, callback = _split_callback(self, args_and_callback)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                result = asyncio.run(self.promise(*args))
            except Exception as exc:
                callback(exc)
                return None
            callback(None, result)
            return None

        task = loop.create_task(self.promise(*args))

        def settle(finished: asyncio.Task[Any]) -> None:
            if finished.cancelled():
                callback(asyncio.CancelledError())
                return
            exc = finished.exception()
            if exc is not None:
                callback(exc)
            else:
                callback(None, finished.result())

        task.add_done_callback(settle)
        return task

    # --- Tap registration ---

    def _tap(self, tap_type: TapType, options: TapOptions, fn: Callable[..., Any] | None) -> None:
        if isinstance(options, str):
            options = {"name": options}
        elif not isinstance(options, Mapping):
            msg = f"Invalid tap options: {options!r}"
            raise TypeError(msg)

        opts = dict(options)
        name = opts.pop("name", None)
        if not isinstance(name, str) or not name.strip():
            msg = "Missing name for tap"
            raise ValueError(msg)
        opts_fn = opts.pop("fn", None)
        fn = fn if fn is not None else opts_fn
        if not callable(fn):
            msg = f"Tap {name!r} on {type(self).__name__} needs a callable"
            raise TypeError(msg)

        tap = Tap(name=name, fn=fn, type=tap_type, file=str(opts.pop("file", "") or ""), extra=opts)
        for interceptor in self.interceptors:
            if interceptor.register is not None:
                tap = interceptor.register(tap) or tap
        self.taps.append(tap)

    # --- Invocation helpers ---

    def _normalize_args(self, args: tuple[Any, ...]) -> tuple[Any, ...]:
        if not self.args:
            return args
        if len(args) >= len(self.args):
            return args[: len(self.args)]
        return args + (None,) * (len(self.args) - len(args))

    def _before_call(self, args: tuple[Any, ...]) -> None:
        for interceptor in self.interceptors:
            if interceptor.call is not None:
                interceptor.call(*args)

    def _before_tap(self, tap: Tap) -> None:
        for interceptor in self.interceptors:
            if interceptor.tap is not None:
                interceptor.tap(tap)

    def _on_loop(self, args: tuple[Any, ...]) -> None:
        for interceptor in self.interceptors:
            if interceptor.loop is not None:
                interceptor.loop(*args)

    def _on_error(self, err: BaseException) -> None:
        for interceptor in self.interceptors:
            if interceptor.error is not None:
                interceptor.error(err)

    def _on_finish(self, result: Any) -> None:
        for interceptor in self.interceptors:
            if result is not None and interceptor.result is not None:
                interceptor.result(result)
            elif result is None and interceptor.done is not None:
                interceptor.done()


def _split_callback(hook: Hook, args_and_callback: tuple[Any, ...]) -> tuple[tuple[Any, ...], Callable[..., Any]]:
    if not args_and_callback or not callable(args_and_callback[-1]):
        msg = f"{type(hook).__name__}.call_async() needs a callback as its last argument"
        raise TypeError(msg)
    return args_and_callback[:-1], args_and_callback[-1]


# --- Synchronous hooks ---


class SyncHook(Hook):
    hook_type = "Sync"

    def tap(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        self._tap("sync", options, fn)

    def tap_async(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        msg = f"tap_async is not supported on a {type(self).__name__}"
        raise TypeError(msg)

    def tap_promise(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        msg = f"tap_promise is not supported on a {type(self).__name__}"
        raise TypeError(msg)

    def call(self, *args: Any) -> Any:
        args = self._normalize_args(args)
        self._before_call(args)
        try:
            result = self._run(args)
        except Exception as exc:
            self._on_error(exc)
            raise
        self._on_finish(result)
        return result

    async def promise(self, *args: Any) -> Any:
        return self.call(*args)

    def call_async(self, *args_and_callback: Any) -> None:
        args, callback = _split_callback(self, args_and_callback)
        try:
            result = self.call(*args)
        except Exception as exc:
            callback(exc)
            return
        callback(None, result)

    def _run(self, args: tuple[Any, ...]) -> Any:
        for tap in self.taps:
            self._before_tap(tap)
            tap.fn(*args)
        return None


class SyncBailHook(SyncHook):
    hook_type = "SyncBail"

    def _run(self, args: tuple[Any, ...]) -> Any:
        for tap in self.taps:
            self._before_tap(tap)
            result = tap.fn(*args)
            if result is not None:
                return result
        return None


class SyncWaterfallHook(SyncHook):
    hook_type = "SyncWaterfall"

    def __init__(self, args: Sequence[str] | str = (), name: str | None = None) -> None:
        super().__init__(args, name)
        if not self.args:
            msg = "Waterfall hooks must have at least one argument"
            raise ValueError(msg)

    def _run(self, args: tuple[Any, ...]) -> Any:
        value, rest = args[0], args[1:]
        for tap in self.taps:
            self._before_tap(tap)
            result = tap.fn(value, *rest)
            if result is not None:
                value = result
        return value


class SyncLoopHook(SyncHook):
    hook_type = "SyncLoop"

    def _run(self, args: tuple[Any, ...]) -> Any:
        while True:
            self._on_loop(args)
            for tap in self.taps:
                self._before_tap(tap)
                if tap.fn(*args) is not None:
                    break
            else:
                return None


# --- Asynchronous hooks ---


class AsyncHook(Hook):
    """Base for hooks that can only be invoked asynchronously (no ``call``)."""

    def tap(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        self._tap("sync", options, fn)

    def tap_async(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        self._tap("async", options, fn)

    def tap_promise(self, options: TapOptions, fn: Callable[..., Any] | None = None) -> None:
        self._tap("promise", options, fn)

    async def promise(self, *args: Any) -> Any:
        args = self._normalize_args(args)
        self._before_call(args)
        try:
            result = await self._run(args)
        except Exception as exc:
            self._on_error(exc)
            raise
        self._on_finish(result)
        return result

    async def _run(self, args: tuple[Any, ...]) -> Any:
        raise NotImplementedError

    async def _invoke(self, tap: Tap, args: tuple[Any, ...]) -> Any:
        if tap.type == "sync":
            return tap.fn(*args)

        if tap.type == "promise":
            returned = tap.fn(*args)
            if not inspect.isawaitable(returned):
                msg = f"Tap function (tap_promise) {tap.name!r} did not return an awaitable (returned {returned!r})"
                raise TypeError(msg)
            return await returned

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def callback(err: Any = None, result: Any = None) -> None:
            def settle() -> None:
                if future.done():
                    return
                if err:
                    future.set_exception(err if isinstance(err, BaseException) else RuntimeError(str(err)))
                else:
                    future.set_result(result)

            loop.call_soon_threadsafe(settle)

        tap.fn(*args, callback)
        return await future


class AsyncSeriesHook(AsyncHook):
    hook_type = "AsyncSeries"

    async def _run(self, args: tuple[Any, ...]) -> Any:
        for tap in self.taps:
            self._before_tap(tap)
            await self._invoke(tap, args)
        return None


class AsyncSeriesBailHook(AsyncHook):
    hook_type = "AsyncSeriesBail"

    async def _run(self, args: tuple[Any, ...]) -> Any:
        for tap in self.taps:
            self._before_tap(tap)
            result = await self._invoke(tap, args)
            if result is not None:
                return result
        return None


class AsyncSeriesWaterfallHook(AsyncHook):
    hook_type = "AsyncSeriesWaterfall"

    def __init__(self, args: Sequence[str] | str = (), name: str | None = None) -> None:
        super().__init__(args, name)
        if not self.args:
            msg = "Waterfall hooks must have at least one argument"
            raise ValueError(msg)

    async def _run(self, args: tuple[Any, ...]) -> Any:
        value, rest = args[0], args[1:]
        for tap in self.taps:
            self._before_tap(tap)
            result = await self._invoke(tap, (value, *rest))
            if result is not None:
                value = result
        return value


class AsyncParallelHook(AsyncHook):
    hook_type = "AsyncParallel"

    async def _run(self, args: tuple[Any, ...]) -> Any:
        pending = []
        for tap in self.taps:
            self._before_tap(tap)
            pending.append(self._invoke(tap, args))
        await asyncio.gather(*pending)
        return None


class AsyncParallelBailHook(AsyncHook):
    hook_type = "AsyncParallelBail"

    async def _run(self, args: tuple[Any, ...]) -> Any:
        tasks: list[asyncio.Future[Any]] = []
        for tap in self.taps:
            self._before_tap(tap)
            tasks.append(asyncio.ensure_future(self._invoke(tap, args)))
        try:
            # earliest tap in subscription order wins, not the fastest one
            for task in tasks:
                result = await task
                if result is not None:
                    return result
            return None
        finally:
            for task in tasks:
                if not task.done():
                    task.add_done_callback(_consume_outcome)


def _consume_outcome(task: asyncio.Future[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Parallel tap failed after the hook had already bailed: %r", task.exception())


HOOK_TYPES: dict[str, type[Hook]] = {
    cls.hook_type: cls
    for cls in (
        SyncHook,
        SyncBailHook,
        SyncWaterfallHook,
        SyncLoopHook,
        AsyncParallelHook,
        AsyncParallelBailHook,
        AsyncSeriesHook,
        AsyncSeriesBailHook,
        AsyncSeriesWaterfallHook,
    )
}

# ``targets.types.SyncWaterfall(["value"])`` in extension code
types = SimpleNamespace(**HOOK_TYPES)


# --- Structural checks ---

HookKind = Literal["sync", "async", "invalid"]

_SYNC_MEMBERS = ("tap", "call")
_ASYNC_MEMBERS = ("tap_async", "tap_promise", "call_async", "promise")


@dataclass(frozen=True)
class HookShape:
    """Result of checking whether a value looks and acts like a hook."""

    kind: HookKind
    type_name: str = "<unknown>"

    @property
    def valid(self) -> bool:
        return self.kind != "invalid"


def _has_members(candidate: Any, names: Sequence[str]) -> bool:
    return all(callable(getattr(candidate, name, None)) for name in names)


def classify_hook(candidate: Any) -> HookShape:
    """Check a value against the hook interface by its members, not its class.

    Proxies and hooks from other implementations pass as long as they offer
    ``intercept`` plus either the sync pair (``tap``, ``call``) or the async
    quartet (``tap_async``, ``tap_promise``, ``call_async``, ``promise``).
    """
    if candidate is None or isinstance(candidate, type):
        logger.debug("Value is not a hook instance: %r", candidate)
        return HookShape("invalid")
    if not callable(getattr(candidate, "intercept", None)):
        logger.debug("Value does not appear to be hook-like: %r", candidate)
        return HookShape("invalid")

    type_name = getattr(candidate, "hook_type", None)
    if not isinstance(type_name, str) or type_name not in HOOK_TYPES:
        type_name = "<unknown>"

    if _has_members(candidate, _SYNC_MEMBERS):
        return HookShape("sync", type_name)
    if _has_members(candidate, _ASYNC_MEMBERS):
        return HookShape("async", type_name)
    logger.debug("Value has neither a sync nor an async hook interface: %r", candidate)
    return HookShape("invalid")


def appears_to_be_hook(candidate: Any) -> bool:
    return classify_hook(candidate).valid


def get_hook_type(hook: Any) -> str:
    return classify_hook(hook).type_name
