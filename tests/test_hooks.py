"""Tests for buildbus.hooks."""

import asyncio

import pytest

from buildbus.hooks import (
    HOOK_TYPES,
    AsyncParallelBailHook,
    AsyncParallelHook,
    AsyncSeriesBailHook,
    AsyncSeriesHook,
    AsyncSeriesWaterfallHook,
    HookInterceptor,
    SyncBailHook,
    SyncHook,
    SyncLoopHook,
    SyncWaterfallHook,
    appears_to_be_hook,
    classify_hook,
    get_hook_type,
    types,
)


class TestSyncHooks:
    def test_sync_runs_taps_in_order(self) -> None:
        hook = SyncHook(["value"])
        seen = []
        hook.tap("a", lambda v: seen.append(("a", v)))
        hook.tap("b", lambda v: seen.append(("b", v)))
        assert hook.call(1) is None
        assert seen == [("a", 1), ("b", 1)]

    def test_args_are_padded_and_truncated(self) -> None:
        hook = SyncHook(["a", "b"])
        seen = []
        hook.tap("t", lambda a, b: seen.append((a, b)))
        hook.call(1)
        hook.call(1, 2, 3)
        assert seen == [(1, None), (1, 2)]

    def test_bail_stops_at_first_result(self) -> None:
        hook = SyncBailHook(["value"])
        calls = []
        hook.tap("none", lambda v: calls.append("none"))
        hook.tap("found", lambda v: v * 10)
        hook.tap("never", lambda v: calls.append("never"))
        assert hook.call(2) == 20
        assert calls == ["none"]

    def test_waterfall_threads_value(self) -> None:
        hook = SyncWaterfallHook(["value"])
        hook.tap("add", lambda v: v + 1)
        hook.tap("keep", lambda v: None)
        hook.tap("double", lambda v: v * 2)
        assert hook.call(3) == 8

    def test_waterfall_needs_an_argument(self) -> None:
        with pytest.raises(ValueError):
            SyncWaterfallHook()

    def test_loop_restarts_until_all_return_none(self) -> None:
        hook = SyncLoopHook()
        state = {"count": 0}
        order = []

        def first():
            order.append("first")

        def second():
            order.append("second")
            state["count"] += 1
            return True if state["count"] < 3 else None

        hook.tap("first", first)
        hook.tap("second", second)
        hook.call()
        assert state["count"] == 3
        assert order == ["first", "second"] * 3

    def test_sync_hook_rejects_async_taps(self) -> None:
        hook = SyncHook()
        with pytest.raises(TypeError, match="tap_async is not supported on a SyncHook"):
            hook.tap_async("a", lambda cb: cb())
        with pytest.raises(TypeError, match="tap_promise is not supported"):
            hook.tap_promise("a", lambda: None)
        assert hook.taps == []

    def test_tap_needs_name_and_callable(self) -> None:
        hook = SyncHook()
        with pytest.raises(ValueError):
            hook.tap({"name": ""}, lambda: None)
        with pytest.raises(TypeError):
            hook.tap("named", "not callable")

    def test_call_async_reports_result_to_callback(self) -> None:
        hook = SyncBailHook(["value"])
        hook.tap("t", lambda v: v + 1)
        results = []
        hook.call_async(1, lambda err, result=None: results.append((err, result)))
        assert results == [(None, 2)]

    def test_call_async_reports_error_to_callback(self) -> None:
        hook = SyncHook()

        def boom():
            raise RuntimeError("boom")

        hook.tap("t", boom)
        errors = []
        hook.call_async(lambda err, result=None: errors.append(err))
        assert isinstance(errors[0], RuntimeError)

    @pytest.mark.asyncio
    async def test_sync_hook_promise(self) -> None:
        hook = SyncWaterfallHook(["value"])
        hook.tap("t", lambda v: v + "!")
        assert await hook.promise("hi") == "hi!"


class TestAsyncHooks:
    @pytest.mark.asyncio
    async def test_series_supports_all_tap_styles(self) -> None:
        hook = AsyncSeriesHook(["log"])
        log = []

        async def promised(entries):
            await asyncio.sleep(0)
            entries.append("promise")

        def callback_style(entries, callback):
            entries.append("async")
            callback()

        hook.tap("sync", lambda entries: entries.append("sync"))
        hook.tap_promise("promise", promised)
        hook.tap_async("async", callback_style)
        await hook.promise(log)
        assert log == ["sync", "promise", "async"]

    @pytest.mark.asyncio
    async def test_callback_error_is_raised(self) -> None:
        hook = AsyncSeriesHook()
        hook.tap_async("failing", lambda callback: callback(ValueError("bad")))
        with pytest.raises(ValueError, match="bad"):
            await hook.promise()

    @pytest.mark.asyncio
    async def test_tap_promise_must_return_awaitable(self) -> None:
        hook = AsyncSeriesHook()
        hook.tap_promise("lazy", lambda: 42)
        with pytest.raises(TypeError):
            await hook.promise()

    @pytest.mark.asyncio
    async def test_series_bail(self) -> None:
        hook = AsyncSeriesBailHook(["value"])
        hook.tap("skip", lambda v: None)

        async def found(v):
            return v * 2

        hook.tap_promise("found", found)
        hook.tap("never", lambda v: pytest.fail("should have bailed"))
        assert await hook.promise(4) == 8

    @pytest.mark.asyncio
    async def test_series_waterfall(self) -> None:
        hook = AsyncSeriesWaterfallHook(["value"])

        async def add(v):
            return v + 1

        hook.tap_promise("add", add)
        hook.tap_async("double", lambda v, callback: callback(None, v * 2))
        assert await hook.promise(3) == 8

    @pytest.mark.asyncio
    async def test_parallel_runs_concurrently(self) -> None:
        hook = AsyncParallelHook()
        events = []

        async def slow():
            events.append("slow start")
            await asyncio.sleep(0.01)
            events.append("slow end")

        async def fast():
            events.append("fast")

        hook.tap_promise("slow", slow)
        hook.tap_promise("fast", fast)
        await hook.promise()
        assert events.index("fast") < events.index("slow end")

    @pytest.mark.asyncio
    async def test_parallel_bail_prefers_tap_order(self) -> None:
        hook = AsyncParallelBailHook()

        async def slow_first():
            await asyncio.sleep(0.01)
            return "first"

        async def fast_second():
            return "second"

        hook.tap_promise("first", slow_first)
        hook.tap_promise("second", fast_second)
        assert await hook.promise() == "first"

    @pytest.mark.asyncio
    async def test_call_async_inside_loop_returns_task(self) -> None:
        hook = AsyncSeriesBailHook()
        hook.tap("t", lambda: "done")
        results = []
        task = hook.call_async(lambda err, result=None: results.append((err, result)))
        await task
        await asyncio.sleep(0)
        assert results == [(None, "done")]

    def test_call_async_without_loop(self) -> None:
        hook = AsyncSeriesBailHook()
        hook.tap("t", lambda: "done")
        results = []
        assert hook.call_async(lambda err, result=None: results.append((err, result))) is None
        assert results == [(None, "done")]


class TestInterceptors:
    def test_interceptor_observes_calls_and_taps(self) -> None:
        hook = SyncHook(["value"])
        hook.tap("first", lambda v: None)
        seen = {"call": [], "tap": [], "register": [], "done": 0}

        def register(tap):
            seen["register"].append(tap.name)
            return tap

        def done():
            seen["done"] += 1

        hook.intercept(
            {
                "call": lambda v: seen["call"].append(v),
                "tap": lambda tap: seen["tap"].append(tap.name),
                "register": register,
                "done": done,
            }
        )
        hook.tap("second", lambda v: None)
        hook.call(7)
        assert seen == {"call": [7], "tap": ["first", "second"], "register": ["first", "second"], "done": 1}

    def test_interceptor_result_and_error(self) -> None:
        hook = SyncBailHook()
        results = []
        errors = []
        hook.intercept(HookInterceptor(result=results.append, error=errors.append))
        hook.tap("t", lambda: "value")
        hook.call()
        assert results == ["value"]

        failing = SyncHook()
        failing.intercept({"error": errors.append})

        def boom():
            raise KeyError("x")

        failing.tap("t", boom)
        with pytest.raises(KeyError):
            failing.call()
        assert isinstance(errors[0], KeyError)

    def test_unknown_interceptor_keys(self) -> None:
        with pytest.raises(ValueError):
            SyncHook().intercept({"before": lambda: None})


class TestClassification:
    def test_every_variant_classifies(self) -> None:
        for name, hook_cls in HOOK_TYPES.items():
            hook = hook_cls(["value"])
            shape = classify_hook(hook)
            assert shape.valid
            assert shape.type_name == name
            assert shape.kind == ("sync" if name.startswith("Sync") else "async")

    def test_types_namespace(self) -> None:
        assert types.SyncWaterfall is SyncWaterfallHook
        assert types.AsyncParallelBail is AsyncParallelBailHook

    def test_invalid_values(self) -> None:
        assert not appears_to_be_hook(None)
        assert not appears_to_be_hook(SyncHook)
        assert not appears_to_be_hook({"tap": 1})
        assert get_hook_type(object()) == "<unknown>"

    def test_structural_hooks_from_elsewhere(self) -> None:
        class ForeignHook:
            def intercept(self, interceptor):
                pass

            def tap(self, options, fn=None):
                pass

            def call(self, *args):
                return None

        shape = classify_hook(ForeignHook())
        assert shape.valid
        assert shape.kind == "sync"
        assert shape.type_name == "<unknown>"

    def test_missing_intercept_is_not_a_hook(self) -> None:
        class AlmostHook:
            def tap(self, options, fn=None):
                pass

            def call(self, *args):
                return None

        assert not classify_hook(AlmostHook()).valid
