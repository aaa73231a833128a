"""Tests for buildbus.targets and buildbus.provider."""

import logging

import pytest

from buildbus.errors import ExternalInvokeError, HookDeclarationError
from buildbus.hooks import AsyncSeriesHook, SyncHook, SyncWaterfallHook
from buildbus.provider import TargetMap, TargetProvider
from buildbus.targets import ExternalTarget, Target
from buildbus.tracking import Trackable


class Root(Trackable):
    def __init__(self, events) -> None:
        super().__init__()
        self.attach("root", lambda *event: events.append(event))


def _providers(events=None):
    """Two providers wired together the way the bus wires them."""
    root = Root(events if events is not None else [])
    providers: dict[str, TargetProvider] = {}

    def get_external(requestor, requested):
        owner = providers[requested]
        return TargetMap((name, owner.link_target(requestor, name, hook)) for name, hook in owner.hooks.items())

    for name in ("owner", "other"):
        providers[name] = TargetProvider(root, name, get_external)
    return providers["owner"], providers["other"]


class TestTargetProvider:
    def test_declare_returns_declarations(self) -> None:
        owner, _ = _providers()
        owner.phase = "declare"
        hooks = {"build": SyncHook(["value"])}
        assert owner.declare(hooks) is hooks
        assert isinstance(owner.own.build, Target)
        assert not isinstance(owner.own.build, ExternalTarget)
        assert owner.own.build.hook_type == "Sync"

    def test_declare_rejects_non_hooks(self) -> None:
        owner, _ = _providers()
        owner.phase = "declare"
        with pytest.raises(HookDeclarationError, match='target "bad"'):
            owner.declare({"bad": object()})

    def test_of_hands_out_external_handles(self) -> None:
        owner, other = _providers()
        owner.phase = "declare"
        owner.declare({"build": SyncHook(["value"])})
        other.phase = "intercept"
        targets = other.of("owner")
        assert isinstance(targets.build, ExternalTarget)
        assert other.of("owner") is targets

    def test_of_self_returns_own(self) -> None:
        owner, _ = _providers()
        owner.phase = "intercept"
        assert owner.of("owner") is owner.own

    def test_target_map_attribute_error(self) -> None:
        with pytest.raises(AttributeError, match="missing"):
            TargetMap().missing

    def test_declare_outside_phase_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        events = []
        owner, _ = _providers(events)
        Trackable.enable_tracking()
        owner.phase = "intercept"
        with caplog.at_level(logging.WARNING, logger="buildbus.provider"):
            owner.declare({"late": SyncHook()})
        assert "ran declare()" in caplog.text
        assert "late" in owner.own
        warnings = [event for event in events if event[1] == "warning"]
        assert warnings and warnings[0][2]["type"] == "lifecycle"

    def test_of_outside_phase_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        owner, other = _providers()
        owner.phase = "declare"
        owner.declare({"build": SyncHook()})
        other.phase = "declare"
        with caplog.at_level(logging.WARNING, logger="buildbus.provider"):
            other.of("owner")
        assert "ran of(owner)" in caplog.text


class TestTargets:
    def test_tap_names_are_prefixed_with_requestor(self) -> None:
        owner, other = _providers()
        owner.phase = "declare"
        hook = SyncWaterfallHook(["value"])
        owner.declare({"build": hook})
        other.phase = "intercept"
        other.file = "/entries/other.py"
        targets = other.of("owner")
        targets.build.tap(lambda v: v + 1)
        targets.build.tap("double", lambda v: v * 2)
        targets.build.tap({"name": "third", "fn": lambda v: None, "stage": 1})
        assert [tap.name for tap in hook.taps] == ["other", "other::double", "other::third"]
        assert hook.taps[0].file == "/entries/other.py"
        assert hook.taps[2].extra == {"stage": 1}
        assert owner.own.build.call(3) == 8

    def test_bad_tap_arguments(self) -> None:
        owner, _ = _providers()
        owner.phase = "declare"
        owner.declare({"build": SyncHook()})
        with pytest.raises(TypeError):
            owner.own.build.tap("named-without-function")

    @pytest.mark.asyncio
    async def test_external_target_cannot_invoke(self) -> None:
        owner, other = _providers()
        owner.phase = "declare"
        owner.declare({"sync": SyncHook(), "async": AsyncSeriesHook()})
        other.phase = "intercept"
        targets = other.of("owner")
        with pytest.raises(ExternalInvokeError, match="Only owner can invoke"):
            targets.sync.call()
        with pytest.raises(ExternalInvokeError):
            targets.sync.call_async(lambda err: None)
        # raised before anything is awaited
        with pytest.raises(ExternalInvokeError):
            targets["async"].promise()

    @pytest.mark.asyncio
    async def test_owner_can_invoke_and_calls_are_tracked(self) -> None:
        events = []
        owner, other = _providers(events)
        owner.phase = "declare"
        owner.declare({"collect": AsyncSeriesHook(["items"])})
        other.phase = "intercept"

        async def add(items):
            items.append("other")

        other.of("owner").collect.tap_promise("add", add)
        Trackable.enable_tracking()
        items = []
        await owner.own.collect.promise(items)
        assert items == ["other"]
        names = [event[1] for event in events]
        assert names == ["beforeCall", "afterCall"]
        assert events[0][0]["id"] == "collect[AsyncSeries]"
        assert events[0][0]["parent"]["id"] == "owner"

    def test_intercept_passes_through(self) -> None:
        owner, other = _providers()
        owner.phase = "declare"
        hook = SyncHook()
        owner.declare({"build": hook})
        calls = []
        other.phase = "intercept"
        other.of("owner").build.intercept({"call": lambda: calls.append("called")})
        owner.own.build.call()
        assert calls == ["called"]
