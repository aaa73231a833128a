"""Hook handles: the proxies packages receive instead of raw hooks.

A handle renames every tap after the package that registered it and emits
tracking events for each tap and invocation. Packages that do not own the
hook receive an :class:`ExternalTarget`, which can subscribe but never invoke.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from buildbus.errors import ExternalInvokeError
from buildbus.tracking import Trackable

if TYPE_CHECKING:
    from buildbus.hooks import Hook
    from buildbus.provider import TargetProvider

SOURCE_SEP = "::"

_INTERCEPTION_TYPES = {"tap": "sync", "tap_async": "async", "tap_promise": "promise"}


class Target(Trackable):
    """Full handle, given to the package that declared the hook."""

    SOURCE_SEP = SOURCE_SEP

    def __init__(
        self,
        owner: TargetProvider,
        requestor: TargetProvider,
        name: str,
        hook_type: str,
        hook: Hook,
    ) -> None:
        super().__init__()
        self.owner = owner
        self.requestor = requestor
        self.name = name
        self.hook_type = hook_type
        self.hook = hook
        self.attach(f"{name}[{hook_type}]", owner)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.owner.name}.{self.name} [{self.hook_type}] for {self.requestor.name}>"

    # --- Subscribing ---

    def tap(self, info: Any, fn: Callable[..., Any] | None = None) -> None:
        """Add a synchronous interceptor.

        With only a function the tap is named after the requesting package;
        with a name it becomes ``<package>::<name>``.
        """
        self._invoke_tap("tap", info, fn)

    def tap_async(self, info: Any, fn: Callable[..., Any] | None = None) -> None:
        self._invoke_tap("tap_async", info, fn)

    def tap_promise(self, info: Any, fn: Callable[..., Any] | None = None) -> None:
        self._invoke_tap("tap_promise", info, fn)

    def intercept(self, options: Any) -> None:
        """Register meta-interceptors on the underlying hook. Use only for logging and debugging."""
        self.track("intercept", {"type": "intercept", "source": self.requestor.name, "options": options})
        self.hook.intercept(options)

    # --- Invoking ---

    def call(self, *args: Any) -> Any:
        self.track("beforeCall", {"type": "sync", "args": args})
        returned = self.hook.call(*args)
        self.track("afterCall", {"type": "sync", "returned": returned})
        return returned

    def call_async(self, *args_and_callback: Any) -> Any:
        if not args_and_callback or not callable(args_and_callback[-1]):
            msg = "call_async() needs a callback as its last argument"
            raise TypeError(msg)
        *args, callback = args_and_callback
        self.track("beforeCall", {"type": "async", "args": args})

        def tracked_callback(*returned: Any) -> Any:
            self.track("afterCall", {"type": "async", "returned": returned})
            return callback(*returned)

        return self.hook.call_async(*args, tracked_callback)

    async def promise(self, *args: Any) -> Any:
        self.track("beforeCall", {"type": "promise", "args": args})
        returned = await self.hook.promise(*args)
        self.track("afterCall", {"type": "promise", "returned": returned})
        return returned

    def to_json(self) -> dict[str, Any]:
        json_obj = super().to_json()
        json_obj["requestor"] = self.requestor.name
        return json_obj

    def _invoke_tap(self, method: str, info: Any, fn: Callable[..., Any] | None) -> None:
        options, tap_fn = self._create_tap_options(info, fn)
        self.track("intercept", {"source": self.requestor.name, "type": _INTERCEPTION_TYPES[method]})
        getattr(self.hook, method)(options, tap_fn)

    def _create_tap_options(self, info: Any, fn: Callable[..., Any] | None) -> tuple[dict[str, Any], Any]:
        file = self.requestor.file or ""
        if isinstance(info, Mapping):
            other = dict(info)
            name = other.pop("name", None)
            tap_fn = other.pop("fn", fn)
            return {**other, "name": self._tap_name(name), "file": file}, tap_fn
        if isinstance(info, str) and fn is not None:
            return {"name": self._tap_name(info), "file": file}, fn
        if callable(info) and fn is None:
            return {"name": self._tap_name(), "file": file}, info
        msg = f"Could not create tap options from provided params: {info!r}, {fn!r}"
        raise TypeError(msg)

    def _tap_name(self, name: str | None = None) -> str:
        return f"{self.requestor.name}{SOURCE_SEP}{name}" if name else self.requestor.name


class ExternalTarget(Target):
    """Subscribe-only handle for packages that did not declare the hook."""

    def call(self, *args: Any) -> Any:
        self._refuse("call")

    def call_async(self, *args_and_callback: Any) -> Any:
        self._refuse("call_async")

    def promise(self, *args: Any) -> Any:
        # plain def so the refusal is raised at the call site, not on await
        self._refuse("promise")

    def _refuse(self, method: str) -> None:
        owner = self.owner.name
        msg = (
            f'{self.requestor.name} ran targets.of("{owner}").{self.name}.{method}(). '
            f"Only {owner} can invoke its own targets. {self.requestor.name} can only intercept them."
        )
        raise ExternalInvokeError(msg)
