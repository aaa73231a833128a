"""Advisory event tracking for bus components.

Any component can attach itself to a named parent, forming a tree. The root
of the tree holds an output callback; ``track()`` calls anywhere in the tree
serialize the calling component (with its chain of parents) and push it to
that callback. Tracking is off by default and toggled globally, since
serializing the tree for every event costs time.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

OutCallback = Callable[..., Any]


def log_tracking_event(trackable: dict[str, Any], *args: Any) -> None:
    """Default sink: write tracking events to the ``buildbus.tracking`` logger."""
    payload = " ".join(json.dumps(arg, default=repr) for arg in args)
    logger.debug("%s %s", json.dumps(trackable, default=repr), payload)


class Trackable:
    """Node in the tracking tree."""

    _enabled: ClassVar[bool] = False

    def __init__(self) -> None:
        self._identifier: str | None = None
        self._parent: Trackable | None = None
        self._out_callback: OutCallback | None = None

    @classmethod
    def enable_tracking(cls) -> None:
        """Turn on tracking for every Trackable. Not meant for production builds."""
        Trackable._enabled = True

    @classmethod
    def disable_tracking(cls) -> None:
        Trackable._enabled = False

    @classmethod
    def tracking_enabled(cls) -> bool:
        return Trackable._enabled

    def attach(self, identifier: str, owner: Trackable | OutCallback) -> None:
        """Name this node and hang it under ``owner``.

        If ``owner`` is another Trackable this node becomes its child. If it is
        a plain callable this node becomes a root that reports its own events
        and its descendants' events to that callable.
        """
        self._identifier = identifier
        if isinstance(owner, Trackable):
            self._parent = owner
        elif callable(owner):
            self._out_callback = owner

    def track(self, *args: Any) -> Any:
        if not Trackable._enabled:
            return None
        return self._out(self.to_json(), *args)

    def to_json(self) -> dict[str, Any]:
        json_obj: dict[str, Any] = {"type": type(self).__name__, "id": self._ensure_identifier()}
        if self._parent is not None:
            json_obj["parent"] = self._parent.to_json()
        return json_obj

    def _ensure_identifier(self) -> str:
        if not self._identifier:
            msg = "Trackable must be initialized with tracker.attach"
            raise RuntimeError(msg)
        return self._identifier

    def _out(self, trackable: dict[str, Any], *args: Any) -> Any:
        if self._out_callback is not None:
            return self._out_callback(trackable, *args)
        if self._parent is None:
            msg = "Trackable must be initialized with tracker.attach"
            raise RuntimeError(msg)
        return self._parent._out(trackable, *args)
