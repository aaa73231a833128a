"""Builder for transform requests against one source file."""

from __future__ import annotations

import traceback
from typing import Any

from buildbus.tracking import OutCallback, Trackable
from buildbus.transform.types import TransformRequest

SPLICE_SOURCE = "buildbus.transformers.splice_source"


class TargetableModule(Trackable):
    """Queues source transforms for ``file`` until :meth:`flush` hands them over."""

    def __init__(
        self,
        file: str,
        tracking_owner: Trackable | OutCallback,
        requestor: str = "",
        requestor_file: str = "",
    ) -> None:
        super().__init__()
        self.attach(file, tracking_owner)
        self.file = file
        self.requestor = requestor
        self.requestor_file = requestor_file
        self.queued_transforms: list[TransformRequest] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.file} queued={len(self.queued_transforms)}>"

    def flush(self) -> list[TransformRequest]:
        """Return the queued requests and empty the queue."""
        flushed, self.queued_transforms = self.queued_transforms, []
        return flushed

    def add_transform(self, type: str, transform_module: str, options: dict[str, Any] | None = None) -> TransformRequest:
        request = self._create_transform(type, transform_module, options or {})
        self.track("add_transform", {"type": type, "transform_module": transform_module})
        self.queued_transforms.append(request)
        return request

    def insert_after_source(self, after: str, insert: str, options: dict[str, Any] | None = None) -> TransformRequest:
        """Insert ``insert`` right after the first occurrence of ``after``."""
        return self.splice_source({"after": after, "insert": insert, **(options or {})})

    def insert_before_source(self, before: str, insert: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self.splice_source({"before": before, "insert": insert, **(options or {})})

    def prepend_source(self, insert: str) -> TransformRequest:
        return self.splice_source({"at": 0, "insert": insert})

    def splice_source(self, options: dict[str, Any]) -> TransformRequest:
        """Splice text into the file.

        ``options`` holds one of ``after``, ``before`` (a search string) or
        ``at`` (an offset), plus ``insert`` text and/or a ``remove`` count.
        Add ``"global": True`` to splice at every occurrence of the search string.
        """
        return self.add_transform("source", SPLICE_SOURCE, options)

    def _create_transform(self, type: str, transform_module: str, options: dict[str, Any]) -> TransformRequest:
        # drop the builder frames so the trace ends at the extension code that asked
        trace = "".join(traceback.format_stack()[:-3])
        return TransformRequest(
            type=type,
            file_to_transform=self.file,
            transform_module=transform_module,
            options=options,
            requestor=self.requestor,
            requestor_file=self.requestor_file,
            trace=trace,
        )
