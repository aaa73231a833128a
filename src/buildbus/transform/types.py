"""Transform requests and the loader options they are grouped into."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SOURCE = "source"
TREE = "tree"
TRANSFORM_TYPES = (SOURCE, TREE)

# type -> transform module -> file to transform -> requests
LoaderOptions = dict[str, dict[str, dict[str, list["TransformRequest"]]]]


class TransformRequest(BaseModel):
    """One queued rewrite of one file.

    ``type`` is checked when the request is added to a
    :class:`~buildbus.transform.config.ModuleTransformConfig`, so a bad type
    is reported with the trace of the code that created the request.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str
    file_to_transform: str = Field(alias="fileToTransform")
    transform_module: str = Field(alias="transformModule")
    options: dict[str, Any] = Field(default_factory=dict)
    requestor: str = ""
    requestor_file: str = Field(default="", alias="requestorFile")
    trace: str = ""


def empty_loader_options() -> LoaderOptions:
    return {transform_type: {} for transform_type in TRANSFORM_TYPES}


def dump_loader_options(options: LoaderOptions, *, include_trace: bool = False) -> dict[str, Any]:
    """Loader options as plain JSON data, with camelCase keys."""
    exclude = None if include_trace else {"trace"}
    return {
        transform_type: {
            module: {
                file: [request.model_dump(by_alias=True, exclude=exclude) for request in requests]
                for file, requests in files.items()
            }
            for module, files in modules.items()
        }
        for transform_type, modules in options.items()
    }


def load_loader_options(data: Mapping[str, Any]) -> LoaderOptions:
    options = empty_loader_options()
    for transform_type, modules in data.items():
        grouped = options.setdefault(transform_type, {})
        for module, files in modules.items():
            for file, requests in files.items():
                grouped.setdefault(module, {}).setdefault(file, []).extend(
                    TransformRequest.model_validate(request) for request in requests
                )
    return options
