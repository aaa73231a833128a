"""Hooks declared by the ``buildbus`` package itself.

* ``transform_modules`` (AsyncSeries, ``add_transform``): taps receive a
  function to call with each :class:`~buildbus.transform.types.TransformRequest`
  they want applied to a file.
* ``special_features`` (Sync, ``features``): taps set boolean flags in a
  ``{package_name: {flag: bool}}`` dict, telling the build that a package
  needs special processing.
* ``env_var_definitions`` (Sync, ``definitions``): taps add sections of
  environment variable definitions to an :class:`EnvVarDefinitions`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from buildbus.provider import TargetProvider

BUILTIN_PACKAGE = "buildbus"


class EnvVarDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: Literal["str", "bool", "int", "float", "url"] = "str"
    desc: str = ""
    default: Any = None
    example: str | None = None
    choices: list[str] | None = None


class EnvVarSection(BaseModel):
    name: str
    variables: list[EnvVarDefinition] = Field(default_factory=list)


class EnvVarDefinitions(BaseModel):
    sections: list[EnvVarSection] = Field(default_factory=list)

    def section(self, name: str) -> EnvVarSection:
        """Return the section called ``name``, creating it at the end if needed."""
        for section in self.sections:
            if section.name == name:
                return section
        section = EnvVarSection(name=name)
        self.sections.append(section)
        return section

    def variables(self) -> dict[str, EnvVarDefinition]:
        return {variable.name: variable for section in self.sections for variable in section.variables}


def declare(targets: TargetProvider) -> None:
    targets.declare(
        {
            "transform_modules": targets.types.AsyncSeries(["add_transform"]),
            "special_features": targets.types.Sync(["features"]),
            "env_var_definitions": targets.types.Sync(["definitions"]),
        }
    )
