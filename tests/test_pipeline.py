"""End-to-end tests: packages queue transforms, the pipeline collects them, the transformers apply them."""

from pathlib import Path

import pytest

from buildbus.bus import BuildBus
from buildbus.errors import TransformRequestError
from buildbus.pipeline import collect_env_var_definitions, collect_special_features, collect_transform_requests
from buildbus.transform.apply import apply_transforms


def _apply(options, path: Path):
    file_id = str(path.resolve())
    return apply_transforms(path.read_text(), file_id, options)


class TestPipeline:
    @pytest.mark.asyncio
    async def test_workspace_project(self, shop_project: Path, registry) -> None:
        bus = await BuildBus.for_context(shop_project, registry=registry).init()
        assert bus.config.project_name == "shop"

        options = await collect_transform_requests(bus)
        app = _apply(options, shop_project / "src" / "App.js")
        assert app.code == "<Main><Footer /></Main>"
        assert app.warnings == []

        nav = _apply(options, shop_project / "packages" / "venia_ui" / "lib" / "nav.js")
        assert nav.code.startswith('import Help from "./help.js";\n')
        assert 'import Home from "./home.js";' in nav.code
        assert nav.code.endswith("export default [...$buildbus$original_default0, Help];\n")
        assert nav.errors == []

    @pytest.mark.asyncio
    async def test_declared_hooks_are_tapped(self, shop_project: Path, registry) -> None:
        bus = await BuildBus.for_context(shop_project, registry=registry).init()
        assert bus.get_targets_of("venia-ui").nav_items.call(["Home"]) == ["Home", "Orders"]

    @pytest.mark.asyncio
    async def test_features_and_env_vars(self, shop_project: Path, registry) -> None:
        bus = await BuildBus.for_context(shop_project, registry=registry).init()
        assert collect_special_features(bus) == {"venia-ui": {"css_modules": True}}
        assert collect_env_var_definitions(bus).sections == []

    @pytest.mark.asyncio
    async def test_extensions_stay_in_their_own_files(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "meddling",
            """
            from buildbus.targetables import TargetableSet

            def intercept(targets):
                TargetableSet.using(targets).module("shop/src/App.js").prepend_source("// hi\\n")
            """,
        )
        bus = await make_bus({"venia-ui": {"intercept": entry}}, project_name="shop").init()
        with pytest.raises(TransformRequestError, match="outside their own codebase"):
            await collect_transform_requests(bus)

    @pytest.mark.asyncio
    async def test_unresolvable_file(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "missing",
            """
            from buildbus.targetables import TargetableSet

            def intercept(targets):
                TargetableSet.using(targets).module("src/Missing.js").prepend_source("x")
            """,
        )
        bus = await make_bus({"shop": {"intercept": entry}}, project_name="shop").init()
        with pytest.raises(TransformRequestError, match="could not resolve") as info:
            await collect_transform_requests(bus)
        assert "missing.py" in str(info.value)
