"""Tests for the targetable builders."""

import pytest

from buildbus.builtin_targets import EnvVarDefinitions
from buildbus.targetables import (
    TargetableComponent,
    TargetableESModule,
    TargetableESModuleArray,
    TargetableESModuleObject,
    TargetableLazyModuleObject,
    TargetableModule,
    TargetableSet,
)
from buildbus.targetables.collections import EXPORT_COLLECTION
from buildbus.targetables.component import MODIFY_TREE
from buildbus.targetables.esmodule import WRAP_MODULE
from buildbus.targetables.module import SPLICE_SOURCE
from buildbus.transform.apply import apply_transforms


def _untracked(*event):
    pass


def _builder(cls, file="shop/src/App.js"):
    return cls(file, _untracked, requestor="shop", requestor_file="/shop/intercept.py")


def _loader_options(file, requests):
    options = {"source": {}, "tree": {}}
    for request in requests:
        options[request.type].setdefault(request.transform_module, {}).setdefault(file, []).append(request)
    return options


class TestTargetableModule:
    def test_splice_helpers_queue_requests(self) -> None:
        module = _builder(TargetableModule)
        module.insert_after_source("const a = 1;", "\nconst b = 2;")
        module.insert_before_source("export", "// note\n", {"global": True})
        module.prepend_source("'use strict';\n")
        assert [request.options for request in module.queued_transforms] == [
            {"after": "const a = 1;", "insert": "\nconst b = 2;"},
            {"before": "export", "insert": "// note\n", "global": True},
            {"at": 0, "insert": "'use strict';\n"},
        ]
        request = module.queued_transforms[0]
        assert request.type == "source"
        assert request.transform_module == SPLICE_SOURCE
        assert request.file_to_transform == "shop/src/App.js"
        assert request.requestor == "shop"
        assert request.requestor_file == "/shop/intercept.py"

    def test_trace_points_at_caller(self) -> None:
        request = _builder(TargetableModule).prepend_source("x")
        assert "test_trace_points_at_caller" in request.trace
        assert "_create_transform" not in request.trace

    def test_flush_empties_queue(self) -> None:
        module = _builder(TargetableModule)
        module.prepend_source("x")
        assert len(module.flush()) == 1
        assert module.flush() == []


class TestTargetableESModule:
    def test_duplicate_and_colliding_imports(self) -> None:
        module = _builder(TargetableESModule)
        first = module.add_import('X from "m"')
        again = module.add_import('import X from "m";')
        other = module.add_import('X from "n"')
        assert again is first
        assert first.binding == "X"
        assert other.binding != "X"
        assert other.binding.startswith("X$")
        assert other.source == "n"

        file = "shop/src/App.js"
        result = apply_transforms(
            f"export default [{first}, {other}];\n", file, _loader_options(file, module.flush())
        )
        assert result.code.count('import X from "m";') == 1
        assert f'import {other.binding} from "n";' in result.code
        assert result.code.endswith(f"export default [X, {other.binding}];\n")

    def test_wrap_with_file(self) -> None:
        module = _builder(TargetableESModule)
        module.wrap_with_file("shop/wrappers/logged.js")
        module.wrap_with_file("useCart", "shop/wrappers/cached.js")
        defaults, named = module.flush()
        assert defaults.transform_module == WRAP_MODULE
        assert defaults.options == {"wrapper_module": "shop/wrappers/logged.js", "default_export": True}
        assert named.options == {
            "export_name": "useCart",
            "wrapper_module": "shop/wrappers/cached.js",
            "default_export": False,
        }


class TestCollections:
    def test_array_keeps_order_and_dedups(self) -> None:
        array = _builder(TargetableESModuleArray)
        array.add('Home from "./home"', 'About from "./about"')
        array.unshift('Banner from "./banner"')
        array.push('Home from "./home"')
        collection, *imports = array.flush()
        assert collection.transform_module == EXPORT_COLLECTION
        assert collection.options == {"type": "array", "bindings": ["Banner", "Home", "About"]}
        assert len(imports) == 3

    def test_array_flush_without_imports(self) -> None:
        assert _builder(TargetableESModuleArray).flush() == []

    def test_object_reports_collisions(self) -> None:
        obj = _builder(TargetableESModuleObject)
        obj.add('Cart from "./cart"', 'Cart from "./cart"')
        obj.add_import('Cart from "./other-cart"')
        collection, *imports = obj.flush()
        assert collection.options["type"] == "object"
        assert collection.options["bindings"] == ["Cart"]
        assert len(collection.options["errors"]) == 1
        assert '"Cart" was already assigned' in collection.options["errors"][0]
        assert len(imports) == 1

    def test_lazy_object(self) -> None:
        lazy = _builder(TargetableLazyModuleObject)
        lazy.add('Checkout from "./checkout"', '{ named } from "./named"')
        lazy.add_import('Checkout from "./elsewhere"')
        (collection,) = lazy.flush()
        assert collection.options["entries"] == [{"binding": "Checkout", "source": "./checkout"}]
        assert len(collection.options["errors"]) == 2
        assert "Only default exports" in collection.options["errors"][0]


class TestTargetableComponent:
    def test_tree_requests(self) -> None:
        component = _builder(TargetableComponent)
        component.append_markup('Foo id="x"', "<Baz />")
        component.remove_element("Spinner", {"global": True})
        component.set_attributes("Button", {"disabled": None, "size": 2})
        component.remove_attributes("Button", ["title"])
        component.append_to_attribute("div", "highlight")
        requests = component.flush()
        assert {request.type for request in requests} == {"tree"}
        assert {request.transform_module for request in requests} == {MODIFY_TREE}
        assert [request.options for request in requests] == [
            {"element": 'Foo id="x"', "operation": "append", "params": {"markup": "<Baz />"}},
            {"element": "Spinner", "operation": "remove", "params": {"global": True}},
            {"element": "Button", "operation": "set_attributes", "params": {"attributes": {"disabled": None, "size": 2}}},
            {"element": "Button", "operation": "remove_attributes", "params": {"attributes": ["title"]}},
            {
                "element": "div",
                "operation": "append_to_attribute",
                "params": {"value": "highlight", "attribute": "class"},
            },
        ]

    def test_component_changes_apply(self) -> None:
        component = _builder(TargetableComponent)
        component.insert_before_markup("Main", "<Header />")
        component.surround_element("Main", '<Layout kind="wide" />')
        component.replace_element("Footer", "<NewFooter />")
        file = "shop/src/App.js"
        result = apply_transforms("<Main /><Footer />", file, _loader_options(file, component.flush()))
        assert result.code == '<Header /><Layout kind="wide"><Main /></Layout><NewFooter />'
        assert result.warnings == []

    def test_lazy_imports(self) -> None:
        component = _builder(TargetableComponent)
        cart = component.add_lazy_import("./cart/Cart.js", "Mini Cart")
        assert cart == "DynamicMiniCart"
        assert component.add_lazy_import("./cart/Cart.js", "Other") == cart
        other = component.add_lazy_import("./cart/Drawer.js", "Mini-Cart")
        assert other.startswith("DynamicMiniCart_")
        assert "$" not in other

        file = "shop/src/App.js"
        result = apply_transforms("export default Main;\n", file, _loader_options(file, component.flush()))
        assert result.code.count('import { lazy as reactLazy } from "react";\n') == 1
        assert 'const DynamicMiniCart = reactLazy(() => import("./cart/Cart.js"));\n' in result.code
        assert f'const {other} = reactLazy(() => import("./cart/Drawer.js"));\n' in result.code
        assert result.code.endswith("export default Main;\n")

    def test_lazy_import_uses_renamed_lazy_binding(self) -> None:
        component = _builder(TargetableComponent)
        component.add_import('reactLazy from "./not-react"')
        name = component.add_lazy_import("./Checkout.js", "Checkout")
        lazy = component.imports[("react", "lazy")]
        assert lazy.binding != "reactLazy"
        (*_, splice) = component.flush()
        assert splice.options == {
            "after": lazy.statement,
            "insert": f'const {name} = {lazy.binding}(() => import("./Checkout.js"));\n',
        }


class TestTargetableSet:
    def test_requires_target_provider(self) -> None:
        with pytest.raises(TypeError, match="TargetProvider"):
            TargetableSet(object())

    @pytest.mark.asyncio
    async def test_builders_publish_through_transform_modules(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "shop_intercept",
            """
            from buildbus.targetables import TargetableSet

            def intercept(targets):
                targetables = TargetableSet.using(targets)
                nav = targetables.es_module_array("shop/nav.js")
                nav.add('Help from "./help.js"')
                assert targetables.es_module_array("shop/nav.js") is nav

                targetables.module("shop/main.js")
            """,
        )
        bus = await make_bus({"shop": {"intercept": entry}}).init()
        collected = []
        await bus.get_targets_of("buildbus").transform_modules.promise(collected.append)
        by_file = {}
        for request in collected:
            by_file.setdefault(request.file_to_transform, []).append(request)
        assert [r.options for r in by_file["shop/nav.js"]][0] == {"type": "array", "bindings": ["Help"]}
        assert all(request.requestor == "shop" for request in collected)
        assert all(request.requestor_file == entry for request in collected)
        assert "shop/main.js" not in by_file

    @pytest.mark.asyncio
    async def test_publisher_runs_before_flush(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "publisher",
            """
            from buildbus.targetables import TargetableSet

            class Publisher:
                def publish(self, own, builder):
                    builder.add_import('Late from "./late.js"')

            def intercept(targets):
                TargetableSet.using(targets).es_module("shop/main.js", Publisher())
            """,
        )
        bus = await make_bus({"shop": {"intercept": entry}}).init()
        collected = []
        await bus.get_targets_of("buildbus").transform_modules.promise(collected.append)
        assert [request.options["insert"] for request in collected] == ['import Late from "./late.js";\n']

    @pytest.mark.asyncio
    async def test_builder_class_mismatch(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "mismatch",
            """
            from buildbus.targetables import TargetableSet

            def intercept(targets):
                targetables = TargetableSet.using(targets)
                targetables.module("shop/main.js")
                targetables.component("shop/main.js")
            """,
        )
        with pytest.raises(TypeError, match="already been targeted"):
            await make_bus({"shop": {"intercept": entry}}).init()

    @pytest.mark.asyncio
    async def test_special_features_and_env_vars(self, write_entry, make_bus) -> None:
        entry = write_entry(
            "features",
            """
            from buildbus.targetables import TargetableSet

            def intercept(targets):
                targetables = TargetableSet.using(targets)
                targetables.set_special_features("css_modules", ["graphql_queries"], {"i18n": False})
                targetables.define_env_vars(
                    "Shop",
                    [{"name": "SHOP_URL", "type": "url", "desc": "Backend URL"}],
                )
            """,
        )
        bus = await make_bus({"shop": {"intercept": entry}}).init()
        features = {}
        bus.get_targets_of("buildbus").special_features.call(features)
        assert features == {"shop": {"css_modules": True, "graphql_queries": True, "i18n": False}}

        definitions = EnvVarDefinitions()
        bus.get_targets_of("buildbus").env_var_definitions.call(definitions)
        assert definitions.variables()["SHOP_URL"].type == "url"
        assert definitions.sections[0].name == "Shop"

