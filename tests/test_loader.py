"""
tests/test_loader.py
Unit tests for modelgen.loader (the import hook).

Generated classes must be importable with ordinary import statements once
the generator is enabled, unknown names must fail the usual way, and
disabling must leave sys.modules / sys.meta_path as they were.
"""

from __future__ import annotations

import importlib
import pathlib
import sys
import textwrap
import uuid
from typing import Any, Callable, Dict

import pytest

from modelgen.generator import ModelGenerator
from modelgen.loader import ModelFinder
from modelgen.record import Record
from modelgen.schema import InMemorySchemaSource
from modelgen.table import Table

GeneratorFactory = Callable[..., ModelGenerator]


def _import_names(namespace: str, *names: str) -> Dict[str, Any]:
    scope: Dict[str, Any] = {}
    exec(f"from {namespace} import {', '.join(names)}", scope)
    return scope


# ===========================================================================
# Empty (virtual) namespaces
# ===========================================================================


class TestVirtualNamespace:
    def test_from_import(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source).enable()
        scope = _import_names(model_namespace, "Users", "UsersTable")

        assert issubclass(scope["Users"], Record)
        assert issubclass(scope["UsersTable"], Table)
        assert scope["Users"].__module__ == model_namespace

    def test_missing_name_raises_import_error(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source).enable()
        with pytest.raises(ImportError):
            _import_names(model_namespace, "Orders")

    def test_missing_attribute_raises_attribute_error(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source).enable()
        module = importlib.import_module(model_namespace)
        with pytest.raises(AttributeError):
            module.Orders
        with pytest.raises(AttributeError):
            module._private

    def test_class_is_cached_on_module(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        generator = make_generator(users_source).enable()
        module = importlib.import_module(model_namespace)
        users_cls = module.Users
        assert vars(module)["Users"] is users_cls
        assert generator.resolve(f"{model_namespace}.Users").model_class is users_cls

    def test_base_namespace_import(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source).enable()
        base = _import_names(f"{model_namespace}.base", "Users")["Users"]
        model = _import_names(model_namespace, "Users")["Users"]
        assert base is not model
        assert base.__module__ == f"{model_namespace}.base"

    def test_unrelated_imports_untouched(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource
    ) -> None:
        make_generator(users_source).enable()
        with pytest.raises(ModuleNotFoundError):
            importlib.import_module(f"not_a_model_ns_{uuid.uuid4().hex[:8]}")

    def test_create_through_gateway(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source).enable()
        users_table = _import_names(model_namespace, "UsersTable")["UsersTable"]()
        user = users_table.create(id="9", name="Arnold")
        assert user.id == 9
        assert user.active is True
        assert user.db_table is users_table


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestLifecycle:
    def test_enable_is_idempotent(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource
    ) -> None:
        generator = make_generator(users_source)
        generator.enable()
        generator.enable()
        assert sum(isinstance(f, ModelFinder) and f is generator._finder for f in sys.meta_path) == 1

    def test_disable_restores_state(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        generator = make_generator(users_source).enable()
        _import_names(model_namespace, "Users")
        root = model_namespace.split(".")[0]
        assert root in sys.modules

        generator.disable()

        assert not generator.enabled
        assert generator._finder not in sys.meta_path
        assert root not in sys.modules
        assert model_namespace not in sys.modules
        with pytest.raises(ModuleNotFoundError):
            importlib.import_module(model_namespace)

    def test_close_forgets_classes(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        generator = make_generator(users_source).enable()
        _import_names(model_namespace, "Users")
        generator.close()
        assert generator.registry.activated_names == []

    def test_without_enable_nothing_is_importable(
        self, make_generator: GeneratorFactory, users_source: InMemorySchemaSource, model_namespace: str
    ) -> None:
        make_generator(users_source)
        with pytest.raises(ModuleNotFoundError):
            importlib.import_module(model_namespace)


# ===========================================================================
# Real packages on disk
# ===========================================================================


@pytest.fixture()
def real_package(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> Any:
    """A real ``<root>.models`` package with its own names and ``__getattr__``."""
    root = f"modelgen_pkg_{uuid.uuid4().hex[:10]}"
    package_dir = tmp_path / "src" / root / "models"
    package_dir.mkdir(parents=True)
    (package_dir.parent / "__init__.py").write_text("", encoding="utf-8")
    (package_dir / "__init__.py").write_text(
        textwrap.dedent(
            """
            EXISTING = "kept"


            def __getattr__(name):
                if name == "LEGACY":
                    return "legacy"
                raise AttributeError(name)
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path / "src"))
    yield f"{root}.models"
    for name in list(sys.modules):
        if name == root or name.startswith(root + "."):
            del sys.modules[name]


class TestRealPackage:
    def _source(self, namespace: str, users_definition: Dict[str, Any]) -> InMemorySchemaSource:
        return InMemorySchemaSource({"users": users_definition}, namespace=namespace)

    def test_hook_added_to_real_package(
        self, make_generator: GeneratorFactory, users_definition: Dict[str, Any], real_package: str
    ) -> None:
        make_generator(self._source(real_package, users_definition)).enable()
        module = importlib.import_module(real_package)

        assert module.__file__ is not None
        assert module.EXISTING == "kept"
        assert module.LEGACY == "legacy"
        assert issubclass(module.Users, Record)
        with pytest.raises(AttributeError):
            module.Missing

    def test_package_imported_before_enable(
        self, make_generator: GeneratorFactory, users_definition: Dict[str, Any], real_package: str
    ) -> None:
        module = importlib.import_module(real_package)
        generator = make_generator(self._source(real_package, users_definition)).enable()

        assert issubclass(module.UsersTable, Table)

        generator.disable()
        assert real_package in sys.modules
        assert module.LEGACY == "legacy"
        with pytest.raises(AttributeError):
            module.Orders
