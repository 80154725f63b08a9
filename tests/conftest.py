"""
tests/conftest.py
Shared fixtures for the modelgen test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.  Every test
gets its own model namespace, so generated classes and the empty packages
created by the import hook never leak between tests.
"""

from __future__ import annotations

import copy
import pathlib
import sys
import uuid
from typing import Any, Callable, Dict, Iterator, List

import pytest
import yaml

from modelgen.generator import ModelGenerator
from modelgen.models import GeneratorConfig, TableSchema
from modelgen.registry import ModelRegistry
from modelgen.schema import InMemorySchemaSource, load_table_schema
from modelgen.templates import CodeSynthesizer


# ---------------------------------------------------------------------------
# Table definitions
# ---------------------------------------------------------------------------

USERS_TABLE: Dict[str, Any] = {
    "primary_key": ["id"],
    "fields": {
        "id": {"type": "int", "default": None},
        "name": {"type": "string", "default": ""},
        "active": {"type": "bool", "default": True},
    },
}

BAD_TABLE: Dict[str, Any] = {
    "primary_key": ["id"],
    "fields": {
        "id": {"type": "int", "default": None},
        "first name": {"type": "string", "default": ""},
    },
}


@pytest.fixture()
def users_definition() -> Dict[str, Any]:
    """Deep copy of the users table so each test can mutate freely."""
    return copy.deepcopy(USERS_TABLE)


@pytest.fixture()
def bad_definition() -> Dict[str, Any]:
    return copy.deepcopy(BAD_TABLE)


# ---------------------------------------------------------------------------
# Namespaces & sources
# ---------------------------------------------------------------------------


@pytest.fixture()
def model_namespace() -> Iterator[str]:
    """A model namespace unique to the test; its modules are dropped afterwards."""
    root: str = f"modelgen_test_{uuid.uuid4().hex[:10]}"
    yield f"{root}.models"
    for name in list(sys.modules):
        if name == root or name.startswith(root + "."):
            del sys.modules[name]


@pytest.fixture()
def users_source(model_namespace: str, users_definition: Dict[str, Any]) -> InMemorySchemaSource:
    return InMemorySchemaSource({"users": users_definition}, namespace=model_namespace)


@pytest.fixture()
def users_schema(users_source: InMemorySchemaSource) -> TableSchema:
    return load_table_schema(users_source, "users")


@pytest.fixture()
def schema_yaml_path(
    model_namespace: str,
    users_definition: Dict[str, Any],
    tmp_path: pathlib.Path,
) -> pathlib.Path:
    """Write the users schema to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    data: Dict[str, Any] = {"namespace": model_namespace, "tables": {"users": users_definition}}
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# Pipeline pieces
# ---------------------------------------------------------------------------


@pytest.fixture()
def cache_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "cache"


@pytest.fixture()
def registry() -> Iterator[ModelRegistry]:
    reg = ModelRegistry()
    yield reg
    reg.close()


@pytest.fixture()
def synthesizer(registry: ModelRegistry, model_namespace: str) -> CodeSynthesizer:
    return CodeSynthesizer(registry, model_namespace=model_namespace, connection="memory")


@pytest.fixture()
def make_generator(
    cache_dir: pathlib.Path,
) -> Iterator[Callable[..., ModelGenerator]]:
    """
    Factory for generators that are closed at teardown.

    Keyword arguments become ``GeneratorConfig`` fields; the cache defaults
    to the test's ``cache_dir`` (pass ``cache_path=None`` to disable it).
    """
    created: List[ModelGenerator] = []

    def _make(source: Any, **config: Any) -> ModelGenerator:
        config.setdefault("cache_path", cache_dir)
        generator = ModelGenerator(source, GeneratorConfig(**config))
        created.append(generator)
        return generator

    yield _make

    for generator in created:
        generator.close()
