"""
tests/test_store.py
Unit tests for modelgen.store (ArtifactStore).

Tests cover:
- cache paths per qualified name
- persist / reload with fingerprint validation
- stale and tampered cache files
- transient activation without a cache root
- write failures
"""

from __future__ import annotations

import pathlib
import sys
import types

import pytest

from modelgen.errors import PersistenceFailure
from modelgen.models import ArtifactKind, GeneratedArtifact, TableSchema
from modelgen.record import Record
from modelgen.registry import ModelRegistry
from modelgen.store import ArtifactStore, embedded_fingerprint
from modelgen.templates import CodeSynthesizer


@pytest.fixture()
def user_artifact(synthesizer: CodeSynthesizer, users_schema: TableSchema, model_namespace: str) -> GeneratedArtifact:
    return synthesizer.synthesize_record(users_schema, "Users", model_namespace)


class TestEmbeddedFingerprint:
    def test_first_marker_line(self) -> None:
        text = '"""\nx\n\n@checksum abc123\n@checksum def456\n"""\n'
        assert embedded_fingerprint(text) == "abc123"

    def test_indented_marker(self) -> None:
        assert embedded_fingerprint("    @checksum 0f0f  \n") == "0f0f"

    def test_marker_must_own_the_line(self) -> None:
        assert embedded_fingerprint("# see @checksum abc\n") is None
        assert embedded_fingerprint("@checksum abc trailing\n") is None

    def test_no_marker(self) -> None:
        assert embedded_fingerprint("x = 1\n") is None


class TestPaths:
    def test_dots_become_directories(self, registry: ModelRegistry, tmp_path: pathlib.Path) -> None:
        store = ArtifactStore(registry, tmp_path)
        assert store.path_for("app.models.User") == tmp_path / "app" / "models" / "User.py"

    def test_no_collisions(self, registry: ModelRegistry, tmp_path: pathlib.Path) -> None:
        store = ArtifactStore(registry, tmp_path)
        names = [
            "app.models.User",
            "app.models.base.User",
            "app.models.UserTable",
            "app.models_base.User",
            "app.models.base.UserTable",
        ]
        assert len({store.path_for(n) for n in names}) == len(names)

    def test_custom_extension(self, registry: ModelRegistry, tmp_path: pathlib.Path) -> None:
        store = ArtifactStore(registry, tmp_path, extension=".pyi")
        assert store.path_for("a.B") == tmp_path / "a" / "B.pyi"

    def test_disabled(self, registry: ModelRegistry) -> None:
        store = ArtifactStore(registry)
        assert not store.enabled
        assert store.path_for("a.B") is None


class TestPersistAndLoad:
    def test_persist_writes_and_activates(
        self, registry: ModelRegistry, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        store = ArtifactStore(registry, cache_dir)
        activated = store.persist_and_activate(user_artifact)

        assert activated is not None
        assert activated.persisted
        assert activated.path is not None and activated.path.is_file()
        assert activated.path.read_text(encoding="utf-8") == user_artifact.source_text
        assert issubclass(activated.model_class, Record)
        assert activated.model_class.__module__ == user_artifact.namespace
        assert registry.get_activated(user_artifact.qualified_name) is activated.model_class

    def test_fresh_store_hits_cache(
        self, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        first, second = ModelRegistry(), ModelRegistry()
        try:
            ArtifactStore(first, cache_dir).persist_and_activate(user_artifact)
            hit = ArtifactStore(second, cache_dir).try_load(
                user_artifact.qualified_name, user_artifact.fingerprint
            )
            assert hit is not None
            assert hit.artifact.kind is ArtifactKind.RECORD
            assert hit.artifact.table_name == "users"
            assert hit.model_class.__fields__ == ("id", "name", "active")
            assert second.is_activated(user_artifact.qualified_name)
        finally:
            first.close()
            second.close()

    def test_stale_fingerprint_misses_and_keeps_file(
        self, registry: ModelRegistry, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        store = ArtifactStore(registry, cache_dir)
        store.persist_and_activate(user_artifact)
        path = store.path_for(user_artifact.qualified_name)

        assert store.try_load(user_artifact.qualified_name, "0" * 64) is None
        assert path.read_text(encoding="utf-8") == user_artifact.source_text

    def test_marker_compared_exactly(
        self, registry: ModelRegistry, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        store = ArtifactStore(registry, cache_dir)
        path = store.path_for(user_artifact.qualified_name)
        fp = user_artifact.fingerprint

        path.parent.mkdir(parents=True)
        path.write_text(user_artifact.source_text.replace(fp, fp + "00"), encoding="utf-8")
        assert store.try_load(user_artifact.qualified_name, fp) is None

        path.write_text(user_artifact.source_text.replace(fp, fp[:-1]), encoding="utf-8")
        assert store.try_load(user_artifact.qualified_name, fp) is None

    def test_missing_marker_misses(
        self, registry: ModelRegistry, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        store = ArtifactStore(registry, cache_dir)
        path = store.path_for(user_artifact.qualified_name)
        path.parent.mkdir(parents=True)
        path.write_text("class User: pass\n", encoding="utf-8")
        assert store.try_load(user_artifact.qualified_name, user_artifact.fingerprint) is None

    def test_broken_file_with_matching_marker_misses(
        self, registry: ModelRegistry, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        store = ArtifactStore(registry, cache_dir)
        path = store.path_for(user_artifact.qualified_name)
        path.parent.mkdir(parents=True)
        path.write_text(f'"""\n@checksum {user_artifact.fingerprint}\n"""\nclass (:\n', encoding="utf-8")
        assert store.try_load(user_artifact.qualified_name, user_artifact.fingerprint) is None
        assert not registry.is_activated(user_artifact.qualified_name)

    def test_overwrite_leaves_no_temp_files(
        self, cache_dir: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        for _ in range(2):
            registry = ModelRegistry()
            ArtifactStore(registry, cache_dir).persist_and_activate(user_artifact)
            registry.close()
        directory = ArtifactStore(ModelRegistry(), cache_dir).path_for(user_artifact.qualified_name).parent
        assert sorted(p.name for p in directory.iterdir()) == ["Users.py"]

    def test_write_failure(
        self, registry: ModelRegistry, tmp_path: pathlib.Path, user_artifact: GeneratedArtifact
    ) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        store = ArtifactStore(registry, blocker)
        with pytest.raises(PersistenceFailure) as exc_info:
            store.persist_and_activate(user_artifact)
        assert isinstance(exc_info.value.cause, OSError)
        assert not registry.is_activated(user_artifact.qualified_name)


class TestTransient:
    def test_no_cache_root(self, registry: ModelRegistry, user_artifact: GeneratedArtifact) -> None:
        store = ArtifactStore(registry)
        assert store.try_load(user_artifact.qualified_name, user_artifact.fingerprint) is None
        assert store.persist_and_activate(user_artifact) is None

        activated = store.activate_transient(user_artifact)
        assert not activated.persisted
        assert activated.path is None
        assert activated.model_class(id="3").id == 3
        assert registry.get_activated(user_artifact.qualified_name) is activated.model_class

    def test_activation_is_terminal(self, registry: ModelRegistry, user_artifact: GeneratedArtifact) -> None:
        store = ArtifactStore(registry)
        first = store.activate_transient(user_artifact).model_class
        second = store.activate_transient(user_artifact).model_class
        assert first is second

    def test_class_set_on_imported_namespace(
        self, registry: ModelRegistry, user_artifact: GeneratedArtifact, model_namespace: str
    ) -> None:
        module = types.ModuleType(model_namespace)
        sys.modules[model_namespace] = module
        model_class = ArtifactStore(registry).activate_transient(user_artifact).model_class
        assert module.Users is model_class

        registry.close()
        assert not hasattr(module, "Users")
