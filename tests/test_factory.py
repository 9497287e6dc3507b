"""Tests for the table factory."""

from pathlib import Path

import pytest

from sheetforge.exceptions import NoCapableTableError, SchemaError
from sheetforge.factory import TableFactory
from sheetforge.models.columns import Column
from sheetforge.models.definition import Definition
from sheetforge.tables.declared import DeclaredTable

from conftest import FakeExecutor, SimpleTable


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


class TestTableFactory:
    def test_register_and_all(self, executor):
        a = SimpleTable("a", [Column.count("visits")], executor)
        b = SimpleTable("b", [Column.count("orders")], executor)
        factory = TableFactory().register(a).register(b)

        assert factory.all() == [a, b]
        assert len(factory) == 2
        assert list(factory) == [a, b]

    def test_all_is_a_copy(self, executor):
        factory = TableFactory([SimpleTable("a", [Column.count("visits")], executor)])
        factory.all().clear()
        assert len(factory) == 1

    def test_find_by_name(self, executor):
        a = SimpleTable("a", [Column.count("visits")], executor)
        factory = TableFactory([a])
        assert factory.find_by_name("a") is a
        assert factory.find_by_name("missing") is None

    def test_duplicate_names_first_wins(self, executor):
        first = SimpleTable("events", [Column.count("visits")], executor)
        second = SimpleTable("events", [Column.count("signups")], executor)
        factory = TableFactory([first, second])

        assert factory.find_by_name("events") is first
        # the shadowed table still answers capability searches
        assert factory.find_capable(Definition.make("signups")) is second

    def test_find_capable_registration_order(self, executor):
        a = SimpleTable("a", [Column.count("visits")], executor)
        b = SimpleTable("b", [Column.count("visits"), Column.string("country", "c")], executor)
        factory = TableFactory([a, b])

        assert factory.find_capable(Definition.make("visits")) is a
        assert factory.find_capable(Definition.make("visits").add_dimension("country")) is b

    def test_no_capable_table(self, executor):
        factory = TableFactory([SimpleTable("a", [Column.count("visits")], executor)])
        with pytest.raises(NoCapableTableError) as exc_info:
            factory.find_capable(Definition.make("visits").add_dimension("country"))

        assert exc_info.value.code == 1
        assert exc_info.value.columns == ["country", "visits"]
        assert str(exc_info.value) == (
            "The selected dimensions and metrics cannot be queried together."
        )

    def test_empty_factory(self):
        with pytest.raises(NoCapableTableError):
            TableFactory().find_capable(Definition.make("visits"))


class TestLoadDirectory:
    def test_load_directory(self, tables_dir: Path, executor):
        factory = TableFactory().load_directory(tables_dir, executor)
        assert [t.name for t in factory] == ["events", "orders"]
        assert all(isinstance(t, DeclaredTable) for t in factory)

    def test_load_appends(self, tables_dir: Path, executor):
        existing = SimpleTable("custom", [Column.count("visits")], executor)
        factory = TableFactory([existing]).load_directory(tables_dir, executor)

        assert factory.all()[0] is existing
        assert factory.find_capable(Definition.make("visits")) is existing

    def test_missing_directory(self, tmp_path: Path, executor):
        with pytest.raises(FileNotFoundError):
            TableFactory().load_directory(tmp_path / "nope", executor)

    def test_empty_directory(self, tmp_path: Path, executor):
        with pytest.raises(SchemaError):
            TableFactory().load_directory(tmp_path, executor)
