"""
Tests for RowSnapshot.
"""

import pytest

from worldserver.src.schemas.snapshot import RowSnapshot


@pytest.fixture
def snapshot():
    return RowSnapshot(
        {"id": 7, "name": "Bob", "level": 8},
        {"spells": [{"name": "exura"}, {"name": "utevo lux"}]},
    )


class TestRowSnapshot:
    """Tests for the read-only snapshot contract"""

    def test_column_returns_primary_row_values(self, snapshot):
        assert snapshot.column("level") == 8

    def test_unknown_column_raises(self, snapshot):
        with pytest.raises(KeyError):
            snapshot.column("missing")

    def test_primary_row_cannot_be_mutated(self, snapshot):
        with pytest.raises(TypeError):
            snapshot.row["level"] = 9

    def test_source_row_changes_do_not_leak_in(self):
        source = {"id": 1, "name": "Alice"}
        snapshot = RowSnapshot(source)

        source["name"] = "Mallory"

        assert snapshot.column("name") == "Alice"

    def test_cursors_are_independent(self, snapshot):
        first = snapshot.cursor("spells")
        next(first)

        assert [row["name"] for row in snapshot.cursor("spells")] == ["exura", "utevo lux"]

    def test_missing_facet_yields_nothing(self, snapshot):
        assert list(snapshot.cursor("kills")) == []
        assert snapshot.first("guild") is None

    def test_opened_cursors_are_recorded(self, snapshot):
        snapshot.first("guild")
        list(snapshot.cursor("spells"))

        assert snapshot.opened_cursors == frozenset({"guild", "spells"})

    def test_child_rows_cannot_be_mutated(self, snapshot):
        row = snapshot.first("spells")

        with pytest.raises(TypeError):
            row["name"] = "exori"
