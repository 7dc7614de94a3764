"""Tests that the schema migration matches the ORM models."""

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import MagicMock, patch

import sqlalchemy as sa

from app.models import Base

VERSIONS_DIR = Path(__file__).resolve().parents[2] / "alembic" / "versions"


def migration_path() -> Path:
    (path,) = VERSIONS_DIR.glob("*_add_bill_and_clause_tables.py")
    return path


def mock_op() -> MagicMock:
    """Stand-in for alembic.op; op.f() passes constraint names through."""
    op = MagicMock()
    op.f.side_effect = lambda name: name
    return op


def load_migration() -> ModuleType:
    path = migration_path()
    spec = importlib.util.spec_from_file_location("add_bill_and_clause_tables", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestBillClauseMigration:
    """Tests for the bill/bill_clause/clause_analytics migration."""

    def test_is_base_revision(self) -> None:
        migration = load_migration()
        assert migration.down_revision is None
        assert migration_path().name.startswith(f"{migration.revision}_")

    def test_upgrade_creates_model_tables(self) -> None:
        migration = load_migration()
        op = mock_op()

        with patch.object(migration, "op", op):
            migration.upgrade()

        created = [c.args[0] for c in op.create_table.call_args_list]
        assert created == ["bill", "bill_clause", "clause_analytics"]
        assert set(created) == set(Base.metadata.tables)

    def test_upgrade_columns_match_models(self) -> None:
        migration = load_migration()
        op = mock_op()

        with patch.object(migration, "op", op):
            migration.upgrade()

        for call in op.create_table.call_args_list:
            table_name, *elements = call.args
            columns = {e.name for e in elements if isinstance(e, sa.Column)}
            assert columns == {c.name for c in Base.metadata.tables[table_name].columns}

    def test_upgrade_creates_model_indexes(self) -> None:
        migration = load_migration()
        op = mock_op()

        with patch.object(migration, "op", op):
            migration.upgrade()

        created = {c.args[0] for c in op.create_index.call_args_list}
        model_indexes = {i.name for i in Base.metadata.tables["bill_clause"].indexes}
        assert created == model_indexes

    def test_display_order_unique_per_bill(self) -> None:
        migration = load_migration()
        op = mock_op()

        with patch.object(migration, "op", op):
            migration.upgrade()

        (clause_table,) = [
            c for c in op.create_table.call_args_list if c.args[0] == "bill_clause"
        ]
        table = sa.Table("bill_clause", sa.MetaData(), *clause_table.args[1:])
        unique = {
            tuple(c.name for c in constraint.columns)
            for constraint in table.constraints
            if isinstance(constraint, sa.UniqueConstraint)
        }
        assert ("bill_id", "display_order") in unique

        model_unique = {
            tuple(c.name for c in constraint.columns)
            for constraint in Base.metadata.tables["bill_clause"].constraints
            if isinstance(constraint, sa.UniqueConstraint)
        }
        assert model_unique == unique

    def test_downgrade_drops_tables_children_first(self) -> None:
        migration = load_migration()
        op = mock_op()
        enum = MagicMock()

        with patch.object(migration, "op", op), patch.object(migration.sa, "Enum", enum):
            migration.downgrade()

        dropped = [c.args[0] for c in op.drop_table.call_args_list]
        assert dropped == ["clause_analytics", "bill_clause", "bill"]
        enum.assert_called_once_with(name="clause_type")
