"""
Unit tests for SQL dialects
"""

import pytest
from models.base import CdcOperation, FieldType
from schemas.events import RecordSchema, SchemaField
from schemas.records import ProcessedRecord
from ingestion.dialects import (
    GenericDialect,
    MySqlDialect,
    PostgreSqlDialect,
    dialect_for_name,
)


def struct(**fields) -> RecordSchema:
    return RecordSchema(
        type=FieldType.STRUCT,
        fields=[SchemaField(name=name, field_schema=RecordSchema(type=t)) for name, t in fields.items()],
    )


def record(value, value_schema=None) -> ProcessedRecord:
    return ProcessedRecord(
        target_table="orders",
        operation=CdcOperation.INSERT,
        value=value,
        value_schema=value_schema,
    )


ALL_DIALECTS = [GenericDialect(), MySqlDialect(), PostgreSqlDialect()]


class TestSharedStatements:
    """Statements that read the same in every dialect"""

    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_insert(self, dialect):
        sql = dialect.build_insert("orders", ["id", "name"])
        assert sql == "INSERT INTO orders (id, name) VALUES (?, ?)"

    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_update(self, dialect):
        sql = dialect.build_update("orders", ["id", "name", "qty"], ["id"])
        assert sql == "UPDATE orders SET name = ?, qty = ? WHERE id = ?"

    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_delete(self, dialect):
        sql = dialect.build_delete("orders", ["id", "region"])
        assert sql == "DELETE FROM orders WHERE id = ? AND region = ?"

    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_insert_column_order_follows_value(self, dialect):
        sample = record({"id": 1, "name": "a"})
        sql = dialect.build_insert(sample.target_table, sample.columns())
        assert sql == "INSERT INTO orders (id, name) VALUES (?, ?)"


class TestUpsert:
    """Test dialect-specific conflict resolution"""

    def test_generic_degrades_to_insert(self):
        sql = GenericDialect().build_upsert("orders", ["id", "name"], ["id"])
        assert sql == "INSERT INTO orders (id, name) VALUES (?, ?)"

    def test_mysql_duplicate_key_update(self):
        sql = MySqlDialect().build_upsert("orders", ["id", "name"], ["id"])
        assert sql == (
            "INSERT INTO orders (id, name) VALUES (?, ?) "
            "ON DUPLICATE KEY UPDATE id = VALUES(id), name = VALUES(name)"
        )

    def test_postgres_do_update_non_key_columns(self):
        sql = PostgreSqlDialect().build_upsert("orders", ["id", "name", "qty"], ["id"])
        assert sql == (
            "INSERT INTO orders (id, name, qty) VALUES (?, ?, ?) "
            "ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name, qty = EXCLUDED.qty"
        )

    def test_postgres_do_nothing_when_all_columns_are_keys(self):
        sql = PostgreSqlDialect().build_upsert("orders", ["id", "region"], ["id", "region"])
        assert sql == (
            "INSERT INTO orders (id, region) VALUES (?, ?) "
            "ON CONFLICT (id, region) DO NOTHING"
        )

    def test_postgres_without_keys_degrades_to_insert(self):
        sql = PostgreSqlDialect().build_upsert("orders", ["id", "name"], [])
        assert sql == "INSERT INTO orders (id, name) VALUES (?, ?)"


class TestCreateTable:
    """Test CREATE TABLE generation and type mapping"""

    def test_generic_from_schema(self):
        schema = struct(id=FieldType.INT32, name=FieldType.STRING, tags=FieldType.ARRAY)
        sample = record({"id": 1, "name": "a", "tags": []}, schema)

        sql = GenericDialect().build_create_table("orders", sample, ["id"])

        assert sql == (
            "CREATE TABLE orders (id INTEGER, name VARCHAR(255), tags VARCHAR(1024), "
            "PRIMARY KEY (id))"
        )

    def test_mysql_from_schema(self):
        schema = struct(
            id=FieldType.INT64,
            small=FieldType.INT8,
            price=FieldType.FLOAT64,
            ok=FieldType.BOOLEAN,
            blob=FieldType.BYTES,
        )
        sample = record({"id": 1}, schema)

        sql = MySqlDialect().build_create_table("orders", sample, ["id"])

        assert sql == (
            "CREATE TABLE orders (id BIGINT, small TINYINT, price DOUBLE, ok BOOLEAN, "
            "blob VARBINARY(255), PRIMARY KEY (id))"
        )

    def test_mysql_text_key_column_becomes_varchar(self):
        sample = record({"id": None, "note": None})

        sql = MySqlDialect().build_create_table("orders", sample, ["id"])

        assert sql == "CREATE TABLE orders (id VARCHAR(255), note TEXT, PRIMARY KEY (id))"

    def test_postgres_from_schema(self):
        schema = struct(
            id=FieldType.INT32,
            small=FieldType.INT8,
            ratio=FieldType.FLOAT32,
            blob=FieldType.BYTES,
            extra=FieldType.MAP,
        )
        sample = record({"id": 1}, schema)

        sql = PostgreSqlDialect().build_create_table("orders", sample, ["id"])

        assert sql == (
            "CREATE TABLE orders (id INT, small SMALLINT, ratio REAL, blob BYTEA, extra TEXT, "
            "PRIMARY KEY (id))"
        )

    def test_generic_schema_less_inference(self):
        sample = record({"id": 1, "price": 1.5, "ok": True, "name": "x", "long": "y" * 300, "gone": None})

        sql = GenericDialect().build_create_table("orders", sample, [])

        assert sql == (
            "CREATE TABLE orders (id BIGINT, price DOUBLE, ok BOOLEAN, name VARCHAR(255), "
            "long VARCHAR(1024), gone VARCHAR(1024))"
        )

    def test_postgres_schema_less_inference(self):
        sample = record({"id": 1, "price": 1.5, "ok": True, "name": "x", "long": "y" * 300})

        sql = PostgreSqlDialect().build_create_table("orders", sample, ["id"])

        assert sql == (
            "CREATE TABLE orders (id BIGINT, price DOUBLE PRECISION, ok BOOLEAN, "
            "name VARCHAR(1024), long TEXT, PRIMARY KEY (id))"
        )

    def test_key_fields_absent_from_sample_are_not_primary_keys(self):
        sample = record({"name": "a"})
        sql = GenericDialect().build_create_table("orders", sample, ["id"])
        assert sql == "CREATE TABLE orders (name VARCHAR(255))"


class TestAlter:
    """Test ALTER TABLE generation"""

    def test_generic_one_statement_per_column(self):
        sample = record({"id": 1, "note": "x", "qty": 3})

        statements = GenericDialect().build_alter("orders", ["note", "qty"], sample)

        assert statements == [
            "ALTER TABLE orders ADD COLUMN note VARCHAR(255)",
            "ALTER TABLE orders ADD COLUMN qty BIGINT",
        ]

    @pytest.mark.parametrize("dialect,qty_type", [
        (MySqlDialect(), "BIGINT"),
        (PostgreSqlDialect(), "BIGINT"),
    ])
    def test_combined_alter(self, dialect, qty_type):
        sample = record({"id": 1, "note": "x", "qty": 3})

        statements = dialect.build_alter("orders", ["note", "qty"], sample)

        assert len(statements) == 1
        assert statements[0].startswith("ALTER TABLE orders ADD COLUMN note ")
        assert statements[0].endswith(f", ADD COLUMN qty {qty_type}")

    def test_nothing_missing(self):
        assert GenericDialect().build_alter("orders", [], record({"id": 1})) == []


class TestIdentifiers:
    """Test metadata identifier normalization"""

    def test_postgres_folds_to_lower_case(self):
        assert PostgreSqlDialect().normalize_identifier_for_metadata("ORDERS") == "orders"

    @pytest.mark.parametrize("dialect", [GenericDialect(), MySqlDialect()])
    def test_identity(self, dialect):
        assert dialect.normalize_identifier_for_metadata("ORDERS") == "ORDERS"


class TestDialectFactory:
    """Test dialect selection by database product"""

    @pytest.mark.parametrize("name,dialect_class", [
        ("postgresql", PostgreSqlDialect),
        ("mysql", MySqlDialect),
        ("mariadb", MySqlDialect),
        ("MySQL", MySqlDialect),
        ("sqlite", GenericDialect),
        ("oracle", GenericDialect),
        (None, GenericDialect),
    ])
    def test_selection(self, name, dialect_class):
        assert type(dialect_for_name(name)) is dialect_class

    def test_names(self):
        assert GenericDialect().name == "Generic"
        assert MySqlDialect().name == "MySQL"
        assert PostgreSqlDialect().name == "PostgreSQL"
