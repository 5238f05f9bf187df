from __future__ import annotations

from rapor.infrastructure.schema_inspector import DEFAULT_PRIMARY_KEY, ColumnDefinition, SqlSchemaInspector


def test_primary_key_and_columns(source_executor) -> None:
    source_executor.execute(
        "CREATE TABLE tabel_siswa (peserta_didik_id TEXT PRIMARY KEY, nm_siswa VARCHAR(100) NOT NULL, nis TEXT)"
    )
    inspector = SqlSchemaInspector(source_executor)

    assert inspector.get_primary_key("tabel_siswa", "main") == "peserta_didik_id"
    assert inspector.get_columns("tabel_siswa") == ["peserta_didik_id", "nm_siswa", "nis"]
    assert inspector.has_column("tabel_siswa", "nis")
    assert not inspector.has_column("tabel_siswa", "is_locally_edited")
    definitions = inspector.get_column_definitions("tabel_siswa")
    assert definitions[1].name == "nm_siswa"
    assert definitions[1].is_nullable is False


def test_missing_primary_key_falls_back_to_id(source_executor, caplog) -> None:
    source_executor.execute("CREATE TABLE log_table (nis TEXT, pesan TEXT)")
    inspector = SqlSchemaInspector(source_executor)

    assert inspector.find_primary_key("log_table") is None
    assert inspector.get_primary_key("log_table") == DEFAULT_PRIMARY_KEY
    assert "No primary key found" in caplog.text


def test_table_listing(source_executor) -> None:
    source_executor.execute("CREATE TABLE b_table (id INTEGER)")
    source_executor.execute("CREATE TABLE a_table (id INTEGER)")
    inspector = SqlSchemaInspector(source_executor)

    assert inspector.table_exists("a_table", "main")
    assert not inspector.table_exists("c_table")
    assert inspector.list_tables("main") == ["a_table", "b_table"]
    assert "main" in inspector.list_schemas()


def test_ddl_type_mapping() -> None:
    assert ColumnDefinition("nm", "character varying", character_maximum_length=50).ddl_type() == "VARCHAR(50)"
    assert ColumnDefinition("nm", "character varying").ddl_type() == "TEXT"
    assert ColumnDefinition("n", "numeric", numeric_precision=5, numeric_scale=2).ddl_type() == "NUMERIC(5,2)"
    assert ColumnDefinition("n", "numeric").ddl_type() == "NUMERIC"
    assert ColumnDefinition("t", "timestamp without time zone").ddl_type() == "TIMESTAMP"
    assert ColumnDefinition("u", "uuid").ddl_type() == "UUID"
    assert ColumnDefinition("x", "INTEGER").ddl_type() == "INTEGER"
