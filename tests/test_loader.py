import pytest

from conftest import fetch_rows, gzipped
from postgres_to_redshift.catalog.model import ColumnDescriptor, TableDescriptor
from postgres_to_redshift.errors import LoadError
from postgres_to_redshift.storage.loader import Loader
from postgres_to_redshift.storage.warehouse import RedshiftWarehouse
from postgres_to_redshift.utils.uri import ConnectionParams

KEY = "export/events.psv.gz"


class RecordingWarehouse:
    def __init__(self, fail_on=None):
        self.statements = []
        self.fail_on = fail_on

    def execute(self, sql, params=None):
        self.statements.append(sql)
        if self.fail_on and sql.startswith(self.fail_on):
            raise RuntimeError("boom")

    def bulk_load(self, qualified_table, table, key):
        self.execute(f"COPY {qualified_table} FROM {key}")


def test_round_trip_into_duckdb(warehouse, store, logger, events_table):
    store.objects[KEY] = gzipped("1|a\n2|b\n")

    Loader(warehouse, "analytics", logger).load(events_table)

    assert fetch_rows(warehouse, 'SELECT id, name FROM analytics.events ORDER BY id') == [(1, "a"), (2, "b")]
    types = fetch_rows(
        warehouse,
        "SELECT data_type FROM information_schema.columns "
        "WHERE table_schema = 'analytics' AND table_name = 'events' ORDER BY ordinal_position",
    )
    assert [row[0] for row in types] == ["INTEGER", "VARCHAR"]
    leftovers = fetch_rows(warehouse, "SELECT table_name FROM information_schema.tables WHERE table_name LIKE '%_updating'")
    assert leftovers == []


def test_empty_table_round_trip(warehouse, store, logger, events_table):
    store.objects[KEY] = gzipped("")
    Loader(warehouse, "analytics", logger).load(events_table)
    assert fetch_rows(warehouse, "SELECT COUNT(*) FROM analytics.events") == [(0,)]


def test_nulls_and_escaped_delimiters_survive(warehouse, store, logger, events_table):
    store.objects[KEY] = gzipped("1|a\\|b\n2|\\N\n")
    Loader(warehouse, "analytics", logger).load(events_table)
    assert fetch_rows(warehouse, "SELECT id, name FROM analytics.events ORDER BY id") == [(1, "a|b"), (2, None)]


def test_failed_bulk_load_keeps_live_table(warehouse, store, logger, events_table):
    loader = Loader(warehouse, "analytics", logger)
    store.objects[KEY] = gzipped("1|a\n2|b\n")
    loader.load(events_table)

    store.objects[KEY] = gzipped("1|a\nnot-a-number|b\n3|c\n")
    with pytest.raises(LoadError):
        loader.load(events_table)

    assert fetch_rows(warehouse, "SELECT id, name FROM analytics.events ORDER BY id") == [(1, "a"), (2, "b")]
    leftovers = fetch_rows(warehouse, "SELECT table_name FROM information_schema.tables WHERE table_name = 'events_updating'")
    assert leftovers == []


def test_rerun_replaces_contents(warehouse, store, logger, events_table):
    loader = Loader(warehouse, "analytics", logger)
    store.objects[KEY] = gzipped("1|a\n2|b\n")
    loader.load(events_table)
    first = fetch_rows(warehouse, "SELECT * FROM analytics.events ORDER BY id")
    loader.load(events_table)
    assert fetch_rows(warehouse, "SELECT * FROM analytics.events ORDER BY id") == first


def test_load_statement_order(logger, events_table):
    warehouse = RecordingWarehouse()
    Loader(warehouse, "analytics", logger).load(events_table)
    assert warehouse.statements == [
        'CREATE SCHEMA IF NOT EXISTS "analytics"',
        'CREATE TABLE IF NOT EXISTS "analytics"."events" ("id" INTEGER, "name" CHARACTER VARYING(65535))',
        'DROP TABLE IF EXISTS "analytics"."events_updating"',
        'CREATE TABLE "analytics"."events_updating" ("id" INTEGER, "name" CHARACTER VARYING(65535))',
        'COPY "analytics"."events_updating" FROM export/events.psv.gz',
        "BEGIN",
        'DROP TABLE IF EXISTS "analytics"."events"',
        'ALTER TABLE "analytics"."events_updating" RENAME TO "events"',
        "COMMIT",
    ]


def test_failed_copy_never_starts_promotion(logger, events_table):
    warehouse = RecordingWarehouse(fail_on="COPY")
    with pytest.raises(LoadError):
        Loader(warehouse, "analytics", logger).load(events_table)
    assert "BEGIN" not in warehouse.statements
    assert warehouse.statements[-1] == 'DROP TABLE IF EXISTS "analytics"."events_updating"'


def test_failed_promotion_rolls_back(logger, events_table):
    warehouse = RecordingWarehouse(fail_on="ALTER TABLE")
    with pytest.raises(LoadError):
        Loader(warehouse, "analytics", logger).load(events_table)
    assert warehouse.statements[-1] == "ROLLBACK"
    assert "COMMIT" not in warehouse.statements


def test_redshift_copy_statement(store, logger):
    params = ConnectionParams.from_uri("redshift://loader:pw@cluster.example.com:5439/warehouse")
    redshift = RedshiftWarehouse(params=params, store=store, logger=logger)
    assert redshift.copy_statement('"analytics"."events_updating"', KEY) == (
        "COPY \"analytics\".\"events_updating\" FROM 's3://exports/export/events.psv.gz' "
        "CREDENTIALS 'aws_access_key_id=AKIDEXAMPLE;aws_secret_access_key=s3cr3t' "
        "GZIP TRUNCATECOLUMNS ESCAPE DELIMITER AS '|'"
    )


def test_redshift_copy_statement_with_iam_role(store, logger):
    params = ConnectionParams.from_uri("redshift://loader:pw@cluster.example.com:5439/warehouse")
    redshift = RedshiftWarehouse(params=params, store=store, logger=logger, iam_role="arn:aws:iam::123:role/Copy")
    assert "IAM_ROLE 'arn:aws:iam::123:role/Copy'" in redshift.copy_statement('"a"."b"', KEY)
    assert "CREDENTIALS" not in redshift.copy_statement('"a"."b"', KEY)


def test_money_columns_load_as_decimal(warehouse, store, logger):
    table = TableDescriptor(name="payments").with_columns(
        [ColumnDescriptor.from_source("id", "bigint"), ColumnDescriptor.from_source("amount", "money")]
    )
    store.objects["export/payments.psv.gz"] = gzipped("7|19.99\n")
    Loader(warehouse, "analytics", logger).load(table)
    rows = fetch_rows(warehouse, "SELECT id, CAST(amount AS VARCHAR) FROM analytics.payments")
    assert rows == [(7, "19.99")]
