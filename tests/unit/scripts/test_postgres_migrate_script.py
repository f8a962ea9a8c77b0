import pytest

import scripts.postgres_migrate as migrate_script
from src.infrastructure.postgres_migrations import (
    apply_postgres_migrations,
    list_migration_namespaces,
    pending_postgres_migrations,
)


class _FakeCursor:
    def __init__(self, rows=None):
        self._rows = rows or []

    def fetchall(self):
        return list(self._rows)


class _MigrationConnection:
    def __init__(self):
        self.schema_migrations = {}
        self.statements = []
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self):
        return self

    def __exit__(self, *_exc_info):
        return False

    def execute(self, query, args=None):
        sql = " ".join(str(query).split())
        if "pg_advisory" in sql:
            return _FakeCursor()
        if "FROM schema_migrations" in sql:
            rows = [
                {"version": version, "checksum": checksum}
                for (namespace, version), checksum in self.schema_migrations.items()
                if namespace == args[0]
            ]
            return _FakeCursor(rows=rows)
        if "INSERT INTO schema_migrations" in sql:
            self.schema_migrations[(args[1], args[0])] = args[2]
            return _FakeCursor()
        self.statements.append(sql)
        return _FakeCursor()

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


def test_negotiation_namespace_is_discoverable():
    assert "negotiation" in list_migration_namespaces()


def test_apply_migrations_is_idempotent_and_reports_versions():
    connection = _MigrationConnection()

    assert pending_postgres_migrations(connection=connection, namespace="negotiation") == ["0001"]
    assert apply_postgres_migrations(connection=connection, namespace="negotiation") == ["0001"]
    assert apply_postgres_migrations(connection=connection, namespace="negotiation") == []
    assert pending_postgres_migrations(connection=connection, namespace="negotiation") == []
    assert any(
        sql.startswith("CREATE TABLE IF NOT EXISTS schedule_proposals")
        for sql in connection.statements
    )


def test_checksum_mismatch_is_rejected_and_rolled_back():
    connection = _MigrationConnection()
    connection.schema_migrations[("negotiation", "negotiation:0001")] = "sha256-of-something-else"

    mismatch = "POSTGRES_MIGRATION_CHECKSUM_MISMATCH:negotiation:0001"
    with pytest.raises(RuntimeError, match=mismatch):
        apply_postgres_migrations(connection=connection, namespace="negotiation")
    assert connection.rollbacks == 1


def test_unknown_namespace_is_rejected():
    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:billing"):
        apply_postgres_migrations(connection=_MigrationConnection(), namespace="billing")


def test_migrate_script_requires_dsn(monkeypatch):
    monkeypatch.delenv("NEGOTIATION_POSTGRES_DSN", raising=False)
    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATION_DSN_REQUIRED:negotiation"):
        migrate_script.main([])


def test_migrate_script_applies_and_reports_status(monkeypatch, capsys):
    connection = _MigrationConnection()
    monkeypatch.setattr(migrate_script, "_connect", lambda _dsn: connection)

    assert migrate_script.main(["--dsn", "postgresql://u:p@localhost:5432/db", "--status"]) == 0
    assert "Pending migrations for namespace=negotiation: ['0001']" in capsys.readouterr().out

    assert migrate_script.main(["--dsn", "postgresql://u:p@localhost:5432/db"]) == 0
    assert "Applied migrations for namespace=negotiation: ['0001']" in capsys.readouterr().out

    assert migrate_script.main(["--dsn", "postgresql://u:p@localhost:5432/db"]) == 0
    assert "Applied migrations for namespace=negotiation: none" in capsys.readouterr().out


def test_migrate_script_rejects_unknown_namespace_before_connecting(monkeypatch):
    def _unexpected_connect(_dsn):
        raise AssertionError("connection opened for an unknown namespace")

    monkeypatch.setattr(migrate_script, "_connect", _unexpected_connect)

    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:billing"):
        migrate_script.main(
            ["--dsn", "postgresql://u:p@localhost:5432/db", "--namespace", "billing"]
        )
