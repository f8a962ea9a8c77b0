import argparse
import os
import sys
from importlib.util import find_spec
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Apply forward-only PostgreSQL migrations for the schedule negotiation store."
    )
    parser.add_argument(
        "--dsn",
        default=os.getenv("NEGOTIATION_POSTGRES_DSN", "").strip(),
        help="PostgreSQL DSN (defaults to NEGOTIATION_POSTGRES_DSN).",
    )
    parser.add_argument(
        "--namespace",
        default="negotiation",
        help="Migration namespace under src/infrastructure/postgres_migrations.",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="List pending migration versions without applying them.",
    )
    return parser


def _connect(dsn: str):
    if find_spec("psycopg") is None:
        raise RuntimeError("POSTGRES_MIGRATION_DRIVER_MISSING")
    import psycopg
    from psycopg.rows import dict_row

    return psycopg.connect(dsn, row_factory=dict_row)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from src.infrastructure.postgres_migrations import (
        apply_postgres_migrations,
        list_migration_namespaces,
        pending_postgres_migrations,
    )

    if args.namespace not in list_migration_namespaces():
        raise RuntimeError(f"POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:{args.namespace}")
    if not args.dsn:
        raise RuntimeError(f"POSTGRES_MIGRATION_DSN_REQUIRED:{args.namespace}")

    with _connect(args.dsn) as connection:
        if args.status:
            pending = pending_postgres_migrations(connection=connection, namespace=args.namespace)
            print(f"Pending migrations for namespace={args.namespace}: {pending or 'none'}")
            return 0
        applied = apply_postgres_migrations(connection=connection, namespace=args.namespace)
    print(f"Applied migrations for namespace={args.namespace}: {applied or 'none'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
