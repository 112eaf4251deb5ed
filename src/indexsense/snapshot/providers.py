"""
Statistics providers - read-only sources for a StatsSnapshot.

A provider answers five read operations:
- fetch_table_stats(): scan counters per table
- fetch_index_stats(): usage and size per index
- fetch_column_cardinality(table, column): distinct/total rows for one column
- fetch_query_stats(): aggregated statement timings
- fetch_maintenance_records(): vacuum/analyze history per table

Providers are the only place that performs I/O. collect_snapshot() calls
them once, up front, and the engine never suspends after that.

Safety requirements (PostgreSQL provider):
- Read-only: only SELECT statements
- Time-bounded: connect timeout and per-statement timeout
- Catalog sentinels (indkey = 0 for expression columns) are resolved here
  into plain booleans

Usage:
    from indexsense.snapshot import PostgresStatsProvider, collect_snapshot

    with PostgresStatsProvider("postgresql://localhost/shop") as provider:
        snapshot = collect_snapshot(provider, candidates)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

from pydantic import ValidationError

from indexsense.exceptions import DataSourceUnavailable, InsufficientData
from indexsense.snapshot.models import (
    ColumnCandidate,
    ColumnCardinality,
    IndexStat,
    MaintenanceRecord,
    QueryStat,
    SkippedColumn,
    StatsSnapshot,
    TableStat,
)

logger = logging.getLogger(__name__)


class StatsProvider(Protocol):
    """
    Protocol for statistics provider implementations.

    All methods are synchronous and read-only. Failure to reach the
    underlying source raises DataSourceUnavailable; a column that cannot
    be measured raises InsufficientData.
    """

    def fetch_table_stats(self) -> list[TableStat]:
        ...

    def fetch_index_stats(self) -> list[IndexStat]:
        ...

    def fetch_column_cardinality(self, table: str, column: str) -> ColumnCardinality:
        ...

    def fetch_query_stats(self) -> list[QueryStat]:
        ...

    def fetch_maintenance_records(self) -> list[MaintenanceRecord]:
        ...


def _split_table(table: str) -> tuple[str, str]:
    """Split 'schema.table' into its parts, defaulting to public."""
    if "." in table:
        schema, name = table.split(".", 1)
        return schema, name
    return "public", table


class PostgresStatsProvider:
    """
    StatsProvider backed by a live PostgreSQL connection (psycopg 3).

    Use as a context manager; the connection is opened on enter and
    closed on exit. Runs in autocommit so one failed statement (for
    example a missing pg_stat_statements) does not poison the rest.
    """

    TABLE_STATS_QUERY = """
        SELECT
            schemaname,
            relname,
            COALESCE(seq_scan, 0),
            COALESCE(seq_tup_read, 0),
            COALESCE(idx_scan, 0),
            COALESCE(idx_tup_fetch, 0),
            n_live_tup
        FROM pg_stat_user_tables
        ORDER BY schemaname, relname
    """

    INDEX_STATS_QUERY = """
        SELECT
            s.schemaname,
            s.relname,
            s.indexrelname,
            pg_get_indexdef(s.indexrelid),
            COALESCE(s.idx_scan, 0),
            pg_relation_size(s.indexrelid),
            i.indisunique,
            (0 = ANY (i.indkey)) AS is_expression
        FROM pg_stat_user_indexes s
        JOIN pg_index i ON i.indexrelid = s.indexrelid
        ORDER BY s.schemaname, s.relname, s.indexrelname
    """

    MAINTENANCE_QUERY = """
        SELECT
            schemaname,
            relname,
            GREATEST(last_vacuum, last_autovacuum),
            COALESCE(vacuum_count, 0) + COALESCE(autovacuum_count, 0),
            GREATEST(last_analyze, last_autoanalyze),
            COALESCE(analyze_count, 0) + COALESCE(autoanalyze_count, 0)
        FROM pg_stat_user_tables
        ORDER BY schemaname, relname
    """

    # One row per (userid, dbid, queryid): keep this database, fold the users
    QUERY_STATS_QUERY = """
        SELECT
            queryid,
            min(query),
            sum(total_exec_time),
            sum(calls)::bigint,
            sum(total_exec_time) / NULLIF(sum(calls), 0)
        FROM pg_stat_statements
        WHERE dbid = (SELECT oid FROM pg_database WHERE datname = current_database())
          AND query NOT LIKE 'SET %'
          AND query NOT LIKE 'SHOW %'
          AND query NOT LIKE 'BEGIN%'
          AND query NOT LIKE 'COMMIT%'
          AND query NOT LIKE 'ROLLBACK%'
        GROUP BY queryid
        ORDER BY queryid
    """

    NULLABILITY_QUERY = """
        SELECT is_nullable
        FROM information_schema.columns
        WHERE table_schema = %s
          AND table_name = %s
          AND column_name = %s
    """

    def __init__(
        self,
        dsn: str,
        connect_timeout_seconds: int = 5,
        statement_timeout_ms: int = 30_000,
    ) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout_seconds
        self._statement_timeout_ms = statement_timeout_ms
        self._conn: Any = None

    def __enter__(self) -> "PostgresStatsProvider":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        """Open the connection and apply the statement timeout."""
        try:
            import psycopg
        except ImportError:
            raise DataSourceUnavailable(
                "psycopg not installed. Install with: pip install 'indexsense[db]'",
                source="postgresql",
            ) from None

        try:
            self._conn = psycopg.connect(
                self._dsn,
                connect_timeout=self._connect_timeout,
                autocommit=True,
            )
            with self._conn.cursor() as cur:
                cur.execute(f"SET statement_timeout = {int(self._statement_timeout_ms)}")
        except psycopg.Error as e:
            raise DataSourceUnavailable(
                f"Could not connect to PostgreSQL: {e}",
                source="postgresql",
            ) from e

        logger.debug("Connected to PostgreSQL statistics source")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _fetch(self, query: Any, params: Iterable[Any] | None = None) -> list[tuple[Any, ...]]:
        import psycopg

        if self._conn is None:
            raise DataSourceUnavailable("Provider is not connected", source="postgresql")
        try:
            with self._conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.Error as e:
            raise DataSourceUnavailable(
                f"Statistics query failed: {e}",
                source="postgresql",
            ) from e

    def fetch_table_stats(self) -> list[TableStat]:
        return [
            TableStat(
                schema_name=schema,
                name=name,
                seq_scan_count=seq_scan,
                seq_tup_read=seq_tup_read,
                idx_scan_count=idx_scan,
                idx_tup_fetch=idx_tup_fetch,
                live_row_count=live_rows,
            )
            for schema, name, seq_scan, seq_tup_read, idx_scan, idx_tup_fetch, live_rows
            in self._fetch(self.TABLE_STATS_QUERY)
        ]

    def fetch_index_stats(self) -> list[IndexStat]:
        return [
            IndexStat(
                schema_name=schema,
                table=table,
                index_name=index_name,
                definition=definition or "",
                times_used=times_used,
                size_bytes=size_bytes or 0,
                is_unique=bool(is_unique),
                is_expression=bool(is_expression),
            )
            for schema, table, index_name, definition, times_used, size_bytes, is_unique, is_expression
            in self._fetch(self.INDEX_STATS_QUERY)
        ]

    def fetch_maintenance_records(self) -> list[MaintenanceRecord]:
        return [
            MaintenanceRecord(
                schema_name=schema,
                table=table,
                last_vacuum=last_vacuum,
                vacuum_count=vacuum_count,
                last_analyze=last_analyze,
                analyze_count=analyze_count,
            )
            for schema, table, last_vacuum, vacuum_count, last_analyze, analyze_count
            in self._fetch(self.MAINTENANCE_QUERY)
        ]

    def fetch_query_stats(self) -> list[QueryStat]:
        import psycopg

        try:
            rows = self._fetch(self.QUERY_STATS_QUERY)
        except DataSourceUnavailable as e:
            if isinstance(e.__cause__, psycopg.errors.UndefinedTable):
                logger.warning("pg_stat_statements is not installed; skipping query ranking")
                return []
            raise

        return [
            QueryStat(
                query_id=str(queryid),
                query_text=query or "",
                total_exec_time=total or 0.0,
                calls=calls or 0,
                mean_exec_time=mean or 0.0,
            )
            for queryid, query, total, calls, mean in rows
            if queryid is not None
        ]

    def fetch_column_cardinality(self, table: str, column: str) -> ColumnCardinality:
        import psycopg
        from psycopg import sql

        schema, name = _split_table(table)

        nullability = self._fetch(self.NULLABILITY_QUERY, (schema, name, column))
        if not nullability:
            raise InsufficientData(
                f"Column {table}.{column} does not exist",
                table=table,
                column=column,
            )

        count_query = sql.SQL("SELECT count(DISTINCT {col}), count(*) FROM {tbl}").format(
            col=sql.Identifier(column),
            tbl=sql.Identifier(schema, name),
        )
        try:
            ((distinct_count, row_count),) = self._fetch(count_query)
        except DataSourceUnavailable as e:
            if isinstance(e.__cause__, psycopg.errors.InsufficientPrivilege):
                raise InsufficientData(
                    f"Not permitted to read {table}.{column}",
                    table=table,
                    column=column,
                ) from e
            raise

        return ColumnCardinality(
            table=table,
            column=column,
            distinct_count=distinct_count,
            row_count=row_count,
            is_not_null=nullability[0][0] == "NO",
        )


class JsonFileStatsProvider:
    """
    StatsProvider reading an exported snapshot document.

    The document is a JSON object with optional keys "captured_at",
    "tables", "indexes", "cardinalities", "maintenance", "queries" and
    "candidates", each list holding objects shaped like the snapshot
    models.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data = self._load(path)

    @staticmethod
    def _load(path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_text())
        except OSError as e:
            raise DataSourceUnavailable(f"Cannot read snapshot file: {e}", source=str(path)) from e
        except json.JSONDecodeError as e:
            raise DataSourceUnavailable(
                f"Snapshot file is not valid JSON: {e}",
                source=str(path),
            ) from e
        if not isinstance(data, dict):
            raise DataSourceUnavailable("Snapshot file must contain a JSON object", source=str(path))
        return data

    def _models(self, key: str, model: Any) -> list[Any]:
        try:
            return [model.model_validate(item) for item in self._data.get(key, [])]
        except ValidationError as e:
            raise DataSourceUnavailable(
                f"Invalid '{key}' entry in snapshot file: {e}",
                source=str(self.path),
            ) from e

    @property
    def captured_at(self) -> datetime | None:
        value = self._data.get("captured_at")
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError) as e:
            raise DataSourceUnavailable(
                f"Invalid captured_at in snapshot file: {value!r}",
                source=str(self.path),
            ) from e

    @property
    def declared_candidates(self) -> list[ColumnCandidate]:
        return self._models("candidates", ColumnCandidate)

    def fetch_table_stats(self) -> list[TableStat]:
        return self._models("tables", TableStat)

    def fetch_index_stats(self) -> list[IndexStat]:
        return self._models("indexes", IndexStat)

    def fetch_maintenance_records(self) -> list[MaintenanceRecord]:
        return self._models("maintenance", MaintenanceRecord)

    def fetch_query_stats(self) -> list[QueryStat]:
        return self._models("queries", QueryStat)

    def fetch_column_cardinality(self, table: str, column: str) -> ColumnCardinality:
        for card in self._models("cardinalities", ColumnCardinality):
            if card.table == table and card.column == column:
                return card
        raise InsufficientData(
            f"No cardinality recorded for {table}.{column}",
            table=table,
            column=column,
        )


def collect_snapshot(
    provider: StatsProvider,
    candidates: Iterable[ColumnCandidate] = (),
    captured_at: datetime | None = None,
) -> StatsSnapshot:
    """
    Read everything the engine needs from a provider into one snapshot.

    Cardinality is fetched once per distinct (table, column). A column
    that raises InsufficientData is recorded in skipped_columns with the
    provider's reason, and the engine reports it as a warning.

    Raises:
        DataSourceUnavailable: The provider could not be read.
    """
    unique_candidates: list[ColumnCandidate] = []
    seen: set[tuple[str, str, str]] = set()
    for candidate in candidates:
        key = (candidate.table, candidate.column, candidate.predicate.value)
        if key not in seen:
            seen.add(key)
            unique_candidates.append(candidate)

    cardinalities: list[ColumnCardinality] = []
    skipped: list[SkippedColumn] = []
    measured: set[tuple[str, str]] = set()
    for candidate in unique_candidates:
        column_key = (candidate.table, candidate.column)
        if column_key in measured:
            continue
        measured.add(column_key)
        try:
            cardinalities.append(
                provider.fetch_column_cardinality(candidate.table, candidate.column)
            )
        except InsufficientData as e:
            logger.warning("Skipping cardinality for %s: %s", candidate.label, e.message)
            skipped.append(SkippedColumn(
                table=candidate.table,
                column=candidate.column,
                reason=e.message,
            ))

    snapshot = StatsSnapshot(
        captured_at=captured_at or datetime.now(timezone.utc),
        tables=tuple(provider.fetch_table_stats()),
        indexes=tuple(provider.fetch_index_stats()),
        cardinalities=tuple(cardinalities),
        maintenance=tuple(provider.fetch_maintenance_records()),
        queries=tuple(provider.fetch_query_stats()),
        candidates=tuple(unique_candidates),
        skipped_columns=tuple(skipped),
    )

    logger.info(
        "Collected snapshot: %d tables, %d indexes, %d columns, %d queries",
        len(snapshot.tables),
        len(snapshot.indexes),
        len(snapshot.cardinalities),
        len(snapshot.queries),
    )
    return snapshot
