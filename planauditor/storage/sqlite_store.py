"""SQLite-backed analysis store.

One row per analysis: a few indexed summary columns plus the full result
JSON. Each operation opens its own connection, so one store can be shared
across threads.
"""

import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import TYPE_CHECKING, Any

from planauditor.utils.logging import logger

from .base import AnalysisPage, ListCriteria

if TYPE_CHECKING:
    from planauditor.orchestrator import AnalysisResult

SCHEMA = """
CREATE TABLE IF NOT EXISTS analyses (
    analysis_id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    user_id TEXT,
    status TEXT NOT NULL,
    repository_url TEXT,
    analyzed_at TEXT NOT NULL,
    compliance_score REAL,
    security_score REAL,
    findings_count INTEGER NOT NULL DEFAULT 0,
    result_json TEXT NOT NULL
)
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_analyses_tenant ON analyses (tenant_id, analyzed_at)",
    "CREATE INDEX IF NOT EXISTS idx_analyses_status ON analyses (status)",
)

SUMMARY_COLUMNS = (
    "analysis_id",
    "tenant_id",
    "status",
    "repository_url",
    "analyzed_at",
    "compliance_score",
    "security_score",
    "findings_count",
)


class SqliteAnalysisStore:
    """Persists AnalysisResult JSON in ``analyses`` inside ``db_path``."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.create_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def create_schema(self) -> None:
        with closing(self._connect()) as conn:
            conn.execute(SCHEMA)
            for index_sql in INDEXES:
                conn.execute(index_sql)
            conn.commit()

    def store(self, result: "AnalysisResult") -> None:
        data = result.to_dict()
        summary = data["summary"]
        metadata = data["metadata"]

        with closing(self._connect()) as conn:
            conn.execute(
                """INSERT OR REPLACE INTO analyses
                   (analysis_id, tenant_id, user_id, status, repository_url, analyzed_at,
                    compliance_score, security_score, findings_count, result_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    data["analysis_id"],
                    data["tenant_id"],
                    data["user_id"],
                    data["status"],
                    metadata.get("repository_url"),
                    metadata["analyzed_at"],
                    summary["compliance_score"],
                    summary["security_score"],
                    summary["findings_count"],
                    json.dumps(data, default=str),
                ),
            )
            conn.commit()

        logger.debug(f"Stored analysis {data['analysis_id']} in {self.db_path}")

    def get(self, analysis_id: str, tenant_id: str | None = None) -> dict[str, Any] | None:
        sql = "SELECT result_json FROM analyses WHERE analysis_id = ?"
        params: list[Any] = [analysis_id]
        if tenant_id:
            sql += " AND tenant_id = ?"
            params.append(tenant_id)

        with closing(self._connect()) as conn:
            row = conn.execute(sql, params).fetchone()

        return json.loads(row["result_json"]) if row else None

    def list(self, criteria: ListCriteria) -> AnalysisPage:
        where = []
        params: list[Any] = []
        if criteria.tenant_id:
            where.append("tenant_id = ?")
            params.append(criteria.tenant_id)
        if criteria.status:
            where.append("status = ?")
            params.append(criteria.status)
        if criteria.repository_url:
            where.append("repository_url = ?")
            params.append(criteria.repository_url)
        clause = f" WHERE {' AND '.join(where)}" if where else ""

        with closing(self._connect()) as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM analyses{clause}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT {', '.join(SUMMARY_COLUMNS)} FROM analyses{clause} "
                "ORDER BY analyzed_at DESC, analysis_id DESC LIMIT ? OFFSET ?",
                [*params, criteria.limit, criteria.offset],
            ).fetchall()

        items = [dict(row) for row in rows]
        return AnalysisPage(
            items=items,
            total=total,
            has_more=criteria.offset + len(items) < total,
        )

    def delete(self, analysis_id: str, tenant_id: str | None = None) -> bool:
        sql = "DELETE FROM analyses WHERE analysis_id = ?"
        params: list[Any] = [analysis_id]
        if tenant_id:
            sql += " AND tenant_id = ?"
            params.append(tenant_id)

        with closing(self._connect()) as conn:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.rowcount > 0
