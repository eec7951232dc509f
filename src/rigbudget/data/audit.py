"""
未匹配配件审计 - Unresolved Component Audit

只追加的记录，用于离线分析目录缺口；协商循环从不读取。
Append-only records for offline catalog-gap analysis; never read by the
negotiation loop.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Protocol

from ..schemas import UnresolvedComponent

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def record(self, item: UnresolvedComponent) -> None: ...


class NullAuditSink:
    def record(self, item: UnresolvedComponent) -> None:
        return None


class InMemoryAuditSink:
    def __init__(self):
        self._items: List[UnresolvedComponent] = []
        self._lock = threading.Lock()

    def record(self, item: UnresolvedComponent) -> None:
        with self._lock:
            self._items.append(item)

    def records(self) -> List[UnresolvedComponent]:
        with self._lock:
            return list(self._items)


class SQLiteAuditSink:
    """
    SQLite 审计存储 - SQLite Audit Store

    所有写入都在同一把锁内完成，并发请求的记录不会交错。
    Every write happens under one lock so concurrent requests never interleave.
    写入失败只记录日志，不影响协商。
    Write failures are logged and never affect the negotiation.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._init_table()

    def _init_table(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS unresolved_components (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category TEXT NOT NULL,
                    requested_name TEXT NOT NULL,
                    budget INTEGER,
                    attempt INTEGER,
                    recorded_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def record(self, item: UnresolvedComponent) -> None:
        try:
            with self._lock, sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO unresolved_components (category, requested_name, budget, attempt, recorded_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        item.category,
                        item.requested_name,
                        item.budget,
                        item.attempt,
                        item.recorded_at.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.Error as err:
            logger.warning("[AUDIT] failed to record %s=%r: %s", item.category, item.requested_name, err)

    def records(self) -> List[UnresolvedComponent]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT category, requested_name, budget, attempt, recorded_at
                FROM unresolved_components
                ORDER BY id
                """
            ).fetchall()
        return [UnresolvedComponent.model_validate(dict(r)) for r in rows]


def build_audit_sink(db_path: Path | None) -> AuditSink:
    if db_path is None:
        return InMemoryAuditSink()
    return SQLiteAuditSink(db_path)
