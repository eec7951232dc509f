"""Data 模块：商品目录与审计记录"""

from .audit import AuditSink, InMemoryAuditSink, NullAuditSink, SQLiteAuditSink, build_audit_sink
from .catalog import Catalog, load_catalog

__all__ = [
    "AuditSink",
    "InMemoryAuditSink",
    "NullAuditSink",
    "SQLiteAuditSink",
    "build_audit_sink",
    "Catalog",
    "load_catalog",
]
