"""
Service layer exports.
"""
from .persistence import SqlPersistenceAdapter
from .session import SessionContext, authenticate, resolve_identity
from .sync_engine import SyncEngine, SyncHandle
from .ocr import OcrClient


class Services:
    """Per-application collaborators, stored under ``app.extensions['meterwatch']``."""

    def __init__(self, adapter: SqlPersistenceAdapter, engine: SyncEngine, ocr: OcrClient):
        self.adapter = adapter
        self.engine = engine
        self.ocr = ocr


__all__ = [
    "Services",
    "SqlPersistenceAdapter",
    "SessionContext",
    "SyncEngine",
    "SyncHandle",
    "OcrClient",
    "authenticate",
    "resolve_identity",
]
