from __future__ import annotations

import logging

from quickforms.config import Settings, ensure_dirs
from quickforms.protocols import Storage
from quickforms.repo_json import JSONStorage
from quickforms.repo_sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def init_storage(settings: Settings) -> Storage:
    ensure_dirs(settings)
    if settings.storage_backend == "json":
        logger.info("Using JSON storage at %s", settings.json_path)
        return JSONStorage(settings.json_path)
    if settings.storage_backend != "sqlite":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    logger.info("Using SQL storage (%s)", "DATABASE_URL" if settings.database_url else settings.sqlite_path)
    return SQLiteStorage(settings.sqlalchemy_url)
