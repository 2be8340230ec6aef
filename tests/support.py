from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from quickforms.app import create_app
from quickforms.config import Settings


def make_settings(directory: str, backend: str = "sqlite") -> Settings:
    settings = Settings()
    settings.storage_backend = backend
    settings.database_url = None
    settings.sqlite_path = Path(directory) / "app.db"
    settings.json_path = Path(directory) / "jsonstore.json"
    settings.secret_key = "test-secret"
    settings.secret_key_generated = False
    settings.session_ttl_minutes = 60
    settings.cookie_secure = False
    return settings


class AppTestCase(unittest.TestCase):
    backend = "sqlite"

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.settings = make_settings(tmp.name, self.backend)
        self.app = create_app(self.settings)
        self.addCleanup(self.app.state.storage.close)
        self.client = TestClient(self.app)

    def new_client(self) -> TestClient:
        return TestClient(self.app)
