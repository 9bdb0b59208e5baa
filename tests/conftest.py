"""
tests/conftest.py
"""
from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from flask.testing import FlaskClient

from folio.site import app, get_folio, reset_folio
from folio.store import ContentStore

ADMIN_KEY = "jaxelricweb"


@pytest.fixture(autouse=True)
def _configure_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Every test gets its own SQLite file and an empty dist/ folder.
    The shared store is dropped so the next request reopens it.
    """
    monkeypatch.setitem(app.config, "TESTING", True)
    monkeypatch.setitem(app.config, "DATABASE", str(tmp_path / "test.db"))
    monkeypatch.setitem(app.config, "DIST_DIR", str(tmp_path / "dist"))
    monkeypatch.setitem(app.config, "ADMIN_SECRET", ADMIN_KEY)
    reset_folio()
    yield
    reset_folio()


@pytest.fixture
def client() -> Generator[FlaskClient, None, None]:
    with app.test_client() as client:
        yield client


@pytest.fixture
def store() -> ContentStore:
    """The very store the running app talks to."""
    return get_folio().store


@pytest.fixture
def dist() -> Path:
    """A tiny built bundle: index.html + one asset."""
    root = Path(app.config["DIST_DIR"])
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<!doctype html><div id=root></div>")
    (root / "assets" / "app.js").write_text("console.log('folio')")
    return root
