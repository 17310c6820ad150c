from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from cli import main
from services.store import ShopStore

NOW = datetime(2024, 1, 3, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    path = tmp_path / "shops.json"
    store = ShopStore(path)
    store.mark_seen("a", NOW)
    store.mark_seen("b", NOW)
    store.save()
    return path


def test_export_csv(store_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "out.csv"
    assert main(["--store", str(store_path), "export-csv", "--out", str(out)]) == 0
    assert len(out.read_text(encoding="utf-8").splitlines()) == 3


def test_delete_all_needs_confirmation(store_path: Path) -> None:
    assert main(["--store", str(store_path), "delete-all"]) == 1
    assert len(ShopStore(store_path).load()) == 2
    assert main(["--store", str(store_path), "delete-all", "--yes"]) == 0
    assert len(ShopStore(store_path).load()) == 0


def test_sync_without_api_key_fails(store_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    assert main(["--store", str(store_path), "sync-places"]) == 2
