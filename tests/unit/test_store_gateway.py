from __future__ import annotations

from pathlib import Path

import pytest

from po_ingest.store.gateway import InMemoryStore, StorageError, StorageGateway, WorkbookStore


@pytest.fixture(params=["memory", "workbook"])
def store(request, temp_workdir: Path):
    if request.param == "memory":
        return InMemoryStore()
    return WorkbookStore(temp_workdir / "data" / "store.xlsx")


def test_implements_protocol(store):
    assert isinstance(store, StorageGateway)


def test_read_missing_table_is_empty(store):
    assert store.read_table("nothing") == []


def test_write_then_read(store):
    store.write_table("t", [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])
    assert store.read_table("t") == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]
    # 上書き
    store.write_table("t", [{"a": 3, "b": "z"}])
    assert store.read_table("t") == [{"a": 3, "b": "z"}]


def test_append_keeps_existing_header_order(store):
    store.append_table("t", [{"a": 1, "b": "x"}])
    assert store.append_table("t", [{"b": "y", "a": 2, "c": "new"}]) == 1
    rows = store.read_table("t")
    assert list(rows[0].keys()) == ["a", "b", "c"]
    assert rows[0] == {"a": 1, "b": "x", "c": None}
    assert rows[1] == {"a": 2, "b": "y", "c": "new"}


def test_append_nothing(store):
    assert store.append_table("t", []) == 0
    assert store.read_table("t") == []


def test_upsert_skips_existing_and_batch_duplicate_keys(store):
    assert store.upsert_table("suppliers", [{"name": "บริษัท ABC", "last_seen": "d1"}], "name") == 1
    added = store.upsert_table(
        "suppliers",
        [
            {"name": " บริษัท abc ", "last_seen": "d2"},  # 既存 (trim + 大文字小文字無視)
            {"name": "หจก. XYZ", "last_seen": "d2"},
            {"name": "หจก. xyz", "last_seen": "d2"},  # バッチ内重複
            {"name": "", "last_seen": "d2"},  # 空キーは無視
        ],
        "name",
    )
    assert added == 1
    names = [r["name"] for r in store.read_table("suppliers")]
    assert names == ["บริษัท ABC", "หจก. XYZ"]
    # 既存行は変更しない
    assert store.read_table("suppliers")[0]["last_seen"] == "d1"


def test_upsert_nothing_new_returns_zero(store):
    store.upsert_table("c", [{"name": "CCTV"}], "name")
    assert store.upsert_table("c", [{"name": "cctv"}], "name") == 0


def test_upsert_requires_key_column(store):
    store.append_table("c", [{"title": "CCTV"}])
    with pytest.raises(StorageError):
        store.upsert_table("c", [{"name": "CCTV"}], "name")


def test_in_memory_store_seeded():
    store = InMemoryStore({"suppliers": [{"name": "A"}]})
    assert store.upsert_table("suppliers", [{"name": "a"}, {"name": "B"}], "name") == 1
    assert [r["name"] for r in store.read_table("suppliers")] == ["A", "B"]


def test_workbook_store_persists_tables(temp_workdir: Path):
    path = temp_workdir / "data" / "store.xlsx"
    WorkbookStore(path).append_table("procurement_line", [{"poNumber": "PO-1", "quantity": 2.5}])
    WorkbookStore(path).append_table("upload_logs", [{"filename": "a.xlsx", "row_count": 1}])
    reopened = WorkbookStore(path)
    assert set(reopened.table_names()) == {"procurement_line", "upload_logs"}
    assert reopened.read_table("procurement_line") == [{"poNumber": "PO-1", "quantity": 2.5}]


def test_workbook_store_unreadable_file(temp_workdir: Path):
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(StorageError):
        WorkbookStore(path).read_table("t")


def test_workbook_store_failed_save_keeps_previous_tables(temp_workdir: Path):
    path = temp_workdir / "data" / "store.xlsx"
    store = WorkbookStore(path)
    store.append_table("suppliers_master", [{"name": "บริษัท ABC", "last_seen": "2024-03-01 00:00:00"}])
    store.append_table("upload_logs", [{"filename": "a.xlsx", "row_count": 1}])

    # 制御文字は openpyxl が書き込み拒否 (IllegalCharacterError)
    with pytest.raises(StorageError):
        store.append_table("procurement_line", [{"poNumber": "PO-1", "itemDescription": "Cable\x01"}])

    reopened = WorkbookStore(path)
    assert set(reopened.table_names()) == {"suppliers_master", "upload_logs"}
    assert reopened.read_table("suppliers_master")[0]["name"] == "บริษัท ABC"
    assert len(reopened.read_table("upload_logs")) == 1
    # 一時ファイルは残らない
    assert [p.name for p in path.parent.iterdir()] == ["store.xlsx"]


def test_workbook_store_failed_first_save_creates_nothing(temp_workdir: Path):
    path = temp_workdir / "data" / "store.xlsx"
    with pytest.raises(StorageError):
        WorkbookStore(path).write_table("procurement_line", [{"itemDescription": "bad\x02"}])
    assert not path.exists()
    assert list(path.parent.iterdir()) == []
