import html
import json
import os
import re
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_app.errors import StoreFailure  # noqa: E402
from todo_app.main import app  # noqa: E402
from todo_app.repositories import InMemoryRecordStore, get_record_store  # noqa: E402
from todo_app.settings import get_settings  # noqa: E402

client = TestClient(app, follow_redirects=False)

PAGE_HEADERS = {"X-Inertia": "true", "X-Inertia-Version": get_settings().asset_version}


@pytest.fixture(autouse=True)
def store():
    """Give every test its own empty in-memory store."""
    fresh = InMemoryRecordStore()
    app.dependency_overrides[get_record_store] = lambda: fresh
    yield fresh
    app.dependency_overrides.clear()


def fetch_page() -> dict:
    res = client.get("/todos", headers=PAGE_HEADERS)
    assert res.status_code == 200
    return res.json()


def titles() -> list:
    return [t["title"] for t in fetch_page()["props"]["todos"]]


def assert_redirects_to_listing(res):
    assert res.status_code == 303
    assert res.headers["location"].endswith("/todos")


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "created_at", "updated_at"]:
        assert key in todo
    assert isinstance(todo["id"], int)
    assert isinstance(todo["title"], str)
    datetime.fromisoformat(todo["created_at"])
    datetime.fromisoformat(todo["updated_at"])


class TestHealth:
    def test_health_check(self):
        res = client.get("/health")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "sqlite")

    def test_root_redirects_to_listing(self):
        res = client.get("/")
        assert res.status_code == 302
        assert res.headers["location"].endswith("/todos")


class TestListing:
    def test_page_visit_returns_page_object(self, store):
        store.insert("Buy milk")
        res = client.get("/todos", headers=PAGE_HEADERS)
        assert res.status_code == 200
        assert res.headers["x-inertia"] == "true"
        assert "X-Inertia" in res.headers["vary"]
        page = res.json()
        assert page["component"] == "Home"
        assert page["url"] == "/todos"
        assert page["version"] == get_settings().asset_version
        assert len(page["props"]["todos"]) == 1
        assert_todo_shape(page["props"]["todos"][0])

    def test_first_load_returns_html_shell(self, store):
        store.insert("Tea & <biscuits>")
        res = client.get("/todos")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        match = re.search(r'data-page="([^"]*)"', res.text)
        assert match is not None
        page = json.loads(html.unescape(match.group(1)))
        assert page["component"] == "Home"
        assert page["props"]["todos"][0]["title"] == "Tea & <biscuits>"
        assert page["props"]["errors"] == {}
        assert "<biscuits>" not in res.text

    def test_stale_asset_version_forces_reload(self):
        res = client.get("/todos", headers={"X-Inertia": "true", "X-Inertia-Version": "stale"})
        assert res.status_code == 409
        assert res.headers["x-inertia-location"].endswith("/todos")

    def test_empty_listing(self):
        assert fetch_page()["props"]["todos"] == []

    def test_listing_keeps_insertion_order(self):
        client.post("/todos", json={"title": "A"})
        client.post("/todos", json={"title": "B"})
        assert titles() == ["A", "B"]


class TestTodosCRUD:
    def test_create_then_list(self):
        res = client.post("/todos", json={"title": "Buy milk"})
        assert_redirects_to_listing(res)
        assert titles() == ["Buy milk"]

    def test_create_trims_title(self):
        client.post("/todos", json={"title": "  Read book  "})
        assert titles() == ["Read book"]

    def test_put_and_patch_replace_title(self, store):
        tid = store.insert("Initial")["id"]

        res_put = client.put(f"/todos/{tid}", json={"title": "Replaced"})
        assert_redirects_to_listing(res_put)
        assert store.get(tid)["title"] == "Replaced"

        res_patch = client.patch(f"/todos/{tid}", json={"title": "Patched"})
        assert_redirects_to_listing(res_patch)
        assert store.get(tid)["title"] == "Patched"

    def test_update_not_found(self):
        res = client.put("/todos/424242", json={"title": "Nope"})
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"

    def test_delete_todo(self, store):
        tid = store.insert("ToDelete")["id"]
        keep = store.insert("Keep")["id"]

        res = client.delete(f"/todos/{tid}")
        assert_redirects_to_listing(res)
        assert [t["id"] for t in fetch_page()["props"]["todos"]] == [keep]

        # The id no longer resolves, so a second delete is rejected upstream
        res_again = client.delete(f"/todos/{tid}")
        assert res_again.status_code == 404
        assert res_again.json()["detail"] == "Todo not found"
        assert titles() == ["Keep"]


class TestBatchUpdateDelete:
    def test_updates_and_deletes(self, store):
        ids = [store.insert(t)["id"] for t in ("one", "two", "three")]
        res = client.post(
            "/todos/batch-update-delete",
            json={"updates": [{"id": ids[0], "title": "ONE"}], "deletes": [ids[1], ids[2]]},
        )
        assert_redirects_to_listing(res)
        assert titles() == ["ONE"]

    def test_empty_batch_is_noop(self, store):
        store.insert("A")
        before = store.list_all()
        for body in ({}, {"updates": [], "deletes": []}, {"updates": None, "deletes": None}):
            res = client.post("/todos/batch-update-delete", json=body)
            assert_redirects_to_listing(res)
        assert store.list_all() == before

    def test_overlap_ends_deleted(self, store):
        tid = store.insert("A")["id"]
        res = client.post(
            "/todos/batch-update-delete",
            json={"updates": [{"id": tid, "title": "B"}], "deletes": [tid]},
        )
        assert_redirects_to_listing(res)
        assert store.get(tid) is None

    def test_unknown_ids_are_ignored(self, store):
        store.insert("A")
        res = client.post(
            "/todos/batch-update-delete",
            json={"updates": [{"id": 999, "title": "X"}], "deletes": [998]},
        )
        assert_redirects_to_listing(res)
        assert titles() == ["A"]

    def test_delete_failure_keeps_applied_updates(self, store):
        tid = store.insert("A")["id"]

        def broken(ids):
            raise StoreFailure("connection lost")

        store.delete_by_id_set = broken
        res = client.post(
            "/todos/batch-update-delete",
            json={"updates": [{"id": tid, "title": "B"}], "deletes": [tid]},
        )
        assert res.status_code == 503
        assert res.json()["error"] == "StoreFailure"
        assert store.get(tid)["title"] == "B"


class TestValidationErrors:
    @pytest.mark.parametrize("body", [{}, {"title": ""}, {"title": "   "}])
    def test_create_requires_title(self, body, store):
        res = client.post("/todos", json=body)
        assert res.status_code == 422
        data = res.json()
        assert data["error"] == "ValidationError"
        assert data["message"] == "Request validation failed"
        assert "title" in data["errors"]
        assert isinstance(data["detail"], list)
        assert store.list_all() == []

    def test_blank_title_message(self):
        res = client.post("/todos", json={"title": "  "})
        assert res.json()["errors"]["title"] == "The title field is required."

    def test_update_requires_title(self, store):
        tid = store.insert("Keep me")["id"]
        res = client.patch(f"/todos/{tid}", json={"title": " "})
        assert res.status_code == 422
        assert store.get(tid)["title"] == "Keep me"

    def test_batch_item_title_validated(self, store):
        tid = store.insert("A")["id"]
        res = client.post(
            "/todos/batch-update-delete",
            json={"updates": [{"id": tid, "title": ""}], "deletes": [tid]},
        )
        assert res.status_code == 422
        assert "updates.0.title" in res.json()["errors"]
        # Nothing from the rejected batch is applied
        assert store.get(tid)["title"] == "A"

    def test_batch_deletes_must_be_ids(self):
        res = client.post("/todos/batch-update-delete", json={"deletes": ["abc"]})
        assert res.status_code == 422
        assert "deletes.0" in res.json()["errors"]

    def test_title_length_counts_trimmed_value(self):
        res = client.post("/todos", json={"title": " " + "x" * 255 + " "})
        assert_redirects_to_listing(res)
        assert titles() == ["x" * 255]

    def test_title_too_long(self, store):
        res = client.post("/todos", json={"title": "x" * 256})
        assert res.status_code == 422
        assert res.json()["errors"]["title"] == "The title field must not be greater than 255 characters."
        assert store.list_all() == []

    def test_page_visit_gets_errors_in_page_props(self, store):
        store.insert("Existing")
        res = client.post("/todos", json={"title": " "}, headers=PAGE_HEADERS)
        assert res.status_code == 422
        assert res.headers["x-inertia"] == "true"
        page = res.json()
        assert page["component"] == "Home"
        assert page["url"] == "/todos"
        assert page["props"]["errors"] == {"title": "The title field is required."}
        assert [t["title"] for t in page["props"]["todos"]] == ["Existing"]

    def test_page_visit_update_errors_point_at_listing(self, store):
        tid = store.insert("Keep me")["id"]
        res = client.patch(f"/todos/{tid}", json={"title": ""}, headers=PAGE_HEADERS)
        assert res.status_code == 422
        page = res.json()
        assert page["url"] == "/todos"
        assert "title" in page["props"]["errors"]
        assert store.get(tid)["title"] == "Keep me"
