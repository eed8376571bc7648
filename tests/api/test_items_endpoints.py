"""
Tests for the items and sites endpoints.
"""

from __future__ import annotations

import pytest

from tally.api.deps import get_repository
from tally.core.errors import StorageError
from tally.core.repositories import InMemoryCounterRepository

IP_KEY = "__clientIp;;9(dot)9(dot)9(dot)9"
FROM_IP = {"X-Forwarded-For": "9.9.9.9"}


@pytest.fixture(params=["sqlite", "memory"])
def api(request, client, memory_client):
    """Each storage backend behind the same HTTP surface."""
    return client if request.param == "sqlite" else memory_client


class TestGetItem:
    def test_unknown_site_404(self, api):
        resp = api.get("/api/items/nowhere")
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["title"] == "Could not find the item!"
        assert body["instance"] == "/api/items/nowhere"

    def test_returns_full_record(self, api):
        api.post("/api/items", json={"site": "blog", "data": {"views": 1, "time": 2.5}}, headers=FROM_IP)
        resp = api.get("/api/items/Blog")
        assert resp.status_code == 200
        body = resp.json()
        assert body["site"] == "blog"
        assert body["data"] == {"views": 1, "time": 2.5, IP_KEY: 1}
        assert body["createdAt"]
        assert body["updatedAt"]


class TestSubmitItem:
    def test_first_submission_201(self, api):
        resp = api.post("/api/items", json={"site": "blog", "data": {"views": 1}}, headers=FROM_IP)
        assert resp.status_code == 201
        assert resp.json()["data"] == {"views": 1, IP_KEY: 1}

    def test_merge_200(self, api):
        api.post("/api/items", json={"site": "blog", "data": {"a": 2}}, headers=FROM_IP)
        resp = api.post("/api/items", json={"site": "blog", "data": {"a": 3}}, headers=FROM_IP)
        assert resp.status_code == 200
        assert resp.json()["data"]["a"] == 5

    def test_blog_scenario(self, api):
        first = api.post("/api/items", json={"site": "blog", "data": {"views": 1}}, headers=FROM_IP)
        assert first.status_code == 201
        assert first.json()["data"] == {"views": 1, IP_KEY: 1}

        second = api.post("/api/items", json={"site": "blog", "data": {"views": 2}}, headers=FROM_IP)
        assert second.status_code == 200
        assert second.json()["data"] == {"views": 3, IP_KEY: 2}

    def test_peer_address_used_without_forwarded_header(self, api):
        resp = api.post("/api/items", json={"site": "blog", "data": {"views": 1}})
        assert resp.json()["data"]["__clientIp;;testclient"] == 1

    def test_forwarded_first_entry_used(self, api):
        headers = {"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}
        resp = api.post("/api/items", json={"site": "blog", "data": {"views": 1}}, headers=headers)
        assert IP_KEY in resp.json()["data"]

    @pytest.mark.parametrize(
        ("data", "code"),
        [
            ({"__clientIp;;9(dot)9(dot)9(dot)9": 50}, "RESERVED_KEY"),
            ({"views": 1, "clicks": 0}, "NOT_POSITIVE"),
            ({"views": -1}, "NOT_POSITIVE"),
            ({"views": "many"}, "NOT_A_NUMBER"),
            ({"views": "1_000"}, "NOT_A_NUMBER"),
            ({"views": "1" * 400}, "NOT_A_NUMBER"),
            ({"views": 10**400}, "NOT_A_NUMBER"),
        ],
    )
    def test_rejected_422(self, api, data, code):
        resp = api.post("/api/items", json={"site": "blog", "data": data}, headers=FROM_IP)
        assert resp.status_code == 422
        body = resp.json()
        assert body["title"] == "Invalid data!"
        assert code in {e["code"] for e in body["errors"]}
        assert api.get("/api/items/blog").status_code == 404

    @pytest.mark.parametrize(
        "body",
        [
            {"data": {"views": 1}},
            {"site": "", "data": {"views": 1}},
            {"site": "blog"},
            {"site": "blog", "data": {}},
            {"site": "blog", "data": [1, 2]},
        ],
    )
    def test_missing_fields_422(self, api, body):
        assert api.post("/api/items", json=body).status_code == 422

    def test_integer_beyond_int64_accepted(self, api):
        resp = api.post("/api/items", json={"site": "big", "data": {"x": 10**19}}, headers=FROM_IP)
        assert resp.status_code == 201
        assert resp.json()["data"]["x"] == 10**19

    def test_hex_string_delta_counts(self, api):
        resp = api.post("/api/items", json={"site": "blog", "data": {"views": "0x10"}}, headers=FROM_IP)
        assert resp.status_code == 201
        assert resp.json()["data"]["views"] == 16

    def test_malformed_json_422(self, api):
        resp = api.post(
            "/api/items",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")


class TestSites:
    def test_empty(self, api):
        resp = api.get("/api/sites")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_each_site_once(self, api):
        for site in ["blog", "news", "blog", "BLOG"]:
            api.post("/api/items", json={"site": site, "data": {"views": 1}})
        assert sorted(api.get("/api/sites").json()) == ["blog", "news"]


class _BrokenRepository(InMemoryCounterRepository):
    def find(self, site):
        raise StorageError("SQLITE_CANTOPEN: /var/lib/secret/tally.db")

    def list_sites(self):
        raise StorageError("SQLITE_CANTOPEN: /var/lib/secret/tally.db")


class TestStorageFailure:
    @pytest.fixture
    def broken(self, memory_client):
        memory_client.app.dependency_overrides[get_repository] = _BrokenRepository
        yield memory_client
        memory_client.app.dependency_overrides.pop(get_repository, None)

    def test_submit_500_generic_message(self, broken):
        resp = broken.post("/api/items", json={"site": "blog", "data": {"views": 1}})
        assert resp.status_code == 500
        assert resp.json()["title"] == "An internal storage error occurred."
        assert "secret" not in resp.text

    def test_get_500(self, broken):
        resp = broken.get("/api/items/blog")
        assert resp.status_code == 500
        assert "secret" not in resp.text

    def test_sites_500(self, broken):
        assert broken.get("/api/sites").status_code == 500


class TestUnknownRoute:
    def test_404_problem(self, api):
        resp = api.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.json()["title"] == "Could not find this route!"

    def test_wrong_method(self, api):
        assert api.delete("/api/items/blog").status_code == 405
