import pytest

from rssagg.app import create_app, main
from rssagg.database import Queries, connect


@pytest.fixture
def client():
    app = create_app(Queries(connect(":memory:")))
    return app.test_client()


def test_healthz(client):
    resp = client.get("/v1/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {}


def test_err(client):
    resp = client.get("/v1/err")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Something went wrong"}


def test_full_flow(client):
    user = client.post("/v1/users", json={"name": "alice"}).get_json()
    headers = {"Authorization": "ApiKey " + user["api_key"]}
    assert client.get("/v1/users", headers=headers).get_json() == user

    feed = client.post(
        "/v1/feeds", json={"name": "b", "url": "https://b.example.com"}, headers=headers
    ).get_json()
    follow = client.post("/v1/feed_follows", json={"feed_id": feed["id"]}, headers=headers)
    assert follow.status_code == 201
    follows = client.get("/v1/feed_follows", headers=headers).get_json()
    assert [f["feed_id"] for f in follows] == [feed["id"]]

    resp = client.delete(f"/v1/feed_follows/{follows[0]['id']}", headers=headers)
    assert resp.status_code == 200
    assert client.get("/v1/feed_follows", headers=headers).get_json() == []
    assert client.get("/v1/posts", headers=headers).get_json() == []


def test_auth_required(client):
    resp = client.post("/v1/feeds", json={"name": "b", "url": "u"})
    assert resp.status_code == 403


def test_cors_preflight(client):
    resp = client.options(
        "/v1/users",
        headers={
            "Origin": "https://site.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "https://site.example.com"
    assert resp.headers["Access-Control-Max-Age"] == "300"


def test_cors_simple_request(client):
    resp = client.get("/v1/healthz", headers={"Origin": "http://site.example.com"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://site.example.com"
    assert resp.headers["Access-Control-Expose-Headers"] == "Link"


def test_main_requires_port(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PORT", raising=False)
    with pytest.raises(SystemExit, match="PORT environment variable is not set"):
        main([])


def test_main_requires_db_url(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.delenv("DB_URL", raising=False)
    with pytest.raises(SystemExit, match="DB_URL is not found"):
        main([])