import json

from rssagg.responses import respond_with_error, respond_with_json


def test_json_body_and_status():
    resp = respond_with_json(201, {"a": 1, "b": [1, 2]})
    assert resp.status_code == 201
    assert json.loads(resp.get_data()) == {"a": 1, "b": [1, 2]}
    assert resp.headers["Content-Type"] == "application/json"


def test_json_is_compact():
    resp = respond_with_json(200, {"a": 1})
    assert resp.get_data() == b'{"a":1}'


def test_empty_object():
    resp = respond_with_json(200, {})
    assert resp.get_data() == b"{}"


def test_unserialisable_gives_500():
    resp = respond_with_json(200, {"x": object()})
    assert resp.status_code == 500
    assert resp.get_data() == b""


def test_error_body():
    resp = respond_with_error(400, "Something went wrong")
    assert resp.status_code == 400
    assert json.loads(resp.get_data()) == {"error": "Something went wrong"}


def test_server_error_is_logged(caplog):
    with caplog.at_level("ERROR"):
        resp = respond_with_error(500, "boom")
    assert resp.status_code == 500
    assert "boom" in caplog.text