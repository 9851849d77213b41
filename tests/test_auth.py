import pytest

from rssagg.auth import AuthError, get_api_key


def test_returns_key_after_scheme():
    assert get_api_key({"Authorization": "ApiKey token"}) == "token"


def test_header_name_is_case_insensitive():
    assert get_api_key({"authorization": "ApiKey placeholder"}) == "placeholder"


@pytest.mark.parametrize("headers", [{}, {"Authorization": ""}])
def test_missing_header(headers):
    with pytest.raises(AuthError, match="missing Authorization header"):
        get_api_key(headers)


@pytest.mark.parametrize("value", ["ApiKey", "ApiKey token token", "ApiKey  token"])
def test_wrong_number_of_parts(value):
    with pytest.raises(AuthError, match="invalid Authorization header format"):
        get_api_key({"Authorization": value})


def test_wrong_scheme():
    with pytest.raises(AuthError, match="expected 'ApiKey'"):
        get_api_key({"Authorization": "Bearer token"})