import pytest

from conductor.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    raise_for_response,
    response_detail,
)


class _Resp:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("not json")
        return self._body


def test_success_status_does_not_raise():
    raise_for_response(_Resp(204), "check_for_updates")


def test_client_error_carries_json_message_as_hint():
    with pytest.raises(ApiClientError) as excinfo:
        raise_for_response(_Resp(404, {"message": "Not Found"}), "check_for_updates")

    err = excinfo.value
    assert str(err) == "check_for_updates: Not Found (HTTP 404)"
    assert err.status == 404
    assert err.hint == "Not Found"
    assert err.context == "check_for_updates"


def test_server_error_uses_collapsed_text_body():
    with pytest.raises(ApiServerError) as excinfo:
        raise_for_response(_Resp(503, text="<h1>Service\n  Unavailable</h1>"), "download_update")

    assert str(excinfo.value) == "download_update: <h1>Service Unavailable</h1> (HTTP 503)"


def test_redirect_status_without_body_raises_base_error():
    with pytest.raises(ApiError) as excinfo:
        raise_for_response(_Resp(304), "download_update")

    assert type(excinfo.value) is ApiError
    assert str(excinfo.value) == "download_update: HTTP 304"


def test_detail_ignores_structured_bodies_without_text():
    assert response_detail(_Resp(400, {"errors": [1, 2]})) is None
    assert response_detail(_Resp(400, ["a", "b"])) is None
    assert response_detail(_Resp(400, text="x" * 500)) == "x" * 200
