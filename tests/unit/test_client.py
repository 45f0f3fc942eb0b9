r"""Unit tests for the RestClient verb methods.

The requests run through the real pipeline with an httpx.MockTransport
in place of the network.
"""

from __future__ import annotations

import functools
import json
import logging
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from coola.equality import objects_are_equal

from arestful import ApiError, ClientConfig, PreInterceptorResult, RestClient
from tests.helpers import BASE_URL, RecordingHandler, create_client, raise_on_request

JSON_HEADERS = {"Content-Type": "application/json"}


################################
#     Tests for RestClient     #
################################


def test_rest_client_defaults() -> None:
    client = RestClient(BASE_URL)
    assert client.base_url == BASE_URL
    assert client.config == ClientConfig()
    assert not client.debug


def test_rest_client_repr() -> None:
    assert repr(RestClient(BASE_URL)) == "RestClient(base_url='https://api.example.com')"


def test_rest_client_set_debug_is_idempotent() -> None:
    RestClient.set_debug(True)
    RestClient.set_debug(True)
    assert RestClient.is_debug()
    assert RestClient(BASE_URL).debug


def test_rest_client_set_debug_is_process_wide() -> None:
    client1 = RestClient(BASE_URL)
    client2 = RestClient("https://other.example.com")
    RestClient.set_debug(True)
    assert client1.debug
    assert client2.debug
    RestClient.set_debug(False)
    assert not client1.debug
    assert not client2.debug


def test_rest_client_config_debug_overrides_global_flag() -> None:
    RestClient.set_debug(True)
    assert not RestClient(BASE_URL, config=ClientConfig(debug=False)).debug
    RestClient.set_debug(False)
    assert RestClient(BASE_URL, config=ClientConfig(debug=True)).debug


@pytest.mark.asyncio
async def test_rest_client_get_decodes_json() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"id": 1}))
    client = create_client(handler)

    data = await client.get("/users", {"page": 1})

    assert data == {"id": 1}
    request = handler.last_request
    assert request.method == "GET"
    assert str(request.url) == "https://api.example.com/users?page=1"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_rest_client_get_without_params() -> None:
    handler = RecordingHandler(httpx.Response(200, json=[1, 2, 3]))
    client = create_client(handler)

    assert await client.get("/items") == [1, 2, 3]
    assert str(handler.last_request.url) == "https://api.example.com/items"


@pytest.mark.asyncio
async def test_rest_client_url_is_not_normalized() -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler, base_url="https://api.example.com/v1/")

    await client.get("/users")

    assert handler.last_request.url.path == "/v1//users"


@pytest.mark.asyncio
async def test_rest_client_empty_json_body_is_none() -> None:
    client = create_client(
        RecordingHandler(httpx.Response(200, content=b"  \n", headers=JSON_HEADERS))
    )
    assert await client.get("/users") is None


@pytest.mark.asyncio
async def test_rest_client_missing_content_type_is_parsed_as_json() -> None:
    client = create_client(RecordingHandler(httpx.Response(200, content=b'{"ok": true}')))
    assert await client.get("/status") == {"ok": True}


@pytest.mark.asyncio
async def test_rest_client_text_body_passes_through() -> None:
    client = create_client(RecordingHandler(httpx.Response(200, text=" plain text ")))
    assert await client.get("/readme") == " plain text "


@pytest.mark.asyncio
async def test_rest_client_binary_body_passes_through() -> None:
    client = create_client(
        RecordingHandler(
            httpx.Response(
                200, content=b"\x89PNG\x00", headers={"Content-Type": "image/png"}
            )
        )
    )
    assert await client.get("/logo") == b"\x89PNG\x00"


@pytest.mark.asyncio
async def test_rest_client_post_sends_json_body() -> None:
    handler = RecordingHandler(httpx.Response(201, json={"id": 7}))
    client = create_client(handler)

    data = await client.post("/users", {"name": "Ada"}, {"notify": "yes"})

    assert data == {"id": 7}
    request = handler.last_request
    assert request.method == "POST"
    assert str(request.url) == "https://api.example.com/users?notify=yes"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(handler.bodies[-1]) == {"name": "Ada"}


@pytest.mark.asyncio
async def test_rest_client_post_form_body() -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler)

    await client.post(
        "/login",
        {"user": "ada", "password": "secret"},
        content_type="application/x-www-form-urlencoded",
    )

    assert handler.last_request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert handler.bodies[-1] == b"user=ada&password=secret"


@pytest.mark.asyncio
async def test_rest_client_post_raw_xml_body() -> None:
    handler = RecordingHandler(httpx.Response(200, text="<ok/>"))
    client = create_client(handler)

    await client.post("/orders", "<order id='1'/>", content_type="application/xml")

    assert handler.last_request.headers["Content-Type"] == "application/xml"
    assert handler.bodies[-1] == b"<order id='1'/>"


@pytest.mark.asyncio
async def test_rest_client_post_falsy_json_body_is_sent() -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler)

    await client.post("/counters", 0)

    assert handler.bodies[-1] == b"0"


@pytest.mark.asyncio
@pytest.mark.parametrize(("method", "name"), [("put", "PUT"), ("delete", "DELETE")])
async def test_rest_client_put_and_delete(method: str, name: str) -> None:
    handler = RecordingHandler(httpx.Response(200, json={"done": True}))
    client = create_client(handler)

    data = await getattr(client, method)("/users/1", {"name": "Ada"}, {"force": "1"})

    assert data == {"done": True}
    assert handler.last_request.method == name
    assert str(handler.last_request.url) == "https://api.example.com/users/1?force=1"
    assert json.loads(handler.bodies[-1]) == {"name": "Ada"}


@pytest.mark.asyncio
async def test_rest_client_delete_without_body() -> None:
    handler = RecordingHandler(httpx.Response(204))
    client = create_client(handler)

    assert await client.delete("/users/1") is None
    assert handler.bodies[-1] == b""


@pytest.mark.asyncio
async def test_rest_client_unencodable_body_is_config_error(mock_error_hook: Mock) -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler, error_hook=mock_error_hook)

    with pytest.raises(ApiError) as exc_info:
        await client.post("/orders", {"id": 1}, content_type="application/xml")

    error = exc_info.value
    assert error.status == -1
    assert error.details["code"] == 106
    assert error.details["configError"]
    assert error.details["message"].startswith("configuration error: ")
    assert isinstance(error.__cause__, TypeError)
    assert not handler.requests
    mock_error_hook.assert_called_once_with(error)


#################################
#     Tests for the cookies     #
#################################


def login_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/login":
        return httpx.Response(200, json={}, headers={"Set-Cookie": "sid=abc; Path=/"})
    return httpx.Response(200, json={"user": "ada"})


@pytest.mark.asyncio
async def test_rest_client_keeps_session_cookie_between_calls(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    handler = RecordingHandler(login_handler)
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        functools.partial(httpx.AsyncClient, transport=httpx.MockTransport(handler)),
    )
    client = RestClient(BASE_URL)

    await client.post("/login", {"user": "ada"})
    assert await client.get("/me") == {"user": "ada"}

    assert "cookie" not in handler.requests[0].headers
    assert handler.last_request.headers["cookie"] == "sid=abc"


@pytest.mark.asyncio
async def test_rest_client_cookies_are_not_shared_between_instances(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    handler = RecordingHandler(login_handler)
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        functools.partial(httpx.AsyncClient, transport=httpx.MockTransport(handler)),
    )

    await RestClient(BASE_URL).post("/login", {"user": "ada"})
    await RestClient(BASE_URL).get("/me")

    assert "cookie" not in handler.last_request.headers


@pytest.mark.asyncio
async def test_rest_client_injected_client_keeps_its_cookies() -> None:
    handler = RecordingHandler(login_handler)
    client = create_client(handler)

    await client.post("/login", {"user": "ada"})
    await client.get("/me")

    assert handler.last_request.headers["cookie"] == "sid=abc"


######################################
#     Tests for response handling    #
######################################


@pytest.mark.asyncio
async def test_rest_client_processor_then_post_hook() -> None:
    processor = Mock(side_effect=lambda data: data["items"])
    post_hook = AsyncMock(side_effect=lambda data: [item * 10 for item in data])
    client = create_client(
        RecordingHandler(httpx.Response(200, json={"items": [1, 2]})),
        post_response_hook=post_hook,
    )

    assert await client.get("/items", processor=processor) == [10, 20]
    processor.assert_called_once_with({"items": [1, 2]})
    post_hook.assert_awaited_once_with([1, 2])


@pytest.mark.asyncio
async def test_rest_client_processor_only() -> None:
    client = create_client(RecordingHandler(httpx.Response(200, json={"items": [1, 2]})))
    assert await client.get("/items", processor=lambda data: len(data["items"])) == 2


@pytest.mark.asyncio
async def test_rest_client_post_hook_only(mock_post_hook: AsyncMock) -> None:
    client = create_client(
        RecordingHandler(httpx.Response(200, json={"id": 1})), post_response_hook=mock_post_hook
    )
    assert await client.get("/users/1") == {"id": 1}
    mock_post_hook.assert_awaited_once_with({"id": 1})


@pytest.mark.asyncio
async def test_rest_client_hooks_not_called_on_error_status(mock_post_hook: AsyncMock) -> None:
    processor = Mock()
    client = create_client(
        RecordingHandler(httpx.Response(500, json={"code": "BOOM"})),
        post_response_hook=mock_post_hook,
    )

    with pytest.raises(ApiError):
        await client.get("/users", processor=processor)

    processor.assert_not_called()
    mock_post_hook.assert_not_called()


@pytest.mark.asyncio
async def test_rest_client_failing_processor_is_normalized() -> None:
    client = create_client(RecordingHandler(httpx.Response(200, json={})))

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users", processor=lambda data: data["missing"])

    assert exc_info.value.details["code"] == 106
    assert isinstance(exc_info.value.__cause__, KeyError)


@pytest.mark.asyncio
async def test_rest_client_post_hook_api_error_is_raised_unchanged(
    mock_error_hook: Mock,
) -> None:
    error = ApiError(401, {"code": "SESSION_EXPIRED"})
    client = create_client(
        RecordingHandler(httpx.Response(200, json={})),
        error_hook=mock_error_hook,
        post_response_hook=AsyncMock(side_effect=error),
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    assert exc_info.value is error
    mock_error_hook.assert_called_once_with(error)


#####################################
#     Tests for the error model     #
#####################################


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 404, 422, 500, 503])
async def test_rest_client_error_status_json_details(status: int) -> None:
    client = create_client(
        RecordingHandler(httpx.Response(status, json={"code": "E42", "message": "nope"}))
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    error = exc_info.value
    assert error.status == status
    assert error.code == "E42"
    assert objects_are_equal(error.details, {"code": "E42", "message": "nope"})


@pytest.mark.asyncio
async def test_rest_client_error_status_html_details() -> None:
    page = "<html><body>" + "x" * 500 + "</body></html>"
    client = create_client(
        RecordingHandler(
            httpx.Response(404, text=page, headers={"Content-Type": "text/html; charset=utf-8"})
        )
    )

    with pytest.raises(ApiError) as exc_info:
        await client.post("/users", {"name": "Ada"})

    assert exc_info.value.status == 404
    assert objects_are_equal(exc_info.value.details, {"code": 404, "htmlContent": page[:200]})


@pytest.mark.asyncio
async def test_rest_client_error_status_raw_details() -> None:
    client = create_client(RecordingHandler(httpx.Response(502, text="bad gateway")))

    with pytest.raises(ApiError) as exc_info:
        await client.put("/users/1", {"name": "Ada"})

    assert exc_info.value.status == 502
    assert objects_are_equal(exc_info.value.details, {"code": 502, "raw": "bad gateway"})


@pytest.mark.asyncio
async def test_rest_client_malformed_json_success_body() -> None:
    client = create_client(
        RecordingHandler(httpx.Response(200, content=b"{bad", headers=JSON_HEADERS))
    )

    with pytest.raises(ApiError) as exc_info:
        await client.post("/users", {"name": "Ada"})

    details = exc_info.value.details
    assert exc_info.value.status == 200
    assert details["parseError"]
    assert details["raw"] == "{bad"
    assert details["message"] == "OK"


@pytest.mark.asyncio
async def test_rest_client_malformed_json_error_body() -> None:
    client = create_client(
        RecordingHandler(httpx.Response(500, content=b"{bad", headers=JSON_HEADERS))
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    details = exc_info.value.details
    assert exc_info.value.status == 500
    assert details["code"] == 500
    assert details["message"] == "Internal Server Error"
    assert details["parseError"]
    assert details["raw"] == "{bad"


@pytest.mark.asyncio
async def test_rest_client_unfollowed_redirect_is_error() -> None:
    client = create_client(
        RecordingHandler(httpx.Response(304, headers={"Content-Type": "text/plain"})),
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    assert exc_info.value.status == 304
    assert exc_info.value.details == {"code": 304, "raw": ""}


@pytest.mark.asyncio
async def test_rest_client_follows_redirects() -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": f"{BASE_URL}/new"})
        return httpx.Response(200, json={"path": request.url.path})

    client = create_client(RecordingHandler(respond))
    assert await client.get("/old") == {"path": "/new"}


@pytest.mark.asyncio
async def test_rest_client_redirects_disabled() -> None:
    client = create_client(
        RecordingHandler(httpx.Response(302, headers={"Location": f"{BASE_URL}/new"})),
        config=ClientConfig(follow_redirects=False),
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/old")

    assert exc_info.value.status == 302


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (httpx.ConnectTimeout("timed out"), 101),
        (httpx.ReadTimeout("timed out"), 101),
        (httpx.ReadError("connection reset"), 102),
        (httpx.ConnectError("[Errno -2] Name or service not known"), 104),
        (httpx.ConnectError("[Errno 111] Connection refused"), 105),
        (httpx.RemoteProtocolError("server disconnected"), 100),
    ],
)
async def test_rest_client_transport_errors(
    exc: Exception, code: int, mock_error_hook: Mock
) -> None:
    client = create_client(raise_on_request(exc), error_hook=mock_error_hook)

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    error = exc_info.value
    assert error.status == -1
    assert error.code == code
    assert error.details["code"] == code
    assert error.details["networkError"]
    assert error.details["originalMessage"] == str(exc)
    assert error.__cause__ is exc
    mock_error_hook.assert_called_once_with(error)


@pytest.mark.asyncio
async def test_rest_client_unsupported_scheme_is_config_error() -> None:
    client = RestClient("ftp://files.example.com")

    with pytest.raises(ApiError) as exc_info:
        await client.get("/report")

    assert exc_info.value.status == -1
    assert exc_info.value.details["code"] == 106


@pytest.mark.asyncio
async def test_rest_client_error_hook_called_once_and_error_still_raised() -> None:
    error_hook = Mock(return_value=True)
    client = create_client(
        RecordingHandler(httpx.Response(404, json={"code": "NOT_FOUND"})), error_hook=error_hook
    )

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users/9")

    error_hook.assert_called_once_with(exc_info.value)


@pytest.mark.asyncio
async def test_rest_client_error_hook_not_called_on_success(mock_error_hook: Mock) -> None:
    client = create_client(
        RecordingHandler(httpx.Response(200, json={})), error_hook=mock_error_hook
    )
    await client.get("/users")
    mock_error_hook.assert_not_called()


###########################################
#     Tests for the pre-request hook      #
###########################################


@pytest.mark.asyncio
async def test_rest_client_pre_request_hook_headers_and_timeout() -> None:
    hook = Mock(
        return_value=PreInterceptorResult(
            headers={"Authorization": "Bearer abc", "Content-Type": "application/vnd.api+json"},
            timeout=1500,
        )
    )
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler, pre_request_hook=hook)

    await client.post("/users", b"{}")

    hook.assert_called_once_with("POST", "/users")
    request = handler.last_request
    assert request.headers["Authorization"] == "Bearer abc"
    assert request.headers["Content-Type"] == "application/vnd.api+json"
    assert request.extensions["timeout"] == httpx.Timeout(1.5).as_dict()


@pytest.mark.asyncio
async def test_rest_client_pre_request_hook_without_timeout() -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(
        handler,
        pre_request_hook=lambda method, path: PreInterceptorResult(headers={"X-Trace": "1"}),
        config=ClientConfig(timeout=2000),
    )

    await client.get("/users")

    assert handler.last_request.headers["X-Trace"] == "1"
    assert handler.last_request.extensions["timeout"] == httpx.Timeout(2.0).as_dict()


@pytest.mark.asyncio
async def test_rest_client_pre_request_hook_returning_none() -> None:
    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler, pre_request_hook=lambda method, path: None)

    await client.get("/users")

    assert handler.last_request.headers["Content-Type"] == "application/json"
    assert handler.last_request.extensions["timeout"] == httpx.Timeout(60.0).as_dict()


@pytest.mark.asyncio
async def test_rest_client_failing_pre_request_hook_is_config_error() -> None:
    def hook(method: str, path: str) -> PreInterceptorResult:
        msg = "token cache is empty"
        raise RuntimeError(msg)

    handler = RecordingHandler(httpx.Response(200, json={}))
    client = create_client(handler, pre_request_hook=hook)

    with pytest.raises(ApiError) as exc_info:
        await client.get("/users")

    assert exc_info.value.details == {
        "code": 106,
        "message": "configuration error: token cache is empty",
        "configError": True,
        "originalMessage": "token cache is empty",
    }
    assert not handler.requests


################################
#     Tests for debug mode     #
################################


@pytest.mark.asyncio
async def test_rest_client_debug_traces_requests(caplog: pytest.LogCaptureFixture) -> None:
    RestClient.set_debug(True)
    client = create_client(
        RecordingHandler(httpx.Response(200, json={"id": 1})),
        pre_request_hook=lambda method, path: PreInterceptorResult(
            headers={"Authorization": "Bearer abc"}
        ),
    )

    with caplog.at_level(logging.DEBUG, logger="arestful"):
        assert await client.get("/users", {"page": 1}) == {"id": 1}

    sent = next(r for r in caplog.records if r.getMessage().startswith("Sending GET"))
    assert sent.url == "https://api.example.com/users"
    assert sent.params == {"page": 1}
    assert sent.headers["Authorization"] == "***"
    decoded = next(r for r in caplog.records if r.getMessage().startswith("Decoded 200"))
    assert decoded.data == {"id": 1}


@pytest.mark.asyncio
async def test_rest_client_no_trace_without_debug(caplog: pytest.LogCaptureFixture) -> None:
    client = create_client(RecordingHandler(httpx.Response(200, json={"id": 1})))

    with caplog.at_level(logging.DEBUG, logger="arestful"):
        await client.get("/users")

    assert not any(r.getMessage().startswith("Sending") for r in caplog.records)


@pytest.mark.asyncio
async def test_rest_client_debug_does_not_change_results() -> None:
    client = create_client(
        RecordingHandler(lambda request: httpx.Response(200, json={"id": 1}))
    )
    plain = await client.get("/users")
    RestClient.set_debug(True)
    assert await client.get("/users") == plain
