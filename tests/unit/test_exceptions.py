from __future__ import annotations

import pytest

from arestful import ApiError
from arestful.exceptions import (
    CODE_CANCELLED,
    CODE_CONFIG_ERROR,
    CODE_CONNECTION_REFUSED,
    CODE_HOST_NOT_FOUND,
    CODE_NETWORK_ERROR,
    CODE_NETWORK_UNREACHABLE,
    CODE_TIMEOUT,
    NO_RESPONSE_STATUS,
)

##############################
#     Tests for ApiError     #
##############################


def test_api_error_attributes() -> None:
    error = ApiError(404, {"code": "USER_NOT_FOUND", "message": "no such user"})
    assert error.status == 404
    assert error.code == "USER_NOT_FOUND"
    assert error.details == {"code": "USER_NOT_FOUND", "message": "no such user"}


def test_api_error_str_is_code() -> None:
    assert str(ApiError(404, {"code": "USER_NOT_FOUND"})) == "USER_NOT_FOUND"


def test_api_error_numeric_code() -> None:
    error = ApiError(-1, {"code": 101, "networkError": True})
    assert error.code == 101
    assert str(error) == "101"


@pytest.mark.parametrize("details", [None, "plain text", ["a", "b"], {"message": "no code"}])
def test_api_error_code_falls_back_to_status(details: object) -> None:
    assert ApiError(500, details).code == 500


def test_api_error_keeps_non_mapping_details() -> None:
    assert ApiError(502, b"<binary>").details == b"<binary>"


def test_api_error_repr() -> None:
    assert repr(ApiError(409, {"code": "CONFLICT"})) == (
        "ApiError(status=409, details={'code': 'CONFLICT'})"
    )


def test_api_error_can_be_raised_and_caught() -> None:
    with pytest.raises(ApiError, match="CONFLICT"):
        raise ApiError(409, {"code": "CONFLICT"})


def test_api_error_attributes_are_read_only() -> None:
    error = ApiError(400)
    with pytest.raises(AttributeError):
        error.status = 200


def test_error_codes() -> None:
    assert NO_RESPONSE_STATUS == -1
    assert [
        CODE_NETWORK_ERROR,
        CODE_TIMEOUT,
        CODE_NETWORK_UNREACHABLE,
        CODE_CANCELLED,
        CODE_HOST_NOT_FOUND,
        CODE_CONNECTION_REFUSED,
        CODE_CONFIG_ERROR,
    ] == [100, 101, 102, 103, 104, 105, 106]

