"""Tests for the Response envelope."""

import json

import pytest

from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.response import Response


class TestSuccess:
    def test_with_code(self) -> None:
        response = Response.success(42, SuccessCode.SUCCESS_ON_CREATE)
        assert response.succeeded is True
        assert response.data == 42
        assert response.code == "20002"
        assert response.message == "Record created successfully."
        assert response.errors == []

    def test_without_code(self) -> None:
        response = Response.success("")
        assert response.succeeded is True
        assert response.data == ""
        assert response.code == ""
        assert response.message == "Succeeded"

    def test_message_override(self) -> None:
        response = Response.success(None, SuccessCode.SUCCESS_ON_GET, message="ok")
        assert response.message == "ok"


class TestFail:
    def test_carries_catalog_code(self) -> None:
        response = Response.fail(ErrorCode.EXIST_ON_CREATE)
        assert response.succeeded is False
        assert response.data is None
        assert response.code == "10101"
        assert response.is_error(ErrorCode.EXIST_ON_CREATE)
        assert not response.is_error(ErrorCode.FAIL_ON_CREATE)

    def test_errors_are_kept(self) -> None:
        response = Response.fail(ErrorCode.FAIL_ON_CREATE, errors=["row 1: bad"])
        assert response.errors == ["row 1: bad"]

    def test_success_is_never_an_error(self) -> None:
        assert not Response.success(1).is_error(ErrorCode.SYSTEM_ERROR)


class TestEnvelope:
    def test_json_shape(self) -> None:
        payload = json.loads(Response.fail(ErrorCode.SYSTEM_ERROR).model_dump_json())
        assert payload == {
            "succeeded": False,
            "data": None,
            "message": "An unexpected system error occurred.",
            "code": "10601",
            "errors": [],
        }

    def test_frozen(self) -> None:
        response = Response.success(1)
        with pytest.raises(Exception):
            response.succeeded = False  # type: ignore[misc]
