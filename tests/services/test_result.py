"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from cartctl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="add_item", data={"grand_total": "4.50"})
        assert result.ok is True
        assert result.op == "add_item"
        assert result.data == {"grand_total": "4.50"}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="INVALID_PRICE", message="Invalid price: 'x'")
        result = ServiceResult(ok=False, op="add_item", error=error)
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "INVALID_PRICE"

    def test_json_serialization(self) -> None:
        result = ServiceResult(ok=True, op="show", data={"item_count": 2}, meta={"v": 1})
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"]["item_count"] == 2
        assert parsed["meta"]["v"] == 1

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="show")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestServiceError:
    def test_with_detail(self) -> None:
        error = ServiceError(
            code="COUPON_REJECTED",
            message="Invalid or expired coupon code",
            detail={"code": "NOPE"},
        )
        assert error.detail["code"] == "NOPE"

    def test_detail_defaults_empty(self) -> None:
        assert ServiceError(code="X", message="y").detail == {}
