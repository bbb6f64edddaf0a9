"""Tests for output mode selection."""

import json

from cartctl.output.formatters import OutputSettings, format_result
from cartctl.services.result import ServiceError, ServiceResult


def _ok() -> ServiceResult:
    return ServiceResult(ok=True, op="clear", data={"grand_total": "0.00", "items": []})


class TestFormatResult:
    def test_json_mode(self) -> None:
        out = format_result(_ok(), settings=OutputSettings(json_output=True))
        parsed = json.loads(out)
        assert parsed["ok"] is True
        assert parsed["op"] == "clear"
        assert parsed["data"]["grand_total"] == "0.00"

    def test_json_error(self) -> None:
        result = ServiceResult(
            ok=False, op="add_item", error=ServiceError(code="INVALID_PRICE", message="bad")
        )
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["error"]["code"] == "INVALID_PRICE"

    def test_quiet_mode(self) -> None:
        assert format_result(_ok(), settings=OutputSettings(quiet=True)) == "0.00"

    def test_default_is_rich(self) -> None:
        out = format_result(_ok())
        assert "OK" in out
        assert "Cart is empty" in out

    def test_json_wins_over_quiet(self) -> None:
        out = format_result(_ok(), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(out)["op"] == "clear"
