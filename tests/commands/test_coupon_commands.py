"""Tests for the coupon and discounts commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cartctl.cli import cli

CATALOG = {
    "discounts": [
        {"id": "pasta-bulk", "percent_off": 20, "category_ref": "pasta", "min_quantity": 3},
        {"id": "penne-12", "percent_off": 12.5, "specific_product_refs": ["penne"]},
        {"id": "welcome", "percent_off": 10, "coupon_code": "SAVE10"},
    ]
}


@pytest.fixture
def catalog_json(tmp_path: Path) -> Path:
    path = tmp_path / "promos.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")
    return path


@pytest.mark.usefixtures("_isolated_cart")
class TestCouponApply:
    def test_apply_valid(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        cli_runner.invoke(cli, ["--sync", "add", "bread", "10.00"])
        result = cli_runner.invoke(
            cli, ["--json", "--sync", "--catalog", str(catalog_json), "coupon", "apply", "SAVE10"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["coupon_code"] == "SAVE10"
        assert data["grand_total"] == "9.00"

    def test_apply_invalid(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "--catalog", str(catalog_json), "coupon", "apply", "BOGUS"]
        )
        assert result.exit_code == 1
        payload = json.loads(result.stderr)
        assert payload["error"]["code"] == "COUPON_REJECTED"
        assert payload["error"]["message"] == "Invalid or expired coupon code"

    def test_apply_blank(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        result = cli_runner.invoke(cli, ["--catalog", str(catalog_json), "coupon", "apply", " "])
        assert result.exit_code == 1
        assert "Please enter a valid coupon code" in result.stderr

    def test_apply_without_catalog_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        missing = tmp_path / "gone.toml"
        result = cli_runner.invoke(
            cli, ["--json", "--catalog", str(missing), "coupon", "apply", "SAVE10"]
        )
        assert result.exit_code == 1
        payload = json.loads(result.stderr)
        assert payload["error"]["message"].startswith("Failed to validate coupon")


@pytest.mark.usefixtures("_isolated_cart")
class TestCouponRemove:
    def test_remove_is_ok_without_coupon(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "--sync", "coupon", "remove"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["op"] == "remove_coupon"
        assert payload["data"]["coupon_status"] == "idle"


@pytest.mark.usefixtures("_isolated_cart")
class TestDiscounts:
    def test_lists_regular_discounts(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "--catalog", str(catalog_json), "discounts"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)["data"]
        assert data["count"] == 2
        assert [d["id"] for d in data["items"]] == ["pasta-bulk", "penne-12"]
        assert data["items"][1]["percent_off"] == "12.5"
        assert data["items"][1]["products"] == ["penne"]

    def test_human_table(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        result = cli_runner.invoke(cli, ["--catalog", str(catalog_json), "discounts"])
        assert result.exit_code == 0
        assert "pasta-bulk" in result.stdout
        assert "2 discounts" in result.stdout

    def test_quiet_ids(self, cli_runner: CliRunner, catalog_json: Path) -> None:
        result = cli_runner.invoke(cli, ["-q", "--catalog", str(catalog_json), "discounts"])
        assert result.stdout.split() == ["pasta-bulk", "penne-12"]

    def test_no_catalog(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["discounts"])
        assert result.exit_code == 0
        assert "No active discounts." in result.stdout

    def test_missing_explicit_catalog(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "--catalog", str(tmp_path / "gone.toml"), "discounts"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "CATALOG_UNAVAILABLE"

    def test_targeted_product_shadows_category(
        self, cli_runner: CliRunner, catalog_json: Path
    ) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "--json",
                "--sync",
                "--catalog",
                str(catalog_json),
                "add",
                "penne",
                "8.00",
                "--category",
                "pasta",
                "--qty",
                "3",
            ],
        )
        item = json.loads(result.stdout)["data"]["items"][0]
        assert item["discount_id"] == "penne-12"
        assert item["effective_unit_price"] == "7.00"


@pytest.mark.usefixtures("_isolated_cart")
class TestCouponAcrossRuns:
    def _show(self, cli_runner: CliRunner, catalog_json: Path) -> dict:
        result = cli_runner.invoke(cli, ["--json", "--catalog", str(catalog_json), "show"])
        assert result.exit_code == 0, result.output
        return json.loads(result.stdout)["data"]

    def test_applied_coupon_kept_for_next_command(
        self, cli_runner: CliRunner, catalog_json: Path
    ) -> None:
        cli_runner.invoke(cli, ["--sync", "add", "bread", "10.00"])
        applied = cli_runner.invoke(
            cli, ["--catalog", str(catalog_json), "coupon", "apply", "SAVE10"]
        )
        assert applied.exit_code == 0, applied.output
        data = self._show(cli_runner, catalog_json)
        assert data["coupon_status"] == "applied"
        assert data["coupon_code"] == "SAVE10"
        assert data["grand_total"] == "9.00"

    def test_removed_coupon_gone_for_next_command(
        self, cli_runner: CliRunner, catalog_json: Path
    ) -> None:
        cli_runner.invoke(cli, ["--sync", "add", "bread", "10.00"])
        cli_runner.invoke(cli, ["--catalog", str(catalog_json), "coupon", "apply", "SAVE10"])
        removed = cli_runner.invoke(cli, ["--catalog", str(catalog_json), "coupon", "remove"])
        assert removed.exit_code == 0, removed.output
        data = self._show(cli_runner, catalog_json)
        assert data["coupon_status"] == "idle"
        assert data["grand_total"] == "10.00"
