"""CLI integration smoke tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from conftest import page_text
from typer.testing import CliRunner

from lexbates import __version__
from lexbates.cli import app

runner = CliRunner()


def _invoke_json(args: list[str], *, exit_code: int = 0) -> dict[str, Any]:
    result = runner.invoke(app, [*args, "--json"])
    assert result.exit_code == exit_code, result.output
    return json.loads(result.stdout)


@pytest.fixture
def cli_case(override_settings) -> str:
    body = _invoke_json(["case", "add", "Acme v. Widgets"])
    return body["payload"]["id"]


@pytest.fixture
def cli_document(cli_case: str, make_pdf: Callable[..., Path]) -> Callable[[str], str]:
    def _add(name: str) -> str:
        path = make_pdf(name, 2, text=f"{name} page")
        body = _invoke_json(["document", "add", str(path), "--case", cli_case])
        return body["payload"]["id"]

    return _add


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_json_envelope_carries_schema_metadata(cli_case: str) -> None:
    body = _invoke_json(["case", "list"])

    assert body["schema_id"] == "case_list"
    assert body["schema_version"] == 1
    assert body["producer"].startswith("lexbates-")
    datetime.fromisoformat(body["produced_at"])
    assert body["success"] is True
    assert [case["id"] for case in body["payload"]] == [cli_case]


def test_apply_label_end_to_end(
    cli_case: str, cli_document: Callable[[str], str], temp_dir: Path
) -> None:
    document_id = cli_document("contract.pdf")
    config = _invoke_json(
        ["config", "create", "Production 1", "--case", cli_case, "--prefix", "TEST", "--start", "42"]
    )["payload"]
    labeled_path = temp_dir / "out" / "contract-labeled.pdf"

    applied = _invoke_json(
        ["bates", "apply", document_id, "--config", config["id"], "--output", str(labeled_path)]
    )

    assert applied["schema_id"] == "bates_apply"
    assert applied["payload"]["rendered_label"] == "TEST00042"
    assert applied["payload"]["stamped"] is True
    assert "TEST00042" in page_text(labeled_path.read_bytes(), 1)

    peek = _invoke_json(["bates", "next", "--config", config["id"]])
    assert peek["payload"]["next_label"] == "TEST00043"

    shown = _invoke_json(["config", "show", config["id"]])
    assert shown["payload"]["locked"] is True


def test_second_label_is_refused_with_exit_code(
    cli_case: str, cli_document: Callable[[str], str]
) -> None:
    document_id = cli_document("memo.pdf")
    config_id = _invoke_json(["config", "create", "P1", "--case", cli_case, "--prefix", "TEST"])[
        "payload"
    ]["id"]
    _invoke_json(["bates", "apply", document_id, "--config", config_id])

    refused = _invoke_json(["bates", "apply", document_id, "--config", config_id], exit_code=1)

    assert refused["success"] is False
    assert refused["error"] == "conflict"
    assert "TEST00001" in refused["message"]


def test_locked_config_update_is_a_conflict(
    cli_case: str, cli_document: Callable[[str], str]
) -> None:
    document_id = cli_document("letter.pdf")
    config_id = _invoke_json(["config", "create", "P1", "--case", cli_case, "--prefix", "TEST"])[
        "payload"
    ]["id"]
    _invoke_json(["bates", "apply", document_id, "--config", config_id])

    body = _invoke_json(["config", "update", config_id, "--prefix", "NEW"], exit_code=1)
    assert body["error"] == "conflict"

    renamed = _invoke_json(["config", "update", config_id, "--name", "Renamed"])
    assert renamed["payload"]["name"] == "Renamed"


def test_batch_reports_per_item_results(
    cli_case: str, cli_document: Callable[[str], str]
) -> None:
    first = cli_document("a.pdf")
    second = cli_document("b.pdf")
    config_id = _invoke_json(["config", "create", "P1", "--case", cli_case, "--prefix", "TEST"])[
        "payload"
    ]["id"]

    body = _invoke_json(
        ["bates", "batch", first, "missing-document", second, "--config", config_id],
        exit_code=1,
    )

    items = body["payload"]
    assert [item["success"] for item in items] == [True, False, True]
    assert [item["rendered_label"] for item in items] == ["TEST00001", None, "TEST00002"]
    assert items[1]["error"] == "not_found"


def test_report_csv_and_verify(
    cli_case: str, cli_document: Callable[[str], str], temp_dir: Path
) -> None:
    config_id = _invoke_json(["config", "create", "P1", "--case", cli_case, "--prefix", "TEST"])[
        "payload"
    ]["id"]
    for name in ("alpha.pdf", "beta.pdf"):
        _invoke_json(["bates", "apply", cli_document(name), "--config", config_id])

    report_path = temp_dir / "report.csv"
    result = runner.invoke(
        app,
        ["bates", "report", "--config", config_id, "--format", "csv", "--output", str(report_path)],
    )
    assert result.exit_code == 0, result.output
    lines = report_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Bates Number,Document Name,Applied By,Applied Date"
    assert [line.split(",")[0] for line in lines[1:]] == ["TEST00001", "TEST00002"]

    verified = _invoke_json(["bates", "verify"])
    assert verified["valid"] is True
    assert verified["error_count"] == 0

    search = _invoke_json(["bates", "search", "00002", "--case", cli_case])
    assert search["payload"]["total"] == 1


def test_exhibit_workflow(
    cli_case: str, cli_document: Callable[[str], str], temp_dir: Path
) -> None:
    exhibit_ids = [
        _invoke_json(["exhibit", "create", cli_document(name), "--case", cli_case])["payload"]["id"]
        for name in ("one.pdf", "two.pdf")
    ]

    assigned = _invoke_json(
        ["exhibit", "batch-assign", *exhibit_ids, "--start", "9", "--prefix", "PX-"]
    )
    assert [item["exhibit_number"] for item in assigned["payload"]] == ["PX-9", "PX-10"]

    export = runner.invoke(app, ["exhibit", "export", "--case", cli_case])
    assert export.exit_code == 0, export.output
    rows = export.stdout.splitlines()
    assert rows[0] == "Exhibit Number,Title,Description,Bates Number,Status"
    assert [row.split(",")[0] for row in rows[1:]] == ["PX-9", "PX-10"]

    _invoke_json(["exhibit", "status", exhibit_ids[0], "admitted"])
    summary = _invoke_json(["exhibit", "summary", "--case", cli_case])
    assert summary["payload"]["admitted"] == 1
    assert summary["payload"]["designated"] == 1

    package = _invoke_json(
        [
            "exhibit",
            "package",
            "create",
            "Trial binder",
            "--case",
            cli_case,
            "-e",
            exhibit_ids[1],
            "-e",
            exhibit_ids[0],
            "--event-type",
            "trial",
        ]
    )["payload"]
    assert package["exhibit_ids"] == [exhibit_ids[1], exhibit_ids[0]]

    binder = temp_dir / "binder.pdf"
    built = _invoke_json(["exhibit", "package", "build", package["id"], "--output", str(binder)])
    assert built["payload"]["page_count"] == 4
    assert "EXHIBIT PX-10" in page_text(binder.read_bytes(), 0)


def test_unknown_case_fails_cleanly(override_settings, make_pdf: Callable[..., Path]) -> None:
    path = make_pdf("orphan.pdf")

    body = _invoke_json(["document", "add", str(path), "--case", "no-such-case"], exit_code=1)

    assert body["success"] is False
    assert body["error"] == "not_found"
