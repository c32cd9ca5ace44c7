"""LexBates CLI application with Typer."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from lexbates import __version__
from lexbates.app.results import Outcome
from lexbates.bootstrap import bootstrap_application
from lexbates.config import get_settings, set_settings
from lexbates.errors import LexBatesError, StorageError
from lexbates.utils.cli_output import json_response

if TYPE_CHECKING:
    from lexbates.app.exhibit_service import PackageDetail
    from lexbates.app.ports import Document, Exhibit, LedgerEntry, NumberingConfig
    from lexbates.app.results import SearchPage
    from lexbates.bootstrap import ApplicationContainer

app = typer.Typer(
    name="lexbates",
    help="Offline-first Bates numbering and exhibit labeling for litigation matters",
    add_completion=True,
    no_args_is_help=True,
)

JsonFlag = Annotated[bool, typer.Option("--json", help="Output results as JSON")]
PageOption = Annotated[int, typer.Option("--page", help="Page number (1-based)")]
LimitOption = Annotated[int, typer.Option("--limit", help="Items per page")]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"LexBates version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", help="Principal recorded as applied_by/created_by"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """LexBates - Offline-first Bates numbering CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Update settings with CLI flags
    settings = get_settings()
    if data_dir:
        settings.data_dir = data_dir
        settings._resolved_data_dir = None
    if user:
        settings.default_principal = user
    set_settings(settings)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _container() -> "ApplicationContainer":
    try:
        return bootstrap_application()
    except LexBatesError as exc:
        typer.secho(f"Error ({exc.kind}): {exc.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _run(
    schema_id: str,
    func: Callable[[], Any],
    *,
    json_output: bool,
    render: Callable[[Any], None],
) -> Any:
    """Execute ``func`` and print its outcome; exit 1 on a handled failure."""
    outcome: Outcome[Any] = Outcome.capture(func)

    if json_output:
        typer.echo(json_response(schema_id, 1, **outcome.to_dict()))
    elif outcome.success:
        render(outcome.payload)
    else:
        typer.secho(f"Error ({outcome.error}): {outcome.message}", fg=typer.colors.RED, err=True)

    if not outcome.success:
        raise typer.Exit(code=1)
    return outcome.payload


def _export_artifact(container: "ApplicationContainer", ref: str, output: Path) -> Path:
    destination = output.resolve()
    data = container.artifact_store.read(ref)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as exc:
        raise StorageError(f"Unable to write {destination}: {exc}") from exc
    return destination


def _write_text(output: Path, content: str) -> Path:
    destination = output.resolve()
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Unable to write {destination}: {exc}") from exc
    return destination


def _echo_page(page: "SearchPage[Any]", line: Callable[[Any], str]) -> None:
    if not page.items:
        typer.secho("No results", fg=typer.colors.YELLOW)
        return
    for item in page.items:
        typer.echo(line(item))
    typer.echo(
        f"Page {page.current_page}/{max(page.total_pages, 1)} "
        f"({page.count} of {page.total})"
    )


def _config_line(config: "NumberingConfig") -> str:
    return (
        f"{config.id}  {config.name}  prefix={config.prefix!r} suffix={config.suffix!r} "
        f"start={config.start_number} padding={config.padding} format={config.format}"
    )


def _entry_line(entry: "LedgerEntry") -> str:
    stamp = "" if entry.stamped else " (not stamped)"
    return f"{entry.rendered_label}  seq={entry.sequence_number}  doc={entry.document_id}{stamp}"


def _exhibit_line(exhibit: "Exhibit") -> str:
    number = exhibit.exhibit_number or "-"
    return f"{number:>8}  {exhibit.id}  [{exhibit.status}]  {exhibit.title}"


def _document_line(document: "Document") -> str:
    label = document.bates_label.rendered_label if document.bates_label else "-"
    return f"{document.id}  {document.name}  {document.mime_type}  bates={label}"


# ---------------------------------------------------------------------------
# Cases
# ---------------------------------------------------------------------------

case_app = typer.Typer(help="Case registration")
app.add_typer(case_app, name="case")


@case_app.command("add")
def case_add(
    name: Annotated[str, typer.Argument(help="Case name")],
    json_output: JsonFlag = False,
) -> None:
    """Register a new case."""
    container = _container()
    _run(
        "case",
        lambda: container.catalog_service.add_case(name),
        json_output=json_output,
        render=lambda case: typer.secho(
            f"Created case {case.id} ({case.name})", fg=typer.colors.GREEN
        ),
    )


@case_app.command("list")
def case_list(json_output: JsonFlag = False) -> None:
    """List registered cases."""
    container = _container()

    def render(cases: list[Any]) -> None:
        if not cases:
            typer.secho("No cases registered", fg=typer.colors.YELLOW)
        for case in cases:
            typer.echo(f"{case.id}  {case.name}")

    _run("case_list", container.catalog_service.list_cases, json_output=json_output, render=render)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

document_app = typer.Typer(help="Document registration")
app.add_typer(document_app, name="document")


@document_app.command("add")
def document_add(
    path: Annotated[Path, typer.Argument(help="File to register")],
    case_id: Annotated[str, typer.Option("--case", help="Owning case ID")],
    name: Annotated[str | None, typer.Option("--name", help="Display name")] = None,
    mime_type: Annotated[
        str | None, typer.Option("--mime-type", help="Override detected MIME type")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Copy a file into the artifact store and register it as a document."""
    container = _container()
    _run(
        "document",
        lambda: container.catalog_service.register_document(
            path, case_id, name=name, mime_type=mime_type
        ),
        json_output=json_output,
        render=lambda document: typer.secho(
            f"Registered document {document.id} ({document.name})", fg=typer.colors.GREEN
        ),
    )


@document_app.command("list")
def document_list(
    case_id: Annotated[str | None, typer.Option("--case", help="Filter by case ID")] = None,
    json_output: JsonFlag = False,
) -> None:
    """List registered documents."""
    container = _container()

    def render(documents: list[Any]) -> None:
        if not documents:
            typer.secho("No documents registered", fg=typer.colors.YELLOW)
        for document in documents:
            typer.echo(_document_line(document))

    _run(
        "document_list",
        lambda: container.catalog_service.list_documents(case_id),
        json_output=json_output,
        render=render,
    )


@document_app.command("show")
def document_show(
    document_id: Annotated[str, typer.Argument(help="Document ID")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the current (labeled if any) artifact here"),
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Show a document and optionally export its current artifact."""
    container = _container()

    def show() -> Any:
        document = container.catalog_service.get_document(document_id)
        if output is not None:
            ref = document.binary_ref
            if document.bates_label is not None:
                entry = container.ledger_port.get(document.bates_label.ledger_entry_id)
                if entry is not None:
                    ref = entry.labeled_artifact_ref
            _export_artifact(container, ref, output)
        return document

    _run(
        "document",
        show,
        json_output=json_output,
        render=lambda document: typer.echo(_document_line(document)),
    )


# ---------------------------------------------------------------------------
# Numbering configurations
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Bates numbering configurations")
app.add_typer(config_app, name="config")


@config_app.command("create")
def config_create(
    name: Annotated[str, typer.Argument(help="Configuration name")],
    case_id: Annotated[str, typer.Option("--case", help="Owning case ID")],
    prefix: Annotated[str, typer.Option("--prefix", help="Label prefix")] = "",
    suffix: Annotated[str, typer.Option("--suffix", help="Label suffix")] = "",
    start_number: Annotated[int, typer.Option("--start", help="First sequence number")] = 1,
    padding: Annotated[
        int | None, typer.Option("--padding", help="Minimum digit width (default from settings)")
    ] = None,
    number_format: Annotated[
        str, typer.Option("--format", help="sequential or alphanumeric")
    ] = "sequential",
    json_output: JsonFlag = False,
) -> None:
    """Create a Bates numbering configuration."""
    container = _container()
    _run(
        "bates_config",
        lambda: container.config_service.create(
            name,
            case_id,
            prefix=prefix,
            suffix=suffix,
            start_number=start_number,
            padding=padding,
            format=number_format,
        ),
        json_output=json_output,
        render=lambda config: typer.secho(
            f"Created configuration {config.id}; first label {config.render(config.start_number)}",
            fg=typer.colors.GREEN,
        ),
    )


@config_app.command("list")
def config_list(
    case_id: Annotated[str | None, typer.Option("--case", help="Filter by case ID")] = None,
    json_output: JsonFlag = False,
) -> None:
    """List configurations, newest first."""
    container = _container()

    def render(configs: list[Any]) -> None:
        if not configs:
            typer.secho("No configurations found", fg=typer.colors.YELLOW)
        for config in configs:
            typer.echo(_config_line(config))

    _run(
        "bates_config_list",
        lambda: container.config_service.list(case_id),
        json_output=json_output,
        render=render,
    )


@config_app.command("show")
def config_show(
    config_id: Annotated[str, typer.Argument(help="Configuration ID")],
    json_output: JsonFlag = False,
) -> None:
    """Show a configuration and whether it is locked."""
    container = _container()

    def show() -> dict[str, Any]:
        config = container.config_service.get(config_id)
        return {
            "config": config.model_dump(mode="json"),
            "locked": container.config_service.is_locked(config_id),
        }

    def render(payload: dict[str, Any]) -> None:
        config = payload["config"]
        typer.echo(f"{config['id']}  {config['name']}")
        typer.echo(f"  prefix={config['prefix']!r} suffix={config['suffix']!r}")
        typer.echo(
            f"  start={config['start_number']} padding={config['padding']} "
            f"format={config['format']}"
        )
        typer.echo(f"  locked={payload['locked']}")

    _run("bates_config", show, json_output=json_output, render=render)


@config_app.command("update")
def config_update(
    config_id: Annotated[str, typer.Argument(help="Configuration ID")],
    name: Annotated[str | None, typer.Option("--name")] = None,
    prefix: Annotated[str | None, typer.Option("--prefix")] = None,
    suffix: Annotated[str | None, typer.Option("--suffix")] = None,
    start_number: Annotated[int | None, typer.Option("--start")] = None,
    padding: Annotated[int | None, typer.Option("--padding")] = None,
    number_format: Annotated[str | None, typer.Option("--format")] = None,
    json_output: JsonFlag = False,
) -> None:
    """Update a configuration (prefix, suffix, start and format lock after first use)."""
    container = _container()
    requested = {
        "name": name,
        "prefix": prefix,
        "suffix": suffix,
        "start_number": start_number,
        "padding": padding,
        "format": number_format,
    }
    fields = {key: value for key, value in requested.items() if value is not None}
    _run(
        "bates_config",
        lambda: container.config_service.update(config_id, **fields),
        json_output=json_output,
        render=lambda config: typer.secho(
            f"Updated configuration {config.id}", fg=typer.colors.GREEN
        ),
    )


@config_app.command("delete")
def config_delete(
    config_id: Annotated[str, typer.Argument(help="Configuration ID")],
    json_output: JsonFlag = False,
) -> None:
    """Delete an unused configuration."""
    container = _container()

    def delete() -> dict[str, str]:
        container.config_service.delete(config_id)
        return {"deleted": config_id}

    _run(
        "bates_config_delete",
        delete,
        json_output=json_output,
        render=lambda _: typer.secho(f"Deleted configuration {config_id}", fg=typer.colors.GREEN),
    )


# ---------------------------------------------------------------------------
# Bates labeling and registry
# ---------------------------------------------------------------------------

bates_app = typer.Typer(help="Bates labeling and registry")
app.add_typer(bates_app, name="bates")


@bates_app.command("apply")
def bates_apply(
    document_id: Annotated[str, typer.Argument(help="Document ID")],
    config_id: Annotated[str, typer.Option("--config", help="Numbering configuration ID")],
    position: Annotated[
        str | None,
        typer.Option("--position", help="bottom-right, bottom-left, top-left or top-right"),
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the labeled artifact here")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Apply the next Bates label of a configuration to one document."""
    container = _container()

    def apply() -> Any:
        entry = container.labeling_service.apply_label(
            document_id, config_id, position=position
        )
        if output is not None:
            _export_artifact(container, entry.labeled_artifact_ref, output)
        return entry

    def render(entry: Any) -> None:
        typer.secho(f"Applied {entry.rendered_label} to {entry.document_id}", fg=typer.colors.GREEN)
        if not entry.stamped:
            typer.secho(
                "  Document type cannot carry a visual label; recorded without a stamp",
                fg=typer.colors.YELLOW,
            )

    _run("bates_apply", apply, json_output=json_output, render=render)


@bates_app.command("batch")
def bates_batch(
    document_ids: Annotated[list[str], typer.Argument(help="Document IDs in labeling order")],
    config_id: Annotated[str, typer.Option("--config", help="Numbering configuration ID")],
    position: Annotated[
        str | None,
        typer.Option("--position", help="bottom-right, bottom-left, top-left or top-right"),
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Apply consecutive Bates labels to documents in order."""
    container = _container()

    def render(results: list[Any]) -> None:
        for item in results:
            if item.success:
                typer.secho(f"  {item.document_id}: {item.rendered_label}", fg=typer.colors.GREEN)
            else:
                typer.secho(
                    f"  {item.document_id}: {item.error} - {item.message}", fg=typer.colors.RED
                )
        succeeded = sum(1 for item in results if item.success)
        typer.echo(f"{succeeded}/{len(results)} documents labeled")

    results = _run(
        "bates_batch",
        lambda: container.labeling_service.batch_apply_labels(
            document_ids, config_id, position=position
        ),
        json_output=json_output,
        render=render,
    )
    if any(not item.success for item in results):
        raise typer.Exit(code=1)


@bates_app.command("next")
def bates_next(
    config_id: Annotated[str, typer.Option("--config", help="Numbering configuration ID")],
    json_output: JsonFlag = False,
) -> None:
    """Show the next number without claiming it."""
    container = _container()
    _run(
        "bates_next",
        lambda: container.registry_service.next_sequence_number(config_id),
        json_output=json_output,
        render=lambda payload: typer.echo(
            f"Next: {payload['next_label']} (sequence {payload['next_sequence_number']})"
        ),
    )


@bates_app.command("search")
def bates_search(
    pattern: Annotated[str, typer.Argument(help="Substring of the Bates number")],
    case_id: Annotated[str | None, typer.Option("--case", help="Restrict to a case")] = None,
    page: PageOption = 1,
    limit: LimitOption = 10,
    json_output: JsonFlag = False,
) -> None:
    """Search the registry by Bates number (case-insensitive)."""
    container = _container()
    _run(
        "bates_search",
        lambda: container.registry_service.find_by_label(
            pattern, case_id=case_id, page=page, limit=limit
        ),
        json_output=json_output,
        render=lambda result: _echo_page(result, _entry_line),
    )


@bates_app.command("list")
def bates_list(
    config_id: Annotated[str | None, typer.Option("--config", help="Filter by configuration")] = None,
    case_id: Annotated[str | None, typer.Option("--case", help="Filter by case")] = None,
    page: PageOption = 1,
    limit: LimitOption = 10,
    json_output: JsonFlag = False,
) -> None:
    """List registry entries by sequence number."""
    container = _container()
    _run(
        "bates_registry",
        lambda: container.registry_service.list_entries(
            config_id=config_id, case_id=case_id, page=page, limit=limit
        ),
        json_output=json_output,
        render=lambda result: _echo_page(result, _entry_line),
    )


@bates_app.command("report")
def bates_report(
    config_id: Annotated[str | None, typer.Option("--config", help="Configuration ID")] = None,
    case_id: Annotated[str | None, typer.Option("--case", help="Case ID")] = None,
    report_format: Annotated[str, typer.Option("--format", help="json or csv")] = "json",
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the report to a file")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Produce a Bates report for a configuration or case."""
    container = _container()

    def report() -> Any:
        result = container.registry_service.report(
            config_id=config_id, case_id=case_id, format=report_format
        )
        if output is not None:
            content = result if isinstance(result, str) else json_response(
                "bates_report", 1, rows=result
            )
            _write_text(output, content)
        return result

    def render(result: Any) -> None:
        if output is not None:
            typer.secho(f"Report written to {output}", fg=typer.colors.GREEN)
        elif isinstance(result, str):
            typer.echo(result, nl=False)
        else:
            for row in result:
                typer.echo(
                    f"{row['bates_number']}  {row['document_name']}  "
                    f"{row['applied_by']}  {row['applied_date']}"
                )

    _run("bates_report", report, json_output=json_output, render=render)


@bates_app.command("verify")
def bates_verify(
    skip_artifacts: Annotated[
        bool, typer.Option("--skip-artifacts", help="Only verify the registry chain")
    ] = False,
    json_output: JsonFlag = False,
) -> None:
    """Verify Bates registry integrity.

    Checks the registry for:
    - Broken hash chain or invalid HMAC signatures
    - Truncation against the sealed metadata
    - Duplicate Bates numbers or documents labeled twice
    - Missing or modified artifacts
    """
    container = _container()
    is_valid, errors = container.registry_service.verify(check_artifacts=not skip_artifacts)
    registry_path = container.settings.get_registry_path()

    if json_output:
        typer.echo(
            json_response(
                "bates_verification",
                1,
                registry_path=str(registry_path),
                valid=is_valid,
                error_count=len(errors),
                errors=errors,
            )
        )
    else:
        if is_valid:
            typer.secho(f"Bates registry verified: {registry_path}", fg=typer.colors.GREEN)
        else:
            typer.secho(
                f"Bates registry verification failed ({len(errors)} errors):",
                fg=typer.colors.RED,
                err=True,
            )
            for error in errors:
                typer.echo(f"  - {error}", err=True)

    if not is_valid:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Exhibits
# ---------------------------------------------------------------------------

exhibit_app = typer.Typer(help="Exhibit designation and numbering")
app.add_typer(exhibit_app, name="exhibit")


@exhibit_app.command("create")
def exhibit_create(
    document_id: Annotated[str, typer.Argument(help="Document ID")],
    case_id: Annotated[str, typer.Option("--case", help="Case ID")],
    title: Annotated[str | None, typer.Option("--title", help="Defaults to document name")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    exhibit_number: Annotated[str | None, typer.Option("--number")] = None,
    status: Annotated[str, typer.Option("--status")] = "designated",
    json_output: JsonFlag = False,
) -> None:
    """Designate a document as an exhibit."""
    container = _container()
    _run(
        "exhibit",
        lambda: container.exhibit_service.create(
            document_id,
            case_id,
            title=title,
            description=description,
            exhibit_number=exhibit_number,
            status=status,
        ),
        json_output=json_output,
        render=lambda exhibit: typer.secho(
            f"Created exhibit {exhibit.id} ({exhibit.title})", fg=typer.colors.GREEN
        ),
    )


@exhibit_app.command("list")
def exhibit_list(
    case_id: Annotated[str | None, typer.Option("--case", help="Filter by case")] = None,
    status: Annotated[str | None, typer.Option("--status", help="Filter by status")] = None,
    page: PageOption = 1,
    limit: LimitOption = 10,
    json_output: JsonFlag = False,
) -> None:
    """List exhibits in exhibit-number order."""
    container = _container()
    _run(
        "exhibit_list",
        lambda: container.exhibit_service.list(
            case_id=case_id, status=status, page=page, limit=limit
        ),
        json_output=json_output,
        render=lambda result: _echo_page(result, _exhibit_line),
    )


@exhibit_app.command("show")
def exhibit_show(
    exhibit_id: Annotated[str, typer.Argument(help="Exhibit ID")],
    json_output: JsonFlag = False,
) -> None:
    """Show an exhibit."""
    container = _container()
    _run(
        "exhibit",
        lambda: container.exhibit_service.get(exhibit_id),
        json_output=json_output,
        render=lambda exhibit: typer.echo(_exhibit_line(exhibit)),
    )


@exhibit_app.command("update")
def exhibit_update(
    exhibit_id: Annotated[str, typer.Argument(help="Exhibit ID")],
    title: Annotated[str | None, typer.Option("--title")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    status: Annotated[str | None, typer.Option("--status")] = None,
    json_output: JsonFlag = False,
) -> None:
    """Update an exhibit's title, description or status."""
    container = _container()
    _run(
        "exhibit",
        lambda: container.exhibit_service.update(
            exhibit_id, title=title, description=description, status=status
        ),
        json_output=json_output,
        render=lambda exhibit: typer.secho(
            f"Updated exhibit {exhibit.id}", fg=typer.colors.GREEN
        ),
    )


@exhibit_app.command("status")
def exhibit_status(
    exhibit_id: Annotated[str, typer.Argument(help="Exhibit ID")],
    status: Annotated[
        str, typer.Argument(help="designated, prepared, used, admitted or rejected")
    ],
    json_output: JsonFlag = False,
) -> None:
    """Set an exhibit's status."""
    container = _container()
    _run(
        "exhibit",
        lambda: container.exhibit_service.update_status(exhibit_id, status),
        json_output=json_output,
        render=lambda exhibit: typer.secho(
            f"Exhibit {exhibit.id} is now {exhibit.status}", fg=typer.colors.GREEN
        ),
    )


@exhibit_app.command("assign")
def exhibit_assign(
    exhibit_id: Annotated[str, typer.Argument(help="Exhibit ID")],
    exhibit_number: Annotated[str, typer.Argument(help="Exhibit number, e.g. 12 or A")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the stickered PDF here")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Assign an exhibit number and render the exhibit sticker."""
    container = _container()

    def assign() -> Any:
        exhibit = container.exhibit_service.assign(exhibit_id, exhibit_number)
        if output is not None and exhibit.exhibit_artifact_ref:
            _export_artifact(container, exhibit.exhibit_artifact_ref, output)
        return exhibit

    _run(
        "exhibit",
        assign,
        json_output=json_output,
        render=lambda exhibit: typer.secho(
            f"Assigned EXHIBIT {exhibit.exhibit_number} to {exhibit.id}", fg=typer.colors.GREEN
        ),
    )


@exhibit_app.command("batch-assign")
def exhibit_batch_assign(
    exhibit_ids: Annotated[list[str], typer.Argument(help="Exhibit IDs in numbering order")],
    start_number: Annotated[int, typer.Option("--start", help="First number")],
    prefix: Annotated[str, typer.Option("--prefix")] = "",
    suffix: Annotated[str, typer.Option("--suffix")] = "",
    json_output: JsonFlag = False,
) -> None:
    """Assign consecutive exhibit numbers in order."""
    container = _container()

    def render(results: list[Any]) -> None:
        for item in results:
            if item.success:
                typer.secho(f"  {item.exhibit_id}: {item.exhibit_number}", fg=typer.colors.GREEN)
            else:
                typer.secho(
                    f"  {item.exhibit_id}: {item.exhibit_number} {item.error} - {item.message}",
                    fg=typer.colors.RED,
                )

    results = _run(
        "exhibit_batch_assign",
        lambda: container.exhibit_service.batch_assign(
            exhibit_ids, start_number, prefix=prefix, suffix=suffix
        ),
        json_output=json_output,
        render=render,
    )
    if any(not item.success for item in results):
        raise typer.Exit(code=1)


@exhibit_app.command("export")
def exhibit_export(
    case_id: Annotated[str, typer.Option("--case", help="Case ID")],
    list_format: Annotated[str, typer.Option("--format", help="json or csv")] = "csv",
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the exhibit list to a file")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Generate the exhibit list for a case."""
    container = _container()

    def export() -> Any:
        result = container.exhibit_service.generate_exhibit_list(case_id, list_format)
        if output is not None:
            content = result if isinstance(result, str) else json_response(
                "exhibit_list", 1, rows=result
            )
            _write_text(output, content)
        return result

    def render(result: Any) -> None:
        if output is not None:
            typer.secho(f"Exhibit list written to {output}", fg=typer.colors.GREEN)
        elif isinstance(result, str):
            typer.echo(result, nl=False)
        else:
            for row in result:
                typer.echo(
                    f"{row['exhibit_number'] or '-':>8}  {row['title']}  "
                    f"{row['bates_number']}  [{row['status']}]"
                )

    _run("exhibit_list_export", export, json_output=json_output, render=render)


@exhibit_app.command("summary")
def exhibit_summary(
    case_id: Annotated[str, typer.Option("--case", help="Case ID")],
    json_output: JsonFlag = False,
) -> None:
    """Count exhibits by status."""
    container = _container()

    def render(counts: dict[str, int]) -> None:
        for status, count in counts.items():
            typer.echo(f"{status:>10}: {count}")

    _run(
        "exhibit_status_counts",
        lambda: container.exhibit_service.status_counts(case_id),
        json_output=json_output,
        render=render,
    )


@exhibit_app.command("delete")
def exhibit_delete(
    exhibit_id: Annotated[str, typer.Argument(help="Exhibit ID")],
    json_output: JsonFlag = False,
) -> None:
    """Delete an exhibit."""
    container = _container()

    def delete() -> dict[str, str]:
        container.exhibit_service.delete(exhibit_id)
        return {"deleted": exhibit_id}

    _run(
        "exhibit_delete",
        delete,
        json_output=json_output,
        render=lambda _: typer.secho(f"Deleted exhibit {exhibit_id}", fg=typer.colors.GREEN),
    )


# ---------------------------------------------------------------------------
# Exhibit packages
# ---------------------------------------------------------------------------

package_app = typer.Typer(help="Exhibit packages for depositions, hearings and trials")
exhibit_app.add_typer(package_app, name="package")


@package_app.command("create")
def package_create(
    name: Annotated[str, typer.Argument(help="Package name")],
    case_id: Annotated[str, typer.Option("--case", help="Case ID")],
    exhibit_ids: Annotated[
        list[str] | None,
        typer.Option("--exhibit", "-e", help="Exhibit ID (repeat, in package order)"),
    ] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    event_type: Annotated[
        str, typer.Option("--event-type", help="deposition, hearing, trial or other")
    ] = "other",
    json_output: JsonFlag = False,
) -> None:
    """Bundle exhibits into a package."""
    container = _container()
    _run(
        "exhibit_package",
        lambda: container.exhibit_service.create_package(
            name,
            case_id,
            exhibit_ids or [],
            description=description,
            event_type=event_type,
        ),
        json_output=json_output,
        render=lambda package: typer.secho(
            f"Created package {package.id} with {len(package.exhibit_ids)} exhibits",
            fg=typer.colors.GREEN,
        ),
    )


@package_app.command("show")
def package_show(
    package_id: Annotated[str, typer.Argument(help="Package ID")],
    json_output: JsonFlag = False,
) -> None:
    """Show a package and its exhibits."""
    container = _container()

    def render(detail: "PackageDetail") -> None:
        package = detail.package
        typer.echo(f"{package.id}  {package.name}  [{package.event_type}]")
        for exhibit in detail.exhibits:
            typer.echo(f"  {_exhibit_line(exhibit)}")
        for missing in detail.missing_exhibit_ids:
            typer.secho(f"  missing exhibit {missing}", fg=typer.colors.YELLOW)

    _run(
        "exhibit_package",
        lambda: container.exhibit_service.get_package(package_id),
        json_output=json_output,
        render=render,
    )


@package_app.command("build")
def package_build(
    package_id: Annotated[str, typer.Argument(help="Package ID")],
    watermark: Annotated[
        str | None, typer.Option("--watermark", help="Diagonal watermark text, e.g. CONFIDENTIAL")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the merged PDF here")
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Merge a package's exhibits into one PDF."""
    container = _container()

    def build() -> Any:
        result = container.exhibit_service.build_package_pdf(package_id, watermark=watermark)
        if output is not None:
            _export_artifact(container, result.artifact_ref, output)
        return result

    def render(result: Any) -> None:
        typer.secho(
            f"Built package {result.package_id}: {len(result.included_exhibit_ids)} exhibits, "
            f"{result.page_count} pages ({result.artifact_ref})",
            fg=typer.colors.GREEN,
        )
        if result.skipped_exhibit_ids:
            typer.secho(
                f"  skipped: {', '.join(result.skipped_exhibit_ids)}", fg=typer.colors.YELLOW
            )

    _run("exhibit_package_build", build, json_output=json_output, render=render)


if __name__ == "__main__":
    app()
