"""
Primary Typer application wiring for the API Quest routing engine.

The CLI exposes the engine to exercise authors and operators: inspect and
probe request sources, pick the active one, send requests through the router,
and run the correctness checks against descriptor files. Source selection and
the training API credential persist between invocations in the cache
directory's session file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import anyio
import typer
import yaml

from ..adapters import AdapterError
from ..config import APP_MODES, EngineSettings, SettingsError, load_settings
from ..core import EngineContext, RegistryLoadError, Request, Response, configure_logging
from ..mock import MockTableError
from ..routing import SourceInfo
from ..services import EngineServices, Exercise
from ..verification import DescriptorError, explain_request, explain_response

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Request routing and verification engine for API Quest exercises.\n\n"
        "Command groups:\n"
        "- sources: list, probe, and select request-handling backends.\n"
        "- request: send a request through the active source.\n"
        "- verify: check a request or response against exercise descriptors.\n"
        "- task: run the full check for an exercise attempt."
    ),
)
sources_app = typer.Typer(help="Inspect, probe, and select the backends requests are routed to.")
app.add_typer(sources_app, name="sources")
request_app = typer.Typer(help="Send requests through the currently selected source.")
app.add_typer(request_app, name="request")
verify_app = typer.Typer(help="Check requests and responses against solution and expected-response descriptors.")
app.add_typer(verify_app, name="verify")
task_app = typer.Typer(help="Run exercise checks end to end.")
app.add_typer(task_app, name="task")


def _read_document(path: Path) -> Any:
    """Parse a JSON or YAML document; JSON is accepted as a YAML subset."""

    if not path.is_file():
        raise typer.BadParameter(f"File '{path}' does not exist.")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise typer.BadParameter(f"Failed to parse '{path}': {exc}") from exc


def _parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if not values:
        return headers
    for entry in values:
        if ":" not in entry:
            raise typer.BadParameter(f"Header '{entry}' must use 'Name: value' format.")
        name, value = entry.split(":", 1)
        name = name.strip()
        if not name:
            raise typer.BadParameter(f"Header '{entry}' is missing a name.")
        headers[name] = value.strip()
    return headers


def _parse_body(body: Optional[str], body_file: Optional[Path]) -> Any:
    if body is not None and body_file is not None:
        raise typer.BadParameter("Use either --body or --body-file, not both.")
    if body_file is not None:
        return _read_document(body_file)
    if body is None or not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as exc:
        raise typer.BadParameter(f"Request body is not valid JSON: {exc}") from exc


def _load_request(path: Path) -> Request:
    payload = _read_document(path)
    if not isinstance(payload, dict) or "method" not in payload or "url" not in payload:
        raise typer.BadParameter(f"'{path}' must describe a request with at least 'method' and 'url'.")
    return Request.from_mapping(payload)


def _load_response(path: Path) -> Response:
    payload = _read_document(path)
    if not isinstance(payload, dict) or "status" not in payload:
        raise typer.BadParameter(f"'{path}' must describe a response with at least 'status'.")
    return Response.from_mapping(payload)


def _render_source(info: SourceInfo, *, current: str) -> str:
    marker = "*" if info.key == current else " "
    available = "yes" if info.available else "no"
    return f"{marker} {info.key:<12} {info.priority:<8} {available:<9} {info.display_name} ({info.base_address or 'local'})"


def _print_report(lines: List[str]) -> None:
    for line in lines:
        typer.echo(f"  - {line}")


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Settings TOML file. Defaults to API_QUEST_CONFIG_PATH or .api_quest/config.toml.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    sources_file: Optional[Path] = typer.Option(
        None,
        "--sources",
        help="Override the source table YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    mock_table_file: Optional[Path] = typer.Option(
        None,
        "--mock-table",
        help="Override the simulator response table YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Directory holding the session file.",
        file_okay=False,
    ),
    mode: Optional[str] = typer.Option(None, "--mode", help=f"Application mode: {', '.join(APP_MODES)}."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
) -> None:
    """
    Configure the engine context.

    The callback stores the resolved services façade in Typer's state so child
    commands can retrieve it via :class:`typer.Context`.
    """

    if log_level:
        configure_logging(log_level, force=True)

    try:
        settings: EngineSettings = load_settings(config_file)
        if mode:
            settings.app_mode = mode
            settings.validate()
        context = EngineContext.build_default(
            settings=settings,
            sources_file=sources_file,
            mock_table_file=mock_table_file,
            cache_dir=cache_dir,
        )
    except (SettingsError, RegistryLoadError, MockTableError) as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    state = ctx.ensure_object(dict)
    state["services"] = EngineServices(context=context)


def _require_services(ctx: typer.Context) -> EngineServices:
    state = ctx.ensure_object(dict)
    services = state.get("services")
    if not isinstance(services, EngineServices):
        raise typer.Exit(code=2)
    return services


# -- sources ----------------------------------------------------------------------


@sources_app.command("list")
def sources_list(
    ctx: typer.Context,
    probe: bool = typer.Option(False, "--probe", help="Run a health check before listing."),
    output_json: bool = typer.Option(False, "--json", help="Emit the source list in JSON format."),
) -> None:
    """List registered sources with priority and availability; '*' marks the active one."""

    services = _require_services(ctx)
    router = services.router()
    if probe:
        anyio.run(services.refresh_sources)

    entries = router.get_all_sources()
    if output_json:
        payload = {"current": router.current_key, "sources": [entry.to_dict() for entry in entries]}
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    header = f"  {'ID':<12} {'Priority':<8} {'Available':<9} Name"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        typer.echo(_render_source(entry, current=router.current_key))


@sources_app.command("probe")
def sources_probe(
    ctx: typer.Context,
    source_id: Optional[str] = typer.Argument(None, help="Source to probe. Probes every source when omitted."),
) -> None:
    """Run health probes and report which sources are reachable."""

    services = _require_services(ctx)
    if source_id is not None:
        try:
            result = anyio.run(services.verify_source, source_id)
        except AdapterError as exc:
            typer.echo(f"Probe failed: {exc}", err=True)
            raise typer.Exit(code=1)
        typer.echo(result.message)
        if result.details:
            typer.echo(f"Details: {json.dumps(dict(result.details), ensure_ascii=False)}")
        if not result.success:
            raise typer.Exit(code=1)
        return

    results = anyio.run(services.refresh_sources)
    failures = 0
    for key, result in results.items():
        status = "pass" if result.success else "fail"
        failures += 0 if result.success else 1
        typer.echo(f"{key:<12} {status:<5} {result.message}")
    typer.echo(f"Probe complete: {len(results)} source(s), {len(results) - failures} available. Active source: {services.router().current_key}.")


@sources_app.command("use")
def sources_use(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Source to route requests through."),
    probe: bool = typer.Option(True, "--probe/--no-probe", help="Refresh availability before switching."),
) -> None:
    """Select the active source. Falls back to the best available one when it is unusable."""

    services = _require_services(ctx)
    router = services.router()
    if probe:
        anyio.run(services.refresh_sources)
    if router.set_source(source_id):
        typer.echo(f"Active source: {router.current_key}")
        return
    typer.echo(f"Source '{source_id}' is unknown or unavailable. Active source: {router.current_key}", err=True)
    raise typer.Exit(code=1)


# -- request ----------------------------------------------------------------------


@request_app.command("send")
def request_send(
    ctx: typer.Context,
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    url: str = typer.Option(..., "--url", "-u", help="Absolute URL or path relative to the source base URL."),
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help="Header in the form 'Name: value'. Can be repeated."),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="JSON request body."),
    body_file: Optional[Path] = typer.Option(None, "--body-file", help="JSON or YAML file holding the request body."),
    probe: bool = typer.Option(False, "--probe", help="Run a health check before sending."),
    task_id: Optional[str] = typer.Option(None, "--task-id", help="Exercise the attempt belongs to."),
) -> None:
    """Send a request through the active source and print the response as JSON."""

    services = _require_services(ctx)
    request = Request(method=method.upper(), url=url, headers=_parse_headers(header), body=_parse_body(body, body_file))

    async def _run() -> Response:
        if probe:
            await services.refresh_sources()
        return await services.send(request, task_id=task_id)

    response = anyio.run(_run)
    payload = response.to_dict()
    payload["source"] = services.router().current_key
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


# -- verify -----------------------------------------------------------------------


@verify_app.command("request")
def verify_request(
    solution_file: Path = typer.Option(..., "--solution", "-s", help="Solution descriptor (JSON or YAML)."),
    request_file: Path = typer.Option(..., "--request", "-r", help="Request to check (JSON or YAML)."),
) -> None:
    """Check a request against a solution descriptor."""

    solution = _read_document(solution_file)
    request = _load_request(request_file)
    try:
        report = explain_request(solution, request)
    except DescriptorError as exc:
        typer.echo(f"Invalid solution descriptor: {exc}", err=True)
        raise typer.Exit(code=2)

    if report.passed:
        typer.echo("Request matches the solution.")
        return
    typer.echo("Request does not match the solution:")
    _print_report(report.describe())
    raise typer.Exit(code=1)


@verify_app.command("response")
def verify_response(
    expected_file: Path = typer.Option(..., "--expected", "-e", help="Expected-response descriptor (JSON or YAML)."),
    response_file: Path = typer.Option(..., "--response", "-r", help="Response to check (JSON or YAML)."),
) -> None:
    """Check a response against an expected-response descriptor."""

    expected = _read_document(expected_file)
    response = _load_response(response_file)
    try:
        report = explain_response(expected, response)
    except DescriptorError as exc:
        typer.echo(f"Invalid expected-response descriptor: {exc}", err=True)
        raise typer.Exit(code=2)

    if report.passed:
        typer.echo("Response matches the expectation.")
        return
    typer.echo("Response does not match the expectation:")
    _print_report(report.describe())
    raise typer.Exit(code=1)


# -- task -------------------------------------------------------------------------


@task_app.command("check")
def task_check(
    ctx: typer.Context,
    task_file: Path = typer.Option(..., "--task", "-t", help="Exercise document (JSON or YAML)."),
    request_file: Path = typer.Option(..., "--request", "-r", help="The learner's request (JSON or YAML)."),
    probe: bool = typer.Option(False, "--probe", help="Run a health check before checking."),
    output_json: bool = typer.Option(False, "--json", help="Emit the outcome in JSON format."),
) -> None:
    """Check an attempt: source restriction, request, then the server response when required."""

    services = _require_services(ctx)
    try:
        exercise = Exercise.from_mapping(_read_document(task_file))
    except DescriptorError as exc:
        typer.echo(f"Invalid exercise: {exc}", err=True)
        raise typer.Exit(code=2)
    request = _load_request(request_file)

    async def _run():
        if probe:
            await services.refresh_sources()
        return await services.check_task(exercise, request)

    outcome = anyio.run(_run)
    if output_json:
        typer.echo(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
    elif outcome.passed:
        typer.echo(f"Task '{outcome.task_id}' passed (source: {outcome.source}).")
    else:
        typer.echo(f"Task '{outcome.task_id}' failed at the {outcome.stage.value} check (source: {outcome.source}):")
        _print_report(list(outcome.messages))
    if not outcome.passed:
        raise typer.Exit(code=1)
