from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from api_quest.cli.main import app


@pytest.fixture
def base_args(settings_file, tmp_path) -> list[str]:
    return ["--config", str(settings_file), "--cache-dir", str(tmp_path / "cache")]


def invoke(cli_runner: CliRunner, args: list[str]):
    return cli_runner.invoke(app, args)


def _write(tmp_path, name: str, payload) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_sources_list_json(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "list", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["current"] == "mock"
    assert [entry["key"] for entry in payload["sources"]] == ["mock", "public", "training"]


def test_sources_list_table(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "list", "--probe"])

    assert result.exit_code == 0
    assert "* mock" in result.stdout
    assert "public" in result.stdout


def test_sources_probe_in_development_mode(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "probe"])

    assert result.exit_code == 0
    assert "Development mode" in result.stdout
    assert "Active source: mock" in result.stdout


def test_sources_probe_single_baseline(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "probe", "mock"])

    assert result.exit_code == 0
    assert "always available" in result.stdout


def test_sources_probe_unknown_source(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "probe", "ftp"])

    assert result.exit_code == 1


def test_sources_use_persists_between_invocations(cli_runner, base_args, tmp_path):
    table = tmp_path / "sources.yaml"
    table.write_text(
        "- id: mock\n  kind: mock\n  priority: 2\n  baseline: true\n  always_available: true\n"
        "- id: public\n  kind: public\n  base_url: https://public.test\n  priority: 1\n  always_available: true\n",
        encoding="utf-8",
    )
    base_args = [*base_args, "--sources", str(table)]

    result = invoke(cli_runner, [*base_args, "sources", "use", "public"])
    assert result.exit_code == 0
    assert "Active source: public" in result.stdout

    listing = invoke(cli_runner, [*base_args, "sources", "list", "--json"])
    assert json.loads(listing.stdout)["current"] == "public"


def test_sources_use_unavailable_falls_back(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "sources", "use", "training"])

    assert result.exit_code == 1


def test_request_send_through_simulator(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "request", "send", "--url", "/api/users"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == 200
    assert payload["source"] == "mock"
    assert len(payload["body"]) == 3


def test_request_send_reselects_stale_saved_source(cli_runner, base_args, tmp_path):
    cache = tmp_path / "cache"
    cache.mkdir()
    (cache / "session.json").write_text(json.dumps({"api-quest-source": "training"}), encoding="utf-8")

    result = invoke(cli_runner, [*base_args, "request", "send", "--url", "/api/users"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["source"] == "mock"
    assert payload["status"] == 200


def test_request_send_with_body_and_headers(cli_runner, base_args):
    result = invoke(
        cli_runner,
        [
            *base_args,
            "request",
            "send",
            "-X",
            "post",
            "--url",
            "/api/users",
            "-H",
            "Content-Type: application/json",
            "--body",
            '{"name": "Ann", "email": "ann@example.com", "role": "user"}',
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == 201
    assert payload["body"]["name"] == "Ann"


def test_request_send_rejects_invalid_json(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "request", "send", "-X", "POST", "--url", "/api/users", "--body", "{oops"])

    assert result.exit_code != 0


def test_verify_request(cli_runner, base_args, tmp_path):
    solution = _write(tmp_path, "solution.json", {"method": "POST", "url": "/api/users", "body": {"role": True}})
    good = _write(tmp_path, "good.json", {"method": "POST", "url": "/api/users", "body": {"role": "admin"}})
    bad = _write(tmp_path, "bad.json", {"method": "POST", "url": "/api/users", "body": {"name": "Ann"}})

    passed = invoke(cli_runner, [*base_args, "verify", "request", "--solution", solution, "--request", good])
    failed = invoke(cli_runner, [*base_args, "verify", "request", "--solution", solution, "--request", bad])

    assert passed.exit_code == 0
    assert "matches" in passed.stdout
    assert failed.exit_code == 1
    assert "role" in failed.stdout


def test_verify_response(cli_runner, base_args, tmp_path):
    expected = _write(tmp_path, "expected.json", {"status": 200, "body": {"user.name": "Ann"}})
    good = _write(tmp_path, "good.json", {"status": 200, "body": {"user": {"name": "Ann"}}})
    bad = _write(tmp_path, "bad.json", {"status": 200, "body": {"user": {}}})

    assert invoke(cli_runner, [*base_args, "verify", "response", "--expected", expected, "--response", good]).exit_code == 0
    assert invoke(cli_runner, [*base_args, "verify", "response", "--expected", expected, "--response", bad]).exit_code == 1


def test_verify_request_invalid_descriptor(cli_runner, base_args, tmp_path):
    solution = _write(tmp_path, "solution.json", ["not", "a", "mapping"])
    request = _write(tmp_path, "request.json", {"method": "GET", "url": "/"})

    assert invoke(cli_runner, [*base_args, "verify", "request", "--solution", solution, "--request", request]).exit_code == 2


def test_task_check(cli_runner, base_args, tmp_path):
    task = _write(
        tmp_path,
        "task.json",
        {
            "id": "task-6",
            "solution": {"method": "DELETE", "url": "/api/users/42"},
            "requiresServerResponse": True,
            "expectedResponse": {"status": 204},
        },
    )
    request = _write(tmp_path, "request.json", {"method": "DELETE", "url": "/api/users/42"})

    result = invoke(cli_runner, [*base_args, "task", "check", "--task", task, "--request", request, "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["passed"] is True
    assert payload["response"]["status"] == 204


def test_task_check_failure(cli_runner, base_args, tmp_path):
    task = _write(tmp_path, "task.json", {"id": "task-2", "solution": {"method": "GET", "url": "/api/users"}})
    request = _write(tmp_path, "request.json", {"method": "POST", "url": "/api/users"})

    result = invoke(cli_runner, [*base_args, "task", "check", "--task", task, "--request", request])

    assert result.exit_code == 1
    assert "failed at the request check" in result.stdout


def test_invalid_mode_is_reported(cli_runner, base_args):
    result = invoke(cli_runner, [*base_args, "--mode", "chaos", "sources", "list"])

    assert result.exit_code == 1
