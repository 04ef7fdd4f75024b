"""Tests for the mktdept command line."""
from unittest.mock import patch

import pytest

from mktdept import cli
from mktdept.core.runner import PipelineRunner


@pytest.fixture
def runner(store, service, project, pipeline):
    runner = PipelineRunner(store, service)
    with patch.object(cli, "build_runner", return_value=runner), patch.object(cli, "configure_logging"):
        yield runner


def test_list_pipeline(runner, capsys):
    assert cli.main(["list-pipeline", "blog"]) == 0
    out = capsys.readouterr().out
    assert "web-export" in out
    assert "GetLate Social -> li-main" in out


def test_get_status(runner, capsys):
    assert cli.main(["get-status", "blog", "hello-world"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("[ ] web-export")
    assert lines[2].startswith("[#] getlate-li-main")


def test_run_stage(runner, capsys):
    assert cli.main(["run-stage", "blog", "hello-world", "web-export"]) == 0
    out = capsys.readouterr().out
    assert "[*] web-export COMPLETED: Post exported: hello-world.html" in out
    assert "https://example.com/hello-world.html" in out


def test_run_stage_failure_exit_code(runner, capsys):
    assert cli.main(["run-stage", "blog", "hello-world", "url-verify"]) == 1
    assert "No URL to verify" in capsys.readouterr().out


def test_pipeline_errors_exit_with_2(runner, capsys):
    assert cli.main(["run-stage", "blog", "hello-world", "getlate-li-main"]) == 2
    assert capsys.readouterr().err.startswith("Error: Gatekeeper stages must complete")
    assert cli.main(["get-status", "missing", "hello-world"]) == 2


def test_reset(runner, capsys):
    assert cli.main(["reset", "blog", "hello-world", "--keep-results"]) == 0
    assert capsys.readouterr().out.startswith("New deployment ")


def test_projects_dir_override(tmp_path, capsys):
    with patch.object(cli, "build_runner") as build, patch.object(cli, "configure_logging"):
        build.return_value.store.load_project.side_effect = cli.PipelineError("nope")
        assert cli.main(["--projects-dir", str(tmp_path), "list-pipeline", "blog"]) == 2
    assert build.call_args.args[0].projects_dir == str(tmp_path)
