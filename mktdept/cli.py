"""Command line access to a project's publishing pipeline."""
import argparse
import asyncio
import logging
import sys

from mktdept.core.config import get_settings
from mktdept.core.errors import PipelineError
from mktdept.core.logging import configure_logging
from mktdept.core.runner import build_runner
from mktdept.core.workflow import display_name, status_symbol


def _cmd_list_pipeline(runner, args) -> int:
    project = runner.store.load_project(args.project)
    pipeline = runner.store.load_pipeline(project)
    print(f"{pipeline.name} ({pipeline.id})")
    for stage in pipeline.sorted_stages():
        flags = "" if stage.enabled else " [disabled]"
        target = f" -> {stage.profile_id}" if stage.profile_id else ""
        print(f"  {stage.order:>2}. {stage.id:<32} {display_name(stage.type)}{target}{flags}")
    return 0


def _cmd_get_status(runner, args) -> int:
    project = runner.store.load_project(args.project)
    for view in runner.get_status(project, args.post):
        line = f"[{status_symbol(view.status)}] {view.stage.id:<32} {view.status.value}"
        if view.result and view.result.message:
            line += f"  {view.result.message}"
        if view.result and view.result.published_url:
            line += f"  <{view.result.published_url}>"
        print(line)
    return 0


def _cmd_run_stage(runner, args) -> int:
    project = runner.store.load_project(args.project)
    result = asyncio.run(runner.run_stage(project, args.post, args.stage))
    print(f"[{status_symbol(result.status)}] {args.stage} {result.status.value}: {result.message or ''}")
    if result.published_url:
        print(f"    {result.published_url}")
    return 0 if result.is_complete else 1


def _cmd_reset(runner, args) -> int:
    project = runner.store.load_project(args.project)
    execution = runner.reset(project, args.post, clear_results=not args.keep_results)
    print(f"New deployment {execution.deployment_id} started at {execution.started_at}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mktdept", description="Run and inspect post publishing pipelines")
    parser.add_argument("--projects-dir", help="Folder containing projects (default from settings)")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list-pipeline", help="Show the project's pipeline stages")
    p.add_argument("project")
    p.set_defaults(func=_cmd_list_pipeline)

    p = sub.add_parser("get-status", help="Show each stage's effective status for a post")
    p.add_argument("project")
    p.add_argument("post")
    p.set_defaults(func=_cmd_get_status)

    p = sub.add_parser("run-stage", help="Run one stage for a post")
    p.add_argument("project")
    p.add_argument("post")
    p.add_argument("stage", help="Stage id, see list-pipeline")
    p.set_defaults(func=_cmd_run_stage)

    p = sub.add_parser("reset", help="Start a new deployment for a post")
    p.add_argument("project")
    p.add_argument("post")
    p.add_argument("--keep-results", action="store_true", help="Keep existing stage results")
    p.set_defaults(func=_cmd_reset)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    settings = get_settings()
    if args.projects_dir:
        settings = settings.model_copy(update={"projects_dir": args.projects_dir})
    runner = build_runner(settings)

    try:
        return args.func(runner, args)
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
