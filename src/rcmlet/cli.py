# cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from rcmlet.context import invocation_env
from rcmlet.engine import WorkflowEngine, action_for_verbs
from rcmlet.errors import LetError
from rcmlet.settings import Settings
from rcmlet.store import SpecStore
from rcmlet.ui.console import Console, get_console, set_console


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option(
    "--workspace",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Workspace root (defaults to RCM_WORKSPACE or the nearest directory containing .rcm)",
)
@click.pass_context
def cli(ctx, debug, workspace):
    """rcm-let: declarative specs, imperative runs."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise click.UsageError(str(e))

    console = Console(debug=debug)
    set_console(console)
    _configure_logging("DEBUG" if debug else settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = settings
    ctx.obj["workspace"] = (workspace or settings.workspace).expanduser().resolve()


@cli.command()
@click.argument("target")
@click.option("--deploy", is_flag=True, help="Run the 'install' action")
@click.option("--build", is_flag=True, help="Run the 'build' action")
@click.option("--test", is_flag=True, help="Run the 'test' action")
@click.option("--clean", is_flag=True, help="Run the 'clean' action")
@click.option("--update", is_flag=True, help="Run the 'update' action")
@click.option("--plan", is_flag=True, help="Show the plan only; nothing is executed")
@click.option("--apply", is_flag=True, help="Execute the plan (the default when --plan is not given)")
@click.option("--arg", "args", multiple=True, metavar="K=V", help="Extra environment variable for the run (repeatable)")
@click.option("--env", "run_env", default=None, help="Named environment, exported to actions as RCM_ENV")
@click.option("--parallel", default=None, type=click.IntRange(min=1), help="Worker count for actions marked parallel")
@click.option("--timeout", default=None, type=click.FloatRange(min=0, min_open=True), help="Default per-action deadline in seconds")
@click.pass_context
def run(ctx, target, deploy, build, test, clean, update, plan, apply, args, run_env, parallel, timeout):
    """Run (or --plan) the LET spec of TARGET."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    workspace: Path = ctx.obj["workspace"]

    if plan and apply:
        raise click.UsageError("--plan and --apply are mutually exclusive")

    try:
        action_filter = action_for_verbs(deploy=deploy, build=build, test=test, clean=clean, update=update)
        env = invocation_env(args, run_env)
    except ValueError as e:
        raise click.UsageError(str(e))

    store = SpecStore(workspace)
    engine = WorkflowEngine(
        workspace,
        store=store,
        timeout=timeout if timeout is not None else settings.timeout,
        max_workers=parallel if parallel is not None else settings.parallel_jobs,
        on_outcome=console.print_outcome,
    )

    try:
        store.ensure_defaults()

        if plan:
            console.print_plan(engine.plan(target, action_filter, env))
            return

        console.print_run_started(target=target, workspace=str(workspace), action_filter=action_filter)
        result = engine.execute(target, action_filter, env)
        console.print_results(result)

        if not result.success:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except LetError as e:
        console.print_error(type(e).__name__, str(e))
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.pass_context
def init(ctx):
    """Seed the built-in specs into the workspace (never overwrites)."""
    console = get_console()
    store = SpecStore(ctx.obj["workspace"])
    try:
        written = store.ensure_defaults()
    except OSError as e:
        console.print_error("Could not write specs", str(e), suggestion=f"Check permissions on {store.specs_dir}")
        sys.exit(1)

    if written:
        console.print_info(f"Created specs in {store.specs_dir}: {', '.join(written)}")
    else:
        console.print_info(f"All default specs already present in {store.specs_dir}")


@cli.command(name="list")
@click.pass_context
def list_specs(ctx):
    """List the targets that have a spec in this workspace."""
    console = get_console()
    store = SpecStore(ctx.obj["workspace"])
    targets = store.targets()
    if not targets:
        console.print_info(f"No specs in {store.specs_dir}")
        console.print_info("Seed the defaults with:\n  rcm-let init")
        return
    console.print_header(f"Specs in {store.specs_dir}")
    for target in targets:
        console.print_info(f"  {target}")


@cli.command()
@click.argument("target")
@click.pass_context
def show(ctx, target):
    """Print the stored spec of TARGET as JSON."""
    console = get_console()
    store = SpecStore(ctx.obj["workspace"])
    try:
        spec = store.load(target)
    except LetError as e:
        console.print_error(type(e).__name__, str(e))
        sys.exit(1)
    console.print_info(spec.to_json())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
