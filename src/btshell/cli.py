"""CLI for btshell."""

from pathlib import Path
from typing import Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import (
    DEFAULT_LOCAL_ROOT,
    VALID_BACKENDS,
    ShellConfig,
    get_config_summary,
    load_config,
    set_config_value,
)
from .errors import ClientConnectionError, ConfigError
from .history import open_history
from .log import VALID_LEVELS, get_logger, setup_logging
from .repository import Repository
from .shell import (
    EXIT_ERROR,
    EXIT_INVALID_ARGS,
    EXIT_OK,
    EXIT_PARSE_ERROR,
    LineSink,
    LineSource,
    Session,
)

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


def connect(config: ShellConfig) -> Repository:
    """Construct the repository client for the configured backend.

    Raises:
        ClientConnectionError: If the client cannot be constructed
    """
    logger.debug("Connecting to %s backend %s/%s", config.backend, config.project, config.instance)
    if config.backend == "bigtable":
        try:
            from .bigtable import BigtableRepository
        except ImportError as e:
            raise ClientConnectionError(
                f"the bigtable backend needs google-cloud-bigtable (pip install 'btshell[bigtable]'): {e}"
            ) from e
        return BigtableRepository(config.project, config.instance)

    from .catalog import LocalRepository
    return LocalRepository(config.project, config.instance, root=config.local_root)


def start_shell(
    config: ShellConfig,
    source: Optional[LineSource] = None,
    sink: Optional[LineSink] = None,
) -> int:
    """Open history, connect, and run the interactive loop.

    Returns:
        Process exit status
    """
    if sink is None:
        from .prompt import ConsoleLineSink
        sink = ConsoleLineSink(console, err_console)

    with open_history(config.history_file) as history:
        try:
            repository = connect(config)
        except ClientConnectionError as e:
            sink.write_error(f"failed to initialize repository: {e}")
            return EXIT_INVALID_ARGS

        with repository:
            session = Session(repository, history, read_limit=config.read_limit)
            if source is None:
                from .prompt import PromptLineSource
                source = PromptLineSource(session.completer, history.entries)
            return session.run(source, sink)


def _fail(ctx: click.Context, message: str, code: int) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    ctx.exit(code)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--project", "-p", default=None, help="Project ID (env: BTSHELL_PROJECT)")
@click.option("--instance", "-i", default=None, help="Instance ID (env: BTSHELL_INSTANCE)")
@click.option("--backend", type=click.Choice(sorted(VALID_BACKENDS)), default=None,
              help="Storage backend (default: local)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Config file (default: ~/.btshell/config.toml)")
@click.option("--history-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="History file (default: ~/.btshell_history)")
@click.option("--read-limit", type=click.IntRange(min=1), default=None,
              help="Maximum rows shown by a single read")
@click.option("--log-level", type=click.Choice(sorted(VALID_LEVELS), case_sensitive=False), default=None,
              help="Log level (default: WARNING)")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also write logs to this file")
@click.pass_context
def main(
    ctx,
    project: Optional[str],
    instance: Optional[str],
    backend: Optional[str],
    config_path: Optional[Path],
    history_file: Optional[Path],
    read_limit: Optional[int],
    log_level: Optional[str],
    log_file: Optional[Path],
):
    """btshell - interactive shell for wide-column tables.

    Run without a subcommand to start the shell.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {"project": project, "instance": instance, "backend": backend}

    if ctx.invoked_subcommand is not None:
        return

    try:
        config = load_config(
            config_path,
            project=project,
            instance=instance,
            backend=backend,
            history_file=history_file,
            read_limit=read_limit,
            log_level=log_level,
            log_file=log_file,
        )
    except ConfigError as e:
        _fail(ctx, f"args parse error: {e}", EXIT_PARSE_ERROR)

    setup_logging(config.log_level, config.log_file)
    ctx.exit(start_shell(config))


@main.command()
@click.option("--project", default="local", help="Project name (default: local)")
@click.option("--instance", default="default", help="Instance name (default: default)")
@click.option("--with-sample-data", is_flag=True, help="Insert sample rows")
@click.pass_context
def init(ctx, project: str, instance: str, with_sample_data: bool):
    """Initialize a local store and make it the default connection."""
    from .catalog import SAMPLE_TABLES, init_local_store

    config_path = ctx.obj["config_path"]
    try:
        root = get_config_summary(config_path).get("local.root")
    except ConfigError as e:
        _fail(ctx, str(e), EXIT_PARSE_ERROR)
    root_path = Path(root).expanduser() if root else DEFAULT_LOCAL_ROOT

    console.print("[bold blue]Initializing local store...[/bold blue]")
    try:
        init_local_store(project, instance, root=root_path, with_sample_data=with_sample_data)
    except ClientConnectionError as e:
        _fail(ctx, str(e), EXIT_INVALID_ARGS)
    console.print(f"  ✓ Project '{project}' created at {root_path / project}")
    console.print(f"  ✓ Instance '{instance}' created")
    console.print(f"  ✓ Sample tables created ({', '.join(sorted(SAMPLE_TABLES))})")
    if with_sample_data:
        console.print("  ✓ Sample data inserted")

    set_config_value("connection.backend", "local", config_path)
    set_config_value("connection.project", project, config_path)
    set_config_value("connection.instance", instance, config_path)
    console.print("\n[bold green]✓ Local store initialized successfully![/bold green]")
    console.print("\nNext steps:")
    console.print("  • Start the shell: [cyan]btshell[/cyan]")
    console.print("  • Then try: [cyan]list[/cyan], [cyan]read users[/cyan]")


@main.command("create-table")
@click.argument("table_name")
@click.option("--family", "-f", "families", multiple=True, required=True,
              help="Column family (repeatable)")
@click.pass_context
def create_table_cmd(ctx, table_name: str, families: tuple):
    """Create a table in the local store.

    Examples:
        btshell create-table events -f meta -f payload
    """
    from .catalog import LocalRepository

    try:
        config = load_config(ctx.obj["config_path"], **ctx.obj["overrides"])
    except ConfigError as e:
        _fail(ctx, str(e), EXIT_PARSE_ERROR)
    if config.backend != "local":
        _fail(ctx, "create-table only supports the local backend", EXIT_INVALID_ARGS)

    try:
        repository = LocalRepository(config.project, config.instance, root=config.local_root)
    except ClientConnectionError as e:
        _fail(ctx, str(e), EXIT_INVALID_ARGS)

    try:
        table = repository.create_table(table_name, set(families))
    except ValueError as e:
        _fail(ctx, str(e), EXIT_ERROR)
    console.print(
        f"[bold green]✓ Created table '{table.name}'[/bold green] "
        f"with families: {', '.join(sorted(table.column_families))}"
    )


@main.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show the config file's settings."""
    try:
        summary = get_config_summary(ctx.obj["config_path"])
    except ConfigError as e:
        _fail(ctx, str(e), EXIT_PARSE_ERROR)

    if not summary:
        console.print("[yellow]No settings found. Run 'btshell init' first.[/yellow]")
        return
    console.print("[bold]Configuration:[/bold]\n")
    for key in sorted(summary):
        console.print(f"  {key} = {summary[key]}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Set KEY (e.g. connection.project) to VALUE."""
    try:
        set_config_value(key, value, ctx.obj["config_path"])
    except ConfigError as e:
        _fail(ctx, str(e), EXIT_PARSE_ERROR)
    console.print(f"[bold green]✓ {key} = {value}[/bold green]")


def run(args: Optional[Sequence[str]] = None) -> int:
    """Console entry point mapping failures to exit statuses."""
    try:
        result = main.main(args=args, prog_name="btshell", standalone_mode=False)
    except click.UsageError as e:
        e.show()
        return EXIT_PARSE_ERROR
    except click.Abort:
        err_console.print("Aborted!")
        return EXIT_ERROR
    except click.ClickException as e:
        e.show()
        return EXIT_ERROR
    return result if isinstance(result, int) else EXIT_OK
