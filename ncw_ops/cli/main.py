#!/usr/bin/env python3
"""
Nextcloud Workspace customization tooling.

Main entry point. The subcommands cover:
1. Build-time edits of core/shipped.json (apps-disable, patch-shipped-apps)
2. Runtime app state enforcement (apps-enable, enforce-always-enabled,
   update-shipped-json)
3. Instance configuration (configure)
4. Validation of the external app categorisation
5. External app builds and release packaging
6. Support actions on users and mail accounts (admin ...)
"""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ncw_ops import __version__
from ncw_ops.core.admin import MailAccountMigrator, UserAdmin
from ncw_ops.core.build import (
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    BuildPlanner,
    CommandRunner,
    add_config_partials,
    create_release_zip,
    write_version_json,
)
from ncw_ops.core.errors import InvalidArgumentError, OpsError
from ncw_ops.core.pipeline.orchestrator import OpsOrchestrator
from ncw_ops.core.utils.config import get_default_config, load_config, save_config
from ncw_ops.core.utils.logging_setup import set_console_level, setup_logging
from ncw_ops.core.validation import find_system_config_violations

console = Console()
logger = logging.getLogger(__name__)


def print_banner():
    """Print the project banner."""
    banner = f"""
╔══════════════════════════════════════════════════════════════════════════════╗
║     Nextcloud Workspace customization tooling (ncw-ops {__version__:<8})              ║
╚══════════════════════════════════════════════════════════════════════════════╝
    """
    console.print(banner, style="bold blue")


def guarded(func):
    """Map fatal errors to a red message and exit code 1, bad arguments to 2 (re-raised in --debug)."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        debug = ctx.find_root().obj.get("debug", False)
        try:
            return func(*args, **kwargs)
        except FileNotFoundError as e:
            console.print(f"\n[bold red]Configuration error:[/bold red] {escape(str(e))}")
            logger.debug("Configuration file not found", exc_info=True)
            if debug:
                raise
            raise SystemExit(1) from e
        except (ValidationError, yaml.YAMLError) as e:
            console.print(f"\n[bold red]Configuration error:[/bold red] {escape(str(e))}")
            logger.debug("Invalid configuration", exc_info=True)
            if debug:
                raise
            raise SystemExit(1) from e
        except InvalidArgumentError as e:
            console.print(f"\n[bold red]Invalid usage:[/bold red] {escape(str(e))}")
            if debug:
                raise
            raise SystemExit(2) from e
        except OpsError as e:
            console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
            logger.debug("Command failed", exc_info=True)
            if debug:
                raise
            raise SystemExit(1) from e
        except Exception as e:
            console.print(f"\n[bold red]Unexpected error:[/bold red] {escape(str(e))}")
            logger.exception("Command failed with error")
            if debug:
                raise
            raise SystemExit(1) from e

    return wrapper


def _orchestrator(ctx: click.Context) -> OpsOrchestrator:
    obj = ctx.find_root().obj
    if "orchestrator" not in obj:
        cfg = load_config(obj["config"])
        if obj.get("report_dir"):
            cfg["report_dir"] = obj["report_dir"]
        obj["orchestrator"] = OpsOrchestrator(
            cfg,
            host=obj.get("host"),
            store=obj.get("store"),
            git=obj.get("git"),
            env=obj.get("env"),
        )
    return obj["orchestrator"]


def _print_text(text: str) -> None:
    console.print(text, markup=False, highlight=False)


def _print_reconcile(result, verb: str) -> None:
    console.print(f"  {verb}: {len(result.changed)}, unchanged: {len(result.unchanged)}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(),
    default="configs/default_config.yaml",
    help="Path to configuration file.",
)
@click.option(
    "--report-dir",
    type=click.Path(),
    default=None,
    help="Directory for written validation reports.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write debug-level logs to this file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode with additional logging.",
)
@click.version_option(__version__, prog_name="ncw-ops")
@click.pass_context
def main(
    ctx: click.Context,
    config: str,
    report_dir: str | None,
    log_file: str | None,
    verbose: bool,
    debug: bool,
):
    """
    Customize a Nextcloud server for Nextcloud Workspace.

    Reconciles core/shipped.json with the app list files, enforces app
    states through occ, applies the instance configuration and validates
    the external app build categories.
    """
    log_level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    setup_logging(log_level, Path(log_file) if log_file else None)

    ctx.ensure_object(dict)
    ctx.obj.setdefault("config", config)
    ctx.obj.setdefault("report_dir", report_dir)
    ctx.obj["debug"] = debug


# ── Setup ────────────────────────────────────────────────────────────────


@main.command("init-config")
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
@guarded
def init_config(output: str, force: bool):
    """Write a settings file with every default to OUTPUT."""
    path = Path(output)
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists, use --force to overwrite[/yellow]")
        raise SystemExit(1)
    save_config(get_default_config(), str(path))
    console.print(f"[bold green]Configuration written to {path}[/bold green]")


# ── Manifest ─────────────────────────────────────────────────────────────


@main.command("apps-disable")
@click.pass_context
@guarded
def apps_disable(ctx: click.Context):
    """Remove disabled apps from defaultEnabled and alwaysEnabled."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Processing disabled apps...[/cyan]")
    _print_reconcile(orchestrator.run_disable_apps(), "unshipped")


@main.command("patch-shipped-apps")
@click.argument("folders", nargs=-1)
@click.pass_context
@guarded
def patch_shipped_apps(ctx: click.Context, folders: tuple[str, ...]):
    """Add every app directory of FOLDERS to shippedApps."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Registering app folders in shippedApps...[/cyan]")
    _print_reconcile(orchestrator.run_ship_app_folders(list(folders) or None), "added")


@main.command("update-shipped-json")
@click.pass_context
@guarded
def update_shipped_json(ctx: click.Context):
    """Lock always-enabled apps in shippedApps and alwaysEnabled."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Updating shipped.json with always-enabled apps...[/cyan]")
    _print_reconcile(orchestrator.run_lock_always_enabled(), "locked")


# ── Runtime app states ───────────────────────────────────────────────────


@main.command("enforce-always-enabled")
@click.pass_context
@guarded
def enforce_always_enabled(ctx: click.Context):
    """Enable every always-enabled app and record it in alwaysEnabled."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Enforcing always-enabled apps...[/cyan]")
    summary = orchestrator.run_enforcement()

    table = Table(title="Always-enabled apps")
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", justify="right")
    for key, value in summary.as_dict().items():
        table.add_row(key, str(value))
    console.print(table)

    if not summary.ok:
        failed = ", ".join(summary.failed)
        console.print(f"[bold red]{len(summary.failed)} app(s) failed to enable: {failed}[/bold red]")
        raise SystemExit(1)


@main.command("apps-enable")
@click.pass_context
@guarded
def apps_enable(ctx: click.Context):
    """Disable removed and disabled apps, enable core and always-enabled apps."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Ensuring app states...[/cyan]")
    summary = orchestrator.run_app_states()
    console.print(f"  disabled: {', '.join(summary.disabled) or '-'}")
    console.print(f"  enabled: {', '.join(summary.enabled) or '-'}")
    if summary.failed:
        console.print(f"  [yellow]failed to enable: {', '.join(summary.failed)}[/yellow]")


@main.command("configure")
@click.pass_context
@guarded
def configure(ctx: click.Context):
    """Apply theming and app configuration to the installed instance."""
    orchestrator = _orchestrator(ctx)
    console.print("[cyan]Configuring Nextcloud Workspace...[/cyan]")
    result = orchestrator.run_configure()
    console.print(f"  applied: {', '.join(result.applied) or '-'}")
    if result.skipped:
        console.print(f"  [yellow]skipped: {', '.join(result.skipped)}[/yellow]")
    console.print("\n[bold green]Configuration completed![/bold green]")


# ── Validation ───────────────────────────────────────────────────────────


@main.command("validate-app-list-uniqueness")
@click.pass_context
@guarded
def validate_app_list_uniqueness(ctx: click.Context):
    """Check that every app is in exactly one build category."""
    orchestrator = _orchestrator(ctx)
    report = orchestrator.run_uniqueness_validation()
    _print_text(
        orchestrator.reporter.generate_uniqueness_report(
            report,
            orchestrator.settings.validation.excluded_hardcoded_targets,
            filename="app_list_uniqueness.txt",
        )
    )
    if orchestrator.reporter.output_dir:
        orchestrator.reporter.export_results_json(report, "app_list_uniqueness.json")
    if not report.ok:
        raise SystemExit(1)


@main.command("validate-external-apps")
@click.pass_context
@guarded
def validate_external_apps(ctx: click.Context):
    """Check submodules and the declared build category of external apps."""
    orchestrator = _orchestrator(ctx)
    report = orchestrator.run_external_apps_validation()
    _print_text(
        orchestrator.reporter.generate_external_apps_report(report, filename="external_apps.txt")
    )
    if orchestrator.reporter.output_dir:
        orchestrator.reporter.export_results_json(report, "external_apps.json")
    if not report.ok:
        raise SystemExit(1)


@main.command("check-shell-config")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Directory to scan for shell scripts.",
)
@click.pass_context
@guarded
def check_shell_config(ctx: click.Context, root: str):
    """Report config:system:set usage in shell scripts."""
    violations = find_system_config_violations(Path(root))
    reporter = _orchestrator(ctx).reporter
    _print_text(reporter.generate_shell_config_report(violations, filename="shell_config.txt"))
    if violations:
        raise SystemExit(1)


# ── Builds and packaging ─────────────────────────────────────────────────


def _planner(orchestrator: OpsOrchestrator) -> BuildPlanner:
    settings = orchestrator.settings
    return BuildPlanner(
        settings.app_categories,
        settings.nextcloud_root,
        apps_dir=settings.paths.external_apps_dir,
        special_builds=settings.special_builds,
    )


@main.command("build")
@click.argument("app")
@click.option("--dry-run", is_flag=True, default=False, help="Only print the commands.")
@click.pass_context
@guarded
def build(ctx: click.Context, app: str, dry_run: bool):
    """Install the dependencies of one external APP."""
    plan = _planner(_orchestrator(ctx)).plan(app)
    console.print(f"[cyan]{plan.target}[/cyan] ({plan.category})")
    CommandRunner(dry_run=dry_run).execute(plan)


@main.command("build-all")
@click.option("--dry-run", is_flag=True, default=False, help="Only print the commands.")
@click.pass_context
@guarded
def build_all(ctx: click.Context, dry_run: bool):
    """Install the dependencies of every configured external app."""
    plans = _planner(_orchestrator(ctx)).plan_all()
    runner = CommandRunner(dry_run=dry_run)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Building external apps...", total=len(plans))
        for plan in plans:
            progress.update(task, description=f"[cyan]Building {plan.app}...")
            runner.execute(plan)
            progress.advance(task)

    console.print(f"\n[bold green]Built {len(plans)} external app(s)[/bold green]")


@main.command("matrix")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON for CI.")
@click.pass_context
@guarded
def matrix(ctx: click.Context, as_json: bool):
    """List the external apps with their build category."""
    entries = _planner(_orchestrator(ctx)).matrix()
    if as_json:
        click.echo(json.dumps(entries))
        return

    table = Table(title="External apps")
    table.add_column("App", style="cyan")
    table.add_column("Category")
    table.add_column("Path")
    for entry in entries:
        table.add_row(entry["name"], entry["category"], entry["path"])
    console.print(table)


@main.command("version-json")
@click.option("--build-ref", default=None, help="Build reference (default: short git HEAD).")
@click.pass_context
@guarded
def version_json(ctx: click.Context, build_ref: str | None):
    """Write version.json into the Nextcloud root."""
    target = write_version_json(_orchestrator(ctx).settings.nextcloud_root, build_ref)
    console.print(f"  version.json: {target}")


@main.command("add-config-partials")
@click.pass_context
@guarded
def add_config_partials_command(ctx: click.Context):
    """Copy the *.config.php partials into the Nextcloud config directory."""
    settings = _orchestrator(ctx).settings
    copied = add_config_partials(settings.configs_dir, settings.nextcloud_root / "config")
    console.print(f"  copied {len(copied)} config partial(s)")


@main.command("zip")
@click.option("--output", "-o", type=click.Path(), default=None, help="Archive path.")
@click.pass_context
@guarded
def zip_command(ctx: click.Context, output: str | None):
    """Package the deployable tree into a zip archive."""
    orchestrator = _orchestrator(ctx)
    settings = orchestrator.settings
    target = Path(output) if output else settings.nextcloud_root / settings.packaging.package_name

    console.print(f"[cyan]Packaging {target}...[/cyan]")
    count = create_release_zip(
        settings.nextcloud_root,
        target,
        include=settings.packaging.include or DEFAULT_INCLUDE,
        exclude=settings.packaging.exclude or DEFAULT_EXCLUDE,
        removed_apps=orchestrator.lists.removed,
    )
    console.print(f"\n[bold green]Packaged {count} file(s) into {target}[/bold green]")


# ── Admin tools ──────────────────────────────────────────────────────────


def admin_options(func):
    """Add the --dry-run and --quiet flags shared by every admin command."""
    func = click.option(
        "--quiet", "-q", is_flag=True, default=False, help="Suppress informational output."
    )(func)
    func = click.option(
        "--dry-run", is_flag=True, default=False, help="Show what would be done without executing."
    )(func)
    return func


def _admin_start(quiet: bool) -> None:
    if quiet:
        set_console_level(logging.WARNING)


def _print_planned(planned: list[str]) -> None:
    # shown even with --quiet
    for command in planned:
        console.print(escape(f"[DRY RUN] Would execute: php {command}"), style="yellow", soft_wrap=True)


@main.group("admin")
def admin():
    """Support actions on users and mail accounts."""


@admin.command("update-user-email")
@click.argument("username")
@click.argument("new_email")
@click.option("--resend-welcome", "-w", is_flag=True, default=False, help="Resend the welcome email afterwards.")
@admin_options
@click.pass_context
@guarded
def update_user_email(
    ctx: click.Context,
    username: str,
    new_email: str,
    resend_welcome: bool,
    dry_run: bool,
    quiet: bool,
):
    """Update the email address of USERNAME to NEW_EMAIL."""
    _admin_start(quiet)
    result = UserAdmin(_orchestrator(ctx).host, dry_run=dry_run).update_email(
        username, new_email, resend_welcome=resend_welcome
    )
    _print_planned(result.planned)
    if quiet or dry_run:
        return
    if result.email_changed:
        console.print(f"[green]Email address updated for user '{username}': {new_email}[/green]")
    else:
        console.print("No changes needed")
    if result.welcome_sent:
        console.print(f"[green]Welcome email sent to user '{username}' at {new_email}[/green]")


@admin.command("resend-welcome")
@click.argument("username")
@admin_options
@click.pass_context
@guarded
def resend_welcome(ctx: click.Context, username: str, dry_run: bool, quiet: bool):
    """Resend the welcome email to USERNAME."""
    _admin_start(quiet)
    result = UserAdmin(_orchestrator(ctx).host, dry_run=dry_run).resend_welcome(username)
    _print_planned(result.planned)
    if result.welcome_sent and not quiet:
        console.print(f"[green]Welcome email sent to user '{username}'[/green]")


@admin.command("update-mail-accounts")
@click.argument("user_id")
@click.argument("old_email")
@click.argument("new_email")
@admin_options
@click.pass_context
@guarded
def update_mail_accounts(
    ctx: click.Context,
    user_id: str,
    old_email: str,
    new_email: str,
    dry_run: bool,
    quiet: bool,
):
    """Move the mail accounts of USER_ID from OLD_EMAIL to NEW_EMAIL."""
    _admin_start(quiet)
    result = MailAccountMigrator(_orchestrator(ctx).host, dry_run=dry_run).migrate(
        user_id, old_email, new_email
    )
    _print_planned(result.planned)
    if quiet or dry_run:
        return

    table = Table(title=f"Mail accounts of {user_id}")
    table.add_column("Account", style="cyan", justify="right")
    table.add_column("Updated fields")
    for account_id, changes in result.updated.items():
        table.add_row(str(account_id), ", ".join(changes))
    console.print(table)
    console.print("[bold green]All mail accounts updated successfully![/bold green]")
    console.print("Note: users may need to refresh their mail app to see the changes.")


# ── Phases ───────────────────────────────────────────────────────────────


@main.command("build-phase")
@click.pass_context
@guarded
def build_phase(ctx: click.Context):
    """Run every image-build manifest edit."""
    print_banner()
    orchestrator = _orchestrator(ctx)
    results = orchestrator.run_build_phase()
    console.print("\n[bold green]Build phase completed successfully![/bold green]")
    orchestrator.print_summary(results)


@main.command("runtime-phase")
@click.option("--configure", "with_configure", is_flag=True, default=False, help="Also apply the configuration.")
@click.pass_context
@guarded
def runtime_phase(ctx: click.Context, with_configure: bool):
    """Run the container start sequence."""
    print_banner()
    orchestrator = _orchestrator(ctx)
    results = orchestrator.run_runtime_phase()
    if with_configure:
        console.print("\n[cyan]Runtime phase: configuring...[/cyan]")
        results["configure"] = orchestrator.run_configure()
    orchestrator.print_summary(results)

    if not results["enforcement"].ok:
        raise SystemExit(1)
    console.print("\n[bold green]Runtime phase completed successfully![/bold green]")


if __name__ == "__main__":
    main()
