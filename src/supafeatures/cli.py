"""Command-line interface for supafeatures."""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

if TYPE_CHECKING:
    from supafeatures.config import ConfigStore
    from supafeatures.installer import (
        ConflictCandidate,
        ConflictResolver,
        FeatureInstaller,
        InstallationOutcome,
    )
    from supafeatures.registry import FeatureRegistry
    from supafeatures.scaffold import SupabaseCLI

app = typer.Typer(
    name="supafeatures",
    help="Install database features into Supabase projects.",
    no_args_is_help=True,
)

console = Console()


@dataclass
class AppState:
    """Options shared by all commands."""

    catalog: Path | None = None


def make_scaffold_tool(supabase_dir: Path) -> "SupabaseCLI":
    """Build the scaffold tool for a project's Supabase directory."""
    from supafeatures.scaffold import SupabaseCLI

    return SupabaseCLI(supabase_dir)


def _load_registry(state: AppState) -> "FeatureRegistry":
    from supafeatures.registry import load_registry

    return load_registry(state.catalog)


def _open_project(state: AppState) -> tuple["ConfigStore", "FeatureInstaller"]:
    from supafeatures.config import ConfigStore
    from supafeatures.installer import FeatureInstaller

    store = ConfigStore.open()
    registry = _load_registry(state)
    installer = FeatureInstaller(registry, store, make_scaffold_tool(store.source_dir))
    return store, installer


def _print_install_instructions() -> None:
    console.print("[red]✗ Supabase CLI not found[/red]\n")
    console.print("supafeatures requires the Supabase CLI to be installed.\n")
    console.print("Install it with:")
    console.print("[cyan]  npm install -g supabase[/cyan]")
    console.print("[dim]  # or[/dim]")
    console.print("[cyan]  brew install supabase/tap/supabase[/cyan]")


def _print_outcome(outcome: "InstallationOutcome") -> None:
    for path in outcome.installed_files:
        console.print(f"  [green]+[/green] {path}")
    for path in outcome.skipped_files:
        console.print(f"  [yellow]○[/yellow] {path} [dim](skipped)[/dim]")
    for error in outcome.errors:
        console.print(f"  [red]✗ {error}[/red]")


def prompt_conflicts(
    feature_id: str, conflicts: list["ConflictCandidate"]
) -> list["ConflictCandidate"]:
    """Ask the user what to do with each conflicting path."""
    from supafeatures.installer import ConflictCandidate, Resolution

    console.print(f"\n[yellow]⚠ File conflicts detected for '{feature_id}':[/yellow]")
    for conflict in conflicts:
        console.print(f"  [red]✗ {conflict.path}[/red]")
    console.print()

    resolved = []
    for conflict in conflicts:
        choice = Prompt.ask(
            f"What should we do with [blue]{conflict.path}[/blue]?",
            choices=[r.value for r in Resolution],
            default=Resolution.SKIP.value,
            console=console,
        )
        resolved.append(
            ConflictCandidate(conflict.path, conflict.exists_on_disk, Resolution(choice))
        )

    to_overwrite = [c.path for c in resolved if c.resolution is Resolution.OVERWRITE]
    to_skip = [c.path for c in resolved if c.resolution is Resolution.SKIP]
    console.print("\n[blue]Summary:[/blue]")
    if to_overwrite:
        console.print(f"  [green]✓ Will overwrite {len(to_overwrite)} path(s)[/green]")
    if to_skip:
        console.print(f"  [yellow]⚠ Will skip {len(to_skip)} path(s)[/yellow]")

    if not Confirm.ask("Continue with installation?", default=False, console=console):
        console.print("Installation cancelled.")
        raise typer.Exit(code=0)
    return resolved


def _auto_resolver(resolution: str) -> "ConflictResolver":
    from supafeatures.installer import Resolution, annotate

    def resolver(
        feature_id: str, conflicts: list["ConflictCandidate"]
    ) -> list["ConflictCandidate"]:
        return annotate(conflicts, Resolution(resolution))

    return resolver


@app.callback()
def main(
    ctx: typer.Context,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug logging on stderr."),
    ] = False,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Write log events to stderr as JSON lines."),
    ] = False,
    catalog: Annotated[
        Path | None,
        typer.Option(
            "--catalog",
            help="Feature manifest or catalog directory (defaults to the bundled catalog).",
            exists=True,
        ),
    ] = None,
) -> None:
    """Install database features into Supabase projects."""
    from supafeatures.utils.logging import configure_logging

    configure_logging("DEBUG" if debug else "WARNING", json_output=log_json)
    ctx.obj = AppState(catalog=catalog)


@app.command()
def init(
    source_dir: Annotated[
        str,
        typer.Option(
            "--source-dir",
            "-s",
            help="Supabase directory path relative to the project root.",
        ),
    ] = "./supabase",
    prefix: Annotated[
        str | None,
        typer.Option(
            "--prefix",
            "-p",
            help="Prefix added to every installed file name (e.g. 'sb_').",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing configuration."),
    ] = False,
    init_supabase: Annotated[
        bool,
        typer.Option(
            "--init-supabase/--no-init-supabase",
            help="Run 'supabase init' when no Supabase project exists.",
        ),
    ] = True,
) -> None:
    """Initialize the project and create the config file."""
    from supafeatures.config import CONFIG_FILE_NAME, create_default_config, save_config
    from supafeatures.errors import SupafeaturesError

    project_root = Path.cwd()
    config_path = project_root / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        overwrite = Confirm.ask(
            f"Configuration file already exists at {config_path}. Overwrite?",
            default=False,
            console=console,
        )
        if not overwrite:
            console.print("Initialization cancelled.")
            return

    try:
        config = create_default_config(source_dir=source_dir, file_prefix=prefix)
        scaffold = make_scaffold_tool(config.resolve_source_dir(project_root))

        if not scaffold.is_available():
            _print_install_instructions()
            raise typer.Exit(code=1)

        if scaffold.is_project():
            console.print("[green]  ✓ Supabase project found[/green]")
            for warning in scaffold.validate_project():
                console.print(f"[yellow]  ⚠ {warning}[/yellow]")
        elif init_supabase:
            console.print("[blue]Initializing Supabase project...[/blue]")
            scaffold.init_project()
            console.print("[green]  ✓ Supabase project initialized[/green]")
        else:
            console.print(
                "[yellow]  ⚠ No Supabase project found. Run 'supabase init' later.[/yellow]"
            )

        save_config(config, config_path)
    except SupafeaturesError as e:
        console.print(f"[red]Initialization failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    except OSError as e:
        console.print(f"[red]Failed to save configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[green]✓ Configuration saved to: {config_path}[/green]")
    console.print(f"[dim]Supabase directory: {config.source_dir}[/dim]")
    console.print(f"[dim]File prefix: {config.file_prefix or 'none'}[/dim]")
    console.print("\n[blue]Next steps:[/blue]")
    console.print("  • Run [cyan]supafeatures list[/cyan] to see available features")
    console.print("  • Run [cyan]supafeatures install <feature>[/cyan] to install a feature")


@app.command("list")
def list_features(ctx: typer.Context) -> None:
    """Show available features grouped by category."""
    from supafeatures.config import ConfigStore
    from supafeatures.errors import ConfigError, SupafeaturesError

    state: AppState = ctx.obj
    try:
        registry = _load_registry(state)
    except (SupafeaturesError, FileNotFoundError) as e:
        console.print(f"[red]Failed to load feature registry: {e}[/red]")
        raise typer.Exit(code=1) from e

    if not len(registry):
        console.print("[yellow]No features found in the registry.[/yellow]")
        return

    # Without a config every feature is shown as available
    try:
        installed = ConfigStore.open().installed_ids
        has_config = True
    except ConfigError:
        installed = set()
        has_config = False

    for category in registry.get_categories():
        table = Table(title=category.upper(), title_justify="left")
        table.add_column("Feature", style="cyan")
        table.add_column("Name")
        table.add_column("Version")
        table.add_column("Status")
        table.add_column("Dependencies")

        for feature_id, feature in registry.get_features_by_category(category).items():
            status = (
                "[green]✓ installed[/green]"
                if feature_id in installed
                else "[dim]○ available[/dim]"
            )
            deps = ", ".join(
                f"[green]{dep}[/green]" if dep in installed else f"[red]{dep}[/red]"
                for dep in feature.dependencies
            )
            table.add_row(feature_id, feature.name, feature.version, status, deps or "-")

        console.print(table)

    n_installed = len(installed & set(registry.features))
    console.print(
        f"\n[blue]Installed:[/blue] {n_installed}  "
        f"[blue]Available:[/blue] {len(registry) - n_installed}  "
        f"[blue]Total:[/blue] {len(registry)}"
    )
    if not has_config:
        console.print("Run [cyan]supafeatures init[/cyan] to initialize configuration first")


@app.command()
def install(
    ctx: typer.Context,
    feature_id: Annotated[str, typer.Argument(help="Feature to install.")],
    on_conflict: Annotated[
        str,
        typer.Option(
            "--on-conflict",
            help="Conflict handling for the feature: 'prompt', 'overwrite' or 'skip'.",
        ),
    ] = "prompt",
    dependency_conflicts: Annotated[
        str,
        typer.Option(
            "--dependency-conflicts",
            help="Conflict handling for auto-installed dependencies: 'overwrite', 'skip' or 'prompt'.",
        ),
    ] = "overwrite",
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Reinstall and install dependencies without asking."),
    ] = False,
) -> None:
    """Install a feature with dependency and conflict resolution."""
    from supafeatures.errors import SupafeaturesError, ToolUnavailableError
    from supafeatures.installer import (
        DependencyConflictPolicy,
        DependencyInstallError,
        install_with_dependencies,
        missing_dependencies,
    )

    if on_conflict not in ("prompt", "overwrite", "skip"):
        console.print(
            f"[red]Error: Invalid --on-conflict '{on_conflict}'. Use 'prompt', 'overwrite' or 'skip'.[/red]"
        )
        raise typer.Exit(code=1)
    try:
        policy = DependencyConflictPolicy(dependency_conflicts)
    except ValueError as e:
        console.print(
            f"[red]Error: Invalid --dependency-conflicts '{dependency_conflicts}'.[/red]"
        )
        raise typer.Exit(code=1) from e

    resolver = prompt_conflicts if on_conflict == "prompt" else _auto_resolver(on_conflict)

    try:
        store, installer = _open_project(ctx.obj)
        feature = installer.registry.require_feature(feature_id)

        existing = store.get_record(feature_id)
        if existing is not None and not yes:
            reinstall = Confirm.ask(
                f"Feature '{feature_id}' is already installed (v{existing.version}). Reinstall?",
                default=False,
                console=console,
            )
            if not reinstall:
                console.print("Installation cancelled.")
                return

        installer.ensure_scaffold_available()

        missing = missing_dependencies(installer, feature_id)
        if missing:
            console.print("[yellow]Missing required dependencies:[/yellow]")
            for dep in missing:
                dep_feature = installer.registry.require_feature(dep)
                console.print(f"  • [red]{dep}[/red] - {dep_feature.name}")
            if not yes and not Confirm.ask(
                f"Install {len(missing)} missing dependencies first?",
                default=True,
                console=console,
            ):
                console.print("[red]Cannot install feature without its dependencies.[/red]")
                raise typer.Exit(code=1)

        outcomes = install_with_dependencies(
            installer,
            feature_id,
            resolver,
            policy=policy,
            on_outcome=lambda o: console.print(
                f"[{'green' if o.success else 'red'}]"
                f"{'✓' if o.success else '✗'} {o.feature_id}[/]"
            ),
        )
    except ToolUnavailableError as e:
        _print_install_instructions()
        raise typer.Exit(code=1) from e
    except DependencyInstallError as e:
        for outcome in e.outcomes:
            _print_outcome(outcome)
        console.print(f"[red]Installation failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    except (SupafeaturesError, FileNotFoundError) as e:
        console.print(f"[red]Installation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    result = outcomes[-1]
    _print_outcome(result)
    if not result.success:
        console.print(f"[red]Feature '{feature_id}' installed with errors.[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"\n[green]✓ Feature '{feature.name}' installed successfully! "
        f"({len(result.installed_files)} installed, {len(result.skipped_files)} skipped)[/green]"
    )
    console.print("\n[blue]Next steps:[/blue]")
    if installer.has_migrations(feature_id) or installer.has_seeds(feature_id):
        console.print("  • Run [cyan]supabase db reset[/cyan] to apply migrations and seeds")
    if installer.has_functions(feature_id):
        console.print("  • Run [cyan]supabase functions deploy[/cyan] to deploy edge functions")
    console.print("  • Run [cyan]supafeatures doctor[/cyan] to check installed files")


@app.command()
def uninstall(
    ctx: typer.Context,
    feature_id: Annotated[str, typer.Argument(help="Feature to remove.")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Remove even if other features depend on it."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Remove an installed feature (migrations are kept)."""
    from supafeatures.errors import SupafeaturesError
    from supafeatures.installer import uninstall_feature

    try:
        store, installer = _open_project(ctx.obj)
        if store.get_record(feature_id) is not None and not yes:
            if not Confirm.ask(f"Uninstall '{feature_id}'?", default=False, console=console):
                console.print("Uninstall cancelled.")
                return
        outcome = uninstall_feature(installer, feature_id, force=force)
    except (SupafeaturesError, FileNotFoundError) as e:
        console.print(f"[red]Uninstall failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    for path in outcome.removed_files:
        console.print(f"  [red]-[/red] {path}")
    for path in outcome.retained_files:
        console.print(f"  [dim]= {path} (migration kept)[/dim]")
    for error in outcome.errors:
        console.print(f"  [red]✗ {error}[/red]")

    if not outcome.success:
        raise typer.Exit(code=1)
    console.print(f"\n[green]✓ Feature '{feature_id}' uninstalled[/green]")
    if outcome.retained_files:
        console.print(
            "[yellow]Migrations were kept; add a new migration to revert their effects.[/yellow]"
        )


@app.command()
def doctor(ctx: typer.Context) -> None:
    """Check installed features for missing files."""
    from supafeatures.errors import SupafeaturesError
    from supafeatures.installer import run_doctor

    try:
        _, installer = _open_project(ctx.obj)
        reports = run_doctor(installer)
    except (SupafeaturesError, FileNotFoundError) as e:
        console.print(f"[red]Doctor failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if not reports:
        console.print("[dim]No features installed.[/dim]")
        return

    table = Table(title="Installed Features")
    table.add_column("Feature", style="cyan")
    table.add_column("Installed")
    table.add_column("Catalog")
    table.add_column("Status")

    for report in reports:
        if report.healthy:
            status = "[green]✓ ok[/green]"
        else:
            status = f"[red]✗ {len(report.missing_files)} missing[/red]"
        catalog = report.catalog_version or "[red]removed[/red]"
        if report.version_changed:
            catalog = f"[yellow]{catalog}[/yellow]"
        table.add_row(report.feature_id, report.installed_version, catalog, status)

    console.print(table)

    unhealthy = [r for r in reports if not r.healthy]
    for report in unhealthy:
        console.print(f"\n[red]{report.feature_id}[/red] is missing:")
        for path in report.missing_files:
            console.print(f"  • {path}")
    if unhealthy:
        raise typer.Exit(code=1)


@app.command("add-feature")
def add_feature(
    ctx: typer.Context,
    feature: Annotated[str, typer.Argument(help="Kebab-case id of the new feature.")],
    catalog_dir: Annotated[
        Path | None,
        typer.Option(
            "--catalog-dir",
            "-c",
            help="Catalog to add the feature to (defaults to --catalog, else ./features).",
        ),
    ] = None,
    category: Annotated[
        str,
        typer.Option("--category", help="Manifest category of the feature."),
    ] = "custom",
) -> None:
    """Create a template skeleton for a new catalog feature."""
    from supafeatures.errors import ValidationError
    from supafeatures.registry import create_feature

    target = catalog_dir or ctx.obj.catalog or Path("features")
    if target.is_file():
        target = target.parent

    try:
        scaffolded = create_feature(target, feature, category=category)
    except (ValidationError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    for path in scaffolded.created_files:
        console.print(f"  [green]+[/green] {path}")
    console.print(f"Updated {scaffolded.manifest_path}")
    console.print(f"\n[green]✓ Feature '{feature}' created successfully![/green]")
    console.print("\nNext steps:")
    console.print(f"  1. Define the schema in schemas/{feature}.sql")
    console.print("  2. Review the generated migration")
    console.print(f"  3. Implement functions/{feature}-fn/index.ts")
    console.print("  4. Describe the feature in its README.md")


@app.command()
def version() -> None:
    """Show version information."""
    from supafeatures import __version__

    console.print(f"supafeatures version {__version__}")


if __name__ == "__main__":
    app()
