"""
create-ttpg-package - Scaffold a new Tabletop Playground package

Usage:
    uvx create-ttpg-package <project-id>
    uvx create-ttpg-package <project-id> --template ts -y

Or install globally:
    uv tool install create-ttpg-package
    create-ttpg-package <project-id>
"""

import shutil
import sys
from pathlib import Path

import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from .answers import ProjectConfig, parse_cli_tokens, resolve_answers
from .builder import ScaffoldSettings, StageError, build_project
from .tracker import StepTracker

# ASCII Art Banner
BANNER = """
████████╗████████╗██████╗  ██████╗
╚══██╔══╝╚══██╔══╝██╔══██╗██╔════╝
   ██║      ██║   ██████╔╝██║  ███╗
   ██║      ██║   ██╔═══╝ ██║   ██║
   ██║      ██║   ██║     ╚██████╔╝
   ╚═╝      ╚═╝   ╚═╝      ╚═════╝
"""

TAGLINE = "Tabletop Playground package scaffolding"

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="create-ttpg-package",
    help="Create a new Tabletop Playground package from a template",
    add_completion=False,
)


def show_banner():
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        color = colors[i % len(colors)]
        styled_banner.append(line + "\n", style=color)

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


class LinePrompt(Prompt):
    """Prompt for questions that carry their own trailing punctuation."""

    prompt_suffix = ""


def ask_question(question: str) -> str:
    """Read one line of input; an empty line means 'use the suggestion'."""
    return LinePrompt.ask(
        f"[bright_white]{escape(question)}[/bright_white]",
        console=console,
        default="",
        show_default=False,
    )


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def render_setup_panel(config: ProjectConfig, project_path: Path) -> Panel:
    setup_lines = [
        "[cyan]TTPG Package Setup[/cyan]",
        "",
        f"{'Package':<15} [green]{escape(config.title)}[/green]",
        f"{'Slug':<15} [green]{escape(config.slug)}[/green]",
        f"{'Template':<15} [yellow]{config.template}[/yellow]",
        f"{'Version':<15} [yellow]{escape(config.version)}[/yellow]",
        f"{'Target Path':<15} [dim]{escape(str(project_path))}[/dim]",
        f"{'TTPG Path':<15} [dim]{escape(str(config.ttpg_path)) if config.ttpg_path else 'not set'}[/dim]",
    ]
    return Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2))


def print_failure(error: StageError, project_path: Path, debug: bool) -> None:
    err_console.print(
        Panel(
            f"Stage [bold]{error.stage}[/bold] failed: {escape(error.message)}",
            title="Failure",
            border_style="red",
        )
    )
    if error.__cause__ is not None:
        err_console.print(f"[red]{escape(repr(error.__cause__))}[/red]")
    if project_path.exists():
        err_console.print(
            f"[yellow]The partially created folder [cyan]{escape(str(project_path))}[/cyan] was left in place. "
            "Remove it before running again.[/yellow]"
        )
    if debug:
        _env_pairs = [
            ("Python", sys.version.split()[0]),
            ("Platform", sys.platform),
            ("CWD", str(Path.cwd())),
        ]
        _label_width = max(len(k) for k, _ in _env_pairs)
        env_lines = [f"{k.ljust(_label_width)} → [bright_black]{escape(v)}[/bright_black]" for k, v in _env_pairs]
        err_console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def create(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip all prompts and accept every generated default"),
    debug: bool = typer.Option(False, "--debug", help="Show diagnostic output when a stage fails"),
):
    """
    Create a new Tabletop Playground package.

    Arguments: [PROJECT_ID] [--template javascript|typescript|js|ts]

    This command will:
    1. Resolve the package title, slug, GUIDs, version and TTPG path
    2. Copy the JavaScript or TypeScript template into a new folder
    3. Create the asset folders and a symlinked dev copy of the package
    4. Write ttpgcfg.project.json and ttpgcfg.local.json
    5. Link the dev package into your TTPG folder
    6. Install dependencies

    Examples:
        create-ttpg-package my-package
        create-ttpg-package my-package --template ts
        create-ttpg-package my-package -y
        create-ttpg-package
    """
    show_banner()

    settings = ScaffoldSettings.from_env()

    try:
        tokens = parse_cli_tokens(ctx.args)
        config = resolve_answers(tokens.project_id, tokens.template, yes, ask_question)
    except typer.BadParameter as e:
        err_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1)
    except (KeyboardInterrupt, EOFError):
        err_console.print("\n[yellow]Setup cancelled[/yellow]")
        raise typer.Exit(1)

    project_path = Path.cwd().resolve() / config.directory_name
    console.print(render_setup_panel(config, project_path))

    tracker = StepTracker("Create TTPG Package")
    tracker.add("precheck", "Check required tools")
    if check_tool(settings.package_manager):
        tracker.complete("precheck", f"{settings.package_manager} available")
    else:
        tracker.warn("precheck", f"{settings.package_manager} not found")

    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            report = build_project(config, settings, tracker=tracker)
        except StageError as e:
            failure = e
        else:
            failure = None

    console.print(tracker.render())

    if failure is not None:
        print_failure(failure, project_path, debug)
        raise typer.Exit(failure.exit_code)

    if report.warnings:
        warning_lines = "\n".join(f"• {escape(w)}" for w in report.warnings)
        console.print()
        console.print(
            Panel(warning_lines, title="[yellow]Manual Setup Required[/yellow]", border_style="yellow", padding=(1, 2))
        )

    steps_lines = [
        f"1. Go to the package folder: [cyan]cd {escape(config.directory_name)}[/cyan]",
    ]
    step_num = 2
    if tracker.status_of("write-local-config") in ("skipped", "warning"):
        steps_lines.append(f"{step_num}. Finish the TTPG link: [cyan]{settings.package_manager} setup[/cyan]")
        step_num += 1
    steps_lines.append(f"{step_num}. Start developing: [cyan]{settings.package_manager} dev[/cyan]")
    steps_lines.append(f"{step_num + 1}. Build a release: [cyan]{settings.package_manager} build[/cyan]")

    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))
    console.print("\n[bold green]Good Hunting![/bold green]")


def main():
    app()
