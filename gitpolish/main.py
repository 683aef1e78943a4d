"""git-polish CLI: all commands."""

import logging
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from gitpolish.clients.github import GitHubClient, _repo_from_git_remote
from gitpolish.clients.llm import GeminiClient, LlmClient
from gitpolish.device_flow import run_device_flow
from gitpolish.errors import (
    AuthDeniedError,
    AuthTimeoutError,
    ConfigurationError,
    EmptyChecklistError,
    NetworkError,
    PolishError,
)
from gitpolish.generate import generate_checklist, generate_description, generate_readme, regenerate_readme
from gitpolish.issues import parse_checklist_and_create_issues
from gitpolish.models import CreatedIssue, FailedIssue, IssueBatchResult
from gitpolish.settings import CONFIG_PATH, PolishSettings, get_settings, require_client_id
from gitpolish.token_store import FileTokenStore, TokenStore

app = typer.Typer(help="git-polish: README, description and checklist assistant for GitHub repos", no_args_is_help=True)
console = Console()

RepoOpt = Annotated[
    str | None,
    typer.Option("--repo", "-r", help="owner/repo (defaults to the origin remote of the current checkout)"),
]
OutputOpt = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="File to write (defaults to ./<owner>-<repo>-<kind>.md)"),
]
_ACCESS_HINT = "Make sure the repository exists and you can access it."


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def get_token_store(settings: PolishSettings) -> TokenStore:
    return FileTokenStore(settings.token_path)


def get_github(settings: PolishSettings, token: str | None = None) -> GitHubClient:
    return GitHubClient(token, base_url=settings.github_api_url, oauth_url=settings.github_oauth_url)


def get_llm(settings: PolishSettings) -> LlmClient:
    return GeminiClient(settings)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(message: str, hint: str | None = None) -> typer.Exit:
    rprint(f"[red]✗ {message}[/red]")
    if hint:
        rprint(f"[dim]{hint}[/dim]")
    return typer.Exit(1)


def _require_token(settings: PolishSettings) -> str:
    token = get_token_store(settings).load()
    if not token:
        raise _fail("Not logged in.", "Run: git-polish login")
    return token


def _resolve_repo(value: str | None) -> tuple[str, str]:
    full_name = value or _repo_from_git_remote()
    if not full_name:
        raise _fail("No repository given and no github.com origin remote found.", "Pass --repo owner/repo")
    owner, _, repo = full_name.partition("/")
    if not owner or not repo or "/" in repo:
        raise _fail(f"Invalid repository '{full_name}'. Expected owner/repo.")
    return owner, repo


def _get_llm_or_exit(settings: PolishSettings) -> LlmClient:
    try:
        return get_llm(settings)
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc


def _write_output(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    rprint(f"[green]✓[/green] Saved to {path}")


def _print_issue_result(item: CreatedIssue | FailedIssue) -> None:
    if isinstance(item, CreatedIssue):
        rprint(f"  [green]✓[/green] #{item.number} {item.title}")
    else:
        rprint(f"  [red]✗[/red] {item.draft.title}: [dim]{item.error}[/dim]")


def _report_batch(result: IssueBatchResult, owner: str, repo: str) -> None:
    rprint("")
    if not result.created:
        rprint(f"[red]✗ Failed to create any of {result.total} issues.[/red]")
    else:
        rprint(f"[green]✓[/green] Created {len(result.created)} out of {result.total} issues in {owner}/{repo}")
    if result.failed:
        rprint(f"[yellow]{len(result.failed)} issue(s) failed:[/yellow]")
        for failure in result.failed:
            rprint(f"  • {failure.draft.title}")
    if result.created:
        rprint(f"  https://github.com/{owner}/{repo}/issues")


# ---------------------------------------------------------------------------
# Auth commands
# ---------------------------------------------------------------------------


@app.command("login")
def login() -> None:
    """Authenticate with GitHub using the device flow."""
    settings = get_settings()
    try:
        client_id = require_client_id(settings)
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc

    try:
        user, token = run_device_flow(get_github(settings), client_id)
    except AuthTimeoutError as exc:
        raise _fail("Login timed out before the code was entered.", "Run: git-polish login") from exc
    except AuthDeniedError as exc:
        raise _fail("Authorization was denied.") from exc
    except NetworkError as exc:
        raise _fail(f"Could not reach GitHub: {exc}", "Check your network connection and try again.") from exc
    except PolishError as exc:
        raise _fail(f"Failed to authenticate with GitHub: {exc}") from exc
    except KeyboardInterrupt:
        rprint("\n[yellow]Login cancelled.[/yellow]")
        raise typer.Exit(130)

    store = get_token_store(settings)
    store.save(token)
    rprint(f"[green]✓[/green] Logged in as [bold]{user.login}[/bold]")
    rprint(f"  Token saved to {settings.token_path}")


@app.command("logout")
def logout() -> None:
    """Forget the stored GitHub token."""
    get_token_store(get_settings()).clear()
    rprint("[green]✓[/green] Logged out")


@app.command("whoami")
def whoami() -> None:
    """Show the GitHub user the stored token belongs to."""
    settings = get_settings()
    token = _require_token(settings)
    try:
        user = get_github(settings, token).get_user()
    except PolishError as exc:
        raise _fail(str(exc), "Try running: git-polish login") from exc
    rprint(f"{user.login}" + (f" ({user.name})" if user.name else ""))


# ---------------------------------------------------------------------------
# Repository commands
# ---------------------------------------------------------------------------


@app.command("list")
def list_repos() -> None:
    """List your GitHub repositories."""
    settings = get_settings()
    token = _require_token(settings)
    try:
        with console.status("Fetching your GitHub repositories..."):
            repos = get_github(settings, token).list_repos()
    except PolishError as exc:
        raise _fail(f"Failed to fetch repositories: {exc}", "Try running: git-polish login") from exc

    if not repos:
        rprint("[yellow]No repositories found.[/yellow]")
        return

    table = Table(title=f"Repositories ({len(repos)})")
    table.add_column("Repository", style="cyan")
    table.add_column("Visibility")
    table.add_column("Language")
    table.add_column("Description")
    table.add_column("URL", style="dim")

    for r in repos:
        table.add_row(
            r.full_name,
            "private" if r.private else "public",
            r.language or "—",
            r.description or "[dim]No description[/dim]",
            r.html_url,
        )

    rprint(table)


@app.command("readme")
def readme_cmd(repo: RepoOpt = None, output: OutputOpt = None) -> None:
    """Generate a README, then commit it, regenerate it, or discard it."""
    owner, name = _resolve_repo(repo)
    settings = get_settings()
    token = _require_token(settings)
    github = get_github(settings, token)
    llm = _get_llm_or_exit(settings)

    try:
        with console.status(f"Generating README for {owner}/{name}..."):
            content = generate_readme(github, llm, owner, name)
    except PolishError as exc:
        raise _fail(f"Failed to generate README: {exc}", _ACCESS_HINT) from exc

    path = output or Path(f"{owner}-{name}-readme.md")
    _write_output(path, content)

    while True:
        rprint("\n[bold]What would you like to do with the generated README?[/bold]")
        rprint("  1. Commit it to the repository")
        rprint("  2. Regenerate with suggestions")
        rprint("  3. Discard")
        choice = typer.prompt("Choice", default="3").strip()
        match choice:
            case "1":
                try:
                    url = github.put_readme(owner, name, content)
                except PolishError as exc:
                    rprint(f"[red]✗ Failed to commit README: {exc}[/red]")
                    continue
                rprint(f"[green]✓[/green] README committed to {owner}/{name}")
                if url:
                    rprint(f"  {url}")
                return
            case "2":
                suggestions = typer.prompt("What should change?").strip()
                if not suggestions:
                    rprint("[yellow]No suggestions given.[/yellow]")
                    continue
                try:
                    with console.status("Regenerating README..."):
                        content = regenerate_readme(llm, content, suggestions)
                except PolishError as exc:
                    rprint(f"[red]✗ Failed to regenerate README: {exc}[/red]")
                    continue
                _write_output(path, content)
            case "3":
                rprint("README discarded; the repository is unchanged.")
                rprint(f"[dim]The generated file is still at {path}[/dim]")
                return
            case _:
                rprint("[red]Invalid choice. Enter 1, 2, or 3.[/red]")


@app.command("description")
def description_cmd(repo: RepoOpt = None) -> None:
    """Generate a short repository description from the README."""
    owner, name = _resolve_repo(repo)
    settings = get_settings()
    token = _require_token(settings)
    github = get_github(settings, token)
    llm = _get_llm_or_exit(settings)

    while True:
        try:
            with console.status(f"Generating description for {owner}/{name}..."):
                description = generate_description(github, llm, owner, name)
        except PolishError as exc:
            raise _fail(f"Failed to generate description: {exc}", "Make sure the repository has a README.") from exc

        rprint(f'\n[bold]Generated description:[/bold]\n"{description}"')
        rprint("  1. Accept and update the repository")
        rprint("  2. Regenerate")
        rprint("  3. Discard")
        choice = typer.prompt("Choice", default="3").strip()
        match choice:
            case "1":
                try:
                    github.update_description(owner, name, description)
                except PolishError as exc:
                    raise _fail(f"Failed to update description: {exc}") from exc
                rprint(f"[green]✓[/green] Description for {owner}/{name} updated")
                return
            case "2":
                continue
            case "3":
                rprint("Description discarded; the repository is unchanged.")
                return
            case _:
                rprint("[red]Invalid choice. Enter 1, 2, or 3.[/red]")


@app.command("checklist")
def checklist_cmd(repo: RepoOpt = None, output: OutputOpt = None) -> None:
    """Generate an improvement checklist and save it as markdown."""
    owner, name = _resolve_repo(repo)
    settings = get_settings()
    token = _require_token(settings)
    llm = _get_llm_or_exit(settings)

    try:
        with console.status(f"Generating checklist for {owner}/{name}..."):
            content = generate_checklist(get_github(settings, token), llm, owner, name)
    except PolishError as exc:
        raise _fail(f"Failed to generate checklist: {exc}", _ACCESS_HINT) from exc

    path = output or Path(f"{owner}-{name}-checklist.md")
    _write_output(path, content)
    rprint(f"[dim]Turn it into issues with:[/dim] git-polish issues {path} --repo {owner}/{name}")


@app.command("issues")
def issues_cmd(
    checklist_file: Annotated[Path, typer.Argument(help="Markdown checklist to turn into issues")],
    repo: RepoOpt = None,
    enhance: Annotated[
        bool | None,
        typer.Option("--enhance/--no-enhance", help="Write issue bodies with AI (asks when omitted)"),
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Create one GitHub issue per checklist task."""
    owner, name = _resolve_repo(repo)
    settings = get_settings()
    token = _require_token(settings)

    try:
        raw_text = checklist_file.read_text()
    except FileNotFoundError as exc:
        raise _fail(f"File not found: {checklist_file}") from exc
    except OSError as exc:
        raise _fail(f"Cannot read {checklist_file}: {exc}") from exc
    if not raw_text.strip():
        raise _fail(f"{checklist_file} is empty.")

    if not yes and not typer.confirm(f"This will create new issues in {owner}/{name}. Proceed?", default=False):
        rprint("Issue creation cancelled.")
        raise typer.Exit(0)
    if enhance is None:
        enhance = typer.confirm("Enhance issues with AI-written descriptions?", default=False)

    llm = _get_llm_or_exit(settings)
    rprint(f"Creating issues in [bold]{owner}/{name}[/bold]...")
    try:
        result = parse_checklist_and_create_issues(
            get_github(settings, token),
            llm,
            owner,
            name,
            raw_text,
            enhance,
            on_result=_print_issue_result,
        )
    except EmptyChecklistError as exc:
        raise _fail(str(exc), "No issues were created.") from exc

    _report_batch(result, owner, name)
    if not result.created:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Configuration commands
# ---------------------------------------------------------------------------


@app.command("config-show")
def config_show() -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings()

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    table = Table(title="git-polish configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("client_id", settings.client_id or "[dim](not set)[/dim]")
    table.add_row(
        "gemini_api_key",
        mask(settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None),
    )
    table.add_row("gemini_model", settings.gemini_model)
    table.add_row("token_path", str(settings.token_path))
    table.add_row("logged in", "yes" if get_token_store(settings).load() else "no")
    table.add_row("config file", str(CONFIG_PATH))

    rprint(table)


@app.command("configure")
def configure() -> None:
    """Interactive setup: OAuth client id and Gemini credentials."""
    rprint("[bold]git-polish setup[/bold]")
    rprint("")

    current = get_settings()
    rprint("Register an OAuth App with device flow enabled at: https://github.com/settings/developers")
    client_id = typer.prompt("GitHub OAuth client id", default=current.client_id or "").strip()
    if not client_id:
        rprint("[red]Client id cannot be empty.[/red]")
        raise typer.Exit(1)

    rprint("Create a Gemini API key at: https://aistudio.google.com/apikey")
    api_key = typer.prompt("Gemini API key (leave blank to keep current)", default="", hide_input=True).strip()
    model = typer.prompt("Gemini model", default=current.gemini_model).strip()

    # Round-trip preserves any existing comments
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()
    doc["client_id"] = client_id
    doc["gemini_model"] = model
    if api_key:
        doc["gemini_api_key"] = api_key
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    CONFIG_PATH.chmod(0o600)
    rprint(f"[green]✓[/green] Configuration written to {CONFIG_PATH}")
    rprint("Next: git-polish login")
