"""CLI entry point for GitPanic."""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from gitpanic import __version__
from gitpanic.config import CONFIG_FILE, Settings, create_default_config, load_settings
from gitpanic.core import OngoingOperation, RecoverySession, ResetMode, SafetyCheckResult
from gitpanic.core.safety import validate_branch_name
from gitpanic.errors import GitPanicError, OperationBlockedError, StepFailedError
from gitpanic.prompts import Prompter, RichPrompter
from gitpanic.utils.logging import setup_logging

app = typer.Typer(
    name="gitpanic",
    help="Guided, undoable recovery from common git mistakes",
    add_completion=False,
    no_args_is_help=False,
)
stash_app = typer.Typer(help="Create, apply and recover stashes")
app.add_typer(stash_app, name="stash")

console = Console()


@dataclass
class CLIState:
    """Options shared by every command; tests may pre-seed a prompter."""

    repo: Path = Path(".")
    config: Optional[Path] = None
    verbose: bool = False
    assume_yes: bool = False
    prompter: Optional[Prompter] = None
    settings: Optional[Settings] = None


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]GitPanic[/bold] version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    repo: Path = typer.Option(
        Path("."),
        "--repo",
        "-C",
        help="Run as if started in this directory",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (shows git commands)",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Answer yes to confirmations; blockers still stop",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """GitPanic - calm, safety-checked fixes for git mistakes.

    Every fix is checked before it runs and recorded so that
    `gitpanic undo` can put HEAD back where it was.
    """
    state = ctx.obj if isinstance(ctx.obj, CLIState) else CLIState()
    state.repo = repo
    state.config = config
    state.verbose = verbose
    state.assume_yes = yes
    ctx.obj = state

    if ctx.invoked_subcommand is None:
        ctx.invoke(status, ctx)


# ========== Helpers ==========


def _state(ctx: typer.Context) -> CLIState:
    return ctx.find_root().obj


def _prompter(ctx: typer.Context) -> Prompter:
    state = _state(ctx)
    if state.prompter is None:
        state.prompter = RichPrompter(console, assume_yes=state.assume_yes)
    return state.prompter


def _report_error(error: GitPanicError) -> None:
    console.print(f"[red]Error:[/red] {error.message}")

    if isinstance(error, OperationBlockedError):
        for blocker in error.result.blockers:
            console.print(f"  [red]✗[/red] {blocker}")
    elif isinstance(error, StepFailedError):
        if error.applied:
            console.print(f"  Applied before the failure: {', '.join(h[:7] for h in error.applied)}")
        if error.branch:
            console.print(f"  You are on branch [bold]{error.branch}[/bold].")
        if error.paused:
            console.print(
                "  Resolve the conflict and run [bold]gitpanic continue[/bold], "
                "or [bold]gitpanic abort[/bold] to give up."
            )


@contextmanager
def recovery_session(ctx: typer.Context) -> Iterator[RecoverySession]:
    """Open a session for one command, turning GitPanic errors into exit code 1."""
    state = _state(ctx)
    try:
        settings = load_settings(state.config)
        state.settings = settings
        log_file = Path(settings.logging.file) if settings.logging.file else None
        setup_logging(settings.logging.level, log_file, verbose=state.verbose)

        with RecoverySession.open(state.repo, settings) as session:
            yield session
    except GitPanicError as e:
        _report_error(e)
        raise typer.Exit(1)


def _blocked(result: SafetyCheckResult) -> None:
    if not result.safe:
        for blocker in result.blockers:
            console.print(f"[red]✗[/red] {blocker}")
        raise typer.Exit(1)


def _confirm(
    ctx: typer.Context,
    message: str,
    warnings: Sequence[str] = (),
    dangerous: bool = False,
) -> None:
    """Ask before proceeding when there are warnings or the action is dangerous."""
    state = _state(ctx)
    confirm_dangerous = state.settings.safety.confirm_dangerous_actions if state.settings else True
    if not warnings and not (dangerous and confirm_dangerous):
        return
    if not _prompter(ctx).ask_yes_no(message, list(warnings)):
        console.print("[dim]Cancelled.[/dim]")
        raise typer.Exit(0)


def _cancelled() -> None:
    console.print("[dim]Cancelled.[/dim]")
    raise typer.Exit(0)


def _ask_count(prompter: Prompter, prompt: str, minimum: int) -> int:
    def validate(value: str) -> Optional[str]:
        if not value.isdigit() or int(value) < minimum:
            return f"Enter a whole number of at least {minimum}"
        return None

    answer = prompter.ask_text(prompt, validate, str(minimum))
    if answer is None:
        _cancelled()
    return int(answer)


def _ask_branch_name(prompter: Prompter, prompt: str, default: Optional[str] = None) -> str:
    name = prompter.ask_text(prompt, validate_branch_name, default)
    if name is None:
        _cancelled()
    return name


def _done(ctx: typer.Context, message: str) -> None:
    _prompter(ctx).notify(message, "success")


# ========== State ==========


@app.command()
def status(ctx: typer.Context) -> None:
    """Show repository state and which fixes are available."""
    with recovery_session(ctx) as session:
        state = session.state()
        operations = session.available_operations()

    table = Table(title="Repository State", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Branch", state.branch or "[yellow]detached HEAD[/yellow]")
    table.add_row("HEAD", state.last_commit.one_line() if state.last_commit else "[dim]no commits[/dim]")
    if state.ongoing_operation != OngoingOperation.NONE:
        table.add_row("In progress", f"[yellow]{state.ongoing_operation.label}[/yellow]")
    if state.conflicted:
        table.add_row("Conflicts", f"[red]{len(state.conflicted)}[/red]")
    table.add_row("Staged", str(len(state.staged)))
    table.add_row("Modified", str(len(state.modified)))
    table.add_row("Untracked", str(len(state.untracked)))
    if state.tracking:
        table.add_row("Tracking", f"{state.tracking} (ahead {state.ahead}, behind {state.behind})")
    table.add_row("Stashes", str(state.stash_count))
    console.print(table)

    enabled = [operation.value for operation, ok in operations.items() if ok]
    console.print(f"\n[bold]Available fixes:[/bold] {', '.join(enabled)}")


@app.command()
def history(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-l", help="Number of actions to show"),
) -> None:
    """List recorded recovery actions, newest first."""
    with recovery_session(ctx) as session:
        actions = session.history(limit)

    if not actions:
        console.print("[dim]No recorded actions.[/dim]")
        return

    table = Table(title="Action History")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("When", style="yellow")
    table.add_column("Action", style="green")
    table.add_column("Undo", justify="center")

    for action in actions:
        if action.error:
            undo = "[red]failed[/red]"
        else:
            undo = "✓" if action.is_undoable else "-"
        table.add_row(
            action.id,
            action.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
            action.description,
            undo,
        )

    console.print(table)


@app.command()
def undo(ctx: typer.Context) -> None:
    """Undo the most recent undoable recovery action."""
    with recovery_session(ctx) as session:
        action = session.ledger.last_undoable_action()
        if action is None:
            console.print("[yellow]Nothing to undo.[/yellow]")
            raise typer.Exit(1)

        # A stale hash is reported by undo_last_action itself
        warnings = []
        if session.inspector.has_tracked_changes():
            warnings.append("Hard reset will discard all uncommitted changes")
        _confirm(ctx, f'Undo "{action.description}"?', warnings, dangerous=True)
        result = session.undo_last_action()

    _done(ctx, f"{result.message} (HEAD is now {result.reset_to[:7]})")


# ========== Commits ==========


@app.command("undo-commit")
def undo_commit(
    ctx: typer.Context,
    count: int = typer.Option(1, "--count", "-n", help="Number of commits to undo"),
    mode: Optional[ResetMode] = typer.Option(
        None, "--mode", "-m", case_sensitive=False, help="soft, mixed or hard"
    ),
) -> None:
    """Undo the last commit(s), keeping or discarding the changes."""
    with recovery_session(ctx) as session:
        if mode is None:
            options = [
                "Soft: keep changes staged",
                "Mixed: keep changes unstaged",
                "Hard: discard changes",
            ]
            choice = _prompter(ctx).ask_choice("How should the changes be kept?", options)
            if choice is None:
                _cancelled()
            mode = [ResetMode.SOFT, ResetMode.MIXED, ResetMode.HARD][choice]

        check = session.safety.check_before_reset(mode, count)
        _blocked(check)
        _confirm(
            ctx,
            f"Undo {count} commit(s) with a {mode.value} reset?",
            check.warnings,
            dangerous=mode == ResetMode.HARD,
        )
        session.undo_commits(mode, count)

    _done(ctx, f"Undid {count} commit(s) ({mode.value})")


@app.command("fix-message")
def fix_message(
    ctx: typer.Context,
    message: Optional[str] = typer.Option(None, "--message", "-m", help="New commit message"),
) -> None:
    """Change the message of the last commit."""
    with recovery_session(ctx) as session:
        check = session.safety.check_before_amend()
        _blocked(check)

        if message is None:
            current = session.inspector.last_commit()
            message = _prompter(ctx).ask_text(
                "New commit message",
                lambda v: None if v.strip() else "Message cannot be empty",
                current.message if current else None,
            )
            if message is None:
                _cancelled()

        _confirm(ctx, "Rewrite the last commit?", check.warnings)
        commit = session.fix_message(message)

    _done(ctx, f"Commit message changed: {commit.one_line()}")


@app.command()
def amend(
    ctx: typer.Context,
    paths: Optional[list[str]] = typer.Argument(None, help="Files to add to the last commit"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Replace the message too"),
) -> None:
    """Add forgotten changes to the last commit."""
    with recovery_session(ctx) as session:
        check = session.safety.check_before_amend()
        _blocked(check)

        state = session.state()
        if not paths and not state.staged:
            changed = state.modified + state.untracked
            if not changed:
                console.print("[yellow]No changes to add to the last commit.[/yellow]")
                raise typer.Exit(1)
            choice = _prompter(ctx).ask_choice(
                "Which changes should be added?", ["All changed files"] + changed
            )
            if choice is None:
                _cancelled()
            paths = changed if choice == 0 else [changed[choice - 1]]

        _confirm(ctx, "Rewrite the last commit?", check.warnings)
        commit = session.amend(paths or [], message)

    _done(ctx, f"Amended {commit.one_line()}")


@app.command()
def squash(
    ctx: typer.Context,
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of commits to squash"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message for the new commit"),
) -> None:
    """Combine the last N commits into one."""
    with recovery_session(ctx) as session:
        prompter = _prompter(ctx)
        if count is None:
            count = _ask_count(prompter, "How many commits to squash?", 2)

        check = session.safety.check_before_squash(count)
        _blocked(check)

        if message is None:
            commits = session.inspector.recent_commits(count)
            message = prompter.ask_text(
                "Message for the squashed commit",
                lambda v: None if v.strip() else "Message cannot be empty",
                commits[-1].message if commits else None,
            )
            if message is None:
                _cancelled()

        _confirm(ctx, f"Squash {count} commits into one?", check.warnings)
        commit = session.squash(count, message)

    _done(ctx, f"Squashed {count} commits into {commit.one_line()}")


@app.command("move-commits")
def move_commits(
    ctx: typer.Context,
    target: Optional[str] = typer.Argument(None, help="Branch to move the commits to"),
    count: int = typer.Option(1, "--count", "-n", help="Number of commits to move"),
    existing: bool = typer.Option(
        False, "--existing", "-e", help="Move onto an existing branch instead of creating one"
    ),
) -> None:
    """Move the last N commits from the current branch to another branch."""
    with recovery_session(ctx) as session:
        prompter = _prompter(ctx)
        if target is None:
            if existing:
                others = [b for b in session.inspector.branches() if b != session.inspector.current_branch()]
                choice = prompter.ask_choice("Move commits to which branch?", others)
                if choice is None:
                    _cancelled()
                target = others[choice]
            else:
                target = _ask_branch_name(prompter, "New branch name")

        check = session.safety.check_before_move(count, target, create=not existing)
        _blocked(check)
        _confirm(
            ctx,
            f"Move {count} commit(s) to {target} and reset the current branch?",
            check.warnings,
            dangerous=True,
        )
        result = session.move_commits(count, target, create=not existing)

    _done(ctx, f"Moved {len(result.moved)} commit(s) from {result.source} to {result.target}")


# ========== Branches ==========


@app.command("recover-branch")
def recover_branch(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Name of the deleted branch"),
    commit: Optional[str] = typer.Option(None, "--commit", help="Commit to recreate it at"),
    checkout: bool = typer.Option(False, "--checkout", help="Switch to the recovered branch"),
) -> None:
    """Recreate a deleted branch from the reflog."""
    with recovery_session(ctx) as session:
        if commit is None:
            candidates = session.inspector.reflog_deleted_branches()
            if name is not None:
                candidates = [c for c in candidates if c.name == name]
            if not candidates:
                console.print("[yellow]No deleted branches found in the reflog.[/yellow]")
                raise typer.Exit(1)

            if name is not None and len(candidates) == 1:
                found = candidates[0]
            else:
                choice = _prompter(ctx).ask_choice(
                    "Which branch should be recovered?",
                    [f"{c.name} ({c.hash[:7]})" for c in candidates],
                )
                if choice is None:
                    _cancelled()
                found = candidates[choice]
            name, commit = name or found.name, found.hash

        if name is None:
            name = _ask_branch_name(_prompter(ctx), "Branch name")

        _blocked(session.safety.check_before_branch_create(name))
        session.recover_branch(name, commit, checkout=checkout)

    _done(ctx, f"Recovered branch {name} at {commit[:7]}")


@app.command("fix-detached")
def fix_detached(
    ctx: typer.Context,
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Create this branch here"),
) -> None:
    """Get out of a detached HEAD without losing commits."""
    with recovery_session(ctx) as session:
        info = session.inspector.detached_head_info()
        if info is None:
            console.print("[green]HEAD is not detached.[/green]")
            return

        prompter = _prompter(ctx)
        console.print(f"HEAD is detached at {info.one_line()}")

        if branch is None:
            choice = prompter.ask_choice(
                "What would you like to do?",
                [
                    "Create a new branch here (keeps these commits)",
                    "Go back to an existing branch",
                    "Stay detached",
                ],
            )
            if choice is None or choice == 2:
                _cancelled()
            if choice == 1:
                branches = session.inspector.branches()
                picked = prompter.ask_choice("Switch to which branch?", branches)
                if picked is None:
                    _cancelled()
                session.checkout_branch(branches[picked])
                _done(ctx, f"Switched to {branches[picked]}")
                return
            branch = _ask_branch_name(prompter, "New branch name")

        _blocked(session.safety.check_before_branch_create(branch))
        session.create_branch_here(branch)

    _done(ctx, f"Created branch {branch} at {info.short_hash}")


# ========== Ongoing operations ==========


@app.command()
def abort(ctx: typer.Context) -> None:
    """Abort the merge, rebase, cherry-pick or bisect in progress."""
    with recovery_session(ctx) as session:
        operation = session.inspector.ongoing_operation()
        _blocked(session.safety.check_before_abort(operation))
        _confirm(
            ctx,
            f"Abort the {operation.label.lower()}?",
            [f"Changes made during the {operation.label.lower()} will be lost"],
        )
        session.abort()

    _done(ctx, f"{operation.label} aborted")


@app.command("continue")
def continue_operation(ctx: typer.Context) -> None:
    """Continue the merge, rebase or cherry-pick after resolving conflicts."""
    with recovery_session(ctx) as session:
        operation = session.continue_()

    _done(ctx, f"{operation.label} continued")


# ========== Stashes ==========


@stash_app.command("list")
def stash_list(ctx: typer.Context) -> None:
    """List stashes."""
    with recovery_session(ctx) as session:
        stashes = session.inspector.stash_list()

    if not stashes:
        console.print("[dim]No stashes.[/dim]")
        return

    table = Table(title="Stashes")
    table.add_column("Ref", style="cyan", no_wrap=True)
    table.add_column("Branch", style="green")
    table.add_column("Message")
    for stash in stashes:
        table.add_row(stash.ref, stash.branch, stash.message)
    console.print(table)


@stash_app.command("create")
def stash_create(
    ctx: typer.Context,
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Stash message"),
    include_untracked: bool = typer.Option(
        False, "--include-untracked", "-u", help="Also stash untracked files"
    ),
) -> None:
    """Stash local changes."""
    with recovery_session(ctx) as session:
        session.create_stash(message, include_untracked)

    _done(ctx, "Changes stashed")


def _pick_stash(ctx: typer.Context, session: RecoverySession, index: Optional[int], verb: str) -> int:
    if index is not None:
        return index
    stashes = session.inspector.stash_list()
    if not stashes:
        console.print("[yellow]No stashes.[/yellow]")
        raise typer.Exit(1)
    choice = _prompter(ctx).ask_choice(f"Which stash should be {verb}?", [s.one_line() for s in stashes])
    if choice is None:
        _cancelled()
    return stashes[choice].index


@stash_app.command("apply")
def stash_apply(
    ctx: typer.Context,
    index: Optional[int] = typer.Argument(None, help="Stash index"),
) -> None:
    """Apply a stash and keep it."""
    with recovery_session(ctx) as session:
        index = _pick_stash(ctx, session, index, "applied")
        session.apply_stash(index)

    _done(ctx, f"Applied stash@{{{index}}}")


@stash_app.command("pop")
def stash_pop(
    ctx: typer.Context,
    index: Optional[int] = typer.Argument(None, help="Stash index"),
) -> None:
    """Apply a stash and remove it."""
    with recovery_session(ctx) as session:
        index = _pick_stash(ctx, session, index, "popped")
        session.pop_stash(index)

    _done(ctx, f"Popped stash@{{{index}}}")


@stash_app.command("drop")
def stash_drop(
    ctx: typer.Context,
    index: Optional[int] = typer.Argument(None, help="Stash index"),
) -> None:
    """Delete a stash."""
    with recovery_session(ctx) as session:
        index = _pick_stash(ctx, session, index, "dropped")
        _confirm(ctx, f"Drop stash@{{{index}}}?", dangerous=True)
        session.drop_stash(index)

    _done(ctx, f"Dropped stash@{{{index}}} (recover it with `gitpanic stash recover`)")


@stash_app.command("recover")
def stash_recover(ctx: typer.Context) -> None:
    """Find dropped stashes and put one back on the stash list."""
    with recovery_session(ctx) as session:
        with console.status("Searching for dropped stashes..."):
            dropped = session.inspector.dropped_stashes()
        if not dropped:
            console.print("[yellow]No dropped stashes found.[/yellow]")
            raise typer.Exit(1)

        choice = _prompter(ctx).ask_choice(
            "Which stash should be recovered?", [f"{d.hash[:7]} {d.message}" for d in dropped]
        )
        if choice is None:
            _cancelled()
        found = dropped[choice]
        session.recover_stash(found.hash, found.message)

    _done(ctx, f"Recovered stash {found.hash[:7]} as stash@{{0}}")


# ========== Files ==========


@app.command("recover-file")
def recover_file(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="File to restore"),
    commit: Optional[str] = typer.Option(None, "--commit", help="Version to restore"),
    deleted: bool = typer.Option(False, "--deleted", "-d", help="Pick from recently deleted files"),
) -> None:
    """Restore a file from an earlier commit, or bring back a deleted one."""
    with recovery_session(ctx) as session:
        prompter = _prompter(ctx)

        if deleted or path is None:
            candidates = session.inspector.deleted_files()
            if path is not None:
                candidates = [c for c in candidates if c.path == path]
            if not candidates:
                console.print("[yellow]No deleted files found.[/yellow]")
                raise typer.Exit(1)
            choice = prompter.ask_choice(
                "Which file should be recovered?",
                [f"{c.path} (deleted in {c.hash[:7]})" for c in candidates],
            )
            if choice is None:
                _cancelled()
            found = candidates[choice]
            session.recover_deleted_file(found.path, found.hash)
            _done(ctx, f"Recovered {found.path}")
            return

        if commit is None:
            versions = session.inspector.file_history(path)
            if not versions:
                console.print(f"[yellow]No history for {path}.[/yellow]")
                raise typer.Exit(1)
            choice = prompter.ask_choice(f"Restore {path} from which commit?", [c.one_line() for c in versions])
            if choice is None:
                _cancelled()
            commit = versions[choice].hash

        _confirm(ctx, f"Overwrite {path} with its version from {commit[:7]}?", dangerous=True)
        session.restore_file(path, commit)

    _done(ctx, f"Restored {path} from {commit[:7]}")


@app.command()
def unstage(
    ctx: typer.Context,
    paths: Optional[list[str]] = typer.Argument(None, help="Files to unstage (default: all)"),
) -> None:
    """Remove files from the staging area, keeping the changes."""
    with recovery_session(ctx) as session:
        if not paths and not session.state().staged:
            console.print("[yellow]Nothing is staged.[/yellow]")
            raise typer.Exit(1)
        session.unstage(paths)

    _done(ctx, f"Unstaged {len(paths) if paths else 'all'} file(s)")


@app.command()
def discard(
    ctx: typer.Context,
    paths: Optional[list[str]] = typer.Argument(None, help="Files to discard (default: all)"),
) -> None:
    """Throw away uncommitted changes to tracked files."""
    with recovery_session(ctx) as session:
        target = ", ".join(paths) if paths else "all tracked files"
        _confirm(
            ctx,
            f"Discard changes to {target}?",
            ["Discarded changes cannot be recovered"],
        )
        session.discard(paths)

    _done(ctx, "Changes discarded")


@app.command()
def clean(
    ctx: typer.Context,
    paths: Optional[list[str]] = typer.Argument(None, help="Untracked paths to delete (default: all)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only show what would be removed"),
) -> None:
    """Delete untracked files and directories."""
    with recovery_session(ctx) as session:
        candidates = session.inspector.clean_dry_run()
        if paths:
            candidates = [c for c in candidates if c in paths or c.rstrip("/") in paths]
        if not candidates:
            console.print("[dim]Nothing to clean.[/dim]")
            return

        for candidate in candidates:
            console.print(f"  {candidate}")
        if dry_run:
            return

        _confirm(
            ctx,
            f"Delete {len(candidates)} untracked item(s)?",
            ["Untracked files are not in git and cannot be recovered"],
        )
        removed = session.clean(paths)

    _done(ctx, f"Removed {len(removed)} untracked item(s)")


# ========== Remote ==========


@app.command()
def fetch(ctx: typer.Context) -> None:
    """Fetch from all remotes."""
    with recovery_session(ctx) as session:
        if not session.inspector.has_remote():
            console.print("[yellow]No remote configured.[/yellow]")
            raise typer.Exit(1)
        with console.status("Fetching from remotes..."):
            session.fetch()

    _done(ctx, "Fetched remote changes")


@app.command()
def diverged(
    ctx: typer.Context,
    reset_to_remote: bool = typer.Option(
        False, "--reset-to-remote", help="Make the branch match its remote"
    ),
    backup: Optional[str] = typer.Option(
        None, "--backup", help="Keep local commits on this new branch first"
    ),
) -> None:
    """Compare the branch with its remote after a force push."""
    with recovery_session(ctx) as session:
        tracking = session.inspector.tracking_branch()
        if tracking is None:
            console.print("[yellow]The current branch has no tracking branch.[/yellow]")
            raise typer.Exit(1)

        commits = session.inspector.diverged_commits()
        if commits.in_sync:
            console.print(f"[green]In sync with {tracking}.[/green]")
            return

        table = Table(title=f"HEAD vs {tracking}")
        table.add_column("Side", style="bold")
        table.add_column("Commit")
        for commit in commits.local:
            table.add_row("[cyan]local[/cyan]", commit.one_line())
        for commit in commits.remote:
            table.add_row("[magenta]remote[/magenta]", commit.one_line())
        console.print(table)

        if backup:
            _blocked(session.safety.check_before_branch_create(backup))
            session.create_branch_at(backup, "HEAD", checkout=False)
            _done(ctx, f"Saved local commits on {backup}")

        if reset_to_remote:
            check = session.safety.check_before_reset_to(tracking)
            _blocked(check)
            warnings = list(check.warnings)
            if commits.local and not backup:
                warnings.append(f"{len(commits.local)} local commit(s) will be dropped")
            _confirm(ctx, f"Reset to {tracking}?", warnings, dangerous=True)
            session.reset_to_remote()
            _done(ctx, f"Reset to {tracking}")


@app.command("lost-commits")
def lost_commits(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-l", help="Reflog entries to search"),
) -> None:
    """Find commits in the reflog and bring one back."""
    with recovery_session(ctx) as session:
        entries = session.inspector.unique_reflog_commits(limit)
        if not entries:
            console.print("[yellow]The reflog is empty.[/yellow]")
            raise typer.Exit(1)

        prompter = _prompter(ctx)
        choice = prompter.ask_choice(
            "Which commit?", [f"{e.hash[:7]} {e.selector}: {e.message}" for e in entries]
        )
        if choice is None:
            _cancelled()
        entry = entries[choice]

        action = prompter.ask_choice(
            f"What should happen with {entry.hash[:7]}?",
            [
                "Create a branch at this commit",
                "Reset the current branch to this commit",
                "Cherry-pick it onto the current branch",
            ],
        )
        if action is None:
            _cancelled()

        if action == 0:
            name = _ask_branch_name(prompter, "Branch name", f"recovered-{entry.hash[:7]}")
            _blocked(session.safety.check_before_branch_create(name))
            session.create_branch_at(name, entry.hash, checkout=False)
            _done(ctx, f"Created branch {name} at {entry.hash[:7]}")
        elif action == 1:
            check = session.safety.check_before_reset_to(entry.hash)
            _blocked(check)
            _confirm(ctx, f"Reset to {entry.hash[:7]}?", check.warnings, dangerous=True)
            session.reset_to_commit(entry.hash)
            _done(ctx, f"Reset to {entry.hash[:7]}")
        else:
            if session.cherry_pick(entry.hash):
                _done(ctx, f"Cherry-picked {entry.hash[:7]}")
            else:
                console.print(
                    "[yellow]Cherry-pick stopped on a conflict.[/yellow] Resolve it and run "
                    "[bold]gitpanic continue[/bold], or [bold]gitpanic abort[/bold]."
                )


# ========== Configuration ==========


@app.command()
def config(
    ctx: typer.Context,
    init: bool = typer.Option(False, "--init", help="Write the default config file"),
) -> None:
    """Show current configuration."""
    if init:
        path = create_default_config()
        _done(ctx, f"Config file at {path}")
        return

    state = _state(ctx)
    try:
        settings = load_settings(state.config)
    except GitPanicError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(Panel("[bold]Current Configuration[/bold]", border_style="blue"))
    console.print(f"  Config file: {state.config or CONFIG_FILE}")
    console.print("\n[bold]History:[/bold]")
    console.print(f"  Max actions: {settings.history.max_actions}")
    console.print(f"  Path: {settings.history.path or '<git-dir>/gitpanic/history.json'}")
    console.print("\n[bold]Safety:[/bold]")
    console.print(f"  Confirm dangerous actions: {settings.safety.confirm_dangerous_actions}")
    console.print("\n[bold]Logging:[/bold]")
    console.print(f"  Level: {settings.logging.level}")
    console.print(f"  File: {settings.logging.file or '-'}")


if __name__ == "__main__":
    app()
