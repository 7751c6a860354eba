"""
Command line interface for zing.

This module defines the ``main`` click group used as the entry point of
the ``zing`` command. Without a subcommand it reads the staged changes,
asks the configured language model for a commit message, shows it for
confirmation and commits. The ``config`` and ``hooks`` subcommands manage
the configuration file and the git hook. Exit codes are listed below.
"""

from __future__ import annotations

import contextlib
import json
import logging
import signal
import threading
import time
from dataclasses import asdict
from pathlib import Path
from typing import Iterator, Optional

import click

from zing import __version__
from zing.cache import CacheError, CommitCache
from zing.changes.model import ChangeSet
from zing.config.loader import (
    Config,
    ConfigError,
    default_config_path,
    load_config,
    write_default_config,
)
from zing.errors import (
    Cancelled,
    EmptyChangeSet,
    ExhaustedRetries,
    FormatError,
    MissingCredential,
    ZingError,
)
from zing.pipeline import generate_commit_message
from zing.vcs.git_client import GitClient, GitError
from zing.vcs.hooks import install_hook


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_DECLINED = 8
EXIT_FORMAT_ERROR = 9
EXIT_CANCELLED = 130


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Spinner that ticks on a background thread while work is running."""

    spinner_chars = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']

    def __init__(self, message: str, show_spinner: bool = True, interval: float = 0.1):
        self.message = message
        self.show_spinner = show_spinner
        self.interval = interval
        self.spinner_index = 0
        self.start_time = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __enter__(self):
        self.start_time = time.time()
        if self.show_spinner:
            click.echo(f"{self.spinner_chars[0]} {self.message}...", nl=False)
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()
        else:
            click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
        elapsed = time.time() - self.start_time
        mark = "✗" if exc_type is not None else "✓"
        if self.show_spinner:
            click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)")
        else:
            click.echo(f"  {mark} Done ({elapsed:.1f}s)")
        return False

    def _spin(self) -> None:
        while not self._stop.wait(self.interval):
            self.update(self.message)

    def update(self, message: str):
        """Advance the spinner, optionally with a new message."""
        self.spinner_index = (self.spinner_index + 1) % len(self.spinner_chars)
        if self.show_spinner:
            click.echo(f"\r{self.spinner_chars[self.spinner_index]} {message}...", nl=False)


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}✓ {message}", fg="green"))


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}⚠ {message}", fg="yellow"))


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}✗ {message}", fg="red"), err=True)


def print_change_summary(change_set: ChangeSet) -> None:
    count = len(change_set.files)
    print_success(f"Found {count} staged file{'s' if count != 1 else ''}")
    for change in change_set.files:
        if change.is_binary:
            print_info(f"{change.status}: {change.path} (binary file)", indent=1)
        else:
            print_info(f"{change.status}: {change.path} (+{change.additions}/-{change.deletions})", indent=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool) -> None:
    # force=True so repeated invocations (tests) reconfigure handlers
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def apply_display_settings(config: Config) -> None:
    if config.display.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx = click.get_current_context(silent=True)
    if ctx is not None:
        ctx.color = {"always": True, "never": False}.get(config.display.color_mode)


def load_config_or_exit(config_path: Optional[Path]) -> Config:
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    apply_display_settings(config)
    return config


@contextlib.contextmanager
def cancel_on_interrupt(cancel_event: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancel request for the retry loop.

    A second Ctrl-C falls back to the previous handler.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)

    def handler(signum, frame):
        cancel_event.set()
        signal.signal(signal.SIGINT, previous)
        click.echo("\nCancelling after the current attempt (Ctrl-C again to abort)...", err=True)

    signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def confirm_commit(message: str, client: GitClient, show_diff: bool) -> bool:
    click.echo(f"\nGenerated commit message:\n{message}\n")
    if show_diff:
        click.echo("Changes to be committed:")
        client.show_staged_diff()
    try:
        return click.confirm("Proceed with commit?", default=True)
    except click.Abort as exc:
        # click raises Abort for both Ctrl-C and end of input
        if isinstance(exc.__context__, KeyboardInterrupt):
            raise
        return False


def record_commit(config: Config, message: str, commit_hash: str) -> None:
    cache = CommitCache(Path(config.system.cache_path))
    try:
        cache.load()
        cache.add(message, commit_hash, success=True)
    except CacheError as exc:
        print_warning(f"Could not update commit cache: {exc}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group(invoke_without_command=True)
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Read configuration from this file.")
@click.option("-y", "--yes", "yes", is_flag=True, help="Commit without asking for confirmation.")
@click.option("--message-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the message to this file instead of committing.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="zing")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], yes: bool,
         message_file: Optional[Path], verbose: bool) -> None:
    """⚡ Generate commit messages for your staged changes with AI.

    zing describes the staged diff to a language model (OpenAI or a local
    Ollama server), formats the answer as a conventional commit and
    commits it after confirmation.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is not None:
        return

    try:
        run_commit(config_path, yes, message_file)
    except click.exceptions.Exit:
        raise
    except (KeyboardInterrupt, click.Abort):
        print_error("Interrupted")
        raise click.exceptions.Exit(EXIT_CANCELLED)
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)


def run_commit(config_path: Optional[Path], yes: bool, message_file: Optional[Path]) -> None:
    repo_root = GitClient.find_repo_root(Path.cwd())
    if repo_root is None:
        print_error("Not a git repository.")
        raise click.exceptions.Exit(EXIT_NO_REPO)

    config = load_config_or_exit(config_path)
    quiet = config.display.quiet
    client = GitClient(repo_root)

    try:
        change_set = client.collect(
            ignore_paths=config.system.ignore_paths,
            diff_format=config.display.diff_format,
            ticket_integration=config.commit.jira,
        )
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if change_set.is_empty():
        print_error(str(EmptyChangeSet()))
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    if not quiet:
        print_change_summary(change_set)

    def report_failure(attempt: int, error: Exception) -> None:
        print_warning(
            f"Attempt {attempt} failed: {error}. "
            f"Retrying in {config.system.retry_delay:g} seconds..."
        )

    cancel_event = threading.Event()
    progress = (contextlib.nullcontext() if quiet
                else ProgressIndicator("Generating commit message"))
    try:
        with cancel_on_interrupt(cancel_event), progress:
            message = generate_commit_message(
                change_set,
                config,
                cancel_event=cancel_event,
                on_failure=report_failure,
            )
    except MissingCredential as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    except Cancelled:
        print_error("Commit message generation cancelled")
        raise click.exceptions.Exit(EXIT_CANCELLED)
    except ExhaustedRetries as exc:
        print_error(f"Error generating commit message: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    except FormatError as exc:
        print_error(f"Generated message rejected: {exc}")
        raise click.exceptions.Exit(EXIT_FORMAT_ERROR)
    except ZingError as exc:
        print_error(f"Error generating commit message: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)

    if message_file is not None:
        message_file.write_text(message, encoding="utf-8")
        if not quiet:
            print_success(f"Wrote commit message to {message_file}")
        return

    if not yes and not confirm_commit(message, client, config.display.show_diff):
        print_warning("Commit cancelled by user")
        raise click.exceptions.Exit(EXIT_DECLINED)

    try:
        commit_hash = client.commit(message, sign=config.commit.sign)
    except GitError as exc:
        print_error(f"Error executing git commit: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if commit_hash:
        record_commit(config, message, commit_hash)
    if not quiet:
        print_success("Successfully committed changes!")


@main.group("config")
def config_group() -> None:
    """View or modify the zing configuration."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the configuration file location and the active settings."""
    config_path = ctx.obj.get("config_path") or default_config_path()
    config = load_config_or_exit(config_path)
    click.echo(f"Config file location: {config_path}\n")
    click.echo("Current configuration:")
    click.echo(json.dumps(asdict(config), indent=2))


@config_group.command("edit")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the configuration file in your editor."""
    config_path = write_default_config(ctx.obj.get("config_path"))
    try:
        click.edit(filename=str(config_path))
    except click.ClickException as exc:
        print_error(f"Error opening editor: {exc.message}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
    load_config_or_exit(config_path)
    print_success("Configuration reloaded successfully")


@main.command("hooks")
@click.pass_context
def hooks(ctx: click.Context) -> None:
    """Install the prepare-commit-msg git hook."""
    repo_root = GitClient.find_repo_root(Path.cwd())
    if repo_root is None:
        print_error("Not a git repository.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    config = load_config_or_exit(ctx.obj.get("config_path"))
    try:
        hook = install_hook(repo_root, config.system.git_hooks_path)
    except OSError as exc:
        print_error(f"Error installing git hooks: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
    print_success(f"Git hooks installed successfully ({hook})")
