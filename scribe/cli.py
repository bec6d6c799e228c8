"""
CLI interface for the resource store.

Usage:
    scribe new "buy milk" -t todo -t home
    scribe tag todo
    scribe search milk eggs
    scribe ls
    scribe rm todo
"""

import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from . import __version__
from .api import Scribe
from .errors import ScribeError, StorageError, log_exception
from .logging_config import enable_debug_mode
from .types import Resource

SEPARATOR = "~-" * 42

NO_MATCH = "go fish"


# Set SCRIBE_VERBOSE=1 to enable debug mode via environment
if os.environ.get("SCRIBE_VERBOSE") == "1":
    enable_debug_mode()


def _version_callback(value: bool):
    if value:
        print(f"scribe {__version__}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="scribe",
    help="Tagged notes with full-text search.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="SCRIBE_STORE_PATH",
        help="Path to the store directory (default: ~/.scribe/)",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Tagged notes with full-text search."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

@contextmanager
def _open_scribe() -> Iterator[Scribe]:
    """Open and load the store, exiting cleanly if startup fails."""
    try:
        scribe = Scribe(_get_store_override())
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    try:
        try:
            scribe.initialize()
        except ScribeError as e:
            log_path = log_exception(e, context="scribe startup", store_path=scribe.store_path)
            typer.echo(f"Error loading store: {e}", err=True)
            typer.echo(f"Details logged to {log_path}", err=True)
            raise typer.Exit(1)
        yield scribe
    finally:
        scribe.close()


def _storage_failure(e: StorageError, context: str):
    log_path = log_exception(e, context=context, store_path=_get_store_override())
    typer.echo(f"Error: {e}", err=True)
    typer.echo(f"Details logged to {log_path}", err=True)
    raise typer.Exit(1)


def _split_words(values: Optional[list[str]]) -> list[str]:
    """Flatten options that may each hold several space-separated words."""
    words: list[str] = []
    for value in values or []:
        words.extend(value.split())
    return words


def _print_contents(resources: list[Resource]) -> None:
    typer.echo(SEPARATOR)
    for resource in resources:
        typer.echo(resource.content)
        typer.echo(SEPARATOR)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command("tag")
def tag_lookup(
    tags: Annotated[list[str], typer.Argument(help="Tags to look up")],
):
    """
    Show resources for each tag (one lookup per tag, not an intersection).

    \b
    Examples:
        scribe tag todo
        scribe tag todo home
    """
    with _open_scribe() as sc:
        results = sc.lookup_tags(_split_words(tags))
        if _get_json_output():
            typer.echo(json.dumps({
                tag: [r.to_dict() for r in sc.resources(hashes)]
                for tag, hashes in results.items()
            }, indent=2))
            return
        for tag, hashes in results.items():
            if not hashes:
                typer.echo(NO_MATCH)
                continue
            _print_contents(sc.resources(hashes))


@app.command("index")
def index_lookup(
    token: Annotated[str, typer.Argument(help="A single index token")],
):
    """Show hashes of resources containing a token."""
    with _open_scribe() as sc:
        hashes = sorted(sc.lookup_by_token(token))
        if _get_json_output():
            typer.echo(json.dumps(hashes))
        elif not hashes:
            typer.echo(NO_MATCH)
        else:
            typer.echo(SEPARATOR)
            for hash in hashes:
                typer.echo(hash)
            typer.echo(SEPARATOR)


@app.command()
def search(
    terms: Annotated[list[str], typer.Argument(help="Index tokens that must all match")],
):
    """
    Show resources containing every known term.

    Terms are matched as-is against index tokens; unknown terms are ignored.
    """
    with _open_scribe() as sc:
        found = sc.resources(sc.search(_split_words(terms)))
        if _get_json_output():
            typer.echo(json.dumps([r.to_dict() for r in found], indent=2))
        elif not found:
            typer.echo(NO_MATCH)
        else:
            _print_contents(found)


@app.command()
def new(
    content: Annotated[Optional[str], typer.Argument(
        help="Resource content (reads stdin if omitted; surrounding whitespace is trimmed)"
    )] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t",
        help="Tag (repeatable, or several separated by spaces)"
    )] = None,
):
    """
    Create and save a resource.

    Leading and trailing whitespace is trimmed before the content is
    hashed, so "  buy milk " and "buy milk" are the same resource.

    \b
    Examples:
        scribe new "buy milk" -t todo -t home
        cat notes.txt | scribe new -t "reading notes"
    """
    if content is None:
        if sys.stdin.isatty():
            typer.echo("Error: Specify content or pipe it on stdin", err=True)
            raise typer.Exit(1)
        content = sys.stdin.read()
    content = content.strip()
    if not content:
        typer.echo("Error: Content is empty", err=True)
        raise typer.Exit(1)

    tags = _split_words(tag)
    if not tags:
        typer.echo("Warning: resource has no tags and will not be saved to disk", err=True)

    with _open_scribe() as sc:
        try:
            resource = sc.create(content, tags)
        except StorageError as e:
            _storage_failure(e, "scribe new")
        if _get_json_output():
            typer.echo(json.dumps(resource.to_dict(), indent=2))
        else:
            typer.echo(resource.hash)


@app.command("ls")
def list_tags():
    """List all tags."""
    with _open_scribe() as sc:
        tags = sc.list_tags()
        if _get_json_output():
            typer.echo(json.dumps(tags))
        elif not tags:
            typer.echo("No tags found.")
        else:
            for tag in tags:
                typer.echo(tag)


@app.command("rm")
def remove_tag(
    tag: Annotated[str, typer.Argument(help="Tag to remove from every resource")],
):
    """
    Remove a tag everywhere.

    Resources left without any tag are deleted from disk.
    """
    with _open_scribe() as sc:
        try:
            removed = sc.remove_tag(tag)
        except StorageError as e:
            _storage_failure(e, "scribe rm")
        if removed:
            typer.echo(f"Removed tag {tag}")
        else:
            typer.echo(f"No such tag: {tag}")


@app.command()
def forget(
    hash: Annotated[str, typer.Argument(help="Hash of the resource to remove")],
):
    """Remove a resource and its snapshot file."""
    with _open_scribe() as sc:
        try:
            removed = sc.remove_resource(hash)
        except StorageError as e:
            _storage_failure(e, "scribe forget")
        if removed:
            typer.echo(f"Removed {hash}")
        else:
            typer.echo(f"Not found: {hash}")


@app.command()
def get(
    hash: Annotated[str, typer.Argument(help="Resource hash")],
):
    """Show one resource with its tags."""
    with _open_scribe() as sc:
        resource = sc.get(hash)
        if resource is None:
            typer.echo(f"Not found: {hash}", err=True)
            raise typer.Exit(1)
        if _get_json_output():
            typer.echo(json.dumps(resource.to_dict(), indent=2))
        else:
            typer.echo(f"hash: {resource.hash}")
            typer.echo(f"tags: {' '.join(resource.sorted_tags)}")
            typer.echo(SEPARATOR)
            typer.echo(resource.content)


@app.command()
def check():
    """Verify the tag and word indices against the loaded resources."""
    with _open_scribe() as sc:
        problems = sc.check_consistency()
        if _get_json_output():
            typer.echo(json.dumps({"resources": len(sc), "problems": problems}))
        elif not problems:
            typer.echo(f"OK: {len(sc)} resources, {len(sc.list_tags())} tags")
        else:
            for problem in problems:
                typer.echo(problem)
        if problems:
            raise typer.Exit(1)


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        log_path = log_exception(e, context="scribe CLI", store_path=_get_store_override())
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
