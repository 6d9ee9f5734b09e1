"""Print the variables of a dotenv file as shell commands."""

from __future__ import annotations

import os
from pathlib import Path
import re
import traceback

import click

from . import _discovery, _shell, environment

_PROG_NAME = "dotenv-shell"
AUTO_DETECT = "auto-detect"


def _format_syntax_error(exc: SyntaxError, /) -> str:
    return "".join(traceback.format_exception_only(exc)).rstrip()


def _info(ctx: click.Context, msg: str) -> None:
    """Print an informational message to stderr unless --quiet was given."""
    if not ctx.params.get("quiet"):
        click.echo(f"{click.style('info', fg='cyan', bold=True)}: {msg}", err=True)


def _warn(msg: str) -> None:
    click.echo(f"{click.style('warning', fg='yellow', bold=True)}: {msg}", err=True)


def compile_filter(ctx: click.Context, param: click.Parameter,
                   value: str | None) -> re.Pattern[str] | None:
    """Validate and compile the --filter regular expression."""
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as exc:
        raise click.BadParameter(f"Invalid regular expression {value!r}: {exc}", ctx, param) from None


def find_file(directories: tuple[str, ...], names: tuple[str, ...], recursive: bool) -> Path | None:
    """Search for a dotenv file, warning about unreadable directories."""
    def onerror(path: Path, exc: OSError) -> None:
        _warn(f"cannot read directory {str(path)!r}: {exc.strerror or exc}")

    return _discovery.search_file(directories or _discovery.DEFAULT_DIRECTORIES,
                                  names or _discovery.DEFAULT_NAMES,
                                  recursive=recursive, onerror=onerror)


def resolve_shell(ctx: click.Context, shell: str) -> str:
    """Return the target shell, detecting it if requested."""
    if shell != AUTO_DETECT:
        return shell
    detected = _shell.detect_shell()
    if detected is None:
        raise click.ClickException(
            f"Could not detect the shell; use --shell to select one of: {', '.join(_shell.SHELLS)}")
    _info(ctx, f"Auto-detected shell: {detected}")
    return detected


@click.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "max_content_width": 120,
    },
)
@click.option("-d", "--directory", "directories", metavar="DIR", multiple=True,
              help="Directory to search for a dotenv file (repeatable; default: current directory).")
@click.option("-f", "--file", "names", metavar="NAME", multiple=True,
              help="File name to search for (repeatable; default: .env).")
@click.option("-r", "--recursive", is_flag=True, default=False,
              help="Search directories recursively.")
@click.option("-s", "--shell", type=click.Choice([*_shell.SHELLS, AUTO_DETECT]),
              default=AUTO_DETECT, show_default=True,
              help="Shell to generate output for.")
@click.option("-q", "--quiet", is_flag=True, default=False,
              help="Suppress non-error output on stderr.")
@click.option("--filter", "pattern", metavar="REGEX", callback=compile_filter,
              help="Only output variables with names matching this regular expression.")
@click.option("--color", type=click.Choice(["auto", "always", "never"]), default=None,
              help="Control colors in output.")
@click.version_option(package_name=_PROG_NAME)
@click.pass_context
def main(ctx: click.Context, *, directories: tuple[str, ...], names: tuple[str, ...],
         recursive: bool, shell: str, quiet: bool, pattern: re.Pattern[str] | None,
         color: str | None) -> None:
    """Print the variables of a dotenv file as shell commands.

    The output is meant to be evaluated by the shell, for example:

        eval "$(dotenv-shell)"
    """
    match color:
        case "auto":
            ctx.color = None
        case "always":
            ctx.color = True
        case "never":
            ctx.color = False
        case _:
            if os.environ.get("NO_COLOR"):
                ctx.color = False
            elif os.environ.get("FORCE_COLOR"):
                ctx.color = True

    path = find_file(directories, names, recursive)
    if path is not None:
        _info(ctx, f"Using dotenv file: {path}")

    try:
        bindings = environment.load(path)
    except environment.NoFileError as exc:
        if exc.filename:
            raise click.FileError(exc.filename, exc.strerror) from None
        raise click.ClickException(str(exc)) from None
    except environment.ParseError as exc:
        raise click.ClickException(_format_syntax_error(exc)) from None
    except UnicodeDecodeError as exc:
        raise click.ClickException(f"Error reading {str(path)!r}: {exc}") from None

    target = resolve_shell(ctx, shell)
    lines = _shell.format_bindings(bindings, target, pattern)
    if lines:
        click.echo("\n".join(lines))


if __name__ == "__main__":
    main(prog_name=_PROG_NAME)
