r"""Parse a dotenv file or string.

Read variable assignments from dotenv-style text into an ordered list of
bindings. Parsing is line oriented: each assignment starts on a new line
and only triple-quoted values may continue onto following lines.

Blank lines and lines whose first non-blank character is a hash/pound (#)
are ignored, as are lines without an equal (=). An assignment may be
prefixed with the ``export`` keyword. White space around the name and
equal is ignored.

Values come in four forms:

    unquoted       Runs to the first # or the end of the line, with
                   trailing white space removed. Escapes are expanded and
                   variables substituted.
    "double"       Escapes are expanded and variables substituted.
    'single'       Only \' and \\ are unescaped. No substitution.
    \"""triple\"""   May span lines. Triple double quotes behave like double
    '''triple'''   quotes, triple single quotes keep the text verbatim.

The escapes \n, \r, \t, \f, \b, \", \', \\ and \uXXXX are recognized. Any
other escaped character stands for itself.

Variables are substituted using ${name}. The name is looked up first in
the assignments parsed so far, where the first assignment of a name wins,
and then in the environment. Names that are not found, or set to the empty
string in the environment, are replaced by the empty string.

Syntax:
    line          ::=  ws* (assignment | comment)? ws*
    assignment    ::=  ("export" ws+)? name ws* "=" ws* value?
    name          ::=  (letter | "_") (letter | digit | "_")*
    comment       ::=  "#" any-character*
    value         ::=  triple-double | triple-single | double | single | unquoted
    triple-double ::=  '\"""' (any-character | newline)* '\"""'
    triple-single ::=  "'''" (any-character | newline)* "'''"
    double        ::=  '"' (not-double-quote | escaped)* '"'
    single        ::=  "'" (not-single-quote | escaped)* "'"
    unquoted      ::=  not-hash* comment?
    escaped       ::=  "\" any-character
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import dataclasses
import enum
import os
from pathlib import Path
import re
import string
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = (
    "Binding", "Dialect", "InvalidNameError", "NoFileError", "ParseError", "Parser",
    "UnterminatedMultilineError", "UnterminatedQuoteError",
    "evaluate", "is_valid_name", "load", "parse", "split_lines", "unescape",
)


NAME_RE: Final = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
EXPORT_PREFIX: Final = "export "
TRIPLE_QUOTES: Final = ('"""', "'''")
SURROGATES_START: Final = 0xD800
SURROGATES_END: Final = 0xDFFF
REPLACEMENT_CHARACTER: Final = "\N{REPLACEMENT CHARACTER}"

ESCAPES: Final = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "f": "\f",
    "b": "\b",
    '"': '"',
    "'": "'",
    "\\": "\\",
}


class Dialect(enum.Enum):
    """Escape rules in effect for a value."""

    FULL = "full"  # Double quotes, triple double quotes and unquoted values
    LITERAL = "literal"  # Single quotes


class NoFileError(OSError):
    """No dotenv file was found, or it could not be opened."""


class ParseError(SyntaxError):
    """Base class of fatal dotenv syntax errors."""


class InvalidNameError(ParseError):
    pass


class UnterminatedQuoteError(ParseError):
    pass


class UnterminatedMultilineError(ParseError):
    pass


@dataclasses.dataclass(frozen=True, slots=True)
class Binding:
    """A variable name and its decoded value."""

    name: str
    value: str


def is_valid_name(name: str) -> bool:
    """Return True if name is a valid variable name."""
    return NAME_RE.fullmatch(name) is not None


def split_lines(text: str) -> list[str]:
    r"""Split text into lines, dropping \n and \r\n terminators."""
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()  # Text ended with a newline
    return [line.removesuffix("\r") for line in lines]


def _unicode_escape(text: str, pos: int) -> str | None:
    """Decode the four hex digits following a \\u at text[pos]."""
    digits = text[pos + 2:pos + 6]
    if len(digits) == 4 and all(c in string.hexdigits for c in digits):
        code = int(digits, 16)
        if SURROGATES_START <= code <= SURROGATES_END:
            return REPLACEMENT_CHARACTER  # Lone surrogates cannot be encoded
        return chr(code)
    return None


def unescape(text: str, dialect: Dialect = Dialect.FULL) -> str:
    """Expand backslash escapes in text.

    With the FULL dialect, the escapes in ESCAPES and \\uXXXX are expanded
    and any other escaped character is kept without the backslash. With
    the LITERAL dialect, only \\' and \\\\ are unescaped and other
    backslashes are kept as they are. A trailing lone backslash is always
    kept. Escapes of surrogate code points decode to U+FFFD.
    """
    result: list[str] = []
    pos = 0
    end = len(text)
    while pos < end:
        char = text[pos]
        if char != "\\" or pos + 1 >= end:
            result.append(char)
            pos += 1
            continue
        escaped = text[pos + 1]
        match dialect:
            case Dialect.FULL if escaped == "u":
                decoded = _unicode_escape(text, pos)
                if decoded is not None:
                    result.append(decoded)
                    pos += 6
                    continue
                result.append(escaped)
            case Dialect.FULL:
                result.append(ESCAPES.get(escaped, escaped))
            case Dialect.LITERAL if escaped in "'\\":
                result.append(escaped)
            case Dialect.LITERAL:
                # Keep the backslash and rescan the next character
                result.append(char)
                pos += 1
                continue
        pos += 2
    return "".join(result)


class Parser:
    """Parse dotenv lines into an ordered list of bindings.

    A parser reads its lines once. Interpolation falls back to env, which
    defaults to os.environ, for names not assigned earlier in the text.
    """

    __slots__ = "_done", "_failure", "bindings", "env", "filename", "lines", "position"

    def __init__(self, lines: Sequence[str], env: Mapping[str, str] | None = None,
                 *, filename: str | None = None) -> None:
        self.lines: Final = tuple(lines)
        self.env: Final[Mapping[str, str]] = os.environ if env is None else env
        self.filename: Final = filename
        self.bindings: list[Binding] = []
        self.position = 0
        self._done = False
        self._failure: ParseError | None = None

    def __repr__(self) -> str:
        args = f"filename={self.filename!r}, position={self.position!r}"
        return f"{self.__class__.__module__}.{self.__class__.__qualname__}({args})"

    @classmethod
    def from_text(cls, text: str, env: Mapping[str, str] | None = None,
                  *, filename: str | None = None) -> Self:
        return cls(split_lines(text), env, filename=filename)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str] | None,
                  env: Mapping[str, str] | None = None) -> Self:
        """Read the file at path and return a parser for it.

        Raises NoFileError if path is None or the file cannot be opened.
        Decoding errors are raised as UnicodeDecodeError.
        """
        if path is None:
            raise NoFileError("No dotenv file found")
        try:
            with Path(path).open(encoding="utf-8", newline="") as file:
                text = file.read()
        except OSError as exc:
            raise NoFileError(exc.errno, exc.strerror, os.fspath(path)) from exc
        return cls.from_text(text, env, filename=os.fspath(path))

    def parse(self) -> list[Binding]:
        """Parse all lines and return the bindings in document order.

        Raises a ParseError subclass on the first syntax error. Once an
        error is raised, every later call raises it again.
        """
        if self._failure is not None:
            raise self._failure
        if not self._done:
            try:
                while self.position < len(self.lines):
                    self._parse_line()
                    self.position += 1
            except ParseError as exc:
                self._failure = exc
                raise
            self._done = True
        return list(self.bindings)

    def _parse_line(self) -> None:
        line = self.lines[self.position].strip()
        if not line or line.startswith("#"):
            return
        line = line.removeprefix(EXPORT_PREFIX).strip()
        name, sep, value = line.partition("=")
        if not sep:
            return  # Not an assignment
        name = name.strip()
        if not is_valid_name(name):
            raise self._error(InvalidNameError, f"Invalid variable name: {name!r}")
        self.bindings.append(Binding(name, self._parse_value(value)))

    def _parse_value(self, value: str) -> str:
        value = value.lstrip()
        if not value:
            return ""
        if value.startswith(TRIPLE_QUOTES):
            return self._parse_multiline(value)
        if value[0] in "\"'":
            return self._parse_quoted(value)
        return self._parse_unquoted(value)

    def _parse_multiline(self, value: str) -> str:
        delimiter, value = value[:3], value[3:]
        expand = delimiter == '"""'
        start = self.position
        parts: list[str] = []
        if value.strip():
            if value.endswith(delimiter):
                content = value[:-3]
                return self._expand(content) if expand else content
            parts.append(f"{value}\n")
        self.position += 1
        while self.position < len(self.lines):
            line = self.lines[self.position]
            if line.endswith(delimiter):
                parts.append(line[:-3])
                break
            parts.append(f"{line}\n")
            self.position += 1
        else:
            raise self._error(UnterminatedMultilineError,
                              f"Expected a closing {delimiter}", lineno=start + 1)
        content = "".join(parts)
        return self._expand(content) if expand else content

    def _parse_quoted(self, value: str) -> str:
        quote = value[0]
        dialect = Dialect.FULL if quote == '"' else Dialect.LITERAL
        pos = 1
        end = len(value)
        while pos < end:
            char = value[pos]
            if char == quote:
                content = unescape(value[1:pos], dialect)
                return self.interpolate(content) if dialect is Dialect.FULL else content
            if char == "\\":
                pos += 1  # Never end on an escaped character
            pos += 1
        raise self._error(UnterminatedQuoteError, f"Expected a closing {quote}")

    def _parse_unquoted(self, value: str) -> str:
        value, _, _ = value.partition("#")
        return self._expand(value.rstrip())

    def _expand(self, text: str) -> str:
        return self.interpolate(unescape(text))

    def _lookup(self, name: str) -> str:
        for binding in self.bindings:
            if binding.name == name:
                return binding.value
        return self.env.get(name) or ""

    def interpolate(self, text: str) -> str:
        """Substitute ${name} references in text.

        Names are resolved against the bindings parsed so far, then the
        environment. Substituted values are not scanned again. A ${
        without a closing brace is kept as is.
        """
        result: list[str] = []
        pos = 0
        while (start := text.find("${", pos)) >= 0:
            close = text.find("}", start + 2)
            if close < 0:
                break
            result.append(text[pos:start])
            result.append(self._lookup(text[start + 2:close]))
            pos = close + 1
        result.append(text[pos:])
        return "".join(result)

    def _error(self, cls: type[ParseError], msg: str, *, lineno: int | None = None) -> ParseError:
        """Build and return a ParseError exception instance."""
        if lineno is None:
            lineno = self.position + 1
        text = self.lines[lineno - 1]
        error = cls(msg)
        error.filename = self.filename or "<string>"
        error.lineno = lineno
        error.text = text
        error.offset = len(text) - len(text.lstrip()) + 1
        error.end_offset = max(len(text.rstrip()) + 1, error.offset)
        return error


def parse(text: str, env: Mapping[str, str] | None = None) -> list[Binding]:
    """Parse text and return its bindings in document order."""
    return Parser.from_text(text, env).parse()


def load(path: str | os.PathLike[str] | None,
         env: Mapping[str, str] | None = None) -> list[Binding]:
    """Read and parse the dotenv file at path."""
    return Parser.from_file(path, env).parse()


def evaluate(text: str, env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Parse text and return a dictionary of the assignments.

    Later assignments to a name replace earlier ones in the result, while
    substitutions within text still see the first assignment. env is
    unchanged.
    """
    return {binding.name: binding.value for binding in parse(text, env)}


if __name__ == "__main__":

    import click

    @click.command(
        context_settings={
            "max_content_width": 120,
            "help_option_names": ["-h", "--help"],
        },
    )
    @click.argument("strings", nargs=-1)
    def main(strings: tuple[str, ...]) -> None:
        """Show the results of parsing dotenv text or @files."""
        for text in strings:
            if text.startswith("@"):
                bindings = load(text[1:])
            else:
                bindings = parse(text)
            for binding in bindings:
                click.echo(f"{binding.name} = {binding.value!r}")

    main()
