from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
import os
import re
from typing import Final

from .environment import Binding

# Suffixes of $SHELL and the shell they select, checked in order.
# pwsh must come before sh.
DETECTABLE_SHELLS: Final = (
    ("bash", "bash"),
    ("zsh", "zsh"),
    ("fish", "fish"),
    ("powershell", "powershell"),
    ("pwsh", "powershell"),
    ("sh", "sh"),
)

SHELLS: Final = ("bash", "zsh", "sh", "fish", "powershell", "cmd", "none", "value")


def _is_shell(env: Mapping[str, str], name: str) -> bool:
    return env.get("SHELL", "").endswith(name)


def detect_shell(env: Mapping[str, str] | None = None) -> str | None:
    """Guess the invoking shell from the environment.

    Returns None if the shell could not be determined.
    """
    if env is None:
        env = os.environ
    for suffix, name in DETECTABLE_SHELLS:
        if _is_shell(env, suffix):
            return name
    if env.get("COMSPEC"):
        return "powershell"
    if _is_shell(env, "cmd.exe"):
        return "cmd"
    return None


def quote(value: str) -> str:
    """Return value as a double-quoted string with backslash escapes."""
    return json.dumps(value, ensure_ascii=False)


def format_binding(binding: Binding, shell: str) -> str | None:
    """Format a binding as a statement for the given shell.

    Returns None if the shell is not supported.
    """
    name = binding.name
    match shell:
        case "bash" | "zsh" | "sh":
            return f"export {name}={quote(binding.value)}"
        case "fish":
            return f"set -x {name} {quote(binding.value)}"
        case "cmd":
            return f"set {name}={quote(binding.value)}"
        case "powershell":
            return f"$env:{name}={quote(binding.value)}"
        case "none":
            return f"{name}={quote(binding.value)}"
        case "value":
            return binding.value
    return None


def format_bindings(bindings: Iterable[Binding], shell: str,
                    pattern: str | re.Pattern[str] | None = None) -> list[str]:
    """Format bindings for a shell, one statement per binding.

    If pattern is given, only bindings with names matching the regular
    expression anywhere are included. Empty statements, such as empty
    values with the "value" shell, are dropped.
    """
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    lines = []
    for binding in bindings:
        if pattern is not None and not pattern.search(binding.name):
            continue
        line = format_binding(binding, shell)
        if line:
            lines.append(line)
    return lines
