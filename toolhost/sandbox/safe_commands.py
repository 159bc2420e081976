"""Static classification of read-only commands.

A command listed here can be auto-approved: it is not expected to modify
any state. Anything not recognised is treated as unsafe.
"""

import os
import re
import shlex
from typing import Callable, Sequence

# Read-only binaries that are safe with any arguments
ALWAYS_SAFE_BINARIES: frozenset[str] = frozenset(
    {
        "cat",
        "cd",
        "cut",
        "echo",
        "expr",
        "false",
        "head",
        "id",
        "ls",
        "nl",
        "paste",
        "pwd",
        "rev",
        "seq",
        "stat",
        "tail",
        "tr",
        "true",
        "uname",
        "uniq",
        "wc",
        "which",
        "whoami",
        "hostname",
        "date",
        "env",
        "printenv",
        "file",
        "type",
        "basename",
        "dirname",
        "realpath",
        "readlink",
        "grep",
        "egrep",
        "fgrep",
        "diff",
    }
)

# find options that execute, delete or write files
UNSAFE_FIND_OPTIONS: frozenset[str] = frozenset(
    {
        "-exec",
        "-execdir",
        "-ok",
        "-okdir",
        "-delete",
        "-fls",
        "-fprint",
        "-fprint0",
        "-fprintf",
    }
)

UNSAFE_RIPGREP_FLAGS: frozenset[str] = frozenset({"--search-zip", "-z"})
# Also rejected in --opt=value form
UNSAFE_RIPGREP_OPTIONS_WITH_ARGS: tuple[str, ...] = ("--pre", "--hostname-bin")

SAFE_GIT_SUBCOMMANDS: frozenset[str] = frozenset(
    {
        "branch",
        "status",
        "log",
        "diff",
        "show",
        "ls-files",
        "ls-tree",
        "rev-parse",
        "describe",
        "tag",
        "remote",
        "config",
    }
)

SAFE_CARGO_SUBCOMMANDS: frozenset[str] = frozenset({"check"})

SHELL_BINARIES: frozenset[str] = frozenset({"bash", "sh"})
SHELL_SCRIPT_FLAGS: frozenset[str] = frozenset({"-c", "-lc"})

# Redirection, substitution, subshells, grouping and line breaks make a script unsafe
UNSAFE_SCRIPT_TOKENS: tuple[str, ...] = (">", "<", "$(", "`", "(", "{", "\n", "\r")
SCRIPT_SEPARATOR_RE = re.compile(r"&&|\|\||;|\|")

_SED_PRINT_RE = re.compile(r"^\d+(,\d+)?p$")


def is_safe_find(command: Sequence[str]) -> bool:
    return not any(arg in UNSAFE_FIND_OPTIONS for arg in command)


def is_safe_ripgrep(command: Sequence[str]) -> bool:
    for arg in command:
        if arg in UNSAFE_RIPGREP_FLAGS:
            return False
        for opt in UNSAFE_RIPGREP_OPTIONS_WITH_ARGS:
            if arg == opt or arg.startswith(f"{opt}="):
                return False
    return True


def is_safe_git(command: Sequence[str]) -> bool:
    return len(command) > 1 and command[1] in SAFE_GIT_SUBCOMMANDS


def is_safe_cargo(command: Sequence[str]) -> bool:
    return len(command) > 1 and command[1] in SAFE_CARGO_SUBCOMMANDS


def is_safe_sort(command: Sequence[str]) -> bool:
    return not any(arg.startswith("-o") for arg in command)


def is_safe_sed(command: Sequence[str]) -> bool:
    """Only ``sed -n <N>p [file]`` and ``sed -n <N>,<M>p [file]``."""
    if len(command) not in (3, 4):
        return False
    if command[1] != "-n":
        return False
    return bool(_SED_PRINT_RE.match(command[2]))


# Binaries that are safe only with certain arguments
ARGUMENT_CHECKS: dict[str, Callable[[Sequence[str]], bool]] = {
    "find": is_safe_find,
    "rg": is_safe_ripgrep,
    "git": is_safe_git,
    "cargo": is_safe_cargo,
    "sed": is_safe_sed,
    "sort": is_safe_sort,
}


def normalize_binary(program: str) -> str:
    """Basename of the program, with zsh treated as bash."""
    binary = os.path.basename(program) or program
    return "bash" if binary == "zsh" else binary


def is_safe_command(command: Sequence[str]) -> bool:
    """Check if an argv is known to be read-only.

    Parameters
    ----------
    command : Sequence[str]
        Program followed by its arguments.

    Returns
    -------
    bool
        True if the command can run without approval.
    """
    if not command:
        return False
    binary = normalize_binary(command[0])

    if binary in ALWAYS_SAFE_BINARIES:
        return True
    check = ARGUMENT_CHECKS.get(binary)
    if check is not None and check(command):
        return True
    return is_safe_shell_command(binary, command)


def is_safe_shell_command(binary: str, command: Sequence[str]) -> bool:
    """Check ``bash -c script`` / ``sh -lc script`` invocations."""
    if binary not in SHELL_BINARIES:
        return False
    for idx, arg in enumerate(command):
        if arg in SHELL_SCRIPT_FLAGS:
            if idx + 1 >= len(command):
                return False
            return is_safe_shell_script(command[idx + 1])
    return False


def is_safe_shell_script(script: str) -> bool:
    """Check that every command of a simple shell pipeline is safe."""
    if any(token in script for token in UNSAFE_SCRIPT_TOKENS):
        return False

    parts = [part.strip() for part in SCRIPT_SEPARATOR_RE.split(script)]
    parts = [part for part in parts if part]
    if not parts:
        return False

    for part in parts:
        # A lone & left over after splitting backgrounds one command and starts another
        if "&" in part:
            return False
        try:
            argv = shlex.split(part)
        except ValueError:
            return False
        if not argv or not is_safe_command(argv):
            return False
    return True


def is_safe_command_line(command_line: str) -> bool:
    """Classify a command string as the shell tool runs it, via ``bash -c``."""
    return is_safe_command(["bash", "-c", command_line])
