"""Shell completion install targets and shell detection."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

COMPLETION_BLOCK_BEGIN = "# >>> dnsvard completion >>>"
COMPLETION_BLOCK_END = "# <<< dnsvard completion <<<"

_SUPPORTED_SHELLS = ("bash", "zsh", "fish", "powershell")


@dataclass(frozen=True)
class CompletionTarget:
    """Where completion for a shell is installed."""

    shell: str
    script_path: str = ""
    rc_paths: tuple[str, ...] = ()
    rc_block: str = ""


def _eval_block(shell: str) -> str:
    return (
        "if command -v dnsvard >/dev/null 2>&1; then\n"
        f'  eval "$(dnsvard completion {shell})"\n'
        "fi"
    )


def completion_shell_from_value(value: str) -> str:
    """Normalise a shell name; an empty string means auto-detect."""
    value = (value or "").strip().lower()
    if value in ("", "auto"):
        return ""
    if value in _SUPPORTED_SHELLS:
        return value
    if value in ("pwsh", "powershell.exe"):
        return "powershell"
    raise ValueError(f"unsupported shell {value!r} (use bash|zsh|fish|powershell)")


def resolved_completion_shell(value: str) -> str:
    """Return the requested shell, falling back to $SHELL."""
    normalized = completion_shell_from_value(value)
    if normalized:
        return normalized
    from_env = os.path.basename(os.environ.get("SHELL", "").strip())
    try:
        normalized = completion_shell_from_value(from_env)
    except ValueError:
        normalized = ""
    if not normalized:
        raise ValueError("unable to detect shell; rerun with --shell bash|zsh|fish|powershell")
    return normalized


def _file_exists(path: str) -> bool:
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def bash_profile_sources_bashrc(path: str) -> bool:
    """Report whether a bash profile mentions .bashrc."""
    try:
        with open(path, "rb") as handle:
            content = handle.read().decode("utf-8", errors="replace")
    except OSError:
        return False
    return ".bashrc" in content.lower()


def bash_completion_rc_path(home: str) -> str:
    """Choose the bash rc file that completion setup should go into."""
    bash_profile = os.path.join(home, ".bash_profile")
    bashrc = os.path.join(home, ".bashrc")
    profile_exists = _file_exists(bash_profile)
    if profile_exists and bash_profile_sources_bashrc(bash_profile):
        return bashrc
    if profile_exists:
        return bash_profile
    if _file_exists(bashrc):
        return bashrc
    return bash_profile


def bash_uses_bashrc(paths: Iterable[str]) -> bool:
    """Report whether any of the paths is a .bashrc file."""
    return any(os.path.basename(p.strip()) == ".bashrc" for p in paths)


def completion_install_target(shell: str, home: str) -> CompletionTarget:
    """Describe where completion for the given shell should be installed."""
    home = (home or "").strip()
    if home in ("", "."):
        raise ValueError("cannot resolve home directory for completion install")
    shell = completion_shell_from_value(shell)
    if shell == "bash":
        return CompletionTarget(
            shell=shell,
            rc_paths=(bash_completion_rc_path(home),),
            rc_block=_eval_block("bash"),
        )
    if shell == "zsh":
        return CompletionTarget(
            shell=shell,
            rc_paths=(os.path.join(home, ".zshrc"),),
            rc_block=_eval_block("zsh"),
        )
    if shell == "fish":
        return CompletionTarget(
            shell=shell,
            script_path=os.path.join(home, ".config", "fish", "completions", "dnsvard.fish"),
        )
    if shell == "powershell":
        raise ValueError(
            "powershell install is not supported automatically; "
            "run `dnsvard completion powershell` and follow your profile setup"
        )
    raise ValueError(f"unsupported shell {shell!r}")


def completion_uninstall_rc_paths(shell: str, home: str, rc_paths: Iterable[str]) -> list[str]:
    """Return the unique rc files to clean when uninstalling completion."""
    paths = list(rc_paths)
    if shell == "bash":
        paths += [os.path.join(home, ".bash_profile"), os.path.join(home, ".bashrc")]
    unique: list[str] = []
    for path in paths:
        path = path.strip()
        if path and path not in unique:
            unique.append(path)
    return unique