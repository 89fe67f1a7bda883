import os

import pytest

from dnsvard.completion import (
    CompletionTarget,
    bash_completion_rc_path,
    bash_profile_sources_bashrc,
    bash_uses_bashrc,
    completion_install_target,
    completion_shell_from_value,
    completion_uninstall_rc_paths,
    resolved_completion_shell,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("bash", "bash"),
        ("zsh", "zsh"),
        ("fish", "fish"),
        ("pwsh", "powershell"),
        ("powershell.exe", "powershell"),
        ("", ""),
        ("AUTO", ""),
    ],
)
def test_completion_shell_from_value(value, expected):
    assert completion_shell_from_value(value) == expected


def test_completion_shell_from_value_rejects_unknown():
    with pytest.raises(ValueError, match="unsupported shell"):
        completion_shell_from_value("unknown")


def test_resolved_completion_shell_explicit(monkeypatch):
    monkeypatch.setenv("SHELL", "/bin/zsh")
    assert resolved_completion_shell("fish") == "fish"


def test_resolved_completion_shell_from_env(monkeypatch):
    monkeypatch.setenv("SHELL", "/usr/local/bin/zsh")
    assert resolved_completion_shell("") == "zsh"


def test_resolved_completion_shell_undetectable(monkeypatch):
    monkeypatch.setenv("SHELL", "/bin/tcsh")
    with pytest.raises(ValueError, match="unable to detect shell"):
        resolved_completion_shell("")


def test_bash_completion_rc_path_selection(tmp_path):
    home = str(tmp_path)
    bash_profile = os.path.join(home, ".bash_profile")
    bashrc = os.path.join(home, ".bashrc")

    assert bash_completion_rc_path(home) == bash_profile

    with open(bashrc, "w") as handle:
        handle.write("# rc\n")
    assert bash_completion_rc_path(home) == bashrc

    with open(bash_profile, "w") as handle:
        handle.write("# profile\n")
    assert bash_completion_rc_path(home) == bash_profile

    with open(bash_profile, "w") as handle:
        handle.write("[ -f ~/.bashrc ] && . ~/.bashrc\n")
    assert bash_completion_rc_path(home) == bashrc


def test_bash_profile_sources_bashrc_missing_file(tmp_path):
    assert bash_profile_sources_bashrc(str(tmp_path / "nope")) is False


def test_completion_install_target_uses_eval_in_rc_block(tmp_path):
    home = str(tmp_path)

    bash_target = completion_install_target("bash", home)
    assert bash_target.script_path == ""
    assert 'eval "$(dnsvard completion bash)"' in bash_target.rc_block

    zsh_target = completion_install_target("zsh", home)
    assert zsh_target.script_path == ""
    assert 'eval "$(dnsvard completion zsh)"' in zsh_target.rc_block
    assert zsh_target.rc_paths == (os.path.join(home, ".zshrc"),)

    fish_target = completion_install_target("fish", home)
    assert fish_target == CompletionTarget(
        shell="fish",
        script_path=os.path.join(home, ".config", "fish", "completions", "dnsvard.fish"),
    )


def test_completion_install_target_errors(tmp_path):
    with pytest.raises(ValueError, match="home directory"):
        completion_install_target("bash", " ")
    with pytest.raises(ValueError, match="powershell install is not supported"):
        completion_install_target("powershell", str(tmp_path))
    with pytest.raises(ValueError, match="unsupported shell"):
        completion_install_target("", str(tmp_path))


def test_bash_uses_bashrc():
    assert bash_uses_bashrc(["/tmp/.bashrc"]) is True
    assert bash_uses_bashrc(["/tmp/.bash_profile", "/tmp/.zshrc"]) is False


def test_completion_uninstall_rc_paths_bash_dedupes():
    home = "/home/someone"
    result = completion_uninstall_rc_paths("bash", home, [os.path.join(home, ".bashrc"), " "])
    assert result == [os.path.join(home, ".bashrc"), os.path.join(home, ".bash_profile")]


def test_completion_uninstall_rc_paths_zsh():
    assert completion_uninstall_rc_paths("zsh", "/h", ["/h/.zshrc", "/h/.zshrc"]) == ["/h/.zshrc"]