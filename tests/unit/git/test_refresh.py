"""Tests for the git refresh step."""

import shutil
import subprocess

import pytest

from yeahbuild.core.config import ProjectConfig
from yeahbuild.git.refresh import (
    DEFAULT_GIT_COMMANDS,
    GitRefresher,
    RefreshError,
    is_working_copy,
)

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git not installed"
)


def git(*args, cwd=None):
    subprocess.run(
        ["git", "-c", "user.name=test", "-c", "user.email=test@example.com",
         *args],
        cwd=cwd,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def fake_checkout(tmp_path):
    """Directory that looks like a working copy; commands are stubbed."""
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture
def cloned(tmp_path):
    """Working copy on branch main, cloned from a local bare remote."""
    remote = tmp_path / "remote.git"
    seed = tmp_path / "seed"
    work = tmp_path / "work"

    git("init", "-q", "--bare", str(remote))
    git("init", "-q", "--initial-branch=main", str(seed))
    (seed / "README").write_text("hello\n")
    git("add", "README", cwd=seed)
    git("commit", "-q", "-m", "initial", cwd=seed)
    git("push", "-q", str(remote), "main", cwd=seed)
    git("clone", "-q", "--branch", "main", str(remote), str(work))
    return work


def project(path, **git_policy):
    return ProjectConfig(name="svc", path=path, git=git_policy)


def test_nothing_to_do_without_pull(build_log, tmp_path):
    refresher = GitRefresher(build_log)

    assert refresher.refresh(project(tmp_path, pull=False)) is False
    assert build_log.lines == []


def test_skips_plain_directory(build_log, tmp_path):
    refresher = GitRefresher(build_log)

    assert refresher.refresh(project(tmp_path, pull=True)) is False
    assert build_log.lines[0].text == (
        "Skipping git refresh (not a git working copy)"
    )
    assert build_log.lines[0].level == "warn"


def test_is_working_copy(tmp_path):
    assert not is_working_copy(tmp_path)

    # Worktrees and submodules carry a .git file instead of a directory
    (tmp_path / ".git").write_text("gitdir: elsewhere\n")
    assert is_working_copy(tmp_path)


def test_default_commands_overridable(build_log):
    refresher = GitRefresher(build_log, commands={"pull": "git pull --rebase"})

    assert refresher.commands["pull"] == "git pull --rebase"
    assert refresher.commands["checkout"] == DEFAULT_GIT_COMMANDS["checkout"]


def test_pull_failure_raises(build_log, fake_checkout):
    refresher = GitRefresher(build_log, commands={"pull": "false"})

    with pytest.raises(RefreshError, match="git pull failed: exit status 1"):
        refresher.refresh(project(fake_checkout, pull=True))


def test_checkout_failure_raises(build_log, fake_checkout):
    refresher = GitRefresher(
        build_log, commands={"checkout": "false {branch}", "pull": "true"}
    )

    with pytest.raises(RefreshError, match="failed to switch to branch dev"):
        refresher.refresh(project(fake_checkout, pull=True, branch="dev"))


def test_reset_failure_ignored(build_log, fake_checkout):
    """A failed reset does not stop the pull."""
    refresher = GitRefresher(
        build_log, commands={"reset": "false", "pull": "echo pulled"}
    )

    assert refresher.refresh(project(fake_checkout, pull=True, reset=True))
    assert build_log.lines[-1].text == "Git: pulled"


def test_branch_is_quoted(build_log, fake_checkout):
    refresher = GitRefresher(
        build_log,
        commands={"checkout": "test {branch} = 'a b'", "pull": "true"},
    )

    assert refresher.refresh(project(fake_checkout, pull=True, branch="a b"))
    assert build_log.lines[0].text == "Switched to branch: a b"


def test_pull_timeout(build_log, fake_checkout):
    refresher = GitRefresher(
        build_log, commands={"pull": "sleep 3"}, timeout=1
    )

    with pytest.raises(RefreshError, match="timed out"):
        refresher.refresh(project(fake_checkout, pull=True))


def test_project_env_reaches_git(build_log, fake_checkout):
    refresher = GitRefresher(
        build_log, commands={"pull": "printenv GIT_TEST_MARKER"}
    )
    svc = ProjectConfig(
        name="svc",
        path=fake_checkout,
        git={"pull": True},
        env={"GIT_TEST_MARKER": "present"},
    )

    refresher.refresh(svc)

    assert build_log.lines[-1].text == "Git: present"


@requires_git
def test_refresh_real_repository(build_log, cloned):
    refresher = GitRefresher(build_log)

    assert refresher.refresh(project(cloned, pull=True, branch="main",
                                     reset=True))

    texts = [line.text for line in build_log.lines]
    assert texts[0] == "Switched to branch: main"
    assert texts[-1].startswith("Git: ")


@requires_git
def test_refresh_missing_branch(build_log, cloned):
    refresher = GitRefresher(build_log)

    with pytest.raises(RefreshError, match="no-such-branch"):
        refresher.refresh(project(cloned, pull=True, branch="no-such-branch"))


def test_workdir_name_is_not_shell_syntax(build_log, tmp_path):
    """A checkout whose directory name holds ';' is refreshed in place."""
    workdir = tmp_path / "x;y"
    (workdir / ".git").mkdir(parents=True)
    refresher = GitRefresher(build_log, commands={"pull": "pwd"})

    assert refresher.refresh(project(workdir, pull=True))
    assert build_log.lines[-1].text == f"Git: {workdir}"
