import shutil
import subprocess

import pytest
from conftest import write_file

from codeindex.core.exceptions import SourceControlError
from codeindex.utils.git_utils import GitSourceControl

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(root, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=root,
        check=True,
        capture_output=True,
    )


def _head(root):
    return subprocess.check_output(["git", "rev-parse", "HEAD"], cwd=root).decode().strip()


@pytest.fixture
def repo(tmp_path):
    _git(tmp_path, "init", "-q")
    write_file(tmp_path, "src/A.java", "class A {}\n")
    write_file(tmp_path, "src/B.java", "class B {}\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-q", "-m", "initial")
    return tmp_path


def test_diff_since_commit(repo):
    base = _head(repo)
    write_file(repo, "src/A.java", "class A { int x; }\n")
    (repo / "src" / "B.java").unlink()
    write_file(repo, "src/C.java", "class C {}\n")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "change")

    scm = GitSourceControl()
    assert sorted(scm.changed_files(str(repo), base)) == ["src/A.java", "src/B.java", "src/C.java"]
    assert scm.deleted_files(str(repo), base) == ["src/B.java"]


def test_rename_reports_old_path_as_deleted(repo):
    base = _head(repo)
    _git(repo, "mv", "src/A.java", "src/Renamed.java")
    _git(repo, "commit", "-q", "-m", "rename")

    scm = GitSourceControl()
    assert sorted(scm.changed_files(str(repo), base)) == ["src/A.java", "src/Renamed.java"]
    assert scm.deleted_files(str(repo), base) == ["src/A.java"]
    assert "src/A.java" in scm.deleted_files(str(repo))


def test_lookback_window_without_checkpoint(repo):
    scm = GitSourceControl(lookback_hours=24)
    assert sorted(scm.changed_files(str(repo))) == ["src/A.java", "src/B.java"]
    assert scm.deleted_files(str(repo)) == []


def test_head_commit(repo):
    assert GitSourceControl().head_commit(str(repo)) == _head(repo)


def test_errors_raise_source_control_error(tmp_path):
    with pytest.raises(SourceControlError):
        GitSourceControl().head_commit(str(tmp_path))
