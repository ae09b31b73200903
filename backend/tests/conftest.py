"""
Shared pytest fixtures for catalogue editor tests.

Fixtures provided:
- git_env: Isolated git identity/config (HOME redirected, no system config)
- site_remote: Bare "remote" repository seeded with the catalogue documents
- make_clone: Factory producing working clones of site_remote with upstream set
- local_repo: Standalone repository with no remote (no upstream configured)
- catalogue_repo: Plain directory holding the catalogue documents (no git)

Integration fixtures run the real git binary; tests using them are skipped
when git is not installed (see tests.git_helpers.requires_git).
"""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tests.git_helpers import commit_all, run_git, write_catalogue


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Isolate git from the user's configuration and provide an identity."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'Catalogue Tester')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'tester@example.com')
    monkeypatch.setenv('GIT_COMMITTER_NAME', 'Catalogue Tester')
    monkeypatch.setenv('GIT_COMMITTER_EMAIL', 'tester@example.com')
    return home


@pytest.fixture
def site_remote(tmp_path, git_env):
    """
    Create a bare repository on branch main containing the catalogue documents
    and an unrelated README.
    """
    seed = tmp_path / 'seed'
    seed.mkdir()
    run_git(seed, 'init')
    run_git(seed, 'symbolic-ref', 'HEAD', 'refs/heads/main')
    write_catalogue(seed)
    (seed / 'README.md').write_text('# Static site\n')
    commit_all(seed, 'Initial catalogue')

    remote = tmp_path / 'remote.git'
    run_git(tmp_path, 'clone', '--bare', str(seed), str(remote))
    return remote


@pytest.fixture
def make_clone(tmp_path, site_remote):
    """Factory: clone site_remote into tmp_path/<name> with main tracking origin/main."""
    def _make_clone(name: str) -> Path:
        clone = tmp_path / name
        run_git(tmp_path, 'clone', str(site_remote), str(clone))
        return clone
    return _make_clone


@pytest.fixture
def local_repo(tmp_path, git_env):
    """A committed repository with no remote and therefore no upstream."""
    repo = tmp_path / 'local'
    repo.mkdir()
    run_git(repo, 'init')
    run_git(repo, 'symbolic-ref', 'HEAD', 'refs/heads/main')
    write_catalogue(repo)
    commit_all(repo, 'Initial catalogue')
    return repo


@pytest.fixture
def catalogue_repo(tmp_path):
    """A plain directory with the catalogue documents, for store/route tests."""
    repo = tmp_path / 'site'
    repo.mkdir()
    write_catalogue(repo)
    return repo
