"""
Integration tests for repository sync against real git repositories.

Each test builds a bare "remote" plus one or more clones in tmp_path and drives
SiteSyncService through the real git binary.

Covers:
- status(): clean/no-upstream, modified/deleted/untracked tracked files, behind after fetch
- pull(): fast-forward, diverged history refused, fetch failure
- publish(): commit + push, empty publish, stale lease rejection, scope limited to tracked files
"""

import json

import pytest

from catalogue.store import CatalogueStore
from site_sync.runner import GitRunner
from site_sync.sync_service import SiteSyncService
from tests.git_helpers import commit_all, requires_git, run_git

pytestmark = requires_git


def make_service(repo) -> SiteSyncService:
    runner = GitRunner(repo, timeout=60)
    return SiteSyncService(runner, CatalogueStore(repo).tracked_paths())


def edit_books(repo, titolo: str) -> None:
    """Append a book to data/books.json in `repo`."""
    path = repo / 'data' / 'books.json'
    books = json.loads(path.read_text(encoding='utf-8'))
    books.append({"id": max(b["id"] for b in books) + 1, "titolo": titolo, "copie": 1, "tags": []})
    path.write_text(json.dumps(books, indent=2, ensure_ascii=False) + '\n', encoding='utf-8')


def push_remote_commits(make_clone, name: str, count: int) -> None:
    """Advance the remote by `count` commits from a separate clone."""
    other = make_clone(name)
    for i in range(count):
        edit_books(other, f"Remote book {i}")
        commit_all(other, f"Remote commit {i}")
    run_git(other, 'push')


class TestStatus:

    @pytest.mark.asyncio
    async def test_clean_checkout_without_upstream(self, local_repo):
        """Clean checkout, no upstream -> all zeros"""
        status = await make_service(local_repo).status()

        assert status.dirty is False
        assert status.ahead == 0
        assert status.behind == 0
        assert status.changed_files == []

    @pytest.mark.asyncio
    async def test_modified_tracked_file(self, make_clone):
        """One modified tracked file"""
        clone = make_clone('editor')
        edit_books(clone, 'Funghi del Piemonte')

        status = await make_service(clone).status()

        assert status.changed_files == ['data/books.json']
        assert status.dirty is True

    @pytest.mark.asyncio
    async def test_deleted_tracked_file_is_reported(self, make_clone):
        clone = make_clone('editor')
        (clone / 'data' / 'config.json').unlink()

        status = await make_service(clone).status()

        assert status.changed_files == ['data/config.json']
        assert status.dirty is True

    @pytest.mark.asyncio
    async def test_untracked_data_file_is_reported(self, local_repo):
        run_git(local_repo, 'rm', '--cached', '-q', 'data/config.json')
        run_git(local_repo, 'commit', '-m', 'Stop tracking config')

        status = await make_service(local_repo).status()

        assert status.changed_files == ['data/config.json']

    @pytest.mark.asyncio
    async def test_other_files_are_ignored(self, make_clone):
        """Changes outside the tracked data files never appear"""
        clone = make_clone('editor')
        (clone / 'README.md').write_text('# Changed\n')
        (clone / 'notes.txt').write_text('scratch\n')

        status = await make_service(clone).status()

        assert status.dirty is False
        assert status.changed_files == []

    @pytest.mark.asyncio
    async def test_behind_after_fetch(self, make_clone):
        """Remote has 2 new commits -> behind == 2 after a fetch"""
        clone = make_clone('editor')
        push_remote_commits(make_clone, 'other', 2)
        service = make_service(clone)

        before_fetch = await service.status()
        run_git(clone, 'fetch')
        after_fetch = await service.status()

        assert before_fetch.behind == 0
        assert after_fetch.behind == 2
        assert after_fetch.ahead == 0

    @pytest.mark.asyncio
    async def test_ahead_after_local_commit(self, make_clone):
        clone = make_clone('editor')
        edit_books(clone, 'Local only')
        commit_all(clone, 'Local commit')

        status = await make_service(clone).status()

        assert status.ahead == 1
        assert status.behind == 0
        assert status.dirty is False


class TestPull:

    @pytest.mark.asyncio
    async def test_fast_forward(self, make_clone):
        """Successful pull fast-forwards to the remote tip without a merge commit"""
        clone = make_clone('editor')
        push_remote_commits(make_clone, 'other', 2)

        result = await make_service(clone).pull()

        assert result.success is True
        assert result.error is None
        assert run_git(clone, 'rev-parse', 'HEAD') == run_git(clone, 'rev-parse', 'origin/main')
        parents = run_git(clone, 'rev-list', '--parents', '-n', '1', 'HEAD').split()
        assert len(parents) == 2  # commit + exactly one parent

    @pytest.mark.asyncio
    async def test_up_to_date_pull_succeeds(self, make_clone):
        clone = make_clone('editor')
        head = run_git(clone, 'rev-parse', 'HEAD')

        result = await make_service(clone).pull()

        assert result.success is True
        assert run_git(clone, 'rev-parse', 'HEAD') == head

    @pytest.mark.asyncio
    async def test_diverged_history_is_refused(self, make_clone):
        """Local and remote both advanced -> fast-forward refused, tree unchanged"""
        clone = make_clone('editor')
        push_remote_commits(make_clone, 'other', 1)
        edit_books(clone, 'Local edit')
        local_head = commit_all(clone, 'Local commit')
        books_before = (clone / 'data' / 'books.json').read_text(encoding='utf-8')

        result = await make_service(clone).pull()

        assert result.success is False
        assert result.error.startswith('fast-forward pull failed: ')
        assert run_git(clone, 'rev-parse', 'HEAD') == local_head
        assert (clone / 'data' / 'books.json').read_text(encoding='utf-8') == books_before

    @pytest.mark.asyncio
    async def test_fetch_failure(self, make_clone, tmp_path):
        clone = make_clone('editor')
        run_git(clone, 'remote', 'set-url', 'origin', str(tmp_path / 'missing.git'))

        result = await make_service(clone).pull()

        assert result.success is False
        assert result.error.startswith('fetch failed: ')


class TestPublish:

    @pytest.mark.asyncio
    async def test_publish_commits_and_pushes(self, make_clone, site_remote):
        """Local edits, remote unchanged -> success with short sha"""
        clone = make_clone('editor')
        edit_books(clone, 'Funghi del Piemonte')
        service = make_service(clone)

        result = await service.publish('Update catalogue')

        assert result.success is True
        assert result.error is None
        assert result.sha == run_git(clone, 'rev-parse', '--short', 'HEAD')
        assert run_git(site_remote, 'rev-parse', 'main') == run_git(clone, 'rev-parse', 'HEAD')
        assert run_git(clone, 'log', '-1', '--format=%s') == 'Update catalogue'

    @pytest.mark.asyncio
    async def test_status_clean_after_publish(self, make_clone):
        """Round-trip: after a successful publish the tracked files are clean"""
        clone = make_clone('editor')
        edit_books(clone, 'Funghi del Piemonte')
        (clone / 'data' / 'config.json').write_text('{"tags": [], "ratings": []}\n')
        service = make_service(clone)

        result = await service.publish('x')
        status = await service.status()

        assert result.success is True
        assert status.dirty is False
        assert status.changed_files == []
        assert status.ahead == 0

    @pytest.mark.asyncio
    async def test_publish_with_nothing_to_commit(self, make_clone):
        """Publishing with no pending changes still succeeds"""
        clone = make_clone('editor')
        head_before = run_git(clone, 'rev-parse', 'HEAD')

        result = await make_service(clone).publish('Nothing new')

        assert result.success is True
        assert result.sha == run_git(clone, 'rev-parse', '--short', 'HEAD')
        assert run_git(clone, 'rev-parse', 'HEAD') == head_before

    @pytest.mark.asyncio
    async def test_publish_only_commits_tracked_files(self, make_clone):
        """Unrelated edits, staged or not, stay out of the catalogue commit"""
        clone = make_clone('editor')
        edit_books(clone, 'Funghi del Piemonte')
        (clone / 'README.md').write_text('# Work in progress\n')
        (clone / 'draft.md').write_text('draft\n')
        run_git(clone, 'add', 'draft.md')

        result = await make_service(clone).publish('Catalogue only')

        assert result.success is True
        committed = run_git(clone, 'show', '--name-only', '--format=', 'HEAD').splitlines()
        assert committed == ['data/books.json']
        porcelain = run_git(clone, 'status', '--porcelain')
        assert 'README.md' in porcelain
        assert 'draft.md' in porcelain

    @pytest.mark.asyncio
    async def test_publishes_earlier_local_commits(self, make_clone, site_remote):
        """Unpushed commits from an earlier failed push go out with the next publish"""
        clone = make_clone('editor')
        edit_books(clone, 'Earlier')
        local_head = commit_all(clone, 'Earlier commit')

        result = await make_service(clone).publish('Nothing new')

        assert result.success is True
        assert run_git(site_remote, 'rev-parse', 'main') == local_head

    @pytest.mark.asyncio
    async def test_stale_lease_rejects_push(self, make_clone, site_remote):
        """
        The remote advanced after this clone last fetched.

        The lease rejects the push, the remote keeps the other publisher's commit,
        and the local commit is still present in this clone.
        """
        first = make_clone('first')
        second = make_clone('second')

        edit_books(first, 'From first editor')
        first_result = await make_service(first).publish('First publish')
        assert first_result.success is True
        remote_tip = run_git(site_remote, 'rev-parse', 'main')

        edit_books(second, 'From second editor')
        second_result = await make_service(second).publish('Second publish')

        assert second_result.success is False
        assert second_result.sha is None
        assert second_result.error.startswith('push failed: ')
        assert 'stale info' in second_result.error or 'rejected' in second_result.error
        # Nothing lost on either side
        assert run_git(site_remote, 'rev-parse', 'main') == remote_tip
        assert run_git(second, 'log', '-1', '--format=%s') == 'Second publish'

    @pytest.mark.asyncio
    async def test_recovery_after_rejection(self, make_clone, site_remote):
        """After a rejected push, pulling reports divergence instead of merging"""
        first = make_clone('first')
        second = make_clone('second')
        edit_books(first, 'From first editor')
        assert (await make_service(first).publish('First publish')).success is True
        edit_books(second, 'From second editor')
        service = make_service(second)
        assert (await service.publish('Second publish')).success is False

        pull_result = await service.pull()
        status = await service.status()

        assert pull_result.success is False
        assert pull_result.error.startswith('fast-forward pull failed: ')
        assert status.ahead == 1
        assert status.behind == 1
