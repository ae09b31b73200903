"""
Sync operations between the local site repository clone and its upstream.

Three operations, each a short ordered sequence of git commands:
    - status():  local divergence report, no network access
    - pull():    fetch + fast-forward-only pull, never creates a merge commit
    - publish(): stage tracked files, commit, push with --force-with-lease

Only the tracked data files are ever staged, committed or reported.

Concurrency:
    No in-process lock is taken. Git's own index lock serializes commands against
    the same checkout, and the lease on push guarantees that of two racing
    publishers at most one wins. The loser gets a normal PushResult failure.

Staleness:
    status().behind reflects the remote-tracking refs as of the last fetch.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from site_sync.runner import GitRunner, sanitize_git_output

logger = logging.getLogger(__name__)

# Public API
__all__ = [
    'SiteSyncService',
    'SyncStatus',
    'PullResult',
    'PushResult',
    'NOTHING_TO_COMMIT_MARKERS',
]

# Fallback markers for an empty commit, checked in both output streams
NOTHING_TO_COMMIT_MARKERS = ('nothing to commit', 'no changes added to commit')

# Porcelain index/worktree codes whose entry is followed by the original path
_RENAME_CODES = ('R', 'C')


@dataclass
class SyncStatus:
    """Local/remote relationship of the tracked data files."""
    dirty: bool
    ahead: int
    behind: int
    changed_files: List[str] = field(default_factory=list)


@dataclass
class PullResult:
    """Result of a fast-forward pull."""
    success: bool
    error: Optional[str] = None


@dataclass
class PushResult:
    """Result of a publish (stage, commit, push)."""
    success: bool
    sha: Optional[str] = None  # short commit hash, set on success
    error: Optional[str] = None


def parse_porcelain_z(output: str) -> List[str]:
    """
    Parse `git status --porcelain=v1 -z` output into changed paths.

    Each entry is 'XY PATH'. Rename and copy entries are followed by an extra
    entry holding the original path, which is skipped.

    Args:
        output: Raw, untrimmed command output

    Returns:
        Changed paths in git's order
    """
    paths = []
    entries = output.split('\0')
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        code, path = entry[:2], entry[3:]
        paths.append(path)
        if code[0] in _RENAME_CODES or code[1] in _RENAME_CODES:
            i += 1  # skip original path
    return paths


def parse_left_right_count(output: str) -> Tuple[int, int]:
    """
    Parse `git rev-list --left-right --count A...B` output.

    Returns:
        (left, right) counts; (0, 0) when the output is not two integers
    """
    parts = output.split()
    if len(parts) != 2:
        return 0, 0
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return 0, 0


class SiteSyncService:
    """
    Git sync operations scoped to the catalogue's tracked data files.

    Every call recomputes state from the working copy; nothing is cached.
    """

    def __init__(self, runner: GitRunner, tracked_paths: Sequence[str]):
        """
        Initialize SiteSyncService.

        Args:
            runner: GitRunner bound to the site repository
            tracked_paths: Repository-relative paths of the data files
        """
        if not tracked_paths:
            raise ValueError("At least one tracked path is required")
        self.runner = runner
        self.tracked_paths = list(tracked_paths)

    async def status(self) -> SyncStatus:
        """
        Report uncommitted changes and ahead/behind counts. Does NOT fetch.

        Returns:
            SyncStatus; ahead/behind are 0 when no upstream is configured
        """
        porcelain = await self.runner.run_strict(
            ['status', '--porcelain=v1', '-z', '--', *self.tracked_paths],
            strip=False,
        )
        changed_files = parse_porcelain_z(porcelain)

        ahead, behind = 0, 0
        counts = await self.runner.run_safe(['rev-list', '--left-right', '--count', 'HEAD...@{u}'])
        if counts.ok:
            ahead, behind = parse_left_right_count(counts.stdout)
        else:
            # Commonly "no upstream configured" - not an error
            logger.debug(f"Ahead/behind unavailable: {counts.output}")

        return SyncStatus(
            dirty=len(changed_files) > 0,
            ahead=ahead,
            behind=behind,
            changed_files=changed_files,
        )

    async def pull(self) -> PullResult:
        """
        Fetch from the configured remote, then pull with --ff-only.

        A diverged history is reported as a failure rather than merged, so the
        working copy is never auto-merged.

        Returns:
            PullResult with success status and error text on failure
        """
        fetch_result = await self.runner.run_safe(['fetch'])
        if not fetch_result.ok:
            error = f"fetch failed: {sanitize_git_output(fetch_result.output)}"
            logger.warning(error)
            return PullResult(success=False, error=error)

        pull_result = await self.runner.run_safe(['pull', '--ff-only'])
        if not pull_result.ok:
            error = f"fast-forward pull failed: {sanitize_git_output(pull_result.output)}"
            logger.warning(error)
            return PullResult(success=False, error=error)

        logger.info(f"Pulled site repository {self.runner.repo_path}")
        return PullResult(success=True)

    async def publish(self, commit_message: str) -> PushResult:
        """
        Stage the tracked files, commit if anything changed, and push under a lease.

        Does not pull first. The lease only prevents silently overwriting remote
        commits this clone has not seen; it does not make the local branch current.

        Args:
            commit_message: Non-empty commit message

        Returns:
            PushResult with the short sha on success

        Raises:
            GitCommandError: If staging or reading the commit hash fails
        """
        if not commit_message or not commit_message.strip():
            raise ValueError("Commit message cannot be empty")

        await self.runner.run_strict(['add', '--', *self.tracked_paths])

        if await self._has_staged_changes():
            commit_result = await self.runner.run_safe(
                ['commit', '-m', commit_message, '--', *self.tracked_paths]
            )
            if not commit_result.ok and not self._is_nothing_to_commit(commit_result.stdout, commit_result.stderr):
                error = f"commit failed: {sanitize_git_output(commit_result.output)}"
                logger.warning(error)
                return PushResult(success=False, error=error)
        else:
            logger.debug("Nothing staged in tracked files, skipping commit")

        push_result = await self.runner.run_safe(['push', '--force-with-lease'])
        if not push_result.ok:
            error = f"push failed: {sanitize_git_output(push_result.output)}"
            logger.warning(error)
            return PushResult(success=False, error=error)

        sha = await self.runner.run_strict(['rev-parse', '--short', 'HEAD'])
        logger.info(f"Published site repository at {sha}")
        return PushResult(success=True, sha=sha)

    async def _has_staged_changes(self) -> bool:
        """
        Check whether the index differs from HEAD for the tracked files.

        `git diff --cached --quiet` exits 0 for no differences and 1 for differences.
        Any other outcome is inconclusive, so the commit is attempted and the
        "nothing to commit" text check decides.
        """
        diff = await self.runner.run_safe(['diff', '--cached', '--quiet', '--', *self.tracked_paths])
        if diff.exit_code == 0:
            return False
        return True

    @staticmethod
    def _is_nothing_to_commit(stdout: str, stderr: str) -> bool:
        """Text fallback for an empty commit (depends on LC_ALL=C messages)."""
        return any(
            marker in stdout or marker in stderr
            for marker in NOTHING_TO_COMMIT_MARKERS
        )
