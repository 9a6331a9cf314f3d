"""
git integration service
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from codereviewer.exceptions import VersionControlError

logger = logging.getLogger(__name__)


@dataclass
class GitStatus:
    """Subset of ``git status`` the reviewer cares about"""

    staged: List[str] = field(default_factory=list)


class GitService:
    """Runs git in the project directory"""

    def __init__(self, repo_path: Optional[Union[str, Path]] = None, timeout: float = 30.0):
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        command = ["git", *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise VersionControlError(
                message="git executable not available",
                command=command,
                original_error=e,
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise VersionControlError(
                message=f"git timed out after {self.timeout}s",
                command=command,
                original_error=e,
            )

        if process.returncode != 0:
            raise VersionControlError(
                message=stderr.decode("utf-8", errors="replace").strip() or "git failed",
                command=command,
                returncode=process.returncode,
            )
        return stdout.decode("utf-8", errors="replace")

    async def diff(self, file_path: str) -> str:
        """Unstaged changes for one file; empty when untracked or unchanged"""
        return await self._run("diff", "--", file_path)

    async def status(self) -> GitStatus:
        """Staged paths, relative to the repository directory this service runs in"""
        output = await self._run("diff", "--cached", "--name-only", "--relative")
        staged = [line.strip() for line in output.splitlines() if line.strip()]
        logger.debug(f"Found {len(staged)} staged file(s)")
        return GitStatus(staged=staged)
