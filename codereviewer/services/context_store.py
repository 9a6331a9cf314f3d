"""
Per-project review and chat history

History lives in two JSON array files under a hidden directory in the
project root:

  <project>/.awesomediagns/history/reviews.json   capped list of ReviewEntry
  <project>/.awesomediagns/history/chat.json      rolling chat window

Every write replaces the whole array atomically (temp file + os.replace), so
an interrupted process leaves either the old or the new array on disk. Two
concurrent writers are last-writer-wins.

Nothing in this module raises to the caller: read failures yield empty
results and write failures are logged, because losing history must never
block a review from being shown.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import aiofiles
from pydantic import ValidationError

from codereviewer.exceptions import PersistenceFailed
from codereviewer.models.review_models import (
    ChatMessage,
    PreviousReview,
    ReviewContext,
    ReviewEntry,
    StructuredReview,
    truncate_code,
)

logger = logging.getLogger(__name__)

DEFAULT_DIR_NAME = ".awesomediagns"
REVIEW_HISTORY_LIMIT = 50
CHAT_HISTORY_LIMIT = 20
PREVIOUS_REVIEWS_PER_FILE = 3


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ContextStore:
    """JSON-file history scoped to one project directory"""

    def __init__(
        self,
        project_root: Optional[Union[str, Path]] = None,
        dir_name: str = DEFAULT_DIR_NAME,
        review_limit: int = REVIEW_HISTORY_LIMIT,
    ):
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.dir_name = dir_name
        self.context_dir = self.project_root / dir_name
        self.history_dir = self.context_dir / "history"
        self.reviews_file = self.history_dir / "reviews.json"
        self.chat_file = self.history_dir / "chat.json"
        self.review_limit = review_limit

    # ------------------------------------------------------------------ #
    # File helpers
    # ------------------------------------------------------------------ #

    def _ensure_directories(self) -> bool:
        try:
            self.history_dir.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.warning(f"Cannot create history directory {self.history_dir}: {e}")
            return False

    async def _read_array(self, path: Path) -> List[Any]:
        """Read a JSON array file; a missing file is an empty array"""
        try:
            if not path.is_file():
                return []
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content) if content.strip() else []
        except (OSError, ValueError) as e:
            raise PersistenceFailed(
                message=f"Could not read {path.name}",
                path=str(path),
                original_error=e,
            )
        if not isinstance(data, list):
            raise PersistenceFailed(
                message=f"{path.name} does not contain a JSON array",
                path=str(path),
            )
        return data

    async def _write_array(self, path: Path, items: Sequence[Any]) -> None:
        """Replace a JSON array file in a single atomic step"""
        if not self._ensure_directories():
            raise PersistenceFailed(
                message="History directory is unavailable",
                path=str(self.history_dir),
            )

        content = json.dumps(list(items), indent=2)
        try:
            fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.stem}_", suffix=".tmp")
            os.close(fd)
            try:
                async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                    await f.write(content)
                os.replace(temp_path, path)
            except BaseException:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise PersistenceFailed(
                message=f"Could not write {path.name}",
                path=str(path),
                original_error=e,
            )

    async def _load_entries(self) -> List[ReviewEntry]:
        entries = []
        for raw in await self._read_array(self.reviews_file):
            try:
                entries.append(ReviewEntry.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed review history entry")
        return entries

    # ------------------------------------------------------------------ #
    # Reviews
    # ------------------------------------------------------------------ #

    async def get_review_context(self, file_path: str) -> ReviewContext:
        """Return the last three reviews of a file, reduced to timestamp, score and summary"""
        try:
            entries = await self._load_entries()
        except PersistenceFailed as e:
            logger.warning(f"Ignoring unreadable review history: {e}")
            return ReviewContext()

        file_entries = [entry for entry in entries if entry.file == file_path]
        return ReviewContext(
            previous_reviews=[
                PreviousReview(
                    timestamp=entry.timestamp,
                    score=entry.score,
                    summary=entry.review.summary,
                )
                for entry in file_entries[-PREVIOUS_REVIEWS_PER_FILE:]
            ]
        )

    async def record_review(self, file_path: str, code: str, review: StructuredReview) -> bool:
        """Append a review to the project history, keeping the newest 50

        Returns:
            True when the history was written
        """
        try:
            try:
                entries = await self._load_entries()
            except PersistenceFailed as e:
                # A corrupt file is replaced rather than blocking new history
                logger.warning(f"Starting a fresh review history: {e}")
                entries = []

            entries.append(
                ReviewEntry(
                    file=file_path,
                    timestamp=_utc_timestamp(),
                    code=truncate_code(code),
                    review=review,
                    score=review.score,
                )
            )
            kept = entries[-self.review_limit:]
            await self._write_array(self.reviews_file, [entry.model_dump(mode="json") for entry in kept])
            return True
        except PersistenceFailed as e:
            logger.error(
                f"Failed to save review context locally: {e}",
                extra={"operation": "record_review", "file": file_path},
            )
            return False

    async def get_history(self, limit: int = 10) -> List[ReviewEntry]:
        """Most recent reviews across all files, newest first"""
        if limit <= 0:
            return []
        try:
            entries = await self._load_entries()
        except PersistenceFailed as e:
            logger.warning(f"Ignoring unreadable review history: {e}")
            return []
        return list(reversed(entries[-limit:]))

    # ------------------------------------------------------------------ #
    # Chat
    # ------------------------------------------------------------------ #

    async def get_chat_history(self) -> List[ChatMessage]:
        """Load the persisted conversation; missing or corrupt means empty"""
        try:
            raw_messages = await self._read_array(self.chat_file)
            return [ChatMessage.model_validate(raw) for raw in raw_messages]
        except (PersistenceFailed, ValidationError) as e:
            logger.warning(f"Ignoring unreadable chat history: {e}")
            return []

    async def save_chat_history(self, messages: Sequence[ChatMessage]) -> bool:
        """Persist the conversation verbatim"""
        try:
            await self._write_array(self.chat_file, [m.model_dump() for m in messages])
            return True
        except PersistenceFailed as e:
            logger.error(f"Failed to save chat history: {e}", extra={"operation": "save_chat_history"})
            return False

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    async def clear_history(self) -> bool:
        """Reset both review and chat history to empty arrays"""
        try:
            await self._write_array(self.reviews_file, [])
            await self._write_array(self.chat_file, [])
            logger.info("Local history cleared", extra={"operation": "clear_history"})
            return True
        except PersistenceFailed as e:
            logger.error(f"Failed to clear history: {e}", extra={"operation": "clear_history"})
            return False

    async def initialize_project(self) -> bool:
        """Create the history directory and keep it out of git

        Returns:
            True when the project is ready for history
        """
        if not self._ensure_directories():
            return False

        entry = f"{self.dir_name}/"
        gitignore = self.project_root / ".gitignore"
        try:
            existing = ""
            if gitignore.exists():
                async with aiofiles.open(gitignore, "r", encoding="utf-8") as f:
                    existing = await f.read()
            if self.dir_name not in existing:
                async with aiofiles.open(gitignore, "a", encoding="utf-8") as f:
                    await f.write(f"\n# codereviewer.ai metadata\n{entry}\n")
        except OSError as e:
            logger.warning(f"Could not update {gitignore}: {e}")

        for path in (self.reviews_file, self.chat_file):
            if not path.exists():
                try:
                    await self._write_array(path, [])
                except PersistenceFailed as e:
                    logger.error(f"Failed to initialize {path.name}: {e}")
                    return False
        return True
