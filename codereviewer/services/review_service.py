"""
Review service for orchestrating file reviews and chat sessions
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

import aiofiles

from codereviewer.agents.code_reviewer import ProviderRouter
from codereviewer.config.settings import ProviderConfig, Settings, get_settings
from codereviewer.exceptions import (
    CodeReviewerException,
    ConfigurationError,
    VersionControlError,
)
from codereviewer.models.review_models import (
    ChatMessage,
    ReviewContext,
    ReviewEntry,
    StructuredReview,
)
from codereviewer.services.context_store import CHAT_HISTORY_LIMIT, ContextStore
from codereviewer.services.git_service import GitService

logger = logging.getLogger(__name__)


class ReviewDisplay(Protocol):
    """Renders results; implemented by the terminal front-end"""

    def show_review(self, file_path: str, review: StructuredReview) -> None:
        ...

    def show_message(self, text: str) -> None:
        ...


class ReviewService:
    """Composes prompt building, routing and history into reviews and chat"""

    def __init__(
        self,
        config: ProviderConfig,
        router: Optional[ProviderRouter] = None,
        context_store: Optional[ContextStore] = None,
        git_service: Optional[GitService] = None,
        display: Optional[ReviewDisplay] = None,
        project_root: Optional[Union[str, Path]] = None,
    ):
        self.config = config
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.router = router or ProviderRouter(config)
        self.context_store = context_store or ContextStore(self.project_root)
        self.git_service = git_service or GitService(self.project_root)
        self.display = display

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        display: Optional[ReviewDisplay] = None,
        project_root: Optional[Union[str, Path]] = None,
    ) -> "ReviewService":
        """Wire a service from environment settings"""
        settings = settings or get_settings()
        config = settings.to_provider_config()
        root = Path(project_root) if project_root else Path.cwd()
        return cls(
            config,
            router=ProviderRouter(config, timeout=settings.request_timeout),
            context_store=ContextStore(root, dir_name=settings.history_dir_name),
            display=display,
            project_root=root,
        )

    def _history_key(self, full_path: Path) -> str:
        """Project-relative path, so watcher and CLI paths share history"""
        try:
            return full_path.relative_to(self.project_root.resolve()).as_posix()
        except ValueError:
            return str(full_path)

    async def _get_diff(self, file_path: str) -> str:
        try:
            return await self.git_service.diff(file_path)
        except VersionControlError as e:
            logger.debug(f"No diff for {file_path}, reviewing full file: {e}")
            return ""

    async def _get_context(self, file_path: str) -> Optional[ReviewContext]:
        if not self.config.include_context:
            return None
        try:
            return await self.context_store.get_review_context(file_path)
        except Exception as e:
            logger.warning(f"Review context unavailable for {file_path}: {e}")
            return ReviewContext()

    async def _record(self, file_path: str, code: str, review: StructuredReview) -> None:
        try:
            await self.context_store.record_review(file_path, code, review)
        except Exception as e:
            logger.error(f"Failed to save review context locally: {e}")

    async def review_file(self, file_path: str) -> Optional[StructuredReview]:
        """
        Review a single file, preferring its pending diff over the full content

        Args:
            file_path: Path relative to the project root, or absolute

        Returns:
            The StructuredReview, or None when the file does not exist

        Raises:
            ConfigurationError: provider not set up
            ProviderRequestFailed: backend request failed
        """
        full_path = (self.project_root / file_path).resolve()
        if not full_path.is_file():
            logger.error(f"File not found: {file_path}")
            return None

        key = self._history_key(full_path)
        logger.info(f"Reviewing {key}", extra={"operation": "review_file_start", "file": key})

        async with aiofiles.open(full_path, "r", encoding="utf-8", errors="replace") as f:
            code = await f.read()

        diff = await self._get_diff(key)
        context = await self._get_context(key)

        review = await self.router.review_code(diff or code, key, context)

        logger.info(
            f"Review complete for {key}: score {review.score}, {len(review.issues)} issue(s)",
            extra={"operation": "review_file_success", "file": key},
        )
        if self.display is not None:
            self.display.show_review(key, review)

        # Archive the full file, not the diff that was sent
        await self._record(key, code, review)
        return review

    async def review_staged(self) -> Dict[str, Optional[StructuredReview]]:
        """Review every file in the git staging area, one at a time

        Raises:
            VersionControlError: git status could not be read
            ConfigurationError: provider not set up
        """
        status = await self.git_service.status()
        if not status.staged:
            logger.info("No staged files found")
            return {}

        logger.info(f"Found {len(status.staged)} staged file(s)")
        results: Dict[str, Optional[StructuredReview]] = {}
        for file_path in status.staged:
            try:
                results[file_path] = await self.review_file(file_path)
            except ConfigurationError:
                raise
            except CodeReviewerException as e:
                logger.error(f"Review failed for {file_path}: {e.message}")
                results[file_path] = None
        return results

    async def chat(self, message: str) -> str:
        """
        Continue the persisted conversation with one user message

        Returns:
            The assistant's reply
        """
        try:
            history = await self.context_store.get_chat_history()
        except Exception as e:
            logger.warning(f"Chat history unavailable, starting fresh: {e}")
            history = []

        limit = self.config.max_context_messages
        prior = history[-limit:] if limit > 0 else []
        reply = await self.router.chat(message, prior)

        updated: List[ChatMessage] = [
            *history,
            ChatMessage(role="user", content=message),
            ChatMessage(role="assistant", content=reply),
        ]
        updated = updated[-CHAT_HISTORY_LIMIT:]

        try:
            await self.context_store.save_chat_history(updated)
        except Exception as e:
            logger.error(f"Failed to save chat history: {e}")

        if self.display is not None:
            self.display.show_message(reply)
        return reply

    async def clear_chat(self) -> bool:
        return await self.context_store.save_chat_history([])

    async def clear_history(self) -> bool:
        return await self.context_store.clear_history()

    async def get_history(self, limit: int = 10) -> List[ReviewEntry]:
        return await self.context_store.get_history(limit)

    async def aclose(self) -> None:
        await self.router.aclose()
