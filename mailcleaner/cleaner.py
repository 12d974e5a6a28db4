"""
Category Cleaner - Empties Gmail category labels and the trash
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from mailcleaner.errors import CleanupInterrupted, GmailError
from mailcleaner.lister import ThreadLister
from mailcleaner.models import (
    Category,
    CleanSummary,
    REASON_MAX_REACHED,
    REASON_REMAINING,
    UNLIMITED_MAX_PER_CATEGORY,
)
from mailcleaner.pacing import FixedDelayPacer


logger = logging.getLogger(__name__)


class CategoryCleaner:
    """Moves category threads to trash and permanently deletes trash threads"""

    def __init__(
        self,
        client,  # GmailClient
        pacer=None,
        progress_callback: Optional[Callable] = None
    ):
        self.client = client
        self.pacer = pacer or FixedDelayPacer()
        self.progress_callback = progress_callback
        self.lister = ThreadLister(client, self.pacer, progress_callback)
        self.interrupted = False

    def interrupt(self) -> None:
        """Stop at the next page or thread boundary"""
        self.interrupted = True
        self.lister.interrupted = True

    # === Main Entry Point ===

    async def clean(self, user_id: str, categories: List[str], max_per_category: int) -> CleanSummary:
        """Clean each category in order; any failure aborts the whole run"""
        if max_per_category == 0:
            max_per_category = UNLIMITED_MAX_PER_CATEGORY

        start = time.monotonic()
        logger.info(f"Starting cleanup for {user_id}: categories={categories}, max_per_category={max_per_category}")
        await self._report_progress("cleanup_started", {
            "categories": list(categories),
            "max_per_category": max_per_category
        })

        summary = CleanSummary()

        for label in categories:
            deleted = await self._clean_category(user_id, label, max_per_category)
            summary.record(label, deleted)

            if deleted >= max_per_category:
                summary.mark_incomplete(REASON_MAX_REACHED)
            else:
                remaining = await self._remaining_estimate(user_id, label)
                if remaining > 0:
                    summary.mark_incomplete(REASON_REMAINING)

            await self._report_progress("category_completed", {
                "category": label,
                "deleted": deleted,
                "permanent": label == Category.TRASH.value
            })

            await self.pacer.wait_before_next_call()

        logger.info(
            f"Cleanup finished for {user_id}: total_deleted={summary.total_deleted}, "
            f"completed={summary.completed}, reason='{summary.reason}' ({time.monotonic() - start:.2f}s)"
        )
        await self._report_progress("cleanup_completed", self._build_stats(summary))

        return summary

    # === Category Processing ===

    async def _clean_category(self, user_id: str, label: str, max_per_category: int) -> int:
        """List then remove one category's threads, returns the count removed"""
        await self._report_progress("category_started", {"category": label})

        if label == Category.TRASH.value:
            thread_ids = await self.lister.list_trash_threads(user_id, max_per_category)
            await self._delete_permanently(user_id, thread_ids)
        else:
            thread_ids = await self.lister.list_category_threads(user_id, label, max_per_category)
            await self._move_to_trash(user_id, label, thread_ids)

        return len(thread_ids)

    async def _move_to_trash(self, user_id: str, label: str, thread_ids: List[str]) -> None:
        if not thread_ids:
            logger.info(f"No {label} threads to trash")
            return

        logger.info(f"Moving {len(thread_ids)} {label} threads to trash")
        for index, thread_id in enumerate(thread_ids, start=1):
            self._check_interrupted(label, index - 1)
            await self.client.trash_thread(user_id, thread_id)
            logger.debug(f"Trashed thread {thread_id} ({index}/{len(thread_ids)})")
            await self._report_progress("thread_trashed", {
                "category": label,
                "thread_id": thread_id,
                "progress": index,
                "total": len(thread_ids)
            })

    async def _delete_permanently(self, user_id: str, thread_ids: List[str]) -> None:
        if not thread_ids:
            logger.info("No trash threads to permanently delete")
            return

        logger.warning(f"Permanently deleting {len(thread_ids)} trash threads - IRREVERSIBLE")
        for index, thread_id in enumerate(thread_ids, start=1):
            self._check_interrupted(Category.TRASH.value, index - 1)
            await self.client.delete_thread(user_id, thread_id)
            logger.warning(f"Permanently deleted thread {thread_id} ({index}/{len(thread_ids)})")
            await self._report_progress("thread_deleted", {
                "category": Category.TRASH.value,
                "thread_id": thread_id,
                "progress": index,
                "total": len(thread_ids)
            })

    async def _remaining_estimate(self, user_id: str, label: str) -> int:
        """Post-delete estimate; a failed estimate counts as zero remaining"""
        try:
            return await self.lister.estimate(user_id, label)
        except GmailError as error:
            logger.warning(f"Could not estimate remaining {label} threads: {error}")
            return 0

    def _check_interrupted(self, label: str, done: int) -> None:
        if self.interrupted:
            raise CleanupInterrupted(f"cleanup of {label} interrupted after {done} threads")

    # === Progress ===

    async def _report_progress(self, event: str, data: Dict) -> None:
        """Send progress update if callback is set"""
        if self.progress_callback:
            await self.progress_callback(event, data)

    # === Results ===

    @staticmethod
    def _build_stats(summary: CleanSummary) -> Dict:
        """Build result statistics dict"""
        return {
            "per_category_deleted": dict(summary.per_category_deleted),
            "total_deleted": summary.total_deleted,
            "completed": summary.completed,
            "reason": summary.reason
        }
