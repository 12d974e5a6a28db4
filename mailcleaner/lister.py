"""
Thread Lister - paginated listing of thread ids by label
"""

import logging
import time
from typing import Callable, List, Optional

from mailcleaner.errors import CleanupInterrupted
from mailcleaner.models import Category, MAX_PAGE_SIZE
from mailcleaner.pacing import FixedDelayPacer


logger = logging.getLogger(__name__)


class ThreadLister:
    """Lists thread ids for a category label or the trash, page by page"""

    def __init__(
        self,
        client,  # GmailClient
        pacer=None,
        progress_callback: Optional[Callable] = None
    ):
        self.client = client
        self.pacer = pacer or FixedDelayPacer()
        self.progress_callback = progress_callback
        self.interrupted = False

    # === Main Entry Points ===

    async def list_category_threads(self, user_id: str, label: str, max_results: int) -> List[str]:
        """All thread ids carrying a category label, up to max_results"""
        return await self._paginate(user_id, label, max_results, include_spam_trash=False)

    async def list_trash_threads(self, user_id: str, max_results: int) -> List[str]:
        """All thread ids in the trash folder, up to max_results"""
        return await self._paginate(user_id, Category.TRASH.value, max_results, include_spam_trash=True)

    async def estimate(self, user_id: str, label: str) -> int:
        """Provider estimate of how many threads still carry the label"""
        include_spam_trash = label == Category.TRASH.value
        return await self.client.estimate_count(user_id, label, include_spam_trash=include_spam_trash)

    # === Pagination ===

    async def _paginate(self, user_id: str, label: str, max_results: int, include_spam_trash: bool) -> List[str]:
        if max_results <= 0:
            return []

        start = time.monotonic()
        logger.info(f"Listing {label} threads for {user_id} (max {max_results})")

        thread_ids: List[str] = []
        page_token = None
        page_count = 0
        total_fetched = 0

        while True:
            if self.interrupted:
                raise CleanupInterrupted(f"listing {label} interrupted after {total_fetched} threads")

            page_count += 1
            page_size = min(max_results - total_fetched, MAX_PAGE_SIZE)

            logger.debug(f"Fetching {label} page {page_count} (size {page_size}, fetched {total_fetched})")
            page = await self.client.list_threads_page(
                user_id,
                label,
                page_size,
                page_token=page_token,
                include_spam_trash=include_spam_trash
            )

            thread_ids.extend(page.thread_ids)
            total_fetched += len(page.thread_ids)

            await self._report_progress("page_fetched", {
                "label": label,
                "page_number": page_count,
                "page_thread_count": len(page.thread_ids),
                "total_fetched": total_fetched,
                "result_size_estimate": page.result_size_estimate
            })

            # Empty page stops the loop even if the provider hands back a token
            page_token = page.next_page_token
            if not page_token or total_fetched >= max_results or not page.thread_ids:
                break

            await self.pacer.wait_before_next_call()

        logger.info(
            f"Listed {total_fetched} {label} threads in {page_count} page(s) "
            f"({time.monotonic() - start:.2f}s)"
        )
        return thread_ids

    # === Progress ===

    async def _report_progress(self, event: str, data: dict) -> None:
        """Send progress update if callback is set"""
        if self.progress_callback:
            await self.progress_callback(event, data)
