#!/usr/bin/env python3
"""
Gmail Service - thin async adapter over the Gmail v1 API
Every HttpError is classified into the Mail Cleaner error taxonomy here
"""

import asyncio
import logging
from typing import Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from mailcleaner.errors import classify_http_error
from mailcleaner.models import Category, ThreadPage


logger = logging.getLogger(__name__)

# Labels applied when moving a thread to trash
TRASH_ADD_LABELS = [Category.TRASH.value]
TRASH_REMOVE_LABELS = ['INBOX']


class GmailClient:
    """Wraps a googleapiclient Gmail resource; blocking calls run in a worker thread"""

    def __init__(self, service):
        self.service = service  # Gmail API service object

    @classmethod
    def from_access_token(cls, access_token: str) -> "GmailClient":
        """Build a client from a bearer token obtained through OAuth"""
        creds = Credentials(token=access_token)
        service = build('gmail', 'v1', credentials=creds, cache_discovery=False)
        return cls(service)

    # === Listing ===

    async def list_threads_page(
        self,
        user_id: str,
        label: str,
        page_size: int,
        page_token: Optional[str] = None,
        include_spam_trash: bool = False
    ) -> ThreadPage:
        """Fetch one page of thread ids carrying the given label"""
        try:
            results = await asyncio.to_thread(
                lambda: self.service.users().threads().list(
                    userId=user_id,
                    labelIds=[label],
                    maxResults=page_size,
                    pageToken=page_token,
                    includeSpamTrash=include_spam_trash
                ).execute()
            )
        except HttpError as error:
            raise classify_http_error(error, f"failed to list threads for {label}") from error

        return ThreadPage(
            thread_ids=[t['id'] for t in results.get('threads', [])],
            next_page_token=results.get('nextPageToken') or None,
            result_size_estimate=int(results.get('resultSizeEstimate', 0))
        )

    async def estimate_count(self, user_id: str, label: str, include_spam_trash: bool = False) -> int:
        """Gmail's resultSizeEstimate for a label, from a single one-item request"""
        page = await self.list_threads_page(user_id, label, 1, include_spam_trash=include_spam_trash)
        return page.result_size_estimate

    # === Removal ===

    async def trash_thread(self, user_id: str, thread_id: str) -> None:
        """Move a thread to trash by relabelling it (recoverable)"""
        body = {
            'addLabelIds': TRASH_ADD_LABELS,
            'removeLabelIds': TRASH_REMOVE_LABELS
        }
        try:
            await asyncio.to_thread(
                lambda: self.service.users().threads().modify(
                    userId=user_id,
                    id=thread_id,
                    body=body
                ).execute()
            )
        except HttpError as error:
            raise classify_http_error(error, f"failed to trash thread {thread_id}") from error

    async def delete_thread(self, user_id: str, thread_id: str) -> None:
        """Permanently delete a thread. Cannot be undone."""
        try:
            await asyncio.to_thread(
                lambda: self.service.users().threads().delete(
                    userId=user_id,
                    id=thread_id
                ).execute()
            )
        except HttpError as error:
            raise classify_http_error(error, f"failed to permanently delete thread {thread_id}") from error
