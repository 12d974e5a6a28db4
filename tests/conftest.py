"""
Shared test fixtures for Mail Cleaner tests
"""

import json

import pytest
from typing import Dict, List, Optional, Set
from googleapiclient.errors import HttpError

from mailcleaner.gmail_service import GmailClient
from mailcleaner.pacing import NoDelayPacer


# === Mock Gmail API Service ===

class MockExecute:
    """Mock for the .execute() call that returns stored data"""
    def __init__(self, data=None, error: Optional[HttpError] = None):
        self._data = data
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._data


class MockHttpResponse:
    """Mock HTTP response for HttpError"""
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason


def make_http_error(status: int, reason: str = 'Error', error_reason: Optional[str] = None) -> HttpError:
    """HttpError carrying a Google-style JSON error body"""
    body = {'error': {'code': status, 'message': reason}}
    if error_reason:
        body['error']['errors'] = [{'reason': error_reason, 'message': reason}]
    return HttpError(resp=MockHttpResponse(status, reason), content=json.dumps(body).encode('utf-8'))


class MockThreads:
    """Mock for users().threads() over an in-memory mailbox"""
    def __init__(self, gmail: "MockGmailService"):
        self._gmail = gmail

    def list(self, userId: str, labelIds: List[str] = None, maxResults: int = 100,
             pageToken: Optional[str] = None, includeSpamTrash: bool = False, q: str = None):
        gmail = self._gmail
        label = labelIds[0] if labelIds else 'INBOX'
        gmail.list_calls.append({
            'label': label,
            'max_results': maxResults,
            'page_token': pageToken,
            'include_spam_trash': includeSpamTrash
        })

        if len(gmail.list_calls) in gmail.fail_list_calls:
            return MockExecute(error=gmail.fail_list_calls[len(gmail.list_calls)])
        if label in gmail.fail_list_labels:
            return MockExecute(error=gmail.fail_list_labels[label])

        threads = gmail.mailbox.get(label, [])

        # Handle pagination
        start_idx = int(pageToken) if pageToken else 0
        end_idx = min(start_idx + maxResults, len(threads))
        page = threads[start_idx:end_idx]

        estimate = gmail.estimates.get(label, len(threads))
        result = {'resultSizeEstimate': estimate}
        if page:
            result['threads'] = [{'id': t, 'snippet': ''} for t in page]

        if gmail.endless_tokens:
            result['nextPageToken'] = str(end_idx)
        elif end_idx < len(threads):
            result['nextPageToken'] = str(end_idx)

        return MockExecute(result)

    def modify(self, userId: str, id: str, body: Dict):
        gmail = self._gmail
        gmail.modify_calls.append((id, body))
        if id in gmail.fail_threads:
            return MockExecute(error=gmail.fail_threads[id])

        for label in body.get('removeLabelIds', []):
            if id in gmail.mailbox.get(label, []):
                gmail.mailbox[label].remove(id)
        # Trashed threads drop out of category listings
        if 'TRASH' in body.get('addLabelIds', []):
            for label, ids in gmail.mailbox.items():
                if label != 'TRASH' and id in ids:
                    ids.remove(id)
            gmail.mailbox.setdefault('TRASH', []).append(id)
        gmail.trashed_threads.add(id)
        return MockExecute({'id': id, 'labelIds': body.get('addLabelIds', [])})

    def delete(self, userId: str, id: str):
        gmail = self._gmail
        gmail.delete_calls.append(id)
        if id in gmail.fail_threads:
            return MockExecute(error=gmail.fail_threads[id])

        for ids in gmail.mailbox.values():
            if id in ids:
                ids.remove(id)
        gmail.deleted_threads.add(id)
        return MockExecute('')


class MockUsers:
    """Mock for service.users()"""
    def __init__(self, gmail: "MockGmailService"):
        self._threads = MockThreads(gmail)

    def threads(self):
        return self._threads


class MockGmailService:
    """Mock Gmail API service over a {label: [thread_id, ...]} mailbox"""

    def __init__(
        self,
        mailbox: Dict[str, List[str]],
        fail_threads: Dict[str, HttpError] = None,
        fail_list_labels: Dict[str, HttpError] = None,
        fail_list_calls: Dict[int, HttpError] = None,
        estimates: Dict[str, int] = None,
        endless_tokens: bool = False
    ):
        self.mailbox = {label: list(ids) for label, ids in mailbox.items()}
        self.fail_threads = fail_threads or {}
        self.fail_list_labels = fail_list_labels or {}
        self.fail_list_calls = fail_list_calls or {}
        self.estimates = estimates or {}
        self.endless_tokens = endless_tokens

        self.list_calls: List[Dict] = []
        self.modify_calls: List = []
        self.delete_calls: List[str] = []
        self.trashed_threads: Set[str] = set()
        self.deleted_threads: Set[str] = set()

    def users(self):
        return MockUsers(self)


# === Helpers ===

def make_thread_ids(prefix: str, count: int) -> List[str]:
    return [f'{prefix}_{i:04d}' for i in range(count)]


class ProgressRecorder:
    """Async progress callback that keeps every event"""
    def __init__(self):
        self.events = []

    async def __call__(self, event: str, data: dict):
        self.events.append((event, data))

    @property
    def event_types(self) -> List[str]:
        return [e[0] for e in self.events]


# === Fixtures ===

@pytest.fixture
def sample_mailbox() -> Dict[str, List[str]]:
    """A mailbox with a few threads in every category and the trash"""
    return {
        'CATEGORY_PROMOTIONS': make_thread_ids('promo', 5),
        'CATEGORY_SOCIAL': make_thread_ids('social', 3),
        'CATEGORY_FORUMS': [],
        'CATEGORY_UPDATES': make_thread_ids('update', 2),
        'TRASH': make_thread_ids('trash', 3),
    }


@pytest.fixture
def mock_gmail_service(sample_mailbox) -> MockGmailService:
    return MockGmailService(sample_mailbox)


@pytest.fixture
def gmail_client(mock_gmail_service) -> GmailClient:
    return GmailClient(mock_gmail_service)


@pytest.fixture
def pacer() -> NoDelayPacer:
    return NoDelayPacer()


@pytest.fixture
def progress() -> ProgressRecorder:
    return ProgressRecorder()
