"""
Shared data models for Mail Cleaner
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


# Gmail API hard limit for threads.list maxResults
MAX_PAGE_SIZE = 500

# Substituted when a request asks for max_per_category=0 ("no cap")
UNLIMITED_MAX_PER_CATEGORY = 1_000_000

# Seconds between consecutive listing pages / categories
RATE_LIMIT_DELAY = 0.2

REASON_ALL_PROCESSED = "all categories processed"
REASON_MAX_REACHED = "max per category reached; more emails may remain"
REASON_REMAINING = "remaining emails detected in one or more categories"


class Category(str, Enum):
    """Gmail label ids that can be cleaned"""
    SOCIAL = "CATEGORY_SOCIAL"
    FORUMS = "CATEGORY_FORUMS"
    PROMOTIONS = "CATEGORY_PROMOTIONS"
    UPDATES = "CATEGORY_UPDATES"
    TRASH = "TRASH"


@dataclass
class ThreadPage:
    """One page of a threads.list call"""
    thread_ids: List[str]
    next_page_token: Optional[str] = None
    result_size_estimate: int = 0


@dataclass
class CleanSummary:
    """Result of a multi-category cleanup"""
    per_category_deleted: Dict[str, int] = field(default_factory=dict)
    total_deleted: int = 0
    completed: bool = True
    reason: str = REASON_ALL_PROCESSED

    def record(self, label: str, deleted: int) -> None:
        """Add a category's removed count, keeping one key per label"""
        self.per_category_deleted[label] = self.per_category_deleted.get(label, 0) + deleted
        self.total_deleted += deleted

    def mark_incomplete(self, reason: str) -> None:
        self.completed = False
        self.reason = reason

    def to_response(self) -> Dict:
        """Shape returned by the clean endpoint"""
        return {
            "deleted": dict(self.per_category_deleted),
            "total_deleted": self.total_deleted,
            "completed": self.completed,
            "completion_reason": self.reason
        }
