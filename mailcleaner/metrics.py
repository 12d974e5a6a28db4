"""
In-process request and cleanup counters exposed on /metrics
"""

import threading
import time
from collections import defaultdict
from typing import Dict


class Metrics:
    """Counters owned by one application instance"""

    def __init__(self):
        self._lock = threading.Lock()
        self.started_at = time.time()
        self.request_count = 0
        self.error_count = 0
        self.total_latency = 0.0
        self.status_counts: Dict[int, int] = defaultdict(int)
        self.path_counts: Dict[str, int] = defaultdict(int)
        self.cleanups = 0
        self.cleanup_failures = 0
        self.threads_removed = 0

    def record_request(self, path: str, status_code: int, duration: float) -> None:
        with self._lock:
            self.request_count += 1
            self.total_latency += duration
            self.status_counts[status_code] += 1
            self.path_counts[path] += 1
            if status_code >= 400:
                self.error_count += 1

    def record_cleanup(self, threads_removed: int) -> None:
        with self._lock:
            self.cleanups += 1
            self.threads_removed += threads_removed

    def record_cleanup_failure(self) -> None:
        with self._lock:
            self.cleanup_failures += 1

    def snapshot(self) -> Dict:
        with self._lock:
            avg_ms = (self.total_latency / self.request_count * 1000) if self.request_count else 0.0
            return {
                "uptime_seconds": round(time.time() - self.started_at, 3),
                "requests": self.request_count,
                "errors": self.error_count,
                "avg_latency_ms": round(avg_ms, 3),
                "status_codes": {str(k): v for k, v in sorted(self.status_counts.items())},
                "paths": dict(self.path_counts),
                "cleanups": self.cleanups,
                "cleanup_failures": self.cleanup_failures,
                "threads_removed": self.threads_removed
            }
