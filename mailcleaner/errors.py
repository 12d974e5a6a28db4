"""
Error taxonomy for Mail Cleaner

Gmail API failures are classified once, where the HttpError is caught in the
Gmail adapter, so nothing downstream has to look at error text.
"""

import json
from typing import Optional

from googleapiclient.errors import HttpError


# Structured reasons Google returns for credential/scope problems
AUTH_REASONS = {
    'insufficientPermissions',
    'ACCESS_TOKEN_SCOPE_INSUFFICIENT',
    'authError',
    'unauthorized',
}


class MailCleanerError(Exception):
    """Base class for all Mail Cleaner errors"""


class ConfigError(MailCleanerError):
    """Required configuration is missing"""


class CleanupInterrupted(MailCleanerError):
    """Cleanup was interrupted before it finished"""


class GmailError(MailCleanerError):
    """A Gmail API call failed"""

    kind = "fatal"

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class AuthError(GmailError):
    """Credential rejected or missing scope - user must re-authenticate"""
    kind = "auth"


class TransientError(GmailError):
    """Quota exhaustion or provider-side failure"""
    kind = "transient"


class FatalError(GmailError):
    """Any other API failure"""
    kind = "fatal"


def _error_reasons(error: HttpError) -> set:
    """Pull the structured reason codes out of a Google error body"""
    content = error.content
    if isinstance(content, bytes):
        content = content.decode('utf-8', errors='replace')

    try:
        body = json.loads(content or '{}')
    except ValueError:
        return set()

    if not isinstance(body, dict):
        return set()

    err = body.get('error')
    if not isinstance(err, dict):
        return set()

    reasons = set()
    if err.get('status'):
        reasons.add(err['status'])
    for item in err.get('errors', []) or []:
        if isinstance(item, dict) and item.get('reason'):
            reasons.add(item['reason'])
    for detail in err.get('details', []) or []:
        if isinstance(detail, dict) and detail.get('reason'):
            reasons.add(detail['reason'])
    return reasons


def classify_http_error(error: HttpError, context: str = "Gmail API call failed") -> GmailError:
    """Map an HttpError onto AuthError / TransientError / FatalError"""
    status = getattr(error.resp, 'status', None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    reasons = _error_reasons(error)
    auth_reasons = reasons & AUTH_REASONS
    reason = next(iter(auth_reasons or reasons), None)
    message = f"{context}: {error}"

    if status in (401, 403) or auth_reasons:
        # 403 rateLimitExceeded is a quota problem, not a credential one
        if status == 403 and not auth_reasons and reasons & {'rateLimitExceeded', 'userRateLimitExceeded'}:
            return TransientError(message, status=status, reason=reason)
        return AuthError(message, status=status, reason=reason)

    if status == 429 or (status is not None and status >= 500):
        return TransientError(message, status=status, reason=reason)

    return FatalError(message, status=status, reason=reason)
