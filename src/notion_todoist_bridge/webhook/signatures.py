"""Request authenticity checks for both webhook providers."""

import base64
import hashlib
import hmac

NOTION_USER_AGENT = "notion-api"


def is_notion_request(user_agent: str | None, has_signature: bool) -> bool:
    """Notion calls with user agent ``notion-api``; signed requests are accepted too."""
    return user_agent == NOTION_USER_AGENT or has_signature


def verify_notion_signature(body: bytes, signature: str, secret: str) -> bool:
    """Verify Notion webhook HMAC-SHA256 signature (``sha256=<hex>``)."""
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    received = signature.removeprefix("sha256=")
    return hmac.compare_digest(expected, received)


def verify_todoist_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Verify Todoist's base64-encoded HMAC-SHA256 over the raw body."""
    if not signature or not secret:
        return False
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode()
    return hmac.compare_digest(expected, signature)
