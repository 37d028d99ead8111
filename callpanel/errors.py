"""
Domain exceptions raised by the services and translated to HTTP/socket
responses at the API boundary.
"""
from typing import Any, Dict, List


class CallPanelError(Exception):
    """Base class for expected, caller-facing failures"""


class PayloadValidationError(CallPanelError):
    """Body matched an upstream format but its required fields are missing or mistyped"""

    def __init__(self, source: str, issues: List[Dict[str, Any]]):
        self.source = source
        self.issues = issues
        super().__init__(f"Invalid {source} payload ({len(issues)} issue(s))")


class UnknownFormatError(CallPanelError):
    """Body matches no known upstream format"""

    def __init__(self, message: str = "Unknown or unsupported payload format"):
        super().__init__(message)


class ExpiredOrInvalidCode(CallPanelError):
    """Pairing code never existed, already used, or expired"""

    def __init__(self):
        super().__init__("Invalid or expired code")


class ChannelNotFound(CallPanelError):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Channel not found: {slug}")


class TenantNotFound(CallPanelError):
    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found: {tenant_id}")


class SlugConflict(CallPanelError):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Slug already in use: {slug}")
