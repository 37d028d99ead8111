# callpanel/auth/__init__.py
from .deps import require_admin, require_channel, require_tenant  # noqa: F401
from .tokens import issue_client_token, issue_token, strip_bearer, verify_token  # noqa: F401
