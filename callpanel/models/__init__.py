from callpanel.models.tenant import Tenant  # noqa: F401
from callpanel.models.channel import Channel  # noqa: F401
from callpanel.models.call import Call  # noqa: F401
