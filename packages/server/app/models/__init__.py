# SQLModel definitions: imported here to ensure metadata is populated before create_all.
from .base import TimestampMixin  # noqa: F401
from .subscription import SubscriptionRecord  # noqa: F401
from .order import OrderRecord  # noqa: F401
