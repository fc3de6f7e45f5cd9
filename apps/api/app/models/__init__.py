# Import SQLAlchemy models so they register on Base.metadata
from app.models.order import OrderRecord, OrderStatus  # noqa: F401
from app.models.user import UserRecord, UserRole  # noqa: F401
