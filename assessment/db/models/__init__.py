# SQLAlchemy models
from .attempts import DiagnosticAttempt, MockTestAttempt
from .base import Base
from .items import Item, MockTest

__all__ = [
    # Base
    "Base",
    # Item store
    "Item",
    "MockTest",
    # Attempts
    "DiagnosticAttempt",
    "MockTestAttempt",
]
