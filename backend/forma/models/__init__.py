# Import all models so Base.metadata is populated for create_all.
from forma.models.account import Account  # noqa: F401
from forma.models.transaction import Transaction  # noqa: F401
from forma.models.user_settings import UserSettings  # noqa: F401
