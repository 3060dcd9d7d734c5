# secureweb/store.py

"""
Repository abstraction over the demo records.

Handlers never touch module-level lists: they receive an `InMemoryStore`
through `Depends(get_store)` (see `dependencies.py`), which keeps the lookup
and authorization logic independent of how long the data lives.

`build_demo_store` seeds the users, orders and bearer tokens the demo routes
expect.
"""

from typing import Dict, Iterable, List

from secureweb.config import Settings
from secureweb.passwords import hash_password
from secureweb.schemas import Order, Role, User


class InMemoryStore:
    """Read-only lookups over a preloaded record set."""

    def __init__(
        self,
        users: Iterable[User] = (),
        orders: Iterable[Order] = (),
        tokens: Dict[str, int] | None = None,
    ):
        self._users: Dict[int, User] = {u.id: u for u in users}
        self._orders: Dict[int, Order] = {o.id: o for o in orders}
        self._tokens: Dict[str, int] = dict(tokens or {})

    def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def find_user_by_username(self, username: str) -> User | None:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def get_order(self, order_id: int) -> Order | None:
        return self._orders.get(order_id)

    def list_orders(self) -> List[Order]:
        return list(self._orders.values())

    def principal_for_token(self, token: str | None) -> User | None:
        """Resolve a demo bearer token to its user, or None."""
        if not token:
            return None
        user_id = self._tokens.get(token)
        return self._users.get(user_id) if user_id is not None else None


def build_demo_store(config: Settings) -> InMemoryStore:
    """
    Build the store used by the running service.

    The login user's password is hashed here, once, with the configured
    bcrypt work factor.
    """
    users = [
        User(id=1, name="Alice", username="alice", role=Role.CUSTOMER.value, department="north"),
        User(id=2, name="Bob", username="bob", role=Role.CUSTOMER.value, department="south"),
        User(id=3, name="Charlie", username="charlie", role=Role.SUPPORT.value, department="north"),
        User(
            id=4,
            name="Student",
            username=config.demo_username,
            role=Role.CUSTOMER.value,
            department="north",
            password_hash=hash_password(
                config.demo_password.get_secret_value(), config.bcrypt_rounds
            ),
        ),
    ]
    orders = [
        Order(id=1, owner_id=1, item="Laptop", region="north", total=2000),
        Order(id=2, owner_id=1, item="Mouse", region="north", total=40),
        Order(id=3, owner_id=2, item="Monitor", region="south", total=300),
        Order(id=4, owner_id=2, item="Keyboard", region="south", total=60),
    ]
    tokens = {
        "token-alice": 1,
        "token-bob": 2,
        "token-charlie": 3,
    }
    return InMemoryStore(users, orders, tokens)
