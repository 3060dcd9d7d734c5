# secureweb/schemas.py

"""
Defines Pydantic data models for the SecureWeb API.

These models serve three primary purposes:
1. Describe the principals and records the authorization check reasons about
2. Ensure incoming request bodies conform to expected shapes and types
3. Provide automatic OpenAPI schema generation for FastAPI

`Principal` and `Resource` are the minimal shapes the authorization check
needs. `User` and `Order` extend them with the fields the demo store keeps.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class Role(str, Enum):
    CUSTOMER = "customer"
    SUPPORT = "support"


class Principal(BaseModel):
    """
    An authenticated caller.

    `role` is a plain string so that records carrying roles this service does
    not know about can still be represented (and denied).
    """
    model_config = ConfigDict(frozen=True)

    id: int
    role: str
    department: str


class Resource(BaseModel):
    """A record owned by one principal and scoped to a region."""
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: int
    region: str


class User(Principal):
    name: str
    username: str
    password_hash: str | None = Field(default=None, exclude=True)


class Order(Resource):
    item: str
    total: float


class OrderList(BaseModel):
    current_user: str
    orders: List[Order]


class ReadRequest(BaseModel):
    """
    Body of `POST /read`.

    Fields:
        filename (str | None): Reference relative to the files directory;
            may be percent-encoded. Absence is reported by the path guard.
    """
    filename: StrictStr | None = None


class LoginRequest(BaseModel):
    username: StrictStr = Field(..., max_length=128)
    password: StrictStr = Field(..., max_length=256)
