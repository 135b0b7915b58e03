import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer
from sqlmodel import Field, SQLModel, Column, String


class Role(str, enum.Enum):
    customer = "customer"
    banker = "banker"


class EntryType(str, enum.Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(sa_column=Column(String(30), unique=True, nullable=False))
    password_hash: str = Field(sa_column=Column(String(255), nullable=False))
    role: Role


class LedgerEntry(SQLModel, table=True):
    """One immutable deposit or withdrawal; ``balance`` is the balance right after it."""

    __tablename__ = "accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    type: EntryType
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    balance: Decimal = Field(max_digits=10, decimal_places=2)
