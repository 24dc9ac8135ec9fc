# luckydraw/schemas.py
from pydantic import BaseModel, Field, model_validator
from typing import List

from .config import MAX_AMOUNT, MAX_DECK_SIZE, MAX_QUANTITY, MIN_AMOUNT


def _check_unique_amounts(items) -> None:
    seen = set()
    for item in items:
        if item.amount in seen:
            raise ValueError(f"Duplicate amount {item.amount} in deck")
        seen.add(item.amount)


class DeckItemIn(BaseModel):
    amount: int = Field(..., ge=MIN_AMOUNT, le=MAX_AMOUNT)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)
    remaining: int | None = Field(default=None, ge=0, le=MAX_QUANTITY)  # defaults to quantity

    @model_validator(mode="after")
    def check_remaining(self):
        if self.remaining is not None and self.remaining > self.quantity:
            raise ValueError(
                f"Remaining {self.remaining} exceeds quantity {self.quantity} "
                f"for amount {self.amount}"
            )
        return self


class DeckIn(BaseModel):
    deck: List[DeckItemIn] = Field(..., min_length=1, max_length=MAX_DECK_SIZE)

    @model_validator(mode="after")
    def check_unique(self):
        _check_unique_amounts(self.deck)
        return self


class StoredDeckItem(BaseModel):
    """One item as it must look once canonical (and on disk)."""

    amount: int = Field(..., ge=MIN_AMOUNT, le=MAX_AMOUNT)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)
    remaining: int = Field(..., ge=0, le=MAX_QUANTITY)

    @model_validator(mode="after")
    def check_remaining(self):
        if self.remaining > self.quantity:
            raise ValueError(
                f"Remaining {self.remaining} exceeds quantity {self.quantity} "
                f"for amount {self.amount}"
            )
        return self


class StoredDeck(BaseModel):
    deck: List[StoredDeckItem] = Field(..., min_length=1, max_length=MAX_DECK_SIZE)

    @model_validator(mode="after")
    def check_unique(self):
        _check_unique_amounts(self.deck)
        return self


class DepositIn(BaseModel):
    amount: int = Field(..., ge=MIN_AMOUNT, le=MAX_AMOUNT)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)


class LoginIn(BaseModel):
    password: str = Field(..., min_length=1, max_length=200)
