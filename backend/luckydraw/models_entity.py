# luckydraw/models_entity.py
from dataclasses import dataclass, field
from typing import List


@dataclass
class DeckItem:
    amount: int
    quantity: int
    remaining: int

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "quantity": self.quantity,
            "remaining": self.remaining,
        }

    def to_public(self) -> dict:
        return {"amount": self.amount, "remaining": self.remaining}


@dataclass
class DeckState:
    deck: List[DeckItem] = field(default_factory=list)

    @property
    def remaining_total(self) -> int:
        return sum_remaining(self.deck)

    def sorted(self) -> "DeckState":
        """Return a copy ordered ascending by amount (the canonical order)."""
        return DeckState(
            deck=[
                DeckItem(i.amount, i.quantity, i.remaining)
                for i in sorted(self.deck, key=lambda i: i.amount)
            ]
        )

    def find(self, amount: int) -> DeckItem | None:
        for item in self.deck:
            if item.amount == amount:
                return item
        return None

    def to_dict(self) -> dict:
        return {"deck": [item.to_dict() for item in self.deck]}


def sum_remaining(items) -> int:
    return sum(item.remaining for item in items)


DEFAULT_DECK_STATE = DeckState(
    deck=[
        DeckItem(amount=10_000, quantity=2, remaining=2),
        DeckItem(amount=20_000, quantity=3, remaining=3),
        DeckItem(amount=50_000, quantity=2, remaining=2),
        DeckItem(amount=100_000, quantity=1, remaining=1),
    ]
)
