# luckydraw/deck_service.py
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ValidationError

from .models_entity import DeckItem, DeckState
from .schemas import DeckIn, DepositIn, LoginIn, StoredDeck


class DeckValidationError(ValueError):
    """Deck input broke a rule; the message names the first one broken."""


def first_error_message(exc: ValidationError) -> str:
    """Turn the first pydantic error into a short human readable message."""
    errors = exc.errors()
    if not errors:
        return "Invalid data"
    first = errors[0]
    msg = first.get("msg", "Invalid data")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, ") :]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {msg}" if loc else msg


def _validate(model: type[BaseModel], data: Any) -> Tuple[bool, str, Optional[BaseModel]]:
    try:
        return True, "", model.model_validate(data)
    except ValidationError as e:
        return False, first_error_message(e), None


def validate_deck_payload(data: Dict[str, Any]) -> Tuple[bool, str, Optional[DeckState]]:
    """
    Validate an admin deck payload.
    Returns (is_valid, error_message_or_empty, canonical_state).

    A missing ``remaining`` means "full", i.e. equal to ``quantity``.
    """
    ok, msg, parsed = _validate(DeckIn, data)
    if not ok:
        return False, msg, None

    state = DeckState(
        deck=[
            DeckItem(
                amount=item.amount,
                quantity=item.quantity,
                remaining=item.quantity if item.remaining is None else item.remaining,
            )
            for item in parsed.deck
        ]
    )
    try:
        return True, "", canonicalize(state)
    except DeckValidationError as e:
        return False, str(e), None


def validate_deposit_payload(data: Any) -> Tuple[bool, str, Optional[DepositIn]]:
    return _validate(DepositIn, data)


def validate_login_payload(data: Any) -> Tuple[bool, str, Optional[LoginIn]]:
    return _validate(LoginIn, data)


def canonicalize(state: DeckState) -> DeckState:
    """
    Clamp each ``remaining`` to its ``quantity``, sort ascending by amount
    and check every deck rule.

    Raises:
        DeckValidationError: with the first violated rule.
    """
    clamped = DeckState(
        deck=[
            DeckItem(item.amount, item.quantity, min(item.remaining, item.quantity))
            for item in state.deck
        ]
    ).sorted()
    try:
        StoredDeck.model_validate(clamped.to_dict())
    except ValidationError as e:
        raise DeckValidationError(first_error_message(e)) from e
    return clamped


def parse_stored_deck(data: Any) -> DeckState:
    """Parse the persisted deck record; raises ValidationError if it is off-schema."""
    stored = StoredDeck.model_validate(data)
    return DeckState(
        deck=[DeckItem(i.amount, i.quantity, i.remaining) for i in stored.deck]
    ).sorted()
