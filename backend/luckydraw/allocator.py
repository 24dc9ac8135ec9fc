# luckydraw/allocator.py
import secrets
from typing import Callable, Optional, Sequence

from .models_entity import DeckItem, sum_remaining


def secure_random_int(max_exclusive: int) -> int:
    """Unbiased integer in [0, max_exclusive) from the OS CSPRNG.

    ``secrets.randbelow`` draws with rejection sampling, so there is no
    modulo bias when max_exclusive does not divide the generator range.
    """
    if max_exclusive <= 1:
        return 0
    return secrets.randbelow(max_exclusive)


def pick_weighted(
    items: Sequence[DeckItem],
    ticket: Optional[int] = None,
    random_int: Callable[[int], int] = secure_random_int,
) -> int:
    """
    Pick the index of the winning item.

    Every unit of ``remaining`` is one ticket. A ticket ``r`` in [0, T) is
    drawn (or passed in) and the items are walked in order, accumulating
    ``remaining``, until the running sum passes ``r``.

    Raises:
        ValueError: if there is nothing left to draw or the ticket is out of range.
    """
    total = sum_remaining(items)
    if total <= 0:
        raise ValueError("Cannot draw from an exhausted deck")

    r = random_int(total) if ticket is None else ticket
    if not 0 <= r < total:
        raise ValueError(f"Ticket {r} outside [0, {total})")

    cursor = 0
    for index, item in enumerate(items):
        cursor += item.remaining
        if r < cursor:
            return index
    # unreachable while r < total
    raise ValueError(f"Ticket {r} did not land on any item")
