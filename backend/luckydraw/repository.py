# luckydraw/repository.py
import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .allocator import pick_weighted, secure_random_int
from .deck_service import canonicalize, parse_stored_deck
from .models_entity import DEFAULT_DECK_STATE, DeckItem, DeckState
from .serial_queue import SerialQueue

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    state: Optional[DeckState]
    must_reseed: bool = False
    reason: str = ""


@dataclass
class DrawResult:
    exhausted: bool
    remaining_total: int
    amount: Optional[int] = None


@dataclass
class InventoryResult:
    deck: List[DeckItem] = field(default_factory=list)
    remaining_total: int = 0


class DeckStore:
    """
    Sole owner of the persisted deck file.

    Every public operation is a full read-modify-write run through one
    SerialQueue, so operations never interleave even while a file read or
    write is in flight.
    """

    def __init__(
        self,
        path: Path,
        random_int: Callable[[int], int] = secure_random_int,
        queue: SerialQueue | None = None,
    ):
        self._path = Path(path)
        self._random_int = random_int
        self._queue = queue or SerialQueue()

    @property
    def path(self) -> Path:
        return self._path

    # --- persistence (runs in a worker thread) ---

    def _read_file(self) -> LoadResult:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return LoadResult(state=None, must_reseed=True, reason="deck file missing")
        try:
            return LoadResult(state=parse_stored_deck(json.loads(raw.decode("utf-8"))))
        except (ValueError, RecursionError) as e:
            # ValueError covers UnicodeDecodeError, JSONDecodeError and
            # pydantic ValidationError; RecursionError is deeply nested JSON
            return LoadResult(state=None, must_reseed=True, reason=f"deck file invalid: {e!r:.200}")

    def _write_file(self, state: DeckState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    async def load(self) -> LoadResult:
        """Read the deck file without repairing it."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_file)

    async def _persist(self, state: DeckState) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_file, state)

    async def _read_or_reseed(self) -> DeckState:
        result = await self.load()
        if not result.must_reseed:
            return result.state
        logger.warning(f"Reseeding default deck at {self._path}: {result.reason}")
        seeded = DEFAULT_DECK_STATE.sorted()
        await self._persist(seeded)
        return seeded

    # --- operations ---

    async def get_state(self) -> DeckState:
        async def task():
            state = await self._read_or_reseed()
            return state.sorted()

        return await self._queue.run(task)

    async def save_state(self, next_state: DeckState) -> DeckState:
        """
        Validate, clamp, sort and persist ``next_state`` as the whole deck.

        Raises:
            DeckValidationError: nothing is written in that case.
        """
        canonical = canonicalize(next_state)

        async def task():
            await self._persist(canonical)
            logger.info(
                f"Deck saved: {len(canonical.deck)} amounts, "
                f"{canonical.remaining_total} remaining"
            )
            return canonical.sorted()

        return await self._queue.run(task)

    async def add_inventory(self, amount: int, quantity: int) -> InventoryResult:
        """
        Top up ``amount`` by ``quantity`` (both quantity and remaining).
        Creates the item when the amount is new.

        Raises:
            DeckValidationError: on out-of-bounds input or if the result
            would break a deck rule; nothing is written in that case.
        """
        # bounds are checked up front so a bad call never touches the file
        canonicalize(DeckState(deck=[DeckItem(amount, quantity, quantity)]))

        async def task():
            state = await self._read_or_reseed()
            item = state.find(amount)
            if item is None:
                state.deck.append(DeckItem(amount, quantity, quantity))
            else:
                item.quantity += quantity
                item.remaining += quantity
            updated = canonicalize(state)
            await self._persist(updated)
            logger.info(
                f"Added {quantity} x {amount}; {updated.remaining_total} remaining"
            )
            return InventoryResult(
                deck=updated.deck, remaining_total=updated.remaining_total
            )

        return await self._queue.run(task)

    async def draw(self) -> DrawResult:
        async def task():
            state = await self._read_or_reseed()
            total = state.remaining_total
            if total <= 0:
                return DrawResult(exhausted=True, remaining_total=0)

            index = pick_weighted(state.deck, random_int=self._random_int)
            chosen = state.deck[index]
            chosen.remaining -= 1
            await self._persist(state.sorted())
            logger.info(f"Drew {chosen.amount}; {total - 1} remaining")
            return DrawResult(
                exhausted=False, amount=chosen.amount, remaining_total=total - 1
            )

        return await self._queue.run(task)

    async def public_config(self) -> dict:
        state = await self.get_state()
        return {
            "deck": [item.to_public() for item in state.deck],
            "remainingTotal": state.remaining_total,
        }
