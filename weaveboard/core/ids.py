from __future__ import annotations


class IdentityAllocator:
    """Issues item ids for the active board.

    The counter belongs to the board: the registry resets it from
    `Board.item_id_counter` whenever a board becomes active and writes
    `value` back when the board is saved.
    """

    def __init__(self, counter: int = 1):
        self._counter = int(counter)

    @property
    def value(self) -> int:
        return self._counter

    def reset(self, value: int) -> None:
        self._counter = int(value)

    def next_id(self) -> str:
        self._counter += 1
        return str(self._counter)
