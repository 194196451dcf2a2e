"""In-memory store for the currently selected item ids."""

from typing import Iterator


class SelectionStore:
    """Set of selected item ids that remembers toggle order."""

    def __init__(self) -> None:
        # dict keys keep insertion order and uniqueness
        self._selected: dict[str, None] = {}

    def toggle(self, item_id: str) -> bool:
        """Add the id if absent, remove it if present.

        Returns:
            Membership of the id after the toggle
        """
        if item_id in self._selected:
            del self._selected[item_id]
            return False
        self._selected[item_id] = None
        return True

    def contains(self, item_id: str) -> bool:
        return item_id in self._selected

    def all(self) -> frozenset[str]:
        return frozenset(self._selected)

    def ordered(self) -> list[str]:
        """Selected ids in the order they were toggled on."""
        return list(self._selected)

    def clear(self) -> None:
        self._selected.clear()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._selected

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._selected))

    def __len__(self) -> int:
        return len(self._selected)
