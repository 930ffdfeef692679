"""Exception types raised by the MixMind scheduling core."""

from __future__ import annotations


class MixMindError(Exception):
    """Base class for scheduler errors."""
    pass


class CatalogError(MixMindError):
    """Raised when a lesson catalog cannot be loaded or is inconsistent."""
    pass


class UnknownItemError(MixMindError, KeyError):
    """Raised when an item id is not part of the loaded catalog."""

    def __init__(self, item_id: str):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Unknown lesson item: {self.item_id}"


class UnknownModuleError(MixMindError, KeyError):
    """Raised on strict lookup of a module that is not in the catalog."""

    def __init__(self, module_id: str):
        super().__init__(module_id)
        self.module_id = module_id

    def __str__(self) -> str:
        return f"Unknown module: {self.module_id}"


class AttemptOutsidePlanError(MixMindError):
    """
    Raised when a session is closed with attempts for items it never planned.

    This is a caller bug, not a learner-facing condition.
    """

    def __init__(self, item_ids: list[str]):
        self.item_ids = item_ids
        super().__init__(f"Attempts reference items outside the plan: {', '.join(item_ids)}")


class SessionClosedError(MixMindError):
    """Raised when a lesson that was already closed is used again."""
    pass
