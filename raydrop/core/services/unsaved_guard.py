"""
Unsaved-changes guard for navigation away from the wizard.
"""
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from .logger import get_logger
from .wizard import WizardController

logger = get_logger("unsaved_guard")


class NavigationKind(str, Enum):
    TAB = "tab"
    EDIT = "edit"
    NEW = "new"


@dataclass(frozen=True)
class NavigationAction:
    """A navigation that would leave the current wizard state."""
    kind: NavigationKind
    tab: Optional[str] = None
    draft_id: Optional[str] = None


Performer = Callable[[NavigationAction], Union[None, Awaitable[None]]]


class UnsavedChangesGuard:
    """Defers navigation while the wizard holds unsaved edits.

    Only one action can be pending; a newer request replaces an older one.
    """

    def __init__(self, wizard: WizardController):
        self._wizard = wizard
        self._pending: Optional[NavigationAction] = None
        self._perform: Optional[Performer] = None
        self.error: Optional[str] = None

    @property
    def pending(self) -> Optional[NavigationAction]:
        return self._pending

    @property
    def is_prompting(self) -> bool:
        return self._pending is not None

    async def request(self, action: NavigationAction, perform: Performer) -> bool:
        """Run `perform(action)` now, or hold it until the user decides.

        Returns:
            True if the action ran immediately
        """
        if not self._wizard.has_unsaved_changes:
            await self._run(perform, action)
            return True

        if self._pending is not None:
            logger.debug("pending_navigation_replaced", previous=self._pending.kind.value)
        self._pending = action
        self._perform = perform
        self.error = None
        return False

    async def discard(self) -> bool:
        """Drop the edits and complete the pending action."""
        if self._pending is None:
            return False
        self._wizard.discard_changes()
        return await self._complete()

    async def save(self) -> bool:
        """Save the edits, then complete the pending action.

        A failed save keeps the prompt open and does not navigate.
        """
        if self._pending is None:
            return False
        saved = await self._wizard.save()
        if saved is None:
            self.error = "Failed to save changes"
            return False
        return await self._complete()

    def cancel(self) -> None:
        """Abort the pending action; the wizard is left untouched."""
        self._pending = None
        self._perform = None
        self.error = None

    async def _complete(self) -> bool:
        action, perform = self._pending, self._perform
        self.cancel()
        await self._run(perform, action)
        return True

    @staticmethod
    async def _run(perform: Performer, action: NavigationAction) -> None:
        outcome = perform(action)
        if inspect.isawaitable(outcome):
            await outcome
