"""
Post-import disposition.

After a successful import the imported draft ids wait for the user's choice:
delete the local copies, or keep them as imported. Dismissing the prompt
keeps them, so nothing is left half-resolved.
"""
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from raydrop.core.domain.draft import DraftStatus
from raydrop.core.domain.results import FanOutResult, ImportResult
from .draft_lifecycle import DraftLifecycleController
from .logger import get_logger

logger = get_logger("disposition")


@dataclass
class PendingDisposition:
    """Draft ids awaiting a keep/delete decision."""
    draft_ids: List[str] = field(default_factory=list)
    is_bulk: bool = False
    result: Optional[ImportResult] = None


class PostImportDisposition:
    """Resolves the keep/delete choice for just-imported drafts."""

    def __init__(self, lifecycle: DraftLifecycleController):
        self._lifecycle = lifecycle
        self.pending: Optional[PendingDisposition] = None
        self.last_outcome: Optional[FanOutResult] = None

    @property
    def is_open(self) -> bool:
        return self.pending is not None

    def is_pending(self, draft_id: str) -> bool:
        """The draft was imported and is still waiting for keep/delete."""
        return self.pending is not None and draft_id in self.pending.draft_ids

    async def begin(
        self,
        draft_ids: List[str],
        is_bulk: bool = False,
        result: Optional[ImportResult] = None
    ) -> PendingDisposition:
        """Open the disposition step for a group of imported drafts.

        A group still pending is kept first, so its drafts end up imported.
        """
        if self.pending is not None:
            logger.info("disposition_superseded", draft_ids=self.pending.draft_ids)
            await self.keep()
        self.pending = PendingDisposition(
            draft_ids=list(draft_ids), is_bulk=is_bulk, result=result
        )
        return self.pending

    async def delete(self) -> Optional[FanOutResult]:
        """Delete every pending draft locally."""
        return await self._resolve("delete", self._lifecycle.delete)

    async def keep(self) -> Optional[FanOutResult]:
        """Mark every pending draft as imported."""
        async def mark_imported(draft_id: str) -> bool:
            return await self._lifecycle.set_status(draft_id, DraftStatus.IMPORTED)

        return await self._resolve("keep", mark_imported)

    async def dismiss(self) -> Optional[FanOutResult]:
        """Close the prompt without a choice; resolves exactly like keep."""
        return await self.keep()

    async def _resolve(
        self,
        action: str,
        operation: Callable[[str], Awaitable[bool]]
    ) -> Optional[FanOutResult]:
        if self.pending is None:
            return None

        pending = self.pending
        self.pending = None

        outcome = FanOutResult(action=action)
        for draft_id in pending.draft_ids:
            try:
                ok = await operation(draft_id)
            except Exception as e:
                logger.error(
                    "disposition_item_failed",
                    exc_info=True,
                    action=action,
                    draft_id=draft_id,
                    error=str(e)
                )
                ok = False
            (outcome.succeeded if ok else outcome.failed).append(draft_id)

        if outcome.failed:
            verb = "delete" if action == "delete" else "update"
            outcome.error = (
                f"Failed to {verb} {len(outcome.failed)} of "
                f"{len(pending.draft_ids)} test case(s)"
            )
            self._lifecycle.notify(outcome.error)

        logger.info(
            "disposition_resolved",
            action=action,
            is_bulk=pending.is_bulk,
            succeeded=len(outcome.succeeded),
            failed=len(outcome.failed)
        )
        self.last_outcome = outcome
        return outcome
