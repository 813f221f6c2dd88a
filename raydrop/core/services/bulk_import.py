"""
Bulk import orchestration.

Filters the selected drafts down to the eligible ones, submits them in a
single call and hands a successful batch to the disposition step as one
group. The outcome is all-or-nothing: there is no per-draft status.
"""
from typing import Iterable, List, Optional

from raydrop.core.domain.draft import Draft
from raydrop.core.domain.results import ImportResult
from raydrop.core.interfaces.repository import IXrayClient
from .disposition import PostImportDisposition
from .draft_lifecycle import DraftLifecycleController, DraftView
from .logger import get_logger

logger = get_logger("bulk_import")


class BulkImportOrchestrator:
    """Selection management and bulk submission for the drafts view."""

    def __init__(
        self,
        lifecycle: DraftLifecycleController,
        xray_client: IXrayClient,
        disposition: PostImportDisposition,
        active_project: Optional[str] = None
    ):
        """Initialize the orchestrator.

        Args:
            lifecycle: Source of drafts and selectability
            xray_client: Client issuing the bulk import call
            disposition: Disposition step opened after success
            active_project: Only drafts of this project (or of none) are imported
        """
        self._lifecycle = lifecycle
        self._client = xray_client
        self._disposition = disposition
        self.active_project = active_project
        self._selected: List[str] = []
        self.importing = False
        self.last_result: Optional[ImportResult] = None

    @property
    def selected_ids(self) -> List[str]:
        return list(self._selected)

    def is_selected(self, draft_id: str) -> bool:
        return draft_id in self._selected

    def toggle(self, draft_id: str) -> bool:
        """Toggle a draft in the selection.

        Only selectable drafts can enter the selection; any draft can leave it.

        Returns:
            True if the draft is selected afterwards
        """
        if draft_id in self._selected:
            self._selected.remove(draft_id)
            return False
        draft = self._lifecycle.get(draft_id)
        if draft is None or not self.is_importable(draft):
            return False
        self._selected.append(draft_id)
        return True

    def select_all(self) -> List[str]:
        """Select every selectable draft of the drafts view."""
        self._selected = [
            d.id for d in self._lifecycle.drafts_for_view(DraftView.DRAFTS)
            if self.is_importable(d)
        ]
        return self.selected_ids

    def deselect_all(self) -> None:
        self._selected = []

    def is_importable(self, draft: Draft) -> bool:
        """Whether the draft may go into a bulk import for the active project."""
        if not self._lifecycle.is_selectable(draft, DraftView.DRAFTS):
            return False
        if self._disposition.is_pending(draft.id):
            return False
        return not (
            draft.project_key and self.active_project
            and draft.project_key != self.active_project
        )

    def eligible_ids(self, draft_ids: Iterable[str]) -> List[str]:
        """Keep the known, importable ids, in input order."""
        eligible = []
        for draft_id in draft_ids:
            draft = self._lifecycle.get(draft_id)
            if draft is None or draft_id in eligible:
                continue
            if self.is_importable(draft):
                eligible.append(draft_id)
        return eligible

    async def bulk_import(self, draft_ids: Optional[Iterable[str]] = None) -> Optional[ImportResult]:
        """Submit the eligible drafts in one call.

        Args:
            draft_ids: Ids to import; the current selection when omitted

        Returns:
            ImportResult, or None when no eligible draft remained (no call made)
        """
        requested = self.selected_ids if draft_ids is None else list(draft_ids)
        ids = self.eligible_ids(requested)
        if not ids:
            logger.debug("bulk_import_skipped", requested=len(requested))
            return None

        logger.info("bulk_import_submitted", count=len(ids), skipped=len(requested) - len(ids))
        self.importing = True
        try:
            response = await self._client.bulk_import(ids)
        except Exception as e:
            logger.error("bulk_import_failed", exc_info=True, count=len(ids), error=str(e))
            return self._failed(ids, str(e) or "Bulk import failed")
        finally:
            self.importing = False

        if not response.success:
            logger.log_import(ids, success=False, is_bulk=True, error=response.error)
            return self._failed(ids, response.error or "Bulk import failed")

        imported_ids = list(response.draft_ids) or ids
        # Keys can only be paired with drafts when the service reports one per draft
        if response.test_keys and len(response.test_keys) == len(imported_ids):
            issue_ids = response.test_issue_ids
            for index, draft_id in enumerate(imported_ids):
                issue_id = issue_ids[index] if len(issue_ids) == len(imported_ids) else None
                await self._lifecycle.record_import(draft_id, response.test_keys[index], issue_id)

        self._selected = []
        result = ImportResult(
            success=True,
            draft_ids=imported_ids,
            job_id=response.job_id,
            test_keys=list(response.test_keys),
            is_bulk_import=True,
        )
        self.last_result = result
        logger.log_import(
            imported_ids, success=True, is_bulk=True, job_id=response.job_id, test_keys=result.test_keys
        )
        await self._disposition.begin(imported_ids, is_bulk=True, result=result)
        return result

    def _failed(self, ids: List[str], error: str) -> ImportResult:
        result = ImportResult(success=False, draft_ids=ids, is_bulk_import=True, error=error)
        self.last_result = result
        self._lifecycle.notify(error)
        return result
