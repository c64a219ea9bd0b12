"""
Partner Handshake Protocol

Person A shares, person B links:

SHARE (A, with B's email):
1. Find or create A's shared document
2. Copy A's current own transactions into it
3. Grant B reader permission
4. Enable Partner Mode on A's device

LINK (B, with A's email):
1. Search files shared with B under the shared document name
2. Prefer the one owned by A; otherwise take the first (best effort)
3. Enable Partner Mode and cache the handle on B's device

Failures are returned as ShareResult / LinkResult with a reason. Local
partner state is only changed after the remote steps succeed.
"""

from typing import Optional

import structlog

from expense_sync.audit import AuditLogger
from expense_sync.models.partner import LinkResult, ShareResult
from expense_sync.partner.discovery import SharedFileLocator
from expense_sync.partner.manager import PartnerLinkManager
from expense_sync.services.storage import RemoteStoreError, RemoteStoreInterface
from expense_sync.sync.engine import SyncEngine
from expense_sync.validation import normalize_email


logger = structlog.get_logger(__name__)

CREATE_FAILED_MESSAGE = (
    "Could not create shared file. Check that the Drive API scope is enabled."
)


class PartnerHandshake:
    """Runs the share and link sides of the protocol."""

    def __init__(
        self,
        remote: RemoteStoreInterface,
        partner: PartnerLinkManager,
        engine: SyncEngine,
        locator: Optional[SharedFileLocator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._remote = remote
        self._partner = partner
        self._engine = engine
        self._locator = locator or SharedFileLocator(remote, partner)
        self._audit_logger = audit_logger

    async def _share_failed(self, partner_email: str, error: str) -> ShareResult:
        logger.warning("partner_share_failed", partner_email=partner_email, error=error)
        if self._audit_logger:
            await self._audit_logger.log_partner_share_failed(partner_email, error)
        return ShareResult(success=False, error=error)

    async def share_documents(self, partner_email: str) -> ShareResult:
        """
        Steps 1-3 of SHARE: shared document, copy, permission grant.

        Does not touch local partner state, so it doubles as the
        're-share' action once Partner Mode is on.
        """
        email = normalize_email(partner_email)

        handle = await self._locator.find_or_create_shared_file()
        if handle is None:
            return await self._share_failed(email, CREATE_FAILED_MESSAGE)

        own = await self._engine.fetch_own_transactions()
        if own.ok:
            try:
                await self._remote.overwrite_file(handle, own.transactions)
            except RemoteStoreError as e:
                # The permission grant below still makes the link usable
                logger.warning("shared_file_copy_failed", handle=handle, error=str(e))
        else:
            logger.warning("shared_file_copy_skipped", handle=handle, reason=own.reason)

        try:
            await self._remote.grant_reader_permission(handle, email)
        except RemoteStoreError as e:
            return await self._share_failed(email, e.reason or str(e))

        if self._audit_logger:
            await self._audit_logger.log_partner_shared(email, handle)
        return ShareResult(success=True, file_handle=handle)

    async def share_with_partner(self, partner_email: str) -> ShareResult:
        """Full SHARE side: documents and permission, then enable()."""
        result = await self.share_documents(partner_email)
        if result.success:
            await self._partner.enable(partner_email)
        return result

    async def reshare(self) -> ShareResult:
        """Re-run the share steps for the currently linked partner."""
        settings = await self._partner.get_settings()
        if not settings.is_active:
            return ShareResult(success=False, error="Partner mode is not enabled")
        return await self.share_documents(settings.partner_email)

    async def link_to_partner(self, partner_email: str) -> LinkResult:
        """LINK side: discover the partner's document, then enable() and cache it."""
        email = normalize_email(partner_email)

        try:
            match = await self._locator.discover_partner_file(email)
        except RemoteStoreError as e:
            error = f"Could not search shared files: {e.reason or e}"
            return await self._link_failed(email, error)

        if match is None:
            error = (
                f"Could not find a shared file from {email}. Make sure your "
                "partner has shared their transactions with you first."
            )
            return await self._link_failed(email, error)

        await self._partner.enable(email)
        await self._partner.set_partner_file_handle(match.handle)

        if self._audit_logger:
            await self._audit_logger.log_partner_linked(email, match.handle, match.exact_owner_match)
        return LinkResult(
            success=True,
            file_handle=match.handle,
            exact_owner_match=match.exact_owner_match,
        )

    async def _link_failed(self, partner_email: str, error: str) -> LinkResult:
        logger.warning("partner_link_failed", partner_email=partner_email, error=error)
        if self._audit_logger:
            await self._audit_logger.log_partner_link_failed(partner_email, error)
        return LinkResult(success=False, error=error)
