"""
Sync/Merge Engine

Reconciles three sources into one newest-first timeline:
1. the on-device transaction list
2. this user's private document in Drive ("own" document)
3. the partner's shared document, when Partner Mode is on

DESIGN DECISION: Availability over consistency. Every remote step can
fail (network, permission, missing file). A failing step degrades to an
empty result or a skipped write and is recorded in the SyncResult; the
public methods never raise. The device's own data is always the fallback.

CONCURRENCY: Remote documents are overwritten whole with no version
check. Two devices syncing at the same moment can lose one side's
update; this is accepted. Callers must not run overlapping syncs against
the same local store.
"""

from typing import Optional

import structlog

from expense_sync.audit import AuditLogger
from expense_sync.config import DriveSettings, get_settings
from expense_sync.models.partner import PartnerLink
from expense_sync.models.sync import RemoteFetch, SyncResult, SyncSource
from expense_sync.models.transaction import Transaction
from expense_sync.partner.discovery import SharedFileLocator
from expense_sync.partner.manager import PartnerLinkManager
from expense_sync.services.storage import (
    DriveScope,
    RemoteNotFoundError,
    RemoteStoreError,
    RemoteStoreInterface,
    TransactionStore,
)
from expense_sync.sync.merge import (
    merge_own_wins,
    merge_remote_wins,
    sort_timeline,
    tag_owner,
)


logger = structlog.get_logger(__name__)


class SyncEngine:
    """
    The only writer of remote documents and the only component that
    replaces the full local transaction list.
    """

    def __init__(
        self,
        remote: RemoteStoreInterface,
        transactions: TransactionStore,
        partner: PartnerLinkManager,
        locator: Optional[SharedFileLocator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[DriveSettings] = None,
    ):
        self._settings = settings or get_settings().drive
        self._remote = remote
        self._transactions = transactions
        self._partner = partner
        self._locator = locator or SharedFileLocator(remote, partner, self._settings)
        self._audit_logger = audit_logger

    # -------------------------------------------------------------------------
    # Degradation helpers
    # -------------------------------------------------------------------------

    async def _degraded(
        self,
        operation: str,
        reason: str,
        reasons: list[str],
        handle: Optional[str] = None,
    ) -> None:
        logger.warning("remote_operation_degraded", operation=operation, reason=reason, handle=handle)
        reasons.append(f"{operation}: {reason}")
        if self._audit_logger:
            await self._audit_logger.log_remote_failure(operation, reason, handle)

    async def _own_handle(self, reasons: list[str], create: bool) -> Optional[str]:
        name = self._settings.own_file_name
        try:
            handle = await self._remote.find_file(name, DriveScope.APP_DATA)
            if handle is None and create:
                handle = await self._remote.create_file(name, DriveScope.APP_DATA, [])
            return handle
        except RemoteStoreError as e:
            await self._degraded("locate_own_file", str(e), reasons)
            return None

    async def _read(self, handle: str, operation: str, reasons: list[str]) -> RemoteFetch:
        try:
            return RemoteFetch(transactions=await self._remote.read_file(handle))
        except RemoteStoreError as e:
            await self._degraded(operation, str(e), reasons, handle)
            return RemoteFetch.degraded(str(e))

    async def _write(
        self,
        handle: str,
        content: list[Transaction],
        operation: str,
        reasons: list[str],
    ) -> bool:
        try:
            return await self._remote.overwrite_file(handle, content)
        except RemoteStoreError as e:
            await self._degraded(operation, str(e), reasons, handle)
            return False

    async def _local_fallback(self, reason: str, reasons: list[str]) -> SyncResult:
        local = await self._transactions.get_all()
        if self._audit_logger:
            await self._audit_logger.log_sync_fell_back(reason, len(local))
        return SyncResult(
            transactions=local,
            source=SyncSource.LOCAL_FALLBACK,
            own_count=len(local),
            reasons=[*reasons, reason],
        )

    # -------------------------------------------------------------------------
    # Own document
    # -------------------------------------------------------------------------

    async def fetch_own_transactions(self) -> RemoteFetch:
        """
        Contents of the own document without creating it.

        A missing document is a normal state and reads as empty.
        """
        reasons: list[str] = []
        handle = await self._own_handle(reasons, create=False)
        if reasons:
            return RemoteFetch.degraded(reasons[0])
        if handle is None:
            return RemoteFetch()
        return await self._read(handle, "read_own_file", reasons)

    async def run_own_sync(self) -> SyncResult:
        """
        Reconcile the local list with the own document (remote wins).

        The merged list replaces both copies. If the remote read failed
        the remote copy is left as it was; the local list still carries
        everything to the next sync.
        """
        reasons: list[str] = []
        try:
            local = await self._transactions.get_all()
            handle = await self._own_handle(reasons, create=True)
            remote = (
                await self._read(handle, "read_own_file", reasons)
                if handle
                else RemoteFetch.degraded("own document unavailable")
            )

            merged = sort_timeline(merge_remote_wins(local, remote.transactions))

            if not await self._transactions.replace_all(merged):
                return await self._local_fallback("local write failed", reasons)

            remote_written = False
            if handle and remote.ok:
                remote_written = await self._write(handle, merged, "write_own_file", reasons)
        except Exception as e:
            logger.exception("own_sync_failed")
            return await self._local_fallback(f"own sync failed: {e}", reasons)

        logger.info(
            "own_sync_completed",
            local=len(local),
            remote=len(remote.transactions),
            merged=len(merged),
            remote_written=remote_written,
        )
        return SyncResult(
            transactions=merged,
            own_count=len(merged),
            remote_written=remote_written,
            reasons=reasons,
        )

    async def sync_own(self) -> list[Transaction]:
        return (await self.run_own_sync()).transactions

    async def append(self, transaction: Transaction) -> bool:
        """
        Prepend one new record to the own document.

        The caller has already stored it locally. If the document cannot
        be read the write is skipped; the next sync carries the record.
        """
        reasons: list[str] = []
        handle = await self._own_handle(reasons, create=True)
        if handle is None:
            return False
        current = await self._read(handle, "read_own_file", reasons)
        if not current.ok:
            return False
        return await self._write(
            handle,
            [transaction, *current.transactions],
            "append_own_file",
            reasons,
        )

    # -------------------------------------------------------------------------
    # Partner timeline
    # -------------------------------------------------------------------------

    async def resolve_partner_handle(
        self,
        settings: PartnerLink,
        reasons: Optional[list[str]] = None,
    ) -> Optional[str]:
        """Cached partner handle, or discover and cache it."""
        if settings.partner_file_handle:
            return settings.partner_file_handle

        reasons = reasons if reasons is not None else []
        try:
            match = await self._locator.discover_partner_file(settings.partner_email)
        except RemoteStoreError as e:
            await self._degraded("discover_partner_file", str(e), reasons)
            return None

        if match is None:
            return None
        await self._partner.set_partner_file_handle(match.handle)
        return match.handle

    async def _fetch_partner(
        self,
        settings: PartnerLink,
        reasons: list[str],
    ) -> tuple[Optional[str], list[Transaction]]:
        handle = await self.resolve_partner_handle(settings, reasons)
        if handle is None:
            return None, []

        try:
            return handle, await self._remote.read_file(handle)
        except RemoteNotFoundError as e:
            if not settings.partner_file_handle:
                await self._degraded("read_partner_file", str(e), reasons, handle)
                return handle, []
            # Cached handle went stale: drop it and rediscover once
            logger.info("partner_handle_stale", handle=handle)
            await self._partner.clear_partner_file_handle()
            fresh = settings.model_copy(update={"partner_file_handle": None})
            return await self._fetch_partner(fresh, reasons)
        except RemoteStoreError as e:
            await self._degraded("read_partner_file", str(e), reasons, handle)
            return handle, []

    async def run_partner_sync(self, self_email: str) -> SyncResult:
        """
        Own sync, then fold in the partner's shared document (own wins).

        The combined timeline is returned only; the local list keeps
        just this user's records.
        """
        own = await self.run_own_sync()
        tagged_own = tag_owner(own.transactions, self_email)
        reasons = list(own.reasons)

        try:
            settings = await self._partner.get_settings()
            if not settings.is_active:
                return own.model_copy(update={"transactions": tagged_own})

            handle, partner_records = await self._fetch_partner(settings, reasons)
            tagged_partner = tag_owner(partner_records, settings.partner_email)
            merged = sort_timeline(merge_own_wins(tagged_own, tagged_partner))
        except Exception as e:
            logger.exception("partner_sync_failed")
            if self._audit_logger:
                await self._audit_logger.log_error("partner_sync_failed", str(e))
            return own.model_copy(update={
                "transactions": tagged_own,
                "reasons": [*reasons, f"partner sync failed: {e}"],
            })

        if self._audit_logger:
            await self._audit_logger.log_sync_completed(
                own_count=len(tagged_own),
                partner_count=len(tagged_partner),
                total=len(merged),
                remote_written=own.remote_written,
            )
        return SyncResult(
            transactions=merged,
            source=own.source,
            own_count=len(tagged_own),
            partner_count=len(tagged_partner),
            remote_written=own.remote_written,
            partner_file_handle=handle,
            reasons=reasons,
        )

    async def sync_with_partner(self, self_email: str) -> list[Transaction]:
        return (await self.run_partner_sync(self_email)).transactions

    async def publish_shared_snapshot(self, self_email: str) -> bool:
        """
        Overwrite the shared document with the own document's records,
        tagged with ``self_email``. No-op success when Partner Mode is off.
        """
        settings = await self._partner.get_settings()
        if not settings.enabled:
            return True

        handle = await self._locator.find_or_create_shared_file()
        if handle is None:
            return False

        own = await self.fetch_own_transactions()
        if not own.ok:
            return False

        snapshot = tag_owner(own.transactions, self_email)
        reasons: list[str] = []
        written = await self._write(handle, snapshot, "write_shared_file", reasons)
        if written and self._audit_logger:
            await self._audit_logger.log_shared_snapshot(handle, len(snapshot))
        return written
