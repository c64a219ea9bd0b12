"""
Main Orchestrator for Expense Sync

This module ties together all the components and defines the
end-to-end flows for:
1. Startup sync (sign-in -> own sync -> partner merge)
2. Capture (manual / SMS / CSV -> local store -> own document -> shared document)
3. Partner settings actions (share & connect, link only, re-share, disconnect)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every record is stored locally before any network call
- Partner emails are validated before any I/O
- Every flow returns a value; nothing raises to the presentation layer
"""

from dataclasses import dataclass
from typing import Optional

from expense_sync.audit import AuditLogger
from expense_sync.models.partner import LinkResult, PartnerLink, ShareResult
from expense_sync.models.sync import SyncResult
from expense_sync.models.transaction import Transaction
from expense_sync.partner import PartnerLinkManager, SharedFileLocator
from expense_sync.partner.handshake import PartnerHandshake
from expense_sync.services.importers import CsvStatementImporter
from expense_sync.services.sms import SmsExtractor, SmsIntake
from expense_sync.services.storage import (
    FileKeyValueStore,
    GoogleDriveClient,
    LocalAuditStorage,
    LocalStoreInterface,
    RemoteStoreInterface,
    TransactionStore,
)
from expense_sync.sync import SyncEngine
from expense_sync.validation import PartnerEmailValidator


class StartupSyncFlow:
    """Runs once after sign-in: partner-aware sync of the timeline."""

    def __init__(self, engine: SyncEngine):
        self._engine = engine

    async def run(self, self_email: str) -> SyncResult:
        return await self._engine.run_partner_sync(self_email)


class TransactionCaptureFlow:
    """
    Records a new transaction.

    Flow:
    1. Store locally (durable before any network activity)
    2. Prepend to the own document
    3. Refresh the shared document if Partner Mode is on
    """

    def __init__(
        self,
        transactions: TransactionStore,
        engine: SyncEngine,
        importer: Optional[CsvStatementImporter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transactions
        self._engine = engine
        self._importer = importer or CsvStatementImporter()
        self._audit_logger = audit_logger

    async def capture(self, transaction: Transaction, self_email: str) -> bool:
        """
        Returns True if the record reached the own document; it is
        stored locally either way (unless the device store itself fails).
        """
        if not await self._transactions.add(transaction):
            return False

        appended = await self._engine.append(transaction)
        if appended:
            await self._engine.publish_shared_snapshot(self_email)

        if self._audit_logger:
            await self._audit_logger.log_transaction_captured(transaction.id, appended)
        return appended

    async def import_csv(self, csv_text: str) -> list[Transaction]:
        """
        Store every transaction found in a CSV export locally; the next
        sync uploads them. Re-imported rows replace the stored records
        with the same id.
        """
        result = self._importer.parse(csv_text)
        imported_ids = {tx.id for tx in result.transactions}
        current = [tx for tx in await self._transactions.get_all() if tx.id not in imported_ids]
        await self._transactions.replace_all([*result.transactions, *current])
        if self._audit_logger:
            await self._audit_logger.log_csv_imported(
                len(result.transactions),
                result.skipped_rows,
            )
        return result.transactions


@dataclass
class PartnerActionResult:
    """What the settings screen shows after an action."""
    success: bool
    message: str
    settings: Optional[PartnerLink] = None


class PartnerSettingsFlow:
    """
    Partner settings actions.

    Validation failures return before any I/O and leave state untouched.
    """

    def __init__(
        self,
        partner: PartnerLinkManager,
        handshake: PartnerHandshake,
        engine: SyncEngine,
        validator: Optional[PartnerEmailValidator] = None,
    ):
        self._partner = partner
        self._handshake = handshake
        self._engine = engine
        self._validator = validator or PartnerEmailValidator()

    async def share_and_connect(self, partner_email: str, self_email: str) -> PartnerActionResult:
        check = self._validator.validate(partner_email, self_email)
        if not check.is_valid:
            return PartnerActionResult(success=False, message=check.message or "")

        result: ShareResult = await self._handshake.share_with_partner(check.normalized_email)
        if not result.success:
            return PartnerActionResult(
                success=False,
                message=result.error or "Could not share transactions with your partner.",
            )

        await self._engine.publish_shared_snapshot(self_email)
        return PartnerActionResult(
            success=True,
            message=(
                f"Your transactions are now shared with {check.normalized_email}. "
                'Ask your partner to open the app and choose "Link Only" with your email.'
            ),
            settings=await self._partner.get_settings(),
        )

    async def link_only(self, partner_email: str, self_email: str) -> PartnerActionResult:
        check = self._validator.validate(partner_email, self_email)
        if not check.is_valid:
            return PartnerActionResult(success=False, message=check.message or "")

        result: LinkResult = await self._handshake.link_to_partner(check.normalized_email)
        if not result.success:
            return PartnerActionResult(success=False, message=result.error or "")

        message = f"You can now see {check.normalized_email}'s transactions."
        if not result.exact_owner_match:
            message += " The shared file's owner could not be verified."
        return PartnerActionResult(
            success=True,
            message=message,
            settings=await self._partner.get_settings(),
        )

    async def share_my_transactions(self, self_email: str) -> PartnerActionResult:
        result = await self._handshake.reshare()
        if not result.success:
            return PartnerActionResult(
                success=False,
                message=result.error or "Could not share your transactions.",
            )
        await self._engine.publish_shared_snapshot(self_email)
        settings = await self._partner.get_settings()
        return PartnerActionResult(
            success=True,
            message=f"Your transactions are now shared with {settings.partner_email}.",
            settings=settings,
        )

    async def disconnect(self) -> PartnerActionResult:
        settings = await self._partner.disable()
        return PartnerActionResult(
            success=True,
            message="Your transactions will no longer be shared.",
            settings=settings,
        )

    async def sync_now(self, self_email: str) -> PartnerActionResult:
        result = await self._engine.run_partner_sync(self_email)
        return PartnerActionResult(
            success=not result.degraded,
            message=f"Found {result.total} total transactions",
        )


@dataclass
class AppComponents:
    transactions: TransactionStore
    partner: PartnerLinkManager
    engine: SyncEngine
    handshake: PartnerHandshake
    sms_intake: SmsIntake
    startup: StartupSyncFlow
    capture: TransactionCaptureFlow
    partner_settings: PartnerSettingsFlow
    audit_logger: AuditLogger


def create_app_components(
    access_token: Optional[str] = None,
    local_store: Optional[LocalStoreInterface] = None,
    remote: Optional[RemoteStoreInterface] = None,
    persist_audit: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        access_token: OAuth token from the sign-in flow. Ignored when
                      ``remote`` is given.
        local_store: On-device store; defaults to FileKeyValueStore.
        remote: Remote document store; defaults to GoogleDriveClient.
        persist_audit: Keep recent audit events in the local store.
    """
    local_store = local_store or FileKeyValueStore()
    remote = remote or GoogleDriveClient(access_token=access_token)

    audit_logger = AuditLogger(LocalAuditStorage(local_store) if persist_audit else None)
    transactions = TransactionStore(local_store)
    partner = PartnerLinkManager(local_store, audit_logger=audit_logger)
    locator = SharedFileLocator(remote, partner)
    engine = SyncEngine(
        remote,
        transactions,
        partner,
        locator=locator,
        audit_logger=audit_logger,
    )
    handshake = PartnerHandshake(
        remote,
        partner,
        engine,
        locator=locator,
        audit_logger=audit_logger,
    )

    return AppComponents(
        transactions=transactions,
        partner=partner,
        engine=engine,
        handshake=handshake,
        sms_intake=SmsIntake(transactions, SmsExtractor(), audit_logger),
        startup=StartupSyncFlow(engine),
        capture=TransactionCaptureFlow(transactions, engine, audit_logger=audit_logger),
        partner_settings=PartnerSettingsFlow(partner, handshake, engine),
        audit_logger=audit_logger,
    )
