"""
SMS Intake

Receives raw SMS bodies from the platform one at a time and stores the
ones that look like transactions. Matched records go to the on-device
store only; getting them to Drive is the next sync's job, so an
incoming SMS never waits on the network.
"""

from typing import Iterable, Optional

import structlog

from expense_sync.audit import AuditLogger
from expense_sync.models.transaction import SmsExtraction
from expense_sync.services.sms.parser import SmsExtractor
from expense_sync.services.storage import TransactionStore


logger = structlog.get_logger(__name__)


class SmsIntake:
    """Feeds each delivered SMS body through the extractor exactly once."""

    def __init__(
        self,
        transactions: TransactionStore,
        extractor: Optional[SmsExtractor] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transactions
        self._extractor = extractor or SmsExtractor()
        self._audit_logger = audit_logger

    async def handle(self, body: Optional[str]) -> SmsExtraction:
        """
        Process one SMS body.

        Returns the extraction; when it matched, the transaction has
        already been stored with status 'Review'.
        """
        result = self._extractor.extract(body or "")

        if not result.matched or result.transaction is None:
            if self._audit_logger and body:
                await self._audit_logger.log_sms_ignored(body)
            return result

        stored = await self._transactions.add(result.transaction)
        if not stored:
            logger.warning("sms_transaction_not_stored", transaction_id=result.transaction.id)

        if self._audit_logger:
            await self._audit_logger.log_sms_matched(
                transaction_id=result.transaction.id,
                rule_name=result.rule_name or "",
                amount=str(result.transaction.amount),
            )
        return result

    async def handle_many(self, bodies: Iterable[Optional[str]]) -> list[SmsExtraction]:
        """Process a batch sequentially, preserving delivery order."""
        results = []
        for body in bodies:
            results.append(await self.handle(body))
        return results
