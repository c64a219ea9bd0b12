"""
Partner Link Manager

Owns the persisted Partner Mode state:
- the PartnerLink settings (enabled flag, partner email, cached handle
  of the partner's shared document, activation time)
- the cached handle of THIS user's own shared document

Both caches live on this instance's store and are injected wherever
they are needed; nothing else reads the storage keys directly.

Reads never fail: unreadable or corrupt settings fall back to defaults.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from expense_sync.audit import AuditLogger
from expense_sync.config import get_settings
from expense_sync.models.audit import AuditEventBuilder
from expense_sync.models.partner import PartnerLink
from expense_sync.models.transaction import utc_now
from expense_sync.services.storage import LocalStoreError, LocalStoreInterface
from expense_sync.validation import normalize_email


logger = structlog.get_logger(__name__)


class PartnerLinkManager:
    """
    Partner Mode settings persisted in a LocalStoreInterface.

    Callers validate the partner email (syntax, not self) before
    calling enable(); the manager only normalizes it.
    """

    def __init__(
        self,
        store: LocalStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings_key: Optional[str] = None,
        shared_file_key: Optional[str] = None,
    ):
        local_settings = get_settings().local_store
        self._store = store
        self._audit_logger = audit_logger
        self._settings_key = settings_key or local_settings.partner_settings_key
        self._shared_file_key = shared_file_key or local_settings.shared_file_key

    # -------------------------------------------------------------------------
    # Partner link settings
    # -------------------------------------------------------------------------

    async def get_settings(self) -> PartnerLink:
        """Persisted settings merged over defaults."""
        try:
            raw = await self._store.get(self._settings_key)
        except LocalStoreError as e:
            logger.warning("partner_settings_read_failed", error=str(e))
            return PartnerLink()

        if not raw:
            return PartnerLink()

        try:
            settings = PartnerLink.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error("partner_settings_corrupt_cleared", error=str(e))
            await self._remove(self._settings_key)
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.local_state_corrupt(self._settings_key, str(e))
                )
            return PartnerLink()

        # A handle without an active link is stale by definition
        if not settings.enabled and settings.partner_file_handle:
            settings = settings.model_copy(update={"partner_file_handle": None})
        return settings

    async def _save(self, settings: PartnerLink) -> bool:
        try:
            payload = json.dumps(settings.to_wire()).encode("utf-8")
            await self._store.set(self._settings_key, payload)
            return True
        except LocalStoreError as e:
            logger.warning("partner_settings_save_failed", error=str(e))
            return False

    async def enable(self, partner_email: str) -> PartnerLink:
        """
        Turn Partner Mode on for ``partner_email``.

        Any previously cached partner file handle is dropped; the next
        sync re-derives it.
        """
        settings = PartnerLink(
            enabled=True,
            partner_email=normalize_email(partner_email),
            enabled_at=utc_now(),
        )
        await self._save(settings)
        logger.info("partner_mode_enabled", partner_email=settings.partner_email)
        return settings

    async def disable(self) -> PartnerLink:
        """Reset to defaults (disabled, no email, no handle)."""
        previous = await self.get_settings()
        settings = PartnerLink()
        await self._save(settings)
        if self._audit_logger:
            await self._audit_logger.log_partner_disabled(previous.partner_email)
        return settings

    async def set_partner_file_handle(self, handle: str) -> bool:
        """
        Cache the partner's shared document handle, keeping other fields.

        Refused while Partner Mode is disabled.
        """
        settings = await self.get_settings()
        if not settings.enabled:
            logger.warning("partner_handle_ignored_while_disabled", handle=handle)
            return False
        return await self._save(settings.model_copy(update={"partner_file_handle": handle}))

    async def clear_partner_file_handle(self) -> bool:
        settings = await self.get_settings()
        if settings.partner_file_handle is None:
            return True
        return await self._save(settings.model_copy(update={"partner_file_handle": None}))

    async def is_active(self) -> bool:
        return (await self.get_settings()).is_active

    # -------------------------------------------------------------------------
    # Own shared document handle
    # -------------------------------------------------------------------------

    async def get_shared_file_handle(self) -> Optional[str]:
        try:
            raw = await self._store.get(self._shared_file_key)
        except LocalStoreError as e:
            logger.warning("shared_file_handle_read_failed", error=str(e))
            return None
        if not raw:
            return None
        try:
            return raw.decode("utf-8").strip() or None
        except UnicodeDecodeError:
            await self._remove(self._shared_file_key)
            return None

    async def cache_shared_file_handle(self, handle: str) -> None:
        try:
            await self._store.set(self._shared_file_key, handle.encode("utf-8"))
        except LocalStoreError as e:
            logger.warning("shared_file_handle_cache_failed", error=str(e))

    async def _remove(self, key: str) -> None:
        try:
            await self._store.remove(key)
        except LocalStoreError as e:
            logger.warning("local_key_remove_failed", key=key, error=str(e))
