"""
Shared Document Location and Partner Discovery

Two lookups back Partner Mode:

1. Sharing side: find or create THIS user's shared document. Its handle
   is cached by the PartnerLinkManager and verified before reuse.
2. Linking side: find the PARTNER's shared document among the files
   shared with us.

KNOWN RACE (kept on purpose): when no shared file's owner matches the
expected partner email, discovery falls back to the first result. If
two people share same-named documents with this user, the wrong one can
be linked. The match flag on the result lets callers surface that.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from expense_sync.config import DriveSettings, get_settings
from expense_sync.partner.manager import PartnerLinkManager
from expense_sync.services.storage import (
    DriveScope,
    RemoteStoreError,
    RemoteStoreInterface,
    SharedFile,
)
from expense_sync.validation import normalize_email


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PartnerFileMatch:
    handle: str
    exact_owner_match: bool


def select_partner_file(
    candidates: list[SharedFile],
    partner_email: str,
) -> Optional[PartnerFileMatch]:
    """
    Pick the partner's document from shared-with-me results.

    An exact owner match wins; otherwise the first candidate is used
    (best effort). No candidates -> None.
    """
    expected = normalize_email(partner_email)
    for candidate in candidates:
        if any(normalize_email(owner) == expected for owner in candidate.owner_emails):
            return PartnerFileMatch(handle=candidate.handle, exact_owner_match=True)
    if candidates:
        return PartnerFileMatch(handle=candidates[0].handle, exact_owner_match=False)
    return None


class SharedFileLocator:
    """Resolves shared document handles for both sides of the handshake."""

    def __init__(
        self,
        remote: RemoteStoreInterface,
        partner: PartnerLinkManager,
        settings: Optional[DriveSettings] = None,
    ):
        self._remote = remote
        self._partner = partner
        self._settings = settings or get_settings().drive

    @property
    def shared_file_name(self) -> str:
        return self._settings.shared_file_name

    async def find_or_create_shared_file(self) -> Optional[str]:
        """
        Handle of this user's shared document, creating it if needed.

        Order: verified cached handle, then a same-named file we own,
        then a fresh empty document. None if the remote store is
        unreachable or refuses the create.
        """
        try:
            cached = await self._partner.get_shared_file_handle()
            if cached:
                if await self._remote.file_exists(cached):
                    return cached
                logger.info("shared_file_cache_stale", handle=cached)

            handle = await self._remote.find_file(self.shared_file_name, DriveScope.DRIVE)
            if handle is None:
                handle = await self._remote.create_file(
                    self.shared_file_name,
                    DriveScope.DRIVE,
                    [],
                )
        except RemoteStoreError as e:
            logger.warning("shared_file_unavailable", error=str(e))
            return None

        await self._partner.cache_shared_file_handle(handle)
        return handle

    async def discover_partner_file(self, partner_email: str) -> Optional[PartnerFileMatch]:
        """
        Search files shared with us for the partner's document.

        Raises:
            RemoteStoreError: if the search itself fails
        """
        candidates = await self._remote.list_shared_with_me(self.shared_file_name)
        match = select_partner_file(candidates, partner_email)
        if match is None:
            logger.info("partner_file_not_shared_yet", partner_email=partner_email)
        elif not match.exact_owner_match:
            logger.warning(
                "partner_file_owner_unverified",
                partner_email=partner_email,
                handle=match.handle,
                candidates=len(candidates),
            )
        return match
