"""Partner Mode package: link state, shared document discovery, handshake."""

from expense_sync.partner.manager import PartnerLinkManager
from expense_sync.partner.discovery import (
    PartnerFileMatch,
    SharedFileLocator,
    select_partner_file,
)

__all__ = [
    "PartnerFileMatch",
    "PartnerLinkManager",
    "SharedFileLocator",
    "select_partner_file",
]
