"""
Outbound email hooks. Delivery is handled by an external notifier; this
module only hands messages off and never blocks the calling request.
"""

import logging

logger = logging.getLogger(__name__)


def send_invite_email(email: str, link: str, *, organization_name: str | None = None) -> None:
    # The link embeds the invitation secret, so it is never logged.
    logger.info(
        "invite.email_queued",
        extra={"recipient": email, "organization_name": organization_name, "has_link": bool(link)},
    )
