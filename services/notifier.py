"""
Invitation delivery.

Outbound email is not wired up yet; this stub logs the join link (at DEBUG)
so it can be copied out of the log in development.  InvitationService treats any exception
raised here as a delivery failure and carries on.
"""
import logging

from flask import current_app

logger = logging.getLogger(__name__)


def build_join_url(token):
    return f"{current_app.config['INVITE_BASE_URL']}{token}"


def send_invitation(email, token, group_name):
    """Deliver an invitation to *email* for *group_name*."""
    join_url = build_join_url(token)
    logger.info(f'Invitation to "{group_name}" sent to {email}')
    logger.debug(f'Join link for {email}: {join_url}')
    return join_url
