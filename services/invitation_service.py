"""
Invitation lifecycle: issue, inspect and redeem invitation tokens.

An invitation is PENDING until it is accepted or its seven days run out.
There is no expiry job; the state is worked out from the clock whenever the
token is presented.  Redemption claims the row with a conditional UPDATE on
``accepted_at IS NULL``, so two requests racing on one token yield exactly one
membership and one AlreadyAccepted.
"""
import json

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models.family_groups import GroupMember
from models.invitations import INVITATION_EXPIRY, GroupInvitation
from services import notifier
from services.audit_service import AuditService
from services.exceptions import AlreadyAccepted, AlreadyMember, InvalidToken, InvitationExpired
from services.group_service import GroupService
from services.membership_service import MembershipService
from utils.clock import utc_now
from utils.permissions import Capability, Permission, Role, effective_permissions
from utils.tokens import INVITATION_TOKEN_BYTES, random_token


class InvitationService:

    @staticmethod
    def invite_member(group_id, inviter_user_id, email, role, custom_permissions=None, request_context=None):
        """
        Invite *email* to the group as *role*, optionally adjusting the role's
        default permissions with the sparse *custom_permissions* dict.

        Delivery goes through services.notifier; a delivery failure is logged
        and does not fail the invitation.
        """
        MembershipService.require_capability(
            group_id, inviter_user_id, Capability.INVITE_MEMBERS,
            'No permission to invite members',
        )
        group = GroupService.get_group(group_id)
        role = Role.parse(role)
        permissions = effective_permissions(role, custom_permissions)

        now = utc_now()
        invitation = GroupInvitation(
            group_id=group_id,
            email=email.strip().lower(),
            token=random_token(INVITATION_TOKEN_BYTES),
            role=role.value,
            permissions=json.dumps(permissions.to_dict(), sort_keys=True),
            invited_by_id=inviter_user_id,
            created_at=now,
            expires_at=now + INVITATION_EXPIRY,
        )
        db.session.add(invitation)
        db.session.commit()

        current_app.logger.info(f'Invitation {invitation.id} to group {group_id} issued by user {inviter_user_id}')
        AuditService.log_audit(
            group_id, inviter_user_id, 'member_invited', 'invitation', invitation.id,
            old_values={},
            new_values={'email': invitation.email, 'role': role.value},
            request_context=request_context,
        )

        try:
            notifier.send_invitation(invitation.email, invitation.token, group.name)
        except Exception:
            current_app.logger.exception(f'Could not deliver invitation {invitation.id} to {invitation.email}')

        return invitation

    @staticmethod
    def accept_invitation(token, accepting_user_id, request_context=None):
        """Redeem *token* and return the new GroupMember.

        Checks run in this order, each ending the call:
        unknown token, expired, already accepted, already a member.
        """
        now = utc_now()
        invitation = GroupInvitation.query.filter_by(token=token).first()
        if invitation is None:
            raise InvalidToken()
        if now > invitation.expires_at:
            raise InvitationExpired()
        if invitation.accepted_at is not None:
            raise AlreadyAccepted()
        if MembershipService.get_member(invitation.group_id, accepting_user_id) is not None:
            raise AlreadyMember()

        group_id = invitation.group_id
        member = GroupMember(
            group_id=group_id,
            user_id=accepting_user_id,
            role=invitation.role,
            invited_by_id=invitation.invited_by_id,
            joined_at=now,
        )
        member.set_permissions(Permission.from_dict(invitation.get_permissions_dict()))

        # Claim the invitation and create the membership in one transaction.
        claimed = (
            GroupInvitation.query
            .filter(GroupInvitation.id == invitation.id, GroupInvitation.accepted_at.is_(None))
            .update({'accepted_at': now, 'accepted_by_id': accepting_user_id}, synchronize_session=False)
        )
        if claimed != 1:
            db.session.rollback()
            raise AlreadyAccepted()

        db.session.add(member)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request added this user to the group after our check
            db.session.rollback()
            raise AlreadyMember()

        current_app.logger.info(f'User {accepting_user_id} joined group {group_id} via invitation')
        AuditService.log_audit(
            group_id, accepting_user_id, 'invitation_accepted', 'group_member', member.id,
            old_values={},
            new_values={'role': member.role},
            request_context=request_context,
        )
        return member

    @staticmethod
    def get_invitation_status(invitation, now=None):
        return invitation.status(now or utc_now())

    @staticmethod
    def list_pending_invitations(group_id, user_id):
        """Unaccepted, unexpired invitations for the group, newest first."""
        MembershipService.require_capability(
            group_id, user_id, Capability.INVITE_MEMBERS,
            'No permission to view invitations',
        )
        return (
            GroupInvitation.query
            .filter_by(group_id=group_id)
            .filter(GroupInvitation.accepted_at.is_(None),
                    GroupInvitation.expires_at >= utc_now())
            .order_by(GroupInvitation.created_at.desc(), GroupInvitation.id.desc())
            .all()
        )
