from flask import current_app

from extensions import db
from models.family_groups import FamilyGroup, GroupMember
from services.audit_service import AuditService
from services.exceptions import NotFound
from services.membership_service import MembershipService
from utils.permissions import DEFAULT_PERMISSIONS, Capability, Role
from utils.tokens import INVITE_CODE_BYTES, random_token


class GroupService:

    @staticmethod
    def generate_invite_code():
        """Random printable code not already used by another group."""
        while True:
            code = random_token(INVITE_CODE_BYTES)
            if not FamilyGroup.query.filter_by(invite_code=code).first():
                return code

    @staticmethod
    def create_group(child_id, creator_user_id, name, description=None, request_context=None):
        """
        Create a family group for a child and make the creator its owner.
        Does not check for an existing group on the same child.
        """
        group = FamilyGroup(
            child_id=child_id,
            name=name,
            description=description,
            invite_code=GroupService.generate_invite_code(),
            is_active=True,
        )
        db.session.add(group)
        db.session.flush()

        owner = GroupMember(
            group_id=group.id,
            user_id=creator_user_id,
            role=Role.OWNER.value,
            invited_by_id=creator_user_id,
        )
        owner.set_permissions(DEFAULT_PERMISSIONS[Role.OWNER])
        db.session.add(owner)
        db.session.commit()

        current_app.logger.info(f'Family group {group.id} created for child {child_id} by user {creator_user_id}')
        AuditService.log_audit(
            group.id, creator_user_id, 'group_created', 'family_group', group.id,
            old_values={},
            new_values={'name': name, 'description': description},
            request_context=request_context,
        )
        return group

    @staticmethod
    def get_group(group_id):
        group = db.session.get(FamilyGroup, group_id)
        if group is None:
            raise NotFound('Family group not found')
        return group

    @staticmethod
    def deactivate_group(group_id, user_id, request_context=None):
        """Mark a group inactive. Groups are never hard-deleted."""
        group = GroupService.get_group(group_id)
        MembershipService.require_capability(
            group_id, user_id, Capability.MANAGE_GROUP,
            'No permission to deactivate this group',
        )
        if not group.is_active:
            return group

        group.is_active = False
        db.session.commit()

        current_app.logger.info(f'Family group {group_id} deactivated by user {user_id}')
        AuditService.log_audit(
            group_id, user_id, 'group_deactivated', 'family_group', group_id,
            old_values={'is_active': True},
            new_values={'is_active': False},
            request_context=request_context,
        )
        return group
