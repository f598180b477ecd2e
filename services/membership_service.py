"""
Membership queries and capability-checked membership changes.

Nothing here caches a membership: every check reads the current row, so a
member whose access was just revoked loses it on their very next call.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.family_groups import GroupMember
from services.audit_service import AuditService
from services.exceptions import InvalidRole, NotFound, OwnerProtected, PermissionDenied
from utils.permissions import DEFAULT_PERMISSIONS, Capability, Permission, Role


class MembershipService:

    # ------------------------------------------------------------------
    # Lookups and guards
    # ------------------------------------------------------------------

    @staticmethod
    def get_member(group_id, user_id):
        """Return the GroupMember row, or None if *user_id* is not in the group."""
        return GroupMember.query.filter_by(group_id=group_id, user_id=user_id).first()

    @staticmethod
    def member_allows(member, capability):
        """True if *member*'s stored permission set grants *capability*.

        An unreadable permission set grants nothing.
        """
        try:
            return member.get_permissions().allows(capability)
        except ValueError:
            current_app.logger.warning(f'Unreadable permissions on member {member.id}; treating as no access')
            return False

    @staticmethod
    def require_member(group_id, user_id):
        member = MembershipService.get_member(group_id, user_id)
        if member is None:
            raise PermissionDenied('Not a member of this group')
        return member

    @staticmethod
    def require_capability(group_id, user_id, capability, message=None):
        """Return the actor's membership, or raise PermissionDenied."""
        member = MembershipService.get_member(group_id, user_id)
        if member is None or not MembershipService.member_allows(member, capability):
            raise PermissionDenied(message)
        return member

    # ------------------------------------------------------------------
    # Read-path queries
    # ------------------------------------------------------------------

    @staticmethod
    def has_permission(group_id, user_id, capability):
        """Answer whether *user_id* holds *capability* in the group. Never raises."""
        try:
            capability = Capability(capability)
        except ValueError:
            current_app.logger.warning(f'has_permission called with unknown capability {capability!r}')
            return False
        try:
            member = MembershipService.get_member(group_id, user_id)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Membership lookup failed for user {user_id} in group {group_id}')
            return False
        if member is None:
            return False
        return MembershipService.member_allows(member, capability)

    @staticmethod
    def get_user_role(group_id, user_id):
        """Return the member's Role, or None for non-members and unreadable rows."""
        try:
            member = MembershipService.get_member(group_id, user_id)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Membership lookup failed for user {user_id} in group {group_id}')
            return None
        if member is None:
            return None
        try:
            return member.role_enum
        except InvalidRole:
            current_app.logger.warning(f'Unreadable role {member.role!r} on member {member.id}')
            return None

    @staticmethod
    def get_group_members(group_id, user_id):
        """All members of the group in join order. Caller must be a member."""
        MembershipService.require_member(group_id, user_id)
        return (
            GroupMember.query
            .filter_by(group_id=group_id)
            .order_by(GroupMember.joined_at, GroupMember.id)
            .all()
        )

    # ------------------------------------------------------------------
    # Mutations (require manage_group)
    # ------------------------------------------------------------------

    @staticmethod
    def update_member_permissions(group_id, target_user_id, updated_by_user_id, new_permissions,
                                  request_context=None):
        """Replace the target member's permission set wholesale.

        *new_permissions* is a Permission or a complete capability dict.
        """
        MembershipService.require_capability(
            group_id, updated_by_user_id, Capability.MANAGE_GROUP,
            'No permission to manage group members',
        )
        if not isinstance(new_permissions, Permission):
            new_permissions = Permission.from_dict(new_permissions)

        member = MembershipService.get_member(group_id, target_user_id)
        if member is None:
            raise NotFound('Member not found')
        if member.role_enum is Role.OWNER:
            raise OwnerProtected("The group owner's permissions cannot be changed")

        old_snapshot = member.get_permissions().to_dict()
        member.set_permissions(new_permissions)
        db.session.commit()

        current_app.logger.info(
            f'Permissions for user {target_user_id} in group {group_id} updated by {updated_by_user_id}'
        )
        AuditService.log_audit(
            group_id, updated_by_user_id, 'permissions_updated', 'group_member', member.id,
            old_values={'permissions': old_snapshot},
            new_values={'permissions': new_permissions.to_dict()},
            request_context=request_context,
        )
        return member

    @staticmethod
    def update_member_role(group_id, target_user_id, updated_by_user_id, role, request_context=None):
        """Change a member's role and reset their permissions to its defaults.

        Ownership cannot move through here: the owner's role is fixed and no
        one else can be given ``owner``.
        """
        MembershipService.require_capability(
            group_id, updated_by_user_id, Capability.MANAGE_GROUP,
            'No permission to manage group members',
        )
        new_role = Role.parse(role)
        member = MembershipService.get_member(group_id, target_user_id)
        if member is None:
            raise NotFound('Member not found')
        if member.role_enum is Role.OWNER:
            raise OwnerProtected('The group owner cannot be demoted')
        if new_role is Role.OWNER:
            raise OwnerProtected('A group has exactly one owner')

        old_role = member.role
        member.role = new_role.value
        member.set_permissions(DEFAULT_PERMISSIONS[new_role])
        db.session.commit()

        AuditService.log_audit(
            group_id, updated_by_user_id, 'role_updated', 'group_member', member.id,
            old_values={'role': old_role},
            new_values={'role': new_role.value},
            request_context=request_context,
        )
        return member

    @staticmethod
    def remove_member(group_id, target_user_id, removed_by_user_id, request_context=None):
        """Remove a member. The owner can never be removed, not even by themselves."""
        MembershipService.require_capability(
            group_id, removed_by_user_id, Capability.MANAGE_GROUP,
            'No permission to remove members',
        )
        member = MembershipService.get_member(group_id, target_user_id)
        if member is None:
            raise NotFound('Member not found')
        if member.role_enum is Role.OWNER:
            raise OwnerProtected('Cannot remove the group owner')

        member_id = member.id
        old_role = member.role
        db.session.delete(member)
        db.session.commit()

        current_app.logger.info(f'User {target_user_id} removed from group {group_id} by {removed_by_user_id}')
        AuditService.log_audit(
            group_id, removed_by_user_id, 'member_removed', 'group_member', member_id,
            old_values={'user_id': target_user_id, 'role': old_role},
            new_values={'removed_by': removed_by_user_id},
            request_context=request_context,
        )
        return True
