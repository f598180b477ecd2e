"""
A family group's life from creation to a member's removal, through the services.
"""
import pytest

from models.audit import AuditLog
from services.activity_service import ActivityService
from services.audit_service import AuditService
from services.exceptions import PermissionDenied
from services.group_service import GroupService
from services.invitation_service import InvitationService
from services.membership_service import MembershipService
from utils.permissions import DEFAULT_PERMISSIONS, Permission, Role


def test_bob_joins_as_contributor(app, clock, owner, other_user, monkeypatch):
    inbox = {}
    monkeypatch.setattr('services.notifier.send_invitation',
                        lambda email, token, group_name: inbox.setdefault(email, token))

    group = GroupService.create_group(7, owner.id, 'Smith Family')
    InvitationService.invite_member(group.id, owner.id, 'bob@example.com', 'contributor')

    member = InvitationService.accept_invitation(inbox['bob@example.com'], other_user.id)
    assert member.role == 'contributor'
    perms = member.get_permissions()
    assert perms.view_medical is False
    assert perms.add_data is True

    alice_post = ActivityService.create_activity(group.id, owner.id, 'milestone', 'Nursery finished')
    bob_post = ActivityService.create_activity(group.id, other_user.id, 'note', 'Can I help paint?')
    ActivityService.add_comment(alice_post.id, other_user.id, 'Looks great')
    assert bob_post.id is not None

    with pytest.raises(PermissionDenied):
        MembershipService.update_member_permissions(
            group.id, owner.id, other_user.id, DEFAULT_PERMISSIONS[Role.VIEWER],
        )
    assert MembershipService.get_user_role(group.id, owner.id) is Role.OWNER


def test_group_lifecycle_with_custom_permissions(app, clock, owner, other_user, monkeypatch):
    delivered = []
    monkeypatch.setattr('services.notifier.send_invitation',
                        lambda email, token, group_name: delivered.append(token))

    group = GroupService.create_group(1, owner.id, 'Jones Family')
    assert MembershipService.get_user_role(group.id, owner.id) is Role.OWNER

    invitation = InvitationService.invite_member(
        group.id, owner.id, 'bob@example.com', 'viewer', {'view_medical': True},
    )
    assert delivered == [invitation.token]

    clock.advance(days=2)
    InvitationService.accept_invitation(delivered[0], other_user.id)
    assert MembershipService.get_user_role(group.id, other_user.id) is Role.VIEWER
    assert MembershipService.has_permission(group.id, other_user.id, 'view_medical') is True
    assert MembershipService.has_permission(group.id, other_user.id, 'add_data') is False

    post = ActivityService.create_activity(group.id, owner.id, 'milestone', '20 week scan')
    ActivityService.add_comment(post.id, other_user.id, 'Wonderful news')
    ActivityService.add_reaction(post.id, other_user.id, 'love')

    MembershipService.update_member_permissions(
        group.id, other_user.id, owner.id, Permission(view_photos=True),
    )
    assert MembershipService.has_permission(group.id, other_user.id, 'view_medical') is False

    MembershipService.remove_member(group.id, other_user.id, owner.id)
    assert MembershipService.get_user_role(group.id, other_user.id) is None
    assert MembershipService.has_permission(group.id, other_user.id, 'view_photos') is False

    actions = [e.action for e in AuditService.get_group_audit_log(group.id, owner.id)]
    assert sorted(actions) == sorted([
        'group_created', 'member_invited', 'invitation_accepted', 'comment_added',
        'permissions_updated', 'member_removed',
    ])
    assert AuditLog.query.filter_by(group_id=group.id, action='member_removed').one().user_id == owner.id
