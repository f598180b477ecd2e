# Models package - Import all models for Flask-SQLAlchemy

from models.activities import ActivityComment, ActivityLike, GroupActivity
from models.audit import AuditLog
from models.family_groups import FamilyGroup, GroupMember
from models.invitations import GroupInvitation, InvitationStatus
from models.users import User

__all__ = [
    'ActivityComment',
    'ActivityLike',
    'AuditLog',
    'FamilyGroup',
    'GroupActivity',
    'GroupInvitation',
    'GroupMember',
    'InvitationStatus',
    'User',
]
