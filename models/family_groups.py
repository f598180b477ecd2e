"""
FamilyGroup and GroupMember models.
A FamilyGroup is the sharing boundary around one child's record.
GroupMembers tie users to a group with a role and an effective permission set.
"""
import json
from datetime import datetime, timezone

from extensions import db
from utils.permissions import Permission, Role


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FamilyGroup(db.Model):
    """A shared child record and the people allowed to see it."""
    __tablename__ = 'family_groups'

    id = db.Column(db.Integer, primary_key=True)
    # Reference to the child/pregnancy record this group shares
    child_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Shareable code shown to members; display only, does not grant membership
    invite_code = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # Groups are deactivated, never deleted
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    members = db.relationship('GroupMember', back_populates='group',
                              lazy='dynamic', cascade='all, delete-orphan')
    invitations = db.relationship('GroupInvitation', back_populates='group',
                                  lazy='dynamic', cascade='all, delete-orphan')
    activities = db.relationship('GroupActivity', back_populates='group',
                                 lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'child_id': self.child_id,
            'name': self.name,
            'description': self.description,
            'invite_code': self.invite_code,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<FamilyGroup {self.name} child={self.child_id}>'


class GroupMember(db.Model):
    """A user's membership in a family group."""
    __tablename__ = 'group_members'
    __table_args__ = (
        db.UniqueConstraint('group_id', 'user_id', name='uq_group_members_group_user'),
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('family_groups.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    role = db.Column(db.String(20), nullable=False)  # owner | admin | contributor | viewer
    # JSON-encoded effective capability set, e.g. '{"view_photos": true, ...}'
    permissions = db.Column(db.Text, nullable=False)

    joined_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    invited_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Relationships
    group = db.relationship('FamilyGroup', back_populates='members')
    user = db.relationship('User', back_populates='memberships', foreign_keys=[user_id])
    invited_by = db.relationship('User', foreign_keys=[invited_by_id])

    @property
    def role_enum(self):
        return Role.parse(self.role)

    def get_permissions(self):
        """Return the stored effective permission set as a Permission.

        Raises ``ValueError`` if the stored JSON is unreadable or incomplete.
        """
        try:
            data = json.loads(self.permissions)
        except (TypeError, ValueError) as exc:
            raise ValueError(f'Stored permissions for member {self.id} are not valid JSON') from exc
        return Permission.from_dict(data)

    def set_permissions(self, permission):
        """Persist *permission* (a Permission) as JSON, replacing what was there."""
        self.permissions = json.dumps(permission.to_dict(), sort_keys=True)

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'user_id': self.user_id,
            'role': self.role,
            'permissions': json.loads(self.permissions) if self.permissions else None,
            'joined_at': self.joined_at.isoformat() if self.joined_at else None,
            'invited_by_id': self.invited_by_id,
        }

    def __repr__(self):
        return f'<GroupMember group={self.group_id} user={self.user_id} role={self.role}>'
