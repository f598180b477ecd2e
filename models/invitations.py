"""
GroupInvitation model.
A single-use, time-limited offer for one email address to join a family group
with a proposed role and permission set.
"""
import enum
import json
from datetime import datetime, timedelta, timezone

from extensions import db

INVITATION_EXPIRY = timedelta(days=7)


class InvitationStatus(str, enum.Enum):
    """Lifecycle state, derived from the clock and ``accepted_at`` on demand."""
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    EXPIRED = 'expired'


class GroupInvitation(db.Model):
    """One-time invitation token for a new group member."""
    __tablename__ = 'group_invitations'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('family_groups.id'), nullable=False, index=True)
    email = db.Column(db.String(120), nullable=False, index=True)

    # The secret sent to the invitee
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)

    # What the new member receives
    role = db.Column(db.String(20), nullable=False)
    permissions = db.Column(db.Text, nullable=False)  # JSON, full capability set

    invited_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)
    accepted_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Relationships
    group = db.relationship('FamilyGroup', back_populates='invitations')
    invited_by = db.relationship('User', foreign_keys=[invited_by_id])
    accepted_by = db.relationship('User', foreign_keys=[accepted_by_id])

    def status(self, now):
        """Return the InvitationStatus at *now*. Acceptance wins over expiry."""
        if self.accepted_at is not None:
            return InvitationStatus.ACCEPTED
        if now > self.expires_at:
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING

    def get_permissions_dict(self):
        return json.loads(self.permissions)

    def to_dict(self, include_token=False):
        data = {
            'id': self.id,
            'group_id': self.group_id,
            'email': self.email,
            'role': self.role,
            'permissions': self.get_permissions_dict(),
            'invited_by_id': self.invited_by_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'accepted_at': self.accepted_at.isoformat() if self.accepted_at else None,
        }
        if include_token:
            data['token'] = self.token
        return data

    def __repr__(self):
        return f'<GroupInvitation {self.token[:8]}… role={self.role}>'
