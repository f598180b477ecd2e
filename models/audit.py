"""
AuditLog model.
Append-only record of every authorization-relevant change in a family group.
Rows are inserted by services/audit_service.py and never updated or deleted.
"""
import json
from datetime import datetime, timezone

from extensions import db


class AuditLog(db.Model):
    """Who did what to which group, when and from where."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('family_groups.id'), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)

    # Free-form tag, e.g. 'group_created', 'member_invited', 'permissions_updated'
    action = db.Column(db.String(50), nullable=False, index=True)
    resource_type = db.Column(db.String(50), nullable=True)
    resource_id = db.Column(db.Integer, nullable=True)

    # JSON snapshots before / after the change
    old_values = db.Column(db.Text, nullable=True)
    new_values = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=False, default='unknown')
    user_agent = db.Column(db.String(255), nullable=False, default='unknown')
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
                           nullable=False, index=True)

    @staticmethod
    def _load(value):
        if not value:
            return {}
        try:
            return json.loads(value)
        except (ValueError, TypeError):
            return {}

    def get_old_values(self):
        return self._load(self.old_values)

    def get_new_values(self):
        return self._load(self.new_values)

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'user_id': self.user_id,
            'action': self.action,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'old_values': self.get_old_values(),
            'new_values': self.get_new_values(),
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<AuditLog {self.action} group={self.group_id} user={self.user_id}>'
