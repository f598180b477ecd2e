"""
Group activity feed models: posts, their comments and reactions.
"""
import json
from datetime import datetime, timezone

from extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GroupActivity(db.Model):
    """A feed entry posted by a group member."""
    __tablename__ = 'group_activities'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('family_groups.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    activity_type = db.Column(db.String(50), nullable=False)  # e.g. 'milestone', 'photo', 'note'
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    # ``metadata`` is reserved by SQLAlchemy's declarative base
    metadata_json = db.Column('metadata', db.Text, nullable=True)

    is_visible = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False, index=True)

    # Relationships
    group = db.relationship('FamilyGroup', back_populates='activities')
    user = db.relationship('User')
    comments = db.relationship('ActivityComment', back_populates='activity',
                               order_by='[ActivityComment.created_at, ActivityComment.id]',
                               cascade='all, delete-orphan')
    reactions = db.relationship('ActivityLike', back_populates='activity',
                                order_by='ActivityLike.id',
                                cascade='all, delete-orphan')

    def get_metadata(self):
        if not self.metadata_json:
            return None
        try:
            return json.loads(self.metadata_json)
        except (ValueError, TypeError):
            return None

    def set_metadata(self, value):
        self.metadata_json = None if value is None else json.dumps(value, default=str)

    def to_dict(self, include_children=False):
        data = {
            'id': self.id,
            'group_id': self.group_id,
            'user_id': self.user_id,
            'activity_type': self.activity_type,
            'title': self.title,
            'description': self.description,
            'metadata': self.get_metadata(),
            'is_visible': self.is_visible,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_children:
            data['comments'] = [c.to_dict() for c in self.comments]
            data['reactions'] = [r.to_dict() for r in self.reactions]
        return data

    def __repr__(self):
        return f'<GroupActivity {self.activity_type} {self.title!r}>'


class ActivityComment(db.Model):
    """A comment on a feed entry."""
    __tablename__ = 'activity_comments'

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.Integer, db.ForeignKey('group_activities.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_edited = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    activity = db.relationship('GroupActivity', back_populates='comments')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'activity_id': self.activity_id,
            'user_id': self.user_id,
            'content': self.content,
            'is_edited': self.is_edited,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class ActivityLike(db.Model):
    """A user's reaction to a feed entry; at most one per user per activity."""
    __tablename__ = 'activity_likes'
    __table_args__ = (
        db.UniqueConstraint('activity_id', 'user_id', name='uq_activity_likes_activity_user'),
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.Integer, db.ForeignKey('group_activities.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    reaction_type = db.Column(db.String(20), nullable=False, default='like')
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    activity = db.relationship('GroupActivity', back_populates='reactions')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'activity_id': self.activity_id,
            'user_id': self.user_id,
            'reaction_type': self.reaction_type,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
