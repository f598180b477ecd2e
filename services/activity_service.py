from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models.activities import ActivityComment, ActivityLike, GroupActivity
from services.audit_service import AuditService
from services.exceptions import NotFound
from services.membership_service import MembershipService


class ActivityService:

    @staticmethod
    def get_activity(activity_id):
        activity = db.session.get(GroupActivity, activity_id)
        if activity is None:
            raise NotFound('Activity not found')
        return activity

    @staticmethod
    def create_activity(group_id, user_id, activity_type, title, description=None, metadata=None):
        """Post to the group feed. Any member may post, whatever their role."""
        MembershipService.require_member(group_id, user_id)

        activity = GroupActivity(
            group_id=group_id,
            user_id=user_id,
            activity_type=activity_type,
            title=title,
            description=description,
            is_visible=True,
        )
        activity.set_metadata(metadata)
        db.session.add(activity)
        db.session.commit()
        return activity

    @staticmethod
    def get_group_activities(group_id, user_id, limit=20, offset=0):
        """
        Visible feed entries for a group, newest first, with comments
        (oldest first) and reactions loaded.  Caller must be a member.
        """
        MembershipService.require_member(group_id, user_id)
        return (
            GroupActivity.query
            .options(db.selectinload(GroupActivity.comments),
                     db.selectinload(GroupActivity.reactions))
            .filter_by(group_id=group_id, is_visible=True)
            .order_by(GroupActivity.created_at.desc(), GroupActivity.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    @staticmethod
    def add_comment(activity_id, user_id, content, request_context=None):
        """Comment on an activity. Membership of its group is checked on every call."""
        activity = ActivityService.get_activity(activity_id)
        group_id = activity.group_id
        MembershipService.require_member(group_id, user_id)

        comment = ActivityComment(activity_id=activity_id, user_id=user_id, content=content)
        db.session.add(comment)
        db.session.commit()

        AuditService.log_audit(
            group_id, user_id, 'comment_added', 'activity_comment', comment.id,
            old_values={},
            new_values={'content': content, 'activity_id': activity_id},
            request_context=request_context,
        )
        return comment

    @staticmethod
    def add_reaction(activity_id, user_id, reaction_type='like'):
        """
        React to an activity.  A user holds at most one reaction per activity:
        reacting again changes the type of the existing one.
        """
        activity = ActivityService.get_activity(activity_id)
        MembershipService.require_member(activity.group_id, user_id)

        reaction = ActivityLike.query.filter_by(activity_id=activity_id, user_id=user_id).first()
        if reaction is None:
            # Insert inside a savepoint; if a concurrent request inserted first
            # the unique key rejects ours and we fall through to the update.
            try:
                with db.session.begin_nested():
                    reaction = ActivityLike(activity_id=activity_id, user_id=user_id,
                                            reaction_type=reaction_type)
                    db.session.add(reaction)
            except IntegrityError:
                current_app.logger.info(
                    f'Concurrent reaction on activity {activity_id} by user {user_id}; updating instead'
                )
                reaction = ActivityLike.query.filter_by(activity_id=activity_id, user_id=user_id).one()

        reaction.reaction_type = reaction_type
        db.session.commit()
        return reaction
