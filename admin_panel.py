"""
Flask-Admin panel for family sharing
Accessible at /admin - restricted to users with is_site_admin set
"""
from flask import abort
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.theme import Bootstrap4Theme
from flask_login import current_user


def _is_site_admin():
    return current_user.is_authenticated and current_user.is_site_admin


# ---------------------------------------------------------------------------
# Base secure views
# ---------------------------------------------------------------------------

class SecureAdminIndexView(AdminIndexView):
    """Admin home page - checks for site admin before rendering."""

    @expose('/')
    def index(self):
        if not _is_site_admin():
            abort(403)
        return super().index()

    def is_accessible(self):
        return _is_site_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class SecureModelView(ModelView):
    """Full CRUD model view - site admin only."""

    can_export = True
    page_size = 50
    column_display_pk = True

    def __init__(self, model, session, **kwargs):
        # Prefix endpoints so they never collide with app blueprints
        if 'endpoint' not in kwargs:
            kwargs['endpoint'] = f'admin_{model.__name__.lower()}'

        # Every group-scoped table can be filtered by group without per-view config
        if hasattr(model, 'group_id'):
            existing = list(getattr(self.__class__, 'column_filters', None) or [])
            if 'group_id' not in existing:
                existing.insert(0, 'group_id')
            self.column_filters = existing

        super().__init__(model, session, **kwargs)

    def is_accessible(self):
        return _is_site_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class ReadOnlyModelView(SecureModelView):
    """Read-only model view for append-only or member-owned tables."""

    can_create = False
    can_edit = False
    can_delete = False


# ---------------------------------------------------------------------------
# Customised model views
# ---------------------------------------------------------------------------

class UserAdminView(SecureModelView):
    """Users - hide password hash, show useful columns."""
    column_exclude_list = ['password_hash']
    form_excluded_columns = ['password_hash', 'memberships']
    column_searchable_list = ['email', 'name']
    column_filters = ['is_active', 'is_site_admin']
    column_list = ['id', 'name', 'email', 'is_active', 'is_site_admin', 'created_at']


class FamilyGroupAdminView(SecureModelView):
    column_searchable_list = ['name']
    column_filters = ['is_active', 'child_id']
    column_list = ['id', 'name', 'child_id', 'is_active', 'invite_code', 'created_at']
    form_excluded_columns = ['members', 'invitations', 'activities']
    # Groups are deactivated, never deleted
    can_delete = False


class GroupMemberAdminView(ReadOnlyModelView):
    column_filters = ['role']
    column_list = ['id', 'group_id', 'user_id', 'role', 'permissions', 'joined_at', 'invited_by_id']


class InvitationAdminView(ReadOnlyModelView):
    column_searchable_list = ['email']
    column_filters = ['role', 'expires_at', 'accepted_at']
    column_exclude_list = ['token']
    column_default_sort = ('created_at', True)


class AuditLogAdminView(ReadOnlyModelView):
    column_filters = ['action', 'user_id', 'created_at']
    column_default_sort = ('created_at', True)


class ActivityAdminView(ReadOnlyModelView):
    column_searchable_list = ['title']
    column_filters = ['activity_type', 'is_visible']
    column_default_sort = ('created_at', True)


# ---------------------------------------------------------------------------
# Admin factory
# ---------------------------------------------------------------------------

def init_admin(app, db):
    """Create the Flask-Admin instance and register all model views."""

    admin = Admin(
        app,
        name='Family Sharing Admin',
        theme=Bootstrap4Theme(),
        index_view=SecureAdminIndexView(),
        url='/admin',
    )

    from models.users import User
    from models.family_groups import FamilyGroup, GroupMember
    from models.invitations import GroupInvitation
    from models.activities import ActivityComment, ActivityLike, GroupActivity
    from models.audit import AuditLog

    # Core
    admin.add_view(UserAdminView(User, db.session, name='Users', category='Core'))
    admin.add_view(FamilyGroupAdminView(FamilyGroup, db.session, name='Family Groups', category='Core'))
    admin.add_view(GroupMemberAdminView(GroupMember, db.session, name='Members', category='Core'))
    admin.add_view(InvitationAdminView(GroupInvitation, db.session, name='Invitations', category='Core'))

    # Activity feed
    admin.add_view(ActivityAdminView(GroupActivity, db.session, name='Activities', category='Feed'))
    admin.add_view(ReadOnlyModelView(ActivityComment, db.session, name='Comments', category='Feed'))
    admin.add_view(ReadOnlyModelView(ActivityLike, db.session, name='Reactions', category='Feed'))

    # Audit
    admin.add_view(AuditLogAdminView(AuditLog, db.session, name='Audit Log', category='Audit'))

    return admin
