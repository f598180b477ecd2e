"""
Family groups routes.

All routes require login and answer JSON.  Service errors are rendered by the
blueprint's error handler as ``{"error": <kind>, "message": ...}``.

  POST   /family-groups                                  – create a group
  GET    /family-groups/<id>                             – group detail (members only)
  POST   /family-groups/<id>/deactivate                  – deactivate (manage_group)
  GET    /family-groups/<id>/members                     – list members
  PUT    /family-groups/<id>/members/<uid>/permissions   – replace permissions
  PUT    /family-groups/<id>/members/<uid>/role          – change role
  DELETE /family-groups/<id>/members/<uid>               – remove member
  POST   /family-groups/<id>/invitations                 – invite by email
  GET    /family-groups/<id>/invitations                 – pending invitations
  POST   /family-groups/invitations/<token>/accept       – redeem a token
  GET    /family-groups/<id>/activities                  – feed (?limit=&offset=)
  POST   /family-groups/<id>/activities                  – post to feed
  POST   /family-groups/activities/<id>/comments         – comment
  POST   /family-groups/activities/<id>/reactions        – react
  GET    /family-groups/<id>/audit                       – audit log (manage_group)
"""
from flask import current_app, jsonify, request
from flask_login import current_user

from blueprints.family_groups import family_groups_bp
from extensions import limiter
from services.activity_service import ActivityService
from services.audit_service import AuditService
from services.exceptions import PermissionDenied
from services.group_service import GroupService
from services.invitation_service import InvitationService
from services.membership_service import MembershipService


# ── Helpers ───────────────────────────────────────────────────────────────────

def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError('Request body must be a JSON object.')
    return data


def _required_str(data, key):
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f'"{key}" is required.')
    return value.strip()


def _optional_str(data, key):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f'"{key}" must be a string.')
    return value


def _int_arg(name, default, minimum=0, maximum=None):
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        raise ValueError(f'"{name}" must be an integer.')
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


# ── Groups ────────────────────────────────────────────────────────────────────

@family_groups_bp.route('', methods=['POST'])
def create_group():
    data = _json_body()
    child_id = data.get('child_id')
    if not isinstance(child_id, int) or isinstance(child_id, bool):
        raise ValueError('"child_id" must be an integer.')
    group = GroupService.create_group(
        child_id, current_user.id, _required_str(data, 'name'), _optional_str(data, 'description'),
    )
    return jsonify(group.to_dict()), 201


@family_groups_bp.route('/<int:group_id>', methods=['GET'])
def group_detail(group_id):
    group = GroupService.get_group(group_id)
    role = MembershipService.get_user_role(group_id, current_user.id)
    if role is None:
        raise PermissionDenied('Not a member of this group')
    member = MembershipService.get_member(group_id, current_user.id)
    data = group.to_dict()
    data['my_role'] = role.value
    data['my_permissions'] = member.get_permissions().to_dict()
    return jsonify(data)


@family_groups_bp.route('/<int:group_id>/deactivate', methods=['POST'])
def deactivate_group(group_id):
    group = GroupService.deactivate_group(group_id, current_user.id)
    return jsonify(group.to_dict())


# ── Members ───────────────────────────────────────────────────────────────────

@family_groups_bp.route('/<int:group_id>/members', methods=['GET'])
def list_members(group_id):
    members = MembershipService.get_group_members(group_id, current_user.id)
    return jsonify([m.to_dict() for m in members])


@family_groups_bp.route('/<int:group_id>/members/<int:user_id>/permissions', methods=['PUT'])
def update_permissions(group_id, user_id):
    data = _json_body()
    member = MembershipService.update_member_permissions(
        group_id, user_id, current_user.id, data.get('permissions'),
    )
    return jsonify(member.to_dict())


@family_groups_bp.route('/<int:group_id>/members/<int:user_id>/role', methods=['PUT'])
def update_role(group_id, user_id):
    data = _json_body()
    member = MembershipService.update_member_role(
        group_id, user_id, current_user.id, data.get('role'),
    )
    return jsonify(member.to_dict())


@family_groups_bp.route('/<int:group_id>/members/<int:user_id>', methods=['DELETE'])
def remove_member(group_id, user_id):
    MembershipService.remove_member(group_id, user_id, current_user.id)
    return '', 204


# ── Invitations ───────────────────────────────────────────────────────────────

@family_groups_bp.route('/<int:group_id>/invitations', methods=['POST'])
def invite_member(group_id):
    data = _json_body()
    custom = data.get('permissions')
    if custom is not None and not isinstance(custom, dict):
        raise ValueError('"permissions" must be an object.')
    invitation = InvitationService.invite_member(
        group_id, current_user.id, _required_str(data, 'email'), data.get('role'), custom,
    )
    return jsonify(invitation.to_dict()), 201


@family_groups_bp.route('/<int:group_id>/invitations', methods=['GET'])
def list_invitations(group_id):
    invitations = InvitationService.list_pending_invitations(group_id, current_user.id)
    return jsonify([i.to_dict() for i in invitations])


@family_groups_bp.route('/invitations/<token>/accept', methods=['POST'])
@limiter.limit('10 per minute')  # Slow down token guessing
def accept_invitation(token):
    member = InvitationService.accept_invitation(token, current_user.id)
    return jsonify(member.to_dict()), 201


# ── Activity feed ─────────────────────────────────────────────────────────────

@family_groups_bp.route('/<int:group_id>/activities', methods=['GET'])
def list_activities(group_id):
    limit = _int_arg('limit', 20, minimum=1, maximum=current_app.config['ACTIVITY_PAGE_SIZE_MAX'])
    offset = _int_arg('offset', 0)
    activities = ActivityService.get_group_activities(group_id, current_user.id, limit, offset)
    return jsonify([a.to_dict(include_children=True) for a in activities])


@family_groups_bp.route('/<int:group_id>/activities', methods=['POST'])
def create_activity(group_id):
    data = _json_body()
    metadata = data.get('metadata')
    if metadata is not None and not isinstance(metadata, dict):
        raise ValueError('"metadata" must be an object.')
    activity = ActivityService.create_activity(
        group_id, current_user.id,
        _required_str(data, 'activity_type'), _required_str(data, 'title'),
        _optional_str(data, 'description'), metadata,
    )
    return jsonify(activity.to_dict()), 201


@family_groups_bp.route('/activities/<int:activity_id>/comments', methods=['POST'])
def add_comment(activity_id):
    data = _json_body()
    comment = ActivityService.add_comment(activity_id, current_user.id, _required_str(data, 'content'))
    return jsonify(comment.to_dict()), 201


@family_groups_bp.route('/activities/<int:activity_id>/reactions', methods=['POST'])
def add_reaction(activity_id):
    data = _json_body() if request.content_length else {}
    reaction_type = data.get('reaction_type', 'like')
    if not isinstance(reaction_type, str) or not reaction_type.strip():
        raise ValueError('"reaction_type" must be a non-empty string.')
    reaction = ActivityService.add_reaction(activity_id, current_user.id, reaction_type)
    return jsonify(reaction.to_dict())


# ── Audit ─────────────────────────────────────────────────────────────────────

@family_groups_bp.route('/<int:group_id>/audit', methods=['GET'])
def audit_log(group_id):
    limit = _int_arg('limit', 50, minimum=1, maximum=500)
    entries = AuditService.get_group_audit_log(group_id, current_user.id, limit)
    return jsonify([e.to_dict() for e in entries])
