"""Family groups blueprint – JSON API over the family-sharing services."""
from flask import Blueprint, jsonify
from flask_login import login_required

from services.exceptions import FamilyGroupError

family_groups_bp = Blueprint('family_groups', __name__, url_prefix='/family-groups')


# Require authentication for all routes in this blueprint
@family_groups_bp.before_request
@login_required
def require_login():
    pass


@family_groups_bp.errorhandler(FamilyGroupError)
def handle_family_group_error(error):
    return jsonify(error.to_dict()), error.status_code


@family_groups_bp.errorhandler(ValueError)
def handle_bad_request(error):
    return jsonify({'error': 'bad_request', 'message': str(error)}), 400


from . import routes  # noqa: E402,F401
