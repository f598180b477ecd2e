"""
Error kinds raised by the family-sharing services.

Each subclass carries a stable ``kind`` string and the HTTP status the
blueprint answers with.  Services raise these and never a bare Exception, so
callers can tell a permission problem from a missing record or a spent token.
"""


class FamilyGroupError(Exception):
    """Base class for every family-sharing failure."""

    kind = 'family_group_error'
    status_code = 400
    default_message = 'Family group operation failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.kind, 'message': self.message}


class PermissionDenied(FamilyGroupError):
    kind = 'permission_denied'
    status_code = 403
    default_message = 'You do not have permission to do that.'


class NotFound(FamilyGroupError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Not found.'


class InvalidToken(FamilyGroupError):
    kind = 'invalid_token'
    status_code = 404
    default_message = 'Invalid invitation token.'


class InvitationExpired(FamilyGroupError):
    kind = 'invitation_expired'
    status_code = 410
    default_message = 'This invitation has expired.'


class AlreadyAccepted(FamilyGroupError):
    kind = 'already_accepted'
    status_code = 409
    default_message = 'This invitation has already been accepted.'


class AlreadyMember(FamilyGroupError):
    kind = 'already_member'
    status_code = 409
    default_message = 'You are already a member of this group.'


class OwnerProtected(FamilyGroupError):
    kind = 'owner_protected'
    status_code = 403
    default_message = 'The group owner cannot be removed or demoted.'


class InvalidRole(FamilyGroupError):
    kind = 'invalid_role'
    status_code = 400
    default_message = 'Unknown role.'
