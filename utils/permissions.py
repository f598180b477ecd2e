"""
Capability model for family groups.

Every member holds an *effective* permission set: eight booleans that gate
which parts of a child's record they can see and which management actions
they can take.  The set starts from their role's defaults and may carry
per-member overrides::

    capability        meaning
    ────────────────  ─────────────────────────────────────────────
    view_photos       photo gallery
    view_medical      appointments, vaccinations, growth records
    view_feeding      feeding log
    view_sleep        sleep log
    view_diapers      diaper log
    add_data          add entries to the child's record / feed
    invite_members    send invitations to join the group
    manage_group      change permissions, remove members, deactivate

Role defaults nest: owner ⊇ admin ⊇ contributor ⊇ viewer.  Overrides may
break that ordering on purpose (a viewer granted one extra capability).
"""
import enum
from dataclasses import dataclass, fields, replace
from types import MappingProxyType

from services.exceptions import InvalidRole


class Role(str, enum.Enum):
    OWNER = 'owner'
    ADMIN = 'admin'
    CONTRIBUTOR = 'contributor'
    VIEWER = 'viewer'

    @classmethod
    def parse(cls, value):
        """Return the Role for *value* (a Role or its string name).

        Raises ``InvalidRole`` for anything outside the four known roles.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidRole(f'Unknown role: {value!r}') from None


class Capability(str, enum.Enum):
    VIEW_PHOTOS = 'view_photos'
    VIEW_MEDICAL = 'view_medical'
    VIEW_FEEDING = 'view_feeding'
    VIEW_SLEEP = 'view_sleep'
    VIEW_DIAPERS = 'view_diapers'
    ADD_DATA = 'add_data'
    INVITE_MEMBERS = 'invite_members'
    MANAGE_GROUP = 'manage_group'


@dataclass(frozen=True)
class Permission:
    view_photos: bool = False
    view_medical: bool = False
    view_feeding: bool = False
    view_sleep: bool = False
    view_diapers: bool = False
    add_data: bool = False
    invite_members: bool = False
    manage_group: bool = False

    @classmethod
    def from_dict(cls, data):
        """Build a Permission from a complete capability dict.

        Partial or garbled input is rejected: every capability must be
        present, nothing else may be, and every value must be a bool.
        """
        if not isinstance(data, dict):
            raise ValueError('Permissions must be an object of capability flags.')
        expected = {c.value for c in Capability}
        missing = expected - set(data)
        unknown = set(data) - expected
        if missing:
            raise ValueError(f'Missing capabilities: {", ".join(sorted(missing))}')
        if unknown:
            raise ValueError(f'Unknown capabilities: {", ".join(sorted(unknown))}')
        _check_bools(data)
        return cls(**data)

    def to_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def allows(self, capability):
        return bool(getattr(self, Capability(capability).value))

    def covers(self, other):
        """True if every capability granted by *other* is granted here too."""
        return all(getattr(self, f.name) or not getattr(other, f.name) for f in fields(self))

    def merged(self, override=None):
        """Return a copy with the keys of the sparse *override* applied."""
        if not override:
            return self
        unknown = set(override) - {c.value for c in Capability}
        if unknown:
            raise ValueError(f'Unknown capabilities: {", ".join(sorted(unknown))}')
        _check_bools(override)
        return replace(self, **override)


def _check_bools(data):
    bad = sorted(k for k, v in data.items() if not isinstance(v, bool))
    if bad:
        raise ValueError(f'Capability values must be true or false: {", ".join(bad)}')


DEFAULT_PERMISSIONS = MappingProxyType({
    Role.OWNER: Permission(
        view_photos=True, view_medical=True, view_feeding=True, view_sleep=True,
        view_diapers=True, add_data=True, invite_members=True, manage_group=True,
    ),
    Role.ADMIN: Permission(
        view_photos=True, view_medical=True, view_feeding=True, view_sleep=True,
        view_diapers=True, add_data=True, invite_members=True, manage_group=False,
    ),
    Role.CONTRIBUTOR: Permission(
        view_photos=True, view_medical=False, view_feeding=True, view_sleep=True,
        view_diapers=True, add_data=True, invite_members=False, manage_group=False,
    ),
    Role.VIEWER: Permission(
        view_photos=True, view_medical=False, view_feeding=True, view_sleep=True,
        view_diapers=False, add_data=False, invite_members=False, manage_group=False,
    ),
})


def effective_permissions(role, override=None):
    """Role defaults with the sparse *override* laid on top.

    Keys present in *override* win; the rest keep the role default.
    Raises ``InvalidRole`` for an unknown role and ``ValueError`` for an
    override naming an unknown capability or holding a non-bool value.
    """
    return DEFAULT_PERMISSIONS[Role.parse(role)].merged(override)
