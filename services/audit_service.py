"""
Append-only audit trail for family groups.

Writing an audit row is best effort: it runs after the primary change has been
committed, and any failure is rolled back and logged, never raised.  The
operation that triggered it has already succeeded and must report so.
"""
import json
from collections import namedtuple

from flask import current_app, has_request_context, request

from extensions import db
from models.audit import AuditLog

RequestContext = namedtuple('RequestContext', ['ip_address', 'user_agent'])

UNKNOWN = 'unknown'


class AuditService:

    @staticmethod
    def current_request_context():
        """RequestContext for the active Flask request, or None outside one."""
        if not has_request_context():
            return None
        return RequestContext(
            ip_address=request.remote_addr or UNKNOWN,
            user_agent=request.headers.get('User-Agent') or UNKNOWN,
        )

    @staticmethod
    def log_audit(group_id, user_id, action, resource_type=None, resource_id=None,
                  old_values=None, new_values=None, request_context=None):
        """Append one audit row and commit it. Returns the row, or None on failure."""
        try:
            ctx = request_context or AuditService.current_request_context()
            entry = AuditLog(
                group_id=group_id,
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                old_values=json.dumps(old_values or {}, default=str, sort_keys=True),
                new_values=json.dumps(new_values or {}, default=str, sort_keys=True),
                ip_address=(ctx.ip_address if ctx and ctx.ip_address else UNKNOWN)[:45],
                user_agent=(ctx.user_agent if ctx and ctx.user_agent else UNKNOWN)[:255],
            )
            db.session.add(entry)
            db.session.commit()
            return entry
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f'Audit write failed: action={action} group={group_id} user={user_id}')
            return None

    @staticmethod
    def get_group_audit_log(group_id, user_id, limit=50):
        """Most recent audit rows for a group, newest first. Needs manage_group."""
        from services.membership_service import MembershipService
        from utils.permissions import Capability

        MembershipService.require_capability(
            group_id, user_id, Capability.MANAGE_GROUP,
            'No permission to view the audit log',
        )
        return (
            AuditLog.query
            .filter_by(group_id=group_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )
