"""
Tests for the /family-groups JSON API: authentication, status codes and error bodies.
"""
import pytest

from models.family_groups import GroupMember
from services.activity_service import ActivityService
from services.invitation_service import InvitationService


@pytest.fixture
def owner_client(app, owner):
    return app.test_client(user=owner)


@pytest.fixture
def other_client(app, other_user):
    return app.test_client(user=other_user)


@pytest.fixture(autouse=True)
def quiet_notifier(monkeypatch):
    monkeypatch.setattr('services.notifier.send_invitation', lambda *args: None)


class TestAuthentication:
    def test_anonymous_gets_401(self, app, group):
        resp = app.test_client().get(f'/family-groups/{group.id}')
        assert resp.status_code == 401
        assert resp.get_json()['error'] == 'unauthorized'

    def test_each_request_sees_its_own_user(self, app, group, other_user, add_member,
                                            owner_client, other_client):
        add_member(group, other_user, 'viewer')
        assert owner_client.get(f'/family-groups/{group.id}').get_json()['my_role'] == 'owner'
        assert other_client.get(f'/family-groups/{group.id}').get_json()['my_role'] == 'viewer'
        assert app.test_client().get(f'/family-groups/{group.id}').status_code == 401
        assert owner_client.get(f'/family-groups/{group.id}').get_json()['my_role'] == 'owner'


class TestGroupRoutes:
    def test_create_group(self, app, owner, owner_client):
        resp = owner_client.post('/family-groups', json={'child_id': 3, 'name': 'Jones Family'})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['name'] == 'Jones Family'
        assert GroupMember.query.filter_by(group_id=data['id'], user_id=owner.id).one().role == 'owner'

    def test_create_group_requires_name(self, app, owner_client):
        resp = owner_client.post('/family-groups', json={'child_id': 3})
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'bad_request'

    def test_create_group_requires_json_object(self, app, owner_client):
        resp = owner_client.post('/family-groups', data='nope', content_type='text/plain')
        assert resp.status_code == 400

    def test_create_group_description_must_be_text(self, app, owner_client):
        resp = owner_client.post('/family-groups', json={'child_id': 3, 'name': 'Jones', 'description': 123})
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'bad_request'

    def test_detail_includes_my_role(self, app, group, owner_client):
        data = owner_client.get(f'/family-groups/{group.id}').get_json()
        assert data['my_role'] == 'owner'
        assert data['my_permissions']['manage_group'] is True

    def test_detail_hidden_from_outsiders(self, app, group, other_client):
        resp = other_client.get(f'/family-groups/{group.id}')
        assert resp.status_code == 403
        assert resp.get_json() == {'error': 'permission_denied', 'message': 'Not a member of this group'}

    def test_missing_group_is_404(self, app, owner_client):
        resp = owner_client.get('/family-groups/9999')
        assert resp.status_code == 404
        assert resp.get_json()['error'] == 'not_found'

    def test_deactivate(self, app, group, owner_client):
        resp = owner_client.post(f'/family-groups/{group.id}/deactivate')
        assert resp.status_code == 200
        assert resp.get_json()['is_active'] is False


class TestMemberRoutes:
    def test_list_members(self, app, group, other_user, add_member, other_client):
        add_member(group, other_user, 'viewer')
        resp = other_client.get(f'/family-groups/{group.id}/members')
        assert resp.status_code == 200
        assert len(resp.get_json()) == 2

    def test_update_permissions(self, app, group, other_user, add_member, owner_client):
        add_member(group, other_user, 'viewer')
        perms = {
            'view_photos': True, 'view_medical': True, 'view_feeding': True, 'view_sleep': True,
            'view_diapers': False, 'add_data': False, 'invite_members': False, 'manage_group': False,
        }
        resp = owner_client.put(
            f'/family-groups/{group.id}/members/{other_user.id}/permissions', json={'permissions': perms},
        )
        assert resp.status_code == 200
        assert resp.get_json()['permissions'] == perms

    def test_partial_permissions_rejected(self, app, group, other_user, add_member, owner_client):
        add_member(group, other_user, 'viewer')
        resp = owner_client.put(
            f'/family-groups/{group.id}/members/{other_user.id}/permissions',
            json={'permissions': {'view_medical': True}},
        )
        assert resp.status_code == 400

    def test_update_role_invalid(self, app, group, other_user, add_member, owner_client):
        add_member(group, other_user, 'viewer')
        resp = owner_client.put(
            f'/family-groups/{group.id}/members/{other_user.id}/role', json={'role': 'grandparent'},
        )
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'invalid_role'

    def test_remove_member(self, app, group, other_user, add_member, owner_client):
        add_member(group, other_user, 'viewer')
        resp = owner_client.delete(f'/family-groups/{group.id}/members/{other_user.id}')
        assert resp.status_code == 204

    def test_remove_owner_is_403(self, app, group, owner, owner_client):
        resp = owner_client.delete(f'/family-groups/{group.id}/members/{owner.id}')
        assert resp.status_code == 403
        assert resp.get_json()['error'] == 'owner_protected'


class TestInvitationRoutes:
    def test_invite_and_accept(self, app, owner, group, other_user, owner_client, other_client):
        resp = owner_client.post(
            f'/family-groups/{group.id}/invitations',
            json={'email': 'bob@example.com', 'role': 'viewer', 'permissions': {'view_medical': True}},
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert 'token' not in body
        assert body['permissions']['view_medical'] is True

        token = InvitationService.list_pending_invitations(group.id, owner.id)[0].token
        resp = other_client.post(f'/family-groups/invitations/{token}/accept')
        assert resp.status_code == 201
        assert resp.get_json()['role'] == 'viewer'

        resp = other_client.post(f'/family-groups/invitations/{token}/accept')
        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'already_accepted'

    def test_viewer_cannot_invite(self, app, group, other_user, add_member, other_client):
        add_member(group, other_user, 'viewer')
        resp = other_client.post(
            f'/family-groups/{group.id}/invitations', json={'email': 'x@example.com', 'role': 'viewer'},
        )
        assert resp.status_code == 403

    def test_unknown_token_is_404(self, app, other_client):
        resp = other_client.post('/family-groups/invitations/deadbeef/accept')
        assert resp.status_code == 404
        assert resp.get_json()['error'] == 'invalid_token'

    def test_expired_token_is_410(self, app, clock, owner, group, other_client):
        inv = InvitationService.invite_member(group.id, owner.id, 'bob@example.com', 'viewer')
        clock.advance(days=8)
        resp = other_client.post(f'/family-groups/invitations/{inv.token}/accept')
        assert resp.status_code == 410
        assert resp.get_json()['error'] == 'invitation_expired'

    def test_list_pending(self, app, group, owner_client):
        owner_client.post(
            f'/family-groups/{group.id}/invitations', json={'email': 'x@example.com', 'role': 'viewer'},
        )
        resp = owner_client.get(f'/family-groups/{group.id}/invitations')
        assert [i['email'] for i in resp.get_json()] == ['x@example.com']


class TestActivityRoutes:
    def test_post_and_read_feed(self, app, group, owner_client):
        resp = owner_client.post(
            f'/family-groups/{group.id}/activities',
            json={'activity_type': 'milestone', 'title': 'First steps', 'metadata': {'age_months': 11}},
        )
        assert resp.status_code == 201
        activity_id = resp.get_json()['id']

        assert owner_client.post(
            f'/family-groups/activities/{activity_id}/comments', json={'content': 'Wow'},
        ).status_code == 201
        assert owner_client.post(
            f'/family-groups/activities/{activity_id}/reactions', json={'reaction_type': 'love'},
        ).status_code == 200

        feed = owner_client.get(f'/family-groups/{group.id}/activities').get_json()
        assert feed[0]['title'] == 'First steps'
        assert feed[0]['metadata'] == {'age_months': 11}
        assert feed[0]['comments'][0]['content'] == 'Wow'
        assert feed[0]['reactions'][0]['reaction_type'] == 'love'

    def test_limit_is_capped(self, app, owner, group, owner_client, monkeypatch):
        seen = {}

        def fake_feed(group_id, user_id, limit, offset):
            seen['limit'] = limit
            return []
        monkeypatch.setattr(ActivityService, 'get_group_activities', staticmethod(fake_feed))
        owner_client.get(f'/family-groups/{group.id}/activities?limit=100000')
        assert seen['limit'] == app.config['ACTIVITY_PAGE_SIZE_MAX']

    def test_bad_limit(self, app, group, owner_client):
        resp = owner_client.get(f'/family-groups/{group.id}/activities?limit=lots')
        assert resp.status_code == 400

    def test_activity_description_must_be_text(self, app, group, owner_client):
        resp = owner_client.post(
            f'/family-groups/{group.id}/activities',
            json={'activity_type': 'note', 'title': 'Hi', 'description': ['a']},
        )
        assert resp.status_code == 400

    def test_reaction_defaults_to_like(self, app, owner, group, owner_client):
        a = ActivityService.create_activity(group.id, owner.id, 'note', 'hi')
        resp = owner_client.post(f'/family-groups/activities/{a.id}/reactions')
        assert resp.status_code == 200
        assert resp.get_json()['reaction_type'] == 'like'

    @pytest.mark.parametrize('body', [[1], 'like', {'reaction_type': 5}, {'reaction_type': ''}])
    def test_malformed_reaction_is_400(self, app, owner, group, owner_client, body):
        a = ActivityService.create_activity(group.id, owner.id, 'note', 'hi')
        resp = owner_client.post(f'/family-groups/activities/{a.id}/reactions', json=body)
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'bad_request'

    def test_outsider_cannot_comment(self, app, owner, group, other_client):
        a = ActivityService.create_activity(group.id, owner.id, 'note', 'hi')
        resp = other_client.post(f'/family-groups/activities/{a.id}/comments', json={'content': 'x'})
        assert resp.status_code == 403


class TestAuditRoute:
    def test_owner_reads_audit(self, app, group, owner_client):
        resp = owner_client.get(f'/family-groups/{group.id}/audit')
        assert resp.status_code == 200
        assert resp.get_json()[0]['action'] == 'group_created'

    def test_member_without_manage_group_is_403(self, app, group, other_user, add_member, other_client):
        add_member(group, other_user, 'admin')
        assert other_client.get(f'/family-groups/{group.id}/audit').status_code == 403
