"""
Tests for the Flask CLI commands registered in app.register_commands.
"""
from extensions import db
from models.users import User


class TestSiteAdminCommands:
    def test_grant_and_revoke(self, app, owner):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['site-admin', 'grant', owner.email])
        assert 'granted site admin access' in result.output
        db.session.expire_all()
        assert db.session.get(User, owner.id).is_site_admin is True

        result = runner.invoke(args=['site-admin', 'list'])
        assert owner.email in result.output

        result = runner.invoke(args=['site-admin', 'revoke', owner.email])
        assert 'revoked' in result.output
        db.session.expire_all()
        assert db.session.get(User, owner.id).is_site_admin is False

    def test_unknown_email(self, app):
        result = app.test_cli_runner().invoke(args=['site-admin', 'grant', 'nobody@example.com'])
        assert 'No user found' in result.output


class TestAuditCommand:
    def test_show(self, app, group):
        result = app.test_cli_runner().invoke(args=['audit', 'show', str(group.id)])
        assert result.exit_code == 0
        assert 'group_created' in result.output

    def test_show_empty(self, app):
        result = app.test_cli_runner().invoke(args=['audit', 'show', '9999'])
        assert 'No audit entries' in result.output
