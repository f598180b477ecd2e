import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError
from config import config
from extensions import db, migrate, login_manager, csrf, limiter


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/family_sharing.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Family sharing startup')
    else:
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Family sharing startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    # JSON API: answer 401 instead of redirecting to a login page
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'unauthorized', 'message': 'Login required'}), 401

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models  # noqa: F401

    from blueprints.family_groups import family_groups_bp
    app.register_blueprint(family_groups_bp)

    with app.app_context():
        db.create_all()

    # Register Flask-Admin (must come after db.init_app and all models are loaded)
    from admin_panel import init_admin
    init_admin(app, db)
    # Flask-Admin generates its own form tokens; exempt its blueprint from
    # Flask-WTF's global CSRF so the two don't conflict.
    csrf.exempt(app.blueprints['admin'])

    register_error_handlers(app)
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'not_found', 'message': 'Resource not found'}), 404

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'error': 'rate_limited', 'message': str(error.description)}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'error': 'internal_error', 'message': 'Internal server error'}), 500

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({'error': 'forbidden', 'message': 'Forbidden'}), 403

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'error': 'csrf_failed', 'message': error.description}), 400


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def site_admin():
        """Manage site-level admin access to /admin panel."""
        pass

    @site_admin.command('grant')
    @click.argument('email')
    def grant_site_admin(email):
        """Grant /admin panel access to a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_site_admin:
            click.echo(f'"{user.name}" ({email}) already has site admin access.')
            return
        user.is_site_admin = True
        db.session.commit()
        click.echo(f'SUCCESS: "{user.name}" ({email}) granted site admin access.')

    @site_admin.command('revoke')
    @click.argument('email')
    def revoke_site_admin(email):
        """Revoke /admin panel access from a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if not user.is_site_admin:
            click.echo(f'"{user.name}" ({email}) does not have site admin access.')
            return
        user.is_site_admin = False
        db.session.commit()
        click.echo(f'SUCCESS: Site admin access revoked from "{user.name}" ({email}).')

    @site_admin.command('list')
    def list_site_admins():
        """List all users with site admin access."""
        from models.users import User
        admins = User.query.filter_by(is_site_admin=True).all()
        if not admins:
            click.echo('No site admins found.')
            return
        click.echo(f'{"ID":<5} {"Name":<25} {"Email":<40} {"Active":<8}')
        click.echo('-' * 80)
        for u in admins:
            click.echo(f'{u.id:<5} {u.name:<25} {u.email:<40} {str(u.is_active):<8}')

    @app.cli.group()
    def audit():
        """Inspect family group audit trails."""
        pass

    @audit.command('show')
    @click.argument('group_id', type=int)
    @click.option('--limit', default=20, show_default=True, help='Number of entries to show.')
    def show_audit(group_id, limit):
        """Print the most recent audit entries for GROUP_ID."""
        from models.audit import AuditLog
        entries = (
            AuditLog.query
            .filter_by(group_id=group_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )
        if not entries:
            click.echo(f'No audit entries for group {group_id}.')
            return
        click.echo(f'{"When":<20} {"User":<6} {"Action":<22} {"Resource":<24} {"IP":<16}')
        click.echo('-' * 90)
        for e in entries:
            resource = f'{e.resource_type or "-"}:{e.resource_id or "-"}'
            click.echo(
                f'{e.created_at:%Y-%m-%d %H:%M:%S} {str(e.user_id or "-"):<6} '
                f'{e.action:<22} {resource:<24} {e.ip_address:<16}'
            )


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    app.run(host='127.0.0.1', port=5000, debug=True)
