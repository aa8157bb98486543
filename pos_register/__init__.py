"""Flask application factory."""
import threading

from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect
from pos_register.database import init_db, get_session


def build_register(app):
    """Register instance wired to the app's catalog, gateway and held-sale store."""
    from pos_register.services.catalog_service import SqlCatalog
    from pos_register.services.held_sale_service import build_store
    from pos_register.services.notification_service import (
        CompositeNotifier, LoggingNotifier, NotificationQueue
    )
    from pos_register.services.payment_gateway import build_gateway
    from pos_register.services.register_service import Register

    queue = NotificationQueue()
    register = Register(
        catalog=SqlCatalog(get_session),
        gateway=build_gateway(app.config),
        notifier=CompositeNotifier(LoggingNotifier(), queue),
        store=build_store(app.config),
        currency=app.config.get('CURRENCY', 'INR'),
        walk_in_name=app.config.get('WALK_IN_CUSTOMER_NAME', 'Walk-in Customer'),
        business_name=app.config.get('BUSINESS_NAME', 'POS Register')
    )
    # The HTTP layer drains this queue into each response
    register.notifications = queue
    return register


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection
    CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'Session expired. Reload the register.'}), 400

    # Sentry error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production')
        )

    # Prometheus metrics instrumentation
    from pos_register.blueprints.metrics import setup_metrics_instrumentation, register_pos_metrics
    setup_metrics_instrumentation(app)

    # Production: ProxyFix behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # One register per app
    register = build_register(app)
    register_pos_metrics(register)
    app.extensions['register'] = register
    app.extensions['register_lock'] = threading.Lock()

    # Error Handlers
    from pos_register.exceptions import RegisterError

    @app.errorhandler(RegisterError)
    def handle_register_error(error):
        """Handle custom application exceptions."""
        app.logger.error(f"RegisterError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception on {request.path}: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from pos_register.blueprints.pos import pos_bp
    from pos_register.blueprints.metrics import metrics_bp

    app.register_blueprint(pos_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from pos_register.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(
        f"POS register ready: currency={app.config.get('CURRENCY')}, "
        f"held_sales={app.config.get('HELD_SALES_BACKEND')}, gateway={'on' if register.gateway else 'off'}"
    )

    return app
