# goalete/__init__.py
import logging
import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

db = SQLAlchemy()
migrate = Migrate()


def create_app(config_object='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=app.config.get('LOG_LEVEL', 'INFO')
    )

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app)

    # Admin credential check
    from goalete.auth import PasscodeChecker
    app.extensions['credential_checker'] = PasscodeChecker(app.config.get('ADMIN_PASSCODE'))

    # Mutation event log for the dashboard
    from goalete.signals import EventLog
    app.extensions['event_log'] = EventLog()

    from goalete.errors import register_error_handlers
    register_error_handlers(app)

    # Blueprints
    from goalete.routes import admin, meetings, orders, webhooks, cron
    app.register_blueprint(admin.bp)
    app.register_blueprint(meetings.bp)
    app.register_blueprint(orders.bp)
    app.register_blueprint(webhooks.bp)
    app.register_blueprint(cron.bp)

    os.makedirs(os.path.join(app.root_path, os.pardir, 'instance'), exist_ok=True)

    return app
