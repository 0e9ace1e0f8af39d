from goalete import create_app, db
import logging
import os

app = create_app()
logger = logging.getLogger(__name__)


@app.shell_context_processor
def make_shell_context():
    # Import models here to avoid circular imports
    from goalete.models import User, Subscription, Meeting

    return {'db': db, 'User': User, 'Subscription': Subscription, 'Meeting': Meeting}


if __name__ == '__main__':
    with app.app_context():
        os.makedirs('instance', exist_ok=True)
        logger.info(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")

        db.create_all()
        logger.info("Database tables created/updated")

    debug = os.environ.get('FLASK_DEBUG', 'False').lower() in ['true', '1', 'on']
    port = int(os.environ.get('PORT', '5000'))
    logger.info(f"GOALETE admin running on http://localhost:{port} (debug={debug})")
    app.run(debug=debug, host='0.0.0.0', port=port)
