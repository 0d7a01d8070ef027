import logging
from flask_migrate import upgrade
from app import create_app

logger = logging.getLogger(__name__)

def init_database():
    """Create the app and run migrations up to head."""
    app = create_app()
    with app.app_context():
        try:
            upgrade()
            return True
        except Exception:
            logger.exception('Database migration failed')
            return False

def main():
    """Main function to initialize the database."""
    if not init_database():
        return 1
    return 0
if __name__ == '__main__':
    exit(main())
