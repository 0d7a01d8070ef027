import os
import sys
import logging
from flask import Flask, request, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix
from sqlalchemy.exc import SQLAlchemyError
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)
from config import Config
from extensions import db, migrate, login_manager, limiter, mail
from exceptions import AimsError, StorageFailure
from utils.session_auth import load_user_from_request


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.secret_key = app.config['SECRET_KEY']
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)
    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    @app.after_request
    def after_request(response):
        allowed_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
        request_origin = request.headers.get('Origin')
        if request_origin and request_origin in allowed_origins:
            response.headers['Access-Control-Allow-Origin'] = request_origin
            response.headers['Vary'] = 'Origin'
        elif not app.config.get('LOCALHOST_ONLY', True):
            response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers.add('Access-Control-Allow-Headers', 'Content-Type,Authorization,X-Session-Id,X-User-Id')
        response.headers.add('Access-Control-Allow-Methods', 'GET,PUT,POST,DELETE,OPTIONS')
        return response

    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(BASE_DIR, 'migrations'))
    login_manager.init_app(app)
    limiter.init_app(app)
    mail.init_app(app)

    @login_manager.request_loader
    def load_user(req):
        return load_user_from_request(req)

    @login_manager.unauthorized_handler
    def unauthorized():
        return (jsonify({'error': 'Unauthorized'}), 401)

    @app.errorhandler(AimsError)
    def handle_aims_error(exc):
        return (jsonify(exc.to_dict()), exc.status_code)

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc):
        db.session.rollback()
        app.logger.exception('Database error on %s %s', request.method, request.path)
        error = StorageFailure()
        return (jsonify(error.to_dict()), error.status_code)

    @app.errorhandler(404)
    def not_found(exc):
        return (jsonify({'error': 'Route not found', 'path': request.path}), 404)

    @app.errorhandler(405)
    def method_not_allowed(exc):
        return (jsonify({'error': 'Method not allowed.'}), 405)

    from routes.auth import auth_bp
    from routes.students import students_bp
    from routes.instructors import instructors_bp
    from routes.advisors import advisors_bp
    from routes.admin import admin_bp
    from routes.courses import courses_bp
    from routes.projects import instructor_projects_bp, student_projects_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(instructors_bp)
    app.register_blueprint(advisors_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(courses_bp)
    app.register_blueprint(instructor_projects_bp)
    app.register_blueprint(student_projects_bp)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'ok', 'version': app.config.get('VERSION')})
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config.get('DEBUG', False))
