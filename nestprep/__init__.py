import logging
import os

from flask import Flask, jsonify

from nestprep import config as settings

__version__ = "0.1.0"


def configure_logging(level=None, log_file=None):
    """Root logging: console plus a UTF-8 error log file. No-op once the root logger has handlers."""
    logging.basicConfig(
        level=getattr(logging, str(level or settings.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file or settings.LOG_FILE, encoding='utf-8')
        ]
    )


class ErrorLoggingMiddleware:
    """WSGI wrapper that logs any exception escaping the app before re-raising it."""

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        try:
            return self.app(environ, start_response)
        except Exception as e:
            logging.error(f"WSGI Exception on {environ.get('PATH_INFO')}: {e}", exc_info=True)
            raise


def create_app(config=None):
    app = Flask(__name__)
    app.config['UPLOAD_FOLDER'] = settings.UPLOAD_FOLDER or os.path.join(app.instance_path, 'uploads')
    app.config['MAX_CONTENT_LENGTH'] = settings.MAX_CONTENT_LENGTH
    app.config['LOG_LEVEL'] = settings.LOG_LEVEL
    app.config['LOG_FILE'] = settings.LOG_FILE

    if config:
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'], app.config['LOG_FILE'])

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": "Upload too large"}), 413

    app.wsgi_app = ErrorLoggingMiddleware(app.wsgi_app)

    from .routes.main import main_bp
    app.register_blueprint(main_bp)

    from .commands import convert_command, validate_command
    app.cli.add_command(convert_command)
    app.cli.add_command(validate_command)

    for rule in app.url_map.iter_rules():
        logging.debug(f"Registered route: {rule.rule} | methods={rule.methods} | endpoint={rule.endpoint}")

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    logging.info(f"UPLOAD_FOLDER set to {app.config['UPLOAD_FOLDER']}")
    return app
