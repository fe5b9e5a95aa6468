"""Flask application factory."""

import hmac
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from phin_reports.config import Config
from phin_reports.errors import ReportError
from phin_reports.insights import from_config
from phin_reports.reports import ReportService
from phin_reports.routes import reports_bp
from phin_reports.square import SquareClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PASSCODE_HEADER = "X-Passcode"


def _describe_request():
    return f"{request.method} {request.path} {request.args.to_dict()}"


def register_error_handlers(app):
    """Map the error taxonomy onto `{"error": ..., "details"?: ...}` bodies."""

    @app.errorhandler(ReportError)
    def handle_report_error(error):
        if error.status_code >= 500:
            logger.error(f"{_describe_request()} -> {error.status_code}: {error.message} {error.details}")
        else:
            logger.warning(f"{_describe_request()} -> {error.status_code}: {error.message}")
        if error.status_code == 500:
            return jsonify({"error": "Unexpected server error"}), 500
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        logger.warning(f"{_describe_request()} -> {error.code}: {error.description}")
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"{_describe_request()} -> unhandled {type(error).__name__}: {error}")
        return jsonify({"error": "Unexpected server error"}), 500


def register_passcode_gate(app, passcode):
    """Require the X-Passcode header on every request except CORS preflights."""

    @app.before_request
    def check_passcode():
        if request.method == "OPTIONS":
            return None
        supplied = request.headers.get(PASSCODE_HEADER, "")
        if not hmac.compare_digest(supplied.encode(), passcode.encode()):
            return jsonify({"error": "Invalid passcode"}), 401
        return None


def create_app(config=None, square_client=None, insights=None):
    """
    Build the app. Everything except `config` defaults from it, so tests can
    hand in a SquareClient over a mock transport and a fake insights generator.
    """
    config = config or Config.from_env()

    logger.info(
        f"Square environment={config.square_environment} "
        f"base_url={config.square_base_url} token={config.masked_token} "
        f"timezone={config.store_timezone}"
    )

    app = Flask(__name__)
    client = square_client or SquareClient(config)
    app.extensions["phin_reports"] = {
        "config": config,
        "service": ReportService(client, config),
        "insights": insights if insights is not None else from_config(config),
    }

    CORS(
        app,
        resources={r"/api/*": {"origins": [config.frontend_origin]}},
        allow_headers=["Content-Type", PASSCODE_HEADER],
        supports_credentials=True,
    )
    if config.basic_auth_passcode:
        register_passcode_gate(app, config.basic_auth_passcode)

    register_error_handlers(app)
    app.register_blueprint(reports_bp)
    return app
