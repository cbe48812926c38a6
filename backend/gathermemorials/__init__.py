import os
from flask import Flask, abort, send_from_directory
from flask_swagger_ui import get_swaggerui_blueprint
from .config import config_by_name
from .extensions import db, migrate, jwt, limiter
from .api.v1 import v1_bp
from .middleware.request_logging import request_logging_middleware
from .errors import register_error_handlers
from .logging_config import configure_logging

OPENAPI_DIR = os.path.join(os.path.dirname(__file__), "api", "v1")
OPENAPI_FILE = "memorials_openapi.yaml"
OPENAPI_URL = "/openapi/memorials.yaml"
SWAGGER_URL = "/swagger"


def register_api_docs(app: Flask) -> None:
    """Public OpenAPI document plus a Swagger UI pointing at it."""

    @app.route(OPENAPI_URL, methods=["GET"], endpoint="openapi_memorials")
    def serve_openapi():
        if not os.path.exists(os.path.join(OPENAPI_DIR, OPENAPI_FILE)):
            app.logger.error("%s missing from %s", OPENAPI_FILE, OPENAPI_DIR)
            abort(404)
        return send_from_directory(OPENAPI_DIR, OPENAPI_FILE, mimetype="application/yaml")

    swagger_ui = get_swaggerui_blueprint(
        SWAGGER_URL,
        OPENAPI_URL,
        config={
            "app_name": "GatherMemorials API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )
    app.register_blueprint(swagger_ui, url_prefix=SWAGGER_URL)


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    configure_logging(app)

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    for extension in (db, jwt, limiter):
        extension.init_app(app)
    migrate.init_app(app, db)

    # -------------------------------------------------
    # Request logging, routes, error envelope
    # -------------------------------------------------
    request_logging_middleware(app)
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)

    # -------------------------------------------------
    # Docs
    # -------------------------------------------------
    register_api_docs(app)

    app.logger.info("GatherMemorials API started with %s config", config_name)
    return app
