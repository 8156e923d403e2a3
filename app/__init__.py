# /app/__init__.py
import os
import logging
from flask import Flask
from dotenv import load_dotenv
from config import ProductionConfig
from services.config_service import ConfigManager
from services.order_records.runner import OrderRecordService
from app.routes import order_records_bp


load_dotenv()


def init_sentry():
    """Initialize Sentry error tracking if SENTRY_DSN is configured."""
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    # Determine environment from ENV variable or default to development
    environment = os.getenv("FLASK_ENV") or os.getenv("ENV") or "development"

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        integrations=[
            FlaskIntegration(),
            LoggingIntegration(
                level=logging.INFO,       # Capture info and above as breadcrumbs
                event_level=logging.ERROR  # Send errors and above as events
            ),
        ],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        attach_stacktrace=True,
        debug=os.getenv("SENTRY_DEBUG", "0") == "1",
    )
    logging.info(f"Sentry initialized for environment: {environment}")


def create_app(config_name: str = ""):
    # Initialize Sentry before creating app to catch initialization errors
    init_sentry()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(ProductionConfig)

    # Secret
    app.secret_key = os.getenv("FLASK_SECRET", os.urandom(24))

    if config_name:
        app.config.from_object(f"config.{config_name}Config")

    # Merge JSON config
    config_manager = ConfigManager(app.config["CONFIG_JSON"])
    app.config.update(config_manager.config)

    # Logging (basic)
    logging.basicConfig(
        level=logging.DEBUG if app.config.get("DEBUG") else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # prevent duplicate handlers in some reload scenarios
    )
    if config_manager.last_load_error:
        logging.warning(f"Could not parse {config_manager.resolved_path}; using built-in defaults")
    logging.debug("order_records config: %s", app.config.get("order_records"))

    app.extensions["order_record_service"] = OrderRecordService.from_config(app.config.get("order_records"))

    # Blueprints
    app.register_blueprint(order_records_bp)

    return app
