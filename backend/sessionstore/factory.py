"""Application factory wiring logging, the token store and CLI commands."""

from __future__ import annotations

from flask import Flask

from sessionstore.core.config import BaseConfig, get_config
from sessionstore.core.logger import configure_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application hosting the session store."""

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from sessionstore.core import extensions

    extensions.init_app(app)

    from sessionstore import cli as app_cli

    app_cli.init_app(app)

    return app
