"""
Scanflow HTTP frontend.

Minimal Flask application exposing synchronous PDF conversion.

Usage:
    python -m scanflow serve
    python -m scanflow serve --port 3000 --host 0.0.0.0
"""

from typing import Optional

from flask import Flask

from scanflow.config import ScanflowConfig, load_config


def create_app(config: Optional[ScanflowConfig] = None, coordinator=None) -> Flask:
    """Create and configure Flask app."""
    config = config or load_config()

    if coordinator is None:
        from scanflow.llm import GenerateClient
        from scanflow.pipeline import PipelineCoordinator

        # Uploads never touch object storage
        coordinator = PipelineCoordinator(config, None, GenerateClient.from_config(config))

    app = Flask(__name__)
    app.config['SCANFLOW'] = config
    app.config['COORDINATOR'] = coordinator
    app.config['UPLOAD_DIR'] = config.workspace_root / "uploads"

    from scanflow.web.routes import scan_bp
    app.register_blueprint(scan_bp)

    return app
