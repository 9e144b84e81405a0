"""Flask application factory for the WellCut HTTP API."""

from flask import Flask, jsonify

from wellcut.errors import InputError, ProcessingError


def create_app() -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 512 * 1024 * 1024  # 512 MB

    from wellcut.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large"}), 413

    @app.errorhandler(InputError)
    def input_error(error):
        return jsonify({"error": str(error), "stage": error.stage}), 400

    @app.errorhandler(ProcessingError)
    def processing_error(error):
        return jsonify({"error": str(error), "stage": error.stage}), 500

    return app
