import logging
import threading
from typing import Optional

from flask import Flask, jsonify, render_template, request, send_file
from werkzeug.exceptions import HTTPException
from werkzeug.serving import make_server

import utils
from config import ServerConfig
from errors import EncodingError
from files import DownloadServer, FileCatalog, UploadIngestor
from network import AddressResolver

logger = logging.getLogger(__name__)

JSON_PREFIXES = ("/api/", "/upload")


def create_app(config: ServerConfig, resolver: Optional[AddressResolver] = None) -> Flask:
    app = Flask(__name__)

    resolver = resolver or AddressResolver(config)
    catalog = FileCatalog(config, resolver)
    ingestor = UploadIngestor(config, resolver)
    downloads = DownloadServer(config)

    # ================== Errors ==================
    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if request.path.startswith(JSON_PREFIXES):
            return jsonify(error=e.code, message=e.description), e.code
        return f"{e.code} {e.name}: {e.description}", e.code, {"Content-Type": "text/plain; charset=utf-8"}

    # ================== Routes ==================
    @app.route("/", methods=["GET"])
    @app.route("/list", methods=["GET"])
    def index():
        files = sorted(catalog.list(), key=lambda f: f.name.lower())

        host_url = resolver.resolve()
        try:
            host_url_qr = utils.make_qr_png_b64(host_url)
        except EncodingError as e:
            logger.warning("no QR code for %s: %s", host_url, e)
            host_url_qr = None

        return render_template(
            "home.html",
            file_list=files,
            host_url=host_url,
            host_url_qr=host_url_qr,
            working_dir=str(config.working_dir),
        )

    @app.route("/api/files", methods=["GET"])
    def api_files():
        return jsonify([f.to_dict() for f in catalog.list()])

    @app.route("/upload", methods=["POST"])
    @app.route("/api/upload", methods=["POST"])
    def upload():
        results = ingestor.ingest(request.files.getlist("file"))
        status = 200 if all(r.ok for r in results) else 500
        return jsonify([r.to_dict() for r in results]), status

    @app.route("/share/<path:name>", methods=["GET"])
    def share(name):
        path = downloads.resolve(name)
        logger.info("downloading file: %s", path)
        return send_file(path, as_attachment=False, download_name=path.name, conditional=True)

    return app


class ServerThread(threading.Thread):
    """Thread to run the Flask server."""

    def __init__(self, config: ServerConfig, app: Optional[Flask] = None):
        super().__init__(name="http-server", daemon=True)
        self.config = config
        self.app = app or create_app(config)
        self.server = make_server(self.config.host, self.config.port, self.app, threaded=True)

    def run(self):
        self.server.serve_forever()

    def stop(self):
        if self.server:
            self.server.shutdown()
