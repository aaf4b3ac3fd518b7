import logging
import sys
import webbrowser

import utils
from config import ServerConfig
from errors import ConfigError, EncodingError
from network import AddressResolver
from server import ServerThread

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] - %(message)s"


def open_in_browser(url: str):
    """Open the server URL in the default browser; failures are only logged."""
    try:
        if not webbrowser.open(url):
            logger.warning("no browser available to open %s", url)
    except webbrowser.Error as e:
        logger.warning("could not open browser: %s", e)


def main():
    """Entry point for the file drop server."""
    try:
        config = ServerConfig.from_env()
    except ConfigError as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error("invalid configuration: %s", e)
        sys.exit(1)

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    host_url = AddressResolver(config).resolve()
    logger.info("starting HTTP server at %s", host_url)
    logger.info("sharing %s", config.working_dir)

    try:
        server_thread = ServerThread(config)
    except OSError as e:
        logger.error("cannot listen on %s:%s: %s", config.host, config.port, e)
        sys.exit(1)
    server_thread.start()

    print(f"\n  Scan to open {host_url}\n")
    try:
        utils.print_qr_ascii(host_url)
    except EncodingError as e:
        logger.warning("no QR code for %s: %s", host_url, e)

    if config.open_browser:
        open_in_browser(host_url)

    try:
        while server_thread.is_alive():
            server_thread.join(0.5)
    except KeyboardInterrupt:
        logger.info("stopping HTTP server")
        server_thread.stop()
        server_thread.join()


if __name__ == "__main__":
    main()
