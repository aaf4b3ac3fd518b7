import pytest

from config import ServerConfig
from network import AddressResolver
from server import create_app

BASE_URL = "http://192.168.1.20:8000"


class FixedResolver(AddressResolver):
    """Resolver pinned to a known address so URLs are predictable."""

    def local_ip(self) -> str:
        return "192.168.1.20"


@pytest.fixture
def config(tmp_path):
    return ServerConfig(working_dir=tmp_path, protocol="http", port=8000, open_browser=False)


@pytest.fixture
def resolver(config):
    return FixedResolver(config)


@pytest.fixture
def app(config, resolver):
    app = create_app(config, resolver)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
