import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run tests that call the live Open-Meteo and Nominatim services",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: needs network access to upstream providers")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--integration"):
        return

    skip_live = pytest.mark.skip(reason="live provider test, pass --integration to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_live)
