import pytest

from repayment_calc.logging_config import setup_logging
from repayment_calc_web.app import create_app


@pytest.fixture(scope="session", autouse=True)
def _package_logging():
    setup_logging("WARNING")


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SCENARIO_DATABASE_URL": f"sqlite:///{tmp_path / 'scenarios.sqlite3'}",
            "SCENARIOS_PER_USER": 3,
            "LOG_LEVEL": "WARNING",
        }
    )
    yield app
    app.extensions["scenario_store"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()
