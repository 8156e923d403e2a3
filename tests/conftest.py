from datetime import date

import pytest

from app import create_app
from services.order_records.runner import OrderRecordService
from services.order_records.sprints import SprintSettings

FIXED_TODAY = date(2026, 1, 10)


@pytest.fixture
def fixed_today():
    return FIXED_TODAY


@pytest.fixture
def order_service(fixed_today):
    """Service with default sprint settings and a frozen clock."""
    return OrderRecordService(settings=SprintSettings(), today=lambda: fixed_today)


@pytest.fixture
def app(order_service):
    """Fixture for the Flask app, wired to the frozen-clock service."""
    app = create_app('Testing')
    app.extensions["order_record_service"] = order_service
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


