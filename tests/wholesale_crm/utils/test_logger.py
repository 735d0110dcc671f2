"""
Tests for the structlog processors and request context helpers.
"""
import structlog

from config.settings import settings
from src.wholesale_crm.utils.logger import (
    add_app_context,
    bind_request_context,
    clear_request_context,
    mask_contact_details,
)


class TestProcessors:

    def test_app_context_from_settings(self):
        event = add_app_context(None, "info", {"event": "lead_created"})

        assert event["service"] == settings.service_name
        assert event["version"] == settings.api_version
        assert event["environment"] == settings.environment

    def test_app_context_keeps_explicit_service(self):
        event = add_app_context(None, "info", {"event": "seed", "service": "seed-script"})

        assert event["service"] == "seed-script"

    def test_contact_details_masked(self):
        event = mask_contact_details(None, "info", {
            "event": "lead_imported",
            "phone": "(555) 123-4567",
            "email": "a@b",
            "city": "Austin",
        })

        assert event["phone"] == "***4567"
        assert event["email"] == "***"
        assert event["city"] == "Austin"

    def test_missing_or_empty_contact_fields_untouched(self):
        event = mask_contact_details(None, "info", {"event": "x", "phone": "", "email": None})

        assert event == {"event": "x", "phone": "", "email": None}


def test_request_context_bind_and_clear():
    clear_request_context()
    bind_request_context(request_id="abc", user_id=7)

    assert structlog.contextvars.get_contextvars() == {"request_id": "abc", "user_id": 7}

    clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}
