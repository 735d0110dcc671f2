"""
API tests using FastAPI's TestClient with the database session and clock
overridden.
"""
from datetime import timedelta

import pytest
import structlog
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from config.settings import settings
from src.wholesale_crm.api import main
from src.wholesale_crm.api.dependencies import get_db, get_clock
from src.wholesale_crm.api.main import app
from src.wholesale_crm.api.routers import health
from src.wholesale_crm.db import repository
from src.wholesale_crm.db.models import Buyer, Offer, OfferStatus, Task


@pytest.fixture
def client(test_db, fixed_now):
    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: fixed_now)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def lead_payload(**overrides):
    payload = {
        "first_name": "John",
        "last_name": "Smith",
        "phone": "(555) 123-4567",
        "email": "john.smith@email.com",
        "timeline": "Within 30 days",
        "property": {
            "address": "123 Main Street",
            "city": "Austin",
            "state": "TX",
            "zip_code": "78701",
            "property_type": "Single Family Home",
            "price": 300000,
        },
    }
    payload.update(overrides)
    return payload


def austin_buyer_payload(**overrides):
    payload = {
        "name": "Austin Cash Investor",
        "cash_buyer": True,
        "proof_of_funds": 600000,
        "preferences": {
            "min_price": 100000,
            "max_price": 500000,
            "areas": ["Austin"],
            "property_types": ["Single Family Home"],
        },
    }
    payload.update(overrides)
    return payload


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] in ("healthy", "warning")
        assert body["database"] == "connected"
        assert body["cache"] == "unavailable"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Wholesale CRM API"
        assert "X-Request-Id" in response.headers

    def test_system_health(self, client):
        response = client.get("/health/system")

        assert response.status_code == 200
        body = response.json()
        assert body["overall"] == "healthy"
        assert set(body["services"]) == {"database", "cache", "api"}
        assert body["services"]["database"]["response_ms"] is not None
        assert body["services"]["cache"]["message"] == "Cache not configured"
        assert body["uptime_seconds"] >= 0
        assert body["peak_memory_mb"] > 0
        assert body["environment"] == settings.environment

    def test_database_failure_is_critical(self, client, monkeypatch):
        def unreachable(db):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(health, "check_database", unreachable)

        system = client.get("/health/system").json()
        basic = client.get("/health").json()

        assert system["overall"] == "critical"
        assert system["services"]["database"]["status"] == "critical"
        assert system["services"]["api"]["status"] == "healthy"
        assert basic["status"] == "critical"
        assert basic["database"].startswith("error:")

    def test_single_service(self, client):
        assert client.get("/health/services/database").json()["status"] == "healthy"
        assert client.get("/health/services/api").json()["details"]["uptime_seconds"] >= 0
        assert client.get("/health/services/supabase").status_code == 404

    def test_overall_status_is_worst_service(self):
        services = {
            "database": health.ServiceHealth(status="healthy", message="ok", last_checked=health.utcnow()),
            "cache": health.ServiceHealth(status="warning", message="slow", last_checked=health.utcnow()),
        }

        assert health.overall_status(services) == "warning"
        assert health.overall_status({}) == "healthy"


class TestLeadsRouter:

    def test_create_and_get_lead(self, client):
        created = client.post("/api/v1/leads/", json=lead_payload(), headers={"X-User-Id": "7"})

        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "NEW"
        assert body["assigned_to_id"] == 7
        assert body["property"]["city"] == "Austin"
        assert body["tasks"] == []

        fetched = client.get(f"/api/v1/leads/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["email"] == "john.smith@email.com"

    def test_create_lead_with_contact_task(self, client, fixed_now):
        response = client.post("/api/v1/leads/", json=lead_payload(generate_task=True))

        tasks = response.json()["tasks"]
        assert len(tasks) == 1
        assert tasks[0]["title"] == "Contact lead within 1 hour"
        assert tasks[0]["priority"] == "HIGH"

    def test_create_lead_requires_property(self, client):
        payload = lead_payload()
        del payload["property"]

        assert client.post("/api/v1/leads/", json=payload).status_code == 422

    def test_status_change_generates_follow_up(self, client, test_db, fixed_now):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.patch(f"/api/v1/leads/{lead_id}/status", json={"status": "QUALIFIED"})

        assert response.status_code == 200
        body = response.json()
        assert body["lead"]["status"] == "QUALIFIED"
        assert body["generated_task"]["title"] == "Schedule property visit"
        assert body["generated_task"]["priority"] == "MEDIUM"
        task = test_db.get(Task, body["generated_task"]["id"])
        assert task.due_date.replace(tzinfo=None) == (fixed_now + timedelta(hours=24)).replace(tzinfo=None)

    def test_status_change_without_task(self, client, test_db):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.patch(
            f"/api/v1/leads/{lead_id}/status",
            json={"status": "CONTACTED", "generate_task": False},
        )

        assert response.json()["generated_task"] is None
        assert test_db.query(Task).count() == 0

    def test_repeated_status_change_does_not_duplicate_task(self, client, test_db):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        client.patch(f"/api/v1/leads/{lead_id}/status", json={"status": "CONTACTED"})
        second = client.patch(f"/api/v1/leads/{lead_id}/status", json={"status": "CONTACTED"})

        assert second.json()["generated_task"] is None
        assert test_db.query(Task).count() == 1

    @pytest.mark.parametrize("status", ["CLOSED_WON", "PROPOSAL_SENT", "bogus"])
    def test_list_view_statuses_rejected(self, client, status):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.patch(f"/api/v1/leads/{lead_id}/status", json={"status": status})

        assert response.status_code == 422

    def test_status_change_missing_lead(self, client):
        response = client.patch("/api/v1/leads/999/status", json={"status": "NEW"})

        assert response.status_code == 404

    def test_list_search_and_stats(self, client):
        client.post("/api/v1/leads/", json=lead_payload())
        client.post("/api/v1/leads/", json=lead_payload(first_name="Sarah", last_name="Johnson", email="sarah@example.com"))

        listed = client.get("/api/v1/leads/", params={"search": "sarah"}).json()
        assert listed["pagination"]["total"] == 1
        assert listed["leads"][0]["first_name"] == "Sarah"

        stats = client.get("/api/v1/leads/stats").json()
        assert stats == {"total": 2, "new": 2, "qualified": 0, "closed": 0}

    def test_update_and_delete_lead(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload(generate_task=True)).json()["id"]

        updated = client.patch(f"/api/v1/leads/{lead_id}", json={"notes": "Motivated seller"})
        assert updated.json()["notes"] == "Motivated seller"

        assert client.delete(f"/api/v1/leads/{lead_id}").json() == {"success": True}
        assert client.get(f"/api/v1/leads/{lead_id}").status_code == 404
        assert client.delete(f"/api/v1/leads/{lead_id}").status_code == 404

    def test_update_rejects_null_required_fields(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.patch(f"/api/v1/leads/{lead_id}", json={"first_name": None})

        assert response.status_code == 422
        assert "first_name may not be null" in response.text
        assert client.get(f"/api/v1/leads/{lead_id}").json()["first_name"] == "John"

    def test_update_allows_clearing_optional_fields(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.patch(f"/api/v1/leads/{lead_id}", json={"email": None})

        assert response.status_code == 200
        assert response.json()["email"] is None

    def test_buyer_matches_for_lead(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        client.post("/api/v1/buyers/", json=austin_buyer_payload())
        client.post("/api/v1/buyers/", json={"name": "Generalist"})
        client.post("/api/v1/buyers/", json=austin_buyer_payload(
            name="Dallas Buyer", cash_buyer=False,
            preferences={"areas": ["Dallas"], "property_types": ["Condo"]},
        ))

        matches = client.get(f"/api/v1/leads/{lead_id}/buyer-matches", params={"limit": 10}).json()

        assert [m["name"] for m in matches] == ["Austin Cash Investor", "Dallas Buyer", "Generalist"]
        assert matches[0]["match_score"] == 100
        assert matches[0]["match_label"] == "Excellent Match"
        assert "Location match (Austin)" in matches[0]["match_reasons"]
        assert matches[2]["match_reasons"] == ["General investor"]

    def test_buyer_matches_default_limit(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        for i in range(5):
            client.post("/api/v1/buyers/", json={"name": f"Buyer {i}"})

        matches = client.get(f"/api/v1/leads/{lead_id}/buyer-matches").json()

        assert len(matches) == 3

    def test_buyer_matches_missing_lead(self, client):
        assert client.get("/api/v1/leads/999/buyer-matches").status_code == 404


class TestBuyersRouter:

    def test_create_buyer_with_verification_task(self, client, test_db):
        response = client.post("/api/v1/buyers/", json=austin_buyer_payload(generate_task=True))

        assert response.status_code == 201
        body = response.json()
        assert body["preferences"][0]["areas"] == ["Austin"]
        task = test_db.query(Task).one()
        assert task.buyer_id == body["id"]
        assert task.title == "Verify buyer proof of funds"

    def test_preference_min_above_max_rejected(self, client):
        payload = austin_buyer_payload(preferences={"min_price": 500000, "max_price": 100000})

        assert client.post("/api/v1/buyers/", json=payload).status_code == 422

    def test_replace_preferences(self, client):
        buyer_id = client.post("/api/v1/buyers/", json={"name": "New Buyer"}).json()["id"]

        response = client.put(
            f"/api/v1/buyers/{buyer_id}/preferences",
            json={"max_price": 250000, "areas": ["Plano"], "property_types": ["Condo"]},
        )

        assert response.status_code == 200
        assert response.json()["preferences"][0]["areas"] == ["Plano"]
        assert client.put("/api/v1/buyers/999/preferences", json={}).status_code == 404

    def test_ad_hoc_matches(self, client):
        client.post("/api/v1/buyers/", json=austin_buyer_payload())

        response = client.post("/api/v1/buyers/matches", json={"price": 700000, "city": "Houston"})

        match = response.json()[0]
        assert match["match_score"] == 39
        assert "Above preferred price range" in match["match_reasons"]

    def test_get_update_delete_buyer(self, client):
        buyer_id = client.post("/api/v1/buyers/", json=austin_buyer_payload()).json()["id"]

        assert client.get(f"/api/v1/buyers/{buyer_id}").json()["offer_count"] == 0
        assert client.patch(f"/api/v1/buyers/{buyer_id}", json={"company": "Capital LLC"}).json()["company"] == "Capital LLC"
        assert client.delete(f"/api/v1/buyers/{buyer_id}").json() == {"success": True}
        assert client.get(f"/api/v1/buyers/{buyer_id}").status_code == 404

    @pytest.mark.parametrize("field", ["name", "cash_buyer"])
    def test_update_rejects_null_required_fields(self, client, field):
        buyer_id = client.post("/api/v1/buyers/", json=austin_buyer_payload()).json()["id"]

        response = client.patch(f"/api/v1/buyers/{buyer_id}", json={field: None})

        assert response.status_code == 422


class TestTasksRouter:

    def test_create_task_defaults(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.post(
            "/api/v1/tasks/",
            json={"title": "Call seller", "lead_id": lead_id},
            headers={"X-User-Id": "4"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["priority"] == "MEDIUM"
        assert body["assigned_to_id"] == 4

    def test_create_task_requires_subject(self, client):
        assert client.post("/api/v1/tasks/", json={"title": "Orphan"}).status_code == 422

    def test_create_task_for_missing_lead_or_buyer(self, client, test_db):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        missing_lead = client.post("/api/v1/tasks/", json={"title": "Call", "lead_id": 999})
        missing_buyer = client.post("/api/v1/tasks/", json={"title": "Call", "lead_id": lead_id, "buyer_id": 999})

        assert missing_lead.status_code == 404
        assert missing_lead.json()["detail"] == "Lead 999 not found"
        assert missing_buyer.status_code == 404
        assert missing_buyer.json()["detail"] == "Buyer 999 not found"
        assert test_db.query(Task).count() == 0

    @pytest.mark.parametrize("field", ["status", "priority", "title"])
    def test_update_rejects_null_required_fields(self, client, field):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        task_id = client.post("/api/v1/tasks/", json={"title": "Call seller", "lead_id": lead_id}).json()["id"]

        response = client.patch(f"/api/v1/tasks/{task_id}", json={field: None})

        assert response.status_code == 422
        assert client.get(f"/api/v1/tasks/{task_id}").json()["status"] == "PENDING"

    def test_overdue_and_due_today(self, client, fixed_now):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        for title, offset, priority in [
            ("late", timedelta(hours=-2), "LOW"),
            ("later today low", timedelta(hours=1), "LOW"),
            ("later today urgent", timedelta(hours=3), "URGENT"),
            ("next week", timedelta(days=7), "HIGH"),
        ]:
            client.post("/api/v1/tasks/", json={
                "title": title,
                "lead_id": lead_id,
                "priority": priority,
                "due_date": (fixed_now + offset).isoformat(),
            })

        overdue = client.get("/api/v1/tasks/overdue").json()
        due_today = client.get("/api/v1/tasks/due-today").json()

        assert [t["title"] for t in overdue] == ["late"]
        assert [t["title"] for t in due_today] == ["later today urgent", "later today low"]

    def test_completed_task_leaves_overdue_list(self, client, fixed_now):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        task_id = client.post("/api/v1/tasks/", json={
            "title": "late",
            "lead_id": lead_id,
            "due_date": (fixed_now - timedelta(days=1)).isoformat(),
        }).json()["id"]

        client.patch(f"/api/v1/tasks/{task_id}", json={"status": "COMPLETED"})

        assert client.get("/api/v1/tasks/overdue").json() == []

    def test_generate_for_lead(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        first = client.post("/api/v1/tasks/generate/lead", json={"lead_id": lead_id, "lead_status": "UNDER_CONTRACT"})
        second = client.post("/api/v1/tasks/generate/lead", json={"lead_id": lead_id, "lead_status": "UNDER_CONTRACT"})
        closed = client.post("/api/v1/tasks/generate/lead", json={"lead_id": lead_id, "lead_status": "CLOSED"})

        assert first.json()["count"] == 1
        assert first.json()["task"]["title"] == "Prepare closing documents"
        assert second.json() == {"count": 0, "task": None}
        assert closed.json()["count"] == 0

    def test_generate_for_missing_lead_or_buyer(self, client):
        assert client.post("/api/v1/tasks/generate/lead", json={"lead_id": 9, "lead_status": "NEW"}).status_code == 404
        assert client.post("/api/v1/tasks/generate/buyer", json={"buyer_id": 9}).status_code == 404

    def test_generate_for_buyer(self, client):
        buyer_id = client.post("/api/v1/buyers/", json={"name": "Buyer"}).json()["id"]

        response = client.post("/api/v1/tasks/generate/buyer", json={"buyer_id": buyer_id})

        assert response.json()["count"] == 1
        assert response.json()["task"]["buyer_id"] == buyer_id

    def test_mine_and_stats(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        client.post("/api/v1/tasks/", json={"title": "mine", "lead_id": lead_id}, headers={"X-User-Id": "2"})
        client.post("/api/v1/tasks/", json={"title": "theirs", "lead_id": lead_id}, headers={"X-User-Id": "3"})

        mine = client.get("/api/v1/tasks/mine", headers={"X-User-Id": "2"}).json()
        stats = client.get("/api/v1/tasks/stats", headers={"X-User-Id": "2"}).json()

        assert [t["title"] for t in mine] == ["mine"]
        assert stats["total"] == 2
        assert stats["mine"] == 1
        assert stats["completion_rate"] == 0

    def test_missing_task(self, client):
        assert client.get("/api/v1/tasks/1").status_code == 404
        assert client.patch("/api/v1/tasks/1", json={"title": "x"}).status_code == 404
        assert client.delete("/api/v1/tasks/1").status_code == 404


class TestOffersAndDashboard:

    def test_offer_lifecycle_and_dashboard(self, client, test_db):
        lead_id = client.post("/api/v1/leads/", json=lead_payload(generate_task=True)).json()["id"]
        buyer_id = client.post("/api/v1/buyers/", json=austin_buyer_payload()).json()["id"]

        offer = client.post(
            "/api/v1/offers/",
            json={"lead_id": lead_id, "buyer_id": buyer_id, "offer_amount": 295000},
            headers={"X-User-Id": "3"},
        )
        assert offer.status_code == 201
        assert offer.json()["status"] == "DRAFT"
        assert offer.json()["created_by_id"] == 3

        client.patch(f"/api/v1/offers/{offer.json()['id']}", json={"status": "ACCEPTED"})
        assert client.get("/api/v1/offers/stats").json()["acceptance_rate"] == 100.0

        dashboard = client.get("/api/v1/stats/dashboard").json()
        assert dashboard["total_leads"] == 1
        assert dashboard["leads_by_status"] == {"NEW": 1}
        assert dashboard["total_buyers"] == 1
        assert dashboard["cash_buyers"] == 1
        assert dashboard["total_tasks"] == 1
        assert dashboard["tasks_due_today"] == 1
        assert dashboard["overdue_tasks"] == 0
        assert dashboard["total_offers"] == 1
        assert dashboard["offer_acceptance_rate"] == 100.0

    def test_offer_for_missing_buyer(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]

        response = client.post("/api/v1/offers/", json={"lead_id": lead_id, "buyer_id": 99, "offer_amount": 1})

        assert response.status_code == 404

    def test_list_offers_by_buyer(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        buyer_id = client.post("/api/v1/buyers/", json={"name": "Buyer"}).json()["id"]
        client.post("/api/v1/offers/", json={"lead_id": lead_id, "buyer_id": buyer_id, "offer_amount": 1000})

        listed = client.get("/api/v1/offers/", params={"buyer_id": buyer_id}).json()

        assert listed["pagination"]["total"] == 1
        assert listed["offers"][0]["offer_amount"] == 1000

    def test_update_offer_rejects_null_amount(self, client):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        buyer_id = client.post("/api/v1/buyers/", json={"name": "Buyer"}).json()["id"]
        offer_id = client.post(
            "/api/v1/offers/", json={"lead_id": lead_id, "buyer_id": buyer_id, "offer_amount": 1000}
        ).json()["id"]

        response = client.patch(f"/api/v1/offers/{offer_id}", json={"offer_amount": None})

        assert response.status_code == 422
        assert client.get(f"/api/v1/offers/{offer_id}").json()["offer_amount"] == 1000


class TestAnalyticsRouter:

    def test_kpis(self, client):
        client.post("/api/v1/leads/", json=lead_payload(generate_task=True))
        client.post("/api/v1/buyers/", json=austin_buyer_payload())

        kpis = client.get("/api/v1/analytics/kpis").json()

        assert kpis["leads"] == {"total": 1, "active": 1, "active_rate": 100.0}
        assert kpis["buyers"]["cash"] == 1
        assert kpis["tasks"]["total"] == 1
        assert kpis["offers"]["total"] == 0

    def test_charts_are_daily_series(self, client, test_db, fixed_now):
        test_db.add(Buyer(name="Cash Investor", cash_buyer=True, created_at=fixed_now - timedelta(days=1)))
        test_db.commit()

        buyers = client.get("/api/v1/analytics/buyers-chart", params={"days": 7}).json()
        leads = client.get("/api/v1/analytics/leads-chart").json()

        assert len(buyers) == 7
        assert buyers[-1] == {"day": "2025-03-12", "new": 0, "cash": 0, "with_tasks": 0}
        assert buyers[-2] == {"day": "2025-03-11", "new": 1, "cash": 1, "with_tasks": 0}
        assert len(leads) == 30
        assert client.get("/api/v1/analytics/tasks-chart", params={"days": 0}).status_code == 422

    def test_activity_and_revenue_pipeline(self, client, test_db, fixed_now):
        lead_id = client.post("/api/v1/leads/", json=lead_payload()).json()["id"]
        buyer_id = client.post("/api/v1/buyers/", json={"name": "Buyer"}).json()["id"]
        test_db.add(Offer(
            lead_id=lead_id,
            buyer_id=buyer_id,
            offer_amount=295000,
            status=OfferStatus.ACCEPTED,
            created_at=fixed_now,
        ))
        test_db.commit()

        feed = client.get("/api/v1/analytics/activity", params={"limit": 2}).json()
        pipeline = client.get("/api/v1/analytics/revenue-pipeline").json()

        assert len(feed) == 2
        assert {item["type"] for item in feed} <= {"lead", "buyer", "offer"}
        assert pipeline["accepted"] == 295000
        assert pipeline["accepted_count"] == 1
        assert pipeline["average_offer"] == 295000


class RecordingLogger:
    """Stand-in module logger that keeps each event with the context bound when it was logged."""

    def __init__(self):
        self.events = []

    def _record(self, event, **fields):
        self.events.append((event, structlog.contextvars.get_contextvars()))

    info = debug = warning = error = _record

    def context_for(self, event):
        return next(context for name, context in self.events if name == event)


class TestRequestContext:

    def test_user_id_reaches_request_log(self, client, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(main, "logger", recorder)

        response = client.get("/", headers={"X-User-Id": "7", "X-Request-Id": "abc123"})

        context = recorder.context_for("request_completed")
        assert context["user_id"] == 7
        assert context["request_id"] == "abc123"
        assert response.headers["X-Request-Id"] == "abc123"

    def test_default_user_when_header_missing(self, client, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(main, "logger", recorder)

        client.get("/")

        assert recorder.context_for("request_completed")["user_id"] == settings.default_user_id

    def test_user_id_reaches_endpoint_logs(self, client, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(repository, "logger", recorder)

        client.post("/api/v1/buyers/", json={"name": "Buyer"}, headers={"X-User-Id": "7"})

        assert recorder.context_for("buyer_created")["user_id"] == 7

    def test_malformed_user_header(self, client, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(main, "logger", recorder)

        response = client.post("/api/v1/buyers/", json={"name": "Buyer"}, headers={"X-User-Id": "abc"})

        assert response.status_code == 422
        assert recorder.context_for("request_completed")["user_id"] is None
