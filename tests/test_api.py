import pytest

from crewplan.config.settings import get_settings


def _create_mission(client, title="Sound system setup", start="2024-06-01T09:00:00Z", end="2024-06-01T17:00:00Z",
                    required_people=2, forfeit=180.0):
    response = client.post("/api/v1/missions", json={
        "title": title,
        "start": start,
        "end": end,
        "required_people": required_people,
        "forfeit": forfeit,
    })
    assert response.status_code == 201
    return response.json()["id"]


def _create_technician(client, name, is_validated=True):
    response = client.post("/api/v1/technicians", json={
        "name": name,
        "email": f"{name.lower()}@example.com",
        "is_validated": is_validated,
    })
    assert response.status_code == 201
    return response.json()["id"]


class TestEvaluateEndpoint:
    """Stateless roster evaluation."""

    @pytest.fixture
    def payload(self):
        return {
            "mission": {"id": "A", "start": "2024-06-01T09:00:00Z", "end": "2024-06-01T17:00:00Z"},
            "technicians": [
                {"id": "X", "unavailabilities": [{"start": "2024-06-01T08:00:00Z", "end": "2024-06-01T12:00:00Z"}]},
                {"id": "Y"},
                {"id": "Z", "availabilities": [{"start": "2024-06-01T00:00:00Z", "end": "2024-06-02T00:00:00Z"}]},
                {"id": "W"},
            ],
            "bookings": [
                {"technician_id": "Y",
                 "mission": {"id": "B", "start": "2024-06-01T10:00:00Z", "end": "2024-06-01T14:00:00Z"}},
            ],
        }

    def test_reference_example(self, client, payload):
        response = client.post("/api/v1/roster/evaluate", json=payload)

        assert response.status_code == 200
        data = response.json()
        labels = {c["technician"]["id"]: c["status"] for c in data["candidates"]}
        assert labels == {"X": "unavailable", "Y": "conflict", "Z": "available", "W": "no_availability"}
        assert data["cached"] is False

    def test_second_call_hits_cache(self, client, payload):
        client.post("/api/v1/roster/evaluate", json=payload)
        response = client.post("/api/v1/roster/evaluate", json=payload)
        assert response.status_code == 200
        assert response.json()["cached"] is True

    def test_malformed_timestamp_rejected(self, client, payload):
        payload["mission"]["start"] = "not-a-date"
        response = client.post("/api/v1/roster/evaluate", json=payload)
        assert response.status_code == 422


class TestMissionEndpoints:
    def test_create_and_get(self, client):
        mission_id = _create_mission(client)
        response = client.get(f"/api/v1/missions/{mission_id}")
        assert response.status_code == 200
        assert response.json()["required_people"] == 2

    def test_end_before_start_rejected(self, client):
        response = client.post("/api/v1/missions", json={
            "title": "Backwards", "start": "2024-06-01T17:00:00Z", "end": "2024-06-01T09:00:00Z",
        })
        assert response.status_code == 422

    def test_non_positive_headcount_rejected(self, client):
        response = client.post("/api/v1/missions", json={
            "title": "Nobody", "start": "2024-06-01T09:00:00Z", "end": "2024-06-01T17:00:00Z",
            "required_people": 0,
        })
        assert response.status_code == 422

    def test_unknown_mission_404(self, client):
        assert client.get("/api/v1/missions/missing/roster").status_code == 404


class TestProposalFlow:
    """Propose, toggle, accept, complete, cancel."""

    def test_end_to_end(self, client, notifier):
        mission_id = _create_mission(client, required_people=1)
        zoe = _create_technician(client, "Zoe")
        xavier = _create_technician(client, "Xavier")

        response = client.post(f"/api/v1/technicians/{xavier}/unavailability", json={
            "start": "2024-06-01T08:00:00Z", "end": "2024-06-01T12:00:00Z", "reason": "medical",
        })
        assert response.status_code == 201

        roster = client.get(f"/api/v1/missions/{mission_id}/roster").json()
        labels = {c["technician"]["id"]: (c["status"], c["selectable"]) for c in roster["candidates"]}
        assert labels[xavier] == ("unavailable", False)
        assert labels[zoe] == ("no_availability", True)

        toggle = client.post(f"/api/v1/missions/{mission_id}/selection/toggle",
                             json={"technician_id": xavier, "selection": []}).json()
        assert toggle["changed"] is False
        assert toggle["reason"] == "unavailable"

        refused = client.post(f"/api/v1/missions/{mission_id}/proposals", json={"technician_ids": [xavier]})
        assert refused.status_code == 409

        report = client.post(f"/api/v1/missions/{mission_id}/proposals", json={"technician_ids": [zoe]}).json()
        assert report["persisted"] is True
        assert len(notifier.sent) == 1

        proposals = client.get(f"/api/v1/technicians/{zoe}/proposals").json()
        assert len(proposals) == 1

        accepted = client.post(f"/api/v1/assignments/{proposals[0]['id']}/accept")
        assert accepted.status_code == 200

        again = client.post(f"/api/v1/assignments/{proposals[0]['id']}/reject")
        assert again.status_code == 409

        completion = client.get(f"/api/v1/missions/{mission_id}/completion").json()
        assert completion["complete"] is True
        assert completion["status"] == "complete"

        billing = client.get("/api/v1/billing", params={"technician_id": zoe}).json()
        assert [(b["amount"], b["status"]) for b in billing] == [(180.0, "pending")]

        toggle = client.post(f"/api/v1/missions/{mission_id}/selection/toggle",
                             json={"technician_id": zoe, "selection": []}).json()
        assert toggle["changed"] is False

    def test_unvalidated_acceptance_leaves_mission_partial(self, client):
        mission_id = _create_mission(client, required_people=1)
        walid = _create_technician(client, "Walid", is_validated=False)
        client.post(f"/api/v1/missions/{mission_id}/proposals", json={"technician_ids": [walid]})
        assignment = client.get(f"/api/v1/missions/{mission_id}/assignments").json()[0]
        client.post(f"/api/v1/assignments/{assignment['id']}/accept")

        completion = client.get(f"/api/v1/missions/{mission_id}/completion").json()
        assert completion["status"] == "partial"

        client.patch(f"/api/v1/technicians/{walid}/validation", json={"is_validated": True})
        completion = client.get(f"/api/v1/missions/{mission_id}/completion").json()
        assert completion["status"] == "complete"

    def test_cancel_pending(self, client, notifier):
        mission_id = _create_mission(client)
        zoe = _create_technician(client, "Zoe")
        client.post(f"/api/v1/missions/{mission_id}/proposals", json={"technician_ids": [zoe]})

        response = client.delete(f"/api/v1/missions/{mission_id}/proposals")
        assert response.status_code == 200
        assert client.get(f"/api/v1/missions/{mission_id}/assignments").json() == []
        assert [kind.value for kind, _, _ in notifier.sent] == ["proposed", "cancelled"]

    def test_unknown_assignment_404(self, client):
        assert client.post("/api/v1/assignments/missing/accept").status_code == 404


class TestAvailabilityEndpoints:
    def test_add_list_delete(self, client):
        zoe = _create_technician(client, "Zoe")
        created = client.post(f"/api/v1/technicians/{zoe}/availability", json={
            "start": "2024-06-01T00:00:00Z", "end": "2024-06-02T00:00:00Z",
        }).json()
        assert len(client.get(f"/api/v1/technicians/{zoe}/availability").json()) == 1

        assert client.delete(f"/api/v1/availability/{created['id']}").status_code == 204
        assert client.get(f"/api/v1/technicians/{zoe}/availability").json() == []

    def test_unknown_technician(self, client):
        response = client.post("/api/v1/technicians/missing/availability", json={
            "start": "2024-06-01T00:00:00Z", "end": "2024-06-02T00:00:00Z",
        })
        assert response.status_code == 404


class TestBillingEndpoints:
    """Forfeit entries move pending -> validated -> paid."""

    @pytest.fixture
    def entry_id(self, client):
        mission_id = _create_mission(client, required_people=1)
        zoe = _create_technician(client, "Zoe")
        client.post(f"/api/v1/missions/{mission_id}/proposals", json={"technician_ids": [zoe]})
        assignment = client.get(f"/api/v1/missions/{mission_id}/assignments").json()[0]
        client.post(f"/api/v1/assignments/{assignment['id']}/accept")
        return client.get("/api/v1/billing").json()[0]["id"]

    def test_validate_then_pay(self, client, entry_id):
        validated = client.patch(f"/api/v1/billing/{entry_id}", json={"status": "validated", "notes": "checked"})
        assert validated.status_code == 200
        assert validated.json()["status"] == "validated"
        assert validated.json()["notes"] == "checked"

        paid = client.post("/api/v1/billing/pay", json={
            "entry_ids": [entry_id], "payment_date": "2024-06-30T12:00:00Z",
        })
        assert paid.status_code == 200
        assert [(b["status"], b["payment_date"][:10]) for b in paid.json()] == [("paid", "2024-06-30")]

        listed = client.get("/api/v1/billing").json()
        assert listed[0]["status"] == "paid"
        assert listed[0]["notes"] == "checked"

    def test_pending_entry_cannot_be_paid(self, client, entry_id):
        assert client.post("/api/v1/billing/pay", json={"entry_ids": [entry_id]}).status_code == 409
        assert client.patch(f"/api/v1/billing/{entry_id}", json={"status": "paid"}).status_code == 409
        assert client.get("/api/v1/billing").json()[0]["status"] == "pending"

    def test_no_going_back(self, client, entry_id):
        client.patch(f"/api/v1/billing/{entry_id}", json={"status": "validated"})
        assert client.patch(f"/api/v1/billing/{entry_id}", json={"status": "pending"}).status_code == 409
        assert client.patch(f"/api/v1/billing/{entry_id}", json={"status": "validated"}).status_code == 409

    def test_paid_through_patch_gets_payment_date(self, client, entry_id):
        client.patch(f"/api/v1/billing/{entry_id}", json={"status": "validated"})
        paid = client.patch(f"/api/v1/billing/{entry_id}", json={"status": "paid"})
        assert paid.status_code == 200
        assert paid.json()["payment_date"] is not None
        assert client.patch(f"/api/v1/billing/{entry_id}", json={"status": "paid"}).status_code == 409

    def test_batch_refused_as_a_whole(self, client, entry_id):
        client.patch(f"/api/v1/billing/{entry_id}", json={"status": "validated"})
        response = client.post("/api/v1/billing/pay", json={"entry_ids": [entry_id, "missing"]})
        assert response.status_code == 404
        assert client.get("/api/v1/billing").json()[0]["status"] == "validated"

    def test_unknown_entry_404(self, client):
        assert client.patch("/api/v1/billing/missing", json={"status": "validated"}).status_code == 404

    def test_empty_batch_rejected(self, client):
        assert client.post("/api/v1/billing/pay", json={"entry_ids": []}).status_code == 422


class TestLenientDates:
    """With lenient parsing on, an unparseable window becomes 09:00-17:00 that day."""

    @pytest.fixture(autouse=True)
    def lenient(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "lenient_dates", True)

    def test_mission_falls_back_to_working_day(self, client):
        response = client.post("/api/v1/missions", json={
            "title": "Loose dates", "start": "tomorrow morning", "end": "2024-06-01T23:00:00Z",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["start"].startswith("2024-06-01T09:00:00")
        assert data["end"].startswith("2024-06-01T17:00:00")

    def test_evaluate_uses_fallback_window(self, client):
        response = client.post("/api/v1/roster/evaluate", json={
            "mission": {"id": "L", "start": "not-a-date", "end": "2024-06-01T23:00:00Z"},
            "technicians": [
                {"id": "Z", "availabilities": [{"start": "2024-06-01T08:00:00Z", "end": "2024-06-01T18:00:00Z"}]},
                {"id": "V", "unavailabilities": [{"start": "2024-06-01T18:00:00Z", "end": "2024-06-01T20:00:00Z"}]},
            ],
        })
        assert response.status_code == 200
        labels = {c["technician"]["id"]: c["status"] for c in response.json()["candidates"]}
        assert labels == {"Z": "available", "V": "no_availability"}

    def test_end_before_start_still_rejected(self, client):
        response = client.post("/api/v1/missions", json={
            "title": "Backwards", "start": "2024-06-01T17:00:00Z", "end": "2024-06-01T09:00:00Z",
        })
        assert response.status_code == 422


class TestHealthCheck:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "app" in data
