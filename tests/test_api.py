"""
Tests for the HTTP and WebSocket API.
"""
import json
from typing import List

import httpx
import pytest
from fastapi.testclient import TestClient

from agent_event_hub.main import create_app
from agent_event_hub.services.hub import AgentEventHub


@pytest.fixture
def captured() -> List[httpx.Request]:
    return []


@pytest.fixture
def client(hub_settings, clock, captured):
    """Test client running the app lifespan around a hub with a mock webhook endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    hub = AgentEventHub(config=hub_settings, clock=clock, http_client=http_client)
    with TestClient(create_app(hub)) as test_client:
        yield test_client


def publish(client, event_type, data, source="missions", **extra):
    event = {"type": event_type, "source": source, "data": data, **extra}
    return client.post("/v1/events/publish", json={"event": event})


class TestInfoEndpoints:
    """Tests for health and root endpoints."""

    def test_health_check(self, client):
        """Test health check endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["janitorRunning"] is True
        assert "activeSubscriptions" in data
        assert "socketConnections" in data

    def test_root(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "agent-event-hub"

    def test_root_uses_hub_config(self, hub_settings, clock):
        """The app reports the injected hub's settings, not the process defaults."""
        config = hub_settings.model_copy(update={"service_name": "custom-hub"})
        hub = AgentEventHub(config=config, clock=clock)
        with TestClient(create_app(hub)) as test_client:
            assert test_client.get("/").json()["service"] == "custom-hub"


class TestSubscriptionEndpoints:
    """Tests for subscribe/unsubscribe/status."""

    def test_subscribe_and_status(self, client):
        """Test subscribing and reading the subscription back."""
        response = client.post("/v1/subscriptions", json={
            "agentId": "a1",
            "eventTypes": ["mission.completed"],
            "filters": {"missionId": "m1"},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["agentId"] == "a1"
        sub_id = body["subscriptionId"]

        status = client.get(f"/v1/subscriptions/{sub_id}").json()
        assert status["eventTypes"] == ["mission.completed"]
        assert status["target"] == {"kind": "poll"}
        assert status["isActive"] is True
        assert status["deliveryCount"] == 0

    def test_empty_event_types_rejected(self, client):
        """Test that an empty event type list is a bad request."""
        response = client.post("/v1/subscriptions", json={"agentId": "a1", "eventTypes": []})
        assert response.status_code == 400

    def test_missing_agent_rejected(self, client):
        """Test that a missing agent id fails validation."""
        response = client.post("/v1/subscriptions", json={"eventTypes": ["x.y"]})
        assert response.status_code == 422

    def test_both_transports_rejected(self, client):
        """Test that webhook and socket together are refused."""
        response = client.post("/v1/subscriptions", json={
            "agentId": "a1",
            "eventTypes": ["x.y"],
            "webhook": {"url": "http://agent/hook"},
            "socket": {"connectionId": "conn_1"},
        })
        assert response.status_code == 400

    def test_malformed_webhook_url_rejected(self, client):
        """A webhook url that cannot be posted to is refused at subscribe time."""
        response = client.post("/v1/subscriptions", json={
            "agentId": "a1",
            "eventTypes": ["x.y"],
            "webhook": {"url": "http://[::1"},
        })
        assert response.status_code == 422
        assert client.get("/v1/agents/a1/subscriptions").json() == []

    def test_unknown_subscription(self, client):
        """Test 404 for unknown subscription ids."""
        assert client.get("/v1/subscriptions/sub_missing").status_code == 404
        assert client.delete("/v1/subscriptions/sub_missing").status_code == 404

    def test_unsubscribe(self, client):
        """Test unsubscribing through the API."""
        sub_id = client.post("/v1/subscriptions", json={
            "agentId": "a1", "eventTypes": ["x.y"],
        }).json()["subscriptionId"]

        response = client.delete(f"/v1/subscriptions/{sub_id}")
        assert response.status_code == 200
        assert response.json()["subscriptionId"] == sub_id

        assert client.get("/v1/agents/a1/subscriptions").json() == []

    def test_list_agent_subscriptions(self, client):
        """Test listing one agent's subscriptions."""
        for types in (["x.y"], ["z.w"]):
            client.post("/v1/subscriptions", json={"agentId": "a1", "eventTypes": types})
        client.post("/v1/subscriptions", json={"agentId": "a2", "eventTypes": ["x.y"]})

        subs = client.get("/v1/agents/a1/subscriptions").json()
        assert sorted(s["eventTypes"][0] for s in subs) == ["x.y", "z.w"]


class TestEventEndpoints:
    """Tests for publish, poll and history."""

    def test_mission_scenario(self, client, clock):
        """Test publish then poll for a filtered mission event."""
        client.post("/v1/subscriptions", json={
            "agentId": "a1",
            "eventTypes": ["mission.completed"],
            "filters": {"missionId": "m1"},
        })

        response = publish(client, "mission.completed", {"missionId": "m1", "reward": 25})
        assert response.status_code == 200
        assert response.json()["success"] is True
        clock.advance(1)
        publish(client, "mission.completed", {"missionId": "m2"})

        body = client.get("/v1/events", params={"agentId": "a1"}).json()
        assert body["count"] == 1
        assert body["events"][0]["data"]["reward"] == 25
        assert body["agentId"] == "a1"

    def test_poll_filters(self, client, clock):
        """Test since, limit and type filters on polling."""
        client.post("/v1/subscriptions", json={
            "agentId": "a1", "eventTypes": ["x.y", "z.w"],
        })
        first = publish(client, "x.y", {"n": 1}).json()
        clock.advance(1)
        publish(client, "z.w", {"n": 2})
        clock.advance(1)
        publish(client, "x.y", {"n": 3})

        body = client.get("/v1/events", params={
            "agentId": "a1",
            "since": first["timestamp"],
            "eventTypes": "x.y",
        }).json()
        assert [e["data"]["n"] for e in body["events"]] == [3]

        body = client.get("/v1/events", params={"agentId": "a1", "limit": 2}).json()
        assert [e["data"]["n"] for e in body["events"]] == [2, 3]

    def test_poll_requires_agent(self, client):
        """Test that polling needs an agent id."""
        assert client.get("/v1/events").status_code == 422

    def test_publish_missing_fields(self, client):
        """Test publish validation of required fields."""
        response = client.post("/v1/events/publish", json={"event": {"source": "test"}})
        assert response.status_code == 422

    def test_publish_with_metadata(self, client):
        """Test publishing with metadata."""
        response = publish(
            client, "x.y", {}, metadata={"priority": "urgent", "ttl": 5000, "tags": ["a"]}
        )
        assert response.status_code == 200

        history = client.get("/v1/events/history/x.y").json()
        assert history["events"][0]["metadata"]["priority"] == "urgent"

    def test_publish_invalid_priority(self, client):
        """Test that an unknown priority is rejected."""
        response = publish(client, "x.y", {}, metadata={"priority": "whenever"})
        assert response.status_code == 422

    def test_publish_batch(self, client):
        """Test batch publishing."""
        client.post("/v1/subscriptions", json={"agentId": "a1", "eventTypes": ["x.y"]})

        response = client.post("/v1/events/publish/batch", json={"events": [
            {"type": "x.y", "source": "test", "data": {"n": 1}},
            {"type": "x.y", "source": "test", "data": {"n": 2}},
        ]})
        assert response.status_code == 200
        assert response.json()["count"] == 2

        assert client.get("/v1/events", params={"agentId": "a1"}).json()["count"] == 2

    def test_history(self, client):
        """Test reading per-type history."""
        for n in range(3):
            publish(client, "x.y", {"n": n})

        body = client.get("/v1/events/history/x.y", params={"limit": 2}).json()
        assert body["count"] == 2
        assert [e["data"]["n"] for e in body["events"]] == [1, 2]

    def test_webhook_delivery(self, client, captured):
        """Test webhook push from a published event."""
        client.post("/v1/subscriptions", json={
            "agentId": "a1",
            "eventTypes": ["payment.received"],
            "webhook": {"url": "http://agent/hook", "headers": {"X-Agent-Key": "k"}},
        })

        event_id = publish(client, "payment.received", {"amount": 10}, source="payments").json()["eventId"]

        assert len(captured) == 1
        assert captured[0].headers["X-Event-ID"] == event_id
        assert captured[0].headers["X-Agent-Key"] == "k"
        assert json.loads(captured[0].content)["data"] == {"amount": 10}


class TestAdminEndpoints:
    """Tests for admin endpoints."""

    def test_stats(self, client):
        """Test admin stats endpoint."""
        client.post("/v1/subscriptions", json={"agentId": "a1", "eventTypes": ["x.y"]})
        publish(client, "x.y", {})

        stats = client.get("/v1/admin/stats").json()
        assert stats["activeSubscriptions"] == 1
        assert stats["queuedEvents"] == 1
        assert stats["socketConnections"] == 0
        assert stats["knownEventTypes"] == ["x.y"]

    def test_list_connections(self, client):
        """Test listing live connections."""
        data = client.get("/v1/admin/connections").json()
        assert data["count"] == 0
        assert data["connections"] == []


class TestWebSocket:
    """Tests for the WebSocket push endpoint."""

    def test_live_push(self, client):
        """Test live push over a WebSocket."""
        with client.websocket_connect("/v1/agents/a1/ws") as ws:
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            conn_id = connected["connectionId"]

            client.post("/v1/subscriptions", json={
                "agentId": "a1",
                "eventTypes": ["x.y"],
                "socket": {"connectionId": conn_id},
            })
            publish(client, "x.y", {"n": 1})

            event = ws.receive_json()
            assert event["type"] == "x.y"
            assert event["data"] == {"n": 1}

            assert client.get("/v1/admin/stats").json()["socketConnections"] == 1

        assert client.get("/v1/events", params={"agentId": "a1"}).json()["count"] == 0

    def test_connect_flushes_queue(self, client, clock):
        """Test that connecting flushes queued events."""
        client.post("/v1/subscriptions", json={"agentId": "a1", "eventTypes": ["x.y"]})
        for n in range(2):
            publish(client, "x.y", {"n": n})
            clock.advance(1)

        with client.websocket_connect("/v1/agents/a1/ws") as ws:
            flushed = [ws.receive_json(), ws.receive_json()]
            assert [e["data"]["n"] for e in flushed] == [0, 1]
            assert ws.receive_json()["type"] == "connected"

        assert client.get("/v1/events", params={"agentId": "a1"}).json()["count"] == 0

    def test_ping(self, client):
        """Test WebSocket ping answered with pong."""
        with client.websocket_connect("/v1/agents/a1/ws") as ws:
            ws.receive_json()
            ws.send_text("ping")
            assert ws.receive_json() == {"type": "pong"}
