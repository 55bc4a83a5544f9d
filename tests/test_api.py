from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.main as main_module
from src.api.deps import optional_schedule_store
from src.config import Settings
from src.content.strategy import get_strategy_store
from src.db.database import Base, get_db
from src.main import app
from src.models import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[optional_schedule_store] = lambda: None
    get_strategy_store().clear()
    yield factory
    get_strategy_store().clear()
    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def users(session_factory):
    async with session_factory() as session:
        inviter = User(name="Inviter", email="inviter@example.com", contact="+15550001111")
        referrer = User(name="Referrer", email="referrer@example.com", contact="+15550002222")
        session.add_all([inviter, referrer])
        await session.commit()
        return {"inviter": inviter.id, "referrer": referrer.id}


@pytest.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def _campaign_body(created_by, **overrides):
    body = {
        "title": "Clean Water",
        "goal_amount": 1000,
        "start_date": "2024-01-01T00:00:00",
        "end_date": "2024-06-30T00:00:00",
        "created_by": created_by,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_campaign_crud(client, users):
    resp = await client.post("/api/campaigns", json=_campaign_body(users["inviter"]))
    assert resp.status_code == 201
    campaign = resp.json()
    assert campaign["status"] == "active"
    assert campaign["progress"] == 0.0

    resp = await client.patch(f"/api/campaigns/{campaign['id']}", json={"title": "Clean Water 2"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "Clean Water 2"

    resp = await client.get("/api/campaigns")
    assert [item["id"] for item in resp.json()["items"]] == [campaign["id"]]

    resp = await client.delete(f"/api/campaigns/{campaign['id']}")
    assert resp.status_code == 204

    resp = await client.get("/api/campaigns")
    assert resp.json()["items"] == []


@pytest.mark.asyncio
async def test_campaign_end_before_start_rejected(client, users):
    body = _campaign_body(users["inviter"], end_date="2023-12-01T00:00:00")
    resp = await client.post("/api/campaigns", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_campaign_dates_stored_as_utc(client, users):
    body = _campaign_body(
        users["inviter"],
        start_date="2024-01-01T09:00:00+09:00",
        end_date="2024-06-30T10:00:00+02:00",
    )
    resp = await client.post("/api/campaigns", json=body)
    assert resp.status_code == 201
    campaign = resp.json()
    assert campaign["start_date"] == "2024-01-01T00:00:00"
    assert campaign["end_date"] == "2024-06-30T08:00:00"

    resp = await client.patch(
        f"/api/campaigns/{campaign['id']}", json={"end_date": "2024-07-01T00:00:00-05:00"}
    )
    assert resp.json()["end_date"] == "2024-07-01T05:00:00"


@pytest.mark.asyncio
async def test_campaign_not_found(client):
    resp = await client.get("/api/campaigns/999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Campaign not found."}


@pytest.mark.asyncio
async def test_content_missing(client):
    resp = await client.get("/api/content")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_content_upsert(client):
    body = {
        "app_name": "Givr",
        "notification_strategy": {
            "progress_alert": True,
            "progress_alert_schedule": {"frequency": "biweekly", "time": "08:15"},
            "milestone_alert": True,
        },
    }

    resp = await client.put("/api/content", json=body)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["notification_strategy"]["progress_alert_schedule"]["frequency"] == "biweekly"

    resp = await client.put("/api/content", json={"our_mission": "Help"})
    assert resp.status_code == 200

    resp = await client.get("/api/content")
    data = resp.json()["data"]
    assert data["app_name"] == "Givr"
    assert data["our_mission"] == "Help"
    assert data["notification_strategy"]["milestone_alert"] is True


@pytest.mark.asyncio
async def test_content_weekly_without_day_rejected(client):
    body = {
        "notification_strategy": {
            "progress_alert": True,
            "progress_alert_schedule": {"frequency": "weekly", "day": None},
        }
    }
    resp = await client.put("/api/content", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_content_stats_empty(client):
    resp = await client.get("/api/content/stats", params={"start_date": "2024-01-01"})
    assert resp.status_code == 200
    assert resp.json()["data"]["total_funds_raised"] == 0.0

    resp = await client.get("/api/content/donation-growth")
    assert resp.status_code == 200
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_send_invitations(client, users):
    body = {
        "inviter_id": users["inviter"],
        "referrer_id": users["referrer"],
        "invitees": [{"phone": "+15551230001", "name": "Ann"}, {"phone": "+15551230002"}],
        "donation_amount": 20,
    }
    resp = await client.post("/api/invitations", json=body)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert len(data["invitation_ids"]) == 2
    assert data["transaction_id"].startswith("TXN-")

    resp = await client.get("/api/content/stats")
    stats = resp.json()["data"]
    assert stats["total_funds_raised"] == 20.0
    assert stats["total_invitees"] == 2


@pytest.mark.asyncio
async def test_self_invitation_rejected(client, users):
    body = {
        "inviter_id": users["inviter"],
        "referrer_id": users["inviter"],
        "invitees": [{"phone": "+15551230001"}],
    }
    resp = await client.post("/api/invitations", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "You cannot use your own invitation"}


@pytest.mark.asyncio
@pytest.mark.parametrize("run_in_api, paused", [(True, False), (False, True)])
async def test_lifespan_worker_mode(run_in_api, paused):
    with patch.object(main_module, "settings", Settings(run_worker_in_api=run_in_api)), \
            patch.object(main_module, "init_db", AsyncMock()), \
            patch.object(main_module, "get_sync_session"), \
            patch.object(main_module, "get_strategy_store"), \
            patch.object(main_module, "start_worker") as mock_start, \
            patch.object(main_module, "shutdown_worker") as mock_shutdown:
        async with main_module.lifespan(app):
            assert mock_start.call_args.kwargs["paused"] is paused

    mock_shutdown.assert_called_once()
