"""API tests for /api/v1/points and /api/v1/leaderboard."""

from datetime import timedelta

import pytest
from sqlalchemy import update

from noizlabs.db.models import AudioClip
from noizlabs.points.day_utils import utc_now

AUDIO = ("loop.mp3", b"ID3" + b"\x00" * 128, "audio/mpeg")


async def _create_category(client, owner, name="Drum Loops"):
    response = await client.post("/api/v1/arena/categories", json={"name": name}, headers=owner.headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _upload(client, uploader, category_id, title="My loop"):
    response = await client.post(
        f"/api/v1/arena/categories/{category_id}/clips",
        data={"title": title},
        files={"file": AUDIO},
        headers=uploader.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _balance(client, user):
    response = await client.get("/api/v1/points/me", headers=user.headers)
    assert response.status_code == 200
    return response.json()["points"]


@pytest.mark.asyncio
class TestAwardEndpoint:
    async def test_upload_award(self, client, user, other_user):
        category = await _create_category(client, other_user)
        clip = await _upload(client, user, category["id"])

        response = await client.post(
            "/api/v1/points/award",
            json={"action": "upload", "data": {"clipId": clip["id"]}},
            headers=user.headers,
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "points": 5, "reason": "Audio upload"}
        assert await _balance(client, user) == 5

    async def test_duplicate_award_is_409(self, client, user, other_user):
        category = await _create_category(client, other_user)
        clip = await _upload(client, user, category["id"])
        payload = {"action": "upload", "data": {"clipId": clip["id"]}}

        await client.post("/api/v1/points/award", json=payload, headers=user.headers)
        response = await client.post("/api/v1/points/award", json=payload, headers=user.headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Points already awarded for this action"
        assert await _balance(client, user) == 5

    async def test_claiming_someone_elses_clip_is_403(self, client, user, other_user, sign_in):
        owner = await sign_in()
        category = await _create_category(client, owner)
        clip = await _upload(client, other_user, category["id"])

        response = await client.post(
            "/api/v1/points/award",
            json={"action": "upload", "data": {"clipId": clip["id"]}},
            headers=user.headers,
        )
        assert response.status_code == 403
        assert await _balance(client, user) == 0

    async def test_stale_clip_is_400(self, client, user, other_user, db_session):
        category = await _create_category(client, other_user)
        clip = await _upload(client, user, category["id"])
        await db_session.execute(
            update(AudioClip).where(AudioClip.id == clip["id"]).values(created_at=utc_now() - timedelta(minutes=6))
        )
        await db_session.commit()

        response = await client.post(
            "/api/v1/points/award",
            json={"action": "upload", "data": {"clipId": clip["id"]}},
            headers=user.headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "stale_reference"

    async def test_category_award_includes_daily_bonus(self, client, user):
        category = await _create_category(client, user)
        response = await client.post(
            "/api/v1/points/award",
            json={"action": "category", "data": {"categoryId": category["id"]}},
            headers=user.headers,
        )
        assert response.status_code == 200
        assert response.json()["points"] == 60

    async def test_client_supplied_amount_is_ignored(self, client, user):
        category = await _create_category(client, user)
        response = await client.post(
            "/api/v1/points/award",
            json={"action": "category", "data": {"categoryId": category["id"], "points": 1_000_000}, "points": 999},
            headers=user.headers,
        )
        assert response.json()["points"] == 60
        assert await _balance(client, user) == 60

    async def test_invalid_action_is_400(self, client, user):
        response = await client.post("/api/v1/points/award", json={"action": "mint"}, headers=user.headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid action"

    async def test_thirty_first_call_is_rate_limited(self, client, user):
        category = await _create_category(client, user)
        payload = {"action": "category", "data": {"categoryId": category["id"]}}

        statuses = []
        for _ in range(31):
            response = await client.post("/api/v1/points/award", json=payload, headers=user.headers)
            statuses.append(response.status_code)

        assert statuses[0] == 200
        assert set(statuses[1:30]) == {409}
        assert statuses[30] == 429
        assert await _balance(client, user) == 60

    async def test_requires_auth(self, client):
        response = await client.post("/api/v1/points/award", json={"action": "upload", "data": {"clipId": "x"}})
        assert response.status_code == 401


@pytest.mark.asyncio
class TestDailyCheckinEndpoint:
    async def test_checkin_then_duplicate(self, client, user):
        first = await client.post("/api/v1/points/daily-checkin", headers=user.headers)
        assert first.status_code == 200
        assert first.json() == {"success": True, "streak": 1, "points": 10, "isStreakComplete": False}

        second = await client.post("/api/v1/points/daily-checkin", headers=user.headers)
        assert second.status_code == 409
        assert second.json()["code"] == "already_checked_in"
        assert await _balance(client, user) == 10

    async def test_quest_reflects_checkin(self, client, user):
        await client.post("/api/v1/points/daily-checkin", headers=user.headers)
        response = await client.get("/api/v1/points/quests/today", headers=user.headers)
        assert response.status_code == 200
        body = response.json()
        assert body["checkinDone"] is True
        assert body["rewardedCheckin"] is True
        assert body["currentStreak"] == 1
        assert body["voteBonusThreshold"] == 20


@pytest.mark.asyncio
class TestBalanceAndHistory:
    async def test_new_user_has_zero(self, client, user):
        response = await client.get("/api/v1/points/me", headers=user.headers)
        assert response.json() == {"walletAddress": user.address, "points": 0}

    async def test_history_lists_awards_newest_first(self, client, user):
        category = await _create_category(client, user)
        await client.post(
            "/api/v1/points/award",
            json={"action": "category", "data": {"categoryId": category["id"]}},
            headers=user.headers,
        )
        response = await client.get("/api/v1/points/history", params={"limit": 10}, headers=user.headers)
        body = response.json()
        assert body["total"] == 2
        assert {e["action"] for e in body["entries"]} == {"category", "category_bonus"}
        assert sum(e["amount"] for e in body["entries"]) == await _balance(client, user)

    async def test_empty_quest(self, client, user):
        response = await client.get("/api/v1/points/quests/today", headers=user.headers)
        body = response.json()
        assert body["checkinDone"] is False
        assert body["votesCast"] == 0
        assert body["currentStreak"] == 0


@pytest.mark.asyncio
class TestLeaderboard:
    async def test_ranked_by_points(self, client, user, other_user):
        category = await _create_category(client, other_user)
        await client.post(
            "/api/v1/points/award",
            json={"action": "category", "data": {"categoryId": category["id"]}},
            headers=other_user.headers,
        )
        await client.post("/api/v1/points/daily-checkin", headers=user.headers)

        response = await client.get("/api/v1/leaderboard")
        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [(e["rank"], e["walletAddress"], e["points"]) for e in entries[:2]] == [
            (1, other_user.address, 60),
            (2, user.address, 10),
        ]
        assert entries[0]["username"] == f"User_{other_user.address[:8]}"

    async def test_limit_capped(self, client):
        response = await client.get("/api/v1/leaderboard", params={"limit": 500})
        assert response.status_code == 422
