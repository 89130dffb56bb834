"""API tests for categories, clip uploads and votes."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from noizlabs.db.models import Category, Vote
from noizlabs.points.day_utils import utc_now

AUDIO = ("loop.mp3", b"ID3" + b"\x00" * 64, "audio/mpeg")


async def _category(client, owner, name="Lo-fi"):
    response = await client.post("/api/v1/arena/categories", json={"name": name}, headers=owner.headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _upload(client, uploader, category_id, file=AUDIO, title="Take one"):
    return await client.post(
        f"/api/v1/arena/categories/{category_id}/clips",
        data={"title": title},
        files={"file": file},
        headers=uploader.headers,
    )


@pytest.mark.asyncio
class TestCategories:
    async def test_create_and_list(self, client, user):
        created = await _category(client, user)
        assert created["name"] == "Lo-fi"
        assert created["creatorWallet"] == user.address
        assert created["clips"] == []

        response = await client.get("/api/v1/arena/categories")
        assert response.status_code == 200
        assert [c["id"] for c in response.json()["categories"]] == [created["id"]]

    async def test_duplicate_active_name_rejected(self, client, user, other_user):
        await _category(client, user, name="Trap")
        response = await client.post("/api/v1/arena/categories", json={"name": "trap"}, headers=other_user.headers)
        assert response.status_code == 409
        assert response.json()["code"] == "category_exists"

    async def test_blank_name_rejected(self, client, user):
        response = await client.post("/api/v1/arena/categories", json={"name": "   "}, headers=user.headers)
        assert response.status_code == 400

    async def test_creation_counts_toward_quest(self, client, user):
        await _category(client, user)
        quest = await client.get("/api/v1/points/quests/today", headers=user.headers)
        assert quest.json()["categoriesCreated"] == 1

    async def test_requires_auth(self, client):
        response = await client.post("/api/v1/arena/categories", json={"name": "x"})
        assert response.status_code == 401


@pytest.mark.asyncio
class TestClipUpload:
    async def test_upload_stores_and_returns_clip(self, client, user, other_user, mock_storage):
        category = await _category(client, other_user)
        response = await _upload(client, user, category["id"])
        assert response.status_code == 201
        body = response.json()
        assert body["creatorWallet"] == user.address
        assert body["audioUrl"] == "https://cdn.test/audio-clips/clip.mp3"
        assert body["votes"] == 0
        mock_storage.upload_clip.assert_awaited_once()
        _, wallet, content_type = mock_storage.upload_clip.await_args.args
        assert wallet == user.address
        assert content_type == "audio/mpeg"

    async def test_cannot_upload_to_own_category(self, client, user, mock_storage):
        category = await _category(client, user)
        response = await _upload(client, user, category["id"])
        assert response.status_code == 403
        mock_storage.upload_clip.assert_not_awaited()

    async def test_one_clip_per_wallet_per_category(self, client, user, other_user):
        category = await _category(client, other_user)
        assert (await _upload(client, user, category["id"])).status_code == 201
        response = await _upload(client, user, category["id"])
        assert response.status_code == 409
        assert response.json()["code"] == "clip_exists"

    async def test_non_audio_rejected(self, client, user, other_user, mock_storage):
        category = await _category(client, other_user)
        response = await _upload(client, user, category["id"], file=("notes.txt", b"hello", "text/plain"))
        assert response.status_code == 400
        mock_storage.upload_clip.assert_not_awaited()

    async def test_unknown_category(self, client, user):
        response = await _upload(client, user, "00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

    async def test_upload_appears_in_listing(self, client, user, other_user):
        category = await _category(client, other_user)
        await _upload(client, user, category["id"], title="Dusty keys")
        listing = await client.get("/api/v1/arena/categories")
        clips = listing.json()["categories"][0]["clips"]
        assert [c["title"] for c in clips] == ["Dusty keys"]


@pytest.mark.asyncio
class TestVotes:
    async def _clip(self, client, owner, uploader, category=None):
        category = category or await _category(client, owner)
        response = await _upload(client, uploader, category["id"])
        return response.json()

    async def _vote(self, client, voter, clip_id, **extra):
        return await client.post("/api/v1/arena/votes", json={"clipId": clip_id, **extra}, headers=voter.headers)

    async def test_vote_counts_in_listing(self, client, user, other_user, sign_in):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)

        response = await self._vote(client, user, clip["id"])
        assert response.status_code == 201
        assert response.json()["clipId"] == clip["id"]
        assert response.json()["battleId"] == clip["categoryId"]

        listing = await client.get("/api/v1/arena/categories")
        assert listing.json()["categories"][0]["clips"][0]["votes"] == 1

        quest = await client.get("/api/v1/points/quests/today", headers=user.headers)
        assert quest.json()["votesCast"] == 1

    async def test_vote_then_award(self, client, user, other_user, sign_in):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)
        vote = await self._vote(client, user, clip["id"])
        award = await client.post(
            "/api/v1/points/award", json={"action": "vote", "data": {"voteId": vote.json()["id"]}}, headers=user.headers
        )
        assert award.status_code == 200
        assert award.json()["points"] == 1

    async def test_cannot_vote_for_own_clip(self, client, user, other_user):
        clip = await self._clip(client, other_user, user)
        response = await self._vote(client, user, clip["id"])
        assert response.status_code == 403

    async def test_one_vote_per_battle(self, client, user, other_user, sign_in):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)
        assert (await self._vote(client, user, clip["id"])).status_code == 201
        response = await self._vote(client, user, clip["id"])
        assert response.status_code == 409
        assert response.json()["code"] == "already_voted"

    async def test_explicit_battle_id_must_match_category(self, client, user, other_user, sign_in):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)
        response = await self._vote(client, user, clip["id"], battleId="made-up")
        assert response.status_code == 400
        assert response.json()["code"] == "battle_mismatch"

        response = await self._vote(client, user, clip["id"], battleId=clip["categoryId"])
        assert response.status_code == 201

    async def test_fresh_battle_ids_cannot_stack_votes(self, client, user, other_user, sign_in):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)

        first = await self._vote(client, user, clip["id"], battleId=clip["categoryId"])
        assert first.status_code == 201
        award = await client.post(
            "/api/v1/points/award", json={"action": "vote", "data": {"voteId": first.json()["id"]}}, headers=user.headers
        )
        assert award.status_code == 200

        statuses = [(await self._vote(client, user, clip["id"], battleId=f"b{i}")).status_code for i in range(5)]
        repeat = await self._vote(client, user, clip["id"])

        assert statuses == [400] * 5
        assert repeat.status_code == 409
        listing = await client.get("/api/v1/arena/categories")
        assert listing.json()["categories"][0]["clips"][0]["votes"] == 1
        balance = await client.get("/api/v1/points/me", headers=user.headers)
        assert balance.json()["points"] == 1

    async def test_one_vote_per_category_across_clips(self, client, user, other_user, sign_in):
        owner = await sign_in()
        third = await sign_in()
        category = await _category(client, owner)
        first = await self._clip(client, owner, other_user, category=category)
        second = await self._clip(client, owner, third, category=category)

        assert (await self._vote(client, user, first["id"])).status_code == 201
        response = await self._vote(client, user, second["id"])
        assert response.status_code == 409
        assert response.json()["code"] == "already_voted"

    async def test_votes_in_different_categories_allowed(self, client, user, other_user, sign_in):
        owner = await sign_in()
        first = await self._clip(client, owner, other_user)
        second = await self._clip(client, owner, other_user, category=await _category(client, owner, name="Dub"))
        assert (await self._vote(client, user, first["id"])).status_code == 201
        assert (await self._vote(client, user, second["id"])).status_code == 201

    async def test_vote_on_expired_category_rejected(self, client, user, other_user, sign_in, db_session):
        owner = await sign_in()
        clip = await self._clip(client, owner, other_user)
        await db_session.execute(
            update(Category)
            .where(Category.id == clip["categoryId"])
            .values(expires_at=utc_now() - timedelta(hours=1))
        )
        await db_session.commit()

        response = await self._vote(client, user, clip["id"])
        assert response.status_code == 400
        assert response.json()["detail"] == "Category has expired"
        count = await db_session.execute(select(func.count()).select_from(Vote))
        assert count.scalar_one() == 0

    async def test_unknown_clip(self, client, user):
        response = await self._vote(client, user, "missing")
        assert response.status_code == 404
