"""Integration tests for the submission API."""

from __future__ import annotations

from unittest.mock import AsyncMock

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.db.models import Identity, Submission
from quizgate.quiz.questions import answer_key
from tests.conftest import make_identity, sign_in

KEY = answer_key()


async def _fetch(db: AsyncSession, model, pk: str):
    result = await db.execute(select(model).where(model.id == pk).execution_options(populate_existing=True))
    obj = result.scalar_one()
    await db.commit()
    return obj


class TestCreateSubmission:
    async def test_all_correct_passes(self, applicant_client: AsyncClient):
        response = await applicant_client.post("/api/submissions", json={"answers": dict(KEY)})
        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 100
        assert data["passed"] is True
        assert data["status"] == "pending"
        assert data["answers"] == dict(KEY)

    async def test_partial_answers_fail(self, applicant_client: AsyncClient):
        answers = {"q1": KEY["q1"], "q2": "Ping a fellow trial moderator.", "q3": KEY["q3"]}
        response = await applicant_client.post("/api/submissions", json={"answers": answers})
        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 29
        assert data["passed"] is False
        assert data["status"] == "pending"

    async def test_empty_answers(self, applicant_client: AsyncClient):
        response = await applicant_client.post("/api/submissions", json={"answers": {}})
        assert response.status_code == 201
        assert response.json()["score"] == 0
        assert response.json()["passed"] is False

    async def test_client_supplied_score_ignored(self, applicant_client: AsyncClient):
        response = await applicant_client.post(
            "/api/submissions",
            json={"answers": {}, "score": 100, "passed": True, "status": "approved"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 0
        assert data["status"] == "pending"

    async def test_increments_submission_count(
        self, applicant_client: AsyncClient, applicant: Identity, db_session: AsyncSession
    ):
        await applicant_client.post("/api/submissions", json={"answers": {}})
        await applicant_client.post("/api/submissions", json={"answers": {}})
        identity = await _fetch(db_session, Identity, applicant.id)
        assert identity.submission_count == 2

    async def test_requires_session(self, client: AsyncClient):
        response = await client.post("/api/submissions", json={"answers": {}})
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    async def test_answers_must_be_string_map(self, applicant_client: AsyncClient):
        response = await applicant_client.post("/api/submissions", json={"answers": {"q1": 3}})
        assert response.status_code == 400
        assert response.json()["field"] == "answers.q1"

    async def test_answers_required(self, applicant_client: AsyncClient):
        response = await applicant_client.post("/api/submissions", json={})
        assert response.status_code == 400
        assert response.json()["field"] == "answers"

    async def test_answers_not_a_list(self, applicant_client: AsyncClient):
        response = await applicant_client.post("/api/submissions", json={"answers": ["q1", "q2"]})
        assert response.status_code == 400
        assert "message" in response.json()


class TestNotificationFanOut:
    async def test_posts_review_message_and_stores_its_location(
        self, applicant_client: AsyncClient, mock_rest: AsyncMock, db_session: AsyncSession
    ):
        response = await applicant_client.post("/api/submissions", json={"answers": dict(KEY)})
        submission_id = response.json()["id"]

        mock_rest.create_message.assert_awaited()
        _, kwargs = mock_rest.create_message.await_args_list[0]
        assert kwargs["embed"].title == "New Test Submission: applicant"
        assert len(kwargs["components"]) == 1

        submission = await _fetch(db_session, Submission, submission_id)
        assert submission.notification_channel_id == "200"
        assert submission.notification_message_id == "900001"

    async def test_admins_receive_dm(
        self, applicant_client: AsyncClient, admin: Identity, mock_rest: AsyncMock
    ):
        await applicant_client.post("/api/submissions", json={"answers": {}})
        mock_rest.create_dm_channel.assert_awaited_once_with(int(admin.id))
        dm_text = mock_rest.create_message.await_args_list[-1].args[1]
        assert "applicant" in dm_text
        assert dm_text.endswith("http://frontend.test/admin")

    async def test_channel_failure_does_not_fail_submission(
        self, applicant_client: AsyncClient, admin: Identity, mock_rest: AsyncMock
    ):
        mock_rest.create_message.side_effect = RuntimeError("discord down")
        response = await applicant_client.post("/api/submissions", json={"answers": {}})
        assert response.status_code == 201
        assert response.json()["status"] == "pending"

    async def test_one_admin_dm_failure_does_not_stop_others(
        self, applicant_client: AsyncClient, db_session: AsyncSession, mock_rest: AsyncMock
    ):
        await make_identity(db_session, identity_id="401", username="admin-a", is_admin=True)
        await make_identity(db_session, identity_id="402", username="admin-b", is_admin=True)
        mock_rest.create_dm_channel.side_effect = [RuntimeError("DMs closed"), AsyncMock(id=1)]

        response = await applicant_client.post("/api/submissions", json={"answers": {}})
        assert response.status_code == 201
        assert mock_rest.create_dm_channel.await_count == 2

    async def test_disabled_notifier_skips_fan_out(
        self, applicant_client: AsyncClient, notifier, mock_rest: AsyncMock
    ):
        notifier.rest = None
        response = await applicant_client.post("/api/submissions", json={"answers": {}})
        assert response.status_code == 201
        mock_rest.create_message.assert_not_awaited()


class TestListSubmissions:
    async def test_admin_sees_all_newest_first(
        self, client: AsyncClient, session_store, applicant: Identity, admin: Identity
    ):
        await sign_in(client, session_store, applicant.id)
        first = (await client.post("/api/submissions", json={"answers": {}})).json()
        second = (await client.post("/api/submissions", json={"answers": dict(KEY)})).json()

        await sign_in(client, session_store, admin.id)
        response = await client.get("/api/submissions")
        assert response.status_code == 200
        data = response.json()
        assert [s["id"] for s in data] == [second["id"], first["id"]]
        assert data[0]["identity"]["id"] == applicant.id
        assert data[0]["identity"]["username"] == "applicant"

    async def test_non_admin_rejected(self, applicant_client: AsyncClient):
        response = await applicant_client.get("/api/submissions")
        assert response.status_code == 401

    async def test_anonymous_rejected(self, client: AsyncClient):
        response = await client.get("/api/submissions")
        assert response.status_code == 401


class TestGetSubmission:
    async def test_owner_can_read(self, applicant_client: AsyncClient, applicant: Identity):
        created = (await applicant_client.post("/api/submissions", json={"answers": {}})).json()
        response = await applicant_client.get(f"/api/submissions/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]
        assert response.json()["identity"]["id"] == applicant.id

    async def test_admin_can_read(self, client: AsyncClient, session_store, applicant: Identity, admin: Identity):
        await sign_in(client, session_store, applicant.id)
        created = (await client.post("/api/submissions", json={"answers": {}})).json()
        await sign_in(client, session_store, admin.id)
        response = await client.get(f"/api/submissions/{created['id']}")
        assert response.status_code == 200

    async def test_other_user_rejected(
        self, client: AsyncClient, session_store, applicant: Identity, db_session: AsyncSession
    ):
        await sign_in(client, session_store, applicant.id)
        created = (await client.post("/api/submissions", json={"answers": {}})).json()

        stranger = await make_identity(db_session, identity_id="555", username="stranger")
        await sign_in(client, session_store, stranger.id)
        response = await client.get(f"/api/submissions/{created['id']}")
        assert response.status_code == 401

    async def test_unknown_id(self, applicant_client: AsyncClient):
        response = await applicant_client.get("/api/submissions/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"message": "Not found"}
