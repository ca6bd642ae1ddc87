"""Unit tests for label request and audit persistence (SQLite)"""

from datetime import datetime, timezone

import pytest

from labintake.audit.service import SqlAuditLog
from labintake.domain.submissions.errors import LabelRequestNotFoundError
from labintake.domain.submissions.models import Actor
from labintake.infrastructure.repositories.label_request_repository import LabelRequestRepository
from labintake.models import AuditLog, Submission


@pytest.fixture
def submission_id(db_session):
    row = Submission(owner_id="lab-downtown")
    db_session.add(row)
    db_session.commit()
    return row.id


class TestLabelRequestRepository:
    @pytest.mark.asyncio
    async def test_create_and_list(self, db_session, submission_id):
        store = LabelRequestRepository(db_session)

        request = await store.create(submission_id, {"address_line1": "1 Main St"}, requested_by="user-17")

        assert request.status == "pending"
        assert request.address == {"address_line1": "1 Main St"}
        assert [r.id for r in await store.list_by_draft(submission_id)] == [request.id]

    @pytest.mark.asyncio
    async def test_mark_fulfilled(self, db_session, submission_id):
        store = LabelRequestRepository(db_session)
        request = await store.create(submission_id, {"address_line1": "1 Main St"})

        fulfilled = await store.mark_fulfilled(request.id, "https://files.test/label.pdf")

        assert fulfilled.status == "fulfilled"
        assert fulfilled.artifact_url == "https://files.test/label.pdf"
        assert fulfilled.fulfilled_at is not None
        assert (await store.get(request.id)).status == "fulfilled"

    @pytest.mark.asyncio
    async def test_mark_unknown_request(self, db_session):
        with pytest.raises(LabelRequestNotFoundError):
            await LabelRequestRepository(db_session).mark_fulfilled(99, "https://files.test/x.pdf")


class TestSqlAuditLog:
    @pytest.mark.asyncio
    async def test_append_splits_entity_from_metadata(self, db_session):
        audit = SqlAuditLog(db_session)

        await audit.append(
            "DRAFT_FINALIZED",
            Actor(id="user-17"),
            {"entity_id": 7, "code": "Ab12"},
            datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        entry = db_session.query(AuditLog).one()
        assert entry.action == "DRAFT_FINALIZED"
        assert entry.actor_id == "user-17"
        assert entry.entity_type == "submission"
        assert entry.entity_id == "7"
        assert entry.metadata_json == {"code": "Ab12"}

    @pytest.mark.asyncio
    async def test_system_event_without_actor(self, db_session):
        await SqlAuditLog(db_session).append("LABEL_DELIVERED", None, {}, datetime.now(timezone.utc))

        entry = db_session.query(AuditLog).one()
        assert entry.actor_id is None
        assert entry.metadata_json is None
