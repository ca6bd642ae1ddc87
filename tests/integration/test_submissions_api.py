"""Integration tests for the submissions API

Tests cover:
- Opening, resuming and autosaving drafts
- Attachment uploads with per-file failures
- Finalize and its idempotent retry
- Post-submission operations (status, shipped-out, lab results, delete)
- Label requests, label artifact delivery and delivery templates
- Actor headers and request validation
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from labintake.models.audit_log import AuditLog

from tests.conftest import OWNER_ID

pytestmark = pytest.mark.integration

SHIP_FROM = {"address_line1": "12 Harbor Rd", "city": "Portland", "state": "OR", "postal_code": "97201"}


def open_draft(client: TestClient, headers: dict, **body) -> dict:
    body.setdefault("owner_id", OWNER_ID)
    response = client.post("/submissions/drafts", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def create_draft(client: TestClient, headers: dict, **fields) -> int:
    data = open_draft(client, headers, fields=fields or {"patient_name": "Ada Byron"})
    return data["draft"]["id"]


def finalize(client: TestClient, headers: dict, draft_id: int, **body) -> dict:
    response = client.post(f"/submissions/drafts/{draft_id}/finalize", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def audit_actions(db_session: Session) -> list:
    return [entry.action for entry in db_session.query(AuditLog).order_by(AuditLog.id).all()]


class TestOpenDraft:
    """Test POST /submissions/drafts"""

    def test_open_without_fields_creates_nothing(self, client, actor_headers):
        data = open_draft(client, actor_headers)

        assert data == {"reference": None, "resumed": False, "draft": None}

    def test_first_edit_creates_draft(self, client, actor_headers):
        data = open_draft(client, actor_headers, fields={"patient_name": "Ada Byron", "stat_test": True})

        draft = data["draft"]
        assert data["reference"] == draft["id"]
        assert data["resumed"] is False
        assert draft["status"] == "in_progress"
        assert draft["code"] is None
        assert draft["fields"]["patient_name"] == "Ada Byron"
        assert draft["fields"]["stat_test"] is True
        assert draft["created_by"] == "user-17"

    def test_create_flag_creates_empty_draft(self, client, actor_headers):
        data = open_draft(client, actor_headers, create=True)

        assert data["draft"]["id"] == data["reference"]
        assert data["draft"]["attachments"] == {"script": [], "insurance_card": [], "patient_id": []}

    def test_resume_by_reference(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        data = open_draft(client, actor_headers, reference=str(draft_id))

        assert data["resumed"] is True
        assert data["reference"] == draft_id
        assert data["draft"]["fields"]["patient_name"] == "Ada Byron"

    def test_junk_reference_starts_fresh(self, client, actor_headers):
        data = open_draft(client, actor_headers, reference="undefined")

        assert data["reference"] is None
        assert data["draft"] is None

    def test_out_of_range_reference_starts_fresh(self, client, actor_headers):
        data = open_draft(client, actor_headers, reference="99999999999999999999")

        assert data == {"reference": None, "resumed": False, "draft": None}

    def test_foreign_owner_cannot_resume(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        data = open_draft(client, actor_headers, owner_id="lab-uptown", reference=draft_id)

        assert data["resumed"] is False
        assert data["reference"] is None

    def test_same_draft_key_reuses_draft(self, client, actor_headers):
        first = open_draft(client, actor_headers, draft_key="tab-key-0001", fields={"patient_name": "Ada"})
        second = open_draft(client, actor_headers, draft_key="tab-key-0001", fields={"doctor_name": "Dr. Lee"})

        assert second["resumed"] is True
        assert second["draft"]["id"] == first["draft"]["id"]
        assert second["draft"]["fields"]["patient_name"] == "Ada"
        assert second["draft"]["fields"]["doctor_name"] == "Dr. Lee"

    def test_unknown_field_rejected(self, client, actor_headers):
        response = client.post(
            "/submissions/drafts",
            json={"owner_id": OWNER_ID, "fields": {"favourite_color": "teal"}},
            headers=actor_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_missing_actor_header(self, client):
        response = client.post("/submissions/drafts", json={"owner_id": OWNER_ID})

        assert response.status_code == 401


class TestPatchDraft:
    """Test PATCH /submissions/drafts/{id}"""

    def test_patch_overwrites_only_sent_fields(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers, patient_name="Ada", lab_brand="Quest")

        response = client.patch(
            f"/submissions/drafts/{draft_id}",
            json={"lab_brand": "LabCorp", "patient_email": None},
            headers=actor_headers,
        )

        assert response.status_code == 200
        fields = response.json()["fields"]
        assert fields["patient_name"] == "Ada"
        assert fields["lab_brand"] == "LabCorp"
        assert fields["patient_email"] is None

        resumed = client.get(f"/submissions/drafts/{draft_id}").json()
        assert resumed["fields"]["lab_brand"] == "LabCorp"

    def test_patch_unknown_draft(self, client, actor_headers):
        response = client.patch("/submissions/drafts/9999", json={"lab_brand": "Quest"}, headers=actor_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_out_of_range_draft_id_is_not_found(self, client, actor_headers):
        response = client.get("/submissions/drafts/99999999999999999999", headers=actor_headers)

        assert response.status_code == 404

    def test_patch_after_finalize_conflicts(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.patch(f"/submissions/drafts/{draft_id}", json={"lab_brand": "Quest"}, headers=actor_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "not_editable"

    def test_patch_requires_actor(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        response = client.patch(f"/submissions/drafts/{draft_id}", json={"lab_brand": "Quest"})

        assert response.status_code == 401


class TestUploadAttachments:
    """Test POST /submissions/drafts/{id}/attachments/{group}"""

    def test_upload_merges_urls(self, client, actor_headers, api_storage):
        draft_id = create_draft(client, actor_headers)

        response = client.post(
            f"/submissions/drafts/{draft_id}/attachments/script",
            files=[
                ("files", ("page1.png", b"first page", "image/png")),
                ("files", ("page2.pdf", b"second page", "application/pdf")),
            ],
            headers=actor_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["group"] == "script"
        assert len(data["uploaded"]) == 2
        assert data["failed"] == []
        assert data["urls"] == [u["url"] for u in data["uploaded"]]
        assert all(url.startswith(f"https://files.test/submission-files/draft-{draft_id}/script/") for url in data["urls"])
        assert len(api_storage.objects) == 2

        more = client.post(
            f"/submissions/drafts/{draft_id}/attachments/script",
            files=[("files", ("page3.jpg", b"third page", "image/jpeg"))],
            headers=actor_headers,
        ).json()
        assert more["urls"][:2] == data["urls"]
        assert len(more["urls"]) == 3

        resumed = client.get(f"/submissions/drafts/{draft_id}").json()
        assert resumed["attachments"]["script"] == more["urls"]
        assert resumed["attachments"]["insurance_card"] == []

    def test_partial_failure(self, client, actor_headers, api_storage):
        api_storage.fail_when = lambda key, data: data == b"broken"
        draft_id = create_draft(client, actor_headers)

        response = client.post(
            f"/submissions/drafts/{draft_id}/attachments/insurance_card",
            files=[
                ("files", ("front.png", b"front", "image/png")),
                ("files", ("back.png", b"broken", "image/png")),
                ("files", ("notes.txt", b"text", "text/plain")),
            ],
            headers=actor_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert [u["filename"] for u in data["uploaded"]] == ["front.png"]
        assert sorted(f["index"] for f in data["failed"]) == [1, 2]
        assert len(data["urls"]) == 1

    def test_unknown_group(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        response = client.post(
            f"/submissions/drafts/{draft_id}/attachments/selfie",
            files=[("files", ("a.png", b"x", "image/png"))],
            headers=actor_headers,
        )

        assert response.status_code == 422

    def test_upload_to_finalized_draft_conflicts(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.post(
            f"/submissions/drafts/{draft_id}/attachments/script",
            files=[("files", ("a.png", b"x", "image/png"))],
            headers=actor_headers,
        )

        assert response.status_code == 409


class TestFinalize:
    """Test POST /submissions/drafts/{id}/finalize"""

    def test_finalize_assigns_code(self, client, actor_headers, db_session):
        draft_id = create_draft(client, actor_headers)

        data = finalize(client, actor_headers, draft_id, fields={"lab_brand": "Quest"})

        assert data["draft_id"] == draft_id
        assert data["status"] == "pending"
        assert len(data["code"]) == 4
        assert data["code"].isalnum()
        assert data["submitted_at"] is not None
        assert data["already_finalized"] is False
        assert data["label_request"] is None

        record = client.get(f"/submissions/drafts/{draft_id}").json()
        assert record["code"] == data["code"]
        assert record["fields"]["lab_brand"] == "Quest"
        assert "DRAFT_FINALIZED" in audit_actions(db_session)

    def test_finalize_retry_returns_same_code(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        first = finalize(client, actor_headers, draft_id)
        second = finalize(client, actor_headers, draft_id)

        assert second["code"] == first["code"]
        assert second["already_finalized"] is True

    def test_finalize_merges_attachment_urls(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        uploaded = client.post(
            f"/submissions/drafts/{draft_id}/attachments/patient_id",
            files=[("files", ("id.jpg", b"id card", "image/jpeg"))],
            headers=actor_headers,
        ).json()["urls"]

        finalize(
            client,
            actor_headers,
            draft_id,
            attachments={"patient_id": uploaded + ["https://files.test/submission-files/extra.jpg"]},
        )

        record = client.get(f"/submissions/drafts/{draft_id}").json()
        assert record["attachments"]["patient_id"] == uploaded + ["https://files.test/submission-files/extra.jpg"]

    def test_finalize_unknown_draft(self, client, actor_headers):
        response = client.post("/submissions/drafts/9999/finalize", json={}, headers=actor_headers)

        assert response.status_code == 404

    def test_finalize_with_label(self, client, actor_headers, db_session):
        draft_id = create_draft(client, actor_headers, patient_name="Ada", need_label=True)

        data = finalize(client, actor_headers, draft_id, label_address=SHIP_FROM)

        assert data["label_error"] is None
        label = data["label_request"]
        assert label["submission_id"] == draft_id
        assert label["status"] == "pending"
        assert label["address"]["address_line1"] == "12 Harbor Rd"
        assert client.get(f"/submissions/drafts/{draft_id}").json()["label_requested"] is True
        assert "LABEL_REQUESTED" in audit_actions(db_session)

        templates = client.get("/delivery-templates", params={"owner_id": OWNER_ID}).json()
        assert len(templates) == 1
        assert templates[0]["address_line1"] == "12 Harbor Rd"

    def test_label_skipped_when_not_needed(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers, need_label=False)

        data = finalize(client, actor_headers, draft_id, label_address=SHIP_FROM)

        assert data["label_request"] is None
        assert client.get(f"/submissions/{draft_id}/label-requests").json() == []


class TestSubmittedRecords:
    """Test lookups, listing, deletion and status changes"""

    def test_get_by_code(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        code = finalize(client, actor_headers, draft_id)["code"]

        response = client.get(f"/submissions/by-code/{code}")

        assert response.status_code == 200
        assert response.json()["id"] == draft_id

    def test_get_by_unknown_code(self, client):
        assert client.get("/submissions/by-code/ZZZZ").status_code == 404

    def test_list_for_owner(self, client, actor_headers):
        first = create_draft(client, actor_headers, patient_name="Ada")
        second = create_draft(client, actor_headers, patient_name="Grace")
        finalize(client, actor_headers, second)

        everything = client.get("/submissions", params={"owner_id": OWNER_ID}).json()
        pending = client.get("/submissions", params={"owner_id": OWNER_ID, "status": "pending"}).json()

        assert {item["id"] for item in everything["items"]} == {first, second}
        assert [item["id"] for item in pending["items"]] == [second]
        assert pending["items"][0]["patient_name"] == "Grace"

    def test_delete_hides_submission(self, client, actor_headers, db_session):
        draft_id = create_draft(client, actor_headers)

        response = client.delete(f"/submissions/{draft_id}", headers=actor_headers)

        assert response.status_code == 204
        assert client.get(f"/submissions/drafts/{draft_id}").status_code == 404
        assert client.get("/submissions", params={"owner_id": OWNER_ID}).json()["items"] == []
        assert "SUBMISSION_DELETED" in audit_actions(db_session)

    def test_status_change_requires_admin(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.post(
            f"/submissions/{draft_id}/status",
            json={"status": "waiting_on_lab_results"},
            headers=actor_headers,
        )

        assert response.status_code == 403

    def test_admin_status_change(self, client, actor_headers, admin_headers, db_session):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.post(
            f"/submissions/{draft_id}/status",
            json={"status": "waiting_on_lab_results"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "waiting_on_lab_results"
        assert "SUBMISSION_STATUS_CHANGED" in audit_actions(db_session)

    def test_invalid_transition(self, client, actor_headers, admin_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.post(f"/submissions/{draft_id}/status", json={"status": "in_progress"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_draft_cannot_skip_finalize(self, client, actor_headers, admin_headers):
        draft_id = create_draft(client, actor_headers)

        response = client.post(f"/submissions/{draft_id}/status", json={"status": "pending"}, headers=admin_headers)

        assert response.status_code == 409
        assert client.get(f"/submissions/drafts/{draft_id}").json()["code"] is None


class TestPostSubmissionFiles:
    """Test shipped-out photos, lab results and label artifacts"""

    def test_mark_shipped_out_with_photo(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        code = finalize(client, actor_headers, draft_id)["code"]

        response = client.post(
            f"/submissions/{draft_id}/shipped-out",
            files={"image": ("box.jpg", b"boxed sample", "image/jpeg")},
            headers=actor_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "waiting_to_be_received"
        assert data["shipped_out_at"] is not None
        assert data["shipped_out_image_url"].startswith(f"https://files.test/lab-results/{code}/shipped-out/")

    def test_shipped_out_rejects_bad_photo(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        response = client.post(
            f"/submissions/{draft_id}/shipped-out",
            files={"image": ("box.exe", b"binary", "application/octet-stream")},
            headers=actor_headers,
        )

        assert response.status_code == 400

    def test_lab_results_complete_submission(self, client, actor_headers, admin_headers):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)
        client.post(f"/submissions/{draft_id}/status", json={"status": "waiting_on_lab_results"}, headers=admin_headers)

        response = client.post(
            f"/submissions/{draft_id}/lab-results",
            files={"file": ("results.pdf", b"%PDF results", "application/pdf")},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["lab_results_url"].endswith(".pdf")

    def test_lab_results_on_draft_conflict(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        response = client.post(
            f"/submissions/{draft_id}/lab-results",
            files={"file": ("results.pdf", b"%PDF results", "application/pdf")},
            headers=actor_headers,
        )

        assert response.status_code == 409

    def test_label_request_and_artifact(self, client, actor_headers, admin_headers, db_session):
        draft_id = create_draft(client, actor_headers)
        finalize(client, actor_headers, draft_id)

        created = client.post(
            f"/submissions/{draft_id}/label-requests",
            json={"address": SHIP_FROM},
            headers=actor_headers,
        )
        again = client.post(
            f"/submissions/{draft_id}/label-requests",
            json={"address": SHIP_FROM},
            headers=actor_headers,
        )

        assert created.status_code == 201
        assert again.json()["id"] == created.json()["id"]
        request_id = created.json()["id"]

        forbidden = client.post(
            f"/label-requests/{request_id}/artifact",
            files={"file": ("label.pdf", b"%PDF label", "application/pdf")},
            headers=actor_headers,
        )
        assert forbidden.status_code == 403

        delivered = client.post(
            f"/label-requests/{request_id}/artifact",
            files={"file": ("label.pdf", b"%PDF label", "application/pdf")},
            headers=admin_headers,
        )

        assert delivered.status_code == 200
        assert delivered.json()["status"] == "fulfilled"
        label_url = delivered.json()["artifact_url"]
        assert label_url.startswith("https://files.test/shipping-labels/")
        assert client.get(f"/submissions/drafts/{draft_id}").json()["label_url"] == label_url
        assert "LABEL_DELIVERED" in audit_actions(db_session)

    def test_label_request_on_draft_conflicts(self, client, actor_headers):
        draft_id = create_draft(client, actor_headers)

        response = client.post(
            f"/submissions/{draft_id}/label-requests",
            json={"address": SHIP_FROM},
            headers=actor_headers,
        )

        assert response.status_code == 409

    def test_artifact_for_unknown_request(self, client, admin_headers):
        response = client.post(
            "/label-requests/9999/artifact",
            files={"file": ("label.pdf", b"%PDF label", "application/pdf")},
            headers=admin_headers,
        )

        assert response.status_code == 404


class TestDeliveryTemplates:
    """Test /delivery-templates"""

    def test_save_is_idempotent(self, client, actor_headers):
        body = {"owner_id": OWNER_ID, "address": {**SHIP_FROM, "name": "Front desk"}}

        first = client.post("/delivery-templates", json=body, headers=actor_headers)
        second = client.post("/delivery-templates", json=body, headers=actor_headers)

        assert first.status_code == 201
        assert first.json()["created"] is True
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["template"]["id"] == first.json()["template"]["id"]

    def test_templates_are_per_owner(self, client, actor_headers):
        client.post("/delivery-templates", json={"owner_id": OWNER_ID, "address": SHIP_FROM}, headers=actor_headers)

        others = client.get("/delivery-templates", params={"owner_id": "lab-uptown"}).json()

        assert others == []

    def test_address_line1_required(self, client, actor_headers):
        response = client.post(
            "/delivery-templates",
            json={"owner_id": OWNER_ID, "address": {"city": "Portland"}},
            headers=actor_headers,
        )

        assert response.status_code == 422
