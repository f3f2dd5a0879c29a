"""
Attachment tests.

Tests cover:
- Extension, MIME type and per-kind size validation
- Stage validation
- Upload, list, stats, download and delete through the API
"""

import hashlib
import os

import pytest

from casework.services import attachment_service
from casework.services.attachment_service import MB
from casework.services.errors import ValidationError


# =============================================================================
# Validation
# =============================================================================


@pytest.mark.parametrize(
    "filename, content_type, size",
    [
        ("photo.JPG", "image/jpeg", 5 * MB),
        ("statement.pdf", "application/pdf", 10 * MB),
        ("budget.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", 1024),
        ("notes.txt", "text/plain", 0),
    ],
)
def test_validate_file_accepts(filename, content_type, size):
    attachment_service.validate_file(filename, content_type, size)


@pytest.mark.parametrize(
    "filename, content_type, size, message",
    [
        ("script.exe", "application/octet-stream", 10, "File extension '.exe' not allowed"),
        ("noextension", "text/plain", 10, "File extension '.' not allowed"),
        ("photo.png", "application/x-msdownload", 10, "Content type 'application/x-msdownload' not allowed"),
        ("photo.png", "image/png", 5 * MB + 1, "File size exceeds 5 MB limit"),
        ("sheet.csv", "text/csv", 5 * MB + 1, "File size exceeds 5 MB limit"),
        ("scan.pdf", "application/pdf", 10 * MB + 1, "File size exceeds 10 MB limit"),
    ],
)
def test_validate_file_rejects(filename, content_type, size, message):
    with pytest.raises(ValidationError) as exc_info:
        attachment_service.validate_file(filename, content_type, size)

    assert exc_info.value.message == message


def test_validate_stage():
    assert attachment_service.validate_stage("quotation") == "quotation"
    with pytest.raises(ValidationError):
        attachment_service.validate_stage("selfie")


# =============================================================================
# API
# =============================================================================


async def _upload(client, headers, case_id, stage="quotation", name="quote.pdf", body=b"%PDF-1.4 test"):
    return await client.post(
        f"/api/attachments/upload/{case_id}",
        files={"file": (name, body, "application/pdf")},
        data={"stage": stage},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_upload_stores_file_and_records_row(
    client, auth_headers, dcm_user, make_case, upload_dir
):
    case = make_case()
    body = b"%PDF-1.4 quotation"

    response = await _upload(client, auth_headers(dcm_user), case.id, body=body)

    assert response.status_code == 201
    data = response.json()
    assert data["case_id"] == case.id
    assert data["stage"] == "quotation"
    assert data["original_name"] == "quote.pdf"
    assert data["file_size"] == len(body)
    assert data["checksum_sha256"] == hashlib.sha256(body).hexdigest()
    assert data["uploaded_by"] == dcm_user.id

    stored = os.path.join(upload_dir, "attachments", str(case.id), "quotation", data["file_name"])
    with open(stored, "rb") as f:
        assert f.read() == body


@pytest.mark.asyncio
async def test_upload_rejects_invalid_stage(client, auth_headers, dcm_user, make_case, upload_dir):
    case = make_case()

    response = await _upload(client, auth_headers(dcm_user), case.id, stage="selfie")

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid attachment stage")
    assert not os.path.exists(os.path.join(upload_dir, "attachments"))


@pytest.mark.asyncio
async def test_upload_denied_for_unassigned_counselor(
    client, auth_headers, counselor, make_case, upload_dir
):
    case = make_case()

    response = await _upload(client, auth_headers(counselor), case.id)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_stats_download_delete(
    client, auth_headers, dcm_user, super_admin, make_case, upload_dir
):
    case = make_case()
    headers = auth_headers(dcm_user)
    first = (await _upload(client, headers, case.id, body=b"one")).json()
    await _upload(client, headers, case.id, stage="other_documents", name="extra.pdf", body=b"three")

    response = await client.get(f"/api/attachments/case/{case.id}", headers=headers)
    assert len(response.json()) == 2

    response = await client.get(
        f"/api/attachments/case/{case.id}?stage=quotation", headers=headers
    )
    assert [a["id"] for a in response.json()] == [first["id"]]

    response = await client.get(f"/api/attachments/stats/{case.id}", headers=headers)
    assert response.json() == {
        "total_files": 2,
        "total_size": 8,
        "by_stage": {"quotation": 1, "other_documents": 1},
    }

    response = await client.get(f"/api/attachments/download/{first['id']}", headers=headers)
    assert response.status_code == 200
    assert response.content == b"one"
    assert "quote.pdf" in response.headers["content-disposition"]

    # DCM may upload but not delete
    response = await client.delete(f"/api/attachments/{first['id']}", headers=headers)
    assert response.status_code == 403

    response = await client.delete(
        f"/api/attachments/{first['id']}", headers=auth_headers(super_admin)
    )
    assert response.status_code == 204
    stored = os.path.join(upload_dir, "attachments", str(case.id), "quotation", first["file_name"])
    assert not os.path.exists(stored)

    response = await client.get(f"/api/attachments/download/{first['id']}", headers=headers)
    assert response.status_code == 404
