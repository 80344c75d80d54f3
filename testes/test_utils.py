import json
import os
import sys
from datetime import datetime

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from gallery_converter.models.conversion import ImportResult, MediaDescriptor, NamingContext
from gallery_converter.utils import pre_flight_checks
from gallery_converter.utils.backups import make_backup_key
from gallery_converter.utils.errors import BatchFailure, NotFoundError, report_error, report_ok
from gallery_converter.utils.pre_flight_checks import PreFlightCheckError, run_pre_flight_checks


def test_backup_key_format():
    key = make_backup_key(datetime(2024, 1, 31, 10, 15, 0), rand=lambda a, b: 4821)
    assert key == "wp_gallery_block_bkp_4821_20240131_101500"


def test_gallery_title_truncates_document_title():
    naming = NamingContext(document_id=42, document_title="Short")
    assert naming.gallery_title("2024-01-31 10:15:00") == "Short-42-Converted-2024-01-31 10:15:00"
    assert NamingContext(document_id=42).gallery_title("ts") == "Converted-ts"
    long_title = NamingContext(document_id=1, document_title="x" * 30).gallery_title("ts")
    assert long_title == "x" * 20 + "-1-Converted-ts"


def test_media_descriptor_accepts_request_aliases():
    descriptor = MediaDescriptor.model_validate({"id": "-7", "url": "https://e.com/a.jpg", "alt": None, "title": " T "})
    assert descriptor.source_id == 7
    assert descriptor.alt_text == ""
    assert descriptor.title == "T"


def test_import_result_response():
    result = ImportResult(gallery_id=3, title="t", imported_media_ids=[1, 2])
    body = result.to_response()
    assert body["image_count"] == 2
    assert body["failed"] is False
    assert ImportResult(title="t").failed


def test_error_response_and_status():
    failure = BatchFailure("nope", edit_url="https://example.com/edit")
    assert failure.status == 400
    assert failure.to_response() == {"message": "nope", "edit_url": "https://example.com/edit"}
    assert NotFoundError("gone").status == 404
    assert NotFoundError("gone", status=400).status == 400


def test_reports_append_jsonl(tmp_path):
    report_ok("DOCUMENT_REWRITTEN", {"id": 1, "title": "A"}, {"gallery_ids": [5]}, report_dir=str(tmp_path))
    report_error("UNKNOWN_CODE", {"id": 2}, ValueError("boom"), report_dir=str(tmp_path))

    with open(tmp_path / "success.jsonl", encoding="utf-8") as f:
        ok = json.loads(f.readline())
    with open(tmp_path / "errors.jsonl", encoding="utf-8") as f:
        err = json.loads(f.readline())
    assert ok["message"] == "Galleries converted and document saved"
    assert ok["gallery_ids"] == [5]
    assert err["message"] == "UNKNOWN_CODE"
    assert err["error"] == "boom"


# -- pre-flight checks ----------------------------------------------------------

CONFIG = {
    "wordpress": {"site_url": "https://example.com", "username": "u", "app_password": "p"},
    "catalog": {"base_url": "https://catalog.example.com", "token": "t"},
}


def fake_response(status, body=None):
    resp = requests.Response()
    resp.status_code = status
    resp.url = "https://example.com"
    resp._content = json.dumps(body or {}).encode()
    return resp


def test_pre_flight_passes(monkeypatch):
    def fake_get(url, **kwargs):
        if url.endswith("/users/me"):
            return fake_response(200, {"capabilities": {"upload_files": True}})
        return fake_response(200, [])

    monkeypatch.setattr(pre_flight_checks.requests, "get", fake_get)
    run_pre_flight_checks(CONFIG)


@pytest.mark.parametrize("me_status, me_body, catalog_status, message", [
    (401, {}, 200, "invalid or has been revoked"),
    (200, {"capabilities": {}}, 200, "cannot upload files"),
    (200, {"capabilities": {"upload_files": True}}, 403, "rejected the configured token"),
])
def test_pre_flight_failures(monkeypatch, me_status, me_body, catalog_status, message):
    def fake_get(url, **kwargs):
        if url.endswith("/users/me"):
            return fake_response(me_status, me_body)
        return fake_response(catalog_status, [])

    monkeypatch.setattr(pre_flight_checks.requests, "get", fake_get)
    with pytest.raises(PreFlightCheckError, match=message):
        run_pre_flight_checks(CONFIG)


def test_pre_flight_requires_configuration():
    with pytest.raises(PreFlightCheckError, match="site URL"):
        run_pre_flight_checks({"wordpress": {}})
