import json
import os
import sys
from datetime import datetime, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from gallery_converter.migrators import catalog_client, wordpress_client
from gallery_converter.migrators.catalog_client import CatalogClient, catalog_headers
from gallery_converter.migrators.wordpress_client import RateLimiter, WordPressClient, retry_delay, with_retries
from gallery_converter.utils.errors import NotFoundError, PermissionDeniedError


def response(status=200, body=None, headers=None, content=None, url="https://example.com"):
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp._content = content if content is not None else json.dumps(body if body is not None else {}).encode()
    resp.headers.update(headers or {})
    return resp


class NoWait(RateLimiter):
    def wait(self, *args, **kwargs):
        pass


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(wordpress_client.time, "sleep", lambda seconds: None)


TYPES = {
    "post": {"name": "Posts", "rest_base": "posts"},
    "page": {"name": "Pages", "rest_base": "pages"},
    "attachment": {"name": "Media", "rest_base": "media"},
    "wp_internal": {"name": "Internal"},
}


def wp_client():
    return WordPressClient({"site_url": "https://example.com/", "username": "u", "app_password": "p"}, limiter=NoWait())


# -- retries and rate limiting ------------------------------------------------

def test_with_retries_retries_server_errors():
    replies = [response(503, headers={"Retry-After": "0"}), response(500), response(200, {"ok": True})]
    resp = with_retries(lambda: replies.pop(0), base_delay=0)
    assert resp.json() == {"ok": True}
    assert replies == []


def test_with_retries_accepts_http_date_retry_after():
    replies = [response(503, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}), response(200, {"ok": True})]
    assert with_retries(lambda: replies.pop(0), base_delay=0).json() == {"ok": True}


def test_retry_delay_forms():
    now = datetime(2015, 10, 21, 7, 27, 30, tzinfo=timezone.utc)
    assert retry_delay("3", 1.0) == 3.0
    assert retry_delay("Wed, 21 Oct 2015 07:28:00 GMT", 1.0, now=now) == 30.0
    assert retry_delay("Tue, 20 Oct 2015 07:28:00 GMT", 1.0, now=now) == 0.0
    assert retry_delay("soon", 1.5) == 1.5
    assert retry_delay(None, 2.0) == 2.0


def test_with_retries_does_not_retry_client_errors():
    calls = []

    def fn():
        calls.append(1)
        return response(404)

    with pytest.raises(requests.HTTPError):
        with_retries(fn)
    assert len(calls) == 1


def test_with_retries_gives_up_on_connection_errors():
    calls = []

    def fn():
        calls.append(1)
        raise requests.ConnectionError("down")

    with pytest.raises(requests.ConnectionError):
        with_retries(fn, max_attempts=3, base_delay=0)
    assert len(calls) == 3


def test_rate_limiter_sleeps_for_remaining_interval():
    slept = []
    clock = iter([100.0, 100.0, 100.5, 100.5])
    limiter = RateLimiter(rpm=60)
    limiter.wait(time_fn=lambda: next(clock), sleep_fn=slept.append)
    limiter.wait(time_fn=lambda: next(clock), sleep_fn=slept.append)
    assert slept == [pytest.approx(0.5)]


# -- WordPressClient ----------------------------------------------------------------

def test_load_finds_document_in_any_post_type(monkeypatch):
    seen = []

    def fake_get(url, params=None, **kwargs):
        seen.append(url)
        if url.endswith("/types"):
            return response(body=TYPES)
        if url.endswith("/posts/7"):
            return response(404)
        if url.endswith("/pages/7"):
            return response(body={"id": 7, "type": "page", "title": {"raw": "About"}, "content": {"raw": "[gallery]"}})
        raise AssertionError(url)

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    client = wp_client()
    document = client.load(7)

    assert (document.id, document.title, document.text, document.scope) == (7, "About", "[gallery]", "page")
    assert document.edit_url == "https://example.com/wp-admin/post.php?post=7&action=edit"
    assert not any("/media/7" in url for url in seen)

    posted = []
    monkeypatch.setattr(
        wordpress_client.requests, "post", lambda url, json=None, **kw: posted.append((url, json)) or response(body={})
    )
    client.save(7, "new text")
    assert posted == [("https://example.com/wp-json/wp/v2/pages/7", {"content": "new text"})]


def test_load_missing_and_forbidden(monkeypatch):
    def fake_get(url, params=None, **kwargs):
        if url.endswith("/types"):
            return response(body=TYPES)
        if url.endswith("/posts/9"):
            return response(403)
        return response(404)

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    client = wp_client()
    with pytest.raises(PermissionDeniedError):
        client.load(9)
    with pytest.raises(NotFoundError, match="Post not found."):
        client.load(8)
    assert client.can_edit(8) is False


def test_list_scopes_skips_types_without_rest_base(monkeypatch):
    monkeypatch.setattr(wordpress_client.requests, "get", lambda url, **kw: response(body=TYPES))
    scopes = wp_client().list_scopes()
    assert [(s.name, s.label) for s in scopes] == [("post", "Posts"), ("page", "Pages"), ("attachment", "Media")]


def test_list_documents_follows_pagination(monkeypatch):
    def fake_get(url, params=None, **kwargs):
        if url.endswith("/types"):
            return response(body=TYPES)
        page = params["page"]
        item = {"id": page, "title": {"raw": f"T{page}"}, "content": {"raw": ""}}
        return response(body=[item], headers={"X-WP-TotalPages": "2"})

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    documents = wp_client().list_documents("post")
    assert [d.id for d in documents] == [1, 2]
    assert all(d.scope == "post" for d in documents)


def test_read_and_metadata(monkeypatch):
    media = {
        "id": 5,
        "source_url": "https://example.com/uploads/2024/01/beach.jpg",
        "media_details": {"file": "2024/01/beach.jpg"},
        "title": {"raw": "Beach"},
        "alt_text": "Sand",
        "caption": {"raw": "At noon"},
        "description": {"raw": ""},
    }

    def fake_get(url, params=None, **kwargs):
        if url.endswith("/media/5"):
            return response(body=media)
        if url.endswith("/media/6"):
            return response(404)
        if url.endswith("beach.jpg"):
            return response(content=b"\xff\xd8jpeg")
        raise AssertionError(url)

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    client = wp_client()

    media_file = client.read(5)
    assert media_file.filename == "beach.jpg"
    assert media_file.data == b"\xff\xd8jpeg"

    metadata = client.get_media_metadata(5)
    assert (metadata.title, metadata.alt, metadata.caption) == ("Beach", "Sand", "At noon")
    assert client.get_media_metadata(6) is None
    with pytest.raises(NotFoundError):
        client.read(6)


def test_query_child_media_sends_filters(monkeypatch):
    captured = {}

    def fake_get(url, params=None, **kwargs):
        captured.update(params)
        return response(body=[{"id": 3}, {"id": 4}])

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    ids = wp_client().query_child_media(10, include=[3, 4], exclude=[9])

    assert ids == [3, 4]
    assert captured["parent"] == 10
    assert captured["include"] == "3,4"
    assert captured["exclude"] == "9"


def test_capabilities_are_read_once(monkeypatch):
    calls = []

    def fake_get(url, params=None, **kwargs):
        calls.append(url)
        return response(body={"capabilities": {"upload_files": True}})

    monkeypatch.setattr(wordpress_client.requests, "get", fake_get)
    client = wp_client()
    assert client.can_upload() is True
    assert client.can_manage() is False
    assert len(calls) == 1


def test_backups_go_to_report_dir(tmp_path):
    client = WordPressClient({"site_url": "https://example.com", "reports_dir": str(tmp_path)}, limiter=NoWait())
    client.store_backup(4, "wp_gallery_block_bkp_1234_20240131_101500", "[gallery]")
    with open(tmp_path / "backups.jsonl", encoding="utf-8") as f:
        assert json.loads(f.readline()) == {
            "document_id": 4,
            "key": "wp_gallery_block_bkp_1234_20240131_101500",
            "content": "[gallery]",
        }


# -- CatalogClient ------------------------------------------------------------------

def test_catalog_headers():
    assert catalog_headers({"token": "abc"}) == {"Authorization": "Bearer abc"}
    assert catalog_headers({}) == {}


def test_catalog_gallery_lifecycle(monkeypatch):
    requests_made = []

    def fake_request(method, url, **kwargs):
        requests_made.append((method, url))
        if method == "POST" and url.endswith("/galleries"):
            return response(body={"gallery": {"id": 12, "title": kwargs["json"]["title"]}})
        if method == "POST" and url.endswith("/galleries/12/images"):
            return response(body={"image": {"id": 90, "gallery_id": 12, "filename": "a.jpg"}})
        if method == "GET" and url.endswith("/images/90"):
            return response(body={"image": {"id": 90, "gallery_id": 12, "filename": "a.jpg", "width": 640}})
        if method == "GET":
            return response(404)
        return response(body={})

    monkeypatch.setattr(catalog_client.requests, "request", fake_request)
    client = CatalogClient({"base_url": "https://catalog.example.com/api/", "token": "t"}, limiter=NoWait())

    gallery = client.create_gallery("Trip")
    assert (gallery.id, gallery.title) == (12, "Trip")
    assert client.upload_media(12, "a.jpg", b"data") == 90
    record = client.get_media(90)
    assert record.filename == "a.jpg"
    with pytest.raises(NotFoundError):
        client.get_media(91)

    gallery.preview_media_id = 90
    client.save_gallery(gallery)
    client.delete_gallery(12)
    assert ("PUT", "https://catalog.example.com/api/galleries/12") in requests_made
    assert requests_made[-1] == ("DELETE", "https://catalog.example.com/api/galleries/12")


def test_catalog_upload_failure_returns_none(monkeypatch):
    monkeypatch.setattr(catalog_client.requests, "request", lambda method, url, **kw: response(400))
    client = CatalogClient({"base_url": "https://catalog.example.com"}, limiter=NoWait())
    assert client.upload_media(1, "a.jpg", b"data") is None
