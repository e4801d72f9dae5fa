"""
API tests through FastAPI's TestClient.

Each test builds its own app (and therefore its own store and tracker).
Most tests drive time with the fake clock; the end-to-end expiry scenario
uses the real clock and sleeps just over a second.
"""

import time
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from docrelay.config.settings import Settings
from docrelay.main import create_app

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PAYLOAD = bytes(range(256)) * 4  # 1024 bytes


def make_settings(**overrides) -> Settings:
    values = {
        "ttl_minutes": 10,
        "max_file_mb": 1,
        "public_base_url": "http://relay.local:3000",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app(clock):
    app = create_app(make_settings(), clock=clock)
    yield app
    app.state.object_store.close()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def upload(client: TestClient, payload: bytes = PAYLOAD, filename: str = "My Report (final).docx", **kwargs):
    return client.post(
        "/upload",
        files={"file": (filename, payload, "application/octet-stream")},
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Health and configuration
# ---------------------------------------------------------------------------

class TestHealthAndConfig:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["details"] == {"objects": 0}

    def test_config(self, client):
        response = client.get("/config")

        assert response.json() == {
            "PUBLIC_BASE_URL": "http://relay.local:3000",
            "TTL_MINUTES": 10,
            "MAX_FILE_MB": 1,
        }

    def test_lifespan_starts_and_stops_cleanly(self, clock):
        """Startup launches the sweeper; shutdown drops every object."""
        app = create_app(make_settings(), clock=clock)

        with TestClient(app) as client:
            assert upload(client).status_code == 200
            assert len(app.state.object_store) == 1

        assert len(app.state.object_store) == 0


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUpload:

    def test_upload_returns_urls_and_metadata(self, client, clock):
        response = upload(client)

        assert response.status_code == 200
        body = response.json()
        object_id = body["id"]
        assert body["filename"] == "My_Report_final.docx"
        assert body["fileUrl"] == f"http://relay.local:3000/f/{object_id}"
        assert body["viewerUrl"] == (
            "https://view.officeapps.live.com/op/embed.aspx?src="
            + quote(body["fileUrl"], safe="")
        )
        assert body["expiresAt"] == int((clock.now + 600) * 1000)

    def test_upload_infers_office_mime_type(self, client, app):
        object_id = upload(client).json()["id"]

        assert app.state.object_store.get(object_id).mime_type == DOCX

    def test_declared_mime_type_kept(self, client, app):
        response = client.post(
            "/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert app.state.object_store.get(response.json()["id"]).mime_type == "text/plain"

    def test_forwarded_headers_build_public_url(self, client):
        response = upload(
            client,
            headers={"x-forwarded-proto": "https", "host": "abc.tunnel.example"},
        )

        body = response.json()
        assert body["fileUrl"] == f"https://abc.tunnel.example/f/{body['id']}"

    def test_forwarded_proto_list_uses_first(self, client):
        response = upload(
            client,
            headers={"x-forwarded-proto": "https, http", "host": "abc.tunnel.example"},
        )

        assert response.json()["fileUrl"].startswith("https://abc.tunnel.example/f/")

    def test_upload_initializes_progress(self, client):
        object_id = upload(client).json()["id"]

        response = client.get(f"/progress/{object_id}")

        assert response.json() == {"size": 1024, "bytesSent": 0, "etaSec": None, "elapsed": 0.0}

    def test_missing_file_part(self, client):
        response = client.post("/upload", files={"other": ("x.txt", b"x", "text/plain")})

        assert response.status_code == 400
        assert response.json() == {"error": "file_required"}

    def test_empty_request(self, client):
        response = client.post("/upload")

        assert response.status_code == 400
        assert response.json() == {"error": "file_required"}

    def test_text_field_instead_of_file(self, client):
        response = client.post("/upload", data={"file": "not a file"})

        assert response.status_code == 400
        assert response.json() == {"error": "file_required"}

    def test_too_large(self, client, app):
        response = upload(client, payload=b"x" * (1024 * 1024 + 1))

        assert response.status_code == 413
        assert response.json() == {"error": "file_too_large", "maxMb": 1}
        assert len(app.state.object_store) == 0

    def test_unexpected_failure_is_internal_error(self, client, app, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("out of memory")

        monkeypatch.setattr(app.state.object_store, "put_object", boom)

        response = upload(client)

        assert response.status_code == 500
        assert response.json() == {"error": "internal_error"}


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------

class TestRetrieval:

    @pytest.fixture
    def object_id(self, client) -> str:
        return upload(client).json()["id"]

    def test_full_body(self, client, object_id):
        response = client.get(f"/f/{object_id}")

        assert response.status_code == 200
        assert response.content == PAYLOAD
        assert response.headers["content-length"] == "1024"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.headers["cache-control"] == "no-store"
        assert response.headers["content-type"] == DOCX
        assert response.headers["content-disposition"] == (
            "inline; filename=\"My_Report_final.docx\"; "
            "filename*=UTF-8''My_Report_final.docx"
        )

    def test_range(self, client, object_id):
        response = client.get(f"/f/{object_id}", headers={"Range": "bytes=10-19"})

        assert response.status_code == 206
        assert response.content == PAYLOAD[10:20]
        assert response.headers["content-range"] == "bytes 10-19/1024"
        assert response.headers["content-length"] == "10"

    def test_open_range(self, client, object_id):
        response = client.get(f"/f/{object_id}", headers={"Range": "bytes=0-"})

        assert response.status_code == 206
        assert response.content == PAYLOAD
        assert response.headers["content-range"] == "bytes 0-1023/1024"

    def test_malformed_range_serves_full_body(self, client, object_id):
        response = client.get(f"/f/{object_id}", headers={"Range": "bytes=-20"})

        assert response.status_code == 200
        assert response.content == PAYLOAD

    @pytest.mark.parametrize("header", ["bytes=5-2", "bytes=0-1024"])
    def test_unsatisfiable_range(self, client, object_id, header):
        response = client.get(f"/f/{object_id}", headers={"Range": header})

        assert response.status_code == 416
        assert response.json() == {"error": "range_not_satisfiable"}
        assert response.headers["content-range"] == "bytes */1024"

    def test_head_does_not_count_as_delivery(self, client, object_id):
        response = client.head(f"/f/{object_id}")

        assert response.status_code == 200
        assert response.headers["content-length"] == "1024"
        assert client.get(f"/progress/{object_id}").json()["bytesSent"] == 0

    def test_unknown_id(self, client):
        response = client.get("/f/0123456789abcdef0123456789abcdef")

        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}

    def test_expired_id_looks_like_unknown(self, client, object_id, clock):
        clock.advance(600)

        response = client.get(f"/f/{object_id}")

        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class TestProgress:

    def test_progress_sums_range_reads(self, client, clock):
        object_id = upload(client).json()["id"]

        client.get(f"/f/{object_id}", headers={"Range": "bytes=0-255"})
        clock.advance(2)
        client.get(f"/f/{object_id}", headers={"Range": "bytes=256-511"})

        body = client.get(f"/progress/{object_id}").json()
        # 512 bytes in 2 seconds leaves 512 bytes: 2 seconds
        assert body == {"size": 1024, "bytesSent": 512, "etaSec": 2, "elapsed": 2.0}

    def test_unknown_progress(self, client):
        response = client.get("/progress/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}

    def test_expired_without_prior_read(self, client, app, clock):
        """A poll after the TTL misses even if nothing has evicted the object yet."""
        object_id = upload(client).json()["id"]
        clock.advance(600)

        response = client.get(f"/progress/{object_id}")

        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}
        assert object_id not in app.state.object_store
        assert object_id not in app.state.transfer_tracker


# ---------------------------------------------------------------------------
# End-to-end expiry
# ---------------------------------------------------------------------------

class TestExpiryScenario:
    """Upload with a one second TTL, read it, wait, and find it gone."""

    def test_object_and_progress_disappear_after_ttl(self):
        app = create_app(make_settings(ttl_minutes=1 / 60))
        client = TestClient(app)
        try:
            object_id = upload(client).json()["id"]

            first = client.get(f"/f/{object_id}")
            assert first.status_code == 200
            assert first.headers["content-length"] == "1024"

            time.sleep(1.1)

            assert client.get(f"/f/{object_id}").status_code == 404
            assert client.get(f"/progress/{object_id}").status_code == 404
        finally:
            app.state.object_store.close()
