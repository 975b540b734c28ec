"""
HTTP tests for the catalog file routes (api/routes/files.py, api/routes/catalog.py).
"""

import io
import zipfile

from PIL import Image

from api.services.file_listing import StorageConfigError, get_file_service


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (10, 10), "white").save(buffer, format="PNG")
    return buffer.getvalue()


class TestListing:

    def test_listing_shape(self, client, storage):
        storage.add("public/files/A/x.jpg", "public/files/A/B/y.jpg")

        response = client.get("/api/files", params={"dir": "A"})

        assert response.status_code == 200
        body = response.json()
        assert [c["name"] for c in body["categories"]] == ["B"]
        assert body["images"][0]["code"] == "x"
        assert body["pagination"] == {"total": 1, "page": 1, "limit": 50, "totalPages": 1}

    def test_all_flag(self, client, storage):
        for i in range(3):
            storage.add(f"public/files/c{i}/.folder")

        body = client.get("/api/files", params={"limit": 1, "all": "true"}).json()

        assert len(body["categories"]) == 3

    def test_invalid_directory(self, client):
        response = client.get("/api/files", params={"dir": "../etc"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid name"

    def test_public_catalog_needs_no_session(self, client, storage):
        storage.add("public/files/Café/a.jpg")

        response = client.get("/api/public-catalog", params={"search": "cafe"})

        assert response.status_code == 200
        assert [c["name"] for c in response.json()["categories"]] == ["Café"]

    def test_non_integer_page(self, client):
        response = client.get("/api/files", params={"page": "abc"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["message"].startswith("page:")

    def test_storage_not_configured(self, client, app):
        def unconfigured():
            raise StorageConfigError("GCS_BUCKET not configured")

        app.dependency_overrides[get_file_service] = unconfigured

        response = client.get("/api/files")

        assert response.status_code == 500
        assert response.json() == {"error": "Storage not configured", "message": "GCS_BUCKET not configured"}


class TestMutations:

    def test_mutation_requires_session(self, client, storage):
        response = client.post("/api/files", data={"action": "createFolder", "folderName": "New"})

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}
        assert storage.objects == {}

    def test_invalid_token(self, client):
        response = client.post(
            "/api/files",
            data={"action": "createFolder", "folderName": "New"},
            headers={"Authorization": "Bearer forged"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_create_folder_then_listing_shows_it(self, client, storage, admin_headers):
        storage.add("public/files/D/Old/a.jpg")
        client.get("/api/files", params={"dir": "D"})

        response = client.post(
            "/api/files",
            data={"action": "createFolder", "dir": "D", "folderName": "New"},
            headers=admin_headers,
        )
        listing = client.get("/api/files", params={"dir": "D"}).json()

        assert response.status_code == 200
        assert response.json() == {"message": "Folder 'New' created"}
        assert [c["name"] for c in listing["categories"]] == ["New", "Old"]

    def test_create_existing_folder(self, client, storage, admin_headers):
        storage.add("public/files/A/x.jpg")

        response = client.post(
            "/api/files",
            data={"action": "createFolder", "folderName": "A"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Item already exists"

    def test_upload(self, client, storage, admin_headers):
        response = client.post(
            "/api/files",
            data={"action": "upload", "dir": "A"},
            files={"file": ("pic.png", _png_bytes(), "image/png")},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert "public/files/A/pic.png" in storage.objects

    def test_upload_without_file(self, client, admin_headers):
        response = client.post("/api/files", data={"action": "upload"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file"

    def test_rename_folder(self, client, storage, admin_headers):
        storage.add("public/files/Old/a.jpg")

        response = client.post(
            "/api/files",
            data={"action": "renameFolder", "oldName": "Old", "newName": "New"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert list(storage.objects) == ["public/files/New/a.jpg"]

    def test_missing_action(self, client, admin_headers):
        response = client.post("/api/files", data={"dir": ""}, headers=admin_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert "action" in body["message"]

    def test_unknown_action(self, client, admin_headers):
        response = client.post("/api/files", data={"action": "explode"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action"

    def test_delete_with_cookie_session(self, client, storage, admin_headers):
        storage.add("public/files/A/x.jpg")
        client.cookies.set("auth_token", admin_headers["Authorization"].split(" ", 1)[1])

        response = client.delete("/api/files", params={"dir": "A", "path": "x.jpg"})

        assert response.status_code == 200
        assert storage.objects == {}

    def test_delete_missing(self, client, admin_headers):
        response = client.delete("/api/files", params={"path": "ghost"}, headers=admin_headers)

        assert response.status_code == 404


class TestImageLookup:

    def test_missing_code(self, client):
        response = client.get("/api/images")

        assert response.status_code == 400

    def test_not_found(self, client, storage):
        storage.add("public/files/A/AA-001.jpg")

        response = client.get("/api/images", params={"code": "ZZ"})

        assert response.status_code == 404
        assert response.json()["error"] == "Image not found"

    def test_found(self, client, storage):
        storage.add("public/files/A/AA-001.jpg")

        response = client.get("/api/images", params={"code": "AA-001.jpg"})

        assert response.status_code == 200
        assert response.json()["path"] == "A/AA-001.jpg"


class TestDownload:

    def test_zip_with_collision_headers(self, client, storage):
        storage.add("public/files/A/AA-001.jpg", data=b"first")
        storage.add("public/files/B/AA-001.jpg", data=b"second")
        storage.add("public/files/B/AA-002.jpg", data=b"other")

        response = client.post(
            "/api/download",
            json={
                "selectedImages": ["AA-001", "AA-002"],
                "customerName": "Maria",
                "orderNumber": "123",
                "date": "2024-05-17T10:00:00Z",
            },
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["x-found-files"] == "2"
        assert response.headers["x-filename-collisions"] == "public/files/B/AA-001.jpg"
        assert "2024-05-17_Maria_123.zip" in response.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
            assert zf.read("2024-05-17_Maria_123/AA-001.jpg") == b"first"

    def test_missing_codes_header(self, client, storage):
        storage.add("public/files/A/AA-001.jpg")

        response = client.post(
            "/api/download",
            json={"selectedImages": ["AA-001", "ZZ-9", "ZZ-10"], "customerName": "Maria", "orderNumber": "1"},
        )

        assert response.headers["x-found-files"] == "1"
        assert response.headers["x-missing-codes"] == "ZZ-9,ZZ-10"
        assert "x-filename-collisions" not in response.headers

    def test_requires_images(self, client):
        response = client.post(
            "/api/download",
            json={"selectedImages": [], "customerName": "Maria", "orderNumber": "1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestDebug:

    def test_reports_both_caches(self, client, storage, listing_cache, url_cache, admin_headers, monkeypatch):
        monkeypatch.setattr("api.services.file_listing._listing_cache", listing_cache)
        monkeypatch.setattr("api.services.file_listing._signed_url_cache", url_cache)
        monkeypatch.delenv("USE_LOCAL_DB", raising=False)
        monkeypatch.delenv("DB_HOST", raising=False)
        storage.add("public/files/A/x.jpg", "public/files/A/y.jpg")
        client.get("/api/files", params={"dir": "A"})

        response = client.get("/api/debug", headers=admin_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["listing_cache"] == {"entries": 1}
        assert body["signed_url_cache"] == {"entries": 2}
        assert body["database"]["connected"] is False

    def test_requires_session(self, client):
        assert client.get("/api/debug").status_code == 401
