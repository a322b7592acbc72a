"""Tests for the Supabase Storage client over a mocked transport."""

from datetime import datetime, timezone

import httpx
import pytest

from campus_care.core.errors import BackendUnavailableError, StorageUnavailableError
from campus_care.stores import SupabaseStorage, build_object_path

SUPABASE_URL = "https://project.supabase.co"


def make_storage(handler) -> SupabaseStorage:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseStorage(SUPABASE_URL, "anon-key", "report123", client=client)


class TestObjectPath:
    def test_path_uses_reporter_and_millis(self):
        now = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

        path = build_object_path("student-1", "pothole.jpg", now)

        assert path == f"reports/student-1/{int(now.timestamp() * 1000)}_pothole.jpg"

    def test_missing_reporter_and_unsafe_name(self):
        now = datetime(2025, 3, 10, tzinfo=timezone.utc)

        path = build_object_path(None, "../my photo (1).png", now)

        assert path.startswith("reports/anonymous/")
        assert path.endswith("_my_photo_1_.png")
        assert ".." not in path


class TestUpload:
    async def test_upload_returns_public_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["type"] = request.headers["Content-Type"]
            return httpx.Response(200, json={"Key": "report123/reports/a.jpg"})

        storage = make_storage(handler)
        url = await storage.upload("reports/a.jpg", b"jpeg-bytes", "image/jpeg")

        assert url == f"{SUPABASE_URL}/storage/v1/object/public/report123/reports/a.jpg"
        assert seen["url"] == f"{SUPABASE_URL}/storage/v1/object/report123/reports/a.jpg"
        assert seen["auth"] == "Bearer anon-key"
        assert seen["type"] == "image/jpeg"

    async def test_bucket_not_found_body_is_storage_unavailable(self):
        def handler(request):
            return httpx.Response(400, json={"statusCode": "404", "error": "Bucket not found", "message": "Bucket not found"})

        with pytest.raises(StorageUnavailableError):
            await make_storage(handler).upload("reports/a.jpg", b"x")

    async def test_other_failures_are_generic(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Internal"})

        with pytest.raises(BackendUnavailableError):
            await make_storage(handler).upload("reports/a.jpg", b"x")


class TestBucketCheck:
    async def test_bucket_exists(self):
        def handler(request):
            assert request.url.path == "/storage/v1/bucket"
            return httpx.Response(200, json=[{"id": "report123", "name": "report123"}])

        assert await make_storage(handler).bucket_exists() is True

    async def test_bucket_missing(self):
        def handler(request):
            return httpx.Response(200, json=[{"id": "avatars", "name": "avatars"}])

        assert await make_storage(handler).bucket_exists() is False

    async def test_remove_swallows_failures(self):
        def handler(request):
            return httpx.Response(500)

        await make_storage(handler).remove(["reports/a.jpg"])
