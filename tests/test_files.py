"""Tests for multipart uploads and file rules."""

from perch.app import create_app
from perch.routing.registry import define_route
from perch.testing import TestClient
from perch.validation import FileRule
from perch.validation.files import normalize_rules

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def describe_upload(ctx):
    upload = ctx.get_file("avatar")
    if upload is None:
        return {"file": None, "fields": ctx.body}
    return {
        "file": upload.filename,
        "size": upload.size,
        "type": upload.content_type,
        "content": (await upload.read()).decode("latin-1")[:4],
        "fields": ctx.body,
    }


class TestFileRule:
    def test_extensions_lowercased(self) -> None:
        rule = FileRule(extensions=[".PNG", ".Jpg"])
        assert rule.extensions == (".png", ".jpg")

    def test_normalize_field_list(self) -> None:
        assert normalize_rules(["a", "b"]) == {"a": FileRule(), "b": FileRule()}
        assert normalize_rules(None) == {}


class TestUploads:
    async def test_valid_upload_reaches_handler(self) -> None:
        define_route(
            "/avatar",
            describe_upload,
            method="POST",
            files={"avatar": FileRule(max_size=1024, mime_types=("image/png",), extensions=(".png",))},
        )
        async with TestClient(create_app()) as client:
            response = await client.post(
                "/avatar",
                data={"caption": "me"},
                files={"avatar": ("Me.PNG", PNG, "image/png")},
            )
            assert response.status == 200
            assert response.json == {
                "file": "Me.PNG",
                "size": len(PNG),
                "type": "image/png",
                "content": "\x89PNG",
                "fields": {"caption": "me"},
            }

    async def test_every_violation_reported(self) -> None:
        calls: list[int] = []

        def handler(ctx):
            calls.append(1)

        define_route(
            "/avatar",
            handler,
            method="POST",
            files={"avatar": FileRule(max_size=8, mime_types=("image/png",), extensions=(".png",))},
        )
        async with TestClient(create_app()) as client:
            response = await client.post(
                "/avatar", files={"avatar": ("notes.txt", b"0123456789", "text/plain")}
            )
            assert response.status == 400
            assert response.json == {
                "error": "Invalid file upload",
                "details": [
                    {"field": "avatar", "issue": "File too large", "maxSize": 8, "received": 10},
                    {
                        "field": "avatar",
                        "issue": "Invalid mimetype",
                        "expected": ["image/png"],
                        "received": "text/plain",
                    },
                    {
                        "field": "avatar",
                        "issue": "Invalid extension",
                        "expected": [".png"],
                        "received": ".txt",
                    },
                ],
            }
        assert calls == []

    async def test_missing_file_is_allowed(self) -> None:
        define_route(
            "/avatar",
            describe_upload,
            method="POST",
            files={"avatar": FileRule(max_size=1)},
        )
        async with TestClient(create_app()) as client:
            response = await client.post("/avatar", data={"caption": "none"})
            assert response.status == 200
            assert response.json == {"file": None, "fields": {"caption": "none"}}

    async def test_field_list_accepts_anything(self) -> None:
        define_route("/avatar", describe_upload, method="POST", files=["avatar"])
        async with TestClient(create_app()) as client:
            response = await client.post(
                "/avatar", files={"avatar": ("a.bin", b"\x00\x01", "application/octet-stream")}
            )
            assert response.status == 200
            assert response.json["size"] == 2
