"""Tests for the upload example."""

from perch.testing import TestClient, assert_error

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestUpload:
    async def test_accepts_png(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post(
                "/avatars",
                data={"caption": "me"},
                files={"avatar": ("me.png", PNG, "image/png")},
            )
            assert response.json == {"filename": "me.png", "size": len(PNG), "caption": "me"}
            assert (await client.get("/avatars")).json == ["me.png"]

    async def test_rejects_wrong_type(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post(
                "/avatars", files={"avatar": ("me.gif", b"GIF89a", "image/gif")}
            )
            assert response.status == 400
            assert response.json["error"] == "Invalid file upload"
            assert [d["issue"] for d in response.json["details"]] == [
                "Invalid mimetype",
                "Invalid extension",
            ]

    async def test_missing_file(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post("/avatars", data={"caption": "nothing"})
            assert_error(response, 400, "BAD_REQUEST")
