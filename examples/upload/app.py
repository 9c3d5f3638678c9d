"""Upload: multipart avatars with size, type and extension rules.

Run:
    cd examples/upload && python app.py

Try:
    curl -F 'avatar=@me.png;type=image/png' -F 'caption=hi' localhost:8000/avatars
"""

from perch import FileRule, bad_request, create_app, define_route

AVATAR = FileRule(
    max_size=256 * 1024,
    mime_types=("image/png", "image/jpeg"),
    extensions=(".png", ".jpg", ".jpeg"),
)

_avatars: dict[str, bytes] = {}


async def upload_avatar(ctx):
    upload = ctx.get_file("avatar")
    if upload is None:
        return bad_request("Attach a file in the 'avatar' field")
    _avatars[upload.filename] = await upload.read()
    return {
        "filename": upload.filename,
        "size": upload.size,
        "caption": ctx.body.get("caption", ""),
    }


define_route("/avatars", upload_avatar, method="POST", files={"avatar": AVATAR})
define_route("/avatars", lambda ctx: sorted(_avatars))

app = create_app()


if __name__ == "__main__":
    app.run()
