"""Upload rules for multipart routes.

Declare per-field limits on a route::

    define_route(
        "/avatar",
        upload_avatar,
        method="POST",
        files={"avatar": FileRule(max_size=1_000_000, mime_types=("image/png",))},
    )

Only the first file uploaded under each field is checked. A missing
file is not an error; require it in the handler if it matters.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from perch.http.forms import UploadFile
from perch.http.response import Response, json_response


@dataclass(frozen=True, slots=True)
class FileRule:
    """Constraints for one upload field. ``None`` means unchecked.

    Extensions include the dot and are compared case-insensitively.
    """

    max_size: int | None = None
    mime_types: tuple[str, ...] | None = None
    extensions: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.mime_types is not None:
            object.__setattr__(self, "mime_types", tuple(self.mime_types))
        if self.extensions is not None:
            object.__setattr__(self, "extensions", tuple(e.lower() for e in self.extensions))


def normalize_rules(files: Any) -> dict[str, FileRule]:
    """Rules for a route's ``files`` option; bare field names get no constraints."""
    if files is None:
        return {}
    if isinstance(files, Mapping):
        return dict(files)
    return {name: FileRule() for name in files}


def check_file(field: str, upload: UploadFile, rule: FileRule) -> list[dict[str, Any]]:
    """Every violation of *rule* by *upload*."""
    problems: list[dict[str, Any]] = []
    if rule.max_size is not None and upload.size > rule.max_size:
        problems.append(
            {"field": field, "issue": "File too large", "maxSize": rule.max_size, "received": upload.size}
        )
    if rule.mime_types is not None and upload.content_type not in rule.mime_types:
        problems.append(
            {
                "field": field,
                "issue": "Invalid mimetype",
                "expected": list(rule.mime_types),
                "received": upload.content_type,
            }
        )
    if rule.extensions is not None and upload.extension not in rule.extensions:
        problems.append(
            {
                "field": field,
                "issue": "Invalid extension",
                "expected": list(rule.extensions),
                "received": upload.extension,
            }
        )
    return problems


def check_uploads(
    rules: Mapping[str, FileRule], files: Mapping[str, list[UploadFile]]
) -> Response | None:
    """Check every ruled field; ``None`` when all uploads pass.

    Violations across all fields are reported together with status 400.
    """
    problems: list[dict[str, Any]] = []
    for field, rule in rules.items():
        uploaded = files.get(field)
        if not uploaded:
            continue
        problems.extend(check_file(field, uploaded[0], rule))
    if problems:
        return json_response({"error": "Invalid file upload", "details": problems}, status=400)
    return None
