"""Translate an inbound upload into the multipart parts sent to the vectorizer."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from starlette.datastructures import FormData, UploadFile

from vectorizer_proxy.errors import MissingImage

IMAGE_FIELD = "image"

# Forwarded verbatim when present; everything else in the form is dropped.
OPTION_FIELDS = (
    "mode",
    "processing.max_colors",
    "output.group_by_color",
    "output.illustrator_compatibility",
    "policy.retention_days",
)


@dataclass(frozen=True)
class UploadRequest:
    content: bytes
    filename: str
    content_type: str
    fields: Mapping[str, str] = field(default_factory=dict)


def processing_options(fields: Mapping[str, str]) -> dict[str, str]:
    return {key: str(fields[key]) for key in OPTION_FIELDS if fields.get(key)}


def build_upstream_parts(upload: UploadRequest) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
    files = {IMAGE_FIELD: (upload.filename, upload.content, upload.content_type)}
    return processing_options(upload.fields), files


def image_from_form(form: FormData) -> UploadFile:
    image = form.get(IMAGE_FIELD)
    if not isinstance(image, UploadFile):
        raise MissingImage("No image file provided")
    return image


def text_fields(form: FormData) -> dict[str, str]:
    return {key: value for key, value in form.multi_items() if isinstance(value, str)}
