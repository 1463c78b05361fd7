"""Rewrites outbound records so stored names become fresh signed URLs."""

from collections.abc import Mapping
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from imagevault.services.upload.signing import CredentialGenerator

IMAGE_URL_FIELD = "image_url"
PROFILE_PICTURE_FIELD = "profile_picture_url"


def _get_field(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _replace_field(record: Any, field: str, value: str) -> Any:
    if isinstance(record, BaseModel):
        return record.model_copy(update={field: value})
    if isinstance(record, Mapping):
        return {**record, field: value}
    raise TypeError(f"Cannot rewrite {field} on {type(record).__name__}")


class DeliveryRewriter:
    """Swaps embedded storage names for signed URLs on every read.

    Signed URLs expire, so they are regenerated each time a record leaves
    the service and never cached. Records are copied, never mutated.
    """

    def __init__(self, signer: CredentialGenerator):
        self.signer = signer

    def rewrite_list(self, images: Optional[Iterable[Any]], expiry_minutes: Optional[int] = None) -> list:
        if not images:
            return []
        return [self._rewrite_field(image, IMAGE_URL_FIELD, expiry_minutes) for image in images]

    def rewrite_one(self, user: Any, expiry_minutes: Optional[int] = None) -> Any:
        if user is None:
            return None
        return self._rewrite_field(user, PROFILE_PICTURE_FIELD, expiry_minutes)

    def rewrite_url(self, value: Optional[str], expiry_minutes: Optional[int] = None) -> str:
        return self.signer.sign(value, expiry_minutes)

    def _rewrite_field(self, record: Any, field: str, expiry_minutes: Optional[int]) -> Any:
        # Missing or empty fields pass through untouched
        value = _get_field(record, field)
        if not value:
            return record
        return _replace_field(record, field, self.signer.sign(value, expiry_minutes))
