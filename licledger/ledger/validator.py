"""
License argument validation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from licledger.common.exceptions import InvalidDetails, InvalidLicenseId

if TYPE_CHECKING:
    from licledger.common.config import Config


class MetadataValidator:
    """Checks metadata bounds and license id shape before any state is touched."""

    def __init__(
        self,
        config: Config,
        min_length: int | None = None,
        max_length: int | None = None,
    ):
        self.config = config
        self.min_length = (
            min_length if min_length is not None else config.MIN_METADATA_LENGTH
        )
        self.max_length = (
            max_length if max_length is not None else config.MAX_METADATA_LENGTH
        )
        self.logger = logging.getLogger(__name__)

    def is_valid_metadata(self, metadata: object) -> bool:
        if not isinstance(metadata, str):
            return False
        return self.min_length <= len(metadata) <= self.max_length

    def validate_metadata(self, metadata: str) -> str:
        """Return metadata unchanged or raise InvalidDetails.

        Zero-length input is reported as InvalidDetails too; EmptyDetails
        is never raised from here.
        """
        if not self.is_valid_metadata(metadata):
            length = len(metadata) if isinstance(metadata, str) else None
            self.logger.debug("Rejected metadata of length %s", length)
            msg = (
                f"License details must be {self.min_length}..{self.max_length} "
                f"characters (got {length})"
            )
            raise InvalidDetails(msg)
        return metadata

    def batch_items(self, items: list[str]) -> list[str]:
        """Materialise a batch argument, refusing a bare string."""
        if isinstance(items, (str, bytes)):
            msg = "Batch must be a sequence of license details, not a string"
            raise InvalidDetails(msg)
        return list(items)

    def validate_batch(self, items: list[str]) -> list[str]:
        """Validate every item, failing on the first bad one."""
        items = self.batch_items(items)
        for index, item in enumerate(items):
            if not self.is_valid_metadata(item):
                msg = f"Batch item {index} has invalid license details"
                raise InvalidDetails(msg)
        return items

    def validate_license_id(self, license_id: int) -> int:
        # bool is an int subclass but never a license id
        if isinstance(license_id, bool) or not isinstance(license_id, int):
            msg = f"License id must be an integer, got {license_id!r}"
            raise InvalidLicenseId(msg)
        if license_id < 1:
            msg = f"License id must be positive, got {license_id}"
            raise InvalidLicenseId(msg)
        return license_id
