"""
Ledger blob encoding.

The blob is a JSON array of records using the dashboard's camelCase keys.
Amounts are written as strings so Decimal values survive the round trip
unchanged. Derived balances are written too, but only as a cache.
"""

import json
from collections.abc import Iterable

from pydantic import ValidationError

from community_fund.models.record import PeriodRecord, RecordDraft
from community_fund.services.storage.interface import BlobFormatError


def records_to_blob(records: Iterable[PeriodRecord]) -> str:
    """Serialize records (normally the reconciled, ordered list)."""
    payload = [
        record.model_dump(mode="json", by_alias=True, exclude_none=True)
        for record in records
    ]
    return json.dumps(payload, ensure_ascii=False, indent=2)


def blob_to_drafts(text: str) -> list[RecordDraft]:
    """
    Parse a stored blob into drafts for RecordStore.load.

    Raises:
        BlobFormatError: If the text is not a JSON array of record objects
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise BlobFormatError(f"Stored ledger is not valid JSON: {e}") from e

    if not isinstance(payload, list):
        raise BlobFormatError(
            f"Stored ledger must be a JSON array, got {type(payload).__name__}"
        )

    drafts = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise BlobFormatError(f"Stored record {index} is not an object")
        try:
            drafts.append(RecordDraft.model_validate(item))
        except ValidationError as e:
            raise BlobFormatError(f"Stored record {index} is malformed: {e}") from e

    return drafts
