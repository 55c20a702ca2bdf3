"""Assemble the final property set handed to the management API."""

from collections.abc import Mapping
from datetime import UTC, datetime

from idpflows.logging_config import format_utc_timestamp


def build_property_batch(
    resolved: Mapping[str, str],
    extras: Mapping[str, str] | None = None,
    *,
    timestamp_key: str | None = None,
    stamp_when_empty: bool = False,
    now: datetime | None = None,
) -> dict[str, str] | None:
    """Merge resolved properties with extras and an optional sync timestamp.

    Empty extras values are dropped. Returns None when there is nothing to
    write: the merged set is empty and ``stamp_when_empty`` is off, or no
    timestamp key is configured either.
    """
    batch = dict(resolved)
    if extras:
        batch.update({key: value for key, value in extras.items() if value})

    if not batch and not stamp_when_empty:
        return None

    if timestamp_key:
        batch[timestamp_key] = format_utc_timestamp(now or datetime.now(UTC))

    return batch or None
