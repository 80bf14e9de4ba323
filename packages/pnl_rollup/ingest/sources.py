"""Per-source field profiles.

Each integration names its columns differently. A :class:`SourceProfile` lists,
per canonical field, the candidate keys to try (in priority order) for rows
coming from that source:

- ``CSV``: user uploads; ``Description`` / ``Date`` / ``Amount`` headers.
  Upload columns named ``ID`` are often row numbers, so CSV and spreadsheet
  rows only carry a natural id when ``TransformConfig.id_keys`` names one.
- ``ACUITY``: scheduling appointments; ``type`` (appointment type name),
  ``datetime``, ``price`` (a currency string such as ``"$100.00"``) and the
  appointment ``id``.
- ``PLAID``: banking transactions; ``merchant_name`` falling back to ``name``,
  numeric ``amount`` and ``transaction_id``.
- ``GOOGLE_SHEETS``: spreadsheet rows; ``title`` / ``value`` in addition to the
  CSV-style headers.

Lookups are case-insensitive (see :func:`pnl_rollup.fields.resolve_field`), so
``Amount`` also matches ``amount`` and ``AMOUNT``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..models import SourceType, TransformConfig

DATA_TYPE_KEYS: tuple[str, ...] = ("dataType", "data_type")


@dataclass(frozen=True, slots=True)
class SourceProfile:
    source: SourceType
    name_keys: tuple[str, ...]
    date_keys: tuple[str, ...]
    amount_keys: tuple[str, ...]
    id_keys: tuple[str, ...] = ()


SOURCE_PROFILES: dict[SourceType, SourceProfile] = {
    SourceType.CSV: SourceProfile(
        source=SourceType.CSV,
        name_keys=("Description", "name"),
        date_keys=("Date", "date"),
        amount_keys=("Amount", "amount"),
    ),
    SourceType.ACUITY: SourceProfile(
        source=SourceType.ACUITY,
        name_keys=("type", "service", "name"),
        date_keys=("datetime", "date"),
        amount_keys=("price", "amountPaid", "amount"),
        id_keys=("id",),
    ),
    SourceType.PLAID: SourceProfile(
        source=SourceType.PLAID,
        name_keys=("merchant_name", "merchantName", "name", "description"),
        date_keys=("date", "authorized_date"),
        amount_keys=("amount",),
        id_keys=("transaction_id", "id"),
    ),
    SourceType.GOOGLE_SHEETS: SourceProfile(
        source=SourceType.GOOGLE_SHEETS,
        name_keys=("Description", "title", "name"),
        date_keys=("Date", "date"),
        amount_keys=("Amount", "value", "amount"),
    ),
}


def profile_for(source: SourceType, config: TransformConfig | None = None) -> SourceProfile:
    """Return the profile for ``source`` with any key overrides from ``config``."""

    profile = SOURCE_PROFILES[SourceType(source)]
    if config is None:
        return profile
    overrides = {
        name: value
        for name, value in (
            ("name_keys", config.name_keys),
            ("date_keys", config.date_keys),
            ("amount_keys", config.amount_keys),
            ("id_keys", config.id_keys),
        )
        if value
    }
    return replace(profile, **overrides) if overrides else profile


__all__ = ["DATA_TYPE_KEYS", "SourceProfile", "SOURCE_PROFILES", "profile_for"]
