"""CSV import of distance tiers."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

from fleet_payroll.calculators.distance_resolver import TIER_CEILING_KM, TIER_FLOOR_KM
from fleet_payroll.calculators.types import DistanceTierEntry
from fleet_payroll.exceptions import TariffValidationError
from fleet_payroll.services.tariff_store import TariffStore, parse_tier_amount

logger = logging.getLogger(__name__)

KM_COLUMN = "km"
AMOUNT_COLUMNS = ("importo_base", "base_amount")

TEMPLATE_ROWS = [
    (12, "15.00"),
    (15, "18.00"),
    (20, "20.00"),
    (25, "22.50"),
    (30, "25.00"),
]


def template_csv() -> str:
    """Downloadable template for the tier import."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([KM_COLUMN, AMOUNT_COLUMNS[0]])
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()


def _detect_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;").delimiter
    except csv.Error:
        return ","


def parse_tariff_csv(content: str) -> list[tuple[int, str]]:
    """Parse and validate CSV text into (km, amount) rows.

    Args:
        content: CSV text with a header row containing ``km`` and
            ``importo_base`` (or ``base_amount``)

    Returns:
        List of (km, amount text) pairs, in file order

    Raises:
        TariffValidationError: With one message per rejected row (or a
            single structural message for a missing header or empty file)
    """
    content = content.lstrip("\ufeff")
    if not content.strip():
        raise TariffValidationError(["File is empty"])

    delimiter = _detect_delimiter(content[:1024])
    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)

    columns = [c.strip().lower() for c in (reader.fieldnames or [])]
    reader.fieldnames = columns
    amount_column = next((c for c in AMOUNT_COLUMNS if c in columns), None)
    missing = []
    if KM_COLUMN not in columns:
        missing.append(KM_COLUMN)
    if amount_column is None:
        missing.append(AMOUNT_COLUMNS[0])
    if missing:
        raise TariffValidationError([f"Missing required columns: {', '.join(missing)}"])

    errors: list[str] = []
    rows: list[tuple[int, str]] = []
    seen: dict[int, int] = {}

    # Start at 2 (header is row 1)
    for row_num, row in enumerate(reader, start=2):
        raw_km = (row.get(KM_COLUMN) or "").strip()
        raw_amount = (row.get(amount_column) or "").strip()
        if not raw_km and not raw_amount:
            continue
        if delimiter == ";":
            raw_amount = raw_amount.replace(",", ".")

        try:
            km = int(raw_km)
        except ValueError:
            errors.append(f"Row {row_num}: km '{raw_km}' is not an integer")
            continue
        if not TIER_FLOOR_KM <= km <= TIER_CEILING_KM:
            errors.append(
                f"Row {row_num}: km {km} outside {TIER_FLOOR_KM}-{TIER_CEILING_KM}"
            )
            continue

        try:
            parse_tier_amount(raw_amount)
        except ValueError as e:
            errors.append(f"Row {row_num}: {e}")
            continue

        if km in seen:
            errors.append(f"Row {row_num}: duplicate km {km} (first seen on row {seen[km]})")
            continue
        seen[km] = row_num
        rows.append((km, raw_amount))

    if errors:
        raise TariffValidationError(errors)
    if not rows:
        raise TariffValidationError(["No tariff rows found in file"])
    return rows


class TariffCsvImporter:
    """Applies a CSV tier file to one year through the tariff store."""

    def __init__(self, tariff_store: TariffStore):
        self.tariff_store = tariff_store

    async def import_csv(self, content: str, year: int) -> dict[str, Any]:
        """Replace the year's tiers with the file content.

        Returns:
            Dict with import statistics:
            - year: the target year
            - imported: number of tiers installed
            - tiers: the installed entries

        Raises:
            TariffValidationError: If any row is invalid; nothing is applied.
        """
        rows = parse_tariff_csv(content)
        entries: list[DistanceTierEntry] = await self.tariff_store.replace_tiers(year, rows)
        logger.info("Imported %d tiers for %s from CSV", len(entries), year)
        return {"year": year, "imported": len(entries), "tiers": entries}
