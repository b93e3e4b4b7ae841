"""
Student roster fetching and parsing.

The roster is a published spreadsheet CSV: name, email, fee per hour. The
first row is a header.
"""

import csv
import io
import logging
import math

import httpx

from core.errors import ParseError
from core.http_client import fetch_text
from models.events import RosterEntry

logger = logging.getLogger(__name__)

NAME_COL = 0
EMAIL_COL = 1
FEE_COL = 2


async def fetch_roster(client: httpx.AsyncClient, csv_url: str) -> dict[str, RosterEntry]:
    """
    Fetch and parse the roster sheet.

    Raises:
        NetworkError: sheet could not be downloaded
        ParseError: sheet is not readable as CSV
    """
    csv_text = await fetch_text(client, csv_url)
    return parse_roster(csv_text)


def parse_roster(csv_text: str) -> dict[str, RosterEntry]:
    """Parse roster CSV into {email: RosterEntry}. Later duplicates win."""
    roster: dict[str, RosterEntry] = {}
    reader = csv.reader(io.StringIO(csv_text.strip()))

    try:
        next(reader, None)  # header

        skipped = 0
        for row in reader:
            parsed = parse_roster_row(row)
            if parsed is None:
                skipped += 1
                continue
            email, entry = parsed
            roster[email] = entry
    except csv.Error as e:
        raise ParseError(f"Roster is not valid CSV: {e}") from e

    if skipped:
        logger.debug("Skipped %d unusable roster rows", skipped)
    return roster


def parse_roster_row(row: list[str]) -> tuple[str, RosterEntry] | None:
    """Parse one data row, or None when it is incomplete or the fee is not a number."""
    if len(row) <= FEE_COL:
        return None

    name = row[NAME_COL].strip()
    email = row[EMAIL_COL].strip().lower()
    fee_str = row[FEE_COL].strip()
    if not (name and email and fee_str):
        return None

    try:
        fee = float(fee_str)
    except ValueError:
        return None
    if not math.isfinite(fee) or fee < 0:
        return None

    return email, RosterEntry(display_name=name, hourly_fee=fee)
