"""
Date range handling for export requests and uploaded filenames.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

# Format for the startDate/endDate query parameters
DOWNLOAD_DATE_FORMAT = "%m%d%Y"
# Format for uploaded filenames
UPLOAD_DATE_FORMAT = "%Y%m%d"


def yesterday() -> date:
    """Yesterday's date in UTC."""
    return datetime.now(timezone.utc).date() - timedelta(days=1)


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive range of days to export.

    date_from <= date_to is the caller's responsibility and is not checked.
    """
    date_from: date
    date_to: date

    @classmethod
    def from_dates(
        cls,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> "DateRange":
        """Build a range, defaulting each missing end to yesterday (UTC)."""
        return cls(
            date_from=date_from or yesterday(),
            date_to=date_to or yesterday(),
        )

    @property
    def is_single_day(self) -> bool:
        return self.date_from == self.date_to

    def download_params(self) -> dict:
        """startDate/endDate query parameters for the export service."""
        return {
            "startDate": self.date_from.strftime(DOWNLOAD_DATE_FORMAT),
            "endDate": self.date_to.strftime(DOWNLOAD_DATE_FORMAT),
        }

    def label(self) -> str:
        """Human readable range used in progress and notification messages."""
        params = self.download_params()
        return f"{params['startDate']}-{params['endDate']}"

    def filename(self, extension: str = "") -> str:
        """
        Name of the uploaded file.

        `YYYYMMDD` for a single day, `YYYYMMDD-YYYYMMDD` otherwise,
        followed by the extension as given (e.g. ".csv").
        """
        name = self.date_from.strftime(UPLOAD_DATE_FORMAT)
        if not self.is_single_day:
            name = f"{name}-{self.date_to.strftime(UPLOAD_DATE_FORMAT)}"
        return name + extension
