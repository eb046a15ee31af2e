# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Index identity resolution.

Logstash writes one index per day named <prefix>-YYYY.mm.dd. Backups
are grouped remotely by year-month (YYYY-mm) so a bucket stays
browsable. Both values are derived purely from the date.
"""

import re
from dataclasses import dataclass
from datetime import date as Date, datetime, timedelta

import structlog

from lsbackup.errors import explain_invalid_date
from lsbackup.exceptions import InvalidDateFormat

logger = structlog.get_logger()

DEFAULT_INDEX_PREFIX = "logstash"
DATE_FORMAT = "%Y.%m.%d"
ARCHIVE_SUFFIX = ".tgz"
SCRIPT_SUFFIX = "-restore.sh"

_DATE_RE = re.compile(r"^\d{4}\.\d{2}\.\d{2}$")


def is_valid_date(value: str) -> bool:
    """Check that value is a real calendar date written as YYYY.mm.dd."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class IndexIdentity:
    """Name and storage partition of one daily index."""

    name: str
    date_partition_key: str
    date: str

    @property
    def archive_filename(self) -> str:
        return f"{self.name}{ARCHIVE_SUFFIX}"

    @property
    def script_filename(self) -> str:
        return f"{self.name}{SCRIPT_SUFFIX}"


def partition_key_for(date: str) -> str:
    """YYYY.mm.dd -> YYYY-mm"""
    return date.replace(".", "-")[:7]


def resolve_identity(
    date: str | None = None,
    *,
    prefix: str = DEFAULT_INDEX_PREFIX,
    today: Date | None = None,
) -> IndexIdentity:
    """
    Resolve the index identity for an explicit date or for yesterday.

    Args:
        date: Date in YYYY.mm.dd form, or None for yesterday
        prefix: Index name prefix (default: logstash)
        today: Override for the local date, used when date is None

    Returns:
        IndexIdentity for the date

    Raises:
        InvalidDateFormat: If date is given but malformed
    """
    if date is None:
        reference = today or Date.today()
        date = (reference - timedelta(days=1)).strftime(DATE_FORMAT)
        logger.warning(
            "date_defaulted_to_yesterday",
            date=date,
            note="uses the local clock of this host, mind the timezone",
        )
    elif not is_valid_date(date):
        raise InvalidDateFormat(explain_invalid_date(date), details={"date": date})

    return IndexIdentity(
        name=f"{prefix}-{date}",
        date_partition_key=partition_key_for(date),
        date=date,
    )
