"""Google Sheets Sync Service.

WHAT:
    Upserts a batch of ad records into one tab of a spreadsheet. Rows are
    matched by ad NAME (column A):
        - known name  -> row is updated in place
        - new name    -> row is appended
    Reach, impressions, clicks and spend are ADDED to what the row already
    holds. Status, CPC, CTR, image and timestamp are overwritten.

FLOW (strictly sequential, the index depends on the read):
    1. ensure the tab exists (created with a header row if missing)
    2. read all data rows once and index them by name
    3. plan: compute every candidate row
    4. one batched update for matched rows, THEN one append for new rows
       (update ranges are computed from the pre-append row positions)

NOT TRANSACTIONAL:
    If the update succeeds and the append fails, the sheet keeps the
    updates. Nothing is rolled back.

KNOWN LIMITATION:
    Two different ads sharing a display name are merged into one row.
    Duplicate names already in the sheet: the first row wins, later ones are
    left untouched.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from ..utils.numbers import parse_number
from .sheets_client import SheetsClient, a1_range

logger = logging.getLogger(__name__)

HEADERS = [
    "Ad Name",
    "Status",
    "Reach",
    "Impressions",
    "Clicks",
    "CPC",
    "CTR",
    "Spend",
    "Image URL",
    "Account ID",
    "Last Synced",
]

COL_NAME = 0
COL_STATUS = 1
COL_REACH = 2
COL_IMPRESSIONS = 3
COL_CLICKS = 4
COL_CPC = 5
COL_CTR = 6
COL_SPEND = 7
COL_IMAGE = 8
COL_ACCOUNT = 9
COL_SYNCED_AT = 10

LAST_COLUMN = "K"
FIRST_DATA_ROW = 2

UNNAMED_AD = "Unnamed ad"
UNKNOWN_STATUS = "UNKNOWN"


@dataclass
class RowUpdate:
    """A targeted rewrite of one existing sheet row (1-based row number)."""

    row_number: int
    values: List[Any]


@dataclass
class UpsertPlan:
    updates: List[RowUpdate] = field(default_factory=list)
    appends: List[List[Any]] = field(default_factory=list)


@dataclass
class SheetSyncResult:
    updated: int = 0
    added: int = 0
    tab_created: bool = False
    total_reach: int = 0
    total_spend: float = 0.0

    @property
    def details(self) -> str:
        return f"Reach: {self.total_reach:,} | Spend: ${self.total_spend:,.2f}"


def record_name(record: Mapping[str, Any]) -> str:
    name = record.get("ad_name")
    if name is None or str(name).strip() == "":
        return UNNAMED_AD
    return str(name).strip()


def build_name_index(rows: Sequence[Sequence[Any]]) -> Dict[str, int]:
    """Map ad name -> position in rows. First occurrence wins, blank names are skipped."""
    index: Dict[str, int] = {}
    for position, row in enumerate(rows):
        if not row:
            continue
        name = str(row[COL_NAME]).strip()
        if name and name not in index:
            index[name] = position
    return index


def _cell(row: Optional[Sequence[Any]], column: int) -> Any:
    if row is None or column >= len(row):
        return None
    return row[column]


def merge_row(
    existing: Optional[Sequence[Any]],
    record: Mapping[str, Any],
    account_id: Optional[str],
    synced_at: str,
) -> List[Any]:
    """Return the row that results from applying `record` on top of `existing`.

    `existing` is None for a brand-new name, in which case the accumulated
    columns start from 0.
    """
    reach = parse_number(_cell(existing, COL_REACH)) + parse_number(record.get("reach"))
    impressions = parse_number(_cell(existing, COL_IMPRESSIONS)) + parse_number(record.get("impressions"))
    clicks = parse_number(_cell(existing, COL_CLICKS)) + parse_number(record.get("clicks"))
    spend = parse_number(_cell(existing, COL_SPEND)) + parse_number(record.get("spend"))

    status = record.get("effective_status") or record.get("status") or UNKNOWN_STATUS
    image_url = record.get("image_url") or _cell(existing, COL_IMAGE) or ""
    account = account_id or _cell(existing, COL_ACCOUNT) or ""

    return [
        record_name(record),
        status,
        int(reach),
        int(impressions),
        int(clicks),
        round(parse_number(record.get("cpc")), 2),
        round(parse_number(record.get("ctr")), 2),
        round(spend, 2),
        image_url,
        account,
        synced_at,
    ]


def plan_upsert(
    existing_rows: Sequence[Sequence[Any]],
    records: Sequence[Mapping[str, Any]],
    account_id: Optional[str],
    synced_at: str,
) -> UpsertPlan:
    """Decide, per record, between updating an existing row and appending a new one.

    Records repeating a name within the same batch fold into the same
    candidate row, so one sync never produces two rows for one name.
    """
    index = build_name_index(existing_rows)

    updates: Dict[int, List[Any]] = {}
    appends: Dict[str, List[Any]] = {}

    for record in records:
        name = record_name(record)
        if name in index:
            position = index[name]
            base = updates.get(position, existing_rows[position])
            updates[position] = merge_row(base, record, account_id, synced_at)
        else:
            appends[name] = merge_row(appends.get(name), record, account_id, synced_at)

    return UpsertPlan(
        updates=[
            RowUpdate(row_number=position + FIRST_DATA_ROW, values=values)
            for position, values in updates.items()
        ],
        appends=list(appends.values()),
    )


def sync_timestamp(timezone: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(ZoneInfo(timezone))
    return now.strftime("%Y-%m-%d %H:%M:%S")


def sync_ads_to_sheet(
    client: SheetsClient,
    spreadsheet_id: str,
    records: Sequence[Mapping[str, Any]],
    tab: str,
    account_id: Optional[str] = None,
    timezone: str = "UTC",
) -> SheetSyncResult:
    """Upsert `records` into `tab`. See module docstring for semantics.

    Raises:
        SheetsClientError: on any Sheets API failure. Writes already made
        are kept.
    """
    result = SheetSyncResult()
    result.tab_created = client.ensure_tab(spreadsheet_id, tab, HEADERS)

    existing_rows = client.read_rows(
        spreadsheet_id, a1_range(tab, f"A{FIRST_DATA_ROW}:{LAST_COLUMN}")
    )
    plan = plan_upsert(existing_rows, records, account_id, sync_timestamp(timezone))

    logger.info(
        "[SHEETS_SYNC] '%s': %d existing rows, %d updates, %d appends",
        tab,
        len(existing_rows),
        len(plan.updates),
        len(plan.appends),
    )

    if plan.updates:
        client.batch_update(
            spreadsheet_id,
            [
                {
                    "range": a1_range(tab, f"A{update.row_number}:{LAST_COLUMN}{update.row_number}"),
                    "values": [update.values],
                }
                for update in plan.updates
            ],
        )
        result.updated = len(plan.updates)

    if plan.appends:
        client.append_rows(spreadsheet_id, a1_range(tab, f"A1:{LAST_COLUMN}"), plan.appends)
        result.added = len(plan.appends)

    result.total_reach = int(sum(parse_number(record.get("reach")) for record in records))
    result.total_spend = round(sum(parse_number(record.get("spend")) for record in records), 2)
    return result
