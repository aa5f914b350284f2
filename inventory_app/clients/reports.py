"""
Plain-text inventory report.
"""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .. import schemas
from ..config import REPORT_DELAY_SECONDS
from ..stock import stock_status, summarize
from .notifications import Notifier

logger = logging.getLogger(__name__)

RULE = "=" * 50
THIN_RULE = "-" * 50


def render_report(items: Iterable[schemas.Product], username: str, now: datetime) -> str:
    """Render the report for ``items`` as generated by ``username`` at ``now``."""
    items = list(items)
    stats = summarize(items)
    lines = [
        "INVENTORY REPORT",
        RULE,
        f"Date: {now.strftime('%d/%m/%Y')}",
        f"Time: {now.strftime('%H:%M:%S')}",
        f"Generated by: {username}",
        RULE,
        "",
        "SUMMARY",
        THIN_RULE,
        f"Total products: {stats.products}",
        f"Total units: {stats.units}",
        f"Low stock products: {stats.alerts}",
        "",
        "PRODUCT DETAILS",
        RULE,
        "",
    ]
    for number, item in enumerate(items, start=1):
        lines += [
            f"{number}. {item.name}",
            f"   Category: {item.category}",
            f"   Quantity: {item.quantity} units",
            f"   Minimum stock: {item.min_stock}",
            f"   Status: {stock_status(item.quantity, item.min_stock).value.upper()}",
            "",
        ]
    lines += [
        RULE,
        "End of report",
        f"Generated by: {username}",
    ]
    return "\n".join(lines)


def report_filename(now: datetime) -> str:
    return f"inventory-report-{now.date().isoformat()}.txt"


async def generate_report(
    items: Iterable[schemas.Product],
    username: str,
    directory: Path,
    notifier: Notifier,
    delay: float = REPORT_DELAY_SECONDS,
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the report into ``directory`` after ``delay`` seconds.

    Returns:
        Path of the written report
    """
    await asyncio.sleep(delay)
    now = now or datetime.now()
    path = Path(directory) / report_filename(now)
    path.write_text(render_report(items, username, now), encoding="utf-8")
    logger.info(f"Report written to {path}")
    notifier.success("Report generated", path.name)
    return path
