"""Merge a locally edited availability workbook into the remote one.

Rows are keyed by date: dates in the local file replace the remote rows,
other remote dates are kept.

Usage:
    STAYBOOK_STORE=github GITHUB_TOKEN=... uv run python -m staybook.operations.push_overrides availability.xlsx
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from staybook.infra.rows import AVAILABILITY_SCHEMA
from staybook.infra.xlsx_codec import XlsxCodec
from staybook.observability.logging import get_logger
from staybook.services.booking_engine import create_engine

logger = get_logger(__name__)


async def push(path: Path) -> bool:
    rows = XlsxCodec().decode(path.read_bytes())
    overrides = AVAILABILITY_SCHEMA.parse_rows(rows)
    engine = create_engine()
    result = await engine.push_overrides(overrides)
    logger.info(
        "overrides pushed" if result.ok else "overrides push failed",
        extra={
            "extra_fields": {
                "overrides": len(overrides),
                "attempts": result.attempts,
                "reason": result.reason,
            }
        },
    )
    return result.ok


def main() -> int:
    if len(sys.argv) < 2:
        sys.stderr.write(
            "Usage: python -m staybook.operations.push_overrides <availability.xlsx>\n"
        )
        return 2
    path = Path(sys.argv[1])
    if not path.exists():
        sys.stderr.write(f"ERROR: {path} not found\n")
        return 1
    return 0 if asyncio.run(push(path)) else 1


if __name__ == "__main__":
    raise SystemExit(main())
