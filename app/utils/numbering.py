# app/utils/numbering.py

import random
import secrets
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


def _today() -> datetime:
    return datetime.now(timezone.utc)


# =====================================================
# MONTHLY SEQUENCE (PO-YYYYMM-NNN / SO-YYYYMM-NNN)
# =====================================================
async def next_monthly_number(db: AsyncSession, column, prefix: str, now: datetime | None = None) -> str:
    """Next number in the month, one past the month's highest existing suffix."""
    now = now or _today()
    month_prefix = f"{prefix}-{now:%Y%m}-"

    numbers = (await db.execute(select(column).where(column.like(f"{month_prefix}%")))).scalars().all()

    # suffixes grow past 999, so compare as integers rather than strings
    highest = 0
    for number in numbers:
        suffix = number[len(month_prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{month_prefix}{highest + 1:03d}"


# =====================================================
# DAILY COUNT (ST-YYYYMMDD-NNNN / SMYYYYMMDDNNNN)
# =====================================================
async def next_daily_number(
    db: AsyncSession,
    model,
    prefix: str,
    separator: str = "-",
    now: datetime | None = None,
) -> str:
    now = now or _today()
    day_prefix = f"{prefix}{separator}{now:%Y%m%d}{separator}"

    count = await db.scalar(
        select(func.count())
        .select_from(model)
        .where(model.reference_number.like(f"{day_prefix}%"))
    )

    return f"{day_prefix}{(count or 0) + 1:04d}"


def adjustment_reference(now: datetime | None = None) -> str:
    now = now or _today()
    return f"ADJ-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


# =====================================================
# PARTY CODES (SUP-YYYY-NNN / CUS-YYYY-NNN)
# =====================================================
async def unique_party_code(db: AsyncSession, column, prefix: str, now: datetime | None = None) -> str:
    now = now or _today()
    for _ in range(50):
        code = f"{prefix}-{now:%Y}-{random.randint(1, 999):03d}"
        exists = await db.scalar(select(column).where(column == code))
        if not exists:
            return code
    raise RuntimeError(f"Could not allocate a unique {prefix} code")
