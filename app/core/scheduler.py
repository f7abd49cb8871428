from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.db import AsyncSessionLocal

from app.services.inventory.inventory_service import find_low_stock
from app.services.sales.sales_order_service import flag_overdue_payments
from app.utils.logger import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job("cron", hour=0, minute=5)  # daily at 00:05
async def overdue_payments_job():
    async with AsyncSessionLocal() as db:
        flagged = await flag_overdue_payments(db)
    logger.info("Overdue payment scan finished", extra={"flagged": flagged})


@scheduler.scheduled_job("cron", hour=0, minute=15)  # daily @ 00:15
async def low_stock_job():
    async with AsyncSessionLocal() as db:
        await scan_low_stock(db)


async def scan_low_stock(db) -> int:
    records = await find_low_stock(db)
    for inv in records:
        logger.warning(
            "Low stock",
            extra={
                "product_id": inv.product_id,
                "warehouse_id": inv.warehouse_id,
                "available": inv.quantity_available,
                "min_stock_level": inv.product.min_stock_level if inv.product else None,
            },
        )
    return len(records)
