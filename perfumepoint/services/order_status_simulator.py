"""
Mock fulfillment loop.

There is no payment processor or carrier behind the shop, so this task
stands in for both: every cycle it randomly confirms pending payments
(processing -> in-transit) and randomly delivers orders that are in
transit. It runs inside the API process and is started and stopped by the
application lifespan.
"""

import asyncio
import logging
import random
from typing import Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Config
from ..enums import OrderStatus, PaymentStatus
from ..models import Order


logger = logging.getLogger(__name__)


class OrderStatusSimulator:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval: Optional[float] = None,
        payment_probability: Optional[float] = None,
        delivery_probability: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.interval = interval if interval is not None else Config.ORDER_SIMULATOR_INTERVAL
        self.payment_probability = (
            payment_probability if payment_probability is not None else Config.PAYMENT_COMPLETION_PROBABILITY
        )
        self.delivery_probability = (
            delivery_probability if delivery_probability is not None else Config.DELIVERY_PROBABILITY
        )
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Order status simulator started, interval %.1fs", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Order status simulator stopped")

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)

    async def tick(self) -> Dict[str, int]:
        """
        Run one simulation cycle.

        Both order sets are read before anything changes, so an order shipped
        in this cycle cannot also be delivered in it.

        Returns:
            dict: how many orders were shipped and delivered.
        """
        counts = {"shipped": 0, "delivered": 0}

        try:
            async with self.session_factory() as db:
                pending = await db.execute(
                    select(Order).where(
                        Order.status == OrderStatus.PROCESSING,
                        Order.payment_status == PaymentStatus.PENDING,
                    )
                )
                in_transit = await db.execute(
                    select(Order).where(Order.status == OrderStatus.IN_TRANSIT)
                )
                pending_orders = pending.scalars().all()
                in_transit_orders = in_transit.scalars().all()

                for order in pending_orders:
                    if self.rng.random() < self.payment_probability:
                        order.payment_status = PaymentStatus.COMPLETED
                        order.status = OrderStatus.IN_TRANSIT
                        counts["shipped"] += 1

                for order in in_transit_orders:
                    if self.rng.random() < self.delivery_probability:
                        order.status = OrderStatus.DELIVERED
                        counts["delivered"] += 1

                if counts["shipped"] or counts["delivered"]:
                    await db.commit()
                    logger.info(
                        "Simulator moved %d order(s) to in-transit and %d to delivered",
                        counts["shipped"], counts["delivered"]
                    )

        except Exception:
            logger.exception("Order status simulation cycle failed")

        return counts
