"""Protean Engine runner for the marketplace.

Runs two things side by side:
- the Protean Engine, which processes events asynchronously (outbox,
  stream subscriptions, projectors and event handlers)
- the expiration sweeper, which releases slot capacity held by expired
  bookings and abandoned carts every ``SWEEP_INTERVAL_SECONDS``

The sweeper is scheduled on the Engine's own event loop, so both stop
together on shutdown.

Usage:
    python src/server.py                 # Engine and sweeper
    python src/server.py --sweeper-only  # Sweeper alone
"""

import argparse
import asyncio

import structlog
from protean.server.engine import Engine

from marketplace.domain import marketplace
from marketplace.policy import sweep_interval_seconds
from marketplace.sweeper.sweeper import nudge_sweep
from marketplace.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def sweep_once() -> int:
    # Worker threads do not inherit the domain context
    with marketplace.domain_context():
        return nudge_sweep()


async def run_sweeper(interval: float | None = None, stop: asyncio.Event | None = None) -> None:
    """Sweep every ``interval`` seconds until ``stop`` is set."""
    stop = stop or asyncio.Event()
    with marketplace.domain_context():
        interval = interval or sweep_interval_seconds()
    logger.info("Expiration sweeper started", interval=interval)

    while not stop.is_set():
        try:
            released = await asyncio.to_thread(sweep_once)
            logger.debug("Sweep finished", released=released)
        except Exception as exc:
            # The next round picks up whatever this one missed
            logger.error("Sweep failed", error=str(exc), exc_info=True)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except TimeoutError:
            continue


def main():
    parser = argparse.ArgumentParser(description="Marketplace Engine runner")
    parser.add_argument(
        "--sweeper-only",
        action="store_true",
        help="Run only the periodic expiration sweeper",
    )
    args = parser.parse_args()

    configure_logging()
    marketplace.init()

    if args.sweeper_only:
        asyncio.run(run_sweeper())
        return

    engine = Engine(marketplace)
    engine.loop.create_task(run_sweeper())
    engine.run()


if __name__ == "__main__":
    main()
