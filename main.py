"""
Main entrypoint: run one deposit monitor until SIGINT/SIGTERM.

Env: WATCH_ADDRESS (or argv[1]), SEI_WS_ENDPOINT, SEI_REST_ENDPOINT,
SEI_ADDRESS_PREFIX, SEI_EVM_RPC_ENDPOINT, LOG_LEVEL, LOG_FORMAT.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from deposit_listener import DepositEvent, DepositMonitor, get_settings, make_logger
from deposit_listener.config.env import env_str


async def run(target: str) -> None:
    config = get_settings()
    logger = make_logger("main", config.log_level)
    monitor = DepositMonitor(config, target, logger=logger)

    def on_deposit(event: DepositEvent) -> None:
        tx = event.transaction
        logger.info(
            "main_deposit",
            category=event.category.value,
            source=event.source.value,
            tx_hash=tx.hash,
            amount=tx.amount,
            sender=tx.sender,
            height=tx.height,
            timestamp=tx.timestamp,
        )

    monitor.on_deposit(on_deposit)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Signal handlers unsupported on this platform / loop
            pass

    await monitor.start()
    resolved = monitor.target
    logger.info(
        "main_monitoring",
        identifier=target,
        address=resolved.resolved_address if resolved else None,
        state=resolved.state.value if resolved else None,
    )
    try:
        await stop_event.wait()
    finally:
        logger.info("main_shutdown")
        monitor.stop()
        await monitor.wait_closed()


def main() -> None:
    target = sys.argv[1] if len(sys.argv) > 1 else env_str("WATCH_ADDRESS")
    if not target:
        make_logger("main").error(
            "main_config_error",
            message="No watch address: pass it as the first argument or set WATCH_ADDRESS",
        )
        sys.exit(1)
    try:
        asyncio.run(run(target))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
