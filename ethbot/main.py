"""ethbot — application entry point.

Boots the FastAPI internal status server and provides the CLI entry point
that runs the trading cycle on a fixed cadence.
"""

import logging

from fastapi import FastAPI

from ethbot.api.routers import router

app = FastAPI(title="ethbot Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("ethbot")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and start the scheduler (and API server)."""
    import argparse
    import asyncio
    import signal

    from ethbot.api.routers import configure_routers
    from ethbot.broker.coincheck_client import CoincheckClient
    from ethbot.config import load_config
    from ethbot.engine import StrategyOrchestrator
    from ethbot.repos.db import init_db
    from ethbot.repos.trade_log_repo import TradeLogRepo
    from ethbot.strategy.registry import build_strategies

    parser = argparse.ArgumentParser(description="ethbot ETH/JPY trading bot")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit",
    )
    parser.add_argument(
        "--engine-only",
        action="store_true",
        help="Run the scheduler without the API server",
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    init_db(config.db_path)
    trade_log = TradeLogRepo(config.db_path)
    configure_routers(trade_log=trade_log)

    broker = CoincheckClient(config)
    strategies = build_strategies(config, trade_log=trade_log)
    orchestrator = StrategyOrchestrator(
        config=config,
        broker=broker,
        strategies=strategies,
        trade_log=trade_log,
    )
    logger.info(
        "Loaded %d strateg(ies): %s (history mode: %s)",
        len(strategies), ", ".join(orchestrator.strategy_names),
        config.price_history_mode,
    )

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping after this cycle.")
        orchestrator.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.once:
        results = asyncio.run(orchestrator.run_cycle())
        logger.info("Cycle finished: %s", results)
    elif args.engine_only:
        asyncio.run(orchestrator.run())
    else:
        asyncio.run(_run_with_server(orchestrator, config.health_port))


async def _run_with_server(orchestrator, port: int) -> None:
    """Start the API server and the scheduler loop concurrently."""
    import asyncio

    import uvicorn

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    async def _serve():
        await server.serve()
        # uvicorn owns SIGINT while serving
        orchestrator.stop()

    logger.info("Status API available at http://localhost:%d/status", port)
    await asyncio.gather(_serve(), orchestrator.run())
    logger.info("ethbot stopped.")


if __name__ == "__main__":
    _run_cli()
