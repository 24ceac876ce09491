"""Entry point for the HUP ladder."""

import asyncio
import logging
import os
import sys
from typing import Mapping, Optional

from fastapi import FastAPI
import uvicorn

from hupladder.api.routes import router
from hupladder.config import LadderConfig, load_config
from hupladder.errors import ConfigError
from hupladder.models.state import LadderOutcome
from hupladder.services.balena import BalenaClient
from hupladder.services.ladder import LadderRunner, Sleep
from hupladder.utils.logging import setup_logger

__version__ = "1.0.0"

# Status API, served only when STATUS_PORT is set
app = FastAPI(
    title="HUP Ladder",
    description="Progress of a host OS update ladder for one device",
    version=__version__,
)
app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "hupladder", "version": __version__}


async def run_ladder(
    config: LadderConfig,
    client: Optional[BalenaClient] = None,
    sleep: Sleep = asyncio.sleep,
) -> LadderOutcome:
    """Run one ladder, serving the status API alongside when configured.

    Args:
        config: Ladder configuration
        client: API client (built from config if None)
        sleep: Awaitable delay used by the runner

    Returns:
        LadderOutcome of the run
    """
    logger = logging.getLogger("hupladder")
    client = client or BalenaClient(
        api_url=config.api_url,
        actions_url=config.actions_url,
        timeout=config.request_timeout,
    )
    runner = LadderRunner(config, client, sleep=sleep)
    app.state.ladder = runner.state

    server = None
    server_task = None
    if config.status_port:
        server = uvicorn.Server(
            uvicorn.Config(app, host="0.0.0.0", port=config.status_port, log_level="warning")
        )
        server_task = asyncio.create_task(serve_status_api(server, config.status_port))

    try:
        async with client:
            return await runner.run()
    finally:
        if server is not None:
            server.should_exit = True
            await server_task


async def serve_status_api(server: uvicorn.Server, port: int) -> None:
    """Serve the status API until asked to exit.

    uvicorn exits the process when it cannot bind; here that only disables
    the status API and the ladder keeps running.
    """
    logger = logging.getLogger("hupladder")
    logger.info(f"Starting status API on port {port}")
    try:
        await server.serve()
    except (OSError, SystemExit) as e:
        logger.error(
            f"Status API could not be served on port {port} ({e!r}), "
            f"continuing without it"
        )


def main(environ: Optional[Mapping[str, str]] = None) -> None:
    """Main entry point: exits 0 when the ladder completes, 1 otherwise."""
    environ = os.environ if environ is None else environ

    try:
        config = load_config(environ)
    except ConfigError as e:
        logger = setup_logger("hupladder")
        logger.error(str(e))
        sys.exit(LadderOutcome.CONFIG_ERROR.exit_code)

    logger = setup_logger("hupladder", config.log_file, level=config.logging_level)
    logger.info("starting HUP ladder...")
    logger.info(
        f"Device {config.uuid} via {config.api_url} "
        f"(max fails {config.max_fails}, step {config.step}, "
        f"random order {config.random_order})"
    )

    try:
        outcome = asyncio.run(run_ladder(config))
    except Exception as e:
        logger.error(f"HUP ladder crashed: {e}", exc_info=True)
        sys.exit(LadderOutcome.ERROR.exit_code)

    logger.info(f"HUP ladder finished: {outcome.value}")
    sys.exit(outcome.exit_code)


if __name__ == "__main__":
    main()
