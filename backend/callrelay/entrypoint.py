import asyncio
import logging
import signal

import uvicorn

from callrelay.core.config import settings
from callrelay.main import app

logger = logging.getLogger(__name__)


def build_server() -> uvicorn.Server:
    config = uvicorn.Config(
        app,
        host=settings.bind_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )
    return uvicorn.Server(config)


async def run_until_signalled(server: uvicorn.Server) -> None:
    """Serve until SIGTERM/SIGINT, then let in-flight webhooks finish."""
    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, stopping.set)

    serving = asyncio.create_task(server.serve())
    waiting = asyncio.create_task(stopping.wait())
    done, _ = await asyncio.wait({serving, waiting}, return_when=asyncio.FIRST_COMPLETED)
    if serving in done:
        # Server stopped on its own (bind failure, uvicorn's own signal handling).
        waiting.cancel()
        serving.result()
        return

    logger.info("Shutdown requested; draining open requests.")
    server.should_exit = True
    await serving


def main() -> None:
    asyncio.run(run_until_signalled(build_server()))


if __name__ == "__main__":
    main()
