import argparse
import asyncio
import json
import logging
import sys

import uvicorn

from .aggregator import DashboardAggregator
from .config import Settings, settings
from .jellyfin_client import UpstreamError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def serve(config: Settings, host: str, port: int) -> None:
    """Run the dashboard web server until interrupted."""
    from dashboard.app import create_app

    app = create_app(config)
    logger.info(f"Proxying Jellyfin at {config.base_url}")
    logger.info(f"Dashboard available at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


async def snapshot(config: Settings) -> dict:
    """Build the dashboard once and return it as a plain dict."""
    result = await DashboardAggregator(config).build()
    return result.model_dump(by_alias=True)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="JNFO - Jellyfin server dashboard")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the dashboard server (default)")
    serve_parser.add_argument("--host", default=None, help=f"Bind address (default: {settings.host})")
    serve_parser.add_argument("--port", type=int, default=None, help=f"Port (default: {settings.port})")

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Print the dashboard JSON once and exit"
    )
    snapshot_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)",
    )

    args = parser.parse_args()

    missing = settings.missing_required()
    if missing:
        logger.error(f"{' and '.join(missing)} must be set. Please set them in .env file.")
        sys.exit(1)

    if args.command == "snapshot":
        try:
            data = asyncio.run(snapshot(settings))
        except UpstreamError as e:
            logger.error(f"Failed to fetch data: {e}")
            sys.exit(1)
        print(json.dumps(data, indent=args.indent))
    else:
        host = getattr(args, "host", None) or settings.host
        port = getattr(args, "port", None) or settings.port
        serve(settings, host, port)


if __name__ == "__main__":
    main()
