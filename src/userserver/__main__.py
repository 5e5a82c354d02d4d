"""
Command-line entry point.

    python -m userserver                    # remote store from API_KEY/PROJECT_REF
    python -m userserver --store static     # built-in three users, no network
    userserver --log-level DEBUG

Always listens on localhost:8080. A missing API_KEY/PROJECT_REF or a
failed initial fetch is fatal and exits with status 1.
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .app import create_app
from .config import ConfigurationError, LOG_LEVELS, ServerConfig, env_flag, load_env_file
from .remote import RemoteClient
from .store import StoreError, UserStore


logger = logging.getLogger("userserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userserver",
        description="Serve user records by id over HTTP on localhost:8080",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  API_KEY       key for the remote project     (required for --store remote)
  PROJECT_REF   remote project reference       (required for --store remote)
  DEBUG         true/1/yes: debug logging, including remote requests

A .env file in the working directory is loaded first; variables already
set in the environment take precedence.
        """
    )

    parser.add_argument(
        "--store", "-s",
        choices=["remote", "static"],
        default="remote",
        help="Where users come from (default: remote)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=list(LOG_LEVELS),
        default=None,
        help="Logging level (default: INFO, or DEBUG when DEBUG is set)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userserver {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # .env first: DEBUG may only be set there
    env_loaded = load_env_file()

    log_level = args.log_level or ("DEBUG" if env_flag("DEBUG") else "INFO")
    config = ServerConfig(log_level=log_level)
    config.setup_logging()

    if not env_loaded:
        logger.info("No .env file found, using environment variables instead")

    client: Optional[RemoteClient] = None
    try:
        if args.store == "remote":
            client = RemoteClient.from_env()
            store = UserStore.from_remote(client)
        else:
            store = UserStore.from_static()
    except (ConfigurationError, StoreError) as e:
        logger.error(f"Startup failed: {e}")
        if client is not None:
            client.close()
        return 1

    logger.info(f"Serving {len(store)} users from the {args.store} store")

    server = create_app(store, client=client, config=config)
    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if client is not None:
            client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
