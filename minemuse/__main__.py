"""CLI entrypoint: python -m minemuse {serve|run|onchain|comprehensive|init-db|stats|test-telegram}."""

from __future__ import annotations

import asyncio
import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path

from minemuse.config import get_db_path, get_server_config, load_config
from minemuse.db import get_connection, get_recent_runs, init_db
from minemuse.serialize import to_jsonable


def setup_logging(config: dict) -> None:
    """Configure logging with console + rotating file output."""
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    # Rotate at 5MB, keep 3 backups
    db_path = get_db_path(config)
    log_dir = Path(db_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "minemuse.log"

    file_handler = logging.handlers.RotatingFileHandler(
        str(log_file), maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # Quiet noisy libraries
    for name in ("httpx", "httpcore", "trafilatura", "feedparser", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


logger = logging.getLogger("minemuse")


def cmd_init_db(config: dict) -> None:
    """Initialize the SQLite database."""
    db_path = get_db_path(config)
    init_db(db_path)
    print(f"Database initialized at {db_path}")


def cmd_serve(config: dict) -> None:
    """Run the HTTP service."""
    import uvicorn

    from minemuse.api import create_app

    init_db(get_db_path(config))
    server = get_server_config(config)
    uvicorn.run(create_app(config), host=server["host"], port=server["port"], log_config=None)


async def cmd_run(config: dict) -> None:
    """Run the content pipeline once."""
    from minemuse.pipeline import run_pipeline

    init_db(get_db_path(config))
    result = await run_pipeline(config)
    meta = result.metadata
    print(
        f"{len(result.content_packages)} package(s) from {meta.topics_generated} topic(s) "
        f"in {meta.total_processing_time:.1f}s, {meta.llm_tokens_used} tokens "
        f"(${meta.llm_cost_usd:.4f})"
    )
    for error in result.errors:
        print(f"  ! {error}")
    if not result.success:
        sys.exit(1)


async def cmd_onchain(config: dict) -> None:
    """Print a fresh on-chain snapshot as JSON."""
    from minemuse.aggregator import DataAggregator

    snapshot = await DataAggregator(config).collect_onchain()
    print(json.dumps(to_jsonable(snapshot), indent=2))


async def cmd_comprehensive(config: dict) -> None:
    """Print a fresh comprehensive snapshot as JSON."""
    from minemuse.aggregator import DataAggregator

    snapshot = await DataAggregator(config).collect_comprehensive()
    print(json.dumps(to_jsonable(snapshot), indent=2))


async def cmd_test_telegram(config: dict) -> None:
    """Send a test message via Telegram."""
    from minemuse.deliver import CHANNELS

    if "telegram" not in CHANNELS:
        print("Error: Telegram channel not registered")
        sys.exit(1)

    channel = CHANNELS["telegram"](config)
    success = await channel.send_test()
    if success:
        print("Telegram test message sent successfully")
    else:
        print("Telegram test failed, check logs")
        sys.exit(1)


def cmd_stats(config: dict) -> None:
    """Show recent pipeline run stats."""
    db_path = get_db_path(config)
    conn = get_connection(db_path)
    runs = get_recent_runs(conn, limit=10)
    conn.close()

    if not runs:
        print("No pipeline runs yet.")
        return

    header = (
        f"{'Run':>4} {'Status':<10} {'Topics':<8} "
        f"{'Content':<8} {'Posts':<6} {'Cost':>8} {'Started'}"
    )
    print(header)
    print("-" * 70)
    for r in runs:
        print(
            f"{r['id']:>4} {r['status']:<10} "
            f"{r['topics_generated']:<8} "
            f"{r['content_created']:<8} "
            f"{r['platforms_generated']:<6} "
            f"${r['llm_cost_usd']:>7.3f} {r['started_at']}"
        )


COMMANDS = {
    "serve": cmd_serve,
    "run": cmd_run,
    "onchain": cmd_onchain,
    "comprehensive": cmd_comprehensive,
    "init-db": cmd_init_db,
    "stats": cmd_stats,
    "test-telegram": cmd_test_telegram,
}


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        available = ", ".join(COMMANDS)
        print(f"Usage: python -m minemuse {{{available}}}")
        sys.exit(1)

    command = sys.argv[1]
    config = load_config(os.environ.get("CONFIG_PATH", "config.yaml"))
    setup_logging(config)
    handler = COMMANDS[command]

    if asyncio.iscoroutinefunction(handler):
        asyncio.run(handler(config))
    else:
        handler(config)


if __name__ == "__main__":
    main()
