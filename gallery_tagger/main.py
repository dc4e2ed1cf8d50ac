"""
Main entry point for the Gallery AI-Tagger service.
"""

import asyncio
import signal
import sys
import argparse
from .config import settings
from .database import create_engine, create_session_factory, init_db
from .logging import setup_logging, get_logger
from .models import AiTaggingOptions
from .performance_monitor import performance_monitor
from .server import TaggingServer
from .tag_generator import VisionTagGenerator
from .tagging_queue import TaggingQueue
from .worker import TaggingWorker


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Gallery AI-Tagger - background AI tagging for a photo gallery"
    )

    parser.add_argument(
        "--mode",
        choices=["serve"],
        default="serve",
        help="Processing mode (default: serve)"
    )

    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create database tables and exit"
    )

    parser.add_argument(
        "--tag-file",
        type=str,
        metavar="PATH",
        help="Generate tags for one image with the default AI settings, print them and exit"
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Override API port from configuration"
    )

    return parser.parse_args(argv)


async def run_init_db() -> None:
    """Create all tables."""
    engine = create_engine()
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


async def run_tag_file(path: str) -> int:
    """One-off tagging of a single file without touching the database."""
    logger = get_logger("main")

    if not settings.ai_api_key:
        logger.error("❌ AI_API_KEY is not configured")
        return 1

    options = AiTaggingOptions(
        provider=settings.ai_default_provider,
        api_key=settings.ai_api_key,
        model=settings.ai_default_model,
        endpoint=settings.ai_default_endpoint,
        max_tags=settings.max_tags,
        suggestion_limit=settings.suggestion_limit,
    )
    result = await VisionTagGenerator().generate_tags(path, options)

    print(f"selected:  {', '.join(result.selected) or '-'}")
    print(f"suggested: {', '.join(result.suggested) or '-'}")
    return 0


async def run_service() -> None:
    """Run the worker and the HTTP server until SIGINT/SIGTERM."""
    logger = get_logger("main")

    engine = create_engine()
    await init_db(engine)

    queue = TaggingQueue()
    worker = TaggingWorker(queue, create_session_factory(engine))
    server = TaggingServer(queue, worker, engine)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    worker.start()
    runner = await server.start()

    try:
        await stop_event.wait()
        logger.info("⏹️  Received shutdown signal")
    finally:
        queue.close()
        await worker.stop()
        await server.stop(runner)
        await engine.dispose()
        performance_monitor.log_performance_summary()


def main(argv=None):
    """Main entry point."""
    # Setup logging
    setup_logging()
    logger = get_logger("main")

    # Parse arguments
    args = parse_arguments(argv)

    if args.port:
        settings.api_port = args.port
        logger.info(f"🔌 Using API port: {args.port}")

    try:
        if args.init_db:
            logger.info("🗄️  Creating database tables")
            asyncio.run(run_init_db())
            logger.info("✅ Database ready")
            return 0

        if args.tag_file:
            return asyncio.run(run_tag_file(args.tag_file))

        logger.info(f"🚀 Starting Gallery AI-Tagger in {args.mode} mode")
        asyncio.run(run_service())

        logger.info("✅ Service stopped cleanly")
        return 0

    except KeyboardInterrupt:
        logger.info("⏹️  Service interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"❌ Unexpected error: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
