"""
Start the ClinicVoice call bridge under uvicorn.

Host and port default to the HOST/PORT settings; command line flags win.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL] [--reload]
"""

import argparse
import sys

import uvicorn
from dotenv import load_dotenv

from clinicvoice.config.logging_config import configure_logging
from clinicvoice.config.settings import load_settings

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_args(settings):
    parser = argparse.ArgumentParser(description="ClinicVoice Twilio/OpenAI call bridge")
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Listen port (default: {settings.port})")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser.parse_args()


def main():
    load_dotenv()
    settings = load_settings()
    args = parse_args(settings)
    logger = configure_logging(args.log_level)

    # Without a key every call ends in the apology, so refuse to start
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY is not set")
        sys.exit(1)

    if settings.database_url:
        logger.info("Using SQL stores")
    elif settings.tenants_file:
        logger.info(f"Using in-memory stores seeded from {settings.tenants_file}")
    else:
        logger.warning("No DATABASE_URL or TENANTS_FILE; every call gets the generic greeting")

    logger.info(f"Listening on http://{args.host}:{args.port}")
    uvicorn.run(
        "clinicvoice.main:app",
        host=args.host,
        port=args.port,
        log_level=(args.log_level or "info").lower(),
        http="h11",
        access_log=False,
        # Twilio keeps the media socket open for the whole call
        ws_ping_interval=5,
        ws_ping_timeout=20,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
