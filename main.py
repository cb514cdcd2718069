#!/usr/bin/env python3
"""
Main entry point for the ompass2fa demo server.
"""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables before the settings are read
load_dotenv()

from ompass2fa.auth import emergency_override  # noqa: E402
from ompass2fa.main import create_app  # noqa: E402


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the ompass2fa demo server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")))
    parser.add_argument(
        "--bypass-2fa",
        action="store_true",
        help="Disable OMPASS 2FA enforcement (lockout recovery)",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()

    if args.bypass_2fa:
        emergency_override.set(True)
        print("⚠️  OMPASS 2FA is bypassed for every user")

    print(f"🚀 Starting ompass2fa on {args.host}:{args.port}")
    print(f"🔧 Environment variables loaded from .env file")

    app = create_app()
    uvicorn.run(app, host=args.host, port=args.port, log_level="info", access_log=False)
