#!/usr/bin/env python3
"""
Run the refund calculator web UI for local development.

Usage:
  python run_web.py [--host HOST] [--port PORT] [--debug] [--config PATH]
"""
import os
import sys
import argparse
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the refund calculator Flask server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--config", help="Path to a refund_calc.yaml settings file")
    args = parser.parse_args()

    repo_root = os.path.dirname(__file__)
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)

    from refund_calc.config import load_settings, setup_logging
    from webapp.app import create_app

    settings = load_settings(Path(args.config) if args.config else None)
    setup_logging("DEBUG" if args.debug else settings.log_level)
    app = create_app(settings)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
