#!/usr/bin/env python
"""
ICT Pattern Scanner - Single Command Startup

This script starts the FastAPI server.
"""

import argparse
import os
import sys

import uvicorn

from ictscan.config import CONFIG_ENV_VAR, load_config


def print_startup_banner(host: str, port: int, config_path: str):
    """Print startup information"""
    print("\n" + "=" * 70)
    print("  ICT Pattern Scanner")
    print("=" * 70)
    print(f"  Server: http://{host if host != '0.0.0.0' else 'localhost'}:{port}")
    print(f"  Config: {config_path}")
    print("=" * 70)
    print("\nStarting server...\n")


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='Start the ICT pattern scanner API'
    )
    parser.add_argument(
        '--reload',
        action='store_true',
        help='Enable auto-reload for development'
    )
    parser.add_argument(
        '--host',
        type=str,
        help='Override host from config'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Override port from config'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        help='Override log level from config'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to a config.yaml (default: $ICTSCAN_CONFIG or ./config.yaml)'
    )

    args = parser.parse_args()

    # The app loads its config at import, in this process or a reload worker
    if args.config:
        os.environ[CONFIG_ENV_VAR] = os.path.abspath(args.config)

    try:
        config = load_config()
    except (OSError, ValueError) as e:
        print(f"Error loading configuration: {e}")
        sys.exit(1)

    # Get server settings
    host = args.host or config['server']['host']
    port = args.port or config['server']['port']
    log_level = args.log_level or config['server']['log_level']
    reload = args.reload or config['server']['reload']

    print_startup_banner(host, port, os.environ.get(CONFIG_ENV_VAR, 'config.yaml'))

    try:
        uvicorn.run(
            "ictscan.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level=log_level
        )
    except KeyboardInterrupt:
        print("\n\nShutting down gracefully...")


if __name__ == '__main__':
    main()
