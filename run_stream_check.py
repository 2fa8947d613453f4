#!/usr/bin/env python3
"""
Active Streams - Console Report

This script:
1. Loads server configuration from config.ini (or environment variables)
2. Fetches the current sessions of every server in parallel
3. Prints one line per active stream, followed by any server errors
"""

import time

from active_streams import StreamFetcher, build_streams_view
from active_streams.config_loader import load_config
from active_streams.logging_utils import configure_logging
from active_streams.presentation import render_text


def main():
    """Fetch and print the active streams once."""

    configure_logging('WARNING')

    # ==========================================
    # 1. Load Configuration
    # ==========================================
    print("Loading configuration...")

    try:
        servers, options = load_config()
    except ValueError as e:
        print(f"\n❌ Configuration Error:\n{e}\n")
        return

    names = ', '.join(server.name for server in servers)
    print(f"✓ Loaded configuration for {len(servers)} server(s): {names}")
    print(f"✓ Episode numbers: {'shown' if options.show_episode_numbers else 'hidden'}")

    # ==========================================
    # 2. Fetch Streams
    # ==========================================
    print("\nFetching active streams...")

    started = time.monotonic()
    result = StreamFetcher().fetch_all(servers, options)
    elapsed = time.monotonic() - started

    print(f"✓ {len(result.streams)} stream(s), {len(result.errors)} error(s) in {elapsed:.1f}s\n")

    # ==========================================
    # 3. Report
    # ==========================================
    print(render_text(build_streams_view(result, len(servers))))


if __name__ == "__main__":
    main()
