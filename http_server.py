#!/usr/bin/env python3
"""
SoundBex HTTP Server Runner
"""

import os

from soundbex.crosscutting.config import load_settings
from soundbex.crosscutting.logging import setup_logging
from soundbex.interfaces.http import HTTPServer


def main():
    """Run the HTTP server."""
    settings = load_settings('.env' if os.path.exists('.env') else None)
    setup_logging(settings.log_level, settings.log_file)
    server = HTTPServer(settings=settings)
    server.run()


if __name__ == '__main__':
    main()
