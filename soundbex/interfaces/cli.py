import argparse
import json
import logging
import signal
import sys
import time
from typing import List, Optional

from soundbex.application.resolution import ResolutionChain
from soundbex.application.search import SearchService
from soundbex.crosscutting.config import ConfigError, Settings, load_settings
from soundbex.crosscutting.logging import setup_logging
from soundbex.domain.errors import UpstreamShapeError, UpstreamUnavailable, ValidationError
from soundbex.infrastructure.extractors.registry import build_strategies
from soundbex.infrastructure.youtube import YouTubeSearchBackend
from soundbex.interfaces.http import HTTPServer


class CLI:
    """Command Line Interface for the SoundBex backend."""

    def __init__(self):
        """Initialize CLI."""
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='soundbex',
            description='Search YouTube and resolve playable audio streams'
        )
        parser.add_argument(
            '--env-file',
            help='Path to a .env file with SOUNDBEX_* settings'
        )
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default=None,
            help='Override SOUNDBEX_LOG_LEVEL'
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        serve_parser = subparsers.add_parser('serve', help='Run the HTTP server')
        serve_parser.add_argument('--host', help='Bind address (default from settings)')
        serve_parser.add_argument('--port', type=int, help='Port (default from settings)')
        serve_parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

        search_parser = subparsers.add_parser('search', help='Search for songs')
        search_parser.add_argument('query', help='Search text')
        search_parser.add_argument('--json', action='store_true', help='Print raw JSON')

        stream_parser = subparsers.add_parser('stream', help='Resolve an audio stream for a video id')
        stream_parser.add_argument('video_id', help='YouTube video id')
        stream_parser.add_argument(
            '--strategies',
            help='Comma separated strategy order (default from settings)'
        )

        return parser

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger = logging.getLogger(__name__)
            logger.warning(f"Received signal {signum}, shutting down...")
            sys.exit(130)

        signal.signal(signal.SIGTERM, signal_handler)

    def _load_settings(self, args: argparse.Namespace) -> Settings:
        settings = load_settings(env_file=args.env_file)
        if args.log_level:
            settings.log_level = args.log_level
        return settings

    def _search_service(self, settings: Settings) -> SearchService:
        return SearchService(
            YouTubeSearchBackend(socket_timeout=settings.strategy_timeout_s),
            fetch_limit=settings.search_fetch_limit,
            result_limit=settings.search_result_limit,
        )

    def _serve(self, args: argparse.Namespace, settings: Settings) -> int:
        if args.host:
            settings.host = args.host
        if args.port:
            settings.port = args.port
        if args.debug:
            settings.debug = True
        self._setup_signal_handlers()
        HTTPServer(settings=settings).run()
        return 0

    def _search(self, args: argparse.Namespace, settings: Settings) -> int:
        results = self._search_service(settings).search(args.query)
        if args.json:
            print(json.dumps([song.to_json() for song in results], indent=2, ensure_ascii=False))
            return 0

        print(f"{len(results)} results for {args.query!r}:")
        print("-" * 50)
        for song in results:
            print(f"{song.external_id}: {song.title} - {song.author} [{song.duration_text}]")
        return 0

    def _stream(self, args: argparse.Namespace, settings: Settings) -> int:
        names = settings.strategies
        if args.strategies:
            names = [n.strip().lower() for n in args.strategies.split(',') if n.strip()]
        chain = ResolutionChain(build_strategies(
            names,
            timeout_s=settings.strategy_timeout_s,
            user_agent=settings.user_agent,
        ))
        stream = chain.resolve(args.video_id)
        print(json.dumps({
            'streamUrl': stream.url,
            'type': stream.kind.value,
            'source': stream.source_name,
            'bitrate': stream.bitrate_kbps,
            'format': stream.container_format,
        }, indent=2))
        return 0 if not stream.is_fallback else 3

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the exit code."""
        self._start_time = time.time()
        logger = logging.getLogger(__name__)

        try:
            args = self.parser.parse_args(argv)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 2

        if not args.command:
            self.parser.print_help()
            return 2

        try:
            settings = self._load_settings(args)
            setup_logging(settings.log_level, settings.log_file)

            if args.command == 'serve':
                return self._serve(args, settings)
            if args.command == 'search':
                return self._search(args, settings)
            if args.command == 'stream':
                return self._stream(args, settings)
            self.parser.print_help()
            return 2

        except ConfigError as e:
            logger.error(f"Configuration error: {e}")
            print(f"Configuration error: {e}", file=sys.stderr)
            return 2
        except ValidationError as e:
            print(f"Invalid input: {e}", file=sys.stderr)
            return 2
        except (UpstreamUnavailable, UpstreamShapeError) as e:
            logger.error(f"Upstream error: {e}")
            print(f"Upstream error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        finally:
            duration = time.time() - self._start_time
            logger.debug(f"CLI execution time: {duration:.2f}s")


def main():
    """Main entry point."""
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
