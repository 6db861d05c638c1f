import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from soundbex.application.playlists import PlaylistStore
from soundbex.application.resolution import ResolutionChain
from soundbex.application.search import SearchService
from soundbex.crosscutting.config import Settings, load_settings
from soundbex.crosscutting.logging import CorrelationContext, request_id_var
from soundbex.domain.errors import (
    NotFoundError,
    UpstreamShapeError,
    UpstreamUnavailable,
    ValidationError,
)
from soundbex.infrastructure.extractors.registry import build_strategies
from soundbex.infrastructure.youtube import YouTubeSearchBackend

VERSION = "7.0.0"
SERVICE_NAME = "SoundBex Backend"


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


class HTTPServer:
    """HTTP facade exposing search, stream resolution, playlists and song lookup."""

    def __init__(self,
                 settings: Optional[Settings] = None,
                 search_service: Optional[SearchService] = None,
                 resolver: Optional[ResolutionChain] = None,
                 playlist_store: Optional[PlaylistStore] = None):
        """Initialize HTTP server.

        Collaborators not passed in are built from settings.
        """
        self.settings = settings or load_settings()
        self.host = self.settings.host
        self.port = self.settings.port
        self.debug = self.settings.debug
        self.app = Flask(__name__)
        CORS(self.app)
        self.logger = logging.getLogger(__name__)

        self.version = VERSION
        self.commit = os.getenv('GIT_COMMIT', 'unknown')

        self.search_service = search_service if search_service is not None else SearchService(
            YouTubeSearchBackend(socket_timeout=self.settings.strategy_timeout_s),
            fetch_limit=self.settings.search_fetch_limit,
            result_limit=self.settings.search_result_limit,
        )
        self.resolver = resolver if resolver is not None else ResolutionChain(build_strategies(
            self.settings.strategies,
            timeout_s=self.settings.strategy_timeout_s,
            user_agent=self.settings.user_agent,
        ))
        self.playlists = (playlist_store if playlist_store is not None
                          else PlaylistStore(ttl_s=self.settings.playlist_ttl_s))

        self._setup_hooks()
        self._setup_routes()

    def _setup_hooks(self) -> None:
        """Setup request correlation and error handlers."""

        @self.app.before_request
        def tag_request():
            request_id_var.set(request.headers.get('X-Request-Id') or uuid.uuid4().hex[:12])

        @self.app.teardown_request
        def untag_request(exc):
            request_id_var.set(None)

        @self.app.after_request
        def echo_request_id(response):
            request_id = request_id_var.get()
            if request_id:
                response.headers['X-Request-Id'] = request_id
            return response

        @self.app.errorhandler(ValidationError)
        def handle_validation(e):
            return _error(str(e), 400)

        @self.app.errorhandler(NotFoundError)
        def handle_not_found(e):
            return _error(str(e), 404)

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(e):
            return _error(e.description or e.name, e.code or 500)

        @self.app.errorhandler(Exception)
        def handle_unexpected(e):
            self.logger.exception(f"Unhandled error on {request.path}: {e}")
            return _error(f'Internal server error: {e}', 500)

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.route('/', methods=['GET'])
        def root():
            """Root endpoint with basic info."""
            return jsonify({
                'message': f'{SERVICE_NAME} is running',
                'version': self.version,
                'service': 'Working Audio Streams',
            }), 200

        @self.app.route('/api/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'service': SERVICE_NAME,
                'version': self.version,
                'commit': self.commit,
                'timestamp': datetime.now(timezone.utc).isoformat(),
                'playlists': len(self.playlists),
                'strategies': self.resolver.strategy_names,
                'resolution': self.resolver.metrics.snapshot(),
            }), 200

        @self.app.route('/api/search', methods=['GET'])
        def search():
            query = request.args.get('q')
            if not query:
                return _error('Search query (q) is required.', 400)

            self.logger.info(f"Searching: {query!r}")
            try:
                results = self.search_service.search(query)
            except (UpstreamUnavailable, UpstreamShapeError) as e:
                self.logger.error(f"Search failed: {e}")
                return _error(f'Search failed: {e}', 500)

            return jsonify({
                'success': True,
                'result': [song.to_json() for song in results],
                'query': query,
                'totalResults': len(results),
            }), 200

        @self.app.route('/api/stream', methods=['GET'])
        def stream():
            video_id = (request.args.get('videoId') or '').strip()
            if not video_id:
                return _error('videoId parameter is missing.', 400)

            resolved = self.resolver.resolve(video_id)
            body: Dict[str, Any] = {
                'success': True,
                'streamUrl': resolved.url,
                'videoId': video_id,
                'type': resolved.kind.value,
                'source': resolved.source_name,
            }
            if resolved.bitrate_kbps is not None:
                body['bitrate'] = resolved.bitrate_kbps
            if resolved.container_format is not None:
                body['format'] = resolved.container_format
            return jsonify(body), 200

        @self.app.route('/api/playlist', methods=['POST'])
        def create_playlist():
            payload = request.get_json(silent=True)
            if not isinstance(payload, dict) or 'songs' not in payload:
                return _error('Request body must be an object with a songs list.', 400)

            songs = payload['songs']
            playlist_id = self.playlists.create(songs)
            return jsonify({
                'success': True,
                'playlistId': playlist_id,
                'totalSongs': len(songs),
            }), 200

        @self.app.route('/api/playlist/<playlist_id>/<action>', methods=['GET'])
        def navigate_playlist(playlist_id: str, action: str):
            moves = {
                'next': self.playlists.next,
                'previous': self.playlists.previous,
                'current': self.playlists.current,
            }
            move = moves.get(action)
            if move is None:
                return _error(f'Unknown playlist action: {action}', 404)

            with CorrelationContext(playlist_id=playlist_id):
                position = move(playlist_id)
            return jsonify({'success': True, **position.to_json()}), 200

        @self.app.route('/api/song/<video_id>', methods=['GET'])
        def song_details(video_id: str):
            try:
                song = self.search_service.get_song(video_id)
            except (UpstreamUnavailable, UpstreamShapeError) as e:
                self.logger.error(f"Song lookup failed for {video_id}: {e}")
                return _error(f'Song lookup failed: {e}', 500)

            return jsonify({
                'success': True,
                'song': {
                    'title': song.title,
                    'artist': song.author,
                    'duration': song.duration_text,
                    'thumbnail': song.thumbnail_url,
                    'videoId': song.external_id,
                },
            }), 200

    def run(self) -> None:
        """Run the HTTP server with the playlist reaper alongside."""
        self.logger.info(f"Starting {SERVICE_NAME} on {self.host}:{self.port}")
        self.playlists.start_reaper(self.settings.reaper_interval_s)
        try:
            self.app.run(
                host=self.host,
                port=self.port,
                debug=self.debug,
                threaded=True,
            )
        finally:
            self.playlists.stop_reaper()


def create_app(settings: Optional[Settings] = None, **collaborators) -> Flask:
    """Create Flask app for testing."""
    server = HTTPServer(settings=settings, **collaborators)
    return server.app
