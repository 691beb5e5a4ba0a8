"""
Spotify API Client

Handles the Spotify Web API calls the game needs:
- Client-credentials token for public playlist/search lookups
- Authorization-code login flow for the player's own playlists
- Rate limiting with exponential backoff
- Conversion of Spotify track objects into playable Song objects

One client instance is owned by the Flask app; tokens are instance state.
"""

import os
import time
import base64
import logging
from typing import List, Optional
from urllib.parse import urlencode

import requests

from models import Song

logger = logging.getLogger(__name__)

ACCOUNTS_URL = 'https://accounts.spotify.com'
API_URL = 'https://api.spotify.com/v1'

DEFAULT_SCOPES = ' '.join([
    'user-read-private',
    'user-read-email',
    'playlist-read-private',
    'playlist-read-collaborative',
])


class SpotifyRateLimitError(Exception):
    """Raised when Spotify API rate limit is hit"""
    def __init__(self, retry_after: int = None):
        self.retry_after = retry_after
        super().__init__(f"Spotify rate limit exceeded. Retry after {retry_after} seconds." if retry_after else "Spotify rate limit exceeded.")


class SpotifyApiError(Exception):
    """Raised when Spotify answers with a non-2xx status"""
    def __init__(self, status_code: Optional[int], message: str = ''):
        self.status_code = status_code
        super().__init__(message or f"Spotify API error (status {status_code})")


def track_to_song(track: dict) -> Optional[Song]:
    """
    Convert a Spotify track object into a Song

    Returns:
        Song, or None if the track has no preview clip (unplayable in the game)
    """
    if not track or not track.get('preview_url'):
        return None

    artists = track.get('artists') or [{}]
    images = (track.get('album') or {}).get('images') or []
    return Song(
        id=track.get('id') or '',
        title=track.get('name') or '',
        artist=artists[0].get('name', ''),
        preview_url=track['preview_url'],
        image_url=images[0].get('url', '') if images else '',
    )


class SpotifyClient:
    """
    Spotify API client with authentication and rate limiting.
    """

    def __init__(self, client_id=None, client_secret=None, redirect_uri=None,
                 market='TH', rate_limit_delay=0.0, max_retries=3, timeout=10):
        """
        Initialize Spotify Client

        Args:
            client_id: Spotify app client id (defaults to SPOTIFY_CLIENT_ID)
            client_secret: Spotify app secret (defaults to SPOTIFY_CLIENT_SECRET)
            redirect_uri: OAuth callback URL registered with Spotify
            market: Market code used for searches
            rate_limit_delay: Minimum delay between API calls (seconds)
            max_retries: Maximum number of retries for rate-limited requests
            timeout: Per-request timeout (seconds)
        """
        self.client_id = client_id or os.environ.get('SPOTIFY_CLIENT_ID')
        self.client_secret = client_secret or os.environ.get('SPOTIFY_CLIENT_SECRET')
        self.redirect_uri = redirect_uri
        self.market = market
        self.timeout = timeout

        self.access_token = None
        self.token_expires = 0

        self.rate_limit_delay = rate_limit_delay
        self.max_retries = max_retries
        self.last_request_time = 0

        self.stats = {
            'api_calls': 0,
            'rate_limit_hits': 0,
            'rate_limit_waits': 0
        }

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # ========================================================================
    # RATE LIMITING METHODS
    # ========================================================================

    def _wait_for_rate_limit(self):
        """Enforce minimum delay between requests"""
        if self.rate_limit_delay > 0:
            elapsed = time.time() - self.last_request_time
            if elapsed < self.rate_limit_delay:
                time.sleep(self.rate_limit_delay - elapsed)
        self.last_request_time = time.time()

    def _retry_after_seconds(self, response: requests.Response) -> Optional[int]:
        """
        Read how long Spotify wants us to wait from a 429 response

        Returns:
            Number of seconds to wait, or None if no usable header is present
        """
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return int(retry_after)
            except ValueError:
                logger.warning(f"Invalid Retry-After header: {retry_after}")
        return None

    def _make_api_request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Make an API request with rate limit handling and retries

        Args:
            method: HTTP method ('get', 'post', etc.)
            url: URL to request
            **kwargs: Additional arguments to pass to requests

        Returns:
            Response object

        Raises:
            SpotifyRateLimitError: If rate limit exceeded after all retries
            requests.exceptions.RequestException: For other request failures
        """
        kwargs.setdefault('timeout', self.timeout)
        retry_count = 0
        base_delay = 1

        while retry_count <= self.max_retries:
            self._wait_for_rate_limit()

            response = getattr(requests, method)(url, **kwargs)
            self.stats['api_calls'] += 1

            if response.status_code != 429:
                return response

            self.stats['rate_limit_hits'] += 1
            retry_after = self._retry_after_seconds(response)

            if retry_count >= self.max_retries:
                raise SpotifyRateLimitError(retry_after)

            if retry_after is not None:
                wait_time = retry_after
                logger.warning(f"Rate limit hit (attempt {retry_count + 1}/{self.max_retries + 1}). "
                               f"Waiting {wait_time}s as specified by Spotify.")
            else:
                wait_time = base_delay * (2 ** retry_count)
                logger.warning(f"Rate limit hit (attempt {retry_count + 1}/{self.max_retries + 1}). "
                               f"Using exponential backoff: {wait_time}s")

            self.stats['rate_limit_waits'] += 1
            time.sleep(wait_time)
            retry_count += 1

        raise SpotifyRateLimitError()

    def _request_json(self, method: str, url: str, **kwargs) -> dict:
        """Make a request and return the decoded body, raising SpotifyApiError on non-2xx"""
        response = self._make_api_request(method, url, **kwargs)
        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            logger.error(f"Spotify {method.upper()} {url} failed: {response.status_code} {detail}")
            raise SpotifyApiError(response.status_code, f"Spotify API error {response.status_code}")
        return response.json()

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    def _basic_auth_header(self) -> dict:
        credentials = f"{self.client_id}:{self.client_secret}"
        credentials_b64 = base64.b64encode(credentials.encode()).decode()
        return {
            'Authorization': f'Basic {credentials_b64}',
            'Content-Type': 'application/x-www-form-urlencoded'
        }

    def get_client_token(self) -> str:
        """
        Get a client-credentials access token (reuses existing if still valid)

        Raises:
            SpotifyApiError: If credentials are missing or Spotify refuses them
        """
        if self.access_token and time.time() < self.token_expires:
            return self.access_token

        if not self.has_credentials:
            logger.error("Spotify credentials not found. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET")
            raise SpotifyApiError(None, "Spotify credentials not configured")

        data = self._request_json(
            'post',
            f'{ACCOUNTS_URL}/api/token',
            headers=self._basic_auth_header(),
            data={'grant_type': 'client_credentials'},
        )

        # Store token and expiration time (with 60 second buffer)
        self.access_token = data['access_token']
        self.token_expires = time.time() + data['expires_in'] - 60

        logger.debug("Spotify client-credentials authentication successful")
        return self.access_token

    def build_authorize_url(self, state: str, scopes: str = DEFAULT_SCOPES) -> str:
        """Build the Spotify consent page URL for the authorization-code flow"""
        query = urlencode({
            'response_type': 'code',
            'client_id': self.client_id,
            'scope': scopes,
            'redirect_uri': self.redirect_uri,
            'state': state,
            'show_dialog': 'true',
        })
        return f'{ACCOUNTS_URL}/authorize?{query}'

    def exchange_code(self, code: str) -> dict:
        """
        Exchange an authorization code for user tokens

        Returns:
            Dict with access_token, refresh_token, expires_in
        """
        return self._request_json(
            'post',
            f'{ACCOUNTS_URL}/api/token',
            headers=self._basic_auth_header(),
            data={
                'code': code,
                'redirect_uri': self.redirect_uri,
                'grant_type': 'authorization_code',
            },
        )

    def refresh_user_token(self, refresh_token: str) -> dict:
        """
        Get a new user access token from a refresh token

        Returns:
            Dict with access_token, expires_in and possibly a new refresh_token
        """
        return self._request_json(
            'post',
            f'{ACCOUNTS_URL}/api/token',
            headers=self._basic_auth_header(),
            data={
                'grant_type': 'refresh_token',
                'refresh_token': refresh_token,
            },
        )

    # ========================================================================
    # API CALLS
    # ========================================================================

    def _bearer(self, token: Optional[str]) -> dict:
        return {'Authorization': f'Bearer {token or self.get_client_token()}'}

    def get_me(self, user_token: str) -> dict:
        """Get the logged-in user's profile"""
        return self._request_json('get', f'{API_URL}/me', headers=self._bearer(user_token))

    def get_user_playlists(self, user_token: str, limit: int = 50) -> list:
        """Get the logged-in user's playlists (raw Spotify playlist objects)"""
        data = self._request_json(
            'get',
            f'{API_URL}/me/playlists',
            headers=self._bearer(user_token),
            params={'limit': limit},
        )
        return data.get('items', [])

    def get_playlist_tracks(self, playlist_id: str, user_token: Optional[str] = None,
                            limit: int = 30) -> List[Song]:
        """
        Get the playable tracks of a playlist

        Args:
            playlist_id: Spotify playlist id
            user_token: Player's access token; client credentials are used if None
            limit: Maximum number of playlist items to fetch

        Returns:
            List of Song objects with preview clips (may be empty)
        """
        data = self._request_json(
            'get',
            f'{API_URL}/playlists/{playlist_id}/tracks',
            headers=self._bearer(user_token),
            params={
                'limit': limit,
                'fields': 'items(track(id,name,artists,preview_url,album(images)))',
            },
        )
        songs = [track_to_song(item.get('track')) for item in data.get('items', [])]
        songs = [s for s in songs if s is not None]
        logger.info(f"Playlist {playlist_id}: {len(songs)} playable tracks")
        return songs

    def search_tracks(self, query: str, limit: int = 20) -> List[Song]:
        """
        Search tracks (always with client credentials)

        Returns:
            List of Song objects with preview clips (may be empty)
        """
        data = self._request_json(
            'get',
            f'{API_URL}/search',
            headers=self._bearer(None),
            params={
                'q': query,
                'type': 'track',
                'limit': limit,
                'market': self.market,
            },
        )
        items = (data.get('tracks') or {}).get('items', [])
        songs = [track_to_song(track) for track in items]
        return [s for s in songs if s is not None]
