"""Tile sources: the last.fm JSON API for albums, the library pages for artists and tracks."""
import math
import re
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

import settings
from tiles import ALBUM, ARTIST, TRACK, LIBRARY_PERIODS, Tile

# Extra albums requested to make up for entries without artwork
OVERFETCH = 15
# Index into the API image list: 0 small, 1 medium, 2 large, 3 extralarge (300x300)
API_IMAGE_INDEX = 3

PAGE_SIZE = 50
MAX_PAGES = 3

# last.fm's grey star "no artwork" image
PLACEHOLDER_IMAGE_ID = "2a96cbd8b46e442fc41c2b86b821562f"

LEADING_NUMBER_PATTERN = re.compile(r'[0-9]+(?:,[0-9]+)*')

# Reusable session for the API and artwork downloads
http_session = requests.Session()

# Separate session for the library pages, which want a browser user agent
scrape_session = requests.Session()
scrape_session.headers.update({'User-Agent': settings.SCRAPER_USER_AGENT})


class SourceUnavailable(Exception):
    """The upstream source failed; the whole request fails with it."""


def to_webp(url):
    """Point an artwork URL at the webp rendition of the same image."""
    for ext in ('.jpg', '.png', '.gif'):
        url = url.replace(ext, '.webp', 1)
    return url


def parse_human_number(text):
    """Leading number of a label like '1,234 scrobbles'. Returns 0 when there is none."""
    match = LEADING_NUMBER_PATTERN.match((text or "").lstrip())
    if not match:
        return 0
    return int(match.group(0).replace(',', ''))


class AlbumChartSource:
    """Top albums from user.gettopalbums."""

    def fetch_tiles(self, query):
        params = {
            'method': 'user.gettopalbums',
            'format': 'json',
            'api_key': settings.LASTFM_API_KEY,
            'user': query.username,
            'period': query.period,
            'limit': query.needed + OVERFETCH,
        }
        try:
            response = http_session.get(settings.LASTFM_API_URL, params=params,
                                        allow_redirects=False, timeout=settings.HTTP_TIMEOUT)
        except requests.RequestException as e:
            print(f"Last.fm API request failed for {query.username}: {e}")
            raise SourceUnavailable(str(e))
        if response.status_code != 200:
            print(f"Last.fm API returned {response.status_code} for {query.username}")
            raise SourceUnavailable(f"status {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            print(f"Invalid JSON from Last.fm API for {query.username}: {e}")
            raise SourceUnavailable(str(e))
        if not isinstance(data, dict):
            print(f"Unexpected Last.fm API response for {query.username}")
            raise SourceUnavailable("response is not an object")
        if 'error' in data:
            print(f"Last.fm API error for {query.username}: {data.get('message')} (code {data['error']})")
            raise SourceUnavailable(data.get('message', 'Last.fm API error'))

        topalbums = data.get('topalbums')
        if not isinstance(topalbums, dict):
            print(f"Unexpected Last.fm API response for {query.username}")
            raise SourceUnavailable("missing topalbums")

        albums = topalbums.get('album') or []
        if isinstance(albums, dict):
            albums = [albums]

        tiles = []
        for album in albums:
            if len(tiles) >= query.needed:
                break
            if not isinstance(album, dict):
                continue
            img_url = _api_image_url(album)
            if not img_url:
                continue
            tiles.append(Tile(
                ALBUM,
                artist=_api_artist_name(album),
                album=album.get('name', ''),
                play_count=parse_human_number(str(album.get('playcount', ''))),
                image_url=to_webp(img_url),
            ))
        return tiles


def _api_image_url(album):
    images = album.get('image')
    if not isinstance(images, list) or len(images) <= API_IMAGE_INDEX:
        return ''
    image = images[API_IMAGE_INDEX]
    return image.get('#text') or '' if isinstance(image, dict) else ''


def _api_artist_name(album):
    artist = album.get('artist')
    return artist.get('name', '') if isinstance(artist, dict) else ''


class LibraryListingSource:
    """Top artists or tracks scraped from the user's library pages."""

    # kind -> (artist selector, track selector, image selector, low-res marker, high-res marker)
    LAYOUTS = {
        ARTIST: ('.chartlist-name > a', None, '.chartlist-image > .avatar > img', 'avatar70s', 'avatar300s'),
        TRACK: ('.chartlist-artist > a', '.chartlist-name > a', '.chartlist-image > .cover-art > img', '64s', '300x300'),
    }

    def __init__(self, kind):
        self.kind = kind

    def page_url(self, query, page):
        return (f"{settings.LASTFM_WEB_URL}/user/{quote(query.username, safe='')}/library/{self.kind}s"
                f"?date_preset={LIBRARY_PERIODS[query.period]}&page={page}")

    def fetch_page(self, url):
        try:
            response = scrape_session.get(url, timeout=settings.HTTP_TIMEOUT)
        except requests.RequestException as e:
            print(f"Request URL: {url} failed with error: {e}")
            raise SourceUnavailable(str(e))
        if response.status_code != 200:
            print(f"Request URL: {url} failed with status: {response.status_code}")
            raise SourceUnavailable(f"status {response.status_code}")
        return response.text

    def parse_row(self, row):
        """Tile for one chartlist row, or None for rows without usable artwork."""
        artist_sel, track_sel, image_sel, low_res, high_res = self.LAYOUTS[self.kind]
        img = row.select_one(image_sel)
        img_url = img.get('src', '') if img is not None else ''
        if not img_url:
            return None
        img_url = img_url.replace(low_res, high_res, 1)
        if PLACEHOLDER_IMAGE_ID in img_url:
            return None
        return Tile(
            self.kind,
            artist=_child_text(row, artist_sel),
            track=_child_text(row, track_sel) if track_sel else "",
            play_count=parse_human_number(_child_text(row, '.chartlist-count-bar-value')),
            image_url=to_webp(img_url),
        )

    def fetch_tiles(self, query):
        limit = query.needed + OVERFETCH
        pages = min(MAX_PAGES, math.ceil(limit / PAGE_SIZE))
        total = None
        tiles = []
        for page in range(pages):
            # Stop once the listing has no items left for this page
            if total is not None and total <= page * PAGE_SIZE:
                break
            soup = BeautifulSoup(self.fetch_page(self.page_url(query, page + 1)), "html.parser")
            metadata = soup.select_one("p.metadata-display")
            if metadata is not None:
                total = parse_human_number(metadata.get_text())
            for row in soup.select("tr.chartlist-row"):
                tile = self.parse_row(row)
                if tile is not None and len(tiles) < query.needed:
                    tiles.append(tile)
        return tiles


def _child_text(element, selector):
    child = element.select_one(selector)
    return child.get_text(strip=True) if child is not None else ""


def source_for(kind):
    """Source strategy for a collage type."""
    if kind == ALBUM:
        return AlbumChartSource()
    if kind in (ARTIST, TRACK):
        return LibraryListingSource(kind)
    raise ValueError(f"No source for collage type {kind!r}")


def fetch_tiles(query):
    """Ordered tiles for the query (at most rows*cols). Raises SourceUnavailable."""
    return source_for(query.kind).fetch_tiles(query)
