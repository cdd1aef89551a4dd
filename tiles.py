"""Tile records and the validated collage query."""

# Collage types
ALBUM = "album"
ARTIST = "artist"
TRACK = "track"
KINDS = (ALBUM, ARTIST, TRACK)

PERIODS = ("7day", "1month", "3month", "6month", "12month", "overall")

# Period names as the last.fm library pages spell them
LIBRARY_PERIODS = {
    "7day": "LAST_7_DAYS",
    "1month": "LAST_30_DAYS",
    "3month": "LAST_90_DAYS",
    "6month": "LAST_180_DAYS",
    "12month": "LAST_365_DAYS",
    "overall": "ALL",
}

MIN_GRID = 1
MAX_GRID = 11

_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")


class InvalidParameters(ValueError):
    """Request parameters are missing or out of range."""


class Tile:
    """One grid cell: labels and play count from the source, artwork from the fetcher."""
    __slots__ = ['kind', 'artist', 'album', 'track', 'play_count', 'image_url', 'image']

    def __init__(self, kind, artist, play_count, image_url, album="", track=""):
        self.kind = kind
        self.artist = artist
        self.album = album
        self.track = track
        self.play_count = play_count
        self.image_url = image_url
        self.image = None

    @property
    def primary_label(self):
        if self.kind == ALBUM:
            return self.album
        if self.kind == TRACK:
            return self.track
        return None

    @property
    def secondary_label(self):
        return self.artist

    def attach_image(self, image):
        """Store decoded artwork. Happens at most once per tile."""
        if self.image is not None:
            raise RuntimeError(f"Artwork already attached for {self.image_url}")
        self.image = image

    def __repr__(self):
        return f"Tile({self.kind!r}, {self.artist!r}, {self.primary_label!r}, {self.play_count})"


def parse_bool(value):
    """Lenient boolean flag: anything that isn't a known true spelling is false."""
    return (value or "").strip() in _TRUE_VALUES


def _parse_grid_size(value):
    try:
        size = int((value or "").strip())
    except ValueError:
        raise InvalidParameters(f"Not an integer: {value!r}")
    if not MIN_GRID <= size <= MAX_GRID:
        raise InvalidParameters(f"Grid size out of range: {size}")
    return size


class CollageQuery:
    __slots__ = ['username', 'rows', 'cols', 'period', 'kind', 'info', 'playcount', 'webp']

    def __init__(self, username, rows, cols, period, kind, info=False, playcount=False, webp=False):
        self.username = username
        self.rows = rows
        self.cols = cols
        self.period = period
        self.kind = kind
        self.info = info
        self.playcount = playcount
        self.webp = webp

    @property
    def needed(self):
        """Number of grid cells, and so the maximum number of tiles."""
        return self.rows * self.cols


def parse_query(values):
    """Build a CollageQuery from request values (any mapping with .get).

    Raises InvalidParameters when a required field is missing or out of range.
    """
    username = (values.get("username") or "").strip()
    if not username:
        raise InvalidParameters("Missing username")
    rows = _parse_grid_size(values.get("rows"))
    cols = _parse_grid_size(values.get("cols"))
    period = values.get("period")
    if period not in PERIODS:
        raise InvalidParameters(f"Unknown period: {period!r}")
    kind = values.get("type")
    if kind not in KINDS:
        raise InvalidParameters(f"Unknown collage type: {kind!r}")
    return CollageQuery(
        username, rows, cols, period, kind,
        info=parse_bool(values.get("info")),
        playcount=parse_bool(values.get("playcount")),
        webp=parse_bool(values.get("webp")),
    )
