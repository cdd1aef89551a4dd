from flask import Flask, Response, request

import settings
from artwork import fetch_images
from collage import draw_collage, draw_error, encode, load_fonts
from sources import SourceUnavailable, fetch_tiles
from tiles import InvalidParameters, parse_bool, parse_query

app = Flask(__name__, static_folder=settings.STATIC_DIR, static_url_path="")

# Rate limiting
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[settings.RATE_LIMIT],
    storage_uri="memory://",
)

# Parsed once, shared read-only by every request
fonts = load_fonts(settings.FONT_PATH)

INVALID_PARAMETERS_MESSAGE = "Missing or invaild parameters"
FETCH_ERROR_MESSAGE = "Error fetching info or invalid username"


def build_collage(values):
    """Run the whole pipeline for one request. Always returns an image."""
    try:
        query = parse_query(values)
    except InvalidParameters as e:
        print(f"Invalid collage request: {e}")
        return draw_error(INVALID_PARAMETERS_MESSAGE, fonts), parse_bool(values.get("webp"))

    try:
        tiles = fetch_tiles(query)
    except SourceUnavailable as e:
        print(f"Error fetching tiles for {query.username}: {e}")
        return draw_error(FETCH_ERROR_MESSAGE, fonts), query.webp

    fetch_images(tiles)
    img = draw_collage(tiles, query.kind, query.rows, query.cols, query.info, query.playcount, fonts)
    return img, query.webp


@app.route("/collage", methods=["GET", "POST"])
def collage():
    """Collage image endpoint. Errors are rendered into the image, status is always 200."""
    img, webp = build_collage(request.values)
    data, mimetype = encode(img, webp)
    return Response(data, mimetype=mimetype)


@app.route("/")
def index():
    return app.send_static_file("index.html")


@app.route("/healthz")
@limiter.exempt
def healthz():
    """Health check endpoint for Docker/Traefik."""
    return "ok", 200


def init_app():
    """Check configuration at startup."""
    if not settings.LASTFM_API_KEY:
        print("WARNING: LASTFM_API_KEY not set. Album collages will fail.")


if __name__ == '__main__':
    init_app()
    app.run(host=settings.HOST, port=settings.PORT)
else:
    init_app()
