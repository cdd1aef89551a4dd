import os

# Configuration - read once from environment variables
LASTFM_API_KEY = os.environ.get('LASTFM_API_KEY')
LASTFM_API_URL = os.environ.get('LASTFM_API_URL', 'https://ws.audioscrobbler.com/2.0/')
LASTFM_WEB_URL = os.environ.get('LASTFM_WEB_URL', 'https://www.last.fm')

FONT_PATH = os.environ.get('FONT_PATH', './NotoSansCJKtc-Medium.ttf')
STATIC_DIR = os.environ.get('STATIC_DIR', 'static')

# 0 means one worker per tile
ARTWORK_WORKERS = int(os.environ.get('ARTWORK_WORKERS', 0))

# No timeout unless the operator sets one (requests waits forever by default)
HTTP_TIMEOUT = float(os.environ['HTTP_TIMEOUT']) if os.environ.get('HTTP_TIMEOUT') else None

RATE_LIMIT = os.environ.get('RATE_LIMIT', '120 per minute')

HOST = os.environ.get('HOST', '127.0.0.1')
PORT = int(os.environ.get('PORT', 8080))

SCRAPER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:80.0) Gecko/20100101 Firefox/80.0"
