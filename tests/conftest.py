import json

import cv2
import numpy as np
import pytest
import requests

import collage
import sources
from tiles import CollageQuery


class FakeResponse:
    def __init__(self, status_code=200, content=b"", text=None):
        self.status_code = status_code
        self.content = content
        self.text = text if text is not None else content.decode("utf-8", "replace")
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)

    def close(self):
        self.closed = True


class FakeSession:
    """Stands in for requests.Session. Routes are url -> FakeResponse or exception."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, **kwargs):
        self.calls.append((url, params, kwargs))
        result = self.routes.get(url)
        if result is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(result, Exception):
            raise result
        return result


def png_bytes(color, size=300):
    img = np.zeros((size, size, 3), dtype=np.uint8)
    img[:] = color
    _, buffer = cv2.imencode('.png', img)
    return buffer.tobytes()


def json_response(payload, status_code=200):
    return FakeResponse(status_code, text=json.dumps(payload))


def album_entry(name, artist, playcount, image_url):
    return {
        "name": name,
        "playcount": str(playcount),
        "artist": {"name": artist},
        "image": [
            {"#text": image_url.replace("300x300", "34s"), "size": "small"},
            {"#text": image_url.replace("300x300", "64s"), "size": "medium"},
            {"#text": image_url.replace("300x300", "174s"), "size": "large"},
            {"#text": image_url, "size": "extralarge"},
        ] if image_url else [
            {"#text": "", "size": "small"},
            {"#text": "", "size": "medium"},
            {"#text": "", "size": "large"},
            {"#text": "", "size": "extralarge"},
        ],
    }


def listing_page(rows, total=None, kind="track"):
    """Minimal last.fm library page. rows are (artist, track, img_src, count_text)."""
    parts = ["<html><body>"]
    if total is not None:
        parts.append(f'<p class="metadata-display">{total}</p>')
    parts.append('<table class="chartlist"><tbody>')
    for artist, track, img_src, count_text in rows:
        if kind == "artist":
            image = f'<td class="chartlist-image"><span class="avatar"><img src="{img_src}"></span></td>' if img_src else '<td class="chartlist-image"></td>'
            parts.append(
                '<tr class="chartlist-row">'
                f'{image}'
                f'<td class="chartlist-name"><a href="#">{artist}</a></td>'
                f'<td class="chartlist-bar"><span class="chartlist-count-bar-value">{count_text}</span></td>'
                '</tr>'
            )
        else:
            image = f'<td class="chartlist-image"><span class="cover-art"><img src="{img_src}"></span></td>' if img_src else '<td class="chartlist-image"></td>'
            parts.append(
                '<tr class="chartlist-row">'
                f'{image}'
                f'<td class="chartlist-name"><a href="#">{track}</a></td>'
                f'<td class="chartlist-artist"><a href="#">{artist}</a></td>'
                f'<td class="chartlist-bar"><span class="chartlist-count-bar-value">{count_text}</span></td>'
                '</tr>'
            )
    parts.append("</tbody></table></body></html>")
    return FakeResponse(200, text="".join(parts))


@pytest.fixture
def fake_http(monkeypatch):
    """Replace both HTTP sessions with one FakeSession."""
    session = FakeSession()
    monkeypatch.setattr(sources, "http_session", session)
    monkeypatch.setattr(sources, "scrape_session", session)
    return session


@pytest.fixture(scope="session")
def fonts():
    return collage.load_fonts(None)


@pytest.fixture
def make_query():
    def _make(kind="album", rows=3, cols=3, period="overall", username="x", **flags):
        return CollageQuery(username, rows, cols, period, kind, **flags)
    return _make
