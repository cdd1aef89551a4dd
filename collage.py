"""Grid composition, text overlay and output encoding."""
import os

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from tiles import ALBUM, TRACK

TILE_SIZE = 300

FONT_SIZE = 18
LINE_SPACING = 4
STROKE = 2
MARGIN = 2
TEXT_INDENT = 10

ERROR_SIZE = (640, 65)
ERROR_FONT_SIZE = 30

FG_COLOR = (255, 255, 255)
SHADOW_COLOR = (0, 0, 0)

WEBP_QUALITY = 90
JPEG_QUALITY = 85


class Fonts:
    """Parsed fonts, loaded once at startup and shared read-only between requests."""
    __slots__ = ['tile', 'error']

    def __init__(self, tile, error):
        self.tile = tile
        self.error = error


def load_fonts(path=None):
    """Load the collage fonts from a TrueType file, or Pillow's bundled font if it is missing."""
    if path and os.path.isfile(path):
        return Fonts(ImageFont.truetype(path, FONT_SIZE), ImageFont.truetype(path, ERROR_FONT_SIZE))
    print(f"WARNING: font {path} not found, using Pillow's default font")
    return Fonts(ImageFont.load_default(FONT_SIZE), ImageFont.load_default(ERROR_FONT_SIZE))


def tile_lines(tile, info, playcount):
    """Text lines shown on a tile, top to bottom."""
    lines = []
    if info:
        if tile.kind in (ALBUM, TRACK):
            lines.append(tile.primary_label)
        lines.append(tile.secondary_label)
    if playcount:
        lines.append(f"{tile.play_count} plays")
    return lines


def stroke_offsets(radius=STROKE):
    """Diagonal neighbourhood used for the outline pass (no axis-aligned offsets, no centre)."""
    return [(j, k)
            for j in range(-radius, radius + 1)
            for k in range(-radius, radius + 1)
            if j != 0 and k != 0]


def draw_text_with_stroke(draw, x, y, lines, font, font_size=FONT_SIZE):
    """Draw lines with a black outline. (x, y) is the top-left corner of the text block."""
    for i, line in enumerate(lines):
        if not line:
            continue
        xx = x + TEXT_INDENT
        yy = y + (LINE_SPACING + font_size) * (i + 1)
        for j, k in stroke_offsets():
            draw.text((xx + j, yy + k), line, font=font, fill=SHADOW_COLOR, anchor="ls")
        draw.text((xx, yy), line, font=font, fill=FG_COLOR, anchor="ls")


def draw_collage(tiles, kind, rows, cols, info, playcount, fonts):
    """Compose tiles into a (rows*300, cols*300) BGR image.

    Cell i sits at column i % cols, row i // cols. Tiles without an image stay
    black. Text is drawn per cell, so it never bleeds into a neighbour.
    """
    dim = TILE_SIZE
    canvas = np.zeros((rows * dim, cols * dim, 3), dtype=np.uint8)
    for i, tile in enumerate(tiles):
        x = (i % cols) * dim
        y = (i // cols) * dim
        if tile.image is not None:
            h = min(tile.image.shape[0], dim)
            w = min(tile.image.shape[1], dim)
            canvas[y:y + h, x:x + w] = tile.image[:h, :w]
        if info or playcount:
            lines = tile_lines(tile, info, playcount)
            # Both text colours are grey levels, so drawing on BGR data directly is fine
            cell = Image.fromarray(np.ascontiguousarray(canvas[y:y + dim, x:x + dim]))
            draw_text_with_stroke(ImageDraw.Draw(cell), MARGIN, MARGIN, lines, fonts.tile)
            canvas[y:y + dim, x:x + dim] = np.asarray(cell)
    return canvas


def draw_error(text, fonts):
    """Small black image with a single line of white text."""
    width, height = ERROR_SIZE
    img = Image.new("RGB", (width, height), SHADOW_COLOR)
    ImageDraw.Draw(img).text((10, 10 + ERROR_FONT_SIZE), text, font=fonts.error, fill=FG_COLOR, anchor="ls")
    return np.array(img)


def encode(img, webp=False):
    """Encode a BGR image. Returns (bytes, mimetype)."""
    if webp:
        ext, params, mimetype = '.webp', [cv2.IMWRITE_WEBP_QUALITY, WEBP_QUALITY], "image/webp"
    else:
        ext, params, mimetype = '.jpg', [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY], "image/jpeg"
    ok, buffer = cv2.imencode(ext, img, params)
    if not ok:
        raise RuntimeError(f"Could not encode {ext} image of shape {img.shape}")
    return buffer.tobytes(), mimetype
