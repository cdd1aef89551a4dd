from concurrent.futures import ThreadPoolExecutor, as_completed

import cv2
import numpy as np
import requests

import settings
import sources


def _fetch_one_image(tile):
    """Download and decode one tile's artwork. Failures leave the tile without an image."""
    try:
        # Redirects are not followed: last.fm redirects missing webp renditions to animated gifs
        response = sources.http_session.get(tile.image_url, allow_redirects=False,
                                            timeout=settings.HTTP_TIMEOUT)
    except requests.RequestException as e:
        print(f"Failed to fetch img url: {tile.image_url} error: {e}")
        return False
    try:
        if response.status_code != 200:
            print(f"Failed to fetch img url: {tile.image_url} status: {response.status_code}")
            return False
        nparr = np.frombuffer(response.content, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None
        if img is None:
            print(f"Could not decode image: {tile.image_url}")
            return False
        tile.attach_image(img)
        return True
    finally:
        response.close()


def fetch_images(tiles, max_workers=None):
    """Fetch artwork for every tile in parallel and wait for all of them.

    Each task writes only to its own tile, so no locking is needed. Returns the
    number of tiles that got an image.
    """
    if not tiles:
        return 0
    if not max_workers:
        max_workers = settings.ARTWORK_WORKERS or len(tiles)

    fetched = 0
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_fetch_one_image, tile) for tile in tiles]
        for future in as_completed(futures):
            try:
                if future.result():
                    fetched += 1
            except Exception as e:
                print(f"Artwork task failed: {e}")
    print(f"Fetched {fetched}/{len(tiles)} images")
    return fetched
