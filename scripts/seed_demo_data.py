#!/usr/bin/env python3
"""
Create demo auctions against a running backend.

Run with backend up: uvicorn app.main:app --reload (from backend dir)

Usage:
  python scripts/seed_demo_data.py
  python scripts/seed_demo_data.py --base http://localhost:8001

Creates three artworks for one artist, approves them as an admin, starts two
auctions, places a couple of bids on the first, and rejects the third.
Writes: scripts/demo_data.json with the created artwork IDs.
"""

import json
import os
import sys
import urllib.error
import urllib.request
from pathlib import Path

# Default: backend on port 8001 (Docker or local)
BASE_URL = os.environ.get("API_BASE", "http://localhost:8001").rstrip("/")

ARTIST = {"X-User-Id": "1", "X-User-Role": "artist"}
ADMIN = {"X-User-Id": "100", "X-User-Role": "admin"}
BUYERS = [{"X-User-Id": "2"}, {"X-User-Id": "3"}]


def request(method: str, path: str, body: dict | None = None, headers: dict | None = None) -> dict:
    url = f"{BASE_URL}{path}"
    data = None
    all_headers = dict(headers or {})
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        all_headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=data, method=method, headers=all_headers)
    try:
        with urllib.request.urlopen(req, timeout=30) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        err_body = e.read().decode("utf-8") if e.fp else ""
        raise SystemExit(f"HTTP {e.code} {path}: {err_body}")
    except urllib.error.URLError as e:
        raise SystemExit(f"Request failed (is the backend running at {BASE_URL}?): {e.reason}")


def create_artwork(title: str, description: str, starting_price: float) -> dict:
    body = {"title": title, "description": description, "starting_price": starting_price}
    return request("POST", "/artworks", body=body, headers=ARTIST)


def main() -> None:
    global BASE_URL
    if "--help" in sys.argv or "-h" in sys.argv:
        print(__doc__)
        sys.exit(0)
    for i, arg in enumerate(sys.argv):
        if arg == "--base" and i + 1 < len(sys.argv):
            BASE_URL = sys.argv[i + 1].rstrip("/")
            break

    print(f"Using API base: {BASE_URL}")
    print("Creating demo auctions...")

    harbour = create_artwork("Harbour at Dusk", "Oil on linen, 60x80cm", 1000)
    garden = create_artwork("Night Garden", "Gouache on paper", 450)
    sketch = create_artwork("Untitled Sketch", "Pencil study", 50)
    for artwork in (harbour, garden, sketch):
        print(f"  Artwork {artwork['id']}: {artwork['title']} ({artwork['status']})")

    request("POST", f"/admin/artworks/{harbour['id']}/approve", headers=ADMIN)
    request("POST", f"/admin/artworks/{garden['id']}/approve", headers=ADMIN)
    request("POST", f"/admin/artworks/{sketch['id']}/reject", body={"reason": "Image resolution too low"}, headers=ADMIN)

    request("POST", f"/artworks/{harbour['id']}/auction", body={"duration_hours": 24}, headers=ARTIST)
    request("POST", f"/artworks/{garden['id']}/auction", body={"duration_hours": 0.5}, headers=ARTIST)

    request("POST", f"/bids/{harbour['id']}", body={"amount": 1100}, headers=BUYERS[0])
    placed = request("POST", f"/bids/{harbour['id']}", body={"amount": 1250}, headers=BUYERS[1])
    print(f"  Harbour current bid: {placed['current_bid']} after {placed['total_bids']} bids")

    out = Path(__file__).parent / "demo_data.json"
    out.write_text(json.dumps({
        "active": [harbour["id"], garden["id"]],
        "rejected": [sketch["id"]],
    }, indent=2))
    print(f"  Wrote: {out}")
    print("Done.")


if __name__ == "__main__":
    main()
