#!/usr/bin/env python3
"""
Houseboard Quickstart — award points, read the standings.

Submits a handful of events, tries a duplicate and an invalid one, then
prints the leaderboard for each time window and the store stats.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: houseboard serve (http://localhost:5000)
"""

import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

import httpx

BASE = os.environ.get("HOUSEBOARD_API_URL", "http://localhost:5000")


def main():
    run_id = uuid.uuid4().hex[:6]
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  houseboard serve")
        sys.exit(1)
    print(f"  Status: {resp.json()['status']} at {resp.json()['timestamp']}")

    # ── Submit events ─────────────────────────────────────────────
    print("\n1. Awarding points...")
    now = datetime.now(timezone.utc)
    awards = [
        ("Gryff", 10, now),
        ("Slyth", 15, now - timedelta(minutes=2)),
        ("Raven", 7, now - timedelta(minutes=20)),
        ("Huff", 12, now - timedelta(hours=3)),
    ]
    for i, (house, points, when) in enumerate(awards):
        resp = client.post("/api/events", json={
            "id": f"quickstart-{run_id}-{i}",
            "category": house,
            "points": points,
            "timestamp": when.isoformat(),
        })
        assert resp.status_code == 201, f"Failed: {resp.text}"
        print(f"   +{points:<3} {house}  ({when:%H:%M:%S})")

    # ── Duplicate and invalid submissions ─────────────────────────
    print("\n2. Resubmitting an existing id...")
    resp = client.post("/api/events", json={
        "id": f"quickstart-{run_id}-0", "category": "Gryff", "points": 10,
    })
    print(f"   {resp.status_code}: {resp.json()['error']}")

    print("\n3. Submitting an unknown house...")
    resp = client.post("/api/events", json={
        "id": f"quickstart-{run_id}-bad", "category": "Dragon", "points": 1,
    })
    print(f"   {resp.status_code}: {resp.json()['error']}")

    # ── Standings per window ──────────────────────────────────────
    for step, window in enumerate(["5min", "1hour", "all"], start=4):
        print(f"\n{step}. Leaderboard ({window}):")
        board = client.get("/api/leaderboard", params={"timeWindow": window}).json()
        for rank, entry in enumerate(board["leaderboard"], start=1):
            print(f"   {rank}. {entry['house']:<6} {entry['points']:>5} pts  ({entry['events']} events)")

    # ── Stats ─────────────────────────────────────────────────────
    stats = client.get("/api/stats").json()["stats"]
    print(f"\n✓ Store holds {stats['totalEvents']} events, {stats['totalPoints']} points.")
    print(f"  Oldest: {stats['oldestEvent']}")
    print(f"  Newest: {stats['newestEvent']}")


if __name__ == "__main__":
    main()
