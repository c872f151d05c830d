#!/usr/bin/env python3
"""Script to verify OSRM connectivity and turn-by-turn parsing."""

import asyncio
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from facility_map.config import settings
from facility_map.services.outputs.route_formatter import format_distance, format_duration
from facility_map.services.routing.adapter import RoutingEngineAdapter
from facility_map.services.routing.errors import RoutingError
from facility_map.services.routing.osrm_client import OSRMClient, check_health


def main():
    print("=" * 60)
    print("OSRM Connection Test")
    print("=" * 60)
    print()

    print("1. Checking OSRM configuration...")
    if not settings.osrm_base_url:
        print("   [ERROR] OSRM base URL is not configured")
        print("   Please set FMAP_OSRM_BASE_URL in your .env file")
        return 1
    print(f"   [OK] OSRM Base URL: {settings.osrm_base_url}")
    print(f"   [OK] OSRM Profile: {settings.osrm_profile}")
    print()

    print("2. Testing OSRM health check...")
    if not check_health():
        print("   [ERROR] OSRM service is not responding")
        return 1
    print("   [OK] OSRM service is healthy and accessible!")
    print()

    print("3. Testing a route around the map center...")
    lat, lng = settings.map_center
    adapter = RoutingEngineAdapter(OSRMClient())
    try:
        result = asyncio.run(adapter.compute_route((lat, lng), (lat + 0.01, lng + 0.01)))
    except RoutingError as e:
        print(f"   [ERROR] {e.kind.value}: {e.message}")
        return 1
    print(f"   [OK] Distance: {format_distance(result.distance_meters)}, duration: {format_duration(result.duration_seconds)}")
    for instruction in result.instructions[:5]:
        print(f"   [OK] {instruction.maneuver.value:<8} {instruction.text} ({format_distance(instruction.distance_meters)})")
    print()

    print("=" * 60)
    print("[SUCCESS] OSRM is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
