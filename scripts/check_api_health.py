#!/usr/bin/env python3
"""
API Health Check Script - Verifies API endpoints and response formats.
Run this to check that the web frontend will work with a deployed API.

Usage: python3 scripts/check_api_health.py [BASE_URL ...]
"""

import json
import sys
import urllib.error
import urllib.request
from typing import Any

DEFAULT_URLS = ["http://localhost:5000"]


def fetch_json(url: str, timeout: int = 10) -> Any:
    """Fetch JSON from URL."""
    req = urllib.request.Request(url, headers={"User-Agent": "GreenGrid-HealthCheck/1.0"})
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return json.loads(response.read().decode())


def check_endpoint(
    base_url: str, endpoint: str, expected_keys: list[str]
) -> tuple[bool, str]:
    """Check an endpoint returns expected JSON structure."""
    url = f"{base_url}{endpoint}"
    try:
        data = fetch_json(url)
        missing_keys = [k for k in expected_keys if k not in data]
        if missing_keys:
            return False, f"Missing keys: {missing_keys}"
        return True, f"OK ({len(str(data))} bytes)"
    except urllib.error.URLError as e:
        return False, f"Request failed: {e}"
    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {e}"


def check_list_format(
    base_url: str, endpoint: str, required_fields: list[str]
) -> tuple[bool, str]:
    """Check a list endpoint returns a raw array of camelCase records."""
    try:
        data = fetch_json(f"{base_url}{endpoint}")

        if not isinstance(data, list):
            return False, f"ERROR: Expected an array, got {type(data).__name__}"
        if not data:
            return True, "OK - 0 records (empty)"

        missing = [f for f in required_fields if f not in data[0]]
        if missing:
            return False, f"ERROR: Record missing fields: {missing}"

        return True, f"OK - {len(data)} records"
    except Exception as e:
        return False, f"FAILED: {e}"


def main(argv: list[str]) -> int:
    print("=" * 60)
    print("GreenGrid API Health Check")
    print("=" * 60)

    all_passed = True
    checks = [
        ("Health", lambda url: check_endpoint(url, "/api/health", ["status", "version"])),
        (
            "Routes",
            lambda url: check_list_format(
                url, "/api/routes", ["id", "truckName", "region", "schedule", "geoJson"]
            ),
        ),
        (
            "Notifications",
            lambda url: check_list_format(
                url, "/api/notifications", ["id", "message", "date", "type"]
            ),
        ),
        (
            "Feedback",
            lambda url: check_list_format(
                url, "/api/feedback", ["id", "name", "rating", "comment", "date"]
            ),
        ),
    ]

    for base_url in argv or DEFAULT_URLS:
        base_url = base_url.rstrip("/")
        print(f"\n{base_url}")
        print("-" * 40)

        for name, check in checks:
            ok, msg = check(base_url)
            status = "✓" if ok else "✗"
            print(f"  {status} {name}: {msg}")
            all_passed = all_passed and ok

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ All checks passed")
        return 0
    print("✗ Some checks failed")
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
