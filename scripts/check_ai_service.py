#!/usr/bin/env python3
"""
Ad hoc check that the AI service is up and answering.

Usage:
  python scripts/check_ai_service.py                       # uses $AI_SERVICE_URL or http://localhost:8000
  python scripts/check_ai_service.py http://ai.internal:8000

Hits /health, / and a sample /query and prints what comes back. Reads the
URL from the environment directly so it runs without backend settings.
"""
import json
import os
import sys

import httpx

SAMPLE_QUERY = {
    "class_id": "test-class-123",
    "question": "What is this course about?",
    "user_id": "test-user",
}


def _show(label: str, response: httpx.Response) -> None:
    print(f"{label}: HTTP {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    print()


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else os.environ.get("AI_SERVICE_URL", "http://localhost:8000")
    print(f"Checking AI service at {base_url}\n")

    try:
        with httpx.Client(base_url=base_url, timeout=httpx.Timeout(120.0)) as client:
            print("1. Health endpoint")
            _show("GET /health", client.get("/health"))

            print("2. Root endpoint")
            _show("GET /", client.get("/"))

            print("3. Query endpoint (sample data)")
            _show("POST /query", client.post("/query", json=SAMPLE_QUERY))
    except httpx.HTTPError as e:
        print(f"Connection check failed: {type(e).__name__}: {e}")
        print("\nTroubleshooting:")
        print(f"1. Make sure the AI service is running at {base_url}")
        print("2. Check that it accepts requests from this host")
        print("3. Verify AI_SERVICE_URL in the backend's .env")
        return 1

    print("All checks completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
