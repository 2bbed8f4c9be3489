#!/usr/bin/env python3
"""
Smoke script for a running gateway.

Creates a checkout, then polls its status once.

Usage:
    python smoke_checkout.py [base_url]
"""
import requests
import sys
import json


def smoke_checkout(base_url: str):
    """Create a checkout and poll its status."""

    payload = {
        "amount": 0.1,
        "currency": "USD",
        "user_id": "user_smoke_001",
        "store_id": "store_smoke_001",
        "service_id": "service_smoke_001",
        "emailId": "smoke@example.com",
        "successUrl": f"{base_url}/health",
        "failureUrl": f"{base_url}/health",
    }

    print(f"📨 Creating checkout at {base_url}")
    print("=" * 70)

    try:
        response = requests.post(f"{base_url}/api/payments/checkout", json=payload, timeout=60)
        print(f"HTTP {response.status_code}")
        print(json.dumps(response.json(), indent=2))

        if response.status_code != 200:
            return

        checkout_id = response.json()["checkoutId"]
        status = requests.get(
            f"{base_url}/api/payments/status/{checkout_id}",
            params={"retries": 1},
            timeout=60
        )
        print("=" * 70)
        print(f"Status HTTP {status.status_code}")
        print(json.dumps(status.json(), indent=2))

    except requests.exceptions.RequestException as e:
        print(f"❌ Request failed: {e}")
    except ValueError:
        print(f"❌ Non-JSON response: {response.text}")


if __name__ == "__main__":
    smoke_checkout(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8080")
