#!/usr/bin/env python3
"""Smoke script for the availability endpoints of a running server."""

import sys
from datetime import date, timedelta

import httpx


BASE_URL = "http://127.0.0.1:8001"


def check_availability(company_id: str, service_id: str, slot_date: str, slot_time: str) -> bool:
    """Call the single-company check."""
    print("=" * 60)
    print("Testing POST /api/check-availability")
    print("=" * 60)

    payload = {"companyId": company_id, "serviceId": service_id, "date": slot_date, "time": slot_time}

    try:
        response = httpx.post(f"{BASE_URL}/api/check-availability", json=payload, timeout=30.0)
        response.raise_for_status()

        data = response.json()["data"]
        print(f"✅ Success! available={data['available']} reason={data['reason']}")
        print(f"   {data['availableWorkers']}/{data['totalWorkers']} workers free: {data['message']}")
        return True
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return False
    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def check_available_companies(service_id: str, slot_date: str, slot_time: str) -> bool:
    """Call the batch check across every company offering the service."""
    print("\n" + "=" * 60)
    print("Testing POST /api/get-available-companies")
    print("=" * 60)

    payload = {"serviceId": service_id, "date": slot_date, "time": slot_time}

    try:
        response = httpx.post(f"{BASE_URL}/api/get-available-companies", json=payload, timeout=30.0)
        response.raise_for_status()

        data = response.json()["data"]
        print(f"✅ Success! {data['availableCompanies']}/{data['totalCompanies']} companies available")
        for company in data["companies"]:
            print(f"  - {company['companyName']}: {company['message']}")
        return True
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return False
    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def main():
    """Run all checks."""
    print("\n🚀 Testing Availability API\n")

    # Check if server is running
    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0)
        print("✅ Server is running\n")
    except Exception:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn availability_engine.main:app --reload --port 8001")
        sys.exit(1)

    company_id = sys.argv[1] if len(sys.argv) > 1 else "company_456"
    service_id = sys.argv[2] if len(sys.argv) > 2 else "service_789"
    slot_date = (date.today() + timedelta(days=1)).isoformat()
    slot_time = "10:00 AM - 12:00 PM"

    check_availability(company_id, service_id, slot_date, slot_time)
    check_available_companies(service_id, slot_date, slot_time)

    print("\n" + "=" * 60)
    print("✅ Checks complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
