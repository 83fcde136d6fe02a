#!/usr/bin/env python3
"""
Quick script to exercise the Call Retry Scheduler API by hand.
Run the server first: uvicorn call_retry.main:app --reload
"""

import requests

BASE_URL = "http://127.0.0.1:8000"


def run_checks():
    print("Checking Call Retry Scheduler API...\n")

    # 1: Root endpoint
    print("1. Root endpoint...")
    response = requests.get(f"{BASE_URL}/")
    print(f"   Status: {response.status_code}")
    print(f"   Response: {response.json()}\n")

    # 2: Timezone lookup
    print("2. Timezone for an Afghan number...")
    response = requests.get(f"{BASE_URL}/timezone", params={"phone": "+93701234567"})
    data = response.json()
    print(f"   Timezone: {data['timezone']} (prefix {data['country_code']})\n")

    # 3: First retry after no answer
    print("3. Retry decision after first unanswered call...")
    response = requests.post(
        f"{BASE_URL}/retry/decide",
        json={
            "ended_reason": "customer-did-not-answer",
            "attempts_so_far": 0,
            "phone_number": "+93701234567",
        }
    )
    data = response.json()
    print(f"   Kind: {data['kind']}")
    print(f"   Next call: {data['next_call_time_utc']} ({data['delay_applied_minutes']} min)")
    print(f"   Adjusted for business hours: {data['was_adjusted_for_business_hours']}\n")

    # 4: Exhausted
    print("4. Retry decision after the last attempt...")
    response = requests.post(
        f"{BASE_URL}/retry/decide",
        json={"ended_reason": "customer-busy", "attempts_so_far": 3}
    )
    data = response.json()
    print(f"   Kind: {data['kind']}, fallback: {data['fallback_action']}\n")

    # 5: Business hours pre-flight
    print("5. Business hours check for a UK number...")
    response = requests.get(f"{BASE_URL}/business-hours/check", params={"phone": "+447700900123"})
    data = response.json()
    print(f"   Within hours: {data['within_business_hours']}, next: {data['next_callable_at']}\n")

    print("All API checks completed!")


if __name__ == "__main__":
    try:
        run_checks()
    except requests.exceptions.ConnectionError:
        print("Error: Could not connect to server.")
        print("Please start the server first:")
        print("  uvicorn call_retry.main:app --reload")
