#!/usr/bin/env python3
"""
Smoke test for a Dealer Commissions deployment
Tests that the report pages are accessible and working

Usage:
    python smoke_test.py [base_url]
"""
import requests
import sys

# Base URL - override with the first argument
BASE_URL = "http://localhost:8000"

# Routes to test
ROUTES = [
    ("/commissions", "Commission Report"),
    ("/commissions/api/weeks", "Week Picker"),
    ("/commissions/api/report", "Report JSON"),
    ("/commissions/logs", "Logged Reports"),
]

def test_route(base_url, path, name):
    """Test a single route"""
    url = base_url + path
    try:
        response = requests.get(url, timeout=10)
        if response.status_code == 200:
            print(f"✓ {name:20} - OK (200)")
            return True
        else:
            print(f"✗ {name:20} - FAILED (Status: {response.status_code})")
            return False
    except requests.exceptions.RequestException as e:
        print(f"✗ {name:20} - ERROR: {str(e)}")
        return False

def main():
    """Run smoke tests"""
    base_url = sys.argv[1].rstrip("/") if len(sys.argv) > 1 else BASE_URL
    print(f"\n🔍 Running smoke tests on {base_url}\n")
    print("-" * 50)

    results = []
    for path, name in ROUTES:
        results.append(test_route(base_url, path, name))

    print("-" * 50)
    passed = sum(results)
    total = len(results)
    print(f"\n✅ Passed: {passed}/{total}")

    if passed == total:
        print("🎉 All smoke tests passed!")
        sys.exit(0)
    else:
        print("❌ Some tests failed")
        sys.exit(1)

if __name__ == "__main__":
    main()
