# smoke_api.py: API endpoint smoke checks

"""
Run this against a live server to exercise all API endpoints.
Make sure the API server is running first:
  uvicorn quantum_sim.api.main:app --host 0.0.0.0 --port 8000 --reload
"""

import sys

import requests

from quantum_sim.bigquery.datasets import DEMO_QUERIES

BASE_URL = "http://localhost:8000"
DEMO = DEMO_QUERIES['LAUNCH_TIMING']


def main():
    print("=" * 60)
    print("API ENDPOINT SMOKE CHECKS")
    print("=" * 60)

    # ──────────────────────────────────────────────────────────
    # 1: Root
    # ──────────────────────────────────────────────────────────
    print("\n1️⃣  Root Endpoint: GET /")
    try:
        r = requests.get(f"{BASE_URL}/")
        print(f"   Status: {r.status_code}")
        data = r.json()
        print(f"   Name: {data.get('name', 'N/A')}")
        print(f"   Version: {data.get('version', 'N/A')}")
    except requests.RequestException as e:
        print(f"   ❌ Connection failed: {e}")
        print("   Make sure API server is running!")
        sys.exit(1)

    # ──────────────────────────────────────────────────────────
    # 2: Health
    # ──────────────────────────────────────────────────────────
    print("\n2️⃣  Health Check: GET /health?deep=true")
    r = requests.get(f"{BASE_URL}/health", params={'deep': 'true'})
    health = r.json()
    print(f"   Status: {health.get('status', 'N/A')}")
    print(f"   BigQuery Configured: {health.get('bigquery_configured', False)}")
    print(f"   Connection OK: {health.get('connection_ok')}")
    for err in health.get('configuration_errors', []):
        print(f"   ⚠️  {err}")

    # ──────────────────────────────────────────────────────────
    # 3: Scenarios
    # ──────────────────────────────────────────────────────────
    print("\n3️⃣  Scenarios Endpoint: POST /api/scenarios")
    r = requests.post(f"{BASE_URL}/api/scenarios", json={
        'query': DEMO['query'],
        'context': DEMO['context'],
    }, timeout=300)
    body = r.json()
    scenarios = body.get('data') or []
    if body.get('success'):
        print(f"   Scenarios: {len(scenarios)} in {body['processingTime']} ms")
        for s in scenarios:
            print(f"   • {s['title']} ({s['confidence']}%)")
    else:
        print(f"   ❌ Status: {r.status_code}")
        print(f"   Error: {body.get('error', 'N/A')}")

    # ──────────────────────────────────────────────────────────
    # 4: Forecast
    # ──────────────────────────────────────────────────────────
    print("\n4️⃣  Forecast Endpoint: POST /api/forecast")
    r = requests.post(f"{BASE_URL}/api/forecast", json={
        'baseScenario': {'id': 'base_scenario', 'title': 'Smoke check',
                         'description': DEMO['query']},
        'variations': [
            {'name': s['title'], 'description': s['description']}
            for s in scenarios
        ] or [{'name': 'Realistic', 'description': 'Baseline'}],
        'timeHorizon': 12,
    }, timeout=300)
    body = r.json()
    if body.get('success'):
        for f in body['data']['forecasts']:
            summary = f['summary']
            print(f"   • {f['variationName']}: ${summary['totalRevenue']:,.0f} "
                  f"| risk {summary['riskLevel']}")
    else:
        print(f"   ❌ Status: {r.status_code}")
        print(f"   Error: {body.get('error', 'N/A')}")

    # ──────────────────────────────────────────────────────────
    # 5: Vector search
    # ──────────────────────────────────────────────────────────
    print("\n5️⃣  Vector Search Endpoint: GET /api/vector-search")
    r = requests.get(f"{BASE_URL}/api/vector-search", params={
        'situation': DEMO['query'],
        'industry': DEMO['context']['industry'],
        'limit': 3,
    })
    body = r.json()
    if body.get('success'):
        for case in body['data']:
            print(f"   • {case['company']} ({case['similarity']:.2f})")
    elif r.status_code == 500:
        print(f"   ⚠️  {body.get('error')} (expected without BigQuery credentials)")
    else:
        print(f"   ❌ Status: {r.status_code}")

    print("\n" + "=" * 60)
    print("✅ All endpoint checks complete!")
    print("=" * 60)
    print("\nNext steps:")
    print("  1. Open http://localhost:8000/docs for Swagger UI")
    print("  2. Run the dashboard: streamlit run quantum_sim/dashboard/app.py")


if __name__ == "__main__":
    main()
