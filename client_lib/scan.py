import requests
from . import config as client_config


def check_health():
    """Return the API health payload, or None if the API is unreachable."""
    try:
        response = client_config.SESSION.get(client_config.HEALTH_URL, timeout=10)
        if response.status_code == 200:
            return response.json()
        print(f"Health check failed: {response.status_code} - {response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"Health check request failed: {e}")
        return None


def list_regions():
    """Fetch the regions offered by the API."""
    url = f"{client_config.BASE_URL}/regions"
    try:
        response = client_config.SESSION.get(url, timeout=10)
        if response.status_code == 200:
            return response.json().get("regions", [])
        print(f"Failed to list regions: {response.status_code} - {response.text}")
        return []
    except requests.exceptions.RequestException as e:
        print(f"List regions request failed: {e}")
        return []


def run_scan(region: str = None, services: list = None, view_mode: str = "business-flow", include_pricing: bool = None):
    """Run a synchronous scan with the credentials from client_lib.config and return the graph data."""
    if not client_config.AWS_ACCESS_KEY_ID or not client_config.AWS_SECRET_ACCESS_KEY:
        print("\n*** WARNING: Please set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY (environment or .env) ***\n")
        return None

    region = region or client_config.AWS_REGION
    print(f"--- [Client Lib] Scanning AWS region: {region} ({view_mode} view) ---")
    payload = {
        "credentials": {
            "access_key_id": client_config.AWS_ACCESS_KEY_ID,
            "secret_access_key": client_config.AWS_SECRET_ACCESS_KEY,
            "region": region,
        },
        "view_mode": view_mode,
    }
    if client_config.AWS_SESSION_TOKEN:
        payload["credentials"]["session_token"] = client_config.AWS_SESSION_TOKEN
    if services:
        payload["services"] = services
        print(f"    Target Services: {services}")
    else:
        print("    (Scanning every supported service)")
    if include_pricing is not None:
        payload["include_pricing"] = include_pricing

    try:
        response = client_config.SESSION.post(
            f"{client_config.BASE_URL}/scan", json=payload, timeout=client_config.REQUEST_TIMEOUT_SECONDS
        )
    except requests.exceptions.RequestException as e:
        print(f"Scan request failed: {e}")
        return None

    try:
        body = response.json()
    except ValueError:
        print(f"Scan failed: {response.status_code} - {response.text}")
        return None

    if response.status_code == 200 and body.get("success"):
        return body.get("data")
    print(f"Scan failed ({response.status_code}): {body.get('error', 'Unknown error')}")
    return None
