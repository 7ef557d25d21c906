import requests
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# --- API Configuration ---
BASE_URL = os.getenv("INFRAVIZ_API_URL", "http://localhost:8000/api/v1")
HEALTH_URL = os.getenv("INFRAVIZ_HEALTH_URL", "http://localhost:8000/health")
REQUEST_TIMEOUT_SECONDS = int(os.getenv("INFRAVIZ_REQUEST_TIMEOUT", "600"))

# --- AWS Credentials forwarded to the scan endpoint ---
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_SESSION_TOKEN = os.getenv("AWS_SESSION_TOKEN")
AWS_REGION = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1"

# --- Shared Session ---
# Global session object for the client library
SESSION = requests.Session()
