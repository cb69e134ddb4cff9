# config/settings.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Read .env from the working directory (if present)
load_dotenv()

# === Store API ===
STORE_API_URL = os.getenv("STORE_API_URL", "http://localhost:3000/api").rstrip("/")

# Optional: lets `login` run without a prompt
STORE_ADMIN_PASSWORD = os.getenv("STORE_ADMIN_PASSWORD", "")

# === Timeouts / retry ===
# Uploads can be tens of MB, so the per-step ceiling is minutes, not seconds
UPLOAD_STEP_TIMEOUT = float(os.getenv("UPLOAD_STEP_TIMEOUT", str(11 * 60)))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
CONNECT_TIMEOUT = float(os.getenv("CONNECT_TIMEOUT", "10"))

# Network-class failures only; backoff grows linearly (1s, 2s, ...)
MAX_NETWORK_RETRIES = int(os.getenv("MAX_NETWORK_RETRIES", "2"))
RETRY_BACKOFF_SECONDS = float(os.getenv("RETRY_BACKOFF_SECONDS", "1.0"))

# === Product form limits ===
MAX_COVER_IMAGES = 9

# === Cover image crop ===
CROP_ASPECT = 16 / 10  # matches the product card frame
CROP_JPEG_QUALITY = 92

# === Local data ===
DATA_DIR = Path(os.getenv("DATA_DIR", str(Path.home() / ".digital_goods_uploader")))
DATA_DIR.mkdir(exist_ok=True, parents=True)

STATE_STORE_FILE = DATA_DIR / "state.json"

# Cropped cover images are written here before upload
TEMP_DIR = DATA_DIR / "tmp"
TEMP_DIR.mkdir(exist_ok=True, parents=True)

# Catalog / order exports
EXPORT_DIR = DATA_DIR / "exports"
EXPORT_DIR.mkdir(exist_ok=True, parents=True)
