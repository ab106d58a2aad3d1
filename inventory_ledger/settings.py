import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
# Use Path objects for robust, OS-agnostic path handling.
DATA_DIR = BASE_DIR / os.getenv("DATA_DIR", "data")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024)))  # 5 MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))

# --- Sheet Names ---
CATALOG_SHEET = os.getenv("CATALOG_SHEET", "Catalog")
ORDERS_SHEET = os.getenv("ORDERS_SHEET", "Orders")
ACQUISITIONS_SHEET = os.getenv("ACQUISITIONS_SHEET", "Acquisitions")
LEDGER_SHEET = os.getenv("LEDGER_SHEET", "Ledger")
REPORT_SHEET = os.getenv("REPORT_SHEET", "Report")
DISCREPANCY_SHEET = os.getenv("DISCREPANCY_SHEET", "Discrepancies")
WORKFLOW_SHEET = os.getenv("WORKFLOW_SHEET", "Workflow")
CYCLE_SHEET = os.getenv("CYCLE_SHEET", "Cycle")

REPORT_FILENAME_BASE = os.getenv("REPORT_FILENAME", "daily_report")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "false").lower() == "true"

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Shared Business Logic ---
TIMEZONE = os.getenv("TIMEZONE", "America/Santiago")
DAYFIRST_DATES = os.getenv("DAYFIRST_DATES", "true").lower() == "true"

# Only orders in these states count as today's sales.
ALLOWED_ORDER_STATES = [
    state.strip()
    for state in os.getenv(
        "ALLOWED_ORDER_STATES", "Confirmado,Entregado,Pagado"
    ).split(",")
    if state.strip()
]
ENFORCE_ORDER_STATES = os.getenv("ENFORCE_ORDER_STATES", "true").lower() == "true"

# Ledger entries kept per base product at day close.
LEDGER_RETENTION = int(os.getenv("LEDGER_RETENTION", "5"))

# "order_column" reads the precomputed base product from the order row first,
# "catalog" always resolves it from the product name.
BASE_PRODUCT_SOURCE = os.getenv("BASE_PRODUCT_SOURCE", "order_column")

# "catalog_factor" or "unit_conversion"
PURCHASE_STRATEGY = os.getenv("PURCHASE_STRATEGY", "catalog_factor")
PURCHASE_DATE_FILTER = os.getenv("PURCHASE_DATE_FILTER", "false").lower() == "true"
