# rental_shop/constants.py
APP_NAME = "Rental Shop"

DATA_DIR = "data"
DB_FILE_NAME = "rental_shop.db"
DB_ENV_VAR = "RENTAL_SHOP_DB"
LOG_LEVEL_ENV_VAR = "RENTAL_SHOP_LOG_LEVEL"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# Sequence names (table: sequences)
SEQ_RENTAL = "rental"
SEQ_INVOICE = "invoice"

# Minimum zero-padded width of rental / invoice numbers ("01", "02", ... "100")
RENTAL_ID_WIDTH = 2
INVOICE_ID_WIDTH = 2

# Loyalty tiers, lowest first. Thresholds are strict lower bounds on total_spent.
TIER_NEW = "New"
TIER_BRONZE = "Bronze"
TIER_SILVER = "Silver"
TIER_GOLD = "Gold"
TIER_PLATINUM = "Platinum"

TIER_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (500_000, TIER_PLATINUM),
    (200_000, TIER_GOLD),
    (50_000, TIER_SILVER),
    (10_000, TIER_BRONZE),
)

# Products below this share of total stock count as low stock on the dashboard
LOW_STOCK_RATIO = 0.2

SECONDS_PER_DAY = 86_400

DEFAULT_SETTINGS = {
    "store_name": "GMD Shuttering Store",
    "tagline": "Shuttering & Scaffold",
    "store_address": "Main Market, Haveli Lakha",
    "store_phone": "0302-4983711",
    "owner_name": "Ghulam Mustafa Doula",
    "logo_url": None,
    "theme": "slate",
}

# Rental lifecycle
STATUS_ACTIVE = "Active"
STATUS_COMPLETED = "Completed"
STATUS_OVERDUE = "Overdue"
STATUS_PARTIAL = "Partial Return"

RENTAL_STATUSES: tuple[str, ...] = (STATUS_ACTIVE, STATUS_PARTIAL, STATUS_OVERDUE, STATUS_COMPLETED)
# A customer holds at most one rental in any of these states at a time
OPEN_STATUSES: tuple[str, ...] = (STATUS_ACTIVE, STATUS_PARTIAL, STATUS_OVERDUE)
