"""
Constants for the Restaurant Portfolio Module

Centralized configuration for:
- Role definitions
- Drive / action vocabularies
- Cache key prefixes
- Table and export settings
"""

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

# Full access: every restaurant in the store
FULL_ACCESS_ROLES = ['admin', 'zonal_head']

# Team access: restaurants where the user is team lead or KAM
TEAM_ACCESS_ROLES = ['team_lead']

# Self access: restaurants assigned to the user as KAM
SELF_ACCESS_ROLES = ['kam', 'viewer']

# =====================================================================
# DRIVES & ACTIONS
# =====================================================================

DRIVE_STATUS_ACTIVE = 'active'

ACTION_APPROACHED = 'approached'
ACTION_CONVERTED = 'converted'
ACTION_TYPES = [ACTION_APPROACHED, ACTION_CONVERTED]

STATUS_NOT_APPROACHED = 'NOT_APPROACHED'
STATUS_APPROACHED = 'APPROACHED'
STATUS_CONVERTED = 'CONVERTED'

DRIVE_DESCRIPTIONS = {
    "N2R": "New to Restaurant - Onboarding new customers",
    "NCN": "New Customer Nurture - Engaging first-time users",
    "MRP": "Most Relevant Product - Personalized recommendations",
}

STATUS_COLORS = {
    STATUS_NOT_APPROACHED: "#6c757d",  # Grey
    STATUS_APPROACHED: "#ffc107",      # Amber
    STATUS_CONVERTED: "#28a745",       # Green
}

# =====================================================================
# CACHE KEYS
# =====================================================================

CACHE_KEY_RESTAURANTS = "restaurants"
CACHE_KEY_RESTAURANT = "restaurant"
CACHE_KEY_DRIVES = "drives"
CACHE_KEY_DRIVE = "drive"
CACHE_KEY_HISTORY = "history"

# =====================================================================
# PORTFOLIO TABLE
# =====================================================================

PORTFOLIO_COLUMNS = {
    'res_id': 'Restaurant ID',
    'res_name': 'Restaurant',
    'locality': 'Locality',
    'cuisine': 'Cuisine',
    'account_type': 'Account Type',
    'kam_name': 'KAM',
    'sept_ov': 'Sept OV',
    'drives': 'Drives',
    'approached': 'Approached',
    'converted': 'Converted',
    'max_priority': 'Top Priority',
}

SEARCH_COLUMNS = ['res_name', 'res_id', 'locality']

SORT_ASC = 'asc'
SORT_DESC = 'desc'

# =====================================================================
# EXCEL EXPORT
# =====================================================================

EXCEL_STYLES = {
    'header_fill_color': 'E23744',
    'header_font_color': 'FFFFFF',
    'currency_format': '#,##0',
    'percent_format': '0.0%',
}
