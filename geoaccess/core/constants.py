"""
GEOACCESS - System Constants
============================

Region universe, default zones and storage limits.
"""

from typing import Dict, List, Tuple

VERSION = "1.0.0"
SYSTEM_NAME = "GEOACCESS"

# Audit trail keeps the most recent entries only
MAX_AUDIT_LOGS = 10_000
RECENT_ACTIVITY_LIMIT = 50

# Background monitor
DEFAULT_MONITOR_INTERVAL_SECONDS = 30
EXPIRING_SOON_DAYS = 7

# Logical collections in the record store
ZONES = "zones"
ZONE_ASSIGNMENTS = "zone_assignments"
TEMPORARY_GRANTS = "temporary_grants"
ACCESS_REQUESTS = "access_requests"
AUDIT_ENTRIES = "audit_entries"

COLLECTIONS: Tuple[str, ...] = (
    ZONES,
    ZONE_ASSIGNMENTS,
    TEMPORARY_GRANTS,
    ACCESS_REQUESTS,
    AUDIT_ENTRIES,
)


# All Indian states and union territories
INDIAN_STATES: List[str] = [
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal",
    "Andaman and Nicobar Islands", "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu",
    "Delhi", "Jammu and Kashmir", "Ladakh", "Lakshadweep", "Puducherry",
]


DEFAULT_ZONES: List[Dict[str, object]] = [
    {
        "name": "North Zone",
        "description": "Northern states and UTs",
        "color": "#3B82F6",
        "regions": [
            "Punjab", "Haryana", "Delhi", "Himachal Pradesh", "Uttarakhand",
            "Chandigarh", "Jammu and Kashmir", "Ladakh",
        ],
    },
    {
        "name": "South Zone",
        "description": "Southern states and UTs",
        "color": "#10B981",
        "regions": [
            "Karnataka", "Tamil Nadu", "Kerala", "Andhra Pradesh", "Telangana",
            "Puducherry", "Lakshadweep", "Andaman and Nicobar Islands",
        ],
    },
    {
        "name": "East Zone",
        "description": "Eastern states and UTs",
        "color": "#F59E0B",
        "regions": [
            "West Bengal", "Bihar", "Jharkhand", "Odisha", "Assam",
            "Arunachal Pradesh", "Manipur", "Meghalaya", "Mizoram",
            "Nagaland", "Sikkim", "Tripura",
        ],
    },
    {
        "name": "West Zone",
        "description": "Western states and UTs",
        "color": "#EF4444",
        "regions": [
            "Maharashtra", "Gujarat", "Goa", "Rajasthan",
            "Dadra and Nagar Haveli and Daman and Diu",
        ],
    },
    {
        "name": "Central Zone",
        "description": "Central states",
        "color": "#8B5CF6",
        "regions": ["Madhya Pradesh", "Chhattisgarh", "Uttar Pradesh"],
    },
]
