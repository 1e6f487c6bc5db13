"""
GEOACCESS - Region-Scoped Authorization Engine

Decides which regions a user may act in at any instant, from roles,
zones and temporary grants, and records every decision in an audit trail.
"""

from geoaccess.core.constants import VERSION

__version__ = VERSION
