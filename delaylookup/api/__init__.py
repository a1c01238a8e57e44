"""
API module for the delay lookup service.

Provides REST endpoints for:
- Install registration
- Flight delay lookups
- System status
"""

from delaylookup.api.lookup import lookup_bp
from delaylookup.api.metrics import metrics_bp

__all__ = ['lookup_bp', 'metrics_bp']
