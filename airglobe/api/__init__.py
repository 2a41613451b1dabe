"""
API module for AirGlobe.

Provides REST endpoints for:
- Live aircraft states (optionally bounded by a lat/lon box)
- Service health
"""

from airglobe.api.aircraft import aircraft_bp

__all__ = ['aircraft_bp']
