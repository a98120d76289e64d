"""
Services module for business logic separation.

This module contains the geo resolver wrapper and the GeoAnalytics facade,
keeping lookup and counting policy separate from the storage layer.
"""
