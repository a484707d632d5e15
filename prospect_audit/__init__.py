"""
prospect_audit package marker.
"""
