"""
prospect_audit/services package marker.
"""
