"""
prospect_audit/api package marker.
"""
