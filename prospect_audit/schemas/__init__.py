"""
prospect_audit/schemas package marker.
"""
