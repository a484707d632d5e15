"""
Specialized detector families that go beyond plain any-match rules.
"""

from prospect_audit.analysis.detectors.phones import extract_phone_numbers, is_valid_phone
from prospect_audit.analysis.detectors.platform import (
    CUSTOM_PLATFORM_LABEL,
    UNKNOWN_PLATFORM_LABEL,
    detect_platform,
)
from prospect_audit.analysis.detectors.privacy import detect_privacy_policy
from prospect_audit.analysis.detectors.tags import (
    detect_ads_conversion_ids,
    detect_analytics,
    detect_bing_tag,
    detect_tag_manager,
)

__all__ = [
    "CUSTOM_PLATFORM_LABEL",
    "UNKNOWN_PLATFORM_LABEL",
    "detect_ads_conversion_ids",
    "detect_analytics",
    "detect_bing_tag",
    "detect_platform",
    "detect_privacy_policy",
    "detect_tag_manager",
    "extract_phone_numbers",
    "is_valid_phone",
]
