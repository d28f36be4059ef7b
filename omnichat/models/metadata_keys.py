"""
Keys of the open metadata bags on Conversation and Message that this
package reads or writes. Other keys may be present and are left untouched.
"""

# Conversation metadata written by the tagger
LAST_INTENT = "lastIntent"
LAST_CONFIDENCE = "lastConfidence"
SUGGESTED_ACTION = "suggestedAction"
CLASSIFIED_AT = "classifiedAt"

# Message metadata
AUTO_RESPONSE = "autoResponse"
CAMPAIGN_ID = "campaignId"


def status_timestamp_key(status: str) -> str:
    """Key under which the time a delivery status was reported is stored."""
    return f"{status}_at"
