"""Services for external integrations."""

from studygroup.services.ai_cache import cache_notifier
from studygroup.services.ai_gateway import ai_gateway
from studygroup.services.storage import document_storage

__all__ = ["ai_gateway", "cache_notifier", "document_storage"]
