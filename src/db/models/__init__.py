"""Database models package exports."""

from src.db.models.knowledge_base_document import KnowledgeBaseDocument
from src.db.models.message import Message
from src.db.models.tenant import Tenant
from src.db.models.usage_record import UsageRecord
from src.db.models.whatsapp_connection import WhatsAppConnection

__all__ = [
    "KnowledgeBaseDocument",
    "Message",
    "Tenant",
    "UsageRecord",
    "WhatsAppConnection",
]
