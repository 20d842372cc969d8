"""Remote CRM integration -- client interfaces, wire models and the Salesforce client.

Provides abstract MetadataClient / RecordClient interfaces with one
concrete implementation:
- SalesforceClient: REST API client (httpx + tenacity retries)
"""

from src.fieldsync.remote.adapter import MetadataClient, RecordClient
from src.fieldsync.remote.salesforce import SalesforceClient

__all__ = [
    "MetadataClient",
    "RecordClient",
    "SalesforceClient",
]
