"""Async Salesforce REST client for metadata retrieval and survey upload.

Provides SalesforceClient implementing MetadataClient and RecordClient.
Transport failures (connect errors, timeouts, HTTP 5xx) are retried with
tenacity (3 attempts, exponential backoff 1-10s). Record creation is the
exception: it is sent once so a timed-out create is never duplicated.
Everything else surfaces immediately as RemoteError carrying Salesforce's errorCode.

Authentication is handled elsewhere; the client only receives an access token.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.fieldsync.config import get_settings
from src.fieldsync.constants import REMOTE_ID_FIELD
from src.fieldsync.core.errors import RemoteError
from src.fieldsync.remote.adapter import MetadataClient, RecordClient
from src.fieldsync.remote.schemas import (
    CompositeLayoutResponse,
    LocalizationEntry,
    RecordTypeInfo,
    SaveResult,
)

logger = structlog.get_logger(__name__)

_salesforce_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


def _error_detail(response: httpx.Response) -> tuple[str | None, str]:
    """Extract (errorCode, message) from a Salesforce error response."""
    try:
        payload = response.json()
    except ValueError:
        return None, response.text or response.reason_phrase
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if isinstance(payload, dict):
        return payload.get("errorCode"), payload.get("message", "")
    return None, str(payload)


class SalesforceClient(MetadataClient, RecordClient):
    """Salesforce REST API client scoped to the survey object.

    Args:
        instance_url: Org instance URL, e.g. ``https://example.my.salesforce.com``.
        access_token: OAuth access token.
        survey_object: API name of the survey object.
        localization_object: API name of the localization custom metadata type.
        api_version: REST API version, e.g. ``v58.0``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        instance_url: str,
        access_token: str,
        survey_object: str,
        localization_object: str,
        api_version: str = "v58.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._data_path = f"/services/data/{api_version}"
        self._base_url = instance_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        self._survey_object = survey_object
        self._localization_object = localization_object
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> SalesforceClient:
        """Build a client from application settings."""
        settings = get_settings()
        return cls(
            instance_url=settings.SALESFORCE_INSTANCE_URL,
            access_token=settings.SALESFORCE_ACCESS_TOKEN,
            survey_object=settings.SURVEY_OBJECT,
            localization_object=settings.LOCALIZATION_OBJECT,
            api_version=settings.SALESFORCE_API_VERSION,
            timeout=float(settings.REMOTE_TIMEOUT),
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    # ── HTTP plumbing ───────────────────────────────────────────────────

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            response = await client.request(method, path, **kwargs)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    @_salesforce_retry
    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await self._send_once(method, path, **kwargs)

    async def _request(
        self, method: str, path: str, idempotent: bool = True, **kwargs: Any
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        Non-idempotent requests are sent once: a create that timed out may
        already be committed remotely.

        Raises:
            RemoteError: On any HTTP or transport failure.
        """
        try:
            send = self._send if idempotent else self._send_once
            response = await send(method, path, **kwargs)
        except httpx.HTTPStatusError as exc:
            raise RemoteError(
                f"Salesforce server error on {method} {path}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"Salesforce request failed on {method} {path}: {exc}") from exc

        if response.status_code >= 400:
            error_code, message = _error_detail(response)
            logger.warning(
                "salesforce.request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                error_code=error_code,
            )
            raise RemoteError(
                message or f"Salesforce rejected {method} {path}",
                error_code=error_code,
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _query(self, soql: str) -> list[dict[str, Any]]:
        """Run a SOQL query, following nextRecordsUrl pages."""
        data = await self._request("GET", f"{self._data_path}/query", params={"q": soql})
        records = list(data.get("records", []))
        while not data.get("done", True) and data.get("nextRecordsUrl"):
            data = await self._request("GET", data["nextRecordsUrl"])
            records.extend(data.get("records", []))
        return records

    # ── MetadataClient ──────────────────────────────────────────────────

    async def fetch_record_types(self) -> list[RecordTypeInfo]:
        """Fetch active record types paired with their compact layout title field.

        Raises:
            RemoteError: ``invalid_record_type`` if the object has no active record types.
        """
        records = await self._query(
            "SELECT Id, DeveloperName, Name FROM RecordType "
            f"WHERE SobjectType = '{self._survey_object}' AND IsActive = true"
        )
        if not records:
            raise RemoteError(
                f"No active record types on {self._survey_object}",
                error_code="invalid_record_type",
            )

        compact = await self._request(
            "GET", f"{self._data_path}/sobjects/{self._survey_object}/describe/compactLayouts"
        )
        title_by_layout: dict[str, str] = {}
        for layout in compact.get("compactLayouts", []):
            field_items = layout.get("fieldItems") or []
            components = field_items[0].get("layoutComponents", []) if field_items else []
            title_by_layout[layout["id"]] = components[0].get("value", "") if components else ""
        title_by_record_type = {
            mapping["recordTypeId"]: title_by_layout.get(mapping.get("compactLayoutId"), "")
            for mapping in compact.get("recordTypeCompactLayoutMappings", [])
        }

        record_types = [
            RecordTypeInfo(
                record_type_id=r["Id"],
                developer_name=r["DeveloperName"],
                label=r["Name"],
                title_field_name=title_by_record_type.get(r["Id"], ""),
            )
            for r in records
        ]
        logger.info("salesforce.record_types_fetched", count=len(record_types))
        return record_types

    async def describe_layouts(
        self, object_name: str, record_type_ids: list[str]
    ) -> CompositeLayoutResponse:
        """Describe the layout of each record type in a single composite request."""
        payload = {
            "allOrNone": False,
            "compositeRequest": [
                {
                    "method": "GET",
                    "url": f"{self._data_path}/sobjects/{object_name}/describe/layouts/{rt_id}",
                    "referenceId": f"rt_{rt_id}",
                }
                for rt_id in record_type_ids
            ],
        }
        data = await self._request("POST", f"{self._data_path}/composite", json=payload)
        logger.info("salesforce.layouts_described", object_name=object_name, count=len(record_type_ids))
        return CompositeLayoutResponse.model_validate(data)

    async def fetch_localization(self) -> list[LocalizationEntry]:
        """Fetch translated labels from the localization custom metadata type."""
        records = await self._query(
            f"SELECT DeveloperName, Locale__c, Label__c FROM {self._localization_object}"
        )
        return [
            LocalizationEntry(
                name=r["DeveloperName"],
                locale=r.get("Locale__c") or "",
                label=r.get("Label__c") or "",
            )
            for r in records
        ]

    # ── RecordClient ────────────────────────────────────────────────────

    async def create_or_update(self, record: dict[str, Any]) -> SaveResult:
        """Create the survey, or update it when it already carries an ``Id``."""
        remote_id = record.get(REMOTE_ID_FIELD)
        fields = {k: v for k, v in record.items() if k != REMOTE_ID_FIELD}
        sobject_path = f"{self._data_path}/sobjects/{self._survey_object}"

        if remote_id:
            await self._request("PATCH", f"{sobject_path}/{remote_id}", json=fields)
            logger.info("salesforce.record_updated", record_id=remote_id)
            return SaveResult(id=remote_id, status="updated")

        data = await self._request("POST", sobject_path, idempotent=False, json=fields)
        if not data or not data.get("success", True):
            errors = (data or {}).get("errors") or [{}]
            raise RemoteError(
                errors[0].get("message", "Record creation failed"),
                error_code=errors[0].get("statusCode"),
            )
        logger.info("salesforce.record_created", record_id=data["id"])
        return SaveResult(id=data["id"], status="created")
