"""
Remote verification service client.

The remote verifier is authoritative when it answers. Any failure
(transport error, timeout, non-2xx, body that is not a report) yields
None so that the caller can fall back to local checks.
"""
from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from ledgerflow.schemas.statement import ParsedStatement
from ledgerflow.schemas.verification import VerificationReport

logger = structlog.get_logger(__name__)

VERIFIER_URLS = {
    "production": "https://api.boundaryml.com",
    "sandbox": "https://sandbox.boundaryml.com",
}


class RemoteVerifier:
    """Client for the /v1/ingestion/verify endpoint."""

    VERIFY_PATH = "/v1/ingestion/verify"

    def __init__(
        self,
        api_key: str,
        environment: str = "sandbox",
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or VERIFIER_URLS.get(environment, VERIFIER_URLS["sandbox"])).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def verify(
        self,
        statement: ParsedStatement,
        statement_id: str,
        source: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[VerificationReport]:
        """
        Ask the remote service to verify a statement.

        Returns:
            The remote report, or None when the service is unavailable.
        """
        payload = {
            "statementId": statement_id,
            "source": source,
            "statement": statement.model_dump(mode="json", by_alias=True),
            "metadata": metadata or {},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{self.VERIFY_PATH}", json=payload, headers=headers
                )
        except httpx.HTTPError as e:
            logger.warning("remote_verifier_unreachable", statement_id=statement_id, error=str(e))
            return None

        if not response.is_success:
            logger.warning(
                "remote_verifier_error_status",
                statement_id=statement_id,
                status_code=response.status_code,
            )
            return None

        try:
            report = VerificationReport.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("remote_verifier_malformed_response", statement_id=statement_id, error=str(e))
            return None

        logger.info(
            "remote_verification_complete",
            statement_id=statement_id,
            status=report.status.value,
            confidence=report.confidence,
        )
        return report
