"""HTTP client for the negotiation code generator (database RPC)"""

import httpx
from negotiation_gateway.domain.exceptions import CodeServiceError
from negotiation_gateway.config import settings
from negotiation_gateway.infrastructure.observability.metrics import code_service_failures_counter


class CodeClient:
    """Client for the per-clinic negotiation code sequence"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None, api_key: str | None = None):
        self.base_url = base_url or settings.code_service_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.api_key = api_key if api_key is not None else settings.code_service_key

    def _headers(self) -> dict:
        if not self.api_key:
            return {}
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    async def generate_code(self, clinic_id: str) -> str:
        """
        Allocate the next negotiation code for a clinic (e.g. "NEG-2025-0042").

        The generator hands out fresh values but does not reserve them;
        the unique constraint on insert is the final arbiter.

        Raises:
            CodeServiceError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/rpc/generate_negotiation_code",
                    json={"p_clinic_id": clinic_id},
                    headers=self._headers(),
                )
                response.raise_for_status()
                code = response.json()

                if not isinstance(code, str) or not code.strip():
                    raise ValueError(f"expected a non-empty string, got {code!r}")
                return code.strip()

            except httpx.TimeoutException as e:
                code_service_failures_counter.inc()
                raise CodeServiceError(f"Code service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                code_service_failures_counter.inc()
                raise CodeServiceError(f"Code service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                code_service_failures_counter.inc()
                raise CodeServiceError(f"Code service unreachable: {e}") from e
            except ValueError as e:
                code_service_failures_counter.inc()
                raise CodeServiceError(f"Invalid code from generator: {e}") from e
