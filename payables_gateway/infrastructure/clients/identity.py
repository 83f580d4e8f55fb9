"""Identity provider HTTP client for resolving the caller's tenant and role"""

import httpx
from payables_gateway.domain.models import Principal
from payables_gateway.domain.exceptions import AuthenticationError, IdentityProviderError
from payables_gateway.config import settings


class IdentityClient:
    """Client for the external identity/session service"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.identity_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_principal(self, token: str) -> Principal:
        """
        Resolve a bearer token to the caller's user, tenant and role.

        Raises:
            AuthenticationError: Token rejected (401/403)
            IdentityProviderError: On timeout, other HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/auth/session",
                    headers={"Authorization": f"Bearer {token}"},
                )
                if response.status_code in (401, 403):
                    raise AuthenticationError("Session token rejected")
                response.raise_for_status()
                data = response.json()

                principal = Principal(
                    user_id=str(data["user_id"]),
                    tenant_id=str(data["tenant_id"]),
                    role=str(data.get("role") or "user"),
                )

            except httpx.TimeoutException as e:
                raise IdentityProviderError(f"Identity provider timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise IdentityProviderError(f"Identity provider error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise IdentityProviderError(f"Identity provider unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise IdentityProviderError(f"Invalid session data from identity provider: {e}") from e

        if not principal.tenant_id:
            raise AuthenticationError("Session has no tenant")
        return principal
