"""Async client for the balena device-management API."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from hupladder.errors import BalenaAPIError
from hupladder.models.device import DeviceInfo, HUPStatus, SupportedVersions
from hupladder.utils.versions import (
    compare_versions,
    is_prerelease,
    normalize_os_version,
    sort_versions_desc,
)

DEVICE_SELECT = "uuid,is_online,os_version"
RELEASE_SELECT = "raw_version,semver"


class BalenaClient:
    """Thin async wrapper over the balena REST and actions APIs.

    Covers the calls the ladder needs: token auth, device lookups, supported
    host OS versions and host OS update (HUP) actions.
    """

    def __init__(
        self,
        api_url: str,
        actions_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_url: Base URL of the API (e.g. https://api.balena-cloud.com)
            actions_url: Base URL of the actions service including version
            token: API token; can also be set later with login_with_token()
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.logger = logging.getLogger("hupladder.balena")
        self.api_url = api_url.rstrip("/")
        self.actions_url = actions_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"

    async def __aenter__(self) -> "BalenaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def login_with_token(self, token: str) -> None:
        """Use token for all subsequent requests."""
        self._client.headers["Authorization"] = f"Bearer {token}"
        self.logger.debug("Token set for API requests")

    async def is_authenticated(self) -> bool:
        """Check whether the current token yields a logged-in session.

        Raises:
            BalenaAPIError: For failures other than 401/403
        """
        if "Authorization" not in self._client.headers:
            return False
        try:
            await self._request("GET", f"{self.api_url}/actor/v1/whoami")
        except BalenaAPIError as e:
            if e.status_code in (401, 403):
                return False
            raise
        return True

    async def get_device(self, uuid: str) -> DeviceInfo:
        """Fetch a device by UUID.

        Raises:
            BalenaAPIError: If the request fails or the device is unknown
        """
        key = uuid.replace("'", "''")
        response = await self._request(
            "GET",
            f"{self.api_url}/v6/device(uuid='{key}')",
            params={
                "$select": DEVICE_SELECT,
                "$expand": "is_of__device_type($select=slug)",
            },
        )
        rows = self._odata_rows(response)
        if not rows:
            raise BalenaAPIError(f"Device not found: {uuid}", status_code=404)
        try:
            return DeviceInfo.from_api(rows[0])
        except (KeyError, ValidationError) as e:
            raise BalenaAPIError(f"Unexpected device payload for {uuid}: {e}") from e

    async def get_device_type(self, uuid: str) -> str:
        return (await self.get_device(uuid)).device_type

    async def get_os_version(self, uuid: str) -> str:
        """Return the device's normalised OS version.

        Raises:
            BalenaAPIError: If the device does not report an OS version
        """
        device = await self.get_device(uuid)
        if not device.os_version:
            raise BalenaAPIError(f"Device {uuid} does not report an OS version")
        return device.os_version

    async def is_online(self, uuid: str) -> bool:
        return (await self.get_device(uuid)).is_online

    async def get_supported_os_update_versions(
        self, device_type: str, current_version: str
    ) -> SupportedVersions:
        """List released host OS versions a device can be updated to.

        Only final, successful, non-invalidated host app releases for the
        device type are considered. The result is newest first and holds only
        versions strictly newer than current_version.

        Args:
            device_type: Device type slug
            current_version: Device's current OS version

        Returns:
            SupportedVersions for the pair
        """
        slug = device_type.replace("'", "''")
        response = await self._request(
            "GET",
            f"{self.api_url}/v6/release",
            params={
                "$select": RELEASE_SELECT,
                "$filter": (
                    "is_final eq true and is_invalidated eq false and "
                    "status eq 'success' and "
                    "belongs_to__application/any(a:a/is_host eq true and "
                    f"a/is_for__device_type/any(dt:dt/slug eq '{slug}'))"
                ),
            },
        )
        raw_versions = [
            row.get("raw_version") or row.get("semver")
            for row in self._odata_rows(response)
        ]

        current = normalize_os_version(current_version)
        try:
            versions = [
                v
                for v in sort_versions_desc(r for r in raw_versions if r)
                if compare_versions(v, current) > 0
            ]
        except ValueError as e:
            raise BalenaAPIError(f"Cannot compare against {current_version!r}: {e}") from e

        recommended = next((v for v in versions if not is_prerelease(v)), None)
        self.logger.debug(
            f"Supported versions for {device_type} from {current}: {versions}"
        )
        return SupportedVersions(versions=versions, current=current, recommended=recommended)

    async def get_os_update_status(self, uuid: str) -> HUPStatus:
        """Fetch the host OS update status of a device.

        A 404 from the actions service means no update was ever recorded and
        yields an HUPStatus without status.
        """
        try:
            response = await self._request("GET", f"{self.actions_url}/{uuid}/resinhup")
        except BalenaAPIError as e:
            if e.status_code == 404:
                return HUPStatus()
            raise
        try:
            return HUPStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BalenaAPIError(f"Unexpected update status for {uuid}: {e}") from e

    async def start_os_update(self, uuid: str, target_version: str) -> HUPStatus:
        """Ask the actions service to update the device's host OS."""
        response = await self._request(
            "POST",
            f"{self.actions_url}/{uuid}/resinhup",
            json={"parameters": {"target_version": target_version}},
        )
        try:
            return HUPStatus.model_validate(response.json())
        except (ValueError, ValidationError):
            # Acknowledged without a usable status body
            return HUPStatus(status=None)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise BalenaAPIError(
                f"{method} {url} failed with HTTP {status_code}", status_code=status_code
            ) from e
        except httpx.HTTPError as e:
            raise BalenaAPIError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _odata_rows(response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            body = response.json()
        except ValueError as e:
            raise BalenaAPIError(f"Invalid JSON from {response.request.url}") from e
        rows = body.get("d") if isinstance(body, dict) else None
        if not isinstance(rows, list):
            raise BalenaAPIError(f"Unexpected response shape from {response.request.url}")
        return rows
