"""Pydantic models for device-management API payloads."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hupladder.models.status import HUPStatusEnum
from hupladder.utils.versions import normalize_os_version


class DeviceInfo(BaseModel):
    """Subset of the device resource used by the ladder."""

    uuid: str = Field(..., description="Device UUID")
    device_type: str = Field(..., description="Device type slug")
    os_version: Optional[str] = Field(None, description="Normalised OS version")
    is_online: bool = Field(default=False, description="Device connectivity")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DeviceInfo":
        """Build from an OData device resource.

        The device type comes from the expanded is_of__device_type slug,
        falling back to the legacy device_type field.
        """
        device_type = data.get("device_type")
        expanded = data.get("is_of__device_type")
        if isinstance(expanded, list) and expanded:
            device_type = expanded[0].get("slug", device_type)
        elif isinstance(expanded, dict):
            device_type = expanded.get("slug", device_type)

        return cls(
            uuid=data["uuid"],
            device_type=device_type,
            os_version=normalize_os_version(data.get("os_version")),
            is_online=bool(data.get("is_online", False)),
        )


class HUPStatus(BaseModel):
    """Host OS update status for one device.

    status is None when the actions service has no update recorded for the
    device yet.
    """

    model_config = ConfigDict(extra="ignore")

    status: Optional[HUPStatusEnum] = Field(None, description="Update status")
    fatal: bool = Field(default=False, description="Update failed unrecoverably")
    error: Optional[str] = Field(None, description="Error message if any")


class SupportedVersions(BaseModel):
    """Supported host OS update targets for a device type and version.

    versions is ordered newest first and holds only versions strictly newer
    than current.
    """

    versions: List[str] = Field(default_factory=list)
    current: Optional[str] = Field(None, description="Version the list was computed for")
    recommended: Optional[str] = Field(None, description="Newest stable version")
