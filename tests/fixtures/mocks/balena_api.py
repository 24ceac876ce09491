"""Mock balena API (REST + actions) for client and ladder tests."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

VALID_TOKEN = "good-token"

_DEVICE_KEY_RE = re.compile(r"^device\(uuid='(?P<uuid>[^']+)'\)$")
_SLUG_RE = re.compile(r"dt/slug eq '(?P<slug>[^']+)'")
_NOT_INVALIDATED = "is_invalidated eq false"


@dataclass
class MockDevice:
    """In-memory device driven by the mock actions service.

    hup_behaviour decides what starting an update does:
    - "success": status done, OS version becomes the target
    - "not_landed": status done, OS version unchanged
    - "error": status error
    - "fatal": status in_progress with the fatal flag set
    - "in_progress": status stays in_progress
    """

    uuid: str
    device_type: str = "raspberrypi4-64"
    os_version: Optional[str] = "balenaOS 2.0.0"
    online: List[bool] = field(default_factory=lambda: [True])
    hup_status: Optional[str] = None
    hup_fatal: bool = False
    hup_behaviour: str = "success"
    start_calls: List[str] = field(default_factory=list)
    online_polls: int = 0

    def is_online(self) -> bool:
        # Last entry repeats once the sequence is exhausted
        index = min(self.online_polls, len(self.online) - 1)
        self.online_polls += 1
        return self.online[index]

    def start_update(self, target: str) -> None:
        self.start_calls.append(target)
        if self.hup_behaviour == "success":
            self.hup_status = "done"
            self.os_version = f"balenaOS {target}"
        elif self.hup_behaviour == "not_landed":
            self.hup_status = "done"
        elif self.hup_behaviour == "error":
            self.hup_status = "error"
        elif self.hup_behaviour == "fatal":
            self.hup_status = "in_progress"
            self.hup_fatal = True
        else:
            self.hup_status = "in_progress"


@dataclass
class MockBalenaAPI:
    """Devices plus host OS releases per device type.

    Versions listed in invalidated are withdrawn releases: they are only
    returned when the release query does not exclude invalidated releases.
    """

    devices: Dict[str, MockDevice] = field(default_factory=dict)
    releases: Dict[str, List[str]] = field(default_factory=dict)
    invalidated: Set[str] = field(default_factory=set)
    token: str = VALID_TOKEN

    def add_device(self, device: MockDevice) -> MockDevice:
        self.devices[device.uuid] = device
        return device

    def transport(self) -> httpx.ASGITransport:
        return httpx.ASGITransport(app=create_app(self))


def create_app(api: MockBalenaAPI) -> FastAPI:
    """Create the FastAPI app serving api.* and actions.* paths."""
    app = FastAPI(title="Mock balena API")

    def authorized(request: Request) -> bool:
        return request.headers.get("authorization") == f"Bearer {api.token}"

    def unauthorized() -> JSONResponse:
        return JSONResponse(status_code=401, content="Unauthorized")

    @app.get("/actor/v1/whoami")
    async def whoami(request: Request):
        if not authorized(request):
            return unauthorized()
        return {"id": 1, "actorType": "user", "username": "ladder"}

    @app.get("/v6/{resource:path}")
    async def odata(resource: str, request: Request):
        if not authorized(request):
            return unauthorized()

        match = _DEVICE_KEY_RE.match(resource)
        if match:
            device = api.devices.get(match.group("uuid"))
            if device is None:
                return {"d": []}
            return {
                "d": [
                    {
                        "uuid": device.uuid,
                        "is_online": device.is_online(),
                        "os_version": device.os_version,
                        "is_of__device_type": [{"slug": device.device_type}],
                    }
                ]
            }

        if resource == "release":
            release_filter = request.query_params.get("$filter", "")
            slug_match = _SLUG_RE.search(release_filter)
            slug = slug_match.group("slug") if slug_match else None
            skip_invalidated = _NOT_INVALIDATED in release_filter
            return {
                "d": [
                    {"raw_version": v, "semver": v.split("+")[0]}
                    for v in api.releases.get(slug, [])
                    if not (skip_invalidated and v in api.invalidated)
                ]
            }

        return JSONResponse(status_code=404, content="Not Found")

    @app.get("/v1/{uuid}/resinhup")
    async def hup_status(uuid: str, request: Request):
        if not authorized(request):
            return unauthorized()
        device = api.devices.get(uuid)
        if device is None or device.hup_status is None:
            return JSONResponse(status_code=404, content="No update found")
        return {"status": device.hup_status, "fatal": device.hup_fatal, "action": "resinhup"}

    @app.post("/v1/{uuid}/resinhup")
    async def start_hup(uuid: str, request: Request):
        if not authorized(request):
            return unauthorized()
        device = api.devices.get(uuid)
        if device is None:
            return JSONResponse(status_code=404, content="Device not found")
        body = await request.json()
        target = body["parameters"]["target_version"]
        device.start_update(target)
        return {"status": "in_progress", "fatal": False, "action": "resinhup"}

    return app
