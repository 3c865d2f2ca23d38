from __future__ import annotations

from typing import Any

import httpx

from gigboard.core.config import Settings

FCM_ENDPOINT_TEMPLATE = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
ANDROID_CHANNEL_ID = "job_notifications"


class PushDeliveryError(Exception):
    """Raised when the push gateway rejects or cannot receive a message."""


def build_push_message(device_token: str, title: str, body: str, data: dict[str, Any]) -> dict[str, Any]:
    payload = {key: str(value) for key, value in data.items() if value is not None}
    payload["click_action"] = "FLUTTER_NOTIFICATION_CLICK"
    return {
        "token": device_token,
        "notification": {"title": title, "body": body},
        "data": payload,
        "android": {
            "priority": "high",
            "notification": {"sound": "default", "channel_id": ANDROID_CHANNEL_ID},
        },
        "apns": {"payload": {"aps": {"sound": "default", "badge": 1}}},
    }


class PushGateway:
    def __init__(
        self,
        endpoint: str,
        access_token: str,
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.headers = {"Authorization": f"Bearer {access_token}"}
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def send(self, device_token: str, title: str, body: str, data: dict[str, Any]) -> str:
        message = build_push_message(device_token, title, body, data)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.endpoint, json={"message": message}, headers=self.headers)
        except httpx.HTTPError as exc:
            raise PushDeliveryError(f"push gateway unreachable: {exc}") from exc

        if response.status_code != 200:
            raise PushDeliveryError(f"push gateway responded with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return ""
        if not isinstance(payload, dict):
            raise PushDeliveryError(f"push gateway returned an unexpected body: {type(payload).__name__}")
        return str(payload.get("name", ""))


def build_push_gateway(settings: Settings) -> PushGateway | None:
    if not settings.fcm_access_token:
        return None
    endpoint = settings.fcm_endpoint
    if not endpoint:
        if not settings.fcm_project_id:
            return None
        endpoint = FCM_ENDPOINT_TEMPLATE.format(project_id=settings.fcm_project_id)
    return PushGateway(endpoint, settings.fcm_access_token, timeout_seconds=settings.push_timeout_seconds)
