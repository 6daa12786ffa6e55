#!/usr/bin/env python3
"""Golden path demo for OnboardGate (creator walks through the wizard)."""

from __future__ import annotations

import json
import os
import sys
import uuid
from typing import Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


class HttpClient:
    def __init__(self, base_url: str, user_id: str, role: str, api_key: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers: dict[str, str] = {
            "Content-Type": "application/json",
            "X-User-ID": user_id,
            "X-User-Role": role,
        }
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def request_json(
        self,
        method: str,
        path: str,
        payload: Any = None,
        timeout: float = 10.0,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"

        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")

        req = Request(url, data=data, method=method)
        for key, value in self.headers.items():
            req.add_header(key, value)

        try:
            with urlopen(req, timeout=timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"{method} {url} failed: {exc.code} {exc.reason}: {detail}") from None

        if not raw:
            return {}
        return json.loads(raw.decode("utf-8"))


def _expect(response: dict[str, Any], **expected: Any) -> None:
    for key, value in expected.items():
        if response.get(key) != value:
            raise RuntimeError(f"Expected {key}={value!r}, got {response}")


def main() -> int:
    base_url = _env("ONBOARDGATE_URL", "http://localhost:8080")
    api_key = _env("ONBOARDGATE_API_KEY")
    user_id = _env("ONBOARDGATE_USER_ID", f"demo-{uuid.uuid4().hex[:8]}")

    client = HttpClient(base_url, user_id=user_id, role="creator", api_key=api_key)

    print("Checking health...")
    _expect(client.request_json("GET", "/v1/health"), status="healthy")

    steps = client.request_json("GET", "/v1/onboarding/steps")["steps"]
    print(f"Creator flow: {[s['id'] for s in steps]}")

    progress = client.request_json("GET", "/v1/onboarding/progress")
    _expect(progress, currentStep=1, completedSteps=[], isCompleted=False)

    print("Committing personal details...")
    resp = client.request_json(
        "POST",
        "/v1/onboarding/steps/personal",
        payload={"firstName": "Ada", "lastName": "Lovelace", "location": "London"},
    )
    _expect(resp, nextStep=2, completed=False)

    print("Committing categories...")
    resp = client.request_json(
        "POST",
        "/v1/onboarding/steps/2",
        payload={"categories": ["tech"], "niches": ["math"], "languages": ["en"]},
    )
    _expect(resp, nextStep=3, completed=False)

    print("Skipping social accounts...")
    _expect(client.request_json("PUT", "/v1/onboarding/skip/3"), nextStep=4)

    print("Committing rates...")
    resp = client.request_json(
        "POST",
        "/v1/onboarding/steps/rates",
        payload={"contentTypes": ["post"], "rates": {"post": 250}},
    )
    _expect(resp, nextStep=4, completed=True)

    progress = client.request_json("GET", "/v1/onboarding/progress")
    _expect(progress, completedSteps=[1, 2, 3, 4], isCompleted=True, currentStep=4)
    if progress["stepData"]["3"] != {"skipped": True}:
        raise RuntimeError(f"Skipped step should carry the skip marker: {progress['stepData']}")

    print(f"Golden path complete: {user_id} finished creator onboarding.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise
