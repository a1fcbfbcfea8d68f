"""Minimal HTTP client for the live webhook tests, stdlib only (no requests dependency)."""

import json
import urllib.error
import urllib.request

DEFAULT_TIMEOUT = 5


class Response:
    def __init__(self, status_code, json_body):
        self.status_code = status_code
        self._json = json_body

    def json(self):
        return self._json


def _request(method, url, json_body=None, timeout=DEFAULT_TIMEOUT):
    data = json.dumps(json_body).encode() if json_body is not None else None
    req = urllib.request.Request(url, data=data, method=method)
    if data is not None:
        req.add_header("Content-Type", "application/json")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as r:
            raw = r.read().decode()
            return Response(r.getcode(), json.loads(raw) if raw else {})
    except urllib.error.HTTPError as e:
        # FastAPI error bodies are JSON; anything else is wrapped as a detail string.
        body = e.read().decode()
        try:
            return Response(e.code, json.loads(body))
        except ValueError:
            return Response(e.code, {"detail": body})


def get(url, timeout=DEFAULT_TIMEOUT):
    return _request("GET", url, timeout=timeout)


def post(url, json_body, timeout=DEFAULT_TIMEOUT):
    return _request("POST", url, json_body, timeout=timeout)
