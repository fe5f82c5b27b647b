"""HTTP fakes injected into the clients in place of requests.Session."""

import json


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; routes by method + URL suffix and records calls."""

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, method, url_suffix, response):
        self.routes.append((method, url_suffix, response))

    def _dispatch(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        for m, suffix, resp in self.routes:
            if m == method and url.split("?")[0].endswith(suffix):
                return resp
        raise AssertionError(f"Unexpected request: {method} {url}")

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, **kwargs)


