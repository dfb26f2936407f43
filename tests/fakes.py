"""Offline stand-ins for a factomd connection and the JSON fixtures."""

import json
import os

from factom.jsonrpc import JSON2Response, JSONError

FIXTURES = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")

YELLOW = " ".join(["yellow"] * 12)
ZERO_EC_SEC = "Es2Rf7iM6PdsqfYCo3D1tnAR65SkLENyWJG1deUzpRMQmbh9F3eG"
FCT_SEC_1 = "Fs3E9gV6DXsYzf7Fqx1fVBQPQXV695eP3k5XbmHEZVRLkMdD9qCK"
FCT_SEC_2 = "Fs3GFV6GNV6ar4b8eGcQWpGFbFtkNWKfEPdbywmha8ez5p7XMJyk"


def load_fixture(name):
    with open(os.path.join(FIXTURES, name)) as f:
        return json.load(f)


def fixture_result(name):
    """The ``result`` of a recorded JSON-RPC answer, or the whole file."""
    data = load_fixture(name)
    return data.get("result", data)


class FakeClient:
    """Answers factomd/walletd calls from a method -> response table.

    A response may be a value, an exception to raise, or a callable taking
    the params.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def factomd_request(self, method, params=None):
        self.calls.append((method, params))
        if method not in self.responses:
            raise JSONError(-32601, "Method not found")
        answer = self.responses[method]
        if callable(answer):
            answer = answer(params)
        if isinstance(answer, Exception):
            raise answer
        return answer

    wallet_request = factomd_request

    def send_factomd_request(self, req):
        try:
            result = self.factomd_request(req.method, req.params)
        except JSONError as err:
            return JSON2Response(req.id, error=err)
        return JSON2Response(req.id, result=result)

    send_wallet_request = send_factomd_request

    def methods(self):
        return [m for m, _ in self.calls]
