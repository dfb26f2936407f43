import json
import logging
import threading

import requests

from factom.config import JSONRPC_VERSION, RPCConfig
from factom.errors import CredentialsError, FactomError, TransportError

logger = logging.getLogger(__name__)

FACTOMD_CREDENTIALS_MESSAGE = (
    "Factomd username/password incorrect.  Edit factomd.conf or\n"
    "call factom-cli with -factomduser=<user> -factomdpassword=<pass>"
)
WALLET_CREDENTIALS_MESSAGE = (
    "Wallet username/password incorrect.  Edit factomd.conf or\n"
    "call factom-cli with -walletuser=<user> -walletpassword=<pass>"
)

# -------------------------------------------------------------------------
# Request ids
# -------------------------------------------------------------------------

_counter_lock = threading.Lock()
_counter = 0


def next_id() -> int:
    """Process-wide request id; starts at 0 and is incremented before use."""
    global _counter
    with _counter_lock:
        _counter += 1
        return _counter


# -------------------------------------------------------------------------
# Envelope
# -------------------------------------------------------------------------

class JSONError(FactomError):
    """A JSON-RPC 2.0 error object, raised as-is when a daemon returns one."""

    def __init__(self, code: int, message: str, data=None):
        super().__init__(code, message, data)
        self.code = code
        self.message = message
        self.data = data

    def __str__(self):
        if self.data is not None:
            return "%s: %s" % (self.message, self.data)
        return str(self.message)

    def to_dict(self):
        d = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d

    @staticmethod
    def from_dict(data: dict) -> "JSONError":
        return JSONError(data.get("code", 0), data.get("message", ""), data.get("data"))


def new_parse_error():
    return JSONError(-32700, "Parse error")


def new_invalid_request_error():
    return JSONError(-32600, "Invalid Request")


def new_method_not_found_error():
    return JSONError(-32601, "Method not found")


def new_invalid_params_error():
    return JSONError(-32602, "Invalid params")


def new_internal_error():
    return JSONError(-32603, "Internal error")


def new_custom_internal_error(data):
    return JSONError(-32603, "Internal error", data)


def new_custom_invalid_params_error(data):
    return JSONError(-32602, "Invalid params", data)


_AUTO_ID = object()


class JSON2Request:
    def __init__(self, method: str, id=_AUTO_ID, params=None):
        self.jsonrpc = JSONRPC_VERSION
        self.id = next_id() if id is _AUTO_ID else id
        self.method = method
        self.params = params

    def to_dict(self):
        d = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.params is not None:
            d["params"] = self.params
        if self.method:
            d["method"] = self.method
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(data) -> "JSON2Request":
        if not isinstance(data, dict):
            raise ValueError("JSON-RPC request must be an object")
        version = data.get("jsonrpc")
        if version != JSONRPC_VERSION:
            raise ValueError("Invalid JSON RPC version - `%s`, should be `2.0`" % version)
        return JSON2Request(data.get("method", ""), data.get("id"), data.get("params"))

    @staticmethod
    def parse(text) -> "JSON2Request":
        return JSON2Request.from_dict(json.loads(text))

    def __str__(self):
        return self.to_json()

    def __repr__(self):
        return "JSON2Request(%s, id=%r)" % (self.method, self.id)


class JSON2Response:
    def __init__(self, id=None, result=None, error: JSONError = None):
        self.jsonrpc = JSONRPC_VERSION
        self.id = id
        self.result = result
        self.error = error

    def to_dict(self):
        d = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = self.result
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(data: dict) -> "JSON2Response":
        if not isinstance(data, dict):
            raise ValueError("JSON-RPC response must be an object")
        error = data.get("error")
        return JSON2Response(
            id=data.get("id"),
            result=data.get("result"),
            error=JSONError.from_dict(error) if error else None,
        )

    def __str__(self):
        return self.to_json()


# -------------------------------------------------------------------------
# Transport
# -------------------------------------------------------------------------

class Client:
    """Talks JSON-RPC 2.0 to one factomd and one factom-walletd endpoint."""

    def __init__(self, config: RPCConfig = None):
        self.config = config if config is not None else RPCConfig()

    def factomd_request(self, method: str, params=None):
        """Call a factomd method and return its ``result``."""
        return self._result(self.send_factomd_request(JSON2Request(method, params=params)))

    def wallet_request(self, method: str, params=None):
        """Call a factom-walletd method and return its ``result``."""
        return self._result(self.send_wallet_request(JSON2Request(method, params=params)))

    def send_factomd_request(self, req: JSON2Request) -> JSON2Response:
        return self._post("factomd", req)

    def send_wallet_request(self, req: JSON2Request) -> JSON2Response:
        return self._post("wallet", req)

    @staticmethod
    def _result(resp: JSON2Response):
        if resp.error is not None:
            raise resp.error
        return resp.result

    def _post(self, target: str, req: JSON2Request) -> JSON2Response:
        url, auth, timeout, verify = self.config.endpoint(target)
        logger.debug("%s request %s id=%s", target, req.method, req.id)

        try:
            resp = requests.post(
                url,
                data=req.to_json(),
                headers={"Content-Type": "application/json"},
                auth=auth,
                timeout=timeout,
                verify=verify,
            )
        except requests.exceptions.SSLError as err:
            raise TransportError(
                "%s API connection failed TLS negotiation (%s)" % (target, err)
            ) from err
        except requests.exceptions.RequestException as err:
            raise TransportError("%s request failed: %s" % (target, err)) from err

        if resp.status_code == 401:
            if target == "factomd":
                raise CredentialsError(FACTOMD_CREDENTIALS_MESSAGE)
            raise CredentialsError(WALLET_CREDENTIALS_MESSAGE)

        try:
            body = resp.json()
        except ValueError as err:
            raise TransportError(
                "%s returned a non JSON-RPC response (HTTP %s)" % (target, resp.status_code)
            ) from err

        try:
            return JSON2Response.from_dict(body)
        except ValueError as err:
            raise TransportError(str(err)) from err


_default_lock = threading.Lock()
_default_client = None


def default_client() -> Client:
    """The process-wide convenience client, configured from the environment."""
    global _default_client
    with _default_lock:
        if _default_client is None:
            _default_client = Client(RPCConfig.from_env())
        return _default_client


def set_default_client(client: Client):
    global _default_client
    with _default_lock:
        _default_client = client


def get_client(client=None) -> Client:
    return client if client is not None else default_client()
