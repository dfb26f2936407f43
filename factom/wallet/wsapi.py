"""
wsapi.py - factom-walletd's JSON-RPC 2.0 endpoint.

``dispatch`` maps a parsed request onto the wallet; ``create_app`` wraps it
in a FastAPI application serving ``/v2`` with optional HTTP Basic auth.
Failed calls answer HTTP 400 with the JSON-RPC error object.
"""

import base64
import binascii
import hashlib
import hmac
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from factom.addresses import (
    AddressType,
    ECAddress,
    FactoidAddress,
    classify,
    make_factoid_address_from_koinify,
)
from factom.chain import Chain, chain_exists
from factom.config import API_VERSION, CHAIN_COMMIT_SURCHARGE, WALLET_VERSION, RPCConfig
from factom.entry import Entry, entry_cost
from factom.errors import FactomError, InvalidAddress
from factom.factomd import get_ec_balance, get_ec_rate, get_multiple_ec_balances, get_multiple_fct_balances
from factom.identity import keys_at_height
from factom.identity_keys import IdentityKey
from factom.jsonrpc import (
    Client,
    JSON2Request,
    JSON2Response,
    JSONError,
    get_client,
    new_custom_internal_error,
    new_custom_invalid_params_error,
    new_invalid_params_error,
    new_invalid_request_error,
    new_method_not_found_error,
)
from factom.wallet.wallet import transaction_to_dict

logger = logging.getLogger(__name__)

AUTH_REALM = 'Basic realm="factomd RPC"'
NOT_FULLY_BOOTED = "Not fully booted"
DECODE_ERROR = "Error decoding address"


# -------------------------------------------------------------------------
# Parameter helpers
# -------------------------------------------------------------------------

def _param(params, name, kind=str):
    if not isinstance(params, dict) or name not in params:
        raise new_invalid_params_error()
    value = params[name]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise new_invalid_params_error()
    return value


def _amount(params):
    amount = _param(params, "amount", int)
    if amount < 0:
        raise new_custom_invalid_params_error("amount cannot be negative")
    return amount


def _pair(addr):
    return {"public": addr.pub_string(), "secret": addr.sec_string()}


def _fee_rate(client):
    """Current EC rate, or 0 when factomd cannot be reached."""
    try:
        return get_ec_rate(client)
    except FactomError as err:
        logger.debug("EC rate unavailable: %s", err)
        return 0


def _history_tx(tx):
    """Wallet JSON for a transaction out of a Factoid block."""
    ins, outs, ecs = tx.total_inputs(), tx.total_outputs(), tx.total_ec_outputs()
    return {
        "txid": tx.txid,
        "blockheight": tx.block_height,
        "timestamp": tx.milli_timestamp,
        "totalinputs": ins,
        "totaloutputs": outs,
        "totalecoutputs": ecs,
        "feespaid": max(0, ins - outs - ecs),
        "signed": bool(tx.inputs),
        "inputs": [{"address": a.user_address, "amount": a.amount} for a in tx.inputs],
        "outputs": [{"address": a.user_address, "amount": a.amount} for a in tx.outputs],
        "ecoutputs": [{"address": a.user_address, "amount": a.amount} for a in tx.ec_outputs],
    }


# -------------------------------------------------------------------------
# Addresses
# -------------------------------------------------------------------------

def handle_address(wallet, params, client):
    address = _param(params, "address")
    kind = classify(address)
    if kind is AddressType.FACTOID_PUB:
        return _pair(wallet.get_fct_address(address))
    if kind is AddressType.EC_PUB:
        return _pair(wallet.get_ec_address(address))
    raise new_custom_invalid_params_error("Invalid address type")


def handle_all_addresses(wallet, params, client):
    fcts, ecs = wallet.get_all_addresses()
    return {"addresses": [_pair(a) for a in fcts + ecs]}


def handle_generate_ec_address(wallet, params, client):
    return _pair(wallet.generate_ec_address())


def handle_generate_factoid_address(wallet, params, client):
    return _pair(wallet.generate_fct_address())


def handle_import_addresses(wallet, params, client):
    imported = []
    for item in _param(params, "addresses", list):
        secret = _param(item, "secret")
        kind = classify(secret)
        if kind is AddressType.FACTOID_SEC:
            addr = FactoidAddress.from_string(secret)
            wallet.insert_fct_address(addr)
        elif kind is AddressType.EC_SEC:
            addr = ECAddress.from_string(secret)
            wallet.insert_ec_address(addr)
        else:
            raise InvalidAddress("%s is not a Factoid or Entry Credit secret" % secret[:2])
        imported.append(_pair(addr))
    return {"addresses": imported}


def handle_import_koinify(wallet, params, client):
    addr = make_factoid_address_from_koinify(_param(params, "words"))
    wallet.insert_fct_address(addr)
    return _pair(addr)


def handle_remove_address(wallet, params, client):
    wallet.remove_address(_param(params, "address"))
    return {"success": True}


def handle_wallet_backup(wallet, params, client):
    fcts, ecs = wallet.get_all_addresses()
    return {
        "wallet-seed": wallet.get_seed(),
        "addresses": [_pair(a) for a in fcts + ecs],
    }


def _sum_balances(balances):
    ack = saved = 0
    err = ""
    for b in balances:
        ack += b.ack
        saved += b.saved
        if b.err in (NOT_FULLY_BOOTED, DECODE_ERROR):
            err = b.err
    return ack, saved, err


def handle_wallet_balances(wallet, params, client):
    fcts, ecs = wallet.get_all_addresses()
    fct_ack = fct_saved = ec_ack = ec_saved = 0
    errors = []
    if fcts:
        _, _, balances = get_multiple_fct_balances([a.pub_string() for a in fcts], client)
        fct_ack, fct_saved, err = _sum_balances(balances)
        errors.append(err)
    if ecs:
        _, _, balances = get_multiple_ec_balances([a.pub_string() for a in ecs], client)
        ec_ack, ec_saved, err = _sum_balances(balances)
        errors.append(err)

    if NOT_FULLY_BOOTED in errors:
        return {"Factomd Error": "Factomd is not fully booted, please wait and try again."}
    if DECODE_ERROR in errors:
        return {"Factomd Error": "There was an error decoding an address"}
    return {
        "fctaccountbalances": {"ack": fct_ack, "saved": fct_saved},
        "ecaccountbalances": {"ack": ec_ack, "saved": ec_saved},
    }


def handle_properties(wallet, params, client):
    return {"walletversion": WALLET_VERSION, "walletapiversion": API_VERSION}


# -------------------------------------------------------------------------
# Transaction history
# -------------------------------------------------------------------------

def handle_transactions(wallet, params, client):
    txdb = wallet.txdb
    if txdb is None:
        raise new_custom_internal_error("Wallet does not have a transaction database")
    params = params if isinstance(params, dict) else {}
    rng = params.get("range")
    if not isinstance(rng, dict):
        rng = {}

    if params.get("txid"):
        txs = [txdb.get_tx(params["txid"])]
    elif params.get("address"):
        txs = txdb.get_tx_address(params["address"])
    elif rng.get("end"):
        txs = txdb.get_tx_range(rng.get("start", 0), rng["end"])
    else:
        txs = txdb.get_all_txs()
    return {"transactions": [_history_tx(tx) for tx in txs]}


def handle_get_height(wallet, params, client):
    if wallet.txdb is None:
        return {"height": 0}
    return {"height": max(0, wallet.txdb.head_height())}


# -------------------------------------------------------------------------
# Transaction builder
# -------------------------------------------------------------------------

def _tx_response(wallet, name, client):
    tx = wallet.get_transactions()[name]
    return transaction_to_dict(name, tx, _fee_rate(client))


def handle_new_transaction(wallet, params, client):
    name = _param(params, "tx-name")
    wallet.new_transaction(name)
    return _tx_response(wallet, name, client)


def handle_delete_transaction(wallet, params, client):
    name = _param(params, "tx-name")
    wallet.delete_transaction(name)
    return {"tx-name": name}


def handle_tmp_transactions(wallet, params, client):
    rate = _fee_rate(client)
    return {"transactions": [transaction_to_dict(name, tx, rate)
                             for name, tx in sorted(wallet.get_transactions().items())]}


def handle_transaction_hash(wallet, params, client):
    name = _param(params, "tx-name")
    return {"tx-name": name, "txid": wallet.transaction_hash(name)}


def _amount_call(method_name):
    def handler(wallet, params, client):
        name = _param(params, "tx-name")
        method = getattr(wallet, method_name)
        method(name, _param(params, "address"), _amount(params))
        return _tx_response(wallet, name, client)
    return handler


handle_add_input = _amount_call("add_input")
handle_add_output = _amount_call("add_output")
handle_add_ec_output = _amount_call("add_ec_output")


def handle_add_fee(wallet, params, client):
    name = _param(params, "tx-name")
    wallet.add_fee(name, _param(params, "address"), get_ec_rate(client))
    return _tx_response(wallet, name, client)


def handle_sub_fee(wallet, params, client):
    name = _param(params, "tx-name")
    wallet.sub_fee(name, _param(params, "address"), get_ec_rate(client))
    return _tx_response(wallet, name, client)


def handle_sign_transaction(wallet, params, client):
    name = _param(params, "tx-name")
    force = bool(params.get("force", False))
    rate = None if force else get_ec_rate(client)
    wallet.sign_transaction(name, force, rate)
    return _tx_response(wallet, name, client)


def handle_compose_transaction(wallet, params, client):
    return wallet.compose_transaction(_param(params, "tx-name")).to_dict()


# -------------------------------------------------------------------------
# Chains and entries
# -------------------------------------------------------------------------

def _entry_param(data):
    if not isinstance(data, dict):
        raise new_invalid_params_error()
    try:
        return Entry.from_dict(data)
    except (ValueError, TypeError):
        raise new_invalid_params_error() from None


def _commit_reveal(commit: JSON2Request, reveal: JSON2Request):
    return {"commit": commit.to_dict(), "reveal": reveal.to_dict()}


def handle_compose_chain(wallet, params, client):
    chain = Chain(_entry_param(_param(params, "chain", dict).get("firstentry")))
    ec_pub = _param(params, "ecpub")
    wallet.get_ec_address(ec_pub)

    if not params.get("force", False):
        cost = entry_cost(chain.first_entry) + CHAIN_COMMIT_SURCHARGE
        if get_ec_balance(ec_pub, client) < cost:
            raise new_custom_internal_error("Not enough Entry Credits")
        if chain_exists(chain.chain_id, client):
            raise new_custom_invalid_params_error("Chain %s already exists" % chain.chain_id)

    return _commit_reveal(*wallet.compose_chain(chain, ec_pub))


def handle_compose_entry(wallet, params, client):
    entry = _entry_param(_param(params, "entry", dict))
    ec_pub = _param(params, "ecpub")
    wallet.get_ec_address(ec_pub)

    if not params.get("force", False):
        if get_ec_balance(ec_pub, client) < entry_cost(entry):
            raise new_custom_internal_error("Not enough Entry Credits")
        if not chain_exists(entry.chain_id, client):
            raise new_custom_invalid_params_error("Chain %s was not found" % entry.chain_id)

    return _commit_reveal(*wallet.compose_entry(entry, ec_pub))


# -------------------------------------------------------------------------
# Identity keys and signing
# -------------------------------------------------------------------------

def handle_import_identity_keys(wallet, params, client):
    keys = []
    for item in _param(params, "keys", list):
        secret = _param(item, "secret")
        key = IdentityKey.from_string(secret)
        wallet.insert_identity_key(key)
        keys.append({"public": key.pub_string(), "secret": secret})
    return {"keys": keys}


def handle_identity_keys_at_height(wallet, params, client):
    chain_id = _param(params, "chainid")
    height = _param(params, "height", int)
    keys = keys_at_height(chain_id, height, client)
    return {"chainid": chain_id, "height": height, "keys": [k.pub_string() for k in keys]}


def handle_sign_data(wallet, params, client):
    signer = _param(params, "signer")
    try:
        data = base64.b64decode(_param(params, "data"), validate=True)
    except binascii.Error:
        raise new_custom_invalid_params_error("data is not base64") from None
    pub, sig = wallet.sign_data(signer, data)
    return {
        "pubkey": base64.b64encode(pub).decode("ascii"),
        "signature": base64.b64encode(sig).decode("ascii"),
    }


HANDLERS = {
    "address": handle_address,
    "all-addresses": handle_all_addresses,
    "generate-ec-address": handle_generate_ec_address,
    "generate-factoid-address": handle_generate_factoid_address,
    "import-addresses": handle_import_addresses,
    "import-koinify": handle_import_koinify,
    "wallet-backup": handle_wallet_backup,
    "transactions": handle_transactions,
    "new-transaction": handle_new_transaction,
    "delete-transaction": handle_delete_transaction,
    "tmp-transactions": handle_tmp_transactions,
    "transaction-hash": handle_transaction_hash,
    "add-input": handle_add_input,
    "add-output": handle_add_output,
    "add-ec-output": handle_add_ec_output,
    "add-fee": handle_add_fee,
    "sub-fee": handle_sub_fee,
    "sign-transaction": handle_sign_transaction,
    "compose-transaction": handle_compose_transaction,
    "remove-address": handle_remove_address,
    "properties": handle_properties,
    "compose-chain": handle_compose_chain,
    "compose-entry": handle_compose_entry,
    "get-height": handle_get_height,
    "wallet-balances": handle_wallet_balances,
    "import-identity-keys": handle_import_identity_keys,
    "identity-keys-at-height": handle_identity_keys_at_height,
    "sign-data": handle_sign_data,
}


def dispatch(wallet, request: JSON2Request, client=None) -> JSON2Response:
    """Run one request against the wallet; errors come back in the response."""
    handler = HANDLERS.get(request.method)
    if handler is None:
        logger.warning("Unknown wallet method %r", request.method)
        return JSON2Response(request.id, error=new_method_not_found_error())

    logger.debug("API V2 method: <%s> id=%s", request.method, request.id)
    params = request.params if request.params is not None else {}
    try:
        result = handler(wallet, params, get_client(client))
    except JSONError as err:
        return JSON2Response(request.id, error=err)
    except (FactomError, ValueError) as err:
        return JSON2Response(request.id, error=new_custom_internal_error(str(err)))
    return JSON2Response(request.id, result=result)


# -------------------------------------------------------------------------
# HTTP
# -------------------------------------------------------------------------

def basic_auth_digest(user: str, password: str) -> bytes:
    """SHA-256 of the Authorization header a client with these credentials sends."""
    token = base64.b64encode(("%s:%s" % (user, password)).encode("utf-8")).decode("ascii")
    return hashlib.sha256(("Basic " + token).encode("utf-8")).digest()


def check_auth_header(header, expected: bytes) -> bool:
    if not header:
        return False
    presented = hashlib.sha256(header.encode("utf-8")).digest()
    return hmac.compare_digest(presented, expected)


def create_app(wallet, config: RPCConfig = None, client=None) -> FastAPI:
    """FastAPI app serving ``wallet`` on POST and GET ``/v2``.

    ``client`` (default: built from ``config``) is how handlers reach factomd.
    """
    config = config or RPCConfig()
    client = client or Client(config)
    rpc_user = config.wallet_rpc_user
    expected = basic_auth_digest(rpc_user, config.wallet_rpc_password)

    app = FastAPI(title="factom-walletd", version=WALLET_VERSION)
    app.state.wallet = wallet

    @app.api_route("/v2", methods=["GET", "POST"])
    async def handle_v2(request: Request):
        if rpc_user and not check_auth_header(request.headers.get("authorization"), expected):
            remote = request.client.host if request.client else ""
            logger.warning("Unauthorized API client connection attempt from %s", remote)
            return PlainTextResponse("401 Unauthorized.", status_code=401,
                                     headers={"WWW-Authenticate": AUTH_REALM})

        body = await request.body()
        try:
            req = JSON2Request.parse(body)
        except ValueError:
            resp = JSON2Response(None, error=new_invalid_request_error())
            return JSONResponse(resp.to_dict(), status_code=400)

        resp = await run_in_threadpool(dispatch, wallet, req, client)
        return JSONResponse(resp.to_dict(), status_code=400 if resp.error else 200)

    return app
