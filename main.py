#!/usr/bin/env python3
"""
factom-walletd

Runs the wallet daemon: a JSON-RPC 2.0 server on /v2 that holds Factoid,
Entry Credit and identity keys and builds signed transactions.

Usage:
    # Default wallet file, talk to a local factomd
    factom-walletd

    # Listen elsewhere, require credentials
    factom-walletd --port 8089 --rpc-user alice --rpc-password secret

    # Serve over TLS
    factom-walletd --tls-cert wallet.cert --tls-key wallet.key
"""

import argparse
import logging
import os

import uvicorn

from factom.config import RPCConfig, WALLET_VERSION
from factom.jsonrpc import Client
from factom.wallet.database import WalletDatabase
from factom.wallet.txdatabase import TXDatabase
from factom.wallet.wallet import Wallet
from factom.wallet.wsapi import create_app

logger = logging.getLogger(__name__)

DEFAULT_HOME = os.path.join(os.path.expanduser("~"), ".factom", "wallet")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Factom wallet daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  factom-walletd                                      # localhost:8089
  factom-walletd --factomd node.example.com:8088      # remote factomd
  factom-walletd --tls-cert wallet.cert --tls-key wallet.key
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Interface to listen on (default: localhost)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8089,
        help="Port to listen on (default: 8089)"
    )

    parser.add_argument(
        "--wallet",
        type=str,
        default=os.path.join(DEFAULT_HOME, "factom_wallet.db"),
        help="Wallet database file"
    )

    parser.add_argument(
        "--txdb",
        type=str,
        default=os.path.join(DEFAULT_HOME, "factoid_blocks.cache"),
        help="Factoid block cache used for transaction history"
    )

    parser.add_argument(
        "--factomd",
        type=str,
        default=None,
        help="factomd host:port (default: $FACTOMD_SERVER or localhost:8088)"
    )

    parser.add_argument("--rpc-user", type=str, default="", help="Username for API calls")
    parser.add_argument("--rpc-password", type=str, default="", help="Password for API calls")

    parser.add_argument("--tls-cert", type=str, default="", help="TLS certificate file")
    parser.add_argument("--tls-key", type=str, default="", help="TLS private key file")

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def build_config(args) -> RPCConfig:
    config = RPCConfig.from_env()
    if args.factomd:
        config.set_factomd_server(args.factomd)
    config.set_wallet_server("%s:%d" % (args.host, args.port))
    if args.rpc_user or args.rpc_password:
        config.set_wallet_rpc_config(args.rpc_user, args.rpc_password)
    if args.tls_cert and args.tls_key:
        config.set_wallet_encryption(True, args.tls_cert, args.tls_key)
    return config


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )

    config = build_config(args)
    client = Client(config)

    for path in (args.wallet, args.txdb):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    wallet = Wallet(WalletDatabase(args.wallet), TXDatabase(args.txdb, client))

    logger.info("factom-walletd %s listening on %s:%d (factomd %s)",
                WALLET_VERSION, args.host, args.port, config.factomd_server)

    app = create_app(wallet, config, client)
    try:
        uvicorn.run(
            app,
            host=args.host,
            port=args.port,
            ssl_certfile=config.wallet_tls_cert_file or None,
            ssl_keyfile=config.wallet_tls_key_file or None,
            log_level="debug" if args.debug else "info",
        )
    finally:
        wallet.close()
        logger.info("Wallet closed")


if __name__ == "__main__":
    main()
