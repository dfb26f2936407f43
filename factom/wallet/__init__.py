from .database import DBSeed, WalletDatabase, seed_string
from .txdatabase import TXDatabase
from .wallet import Wallet, export_wallet, import_wallet_from_mnemonic, transaction_to_dict

__all__ = [
    "DBSeed",
    "WalletDatabase",
    "seed_string",
    "TXDatabase",
    "Wallet",
    "export_wallet",
    "import_wallet_from_mnemonic",
    "transaction_to_dict",
]
