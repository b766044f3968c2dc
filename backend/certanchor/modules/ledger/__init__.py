"""Adapter to the certificate registry smart contract."""

from certanchor.modules.ledger.client import (
    ConnectionState,
    LedgerClient,
    Web3LedgerClient,
    create_ledger_client,
)
from certanchor.modules.ledger.contract import CERTIFICATE_REGISTRY_ABI, load_contract_abi

__all__ = [
    "CERTIFICATE_REGISTRY_ABI",
    "ConnectionState",
    "LedgerClient",
    "Web3LedgerClient",
    "create_ledger_client",
    "load_contract_abi",
]
