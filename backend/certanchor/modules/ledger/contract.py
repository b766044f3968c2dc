"""ABI of the certificate registry contract and ABI loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

FN_STORE_CERTIFICATE = "storeCertificate"
FN_CERTIFICATE_EXISTS = "certificateExists"


def _string_input(name: str) -> dict[str, str]:
    return {"internalType": "string", "name": name, "type": "string"}


def _output(type_: str) -> list[dict[str, str]]:
    return [{"internalType": type_, "name": "", "type": type_}]


CERTIFICATE_REGISTRY_ABI: list[dict[str, Any]] = [
    {"inputs": [], "stateMutability": "nonpayable", "type": "constructor"},
    {
        "anonymous": False,
        "inputs": [
            {**_string_input("certificateHash"), "indexed": False},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": "CertificateStored",
        "type": "event",
    },
    {
        "inputs": [_string_input("certificateHash")],
        "name": FN_CERTIFICATE_EXISTS,
        "outputs": _output("bool"),
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_string_input("certificateHash")],
        "name": "getCertificateIssueDate",
        "outputs": _output("uint256"),
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "owner",
        "outputs": _output("address"),
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_string_input("certificateHash")],
        "name": FN_STORE_CERTIFICATE,
        "outputs": _output("bool"),
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_string_input("certificateHash")],
        "name": "verifyCertificate",
        "outputs": _output("bool"),
        "stateMutability": "view",
        "type": "function",
    },
]


def load_contract_abi(path: Path | str | None) -> list[dict[str, Any]]:
    """Load a contract ABI from disk, falling back to the bundled registry ABI.

    The file may hold a bare ABI list or a deployment record such as
    ``{"address": "0x...", "abi": [...]}``.
    """
    if path is None:
        return CERTIFICATE_REGISTRY_ABI
    abi_path = Path(path)
    with abi_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    abi = data.get("abi") if isinstance(data, dict) else data
    if not isinstance(abi, list) or not abi:
        raise ValueError(f"No contract ABI found in {abi_path}")
    return abi
