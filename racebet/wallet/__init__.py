"""Solana wallet and transfer helpers."""

from racebet.wallet.transfer import (
    SolanaTransferService,
    load_keypair,
    parse_pubkey,
    sol_to_lamports,
)

__all__ = [
    "SolanaTransferService",
    "load_keypair",
    "parse_pubkey",
    "sol_to_lamports",
]
