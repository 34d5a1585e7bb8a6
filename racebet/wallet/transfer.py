"""Solana transfer adapter.

Builds single-transfer transactions (stake deposits and payouts) with an
optional memo, and submits, confirms and looks up transactions through a
Solana JSON-RPC node.
"""

import base64
import json
import logging
import time
from decimal import ROUND_DOWN, Decimal
from typing import Callable

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from racebet.constants import DEFAULT_SOLANA_RPC_HOST, LAMPORTS_PER_SOL, MEMO_PROGRAM_ID
from racebet.errors import TransferError, UpstreamUnavailableError, ValidationError

logger = logging.getLogger(__name__)

_CONFIRMED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


def sol_to_lamports(amount: float) -> int:
    """Convert a SOL amount to lamports, truncating sub-lamport dust.

    Raises:
        ValidationError: If the amount is not positive.
    """
    lamports = int(
        (Decimal(str(amount)) * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_DOWN)
    )
    if lamports <= 0:
        raise ValidationError(f"Transfer amount must be positive: {amount}")
    return lamports


def parse_pubkey(address: str) -> Pubkey:
    """Parse a base58 wallet address.

    Raises:
        ValidationError: If the address is not a valid public key.
    """
    try:
        return Pubkey.from_string(address)
    except Exception as e:
        raise ValidationError(f"Invalid wallet address: {address!r}") from e


def load_keypair(secret: str) -> Keypair:
    """Load a keypair from a base58 secret or a JSON byte array (solana-keygen format)."""
    secret = secret.strip()
    try:
        if secret.startswith("["):
            return Keypair.from_bytes(bytes(json.loads(secret)))
        return Keypair.from_base58_string(secret)
    except Exception as e:
        raise ValidationError("Invalid house wallet secret key") from e


class SolanaTransferService:
    """Adapter over a Solana RPC client for SOL value transfers.

    Attributes:
        client: solana-py RPC client.
        poll_interval: Seconds between signature status polls.
    """

    def __init__(
        self,
        client: Client | None = None,
        endpoint: str = DEFAULT_SOLANA_RPC_HOST,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize SolanaTransferService.

        Args:
            client: RPC client; one is created for ``endpoint`` when omitted.
            endpoint: JSON-RPC endpoint URL.
            poll_interval: Seconds between confirmation polls.
            sleep: Sleep function (injected for tests).
            monotonic: Monotonic clock (injected for tests).
        """
        self.client = client if client is not None else Client(endpoint, commitment=Confirmed)
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._monotonic = monotonic

    # ---- building ----------------------------------------------------

    def build_transfer_transaction(
        self,
        from_wallet: str,
        to_wallet: str,
        amount: float,
        memo: str | None = None,
    ) -> Transaction:
        """Build an unsigned transfer of ``amount`` SOL.

        The transaction holds one System Program transfer and, when
        ``memo`` is given, one Memo program instruction. It is stamped with
        the latest blockhash; the sender pays the fee.

        Args:
            from_wallet: Sender public key (fee payer).
            to_wallet: Recipient public key.
            amount: Amount in SOL.
            memo: Optional opaque metadata string.

        Returns:
            Unsigned transaction.

        Raises:
            ValidationError: On an invalid address or amount.
            UpstreamUnavailableError: If the blockhash cannot be fetched.
        """
        from_pubkey = parse_pubkey(from_wallet)
        to_pubkey = parse_pubkey(to_wallet)

        instructions = [
            transfer(
                TransferParams(
                    from_pubkey=from_pubkey,
                    to_pubkey=to_pubkey,
                    lamports=sol_to_lamports(amount),
                )
            )
        ]
        if memo:
            instructions.append(
                Instruction(Pubkey.from_string(MEMO_PROGRAM_ID), memo.encode("utf-8"), [])
            )

        try:
            blockhash = self.client.get_latest_blockhash().value.blockhash
        except Exception as e:
            raise UpstreamUnavailableError(f"Could not fetch latest blockhash: {e}") from e

        message = Message.new_with_blockhash(instructions, from_pubkey, blockhash)
        return Transaction.new_unsigned(message)

    def build_bet_transaction(
        self, from_wallet: str, house_wallet: str, amount: float, memo: str | None = None
    ) -> Transaction:
        """Stake deposit: bettor -> house account."""
        return self.build_transfer_transaction(from_wallet, house_wallet, amount, memo)

    def build_payout_transaction(
        self, house_wallet: str, winner_wallet: str, amount: float, memo: str | None = None
    ) -> Transaction:
        """Payout: house account -> winner."""
        return self.build_transfer_transaction(house_wallet, winner_wallet, amount, memo)

    @staticmethod
    def serialize_transaction(transaction: Transaction) -> str:
        """Base64 wire format, for handing an unsigned transaction to a browser wallet."""
        return base64.b64encode(bytes(transaction)).decode("ascii")

    @staticmethod
    def deserialize_transaction(raw: bytes | str | list[int]) -> Transaction:
        """Parse a transaction from raw bytes, a byte list or base64 text.

        Raises:
            ValidationError: If the payload is not a transaction.
        """
        try:
            if isinstance(raw, str):
                raw = base64.b64decode(raw)
            return Transaction.from_bytes(bytes(raw))
        except Exception as e:
            raise ValidationError("Malformed signed transaction") from e

    @staticmethod
    def decode_transfer(transaction: Transaction) -> tuple[str, str, int]:
        """Return (sender, recipient, lamports) of the transaction's System Program transfer.

        Raises:
            ValidationError: If the transaction holds no SOL transfer.
        """
        message = transaction.message
        keys = message.account_keys
        for ix in message.instructions:
            if keys[ix.program_id_index] != SYSTEM_PROGRAM_ID:
                continue
            data = bytes(ix.data)
            # System Programのtransfer: u32 LEのタグ2 + u64 LEのlamports
            if len(data) == 12 and int.from_bytes(data[:4], "little") == 2:
                sender = keys[ix.accounts[0]]
                recipient = keys[ix.accounts[1]]
                return str(sender), str(recipient), int.from_bytes(data[4:], "little")
        raise ValidationError("Transaction does not contain a SOL transfer")

    @staticmethod
    def sign_transaction(transaction: Transaction, keypair: Keypair) -> Transaction:
        """Return ``transaction`` signed by ``keypair`` against its own blockhash."""
        message = transaction.message
        return Transaction([keypair], message, message.recent_blockhash)

    @staticmethod
    def signature_of(transaction: Transaction) -> str:
        """Fee payer signature (base58), known as soon as the transaction is signed."""
        return str(transaction.signatures[0])

    @staticmethod
    def blockhash_of(transaction: Transaction) -> str:
        return str(transaction.message.recent_blockhash)

    # ---- submission --------------------------------------------------

    def submit_transaction(
        self, transaction: Transaction, max_retries: int = 3, backoff: float = 1.0
    ) -> str:
        """Send a signed transaction, retrying on RPC failures.

        Re-sending the same signed bytes cannot transfer twice: the
        signature is fixed by the signed message, so the network accepts it
        at most once.

        Args:
            transaction: Signed transaction.
            max_retries: Total send attempts.
            backoff: Base delay in seconds, multiplied by the attempt number.

        Returns:
            Transaction signature (base58).

        Raises:
            TransferError: If every attempt failed and the transaction is
                not known to the cluster.
        """
        signature = transaction.signatures[0]
        if signature == Signature.default():
            raise TransferError("Transaction is not signed")

        raw = bytes(transaction)
        last_error: Exception | None = None
        for attempt in range(1, max_retries + 1):
            try:
                response = self.client.send_raw_transaction(
                    raw, opts=TxOpts(skip_confirmation=True, preflight_commitment=Confirmed)
                )
                return str(response.value)
            except Exception as e:
                last_error = e
                logger.warning(
                    "Send attempt %d/%d for %s failed: %s", attempt, max_retries, signature, e
                )
                if self._signature_status(signature) is not None:
                    return str(signature)
                if attempt < max_retries:
                    self._sleep(backoff * attempt)

        raise TransferError(f"Failed to send transaction {signature}: {last_error}")

    def confirm_transaction(self, signature: str, timeout: float = 60.0) -> bool:
        """Wait until ``signature`` reaches confirmed commitment.

        Args:
            signature: Transaction signature.
            timeout: Maximum seconds to wait.

        Returns:
            True once confirmed, False if ``timeout`` elapsed first.

        Raises:
            TransferError: If the transaction landed with an error.
        """
        sig = Signature.from_string(signature)
        deadline = self._monotonic() + timeout
        while True:
            status = self._signature_status(sig)
            if status is not None:
                if status.err is not None:
                    raise TransferError(f"Transaction {signature} failed: {status.err}")
                if status.confirmation_status in _CONFIRMED_STATUSES:
                    return True
            if self._monotonic() >= deadline:
                return False
            self._sleep(self.poll_interval)

    def is_transaction_expired(self, signature: str, blockhash: str) -> bool:
        """Return True once the transaction can no longer land on-chain.

        That is the case when its blockhash is no longer valid and the
        cluster has no record of the signature. The blockhash is checked
        first, so a transaction that lands in between is still found by
        the signature lookup.

        Args:
            signature: Transaction signature.
            blockhash: Blockhash the transaction was signed against.

        Raises:
            UpstreamUnavailableError: If either RPC call fails.
        """
        try:
            valid = self.client.is_blockhash_valid(Hash.from_string(blockhash)).value
        except Exception as e:
            raise UpstreamUnavailableError(f"Could not check blockhash {blockhash}: {e}") from e
        if valid:
            return False

        try:
            status = self.client.get_signature_statuses(
                [Signature.from_string(signature)], search_transaction_history=True
            ).value[0]
        except Exception as e:
            raise UpstreamUnavailableError(f"Could not look up {signature}: {e}") from e
        return status is None

    def _signature_status(self, signature: Signature):
        try:
            return self.client.get_signature_statuses([signature]).value[0]
        except Exception as e:
            logger.warning("Signature status lookup failed for %s: %s", signature, e)
            return None

    # ---- lookups -----------------------------------------------------

    def get_balance(self, wallet_address: str) -> float:
        """Return the SOL balance of a wallet.

        Raises:
            ValidationError: On an invalid address.
            UpstreamUnavailableError: If the RPC call fails.
        """
        pubkey = parse_pubkey(wallet_address)
        try:
            lamports = self.client.get_balance(pubkey).value
        except Exception as e:
            raise UpstreamUnavailableError(f"Error getting balance: {e}") from e
        return lamports / LAMPORTS_PER_SOL

    def verify_transaction(self, signature: str) -> bool:
        """Return True if the cluster knows the transaction (existence check only)."""
        try:
            response = self.client.get_transaction(
                Signature.from_string(signature), max_supported_transaction_version=0
            )
        except Exception as e:
            logger.error("Error verifying transaction %s: %s", signature, e)
            return False
        return response.value is not None

    def get_transaction_details(self, signature: str) -> dict | None:
        """Return the transaction as decoded JSON, or None if unknown.

        Raises:
            UpstreamUnavailableError: If the RPC call fails.
        """
        try:
            response = self.client.get_transaction(
                Signature.from_string(signature), max_supported_transaction_version=0
            )
        except Exception as e:
            raise UpstreamUnavailableError(f"Error getting transaction details: {e}") from e
        if response.value is None:
            return None
        return json.loads(response.value.to_json())
