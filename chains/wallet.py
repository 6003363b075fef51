"""
chains/wallet.py - Signing wallet.

Wraps an eth_account LocalAccount. The private key never leaves this
object and is never logged.
"""

from typing import Any

from eth_account import Account
from eth_utils import ValidationError as KeyValidationError
from eth_utils import to_checksum_address

from core.constants import ErrorCode
from core.exceptions import BroadcastError, FatalError


class Wallet:
    """Local signing wallet bound to one chain id."""

    def __init__(self, private_key: str, chain_id: int):
        if not private_key:
            raise FatalError(
                "Signing credential is missing",
                code=ErrorCode.CREDENTIAL_INVALID,
            )
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError, KeyValidationError) as e:
            # Exception text may echo key material
            raise FatalError(
                "Signing credential could not be parsed",
                code=ErrorCode.CREDENTIAL_INVALID,
                details={"error_type": type(e).__name__},
            ) from None
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        """Checksummed wallet address."""
        return self._account.address

    def __repr__(self) -> str:
        return f"Wallet(address={self.address}, chain_id={self.chain_id})"

    def sign_transaction(
        self,
        to: str,
        data: str,
        value: int,
        gas: int,
        gas_price: int,
        nonce: int,
    ) -> bytes:
        """
        Sign a legacy (gasPrice) transaction.

        Returns:
            Raw signed transaction bytes

        Raises:
            BroadcastError: if the transaction cannot be signed
        """
        tx: dict[str, Any] = {
            "to": to_checksum_address(to),
            "data": data,
            "value": value,
            "gas": gas,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": self.chain_id,
        }
        try:
            signed = self._account.sign_transaction(tx)
        except (ValueError, TypeError) as e:
            raise BroadcastError(
                f"Signing failed: {e}",
                details={"to": to, "nonce": nonce},
            ) from e
        return bytes(signed.raw_transaction)
