"""
Address Normalizer - Canonical form for account-style (EVM) addresses.

Pure functions only: no I/O, no logging.
"""

from typing import Union

from eth_utils import is_checksum_address, is_hex_address, to_canonical_address

from token_exporter.exceptions import InvalidAddressError
from token_exporter.models import CanonicalAddress


ADDRESS_HEX_LENGTH = 40


class AddressNormalizer:
    """
    Canonicalizes raw address text.

    Accepts 40 hex characters with or without a 0x prefix. Mixed-case
    input must carry a valid EIP-55 checksum; all-lower and all-upper
    input is accepted as is. Every accepted encoding of the same bytes
    yields the same CanonicalAddress.
    """

    def normalize(self, raw: Union[str, CanonicalAddress]) -> CanonicalAddress:
        if isinstance(raw, CanonicalAddress):
            return raw
        if not isinstance(raw, str):
            raise InvalidAddressError(
                f"Address must be a string, got {type(raw).__name__}",
                raw_address=repr(raw),
            )

        text = raw.strip()
        body = text[2:] if text[:2].lower() == "0x" else text
        if len(body) != ADDRESS_HEX_LENGTH:
            raise InvalidAddressError(
                f"Expected {ADDRESS_HEX_LENGTH} hex characters, got {len(body)}",
                raw_address=raw,
            )

        candidate = "0x" + body
        if not is_hex_address(candidate):
            raise InvalidAddressError("Invalid hex characters", raw_address=raw)

        # mixed case carries an EIP-55 checksum
        if body not in (body.lower(), body.upper()) and not is_checksum_address(candidate):
            raise InvalidAddressError("Checksum mismatch", raw_address=raw)

        return CanonicalAddress(to_canonical_address(candidate))

    def is_valid(self, raw: Union[str, CanonicalAddress]) -> bool:
        try:
            self.normalize(raw)
        except InvalidAddressError:
            return False
        return True


_default_normalizer = AddressNormalizer()


def normalize_address(raw: Union[str, CanonicalAddress]) -> CanonicalAddress:
    """Module-level shortcut for AddressNormalizer().normalize()."""
    return _default_normalizer.normalize(raw)
