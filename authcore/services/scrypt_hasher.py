"""Salted scrypt hashing in the ``salt:hash`` format."""
import hashlib
import hmac
import secrets

SEPARATOR = ":"


class ScryptHasher:
    """
    scrypt key derivation producing ``<hex salt>:<hex derived key>``.

    The hex salt *string* is fed to scrypt as the salt (not its decoded
    bytes). Together with the default cost parameters this keeps hashes
    compatible with ones produced by Node's ``crypto.scryptSync(secret,
    saltHex, 64)``.

    Used for both passwords and reset tokens; every call draws a fresh
    salt, so the two never share derived material.
    """

    def __init__(
        self,
        n: int = 16384,
        r: int = 8,
        p: int = 1,
        key_length: int = 64,
        salt_bytes: int = 16,
    ):
        """
        Initialize hasher.

        Args:
            n: CPU/memory cost, must be a power of two greater than 1
            r: Block size
            p: Parallelization
            key_length: Derived key length in bytes
            salt_bytes: Random salt length in bytes (hex doubles it)
        """
        if n < 2 or n & (n - 1):
            raise ValueError("n must be a power of two greater than 1")
        if key_length < 16:
            raise ValueError("key_length must be at least 16 bytes")

        self._n = n
        self._r = r
        self._p = p
        self._key_length = key_length
        self._salt_bytes = salt_bytes
        # OpenSSL rejects derivations above its default 32 MiB unless told otherwise
        self._maxmem = max(32 * 1024 * 1024, 129 * n * r * p)

    @property
    def key_length(self) -> int:
        return self._key_length

    def derive(self, secret: str, salt: str) -> bytes:
        """Derive the raw key for ``secret`` under a hex ``salt`` string."""
        return hashlib.scrypt(
            secret.encode("utf-8"),
            salt=salt.encode("utf-8"),
            n=self._n,
            r=self._r,
            p=self._p,
            maxmem=self._maxmem,
            dklen=self._key_length,
        )

    def hash(self, secret: str) -> str:
        """
        Hash a secret with a fresh random salt.

        Returns:
            ``salt:hash`` string, both parts hex-encoded
        """
        salt = secrets.token_hex(self._salt_bytes)
        derived = self.derive(secret, salt)
        return f"{salt}{SEPARATOR}{derived.hex()}"

    def verify(self, secret: str, stored: str) -> bool:
        """
        Check a secret against a stored ``salt:hash`` string.

        Never raises: malformed input of any kind is a mismatch.
        """
        try:
            parts = stored.split(SEPARATOR)
            if len(parts) != 2:
                return False
            salt, expected_hex = parts
            if not salt or not expected_hex:
                return False

            expected = bytes.fromhex(expected_hex)
            actual = self.derive(secret, salt)

            # compare_digest needs equal lengths to stay meaningful
            if len(expected) != len(actual):
                return False
            return hmac.compare_digest(actual, expected)
        except (ValueError, TypeError, AttributeError, UnicodeError):
            return False
