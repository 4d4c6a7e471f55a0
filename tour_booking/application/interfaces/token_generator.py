"""TokenGenerator port - booking ids, human-readable references and voucher tokens."""

import secrets
import string
import uuid
from abc import ABC, abstractmethod


class TokenGenerator(ABC):
    @abstractmethod
    def generate_booking_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def generate_reference(self) -> str:
        """Short, human-readable and unique booking reference."""
        raise NotImplementedError

    @abstractmethod
    def generate_voucher_token(self) -> str:
        """Opaque, unguessable credential for the voucher view."""
        raise NotImplementedError


class RealTokenGenerator(TokenGenerator):
    REFERENCE_LENGTH = 8
    # No 0/O or 1/I so references survive being read over the phone.
    ALLOWED_CHARS = "".join(c for c in string.ascii_uppercase + string.digits if c not in "01IO")

    def __init__(self, prefix: str = "TB") -> None:
        self._prefix = prefix

    def generate_booking_id(self) -> str:
        return str(uuid.uuid4())

    def generate_reference(self) -> str:
        code = "".join(secrets.choice(self.ALLOWED_CHARS) for _ in range(self.REFERENCE_LENGTH))
        return f"{self._prefix}-{code}"

    def generate_voucher_token(self) -> str:
        return secrets.token_urlsafe(32)


class FakeTokenGenerator(TokenGenerator):
    """Predictable values for tests; queue_reference forces the next reference."""

    def __init__(self, prefix: str = "TEST") -> None:
        self._prefix = prefix
        self._counter = 0
        self._queued_references: list[str] = []

    def generate_booking_id(self) -> str:
        self._counter += 1
        return f"00000000-0000-0000-0000-{self._counter:012d}"

    def generate_reference(self) -> str:
        if self._queued_references:
            return self._queued_references.pop(0)
        self._counter += 1
        return f"{self._prefix}-{self._counter:06d}"

    def generate_voucher_token(self) -> str:
        self._counter += 1
        return f"voucher-{self._prefix.lower()}-{self._counter:06d}"

    def queue_reference(self, reference: str) -> None:
        self._queued_references.append(reference)
