"""
Value objects - Validated, immutable wrappers around primitive strings.

Construction always validates, so an instance in hand is known-good:
- EmailAddress: trimmed, lowercased, shaped like local@domain.tld
- Password: 8-100 characters and not easily guessable (zxcvbn score >= 3)
- ConfirmationToken: opaque token compared only in constant time
"""

import re
import secrets
from dataclasses import dataclass, field

from zxcvbn import zxcvbn

from .exceptions import (
    EmptyEmailAddress,
    InvalidEmailAddress,
    PasswordNotEncodable,
    PasswordTooLong,
    PasswordTooShort,
    PasswordTooWeak,
)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100

# zxcvbn scores run 0-4; 3 is "safely unguessable" for online attacks.
PASSWORD_MIN_SCORE = 3

# zxcvbn gets slow on long inputs and only the prefix matters for scoring.
_STRENGTH_CHECK_LENGTH = 72

_MASK = "********"


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address value object.

    Normalization applies: strip whitespace + lowercase.
    Equality and hashing use the normalized value.

    Raises:
        EmptyEmailAddress: If nothing remains after trimming
        InvalidEmailAddress: If the value is not shaped like local@domain.tld
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()

        if not normalized:
            raise EmptyEmailAddress()

        if not _EMAIL_PATTERN.match(normalized):
            raise InvalidEmailAddress()

        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


class Password:
    """
    Plaintext password held only long enough to be hashed.

    Never displayed: str() and repr() are always masked. The raw value
    is reachable only through as_bytes(), which exists for hashing.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: str) -> None:
        if len(raw) < PASSWORD_MIN_LENGTH:
            raise PasswordTooShort(PASSWORD_MIN_LENGTH)

        if len(raw) > PASSWORD_MAX_LENGTH:
            raise PasswordTooLong(PASSWORD_MAX_LENGTH)

        try:
            raw.encode()
        except UnicodeEncodeError:
            raise PasswordNotEncodable() from None

        result = zxcvbn(raw[:_STRENGTH_CHECK_LENGTH])
        if result["score"] < PASSWORD_MIN_SCORE:
            feedback = result.get("feedback") or {}
            suggestions = [s for s in [feedback.get("warning")] if s]
            suggestions.extend(feedback.get("suggestions") or [])
            raise PasswordTooWeak(suggestions)

        self._raw = raw

    def as_bytes(self) -> bytes:
        """Raw UTF-8 bytes, for password hashing only."""
        return self._raw.encode()

    def __str__(self) -> str:
        return _MASK

    def __repr__(self) -> str:
        return f"Password({_MASK})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Password):
            return NotImplemented
        return secrets.compare_digest(self.as_bytes(), other.as_bytes())

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True, eq=False)
class ConfirmationToken:
    """
    Opaque email confirmation token.

    The holder treats it as a string; the only supported comparison
    is matches(), which runs in constant time.
    """

    value: str = field(repr=False)

    def matches(self, presented: str) -> bool:
        """
        Compare a presented token to this one without short-circuiting.

        Inputs of any length (including empty, or holding lone surrogates)
        are accepted and simply fail to match.
        """
        return secrets.compare_digest(
            self.value.encode("utf-8", "surrogatepass"),
            presented.encode("utf-8", "surrogatepass"),
        )

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"ConfirmationToken({_MASK})"
