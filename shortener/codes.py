"""Random short-code generation.

Codes are drawn with nanoid from a URL-safe alphabet, so they can be used as
a path segment without escaping. With 64 symbols and the default length of 6
there are 64**6 (about 6.9e10) codes, which keeps collisions rare enough that
the registry's bounded redraw loop practically never runs twice.
"""

from nanoid import generate

__all__ = ["URL_SAFE_ALPHABET", "CodeGenerator", "generate_short_code"]

URL_SAFE_ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DEFAULT_CODE_LENGTH = 6


def generate_short_code(length: int = DEFAULT_CODE_LENGTH, alphabet: str = URL_SAFE_ALPHABET) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(alphabet, length)


class CodeGenerator:
    """Produces non-sequential short codes of a fixed length and alphabet."""

    def __init__(self, length: int = DEFAULT_CODE_LENGTH, alphabet: str = URL_SAFE_ALPHABET) -> None:
        if length <= 0:
            raise ValueError(f"Code length must be positive, got {length}")
        if len(set(alphabet)) < 2:
            raise ValueError("Alphabet must contain at least two distinct symbols")
        self.length = length
        self.alphabet = alphabet

    def generate(self, length: int | None = None) -> str:
        return generate_short_code(length or self.length, self.alphabet)
