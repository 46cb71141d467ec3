"""NUL-terminated string helpers with C comparison semantics.

Strings are treated as ending at their first NUL character or at their end,
whichever comes first.
"""

from itertools import chain, islice, repeat


def _codes(s):
    """Character codes of ``s`` followed by an endless run of NULs."""
    head = iter(s) if isinstance(s, (bytes, bytearray)) else map(ord, s)
    return chain(head, repeat(0))


def _lower_code(code):
    if ord("A") <= code <= ord("Z"):
        return code + 32
    return code


def _terminated(s):
    return s.split("\0", 1)[0]


def tolower(c):
    """Lower-case a single ASCII letter; other characters are returned unchanged."""
    return chr(_lower_code(ord(c)))


def strnlen(s, max_len):
    """Length of ``s`` up to its terminator, at most ``max_len``."""
    return min(len(_terminated(s)), max(max_len, 0))


def strnlen_terminator(s, max_len, terminator):
    """Count characters before a NUL, ``terminator`` or ``max_len``."""
    count = 0
    for ch in islice(_terminated(s), max(max_len, 0)):
        if ch == terminator:
            break
        count += 1
    return count


def strncmp(a, b, n):
    """Compare at most ``n`` characters; the sign gives the ordering."""
    for u1, u2 in islice(zip(_codes(a), _codes(b)), max(n, 0)):
        if u1 != u2:
            return u1 - u2
        if u1 == 0:
            return 0
    return 0


def istrncmp(a, b, n):
    """Case-insensitive variant of :func:`strncmp`."""
    for u1, u2 in islice(zip(_codes(a), _codes(b)), max(n, 0)):
        if u1 != u2 and _lower_code(u1) != _lower_code(u2):
            return u1 - u2
        if u1 == 0:
            return 0
    return 0


def strncpy(src, n):
    """Copy of ``src`` holding at most ``n - 1`` characters before the terminator."""
    return _terminated(src)[: max(n - 1, 0)]


def isdigit(c):
    """True when ``c`` is one ASCII decimal digit."""
    return len(c) == 1 and "0" <= c <= "9"


def tonumericdigit(c):
    """Numeric value of a digit character."""
    return ord(c) - ord("0")