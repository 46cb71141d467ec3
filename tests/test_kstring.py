from alphaos.kstring import (
    isdigit,
    istrncmp,
    strncmp,
    strncpy,
    strnlen,
    strnlen_terminator,
    tolower,
    tonumericdigit,
)


def test_tolower_letters_and_others():
    assert tolower("A") == "a"
    assert tolower("Z") == "z"
    assert tolower("q") == "q"
    assert tolower("[") == "["
    assert tolower("@") == "@"


def test_strnlen_limits():
    assert strnlen("hello", 3) == 3
    assert strnlen("hello", 10) == len("hello")
    assert strnlen("hi\0there", 10) == len("hi")
    assert strnlen("hello", -1) == 0


def test_strnlen_terminator():
    assert strnlen_terminator("abc/def", 10, "/") == len("abc")
    assert strnlen_terminator("abcdef", 4, "/") == 4
    assert strnlen_terminator("ab\0cd", 10, "/") == len("ab")
    assert strnlen_terminator("abc", 0, "/") == 0


def test_strncmp_equal_and_limited():
    assert strncmp("abc", "abc", 3) == 0
    assert strncmp("abcX", "abcY", 3) == 0
    assert strncmp("abc", "abc", 100) == 0


def test_strncmp_ordering():
    assert strncmp("abc", "abd", 3) == ord("c") - ord("d")
    assert strncmp("abd", "abc", 3) > 0
    assert strncmp("ab", "abc", 5) < 0
    assert strncmp("abc", "ab", 5) > 0


def test_strncmp_is_case_sensitive():
    assert strncmp("Hello", "hello", 5) == ord("H") - ord("h")


def test_istrncmp_ignores_case():
    assert istrncmp("HeLLo", "hello", 5) == 0
    assert istrncmp("BLANK.BIN", "blank.bin", 108) == 0


def test_istrncmp_difference():
    assert istrncmp("abc", "abd", 3) == ord("c") - ord("d")
    assert istrncmp("abc", "ABCD", 10) < 0


def test_strncpy_truncates_to_n_minus_one():
    assert strncpy("hello", 3) == "he"
    assert strncpy("hello", 100) == "hello"
    assert strncpy("hello", 0) == ""
    assert strncpy("he\0llo", 10) == "he"


def test_isdigit():
    assert all(isdigit(c) for c in "0123456789")
    assert not isdigit("a")
    assert not isdigit("")
    assert not isdigit("12")


def test_tonumericdigit_round_trip():
    for value in range(10):
        assert tonumericdigit(str(value)) == value