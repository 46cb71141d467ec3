import pytest

from alphaos.fstypes import (
    FileMode,
    FileStat,
    Filesystem,
    StatFlag,
    file_mode_from_string,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("r", FileMode.READ),
        ("w", FileMode.WRITE),
        ("a", FileMode.APPEND),
        ("rb", FileMode.READ),
        ("w+", FileMode.WRITE),
        ("x", FileMode.INVALID),
        ("", FileMode.INVALID),
        ("R", FileMode.INVALID),
    ],
)
def test_file_mode_from_string(text, expected):
    assert file_mode_from_string(text) is expected


def test_file_stat_read_only_flag():
    assert FileStat(StatFlag.READ_ONLY, 10).read_only is True
    assert FileStat(StatFlag.NONE, 10).read_only is False


def test_file_stat_defaults():
    stat = FileStat()
    assert stat.filesize == 0
    assert stat.read_only is False


def test_filesystem_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Filesystem()