import pytest

from distrogen.exceptions import InvalidVersionError
from distrogen.version import VersionToken


def test_versions_sort_numerically_with_prereleases_first():
    raw = ["1.16.5", "1.13", "1.16.5-snapshot", "1.12.2", "1.9"]
    ordered = sorted(VersionToken.parse(v) for v in raw)
    assert [v.raw for v in ordered] == ["1.9", "1.12.2", "1.13", "1.16.5-snapshot", "1.16.5"]


def test_prefix_and_leading_zeros_do_not_affect_comparison():
    assert VersionToken.parse("v01.13") == VersionToken.parse("1.13.0")
    assert VersionToken.parse("1") == VersionToken.parse("1.0.0")
    assert VersionToken.parse("1.20-RC1") == VersionToken.parse("1.20-rc1")
    assert hash(VersionToken.parse("v1.13")) == hash(VersionToken.parse("1.13.0"))


def test_raw_text_is_preserved():
    version = VersionToken.parse(" v1.20.1-rc1 ")
    assert version.raw == "v1.20.1-rc1"
    assert str(version) == "v1.20.1-rc1"
    assert version.normalized == "1.20.1-rc1"
    assert not version.is_release


@pytest.mark.parametrize("raw", ["", "abc", "1..2", "1.2.3.4", "1.2-", None])
def test_invalid_versions_are_rejected(raw):
    with pytest.raises(InvalidVersionError):
        VersionToken.parse(raw)


def test_range_checks():
    version = VersionToken.parse("1.12.2")
    assert version.in_range("1.7.10", "1.12.2")
    assert not version.in_range("1.13", "1.20")
    assert version.is_at_least("1.5.2")
    assert not VersionToken.parse("1.13-pre1").is_at_least("1.13")


def test_coerce_passes_tokens_through():
    version = VersionToken.parse("1.18.2")
    assert VersionToken.coerce(version) is version
    assert VersionToken.coerce("1.18.2") == version
