"""Version highlighting, version comparison and development package detection."""

from __future__ import annotations

from typing import Optional, Protocol, Tuple

from aurhelper.text.color import green, red

_DEVEL_SUFFIXES = ("git", "svn", "hg", "bzr", "nightly", "insiders-bin")
_WORDS = ("rc", "pre", "alpha", "beta")


class PackageLike(Protocol):
    name: str
    base: str


def _is_number(char: str) -> bool:
    return char.isnumeric()


def _check_words(value: str, index: int) -> bool:
    if value[index].isalpha():
        return False
    for word in _WORDS:
        length = len(word)
        start = index + 1
        if index < len(value) - length and value[start:start + length] == word:
            return True
    return False


def get_version_diff(old_version: str, new_version: str) -> Tuple[str, str]:
    """Return both versions with the differing tail coloured red and green."""
    if old_version == new_version:
        return old_version + red(""), new_version + green("")

    diff_position = 0
    last_old = len(old_version) - 1
    last_new = len(new_version) - 1

    for index, char in enumerate(old_version):
        special = not (char.isalpha() or _is_number(char))

        if index >= len(new_version) or char != new_version[index]:
            if special:
                diff_position = index
            break

        at_end = index == last_old or index == last_new
        if (
            special
            or (at_end and (len(old_version) != len(new_version) or old_version[index] == new_version[index]))
            or _check_words(old_version, index)
        ):
            diff_position = index + 1

    same = old_version[:diff_position]
    left = same + red(old_version[diff_position:])
    right = same + green(new_version[diff_position:])
    return left, right


def is_devel_name(name: str) -> bool:
    """Return whether ``name`` looks like a development (VCS) package."""
    if any(name.endswith("-" + suffix) for suffix in _DEVEL_SUFFIXES):
        return True
    return "-always-" in name


def is_devel_package(pkg: PackageLike) -> bool:
    return is_devel_name(pkg.name) or is_devel_name(pkg.base)


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_alpha(char: str) -> bool:
    return "a" <= char <= "z" or "A" <= char <= "Z"


def _is_alnum(char: str) -> bool:
    return _is_digit(char) or _is_alpha(char)


def _segment_cmp(a: str, b: str) -> int:
    if a == b:
        return 0

    n, m = len(a), len(b)
    i = j = 0
    while i < n and j < m:
        start_a, start_b = i, j
        while i < n and not _is_alnum(a[i]):
            i += 1
        while j < m and not _is_alnum(b[j]):
            j += 1
        if i >= n or j >= m:
            break

        if i - start_a != j - start_b:
            return -1 if i - start_a < j - start_b else 1

        p, q = i, j
        if _is_digit(a[p]):
            while p < n and _is_digit(a[p]):
                p += 1
            while q < m and _is_digit(b[q]):
                q += 1
            numeric = True
        else:
            while p < n and _is_alpha(a[p]):
                p += 1
            while q < m and _is_alpha(b[q]):
                q += 1
            numeric = False

        if q == j:
            return 1 if numeric else -1

        seg_a, seg_b = a[i:p], b[j:q]
        if numeric:
            seg_a, seg_b = seg_a.lstrip("0"), seg_b.lstrip("0")
            if len(seg_a) != len(seg_b):
                return 1 if len(seg_a) > len(seg_b) else -1
        if seg_a != seg_b:
            return -1 if seg_a < seg_b else 1

        i, j = p, q

    end_a, end_b = i >= n, j >= m
    if end_a and end_b:
        return 0
    if (end_a and not _is_alpha(b[j])) or (not end_a and _is_alpha(a[i])):
        return -1
    return 1


def _parse_evr(evr: str) -> Tuple[str, str, Optional[str]]:
    k = 0
    while k < len(evr) and _is_digit(evr[k]):
        k += 1
    dash = evr.rfind("-", k)

    if k < len(evr) and evr[k] == ":":
        epoch = evr[:k] or "0"
        start = k + 1
    else:
        epoch = "0"
        start = 0

    if dash != -1:
        return epoch, evr[start:dash], evr[dash + 1:]
    return epoch, evr[start:], None


def vercmp(a: str, b: str) -> int:
    """Compare two package versions; return -1, 0 or 1."""
    if a == b:
        return 0

    epoch_a, version_a, release_a = _parse_evr(a)
    epoch_b, version_b, release_b = _parse_evr(b)

    result = _segment_cmp(epoch_a, epoch_b)
    if result == 0:
        result = _segment_cmp(version_a, version_b)
        if result == 0 and release_a is not None and release_b is not None:
            result = _segment_cmp(release_a, release_b)
    return result