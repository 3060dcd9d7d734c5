import os
from pathlib import Path

import pytest

from secureweb.exceptions import TraversalError, TraversalErrorKind
from secureweb.path_guard import decode_once, is_within, resolve_safe


def assert_rejected(kind, base, user_input, **kwargs):
    with pytest.raises(TraversalError) as excinfo:
        resolve_safe(base, user_input, **kwargs)
    assert excinfo.value.kind == kind


def test_plain_file_resolves_inside_base(files_dir):
    assert resolve_safe(files_dir, "report.txt") == files_dir / "report.txt"


def test_nested_file(files_dir):
    assert resolve_safe(files_dir, "sub/notes.txt") == files_dir / "sub" / "notes.txt"


def test_backslash_separator_is_accepted(files_dir):
    assert resolve_safe(files_dir, "sub\\notes.txt") == files_dir / "sub" / "notes.txt"


def test_percent_encoded_name_is_decoded(files_dir):
    assert resolve_safe(files_dir, "%72eport.txt") == files_dir / "report.txt"
    assert resolve_safe(files_dir, "caf%C3%A9.txt") == files_dir / "café.txt"


def test_dot_resolves_to_base_itself(files_dir):
    assert resolve_safe(files_dir, ".") == files_dir
    assert resolve_safe(files_dir, "./sub/.") == files_dir / "sub"


@pytest.mark.parametrize("user_input", ["", None])
def test_missing_input(files_dir, user_input):
    assert_rejected(TraversalErrorKind.MISSING_INPUT, files_dir, user_input)


@pytest.mark.parametrize("user_input", ["%zz", "report%", "%4", "%E0%A4", "report.txt%00.png"])
def test_invalid_encoding(files_dir, user_input):
    assert_rejected(TraversalErrorKind.INVALID_ENCODING, files_dir, user_input)


@pytest.mark.parametrize(
    "user_input",
    [
        "..",
        "../secret.txt",
        "..\\secret.txt",
        "%2e%2e%2fsecret.txt",
        "%2E%2E%5Csecret.txt",
        "..%2F..%2Fetc%2Fpasswd",
        "sub\\..\\..\\files-secret\\secret.txt",
        "sub/../../files-secret/secret.txt",
    ],
)
def test_parent_segments_in_any_encoding_are_rejected(files_dir, user_input):
    assert_rejected(TraversalErrorKind.OUTSIDE_BASE, files_dir, user_input)


def test_sibling_directory_with_shared_prefix_is_rejected(files_dir):
    assert_rejected(TraversalErrorKind.OUTSIDE_BASE, files_dir, "../files-secret/secret.txt")


def test_collapsing_parent_segments_is_rejected(files_dir):
    assert_rejected(TraversalErrorKind.OUTSIDE_BASE, files_dir, "a/b/../../etc/passwd")


@pytest.mark.parametrize(
    "user_input",
    ["/etc/passwd", "%2Fetc%2Fpasswd", "\\\\server\\share\\x", "C:\\Windows\\win.ini", "c:/x", "C:", "Z:%5Cboot.ini"],
)
def test_absolute_references_never_replace_base(files_dir, user_input):
    assert_rejected(TraversalErrorKind.OUTSIDE_BASE, files_dir, user_input)


def test_colon_in_a_plain_name_is_not_a_drive(files_dir):
    assert resolve_safe(files_dir, "a:notes.txt") == files_dir / "a:notes.txt"
    assert resolve_safe(files_dir, "sub/c:report.txt") == files_dir / "sub" / "c:report.txt"


def test_double_encoding_is_decoded_only_once(files_dir):
    result = resolve_safe(files_dir, "%252e%252e%252fsecret.txt")
    assert result == files_dir / "%2e%2e%2fsecret.txt"
    assert is_within(result, files_dir)


def test_dotted_names_that_are_not_parent_segments(files_dir):
    assert resolve_safe(files_dir, "..hidden") == files_dir / "..hidden"
    assert resolve_safe(files_dir, "notes..txt") == files_dir / "notes..txt"


class TestLenientMode:
    def test_inner_parent_segments_collapse(self, files_dir):
        result = resolve_safe(files_dir, "sub/../report.txt", allow_parent_segments=True)
        assert result == files_dir / "report.txt"

    def test_leading_parent_segments_are_stripped(self, files_dir):
        result = resolve_safe(files_dir, "../files-secret/secret.txt", allow_parent_segments=True)
        assert result == files_dir / "files-secret" / "secret.txt"

    def test_over_collapsing_is_stripped(self, files_dir):
        result = resolve_safe(files_dir, "a/b/../../../x", allow_parent_segments=True)
        assert result == files_dir / "x"

    @pytest.mark.parametrize(
        "user_input",
        ["../../../../etc/passwd", "..\\..\\x", "%2e%2e/%2e%2e/x", "sub/../../..", ".."],
    )
    def test_never_escapes_base(self, files_dir, user_input):
        try:
            result = resolve_safe(files_dir, user_input, allow_parent_segments=True)
        except TraversalError as exc:
            assert exc.kind == TraversalErrorKind.OUTSIDE_BASE
        else:
            assert is_within(result, files_dir)

    def test_absolute_still_rejected(self, files_dir):
        assert_rejected(
            TraversalErrorKind.OUTSIDE_BASE, files_dir, "/etc/passwd", allow_parent_segments=True
        )


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="platform has no symlinks")
class TestSymlinks:
    def test_link_escaping_base_is_rejected(self, files_dir):
        (files_dir / "escape").symlink_to(files_dir.parent / "files-secret", target_is_directory=True)
        assert_rejected(TraversalErrorKind.OUTSIDE_BASE, files_dir, "escape/secret.txt")

    def test_lexical_only_when_verification_disabled(self, files_dir):
        (files_dir / "escape").symlink_to(files_dir.parent / "files-secret", target_is_directory=True)
        result = resolve_safe(files_dir, "escape/secret.txt", verify_symlinks=False)
        assert result == files_dir / "escape" / "secret.txt"

    def test_link_inside_base_is_allowed(self, files_dir):
        (files_dir / "alias.txt").symlink_to(files_dir / "report.txt")
        assert resolve_safe(files_dir, "alias.txt") == files_dir / "alias.txt"


def test_resolution_is_idempotent(files_dir):
    first = resolve_safe(files_dir, "sub/notes.txt")
    assert resolve_safe(files_dir, "sub/notes.txt") == first


def test_relative_base_is_a_configuration_error():
    with pytest.raises(ValueError):
        resolve_safe("files", "report.txt")


def test_is_within_is_segment_aligned():
    base = Path("/srv/files")
    assert is_within(Path("/srv/files"), base)
    assert is_within(Path("/srv/files/a/b"), base)
    assert not is_within(Path("/srv/files-secret/x"), base)
    assert not is_within(Path("/srv"), base)


def test_decode_once_leaves_encoded_percent():
    assert decode_once("%2541") == "%41"
