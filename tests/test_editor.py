#!/usr/bin/env python3
"""
NIXSAMBA EDITOR SUITE
---------------------
Add / update / remove against realistic configurations:
1. Scenario tests (second share, in-place update, missing section)
2. Properties (order preservation, non-interference, round trip)
3. Typed failures leave the caller's text untouched
"""

import pytest

from nixsamba.core.errors import (
    SectionMissing, ShareNotFound, DuplicateShare, UnbalancedDelimiters,
    InsertionPointNotFound
)
from nixsamba.core.models import ShareSpec, ShareOperation, OperationKind
from nixsamba.surgery.editor import (
    ShareEditor, add_share, update_share, remove_share, apply_operation
)
from nixsamba.surgery.locator import locate_settings_section, locate_share, iter_entries
from nixsamba.surgery.reader import read_shares
from nixsamba.surgery.scanner import delimiter_balance
from nixsamba.surgery.synthesizer import render


def _share_names(text):
    body = locate_settings_section(text)
    return [e.name for e in iter_entries(text, body) if e.name != "global"]


def _entry_text(text, name):
    body = locate_settings_section(text)
    return locate_share(text, body, name).slice(text)


# --- Scenarios ---

def test_add_second_share(single_share_config, second_share):
    original_entry = _entry_text(single_share_config, "myTest1a")

    new_text = add_share(single_share_config, second_share)

    assert _share_names(new_text) == ["myTest1a", "myTEst2"]
    assert _entry_text(new_text, "myTest1a") == original_entry
    added = _entry_text(new_text, "myTEst2")
    assert added == render(second_share, "    ").lstrip()
    assert "browseable = yes;" in added
    assert '"read only" = yes;' in added
    assert '"guest ok" = no;' in added
    assert '"force user" = "_apt";' in added
    assert '"force group" = "adm";' in added


def test_add_keeps_everything_outside_the_section(single_share_config, second_share):
    new_text = add_share(single_share_config, second_share)
    head, _, _ = single_share_config.partition("  services.samba.settings")
    assert new_text.startswith(head)
    assert new_text.endswith("  };\n}\n")


def test_update_replaces_in_place(three_shares_config):
    new_spec = ShareSpec("share2", "/srv/two-new", browseable=False, read_only=True)

    new_text = update_share(three_shares_config, new_spec)

    assert _share_names(new_text) == ["share1", "share2", "share3"]
    updated = _entry_text(new_text, "share2")
    assert 'path = "/srv/two-new";' in updated
    assert '"read only" = yes;' in updated
    assert "/srv/two\"" not in new_text


def test_add_to_config_without_samba(minimal_config):
    """
    SECTION CREATION: A configuration without any services.samba key gets a
    balanced settings section appended before the final closing brace.
    """
    spec = ShareSpec("media", "/srv/media", force_user="nobody")

    new_text = add_share(minimal_config, spec)

    assert "services.samba.settings = {" in new_text
    assert delimiter_balance(new_text) == 0
    assert read_shares(new_text) == [spec]
    assert _entry_text(new_text, "media") == render(spec, "    ").lstrip()
    assert new_text.startswith(minimal_config.rstrip().rstrip("}"))
    assert new_text.rstrip().endswith("  };\n}")
    assert new_text.index("boot.loader") < new_text.index("services.samba.settings")


def test_add_into_samba_block_without_settings():
    text = "{\n  services.samba = {\n    enable = true;\n  };\n}\n"
    spec = ShareSpec("data", "/data")

    new_text = add_share(text, spec)

    assert new_text == (
        "{\n"
        "  services.samba = {\n"
        "    enable = true;\n"
        "    settings = {\n"
        '      "data" = {\n'
        '        path = "/data";\n'
        "        browseable = yes;\n"
        '        "read only" = no;\n'
        '        "guest ok" = no;\n'
        '        "force user" = "";\n'
        '        "force group" = "";\n'
        "      };\n"
        "    };\n"
        "  };\n"
        "}\n"
    )


def test_add_to_inline_empty_section():
    text = "{\n  services.samba.settings = { };\n}\n"
    spec = ShareSpec("a", "/a")

    new_text = add_share(text, spec)

    assert new_text.startswith("{\n  services.samba.settings = {\n    \"a\" = {\n")
    assert new_text.endswith("    };\n  };\n}\n")
    assert read_shares(new_text) == [spec]


# --- Properties ---

def test_order_preservation(empty_section_config):
    text = empty_section_config
    for name in ("A", "B", "C"):
        text = add_share(text, ShareSpec(name, f"/srv/{name}"))
    assert _share_names(text) == ["A", "B", "C"]
    assert delimiter_balance(text) == 0


def test_entries_follow_existing_indentation(empty_section_config):
    text = add_share(empty_section_config, ShareSpec("A", "/a"))
    text = add_share(text, ShareSpec("B", "/b"))
    assert '\n    "A" = {\n' in text
    assert '\n    "B" = {\n' in text


@pytest.mark.parametrize("target", ["share1", "share2", "share3"])
def test_update_non_interference(three_shares_config, target):
    """NON-INTERFERENCE: Only the targeted entry changes bytes."""
    others = [n for n in ("global", "share1", "share2", "share3") if n != target]
    before = {n: _entry_text(three_shares_config, n) for n in others}

    new_text = update_share(three_shares_config, ShareSpec(target, "/elsewhere"))

    for name, entry in before.items():
        assert _entry_text(new_text, name) == entry


@pytest.mark.parametrize("target", ["share1", "share2", "share3"])
def test_remove_non_interference(three_shares_config, target):
    others = [n for n in ("global", "share1", "share2", "share3") if n != target]
    before = {n: _entry_text(three_shares_config, n) for n in others}

    new_text = remove_share(three_shares_config, target)

    assert target not in _share_names(new_text)
    for name, entry in before.items():
        assert _entry_text(new_text, name) == entry


def test_remove_leaves_no_dangling_lines(three_shares_config):
    removed_block = (
        '      "share2" = {\n'
        '        path = "/srv/two";\n'
        '        browseable = yes;\n'
        '      };\n'
    )
    new_text = remove_share(three_shares_config, "share2")
    assert new_text == three_shares_config.replace(removed_block, "")


@pytest.mark.parametrize("fixture_name", [
    "single_share_config", "three_shares_config", "empty_section_config",
])
def test_add_then_remove_round_trip(request, fixture_name, second_share):
    """
    ROUND TRIP: Removing what was just added restores the original text.
    """
    text = request.getfixturevalue(fixture_name)
    added = add_share(text, second_share)
    assert remove_share(added, second_share.name) == text


def test_round_trip_on_inline_section_keeps_share_set():
    text = '{\n  services.samba.settings = { "a" = { path = "/a"; }; };\n}\n'
    spec = ShareSpec("b", "/b")
    restored = remove_share(add_share(text, spec), "b")
    assert _share_names(restored) == ["a"]
    assert delimiter_balance(restored) == 0


def test_remove_inline_entries():
    text = 'settings = { "a" = { path = "/a"; }; "b" = { path = "/b"; }; };'
    services = "services.samba." + text
    assert remove_share(services, "a") == 'services.samba.settings = { "b" = { path = "/b"; }; };'
    assert remove_share(services, "b") == 'services.samba.settings = { "a" = { path = "/a"; }; };'


def test_update_inline_entry_stays_on_its_line():
    text = (
        "{\n"
        "  services.samba = {\n"
        "    settings = {\n"
        '      "first" = { path = "/1"; browseable = yes; };\n'
        '      "second" = { path = "/2"; browseable = yes; };\n'
        '      "third" = { path = "/3"; browseable = yes; };\n'
        "    };\n"
        "  };\n"
        "}\n"
    )
    new_text = update_share(text, ShareSpec("second", "/two"))
    assert _share_names(new_text) == ["first", "second", "third"]
    assert '      "first" = { path = "/1"; browseable = yes; };\n      "second" = {\n' in new_text
    assert '      };\n      "third" = { path = "/3"; browseable = yes; };\n' in new_text


def test_rename_keeps_position(three_shares_config):
    new_text = update_share(three_shares_config, ShareSpec("renamed", "/srv/two"), old_name="share2")
    assert _share_names(new_text) == ["share1", "renamed", "share3"]


def test_comments_and_braces_outside_are_preserved(second_share):
    text = (
        "# top comment with a stray }\n"
        "{ config, ... }:\n"
        "{\n"
        "  /* block { comment */\n"
        "  services.samba.settings = {\n"
        "    # shares below }\n"
        '    "x" = { path = "/x{"; };\n'
        "  };\n"
        "}\n"
    )
    new_text = add_share(text, second_share)
    assert new_text.startswith(text[:text.index("  };\n}")])
    assert _share_names(new_text) == ["x", "myTEst2"]


def test_backslash_values_round_trip(empty_section_config):
    spec = ShareSpec("win", "C:\\", force_user="DOMAIN\\svc")

    new_text = add_share(empty_section_config, spec)

    assert delimiter_balance(new_text) == 0
    assert read_shares(new_text) == [spec]
    assert remove_share(new_text, "win") == empty_section_config


def test_interpolation_in_path_reads_back_literally(single_share_config):
    spec = ShareSpec("home", "/srv/${HOME}")
    new_text = add_share(single_share_config, spec)
    assert 'path = "/srv/\\${HOME}";' in new_text
    assert read_shares(new_text)[-1] == spec


def test_backslash_share_name_can_be_updated_and_removed(empty_section_config):
    text = add_share(empty_section_config, ShareSpec("a\\b", "/ab"))
    text = update_share(text, ShareSpec("a\\b", "/ab2"))
    assert read_shares(text) == [ShareSpec("a\\b", "/ab2")]
    assert remove_share(text, "a\\b") == empty_section_config


# --- Line endings ---

def _crlf(text):
    return text.replace("\n", "\r\n")


def test_crlf_remove_takes_whole_lines():
    text = _crlf(
        "{\n"
        "  services.samba.settings = {\n"
        '    "a" = {\n'
        '      path = "/a";\n'
        "    };\n"
        '    "b" = {\n'
        '      path = "/b";\n'
        "    };\n"
        "  };\n"
        "}\n"
    )
    expected = _crlf(
        "{\n"
        "  services.samba.settings = {\n"
        '    "b" = {\n'
        '      path = "/b";\n'
        "    };\n"
        "  };\n"
        "}\n"
    )
    assert remove_share(text, "a") == expected


@pytest.mark.parametrize("fixture_name", [
    "minimal_config", "single_share_config", "three_shares_config", "empty_section_config",
])
def test_crlf_add_keeps_line_endings(request, fixture_name, second_share):
    text = _crlf(request.getfixturevalue(fixture_name))

    new_text = add_share(text, second_share)

    assert new_text.count("\n") == new_text.count("\r\n")
    assert read_shares(new_text)[-1] == second_share


@pytest.mark.parametrize("fixture_name", [
    "single_share_config", "three_shares_config", "empty_section_config",
])
def test_crlf_add_then_remove_round_trip(request, fixture_name, second_share):
    text = _crlf(request.getfixturevalue(fixture_name))
    assert remove_share(add_share(text, second_share), second_share.name) == text


def test_crlf_update_keeps_line_endings(three_shares_config):
    text = _crlf(three_shares_config)
    new_text = update_share(text, ShareSpec("share2", "/srv/two-new", read_only=True))
    assert new_text.count("\n") == new_text.count("\r\n")
    assert _share_names(new_text) == ["share1", "share2", "share3"]


# --- Failures ---

def test_add_duplicate_fails(single_share_config):
    spec = ShareSpec("myTest1a", "/elsewhere")
    with pytest.raises(DuplicateShare) as exc:
        add_share(single_share_config, spec)
    assert exc.value.operation == "add"
    assert exc.value.share_name == "myTest1a"


def test_update_without_section_fails(minimal_config):
    with pytest.raises(SectionMissing) as exc:
        update_share(minimal_config, ShareSpec("x", "/x"))
    assert exc.value.operation == "update"
    assert exc.value.share_name == "x"


def test_remove_without_section_fails(minimal_config):
    with pytest.raises(SectionMissing):
        remove_share(minimal_config, "x")


def test_update_unknown_share_fails(three_shares_config):
    with pytest.raises(ShareNotFound) as exc:
        update_share(three_shares_config, ShareSpec("nope", "/x"))
    assert exc.value.share_name == "nope"


def test_remove_unknown_share_fails(three_shares_config):
    with pytest.raises(ShareNotFound):
        remove_share(three_shares_config, "nope")


def test_rename_onto_existing_fails(three_shares_config):
    with pytest.raises(DuplicateShare):
        update_share(three_shares_config, ShareSpec("share3", "/x"), old_name="share1")


def test_unbalanced_section_fails():
    text = '{\n  services.samba.settings = {\n    "a" = { path = "/a";\n'
    with pytest.raises(UnbalancedDelimiters) as exc:
        add_share(text, ShareSpec("b", "/b"))
    assert exc.value.operation == "add"


@pytest.mark.parametrize("text", ["", "# only a comment\n", "[ 1 2 3 ]"])
def test_no_insertion_point(text):
    with pytest.raises(InsertionPointNotFound):
        add_share(text, ShareSpec("a", "/a"))


def test_failed_operation_leaves_input_unchanged(single_share_config):
    snapshot = str(single_share_config)
    with pytest.raises(DuplicateShare):
        add_share(single_share_config, ShareSpec("myTest1a", "/x"))
    assert single_share_config == snapshot


# --- Dispatch ---

def test_apply_dispatches_each_kind(three_shares_config):
    text = apply_operation(three_shares_config, ShareOperation.add(ShareSpec("share4", "/4")))
    text = apply_operation(text, ShareOperation.update(ShareSpec("share4", "/four")))
    assert 'path = "/four";' in _entry_text(text, "share4")
    text = apply_operation(text, ShareOperation.remove("share4"))
    assert text == three_shares_config


def test_apply_requires_payload():
    with pytest.raises(ValueError):
        ShareEditor().apply("{}", ShareOperation(kind=OperationKind.REMOVE))


def test_custom_indent_step(empty_section_config):
    editor = ShareEditor(indent_step="    ")
    new_text = editor.add_share(empty_section_config, ShareSpec("wide", "/w"))
    assert '\n      "wide" = {\n          path = "/w";\n' in new_text
