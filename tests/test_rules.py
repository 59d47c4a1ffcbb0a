import json
import stat

import pytest

from dirlistener.masks import EventMask, parse_masks
from dirlistener.rules import (
    LookAt,
    RuleError,
    Watch,
    build_command,
    expand_token,
    parse_config,
    parse_rule,
    read_config,
    tokenize_command,
)


def _rule(**overrides):
    rule = {
        "description": "copy new files",
        "target": "/tmp/incoming",
        "watches": "CLOSE_WRITE",
        "spawn": "cp $ENTRY /tmp/out",
        "lookat": "FILES",
    }
    rule.update(overrides)
    return rule


def test_tokenize_command_splits_on_blanks():
    assert tokenize_command("ls  -l\t$ENTRY") == ["ls", "-l", "$ENTRY"]
    assert tokenize_command("   ") == []
    assert tokenize_command("") == []


def test_expand_token_relative():
    assert expand_token("$ENTRY_RELATIVE", "/tmp/dir", "file.txt") == "file.txt"


def test_expand_token_absolute():
    assert expand_token("$ENTRY", "/tmp/dir", "file.txt") == "/tmp/dir/file.txt"


def test_expand_token_keeps_surrounding_text():
    assert expand_token("pre$ENTRY_RELATIVE.bak", "/tmp/dir", "file.txt") == "prefile.txt.bak"


def test_expand_token_without_variables_is_unchanged():
    assert expand_token("--verbose", "/tmp/dir", "file.txt") == "--verbose"


def test_build_command_collapses_blanks():
    assert build_command("cp $ENTRY  /backup", "/srv", "a") == "cp /srv/a /backup"


def test_build_command_token_count_preserved():
    spawn = "a b\tc   d"
    assert build_command(spawn, "/x", "y").split(" ") == tokenize_command(spawn)


def test_parse_rule_fields():
    watch = parse_rule(_rule(regex=r"\.txt$", depth="3"))
    assert watch.target == "/tmp/incoming"
    assert watch.spawn == "cp $ENTRY /tmp/out"
    assert watch.mask == parse_masks("CLOSE_WRITE")
    assert watch.lookat is LookAt.FILES
    assert watch.depth == 3
    assert watch.regex_rule == r"\.txt$"
    assert watch.uses_entry_variable


def test_parse_rule_keys_and_lookat_are_case_insensitive():
    watch = parse_rule({
        "TARGET": "/tmp", "Watches": "CREATE", "SPAWN": "true", "LookAt": "dirs",
    })
    assert watch.lookat is LookAt.DIRS
    assert watch.target == "/tmp"
    assert not watch.uses_entry_variable


def test_parse_rule_mask_includes_dont_follow():
    watch = parse_rule(_rule(watches="CREATE DELETE"))
    assert watch.mask == EventMask.DONT_FOLLOW | EventMask.CREATE | EventMask.DELETE


@pytest.mark.parametrize("missing", ["target", "watches", "spawn", "lookat"])
def test_parse_rule_requires_options(missing):
    rule = _rule()
    del rule[missing]
    with pytest.raises(RuleError, match=missing):
        parse_rule(rule)


def test_parse_rule_rejects_unknown_key():
    with pytest.raises(RuleError):
        parse_rule(_rule(colour="blue"))


def test_parse_rule_rejects_non_string_value():
    with pytest.raises(RuleError):
        parse_rule(_rule(depth=3))


def test_parse_rule_rejects_bad_lookat():
    with pytest.raises(RuleError, match="lookat"):
        parse_rule(_rule(lookat="SOCKETS"))


@pytest.mark.parametrize("depth", ["200", "-1", "128"])
def test_parse_rule_rejects_bad_depth(depth):
    with pytest.raises(RuleError, match="invalid depth"):
        parse_rule(_rule(depth=depth))


def test_parse_rule_depth_limits_accepted():
    assert parse_rule(_rule(depth="127")).depth == 127
    assert parse_rule(_rule(depth="0")).depth == 0


def test_parse_rule_rejects_bad_regex():
    with pytest.raises(RuleError):
        parse_rule(_rule(regex="("))


def test_parse_rule_rejects_non_object():
    with pytest.raises(RuleError):
        parse_rule(["target", "/tmp"])


def test_watch_matches_regex():
    watch = Watch(target="/tmp", regex_rule=r"\.txt$")
    assert watch.matches("notes.txt")
    assert not watch.matches("notes.doc")


def test_watch_without_regex_matches_everything():
    watch = Watch(target="/tmp")
    assert watch.matches("anything")
    assert watch.matches("")


def test_watch_wants_by_entry_kind():
    dirs = Watch(lookat=LookAt.DIRS)
    files = Watch(lookat=LookAt.FILES)
    assert dirs.wants(stat.S_IFDIR | 0o755)
    assert not dirs.wants(stat.S_IFREG | 0o644)
    assert files.wants(stat.S_IFREG | 0o644)
    assert not Watch().wants(stat.S_IFREG | 0o644)


def test_watch_invalid_regex_raises():
    with pytest.raises(RuleError):
        Watch(regex_rule="[")


def test_parse_config_returns_rules_in_order():
    watches = parse_config({"rules": [_rule(target="/a"), _rule(target="/b")]})
    assert [w.target for w in watches] == ["/a", "/b"]


@pytest.mark.parametrize(
    "data",
    [{}, {"rules": {}}, {"rules": []}, {"rules": ["x"]}, [_rule()], "text"],
)
def test_parse_config_errors(data):
    with pytest.raises(RuleError):
        parse_config(data)


def test_read_config_from_file(tmp_path):
    path = tmp_path / "listener.conf"
    path.write_text(json.dumps({"rules": [_rule()]}), encoding="utf-8")
    watches = read_config(str(path))
    assert len(watches) == 1
    assert watches[0].target == "/tmp/incoming"


def test_read_config_invalid_json(tmp_path):
    path = tmp_path / "broken.conf"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RuleError):
        read_config(str(path))


def test_read_config_missing_file(tmp_path):
    with pytest.raises(RuleError):
        read_config(str(tmp_path / "absent.conf"))