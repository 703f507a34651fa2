"""Tests for mute command parsing."""

import pytest

from alertbot.commands.parser import MuteSelection, parse_mute_command
from alertbot.errors import NoMatch

ENVS = ["env1", "env2", "env3"]
PRS = ["pr1", "pr2", "pr3"]


class TestParseMuteCommand:

    def test_environment_only(self):
        sel = parse_mute_command("/mute environment[env1]", ENVS, PRS)
        assert sel.keep_environments == ["env2", "env3"]
        assert sel.keep_projects == PRS

    def test_project_only(self):
        sel = parse_mute_command("/mute project[pr2,pr3]", ENVS, PRS)
        assert sel.keep_environments == ENVS
        assert sel.keep_projects == ["pr1"]

    def test_combined(self):
        sel = parse_mute_command("/mute environment[env1,env3],project[pr1]", ENVS, PRS)
        assert sel.keep_environments == ["env2"]
        assert sel.keep_projects == ["pr2", "pr3"]

    def test_combined_project_first(self):
        sel = parse_mute_command("/mute project[pr1],environment[env1]", ENVS, PRS)
        assert sel.keep_environments == ["env2", "env3"]
        assert sel.keep_projects == ["pr2", "pr3"]

    def test_combined_with_space_after_comma(self):
        sel = parse_mute_command("/mute environment[env2], project[pr3]", ENVS, PRS)
        assert sel.keep_environments == ["env1", "env3"]
        assert sel.keep_projects == ["pr1", "pr2"]

    def test_whitespace_inside_brackets(self):
        sel = parse_mute_command("/mute environment[ env1 , env2 ]", ENVS, PRS)
        assert sel.keep_environments == ["env3"]

    def test_unknown_names_contribute_nothing(self):
        sel = parse_mute_command("/mute environment[nope]", ENVS, PRS)
        assert sel.keep_environments == ENVS

    def test_names_with_dots_and_dashes(self):
        sel = parse_mute_command("/mute project[web-api.v2]", ENVS, ["web-api.v2", "db"])
        assert sel.keep_projects == ["db"]

    @pytest.mark.parametrize("text", [
        "/mute",
        "/mute everything",
        "/mute environment[]",
        "/mute env[env1]",
    ])
    def test_no_match(self, text):
        with pytest.raises(NoMatch):
            parse_mute_command(text, ENVS, PRS)


class TestMuteSelection:

    def test_to_mute_is_complement_in_universe_order(self):
        sel = MuteSelection(keep_environments=["env2"], keep_projects=PRS)
        assert sel.environments_to_mute(ENVS) == ["env1", "env3"]
        assert sel.projects_to_mute(PRS) == []
