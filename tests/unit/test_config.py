"""
Tests for configuration loading and validation.
"""

from pathlib import Path

import pytest

from agentdeck.config import (
    DEFAULT_COOLDOWN_MS,
    DEFAULT_MAX_LINES,
    DEFAULT_RIGHT_STATUS_COMPONENTS,
    DEFAULT_TAB_TITLE_COMPONENTS,
    DEFAULT_UPDATE_INTERVAL_MS,
    AgentDeckConfig,
    AgentDescriptor,
    config_from_dict,
    deep_merge,
    get_config_path,
    get_state_dir,
    load_config,
    validate_config,
)
from agentdeck.render import render_right_status


class TestPaths:
    """Test state and config path resolution"""

    def test_state_dir_from_env(self, isolated_state_dir):
        assert get_state_dir() == isolated_state_dir

    def test_config_path_default(self, isolated_state_dir):
        assert get_config_path() == isolated_state_dir / "config.yaml"

    def test_config_path_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AGENTDECK_CONFIG", str(tmp_path / "other.yaml"))
        assert get_config_path() == tmp_path / "other.yaml"


class TestAgentDescriptor:
    """Test agent descriptor parsing and pattern precedence"""

    def test_patterns_fall_back_to_name(self):
        agent = AgentDescriptor(name="codex")
        assert agent.patterns_for("executable") == ("codex",)

    def test_generic_patterns(self):
        agent = AgentDescriptor(name="claude", patterns=("claude", "claude-code"))
        assert agent.patterns_for("argv") == ("claude", "claude-code")

    def test_phase_specific_wins(self):
        agent = AgentDescriptor(name="x", patterns=("x",), title_patterns=("^X:",))
        assert agent.patterns_for("title") == ("^X:",)
        assert agent.patterns_for("argv") == ("x",)

    def test_from_dict_accepts_single_string(self):
        agent = AgentDescriptor.from_dict("aider", {"patterns": "aider"})
        assert agent.patterns == ("aider",)

    def test_from_dict_status_patterns(self):
        agent = AgentDescriptor.from_dict("aider", {"status_patterns": {"idle": ["^aider>"]}})
        assert agent.status_patterns == {"idle": ("^aider>",)}

    def test_from_dict_rejects_unknown_category(self):
        with pytest.raises(ValueError):
            AgentDescriptor.from_dict("x", {"status_patterns": {"busy": ["x"]}})

    def test_from_dict_rejects_bad_patterns(self):
        with pytest.raises(ValueError):
            AgentDescriptor.from_dict("x", {"patterns": 42})

    def test_title_property(self):
        assert AgentDescriptor(name="claude").title == "Claude"
        assert AgentDescriptor(name="opencode", display_name="OpenCode").title == "OpenCode"

    def test_to_dict_round_trip_fields(self):
        agent = AgentDescriptor.from_dict("x", {"patterns": ["x"], "viewport_heuristic": True})
        assert agent.to_dict() == {"patterns": ["x"], "viewport_heuristic": True}


class TestConfigFromDict:
    """Test merging user data over defaults"""

    def test_empty_gives_defaults(self):
        config = config_from_dict({})
        assert config.update_interval == DEFAULT_UPDATE_INTERVAL_MS
        assert list(config.agents) == ["opencode", "claude", "gemini", "codex", "aider"]

    def test_user_agent_added_after_builtins(self):
        config = config_from_dict({"agents": {"myagent": {"patterns": ["myagent"]}}})
        assert list(config.agents)[-1] == "myagent"

    def test_same_named_agent_merged(self):
        config = config_from_dict({"agents": {"claude": {"title_patterns": ["Claude Code"]}}})
        claude = config.agents["claude"]
        assert claude.patterns == ("claude", "claude-code")
        assert claude.title_patterns == ("Claude Code",)

    def test_invalid_agent_dropped_with_warning(self):
        warnings = []
        config = config_from_dict({"agents": {"bad": {"patterns": 3}}}, warnings)
        assert "bad" not in config.agents
        assert any("bad" in w for w in warnings)

    def test_enabled_agents(self):
        config = config_from_dict({"enabled_agents": ["claude"]})
        assert [a.name for a in config.active_agents()] == ["claude"]

    def test_colors_merged(self):
        config = config_from_dict({"colors": {"waiting": "red"}})
        assert config.colors["waiting"] == "red"
        assert config.colors["working"] == "green"

    def test_nested_sections(self):
        config = config_from_dict({
            "notifications": {"min_gap_ms": 30000},
            "icons": {"style": "emoji"},
            "tab_title": {"position": "right"},
        })
        assert config.notifications.min_gap_seconds == 30.0
        assert config.notifications.timeout_ms == 4000
        assert config.icons.style == "emoji"
        assert config.tab_title.position == "right"

    def test_deep_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 4}


class TestValidateConfig:
    """Test correction of invalid options"""

    def test_defaults_are_valid(self):
        config, warnings = validate_config(AgentDeckConfig())
        assert warnings == []
        assert config == AgentDeckConfig()

    def test_negative_cooldown_uses_default(self):
        config, warnings = validate_config(config_from_dict({"cooldown_ms": -1}))
        assert config.cooldown_ms == DEFAULT_COOLDOWN_MS
        assert warnings == ["cooldown_ms should be >= 0ms, using default"]

    def test_zero_cooldown_allowed(self):
        config, warnings = validate_config(config_from_dict({"cooldown_ms": 0}))
        assert config.cooldown_ms == 0
        assert warnings == []

    def test_update_interval_minimum(self):
        config, warnings = validate_config(config_from_dict({"update_interval": 50}))
        assert config.update_interval == DEFAULT_UPDATE_INTERVAL_MS
        assert len(warnings) == 1

    def test_max_lines_minimum(self):
        config, _ = validate_config(config_from_dict({"max_lines": 5}))
        assert config.max_lines == DEFAULT_MAX_LINES

    def test_non_numeric_value(self):
        config, warnings = validate_config(config_from_dict({"cooldown_ms": "fast"}))
        assert config.cooldown_ms == DEFAULT_COOLDOWN_MS
        assert warnings

    def test_invalid_icon_style(self):
        config, warnings = validate_config(config_from_dict({"icons": {"style": "ascii"}}))
        assert config.icons.style == "unicode"
        assert "Invalid icon style, using unicode" in warnings

    def test_invalid_tab_position(self):
        config, warnings = validate_config(config_from_dict({"tab_title": {"position": "top"}}))
        assert config.tab_title.position == "left"
        assert len(warnings) == 1

    def test_unknown_enabled_agent_warns(self):
        _, warnings = validate_config(config_from_dict({"enabled_agents": ["nope"]}))
        assert any("nope" in w for w in warnings)

    def test_warnings_are_logged(self, caplog):
        with caplog.at_level("WARNING", logger="agentdeck.config"):
            validate_config(config_from_dict({"cooldown_ms": -1}))
        assert "cooldown_ms" in caplog.text

    def test_seconds_properties(self):
        config = AgentDeckConfig(update_interval=250, cooldown_ms=1500)
        assert config.update_interval_seconds == 0.25
        assert config.cooldown_seconds == 1.5


class TestLoadConfig:
    """Test reading the YAML file"""

    def test_missing_file_gives_defaults(self, tmp_path):
        config, warnings = load_config(tmp_path / "missing.yaml")
        assert config == AgentDeckConfig()
        assert warnings == []

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cooldown_ms: 500\nicons:\n  style: nerd\n")
        config, warnings = load_config(path)
        assert config.cooldown_ms == 500
        assert config.icons.style == "nerd"
        assert warnings == []

    def test_malformed_yaml_gives_defaults_and_warning(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cooldown_ms: [unclosed\n")
        config, warnings = load_config(path)
        assert config.cooldown_ms == DEFAULT_COOLDOWN_MS
        assert len(warnings) == 1

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        config, warnings = load_config(path)
        assert config == AgentDeckConfig()
        assert warnings

    def test_invalid_values_corrected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cooldown_ms: -1\n")
        config, warnings = load_config(path)
        assert config.cooldown_ms == DEFAULT_COOLDOWN_MS
        assert warnings == ["cooldown_ms should be >= 0ms, using default"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        config, warnings = load_config(path)
        assert config == AgentDeckConfig()
        assert warnings == []

    def test_default_path_used(self, isolated_state_dir):
        isolated_state_dir.mkdir(parents=True)
        (isolated_state_dir / "config.yaml").write_text("max_lines: 200\n")
        config, _ = load_config()
        assert config.max_lines == 200


class TestMalformedValues:
    """Test that wrongly shaped values become warnings rather than errors"""

    def test_scalar_status_patterns_keep_builtin_agent(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("agents:\n  claude:\n    status_patterns:\n      working: 5\n")
        config, warnings = load_config(path)
        assert "claude" in config.agents
        assert any("claude" in w and "using defaults" in w for w in warnings)

    def test_bad_builtin_field_rebuilds_from_defaults(self):
        warnings = []
        config = config_from_dict({"agents": {"claude": {"patterns": 5}}}, warnings)
        assert config.agents["claude"].patterns == ("claude", "claude-code")
        assert warnings == [
            "agent 'claude' is invalid (patterns must be a list of strings), using defaults"
        ]

    def test_scalar_right_status_components(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("right_status:\n  components: 5\n")
        config, warnings = load_config(path)
        assert config.right_status.components == tuple(DEFAULT_RIGHT_STATUS_COMPONENTS)
        assert "right_status.components should be a list, using defaults" in warnings

    def test_scalar_tab_title_components(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tab_title:\n  components: 7\n")
        config, warnings = load_config(path)
        assert config.tab_title.components == tuple(DEFAULT_TAB_TITLE_COMPONENTS)
        assert "tab_title.components should be a list, using defaults" in warnings

    def test_non_mapping_component_dropped(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("right_status:\n  components:\n    - badge\n    - {type: badge, filter: working}\n")
        config, warnings = load_config(path)
        assert config.right_status.components == ({"type": "badge", "filter": "working"},)
        assert any("right_status.components" in w for w in warnings)
        assert render_right_status({"working": 1}, config).plain == "1"
